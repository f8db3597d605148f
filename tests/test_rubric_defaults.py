"""
Test: default rubric generation from threshold, direction and bounds.
"""
import pytest

from kpi_scoring.config.models import (
    BandKey,
    ClassKpiConfig,
    ClassType,
    ConfigSnapshot,
    Direction,
    KpiDefinition,
)
from kpi_scoring.errors import RubricConfigError
from kpi_scoring.rubrics.defaults import (
    compute_rubric_defaults,
    default_rubric_rows,
    default_scores,
    generate_rubric,
    meets_width,
)
from kpi_scoring.rubrics.models import BandWidthPolicy


def _ranges(defaults):
    return {band: (d.min_value, d.max_value) for band, d in defaults.items()}


class TestMeetsWidth:
    def test_two_percent_of_span(self, pct_kpi):
        assert meets_width(pct_kpi) == pytest.approx(2.0)

    def test_small_span_clamped_to_minimum(self):
        kpi = KpiDefinition(kpi_key="repeat_rate", unit="pct", min_value=0, max_value=20)
        assert meets_width(kpi) == pytest.approx(0.5)

    def test_large_span_clamped_to_maximum(self):
        kpi = KpiDefinition(kpi_key="minutes", unit="min", min_value=0, max_value=1000)
        assert meets_width(kpi) == pytest.approx(5.0)

    def test_score_unit_uses_score_limits(self):
        tnps = KpiDefinition(kpi_key="tnps", unit="Score", min_value=-100, max_value=100)
        narrow = KpiDefinition(kpi_key="csat", unit="score", min_value=0, max_value=50)
        assert meets_width(tnps) == pytest.approx(4.0)
        assert meets_width(narrow) == pytest.approx(2.0)

    def test_undeclared_bounds_assume_zero_to_hundred(self):
        assert meets_width(KpiDefinition(kpi_key="x")) == pytest.approx(2.0)
        assert meets_width(KpiDefinition(kpi_key="x", min_value=90)) == pytest.approx(0.5)


class TestHigherBetter:
    def test_reference_rubric(self, pct_kpi):
        defaults = compute_rubric_defaults(pct_kpi, threshold=80, grade_value=10)

        assert _ranges(defaults) == {
            BandKey.EXCEEDS: (82.0, 100.0),
            BandKey.MEETS: (80.0, 81.99),
            BandKey.NEEDS_IMPROVEMENT: (78.0, 79.99),
            BandKey.MISSES: (0.0, 77.99),
            BandKey.NO_DATA: (None, None),
        }
        scores = {band: d.score_value for band, d in defaults.items()}
        assert scores == {
            BandKey.EXCEEDS: 10,
            BandKey.MEETS: 7.5,
            BandKey.NEEDS_IMPROVEMENT: 5,
            BandKey.MISSES: 0,
            BandKey.NO_DATA: None,
        }

    def test_open_bounds_stay_open(self):
        kpi = KpiDefinition(kpi_key="x", unit="pct")
        defaults = compute_rubric_defaults(kpi, threshold=50, grade_value=None)

        assert defaults[BandKey.EXCEEDS].min_value == pytest.approx(52.0)
        assert defaults[BandKey.EXCEEDS].max_value is None
        assert defaults[BandKey.MISSES].min_value is None
        assert defaults[BandKey.MISSES].max_value == pytest.approx(47.99)

    def test_bounds_clamped_to_declared_minimum(self, pct_kpi):
        defaults = compute_rubric_defaults(pct_kpi, threshold=1, grade_value=10)

        assert defaults[BandKey.NEEDS_IMPROVEMENT].min_value == 0
        assert defaults[BandKey.MISSES].min_value == 0
        assert defaults[BandKey.MISSES].max_value == 0
        for d in defaults.values():
            for bound in (d.min_value, d.max_value):
                assert bound is None or bound >= 0

    def test_only_minimum_declared(self):
        kpi = KpiDefinition(kpi_key="x", unit="pct", min_value=0)
        defaults = compute_rubric_defaults(kpi, threshold=1)

        assert defaults[BandKey.MISSES].max_value == 0
        assert defaults[BandKey.EXCEEDS].max_value is None

    def test_bounds_clamped_to_declared_maximum(self, pct_kpi):
        defaults = compute_rubric_defaults(pct_kpi, threshold=99.5)

        assert defaults[BandKey.MEETS].max_value == 100
        assert defaults[BandKey.EXCEEDS].min_value == 100
        assert defaults[BandKey.EXCEEDS].max_value == 100

    def test_inverted_bounds_clamp_to_declared_minimum(self):
        kpi = KpiDefinition(kpi_key="k", unit="pct", min_value=100, max_value=0)
        defaults = compute_rubric_defaults(kpi, threshold=50, grade_value=10)

        for band in (BandKey.EXCEEDS, BandKey.MEETS, BandKey.NEEDS_IMPROVEMENT, BandKey.MISSES):
            assert _ranges(defaults)[band] == (100, 100)


class TestLowerBetter:
    def test_mirrored_rubric(self):
        kpi = KpiDefinition(
            kpi_key="repeat_rate",
            unit="pct",
            min_value=0,
            max_value=20,
            direction=Direction.LOWER_BETTER,
        )
        defaults = compute_rubric_defaults(kpi, threshold=5, grade_value=8)

        assert _ranges(defaults) == {
            BandKey.EXCEEDS: (0.0, 4.5),
            BandKey.MEETS: (4.51, 5.0),
            BandKey.NEEDS_IMPROVEMENT: (5.01, 5.5),
            BandKey.MISSES: (5.51, 20.0),
            BandKey.NO_DATA: (None, None),
        }
        assert defaults[BandKey.MEETS].score_value == 6


class TestScoresAndPolicy:
    def test_scores_without_grade_value_are_null(self):
        assert set(default_scores(None).values()) == {None}

    def test_score_fractions(self):
        scores = default_scores(7)
        assert scores[BandKey.EXCEEDS] == 7
        assert scores[BandKey.MEETS] == 5.25
        assert scores[BandKey.NEEDS_IMPROVEMENT] == 3.5
        assert scores[BandKey.MISSES] == 0
        assert scores[BandKey.NO_DATA] is None

    def test_grade_value_from_string(self):
        assert default_scores("10")[BandKey.MEETS] == 7.5

    def test_custom_epsilon(self, pct_kpi):
        policy = BandWidthPolicy(eps=0.1)
        defaults = compute_rubric_defaults(pct_kpi, threshold=80, grade_value=10, policy=policy)
        assert defaults[BandKey.MEETS].max_value == pytest.approx(81.9)
        assert defaults[BandKey.EXCEEDS].min_value == pytest.approx(82.0)

    def test_rounding_can_be_disabled(self, pct_kpi):
        policy = BandWidthPolicy(precision=None)
        defaults = compute_rubric_defaults(pct_kpi, threshold=80, policy=policy)
        assert defaults[BandKey.MEETS].max_value == pytest.approx(81.99)

    def test_missing_threshold_leaves_bands_open(self, pct_kpi):
        defaults = compute_rubric_defaults(pct_kpi, threshold=None, grade_value=10)
        assert all(d.min_value is None and d.max_value is None for d in defaults.values())
        assert defaults[BandKey.EXCEEDS].score_value == 10

    def test_idempotent(self, pct_kpi):
        first = compute_rubric_defaults(pct_kpi, threshold=72.5, grade_value=3.3)
        second = compute_rubric_defaults(pct_kpi, threshold=72.5, grade_value=3.3)
        assert first == second
        assert list(first) == list(second)


class TestGenerateRubric:
    def test_rows_for_all_bands(self, snapshot):
        rows = generate_rubric(snapshot, ClassType.SMART, "ftr_rate")

        assert [r.band_key for r in rows] == list(BandKey)
        assert all(r.class_type is ClassType.SMART and r.kpi_key == "ftr_rate" for r in rows)
        assert rows[1].min_value == 80
        assert rows[0].score_value == 10

    def test_unknown_kpi(self, snapshot):
        with pytest.raises(RubricConfigError):
            generate_rubric(snapshot, ClassType.SMART, "nope")

    def test_missing_threshold(self, snapshot):
        with pytest.raises(RubricConfigError, match="threshold"):
            generate_rubric(snapshot, ClassType.TECH, "ftr_rate")

    def test_default_rows_upsert_shape(self, pct_kpi):
        defaults = compute_rubric_defaults(pct_kpi, threshold=80, grade_value=10)
        rows = default_rubric_rows(ClassType.P4P, "ftr_rate", defaults)
        keys = {(r.class_type, r.kpi_key, r.band_key) for r in rows}
        assert len(keys) == 5

    def test_replaces_existing_rubric(self, snapshot):
        rows = generate_rubric(snapshot, ClassType.SMART, "repeat_rate")
        updated = snapshot.replace_rubric(ClassType.SMART, "repeat_rate", rows)

        assert updated.rubric_for(ClassType.SMART, "repeat_rate") == rows
        assert updated.rubric_for(ClassType.SMART, "ftr_rate") == snapshot.rubric_for(
            ClassType.SMART, "ftr_rate"
        )

    def test_generation_uses_class_config(self):
        snapshot = ConfigSnapshot(
            kpi_defs=(KpiDefinition(kpi_key="k", unit="pct", min_value=0, max_value=100),),
            class_config=(
                ClassKpiConfig(ClassType.TECH, "k", enabled=True, threshold=60, grade_value=2),
            ),
        )
        rows = generate_rubric(snapshot, ClassType.TECH, "k")
        assert rows[1].min_value == 60
        assert rows[1].score_value == 1.5
