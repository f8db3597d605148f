"""Report scoring pipeline.

Scores every entity's raw observations against a configuration snapshot
and rolls them up per class type. Each (entity, class, KPI) triple is
scored independently from immutable inputs.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from ..config.models import BandKey, ClassKpiConfig, ClassType, ConfigSnapshot, RawObservation
from ..rubrics.index import RubricIndex
from ..utils.logging import get_logger
from .classifier import MatchReason, classify
from .converter import band_to_score
from .rollup import check_weights, rollup_max_points, rollup_weighted, weighted_points

logger = get_logger(__name__)


@dataclass(frozen=True)
class ComputedKpiResult:
    """Scored KPI for one entity in one class."""

    class_type: ClassType
    kpi_key: str
    value: float | None
    band_key: BandKey
    match_reason: MatchReason
    score_value: float

    # Matched rubric row, if any
    rubric_min: float | None = None
    rubric_max: float | None = None
    rubric_score: float | None = None

    # Configuration used
    threshold: float | None = None
    grade_value: float | None = None
    weight_percent: float | None = None
    enabled: bool = False

    weighted_points: float | None = None


@dataclass(frozen=True)
class ClassTotal:
    """Rollup of one class for one entity."""

    points: float
    max_points: float

    @property
    def percentage(self) -> float:
        return (self.points / self.max_points * 100) if self.max_points > 0 else 0.0


@dataclass
class ComputedEntityRow:
    """All scored KPIs and class totals for one entity."""

    entity_key: str
    entity_label: str
    results: list[ComputedKpiResult] = field(default_factory=list)
    totals_by_class: dict[ClassType, ClassTotal] = field(default_factory=dict)

    def results_for(self, class_type: ClassType) -> list[ComputedKpiResult]:
        return [r for r in self.results if r.class_type is class_type]


def latest_values(observations: Iterable[RawObservation]) -> dict[str, float | None]:
    """Value per KPI, keeping the most recent observation.

    Observations without a timestamp rank below timestamped ones; among
    equals the later one in input order wins.
    """
    chosen: dict[str, RawObservation] = {}
    for obs in observations:
        current = chosen.get(obs.kpi_key)
        if current is None or _is_newer_or_same(obs, current):
            chosen[obs.kpi_key] = obs
    return {kpi_key: obs.value for kpi_key, obs in chosen.items()}


def _is_newer_or_same(candidate: RawObservation, current: RawObservation) -> bool:
    if candidate.observed_at is None:
        return current.observed_at is None
    if current.observed_at is None:
        return True
    return candidate.observed_at >= current.observed_at


class ReportPipeline:
    """Scores raw observations against a configuration snapshot."""

    def __init__(self, snapshot: ConfigSnapshot):
        """Initialize the pipeline.

        Args:
            snapshot: Configuration used for every entity in the run
        """
        self.snapshot = snapshot
        self.rubrics = RubricIndex(snapshot.rubric_rows)
        self._warned_classes: set[ClassType] = set()

    def score_kpi_for(
        self,
        config: ClassKpiConfig,
        value: float | None,
    ) -> ComputedKpiResult:
        """Score one KPI value under one class configuration."""
        rows = self.rubrics.rows_for(config.class_type, config.kpi_key)
        match = classify(value, rows)
        score = band_to_score(match.band_key, rows)

        return ComputedKpiResult(
            class_type=config.class_type,
            kpi_key=config.kpi_key,
            value=value,
            band_key=match.band_key,
            match_reason=match.reason,
            score_value=score,
            rubric_min=match.row.min_value if match.row else None,
            rubric_max=match.row.max_value if match.row else None,
            rubric_score=match.row.score_value if match.row else None,
            threshold=config.threshold,
            grade_value=config.grade_value,
            weight_percent=config.weight_percent,
            enabled=config.enabled,
            weighted_points=weighted_points(score, config.weight_percent, config.enabled),
        )

    def score_entity(
        self,
        entity_key: str,
        observations: Iterable[RawObservation],
        class_types: Iterable[ClassType] | None = None,
        entity_label: str | None = None,
    ) -> ComputedEntityRow:
        """Score one entity in each requested class.

        Args:
            entity_key: Person or tech identifier
            observations: The entity's raw observations
            class_types: Classes to score (all when None)
            entity_label: Display label (defaults to the key)

        Returns:
            ComputedEntityRow with one result per enabled KPI per class
        """
        values = latest_values(observations)
        row = ComputedEntityRow(entity_key=entity_key, entity_label=entity_label or entity_key)

        for class_type in self._resolve_classes(class_types):
            configs = self.snapshot.enabled_configs(class_type)
            self._warn_on_weights(class_type, configs)

            results = [self.score_kpi_for(c, values.get(c.kpi_key)) for c in configs]
            row.results.extend(results)
            row.totals_by_class[class_type] = ClassTotal(
                points=rollup_weighted(results),
                max_points=rollup_max_points(configs),
            )

            unmatched = [r.kpi_key for r in results if r.match_reason is MatchReason.OUT_OF_RANGE]
            if unmatched:
                logger.debug(
                    f"{entity_key}/{class_type.value}: values outside every band for "
                    f"{', '.join(unmatched)}"
                )

        return row

    def run(
        self,
        observations: Iterable[RawObservation],
        class_types: Iterable[ClassType] | None = None,
        fiscal_month: str | None = None,
    ) -> list[ComputedEntityRow]:
        """Score every entity found in the observations.

        Args:
            observations: Raw observations for any number of entities
            class_types: Classes to score (all when None)
            fiscal_month: Only score observations tagged with this month

        Returns:
            One ComputedEntityRow per entity, in first-seen order
        """
        classes = self._resolve_classes(class_types)
        by_entity: dict[str, list[RawObservation]] = {}
        labels: dict[str, str] = {}
        for obs in observations:
            if fiscal_month is not None and obs.fiscal_month != fiscal_month:
                continue
            if not obs.entity_key:
                logger.warning(f"Skipping observation without entity key for {obs.kpi_key}")
                continue
            by_entity.setdefault(obs.entity_key, []).append(obs)
            if obs.entity_label:
                labels.setdefault(obs.entity_key, obs.entity_label)

        logger.info(
            f"Scoring {len(by_entity)} entities across "
            f"{', '.join(c.value for c in classes) or 'no classes'}"
        )
        return [
            self.score_entity(key, obs_list, classes, labels.get(key))
            for key, obs_list in by_entity.items()
        ]

    def _resolve_classes(self, class_types: Iterable[ClassType] | None) -> list[ClassType]:
        if class_types is None:
            return list(ClassType)
        return list(dict.fromkeys(class_types))

    def _warn_on_weights(self, class_type: ClassType, configs: list[ClassKpiConfig]) -> None:
        if class_type in self._warned_classes or not configs:
            return
        self._warned_classes.add(class_type)

        check = check_weights(configs)
        if not check.balanced:
            logger.warning(
                f"{class_type.value}: enabled weights sum to {check.total_weight:g}, not 100; "
                "totals use the configured weights as-is"
            )
        if check.unweighted_kpis:
            logger.warning(
                f"{class_type.value}: enabled KPIs without weight: "
                f"{', '.join(check.unweighted_kpis)}"
            )
