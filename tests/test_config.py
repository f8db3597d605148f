"""
Test: configuration models and the YAML/CSV loader.
"""
from datetime import datetime

import pytest

from kpi_scoring.config.loader import ConfigLoader
from kpi_scoring.config.models import (
    BandKey,
    ClassKpiConfig,
    ClassType,
    Direction,
    KpiDefinition,
    RawObservation,
    band_priority,
)
from kpi_scoring.errors import ConfigError
from kpi_scoring.utils.numbers import to_number


class TestToNumber:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            (5, 5.0),
            (2.5, 2.5),
            ("7.25", 7.25),
            (" 3 ", 3.0),
            ("", None),
            (None, None),
            ("abc", None),
            (float("nan"), None),
            ("inf", None),
            (True, None),
        ],
    )
    def test_coercion(self, raw, expected):
        assert to_number(raw) == expected


class TestModels:
    def test_band_order(self):
        ordered = sorted(BandKey, key=band_priority, reverse=True)
        assert ordered[-1] is BandKey.EXCEEDS
        assert [b.rank for b in BandKey] == [0, 1, 2, 3, 4]

    def test_direction_missing_is_higher_better_anything_else_lower(self):
        assert Direction.parse(None) is Direction.HIGHER_BETTER
        assert Direction.parse("") is Direction.HIGHER_BETTER
        assert Direction.parse("higher_better") is Direction.HIGHER_BETTER
        assert Direction.parse("sideways") is Direction.LOWER_BETTER
        assert Direction.parse("lower_better") is Direction.LOWER_BETTER

    def test_class_type_rejects_unknown(self):
        assert ClassType.parse(" smart ") is ClassType.SMART
        with pytest.raises(ValueError):
            ClassType.parse("GOLD")

    def test_display_label(self):
        assert KpiDefinition(kpi_key="k", label="L", customer_label="C").display_label == "C"
        assert KpiDefinition(kpi_key="k", label="L").display_label == "L"
        assert KpiDefinition(kpi_key="k").display_label == "k"

    def test_kpi_definition_from_dict(self):
        kpi = KpiDefinition.from_dict(
            {"kpi_key": "tnps", "unit": "score", "min_value": "-100", "max_value": 100}
        )
        assert kpi.min_value == -100
        assert kpi.direction is Direction.HIGHER_BETTER

    def test_missing_kpi_key_rejected(self):
        with pytest.raises(ValueError):
            ClassKpiConfig.from_dict({"class_type": "SMART", "kpi_key": "  "})

    def test_observation_aliases_and_timestamps(self):
        observation = RawObservation.from_dict(
            {
                "tech_id": 42,
                "kpi_key": "ftr_rate",
                "value": "",
                "observed_at": "2024-03-01T10:00:00+02:00",
            }
        )
        assert observation.entity_key == "42"
        assert observation.value is None
        assert observation.observed_at == datetime(2024, 3, 1, 8, 0)


class TestSnapshot:
    def test_missing_config_row_is_disabled(self, snapshot):
        config = snapshot.class_config_for(ClassType.TECH, "ftr_rate")
        assert config.enabled is False
        assert config.threshold is None
        assert config.weight_percent is None

    def test_enabled_configs_sorted(self, snapshot):
        keys = [c.kpi_key for c in snapshot.enabled_configs(ClassType.SMART)]
        assert keys == ["ftr_rate", "repeat_rate"]

    def test_round_trip_dict(self, snapshot):
        assert type(snapshot).from_dict(snapshot.to_dict()) == snapshot


class TestConfigLoader:
    def test_load_snapshot_skips_bad_rows(self, snapshot):
        assert snapshot.kpi_keys == ["ftr_rate", "repeat_rate", "tnps_score"]
        assert len(snapshot.class_config) == 4
        assert len(snapshot.rubric_rows) == 10
        assert snapshot.class_config_for(ClassType.P4P, "ftr_rate").threshold == 85

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigLoader(tmp_path).load_snapshot("absent.yaml")

    def test_invalid_yaml(self, tmp_path):
        (tmp_path / "bad.yaml").write_text("kpi_defs: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigError):
            ConfigLoader(tmp_path).load_snapshot("bad.yaml")

    def test_top_level_must_be_mapping(self, tmp_path):
        (tmp_path / "list.yaml").write_text("- 1\n- 2\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            ConfigLoader(tmp_path).load_snapshot("list.yaml")

    def test_section_must_be_list(self, tmp_path):
        (tmp_path / "section.yaml").write_text("kpi_defs: nope\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            ConfigLoader(tmp_path).load_snapshot("section.yaml")

    def test_empty_file_is_empty_snapshot(self, tmp_path):
        (tmp_path / "empty.yaml").write_text("", encoding="utf-8")
        snapshot = ConfigLoader(tmp_path).load_snapshot("empty.yaml")
        assert snapshot.kpi_defs == ()

    def test_save_and_reload(self, snapshot, tmp_path):
        loader = ConfigLoader(tmp_path)
        loader.save_snapshot(snapshot, "out/config.yaml")
        assert loader.load_snapshot("out/config.yaml") == snapshot

    def test_load_yaml_observations(self, fixtures_dir):
        observations = ConfigLoader(fixtures_dir).load_observations("observations.yaml")
        assert len(observations) == 5
        assert observations[2].observed_at == datetime(2024, 1, 31)
        assert observations[4].value is None

    def test_load_csv_observations(self, fixtures_dir):
        observations = ConfigLoader(fixtures_dir).load_observations("observations.csv")
        assert [o.entity_key for o in observations] == ["tech-1", "tech-1", "tech-3"]
        assert observations[0].value == 85
        assert observations[0].fiscal_month == "2024-01"
        assert observations[1].value is None
        assert observations[2].value is None
        assert observations[2].observed_at is None

    def test_csv_needs_kpi_column(self, tmp_path):
        (tmp_path / "obs.csv").write_text("entity_key,value\nt,1\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            ConfigLoader(tmp_path).load_observations("obs.csv")

    def test_write_rubric_replaces_only_that_pair(self, fixtures_dir, tmp_path, make_band):
        path = tmp_path / "config.yaml"
        path.write_text((fixtures_dir / "config.yaml").read_text(encoding="utf-8"), encoding="utf-8")
        rows = [make_band(BandKey.MEETS, 0, 100, 2.5)]

        ConfigLoader(tmp_path).write_rubric("config.yaml", ClassType.SMART, "ftr_rate", rows)

        snapshot = ConfigLoader(tmp_path).load_snapshot("config.yaml")
        assert snapshot.rubric_for(ClassType.SMART, "ftr_rate") == rows
        assert len(snapshot.rubric_for(ClassType.SMART, "repeat_rate")) == 4
        assert len(snapshot.rubric_for(ClassType.P4P, "ftr_rate")) == 1
        assert len(snapshot.class_config) == 4

    def test_write_rubric_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigLoader(tmp_path).write_rubric("absent.yaml", ClassType.SMART, "ftr_rate", [])
