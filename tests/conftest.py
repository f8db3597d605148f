"""Shared fixtures for the KPI scoring tests."""

from pathlib import Path

import pytest

from kpi_scoring.config.loader import ConfigLoader
from kpi_scoring.config.models import ClassType, KpiDefinition, RubricBand

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def snapshot():
    """Configuration snapshot loaded from the fixture YAML."""
    return ConfigLoader(FIXTURES_DIR).load_snapshot("config.yaml")


@pytest.fixture
def pct_kpi():
    return KpiDefinition(kpi_key="ftr_rate", unit="pct", min_value=0, max_value=100)


@pytest.fixture
def make_band():
    """Factory for SMART rubric rows."""

    def _make(band_key, min_value=None, max_value=None, score_value=None, kpi_key="ftr_rate"):
        return RubricBand(
            class_type=ClassType.SMART,
            kpi_key=kpi_key,
            band_key=band_key,
            min_value=min_value,
            max_value=max_value,
            score_value=score_value,
        )

    return _make
