"""
Configuration module.

Typed configuration snapshots (KPI definitions, class configuration,
rubric rows) and loaders for YAML and CSV files.
"""

from .loader import ConfigLoader
from .models import (
    BAND_ORDER,
    BandKey,
    ClassKpiConfig,
    ClassType,
    ConfigSnapshot,
    Direction,
    KpiDefinition,
    RawObservation,
    RubricBand,
    band_priority,
)

__all__ = [
    "ConfigLoader",
    "BAND_ORDER",
    "BandKey",
    "ClassKpiConfig",
    "ClassType",
    "ConfigSnapshot",
    "Direction",
    "KpiDefinition",
    "RawObservation",
    "RubricBand",
    "band_priority",
]
