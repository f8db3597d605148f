"""
KPI Scoring

Rubric default generation, band classification and weighted KPI rollups
for performance reporting.
"""

from .errors import ConfigError, KpiScoringError, RubricConfigError

__version__ = "0.1.0"

__all__ = ["KpiScoringError", "ConfigError", "RubricConfigError"]
