"""Exceptions raised by the KPI scoring tooling.

The scoring functions themselves never raise on bad numeric input; these
cover configuration files and rubric generation requests.
"""


class KpiScoringError(Exception):
    """Base error for the kpi_scoring package."""

    pass


class ConfigError(KpiScoringError):
    """A configuration or observation file is malformed."""

    pass


class RubricConfigError(KpiScoringError):
    """Default rubric bands cannot be generated for a KPI."""

    pass
