"""
Rubrics module.

Generates default rubric bands for KPIs and indexes rubric rows by class
and KPI.
"""

from .defaults import (
    compute_rubric_defaults,
    default_rubric_rows,
    default_scores,
    generate_rubric,
    meets_width,
)
from .index import RubricIndex, group_rubric_rows
from .models import DEFAULT_POLICY, BandDefaults, BandWidthPolicy

__all__ = [
    "compute_rubric_defaults",
    "default_rubric_rows",
    "default_scores",
    "generate_rubric",
    "meets_width",
    "RubricIndex",
    "group_rubric_rows",
    "DEFAULT_POLICY",
    "BandDefaults",
    "BandWidthPolicy",
]
