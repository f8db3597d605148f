"""
Scoring module.

Classifies raw KPI values into rubric bands, converts bands to points and
rolls points up into weighted class totals.
"""

from .classifier import BandMatch, MatchReason, classify, pick_band
from .converter import KpiScore, band_to_score, score_kpi
from .report import ClassTotal, ComputedEntityRow, ComputedKpiResult, ReportPipeline
from .rollup import (
    WeightCheck,
    WeightedScore,
    check_weights,
    rollup_max_points,
    rollup_weighted,
    weighted_points,
)

__all__ = [
    "BandMatch",
    "MatchReason",
    "classify",
    "pick_band",
    "KpiScore",
    "band_to_score",
    "score_kpi",
    "ClassTotal",
    "ComputedEntityRow",
    "ComputedKpiResult",
    "ReportPipeline",
    "WeightCheck",
    "WeightedScore",
    "check_weights",
    "rollup_max_points",
    "rollup_weighted",
    "weighted_points",
]
