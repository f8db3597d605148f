"""Conversion of bands into points."""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from ..config.models import BandKey, RubricBand
from ..utils.numbers import to_number
from .classifier import classify


@dataclass(frozen=True)
class KpiScore:
    """Band and points for one KPI value."""

    band_key: BandKey
    score_value: float


def band_to_score(band_key: BandKey | str, rubric_rows: Iterable[RubricBand] | None) -> float:
    """Points for a band: the first matching row's score, or 0.

    NO_DATA always scores 0 so it still adds a defined value to a rollup.
    Band keys may be given as stored strings; unknown keys score 0.
    """
    try:
        band_key = BandKey.parse(band_key)
    except ValueError:
        return 0.0
    if band_key is BandKey.NO_DATA:
        return 0.0

    for row in rubric_rows or ():
        if row.band_key == band_key:
            score = to_number(row.score_value)
            return score if score is not None else 0.0
    return 0.0


def score_kpi(metric_value: Any, rubric_rows_for_kpi: Iterable[RubricBand] | None) -> KpiScore:
    """Classify a value and convert its band to points.

    Args:
        metric_value: Observed value for the KPI
        rubric_rows_for_kpi: Rubric rows already filtered to one class and KPI

    Returns:
        KpiScore with the band and its points
    """
    rows = list(rubric_rows_for_kpi or ())
    band_key = classify(metric_value, rows).band_key
    return KpiScore(band_key=band_key, score_value=band_to_score(band_key, rows))
