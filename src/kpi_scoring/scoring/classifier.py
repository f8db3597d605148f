"""Band classification of raw KPI values."""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..config.models import RANGED_BANDS, BandKey, RubricBand, band_priority
from ..utils.numbers import to_number


class MatchReason(Enum):
    """Why a value ended up in its band."""

    MATCHED = "matched"
    MISSING_VALUE = "missing_value"
    OUT_OF_RANGE = "out_of_range"


@dataclass(frozen=True)
class BandMatch:
    """Outcome of classifying one value against a rubric."""

    band_key: BandKey
    reason: MatchReason
    row: RubricBand | None = None

    @property
    def is_match(self) -> bool:
        return self.reason is MatchReason.MATCHED


def classify(metric_value: Any, rubric_rows: Iterable[RubricBand] | None) -> BandMatch:
    """Classify a raw value into a band, keeping the reason for the outcome.

    Rows are tried in band priority order (EXCEEDS first) so overlapping,
    hand-edited rubrics classify the same way regardless of storage order.
    NO_DATA rows never match by range.

    Args:
        metric_value: Observed value; None or non-finite means no data
        rubric_rows: Rubric rows of one KPI in one class

    Returns:
        BandMatch with NO_DATA when the value is missing (MISSING_VALUE) or
        no band covers it (OUT_OF_RANGE)
    """
    value = to_number(metric_value)
    if value is None:
        return BandMatch(BandKey.NO_DATA, MatchReason.MISSING_VALUE)

    candidates = [r for r in rubric_rows or () if r.band_key in RANGED_BANDS]
    candidates.sort(key=lambda r: band_priority(r.band_key))

    for row in candidates:
        if row.contains(value):
            return BandMatch(row.band_key, MatchReason.MATCHED, row)

    return BandMatch(BandKey.NO_DATA, MatchReason.OUT_OF_RANGE)


def pick_band(metric_value: Any, rubric_rows: Iterable[RubricBand] | None) -> BandKey:
    """Pick the rubric band for a raw value (NO_DATA when missing or uncovered)."""
    return classify(metric_value, rubric_rows).band_key
