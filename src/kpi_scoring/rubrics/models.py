"""Rubric generation data models."""

from dataclasses import dataclass, field

from ..config.models import BandKey


@dataclass(frozen=True)
class BandWidthPolicy:
    """Tunable constants used when generating default rubric bands.

    Attributes:
        eps: Gap kept between adjacent bands so they never share a boundary
        span_fraction: Share of the KPI's declared span used as MEETS width
        pct_bounds: (min, max) MEETS width for non-"score" units
        score_bounds: (min, max) MEETS width for the "score" unit
        default_span: (min, max) domain assumed when a KPI declares no bounds
        score_fractions: Share of the grade value awarded per band
        score_precision: Decimal places kept for derived band scores
        precision: Decimal places kept for band bounds (None keeps raw floats)
    """

    eps: float = 0.01
    span_fraction: float = 0.02
    pct_bounds: tuple[float, float] = (0.5, 5.0)
    score_bounds: tuple[float, float] = (2.0, 10.0)
    default_span: tuple[float, float] = (0.0, 100.0)
    score_fractions: dict[BandKey, float] = field(
        default_factory=lambda: {
            BandKey.EXCEEDS: 1.0,
            BandKey.MEETS: 0.75,
            BandKey.NEEDS_IMPROVEMENT: 0.5,
            BandKey.MISSES: 0.0,
        }
    )
    score_precision: int = 4
    precision: int | None = 6

    def width_bounds(self, unit: str | None) -> tuple[float, float]:
        """MEETS width limits for a KPI unit."""
        if str(unit or "").strip().lower() == "score":
            return self.score_bounds
        return self.pct_bounds


DEFAULT_POLICY = BandWidthPolicy()


@dataclass(frozen=True)
class BandDefaults:
    """Generated range and points for one band."""

    min_value: float | None
    max_value: float | None
    score_value: float | None
