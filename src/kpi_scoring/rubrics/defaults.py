"""Default rubric band generation.

Given a KPI's declared domain and direction, a class threshold and a grade
value, build the five rubric bands an administrator would otherwise have to
type in by hand. MEETS sits on the good side of the threshold and is about
2% of the KPI's span wide; NEEDS_IMPROVEMENT mirrors it on the bad side;
EXCEEDS and MISSES run out to the domain bounds.
"""

from typing import Any

from ..config.models import (
    BAND_ORDER,
    BandKey,
    ClassType,
    ConfigSnapshot,
    Direction,
    KpiDefinition,
    RubricBand,
)
from ..errors import RubricConfigError
from ..utils.logging import get_logger
from ..utils.numbers import clamp, to_number
from .models import DEFAULT_POLICY, BandDefaults, BandWidthPolicy

logger = get_logger(__name__)

RubricDefaults = dict[BandKey, BandDefaults]


def meets_width(kpi_def: KpiDefinition, policy: BandWidthPolicy = DEFAULT_POLICY) -> float:
    """Width of the MEETS band for a KPI.

    The declared span defaults to 0..100 on whichever side is undeclared.
    """
    lo_default, hi_default = policy.default_span
    lo = kpi_def.min_value if kpi_def.min_value is not None else lo_default
    hi = kpi_def.max_value if kpi_def.max_value is not None else hi_default

    width_min, width_max = policy.width_bounds(kpi_def.unit)
    return clamp(abs(hi - lo) * policy.span_fraction, width_min, width_max)


def default_scores(
    grade_value: Any,
    policy: BandWidthPolicy = DEFAULT_POLICY,
) -> dict[BandKey, float | None]:
    """Band scores derived from the grade value (all None without one)."""
    g = to_number(grade_value)
    scores: dict[BandKey, float | None] = {band: None for band in BAND_ORDER}
    if g is None:
        return scores

    for band, fraction in policy.score_fractions.items():
        if fraction == 1.0:
            scores[band] = g
        elif fraction == 0.0:
            scores[band] = 0.0
        else:
            scores[band] = round(g * fraction, policy.score_precision)
    scores[BandKey.NO_DATA] = None
    return scores


def _band_ranges(
    direction: Direction,
    threshold: float,
    width: float,
    min_bound: float | None,
    max_bound: float | None,
    eps: float,
) -> dict[BandKey, tuple[float | None, float | None]]:
    if direction is Direction.LOWER_BETTER:
        meets = (threshold - width + eps, threshold)
        needs = (threshold + eps, threshold + width)
        exceeds = (min_bound, meets[0] - eps)
        misses = (needs[1] + eps, max_bound)
    else:
        meets = (threshold, threshold + width - eps)
        needs = (threshold - width, threshold - eps)
        exceeds = (meets[1] + eps, max_bound)
        misses = (min_bound, needs[0] - eps)

    return {
        BandKey.EXCEEDS: exceeds,
        BandKey.MEETS: meets,
        BandKey.NEEDS_IMPROVEMENT: needs,
        BandKey.MISSES: misses,
    }


def _clamp_to_bounds(
    value: float | None,
    min_bound: float | None,
    max_bound: float | None,
    precision: int | None,
) -> float | None:
    if value is None:
        return None
    if min_bound is not None and max_bound is not None:
        value = clamp(value, min_bound, max_bound)
    elif min_bound is not None:
        value = max(value, min_bound)
    elif max_bound is not None:
        value = min(value, max_bound)
    if precision is not None:
        value = round(value, precision)
    return value


def compute_rubric_defaults(
    kpi_def: KpiDefinition,
    threshold: Any,
    grade_value: Any = None,
    policy: BandWidthPolicy = DEFAULT_POLICY,
) -> RubricDefaults:
    """Compute default ranges and scores for all five bands of a KPI.

    Args:
        kpi_def: KPI definition supplying bounds, unit and direction
        threshold: MEETS/NEEDS_IMPROVEMENT boundary in the KPI's native unit
        grade_value: Points for EXCEEDS; other scores are fractions of it
        policy: Width, gap and rounding constants

    Returns:
        Mapping of every BandKey to its generated range and score. NO_DATA
        always has open bounds. Without a usable threshold all bounds are None.
    """
    min_bound = kpi_def.min_value
    max_bound = kpi_def.max_value
    scores = default_scores(grade_value, policy)

    t = to_number(threshold)
    if t is None:
        logger.debug(f"No usable threshold for {kpi_def.kpi_key}; bands left open")
        return {band: BandDefaults(None, None, scores[band]) for band in BAND_ORDER}

    ranges = _band_ranges(
        direction=kpi_def.direction,
        threshold=t,
        width=meets_width(kpi_def, policy),
        min_bound=min_bound,
        max_bound=max_bound,
        eps=policy.eps,
    )

    result: RubricDefaults = {}
    for band in BAND_ORDER:
        if band is BandKey.NO_DATA:
            result[band] = BandDefaults(None, None, scores[band])
            continue
        lo, hi = ranges[band]
        result[band] = BandDefaults(
            min_value=_clamp_to_bounds(lo, min_bound, max_bound, policy.precision),
            max_value=_clamp_to_bounds(hi, min_bound, max_bound, policy.precision),
            score_value=scores[band],
        )
    return result


def default_rubric_rows(
    class_type: ClassType,
    kpi_key: str,
    defaults: RubricDefaults,
) -> list[RubricBand]:
    """Flatten generated defaults into rubric rows ready to upsert."""
    return [
        RubricBand(
            class_type=class_type,
            kpi_key=kpi_key,
            band_key=band,
            min_value=defaults[band].min_value,
            max_value=defaults[band].max_value,
            score_value=defaults[band].score_value,
        )
        for band in BAND_ORDER
    ]


def generate_rubric(
    snapshot: ConfigSnapshot,
    class_type: ClassType,
    kpi_key: str,
    policy: BandWidthPolicy = DEFAULT_POLICY,
) -> list[RubricBand]:
    """Generate the default rubric rows for one KPI in one class.

    Args:
        snapshot: Configuration holding the KPI definition and class config
        class_type: Class whose rubric is generated
        kpi_key: KPI whose rubric is generated

    Returns:
        Five rubric rows replacing any existing rows for (class_type, kpi_key)

    Raises:
        RubricConfigError: If the KPI is unknown or the class has no threshold
    """
    kpi_def = snapshot.kpi_def(kpi_key)
    if kpi_def is None:
        raise RubricConfigError(f"Unknown KPI: {kpi_key}")

    config = snapshot.class_config_for(class_type, kpi_key)
    if config.threshold is None:
        raise RubricConfigError(
            f"Missing threshold for {class_type.value}/{kpi_key}; cannot load defaults"
        )

    defaults = compute_rubric_defaults(kpi_def, config.threshold, config.grade_value, policy)
    logger.info(
        f"Generated default rubric for {class_type.value}/{kpi_key} "
        f"(threshold={config.threshold}, grade_value={config.grade_value})"
    )
    return default_rubric_rows(class_type, kpi_key, defaults)
