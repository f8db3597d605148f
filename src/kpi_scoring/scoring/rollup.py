"""Weighted rollup of per-KPI scores into a class total."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ..config.models import ClassKpiConfig
from ..utils.numbers import to_number


@dataclass(frozen=True)
class WeightedScore:
    """A scored KPI together with its class weighting."""

    kpi_key: str
    score_value: float | None
    weight_percent: float | None
    enabled: bool | None


def _get(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def _usable_weight(weight_percent: Any) -> float | None:
    weight = to_number(weight_percent)
    if weight is None or weight <= 0:
        return None
    return weight


def weighted_points(score_value: Any, weight_percent: Any, enabled: Any = True) -> float | None:
    """Contribution of one KPI to the rollup, or None when it is skipped."""
    if not enabled:
        return None
    weight = _usable_weight(weight_percent)
    if weight is None:
        return None
    score = to_number(score_value)
    if score is None:
        return None
    return score * (weight / 100)


def rollup_weighted(scored: Iterable[WeightedScore | Mapping[str, Any]] | None) -> float:
    """Sum scores weighted by their percentage.

    Disabled KPIs, KPIs without a positive finite weight and non-finite
    scores are left out. The total is not normalized: weights that do not
    add up to 100 produce a total below or above the nominal maximum.

    Args:
        scored: Items with kpi_key, score_value, weight_percent and enabled

    Returns:
        Weighted total
    """
    total = 0.0
    for item in scored or ():
        points = weighted_points(
            _get(item, "score_value"),
            _get(item, "weight_percent"),
            _get(item, "enabled"),
        )
        if points is not None:
            total += points
    return total


def rollup_max_points(configs: Iterable[ClassKpiConfig]) -> float:
    """Best achievable total: every contributing KPI scoring its grade value."""
    return rollup_weighted(
        WeightedScore(
            kpi_key=c.kpi_key,
            score_value=c.grade_value,
            weight_percent=c.weight_percent,
            enabled=c.enabled,
        )
        for c in configs
    )


@dataclass(frozen=True)
class WeightCheck:
    """Advisory summary of a class's weight configuration."""

    total_weight: float
    balanced: bool
    unweighted_kpis: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.balanced and not self.unweighted_kpis


def check_weights(configs: Iterable[ClassKpiConfig], tolerance: float = 0.01) -> WeightCheck:
    """Inspect whether enabled weights sum to 100.

    This is a diagnostic only; rollups use configured weights as they are.

    Args:
        configs: Config rows of one class
        tolerance: Allowed absolute distance from 100

    Returns:
        WeightCheck with the enabled weight sum and KPIs enabled without a weight
    """
    total = 0.0
    unweighted: list[str] = []
    for config in configs:
        if not config.enabled:
            continue
        weight = _usable_weight(config.weight_percent)
        if weight is None:
            unweighted.append(config.kpi_key)
            continue
        total += weight

    return WeightCheck(
        total_weight=total,
        balanced=abs(total - 100.0) <= tolerance,
        unweighted_kpis=unweighted,
    )
