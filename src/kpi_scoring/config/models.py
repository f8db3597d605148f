"""Configuration data models.

A scoring run works from an immutable snapshot of three configuration
tables (KPI definitions, per-class KPI configuration, rubric bands) plus
the raw observations being scored.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any

from ..utils.numbers import to_number


class Direction(Enum):
    """Whether higher or lower raw values are better for a KPI."""

    HIGHER_BETTER = "HIGHER_BETTER"
    LOWER_BETTER = "LOWER_BETTER"

    @classmethod
    def parse(cls, value: Any) -> "Direction":
        """Parse a direction.

        A missing direction means HIGHER_BETTER; any other value that is not
        HIGHER_BETTER is treated as LOWER_BETTER.
        """
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().upper()
        if not text or text == cls.HIGHER_BETTER.value:
            return cls.HIGHER_BETTER
        return cls.LOWER_BETTER


class ClassType(Enum):
    """A scoring program with its own thresholds, weights and rubric."""

    P4P = "P4P"
    SMART = "SMART"
    TECH = "TECH"

    @classmethod
    def parse(cls, value: Any) -> "ClassType":
        """Parse a class type case-insensitively.

        Raises:
            ValueError: If the value is not a known class type
        """
        if isinstance(value, cls):
            return value
        return cls(str(value or "").strip().upper())


class BandKey(str, Enum):
    """Performance bands, declared in classification priority order.

    Members compare equal to the plain strings stored in rubric tables.
    """

    EXCEEDS = "EXCEEDS"
    MEETS = "MEETS"
    NEEDS_IMPROVEMENT = "NEEDS_IMPROVEMENT"
    MISSES = "MISSES"
    NO_DATA = "NO_DATA"

    @classmethod
    def parse(cls, value: Any) -> "BandKey":
        """Parse a band key case-insensitively.

        Raises:
            ValueError: If the value is not a known band
        """
        if isinstance(value, cls):
            return value
        return cls(str(value or "").strip().upper())

    @property
    def rank(self) -> int:
        """Position in the priority order (0 is the strongest band)."""
        return BAND_ORDER.index(self)


BAND_ORDER: tuple[BandKey, ...] = tuple(BandKey)

# Bands that are matched by range; NO_DATA is only ever a fallback.
RANGED_BANDS: tuple[BandKey, ...] = tuple(b for b in BAND_ORDER if b is not BandKey.NO_DATA)


def band_priority(band_key: BandKey | str) -> int:
    """Sort key ordering bands EXCEEDS, MEETS, NEEDS_IMPROVEMENT, MISSES, NO_DATA."""
    return BandKey.parse(band_key).rank


def _to_datetime(value: Any) -> datetime | None:
    """Normalize an observation timestamp to a naive UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip())
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _require_key(data: dict[str, Any], name: str = "kpi_key") -> str:
    key = str(data.get(name) or "").strip()
    if not key:
        raise ValueError(f"missing {name}")
    return key


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class KpiDefinition:
    """Definition of a single KPI and the domain of its raw values."""

    kpi_key: str
    label: str = ""
    customer_label: str | None = None
    unit: str = ""
    min_value: float | None = None
    max_value: float | None = None
    direction: Direction = Direction.HIGHER_BETTER
    is_active: bool = True

    @property
    def display_label(self) -> str:
        """Label shown to customers, falling back to the internal label and key."""
        return self.customer_label or self.label or self.kpi_key

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "KpiDefinition":
        return cls(
            kpi_key=_require_key(data),
            label=str(data.get("label") or ""),
            customer_label=_optional_str(data.get("customer_label")),
            unit=str(data.get("unit") or ""),
            min_value=to_number(data.get("min_value")),
            max_value=to_number(data.get("max_value")),
            direction=Direction.parse(data.get("direction")),
            is_active=bool(data.get("is_active", True)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "kpi_key": self.kpi_key,
            "label": self.label,
            "customer_label": self.customer_label,
            "unit": self.unit,
            "min_value": self.min_value,
            "max_value": self.max_value,
            "direction": self.direction.value,
            "is_active": self.is_active,
        }


@dataclass(frozen=True)
class ClassKpiConfig:
    """Per-class configuration of one KPI."""

    class_type: ClassType
    kpi_key: str
    enabled: bool = False
    weight_percent: float | None = None
    threshold: float | None = None
    grade_value: float | None = None

    @classmethod
    def disabled(cls, class_type: ClassType, kpi_key: str) -> "ClassKpiConfig":
        """Stand-in for a KPI that has no configuration row in a class."""
        return cls(class_type=class_type, kpi_key=kpi_key)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClassKpiConfig":
        return cls(
            class_type=ClassType.parse(data.get("class_type")),
            kpi_key=_require_key(data),
            enabled=bool(data.get("enabled") or False),
            weight_percent=to_number(data.get("weight_percent")),
            threshold=to_number(data.get("threshold")),
            grade_value=to_number(data.get("grade_value")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "class_type": self.class_type.value,
            "kpi_key": self.kpi_key,
            "enabled": self.enabled,
            "weight_percent": self.weight_percent,
            "threshold": self.threshold,
            "grade_value": self.grade_value,
        }


@dataclass(frozen=True)
class RubricBand:
    """One band row of a KPI rubric within a class.

    Bounds are inclusive; a None bound leaves that side open.
    """

    class_type: ClassType
    kpi_key: str
    band_key: BandKey
    min_value: float | None = None
    max_value: float | None = None
    score_value: float | None = None

    def contains(self, value: float) -> bool:
        """Check whether a value falls inside this band's range."""
        min_ok = self.min_value is None or value >= self.min_value
        max_ok = self.max_value is None or value <= self.max_value
        return min_ok and max_ok

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RubricBand":
        return cls(
            class_type=ClassType.parse(data.get("class_type")),
            kpi_key=_require_key(data),
            band_key=BandKey.parse(data.get("band_key")),
            min_value=to_number(data.get("min_value")),
            max_value=to_number(data.get("max_value")),
            score_value=to_number(data.get("score_value")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "class_type": self.class_type.value,
            "kpi_key": self.kpi_key,
            "band_key": self.band_key.value,
            "min_value": self.min_value,
            "max_value": self.max_value,
            "score_value": self.score_value,
        }


@dataclass(frozen=True)
class RawObservation:
    """An entity's raw value for one KPI."""

    entity_key: str
    kpi_key: str
    value: float | None = None
    entity_label: str | None = None
    observed_at: datetime | None = None
    fiscal_month: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RawObservation":
        entity_key = data.get("entity_key") or data.get("person_id") or data.get("tech_id")
        return cls(
            entity_key=str(entity_key or "").strip(),
            kpi_key=_require_key(data),
            value=to_number(data.get("value")),
            entity_label=_optional_str(data.get("entity_label") or data.get("person_label")),
            observed_at=_to_datetime(data.get("observed_at")),
            fiscal_month=_optional_str(data.get("fiscal_month")),
        )


@dataclass(frozen=True)
class ConfigSnapshot:
    """Immutable view of the scoring configuration for one run."""

    kpi_defs: tuple[KpiDefinition, ...] = ()
    class_config: tuple[ClassKpiConfig, ...] = ()
    rubric_rows: tuple[RubricBand, ...] = ()
    _defs_by_key: dict[str, KpiDefinition] = field(init=False, repr=False, compare=False)
    _config_by_key: dict[tuple[ClassType, str], ClassKpiConfig] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "kpi_defs", tuple(self.kpi_defs))
        object.__setattr__(self, "class_config", tuple(self.class_config))
        object.__setattr__(self, "rubric_rows", tuple(self.rubric_rows))
        # Later rows win, matching how the admin grid keys its state.
        object.__setattr__(self, "_defs_by_key", {d.kpi_key: d for d in self.kpi_defs})
        object.__setattr__(
            self,
            "_config_by_key",
            {(c.class_type, c.kpi_key): c for c in self.class_config},
        )

    @property
    def kpi_keys(self) -> list[str]:
        """KPI keys in definition order."""
        return [d.kpi_key for d in self.kpi_defs]

    def kpi_def(self, kpi_key: str) -> KpiDefinition | None:
        return self._defs_by_key.get(kpi_key)

    def class_config_for(self, class_type: ClassType, kpi_key: str) -> ClassKpiConfig:
        """Return the class config row, or a disabled stand-in when none exists."""
        config = self._config_by_key.get((class_type, kpi_key))
        return config or ClassKpiConfig.disabled(class_type, kpi_key)

    def configs_for(self, class_type: ClassType) -> list[ClassKpiConfig]:
        """All config rows of a class, sorted by KPI key."""
        rows = [c for (ct, _), c in self._config_by_key.items() if ct is class_type]
        return sorted(rows, key=lambda c: c.kpi_key)

    def enabled_configs(self, class_type: ClassType) -> list[ClassKpiConfig]:
        return [c for c in self.configs_for(class_type) if c.enabled]

    def rubric_for(self, class_type: ClassType, kpi_key: str) -> list[RubricBand]:
        """Rubric rows of one KPI in one class, in storage order."""
        return [
            r for r in self.rubric_rows if r.class_type is class_type and r.kpi_key == kpi_key
        ]

    def replace_rubric(
        self,
        class_type: ClassType,
        kpi_key: str,
        rows: list[RubricBand],
    ) -> "ConfigSnapshot":
        """Return a copy where the rubric of one (class, KPI) pair is replaced."""
        kept = [
            r
            for r in self.rubric_rows
            if not (r.class_type is class_type and r.kpi_key == kpi_key)
        ]
        return replace(self, rubric_rows=tuple(kept) + tuple(rows))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConfigSnapshot":
        return cls(
            kpi_defs=tuple(KpiDefinition.from_dict(d) for d in data.get("kpi_defs") or []),
            class_config=tuple(
                ClassKpiConfig.from_dict(c) for c in data.get("class_config") or []
            ),
            rubric_rows=tuple(RubricBand.from_dict(r) for r in data.get("rubric_rows") or []),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "kpi_defs": [d.to_dict() for d in self.kpi_defs],
            "class_config": [c.to_dict() for c in self.class_config],
            "rubric_rows": [r.to_dict() for r in self.rubric_rows],
        }
