"""Grouping of flat rubric rows by class and KPI."""

from collections.abc import Iterable

from ..config.models import BAND_ORDER, ClassType, RubricBand, band_priority

RubricKey = tuple[ClassType, str]


def group_rubric_rows(rows: Iterable[RubricBand]) -> dict[RubricKey, list[RubricBand]]:
    """Group rubric rows by (class_type, kpi_key), each group in band priority order.

    The sort is stable, so duplicate rows for a band keep their storage order.
    """
    grouped: dict[RubricKey, list[RubricBand]] = {}
    for row in rows:
        grouped.setdefault((row.class_type, row.kpi_key), []).append(row)

    return {
        key: sorted(group, key=lambda r: band_priority(r.band_key))
        for key, group in grouped.items()
    }


class RubricIndex:
    """Rubric rows indexed by (class_type, kpi_key)."""

    def __init__(self, rows: Iterable[RubricBand] = ()):
        self._groups = group_rubric_rows(rows)

    def __len__(self) -> int:
        return sum(len(group) for group in self._groups.values())

    def __contains__(self, key: RubricKey) -> bool:
        return key in self._groups

    def rows_for(self, class_type: ClassType, kpi_key: str) -> list[RubricBand]:
        """Rows of one rubric in band priority order (empty when none exist)."""
        return list(self._groups.get((class_type, kpi_key), []))

    def with_shells(
        self,
        kpi_keys: Iterable[str],
        class_types: Iterable[ClassType] = tuple(ClassType),
    ) -> "RubricIndex":
        """Return an index where every (class, KPI) rubric has all five bands.

        Bands nobody has configured yet are filled with empty rows (open
        bounds, no score), so editors and exports always see a full grid.
        """
        kpi_keys = list(kpi_keys)
        handled: set[RubricKey] = set()
        rows: list[RubricBand] = []
        for class_type in class_types:
            for kpi_key in kpi_keys:
                handled.add((class_type, kpi_key))
                existing = self._groups.get((class_type, kpi_key), [])
                present = {r.band_key for r in existing}
                rows.extend(existing)
                rows.extend(
                    RubricBand(class_type=class_type, kpi_key=kpi_key, band_key=band)
                    for band in BAND_ORDER
                    if band not in present
                )

        # Rubrics outside the requested grid are carried over untouched.
        for key, group in self._groups.items():
            if key not in handled:
                rows.extend(group)
        return RubricIndex(rows)

    def rows(self) -> list[RubricBand]:
        """Flatten back into rows ordered by class, KPI and band."""
        class_rank = {ct: i for i, ct in enumerate(ClassType)}
        keys = sorted(self._groups, key=lambda k: (class_rank[k[0]], k[1]))
        return [row for key in keys for row in self._groups[key]]
