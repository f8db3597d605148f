"""Configuration loader for scoring snapshots and raw observations."""

import csv
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import yaml

from ..errors import ConfigError
from ..utils.logging import get_logger
from .models import (
    ClassKpiConfig,
    ClassType,
    ConfigSnapshot,
    KpiDefinition,
    RawObservation,
    RubricBand,
)

logger = get_logger(__name__)

T = TypeVar("T")


class ConfigLoader:
    """Loads scoring configuration and observations from files."""

    def __init__(self, config_dir: Path | None = None):
        """Initialize the config loader.

        Args:
            config_dir: Base directory for relative paths. Defaults to the
                current working directory
        """
        self.config_dir = config_dir or Path(".")

    def load_snapshot(self, config_file: str | Path) -> ConfigSnapshot:
        """Load a configuration snapshot from YAML.

        Rows with unknown class types or band keys, or without a KPI key,
        are skipped with a warning.

        Args:
            config_file: Path to the YAML file with kpi_defs, class_config
                and rubric_rows lists

        Returns:
            Parsed ConfigSnapshot

        Raises:
            FileNotFoundError: If the file doesn't exist
            ConfigError: If the file is not valid YAML or not a mapping
        """
        path = self._resolve_path(config_file)
        data = self._load_yaml(path)

        snapshot = ConfigSnapshot(
            kpi_defs=tuple(self._parse_rows(data, "kpi_defs", KpiDefinition.from_dict)),
            class_config=tuple(self._parse_rows(data, "class_config", ClassKpiConfig.from_dict)),
            rubric_rows=tuple(self._parse_rows(data, "rubric_rows", RubricBand.from_dict)),
        )
        logger.info(
            f"Loaded {len(snapshot.kpi_defs)} KPI definitions, "
            f"{len(snapshot.class_config)} class config rows and "
            f"{len(snapshot.rubric_rows)} rubric rows from {path}"
        )
        return snapshot

    def save_snapshot(self, snapshot: ConfigSnapshot, config_file: str | Path) -> Path:
        """Write a snapshot back to YAML.

        Args:
            snapshot: Snapshot to write
            config_file: Destination path

        Returns:
            The resolved path written
        """
        path = self._resolve_path(config_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(snapshot.to_dict(), f, sort_keys=False, allow_unicode=True)
        logger.info(f"Wrote configuration snapshot to {path}")
        return path

    def write_rubric(
        self,
        config_file: str | Path,
        class_type: ClassType,
        kpi_key: str,
        rows: list[RubricBand],
    ) -> Path:
        """Replace the rubric of one (class, KPI) pair inside a config file.

        Only the matching ``rubric_rows`` entries change. Other sections,
        unknown keys and rows of other pairs, including rows the loader would
        skip, are written back as read.

        Args:
            config_file: Path to the YAML configuration file
            class_type: Class whose rubric is replaced
            kpi_key: KPI whose rubric is replaced
            rows: New rubric rows for the pair

        Returns:
            The resolved path written

        Raises:
            FileNotFoundError: If the file doesn't exist
            ConfigError: If the file is not valid YAML or rubric_rows is not a list
        """
        path = self._resolve_path(config_file)
        data = self._load_yaml(path)

        existing = data.get("rubric_rows") or []
        if not isinstance(existing, list):
            raise ConfigError(f"Section 'rubric_rows' must be a list in {path}")

        kept = [r for r in existing if not _is_rubric_row_for(r, class_type, kpi_key)]
        data["rubric_rows"] = kept + [_plain_numbers(r.to_dict()) for r in rows]

        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)
        logger.info(
            f"Replaced {len(existing) - len(kept)} rubric rows with {len(rows)} "
            f"for {class_type.value}/{kpi_key} in {path}"
        )
        return path

    def load_observations(self, observations_file: str | Path) -> list[RawObservation]:
        """Load raw observations from a YAML or CSV file.

        YAML files hold an ``observations`` list (or a bare list); CSV files
        need at least entity_key, kpi_key and value columns.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ConfigError: If the file cannot be parsed
        """
        path = self._resolve_path(observations_file)
        if path.suffix.lower() == ".csv":
            records = self._load_csv(path)
        else:
            data = self._load_yaml(path, allow_list=True)
            records = data if isinstance(data, list) else data.get("observations") or []

        observations = self._parse_rows(
            {"observations": records}, "observations", RawObservation.from_dict
        )
        logger.info(f"Loaded {len(observations)} observations from {path}")
        return observations

    def _resolve_path(self, file_path: str | Path) -> Path:
        """Resolve a config file path."""
        path = Path(file_path)
        if not path.is_absolute():
            path = self.config_dir / path
        return path

    def _load_yaml(self, path: Path, allow_list: bool = False) -> Any:
        """Load and parse a YAML file."""
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            return {}
        if isinstance(data, dict) or (allow_list and isinstance(data, list)):
            return data
        raise ConfigError(f"Expected a mapping at the top of {path}")

    def _load_csv(self, path: Path) -> list[dict[str, Any]]:
        """Load rows from a CSV file with a header line."""
        if not path.exists():
            raise FileNotFoundError(f"Observations file not found: {path}")

        with open(path, newline="", encoding="utf-8") as f:
            reader = csv.DictReader(f)
            if not reader.fieldnames or "kpi_key" not in reader.fieldnames:
                raise ConfigError(f"CSV file {path} needs a header with a kpi_key column")
            return [dict(row) for row in reader]

    def _parse_rows(
        self,
        data: dict[str, Any],
        section: str,
        parse: Callable[[dict[str, Any]], T],
    ) -> list[T]:
        """Parse one list section, skipping malformed rows."""
        rows = data.get(section) or []
        if not isinstance(rows, list):
            raise ConfigError(f"Section '{section}' must be a list")

        parsed: list[T] = []
        for i, row in enumerate(rows):
            if not isinstance(row, dict):
                logger.warning(f"Skipping {section}[{i}]: expected a mapping")
                continue
            try:
                parsed.append(parse(row))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping {section}[{i}]: {e}")
        return parsed


def _is_rubric_row_for(row: Any, class_type: ClassType, kpi_key: str) -> bool:
    if not isinstance(row, dict):
        return False
    if str(row.get("kpi_key") or "").strip() != kpi_key:
        return False
    try:
        return ClassType.parse(row.get("class_type")) is class_type
    except ValueError:
        return False


def _plain_numbers(row: dict[str, Any]) -> dict[str, Any]:
    """Write whole floats as ints so generated rows read like hand-written ones."""
    return {
        key: int(value) if isinstance(value, float) and value.is_integer() else value
        for key, value in row.items()
    }
