"""Build a SQLite data pack from a YAML (or plain mapping) description.

Source layout:

    metadata:
      data_version: "2024.1"
    aircraft:
      B1900D:
        limits: {max_takeoff_weight_kg: 7765, ...}
        v_speeds:
          - {flap: 0, weight_kg: 6000, v1_kt: 95, vr_kt: 100, v2_kt: 105, vref_kt: 110}
        takeoff:
          - flap: 0
            bleeds_on: true
            anti_ice_on: false
            rows:
              - {weight_kg: 6000, pa_m: 0, oat_c: 0, todr_m: 900, asdr_m: 1000, bfl_m: 950}
        landing:
          - flap: 35
            anti_ice_on: false
            rows:
              - {weight_kg: 6000, pa_m: 0, oat_c: 0, ldr_m: 800}
        corrections:
          wind_takeoff: [[-10, 0.2], [0, 0.0], [20, -0.1]]
    company_limits:
      min_rwy_margin_m: {kind: threshold, value: 100}

Missing metrics and speeds are stored as NULL.
"""

import os
import sqlite3
from collections.abc import Mapping
from contextlib import closing
from pathlib import Path
from typing import Any

import yaml

from perfcalc.core.errors import DataPackError
from perfcalc.core.logging_system import get_logger
from perfcalc.datapack.schema import (
    CREATE_STATEMENTS,
    GRID_COLUMNS,
    LANDING_METRICS,
    SCHEMA_VERSION,
    TAKEOFF_METRICS,
    V_SPEED_FIELDS,
)
from perfcalc.performance.company_limits import MappingPolicySource

logger = get_logger(__name__)


def build_data_pack(source: Mapping[str, Any], path: str | Path, overwrite: bool = False) -> Path:
    """Write a data pack file.

    The pack is written to a temporary file next to the target and moved
    into place only once complete.

    Args:
        source: Pack description (see module docstring).
        path: Target file.
        overwrite: Replace an existing file.

    Returns:
        The written path.

    Raises:
        DataPackError: If the target exists (without overwrite), the
            description is malformed, or SQLite fails.
    """
    path = Path(path)
    if path.exists() and not overwrite:
        raise DataPackError(f"Data pack already exists: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    if tmp_path.exists():
        tmp_path.unlink()

    try:
        with closing(sqlite3.connect(tmp_path)) as conn:
            with conn:
                for statement in CREATE_STATEMENTS:
                    conn.execute(statement)
                counts = _insert_all(conn, source)
        os.replace(tmp_path, path)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        tmp_path.unlink(missing_ok=True)
        raise DataPackError(f"Malformed data pack description: {e!r}") from e
    except sqlite3.Error as e:
        tmp_path.unlink(missing_ok=True)
        raise DataPackError(f"Failed to write data pack {path}: {e}") from e

    logger.info(
        "Built data pack %s: %d takeoff rows, %d landing rows, %d correction points",
        path,
        counts["takeoff"],
        counts["landing"],
        counts["corrections"],
    )
    return path


def build_data_pack_from_yaml(
    yaml_path: str | Path, path: str | Path, overwrite: bool = False
) -> Path:
    """Build a data pack from a YAML description file.

    Raises:
        DataPackError: If the YAML cannot be read or the pack cannot be built.
    """
    yaml_path = Path(yaml_path)
    try:
        with yaml_path.open("r", encoding="utf-8") as f:
            source = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise DataPackError(f"Failed to load data pack source {yaml_path}: {e}") from e

    if not isinstance(source, dict):
        raise DataPackError(f"Data pack source root must be a mapping: {yaml_path}")
    return build_data_pack(source, path, overwrite=overwrite)


def _insert_all(conn: sqlite3.Connection, source: Mapping[str, Any]) -> dict[str, int]:
    counts = {"takeoff": 0, "landing": 0, "corrections": 0}

    metadata = {"schema_version": str(SCHEMA_VERSION)}
    metadata.update({str(k): str(v) for k, v in (source.get("metadata") or {}).items()})
    _insert(conn, "metadata", ("key", "value"), metadata.items())

    for aircraft, data in (source.get("aircraft") or {}).items():
        aircraft = str(aircraft)
        _insert(
            conn,
            "limits",
            ("aircraft", "key", "value"),
            [(aircraft, key, float(value)) for key, value in (data.get("limits") or {}).items()],
        )
        _insert(
            conn,
            "v_speeds",
            ("aircraft", "weight_kg", "flap", *V_SPEED_FIELDS),
            [
                (
                    aircraft,
                    float(row["weight_kg"]),
                    int(row["flap"]),
                    *_optionals(row, V_SPEED_FIELDS),
                )
                for row in data.get("v_speeds") or []
            ],
        )

        for table in data.get("takeoff") or []:
            config = (
                aircraft,
                int(table["flap"]),
                int(bool(table.get("bleeds_on", True))),
                int(bool(table.get("anti_ice_on", False))),
            )
            rows = [
                (*config, *_coordinates(row), *_optionals(row, TAKEOFF_METRICS))
                for row in table["rows"]
            ]
            _insert(
                conn,
                "takeoff_table",
                ("aircraft", "flap", "bleeds_on", "anti_ice_on", *GRID_COLUMNS, *TAKEOFF_METRICS),
                rows,
            )
            counts["takeoff"] += len(rows)

        for table in data.get("landing") or []:
            config = (aircraft, int(table["flap"]), int(bool(table.get("anti_ice_on", False))))
            rows = [
                (*config, *_coordinates(row), *_optionals(row, LANDING_METRICS))
                for row in table["rows"]
            ]
            _insert(
                conn,
                "landing_table",
                ("aircraft", "flap", "anti_ice_on", *GRID_COLUMNS, *LANDING_METRICS),
                rows,
            )
            counts["landing"] += len(rows)

        for correction_type, points in (data.get("corrections") or {}).items():
            rows = [
                (aircraft, str(correction_type), float(x), float(effect)) for x, effect in points
            ]
            _insert(
                conn,
                "corrections",
                ("aircraft", "correction_type", "breakpoint_value", "effect"),
                rows,
            )
            counts["corrections"] += len(rows)

    policy = MappingPolicySource.from_config(source.get("company_limits") or {})
    _insert(
        conn,
        "company_limits",
        ("key", "kind", "value"),
        [(key, policy.get(key).kind.value, policy.get(key).value) for key in policy.keys()],
    )
    return counts


def _insert(conn: sqlite3.Connection, table: str, columns: tuple[str, ...], rows) -> None:
    placeholders = ", ".join("?" for _ in columns)
    conn.executemany(
        f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})",
        rows,
    )


def _coordinates(row: Mapping[str, Any]) -> tuple[float, float, float]:
    return float(row["weight_kg"]), float(row["pa_m"]), float(row["oat_c"])


def _optionals(row: Mapping[str, Any], keys: tuple[str, ...]) -> tuple[float | None, ...]:
    return tuple(None if row.get(key) is None else float(row[key]) for key in keys)
