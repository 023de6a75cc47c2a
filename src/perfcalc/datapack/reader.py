"""Read-only access to a certified performance data pack.

A data pack is a SQLite file. DataPackReader.open() reads every table once
into immutable in-memory structures and closes the connection, so a reader
is a snapshot: it never touches the file again and can be shared freely
between threads.

Typical usage example:
    from perfcalc.datapack.reader import DataPackReader

    pack = DataPackReader.open("data/packs/b1900d.sqlite")
    metrics = pack.takeoff_metrics("B1900D", 6500.0, 500.0, 10.0, flap=0)
    print(metrics["todr_m"])
"""

import sqlite3
from collections import defaultdict
from collections.abc import Collection, Mapping
from contextlib import closing
from pathlib import Path
from types import MappingProxyType

from perfcalc.core.errors import DataPackError, DataUnavailable, OutOfCertifiedEnvelope
from perfcalc.core.logging_system import get_logger
from perfcalc.datapack.schema import (
    LANDING_METRICS,
    REQUIRED_TABLES,
    TAKEOFF_METRICS,
    V_SPEED_FIELDS,
)
from perfcalc.performance.company_limits import MappingPolicySource, PolicyValue, PolicyValueKind
from perfcalc.performance.corrections import CorrectionSet, CorrectionTable
from perfcalc.performance.grid import AxisTolerance, GridSample, PerformanceGrid, WeightSchedule
from perfcalc.performance.interpolation import GridInterpolator
from perfcalc.performance.models import AircraftLimits, VSpeeds

logger = get_logger(__name__)

UNKNOWN_VERSION = "UNKNOWN"

TakeoffKey = tuple[str, int, bool, bool]
LandingKey = tuple[str, int, bool]


def takeoff_context(aircraft: str, flap: int, bleeds_on: bool, anti_ice_on: bool) -> str:
    return (
        f"takeoff[{aircraft}, flap={flap}, bleeds={'on' if bleeds_on else 'off'}, "
        f"anti_ice={'on' if anti_ice_on else 'off'}]"
    )


def landing_context(aircraft: str, flap: int, anti_ice_on: bool) -> str:
    return f"landing[{aircraft}, flap={flap}, anti_ice={'on' if anti_ice_on else 'off'}]"


class DataPackReader:
    """Immutable snapshot of one data pack version.

    Args:
        metadata: metadata key/value pairs
        limits: aircraft -> limit key -> value
        v_speeds: (aircraft, flap) -> speed schedule
        takeoff: (aircraft, flap, bleeds_on, anti_ice_on) -> grid
        landing: (aircraft, flap, anti_ice_on) -> grid
        corrections: aircraft -> correction tables
        policy: company policy values from the pack
        source: Path the pack was read from, if any
        tolerance: Exact-hit tolerances for lookups
    """

    def __init__(
        self,
        metadata: Mapping[str, str],
        limits: Mapping[str, Mapping[str, float]],
        v_speeds: Mapping[tuple[str, int], WeightSchedule],
        takeoff: Mapping[TakeoffKey, PerformanceGrid],
        landing: Mapping[LandingKey, PerformanceGrid],
        corrections: Mapping[str, CorrectionSet],
        policy: MappingPolicySource | None = None,
        source: Path | None = None,
        tolerance: AxisTolerance | None = None,
    ) -> None:
        self._metadata = MappingProxyType(dict(metadata))
        self._limits = MappingProxyType({a: MappingProxyType(dict(v)) for a, v in limits.items()})
        self._v_speeds = MappingProxyType(dict(v_speeds))
        self._takeoff = MappingProxyType(dict(takeoff))
        self._landing = MappingProxyType(dict(landing))
        self._corrections = MappingProxyType(dict(corrections))
        self._policy = policy or MappingPolicySource()
        self.source = source
        self._interpolator = GridInterpolator(tolerance)

    @classmethod
    def open(cls, path: str | Path, tolerance: AxisTolerance | None = None) -> "DataPackReader":
        """Load a data pack file into memory.

        Args:
            path: SQLite data pack file.
            tolerance: Exact-hit tolerances; defaults when None.

        Returns:
            A reader over the loaded snapshot.

        Raises:
            DataPackError: If the file is missing, unreadable, or lacks a required table.
            DataUnavailable: If a correction table is malformed.
        """
        path = Path(path)
        if not path.is_file():
            raise DataPackError(f"Data pack not found: {path}")

        try:
            with closing(sqlite3.connect(f"{path.resolve().as_uri()}?mode=ro", uri=True)) as conn:
                tables = {
                    row[0]
                    for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
                }
                missing = [t for t in REQUIRED_TABLES if t not in tables]
                if missing:
                    raise DataPackError(f"Data pack {path} is missing tables: {', '.join(missing)}")

                reader = cls(
                    metadata=dict(conn.execute("SELECT key, value FROM metadata")),
                    limits=_read_limits(conn),
                    v_speeds=_read_v_speeds(conn),
                    takeoff=_read_takeoff(conn),
                    landing=_read_landing(conn),
                    corrections=_read_corrections(conn),
                    policy=_read_policy(conn) if "company_limits" in tables else None,
                    source=path,
                    tolerance=tolerance,
                )
        except sqlite3.Error as e:
            raise DataPackError(f"Failed to read data pack {path}: {e}") from e

        logger.info(
            "Loaded data pack %s (version %s): %d takeoff and %d landing tables",
            path,
            reader.version(),
            len(reader._takeoff),
            len(reader._landing),
        )
        return reader

    def snapshot(self) -> "DataPackReader":
        """A reader is its own snapshot."""
        return self

    def version(self) -> str:
        return self._metadata.get("data_version", UNKNOWN_VERSION)

    def metadata(self) -> Mapping[str, str]:
        return self._metadata

    def aircraft(self) -> tuple[str, ...]:
        """Aircraft with any certified data, sorted."""
        names = set(self._limits)
        names.update(key[0] for key in self._takeoff)
        names.update(key[0] for key in self._landing)
        return tuple(sorted(names))

    def limits(self, aircraft: str) -> AircraftLimits:
        """Static envelope limits.

        Raises:
            DataUnavailable: If the aircraft has no limits or a key is missing.
        """
        values = self._limits.get(aircraft)
        if values is None:
            raise DataUnavailable(f"limits[{aircraft}]")
        return AircraftLimits.from_mapping(aircraft, values)

    def v_speeds(
        self,
        aircraft: str,
        weight_kg: float,
        flap: int,
        required: Collection[str] = (),
    ) -> VSpeeds:
        """Reference speeds interpolated on weight.

        Args:
            aircraft: Aircraft identifier.
            weight_kg: Weight (kg)
            flap: Flap setting
            required: Speed fields (e.g. "v1_kt") that must not be NULL.

        Raises:
            OutOfCertifiedEnvelope: If the flap setting has no schedule or
                the weight is outside it.
            DataUnavailable: If a required speed is NULL.
        """
        schedule = self._v_speeds.get((aircraft, flap))
        if schedule is None:
            raise OutOfCertifiedEnvelope("flap", flap, None, f"v_speeds[{aircraft}]")
        values = self._interpolator.lookup_schedule(schedule, weight_kg, V_SPEED_FIELDS, required)
        return VSpeeds(**values)

    def takeoff_grid(
        self, aircraft: str, flap: int, bleeds_on: bool = True, anti_ice_on: bool = False
    ) -> PerformanceGrid:
        """Certified takeoff table for one configuration.

        Raises:
            OutOfCertifiedEnvelope: If the configuration is not certified.
        """
        grid = self._takeoff.get((aircraft, flap, bool(bleeds_on), bool(anti_ice_on)))
        if grid is None:
            raise OutOfCertifiedEnvelope(
                "flap", flap, None, takeoff_context(aircraft, flap, bleeds_on, anti_ice_on)
            )
        return grid

    def landing_grid(self, aircraft: str, flap: int, anti_ice_on: bool = False) -> PerformanceGrid:
        """Certified landing table for one configuration.

        Raises:
            OutOfCertifiedEnvelope: If the configuration is not certified.
        """
        grid = self._landing.get((aircraft, flap, bool(anti_ice_on)))
        if grid is None:
            raise OutOfCertifiedEnvelope(
                "flap", flap, None, landing_context(aircraft, flap, anti_ice_on)
            )
        return grid

    def takeoff_metrics(
        self,
        aircraft: str,
        weight_kg: float,
        pressure_altitude_m: float,
        temperature_c: float,
        flap: int,
        bleeds_on: bool = True,
        anti_ice_on: bool = False,
    ) -> dict[str, float]:
        """Uncorrected TODR, ASDR, BFL (m) and OEI net climb gradient (%).

        Raises:
            OutOfCertifiedEnvelope: If the configuration or any axis is out of range.
            DataUnavailable: If a needed corner is missing or NULL.
        """
        grid = self.takeoff_grid(aircraft, flap, bleeds_on, anti_ice_on)
        return self._interpolator.lookup(
            grid, weight_kg, pressure_altitude_m, temperature_c, TAKEOFF_METRICS
        )

    def landing_metrics(
        self,
        aircraft: str,
        weight_kg: float,
        pressure_altitude_m: float,
        temperature_c: float,
        flap: int,
        anti_ice_on: bool = False,
    ) -> dict[str, float]:
        """Uncorrected landing distance required (m).

        Raises:
            OutOfCertifiedEnvelope: If the configuration or any axis is out of range.
            DataUnavailable: If a needed corner is missing or NULL.
        """
        grid = self.landing_grid(aircraft, flap, anti_ice_on)
        return self._interpolator.lookup(
            grid, weight_kg, pressure_altitude_m, temperature_c, LANDING_METRICS
        )

    def corrections(self, aircraft: str) -> CorrectionSet | None:
        """Correction tables, or None when the pack has none for the aircraft."""
        return self._corrections.get(aircraft)

    def company_policy(self) -> MappingPolicySource:
        """Company policy from the pack; empty when the pack carries none."""
        return self._policy


def _read_limits(conn: sqlite3.Connection) -> dict[str, dict[str, float]]:
    limits: dict[str, dict[str, float]] = defaultdict(dict)
    for aircraft, key, value in conn.execute("SELECT aircraft, key, value FROM limits"):
        limits[aircraft][key] = float(value)
    return dict(limits)


def _read_v_speeds(conn: sqlite3.Connection) -> dict[tuple[str, int], WeightSchedule]:
    rows: dict[tuple[str, int], dict[float, dict[str, float | None]]] = defaultdict(dict)
    cursor = conn.execute(
        "SELECT aircraft, flap, weight_kg, v1_kt, vr_kt, v2_kt, vref_kt FROM v_speeds "
        "ORDER BY aircraft, flap, weight_kg"
    )
    for aircraft, flap, weight, *speeds in cursor:
        rows[(aircraft, int(flap))][float(weight)] = dict(zip(V_SPEED_FIELDS, speeds))
    return {
        key: WeightSchedule(values, context=f"v_speeds[{key[0]}, flap={key[1]}]")
        for key, values in rows.items()
    }


def _read_takeoff(conn: sqlite3.Connection) -> dict[TakeoffKey, PerformanceGrid]:
    samples: dict[TakeoffKey, list[GridSample]] = defaultdict(list)
    cursor = conn.execute(
        "SELECT aircraft, flap, bleeds_on, anti_ice_on, weight_kg, pa_m, oat_c, "
        "todr_m, asdr_m, bfl_m, oei_net_climb_pct FROM takeoff_table"
    )
    for aircraft, flap, bleeds, anti_ice, weight, pa, oat, *metrics in cursor:
        key = (aircraft, int(flap), bool(bleeds), bool(anti_ice))
        samples[key].append(GridSample(weight, pa, oat, dict(zip(TAKEOFF_METRICS, metrics))))
    return {key: _grid(rows, takeoff_context(*key)) for key, rows in samples.items()}


def _read_landing(conn: sqlite3.Connection) -> dict[LandingKey, PerformanceGrid]:
    samples: dict[LandingKey, list[GridSample]] = defaultdict(list)
    cursor = conn.execute(
        "SELECT aircraft, flap, anti_ice_on, weight_kg, pa_m, oat_c, ldr_m FROM landing_table"
    )
    for aircraft, flap, anti_ice, weight, pa, oat, ldr in cursor:
        key = (aircraft, int(flap), bool(anti_ice))
        samples[key].append(GridSample(weight, pa, oat, {"ldr_m": ldr}))
    return {key: _grid(rows, landing_context(*key)) for key, rows in samples.items()}


def _grid(samples: list[GridSample], context: str) -> PerformanceGrid:
    try:
        return PerformanceGrid(samples, context)
    except ValueError as e:
        raise DataUnavailable(str(e)) from e


def _read_corrections(conn: sqlite3.Connection) -> dict[str, CorrectionSet]:
    points: dict[str, dict[str, list[tuple[float, float]]]] = defaultdict(lambda: defaultdict(list))
    cursor = conn.execute(
        "SELECT aircraft, correction_type, breakpoint_value, effect FROM corrections "
        "ORDER BY aircraft, correction_type, breakpoint_value"
    )
    for aircraft, correction_type, x, effect in cursor:
        points[aircraft][correction_type].append((float(x), float(effect)))

    result = {}
    for aircraft, by_type in points.items():
        tables = {}
        for correction_type, pairs in by_type.items():
            try:
                tables[correction_type] = CorrectionTable(correction_type, pairs)
            except ValueError as e:
                raise DataUnavailable(f"corrections[{aircraft}]: {e}") from e
        result[aircraft] = CorrectionSet(aircraft, tables)
    return result


def _read_policy(conn: sqlite3.Connection) -> MappingPolicySource:
    values = {}
    for key, kind, value in conn.execute("SELECT key, kind, value FROM company_limits"):
        try:
            values[key] = PolicyValue(PolicyValueKind(kind), float(value))
        except ValueError as e:
            raise DataUnavailable(f"company_limits[{key}]: unknown kind {kind!r}") from e
    return MappingPolicySource(values)
