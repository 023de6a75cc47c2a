"""Immutable certified performance grids.

A PerformanceGrid holds every sample of one (aircraft, phase, configuration)
table, indexed weight -> pressure altitude -> OAT. Axis sets may differ from
one weight plane (or altitude slice) to the next; nothing here assumes a
regular grid. A WeightSchedule is the one-dimensional counterpart keyed by
weight only, used for reference speeds.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

import numpy as np

from perfcalc.core.errors import DataUnavailable


@dataclass(frozen=True)
class AxisTolerance:
    """Tolerances under which a query value counts as an exact grid hit."""

    weight_kg: float = 0.1
    pressure_altitude_m: float = 1.0
    temperature_c: float = 0.1


@dataclass(frozen=True)
class GridSample:
    """One certified table row.

    Attributes:
        weight_kg: Weight coordinate (kg)
        pressure_altitude_m: Pressure altitude coordinate (m)
        temperature_c: OAT coordinate (C)
        metrics: Metric name -> value; None marks a NULL in the data pack
    """

    weight_kg: float
    pressure_altitude_m: float
    temperature_c: float
    metrics: Mapping[str, float | None]


@dataclass(frozen=True)
class CertifiedEnvelope:
    """Min/max of every observed axis of a grid."""

    weight_range: tuple[float, float]
    pressure_altitude_range: tuple[float, float]
    temperature_range: tuple[float, float]

    def contains(self, weight_kg: float, pressure_altitude_m: float, temperature_c: float) -> bool:
        return (
            self.weight_range[0] <= weight_kg <= self.weight_range[1]
            and self.pressure_altitude_range[0]
            <= pressure_altitude_m
            <= self.pressure_altitude_range[1]
            and self.temperature_range[0] <= temperature_c <= self.temperature_range[1]
        )


def _sorted_axis(values: Iterable[float]) -> np.ndarray:
    axis = np.unique(np.fromiter(values, dtype=float))
    axis.setflags(write=False)
    return axis


class PerformanceGrid:
    """Sample set for one certified table configuration.

    Examples:
        >>> grid = PerformanceGrid(
        ...     [GridSample(6000.0, 0.0, 0.0, {"todr_m": 900.0})],
        ...     context="takeoff[B1900D, flap=0]",
        ... )
        >>> grid.value(6000.0, 0.0, 0.0, "todr_m")
        900.0
    """

    def __init__(self, samples: Iterable[GridSample], context: str = "") -> None:
        """Index samples.

        Args:
            samples: Table rows. Coordinates must be unique.
            context: Table/configuration description used in error messages.

        Raises:
            ValueError: If two samples share the same coordinates.
        """
        self.context = context
        index: dict[float, dict[float, dict[float, Mapping[str, float | None]]]] = {}
        count = 0
        for sample in samples:
            plane = index.setdefault(float(sample.weight_kg), {})
            row = plane.setdefault(float(sample.pressure_altitude_m), {})
            oat = float(sample.temperature_c)
            if oat in row:
                raise ValueError(
                    f"{context}: duplicate sample at weight={sample.weight_kg}, "
                    f"pa={sample.pressure_altitude_m}, oat={oat}"
                )
            row[oat] = MappingProxyType(dict(sample.metrics))
            count += 1

        self._index = MappingProxyType(
            {
                w: MappingProxyType({pa: MappingProxyType(row) for pa, row in plane.items()})
                for w, plane in index.items()
            }
        )
        self._weights = _sorted_axis(self._index.keys())
        self._altitudes = {w: _sorted_axis(plane.keys()) for w, plane in self._index.items()}
        self._temperatures = {
            (w, pa): _sorted_axis(row.keys())
            for w, plane in self._index.items()
            for pa, row in plane.items()
        }
        self._size = count

    def __len__(self) -> int:
        return self._size

    @property
    def is_empty(self) -> bool:
        return self._size == 0

    def weights(self) -> np.ndarray:
        """Sorted distinct weights (read-only array)."""
        return self._weights

    def altitudes(self, weight_kg: float) -> np.ndarray:
        """Sorted pressure altitudes present in one weight plane."""
        return self._altitudes[weight_kg]

    def temperatures(self, weight_kg: float, pressure_altitude_m: float) -> np.ndarray:
        """Sorted OATs present in one altitude slice of a weight plane."""
        return self._temperatures[(weight_kg, pressure_altitude_m)]

    def value(
        self, weight_kg: float, pressure_altitude_m: float, temperature_c: float, metric: str
    ) -> float:
        """Stored metric at exact grid coordinates.

        Raises:
            DataUnavailable: If the corner is missing or the metric is NULL.
        """
        row = self._index.get(weight_kg, {}).get(pressure_altitude_m, {})
        metrics = row.get(temperature_c)
        value = metrics.get(metric) if metrics is not None else None
        if value is None:
            raise DataUnavailable(
                f"{self.context}: {metric} at weight={weight_kg}, "
                f"pa={pressure_altitude_m}, oat={temperature_c}"
            )
        return float(value)

    def envelope(self) -> CertifiedEnvelope:
        """Observed axis bounds.

        Raises:
            DataUnavailable: If the grid has no samples.
        """
        if self.is_empty:
            raise DataUnavailable(f"{self.context}: empty grid")
        altitudes = np.concatenate(list(self._altitudes.values()))
        temperatures = np.concatenate(list(self._temperatures.values()))
        return CertifiedEnvelope(
            weight_range=(float(self._weights[0]), float(self._weights[-1])),
            pressure_altitude_range=(float(altitudes.min()), float(altitudes.max())),
            temperature_range=(float(temperatures.min()), float(temperatures.max())),
        )


class WeightSchedule:
    """Weight-keyed table of nullable values (reference speeds)."""

    def __init__(self, rows: Mapping[float, Mapping[str, float | None]], context: str = "") -> None:
        self.context = context
        self._rows = MappingProxyType(
            {float(w): MappingProxyType(dict(values)) for w, values in rows.items()}
        )
        self._weights = _sorted_axis(self._rows.keys())

    def __len__(self) -> int:
        return len(self._rows)

    def weights(self) -> np.ndarray:
        return self._weights

    def get(self, weight_kg: float, field: str) -> float | None:
        """Stored value at an exact weight; None for NULL or unknown weight."""
        value = self._rows.get(weight_kg, {}).get(field)
        return None if value is None else float(value)
