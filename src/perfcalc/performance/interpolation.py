"""Bounded interpolation over certified performance grids.

The engine never extrapolates. Lookups run in two stages:

1. Bracket the weight.
2. In each bracketing weight plane, bracket the pressure altitude, then the
   OAT using only temperatures present in both altitude slices, and
   interpolate bilinearly on (pressure altitude, OAT).

The two plane values are then interpolated linearly on weight. Exact hits on
any axis skip that axis; a query that hits every axis returns the stored
value unchanged.

Typical usage example:
    interpolator = GridInterpolator()
    values = interpolator.lookup(grid, 6500.0, 500.0, 10.0, ("todr_m", "asdr_m"))
"""

from collections.abc import Collection, Sequence

import numpy as np

from perfcalc.core.errors import DataUnavailable, OutOfCertifiedEnvelope
from perfcalc.core.logging_system import get_logger
from perfcalc.performance.grid import AxisTolerance, PerformanceGrid, WeightSchedule

logger = get_logger(__name__)


def linear(x: float, x0: float, x1: float, y0: float, y1: float) -> float:
    """Linear interpolation; a zero-width interval returns y0."""
    if x1 == x0:
        return y0
    return y0 + (y1 - y0) * (x - x0) / (x1 - x0)


def bilinear(
    x: float,
    y: float,
    x0: float,
    x1: float,
    y0: float,
    y1: float,
    q00: float,
    q01: float,
    q10: float,
    q11: float,
) -> float:
    """Bilinear interpolation of q over the rectangle [x0, x1] x [y0, y1].

    q01 is the value at (x0, y1) and q10 the value at (x1, y0).
    """
    low = linear(y, y0, y1, q00, q01)
    high = linear(y, y0, y1, q10, q11)
    return linear(x, x0, x1, low, high)


def bracket(
    values: np.ndarray,
    x: float,
    tolerance: float,
    parameter: str,
    context: str = "",
) -> tuple[float, float]:
    """Find the grid values enclosing x.

    Args:
        values: Sorted distinct axis values.
        x: Query value.
        tolerance: Distance under which x snaps to a grid value.
        parameter: Axis name for error reporting.
        context: Table description for error reporting.

    Returns:
        (low, high) with low <= x <= high; low == high for an exact hit.

    Raises:
        OutOfCertifiedEnvelope: If x lies outside the axis, or the axis is empty.
    """
    if values.size == 0:
        raise OutOfCertifiedEnvelope(parameter, x, None, context)

    nearest = int(np.argmin(np.abs(values - x)))
    if abs(float(values[nearest]) - x) <= tolerance:
        hit = float(values[nearest])
        return hit, hit

    low, high = float(values[0]), float(values[-1])
    if x < low or x > high:
        raise OutOfCertifiedEnvelope(parameter, x, (low, high), context)

    i = int(np.searchsorted(values, x))
    return float(values[i - 1]), float(values[i])


def bracket_common(
    first: np.ndarray,
    second: np.ndarray,
    x: float,
    tolerance: float,
    parameter: str,
    context: str = "",
) -> tuple[float, float]:
    """Bracket x using only values present on both axes."""
    return bracket(np.intersect1d(first, second), x, tolerance, parameter, context)


class GridInterpolator:
    """Two-stage grid interpolation engine.

    Args:
        tolerance: Exact-hit tolerances per axis.
    """

    def __init__(self, tolerance: AxisTolerance | None = None) -> None:
        self.tolerance = tolerance or AxisTolerance()

    def lookup(
        self,
        grid: PerformanceGrid,
        weight_kg: float,
        pressure_altitude_m: float,
        temperature_c: float,
        metrics: Sequence[str],
    ) -> dict[str, float]:
        """Interpolate metrics at a point inside the certified envelope.

        Args:
            grid: Certified table for one configuration.
            weight_kg: Query weight (kg)
            pressure_altitude_m: Query pressure altitude (m)
            temperature_c: Query OAT (C)
            metrics: Names of the metrics to compute.

        Returns:
            Metric name -> value.

        Raises:
            OutOfCertifiedEnvelope: If any axis is out of range.
            DataUnavailable: If a needed corner is missing or NULL.
        """
        w0, w1 = bracket(
            grid.weights(), weight_kg, self.tolerance.weight_kg, "weight", grid.context
        )
        low = self._plane_value(grid, w0, pressure_altitude_m, temperature_c, metrics)
        if w0 == w1:
            return low

        high = self._plane_value(grid, w1, pressure_altitude_m, temperature_c, metrics)
        logger.debug(
            "%s: weight %.1f between planes %.1f and %.1f", grid.context, weight_kg, w0, w1
        )
        return {m: linear(weight_kg, w0, w1, low[m], high[m]) for m in metrics}

    def _plane_value(
        self,
        grid: PerformanceGrid,
        weight_kg: float,
        pressure_altitude_m: float,
        temperature_c: float,
        metrics: Sequence[str],
    ) -> dict[str, float]:
        context = f"{grid.context} @ {weight_kg:g} kg"
        pa0, pa1 = bracket(
            grid.altitudes(weight_kg),
            pressure_altitude_m,
            self.tolerance.pressure_altitude_m,
            "pressure_altitude",
            context,
        )
        if pa0 == pa1:
            t0, t1 = bracket(
                grid.temperatures(weight_kg, pa0),
                temperature_c,
                self.tolerance.temperature_c,
                "temperature",
                context,
            )
        else:
            t0, t1 = bracket_common(
                grid.temperatures(weight_kg, pa0),
                grid.temperatures(weight_kg, pa1),
                temperature_c,
                self.tolerance.temperature_c,
                "temperature",
                context,
            )

        result = {}
        for metric in metrics:
            q00 = grid.value(weight_kg, pa0, t0, metric)
            if pa0 == pa1 and t0 == t1:
                result[metric] = q00
            elif pa0 == pa1:
                q01 = grid.value(weight_kg, pa0, t1, metric)
                result[metric] = linear(temperature_c, t0, t1, q00, q01)
            elif t0 == t1:
                q10 = grid.value(weight_kg, pa1, t0, metric)
                result[metric] = linear(pressure_altitude_m, pa0, pa1, q00, q10)
            else:
                result[metric] = bilinear(
                    pressure_altitude_m,
                    temperature_c,
                    pa0,
                    pa1,
                    t0,
                    t1,
                    q00,
                    grid.value(weight_kg, pa0, t1, metric),
                    grid.value(weight_kg, pa1, t0, metric),
                    grid.value(weight_kg, pa1, t1, metric),
                )
        return result

    def lookup_schedule(
        self,
        schedule: WeightSchedule,
        weight_kg: float,
        fields: Sequence[str],
        required: Collection[str] = (),
    ) -> dict[str, float | None]:
        """Interpolate a weight-only schedule.

        Fields not listed in required come back as None when either bracketing
        row holds NULL.

        Raises:
            OutOfCertifiedEnvelope: If the weight is outside the schedule.
            DataUnavailable: If a required field is NULL at a bracketing weight.
        """
        w0, w1 = bracket(
            schedule.weights(), weight_kg, self.tolerance.weight_kg, "weight", schedule.context
        )
        result: dict[str, float | None] = {}
        for name in fields:
            y0 = schedule.get(w0, name)
            y1 = schedule.get(w1, name)
            if y0 is None or y1 is None:
                if name in required:
                    missing = w0 if y0 is None else w1
                    raise DataUnavailable(f"{schedule.context}: {name} at weight={missing}")
                result[name] = None
            else:
                result[name] = linear(weight_kg, w0, w1, y0, y1)
        return result
