"""Ordered multiplicative correction chain.

Raw grid distances are multiplied by a wind factor, then a slope factor,
then (on a wet surface) a wet factor. Each factor is 1 + effect, with the
effect interpolated linearly from a breakpoint table and never extrapolated.

Typical usage example:
    corrected = apply_takeoff(1025.0, 1125.0, 1075.0, wind_ms=5.0,
                              slope_percent=0.0, is_wet=False, source=pack.corrections("B1900D"))
    print(corrected.todr_m, corrected.applied)
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Protocol

import numpy as np

from perfcalc.core.errors import DataUnavailable, OutOfCertifiedEnvelope
from perfcalc.core.logging_system import get_logger
from perfcalc.performance.interpolation import linear
from perfcalc.performance.models import Phase

logger = get_logger(__name__)

CORRECTION_TYPES = (
    "wind_takeoff",
    "slope_takeoff",
    "wet_takeoff",
    "wind_landing",
    "slope_landing",
    "wet_landing",
)


class CorrectionTable:
    """Piecewise-linear breakpoint table for one correction type.

    Args:
        correction_type: e.g. "wind_takeoff".
        points: (breakpoint, effect) pairs with strictly increasing breakpoints.

    Raises:
        ValueError: If the table is empty or breakpoints are not strictly increasing.
    """

    def __init__(self, correction_type: str, points: Iterable[tuple[float, float]]) -> None:
        self.correction_type = correction_type
        pairs = [(float(x), float(effect)) for x, effect in points]
        if not pairs:
            raise ValueError(f"{correction_type}: no breakpoints")
        self._x = np.array([x for x, _ in pairs])
        self._effect = np.array([e for _, e in pairs])
        if np.any(np.diff(self._x) <= 0):
            raise ValueError(f"{correction_type}: breakpoints must be strictly increasing")
        self._x.setflags(write=False)
        self._effect.setflags(write=False)

    @property
    def points(self) -> tuple[tuple[float, float], ...]:
        return tuple(zip(self._x.tolist(), self._effect.tolist()))

    @property
    def range(self) -> tuple[float, float]:
        return float(self._x[0]), float(self._x[-1])

    def effect(self, x: float) -> float:
        """Interpolated fractional effect at x.

        Raises:
            OutOfCertifiedEnvelope: If x is outside the breakpoint range.
        """
        low, high = self.range
        if x < low or x > high:
            raise OutOfCertifiedEnvelope(self.correction_type, x, (low, high))
        i = int(np.searchsorted(self._x, x))
        if self._x[i] == x:
            return float(self._effect[i])
        return linear(
            x,
            float(self._x[i - 1]),
            float(self._x[i]),
            float(self._effect[i - 1]),
            float(self._effect[i]),
        )

    def factor(self, x: float) -> float:
        return 1.0 + self.effect(x)


class CorrectionSource(Protocol):
    """Anything that can supply correction tables for one aircraft."""

    def table(self, correction_type: str) -> CorrectionTable:
        """Return the table or raise DataUnavailable."""
        ...


class CorrectionSet:
    """In-memory correction tables for one aircraft."""

    def __init__(self, aircraft: str, tables: Mapping[str, CorrectionTable]) -> None:
        self.aircraft = aircraft
        self._tables = MappingProxyType(dict(tables))

    def __contains__(self, correction_type: str) -> bool:
        return correction_type in self._tables

    def types(self) -> tuple[str, ...]:
        return tuple(self._tables)

    def table(self, correction_type: str) -> CorrectionTable:
        try:
            return self._tables[correction_type]
        except KeyError:
            raise DataUnavailable(
                f"corrections[{self.aircraft}]: no table for {correction_type}"
            ) from None


@dataclass(frozen=True)
class AppliedFactors:
    """Outcome of the fetch-correction-factors step.

    Attributes:
        wind: Wind factor (1.0 when not applied)
        slope: Slope factor (1.0 when not applied)
        wet: Wet factor, None for a dry surface
        applied: Descriptions in application order, e.g. "Wind -5%"
    """

    wind: float = 1.0
    slope: float = 1.0
    wet: float | None = None
    applied: tuple[str, ...] = ()

    @property
    def combined(self) -> float:
        return self.wind * self.slope * (self.wet if self.wet is not None else 1.0)


@dataclass(frozen=True)
class CorrectedTakeoff:
    todr_m: float
    asdr_m: float
    bfl_m: float
    factors: AppliedFactors

    @property
    def applied(self) -> tuple[str, ...]:
        return self.factors.applied


@dataclass(frozen=True)
class CorrectedLanding:
    ldr_m: float
    factors: AppliedFactors

    @property
    def applied(self) -> tuple[str, ...]:
        return self.factors.applied


def describe(label: str, factor: float) -> str:
    """Format a factor as a signed whole percentage, e.g. "Slope +3%"."""
    return f"{label} {(factor - 1.0) * 100.0:+.0f}%"


def collect_factors(
    phase: Phase,
    wind_ms: float,
    slope_percent: float,
    is_wet: bool,
    source: CorrectionSource | None,
) -> AppliedFactors:
    """Fetch the wind, slope and wet factors for a phase.

    Args:
        phase: Takeoff or landing; selects the correction types.
        wind_ms: Headwind component (m/s), negative for tailwind
        slope_percent: Runway slope (%)
        is_wet: Whether the wet-surface factor applies
        source: Correction tables, or None when the pack has none

    Returns:
        The factors and their descriptions.

    Raises:
        DataUnavailable: If a wet surface has no source, or a consulted table is missing.
        OutOfCertifiedEnvelope: If an input is outside its table's breakpoints.
    """
    if source is None:
        if is_wet:
            raise DataUnavailable(f"wet_{phase.value}: no correction tables for wet surface")
        return AppliedFactors()

    suffix = phase.value
    applied = []

    wind = source.table(f"wind_{suffix}").factor(wind_ms)
    if wind != 1.0:
        applied.append(describe("Wind", wind))

    slope = source.table(f"slope_{suffix}").factor(slope_percent)
    if slope != 1.0:
        applied.append(describe("Slope", slope))

    wet = None
    if is_wet:
        # Wet tables are single-axis with the effect stored at breakpoint 0.
        wet = source.table(f"wet_{suffix}").factor(0.0)
        applied.append(describe("Wet", wet))

    factors = AppliedFactors(wind=wind, slope=slope, wet=wet, applied=tuple(applied))
    logger.debug("%s correction factors: %s (combined %.4f)", suffix, applied, factors.combined)
    return factors


def apply_takeoff(
    raw_todr: float,
    raw_asdr: float,
    raw_bfl: float,
    wind_ms: float,
    slope_percent: float,
    is_wet: bool,
    source: CorrectionSource | None,
) -> CorrectedTakeoff:
    """Apply the takeoff correction chain to TODR, ASDR and BFL alike."""
    factors = collect_factors(Phase.TAKEOFF, wind_ms, slope_percent, is_wet, source)
    return apply_factors_takeoff(raw_todr, raw_asdr, raw_bfl, factors)


def apply_landing(
    raw_ldr: float,
    wind_ms: float,
    slope_percent: float,
    is_wet: bool,
    source: CorrectionSource | None,
) -> CorrectedLanding:
    """Apply the landing correction chain to LDR."""
    factors = collect_factors(Phase.LANDING, wind_ms, slope_percent, is_wet, source)
    return apply_factors_landing(raw_ldr, factors)


def apply_factors_takeoff(
    raw_todr: float, raw_asdr: float, raw_bfl: float, factors: AppliedFactors
) -> CorrectedTakeoff:
    f = factors.combined
    return CorrectedTakeoff(raw_todr * f, raw_asdr * f, raw_bfl * f, factors)


def apply_factors_landing(raw_ldr: float, factors: AppliedFactors) -> CorrectedLanding:
    return CorrectedLanding(raw_ldr * factors.combined, factors)
