"""Golden-case regression runs against a data pack.

A validation matrix is a CSV file with one calculation per row and the
expected certified values alongside. Each row is run through the full
calculator and every expected value present is compared as a relative
delta, in percent, against the row's tolerance_pct.

Columns:
    case_id, phase, aircraft, weight_kg, pa_m, oat_c, headwind_ms, slope_pct,
    flap, bleeds, antiice, runway_len_m, tolerance_pct,
    expect_v1_kt, expect_vr_kt, expect_v2_kt, expect_vref_kt,
    expect_todr_m, expect_asdr_m, expect_bfl_m, expect_ldr_m
and optionally surface (dry/wet/contaminated/icy). Empty expectation cells
are skipped.
"""

import csv
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from perfcalc.core.logging_system import get_logger
from perfcalc.performance.calculator import PerformanceCalculator
from perfcalc.performance.models import (
    CalculationRequest,
    EnvironmentalConditions,
    FlightConfiguration,
    PerformanceResult,
    Phase,
    SurfaceCondition,
)

logger = get_logger(__name__)

EXPECTATIONS = {
    "expect_v1_kt": lambda r: r.v_speeds.v1_kt,
    "expect_vr_kt": lambda r: r.v_speeds.vr_kt,
    "expect_v2_kt": lambda r: r.v_speeds.v2_kt,
    "expect_vref_kt": lambda r: r.v_speeds.vref_kt,
    "expect_todr_m": lambda r: r.takeoff.todr_m if r.takeoff else None,
    "expect_asdr_m": lambda r: r.takeoff.asdr_m if r.takeoff else None,
    "expect_bfl_m": lambda r: r.takeoff.bfl_m if r.takeoff else None,
    "expect_ldr_m": lambda r: r.ldr_m,
}


@dataclass(frozen=True)
class CaseResult:
    """Outcome of one golden case.

    Attributes:
        case_id: Row identifier
        passed: All compared values within tolerance and no error
        deltas: Metric name (without "expect_") -> relative delta in percent
        error: Error message when the case could not be calculated
    """

    case_id: str
    passed: bool
    deltas: dict[str, float] = field(default_factory=dict)
    error: str | None = None


@dataclass(frozen=True)
class MatrixReport:
    cases: tuple[CaseResult, ...]

    @property
    def passed(self) -> int:
        return sum(1 for c in self.cases if c.passed)

    @property
    def failed(self) -> tuple[CaseResult, ...]:
        return tuple(c for c in self.cases if not c.passed)

    @property
    def all_passed(self) -> bool:
        return not self.failed


def relative_delta_pct(expected: float, actual: float) -> float:
    """(actual - expected) / expected in percent; 0 when expected is 0."""
    if expected == 0:
        return 0.0
    return (actual - expected) / expected * 100.0


def load_cases(path: str | Path) -> list[dict[str, str]]:
    """Read matrix rows as dictionaries of raw strings."""
    with Path(path).open("r", encoding="utf-8", newline="") as f:
        return [row for row in csv.DictReader(f) if row.get("case_id")]


def request_from_row(row: Mapping[str, str]) -> CalculationRequest:
    """Build a calculation request from one matrix row.

    Raises:
        KeyError: If a required column is missing.
        ValueError: If a value cannot be parsed.
    """
    return CalculationRequest(
        aircraft=row["aircraft"].strip(),
        phase=Phase(row["phase"].strip().lower()),
        weight_kg=float(row["weight_kg"]),
        conditions=EnvironmentalConditions(
            temperature_c=float(row["oat_c"]),
            pressure_altitude_m=float(row["pa_m"]),
            headwind_ms=_float(row.get("headwind_ms")) or 0.0,
            runway_slope_pct=_float(row.get("slope_pct")) or 0.0,
            surface=SurfaceCondition((row.get("surface") or "dry").strip().lower()),
        ),
        configuration=FlightConfiguration(
            flap_setting=int(float(row["flap"])),
            bleeds_on=_bool(row.get("bleeds"), default=True),
            anti_ice_on=_bool(row.get("antiice"), default=False),
        ),
        runway_length_m=float(row["runway_len_m"]),
    )


def compare(row: Mapping[str, str], result: PerformanceResult) -> CaseResult:
    """Compare a calculated result with a row's expectations."""
    tolerance = _float(row.get("tolerance_pct")) or 0.0
    deltas = {}
    passed = True
    for column, extract in EXPECTATIONS.items():
        expected = _float(row.get(column))
        if expected is None:
            continue
        actual = extract(result)
        name = column.removeprefix("expect_")
        if actual is None:
            deltas[name] = float("nan")
            passed = False
            continue
        delta = relative_delta_pct(expected, actual)
        deltas[name] = delta
        passed = passed and abs(delta) <= tolerance
    return CaseResult(case_id=row["case_id"], passed=passed, deltas=deltas)


def run_matrix(
    rows: Iterable[Mapping[str, str]], calculator: PerformanceCalculator
) -> MatrixReport:
    """Run every row through the calculator.

    Rows that cannot be parsed or calculated fail with the error message.
    """
    results = []
    for row in rows:
        case_id = row.get("case_id", "?")
        try:
            request = request_from_row(row)
        except (KeyError, ValueError) as e:
            results.append(CaseResult(case_id, False, error=f"Invalid row: {e}"))
            continue

        outcome = calculator.calculate(request)
        if not outcome.ok:
            results.append(CaseResult(case_id, False, error=str(outcome.error)))
            continue
        results.append(compare(row, outcome.unwrap()))

    report = MatrixReport(tuple(results))
    logger.info("Validation matrix: %d/%d cases passed", report.passed, len(report.cases))
    return report


def run_matrix_file(path: str | Path, calculator: PerformanceCalculator) -> MatrixReport:
    return run_matrix(load_cases(path), calculator)


def _float(value: str | None) -> float | None:
    if value is None or not value.strip():
        return None
    return float(value)


def _bool(value: str | None, default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("true", "1", "yes", "on")
