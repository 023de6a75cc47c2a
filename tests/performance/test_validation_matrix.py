"""Tests for golden-case regression runs."""

import math
from pathlib import Path

import pytest

from perfcalc.datapack.builder import build_data_pack_from_yaml
from perfcalc.datapack.reader import DataPackReader
from perfcalc.performance.calculator import PerformanceCalculator
from perfcalc.performance.models import Phase, SurfaceCondition
from perfcalc.performance.validation_matrix import (
    compare,
    load_cases,
    relative_delta_pct,
    request_from_row,
    run_matrix,
    run_matrix_file,
)

TAKEOFF_ROW = {
    "case_id": "TO-X",
    "phase": "takeoff",
    "aircraft": "B1900D",
    "weight_kg": "6500",
    "pa_m": "500",
    "oat_c": "10",
    "headwind_ms": "",
    "slope_pct": "0",
    "flap": "0",
    "bleeds": "true",
    "antiice": "false",
    "runway_len_m": "1800",
    "tolerance_pct": "0.5",
    "expect_todr_m": "1025",
    "expect_v1_kt": "97.5",
}


@pytest.fixture
def calculator(pack) -> PerformanceCalculator:
    return PerformanceCalculator(pack)


class TestRequestFromRow:
    """Tests for parsing matrix rows."""

    def test_defaults_for_blank_cells(self) -> None:
        """Test that blank optional cells take defaults."""
        request = request_from_row(TAKEOFF_ROW)

        assert request.phase is Phase.TAKEOFF
        assert request.weight_kg == 6500.0
        assert request.conditions.headwind_ms == 0.0
        assert request.conditions.surface is SurfaceCondition.DRY
        assert request.configuration.bleeds_on
        assert not request.configuration.anti_ice_on

    def test_surface_and_flags(self) -> None:
        """Test explicit surface and configuration flags."""
        row = {**TAKEOFF_ROW, "surface": "WET", "bleeds": "0", "antiice": "yes", "flap": "35.0"}
        request = request_from_row(row)

        assert request.conditions.surface is SurfaceCondition.WET
        assert not request.configuration.bleeds_on
        assert request.configuration.anti_ice_on
        assert request.configuration.flap_setting == 35


class TestCompare:
    """Tests for comparing results with expectations."""

    def test_relative_delta(self) -> None:
        """Test signed percentage deltas."""
        assert relative_delta_pct(1000.0, 1005.0) == pytest.approx(0.5)
        assert relative_delta_pct(0.0, 5.0) == 0.0

    def test_within_tolerance(self, calculator: PerformanceCalculator) -> None:
        """Test that a matching row passes."""
        result = calculator.calculate(request_from_row(TAKEOFF_ROW)).unwrap()
        case = compare(TAKEOFF_ROW, result)

        assert case.passed
        assert set(case.deltas) == {"todr_m", "v1_kt"}
        assert case.deltas["todr_m"] == pytest.approx(0.0)

    def test_outside_tolerance(self, calculator: PerformanceCalculator) -> None:
        """Test that a 1 % difference fails a 0.5 % tolerance."""
        row = {**TAKEOFF_ROW, "expect_todr_m": "1015"}
        result = calculator.calculate(request_from_row(row)).unwrap()
        case = compare(row, result)

        assert not case.passed
        assert case.deltas["todr_m"] == pytest.approx((1025.0 - 1015.0) / 1015.0 * 100.0)

    def test_expected_value_missing_from_result(self, calculator: PerformanceCalculator) -> None:
        """Test that expecting a landing distance from a takeoff fails."""
        row = {**TAKEOFF_ROW, "expect_ldr_m": "900"}
        result = calculator.calculate(request_from_row(row)).unwrap()
        case = compare(row, result)

        assert not case.passed
        assert math.isnan(case.deltas["ldr_m"])


class TestRunMatrix:
    """Tests for whole-matrix runs."""

    def test_errors_fail_their_case_only(self, calculator: PerformanceCalculator) -> None:
        """Test that bad rows and failed calculations are reported per case."""
        rows = [
            TAKEOFF_ROW,
            {**TAKEOFF_ROW, "case_id": "BAD-ROW", "weight_kg": "heavy"},
            {**TAKEOFF_ROW, "case_id": "OUT", "pa_m": "2500"},
        ]

        report = run_matrix(rows, calculator)

        assert report.passed == 1
        assert not report.all_passed
        failed = {case.case_id: case.error for case in report.failed}
        assert failed["BAD-ROW"].startswith("Invalid row")
        assert "pressure_altitude" in failed["OUT"]

    def test_shipped_golden_cases(
        self, tmp_path: Path, sample_pack_yaml: Path, golden_cases_csv: Path
    ) -> None:
        """Test the shipped golden cases against the shipped sample pack."""
        pack = DataPackReader.open(build_data_pack_from_yaml(sample_pack_yaml, tmp_path / "s.sqlite"))

        assert len(load_cases(golden_cases_csv)) == 5
        report = run_matrix_file(golden_cases_csv, PerformanceCalculator(pack))

        assert report.all_passed, [(c.case_id, c.deltas, c.error) for c in report.failed]
