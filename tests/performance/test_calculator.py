"""Tests for the takeoff and landing calculation pipeline."""

import math
from typing import Any

import pytest

from perfcalc.core.errors import (
    CalculationFailed,
    DataUnavailable,
    OutOfCertifiedEnvelope,
    ValidationError,
)
from perfcalc.core.event_bus import EventBus
from perfcalc.datapack.manager import DataPackManager
from perfcalc.performance.calculator import (
    CalculationStage,
    PerformanceCalculator,
    StageCompleted,
)
from perfcalc.performance.models import (
    CalculationRequest,
    EnvironmentalConditions,
    FlightConfiguration,
    LimitingFactor,
    Phase,
    SurfaceCondition,
    TakeoffDistances,
    WarningSeverity,
)


def make_request(
    phase: Phase = Phase.TAKEOFF,
    weight_kg: float = 6500.0,
    runway_length_m: float = 1800.0,
    flap: int = 0,
    **conditions: Any,
) -> CalculationRequest:
    values = {"temperature_c": 10.0, "pressure_altitude_m": 500.0, **conditions}
    return CalculationRequest(
        aircraft="B1900D",
        phase=phase,
        weight_kg=weight_kg,
        conditions=EnvironmentalConditions(**values),
        configuration=FlightConfiguration(flap_setting=flap),
        runway_length_m=runway_length_m,
    )


@pytest.fixture
def calculator(pack) -> PerformanceCalculator:
    return PerformanceCalculator(pack)


class TestTakeoff:
    """Takeoff calculations against the seed pack."""

    def test_interpolated_takeoff(self, calculator: PerformanceCalculator) -> None:
        """Test distances, speeds and climb at an interior point."""
        result = calculator.calculate_takeoff(make_request()).unwrap()

        assert result.phase is Phase.TAKEOFF
        assert result.data_pack_version == "TEST-1.0"
        assert result.takeoff.todr_m == pytest.approx(1025.0)
        assert result.takeoff.asdr_m == pytest.approx(1125.0)
        assert result.takeoff.bfl_m == pytest.approx(1075.0)
        assert result.v_speeds.v1_kt == pytest.approx(97.5)
        assert result.v_speeds.vr_kt == pytest.approx(102.5)
        assert result.v_speeds.v2_kt == pytest.approx(107.5)
        assert result.climb.oei_net_climb_gradient_pct == pytest.approx(2.3)
        assert result.ldr_m is None
        assert result.corrections == ()
        assert result.correction_factor == 1.0
        assert result.limiting_factor is LimitingFactor.NONE
        assert result.warnings == ()

    def test_exact_grid_point(self, calculator: PerformanceCalculator) -> None:
        """Test that a grid point returns stored values."""
        request = make_request(weight_kg=7000.0, temperature_c=20.0, pressure_altitude_m=1000.0)
        result = calculator.calculate(request).unwrap()

        assert result.takeoff.todr_m == 1150.0
        assert result.takeoff.asdr_m == 1250.0

    def test_headwind_correction(self, calculator: PerformanceCalculator) -> None:
        """Test that a headwind shortens every distance."""
        result = calculator.calculate_takeoff(make_request(headwind_ms=10.0)).unwrap()

        assert result.takeoff.todr_m == pytest.approx(1025.0 * 0.95)
        assert result.takeoff.asdr_m == pytest.approx(1125.0 * 0.95)
        assert result.corrections == ("Wind -5%",)
        assert result.correction_factor == pytest.approx(0.95)

    def test_tailwind_limits_and_warns(self, calculator: PerformanceCalculator) -> None:
        """Test a tailwind takeoff."""
        result = calculator.calculate_takeoff(make_request(headwind_ms=-5.0)).unwrap()

        assert result.takeoff.todr_m == pytest.approx(1127.5)
        assert result.limiting_factor is LimitingFactor.WIND
        tailwind = [w for w in result.warnings if w.parameter == "tailwind"]
        assert tailwind[0].message == "Tailwind increases takeoff distance"
        assert tailwind[0].severity is WarningSeverity.CAUTION

    def test_wet_runway(self, calculator: PerformanceCalculator) -> None:
        """Test the wet factor and its warning."""
        result = calculator.calculate_takeoff(
            make_request(surface=SurfaceCondition.WET)
        ).unwrap()

        assert result.takeoff.todr_m == pytest.approx(1025.0 * 1.15)
        assert result.corrections == ("Wet +15%",)
        assert "Wet/contaminated runway increases stopping distance" in [
            w.message for w in result.warnings
        ]

    def test_short_runway(self, calculator: PerformanceCalculator) -> None:
        """Test runway-length limitation and the critical margin warning."""
        result = calculator.calculate_takeoff(make_request(runway_length_m=1200.0)).unwrap()

        assert result.limiting_factor is LimitingFactor.RUNWAY_LENGTH
        margin = result.warnings[0]
        assert margin.severity is WarningSeverity.CRITICAL
        assert margin.parameter == "runway_margin"
        assert margin.message.startswith("Runway margin is critically low")
        assert ("runway_length", "Runway may be too short for current weight", "warning") in (
            result.findings
        )

    def test_caution_margin(self, calculator: PerformanceCalculator) -> None:
        """Test the caution band of the runway margin."""
        result = calculator.calculate_takeoff(make_request(runway_length_m=1350.0)).unwrap()

        assert result.warnings[0].severity is WarningSeverity.CAUTION
        assert result.warnings[0].message == "Runway margin is low (16.7%)"

    def test_result_to_dict(self, calculator: PerformanceCalculator) -> None:
        """Test the plain-data view of a result."""
        data = calculator.calculate_takeoff(make_request(headwind_ms=-5.0)).unwrap().to_dict()

        assert data["phase"] == "takeoff"
        assert data["limiting_factor"] == "wind"
        assert data["takeoff"]["todr_m"] == pytest.approx(1127.5)
        assert data["warnings"][0]["severity"] == "caution"


class TestLanding:
    """Landing calculations against the seed pack."""

    def test_interpolated_landing(self, calculator: PerformanceCalculator) -> None:
        """Test LDR and VREF at an interior point."""
        result = calculator.calculate_landing(
            make_request(phase=Phase.LANDING, runway_length_m=1500.0)
        ).unwrap()

        assert result.ldr_m == pytest.approx(910.0)
        assert result.v_speeds.vref_kt == pytest.approx(112.5)
        assert result.takeoff is None
        assert result.climb is None
        assert result.limiting_factor is LimitingFactor.NONE
        assert result.warnings == ()

    def test_wet_landing(self, calculator: PerformanceCalculator) -> None:
        """Test the landing wet factor."""
        result = calculator.calculate_landing(
            make_request(phase=Phase.LANDING, runway_length_m=2000.0, surface=SurfaceCondition.WET)
        ).unwrap()

        assert result.ldr_m == pytest.approx(1092.0)
        assert result.corrections == ("Wet +20%",)

    def test_short_landing_runway(self, calculator: PerformanceCalculator) -> None:
        """Test landing runway limitation."""
        result = calculator.calculate_landing(
            make_request(phase=Phase.LANDING, runway_length_m=1000.0)
        ).unwrap()

        assert result.limiting_factor is LimitingFactor.RUNWAY_LENGTH
        assert result.warnings[0].parameter == "landing_margin"
        assert result.warnings[0].message.startswith("Landing runway margin is critically low")


class TestErrors:
    """Every failure ends the calculation with a typed error."""

    def test_validation_error(self, calculator: PerformanceCalculator) -> None:
        """Test that a blocking finding is returned as ValidationError."""
        outcome = calculator.calculate(make_request(weight_kg=0.0))

        assert not outcome.ok
        assert outcome.value is None
        assert isinstance(outcome.error, ValidationError)
        assert outcome.error.field == "weight"

    def test_nan_runway_length(self, calculator: PerformanceCalculator) -> None:
        """Test that a NaN runway is refused before any lookup."""
        outcome = calculator.calculate(make_request(runway_length_m=math.nan))

        assert isinstance(outcome.error, ValidationError)
        assert outcome.error.field == "runway_length"

    def test_unwrap_raises(self, calculator: PerformanceCalculator) -> None:
        """Test that unwrap re-raises the error."""
        with pytest.raises(ValidationError):
            calculator.calculate(make_request(weight_kg=0.0)).unwrap()

    def test_phase_mismatch(self, calculator: PerformanceCalculator) -> None:
        """Test that a landing request cannot run as a takeoff."""
        outcome = calculator.calculate_takeoff(make_request(phase=Phase.LANDING))

        assert isinstance(outcome.error, ValidationError)
        assert outcome.error.field == "phase"

    def test_above_maximum_weight(self, calculator: PerformanceCalculator) -> None:
        """Test that aircraft limits are part of the envelope."""
        error = calculator.calculate(make_request(weight_kg=8000.0)).error

        assert isinstance(error, OutOfCertifiedEnvelope)
        assert error.parameter == "weight"
        assert error.valid_range == (4500.0, 7550.0)
        assert error.context == "limits[B1900D]"

    def test_outside_grid(self, calculator: PerformanceCalculator) -> None:
        """Test weights within limits but beyond the certified table."""
        error = calculator.calculate(make_request(weight_kg=7200.0)).error

        assert isinstance(error, OutOfCertifiedEnvelope)
        assert error.parameter == "weight"
        assert error.valid_range == (6000.0, 7000.0)

    def test_altitude_outside_grid(self, calculator: PerformanceCalculator) -> None:
        """Test altitudes within limits but beyond the certified table."""
        error = calculator.calculate(make_request(pressure_altitude_m=2000.0)).error

        assert isinstance(error, OutOfCertifiedEnvelope)
        assert error.parameter == "pressure_altitude"

    def test_uncertified_flap(self, calculator: PerformanceCalculator) -> None:
        """Test that an unknown configuration is refused."""
        error = calculator.calculate(make_request(flap=15)).error

        assert isinstance(error, OutOfCertifiedEnvelope)
        assert error.parameter == "flap"
        assert error.valid_range is None

    def test_unknown_aircraft(self, calculator: PerformanceCalculator) -> None:
        """Test that an aircraft without limits is a data error."""
        request = CalculationRequest(
            aircraft="C208",
            phase=Phase.TAKEOFF,
            weight_kg=3000.0,
            conditions=EnvironmentalConditions(temperature_c=15.0, pressure_altitude_m=0.0),
            configuration=FlightConfiguration(flap_setting=0),
            runway_length_m=1800.0,
        )
        error = calculator.calculate(request).error

        assert isinstance(error, DataUnavailable)
        assert error.resource == "limits[C208]"

    def test_null_v_speed(self, pack_source: dict, build_pack) -> None:
        """Test that a NULL required speed is a data error."""
        pack_source["aircraft"]["B1900D"]["v_speeds"][1]["v1_kt"] = None
        calculator = PerformanceCalculator(build_pack(pack_source))

        error = calculator.calculate(make_request()).error

        assert isinstance(error, DataUnavailable)
        assert "v1_kt" in error.resource

    def test_null_speed_not_required_for_landing(self, pack_source: dict, build_pack) -> None:
        """Test that takeoff speeds may be NULL for a landing."""
        pack_source["aircraft"]["B1900D"]["v_speeds"][1]["v1_kt"] = None
        calculator = PerformanceCalculator(build_pack(pack_source))

        result = calculator.calculate(
            make_request(phase=Phase.LANDING, runway_length_m=1500.0)
        ).unwrap()

        assert result.v_speeds.v1_kt is None
        assert result.v_speeds.vref_kt == pytest.approx(112.5)

    def test_null_metric(self, pack_source: dict, build_pack) -> None:
        """Test that a NULL grid value is a data error."""
        rows = pack_source["aircraft"]["B1900D"]["takeoff"][0]["rows"]
        rows[0]["asdr_m"] = None
        calculator = PerformanceCalculator(build_pack(pack_source))

        error = calculator.calculate(make_request()).error

        assert isinstance(error, DataUnavailable)
        assert "asdr_m" in error.resource

    def test_wet_without_corrections(self, pack_source: dict, build_pack) -> None:
        """Test that a wet surface needs correction tables."""
        del pack_source["aircraft"]["B1900D"]["corrections"]
        calculator = PerformanceCalculator(build_pack(pack_source))

        dry = calculator.calculate(make_request()).unwrap()
        wet = calculator.calculate(make_request(surface=SurfaceCondition.WET)).error

        assert dry.takeoff.todr_m == pytest.approx(1025.0)
        assert isinstance(wet, DataUnavailable)

    def test_unexpected_exception(self) -> None:
        """Test that internal faults become CalculationFailed."""

        class BrokenSource:
            def snapshot(self):
                raise RuntimeError("boom")

        outcome = PerformanceCalculator(BrokenSource()).calculate(make_request())

        assert isinstance(outcome.error, CalculationFailed)
        assert outcome.error.reason == "RuntimeError: boom"
        assert isinstance(outcome.error.__cause__, RuntimeError)


class TestLimitingFactor:
    """Tests for the limiting-factor cascade."""

    @pytest.fixture
    def limits(self, pack):
        return pack.limits("B1900D")

    def test_weight(self, calculator: PerformanceCalculator, limits) -> None:
        """Test the weight rule at 95 % of the phase maximum."""
        request = make_request(weight_kg=7200.0)
        assert calculator.limiting_factor(request, 1000.0, limits) is LimitingFactor.WEIGHT

    def test_temperature(self, calculator: PerformanceCalculator, limits) -> None:
        """Test the temperature rule at 90 % of the maximum."""
        request = make_request(temperature_c=45.0)
        assert calculator.limiting_factor(request, 1000.0, limits) is LimitingFactor.TEMPERATURE

    def test_runway_takes_precedence(self, calculator: PerformanceCalculator, limits) -> None:
        """Test the order of the cascade."""
        request = make_request(weight_kg=7200.0, temperature_c=45.0, headwind_ms=-5.0)
        assert (
            calculator.limiting_factor(request, 1700.0, limits) is LimitingFactor.RUNWAY_LENGTH
        )

    def test_landing_uses_landing_fractions(self, calculator: PerformanceCalculator, limits) -> None:
        """Test the landing runway fraction and maximum weight."""
        request = make_request(phase=Phase.LANDING, weight_kg=6900.0)

        assert calculator.limiting_factor(request, 1500.0, limits) is LimitingFactor.WEIGHT
        assert (
            calculator.limiting_factor(request, 1530.0, limits) is LimitingFactor.RUNWAY_LENGTH
        )


class TestWarnings:
    """Tests for derived warnings."""

    def test_high_density_altitude(self, calculator: PerformanceCalculator) -> None:
        """Test the density-altitude advisory."""
        warnings = calculator.derive_warnings(make_request(temperature_c=40.0), 1000.0)
        assert [w.parameter for w in warnings] == ["density_altitude"]

    def test_balanced_field_note(self, calculator: PerformanceCalculator) -> None:
        """Test that a large TODR/ASDR imbalance adds an info note."""
        warnings = calculator.derive_warnings(
            make_request(), 1400.0, TakeoffDistances(1000.0, 1400.0, 1200.0)
        )

        note = warnings[-1]
        assert note.severity is WarningSeverity.INFO
        assert note.parameter == "balanced_field"
        assert note.message.startswith("BFL note: ASDR limiting")


class TestStageEvents:
    """Tests for published pipeline progress."""

    def test_all_stages_published_in_order(self, pack) -> None:
        """Test one event per stage ending at full progress."""
        bus = EventBus()
        events: list[StageCompleted] = []
        bus.subscribe(StageCompleted, events.append)

        PerformanceCalculator(pack, event_bus=bus).calculate(make_request()).unwrap()

        assert [e.stage for e in events] == list(CalculationStage)
        assert events[-1].progress == pytest.approx(1.0)
        assert all(e.aircraft == "B1900D" and e.phase is Phase.TAKEOFF for e in events)
        assert [e.progress for e in events] == sorted(e.progress for e in events)

    def test_no_events_after_failure(self, pack) -> None:
        """Test that a failed stage publishes nothing further."""
        bus = EventBus()
        events: list[StageCompleted] = []
        bus.subscribe(StageCompleted, events.append)

        PerformanceCalculator(pack, event_bus=bus).calculate(make_request(flap=15))

        assert [e.stage for e in events] == [
            CalculationStage.VALIDATE_INPUTS,
            CalculationStage.FETCH_LIMITS,
            CalculationStage.VALIDATE_LIMITS,
        ]


class TestDataPackSwap:
    """Calculations through a DataPackManager."""

    def test_result_reports_current_version(self, pack, pack_source: dict, build_pack) -> None:
        """Test that each calculation uses the pack current at its start."""
        manager = DataPackManager()
        manager.swap(pack)
        calculator = PerformanceCalculator(manager)

        first = calculator.calculate(make_request()).unwrap()
        pack_source["metadata"]["data_version"] = "TEST-2.0"
        manager.swap(build_pack(pack_source))
        second = calculator.calculate(make_request()).unwrap()

        assert first.data_pack_version == "TEST-1.0"
        assert second.data_pack_version == "TEST-2.0"
