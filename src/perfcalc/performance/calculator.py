"""Takeoff and landing calculation pipeline.

A calculation runs a fixed sequence of stages. Every stage either completes
or ends the calculation with a typed error; no partial result is ever
returned.

    validate inputs -> fetch limits -> validate against limits -> V-speeds
    -> base metrics -> fetch corrections -> apply corrections
    -> warnings and limiting factor -> complete

Typical usage example:
    from perfcalc.datapack.reader import DataPackReader
    from perfcalc.performance.calculator import PerformanceCalculator

    calculator = PerformanceCalculator(DataPackReader.open("b1900d.sqlite"))
    result = calculator.calculate(request)
    if result.ok:
        print(result.value.takeoff.todr_m)
    else:
        print(result.error)
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from perfcalc.core.errors import (
    CalculationFailed,
    OutOfCertifiedEnvelope,
    PerformanceError,
    ValidationError,
)
from perfcalc.core.event_bus import Event, EventBus
from perfcalc.core.logging_system import get_logger
from perfcalc.performance.bfl_check import balanced_field_note
from perfcalc.performance.corrections import (
    apply_factors_landing,
    apply_factors_takeoff,
    collect_factors,
)
from perfcalc.performance.models import (
    AircraftLimits,
    CalculationRequest,
    ClimbPerformance,
    LimitingFactor,
    PerformanceResult,
    PerformanceWarning,
    Phase,
    SurfaceCondition,
    TakeoffDistances,
    WarningSeverity,
)
from perfcalc.performance.settings import CalculatorSettings
from perfcalc.performance.validation import ValidationService

TAKEOFF_SPEEDS = ("v1_kt", "vr_kt", "v2_kt")
LANDING_SPEEDS = ("vref_kt",)


class CalculationStage(Enum):
    """Pipeline stages, in execution order."""

    VALIDATE_INPUTS = "validate_inputs"
    FETCH_LIMITS = "fetch_limits"
    VALIDATE_LIMITS = "validate_limits"
    V_SPEEDS = "v_speeds"
    BASE_METRICS = "base_metrics"
    FETCH_CORRECTIONS = "fetch_corrections"
    APPLY_CORRECTIONS = "apply_corrections"
    DERIVE_WARNINGS = "derive_warnings"
    COMPLETE = "complete"

    @property
    def progress(self) -> float:
        """Fraction of the pipeline done once this stage completes."""
        stages = list(CalculationStage)
        return (stages.index(self) + 1) / len(stages)


@dataclass
class StageCompleted(Event):
    """Published each time a pipeline stage completes.

    Attributes:
        stage: The stage that completed.
        phase: Takeoff or landing.
        aircraft: Aircraft identifier.
        progress: Fraction of the pipeline done (1.0 at COMPLETE).
    """

    stage: CalculationStage = CalculationStage.VALIDATE_INPUTS
    phase: Phase = Phase.TAKEOFF
    aircraft: str = ""
    progress: float = 0.0


@dataclass(frozen=True)
class CalculationResult:
    """Either a PerformanceResult or the error that ended the calculation."""

    value: PerformanceResult | None = None
    error: PerformanceError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> PerformanceResult:
        """Return the value or raise the error."""
        if self.error is not None:
            raise self.error
        assert self.value is not None
        return self.value


class PerformanceDataSource(Protocol):
    """What the calculator needs from a data pack (reader or manager)."""

    def snapshot(self) -> Any:
        ...


class PerformanceCalculator:
    """Runs takeoff and landing calculations against one data pack source.

    Args:
        data_pack: DataPackReader or DataPackManager. The snapshot is taken
            once at the start of each calculation.
        validation: Validation service; a default one when None.
        settings: Limiting-factor and warning thresholds.
        event_bus: Receives StageCompleted events; none are published when None.
        logger: Logger for the pipeline; the module logger when None.

    Examples:
        >>> calculator = PerformanceCalculator(pack, event_bus=bus)
        >>> result = calculator.calculate_takeoff(request).unwrap()
        >>> round(result.takeoff.todr_m)
        1025
    """

    def __init__(
        self,
        data_pack: PerformanceDataSource,
        validation: ValidationService | None = None,
        settings: CalculatorSettings | None = None,
        event_bus: EventBus | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._data_pack = data_pack
        self.validation = validation or ValidationService()
        self.settings = settings or CalculatorSettings()
        self._event_bus = event_bus
        self._logger = logger or get_logger(__name__)

    def calculate(self, request: CalculationRequest) -> CalculationResult:
        """Dispatch on the request phase."""
        if request.phase is Phase.TAKEOFF:
            return self.calculate_takeoff(request)
        return self.calculate_landing(request)

    def calculate_takeoff(self, request: CalculationRequest) -> CalculationResult:
        """Certified takeoff distances, speeds and climb gradient."""
        return self._run(request, Phase.TAKEOFF)

    def calculate_landing(self, request: CalculationRequest) -> CalculationResult:
        """Certified landing distance and reference speed."""
        return self._run(request, Phase.LANDING)

    def _run(self, request: CalculationRequest, phase: Phase) -> CalculationResult:
        if request.phase is not phase:
            return CalculationResult(
                error=ValidationError(
                    "phase", f"Expected a {phase.value} request, got {request.phase.value}"
                )
            )
        try:
            result = self._pipeline(request)
        except PerformanceError as e:
            self._logger.info("%s calculation for %s failed: %s", phase.value, request.aircraft, e)
            return CalculationResult(error=e)
        except Exception as e:
            self._logger.exception(
                "Unexpected error in %s calculation for %s", phase.value, request.aircraft
            )
            failure = CalculationFailed(f"{type(e).__name__}: {e}")
            failure.__cause__ = e
            return CalculationResult(error=failure)
        return CalculationResult(value=result)

    def _pipeline(self, request: CalculationRequest) -> PerformanceResult:
        pack = self._data_pack.snapshot()
        phase = request.phase
        cond = request.conditions
        cfg = request.configuration

        findings = self.validation.validate_request(request)
        findings += self.validation.validate_consistency(request)
        self.validation.raise_for_errors(findings)
        self._stage_done(CalculationStage.VALIDATE_INPUTS, request)

        limits = pack.limits(request.aircraft)
        self._stage_done(CalculationStage.FETCH_LIMITS, request)

        limit_findings = self.validation.validate_against_limits(request, limits)
        for finding in limit_findings:
            if finding.is_blocking:
                raise OutOfCertifiedEnvelope(
                    finding.field, finding.value, finding.valid_range, f"limits[{request.aircraft}]"
                )
        findings += limit_findings
        self._stage_done(CalculationStage.VALIDATE_LIMITS, request)

        required = TAKEOFF_SPEEDS if phase is Phase.TAKEOFF else LANDING_SPEEDS
        v_speeds = pack.v_speeds(request.aircraft, request.weight_kg, cfg.flap_setting, required)
        self._stage_done(CalculationStage.V_SPEEDS, request)

        if phase is Phase.TAKEOFF:
            raw = pack.takeoff_metrics(
                request.aircraft,
                request.weight_kg,
                cond.pressure_altitude_m,
                cond.temperature_c,
                cfg.flap_setting,
                cfg.bleeds_on,
                cfg.anti_ice_on,
            )
        else:
            raw = pack.landing_metrics(
                request.aircraft,
                request.weight_kg,
                cond.pressure_altitude_m,
                cond.temperature_c,
                cfg.flap_setting,
                cfg.anti_ice_on,
            )
        self._stage_done(CalculationStage.BASE_METRICS, request)

        factors = collect_factors(
            phase,
            cond.headwind_ms,
            cond.runway_slope_pct,
            cond.surface.is_wet,
            pack.corrections(request.aircraft),
        )
        self._stage_done(CalculationStage.FETCH_CORRECTIONS, request)

        takeoff = climb = ldr = None
        if phase is Phase.TAKEOFF:
            corrected = apply_factors_takeoff(raw["todr_m"], raw["asdr_m"], raw["bfl_m"], factors)
            takeoff = TakeoffDistances(corrected.todr_m, corrected.asdr_m, corrected.bfl_m)
            climb = ClimbPerformance(raw["oei_net_climb_pct"])
            worst = takeoff.worst_m
        else:
            ldr = apply_factors_landing(raw["ldr_m"], factors).ldr_m
            worst = ldr
        self._stage_done(CalculationStage.APPLY_CORRECTIONS, request)

        warnings = self.derive_warnings(request, worst, takeoff)
        limiting = self.limiting_factor(request, worst, limits)
        self._stage_done(CalculationStage.DERIVE_WARNINGS, request)

        result = PerformanceResult(
            phase=phase,
            aircraft=request.aircraft,
            data_pack_version=pack.version(),
            v_speeds=v_speeds,
            limiting_factor=limiting,
            takeoff=takeoff,
            ldr_m=ldr,
            climb=climb,
            corrections=factors.applied,
            correction_factor=factors.combined,
            warnings=tuple(warnings),
            findings=tuple((f.field, f.message, f.severity.value) for f in findings),
        )
        self._logger.debug(
            "%s %s: worst distance %.1f m, limiting %s, %d warnings",
            request.aircraft,
            phase.value,
            worst,
            limiting.value,
            len(warnings),
        )
        self._stage_done(CalculationStage.COMPLETE, request)
        return result

    def limiting_factor(
        self, request: CalculationRequest, worst_distance_m: float, limits: AircraftLimits
    ) -> LimitingFactor:
        """First applicable of runway length, weight, temperature, wind."""
        s = self.settings
        if request.phase is Phase.TAKEOFF:
            runway_fraction = s.runway_fraction_takeoff
        else:
            runway_fraction = s.runway_fraction_landing
        if worst_distance_m >= request.runway_length_m * runway_fraction:
            return LimitingFactor.RUNWAY_LENGTH
        if request.weight_kg >= limits.max_weight_kg(request.phase) * s.weight_fraction:
            return LimitingFactor.WEIGHT
        if request.conditions.temperature_c >= limits.max_temperature_c * s.temperature_fraction:
            return LimitingFactor.TEMPERATURE
        if request.conditions.headwind_ms < s.tailwind_limit_headwind_ms:
            return LimitingFactor.WIND
        return LimitingFactor.NONE

    def derive_warnings(
        self,
        request: CalculationRequest,
        worst_distance_m: float,
        takeoff: TakeoffDistances | None = None,
    ) -> list[PerformanceWarning]:
        """Ordered advisories for a corrected result."""
        s = self.settings
        cond = request.conditions
        warnings = []

        margin_pct = (request.runway_length_m - worst_distance_m) / request.runway_length_m * 100.0
        if request.phase is Phase.TAKEOFF:
            critical, caution = s.takeoff_margin_critical * 100.0, s.takeoff_margin_caution * 100.0
            label, parameter = "Runway margin", "runway_margin"
            advice = (
                "Consider reducing weight or selecting a longer runway",
                "Monitor conditions closely",
            )
        else:
            critical, caution = s.landing_margin_critical * 100.0, s.landing_margin_caution * 100.0
            label, parameter = "Landing runway margin", "landing_margin"
            advice = (
                "Consider alternate airport or reduce landing weight",
                "Monitor approach carefully",
            )
        if margin_pct < critical:
            warnings.append(
                PerformanceWarning(
                    WarningSeverity.CRITICAL,
                    f"{label} is critically low ({margin_pct:.1f}%)",
                    parameter,
                    advice[0],
                )
            )
        elif margin_pct < caution:
            warnings.append(
                PerformanceWarning(
                    WarningSeverity.CAUTION,
                    f"{label} is low ({margin_pct:.1f}%)",
                    parameter,
                    advice[1],
                )
            )

        if cond.density_altitude_m > cond.pressure_altitude_m + s.high_density_altitude_margin_m:
            warnings.append(
                PerformanceWarning(
                    WarningSeverity.WARNING,
                    "High density altitude reduces performance",
                    "density_altitude",
                    "Consider reducing weight or waiting for cooler conditions",
                )
            )

        if cond.headwind_ms < s.tailwind_warning_headwind_ms:
            warnings.append(
                PerformanceWarning(
                    WarningSeverity.CAUTION,
                    f"Tailwind increases {request.phase.value} distance",
                    "tailwind",
                    "Consider using opposite runway if available",
                )
            )

        if cond.surface is not SurfaceCondition.DRY:
            warnings.append(
                PerformanceWarning(
                    WarningSeverity.WARNING,
                    "Wet/contaminated runway increases stopping distance",
                    "surface_condition",
                    "Ensure adequate runway length and braking action",
                )
            )

        if takeoff is not None:
            note = balanced_field_note(takeoff.todr_m, takeoff.asdr_m)
            if note is not None:
                warnings.append(PerformanceWarning(WarningSeverity.INFO, note, "balanced_field"))

        return warnings

    def _stage_done(self, stage: CalculationStage, request: CalculationRequest) -> None:
        if self._event_bus is None:
            return
        self._event_bus.publish(
            StageCompleted(
                stage=stage,
                phase=request.phase,
                aircraft=request.aircraft,
                progress=stage.progress,
            )
        )
