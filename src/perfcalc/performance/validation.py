"""Request validation.

Two passes run before any table lookup. The first checks a request for
basic sanity independent of aircraft type. The second checks it against the
aircraft's static envelope limits. Both return severity-tagged findings;
only ERROR findings block a calculation.

Typical usage example:
    service = ValidationService()
    findings = service.validate_request(request)
    service.raise_for_errors(findings)
"""

import math
from collections.abc import Iterable

from perfcalc.core.errors import Severity, ValidationError, ValidationFinding
from perfcalc.core.logging_system import get_logger
from perfcalc.performance import units
from perfcalc.performance.models import AircraftLimits, CalculationRequest, Phase, SurfaceCondition
from perfcalc.performance.settings import ValidationSettings

logger = get_logger(__name__)


class ValidationService:
    """Field-, consistency- and limit-level checks on calculation requests.

    Args:
        settings: Sanity bounds; defaults apply when None.
    """

    def __init__(self, settings: ValidationSettings | None = None) -> None:
        self.settings = settings or ValidationSettings()

    def validate_request(self, request: CalculationRequest) -> list[ValidationFinding]:
        """Basic sanity checks.

        Args:
            request: Calculation request.

        Returns:
            Findings in check order; empty when the request is clean.
        """
        s = self.settings
        findings = []

        if not math.isfinite(request.weight_kg):
            findings.append(_error("weight", "Weight must be a finite number", request.weight_kg))
        elif request.weight_kg <= 0:
            findings.append(_error("weight", "Weight must be greater than zero", request.weight_kg))
        elif request.weight_kg > s.max_weight_kg:
            findings.append(
                _warning(
                    "weight",
                    "Weight exceeds reasonable limits for aircraft type",
                    request.weight_kg,
                )
            )

        min_runway = (
            s.min_runway_takeoff_m if request.phase is Phase.TAKEOFF else s.min_runway_landing_m
        )
        if not math.isfinite(request.runway_length_m):
            findings.append(
                _error(
                    "runway_length",
                    "Runway length must be a finite number",
                    request.runway_length_m,
                )
            )
        elif request.runway_length_m <= 0:
            findings.append(
                _error(
                    "runway_length",
                    "Runway length must be greater than zero",
                    request.runway_length_m,
                )
            )
        elif request.runway_length_m < min_runway:
            findings.append(
                _warning(
                    "runway_length",
                    f"Runway length is very short for {request.phase.value}",
                    request.runway_length_m,
                )
            )

        findings.extend(self._validate_conditions(request))
        return findings

    def _validate_conditions(self, request: CalculationRequest) -> list[ValidationFinding]:
        s = self.settings
        cond = request.conditions
        findings = []

        for field, label, value in (
            ("headwind", "Headwind component", cond.headwind_ms),
            ("crosswind", "Crosswind component", cond.crosswind_ms),
            ("runway_slope", "Runway slope", cond.runway_slope_pct),
        ):
            if not math.isfinite(value):
                findings.append(_error(field, f"{label} must be a finite number", value))

        if not s.min_temperature_c <= cond.temperature_c <= s.max_temperature_c:
            findings.append(
                ValidationFinding(
                    "temperature",
                    f"Temperature is outside reasonable operating range "
                    f"({s.min_temperature_c:g}C to {s.max_temperature_c:g}C)",
                    Severity.ERROR,
                    cond.temperature_c,
                    (s.min_temperature_c, s.max_temperature_c),
                )
            )
        if cond.temperature_c > s.high_temperature_warning_c:
            findings.append(
                _warning(
                    "temperature",
                    "High temperature may significantly affect performance",
                    cond.temperature_c,
                )
            )

        if not s.min_pressure_altitude_m <= cond.pressure_altitude_m <= s.max_pressure_altitude_m:
            findings.append(
                ValidationFinding(
                    "pressure_altitude",
                    f"Pressure altitude is outside reasonable range "
                    f"({s.min_pressure_altitude_m:g}m to {s.max_pressure_altitude_m:g}m)",
                    Severity.ERROR,
                    cond.pressure_altitude_m,
                    (s.min_pressure_altitude_m, s.max_pressure_altitude_m),
                )
            )

        if cond.density_altitude_m > cond.pressure_altitude_m + s.max_density_altitude_excess_m:
            findings.append(
                _warning(
                    "density_altitude",
                    "Very high density altitude will significantly reduce performance",
                    cond.density_altitude_m,
                )
            )

        if cond.total_wind_kt > s.max_wind_kt:
            findings.append(
                _warning(
                    "wind_speed", "Wind speed exceeds typical operating limits", cond.total_wind_kt
                )
            )
        if cond.tailwind_kt > s.max_tailwind_kt:
            findings.append(
                _warning("tailwind", "Tailwind exceeds typical operating limits", cond.tailwind_kt)
            )
        if cond.crosswind_kt > s.max_crosswind_kt:
            findings.append(
                _warning(
                    "crosswind", "Crosswind exceeds typical operating limits", cond.crosswind_kt
                )
            )
        if abs(cond.runway_slope_pct) > s.max_slope_pct:
            findings.append(
                _warning(
                    "runway_slope",
                    "Runway slope exceeds typical operating limits",
                    cond.runway_slope_pct,
                )
            )

        if request.phase is Phase.LANDING and cond.surface is SurfaceCondition.ICY:
            findings.append(
                _warning("surface_condition", "Icy runway conditions require extreme caution")
            )
        return findings

    def validate_range(
        self,
        value: float,
        low: float,
        high: float,
        field: str,
        allowable_exceedance_pct: float = 0.0,
    ) -> ValidationFinding | None:
        """Check a value against [low, high].

        Args:
            value: Value to check.
            low: Lower bound (inclusive).
            high: Upper bound (inclusive).
            field: Field name for the finding.
            allowable_exceedance_pct: Extension of the range on both sides,
                as a percentage of its width, that yields a warning instead
                of an error.

        Returns:
            None inside the range, a WARNING inside the exceedance band,
            an ERROR otherwise.
        """
        if low <= value <= high:
            return None

        slack = (high - low) * allowable_exceedance_pct / 100.0
        if low - slack <= value <= high + slack:
            return ValidationFinding(
                field,
                f"{field} is outside normal range but within acceptable limits",
                Severity.WARNING,
                value,
                (low, high),
            )
        return ValidationFinding(
            field,
            f"{field} is outside acceptable range ({low:g}...{high:g})",
            Severity.ERROR,
            value,
            (low, high),
        )

    def validate_against_limits(
        self, request: CalculationRequest, limits: AircraftLimits
    ) -> list[ValidationFinding]:
        """Check a request against the aircraft's static envelope.

        Weight is checked against the phase's maximum; temperature accepts
        the configured percentage exceedance as a warning.
        """
        cond = request.conditions
        checks = (
            (
                request.weight_kg,
                limits.min_operating_weight_kg,
                limits.max_weight_kg(request.phase),
                "weight",
                0.0,
            ),
            (
                cond.temperature_c,
                limits.min_temperature_c,
                limits.max_temperature_c,
                "temperature",
                self.settings.temperature_allowable_exceedance_pct,
            ),
            (
                cond.pressure_altitude_m,
                limits.min_pressure_altitude_m,
                limits.max_pressure_altitude_m,
                "pressure_altitude",
                0.0,
            ),
            (cond.total_wind_kt, 0.0, limits.max_wind_kt, "wind_speed", 0.0),
            (cond.tailwind_kt, 0.0, limits.max_tailwind_kt, "tailwind", 0.0),
            (
                cond.runway_slope_pct,
                -limits.max_slope_pct,
                limits.max_slope_pct,
                "runway_slope",
                0.0,
            ),
        )
        findings = []
        for value, low, high, name, exceedance in checks:
            finding = self.validate_range(value, low, high, name, exceedance)
            if finding is not None:
                findings.append(finding)
        return findings

    def validate_consistency(self, request: CalculationRequest) -> list[ValidationFinding]:
        """Cross-field plausibility warnings."""
        findings = []
        if request.runway_length_m < estimate_minimum_runway_m(request.weight_kg):
            findings.append(
                _warning(
                    "runway_length",
                    "Runway may be too short for current weight",
                    request.runway_length_m,
                )
            )

        deviation = units.isa_deviation_c(
            request.conditions.pressure_altitude_m, request.conditions.temperature_c
        )
        if abs(deviation) > self.settings.max_isa_deviation_c:
            findings.append(
                _warning(
                    "temperature",
                    "Temperature significantly deviates from ISA for this altitude",
                    request.conditions.temperature_c,
                )
            )
        return findings

    @staticmethod
    def raise_for_errors(findings: Iterable[ValidationFinding]) -> None:
        """Raise ValidationError for the first blocking finding.

        Raises:
            ValidationError: Carrying every finding, if any is an ERROR.
        """
        findings = list(findings)
        for finding in findings:
            if finding.is_blocking:
                logger.info("Validation failed on %s: %s", finding.field, finding.message)
                raise ValidationError(finding.field, finding.message, Severity.ERROR, findings)


def estimate_minimum_runway_m(weight_kg: float) -> float:
    """Rough weight-based runway estimate, normalised around 4000 kg."""
    return 1000.0 * (1.0 + (weight_kg - 4000.0) / 4000.0 * 0.5)


def _error(field: str, message: str, value: float | None = None) -> ValidationFinding:
    return ValidationFinding(field, message, Severity.ERROR, value)


def _warning(field: str, message: str, value: float | None = None) -> ValidationFinding:
    return ValidationFinding(field, message, Severity.WARNING, value)
