"""Request, limit and result types for takeoff and landing calculations.

All quantities are SI except speeds in knots: weights in kg, distances and
altitudes in metres, temperatures in degrees C, wind components in m/s.
"""

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from perfcalc.core.errors import DataUnavailable
from perfcalc.performance import units


class Phase(Enum):
    """Flight phase a calculation is for."""

    TAKEOFF = "takeoff"
    LANDING = "landing"


class SurfaceCondition(Enum):
    """Runway surface condition."""

    DRY = "dry"
    WET = "wet"
    CONTAMINATED = "contaminated"
    ICY = "icy"

    @property
    def is_wet(self) -> bool:
        """Whether the wet-surface correction applies."""
        return self is not SurfaceCondition.DRY


class LimitingFactor(Enum):
    """The single most constraining condition of a calculation."""

    RUNWAY_LENGTH = "runway_length"
    WEIGHT = "weight"
    TEMPERATURE = "temperature"
    WIND = "wind"
    NONE = "none"

    @property
    def display_name(self) -> str:
        return {
            LimitingFactor.RUNWAY_LENGTH: "Runway Length",
            LimitingFactor.WEIGHT: "Weight",
            LimitingFactor.TEMPERATURE: "Temperature",
            LimitingFactor.WIND: "Wind",
            LimitingFactor.NONE: "No Limit",
        }[self]


class WarningSeverity(Enum):
    """Severity of a result warning."""

    INFO = "info"
    WARNING = "warning"
    CAUTION = "caution"
    CRITICAL = "critical"


@dataclass(frozen=True)
class EnvironmentalConditions:
    """Ambient and runway conditions for one calculation.

    Attributes:
        temperature_c: Outside air temperature (C)
        pressure_altitude_m: Pressure altitude (m)
        headwind_ms: Headwind component (m/s), negative for tailwind
        crosswind_ms: Crosswind component (m/s)
        runway_slope_pct: Runway slope (%), positive uphill
        surface: Runway surface condition
    """

    temperature_c: float
    pressure_altitude_m: float
    headwind_ms: float = 0.0
    crosswind_ms: float = 0.0
    runway_slope_pct: float = 0.0
    surface: SurfaceCondition = SurfaceCondition.DRY

    @property
    def density_altitude_m(self) -> float:
        return units.density_altitude_m(self.pressure_altitude_m, self.temperature_c)

    @property
    def tailwind_kt(self) -> float:
        """Tailwind in knots, zero when the component is a headwind."""
        return units.ms_to_kt(-self.headwind_ms) if self.headwind_ms < 0 else 0.0

    @property
    def crosswind_kt(self) -> float:
        return units.ms_to_kt(abs(self.crosswind_ms))

    @property
    def total_wind_kt(self) -> float:
        return units.ms_to_kt((self.headwind_ms**2 + self.crosswind_ms**2) ** 0.5)


@dataclass(frozen=True)
class FlightConfiguration:
    """Aircraft configuration selecting the certified table cell."""

    flap_setting: int
    bleeds_on: bool = True
    anti_ice_on: bool = False


@dataclass(frozen=True)
class CalculationRequest:
    """A single takeoff or landing calculation request.

    Examples:
        >>> request = CalculationRequest(
        ...     aircraft="B1900D",
        ...     phase=Phase.TAKEOFF,
        ...     weight_kg=6500.0,
        ...     conditions=EnvironmentalConditions(temperature_c=10.0, pressure_altitude_m=500.0),
        ...     configuration=FlightConfiguration(flap_setting=0),
        ...     runway_length_m=1800.0,
        ... )
    """

    aircraft: str
    phase: Phase
    weight_kg: float
    conditions: EnvironmentalConditions
    configuration: FlightConfiguration
    runway_length_m: float

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CalculationRequest":
        """Build a request from plain data (YAML document, CLI input).

        Expected keys: aircraft, phase, weight_kg, runway_length_m,
        conditions{temperature_c, pressure_altitude_m, headwind_ms,
        crosswind_ms, runway_slope_pct, surface}, configuration{flap_setting,
        bleeds_on, anti_ice_on}.

        Raises:
            KeyError: If a required key is missing.
            ValueError: If an enum value is unknown.
        """
        cond = data["conditions"]
        cfg = data.get("configuration", {})
        return cls(
            aircraft=str(data["aircraft"]),
            phase=Phase(data["phase"]),
            weight_kg=float(data["weight_kg"]),
            conditions=EnvironmentalConditions(
                temperature_c=float(cond["temperature_c"]),
                pressure_altitude_m=float(cond["pressure_altitude_m"]),
                headwind_ms=float(cond.get("headwind_ms", 0.0)),
                crosswind_ms=float(cond.get("crosswind_ms", 0.0)),
                runway_slope_pct=float(cond.get("runway_slope_pct", 0.0)),
                surface=SurfaceCondition(cond.get("surface", "dry")),
            ),
            configuration=FlightConfiguration(
                flap_setting=int(cfg.get("flap_setting", 0)),
                bleeds_on=bool(cfg.get("bleeds_on", True)),
                anti_ice_on=bool(cfg.get("anti_ice_on", False)),
            ),
            runway_length_m=float(data["runway_length_m"]),
        )


@dataclass(frozen=True)
class AircraftLimits:
    """Static envelope bounds for one aircraft, independent of grid content."""

    aircraft: str
    max_takeoff_weight_kg: float
    max_landing_weight_kg: float
    min_operating_weight_kg: float
    min_pressure_altitude_m: float
    max_pressure_altitude_m: float
    min_temperature_c: float
    max_temperature_c: float
    max_wind_kt: float
    max_tailwind_kt: float
    max_slope_pct: float

    KEYS = (
        "max_takeoff_weight_kg",
        "max_landing_weight_kg",
        "min_operating_weight_kg",
        "min_pressure_altitude_m",
        "max_pressure_altitude_m",
        "min_temperature_c",
        "max_temperature_c",
        "max_wind_kt",
        "max_tailwind_kt",
        "max_slope_pct",
    )

    @classmethod
    def from_mapping(cls, aircraft: str, values: Mapping[str, float]) -> "AircraftLimits":
        """Build limits from data-pack key/value rows.

        Raises:
            DataUnavailable: If any bound is missing.
        """
        missing = [key for key in cls.KEYS if key not in values]
        if missing:
            raise DataUnavailable(f"limits[{aircraft}]: missing {', '.join(missing)}")
        return cls(aircraft=aircraft, **{key: float(values[key]) for key in cls.KEYS})

    def max_weight_kg(self, phase: Phase) -> float:
        """Maximum certified weight for the phase."""
        if phase is Phase.TAKEOFF:
            return self.max_takeoff_weight_kg
        return self.max_landing_weight_kg


@dataclass(frozen=True)
class VSpeeds:
    """Reference speeds (KIAS). Fields not certified for the phase may be None."""

    v1_kt: float | None = None
    vr_kt: float | None = None
    v2_kt: float | None = None
    vref_kt: float | None = None


@dataclass(frozen=True)
class TakeoffDistances:
    """Corrected takeoff distances (m)."""

    todr_m: float
    asdr_m: float
    bfl_m: float

    @property
    def worst_m(self) -> float:
        return max(self.todr_m, self.asdr_m, self.bfl_m)


@dataclass(frozen=True)
class ClimbPerformance:
    """Second-segment climb data from the takeoff table."""

    oei_net_climb_gradient_pct: float


@dataclass(frozen=True)
class PerformanceWarning:
    """A human-readable advisory attached to a result."""

    severity: WarningSeverity
    message: str
    parameter: str | None = None
    recommendation: str | None = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class PerformanceResult:
    """Outcome of a successful calculation.

    Attributes:
        phase: Takeoff or landing
        aircraft: Aircraft identifier
        data_pack_version: Version of the pack the numbers came from
        v_speeds: Reference speeds
        takeoff: Corrected TODR/ASDR/BFL (takeoff only)
        ldr_m: Corrected landing distance (landing only)
        climb: OEI climb data (takeoff only)
        corrections: Applied correction descriptions, in application order
        correction_factor: Combined multiplicative correction factor
        limiting_factor: Most constraining condition
        warnings: Ordered advisories
        findings: Non-blocking validation findings (field, message, severity)
    """

    phase: Phase
    aircraft: str
    data_pack_version: str
    v_speeds: VSpeeds
    limiting_factor: LimitingFactor
    takeoff: TakeoffDistances | None = None
    ldr_m: float | None = None
    climb: ClimbPerformance | None = None
    corrections: tuple[str, ...] = ()
    correction_factor: float = 1.0
    warnings: tuple[PerformanceWarning, ...] = ()
    findings: tuple[tuple[str, str, str], ...] = field(default_factory=tuple)

    @property
    def worst_distance_m(self) -> float:
        if self.takeoff is not None:
            return self.takeoff.worst_m
        return self.ldr_m or 0.0

    def to_dict(self) -> dict[str, Any]:
        """Plain-data view for rendering or persistence."""
        data = asdict(self)
        data["phase"] = self.phase.value
        data["limiting_factor"] = self.limiting_factor.value
        data["warnings"] = [
            {**asdict(w), "severity": w.severity.value} for w in self.warnings
        ]
        data["corrections"] = list(self.corrections)
        data["findings"] = [list(f) for f in self.findings]
        return data
