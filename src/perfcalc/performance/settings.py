"""Tunable thresholds for validation and result derivation.

Defaults reproduce the certified operating rules. A YAML file can override
any of them:

    calculator:
      limiting_factor:
        runway_fraction_takeoff: 0.9
      warnings:
        takeoff_margin_critical: 0.10
      interpolation:
        weight_tolerance_kg: 0.1
    validation:
      max_weight_kg: 50000
    company_policy:
      min_rwy_margin_m: 0
"""

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from perfcalc.core.config import ConfigError, ConfigLoader
from perfcalc.performance.company_limits import MappingPolicySource
from perfcalc.performance.grid import AxisTolerance


@dataclass(frozen=True)
class CalculatorSettings:
    """Limiting-factor, warning and interpolation thresholds.

    Fractions are of the runway length, maximum weight or maximum
    temperature. Wind thresholds are headwind components in m/s.
    """

    runway_fraction_takeoff: float = 0.90
    runway_fraction_landing: float = 0.85
    weight_fraction: float = 0.95
    temperature_fraction: float = 0.90
    tailwind_limit_headwind_ms: float = -2.5

    takeoff_margin_critical: float = 0.10
    takeoff_margin_caution: float = 0.20
    landing_margin_critical: float = 0.15
    landing_margin_caution: float = 0.30
    high_density_altitude_margin_m: float = 500.0
    tailwind_warning_headwind_ms: float = -2.5

    tolerance: AxisTolerance = field(default_factory=AxisTolerance)

    @classmethod
    def from_config(cls, config: ConfigLoader) -> "CalculatorSettings":
        """Read the ``calculator`` section.

        Raises:
            ConfigError: If a key is unknown or a value is not numeric.
        """
        settings = cls()
        limiting = config.get("calculator.limiting_factor", {}) or {}
        warnings = config.get("calculator.warnings", {}) or {}
        interpolation = config.get("calculator.interpolation", {}) or {}

        overrides = {
            **_numeric(limiting, "calculator.limiting_factor"),
            **_numeric(warnings, "calculator.warnings"),
        }
        _check_keys(overrides, cls, "calculator", exclude=frozenset({"tolerance"}))
        settings = replace(settings, **overrides)

        tolerance_keys = {
            "weight_tolerance_kg": "weight_kg",
            "pressure_altitude_tolerance_m": "pressure_altitude_m",
            "temperature_tolerance_c": "temperature_c",
        }
        tolerance_values = _numeric(interpolation, "calculator.interpolation")
        unknown = set(tolerance_values) - set(tolerance_keys)
        if unknown:
            raise ConfigError(
                f"Unknown calculator.interpolation keys: {', '.join(sorted(unknown))}"
            )
        if tolerance_values:
            tolerance = replace(
                settings.tolerance,
                **{tolerance_keys[k]: v for k, v in tolerance_values.items()},
            )
            settings = replace(settings, tolerance=tolerance)
        return settings


@dataclass(frozen=True)
class ValidationSettings:
    """Sanity bounds for request validation."""

    max_weight_kg: float = 50000.0
    min_runway_takeoff_m: float = 500.0
    min_runway_landing_m: float = 300.0
    min_temperature_c: float = -60.0
    max_temperature_c: float = 60.0
    high_temperature_warning_c: float = 50.0
    min_pressure_altitude_m: float = -1000.0
    max_pressure_altitude_m: float = 15000.0
    max_density_altitude_excess_m: float = 3000.0
    max_wind_kt: float = 50.0
    max_tailwind_kt: float = 10.0
    max_crosswind_kt: float = 25.0
    max_slope_pct: float = 5.0
    temperature_allowable_exceedance_pct: float = 5.0
    max_isa_deviation_c: float = 30.0

    @classmethod
    def from_config(cls, config: ConfigLoader) -> "ValidationSettings":
        """Read the ``validation`` section.

        Raises:
            ConfigError: If a key is unknown or a value is not numeric.
        """
        overrides = _numeric(config.get("validation", {}) or {}, "validation")
        _check_keys(overrides, cls, "validation")
        return replace(cls(), **overrides)


@dataclass(frozen=True)
class Settings:
    """Everything a calculator reads from configuration."""

    calculator: CalculatorSettings = field(default_factory=CalculatorSettings)
    validation: ValidationSettings = field(default_factory=ValidationSettings)
    company_policy: MappingPolicySource = field(default_factory=MappingPolicySource)


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file, or return defaults when path is None.

    Raises:
        ConfigError: If the file cannot be read or holds invalid values.
    """
    if path is None:
        return Settings()
    config = ConfigLoader.load(path)
    try:
        policy = MappingPolicySource.from_config(config.get("company_policy", {}) or {})
    except ValueError as e:
        raise ConfigError(str(e)) from e
    return Settings(
        calculator=CalculatorSettings.from_config(config),
        validation=ValidationSettings.from_config(config),
        company_policy=policy,
    )


def _numeric(section: dict[str, Any], name: str) -> dict[str, float]:
    if not isinstance(section, dict):
        raise ConfigError(f"Configuration key is not a section: {name}")
    values = {}
    for key, value in section.items():
        try:
            values[key] = float(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"{name}.{key} must be numeric, got {value!r}") from e
    return values


def _check_keys(
    overrides: dict[str, float], cls: type, name: str, exclude: frozenset[str] = frozenset()
) -> None:
    known = {f.name for f in fields(cls)} - exclude
    unknown = set(overrides) - known
    if unknown:
        raise ConfigError(f"Unknown {name} keys: {', '.join(sorted(unknown))}")
