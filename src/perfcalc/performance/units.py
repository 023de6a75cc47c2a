"""Unit conversions and standard-atmosphere helpers.

The calculation core works in SI units (kg, m, m/s, C) except for speeds,
which stay in knots as published in the flight manual.
"""

import math

KT_TO_MS = 0.514444
M_TO_FT = 3.28084
KG_TO_LB = 2.2046226218

ISA_SEA_LEVEL_TEMP_C = 15.0
ISA_LAPSE_RATE_C_PER_M = 0.0065
# Density-altitude rule of thumb: 120 ft per degree of ISA deviation.
DENSITY_ALTITUDE_M_PER_C = 36.6


def kt_to_ms(knots: float) -> float:
    return knots * KT_TO_MS


def ms_to_kt(metres_per_second: float) -> float:
    return metres_per_second / KT_TO_MS


def m_to_ft(metres: float) -> float:
    return metres * M_TO_FT


def ft_to_m(feet: float) -> float:
    return feet / M_TO_FT


def kg_to_lb(kilograms: float) -> float:
    return kilograms * KG_TO_LB


def lb_to_kg(pounds: float) -> float:
    return pounds / KG_TO_LB


def isa_temperature_c(pressure_altitude_m: float) -> float:
    """Standard temperature at a pressure altitude (troposphere only)."""
    return ISA_SEA_LEVEL_TEMP_C - ISA_LAPSE_RATE_C_PER_M * pressure_altitude_m


def isa_deviation_c(pressure_altitude_m: float, temperature_c: float) -> float:
    return temperature_c - isa_temperature_c(pressure_altitude_m)


def density_altitude_m(pressure_altitude_m: float, temperature_c: float) -> float:
    """Approximate density altitude.

    Args:
        pressure_altitude_m: Pressure altitude (m)
        temperature_c: Outside air temperature (C)

    Returns:
        Density altitude (m)

    Examples:
        >>> round(density_altitude_m(0.0, 15.0), 1)
        0.0
        >>> round(density_altitude_m(0.0, 25.0), 1)
        366.0
    """
    return pressure_altitude_m + DENSITY_ALTITUDE_M_PER_C * isa_deviation_c(
        pressure_altitude_m, temperature_c
    )


def wind_components(
    runway_heading_deg: float, wind_direction_deg: float, wind_speed_kt: float
) -> tuple[float, float]:
    """Split a reported wind into runway components.

    Args:
        runway_heading_deg: Runway magnetic heading (degrees)
        wind_direction_deg: Direction the wind blows from (degrees)
        wind_speed_kt: Wind speed (kt)

    Returns:
        (headwind_ms, crosswind_ms). Headwind is negative for a tailwind;
        crosswind is positive from the right.
    """
    angle = math.radians(wind_direction_deg - runway_heading_deg)
    speed_ms = kt_to_ms(wind_speed_kt)
    return speed_ms * math.cos(angle), speed_ms * math.sin(angle)


def angular_difference_deg(a: float, b: float) -> float:
    """Smallest absolute difference between two bearings, in [0, 180]."""
    diff = abs(a - b) % 360.0
    return 360.0 - diff if diff > 180.0 else diff
