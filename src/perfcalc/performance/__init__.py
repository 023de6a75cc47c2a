"""Certified takeoff and landing performance.

This package provides:
- Two-stage interpolation over certified performance grids
- The ordered wind/slope/wet correction chain
- Obstacle clearance, company policy and balanced-field checks
- Request validation
- The calculation pipeline tying them together
"""

from perfcalc.performance.bfl_check import balanced_field_note
from perfcalc.performance.calculator import (
    CalculationResult,
    CalculationStage,
    PerformanceCalculator,
    StageCompleted,
)
from perfcalc.performance.company_limits import (
    MappingPolicySource,
    PolicyValue,
    PolicyValueKind,
    evaluate_company_limits,
)
from perfcalc.performance.obstacles import Obstacle, evaluate_obstacles
from perfcalc.performance.validation import ValidationService

__all__ = [
    "CalculationResult",
    "CalculationStage",
    "MappingPolicySource",
    "Obstacle",
    "PerformanceCalculator",
    "PolicyValue",
    "PolicyValueKind",
    "StageCompleted",
    "ValidationService",
    "balanced_field_note",
    "evaluate_company_limits",
    "evaluate_obstacles",
]
