"""Operator policy gate on top of certified distances.

Company policy adds an optional safety margin and a wet-surface uplift to
the certified distances, and can cap tailwind. Policy values are looked up
through a PolicySource; a missing value means the rule does not tighten
anything (zero margin, zero uplift, no tailwind cap).
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Protocol

from perfcalc.core.logging_system import get_logger

logger = get_logger(__name__)

MIN_RUNWAY_MARGIN_KEY = "min_rwy_margin_m"
MAX_TAILWIND_KEY = "max_tailwind_kt"
WET_UPLIFT_KEY = "wet_factor_extra_pct"


class PolicyValueKind(Enum):
    """Kinds of policy value."""

    THRESHOLD = "threshold"
    PERCENTAGE = "percentage"


@dataclass(frozen=True)
class PolicyValue:
    """A typed policy value.

    A THRESHOLD is an absolute quantity in the unit its key names (m, kt).
    A PERCENTAGE is stored in percent, so 15.0 means 15 %.
    """

    kind: PolicyValueKind
    value: float

    @classmethod
    def threshold(cls, value: float) -> "PolicyValue":
        return cls(PolicyValueKind.THRESHOLD, float(value))

    @classmethod
    def percentage(cls, value: float) -> "PolicyValue":
        return cls(PolicyValueKind.PERCENTAGE, float(value))

    @property
    def as_fraction(self) -> float:
        """Fractional form of a percentage (15 % -> 0.15).

        Raises:
            ValueError: If the value is a threshold.
        """
        if self.kind is not PolicyValueKind.PERCENTAGE:
            raise ValueError(f"Policy value {self.value} is a threshold, not a percentage")
        return self.value / 100.0

    @property
    def as_threshold(self) -> float:
        """Raises ValueError if the value is a percentage."""
        if self.kind is not PolicyValueKind.THRESHOLD:
            raise ValueError(f"Policy value {self.value}% is a percentage, not a threshold")
        return self.value


class PolicySource(Protocol):
    """Supplies company policy values by key."""

    def get(self, key: str) -> PolicyValue | None:
        ...


class MappingPolicySource:
    """Policy values held in memory.

    Built from YAML configuration, from the data pack's company_limits table,
    or directly in code.

    Examples:
        >>> source = MappingPolicySource.from_config({
        ...     "min_rwy_margin_m": 100,
        ...     "wet_factor_extra_pct": {"kind": "percentage", "value": 15},
        ... })
        >>> source.get("wet_factor_extra_pct").as_fraction
        0.15
    """

    def __init__(self, values: Mapping[str, PolicyValue] | None = None) -> None:
        self._values = MappingProxyType(dict(values or {}))

    def __len__(self) -> int:
        return len(self._values)

    def get(self, key: str) -> PolicyValue | None:
        return self._values.get(key)

    def keys(self) -> tuple[str, ...]:
        return tuple(self._values)

    @classmethod
    def from_config(cls, section: Mapping[str, Any] | None) -> "MappingPolicySource":
        """Build a source from a configuration section.

        Each entry is either ``{kind: threshold|percentage, value: x}`` or a
        bare number. Bare numbers under keys ending in ``_pct`` are
        percentages; all others are thresholds.

        Raises:
            ValueError: If a kind is unknown or a value is not numeric.
        """
        values = {}
        for key, raw in (section or {}).items():
            if isinstance(raw, Mapping):
                kind = PolicyValueKind(raw.get("kind", "threshold"))
                number = raw["value"]
            else:
                kind = (
                    PolicyValueKind.PERCENTAGE
                    if key.endswith("_pct")
                    else PolicyValueKind.THRESHOLD
                )
                number = raw
            try:
                values[key] = PolicyValue(kind, float(number))
            except (TypeError, ValueError) as e:
                raise ValueError(f"Invalid company policy value for {key}: {number!r}") from e
        return cls(values)


class LimitStatus(Enum):
    PASS = "PASS"
    FAIL = "FAIL"


@dataclass(frozen=True)
class CompanyLimitsResult:
    """Outcome of the policy gate.

    Attributes:
        status: PASS when no rule is breached
        violations: One message per breached rule, in evaluation order
    """

    status: LimitStatus
    violations: tuple[str, ...] = ()

    @property
    def meets(self) -> bool:
        return self.status is LimitStatus.PASS


def evaluate_company_limits(
    *,
    todr_m: float | None = None,
    asdr_m: float | None = None,
    ldr_m: float | None = None,
    tora_m: float | None = None,
    asda_m: float | None = None,
    lda_m: float | None = None,
    tailwind_kt: float = 0.0,
    is_wet: bool = False,
    policy: PolicySource | None = None,
) -> CompanyLimitsResult:
    """Check certified distances against declared distances under company policy.

    A distance rule is evaluated only when both the certified distance and
    its declared counterpart are given.

    Args:
        todr_m: Certified takeoff distance required (m)
        asdr_m: Certified accelerate-stop distance required (m)
        ldr_m: Certified landing distance required (m)
        tora_m: Takeoff run available (m)
        asda_m: Accelerate-stop distance available (m)
        lda_m: Landing distance available (m)
        tailwind_kt: Tailwind component (kt)
        is_wet: Whether the wet uplift applies
        policy: Policy value source; None means no company policy

    Returns:
        CompanyLimitsResult with PASS/FAIL and violation messages.

    Raises:
        ValueError: If a policy value has the wrong kind for its rule.
    """
    margin_value = policy.get(MIN_RUNWAY_MARGIN_KEY) if policy else None
    uplift_value = policy.get(WET_UPLIFT_KEY) if policy else None
    tailwind_value = policy.get(MAX_TAILWIND_KEY) if policy else None

    margin = margin_value.as_threshold if margin_value else 0.0
    uplift = uplift_value.as_fraction if (uplift_value and is_wet) else 0.0

    violations = []
    checks = (
        ("TODR", todr_m, "TORA", tora_m),
        ("ASDR", asdr_m, "ASDA", asda_m),
        ("LDR", ldr_m, "LDA", lda_m),
    )
    for name, required, declared_name, declared in checks:
        if required is None or declared is None:
            continue
        if required * (1.0 + uplift) + margin > declared:
            violations.append(f"{name} + margin exceeds {declared_name}")

    if tailwind_value is not None:
        max_tailwind = tailwind_value.as_threshold
        if tailwind_kt > max_tailwind:
            violations.append(f"Tailwind exceeds company max {max_tailwind:.0f} kt")

    status = LimitStatus.FAIL if violations else LimitStatus.PASS
    if violations:
        logger.info("Company limits %s: %s", status.value, "; ".join(violations))
    return CompanyLimitsResult(status=status, violations=tuple(violations))
