"""Error taxonomy for performance calculations.

Every failure the calculation core can produce is one of the classes below.
Errors carry the structured context a caller needs to render a precise
message (field name, offending value, valid range, missing resource key).

Typical usage example:
    from perfcalc.core.errors import OutOfCertifiedEnvelope

    raise OutOfCertifiedEnvelope(
        "weight", 8100.0, (5000.0, 7650.0), context="takeoff[B1900D, flap=0]"
    )
"""

from dataclasses import dataclass, field
from enum import Enum


class Severity(Enum):
    """Severity of a validation finding.

    Only ERROR blocks a calculation.
    """

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class ValidationFinding:
    """A single field- or consistency-level validation result.

    Attributes:
        field: Name of the offending request field (e.g. "weight").
        message: Human-readable description.
        severity: ERROR, WARNING or INFO.
        value: Offending value, when the check is range based.
        valid_range: (low, high) range the value was checked against.
    """

    field: str
    message: str
    severity: Severity
    value: float | None = None
    valid_range: tuple[float, float] | None = None

    @property
    def is_blocking(self) -> bool:
        """Whether this finding stops the calculation."""
        return self.severity is Severity.ERROR


class PerformanceError(Exception):
    """Base class for all calculation failures."""


class ValidationError(PerformanceError):
    """Raised when request validation produces a blocking finding.

    Attributes:
        field: Field of the first blocking finding.
        message: Message of the first blocking finding.
        severity: Always Severity.ERROR for a raised error.
        findings: Every finding produced by the validation pass.
    """

    def __init__(
        self,
        field: str,
        message: str,
        severity: Severity = Severity.ERROR,
        findings: list[ValidationFinding] | None = None,
    ) -> None:
        self.field = field
        self.message = message
        self.severity = severity
        self.findings = list(findings or [])
        super().__init__(f"Invalid {field}: {message}")


class OutOfCertifiedEnvelope(PerformanceError):
    """Raised when a query value lies outside the certified data range.

    Never approximated: the request is always refused.

    Attributes:
        parameter: Name of the axis or parameter (e.g. "pressure_altitude").
        value: The value that was asked for.
        valid_range: (min, max) of the certified data, or None when the
            configuration itself is not certified.
        context: Table/configuration description for diagnostics.
    """

    def __init__(
        self,
        parameter: str,
        value: float | None,
        valid_range: tuple[float, float] | None = None,
        context: str = "",
    ) -> None:
        self.parameter = parameter
        self.value = value
        self.valid_range = valid_range
        self.context = context
        super().__init__(self._describe())

    def _describe(self) -> str:
        where = f"{self.context}: " if self.context else ""
        if self.valid_range is None:
            return f"{where}{self.parameter}={self.value} is not covered by certified data"
        low, high = self.valid_range
        return (
            f"{where}{self.parameter} value {self.value} is outside certified range "
            f"{low}...{high}"
        )


class DataUnavailable(PerformanceError):
    """Raised when the data pack is incomplete inside an otherwise valid range.

    Signals a data-pack defect (missing corner, NULL metric, missing table),
    not a usage error.

    Attributes:
        resource: Key of the missing resource.
    """

    def __init__(self, resource: str) -> None:
        self.resource = resource
        super().__init__(f"Required data unavailable: {resource}")


class CalculationFailed(PerformanceError):
    """Raised for unexpected internal faults during a calculation."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Calculation failed: {reason}")


class DataPackError(PerformanceError):
    """Raised when a data pack file cannot be opened or read."""


@dataclass
class ErrorReport:
    """Plain-data view of an error for collaborators that render or persist it.

    Attributes:
        kind: Error class name.
        message: Rendered message.
        details: Structured context fields.
    """

    kind: str
    message: str
    details: dict = field(default_factory=dict)

    @classmethod
    def from_error(cls, error: PerformanceError) -> "ErrorReport":
        """Build a report from any PerformanceError."""
        details: dict = {}
        if isinstance(error, ValidationError):
            details = {
                "field": error.field,
                "severity": error.severity.value,
                "findings": [
                    {"field": f.field, "message": f.message, "severity": f.severity.value}
                    for f in error.findings
                ],
            }
        elif isinstance(error, OutOfCertifiedEnvelope):
            details = {
                "parameter": error.parameter,
                "value": error.value,
                "range": list(error.valid_range) if error.valid_range else None,
                "context": error.context,
            }
        elif isinstance(error, DataUnavailable):
            details = {"resource": error.resource}
        elif isinstance(error, CalculationFailed):
            details = {"reason": error.reason}
        return cls(kind=type(error).__name__, message=str(error), details=details)
