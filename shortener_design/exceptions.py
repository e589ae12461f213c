"""
Structured exception classes for the URL shortener design showcase
Provides unified error handling with structured error responses
"""

from typing import Optional, Dict, Any


class ShowcaseError(Exception):
    """
    Base exception for estimator and sequencer failures

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable error message
        details: Additional error details
    """

    def __init__(
        self, code: str, message: str, details: Optional[Dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response"""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details.copy(),
        }

    def __str__(self) -> str:
        """String representation for logging"""
        return f"[{self.code}] {self.message}"


class InvalidParameterError(ShowcaseError):
    """
    Raised when an estimation input is non-positive, non-finite or unknown

    Attributes:
        parameter: Name of the offending parameter
        value: The rejected value
    """

    def __init__(
        self,
        parameter: str,
        value: Any,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.parameter = parameter
        self.value = value
        super().__init__(
            code="invalid_parameter",
            message=message or f"Parameter '{parameter}' must be a finite positive number, got {value!r}",
            details={**(details or {}), "parameter": parameter, "value": repr(value)},
        )


class SequencerError(ShowcaseError):
    """Raised for step sequencer misuse"""


class InvalidStepCountError(SequencerError):
    """
    Raised when a sequencer run is started over zero or negative steps

    This is a programming error: callers own the step list and must not
    start a run over an empty one.
    """

    def __init__(self, step_count: Any):
        self.step_count = step_count
        super().__init__(
            code="invalid_step_count",
            message=f"Step count must be a positive integer, got {step_count!r}",
            details={"step_count": repr(step_count)},
        )


class TimerConflictError(SequencerError):
    """
    Internal invariant violation: two ticks of one sequencer overlapped

    Never expected at runtime; seeing it means the single-timer discipline is broken.
    """

    def __init__(self, name: str, message: str):
        super().__init__(
            code="timer_conflict",
            message=message,
            details={"sequencer": name},
        )


class FlowNotFoundError(ShowcaseError):
    """Raised when a step sequence id is not in the catalog"""

    def __init__(self, sequence_id: str):
        self.sequence_id = sequence_id
        super().__init__(
            code="flow_not_found",
            message=f"Unknown flow: {sequence_id}",
            details={"sequence_id": sequence_id},
        )
