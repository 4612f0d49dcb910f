"""
Errors Module

Exception hierarchy shared by the pipeline core, the step library and the
error-handling strategies.

Author: flowpipe Team
Date: 2025-06-02
"""

from typing import Any, Dict, Optional


class FlowpipeError(Exception):
    """Base exception for all flowpipe errors."""
    pass


class ResolutionError(FlowpipeError, ValueError):
    """Raised when a step reference cannot be turned into a usable step."""
    pass


class GroupNotFoundError(FlowpipeError, LookupError):
    """
    Raised by GroupStep at run time when its group is missing, or empty
    where that matters. Unlike ResolutionError it is never raised while a
    pipeline is being built.
    """

    def __init__(self, group_name: str, message: Optional[str] = None):
        self.group_name = group_name
        super().__init__(message or f"Group '{group_name}' not found or is empty")


class StepExecutionError(FlowpipeError):
    """
    Failure raised by a step's own logic.

    Steps are free to raise any exception; this type exists for step authors
    who want to attach the failing step label, the attempt number and the
    accumulated recovery context to the error.
    """

    def __init__(
        self,
        message: str,
        step: Optional[str] = None,
        attempt: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        self.step = step
        self.attempt = attempt
        self.context = dict(context or {})
        super().__init__(message)

    def __str__(self) -> str:
        message = super().__str__()
        details = []
        if self.step:
            details.append(f"step={self.step}")
        if self.attempt is not None:
            details.append(f"attempt={self.attempt}")
        if details:
            return f"{message} ({', '.join(details)})"
        return message


class MaxAttemptsExceededError(FlowpipeError, RuntimeError):
    """Raised when a strategy keeps requesting retries past the hard ceiling."""

    def __init__(
        self,
        max_attempts: int,
        last_error: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        self.max_attempts = max_attempts
        self.last_error = last_error
        self.context = dict(context or {})
        message = f"Maximum attempts exceeded ({max_attempts})"
        if last_error is not None:
            message += f": {last_error}"
        super().__init__(message)


class AbortError(FlowpipeError):
    """
    Raised when a strategy aborts recovery.

    Outer error handlers must re-raise it untouched instead of consulting
    their own strategy.
    """

    def __init__(
        self,
        error: BaseException,
        context: Optional[Dict[str, Any]] = None
    ):
        self.error = error
        self.context = dict(context or {})
        super().__init__(f"Flow aborted: {error}")


class FlowValidationError(FlowpipeError, ValueError):
    """Structural problem in a flow or condition definition."""
    pass


class RateLimitExceededError(FlowpipeError):
    """Raised by RateLimitStep when the limiter refuses another hit."""

    def __init__(self, key: str, available_in: int):
        self.key = key
        self.available_in = available_in
        super().__init__(
            f"Rate limit exceeded. Try again in {available_in} seconds."
        )


class PayloadValidationError(FlowpipeError, ValueError):
    """Raised by ValidationStep when the payload does not satisfy its rules."""

    def __init__(self, errors: Dict[str, list]):
        self.errors = errors
        summary = "; ".join(
            f"{field}: {', '.join(messages)}" for field, messages in errors.items()
        )
        super().__init__(f"The given data was invalid. {summary}".strip())
