"""
Error Handler Result Module

Decision values produced by error-handling strategies.

Author: flowpipe Team
Date: 2025-06-10
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorHandlerAction(str, Enum):
    """What an error handler step should do after a failure."""

    RETRY = "retry"
    FALLBACK = "fallback"
    COMPENSATE = "compensate"
    FAIL = "fail"
    ABORT = "abort"


@dataclass(frozen=True)
class ErrorHandlerResult:
    """
    Immutable decision returned by an :class:`ErrorHandlerStrategy`.

    Attributes:
        action: The action to take
        payload: Payload for the next attempt (RETRY) or the final output
            (FALLBACK / COMPENSATE)
        error: Error to raise (FAIL / ABORT)
        delay_ms: Pause before the next attempt, in whole milliseconds
        context: Diagnostic context accumulated across attempts
    """

    action: ErrorHandlerAction
    payload: Any = None
    error: Optional[BaseException] = None
    delay_ms: int = 0
    context: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def retry(
        cls,
        payload: Any,
        delay_ms: int = 0,
        context: Optional[Dict[str, Any]] = None
    ) -> 'ErrorHandlerResult':
        return cls(ErrorHandlerAction.RETRY, payload, None, delay_ms, dict(context or {}))

    @classmethod
    def fallback(cls, payload: Any, context: Optional[Dict[str, Any]] = None) -> 'ErrorHandlerResult':
        return cls(ErrorHandlerAction.FALLBACK, payload, None, 0, dict(context or {}))

    @classmethod
    def compensate(cls, payload: Any, context: Optional[Dict[str, Any]] = None) -> 'ErrorHandlerResult':
        return cls(ErrorHandlerAction.COMPENSATE, payload, None, 0, dict(context or {}))

    @classmethod
    def fail(cls, error: BaseException, context: Optional[Dict[str, Any]] = None) -> 'ErrorHandlerResult':
        return cls(ErrorHandlerAction.FAIL, None, error, 0, dict(context or {}))

    @classmethod
    def abort(cls, error: BaseException, context: Optional[Dict[str, Any]] = None) -> 'ErrorHandlerResult':
        return cls(ErrorHandlerAction.ABORT, None, error, 0, dict(context or {}))

    @property
    def is_terminal(self) -> bool:
        """True for FALLBACK and COMPENSATE, which end the loop with a payload."""
        return self.action in (ErrorHandlerAction.FALLBACK, ErrorHandlerAction.COMPENSATE)

    def __repr__(self) -> str:
        return (
            f"ErrorHandlerResult(action={self.action.value}, "
            f"delay_ms={self.delay_ms}, error={self.error!r})"
        )
