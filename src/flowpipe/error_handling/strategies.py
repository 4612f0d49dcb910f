"""
Error Handling Strategies Module

Strategies are pure decision functions. They never catch errors or retry by
themselves: an :class:`~flowpipe.steps.error_handler.ErrorHandlerStep`
consults them after each failed attempt and acts on the returned
:class:`ErrorHandlerResult`.

All built-in strategies are stateless and can be shared between steps and
runs.

Author: flowpipe Team
Date: 2025-06-10
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, Union

from loguru import logger

from .result import ErrorHandlerAction, ErrorHandlerResult

ErrorPredicate = Callable[[BaseException, int], bool]
DelayCalculator = Callable[[int], int]
ExceptionTypes = Union[Type[BaseException], Tuple[Type[BaseException], ...]]


class ErrorHandlerStrategy(ABC):
    """
    Base class for error-handling strategies.

    Subclasses must implement:
    - handle(): Decide how to react to a failed attempt
    """

    @abstractmethod
    def handle(
        self,
        error: BaseException,
        payload: Any,
        attempt: int,
        context: Optional[Dict[str, Any]] = None
    ) -> ErrorHandlerResult:
        """
        Decide how to recover from ``error``.

        Args:
            error: The error raised by the failed attempt
            payload: Payload the failed attempt received
            attempt: 1-based number of failed attempts so far
            context: Context accumulated by earlier decisions

        Returns:
            ErrorHandlerResult describing the next action
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


def exponential_delay(base_delay_ms: int = 100, multiplier: float = 2.0) -> DelayCalculator:
    """Delay of ``base * multiplier ** (attempt - 1)`` milliseconds."""
    def calculate(attempt: int) -> int:
        return int(base_delay_ms * multiplier ** (attempt - 1))
    return calculate


def linear_delay(base_delay_ms: int = 100, increment_ms: int = 100) -> DelayCalculator:
    """Delay of ``base + increment * (attempt - 1)`` milliseconds."""
    def calculate(attempt: int) -> int:
        return int(base_delay_ms + increment_ms * (attempt - 1))
    return calculate


def _instance_of(exception_types: ExceptionTypes) -> ErrorPredicate:
    def predicate(error: BaseException, attempt: int) -> bool:
        return isinstance(error, exception_types)
    return predicate


def _merged(context: Optional[Dict[str, Any]], **extra: Any) -> Dict[str, Any]:
    merged = dict(context or {})
    merged.update(extra)
    return merged


class RetryStrategy(ErrorHandlerStrategy):
    """
    Retry the failed attempt with the same payload.

    Returns RETRY while ``attempt < max_attempts`` and the optional
    ``should_retry(error, attempt)`` predicate accepts the error; FAIL with
    the original error otherwise.

    Example:
        RetryStrategy(max_attempts=5, delay_ms=0)
        RetryStrategy.exponential_backoff(max_attempts=4, base_delay_ms=50)
        RetryStrategy.for_exception(ConnectionError, max_attempts=3)
    """

    def __init__(
        self,
        max_attempts: int = 3,
        delay_ms: int = 100,
        should_retry: Optional[ErrorPredicate] = None,
        delay_calculator: Optional[DelayCalculator] = None
    ):
        """
        Initialize retry strategy.

        Args:
            max_attempts: Total number of attempts allowed
            delay_ms: Constant delay between attempts
            should_retry: Optional ``(error, attempt) -> bool`` filter
            delay_calculator: Optional ``attempt -> delay_ms`` function
                overriding the constant delay
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self.max_attempts = max_attempts
        self.delay_ms = delay_ms
        self.should_retry = should_retry
        self.delay_calculator = delay_calculator

    @classmethod
    def exponential_backoff(
        cls,
        max_attempts: int = 3,
        base_delay_ms: int = 100,
        multiplier: float = 2.0,
        should_retry: Optional[ErrorPredicate] = None
    ) -> 'RetryStrategy':
        return cls(max_attempts, base_delay_ms, should_retry,
                   exponential_delay(base_delay_ms, multiplier))

    @classmethod
    def linear_backoff(
        cls,
        max_attempts: int = 3,
        base_delay_ms: int = 100,
        increment_ms: int = 100,
        should_retry: Optional[ErrorPredicate] = None
    ) -> 'RetryStrategy':
        return cls(max_attempts, base_delay_ms, should_retry,
                   linear_delay(base_delay_ms, increment_ms))

    @classmethod
    def for_exception(
        cls,
        exception_types: ExceptionTypes,
        max_attempts: int = 3,
        delay_ms: int = 100
    ) -> 'RetryStrategy':
        """Only retry errors that are instances of ``exception_types``."""
        return cls(max_attempts, delay_ms, _instance_of(exception_types))

    def handle(
        self,
        error: BaseException,
        payload: Any,
        attempt: int,
        context: Optional[Dict[str, Any]] = None
    ) -> ErrorHandlerResult:
        if self.should_retry is not None and not self.should_retry(error, attempt):
            logger.debug(f"Retry rejected for {type(error).__name__} on attempt {attempt}")
            return ErrorHandlerResult.fail(error, context)

        if attempt >= self.max_attempts:
            logger.debug(f"Retry attempts exhausted ({attempt}/{self.max_attempts})")
            return ErrorHandlerResult.fail(error, context)

        if self.delay_calculator is not None:
            delay = self.delay_calculator(attempt)
        else:
            delay = self.delay_ms

        return ErrorHandlerResult.retry(payload, delay, _merged(
            context,
            retry_attempt=attempt,
            retry_delay=delay,
            retry_reason=str(error),
        ))

    def __repr__(self) -> str:
        return f"RetryStrategy(max_attempts={self.max_attempts}, delay_ms={self.delay_ms})"


class FallbackStrategy(ErrorHandlerStrategy):
    """
    Replace the failed result with a fallback value.

    The handler is called as ``handler(payload, error)``. If it raises, the
    strategy returns FAIL carrying the handler's error so a broken fallback
    is never swallowed.

    Example:
        FallbackStrategy.with_default({"status": "unavailable"})
        FallbackStrategy.for_exception(TimeoutError, lambda payload, error: cached(payload))
    """

    def __init__(
        self,
        fallback_handler: Callable[[Any, BaseException], Any],
        should_fallback: Optional[ErrorPredicate] = None
    ):
        self.fallback_handler = fallback_handler
        self.should_fallback = should_fallback

    @classmethod
    def with_default(cls, default: Any, should_fallback: Optional[ErrorPredicate] = None) -> 'FallbackStrategy':
        """Fall back to a constant value."""
        return cls(lambda payload, error: default, should_fallback)

    @classmethod
    def with_transform(
        cls,
        transformer: Callable[[Any, BaseException], Any],
        should_fallback: Optional[ErrorPredicate] = None
    ) -> 'FallbackStrategy':
        """Fall back to ``transformer(payload, error)``."""
        return cls(transformer, should_fallback)

    @classmethod
    def with_payload(cls, payload: Any, should_fallback: Optional[ErrorPredicate] = None) -> 'FallbackStrategy':
        """Fall back to a fixed replacement payload."""
        return cls(lambda current, error: payload, should_fallback)

    @classmethod
    def for_exception(
        cls,
        exception_types: ExceptionTypes,
        fallback_handler: Callable[[Any, BaseException], Any]
    ) -> 'FallbackStrategy':
        return cls(fallback_handler, _instance_of(exception_types))

    def handle(
        self,
        error: BaseException,
        payload: Any,
        attempt: int,
        context: Optional[Dict[str, Any]] = None
    ) -> ErrorHandlerResult:
        if self.should_fallback is not None and not self.should_fallback(error, attempt):
            return ErrorHandlerResult.fail(error, context)

        try:
            value = self.fallback_handler(payload, error)
        except Exception as fallback_error:
            logger.warning(f"Fallback handler failed: {type(fallback_error).__name__}: {fallback_error}")
            return ErrorHandlerResult.fail(fallback_error, _merged(
                context,
                fallback_failed=True,
                original_error=error,
                fallback_error=fallback_error,
            ))

        logger.debug(f"Falling back after {type(error).__name__}: {error}")
        return ErrorHandlerResult.fallback(value, _merged(
            context,
            fallback_triggered=True,
            fallback_reason=str(error),
            original_error=error,
        ))


class CompensationStrategy(ErrorHandlerStrategy):
    """
    Run a compensating action (rollback, cleanup) and use its result.

    The handler is called as ``handler(payload, error, context)``. A failing
    compensation surfaces as FAIL carrying the compensation error.
    """

    def __init__(
        self,
        compensation_handler: Callable[[Any, BaseException, Dict[str, Any]], Any],
        should_compensate: Optional[ErrorPredicate] = None
    ):
        self.compensation_handler = compensation_handler
        self.should_compensate = should_compensate

    @classmethod
    def rollback(
        cls,
        handler: Callable[[Any, BaseException, Dict[str, Any]], Any],
        should_compensate: Optional[ErrorPredicate] = None
    ) -> 'CompensationStrategy':
        return cls(handler, should_compensate)

    @classmethod
    def cleanup(
        cls,
        handler: Callable[[Any, BaseException, Dict[str, Any]], Any],
        should_compensate: Optional[ErrorPredicate] = None
    ) -> 'CompensationStrategy':
        return cls(handler, should_compensate)

    @classmethod
    def for_exception(
        cls,
        exception_types: ExceptionTypes,
        handler: Callable[[Any, BaseException, Dict[str, Any]], Any]
    ) -> 'CompensationStrategy':
        return cls(handler, _instance_of(exception_types))

    def handle(
        self,
        error: BaseException,
        payload: Any,
        attempt: int,
        context: Optional[Dict[str, Any]] = None
    ) -> ErrorHandlerResult:
        if self.should_compensate is not None and not self.should_compensate(error, attempt):
            return ErrorHandlerResult.fail(error, context)

        try:
            value = self.compensation_handler(payload, error, dict(context or {}))
        except Exception as compensation_error:
            logger.warning(
                f"Compensation handler failed: {type(compensation_error).__name__}: {compensation_error}"
            )
            return ErrorHandlerResult.fail(compensation_error, _merged(
                context,
                compensation_failed=True,
                original_error=error,
                compensation_error=compensation_error,
            ))

        logger.debug(f"Compensated after {type(error).__name__}: {error}")
        return ErrorHandlerResult.compensate(value, _merged(
            context,
            compensation_triggered=True,
            compensation_reason=str(error),
            original_error=error,
        ))


class CompositeStrategy(ErrorHandlerStrategy):
    """
    Try several strategies in order.

    The first result whose action is not FAIL wins and is returned as-is
    (including ABORT). When every strategy fails, the last FAIL is returned,
    so its error and context describe the final recovery attempt.

    Example:
        strategy = (CompositeStrategy()
            .retry(RetryStrategy(max_attempts=2, delay_ms=0))
            .fallback(FallbackStrategy.with_default("offline")))
    """

    def __init__(self, strategies: Optional[List[ErrorHandlerStrategy]] = None):
        self.strategies: List[ErrorHandlerStrategy] = list(strategies or [])

    def add_strategy(self, strategy: ErrorHandlerStrategy) -> 'CompositeStrategy':
        if not isinstance(strategy, ErrorHandlerStrategy):
            raise TypeError(f"Expected ErrorHandlerStrategy, got {type(strategy)}")
        self.strategies.append(strategy)
        return self

    def retry(self, strategy: RetryStrategy) -> 'CompositeStrategy':
        return self.add_strategy(strategy)

    def fallback(self, strategy: FallbackStrategy) -> 'CompositeStrategy':
        return self.add_strategy(strategy)

    def compensate(self, strategy: CompensationStrategy) -> 'CompositeStrategy':
        return self.add_strategy(strategy)

    def handle(
        self,
        error: BaseException,
        payload: Any,
        attempt: int,
        context: Optional[Dict[str, Any]] = None
    ) -> ErrorHandlerResult:
        last_failure = ErrorHandlerResult.fail(error, context)

        for strategy in self.strategies:
            result = strategy.handle(error, payload, attempt, context)
            if result.action is not ErrorHandlerAction.FAIL:
                return result
            last_failure = result

        return last_failure

    def __len__(self) -> int:
        return len(self.strategies)

    def __repr__(self) -> str:
        return f"CompositeStrategy(strategies={self.strategies!r})"
