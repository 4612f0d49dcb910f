"""
Error Handler Step

Wraps the rest of the chain (or a single inner step) in a bounded recovery
loop driven by an :class:`~flowpipe.error_handling.ErrorHandlerStrategy`.

Author: flowpipe Team
Date: 2025-06-10
"""

import time
from typing import Any, Callable, Dict, Optional

from loguru import logger

from ..core.errors import AbortError, MaxAttemptsExceededError
from ..core.resolver import StepResolver
from ..core.step import Continuation, Step
from ..error_handling import ErrorHandlerAction, ErrorHandlerStrategy


def _attach_context(error: BaseException, context: Dict[str, Any]) -> None:
    try:
        error.flowpipe_context = dict(context)
    except AttributeError:
        # Some builtin exception types reject new attributes
        pass


class ErrorHandlerStep(Step):
    """
    Step that recovers from failures further down the chain.

    Every failure of the guarded call is handed to the strategy together
    with the 1-based attempt number and the context accumulated so far:

    - RETRY: call again with the result's payload after ``delay_ms``.
      Requesting a retry once ``max_attempts`` is reached raises
      :class:`MaxAttemptsExceededError`.
    - FALLBACK / COMPENSATE: return the result's payload as the output.
    - FAIL: re-raise the carried error (or the original one). The
      accumulated context is attached as ``error.flowpipe_context``.
    - ABORT: raise :class:`AbortError` chained from the carried error.

    An :class:`AbortError` coming from an inner error handler is re-raised
    without consulting the strategy.

    Example:
        Flowpipe.make().send(order).through([
            ErrorHandlerStep(RetryStrategy(max_attempts=3, delay_ms=0)),
            ChargeCard(),
        ]).then_return()
    """

    def __init__(
        self,
        strategy: ErrorHandlerStrategy,
        max_attempts: int = 3,
        step: Optional[Any] = None,
        sleep: Callable[[float], None] = time.sleep,
        resolver: Optional[StepResolver] = None
    ):
        """
        Initialize error handler step.

        Args:
            strategy: Strategy deciding how to recover
            max_attempts: Hard ceiling on the number of attempts
            step: Optional inner step to guard. Without it the step guards
                its continuation, i.e. every step declared after it.
            sleep: Function used to pause between attempts (seconds)
            resolver: Resolver for ``step`` (defaults to the shared one)
        """
        if not isinstance(strategy, ErrorHandlerStrategy):
            raise TypeError(f"Expected ErrorHandlerStrategy, got {type(strategy)}")
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

        self.strategy = strategy
        self.max_attempts = max_attempts
        self.step: Optional[Step] = (
            (resolver or StepResolver()).resolve(step) if step is not None else None
        )
        self._sleep = sleep

    def _attempt(self, payload: Any, next: Continuation) -> Any:
        if self.step is not None:
            return self.step.handle(payload, next)
        return next(payload)

    def handle(self, payload: Any, next: Continuation) -> Any:
        attempt = 1
        context: Dict[str, Any] = {}

        while True:
            try:
                return self._attempt(payload, next)
            except AbortError:
                raise
            except Exception as error:
                result = self.strategy.handle(error, payload, attempt, dict(context))
                context.update(result.context)
                logger.debug(
                    f"Attempt {attempt} failed with {type(error).__name__}: {error} "
                    f"-> {result.action.value}"
                )

                if result.action is ErrorHandlerAction.RETRY:
                    if attempt >= self.max_attempts:
                        logger.error(f"Strategy requested retry past {self.max_attempts} attempts")
                        raise MaxAttemptsExceededError(self.max_attempts, error, context) from error

                    attempt += 1
                    payload = result.payload
                    if result.delay_ms > 0:
                        self._sleep(result.delay_ms / 1000.0)
                    continue

                if result.action in (ErrorHandlerAction.FALLBACK, ErrorHandlerAction.COMPENSATE):
                    logger.info(f"Recovered with {result.action.value} after {attempt} attempt(s)")
                    return result.payload

                carried = result.error or error

                if result.action is ErrorHandlerAction.ABORT:
                    raise AbortError(carried, context) from carried

                _attach_context(carried, context)
                if carried is error:
                    raise
                raise carried from error

    def __repr__(self) -> str:
        return f"ErrorHandlerStep(strategy={self.strategy!r}, max_attempts={self.max_attempts})"
