"""
Retry Step

Author: flowpipe Team
Date: 2025-06-11
"""

import time
from typing import Any, Callable, Optional

from loguru import logger

from ..core.step import Continuation, Step


class RetryStep(Step):
    """
    Re-run the rest of the chain when it raises.

    A lighter alternative to ``ErrorHandlerStep(RetryStrategy(...))``: no
    strategy object, constant delay, and the last error is re-raised once
    ``max_attempts`` calls have failed. ``should_retry(error, attempt)`` may
    reject an error early, in which case it is re-raised immediately.

    Example:
        RetryStep(max_attempts=5, delay_ms=200,
                  should_retry=lambda error, attempt: isinstance(error, IOError))
    """

    def __init__(
        self,
        max_attempts: int = 3,
        delay_ms: int = 100,
        should_retry: Optional[Callable[[BaseException, int], bool]] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self.max_attempts = max_attempts
        self.delay_ms = delay_ms
        self.should_retry = should_retry
        self._sleep = sleep

    def handle(self, payload: Any, next: Continuation) -> Any:
        attempts = 0

        while True:
            try:
                return next(payload)
            except Exception as error:
                attempts += 1

                if self.should_retry is not None and not self.should_retry(error, attempts):
                    raise
                if attempts >= self.max_attempts:
                    logger.warning(f"Giving up after {attempts} attempts: {type(error).__name__}: {error}")
                    raise

                logger.debug(f"Attempt {attempts}/{self.max_attempts} failed, retrying in {self.delay_ms}ms")
                if self.delay_ms > 0:
                    self._sleep(self.delay_ms / 1000.0)

    def __repr__(self) -> str:
        return f"RetryStep(max_attempts={self.max_attempts}, delay_ms={self.delay_ms})"
