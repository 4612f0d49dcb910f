"""Tracer interface."""

from abc import ABC, abstractmethod
from typing import Any, Optional


class Tracer(ABC):
    """
    Receives one record per executed step.

    Implementations must not raise; an exception from ``trace`` propagates
    through the pipeline like a step failure.
    """

    @abstractmethod
    def trace(
        self,
        step: str,
        payload_before: Any,
        payload_after: Any,
        duration_ms: Optional[float] = None
    ) -> None:
        """
        Record a step execution.

        Args:
            step: Step label
            payload_before: Payload the step received
            payload_after: Payload it forwarded (or its short-circuit result)
            duration_ms: Milliseconds spent in the step
        """
        pass
