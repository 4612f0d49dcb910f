"""
Pipeline Module

This module defines the Flowpipe class, which resolves an ordered list of
steps, folds it into a single continuation and runs a payload through it.

Author: flowpipe Team
Date: 2025-06-02
"""

import time
from enum import Enum
from typing import Any, Dict, Optional, Sequence

from loguru import logger

from .context import FlowContext
from .resolver import StepResolver
from .step import Continuation, Step, compose, identity
from .timing import duration_ms


class PipelineState(str, Enum):
    """Lifecycle of a Flowpipe."""

    BUILDING = "building"
    COMPOSED = "composed"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class Flowpipe:
    """
    Pipeline for executing sequences of steps.

    Each step receives the payload and a continuation for the rest of the
    chain. Steps run strictly in the order given to :meth:`through`; a step
    that does not call its continuation ends the run with its own result.

    Example::

        result = (Flowpipe.make()
            .send("hello")
            .through([
                lambda payload, next: next(payload.upper()),
                lambda payload, next: next(payload + " WORLD"),
            ])
            .then_return())
        # "HELLO WORLD"

    When a tracer is attached, it receives one record per executed step:
    the step label, the payload the step received, the payload it forwarded
    to its continuation (or its return value when it short-circuits) and
    the milliseconds spent in the step up to that point.
    """

    def __init__(
        self,
        tracer: Optional[Any] = None,
        resolver: Optional[StepResolver] = None
    ):
        """
        Initialize pipeline (prefer :meth:`make`).

        Args:
            tracer: Optional tracer
            resolver: Resolver for step references (defaults to one bound to
                the process-wide registries)
        """
        self._payload: Any = None
        self._steps: tuple = ()
        self._context = FlowContext(tracer)
        self._resolver = resolver
        self._state = PipelineState.BUILDING
        self._chain: Optional[Continuation] = None
        self.execution_time: float = 0.0

    @classmethod
    def make(
        cls,
        tracer: Optional[Any] = None,
        resolver: Optional[StepResolver] = None
    ) -> 'Flowpipe':
        """
        Create a pipeline.

        When no tracer is passed and tracing is enabled, the configured
        ``default_tracer`` (if any) is attached.
        """
        if tracer is None:
            from ..config import get_settings
            settings = get_settings()
            if settings.tracing_enabled and settings.default_tracer:
                from ..tracing import create_tracer
                tracer = create_tracer(settings.default_tracer)
        return cls(tracer=tracer, resolver=resolver)

    # =========================================================================
    # Building
    # =========================================================================

    @property
    def resolver(self) -> StepResolver:
        if self._resolver is None:
            self._resolver = StepResolver()
        return self._resolver

    def with_tracer(self, tracer: Optional[Any]) -> 'Flowpipe':
        """Attach a tracer. Starts a fresh context (new run id)."""
        self._context = FlowContext(tracer)
        return self

    def send(self, payload: Any) -> 'Flowpipe':
        """Set the initial payload (last call wins)."""
        self._payload = payload
        return self

    def through(self, steps: Sequence[Any]) -> 'Flowpipe':
        """
        Resolve and set the steps (replaces any previous list).

        Args:
            steps: Step references, see :class:`StepResolver`

        Returns:
            Self for chaining

        Raises:
            ResolutionError: If a reference cannot be resolved
            RuntimeError: If called while the pipeline is running
        """
        if self._state is PipelineState.RUNNING:
            raise RuntimeError("Cannot replace steps while the pipeline is running")

        self._steps = tuple(self.resolver.resolve_all(steps))
        self._chain = None
        self._state = PipelineState.BUILDING
        logger.debug(f"Pipeline steps set: {[step.label for step in self._steps]}")
        return self

    # =========================================================================
    # Execution
    # =========================================================================

    def _traced(self, step: Step, next: Continuation) -> Continuation:
        label = step.label

        def run(payload: Any) -> Any:
            tracer = self._context.tracer
            if tracer is None:
                return step.handle(payload, next)

            start = time.perf_counter()
            traced = False

            def forward(value: Any) -> Any:
                nonlocal traced
                if not traced:
                    traced = True
                    tracer.trace(label, payload, value, duration_ms(start))
                return next(value)

            result = step.handle(payload, forward)
            if not traced:
                traced = True
                tracer.trace(label, payload, result, duration_ms(start))
            return result

        return run

    def compose(self) -> Continuation:
        """Fold the steps into the chain (cached until :meth:`through` is called)."""
        if self._chain is None:
            self._chain = compose(self._steps, tail=identity, wrap=self._traced)
            if self._state is PipelineState.BUILDING:
                self._state = PipelineState.COMPOSED
        return self._chain

    def then_return(self) -> Any:
        """
        Execute the pipeline with the payload given to :meth:`send`.

        Returns:
            Whatever the outermost step produces

        Raises:
            Exception: Any unhandled step error, unchanged
        """
        return self._run(self._payload)

    def __call__(self, payload: Any) -> Any:
        """Run the same composed chain with another payload."""
        return self._run(payload)

    def _run(self, payload: Any) -> Any:
        chain = self.compose()
        n_steps = len(self._steps)

        logger.info(f"Starting flow {self._context.id} ({n_steps} steps)")
        self._state = PipelineState.RUNNING
        start_time = time.time()

        try:
            with logger.contextualize(flow_id=self._context.id):
                result = chain(payload)
        except Exception as e:
            self.execution_time = time.time() - start_time
            self._state = PipelineState.FAILED
            logger.error(
                f"Flow {self._context.id} failed after {self.execution_time:.3f}s: "
                f"{type(e).__name__}: {e}"
            )
            logger.opt(exception=e).debug("Exception details")
            raise

        self.execution_time = time.time() - start_time
        self._state = PipelineState.COMPLETED
        logger.info(f"Flow {self._context.id} completed in {self.execution_time:.3f}s")
        return result

    # =========================================================================
    # Introspection
    # =========================================================================

    @property
    def context(self) -> FlowContext:
        return self._context

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def steps(self) -> tuple:
        return self._steps

    @property
    def payload(self) -> Any:
        return self._payload

    def describe(self) -> str:
        """
        Get human-readable pipeline description.

        Returns:
            Multi-line string describing pipeline
        """
        lines = [f"Flowpipe: {self._context.id}", "=" * 50]
        for i, step in enumerate(self._steps):
            lines.append(f"{i+1}. {step.label} ({step.__class__.__name__})")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the pipeline structure to a dictionary."""
        return {
            'id': self._context.id,
            'state': self._state.value,
            'steps': [
                {'class': step.__class__.__name__, 'label': step.label}
                for step in self._steps
            ]
        }

    def __len__(self) -> int:
        """Get number of steps."""
        return len(self._steps)

    def __getitem__(self, index: int) -> Step:
        """Get step by index."""
        return self._steps[index]

    def __repr__(self) -> str:
        return f"Flowpipe(id='{self._context.id}', n_steps={len(self._steps)}, state={self._state.value})"


__all__ = ["Flowpipe", "PipelineState"]
