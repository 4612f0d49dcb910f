"""
Step Base Module

This module defines the Step interface and the right-fold that turns an
ordered list of steps into one callable chain.

A step receives the current payload and a continuation ``next``. Calling
``next(payload)`` resumes the rest of the chain; returning without calling it
short-circuits the chain and the step's own return value becomes the result.

Author: flowpipe Team
Date: 2025-06-02
"""

from abc import ABC, abstractmethod
from functools import reduce
from typing import Any, Callable, Optional, Sequence

from .timing import short_class_name

Continuation = Callable[[Any], Any]
StepFunction = Callable[[Any, Continuation], Any]


class Step(ABC):
    """
    Base class for all pipeline steps.

    Subclasses must implement:
    - handle(): Main step logic

    Example:
        class Uppercase(Step):
            def handle(self, payload, next):
                return next(payload.upper())

        class StopWhenEmpty(Step):
            def handle(self, payload, next):
                if not payload:
                    return payload  # short-circuit
                return next(payload)
    """

    name: Optional[str] = None

    @abstractmethod
    def handle(self, payload: Any, next: Continuation) -> Any:
        """
        Process the payload.

        Args:
            payload: Current payload
            next: Continuation running the rest of the chain

        Returns:
            Result of the chain (or of this step on short-circuit)
        """
        pass

    @property
    def label(self) -> str:
        """Short identifier used in traces and logs."""
        return self.name or type(self).__name__

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class FunctionStep(Step):
    """
    Step backed by a plain function ``(payload, next) -> result``.

    Example:
        FunctionStep(lambda payload, next: next(payload.strip()))
    """

    def __init__(self, func: StepFunction, name: Optional[str] = None):
        """
        Initialize function step.

        Args:
            func: Callable taking the payload and the continuation
            name: Optional label (defaults to the function name)
        """
        if not callable(func):
            raise TypeError(f"FunctionStep expects a callable, got {type(func)}")
        self.func = func
        if name is None:
            func_name = getattr(func, "__name__", None)
            name = "Closure" if func_name in (None, "<lambda>") else func_name
        self.name = name

    def handle(self, payload: Any, next: Continuation) -> Any:
        return self.func(payload, next)

    def __repr__(self) -> str:
        return f"FunctionStep(name='{self.name}')"


def identity(payload: Any) -> Any:
    """Tail of every chain: return whatever payload reaches it."""
    return payload


def step_label(step: Any) -> str:
    """Return a short human-readable identifier for a step or step reference."""
    if isinstance(step, Step):
        return step.label
    if isinstance(step, str):
        return short_class_name(step)
    func_name = getattr(step, "__name__", None)
    if func_name and func_name != "<lambda>":
        return func_name
    if callable(step) and not isinstance(step, type):
        return "Closure"
    return short_class_name(step)


def _link(step: Step, next: Continuation) -> Continuation:
    def run(payload: Any) -> Any:
        return step.handle(payload, next)
    return run


def compose(
    steps: Sequence[Step],
    tail: Continuation = identity,
    wrap: Optional[Callable[[Step, Continuation], Continuation]] = None
) -> Continuation:
    """
    Right-fold steps into a single continuation.

    The accumulator starts as ``tail`` and each step, from last to first,
    wraps the accumulator as its ``next``. Invoking the result with a payload
    runs the steps in declaration order.

    Args:
        steps: Resolved steps in execution order
        tail: Continuation invoked after the last step
        wrap: Optional link factory ``(step, next) -> continuation`` used to
            decorate each link (the pipeline core uses it for tracing)

    Returns:
        The outermost continuation
    """
    make_link = wrap or _link
    return reduce(
        lambda next, step: make_link(step, next),
        reversed(list(steps)),
        tail
    )


__all__ = [
    "Continuation",
    "StepFunction",
    "Step",
    "FunctionStep",
    "identity",
    "step_label",
    "compose",
]
