"""
Conditional Steps

ConditionalStep runs a guarded step only when a condition holds;
BranchStep picks one of two sub-flows.

Author: flowpipe Team
Date: 2025-06-09
"""

from typing import Any, Optional, Sequence

from loguru import logger

from ..conditions import Condition, as_condition
from ..core.resolver import StepResolver
from ..core.step import Continuation, Step
from .composite import CompositeStep


class ConditionalStep(Step):
    """
    Step that executes conditionally based on the payload.

    When the (possibly negated) condition holds, the guarded step receives
    the parent's continuation and decides itself whether the outer chain
    continues. Otherwise the payload is forwarded unchanged.

    Example:
        ConditionalStep.when(
            lambda payload: payload.get("newsletter"),
            SubscribeToNewsletter()
        )
        ConditionalStep.unless("is_empty", NotifyOwner())
    """

    def __init__(
        self,
        condition: Any,
        step: Any,
        negate: bool = False,
        resolver: Optional[StepResolver] = None
    ):
        """
        Initialize conditional step.

        Args:
            condition: Condition, ``payload -> bool`` callable, named
                predicate or comparison mapping
            step: Guarded step (any resolvable reference)
            negate: Run the step when the condition does NOT hold
            resolver: Resolver for ``step`` (defaults to the shared one)
        """
        self.condition: Condition = as_condition(condition)
        self.step: Step = (resolver or StepResolver()).resolve(step)
        self.negate = negate

    @classmethod
    def when(cls, condition: Any, step: Any) -> 'ConditionalStep':
        return cls(condition, step)

    @classmethod
    def unless(cls, condition: Any, step: Any) -> 'ConditionalStep':
        return cls(condition, step, negate=True)

    def handle(self, payload: Any, next: Continuation) -> Any:
        should_run = self.condition.evaluate(payload)
        if self.negate:
            should_run = not should_run

        if should_run:
            logger.debug(f"Condition met, executing {self.step.label}")
            return self.step.handle(payload, next)

        logger.debug(f"Condition not met, skipping {self.step.label}")
        return next(payload)

    def __repr__(self) -> str:
        return f"ConditionalStep(condition={self.condition!r}, step={self.step!r}, negate={self.negate})"


class BranchStep(Step):
    """
    If/then/else over two sub-flows.

    Each branch is a :class:`CompositeStep`, so short-circuits inside a
    branch stay local and only the branch's final payload reaches the outer
    chain. An empty branch passes the payload through.

    Example:
        BranchStep(
            "is_string",
            then_steps=[Uppercase()],
            else_steps=[lambda payload, next: next(f"{payload} (not a string)")]
        )
    """

    def __init__(
        self,
        condition: Any,
        then_steps: Sequence[Any] = (),
        else_steps: Sequence[Any] = (),
        resolver: Optional[StepResolver] = None
    ):
        self.condition: Condition = as_condition(condition)
        self.then_step = CompositeStep(then_steps, resolver=resolver, name="then")
        self.else_step = CompositeStep(else_steps, resolver=resolver, name="else")

    def handle(self, payload: Any, next: Continuation) -> Any:
        if self.condition.evaluate(payload):
            logger.debug("Branch condition met, taking 'then' branch")
            return self.then_step.handle(payload, next)

        logger.debug("Branch condition not met, taking 'else' branch")
        return self.else_step.handle(payload, next)

    def __repr__(self) -> str:
        return (
            f"BranchStep(condition={self.condition!r}, "
            f"then={len(self.then_step)}, else={len(self.else_step)})"
        )
