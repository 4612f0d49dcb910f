"""
Composite Steps

Steps that wrap a list of steps and present them to the parent chain as a
single unit. The inner steps are folded exactly like a top-level pipeline,
with an identity tail; only the final payload is forwarded to the parent's
continuation, so a short-circuit inside never ends the parent chain.

Author: flowpipe Team
Date: 2025-06-09
"""

from typing import Any, List, Optional, Sequence

from loguru import logger

from ..core.errors import GroupNotFoundError
from ..core.groups import GroupRegistry, default_registry
from ..core.resolver import StepResolver
from ..core.step import Continuation, Step, compose, identity


class CompositeStep(Step):
    """
    Step that executes multiple steps as one sub-flow.

    Example:
        sanitize = CompositeStep([
            Trim(),
            lambda payload, next: next(payload.lower()),
        ])
    """

    def __init__(
        self,
        steps: Sequence[Any],
        resolver: Optional[StepResolver] = None,
        name: Optional[str] = None
    ):
        """
        Initialize composite step.

        Args:
            steps: Step references, resolved once here
            resolver: Resolver to use (defaults to the shared one)
            name: Optional label
        """
        self.steps: List[Step] = (resolver or StepResolver()).resolve_all(list(steps))
        self._chain = compose(self.steps, tail=identity)
        if name is not None:
            self.name = name

    def handle(self, payload: Any, next: Continuation) -> Any:
        return next(self._chain(payload))

    def __len__(self) -> int:
        return len(self.steps)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(steps={[step.label for step in self.steps]})"


class NestedFlowStep(Step):
    """
    Runs its steps as a separate Flowpipe.

    Behaves like :class:`CompositeStep` but gets its own flow context (run
    id, tags, metadata) and may carry its own tracer.

    Example:
        NestedFlowStep([ValidateAddress(), NormalizeAddress()], tracer=TestTracer())
    """

    def __init__(
        self,
        steps: Sequence[Any],
        tracer: Optional[Any] = None,
        resolver: Optional[StepResolver] = None
    ):
        self.resolver = resolver or StepResolver()
        self.steps: List[Step] = self.resolver.resolve_all(list(steps))
        self.tracer = tracer

    def handle(self, payload: Any, next: Continuation) -> Any:
        from ..core.pipeline import Flowpipe

        result = (Flowpipe(tracer=self.tracer, resolver=self.resolver)
                  .send(payload)
                  .through(self.steps)
                  .then_return())
        return next(result)

    def __repr__(self) -> str:
        return f"NestedFlowStep(steps={[step.label for step in self.steps]})"


class GroupStep(Step):
    """
    Runs a named group from a :class:`GroupRegistry`.

    The group is looked up on every invocation, so re-registering a group
    takes effect for pipelines that were already built.

    Raises:
        GroupNotFoundError: At run time, if the group is missing, or empty
            and ``allow_empty`` is False
    """

    def __init__(
        self,
        group_name: str,
        registry: Optional[GroupRegistry] = None,
        allow_empty: bool = False
    ):
        self.group_name = group_name
        self.registry = registry if registry is not None else default_registry()
        self.allow_empty = allow_empty
        self.name = group_name

    def handle(self, payload: Any, next: Continuation) -> Any:
        if not self.registry.has(self.group_name):
            raise GroupNotFoundError(self.group_name, f"Group '{self.group_name}' not found")

        steps = self.registry.get(self.group_name)
        if not steps and not self.allow_empty:
            raise GroupNotFoundError(self.group_name, f"Group '{self.group_name}' is empty")

        logger.debug(f"Executing group '{self.group_name}' ({len(steps)} steps)")
        return next(compose(steps, tail=identity)(payload))

    def __repr__(self) -> str:
        return f"GroupStep(group_name='{self.group_name}')"
