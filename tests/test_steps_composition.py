"""
Tests for conditional, branch, composite, nested flow and group steps.
"""

import pytest

from flowpipe.core import Flowpipe, GroupNotFoundError, ResolutionError, Step, StepResolver
from flowpipe.steps import BranchStep, CompositeStep, ConditionalStep, GroupStep, NestedFlowStep
from flowpipe.tracing import TestTracer


class Uppercase(Step):
    def handle(self, payload, next):
        return next(payload.upper())


class Recorder(Step):
    def __init__(self):
        self.seen = []

    def handle(self, payload, next):
        self.seen.append(payload)
        return next(payload)


def not_a_string(payload, next):
    return next(f"{payload} (not a string)")


@pytest.mark.unit
class TestConditionalStep:
    """Tests for ConditionalStep."""

    def test_condition_true_runs_step(self):
        """Test the guarded step runs when the condition holds."""
        result = (Flowpipe.make()
                  .send("abc")
                  .through([ConditionalStep.when("is_string", Uppercase())])
                  .then_return())

        assert result == "ABC"

    def test_condition_false_skips_step(self):
        """Test the guarded step never runs and the payload is unchanged."""
        recorder = Recorder()
        downstream = Recorder()

        result = (Flowpipe.make()
                  .send(5)
                  .through([ConditionalStep(lambda p: False, recorder), downstream])
                  .then_return())

        assert result == 5
        assert recorder.seen == []
        assert downstream.seen == [5]

    def test_guarded_step_receives_parent_continuation(self):
        """Test a guarded short-circuit ends the outer chain."""
        downstream = Recorder()

        result = (Flowpipe.make()
                  .send("x")
                  .through([ConditionalStep.when("always_true", lambda p, next: "halt"), downstream])
                  .then_return())

        assert result == "halt"
        assert downstream.seen == []

    def test_unless(self):
        """Test negated conditions."""
        step = ConditionalStep.unless("is_string", not_a_string)

        assert Flowpipe.make().send(123).through([step]).then_return() == "123 (not a string)"
        assert Flowpipe.make().send("abc").through([step]).then_return() == "abc"

    def test_if_then_else_with_two_conditionals(self):
        """Test if/then/else built from a normal and a negated conditional."""
        steps = [
            ConditionalStep.when("is_string", Uppercase()),
            ConditionalStep.unless("is_string", not_a_string),
        ]

        assert Flowpipe.make().send(123).through(steps).then_return() == "123 (not a string)"
        assert Flowpipe.make().send("hi").through(steps).then_return() == "HI"

    def test_comparison_condition(self):
        """Test mapping conditions."""
        step = ConditionalStep.when(
            {"field": "total", "operator": "greater_than", "value": 100},
            lambda payload, next: next({**payload, "discount": True})
        )

        result = Flowpipe.make().send({"total": 150}).through([step]).then_return()

        assert result == {"total": 150, "discount": True}


@pytest.mark.unit
class TestBranchStep:
    """Tests for BranchStep."""

    def test_branches(self):
        """Test the then and else branches."""
        branch = BranchStep("is_string", then_steps=[Uppercase()], else_steps=[not_a_string])

        assert Flowpipe.make().send(123).through([branch]).then_return() == "123 (not a string)"
        assert Flowpipe.make().send("hello").through([branch]).then_return() == "HELLO"

    def test_empty_branch_is_identity(self):
        """Test an empty branch passes the payload through."""
        branch = BranchStep("is_string", then_steps=[Uppercase()])

        assert Flowpipe.make().send(7).through([branch]).then_return() == 7

    def test_short_circuit_inside_branch_stays_local(self):
        """Test steps after the branch still run."""
        downstream = Recorder()
        branch = BranchStep("always_true", then_steps=[lambda p, next: "branch-result", Uppercase()])

        result = Flowpipe.make().send("in").through([branch, downstream]).then_return()

        assert result == "branch-result"
        assert downstream.seen == ["branch-result"]


@pytest.mark.unit
class TestCompositeStep:
    """Tests for CompositeStep."""

    def test_runs_inner_steps_then_outer(self):
        """Test inner steps run before the outer continuation."""
        composite = CompositeStep([Uppercase(), lambda p, next: next(p + "!")])

        result = Flowpipe.make().send("go").through([composite, lambda p, next: next(p + "?")]).then_return()

        assert result == "GO!?"

    def test_inner_short_circuit_does_not_abort_parent(self):
        """Test a short-circuit inside only changes the composite's output."""
        inner_skipped = Recorder()
        after = Recorder()
        composite = CompositeStep([lambda p, next: "local", inner_skipped])

        result = Flowpipe.make().send("x").through([composite, after]).then_return()

        assert result == "local"
        assert inner_skipped.seen == []
        assert after.seen == ["local"]

    def test_empty_composite_is_identity(self):
        """Test empty composites pass the payload through."""
        after = Recorder()

        result = Flowpipe.make().send("same").through([CompositeStep([]), after]).then_return()

        assert result == "same"
        assert after.seen == ["same"]

    def test_resolved_once(self, groups):
        """Test steps are resolved at construction."""
        composite = CompositeStep([Uppercase], resolver=StepResolver(groups=groups))

        assert len(composite) == 1
        assert isinstance(composite.steps[0], Uppercase)

    def test_traced_as_single_step(self, tracer):
        """Test the parent tracer sees the composite as one step."""
        composite = CompositeStep([Uppercase(), Uppercase()], name="shout")

        Flowpipe.make(tracer).send("a").through([composite]).then_return()

        assert tracer.steps() == ["shout"]


@pytest.mark.unit
class TestNestedFlowStep:
    """Tests for NestedFlowStep."""

    def test_nested_flow(self):
        """Test nested steps run as their own flow."""
        nested = NestedFlowStep([Uppercase(), lambda p, next: next(p + "!")])

        result = Flowpipe.make().send("a").through([nested, lambda p, next: next(p + "?")]).then_return()

        assert result == "A!?"

    def test_nested_tracer(self, tracer):
        """Test the nested flow reports to its own tracer."""
        inner_tracer = TestTracer()
        nested = NestedFlowStep([Uppercase()], tracer=inner_tracer)

        Flowpipe.make(tracer).send("a").through([nested]).then_return()

        assert inner_tracer.steps() == ["Uppercase"]
        assert tracer.steps() == ["NestedFlowStep"]

    def test_nested_short_circuit_stays_local(self):
        """Test a nested short-circuit does not end the parent."""
        after = Recorder()
        nested = NestedFlowStep([lambda p, next: "inner"])

        Flowpipe.make().send("x").through([nested, after]).then_return()

        assert after.seen == ["inner"]


@pytest.mark.unit
class TestGroupStep:
    """Tests for GroupStep."""

    def test_runs_group(self, groups):
        """Test the group's steps run and the result is forwarded."""
        groups.register("shout", [Uppercase(), lambda p, next: next(p + "!")])
        after = Recorder()

        result = (Flowpipe.make()
                  .send("hey")
                  .through([GroupStep("shout", registry=groups), after])
                  .then_return())

        assert result == "HEY!"
        assert after.seen == ["HEY!"]

    def test_missing_group(self, groups):
        """Test a missing group raises at run time."""
        pipeline = Flowpipe.make().send(1).through([GroupStep("missing", registry=groups)])

        with pytest.raises(GroupNotFoundError) as exc_info:
            pipeline.then_return()

        assert exc_info.value.group_name == "missing"
        assert isinstance(exc_info.value, LookupError)
        assert not isinstance(exc_info.value, ResolutionError)

    def test_empty_group_rejected_by_default(self, groups):
        """Test an empty group raises unless allowed."""
        groups.register("empty", [])

        with pytest.raises(GroupNotFoundError, match="empty"):
            Flowpipe.make().send(1).through([GroupStep("empty", registry=groups)]).then_return()

    def test_empty_group_allowed(self, groups):
        """Test allow_empty turns an empty group into identity."""
        groups.register("empty", [])

        result = (Flowpipe.make()
                  .send(1)
                  .through([GroupStep("empty", registry=groups, allow_empty=True)])
                  .then_return())

        assert result == 1

    def test_group_looked_up_at_invocation(self, groups):
        """Test re-registration affects already built pipelines."""
        groups.register("g", [Uppercase()])
        pipeline = Flowpipe.make().through([GroupStep("g", registry=groups)])

        assert pipeline("a") == "A"

        groups.register("g", [lambda p, next: next(p * 2)])

        assert pipeline("a") == "aa"

    def test_label_is_group_name(self, groups, tracer):
        """Test group steps are traced under their name."""
        groups.register("g", [Uppercase()])

        Flowpipe.make(tracer).send("a").through([GroupStep("g", registry=groups)]).then_return()

        assert tracer.steps() == ["g"]
