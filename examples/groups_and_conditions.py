"""
Reusable step groups and conditional routing.

Groups are registered once under a name and referenced by that name in any
pipeline. Conditions accept a named predicate, a field comparison mapping
or a callable.
"""

from flowpipe import (
    BatchStep,
    BranchStep,
    ConditionalStep,
    DebugTracer,
    Flowpipe,
    TransformStep,
    ValidationStep,
    register_group,
)

register_group("normalize-order", [
    ValidationStep({"email": "required|email", "total": "required|numeric|min:0"}),
    TransformStep(lambda order: {**order, "email": order["email"].lower()}),
])

apply_discount = ConditionalStep.when(
    {"field": "total", "operator": "greater_than", "value": 100},
    lambda order, next: next({**order, "total": round(order["total"] * 0.9, 2)}),
)

route = BranchStep(
    {"field": "email", "operator": "ends_with", "value": "@example.com"},
    then_steps=[lambda order, next: next({**order, "channel": "internal"})],
    else_steps=[lambda order, next: next({**order, "channel": "customer"})],
)

tracer = DebugTracer()

order = (
    Flowpipe.make(tracer)
    .send({"email": "Ada@Example.com", "total": "150"})
    .through(["normalize-order", apply_discount, route])
    .then_return()
)
print(order)
tracer.print_summary()


# ---------------------------------------------------------------------------
# Batches: the rest of the chain runs once per chunk
# ---------------------------------------------------------------------------
doubled = (
    Flowpipe.make()
    .send([1, 2, 3, 4, 5])
    .through([BatchStep(batch_size=2), TransformStep.map(lambda n: n * 2)])
    .then_return()
)
print(doubled)  # [2, 4, 6, 8, 10]
