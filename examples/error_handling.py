"""
Error handling: retry, fall back, compensate.

ErrorHandlerStep wraps everything after it in the pipeline. Its strategy
decides, per failure, whether to retry, return a fallback payload, run a
compensation handler, fail or abort.
"""

from flowpipe import (
    CompensationStrategy,
    CompositeStrategy,
    ErrorHandlerStep,
    FallbackStrategy,
    Flowpipe,
    RetryStrategy,
)

attempts = {"count": 0}


def unreliable_api(payload, next):
    """Fails twice, then succeeds."""
    attempts["count"] += 1
    if attempts["count"] < 3:
        raise ConnectionError(f"API unavailable (attempt {attempts['count']})")
    return next({**payload, "status": "sent"})


# ---------------------------------------------------------------------------
# A. Retry with exponential backoff
# ---------------------------------------------------------------------------
result = (
    Flowpipe.make()
    .send({"order": 42})
    .through([
        ErrorHandlerStep(RetryStrategy.exponential_backoff(max_attempts=3, base_delay_ms=50)),
        unreliable_api,
    ])
    .then_return()
)
print(f"Retried: {result} after {attempts['count']} attempts")


# ---------------------------------------------------------------------------
# B. Retry, then fall back to a default
# ---------------------------------------------------------------------------
def always_down(payload, next):
    raise ConnectionError("still down")


strategy = (
    CompositeStrategy()
    .retry(RetryStrategy.for_exception(ConnectionError, max_attempts=2, delay_ms=10))
    .fallback(FallbackStrategy.with_default({"status": "queued"}))
)

result = (
    Flowpipe.make()
    .send({"order": 43})
    .through([ErrorHandlerStep(strategy, max_attempts=5), always_down])
    .then_return()
)
print(f"Fallback: {result}")


# ---------------------------------------------------------------------------
# C. Compensation
# ---------------------------------------------------------------------------
def release_reservation(payload, error, context):
    print(f"  releasing stock for order {payload['order']} ({error})")
    return {**payload, "status": "rolled back"}


result = (
    Flowpipe.make()
    .send({"order": 44})
    .through([ErrorHandlerStep(CompensationStrategy.rollback(release_reservation)), always_down])
    .then_return()
)
print(f"Compensated: {result}")
