"""Small helpers shared by the pipeline core and the tracers."""

import time
from typing import Any


def now_ms() -> float:
    """Current wall-clock time in milliseconds."""
    return time.time() * 1000


def duration_ms(start: float, end: float = None) -> float:
    """
    Milliseconds elapsed between two ``time.perf_counter()`` readings.

    Args:
        start: Start reading (seconds)
        end: End reading (seconds); defaults to now

    Returns:
        Elapsed milliseconds
    """
    if end is None:
        end = time.perf_counter()
    return (end - start) * 1000


def short_class_name(value: Any) -> str:
    """Return the unqualified class name of an object, class or dotted path."""
    if isinstance(value, str):
        return value.rsplit(".", 1)[-1]
    if isinstance(value, type):
        return value.__name__
    return type(value).__name__
