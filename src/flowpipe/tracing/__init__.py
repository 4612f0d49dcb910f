"""Execution tracers for flowpipe."""

from .base import Tracer
from .tracers import (
    BasicTracer,
    DebugTracer,
    PerformanceTracer,
    TestTracer,
    create_tracer,
)

__all__ = [
    "Tracer",
    "BasicTracer",
    "DebugTracer",
    "PerformanceTracer",
    "TestTracer",
    "create_tracer",
]
