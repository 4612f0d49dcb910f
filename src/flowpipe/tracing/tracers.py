"""
Tracer Implementations

- TestTracer: keeps every record in memory (assertions in tests)
- BasicTracer: logs each record through loguru
- PerformanceTracer: durations, memory snapshots and bottlenecks
- DebugTracer: formatted records plus a Rich summary table

Author: flowpipe Team
Date: 2025-06-09
"""

import time
import tracemalloc
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from loguru import logger
from rich.console import Console
from rich.table import Table

from ..config import get_settings
from .base import Tracer


class TestTracer(Tracer):
    """Tracer that records everything for later inspection."""

    __test__ = False  # not a pytest test class

    def __init__(self):
        self._logs: List[Dict[str, Any]] = []

    def trace(self, step, payload_before, payload_after, duration_ms=None) -> None:
        self._logs.append({
            'step': step,
            'before': payload_before,
            'after': payload_after,
            'duration': duration_ms,
        })

    def all(self) -> List[Dict[str, Any]]:
        return list(self._logs)

    def steps(self) -> List[str]:
        return [entry['step'] for entry in self._logs]

    def count(self) -> int:
        return len(self._logs)

    def first_step(self) -> Optional[str]:
        return self._logs[0]['step'] if self._logs else None

    def last_step(self) -> Optional[str]:
        return self._logs[-1]['step'] if self._logs else None

    def clear(self) -> None:
        self._logs.clear()


class BasicTracer(Tracer):
    """Logs every step through loguru when tracing is enabled in the settings."""

    def __init__(self, level: str = "DEBUG"):
        self.level = level

    def trace(self, step, payload_before, payload_after, duration_ms=None) -> None:
        if not get_settings().tracing_enabled:
            return

        logger.log(
            self.level,
            f"[TRACE] {step} | Δ{duration_ms or 0:.2f}ms | "
            f"before={payload_before!r} | after={payload_after!r}"
        )


class PerformanceTracer(Tracer):
    """
    Collects per-step timings and memory readings.

    Memory figures come from ``tracemalloc``; tracing is started on
    construction if it is not already running.

    Example::

        tracer = PerformanceTracer()
        Flowpipe.make(tracer).send(data).through(steps).then_return()
        report = tracer.get_performance_report()
    """

    #: Thresholds used by has_performance_issues()
    max_total_ms: float = 1000.0
    max_step_ms: float = 500.0
    max_peak_bytes: int = 50 * 1024 * 1024

    def __init__(self):
        if not tracemalloc.is_tracing():
            tracemalloc.start()
        self._metrics: List[Dict[str, Any]] = []
        self._start_time = time.perf_counter()
        self._start_memory, _ = tracemalloc.get_traced_memory()

    def trace(self, step, payload_before, payload_after, duration_ms=None) -> None:
        current, peak = tracemalloc.get_traced_memory()
        self._metrics.append({
            'step': step,
            'duration_ms': duration_ms or 0.0,
            'memory': current,
            'memory_peak': peak,
            'timestamp': time.perf_counter() - self._start_time,
        })

    def get_metrics(self) -> List[Dict[str, Any]]:
        return list(self._metrics)

    def get_total_execution_time(self) -> float:
        """Milliseconds since the tracer was created."""
        return (time.perf_counter() - self._start_time) * 1000

    def get_total_memory_used(self) -> int:
        current, _ = tracemalloc.get_traced_memory()
        return current - self._start_memory

    def get_peak_memory_usage(self) -> int:
        _, peak = tracemalloc.get_traced_memory()
        return peak

    def get_bottlenecks(self, count: int = 5) -> List[Dict[str, Any]]:
        return sorted(self._metrics, key=lambda m: m['duration_ms'], reverse=True)[:count]

    def get_memory_hogs(self, count: int = 5) -> List[Dict[str, Any]]:
        return sorted(self._metrics, key=lambda m: m['memory_peak'], reverse=True)[:count]

    def has_performance_issues(self) -> bool:
        if self.get_total_execution_time() > self.max_total_ms:
            return True
        if any(m['duration_ms'] > self.max_step_ms for m in self._metrics):
            return True
        return self.get_peak_memory_usage() > self.max_peak_bytes

    def get_performance_report(self) -> Dict[str, Any]:
        return {
            'total_execution_time_ms': self.get_total_execution_time(),
            'total_memory_used_bytes': self.get_total_memory_used(),
            'peak_memory_usage_bytes': self.get_peak_memory_usage(),
            'step_count': len(self._metrics),
            'bottlenecks': self.get_bottlenecks(),
            'memory_hogs': self.get_memory_hogs(),
            'has_performance_issues': self.has_performance_issues(),
        }


class DebugTracer(Tracer):
    """
    Tracer for interactive debugging.

    Every record is kept in a compact, printable form and logged at DEBUG
    level; :meth:`print_summary` renders per-step statistics with Rich.
    """

    def __init__(self, console: Optional[Console] = None, echo: bool = False):
        """
        Args:
            console: Rich console used for output (defaults to stdout)
            echo: Print each record as it arrives
        """
        self.console = console or Console(highlight=False)
        self.echo = echo
        self._traces: List[Dict[str, Any]] = []

    def trace(self, step, payload_before, payload_after, duration_ms=None) -> None:
        record = {
            'step': step,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'before': self.format_payload(payload_before),
            'after': self.format_payload(payload_after),
            'duration_ms': duration_ms or 0.0,
        }
        self._traces.append(record)
        logger.debug("flowpipe step executed: {}", record)

        if self.echo:
            self.console.print(
                f"[{record['timestamp']}] {step} | {record['before']} → "
                f"{record['after']} | {record['duration_ms']:.2f}ms",
                markup=False,
            )

    def get_traces(self) -> List[Dict[str, Any]]:
        return list(self._traces)

    def clear(self) -> None:
        self._traces.clear()

    def get_total_duration(self) -> float:
        return sum(t['duration_ms'] for t in self._traces)

    def get_average_duration(self) -> float:
        if not self._traces:
            return 0.0
        return self.get_total_duration() / len(self._traces)

    def get_slowest_step(self) -> Optional[Dict[str, Any]]:
        if not self._traces:
            return None
        return max(self._traces, key=lambda t: t['duration_ms'])

    def get_step_stats(self) -> Dict[str, Dict[str, float]]:
        grouped: Dict[str, List[float]] = defaultdict(list)
        for trace in self._traces:
            grouped[trace['step']].append(trace['duration_ms'])

        return {
            name: {
                'count': len(durations),
                'total_duration': sum(durations),
                'min_duration': min(durations),
                'max_duration': max(durations),
                'avg_duration': sum(durations) / len(durations),
            }
            for name, durations in grouped.items()
        }

    def print_summary(self) -> None:
        """Render a summary table of all recorded steps."""
        table = Table(title="Flowpipe Execution Summary")
        table.add_column("Step")
        table.add_column("Calls", justify="right")
        table.add_column("Avg (ms)", justify="right")
        table.add_column("Min (ms)", justify="right")
        table.add_column("Max (ms)", justify="right")

        for name, stats in self.get_step_stats().items():
            table.add_row(
                name,
                str(stats['count']),
                f"{stats['avg_duration']:.2f}",
                f"{stats['min_duration']:.2f}",
                f"{stats['max_duration']:.2f}",
            )

        self.console.print(table)
        self.console.print(
            f"Total steps: {len(self._traces)} | "
            f"total {self.get_total_duration():.2f}ms | "
            f"average {self.get_average_duration():.2f}ms"
        )
        slowest = self.get_slowest_step()
        if slowest is not None:
            self.console.print(f"Slowest step: {slowest['step']} ({slowest['duration_ms']:.2f}ms)")

    @staticmethod
    def format_payload(payload: Any) -> str:
        if payload is None or isinstance(payload, (str, int, float, bool)):
            return str(payload)
        if isinstance(payload, (list, tuple, dict, set)):
            return f"{type(payload).__name__}({len(payload)})"
        return type(payload).__name__


_TRACERS = {
    'test': TestTracer,
    'basic': BasicTracer,
    'performance': PerformanceTracer,
    'debug': DebugTracer,
}


def create_tracer(name: str) -> Tracer:
    """
    Build a built-in tracer by name.

    Raises:
        ValueError: If the name is unknown
    """
    key = name.strip().lower()
    if key not in _TRACERS:
        raise ValueError(f"Unknown tracer '{name}'. Available: {sorted(_TRACERS)}")
    return _TRACERS[key]()
