"""
Pytest configuration and fixtures for flowpipe tests.

This module provides common fixtures and utilities for testing.
"""

import pytest

from flowpipe.config import reset_settings
from flowpipe.core import GroupRegistry, Step, StepResolver, StepTypeRegistry, clear_groups
from flowpipe.steps.cache import default_store
from flowpipe.steps.rate_limit import default_limiter
from flowpipe.tracing import TestTracer


class Uppercase(Step):
    """Upper-cases a string payload."""

    def handle(self, payload, next):
        return next(payload.upper())


class Append(Step):
    """Appends a suffix to a string payload."""

    def __init__(self, suffix=" WORLD"):
        self.suffix = suffix

    def handle(self, payload, next):
        return next(payload + self.suffix)


class Recorder(Step):
    """Records every payload it sees and forwards it unchanged."""

    def __init__(self, name=None):
        self.name = name
        self.seen = []

    def handle(self, payload, next):
        self.seen.append(payload)
        return next(payload)


class Flaky(Step):
    """Raises ``error`` on the first ``failures`` calls, then returns ``result``."""

    def __init__(self, failures, result="ok", error=RuntimeError):
        self.failures = failures
        self.result = result
        self.error = error
        self.calls = 0

    def handle(self, payload, next):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error(f"failure {self.calls}")
        return next(self.result)


@pytest.fixture
def tracer():
    """Fresh in-memory tracer."""
    return TestTracer()


@pytest.fixture
def groups():
    """Isolated group registry."""
    return GroupRegistry()


@pytest.fixture
def resolver(groups):
    """Resolver bound to the isolated group registry."""
    return StepResolver(groups=groups)


@pytest.fixture
def step_classes():
    """Helper step classes shared by the test modules."""
    return {
        'Uppercase': Uppercase,
        'Append': Append,
        'Recorder': Recorder,
        'Flaky': Flaky,
    }


@pytest.fixture
def no_sleep():
    """Sleep replacement that records requested delays instead of pausing."""
    delays = []

    def sleep(seconds):
        delays.append(seconds)

    sleep.delays = delays
    return sleep


@pytest.fixture(autouse=True)
def clean_state(monkeypatch):
    """Reset process-wide settings, registries and stores around every test."""
    for name in (
        "FLOWPIPE_STEP_NAMESPACE",
        "FLOWPIPE_TRACING_ENABLED",
        "FLOWPIPE_DEFAULT_TRACER",
        "FLOWPIPE_GROUPS_ENABLED",
        "FLOWPIPE_WARN_ON_GROUP_OVERWRITE",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    clear_groups()
    type_registry = StepTypeRegistry.get_instance()
    registered = dict(type_registry._registry)
    default_store().flush()
    default_limiter().reset()

    yield

    reset_settings()
    clear_groups()
    type_registry._registry.clear()
    type_registry._registry.update(registered)
    default_store().flush()
    default_limiter().reset()


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests for individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests for workflows"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take a long time"
    )
