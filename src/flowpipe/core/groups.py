"""
Group Registry Module

Named, pre-resolved step sequences that can be reused across pipelines.

``get`` on an unknown name returns an empty tuple, exactly like ``get`` on a
group registered with no steps. Call sites that must tell the two apart
check ``has`` first (``GroupStep`` does).

Author: flowpipe Team
Date: 2025-06-02
"""

import threading
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from loguru import logger

from ..config import get_settings
from .step import Step

OverwriteHook = Callable[[str, Tuple[Step, ...], Tuple[Step, ...]], None]


class GroupRegistry:
    """
    Thread-safe mapping of group name to resolved steps.

    Example::

        groups = GroupRegistry()
        groups.register("sanitize", [Trim(), "lowercase", lambda p, next: next(p)])

        pipeline = Flowpipe.make(resolver=StepResolver(groups=groups))
        pipeline.send(" Hi ").through(["sanitize", Greet()]).then_return()
    """

    def __init__(self, on_overwrite: Optional[OverwriteHook] = None):
        """
        Initialize registry.

        Args:
            on_overwrite: Optional diagnostic hook called with
                ``(name, old_steps, new_steps)`` when a name is re-registered
        """
        self._groups: Dict[str, Tuple[Step, ...]] = {}
        self._lock = threading.RLock()
        self.on_overwrite = on_overwrite

    def register(self, name: str, steps: Sequence[Any], resolver: Optional[Any] = None) -> None:
        """
        Resolve and store a group. Last registration wins.

        Args:
            name: Group name
            steps: Step references
            resolver: Resolver to use (defaults to one bound to this registry)
        """
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Group name must be a non-empty string")

        if resolver is None:
            from .resolver import StepResolver
            resolver = StepResolver(groups=self)

        resolved = tuple(resolver.resolve_all(list(steps)))

        with self._lock:
            previous = self._groups.get(name)
            self._groups[name] = resolved

        if previous is not None:
            if get_settings().warn_on_group_overwrite:
                logger.warning(f"Group '{name}' re-registered; previous definition replaced")
            if self.on_overwrite is not None:
                self.on_overwrite(name, previous, resolved)

        logger.debug(f"Registered group: {name} ({len(resolved)} steps)")

    def get(self, name: str) -> Tuple[Step, ...]:
        """Return the group's steps, or an empty tuple for unknown names."""
        with self._lock:
            return self._groups.get(name, ())

    def has(self, name: str) -> bool:
        """Check if a group is registered."""
        with self._lock:
            return name in self._groups

    def all(self) -> Dict[str, Tuple[Step, ...]]:
        """Snapshot of all registered groups."""
        with self._lock:
            return dict(self._groups)

    def unregister(self, name: str) -> None:
        """Remove a group if present."""
        with self._lock:
            self._groups.pop(name, None)

    def clear(self) -> None:
        """Clear all registered groups."""
        with self._lock:
            self._groups.clear()
        logger.debug("Cleared group registry")

    def count(self) -> int:
        """Number of registered groups."""
        with self._lock:
            return len(self._groups)

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    def __len__(self) -> int:
        return self.count()

    def __repr__(self) -> str:
        return f"GroupRegistry(groups={sorted(self.all())})"


_default_registry = GroupRegistry()


def default_registry() -> GroupRegistry:
    """Process-wide registry used when none is injected."""
    return _default_registry


def register_group(name: str, steps: Sequence[Any]) -> None:
    """Register a group in the process-wide registry."""
    _default_registry.register(name, steps)


def get_group(name: str) -> Tuple[Step, ...]:
    """Get a group from the process-wide registry."""
    return _default_registry.get(name)


def has_group(name: str) -> bool:
    """Check the process-wide registry."""
    return _default_registry.has(name)


def clear_groups() -> None:
    """Clear the process-wide registry (mainly for testing)."""
    _default_registry.clear()


__all__ = [
    "GroupRegistry",
    "default_registry",
    "register_group",
    "get_group",
    "has_group",
    "clear_groups",
]
