"""
Step Resolver Module

This module turns heterogeneous step references (step instances, plain
functions, step classes, registered names, dotted import paths and group
names) into :class:`~flowpipe.core.step.Step` instances.

Resolution is eager: it happens once while a pipeline, group or composite
is being built, never while the chain runs.

Author: flowpipe Team
Date: 2025-06-02
"""

import importlib
import re
import threading
from typing import Any, Callable, Dict, List, Optional, Sequence, Type, Union

from loguru import logger

from ..config import FlowpipeSettings, get_settings
from .errors import ResolutionError
from .step import FunctionStep, Step

StepFactory = Callable[[], Any]


class StepTypeRegistry:
    """
    Registry of named step types.

    This singleton class maps short names to step classes (or zero-argument
    factories), so flows can reference steps by name instead of by import.

    Example::

        @register_step
        class SendWelcomeEmail(Step):
            name = "send_welcome_email"
            ...

        # Or manually
        registry = StepTypeRegistry.get_instance()
        registry.register("mailer", lambda: SendWelcomeEmail(smtp=client))

        step = StepResolver().resolve("send_welcome_email")
    """

    _instance: Optional['StepTypeRegistry'] = None

    def __init__(self):
        """Initialize registry (use get_instance() for the shared one)."""
        self._registry: Dict[str, StepFactory] = {}
        self._lock = threading.RLock()

    @classmethod
    def get_instance(cls) -> 'StepTypeRegistry':
        """Get singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def register(
        self,
        name: str,
        factory: Union[Type[Step], StepFactory],
        force: bool = False
    ) -> None:
        """
        Register a step type.

        Args:
            name: Step name (unique identifier)
            factory: Step class or zero-argument callable returning a step
            force: If True, override existing registration

        Raises:
            ValueError: If name already registered and force=False
        """
        if not callable(factory):
            raise TypeError(f"Step factory for '{name}' must be callable, got {factory!r}")

        with self._lock:
            if name in self._registry and not force:
                raise ValueError(
                    f"Step '{name}' already registered. "
                    f"Use force=True to override."
                )
            self._registry[name] = factory
        logger.debug(f"Registered step type: {name} -> {getattr(factory, '__name__', factory)}")

    def unregister(self, name: str) -> None:
        """
        Unregister a step type.

        Raises:
            KeyError: If name not registered
        """
        with self._lock:
            if name not in self._registry:
                raise KeyError(f"Step '{name}' not registered")
            del self._registry[name]
        logger.debug(f"Unregistered step type: {name}")

    def get(self, name: str) -> StepFactory:
        """
        Get step factory by name.

        Raises:
            KeyError: If name not registered
        """
        with self._lock:
            if name not in self._registry:
                raise KeyError(
                    f"Step '{name}' not registered. "
                    f"Available: {self.list_names()}"
                )
            return self._registry[name]

    def has(self, name: str) -> bool:
        """Check if step type is registered."""
        with self._lock:
            return name in self._registry

    def list_names(self) -> List[str]:
        """List all registered step names."""
        with self._lock:
            return list(self._registry.keys())

    def clear(self) -> None:
        """Clear all registrations (mainly for testing)."""
        with self._lock:
            self._registry.clear()
        logger.debug("Cleared step type registry")


def register_step(
    step_class: Optional[Type[Step]] = None,
    name: Optional[str] = None,
    force: bool = False
):
    """
    Decorator to register a step class.

    Can be used with or without arguments. The registered name defaults to
    the class's ``name`` attribute, then to the class name.

    Example::

        @register_step
        class Uppercase(Step):
            ...

        @register_step(name="shout")
        class Uppercase(Step):
            ...
    """
    def decorator(cls: Type[Step]) -> Type[Step]:
        step_name = name if name is not None else (getattr(cls, 'name', None) or cls.__name__)
        StepTypeRegistry.get_instance().register(step_name, cls, force=force)
        return cls

    if step_class is not None:
        return decorator(step_class)

    return decorator


def studly(value: str) -> str:
    """Convert ``send_welcome-email`` style names to ``SendWelcomeEmail``."""
    parts = re.split(r"[\s_\-]+", value.strip())
    return "".join(part[:1].upper() + part[1:] for part in parts if part)


class StepResolver:
    """
    Normalizes step references into :class:`Step` instances.

    Accepted references:
    - a Step instance (returned unchanged)
    - a plain callable ``(payload, next)`` (wrapped in a FunctionStep)
    - any object exposing ``handle(payload, next)`` (adapted)
    - a Step subclass (instantiated without arguments)
    - a string: a registered group name, a registered step type name, a
      dotted import path, or a class name looked up in the configured step
      namespaces

    Example::

        resolver = StepResolver()
        steps = resolver.resolve_all([
            Uppercase(),
            lambda payload, next: next(payload + "!"),
            "validation-group",
            "myapp.steps.SendEmail",
        ])
    """

    def __init__(
        self,
        groups: Optional[Any] = None,
        types: Optional[StepTypeRegistry] = None,
        settings: Optional[FlowpipeSettings] = None
    ):
        """
        Initialize resolver.

        Args:
            groups: Group registry consulted for string references
                (defaults to the process-wide registry)
            types: Named step type registry (defaults to the shared one)
            settings: Settings override (defaults to the active settings)
        """
        if groups is None:
            from .groups import default_registry
            groups = default_registry()
        self.groups = groups
        self.types = types if types is not None else StepTypeRegistry.get_instance()
        self._settings = settings

    @property
    def settings(self) -> FlowpipeSettings:
        return self._settings if self._settings is not None else get_settings()

    def resolve(self, ref: Any) -> Step:
        """
        Resolve a single step reference.

        Args:
            ref: Step reference

        Returns:
            Resolved Step

        Raises:
            ResolutionError: If the reference is unknown or does not satisfy
                the step capability
        """
        if isinstance(ref, Step):
            return ref

        if isinstance(ref, str):
            return self._resolve_string(ref)

        if isinstance(ref, type):
            return self._instantiate(ref, ref.__name__)

        handle = getattr(ref, "handle", None)
        if callable(handle):
            return FunctionStep(handle, name=type(ref).__name__)

        if callable(ref):
            return FunctionStep(ref)

        raise ResolutionError(f"Invalid step type: {type(ref).__name__}")

    def resolve_all(self, refs: Sequence[Any]) -> List[Step]:
        """Resolve every reference, preserving order."""
        if isinstance(refs, (str, bytes)) or not isinstance(refs, Sequence):
            raise ResolutionError(
                f"Expected a sequence of step references, got {type(refs).__name__}"
            )
        return [self.resolve(ref) for ref in refs]

    # -------------------------------------------------------------------------
    # String references
    # -------------------------------------------------------------------------

    def _resolve_string(self, ref: str) -> Step:
        name = ref.strip()
        if not name:
            raise ResolutionError("Step reference must be a non-empty string")

        if self.settings.groups_enabled and self.groups.has(name):
            from ..steps.composite import GroupStep
            logger.debug(f"Resolved '{name}' as group")
            return GroupStep(name, registry=self.groups)

        if self.types.has(name):
            return self._instantiate(self.types.get(name), name)

        target = self._import_class(name)
        if target is None:
            for namespace in self.settings.step_namespaces:
                target = self._import_class(f"{namespace}.{studly(name)}")
                if target is not None:
                    break

        if target is None:
            raise ResolutionError(f"Step class or group [{name}] does not exist.")

        # Imported attributes are never called unless they are step classes
        if not isinstance(target, type):
            raise ResolutionError(f"Resolved [{name}] is not a class.")
        if not (issubclass(target, Step) or callable(getattr(target, "handle", None))):
            raise ResolutionError(f"Resolved class [{name}] must implement Step.")

        return self._instantiate(target, name)

    @staticmethod
    def _import_class(path: str) -> Optional[Any]:
        module_name, _, attr = path.rpartition(".")
        if not module_name:
            return None
        try:
            module = importlib.import_module(module_name)
        except (ImportError, ValueError, TypeError):
            return None
        return getattr(module, attr, None)

    @staticmethod
    def _instantiate(factory: Any, name: str) -> Step:
        if not callable(factory):
            raise ResolutionError(f"Resolved [{name}] is not a class or factory.")
        try:
            instance = factory()
        except Exception as exc:
            raise ResolutionError(f"Could not construct step [{name}]: {exc}") from exc

        if isinstance(instance, Step):
            return instance

        handle = getattr(instance, "handle", None)
        if callable(handle):
            return FunctionStep(handle, name=type(instance).__name__)

        raise ResolutionError(f"Resolved class [{name}] must implement Step.")


def default_resolver() -> StepResolver:
    """Resolver bound to the process-wide group and type registries."""
    return StepResolver()


__all__ = [
    "StepTypeRegistry",
    "StepResolver",
    "register_step",
    "default_resolver",
    "studly",
]
