"""
Runtime configuration for flowpipe.

Settings are read from ``FLOWPIPE_*`` environment variables the first time
they are requested and can be overridden programmatically with
:func:`configure` (tests call :func:`reset_settings` between cases).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

from loguru import logger

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    value = value.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    logger.warning(f"Ignoring unrecognised value for {name}: {value!r}")
    return default


@dataclass(frozen=True)
class FlowpipeSettings:
    """
    Process-wide flowpipe settings.

    Attributes:
        step_namespaces: Modules searched when a bare class name is resolved
            (e.g. ``"app.flow.steps"`` turns ``"send_email"`` into
            ``app.flow.steps.SendEmail``).
        tracing_enabled: Global switch honoured by output tracers.
        default_tracer: Built-in tracer attached by ``Flowpipe.make()`` when
            no tracer is given (``"basic"``, ``"debug"``, ``"performance"``,
            ``"test"`` or ``None``).
        groups_enabled: Whether string references are looked up in the
            group registry before being treated as class names.
        warn_on_group_overwrite: Log a warning when a group name is
            registered twice.
    """

    step_namespaces: Tuple[str, ...] = field(default_factory=tuple)
    tracing_enabled: bool = True
    default_tracer: Optional[str] = None
    groups_enabled: bool = True
    warn_on_group_overwrite: bool = True

    @classmethod
    def from_env(cls) -> "FlowpipeSettings":
        """Build settings from ``FLOWPIPE_*`` environment variables."""
        raw_namespaces = os.environ.get("FLOWPIPE_STEP_NAMESPACE", "")
        namespaces = tuple(
            part.strip() for part in raw_namespaces.split(",") if part.strip()
        )
        default_tracer = os.environ.get("FLOWPIPE_DEFAULT_TRACER", "").strip().lower() or None

        return cls(
            step_namespaces=namespaces,
            tracing_enabled=_env_flag("FLOWPIPE_TRACING_ENABLED", True),
            default_tracer=default_tracer,
            groups_enabled=_env_flag("FLOWPIPE_GROUPS_ENABLED", True),
            warn_on_group_overwrite=_env_flag("FLOWPIPE_WARN_ON_GROUP_OVERWRITE", True),
        )


_settings: Optional[FlowpipeSettings] = None


def get_settings() -> FlowpipeSettings:
    """Return the active settings, loading them from the environment once."""
    global _settings
    if _settings is None:
        _settings = FlowpipeSettings.from_env()
    return _settings


def configure(**overrides) -> FlowpipeSettings:
    """
    Override individual settings.

    Args:
        **overrides: Field values for :class:`FlowpipeSettings`

    Returns:
        The new active settings
    """
    global _settings
    if "step_namespaces" in overrides:
        overrides["step_namespaces"] = tuple(overrides["step_namespaces"])
    _settings = replace(get_settings(), **overrides)
    logger.debug(f"flowpipe settings updated: {overrides}")
    return _settings


def reset_settings() -> None:
    """Forget overrides; the next access re-reads the environment."""
    global _settings
    _settings = None


__all__ = ["FlowpipeSettings", "get_settings", "configure", "reset_settings"]
