"""
Logging Configuration Module

flowpipe logs through loguru and never installs sinks on import. Applications
that want flowpipe's output call :func:`configure_logging` once.

Every record emitted while a pipeline runs carries the run id in
``record["extra"]["flow_id"]``; the sinks installed here print it so that
interleaved runs can be told apart. Records outside a run show ``-``.

Environment variables (explicit arguments win):

- ``FLOWPIPE_LOG_LEVEL``: console level (default ``INFO``)
- ``FLOWPIPE_LOG_FILE``: path of an additional log file (default: none)
- ``FLOWPIPE_DISABLE_AUTO_LOGGING=1``: make :func:`configure_logging` a no-op

Author: flowpipe Team
Date: 2025-06-13
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional, Union

from loguru import logger

LOG_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>flow={extra[flow_id]}</cyan> | {message}"
)

_configured = False


class _StdlibBridge(logging.Handler):
    """Forwards standard ``logging`` records (e.g. from step code) to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(depth=6, exception=record.exc_info).log(level, record.getMessage())


def configure_logging(
    level: Optional[str] = None,
    log_file: Optional[Union[str, Path]] = None,
    force: bool = False
) -> Optional[Path]:
    """
    Install flowpipe's loguru sinks.

    Args:
        level: Console level (falls back to ``FLOWPIPE_LOG_LEVEL``, then INFO)
        log_file: Extra file sink at DEBUG (falls back to ``FLOWPIPE_LOG_FILE``)
        force: Reconfigure even if already configured

    Returns:
        Path of the file sink, or None when only the console sink was added
        (or nothing was configured)
    """
    global _configured

    if _configured and not force:
        return None
    if os.environ.get("FLOWPIPE_DISABLE_AUTO_LOGGING", "").lower() in {"1", "true", "yes", "on"}:
        return None

    level = (level or os.environ.get("FLOWPIPE_LOG_LEVEL") or "INFO").upper()
    log_file = log_file or os.environ.get("FLOWPIPE_LOG_FILE") or None

    logger.remove()
    logger.configure(extra={"flow_id": "-"})
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)

    path = None
    if log_file is not None:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(path, level="DEBUG", format=LOG_FORMAT, enqueue=True, encoding="utf-8")

    logging.basicConfig(handlers=[_StdlibBridge()], level=logging.INFO, force=True)

    logger.debug(f"flowpipe logging configured (level={level}, file={path or 'none'})")
    _configured = True
    return path


__all__ = ["configure_logging", "LOG_FORMAT"]
