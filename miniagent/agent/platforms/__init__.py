"""Per-OS implementations of the tool capabilities.

One executor is chosen at start-up with select_executor() and handed to the
dispatcher; nothing else looks at the operating system.
"""

from __future__ import annotations

import logging
import platform as _platform

from .base import PlatformExecutor, UnsupportedExecutor
from .darwin import DarwinExecutor
from .linux import LinuxExecutor
from .windows import WindowsExecutor

logger = logging.getLogger("miniagent.platforms")

EXECUTORS: dict[str, type[PlatformExecutor]] = {
    "Linux": LinuxExecutor,
    "Darwin": DarwinExecutor,
    "Windows": WindowsExecutor,
}


def select_executor(system: str | None = None, **kwargs) -> PlatformExecutor:
    """Build the executor for ``system`` (default: the running OS)."""
    system = system or _platform.system()
    executor_cls = EXECUTORS.get(system)
    if executor_cls is None:
        logger.warning(f"No executor registered for '{system}'; every tool will be unsupported")
        return UnsupportedExecutor(system, **kwargs)
    executor = executor_cls(**kwargs)
    logger.info(f"Selected {executor!r}")
    return executor


__all__ = [
    "DarwinExecutor",
    "LinuxExecutor",
    "PlatformExecutor",
    "UnsupportedExecutor",
    "WindowsExecutor",
    "select_executor",
]
