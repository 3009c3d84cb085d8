"""askmypdf.common.logging_utils

Process-wide logging setup driven by the ``logging`` configuration section.

Modules obtain their own logger with ``logging.getLogger(__name__)``; this
module only installs handlers and levels once for the ``askmypdf`` namespace.
"""

import logging
from typing import Any, Mapping

DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def configure_logging(section: Mapping[str, Any] | None = None, *, force: bool = False) -> None:
    """Configure the ``askmypdf`` logger hierarchy.

    Parameters
    ----------
    section : Mapping[str, Any] or None, optional
        The ``logging`` configuration section. Recognised keys are ``level``
        (name or number, default ``"INFO"``) and ``format``.
    force : bool, optional
        Re-apply the configuration even if it has already been applied in this
        process.
    """
    global _configured
    if _configured and not force:
        return

    section = section or {}
    level = section.get("level", "INFO")
    if isinstance(level, str):
        level = logging.getLevelName(level.strip().upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger("askmypdf")
    root.setLevel(level)

    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(section.get("format") or DEFAULT_FORMAT))
        root.addHandler(handler)

    _configured = True


__all__ = ["configure_logging", "DEFAULT_FORMAT"]
