"""Logging setup shared by every ``price-pulse`` command.

The root level comes from the command flags or ``LOG_LEVEL``. Each component
of the package can be tuned on its own with ``LOG_LEVEL_<COMPONENT>``, e.g.
``LOG_LEVEL_SERVICES=DEBUG`` to watch provider failover without the render
tick chatter.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping

LOG_FORMAT: str = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

PACKAGE: str = __name__.partition(".")[0]

# Subpackages and top-level modules that own a logger subtree
_COMPONENTS: tuple[str, ...] = ("analysis", "services", "reporting", "dashboard", "settings", "cli")

# Transport libraries that log every request or frame
_NOISY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "websockets")


def component_loggers() -> dict[str, str]:
    """Map each ``LOG_LEVEL_<KEY>`` suffix to the logger it controls."""
    return {component.upper(): f"{PACKAGE}.{component}" for component in _COMPONENTS}


def _level_from_name(name: str | None) -> int | None:
    if not name:
        return None
    return logging.getLevelNamesMapping().get(name.strip().upper())


def resolve_level(
    *,
    level: str = "",
    verbose: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> int:
    """Pick the root level: verbose > quiet > *level* > ``LOG_LEVEL`` > INFO."""
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    env = os.environ if environ is None else environ
    for candidate in (level, env.get("LOG_LEVEL")):
        resolved = _level_from_name(candidate)
        if resolved is not None:
            return resolved
    return logging.INFO


def apply_component_overrides(environ: Mapping[str, str] | None = None) -> dict[str, int]:
    """Set per-component levels from ``LOG_LEVEL_<KEY>``; unknown names are ignored."""
    env = os.environ if environ is None else environ
    applied: dict[str, int] = {}
    for key, logger_name in component_loggers().items():
        resolved = _level_from_name(env.get(f"LOG_LEVEL_{key}"))
        if resolved is None:
            continue
        logging.getLogger(logger_name).setLevel(resolved)
        applied[logger_name] = resolved
    return applied


def configure_logging(
    *,
    level: str = "",
    verbose: bool = False,
    quiet: bool = False,
) -> int:
    """Configure the root logger for a CLI command and return its level.

    Uses force=True so a second call (tests, re-entry) replaces the handlers.
    """
    effective = resolve_level(level=level, verbose=verbose, quiet=quiet)
    logging.basicConfig(level=effective, format=LOG_FORMAT, force=True)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    apply_component_overrides()
    return effective
