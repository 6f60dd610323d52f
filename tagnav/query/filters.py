"""Line-filter tool discovery for narrowing huge tag listings.

The probe runs once per process; a missing tool is remembered too.
Callers fall back to unfiltered enumeration when no tool is found.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass

logger = logging.getLogger(__name__)

FILTER_COMMANDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("rg", ("--color", "never")),
    ("ag", ("--nocolor",)),
    ("grep", ("--color=never",)),
)

_UNPROBED = object()
_FILTER_COMMAND_CACHE: dict[str, object] = {"value": _UNPROBED}


@dataclass(frozen=True)
class FilterCommand:
    name: str
    no_color_options: tuple[str, ...]

    def argv(self, pattern: str, ignore_case: bool = False) -> list[str]:
        args = [self.name, *self.no_color_options]
        if ignore_case:
            args.append("-i")
        args.extend(["--", pattern])
        return args


def clear_filter_cache() -> None:
    _FILTER_COMMAND_CACHE["value"] = _UNPROBED


def find_filter_command() -> FilterCommand | None:
    """Return the first available filter tool, memoized for the process."""
    cached = _FILTER_COMMAND_CACHE["value"]
    if cached is not _UNPROBED:
        return cached  # type: ignore[return-value]

    found: FilterCommand | None = None
    for name, options in FILTER_COMMANDS:
        if shutil.which(name) is not None:
            found = FilterCommand(name=name, no_color_options=options)
            break
    if found is None:
        logger.info("no line filter found among %s", ", ".join(name for name, _ in FILTER_COMMANDS))
    else:
        logger.debug("using %s to filter tag listings", found.name)
    _FILTER_COMMAND_CACHE["value"] = found
    return found
