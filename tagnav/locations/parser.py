"""Parse ``path:line[:text]`` candidate lines from ``global --result=grep``.

A leading drive designator (``C:``) would otherwise be taken for the first
field separator, so it is split off before the colon split.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_DRIVE_RE = re.compile(r"^[A-Za-z]:(?=[/\\])")


@dataclass(frozen=True)
class ParsedLocation:
    path: str
    line: int = 1


def _line_number(field: str | None) -> int:
    if field is None:
        return 1
    try:
        value = int(field.strip())
    except ValueError:
        return 1
    return value if value >= 1 else 1


def parse_candidate(candidate: str) -> ParsedLocation | None:
    """Return the path and line of one candidate, or ``None`` without a path.

    Missing or non-numeric line fields default to line 1.
    """
    text = candidate.rstrip("\r\n")
    drive = ""
    match = _DRIVE_RE.match(text)
    if match is not None:
        drive = match.group(0)
        text = text[match.end():]

    fields = text.split(":", 2)
    path = drive + fields[0]
    if not fields[0]:
        return None
    line = _line_number(fields[1] if len(fields) > 1 else None)
    return ParsedLocation(path=path, line=line)
