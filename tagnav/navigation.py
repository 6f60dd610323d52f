"""Context stack: the history of tag jumps with a movable cursor.

This module intentionally has no UI concerns.
Restoring a location is delegated to a ``ContextHost`` supplied per call.
"""

from __future__ import annotations

import enum
import weakref
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from .errors import ContextStackEmpty

MAX_CONTEXT_ENTRIES = 256


class Direction(enum.Enum):
    FROM = "from"
    TO = "to"


class ContextHost(Protocol):
    def visit_file(self, path: Path, line: int) -> bool: ...

    def switch_to_buffer(self, buffer: Any, line: int) -> bool: ...


@dataclass(frozen=True)
class ContextEntry:
    """One visited location.

    ``buffer`` is a weak reference: the stack never keeps an editor buffer alive.
    """

    line: int
    direction: Direction
    path: Path | None = None
    buffer: weakref.ReferenceType[Any] | None = None

    @classmethod
    def capture(
        cls,
        direction: Direction,
        line: int,
        path: Path | None = None,
        buffer: object | None = None,
    ) -> ContextEntry:
        ref = weakref.ref(buffer) if buffer is not None else None
        return cls(line=max(1, line), direction=direction, path=path, buffer=ref)

    def live_buffer(self) -> object | None:
        return self.buffer() if self.buffer is not None else None


class NavigationStack:
    """Most-recent-first list of ``ContextEntry`` plus a cursor.

    Pushing while the cursor is not at the head drops the entries in front
    of it, like committing on a detached branch.
    """

    def __init__(self, max_entries: int = MAX_CONTEXT_ENTRIES) -> None:
        self.max_entries = max(1, max_entries)
        self._entries: list[ContextEntry] = []
        self.position = 0

    @property
    def entries(self) -> tuple[ContextEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()
        self.position = 0

    def push(self, entry: ContextEntry) -> None:
        """Record ``entry`` as the new head and reset the cursor."""
        del self._entries[: self.position]
        if (
            entry.direction is Direction.FROM
            and self._entries
            and self._entries[0].direction is Direction.FROM
        ):
            self._entries.pop(0)
        self._entries.insert(0, entry)
        del self._entries[self.max_entries :]
        self.position = 0

    def goto(self, position: int, host: ContextHost) -> bool:
        """Restore the entry at ``position``; the stack is never mutated here."""
        if not 0 <= position < len(self._entries):
            return False
        entry = self._entries[position]
        if entry.path is not None and host.visit_file(entry.path, entry.line):
            return True
        buffer = entry.live_buffer()
        if buffer is not None:
            return host.switch_to_buffer(buffer, entry.line)
        return False

    def go_backward(self, host: ContextHost) -> bool:
        """Move to the nearest older entry that can still be restored."""
        if not self._entries:
            raise ContextStackEmpty()
        for position in range(self.position + 1, len(self._entries)):
            if self.goto(position, host):
                self.position = position
                return True
        return False

    def go_forward(self, host: ContextHost) -> bool:
        """Move to the nearest newer entry that can still be restored."""
        if not self._entries:
            raise ContextStackEmpty()
        for position in range(self.position - 1, -1, -1):
            if self.goto(position, host):
                self.position = position
                return True
        return False
