"""Editor launch helper and the terminal host used by the CLI.

Runs ``$EDITOR +LINE PATH`` for each jump. The secondary-view entry point
prefers ``$TAGNAV_OTHER_EDITOR`` (for example a split-opening wrapper).
Returns an error message string instead of raising for UI-friendly handling.
"""

from __future__ import annotations

import os
import shlex
import subprocess
from collections.abc import Callable, Mapping
from pathlib import Path

from .locations.paths import is_remote
from .session import CurrentLocation

EDITOR_ENV = "EDITOR"
OTHER_VIEW_EDITOR_ENV = "TAGNAV_OTHER_EDITOR"


def editor_command(
    target: Path,
    line: int,
    other_view: bool = False,
    env: Mapping[str, str] | None = None,
) -> list[str] | None:
    """Return the editor argv for a jump, or ``None`` when no editor is configured."""
    env = os.environ if env is None else env
    editor_env = ""
    if other_view:
        editor_env = env.get(OTHER_VIEW_EDITOR_ENV, "").strip()
    if not editor_env:
        editor_env = env.get(EDITOR_ENV, "").strip()
    if not editor_env:
        return None
    cmd = shlex.split(editor_env)
    if not cmd:
        return None
    return [*cmd, f"+{max(1, line)}", str(target)]


def launch_editor(target: Path, line: int, other_view: bool = False) -> str | None:
    """Run the editor in the foreground; returns an error message on failure."""
    cmd = editor_command(target, line, other_view)
    if cmd is None:
        return "Cannot open: $EDITOR is not set."
    try:
        subprocess.run(cmd, check=False)
    except Exception as exc:
        return f"Failed to launch editor: {exc}"
    return None


class EditorHost:
    """Host for terminal sessions: files open in an external editor.

    There are no in-memory buffers here, so buffer-only history entries
    cannot be restored.
    """

    def __init__(
        self,
        directory: Path,
        path: Path | None = None,
        line: int = 1,
        symbol: str | None = None,
        report: Callable[[str], None] | None = None,
    ) -> None:
        self.directory = directory
        self.path = path
        self.line = max(1, line)
        self.symbol = symbol
        self.report = report or print

    def current_location(self) -> CurrentLocation:
        """Return where the next query starts from."""
        return CurrentLocation(directory=self.directory, line=self.line, path=self.path)

    def symbol_at_point(self) -> str | None:
        return self.symbol

    def move_to(self, path: Path, line: int = 1, symbol: str | None = None) -> None:
        """Set the current location without opening the editor."""
        self.path = path
        self.directory = path.parent
        self.line = max(1, line)
        self.symbol = symbol

    def open_path(self, path: Path, line: int, other_view: bool = False) -> bool:
        """Open ``path`` at ``line`` in the editor and make it the current location."""
        error = launch_editor(path, line, other_view)
        if error is not None:
            self.report(error)
            return False
        self.move_to(path, line, self.symbol)
        return True

    def visit_file(self, path: Path, line: int) -> bool:
        """Restore a history entry; missing local files cannot be restored."""
        if not is_remote(path) and not path.is_file():
            return False
        return self.open_path(path, line)

    def switch_to_buffer(self, buffer: object, line: int) -> bool:
        return False
