"""Tag database refresh scheduling.

Runs ``global -u``, ``global --single-update FILE`` or a fresh ``gtags``
build in the background. Automatic single-file refreshes are rate-limited by
a minimum interval; completion is reported from a watcher thread.
"""

from __future__ import annotations

import enum
import logging
import subprocess
import threading
import time
from collections.abc import Callable, Sequence
from pathlib import Path

from .locations.paths import local_truename, wrap_for_origin
from .query.command import GLOBAL_COMMAND

logger = logging.getLogger(__name__)

GTAGS_COMMAND = "gtags"
GTAGS_LABELS: tuple[str, ...] = ("default", "native", "ctags", "pygments")
DEFAULT_UPDATE_INTERVAL_SECONDS = 60


class UpdateMode(enum.Enum):
    ENTIRE = "entire-update"
    GENERATE_OTHER_DIRECTORY = "generate-other-directory"
    SINGLE = "single-update"


def _report_to_log(message: str) -> None:
    logger.info("%s", message)


def gtags_command(label: str | None = None) -> list[str]:
    argv = [GTAGS_COMMAND, "-q"]
    if label:
        argv.append(f"--gtagslabel={label}")
    return argv


def create_tags(root: Path, label: str | None = None) -> bool:
    """Build a database in ``root`` synchronously; returns whether it succeeded."""
    stages, cwd = wrap_for_origin([gtags_command(label)], root)
    try:
        proc = subprocess.run(
            stages[0],
            cwd=cwd,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except OSError as exc:
        logger.warning("failed to run %s: %s", GTAGS_COMMAND, exc)
        return False
    return proc.returncode == 0


class UpdateScheduler:
    """Owns the last-update timestamp used to throttle automatic refreshes."""

    def __init__(
        self,
        interval_seconds: int | None = DEFAULT_UPDATE_INTERVAL_SECONDS,
        update_options: Sequence[str] = (),
        report: Callable[[str], None] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.interval_seconds = interval_seconds
        self.update_options = tuple(update_options)
        self.report = report or _report_to_log
        self.clock = clock
        self.last_update: float | None = None
        self._watcher: threading.Thread | None = None

    def should_update(
        self,
        mode: UpdateMode,
        interactive: bool,
        *,
        has_file: bool = True,
        now: float | None = None,
    ) -> bool:
        """Interactive calls always run; automatic ones only for throttled single-file updates."""
        if interactive:
            return True
        if mode is not UpdateMode.SINGLE or not has_file:
            return False
        if self.interval_seconds is None or self.last_update is None:
            return True
        now = self.clock() if now is None else now
        return now - self.last_update >= self.interval_seconds

    def update_command(
        self,
        mode: UpdateMode,
        *,
        file: Path | None = None,
        label: str | None = None,
    ) -> list[str]:
        if mode is UpdateMode.ENTIRE:
            argv = [GLOBAL_COMMAND, "-u"]
        elif mode is UpdateMode.SINGLE:
            if file is None:
                raise ValueError("single-update needs a file")
            argv = [GLOBAL_COMMAND, "--single-update", local_truename(file)]
        else:
            argv = gtags_command(label)
        return [*argv, *self.update_options]

    def update(
        self,
        mode: UpdateMode,
        directory: Path,
        *,
        interactive: bool = False,
        file: Path | None = None,
        choose_root: Callable[[], Path | None] | None = None,
        choose_label: Callable[[Sequence[str]], str | None] | None = None,
        now: float | None = None,
    ) -> subprocess.Popen[bytes] | None:
        """Launch a refresh when the throttle allows it.

        ``directory`` is where the command runs; ``generate-other-directory``
        asks ``choose_root``/``choose_label`` for a new root and gtags label.
        Returns the launched process, or ``None`` when nothing was started.
        """
        if not self.should_update(mode, interactive, has_file=file is not None, now=now):
            return None

        label: str | None = None
        if mode is UpdateMode.GENERATE_OTHER_DIRECTORY:
            chosen = choose_root() if choose_root is not None else None
            if chosen is None:
                self.report(f"Failed: {mode.value} (no root directory)")
                return None
            directory = chosen
            label = choose_label(GTAGS_LABELS) if choose_label is not None else None

        try:
            argv = self.update_command(mode, file=file, label=label)
        except ValueError as exc:
            self.report(f"Failed: {mode.value} ({exc})")
            return None

        stages, cwd = wrap_for_origin([argv], directory)
        try:
            proc = subprocess.Popen(
                stages[0],
                cwd=cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as exc:
            self.report(f"Failed: {mode.value} ({exc})")
            return None

        self.last_update = self.clock() if now is None else now
        logger.debug("started %s in %s", argv, directory)
        watcher = threading.Thread(
            target=self._watch,
            args=(mode, proc),
            name="tagnav-update-watch",
            daemon=True,
        )
        watcher.start()
        self._watcher = watcher
        return proc

    def wait(self, timeout: float | None = None) -> None:
        """Wait for the latest launched refresh to be reported."""
        if self._watcher is not None:
            self._watcher.join(timeout)

    def _watch(self, mode: UpdateMode, proc: subprocess.Popen[bytes]) -> None:
        returncode = proc.wait()
        if returncode == 0:
            self.report(f"Success: {mode.value}")
        else:
            self.report(f"Failed: {mode.value} (exit {returncode})")
