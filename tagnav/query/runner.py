"""Background query execution with latest-query-wins output.

Each ``start`` kills the previous process (or pipeline) and bumps a
generation counter. Reader threads append lines only while their generation
is current, so superseded output never reaches the candidate list.
"""

from __future__ import annotations

import logging
import subprocess
import threading
from collections.abc import Callable, Sequence
from pathlib import Path

from .command import render_pipeline

logger = logging.getLogger(__name__)

DEFAULT_MIN_QUERY_LENGTH = 3
KEEP_TYPING = ""

FinishedCallback = Callable[[int | None, list[str]], None]


def _kill(procs: Sequence[subprocess.Popen[str]]) -> None:
    for proc in procs:
        if proc.poll() is None:
            try:
                proc.kill()
            except OSError:
                continue


class AsyncQueryRunner:
    """Run one logical search at a time and collect its stdout lines."""

    def __init__(
        self,
        min_query_length: int = DEFAULT_MIN_QUERY_LENGTH,
        encoding: str = "utf-8",
        on_finished: FinishedCallback | None = None,
    ) -> None:
        self.min_query_length = max(0, min_query_length)
        self.encoding = encoding
        self.on_finished = on_finished
        self._lock = threading.Lock()
        self._generation = 0
        self._procs: list[subprocess.Popen[str]] = []
        self._candidates: list[str] = []
        self._returncode: int | None = None
        self._done = threading.Event()
        self._done.set()

    @property
    def returncode(self) -> int | None:
        with self._lock:
            return self._returncode

    def candidates(self) -> list[str]:
        """Snapshot of the current query's candidates."""
        with self._lock:
            return list(self._candidates)

    def is_running(self) -> bool:
        return not self._done.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the current query finishes; used by one-shot callers and tests."""
        with self._lock:
            done = self._done
        return done.wait(timeout)

    def cancel(self) -> None:
        """Stop the running query; nothing it prints afterwards is kept."""
        with self._lock:
            self._generation += 1
            procs = self._procs
            self._procs = []
            self._done.set()
        if procs:
            logger.debug("cancelling superseded query")
        _kill(procs)

    def start(
        self,
        stages: Sequence[Sequence[str]],
        query: str,
        *,
        cwd: Path | None = None,
        enforce_min_length: bool = True,
    ) -> bool:
        """Supersede any running query and start ``stages`` for ``query``.

        Returns ``False`` without running anything when the query is shorter
        than the minimum length (candidates become ``[KEEP_TYPING]``) or when
        the process cannot be launched (candidates become empty).
        """
        self.cancel()
        done = threading.Event()
        with self._lock:
            self._done = done
            self._candidates = []
            self._returncode = None
            generation = self._generation
            if enforce_min_length and len(query) < self.min_query_length:
                self._candidates = [KEEP_TYPING]
                done.set()
                return False

        try:
            procs = self._spawn(stages, cwd)
        except OSError as exc:
            logger.warning("failed to run %s: %s", render_pipeline(stages), exc)
            done.set()
            return False

        with self._lock:
            if generation != self._generation:
                superseded = True
            else:
                superseded = False
                self._procs = procs
        if superseded:
            _kill(procs)
            return False

        reader = threading.Thread(
            target=self._read_output,
            args=(generation, procs, done),
            name="tagnav-query-reader",
            daemon=True,
        )
        reader.start()
        return True

    def _spawn(self, stages: Sequence[Sequence[str]], cwd: Path | None) -> list[subprocess.Popen[str]]:
        procs: list[subprocess.Popen[str]] = []
        stdin = None
        try:
            for index, stage in enumerate(stages):
                last = index == len(stages) - 1
                proc = subprocess.Popen(
                    list(stage),
                    cwd=cwd,
                    stdin=stdin if stdin is not None else subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.DEVNULL,
                    text=last,
                    encoding=self.encoding if last else None,
                    errors="replace" if last else None,
                )
                if stdin is not None:
                    stdin.close()
                procs.append(proc)
                stdin = proc.stdout
        except OSError:
            _kill(procs)
            raise
        logger.debug("started %s", render_pipeline(stages))
        return procs

    def _read_output(
        self,
        generation: int,
        procs: list[subprocess.Popen[str]],
        done: threading.Event,
    ) -> None:
        last = procs[-1]
        assert last.stdout is not None
        try:
            for raw in last.stdout:
                line = raw.rstrip("\r\n")
                if not line:
                    continue
                with self._lock:
                    if generation != self._generation:
                        break
                    self._candidates.append(line)
        finally:
            last.stdout.close()
            for proc in procs:
                proc.wait()

        with self._lock:
            if generation != self._generation:
                return
            self._returncode = last.returncode
            self._procs = []
            candidates = list(self._candidates)
            done.set()
        if last.returncode not in (0, None):
            logger.debug("query exited with status %s", last.returncode)
        if self.on_finished is not None:
            self.on_finished(last.returncode, candidates)
