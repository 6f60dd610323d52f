"""Tag-jump session: queries, selection, jumps, and history in one place.

A ``Session`` owns the navigation stack and update throttle as explicit
state. The editor side is reached only through a ``Host`` and the selection
UI only through a ``Selector``, so several independent sessions can coexist.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from .config import Settings
from .errors import EmptyQueryError
from .locations.parser import parse_candidate
from .locations.paths import (
    ResolvedLocation,
    local_truename,
    query_directory,
    resolve_location,
    wrap_for_origin,
)
from .navigation import ContextEntry, Direction, NavigationStack
from .query.command import build_completion_command, build_query_command
from .query.filters import find_filter_command
from .query.runner import KEEP_TYPING, AsyncQueryRunner
from .query.types import COMPLETABLE_TYPES, FromHere, PathStyle, QuerySpec, QueryType
from .update import GTAGS_LABELS, UpdateMode, UpdateScheduler, create_tags

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentLocation:
    """Where the user is when a command starts."""

    directory: Path
    line: int = 1
    path: Path | None = None
    buffer: object | None = None


class Host(Protocol):
    def current_location(self) -> CurrentLocation: ...

    def symbol_at_point(self) -> str | None: ...

    def open_path(self, path: Path, line: int, other_view: bool = False) -> bool: ...

    def visit_file(self, path: Path, line: int) -> bool: ...

    def switch_to_buffer(self, buffer: Any, line: int) -> bool: ...


class Selector(Protocol):
    def read(self, prompt: str, source: CompletionSource, default: str | None = None) -> str | None: ...

    def choose(self, prompt: str, candidates: Sequence[str]) -> str | None: ...


class CompletionSource:
    """Tag-name candidates for a prompt, re-queried as the input changes."""

    def __init__(
        self,
        runner: AsyncQueryRunner,
        spec: QuerySpec,
        directory: Path,
        *,
        show_all: bool = False,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self.runner = runner
        self.spec = spec
        self.directory = directory
        self.show_all = show_all
        self.env = env

    def set_query(self, text: str) -> bool:
        """Start listing tags matching ``text``; short input is not run."""
        spec = QuerySpec(
            type=self.spec.type,
            query=text,
            origin_directory=self.spec.origin_directory,
            path_style=self.spec.path_style,
            ignore_case=self.spec.ignore_case,
        )
        stages = build_completion_command(spec, find_filter_command(), show_all=self.show_all, env=self.env)
        stages, cwd = wrap_for_origin(stages, self.directory)
        return self.runner.start(stages, text, cwd=cwd)

    def candidates(self) -> list[str]:
        return self.runner.candidates()

    def needs_more_input(self) -> bool:
        return self.runner.candidates() == [KEEP_TYPING]

    def wait(self, timeout: float | None = None) -> bool:
        return self.runner.wait(timeout)

    def cancel(self) -> None:
        self.runner.cancel()


def _report_to_log(message: str) -> None:
    logger.info("%s", message)


class Session:
    """One editing session: the host, its jump history and the tag updater."""

    def __init__(
        self,
        host: Host,
        selector: Selector,
        settings: Settings | None = None,
        *,
        env: Mapping[str, str] | None = None,
        confirm: Callable[[str], bool] | None = None,
        choose_root: Callable[[], Path | None] | None = None,
        report: Callable[[str], None] | None = None,
    ) -> None:
        self.host = host
        self.selector = selector
        self.settings = settings or Settings()
        self.env = os.environ if env is None else env
        self.confirm = confirm
        self.choose_root = choose_root
        self.report = report or _report_to_log
        self.runner = AsyncQueryRunner(min_query_length=self.settings.min_query_length)
        self.scheduler = UpdateScheduler(
            interval_seconds=self.settings.update_interval_seconds,
            update_options=self.settings.update_options,
            report=self.report,
        )
        self._stack: NavigationStack | None = None

    @property
    def navigation(self) -> NavigationStack:
        if self._stack is None:
            self._stack = NavigationStack()
        return self._stack

    def _create_tags_for_query(self) -> Path | None:
        root = self.choose_root() if self.choose_root is not None else None
        if root is None:
            return None
        label = self.choose_label(GTAGS_LABELS)
        if not create_tags(root, label):
            self.report(f"Failed: gtags in {root}")
            return None
        return root

    def choose_label(self, labels: Sequence[str]) -> str | None:
        return self.selector.choose("GTAGSLABEL(Default: default): ", labels)

    def query_directory(self, origin: Path) -> Path:
        """Directory ``global`` runs in for queries started from ``origin``."""
        return query_directory(
            self.settings.path_style,
            origin,
            env=self.env,
            confirm=self.confirm,
            create=self._create_tags_for_query,
        )

    def make_spec(
        self,
        query_type: QueryType,
        query: str,
        origin: Path,
        from_here: FromHere | None = None,
    ) -> QuerySpec:
        return QuerySpec(
            type=query_type,
            query=query,
            origin_directory=origin,
            path_style=PathStyle.parse(self.settings.path_style),
            ignore_case=self.settings.ignore_case,
            extra_options=self.settings.query_options,
            from_here=from_here,
        )

    def read_query(self, query_type: QueryType, origin: Path, directory: Path, show_all: bool = False) -> str:
        """Prompt for a query with tag-name completion, defaulting to the symbol at point."""
        default = self.host.symbol_at_point() if self.settings.use_input_at_point else None
        prompt = query_type.prompt
        if default:
            prompt = f"{prompt.rstrip(': ')} (default \"{default}\"): "
        # Patterns and from-here queries complete against definition names.
        completion_type = query_type if query_type in COMPLETABLE_TYPES else QueryType.DEFINITION
        source = CompletionSource(
            self.runner,
            self.make_spec(completion_type, "", origin),
            directory,
            show_all=show_all,
            env=self.env,
        )
        answer = self.selector.read(prompt, source, default)
        source.cancel()
        return (answer or default or "").strip()

    def collect(
        self,
        spec: QuerySpec,
        directory: Path,
        *,
        show_all: bool = False,
        extra_options: str | Sequence[str] | None = None,
    ) -> list[str]:
        """Run ``spec`` to completion and return its non-empty output lines."""
        argv = build_query_command(spec, extra_options, show_all=show_all, env=self.env)
        stages, cwd = wrap_for_origin([argv], directory)
        if not self.runner.start(stages, spec.query, cwd=cwd, enforce_min_length=False):
            return []
        self.runner.wait()
        return [candidate for candidate in self.runner.candidates() if candidate]

    def find(
        self,
        query_type: QueryType,
        query: str | None = None,
        *,
        other_view: bool = False,
        show_all: bool = False,
        extra_options: str | Sequence[str] | None = None,
    ) -> ResolvedLocation | None:
        """Query, let the user pick one result, and jump there.

        The origin directory is captured before anything else so a jump made
        while the query runs cannot change how results resolve.
        """
        current = self.host.current_location()
        origin = current.directory
        directory = self.query_directory(origin)

        text = (query or "").strip()
        if not text and query_type is not QueryType.FILE:
            text = self.read_query(query_type, origin, directory, show_all)
            if not text:
                raise EmptyQueryError("Input is empty!!")

        from_here: FromHere | None = None
        if query_type is QueryType.FROM_HERE:
            if current.path is None:
                query_type = QueryType.DEFINITION
            else:
                from_here = FromHere(path=local_truename(current.path), line=current.line)

        spec = self.make_spec(query_type, text, origin, from_here)
        candidates = self.collect(spec, directory, show_all=show_all, extra_options=extra_options)
        if not candidates:
            self.report(f"No results for {text!r}" if text else "No results")
            return None
        if len(candidates) == 1:
            selected: str | None = candidates[0]
        else:
            selected = self.selector.choose(spec.type.prompt, candidates)
        if selected is None:
            return None
        return self.jump_to(selected, origin, directory, other_view=other_view)

    def dwim(self, *, other_view: bool = False) -> ResolvedLocation | None:
        """Jump between a definition and its references for the symbol at point."""
        symbol = self.host.symbol_at_point()
        current = self.host.current_location()
        query_type = QueryType.FROM_HERE if current.path is not None else QueryType.DEFINITION
        return self.find(query_type, symbol, other_view=other_view)

    def jump_to(
        self,
        candidate: str,
        origin: Path,
        directory: Path,
        *,
        other_view: bool = False,
        push: bool = True,
    ) -> ResolvedLocation | None:
        """Open one candidate line and record the jump in the history."""
        parsed = parse_candidate(candidate)
        if parsed is None:
            self.report(f"Cannot parse {candidate!r}")
            return None
        location = resolve_location(
            parsed,
            self.settings.path_style,
            origin,
            root=directory,
            env=self.env,
        )
        if push:
            self.push_context(Direction.FROM)
        if not self.host.open_path(location.path, location.line, other_view):
            return None
        self.push_context(Direction.TO)
        return location

    def push_context(self, direction: Direction) -> None:
        """Record the current location; locations without a file or buffer are skipped."""
        current = self.host.current_location()
        if current.path is None and current.buffer is None:
            return
        entry = ContextEntry.capture(direction, current.line, path=current.path, buffer=current.buffer)
        self.navigation.push(entry)

    def go_backward(self) -> bool:
        """Return to the previous location in the jump history."""
        return self.navigation.go_backward(self.host)

    def go_forward(self) -> bool:
        """Undo a ``go_backward``."""
        return self.navigation.go_forward(self.host)

    def update_tags(
        self,
        mode: UpdateMode = UpdateMode.ENTIRE,
        *,
        interactive: bool = True,
    ) -> subprocess.Popen[bytes] | None:
        """Refresh the tag database for the current location."""
        current = self.host.current_location()
        return self.scheduler.update(
            mode,
            current.directory,
            interactive=interactive,
            file=current.path,
            choose_root=self.choose_root,
            choose_label=self.choose_label,
        )

    def on_save(self) -> subprocess.Popen[bytes] | None:
        """Hook for file saves: a throttled single-file update when enabled."""
        if not self.settings.auto_update:
            return None
        current = self.host.current_location()
        if current.path is None:
            return None
        return self.update_tags(UpdateMode.SINGLE, interactive=False)
