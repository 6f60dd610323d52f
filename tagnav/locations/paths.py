"""Project-root discovery and candidate path resolution.

Remote directories use the ``/method:user@host:/local/path`` form. ``global``
runs on the remote side and prints remote-local paths, so results are
re-qualified with the origin's prefix before they are opened, and local
truenames sent to ``global`` have the prefix stripped.
"""

from __future__ import annotations

import logging
import os
import re
import shlex
import subprocess
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from ..errors import DatabaseNotFoundError
from ..query.command import GLOBAL_COMMAND, render_pipeline
from ..query.types import PathStyle
from .parser import ParsedLocation

logger = logging.getLogger(__name__)

GTAGS_MARKER = "GTAGS"
ROOT_ENV = "GTAGSROOT"
REMOTE_SHELL_METHODS = frozenset({"ssh", "sshx", "scp", "scpx", "rsync"})

_REMOTE_RE = re.compile(r"^(/(?:[\w.-]+:[^/:|]*\|)*[\w.-]+:[^/:|]*:)(.*)$")
_DRIVE_PATH_RE = re.compile(r"^[A-Za-z]:[/\\]")


@dataclass(frozen=True)
class ResolvedLocation:
    path: Path
    line: int = 1


def split_remote(path: str | Path) -> tuple[str, str]:
    """Split ``path`` into ``(remote_prefix, local_part)``; prefix is ``""`` when local."""
    text = str(path)
    match = _REMOTE_RE.match(text)
    if match is None:
        return "", text
    return match.group(1), match.group(2) or "/"


def is_remote(path: str | Path) -> bool:
    return bool(split_remote(path)[0])


def remote_host(prefix: str) -> tuple[str, str]:
    """Return ``(method, user@host)`` of the last hop in a remote prefix."""
    last_hop = prefix.strip("/:").split("|")[-1]
    method, _sep, host = last_hop.partition(":")
    return method, host.rstrip(":")


def local_truename(path: str | Path) -> str:
    """Return the path as ``global`` sees it on its own host."""
    prefix, local = split_remote(path)
    if prefix:
        return os.path.normpath(local)
    return os.path.realpath(local)


def qualify(prefix: str, local_path: str) -> Path:
    return Path(prefix + local_path) if prefix else Path(local_path)


def _is_absolute(path: str) -> bool:
    return path.startswith("/") or _DRIVE_PATH_RE.match(path) is not None


def wrap_for_origin(
    stages: Sequence[Sequence[str]],
    origin: str | Path,
) -> tuple[list[list[str]], Path | None]:
    """Return pipeline stages and the working directory to launch them from.

    Local origins run as given with ``cwd=origin``. Remote origins reachable by
    ssh run the whole pipeline through one ``ssh`` stage.
    """
    prefix, local = split_remote(origin)
    if not prefix:
        return [list(stage) for stage in stages], Path(local)

    method, host = remote_host(prefix)
    if method not in REMOTE_SHELL_METHODS:
        logger.warning("cannot run commands through %r, running locally", method)
        return [list(stage) for stage in stages], None
    remote_script = f"cd {shlex.quote(local)} && {render_pipeline(stages)}"
    return [["ssh", host, remote_script]], None


def _find_marker_upwards(start: Path) -> Path | None:
    for directory in (start, *start.parents):
        if (directory / GTAGS_MARKER).is_file():
            return directory
    return None


def _remote_project_root(origin: str | Path, timeout_seconds: float = 5.0) -> Path | None:
    prefix, _local = split_remote(origin)
    stages, cwd = wrap_for_origin([[GLOBAL_COMMAND, "-p"]], origin)
    try:
        proc = subprocess.run(
            stages[0],
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
            timeout=timeout_seconds,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    lines = [line.strip() for line in proc.stdout.splitlines() if line.strip()]
    if proc.returncode != 0 or not lines:
        return None
    return qualify(prefix, lines[0])


def locate_project_root(origin: str | Path, env: Mapping[str, str] | None = None) -> Path | None:
    """Return the directory holding the tag database for ``origin``, if any.

    ``GTAGSROOT`` wins; otherwise the nearest ancestor containing ``GTAGS``.
    """
    env = os.environ if env is None else env
    prefix, local = split_remote(origin)
    override = env.get(ROOT_ENV)
    if override:
        return qualify(prefix, override)
    if prefix:
        return _remote_project_root(origin)
    return _find_marker_upwards(Path(local).resolve())


def project_root(
    origin: str | Path,
    *,
    env: Mapping[str, str] | None = None,
    confirm: Callable[[str], bool] | None = None,
    create: Callable[[], Path | None] | None = None,
) -> Path:
    """Like ``locate_project_root`` but offers to build a database when missing.

    Raises ``DatabaseNotFoundError`` when the user declines or creation fails.
    """
    root = locate_project_root(origin, env)
    if root is not None:
        return root
    if confirm is None or create is None:
        raise DatabaseNotFoundError(f"File {GTAGS_MARKER} not found above {origin}")
    if not confirm(f"File {GTAGS_MARKER} not found. Run 'gtags'? "):
        raise DatabaseNotFoundError("Abort generating tag files")
    created = create()
    if created is None:
        raise DatabaseNotFoundError("Failed to generate tag files")
    return created


def query_directory(
    style: PathStyle,
    origin: str | Path,
    *,
    env: Mapping[str, str] | None = None,
    confirm: Callable[[str], bool] | None = None,
    create: Callable[[], Path | None] | None = None,
) -> Path:
    """Directory a query runs from; candidate paths are relative to it."""
    style = PathStyle.parse(style)
    if style is PathStyle.THROUGH:
        return project_root(origin, env=env, confirm=confirm, create=create)
    return Path(origin)


def resolve_location(
    parsed: ParsedLocation,
    style: PathStyle,
    origin: str | Path,
    *,
    root: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> ResolvedLocation:
    """Turn a parsed candidate into an openable path.

    ``origin`` is the directory captured when the query was launched. For the
    ``through`` style ``root`` should be the directory the query ran from;
    it is re-derived from ``origin`` when omitted.
    """
    style = PathStyle.parse(style)
    prefix, local_origin = split_remote(origin)

    if style is PathStyle.THROUGH:
        base = root if root is not None else project_root(origin, env=env)
        _base_prefix, base_local = split_remote(base)
    else:
        base_local = local_origin

    if _is_absolute(parsed.path):
        joined = parsed.path
    else:
        joined = os.path.join(base_local, parsed.path)

    if prefix:
        return ResolvedLocation(path=qualify(prefix, os.path.normpath(joined)), line=parsed.line)
    if _DRIVE_PATH_RE.match(joined) and os.name != "nt":
        return ResolvedLocation(path=Path(joined), line=parsed.line)
    return ResolvedLocation(path=Path(os.path.realpath(joined)), line=parsed.line)
