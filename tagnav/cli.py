"""Command-line front door for tagnav.

Parses CLI options, builds a terminal ``Session`` around ``$EDITOR``, and
dispatches one-shot commands or the interactive ``shell`` in which the jump
history lives.
"""

from __future__ import annotations

import argparse
import logging
import shlex
import sys
from collections.abc import Callable, Sequence
from pathlib import Path

from .config import Settings, load_settings, with_overrides
from .editor import EditorHost
from .errors import TagNavError
from .highlight import colorize_candidate
from .navigation import NavigationStack
from .query.types import PathStyle, QueryType
from .session import CompletionSource, Session
from .update import UpdateMode, create_tags

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
MAX_LISTED_CANDIDATES = 200
COMPLETION_WAIT_SECONDS = 5.0

FIND_TYPES: dict[str, QueryType] = {
    "definition": QueryType.DEFINITION,
    "reference": QueryType.REFERENCE,
    "symbol": QueryType.SYMBOL,
    "pattern": QueryType.PATTERN,
    "file": QueryType.FILE,
    "from-here": QueryType.FROM_HERE,
}

SHELL_COMMANDS: dict[str, QueryType] = {
    "def": QueryType.DEFINITION,
    "ref": QueryType.REFERENCE,
    "sym": QueryType.SYMBOL,
    "pat": QueryType.PATTERN,
    "file": QueryType.FILE,
    "here": QueryType.FROM_HERE,
}

SHELL_HELP = (
    "def|ref|sym|pat|here NAME   find and jump (add -o for the other view, -a for all)\n"
    "file [NAME]                 find a file\n"
    "dwim                        definition/reference of the symbol at point\n"
    "back | forward              walk the jump history\n"
    "stack                       show the jump history\n"
    "at PATH [LINE] [SYMBOL]     set the current location\n"
    "update [MODE] | save        refresh tags (entire-update, single-update, generate-other-directory)\n"
    "quit"
)


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def _ask(prompt: str) -> str | None:
    try:
        return input(prompt)
    except EOFError:
        return None


class TerminalSelector:
    """Numbered-list selection on stdin/stdout."""

    def __init__(self, style: str = "monokai", color: bool = True, ask: Callable[[str], str | None] = _ask) -> None:
        self.style = style
        self.color = color
        self.ask = ask

    def read(self, prompt: str, source: CompletionSource, default: str | None = None) -> str | None:
        text = self.ask(prompt)
        if text is None:
            return None
        text = text.strip()
        if not text:
            return default
        source.set_query(text)
        source.wait(COMPLETION_WAIT_SECONDS)
        if source.needs_more_input():
            return text
        names = [name for name in source.candidates() if name]
        if not names or text in names:
            return text
        chosen = self.choose(prompt, names)
        return chosen if chosen is not None else text

    def choose(self, prompt: str, candidates: Sequence[str]) -> str | None:
        shown = list(candidates[:MAX_LISTED_CANDIDATES])
        for index, candidate in enumerate(shown, start=1):
            print(f"{index:>4} {colorize_candidate(candidate, self.style, self.color)}")
        if len(candidates) > len(shown):
            print(f"     ... {len(candidates) - len(shown)} more")
        answer = self.ask(f"{prompt.strip()} [1-{len(shown)}]: ")
        if answer is None or not answer.strip():
            return None
        try:
            index = int(answer.strip())
        except ValueError:
            return None
        if not 1 <= index <= len(shown):
            return None
        return shown[index - 1]


def _confirm(prompt: str) -> bool:
    answer = _ask(prompt + "(yes or no) ")
    return answer is not None and answer.strip().lower() in {"y", "yes"}


def _choose_root() -> Path | None:
    answer = _ask("Root Directory: ")
    if answer is None or not answer.strip():
        return None
    return Path(answer.strip()).expanduser()


def build_session(args: argparse.Namespace, settings: Settings) -> Session:
    directory = Path(args.directory).expanduser() if args.directory else Path.cwd()
    path = Path(args.file).expanduser() if getattr(args, "file", None) else None
    if path is not None and not path.is_absolute():
        path = directory / path
    host = EditorHost(
        directory=path.parent if path is not None else directory,
        path=path,
        line=getattr(args, "line", None) or 1,
        symbol=getattr(args, "symbol", None),
    )
    selector = TerminalSelector(style=settings.style, color=not args.no_color and sys.stdout.isatty())
    return Session(host, selector, settings, confirm=_confirm, choose_root=_choose_root, report=print)


def format_stack(stack: NavigationStack) -> str:
    if not len(stack):
        return "Context stack is empty"
    rows: list[str] = []
    for index, entry in enumerate(stack.entries):
        marker = ">" if index == stack.position else " "
        where = str(entry.path) if entry.path is not None else "<buffer>"
        rows.append(f"{marker} {index:>3} {entry.direction.value:<4} {where}:{entry.line}")
    return "\n".join(rows)


def _run_shell_line(session: Session, words: list[str]) -> bool:
    """Execute one shell command; returns ``False`` to leave the shell."""
    command, rest = words[0], words[1:]
    if command in {"quit", "exit", "q"}:
        return False
    if command in {"help", "?"}:
        print(SHELL_HELP)
    elif command in SHELL_COMMANDS:
        other_view = "-o" in rest
        show_all = "-a" in rest
        query = " ".join(word for word in rest if word not in {"-o", "-a"})
        session.find(SHELL_COMMANDS[command], query or None, other_view=other_view, show_all=show_all)
    elif command == "dwim":
        session.dwim()
    elif command == "back":
        session.go_backward()
    elif command == "forward":
        session.go_forward()
    elif command == "stack":
        print(format_stack(session.navigation))
    elif command == "at" and rest:
        if not isinstance(session.host, EditorHost):
            print("at: the current host has no movable location")
            return True
        session.host.move_to(
            Path(rest[0]).expanduser().resolve(),
            int(rest[1]) if len(rest) > 1 and rest[1].isdigit() else 1,
            rest[2] if len(rest) > 2 else None,
        )
    elif command == "update":
        mode = UpdateMode(rest[0]) if rest else UpdateMode.ENTIRE
        session.update_tags(mode)
    elif command == "save":
        session.on_save()
    else:
        print(f"Unknown command: {command} (try 'help')")
    return True


def run_shell(session: Session, ask: Callable[[str], str | None] = _ask) -> None:
    """Interactive loop; the session (and its jump history) lives until exit."""
    while True:
        line = ask("tagnav> ")
        if line is None:
            return
        try:
            words = shlex.split(line)
        except ValueError as exc:
            print(exc)
            continue
        if not words:
            continue
        try:
            if not _run_shell_line(session, words):
                return
        except (TagNavError, ValueError) as exc:
            print(exc)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Search a GNU GLOBAL tag database and jump to results.")
    parser.add_argument("--directory", "-C", default=None, help="Directory to query from (default: cwd).")
    parser.add_argument(
        "--path-style",
        choices=[style.value for style in PathStyle],
        default=None,
        help="Path style passed to global (default from config).",
    )
    parser.add_argument("--ignore-case", action="store_true", default=None, help="Search case-insensitively.")
    parser.add_argument("--no-color", action="store_true", help="Disable color output even on TTY.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log commands and process activity.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    find = subparsers.add_parser("find", help="Find tags and jump to the selected one.")
    find.add_argument("type", choices=sorted(FIND_TYPES))
    find.add_argument("query", nargs="?", default=None)
    find.add_argument("--all", action="store_true", help="Show all locations (global -l).")
    find.add_argument("--other-view", action="store_true", help="Open the result in the secondary view.")
    find.add_argument("--options", default=None, help="Extra options appended to the global command.")
    find.add_argument("--file", default=None, help="Current file (for from-here queries).")
    find.add_argument("--line", type=_positive_int, default=None, help="Current line (for from-here queries).")

    dwim = subparsers.add_parser("dwim", help="Jump between definition and references of SYMBOL.")
    dwim.add_argument("symbol")
    dwim.add_argument("--file", default=None)
    dwim.add_argument("--line", type=_positive_int, default=None)
    dwim.add_argument("--other-view", action="store_true")

    update = subparsers.add_parser("update", help="Refresh the tag database.")
    update.add_argument("--mode", choices=[mode.value for mode in UpdateMode], default=UpdateMode.ENTIRE.value)
    update.add_argument("--file", default=None, help="File for single-update.")

    create = subparsers.add_parser("create", help="Build a tag database with gtags.")
    create.add_argument("root")
    create.add_argument("--label", default=None, help="GTAGSLABEL to build with.")

    subparsers.add_parser("shell", help="Interactive session with jump history.")
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Parse CLI arguments and run one command.

    ``TagNavError`` failures exit with their message.
    """
    args = _build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format=LOG_FORMAT)

    settings = with_overrides(
        load_settings(),
        path_style=PathStyle(args.path_style) if args.path_style else None,
        ignore_case=args.ignore_case,
    )

    try:
        if args.command == "create":
            root = Path(args.root).expanduser()
            if not root.is_dir():
                raise SystemExit(f"Not a directory: {root}")
            if not create_tags(root, args.label):
                raise SystemExit(f"Failed: gtags in {root}")
            print(f"Success: created tags in {root}")
            return

        session = build_session(args, settings)
        if args.command == "find":
            session.find(
                FIND_TYPES[args.type],
                args.query,
                other_view=args.other_view,
                show_all=args.all,
                extra_options=args.options,
            )
        elif args.command == "dwim":
            session.dwim(other_view=args.other_view)
        elif args.command == "update":
            if session.update_tags(UpdateMode(args.mode)) is not None:
                session.scheduler.wait()
        elif args.command == "shell":
            run_shell(session)
    except TagNavError as exc:
        raise SystemExit(str(exc)) from exc


if __name__ == "__main__":
    main()
