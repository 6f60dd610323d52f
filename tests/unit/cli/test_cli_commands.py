"""CLI argument dispatch and terminal selection tests.

Verifies how ``tagnav.cli.main`` maps subcommands onto session calls and how
the numbered-list selector and interactive shell read their input.
"""

from __future__ import annotations

import io
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest import mock

from tagnav import cli
from tagnav.config import Settings
from tagnav.errors import ContextStackEmpty
from tagnav.navigation import ContextEntry, Direction, NavigationStack
from tagnav.query.types import PathStyle, QueryType


def _scripted(answers: list[str | None]):
    queue = list(answers)

    def ask(_prompt: str) -> str | None:
        return queue.pop(0) if queue else None

    return ask


class TerminalSelectorTests(unittest.TestCase):
    def test_choose_returns_numbered_candidate(self) -> None:
        selector = cli.TerminalSelector(color=False, ask=_scripted(["2"]))
        with redirect_stdout(io.StringIO()) as out:
            chosen = selector.choose("Find Reference: ", ["a.c:1:x", "b.c:2:y"])
        self.assertEqual(chosen, "b.c:2:y")
        self.assertIn("   1 a.c:1:x", out.getvalue())

    def test_choose_rejects_out_of_range_and_garbage(self) -> None:
        for answer in ("0", "3", "abc", "", None):
            with self.subTest(answer=answer):
                selector = cli.TerminalSelector(color=False, ask=_scripted([answer]))
                with redirect_stdout(io.StringIO()):
                    self.assertIsNone(selector.choose("Pick: ", ["a", "b"]))

    def test_read_returns_default_on_empty_input(self) -> None:
        selector = cli.TerminalSelector(color=False, ask=_scripted([""]))
        source = mock.Mock()
        self.assertEqual(selector.read("Find Definition: ", source, "main"), "main")
        source.set_query.assert_not_called()

    def test_read_keeps_short_input_when_more_characters_are_needed(self) -> None:
        selector = cli.TerminalSelector(color=False, ask=_scripted(["ma"]))
        source = mock.Mock()
        source.needs_more_input.return_value = True
        self.assertEqual(selector.read("Find Definition: ", source), "ma")
        source.set_query.assert_called_once_with("ma")

    def test_read_offers_matching_tag_names(self) -> None:
        selector = cli.TerminalSelector(color=False, ask=_scripted(["mai", "2"]))
        source = mock.Mock()
        source.needs_more_input.return_value = False
        source.candidates.return_value = ["main", "maintain"]
        with redirect_stdout(io.StringIO()):
            self.assertEqual(selector.read("Find Definition: ", source), "maintain")


class FormatStackTests(unittest.TestCase):
    def test_empty_stack_message(self) -> None:
        self.assertEqual(cli.format_stack(NavigationStack()), "Context stack is empty")

    def test_cursor_marker(self) -> None:
        stack = NavigationStack()
        stack.push(ContextEntry.capture(Direction.FROM, 3, path=Path("/src/a.c")))
        stack.push(ContextEntry.capture(Direction.TO, 9, path=Path("/src/b.c")))
        rows = cli.format_stack(stack).splitlines()
        self.assertEqual(rows[0], ">   0 to   /src/b.c:9")
        self.assertEqual(rows[1], "    1 from /src/a.c:3")


class RunShellTests(unittest.TestCase):
    def test_shell_dispatches_commands_until_quit(self) -> None:
        session = mock.Mock()
        with redirect_stdout(io.StringIO()):
            cli.run_shell(session, ask=_scripted(["def main -o", "back", "forward", "bogus", "quit", "ref never"]))
        session.find.assert_called_once_with(QueryType.DEFINITION, "main", other_view=True, show_all=False)
        session.go_backward.assert_called_once_with()
        session.go_forward.assert_called_once_with()

    def test_shell_reports_errors_and_continues(self) -> None:
        session = mock.Mock()
        session.go_backward.side_effect = ContextStackEmpty()
        with redirect_stdout(io.StringIO()) as out:
            cli.run_shell(session, ask=_scripted(["back", "file -a"]))
        self.assertIn("Context stack is empty", out.getvalue())
        session.find.assert_called_once_with(QueryType.FILE, None, other_view=False, show_all=True)


class MainDispatchTests(unittest.TestCase):
    def test_find_passes_flags_to_session(self) -> None:
        with mock.patch("tagnav.cli.load_settings", return_value=Settings()), mock.patch(
            "tagnav.cli.Session.find"
        ) as find:
            cli.main(["--path-style", "relative", "find", "reference", "main", "--all", "--other-view", "--options=-v"])
        find.assert_called_once_with(
            QueryType.REFERENCE,
            "main",
            other_view=True,
            show_all=True,
            extra_options="-v",
        )

    def test_path_style_override_reaches_session(self) -> None:
        captured: dict[str, object] = {}

        def fake_find(self, *_args, **_kwargs):
            captured["style"] = self.settings.path_style
            captured["directory"] = self.host.directory

        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            with mock.patch("tagnav.cli.load_settings", return_value=Settings()), mock.patch(
                "tagnav.cli.Session.find", fake_find
            ):
                cli.main(["-C", str(root), "--path-style", "abslib", "find", "symbol", "x"])
        self.assertEqual(captured["style"], PathStyle.ABSLIB)
        self.assertEqual(captured["directory"], root)

    def test_dwim_uses_file_and_line_context(self) -> None:
        captured: dict[str, object] = {}

        def fake_dwim(self, **_kwargs):
            location = self.host.current_location()
            captured["path"] = location.path
            captured["line"] = location.line
            captured["symbol"] = self.host.symbol_at_point()

        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            with mock.patch("tagnav.cli.load_settings", return_value=Settings()), mock.patch(
                "tagnav.cli.Session.dwim", fake_dwim
            ):
                cli.main(["-C", str(root), "dwim", "helper", "--file", "a.c", "--line", "12"])
        self.assertEqual(captured, {"path": root / "a.c", "line": 12, "symbol": "helper"})

    def test_session_errors_exit_with_message(self) -> None:
        with mock.patch("tagnav.cli.load_settings", return_value=Settings()), mock.patch(
            "tagnav.cli.Session.find", side_effect=ContextStackEmpty("nothing here")
        ):
            with self.assertRaises(SystemExit) as raised:
                cli.main(["find", "definition", "x"])
        self.assertEqual(str(raised.exception), "nothing here")

    def test_create_runs_gtags(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with mock.patch("tagnav.cli.load_settings", return_value=Settings()), mock.patch(
                "tagnav.cli.create_tags", return_value=True
            ) as create, redirect_stdout(io.StringIO()):
                cli.main(["create", tmp, "--label", "ctags"])
        create.assert_called_once_with(Path(tmp), "ctags")


if __name__ == "__main__":
    unittest.main()
