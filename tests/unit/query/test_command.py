"""Tests for ``global`` command construction.

Pins the fixed option order and the no-duplicate-flag guarantee.
Also covers from-here flags, result-format overrides, and completion pipelines.
"""

from __future__ import annotations

import itertools
import unittest
from pathlib import Path

from tagnav.errors import ConfigurationError
from tagnav.query.command import (
    build_completion_command,
    build_query_command,
    command_options,
    render_command,
    split_options,
    type_flag,
)
from tagnav.query.filters import FilterCommand
from tagnav.query.types import FromHere, PathStyle, QuerySpec, QueryType

ORIGIN = Path("/work/project")
ORDER = ["-T", "-l", "-i", "--path-style", "type", "--result"]


def _spec(query_type: QueryType = QueryType.DEFINITION, query: str = "main", **kwargs) -> QuerySpec:
    return QuerySpec(type=query_type, query=query, origin_directory=ORIGIN, **kwargs)


def _kind(option: str) -> str:
    name = option.split("=", 1)[0]
    if name in {"-d", "-r", "-s", "-g", "-P", "--from-here"}:
        return "type"
    return name


class CommandOrderTests(unittest.TestCase):
    def test_all_flags_follow_fixed_precedence(self) -> None:
        spec = _spec(ignore_case=True, path_style=PathStyle.ABSOLUTE)
        argv = build_query_command(spec, show_all=True, env={"GTAGSLIBPATH": "/usr/include"})
        self.assertEqual(
            argv,
            ["global", "-T", "-l", "-i", "--path-style=absolute", "-d", "--result=grep", "main"],
        )

    def test_plain_definition_query(self) -> None:
        argv = build_query_command(_spec(), env={})
        self.assertEqual(argv, ["global", "--path-style=through", "-d", "--result=grep", "main"])

    def test_type_flags_per_query_type(self) -> None:
        expected = {
            QueryType.DEFINITION: "-d",
            QueryType.REFERENCE: "-r",
            QueryType.SYMBOL: "-s",
            QueryType.PATTERN: "-g",
            QueryType.FILE: "-P",
        }
        for query_type, flag in expected.items():
            with self.subTest(query_type=query_type):
                options = command_options(_spec(query_type), env={})
                self.assertEqual(options[1], flag)

    def test_no_duplicate_flags_and_order_holds_for_all_combinations(self) -> None:
        for libpath, show_all, ignore_case, style, query_type in itertools.product(
            (False, True),
            (False, True),
            (False, True),
            list(PathStyle),
            [QueryType.DEFINITION, QueryType.REFERENCE, QueryType.SYMBOL, QueryType.PATTERN, QueryType.FILE],
        ):
            env = {"GTAGSLIBPATH": "/lib"} if libpath else {}
            spec = _spec(query_type, ignore_case=ignore_case, path_style=style, extra_options=("-i", "--result=ctags"))
            options = command_options(spec, "-l", show_all=show_all, env=env)
            kinds = [_kind(option) for option in options]
            with self.subTest(options=options):
                self.assertEqual(len(kinds), len(set(kinds)))
                leading = kinds[: kinds.index("type") + 1]
                ranked = [ORDER.index(kind) for kind in leading if kind in ORDER]
                self.assertEqual(ranked, sorted(ranked))

    def test_extra_result_format_replaces_default(self) -> None:
        argv = build_query_command(_spec(), "--result=ctags-x", env={})
        self.assertNotIn("--result=grep", argv)
        self.assertEqual(argv[-2:], ["--result=ctags-x", "main"])

    def test_caller_options_come_after_configured_options(self) -> None:
        spec = _spec(extra_options=("--encode-path= ",))
        argv = build_query_command(spec, ["--nearness"], env={})
        self.assertEqual(argv[-3:], ["--encode-path= ", "--nearness", "main"])

    def test_extra_options_cannot_repeat_leading_flags(self) -> None:
        argv = build_query_command(_spec(ignore_case=True), "-i --path-style=abslib -r", env={})
        self.assertEqual(argv.count("-i"), 1)
        self.assertIn("--path-style=through", argv)
        self.assertNotIn("--path-style=abslib", argv)
        self.assertNotIn("-r", argv)

    def test_from_here_uses_invocation_point(self) -> None:
        spec = _spec(QueryType.FROM_HERE, from_here=FromHere(path="/work/project/a.c", line=12))
        argv = build_query_command(spec, env={})
        self.assertIn("--from-here=12:/work/project/a.c", argv)

    def test_from_here_without_location_is_a_config_error(self) -> None:
        with self.assertRaises(ConfigurationError):
            build_query_command(_spec(QueryType.FROM_HERE), env={})

    def test_type_flags_for_plain_queries(self) -> None:
        expected = {
            QueryType.DEFINITION: "-d",
            QueryType.REFERENCE: "-r",
            QueryType.SYMBOL: "-s",
            QueryType.PATTERN: "-g",
            QueryType.FILE: "-P",
        }
        for query_type, flag in expected.items():
            with self.subTest(query_type=query_type):
                self.assertEqual(type_flag(_spec(query_type)), flag)

    def test_empty_query_is_omitted(self) -> None:
        argv = build_query_command(_spec(QueryType.FILE, ""), env={})
        self.assertEqual(argv[-1], "--result=grep")

    def test_render_command_quotes_arguments(self) -> None:
        self.assertEqual(render_command(["global", "-d", "a b"]), "global -d 'a b'")

    def test_split_options_rejects_unbalanced_quotes(self) -> None:
        with self.assertRaises(ConfigurationError):
            split_options("--encode-path='")


class CompletionCommandTests(unittest.TestCase):
    def test_filtered_listing_is_a_two_stage_pipeline(self) -> None:
        tool = FilterCommand(name="rg", no_color_options=("--color", "never"))
        stages = build_completion_command(_spec(query="mai", ignore_case=True), tool, env={})
        self.assertEqual(stages[0], ["global", "-c", "-i", "--path-style=through"])
        self.assertEqual(stages[1], ["rg", "--color", "never", "-i", "--", "mai"])

    def test_without_filter_uses_prefix_completion(self) -> None:
        stages = build_completion_command(_spec(QueryType.REFERENCE, "mai"), None, env={})
        self.assertEqual(stages, [["global", "-c", "--path-style=through", "-r", "mai"]])


if __name__ == "__main__":
    unittest.main()
