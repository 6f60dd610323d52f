"""Tests for the background query runner.

Uses short Python child processes so output timing is controllable.
Checks supersession, the minimum-length gate, pipelines, and exit handling.
"""

from __future__ import annotations

import sys
import threading
import time
import unittest

from tagnav.query.runner import KEEP_TYPING, AsyncQueryRunner

SLOW_FOO = (
    "import sys, time\n"
    "for i in range(40):\n"
    "    print(f'foo-{i}', flush=True)\n"
    "    time.sleep(0.05)\n"
)


def _python(script: str) -> list[str]:
    return [sys.executable, "-c", script]


def _wait_for_candidates(runner: AsyncQueryRunner, timeout_seconds: float = 5.0) -> list[str]:
    deadline = time.monotonic() + timeout_seconds
    while time.monotonic() < deadline:
        out = runner.candidates()
        if out:
            return out
        time.sleep(0.01)
    return runner.candidates()


class AsyncQueryRunnerTests(unittest.TestCase):
    def test_short_query_is_gated_with_placeholder(self) -> None:
        runner = AsyncQueryRunner(min_query_length=3)
        started = runner.start([_python("print('never')")], "fo")
        self.assertFalse(started)
        self.assertEqual(runner.candidates(), [KEEP_TYPING])
        self.assertFalse(runner.is_running())

    def test_gate_can_be_skipped_for_one_shot_queries(self) -> None:
        runner = AsyncQueryRunner(min_query_length=3)
        self.assertTrue(runner.start([_python("print('a.c:1:x')")], "", enforce_min_length=False))
        self.assertTrue(runner.wait(5.0))
        self.assertEqual(runner.candidates(), ["a.c:1:x"])

    def test_newer_query_supersedes_older_output(self) -> None:
        runner = AsyncQueryRunner(min_query_length=3)
        runner.start([_python(SLOW_FOO)], "foo")
        self.assertTrue(_wait_for_candidates(runner))

        runner.start([_python("print('foobar')")], "foobar")
        self.assertTrue(runner.wait(5.0))
        time.sleep(0.2)

        self.assertEqual(runner.candidates(), ["foobar"])

    def test_cancel_stops_appending(self) -> None:
        runner = AsyncQueryRunner(min_query_length=0)
        runner.start([_python(SLOW_FOO)], "foo")
        _wait_for_candidates(runner)
        runner.cancel()
        snapshot = runner.candidates()
        time.sleep(0.2)
        self.assertEqual(runner.candidates(), snapshot)
        self.assertFalse(runner.is_running())

    def test_pipeline_stages_are_chained(self) -> None:
        runner = AsyncQueryRunner(min_query_length=0)
        producer = _python("print('alpha'); print('beta'); print('gamma')")
        narrower = _python("import sys\nfor line in sys.stdin:\n    if 'mm' in line: print(line, end='')")
        self.assertTrue(runner.start([producer, narrower], "mm"))
        self.assertTrue(runner.wait(5.0))
        self.assertEqual(runner.candidates(), ["gamma"])

    def test_nonzero_exit_keeps_partial_output_and_reports_status(self) -> None:
        finished = threading.Event()
        seen: list[tuple[int | None, list[str]]] = []

        def on_finished(returncode: int | None, candidates: list[str]) -> None:
            seen.append((returncode, candidates))
            finished.set()

        runner = AsyncQueryRunner(min_query_length=0, on_finished=on_finished)
        runner.start([_python("import sys; print('x.c:3:y'); sys.exit(3)")], "x")
        self.assertTrue(finished.wait(5.0))
        self.assertEqual(seen, [(3, ["x.c:3:y"])])
        self.assertEqual(runner.returncode, 3)

    def test_launch_failure_yields_empty_result(self) -> None:
        runner = AsyncQueryRunner(min_query_length=0)
        self.assertFalse(runner.start([["tagnav-no-such-binary-xyz"]], "query"))
        self.assertEqual(runner.candidates(), [])
        self.assertFalse(runner.is_running())


if __name__ == "__main__":
    unittest.main()
