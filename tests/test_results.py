"""Tests for result aggregation and console reporting."""

from __future__ import annotations

import io
import json

from capharness.models import LeakVerdict, OutcomeKind, RunSummary, TestOutcome
from capharness.report import ConsoleReporter, format_outcome
from capharness.results import EXIT_SUCCESS, EXIT_TEST_FAILURE, exit_code, summarize
from capharness.tags import Tag


def _o(name, kind, reason=None, **kw):
    return TestOutcome(name=name, kind=kind, reason=reason, **kw)


class TestSummarize:
    def test_counts(self):
        summary = summarize([
            _o("a", OutcomeKind.PASSED),
            _o("b", OutcomeKind.FAILED, "boom"),
            _o("c", OutcomeKind.SKIPPED_HIDDEN),
            _o("d", OutcomeKind.SKIPPED_SHOWN),
            _o("e", OutcomeKind.FAILED, "bang"),
        ])
        assert summary.passed == 1
        assert summary.failed == 2
        assert summary.skipped_hidden == 1
        assert summary.skipped_shown == 1
        assert summary.skipped == 2
        assert summary.ran == 3
        assert summary.failures == [("b", "boom"), ("e", "bang")]
        assert [o.name for o in summary.outcomes] == ["a", "b", "c", "d", "e"]

    def test_empty_is_success(self):
        summary = summarize([])
        assert summary.success
        assert exit_code(summary) == EXIT_SUCCESS

    def test_one_failure_fails(self):
        summary = summarize([_o("a", OutcomeKind.PASSED)] * 5 + [_o("z", OutcomeKind.FAILED)])
        assert not summary.success
        assert exit_code(summary) == EXIT_TEST_FAILURE
        assert summary.failures == [("z", "failed")]

    def test_skips_do_not_fail(self):
        summary = summarize([_o("a", OutcomeKind.SKIPPED_SHOWN), _o("b", OutcomeKind.SKIPPED_HIDDEN)])
        assert summary.success

    def test_to_dict_hides_hidden_skips(self):
        summary = summarize([
            _o("a", OutcomeKind.PASSED, leak=LeakVerdict(leaked_bytes=0)),
            _o("b", OutcomeKind.SKIPPED_HIDDEN),
        ])
        data = summary.to_dict()
        assert json.dumps(data)
        assert [r["name"] for r in data["results"]] == ["a"]
        assert data["results"][0]["leaked_bytes"] == 0
        assert data["skipped_hidden"] == 1


class TestReporter:
    def test_hidden_skip_not_printed(self):
        assert format_outcome(_o("a", OutcomeKind.SKIPPED_HIDDEN)) is None

    def test_lines(self):
        assert format_outcome(_o("a", OutcomeKind.PASSED)).endswith(": PASSED")
        failed = format_outcome(_o("b", OutcomeKind.FAILED, "returned False"))
        assert failed.endswith(": FAILED (returned False)")
        skipped = format_outcome(_o("c", OutcomeKind.SKIPPED_SHOWN, tags=frozenset({Tag.SEND, Tag.LIVE_DEVICE})))
        assert "SKIPPED [tags: live_device;send]" in skipped

    def test_leak_details_printed(self):
        out = io.StringIO()
        reporter = ConsoleReporter(out)
        reporter.outcome(_o("a", OutcomeKind.FAILED, "memory leak: 10 bytes in 1 allocations",
                            leak=LeakVerdict(leaked_bytes=10, allocations=1, details=("x.py:3: size=10 B",))))
        lines = out.getvalue().splitlines()
        assert lines[0].startswith("a")
        assert lines[1] == "    x.py:3: size=10 B"

    def test_summary_success(self):
        out = io.StringIO()
        ConsoleReporter(out).summary(RunSummary(passed=3, skipped_hidden=2))
        text = out.getvalue()
        assert "3 passed, 0 failed, 0 skipped, 2 hidden" in text
        assert text.rstrip().endswith("ALL TESTS PASSED!!")

    def test_summary_failure(self):
        out = io.StringIO()
        ConsoleReporter(out).summary(summarize([_o("bad", OutcomeKind.FAILED, "boom")]))
        text = out.getvalue()
        assert "    bad: boom" in text
        assert text.rstrip().endswith("NOT ALL TESTS PASSED!!")
