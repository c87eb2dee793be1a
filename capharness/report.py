"""Console rendering of outcomes and run summaries."""

from __future__ import annotations

import sys
from typing import Optional, TextIO

from .models import OutcomeKind, RunSummary, TestOutcome
from .tags import format_tags

_LABELS = {
    OutcomeKind.PASSED: "PASSED",
    OutcomeKind.FAILED: "FAILED",
    OutcomeKind.SKIPPED_SHOWN: "SKIPPED",
}

NAME_WIDTH = 40


def format_outcome(outcome: TestOutcome) -> Optional[str]:
    """One report line for an outcome, or None for hidden skips."""
    label = _LABELS.get(outcome.kind)
    if label is None:
        return None
    line = f"{outcome.name:<{NAME_WIDTH}}: {label}"
    if outcome.kind is OutcomeKind.SKIPPED_SHOWN:
        line += f" [tags: {format_tags(outcome.tags) or '-'}]"
    if outcome.reason and outcome.kind is not OutcomeKind.PASSED:
        line += f" ({outcome.reason})"
    return line


class ConsoleReporter:
    """Streams per-test lines during a run, then prints the summary."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream or sys.stdout

    def _write(self, text: str) -> None:
        self._stream.write(text + "\n")
        self._stream.flush()

    def outcome(self, outcome: TestOutcome) -> None:
        line = format_outcome(outcome)
        if line is None:
            return
        self._write(line)
        if outcome.leak is not None:
            for detail in outcome.leak.details:
                self._write(f"    {detail}")

    def summary(self, summary: RunSummary) -> None:
        self._write("")
        counts = f"{summary.passed} passed, {summary.failed} failed, {summary.skipped_shown} skipped"
        if summary.skipped_hidden:
            counts += f", {summary.skipped_hidden} hidden"
        self._write(f"Summary: {counts} ({summary.duration_ms} ms)")
        if summary.failures:
            self._write("Failed tests:")
            for name, reason in summary.failures:
                self._write(f"    {name}: {reason}")
        self._write("ALL TESTS PASSED!!" if summary.success else "NOT ALL TESTS PASSED!!")
