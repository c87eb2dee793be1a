"""Result aggregation and exit status policy."""

from __future__ import annotations

from typing import Iterable

from .models import OutcomeKind, RunSummary, TestOutcome

EXIT_SUCCESS = 0
EXIT_TEST_FAILURE = 1
EXIT_CONFIG_ERROR = 2


def summarize(outcomes: Iterable[TestOutcome]) -> RunSummary:
    """Tally outcomes, keeping failures and outcomes in encounter order."""
    summary = RunSummary()
    for outcome in outcomes:
        summary.outcomes.append(outcome)
        if outcome.kind is OutcomeKind.PASSED:
            summary.passed += 1
        elif outcome.kind is OutcomeKind.FAILED:
            summary.failed += 1
            summary.failures.append((outcome.name, outcome.reason or "failed"))
        elif outcome.kind is OutcomeKind.SKIPPED_SHOWN:
            summary.skipped_shown += 1
        else:
            summary.skipped_hidden += 1
    return summary


def exit_code(summary: RunSummary) -> int:
    return EXIT_SUCCESS if summary.success else EXIT_TEST_FAILURE
