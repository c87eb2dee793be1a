"""Data models for test selection, execution and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from .features import Feature
from .tags import Tag


class Decision(Enum):
    """What the filter evaluator wants done with a unit."""
    RUN = "run"
    SKIP_HIDDEN = "skip_hidden"
    SKIP_SHOWN = "skip_shown"


class OutcomeKind(Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED_HIDDEN = "skipped_hidden"
    SKIPPED_SHOWN = "skipped_shown"


@dataclass(frozen=True)
class TestUnit:
    """A registered test: unique name, tags, and a zero-argument action.

    ``action`` passes by returning (anything but ``False``) and fails by
    raising or returning ``False``.  ``requires`` lists the optional features
    the unit needs; see :meth:`is_available`.
    """
    __test__ = False  # not a pytest class

    name: str
    tags: frozenset[Tag]
    action: Callable[[], Any]
    requires: frozenset[Feature] = frozenset()

    def is_available(self, features: frozenset[Feature]) -> bool:
        return self.requires <= features


@dataclass(frozen=True)
class LeakVerdict:
    """Before/after accounting comparison for one unit's execution scope."""
    leaked_bytes: int
    allocations: int = 0
    details: tuple[str, ...] = ()

    @property
    def leaked(self) -> bool:
        return self.leaked_bytes > 0


@dataclass(frozen=True)
class TestOutcome:
    """Result of one unit in one run."""
    __test__ = False

    name: str
    kind: OutcomeKind
    tags: frozenset[Tag] = frozenset()
    reason: Optional[str] = None
    leak: Optional[LeakVerdict] = None  # None: not checked
    duration_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "outcome": self.kind.value,
            "tags": sorted(t.value for t in self.tags),
            "reason": self.reason,
            "leaked_bytes": self.leak.leaked_bytes if self.leak else None,
            "duration_ms": self.duration_ms,
        }


@dataclass
class RunSummary:
    """Aggregate result of a whole run."""
    passed: int = 0
    failed: int = 0
    skipped_hidden: int = 0
    skipped_shown: int = 0
    duration_ms: int = 0
    failures: list[tuple[str, str]] = field(default_factory=list)
    outcomes: list[TestOutcome] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.failed == 0

    @property
    def skipped(self) -> int:
        return self.skipped_hidden + self.skipped_shown

    @property
    def ran(self) -> int:
        return self.passed + self.failed

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "passed": self.passed,
            "failed": self.failed,
            "skipped_hidden": self.skipped_hidden,
            "skipped_shown": self.skipped_shown,
            "duration_ms": self.duration_ms,
            "failures": [{"name": n, "reason": r} for n, r in self.failures],
            "results": [
                o.to_dict() for o in self.outcomes
                if o.kind is not OutcomeKind.SKIPPED_HIDDEN
            ],
        }
