"""
Interfaces for the capharness execution engine.

Abstract base classes for the pluggable pieces the engine talks to, so the
engine can be tested with in-memory mocks.
"""

from abc import ABC, abstractmethod
from typing import Any

from .models import LeakVerdict


class ResourceAccountingInterface(ABC):
    """
    Abstract interface for per-test leak accounting.

    The engine calls ``begin()`` right before a unit's action and ``end()``
    right after it (even when the action raises).  Scopes never overlap or
    nest.

    Implementations:
    - TracemallocAccounting: Python heap allocations via tracemalloc
    - RssAccounting: process resident set size via psutil
    - MockAccounting: scripted verdicts for unit testing
    """

    @abstractmethod
    def begin(self) -> Any:
        """Capture allocation state. Returns an opaque snapshot."""
        pass

    @abstractmethod
    def end(self, snapshot: Any, verbose: bool = False) -> LeakVerdict:
        """Compare current state with ``snapshot`` and return the verdict.

        With ``verbose`` the verdict carries one detail line per leaking
        allocation site.
        """
        pass

    def reset(self) -> None:
        """Drop any open scope after ``begin()`` or ``end()`` failed.

        The next ``begin()`` must work as if no scope had ever been opened.
        """
        pass
