"""
Mock implementations for testing.

These classes implement the abstract interfaces with in-memory behavior
suitable for unit testing the engine without real allocation tracking.
"""

from typing import Any, Dict, List, Optional

from .interfaces import ResourceAccountingInterface
from .models import LeakVerdict


class MockAccounting(ResourceAccountingInterface):
    """
    Mock leak accounting.

    Test code scripts a leak for a unit with ``set_leak(name, bytes)`` and
    tells the mock which unit is about to run through ``current``.  The
    engine does not know about ``current``; tests set it from inside the
    unit's action, or use ``leak_next()`` for the next scope.

    Setting ``begin_error`` or ``end_error`` makes the next call to that
    method raise it once.
    """

    def __init__(self):
        self.events: List[str] = []
        self._leaks: Dict[str, int] = {}
        self._next_leak: Optional[int] = None
        self._open = 0
        self.current: Optional[str] = None
        self.begin_error: Optional[Exception] = None
        self.end_error: Optional[Exception] = None

    def set_leak(self, name: str, leaked_bytes: int) -> None:
        self._leaks[name] = leaked_bytes

    def leak_next(self, leaked_bytes: int) -> None:
        self._next_leak = leaked_bytes

    @property
    def open_scopes(self) -> int:
        return self._open

    def begin(self) -> Any:
        if self.begin_error is not None:
            error, self.begin_error = self.begin_error, None
            raise error
        if self._open:
            raise AssertionError("accounting scopes must not nest")
        self._open += 1
        self.current = None
        self.events.append("begin")
        return len(self.events)

    def end(self, snapshot: Any, verbose: bool = False) -> LeakVerdict:
        self._open -= 1
        self.events.append("end-verbose" if verbose else "end")
        if self.end_error is not None:
            error, self.end_error = self.end_error, None
            raise error
        leaked = 0
        if self._next_leak is not None:
            leaked, self._next_leak = self._next_leak, None
        elif self.current is not None:
            leaked = self._leaks.get(self.current, 0)
        details = (f"mock leak of {leaked} bytes",) if verbose and leaked else ()
        return LeakVerdict(leaked_bytes=leaked, allocations=1 if leaked else 0, details=details)

    def reset(self) -> None:
        self._open = 0
        self.events.append("reset")
