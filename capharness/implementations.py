"""
Real implementations of interfaces for production use.

These classes wrap process-wide allocation state and implement
ResourceAccountingInterface.
"""

import gc
import logging
import tracemalloc
from typing import Any, Optional

import psutil

from .interfaces import ResourceAccountingInterface
from .models import LeakVerdict

logger = logging.getLogger(__name__)

# Frames that belong to the accounting machinery, not to the test.
_IGNORED_FRAMES = (
    tracemalloc.Filter(False, tracemalloc.__file__),
    tracemalloc.Filter(False, "<frozen importlib._bootstrap>"),
    tracemalloc.Filter(False, "<frozen importlib._bootstrap_external>"),
    tracemalloc.Filter(False, "<unknown>"),
    tracemalloc.Filter(False, "*/capharness/engine.py"),
    tracemalloc.Filter(False, "*/capharness/implementations.py"),
)


class TracemallocAccounting(ResourceAccountingInterface):
    """
    Leak accounting over the Python heap using tracemalloc.

    Tracing is started on the first ``begin()`` and stopped on the matching
    ``end()`` unless it was already running before.

    The verdict is the net growth of the heap: memory freed during the scope
    offsets memory allocated during it.  Detail lines list only the sites
    that grew.
    """

    def __init__(self, frames: int = 1):
        self._frames = frames
        self._started_here = False

    def begin(self) -> Any:
        gc.collect()
        if not tracemalloc.is_tracing():
            tracemalloc.start(self._frames)
            self._started_here = True
        return tracemalloc.take_snapshot().filter_traces(_IGNORED_FRAMES)

    def end(self, snapshot: Any, verbose: bool = False) -> LeakVerdict:
        gc.collect()
        try:
            after = tracemalloc.take_snapshot().filter_traces(_IGNORED_FRAMES)
        finally:
            if self._started_here:
                tracemalloc.stop()
                self._started_here = False

        stats = after.compare_to(snapshot, "lineno")
        leaked = max(sum(s.size_diff for s in stats), 0)
        allocations = max(sum(s.count_diff for s in stats), 0)
        growth = [s for s in stats if s.size_diff > 0]
        logger.debug("tracemalloc growth: %d bytes in %d allocations", leaked, allocations)
        details: tuple[str, ...] = ()
        if verbose:
            details = tuple(str(s) for s in growth)
        return LeakVerdict(leaked_bytes=leaked, allocations=allocations, details=details)

    def reset(self) -> None:
        if self._started_here:
            if tracemalloc.is_tracing():
                tracemalloc.stop()
            self._started_here = False


class RssAccounting(ResourceAccountingInterface):
    """
    Leak accounting by resident set size, using psutil.

    Coarser than tracemalloc, but sees allocations made inside native
    extension code.
    """

    def __init__(self, process: Optional[psutil.Process] = None):
        self._process = process or psutil.Process()

    def _rss(self) -> int:
        gc.collect()
        return self._process.memory_info().rss

    def begin(self) -> Any:
        return self._rss()

    def end(self, snapshot: Any, verbose: bool = False) -> LeakVerdict:
        after = self._rss()
        leaked = max(after - snapshot, 0)
        details: tuple[str, ...] = ()
        if verbose:
            details = (f"rss before={snapshot} after={after}",)
        return LeakVerdict(leaked_bytes=leaked, details=details)


def make_accounting(name: str) -> ResourceAccountingInterface:
    """Return the accounting backend selected by ``--leak-tracker``."""
    if name == "rss":
        return RssAccounting()
    if name == "tracemalloc":
        return TracemallocAccounting()
    raise ValueError(f"Unknown leak tracker: {name}")
