"""Tests for the leak accounting backends."""

from __future__ import annotations

import tracemalloc
from types import SimpleNamespace

import pytest

from capharness.implementations import RssAccounting, TracemallocAccounting, make_accounting
from capharness.mocks import MockAccounting

_KEEP: list = []


class FakeProcess:
    def __init__(self, *values):
        self._values = list(values)

    def memory_info(self):
        return SimpleNamespace(rss=self._values.pop(0))


class TestRssAccounting:
    def test_growth(self):
        acct = RssAccounting(FakeProcess(1000, 5096))
        verdict = acct.end(acct.begin())
        assert verdict.leaked_bytes == 4096
        assert verdict.leaked

    def test_shrink_is_not_a_leak(self):
        acct = RssAccounting(FakeProcess(5000, 1000))
        assert acct.end(acct.begin()).leaked_bytes == 0

    def test_verbose_details(self):
        acct = RssAccounting(FakeProcess(10, 20))
        verdict = acct.end(acct.begin(), verbose=True)
        assert verdict.details == ("rss before=10 after=20",)


class TestTracemallocAccounting:
    def teardown_method(self):
        _KEEP.clear()

    def test_no_growth_for_temporaries(self):
        acct = TracemallocAccounting()
        snap = acct.begin()
        bytearray(1024 * 1024)
        verdict = acct.end(snap)
        assert verdict.leaked_bytes < 1024 * 1024

    def test_verbose_names_allocation_site(self):
        acct = TracemallocAccounting()
        snap = acct.begin()
        _KEEP.append(bytearray(128 * 1024))
        verdict = acct.end(snap, verbose=True)
        assert verdict.leaked_bytes >= 128 * 1024
        assert any("test_accounting.py" in d for d in verdict.details)

    def test_net_growth_offsets_frees(self):
        tracemalloc.start()
        try:
            _KEEP.append(bytearray(256 * 1024))
            acct = TracemallocAccounting()
            snap = acct.begin()
            _KEEP.clear()
            _KEEP.append(bytearray(64 * 1024))
            verdict = acct.end(snap, verbose=True)
        finally:
            tracemalloc.stop()
        assert verdict.leaked_bytes == 0
        assert verdict.allocations == 0
        assert len(verdict.details) >= 1

    def test_reset_stops_tracing_it_started(self):
        acct = TracemallocAccounting()
        acct.begin()
        acct.reset()
        assert not tracemalloc.is_tracing()
        verdict = acct.end(acct.begin())
        assert verdict.leaked_bytes < 64 * 1024
        assert not tracemalloc.is_tracing()

    def test_reset_leaves_outside_tracing_running(self):
        tracemalloc.start()
        try:
            acct = TracemallocAccounting()
            acct.begin()
            acct.reset()
            assert tracemalloc.is_tracing()
        finally:
            tracemalloc.stop()


class TestFactory:
    def test_known_names(self):
        assert isinstance(make_accounting("tracemalloc"), TracemallocAccounting)
        assert isinstance(make_accounting("rss"), RssAccounting)

    def test_unknown_name(self):
        with pytest.raises(ValueError):
            make_accounting("valgrind")


class TestMockAccounting:
    def test_nested_scopes_rejected(self):
        acct = MockAccounting()
        acct.begin()
        with pytest.raises(AssertionError):
            acct.begin()

    def test_scripted_leak_consumed_once(self):
        acct = MockAccounting()
        acct.leak_next(32)
        assert acct.end(acct.begin()).leaked_bytes == 32
        assert acct.end(acct.begin()).leaked_bytes == 0
        assert acct.events == ["begin", "end", "begin", "end"]

    def test_scripted_errors_raise_once(self):
        acct = MockAccounting()
        acct.begin_error = OSError("no snapshot")
        with pytest.raises(OSError):
            acct.begin()
        acct.end_error = RuntimeError("gone")
        snap = acct.begin()
        with pytest.raises(RuntimeError):
            acct.end(snap)
        acct.reset()
        assert acct.open_scopes == 0
        assert acct.end(acct.begin()).leaked_bytes == 0
        assert acct.events == ["begin", "end", "reset", "begin", "end"]
