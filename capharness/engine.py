"""Execution engine: select, run and record every registered unit."""

from __future__ import annotations

import logging
import multiprocessing
import signal
import time
from typing import Any, Callable, Iterable, Optional

from .config import RunConfiguration
from .errors import SkipUnit
from .implementations import make_accounting
from .interfaces import ResourceAccountingInterface
from .models import Decision, LeakVerdict, OutcomeKind, RunSummary, TestOutcome, TestUnit
from .results import summarize
from .selection import decide
from .tags import Tag

logger = logging.getLogger(__name__)

OutcomeCallback = Callable[[TestOutcome], None]


def _describe(e: BaseException) -> str:
    message = str(e)
    return f"{type(e).__name__}: {message}" if message else type(e).__name__


def _invoke(action: Callable[[], Any]) -> tuple[Optional[OutcomeKind], Optional[str]]:
    """Call a unit's action and classify how it ended.

    Returns ``(None, None)`` for a normal return, otherwise the outcome kind
    the action forced and a reason.
    """
    try:
        result = action()
    except SkipUnit as e:
        return OutcomeKind.SKIPPED_SHOWN, e.reason or "skipped by test"
    except (Exception, SystemExit) as e:
        logger.debug("Test action raised", exc_info=True)
        return OutcomeKind.FAILED, _describe(e)
    if result is False:
        return OutcomeKind.FAILED, "returned False"
    return None, None


class Runner:
    """Runs units one at a time, in registration order.

    Each executed unit gets its own leak-accounting scope unless
    ``skip_mem_leak_check`` is set in the configuration or on the unit.
    Tracked units run once untracked first when ``leak_warmup`` is on.  No
    failure inside a unit, nor in its accounting, stops the run.
    """

    def __init__(
        self,
        config: RunConfiguration,
        accounting: Optional[ResourceAccountingInterface] = None,
        on_outcome: Optional[OutcomeCallback] = None,
    ) -> None:
        self._config = config
        self._accounting = accounting
        self._on_outcome = on_outcome

    @property
    def accounting(self) -> ResourceAccountingInterface:
        if self._accounting is None:
            self._accounting = make_accounting(self._config.leak_tracker)
        return self._accounting

    def run(self, units: Iterable[TestUnit]) -> RunSummary:
        t0 = time.monotonic()
        outcomes: list[TestOutcome] = []
        for unit in units:
            outcome = self.run_unit(unit)
            outcomes.append(outcome)
            if self._on_outcome is not None:
                self._on_outcome(outcome)
        summary = summarize(outcomes)
        summary.duration_ms = int((time.monotonic() - t0) * 1000)
        return summary

    def run_unit(self, unit: TestUnit) -> TestOutcome:
        decision = decide(unit.tags, self._config)
        if decision is Decision.SKIP_HIDDEN:
            return TestOutcome(name=unit.name, kind=OutcomeKind.SKIPPED_HIDDEN, tags=unit.tags)
        if decision is Decision.SKIP_SHOWN:
            return TestOutcome(name=unit.name, kind=OutcomeKind.SKIPPED_SHOWN, tags=unit.tags,
                               reason="filtered out by tags")
        if self._config.isolate:
            return self._execute_forked(unit)
        return self._execute(unit)

    def _execute(self, unit: TestUnit) -> TestOutcome:
        effective = unit.tags | self._config.config_tags
        track = Tag.SKIP_MEM_LEAK_CHECK not in effective
        verbose = Tag.MEM_LEAK_CHECK_VERBOSE in effective

        logger.debug("Running %s (leak check %s)", unit.name, "on" if track else "off")
        t0 = time.monotonic()
        if not track:
            kind, reason = _invoke(unit.action)
            return self._outcome(unit, kind, reason, None, t0)

        if self._config.leak_warmup:
            # Fills first-use caches outside the accounting scope.
            kind, reason = _invoke(unit.action)
            if kind is not None:
                logger.debug("%s ended during warm-up", unit.name)
                return self._outcome(unit, kind, reason, None, t0)

        try:
            snapshot = self.accounting.begin()
        except Exception as e:
            logger.debug("Leak accounting could not start for %s", unit.name, exc_info=True)
            self.accounting.reset()
            return self._outcome(unit, OutcomeKind.FAILED, f"leak accounting error: {_describe(e)}", None, t0)

        verdict: Optional[LeakVerdict] = None
        accounting_error: Optional[str] = None
        try:
            kind, reason = _invoke(unit.action)
        finally:
            try:
                verdict = self.accounting.end(snapshot, verbose=verbose)
            except Exception as e:
                logger.debug("Leak accounting could not finish for %s", unit.name, exc_info=True)
                self.accounting.reset()
                accounting_error = f"leak accounting error: {_describe(e)}"

        if accounting_error is not None and kind is not OutcomeKind.FAILED:
            kind, reason = OutcomeKind.FAILED, accounting_error
        elif kind is None and verdict is not None and verdict.leaked_bytes > self._config.leak_threshold:
            kind = OutcomeKind.FAILED
            reason = (f"memory leak: {verdict.leaked_bytes} bytes "
                      f"in {verdict.allocations} allocations")
        return self._outcome(unit, kind, reason, verdict, t0)

    def _outcome(
        self,
        unit: TestUnit,
        kind: Optional[OutcomeKind],
        reason: Optional[str],
        verdict: Optional[LeakVerdict],
        t0: float,
    ) -> TestOutcome:
        ms = int((time.monotonic() - t0) * 1000)
        if kind is None:
            kind = OutcomeKind.PASSED
        elif kind is OutcomeKind.SKIPPED_SHOWN and not self._config.show_skipped:
            kind = OutcomeKind.SKIPPED_HIDDEN
        logger.debug("%s finished: %s in %d ms", unit.name, kind.value, ms)
        return TestOutcome(name=unit.name, kind=kind, tags=unit.tags, reason=reason,
                           leak=verdict, duration_ms=ms)

    def _child_main(self, unit: TestUnit, conn: Any) -> None:
        try:
            conn.send(self._execute(unit))
        finally:
            conn.close()

    def _execute_forked(self, unit: TestUnit) -> TestOutcome:
        """Run one unit in a forked child so a crash only fails that unit."""
        ctx = multiprocessing.get_context("fork")
        recv_conn, send_conn = ctx.Pipe(duplex=False)
        t0 = time.monotonic()
        proc = ctx.Process(target=self._child_main, args=(unit, send_conn),
                           name=f"capharness-{unit.name}")
        proc.start()
        send_conn.close()
        try:
            outcome: Optional[TestOutcome] = recv_conn.recv()
        except EOFError:
            outcome = None
        finally:
            recv_conn.close()
        proc.join()

        if outcome is not None:
            return outcome

        ms = int((time.monotonic() - t0) * 1000)
        code = proc.exitcode
        if code is not None and code < 0:
            try:
                name = signal.Signals(-code).name
            except ValueError:
                name = str(-code)
            reason = f"terminated by signal {name}"
        else:
            reason = f"exited with status {code} before reporting a result"
        logger.debug("%s: child process %s", unit.name, reason)
        return TestOutcome(name=unit.name, kind=OutcomeKind.FAILED, tags=unit.tags,
                           reason=reason, duration_ms=ms)


def run(
    units: Iterable[TestUnit],
    config: RunConfiguration,
    accounting: Optional[ResourceAccountingInterface] = None,
    on_outcome: Optional[OutcomeCallback] = None,
) -> RunSummary:
    """Run ``units`` (usually a TestRegistry) under ``config``."""
    return Runner(config, accounting=accounting, on_outcome=on_outcome).run(units)
