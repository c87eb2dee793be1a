"""Run and list commands."""

from __future__ import annotations

from typing import Optional

from capharness.cli.helpers import _header_lines, _print
from capharness.config import RunConfiguration
from capharness.engine import Runner
from capharness.interfaces import ResourceAccountingInterface
from capharness.registry import TestRegistry
from capharness.report import ConsoleReporter
from capharness.results import exit_code
from capharness.selection import decide
from capharness.tags import format_tags


def cmd_run(
    config: RunConfiguration,
    registry: TestRegistry,
    *,
    library: str = "unknown",
    accounting: Optional[ResourceAccountingInterface] = None,
    json_mode: bool = False,
) -> int:
    """Run every registered unit and report; returns the process exit code."""
    if json_mode:
        summary = Runner(config, accounting=accounting).run(registry)
        _print(summary.to_dict(), json_mode=True)
        return exit_code(summary)

    for line in _header_lines(config, library):
        _print(line, json_mode=False)
    _print("", json_mode=False)

    reporter = ConsoleReporter()
    summary = Runner(config, accounting=accounting, on_outcome=reporter.outcome).run(registry)
    reporter.summary(summary)
    return exit_code(summary)


def cmd_list(config: RunConfiguration, registry: TestRegistry, *, json_mode: bool = False) -> int:
    """Show each unit with its tags and what the current filter would do."""
    units = [
        {"name": u.name, "tags": sorted(t.value for t in u.tags), "decision": decide(u.tags, config).value}
        for u in registry
    ]
    omitted = [
        {"name": u.name, "requires": sorted(f.value for f in u.requires)}
        for u in registry.omitted
    ]
    if json_mode:
        _print({"units": units, "omitted": omitted}, json_mode=True)
        return 0

    for u in registry:
        _print(f"{u.name:<40} {decide(u.tags, config).value:<12} {format_tags(u.tags)}", json_mode=False)
    for entry in omitted:
        _print(f"{entry['name']:<40} {'unavailable':<12} needs {', '.join(entry['requires'])}",
               json_mode=False)
    return 0
