"""
capharness: command-line front end for the capture library test harness.

Parses the command line (plus an optional YAML config file) into a
validated RunConfiguration, declares the bundled suites and runs them
through the execution engine.

Entry points:
- capharness: console script (installed via pip)
- python -m capharness
- Can also be imported and called programmatically via main(argv)
"""

from __future__ import annotations

from capharness.cli.run_cmds import cmd_list, cmd_run
from capharness.suites import build_registry, library_version
from capharness.cli.dispatch import main

__all__ = [
    "cmd_list",
    "cmd_run",
    "build_registry",
    "library_version",
    "main",
]
