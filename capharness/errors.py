"""Exception types raised by the harness."""

from __future__ import annotations


class CapharnessError(Exception):
    """Base class for harness errors."""


class ConfigError(CapharnessError):
    """Invalid run configuration, detected before any test runs."""


class DuplicateUnitError(CapharnessError):
    """Two test units were registered under the same name."""


class SkipUnit(Exception):
    """Raised by a test action that cannot run in the current environment.

    Not a failure: the engine records a skip outcome with ``reason``.
    """

    def __init__(self, reason: str = "") -> None:
        super().__init__(reason)
        self.reason = reason
