"""Shared helpers for the bundled capture-library suites."""

from __future__ import annotations

from scapy.arch import get_if_addr
from scapy.interfaces import get_if_list

from capharness.errors import SkipUnit


def expect(condition: object, message: str) -> None:
    """Fail the current unit with ``message`` unless ``condition`` holds.

    Used instead of ``assert`` so verdicts survive ``python -O``.
    """
    if not condition:
        raise AssertionError(message)


def find_iface_by_ip(ip: str) -> str:
    """Return the name of the interface that owns ``ip``."""
    if not ip:
        raise SkipUnit("no IP address configured (-i)")
    for iface in get_if_list():
        try:
            if get_if_addr(iface) == ip:
                return iface
        except OSError:
            continue
    raise AssertionError(f"No interface found with IP {ip}")
