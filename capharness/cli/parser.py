"""Argument parser for the capharness CLI."""

from __future__ import annotations

import argparse

from capharness import __version__
from capharness.config import LEAK_TRACKERS

_EPILOG = """\
Exit codes: 0 all tests passed, 1 at least one test failed,
2 invalid configuration.
Tags are matched with OR semantics: a test runs if it carries any of the
tags given with -t.  Extra features (dpdk, pf_ring, kni) are enabled with the
CAPHARNESS_FEATURES environment variable or the 'features' config key.
"""


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser.

    Every option defaults to ``None`` so values from ``--config`` can fill
    in whatever was not given on the command line.
    """
    parser = argparse.ArgumentParser(
        prog="capharness",
        description="Run the capture library test suite",
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument("-i", "--use-ip", default=None, metavar="IP",
                        help="IP to use for sending and receiving packets")
    parser.add_argument("-b", "--debug-mode", action="store_true", default=None,
                        help="Set log level to DEBUG")
    parser.add_argument("-r", "--remote-ip", default=None, metavar="IP",
                        help="IP of remote machine running rpcapd to test remote capture")
    parser.add_argument("-p", "--remote-port", type=int, default=None, metavar="PORT",
                        help="Port of remote machine running rpcapd to test remote capture")
    parser.add_argument("-d", "--dpdk-port", type=int, default=None, metavar="PORT",
                        help="The DPDK NIC port to test. Required if the dpdk feature is enabled")
    parser.add_argument("-n", "--no-networking", action="store_true", default=None,
                        help="Do not run tests that require networking")
    parser.add_argument("-v", "--verbose", action="store_true", default=None,
                        help="Run in verbose mode (emits more output in several tests)")
    parser.add_argument("-m", "--mem-verbose", action="store_true", default=None,
                        help="Output information about each leaking allocation")
    parser.add_argument("-s", "--skip-mem-leak-check", action="store_true", default=None,
                        help="Skip memory leak check")
    parser.add_argument("-k", "--kni-ip", default=None, metavar="IP",
                        help="IPv4 address for KNI device tests; must not belong to an existing "
                             "interface. KNI tests are skipped without it (Linux only)")
    parser.add_argument("-t", "--tags", default=None, metavar="TAGS",
                        help="A list of semicolon separated tags for tests to run")
    parser.add_argument("-w", "--show-skipped-tests", action="store_true", default=None,
                        help="Show tests that are skipped. Default is to hide them in tests results")

    parser.add_argument("--config", default=None, metavar="FILE",
                        help="YAML file with default option values")
    parser.add_argument("--leak-tracker", choices=LEAK_TRACKERS, default=None,
                        help="Leak accounting backend (default: tracemalloc)")
    parser.add_argument("--leak-threshold", type=int, default=None, metavar="BYTES",
                        help="Growth in bytes tolerated before a test fails its leak check (default: 0)")
    parser.add_argument("--no-leak-warmup", action="store_false", dest="leak_warmup", default=None,
                        help="Do not run each test once untracked before its leak check")
    parser.add_argument("--isolate", action="store_true", default=None,
                        help="Run every test in a forked child so a crash only fails that test")
    parser.add_argument("--json", action="store_true", help="Output machine-parseable JSON")
    parser.add_argument("--list", action="store_true", dest="list_tests",
                        help="List the registered tests and their tags, then exit")
    return parser
