"""Command dispatch for the capharness CLI."""

from __future__ import annotations

import sys
from typing import Optional

from capharness.cli.helpers import _configure_logging, _merge_options
from capharness.cli.parser import _build_parser
from capharness.config import build_config
from capharness.errors import ConfigError
from capharness.results import EXIT_CONFIG_ERROR


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the ``capharness`` CLI.

    Builds and validates the run configuration, declares the bundled suites
    and runs (or lists) them.

    Args:
        argv: Argument list to parse.  Defaults to ``sys.argv[1:]``.

    Returns:
        Exit code: 0 on success, 1 if a test failed, 2 on configuration errors.
    """
    if argv is None:
        argv = sys.argv[1:]

    # Late import to allow tests to monkeypatch capharness.cli.cmd_xxx and build_registry
    import capharness.cli as cli

    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(_merge_options(args))
    except ConfigError as e:
        print(f"{e}\n", file=sys.stderr)
        parser.print_help(sys.stderr)
        return EXIT_CONFIG_ERROR

    _configure_logging(config.debug)
    registry = cli.build_registry(config)

    if args.list_tests:
        return cli.cmd_list(config, registry, json_mode=args.json)
    return cli.cmd_run(config, registry, library=cli.library_version(), json_mode=args.json)
