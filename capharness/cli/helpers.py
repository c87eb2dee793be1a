"""Shared utilities for capharness CLI commands."""

from __future__ import annotations

import argparse
import json
import logging
from typing import Any

from capharness import __version__
from capharness.config import CONFIG_FILE_KEYS, RunConfiguration, load_config_file
from capharness.features import Feature
from capharness.tags import Tag

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _print(obj: Any, *, json_mode: bool) -> None:
    if json_mode:
        print(json.dumps(obj, indent=2, sort_keys=True))
    else:
        if isinstance(obj, str):
            print(obj)
        else:
            print(json.dumps(obj, indent=2, sort_keys=True))


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if debug else logging.WARNING, format=LOG_FORMAT)
    logging.getLogger().setLevel(logging.DEBUG if debug else logging.WARNING)


def _merge_options(args: argparse.Namespace) -> dict[str, Any]:
    """Config-file values, overridden by whatever was given on the command line."""
    options: dict[str, Any] = {}
    if args.config:
        options.update(load_config_file(args.config))
    for key in CONFIG_FILE_KEYS:
        value = getattr(args, key, None)
        if value is not None:
            options[key] = value
    return options


def _header_lines(config: RunConfiguration, library: str) -> list[str]:
    """The banner printed before a text-mode run."""
    lines: list[str] = []
    if Tag.NO_NETWORK in config.user_tags:
        lines.append("Running only tests that don't require network connection")
    if config.skip_leak_check:
        lines.append("Skipping memory leak check for all test cases")
    if config.leak_check_verbose:
        lines.append("Turning on verbose information on memory allocations")
    lines.append(f"capharness version: {__version__}")
    lines.append(f"Capture library: {library}")
    lines.append(f"Using ip: {config.target_ip}")
    lines.append(f"Debug mode: {'on' if config.debug else 'off'}")
    if Feature.DPDK in config.features and config.networking:
        lines.append(f"Using DPDK port: {config.hardware_port}")
        if config.kni_ip:
            lines.append(f"Using IP address for KNI: {config.kni_ip}")
        else:
            lines.append("DPDK KNI tests: skipped")
    return lines
