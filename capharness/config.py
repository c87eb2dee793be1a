"""Run configuration: built once from CLI flags, config file and features."""

from __future__ import annotations

import ipaddress
import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import yaml

from .errors import ConfigError
from .features import Feature, detect_features
from .tags import LEAK_MODIFIER_TAGS, Tag, format_tags, parse_tags

logger = logging.getLogger(__name__)

LEAK_TRACKERS = ("tracemalloc", "rss")

# Keys accepted in a YAML config file.  Values use the same names as the
# long command-line options, with underscores.
CONFIG_FILE_KEYS = frozenset({
    "use_ip",
    "remote_ip",
    "remote_port",
    "dpdk_port",
    "kni_ip",
    "no_networking",
    "tags",
    "skip_mem_leak_check",
    "mem_verbose",
    "show_skipped_tests",
    "verbose",
    "debug_mode",
    "features",
    "leak_tracker",
    "leak_threshold",
    "leak_warmup",
    "isolate",
})


@dataclass(frozen=True)
class RunConfiguration:
    """Immutable settings for one run.

    ``user_tags`` is the positive selection filter (OR semantics).
    ``config_tags`` only holds leak-check modifiers and never selects.
    An empty ``target_ip`` means networking is unavailable.
    """
    target_ip: str = ""
    remote_ip: Optional[str] = None
    remote_port: Optional[int] = None
    hardware_port: Optional[int] = None
    kni_ip: Optional[str] = None
    user_tags: frozenset[Tag] = frozenset()
    config_tags: frozenset[Tag] = frozenset()
    features: frozenset[Feature] = frozenset()
    show_skipped: bool = False
    verbose: bool = False
    debug: bool = False
    leak_tracker: str = "tracemalloc"
    leak_threshold: int = 0
    leak_warmup: bool = True
    isolate: bool = False

    @property
    def networking(self) -> bool:
        return bool(self.target_ip)

    @property
    def skip_leak_check(self) -> bool:
        return Tag.SKIP_MEM_LEAK_CHECK in self.config_tags

    @property
    def leak_check_verbose(self) -> bool:
        return Tag.MEM_LEAK_CHECK_VERBOSE in self.config_tags


def load_config_file(path: str) -> dict[str, Any]:
    """Read a YAML config file into a dict of option defaults."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e.strerror}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config file (expected mapping): {path}")

    unknown = sorted(set(data) - CONFIG_FILE_KEYS)
    if unknown:
        raise ConfigError(f"Unknown key(s) in config file {path}: {', '.join(unknown)}")
    return data


def _validate_ip(value: Optional[str], what: str, *, v4_only: bool = False) -> Optional[str]:
    if value is None or value == "":
        return value
    try:
        addr = ipaddress.ip_address(value)
    except ValueError:
        raise ConfigError(f"Invalid {what}: {value!r}") from None
    if v4_only and addr.version != 4:
        raise ConfigError(f"{what} must be an IPv4 address: {value!r}")
    return str(addr)


def _as_int(value: Any, what: str) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid {what}: {value!r}") from None


def build_config(
    options: Mapping[str, Any],
    *,
    environ: Optional[Mapping[str, str]] = None,
    platform: Optional[str] = None,
) -> RunConfiguration:
    """Validate merged options and derive the run configuration.

    ``options`` uses the config-file key names (see ``CONFIG_FILE_KEYS``);
    missing keys take their defaults.  Validation always happens here, before
    any filtering or execution.

    Raises:
        ConfigError: on any invalid or missing required setting.
    """
    features = detect_features(options.get("features"), environ=environ, platform=platform)

    target_ip = _validate_ip(options.get("use_ip") or "", "IP address (-i)")
    remote_ip = _validate_ip(options.get("remote_ip"), "remote IP (-r)")
    kni_ip = _validate_ip(options.get("kni_ip"), "KNI IP (-k)", v4_only=True)

    remote_port = _as_int(options.get("remote_port"), "remote port (-p)")
    if remote_port is not None and not 0 < remote_port < 65536:
        raise ConfigError(f"Remote port out of range: {remote_port}")

    hardware_port = _as_int(options.get("dpdk_port"), "DPDK port (-d)")
    if hardware_port is not None and hardware_port < 0:
        raise ConfigError(f"DPDK port must be non-negative: {hardware_port}")

    user_tags = set(parse_tags(options.get("tags")))
    modifiers = user_tags & LEAK_MODIFIER_TAGS
    if modifiers:
        raise ConfigError(
            f"Tag(s) {format_tags(modifiers)} only configure the leak check and cannot select tests; "
            "use --skip-mem-leak-check (-s) or --mem-verbose (-m) instead"
        )
    run_with_networking = not options.get("no_networking", False)
    if not run_with_networking:
        user_tags.add(Tag.NO_NETWORK)
    elif not target_ip:
        raise ConfigError("Please provide an IP address to send and receive packets (-i argument)")

    if Feature.DPDK in features and run_with_networking and hardware_port is None:
        raise ConfigError("When testing with DPDK you must provide the DPDK NIC port to test (-d argument)")

    config_tags: set[Tag] = set()
    if options.get("skip_mem_leak_check", False):
        config_tags.add(Tag.SKIP_MEM_LEAK_CHECK)
    if options.get("mem_verbose", False):
        config_tags.add(Tag.MEM_LEAK_CHECK_VERBOSE)

    leak_tracker = options.get("leak_tracker") or "tracemalloc"
    if leak_tracker not in LEAK_TRACKERS:
        raise ConfigError(f"Unknown leak tracker {leak_tracker!r} (choose from {', '.join(LEAK_TRACKERS)})")

    leak_threshold = _as_int(options.get("leak_threshold"), "leak threshold") or 0
    if leak_threshold < 0:
        raise ConfigError(f"Leak threshold must be non-negative: {leak_threshold}")

    isolate = bool(options.get("isolate", False))
    if isolate and not hasattr(os, "fork"):
        raise ConfigError("--isolate needs os.fork(), which this platform lacks")

    return RunConfiguration(
        target_ip=target_ip or "",
        remote_ip=remote_ip or None,
        remote_port=remote_port,
        hardware_port=hardware_port,
        kni_ip=kni_ip or None,
        user_tags=frozenset(user_tags),
        config_tags=frozenset(config_tags),
        features=features,
        show_skipped=bool(options.get("show_skipped_tests", False)),
        verbose=bool(options.get("verbose", False)),
        debug=bool(options.get("debug_mode", False)),
        leak_tracker=leak_tracker,
        leak_threshold=leak_threshold,
        leak_warmup=bool(options.get("leak_warmup", True)),
        isolate=isolate,
    )
