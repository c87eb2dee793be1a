"""
capharness - tag-driven test harness for a packet capture library.

Selects registered test units by tag, runs them one at a time with
per-test leak accounting, and folds the outcomes into one exit status.
"""

__version__ = "1.0.0"

from .errors import CapharnessError, ConfigError, DuplicateUnitError, SkipUnit
from .tags import Tag, parse_tags, format_tags
from .features import Feature, detect_features
from .models import (
    Decision,
    OutcomeKind,
    TestUnit,
    LeakVerdict,
    TestOutcome,
    RunSummary,
)
from .config import RunConfiguration, build_config, load_config_file
from .registry import TestRegistry
from .selection import decide
from .results import summarize, exit_code
from .engine import Runner, run

__all__ = [
    "__version__",
    "CapharnessError",
    "ConfigError",
    "DuplicateUnitError",
    "SkipUnit",
    "Tag",
    "parse_tags",
    "format_tags",
    "Feature",
    "detect_features",
    "Decision",
    "OutcomeKind",
    "TestUnit",
    "LeakVerdict",
    "TestOutcome",
    "RunSummary",
    "RunConfiguration",
    "build_config",
    "load_config_file",
    "TestRegistry",
    "decide",
    "summarize",
    "exit_code",
    "Runner",
    "run",
]
