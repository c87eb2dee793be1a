"""Filter evaluator: decide whether a unit runs under a configuration."""

from __future__ import annotations

from typing import AbstractSet

from .config import RunConfiguration
from .models import Decision
from .tags import Tag


def decide(tags: AbstractSet[Tag], config: RunConfiguration) -> Decision:
    """Map a unit's tags to RUN, SKIP_HIDDEN or SKIP_SHOWN.

    An empty positive filter runs everything.  Otherwise a unit runs when it
    shares at least one tag with the filter.  Leak-check config tags play no
    part in selection.
    """
    if not config.user_tags or tags & config.user_tags:
        return Decision.RUN
    return Decision.SKIP_SHOWN if config.show_skipped else Decision.SKIP_HIDDEN
