"""Optional capture features available to this installation.

Resolved once at startup and handed to the registry, which drops units that
need a missing feature.
"""

from __future__ import annotations

import logging
import os
import sys
from enum import Enum
from typing import Iterable, Mapping, Optional

from .errors import ConfigError

logger = logging.getLogger(__name__)

FEATURES_ENV = "CAPHARNESS_FEATURES"


class Feature(str, Enum):
    """Optional capture backends a test unit may depend on."""
    DPDK = "dpdk"
    PF_RING = "pf_ring"
    WINPCAP = "winpcap"
    KNI = "kni"

    def __str__(self) -> str:
        return self.value


def _parse_features(raw: Iterable[str], source: str) -> set[Feature]:
    found: set[Feature] = set()
    for item in raw:
        name = str(item).strip()
        if not name:
            continue
        try:
            found.add(Feature(name))
        except ValueError:
            known = ", ".join(f.value for f in Feature)
            raise ConfigError(f"Unknown feature '{name}' in {source} (known: {known})") from None
    return found


def detect_features(
    declared: Optional[Iterable[str]] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    platform: Optional[str] = None,
) -> frozenset[Feature]:
    """Resolve the feature set for this process.

    Sources, unioned:
      1. platform (``winpcap`` on Windows)
      2. ``declared`` (the ``features:`` list of a config file)
      3. ``CAPHARNESS_FEATURES`` environment variable, semicolon separated

    ``kni`` is a DPDK facility on Linux; requesting it elsewhere is an error.
    """
    env = os.environ if environ is None else environ
    plat = sys.platform if platform is None else platform

    features: set[Feature] = set()
    if plat == "win32":
        features.add(Feature.WINPCAP)
    if declared:
        features |= _parse_features(declared, "config file")
    env_value = env.get(FEATURES_ENV, "")
    if env_value:
        features |= _parse_features(env_value.split(";"), FEATURES_ENV)

    if Feature.KNI in features:
        if Feature.DPDK not in features:
            raise ConfigError("Feature 'kni' requires feature 'dpdk'")
        if not plat.startswith("linux"):
            raise ConfigError("Feature 'kni' is only available on Linux")

    logger.debug("Resolved features: %s", sorted(f.value for f in features))
    return frozenset(features)
