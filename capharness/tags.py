"""Tag vocabulary attached to test units."""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Union

from .errors import ConfigError

class Tag(str, Enum):
    """Capability, environment and diagnostic labels for test units."""
    NO_NETWORK = "no_network"
    IP = "ip"
    MAC = "mac"
    PCAP = "pcap"
    PCAPNG = "pcapng"
    LIVE_DEVICE = "live_device"
    WINPCAP = "winpcap"
    SEND = "send"
    REMOTE_CAPTURE = "remote_capture"
    FILTERS = "filters"
    HTTP = "http"
    PRINT = "print"
    DNS = "dns"
    PF_RING = "pf_ring"
    DPDK = "dpdk"
    DPDK_INIT = "dpdk-init"
    KNI = "kni"
    TCP_REASSEMBLY = "tcp_reassembly"
    IP_FRAG = "ip_frag"
    RAW_SOCKETS = "raw_sockets"

    # Leak-check modifiers; they configure instrumentation, never selection.
    SKIP_MEM_LEAK_CHECK = "skip_mem_leak_check"
    MEM_LEAK_CHECK_VERBOSE = "mem_leak_check_verbose"

    def __str__(self) -> str:
        return self.value


LEAK_MODIFIER_TAGS = frozenset({Tag.SKIP_MEM_LEAK_CHECK, Tag.MEM_LEAK_CHECK_VERBOSE})


def parse_tags(raw: Union[str, Iterable[str], None]) -> frozenset[Tag]:
    """Parse a semicolon-separated string (or a list of strings) into tags.

    Empty segments are ignored, so ``"a;;b;"`` is the same as ``"a;b"``.

    Raises:
        ConfigError: if a segment is not a known tag.
    """
    if raw is None:
        return frozenset()
    if isinstance(raw, str):
        parts = raw.split(";")
    else:
        parts = list(raw)

    tags: set[Tag] = set()
    for part in parts:
        name = str(part).strip()
        if not name:
            continue
        try:
            tags.add(Tag(name))
        except ValueError:
            known = ", ".join(t.value for t in Tag)
            raise ConfigError(f"Unknown tag '{name}' (known tags: {known})") from None
    return frozenset(tags)

def format_tags(tags: Iterable[Tag]) -> str:
    """Render tags the way they are typed on the command line."""
    return ";".join(sorted(t.value for t in tags))
