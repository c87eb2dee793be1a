"""IP and MAC address handling."""

from __future__ import annotations

import ipaddress
from functools import partial

from scapy.arch import get_if_hwaddr
from scapy.layers.inet import IP
from scapy.layers.inet6 import IPv6
from scapy.layers.l2 import Ether
from scapy.utils import mac2str, str2mac, valid_mac

from capharness.config import RunConfiguration
from capharness.registry import TestRegistry
from capharness.suites._helpers import expect, find_iface_by_ip


def check_ip_address() -> None:
    v4 = ipaddress.IPv4Address("10.0.0.4")
    pkt = IP(src="192.168.1.1", dst=str(v4))
    raw = bytes(pkt)
    expect(raw[16:20] == v4.packed, "IPv4 destination not encoded in network order")
    expect(IP(raw).dst == "10.0.0.4", "IPv4 destination not decoded")

    v6 = ipaddress.IPv6Address("2001:db8::1")
    pkt6 = IPv6(dst=str(v6))
    expect(bytes(pkt6)[24:40] == v6.packed, "IPv6 destination not encoded correctly")
    expect(ipaddress.ip_address(IPv6(bytes(pkt6)).dst) == v6, "IPv6 destination not decoded")


def check_mac_address() -> None:
    mac = "00:11:22:33:44:55"
    expect(valid_mac(mac), f"{mac} rejected")
    expect(not valid_mac("00:11:22:33:44"), "truncated MAC accepted")
    expect(mac2str(mac) == b"\x00\x11\x22\x33\x44\x55", "mac2str produced wrong bytes")
    expect(str2mac(mac2str(mac)) == mac, "str2mac did not restore the address")

    frame = Ether(dst="ff:ff:ff:ff:ff:ff", src=mac)
    parsed = Ether(bytes(frame))
    expect(parsed.src == mac, f"source MAC decoded as {parsed.src}")
    expect(parsed.dst == "ff:ff:ff:ff:ff:ff", f"destination MAC decoded as {parsed.dst}")


def check_get_mac_address(config: RunConfiguration) -> None:
    iface = find_iface_by_ip(config.target_ip)
    hwaddr = get_if_hwaddr(iface)
    expect(valid_mac(hwaddr), f"Interface {iface} has no valid MAC: {hwaddr!r}")


def declare(registry: TestRegistry, config: RunConfiguration) -> None:
    registry.register("ip_address", "no_network;ip", check_ip_address)
    registry.register("mac_address", "no_network;mac", check_mac_address)
    registry.register("get_mac_address", "mac", partial(check_get_mac_address, config))
