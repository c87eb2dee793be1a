"""Live interfaces, sending, remote capture and raw sockets."""

from __future__ import annotations

import socket
import time
from functools import partial

from scapy.config import conf
from scapy.interfaces import get_if_list
from scapy.layers.inet import ICMP, IP
from scapy.layers.l2 import ARP, Ether
from scapy.sendrecv import AsyncSniffer, sendp, sniff

from capharness.config import RunConfiguration
from capharness.errors import SkipUnit
from capharness.features import Feature
from capharness.registry import TestRegistry
from capharness.suites._helpers import expect, find_iface_by_ip

RPCAPD_DEFAULT_PORT = 2002


def _arp_request(ip: str):
    return Ether(dst="ff:ff:ff:ff:ff:ff") / ARP(op=1, pdst=ip)


def check_live_device_list() -> None:
    ifaces = get_if_list()
    expect(ifaces, "No network interfaces found")
    expect(len(set(ifaces)) == len(ifaces), "Interface list contains duplicates")


def check_live_device_list_search(config: RunConfiguration) -> None:
    iface = find_iface_by_ip(config.target_ip)
    expect(iface in get_if_list(), f"{iface} missing from the interface list")


def check_live_device(config: RunConfiguration) -> None:
    iface = find_iface_by_ip(config.target_ip)
    sniffer = AsyncSniffer(iface=iface, store=True)
    sniffer.start()
    try:
        time.sleep(0.5)
        sendp([_arp_request(config.target_ip)] * 5, iface=iface, verbose=config.verbose)
        time.sleep(1)
    finally:
        captured = sniffer.stop()
    expect(captured is not None and len(captured) > 0, f"No packets captured on {iface}")


def check_live_device_no_networking() -> None:
    expect(conf.loopback_name in get_if_list(), "Loopback interface not listed")
    expect(conf.iface is not None, "No default interface configured")


def check_live_device_blocking_mode(config: RunConfiguration) -> None:
    iface = find_iface_by_ip(config.target_ip)
    t0 = time.monotonic()
    captured = sniff(iface=iface, timeout=2, store=True)
    elapsed = time.monotonic() - t0
    expect(captured is not None, "sniff() returned no packet list")
    expect(elapsed >= 1.5, f"sniff() returned after {elapsed:.2f}s, expected it to block")


def check_winpcap_live_device(config: RunConfiguration) -> None:
    iface = find_iface_by_ip(config.target_ip)
    dev = conf.ifaces.dev_from_name(iface)
    expect(dev.description, f"{iface} has no description")
    expect(dev.mac, f"{iface} has no MAC address")


def check_send_packet(config: RunConfiguration) -> None:
    iface = find_iface_by_ip(config.target_ip)
    pkt = Ether() / IP(src=config.target_ip, dst=config.target_ip) / ICMP()
    sent = sendp(pkt, iface=iface, verbose=config.verbose, return_packets=True)
    expect(len(sent) == 1, f"sent {len(sent)} packets, expected 1")


def check_send_packets(config: RunConfiguration) -> None:
    iface = find_iface_by_ip(config.target_ip)
    packets = [Ether() / IP(src=config.target_ip, dst=config.target_ip) / ICMP(seq=i) for i in range(10)]
    sent = sendp(packets, iface=iface, verbose=config.verbose, return_packets=True)
    expect(len(sent) == len(packets), f"sent {len(sent)} of {len(packets)} packets")


def check_remote_capture(config: RunConfiguration) -> None:
    if not config.remote_ip:
        raise SkipUnit("no remote capture host configured (-r)")
    port = config.remote_port or RPCAPD_DEFAULT_PORT
    with socket.create_connection((config.remote_ip, port), timeout=5):
        pass


def check_raw_sockets(config: RunConfiguration) -> None:
    iface = find_iface_by_ip(config.target_ip)
    try:
        sock = conf.L2socket(iface=iface)
    except PermissionError:
        raise SkipUnit("raw sockets need elevated privileges") from None
    try:
        sock.send(_arp_request(config.target_ip))
    finally:
        sock.close()


def declare(registry: TestRegistry, config: RunConfiguration) -> None:
    registry.register("live_device_list", "no_network;live_device;skip_mem_leak_check", check_live_device_list)
    registry.register("live_device_list_search", "live_device", partial(check_live_device_list_search, config))
    registry.register("live_device", "live_device", partial(check_live_device, config))
    registry.register("live_device_no_networking", "no_network;live_device", check_live_device_no_networking)
    registry.register("live_device_blocking_mode", "live_device", partial(check_live_device_blocking_mode, config))
    registry.register("winpcap_live_device", "live_device;winpcap", partial(check_winpcap_live_device, config),
                      requires=[Feature.WINPCAP])
    registry.register("send_packet", "live_device;send", partial(check_send_packet, config))
    registry.register("send_packets", "live_device;send", partial(check_send_packets, config))
    registry.register("remote_capture", "live_device;remote_capture;winpcap", partial(check_remote_capture, config),
                      requires=[Feature.WINPCAP])


def declare_raw_sockets(registry: TestRegistry, config: RunConfiguration) -> None:
    registry.register("raw_sockets", "raw_sockets", partial(check_raw_sockets, config))
