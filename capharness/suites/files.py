"""pcap and pcapng file reading and writing."""

from __future__ import annotations

import os
import tempfile

from scapy.layers.inet import IP, TCP, UDP
from scapy.layers.l2 import CookedLinux, Ether
from scapy.utils import PcapNgWriter, rdpcap, wrpcap

from capharness.config import RunConfiguration
from capharness.registry import TestRegistry
from capharness.suites._helpers import expect

DLT_RAW = 101
DLT_LINUX_SLL = 113


def _sample_packets(count: int = 10) -> list:
    return [
        Ether(src="00:11:22:33:44:55", dst="66:77:88:99:aa:bb")
        / IP(src="10.0.0.1", dst="10.0.0.2")
        / (TCP(sport=1000 + i, dport=80) if i % 2 else UDP(sport=1000 + i, dport=53))
        / (bytes([i]) * 16)
        for i in range(count)
    ]


def _write_pcapng(path: str, packets: list) -> None:
    writer = PcapNgWriter(path)
    try:
        for pkt in packets:
            writer.write(pkt)
    finally:
        writer.close()


def check_pcap_file_read_write() -> None:
    packets = _sample_packets()
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "rw.pcap")
        wrpcap(path, packets)
        read = rdpcap(path)
    expect(len(read) == len(packets), f"expected {len(packets)} packets, read {len(read)}")
    for i, (written, got) in enumerate(zip(packets, read)):
        expect(bytes(got) == bytes(written), f"packet #{i} differs after read back")
    expect(sum(1 for p in read if p.haslayer(TCP)) == 5, "wrong number of TCP packets")
    expect(sum(1 for p in read if p.haslayer(UDP)) == 5, "wrong number of UDP packets")


def check_pcap_sll_file_read_write() -> None:
    packets = [CookedLinux(pkttype=0, lladdrtype=1, lladdrlen=6, src=b"\x00\x11\x22\x33\x44\x55\x00\x00")
               / IP(src="10.0.0.1", dst="10.0.0.2") / UDP(dport=53)]
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "sll.pcap")
        wrpcap(path, packets, linktype=DLT_LINUX_SLL)
        read = rdpcap(path)
    expect(len(read) == 1, f"expected 1 packet, read {len(read)}")
    expect(read[0].haslayer(CookedLinux), "SLL link layer not recognised")
    expect(read[0][IP].dst == "10.0.0.2", "IP layer under SLL not decoded")


def check_pcap_raw_ip_file_read_write() -> None:
    packets = [IP(src="10.0.0.1", dst="10.0.0.2") / TCP(dport=443) for _ in range(3)]
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "raw.pcap")
        wrpcap(path, packets, linktype=DLT_RAW)
        read = rdpcap(path)
    expect(len(read) == 3, f"expected 3 packets, read {len(read)}")
    expect(all(p.haslayer(IP) and not p.haslayer(Ether) for p in read),
           "raw IP packets were not read back as bare IP")


def check_pcap_file_append() -> None:
    packets = _sample_packets(4)
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "append.pcap")
        wrpcap(path, packets)
        for _ in range(3):
            wrpcap(path, packets, append=True)
        read = rdpcap(path)
    expect(len(read) == 16, f"expected 16 packets after appending, read {len(read)}")


def check_pcapng_file_read_write() -> None:
    packets = _sample_packets()
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "rw.pcapng")
        _write_pcapng(path, packets)
        read = rdpcap(path)
    expect(len(read) == len(packets), f"expected {len(packets)} packets, read {len(read)}")
    expect([bytes(p) for p in read] == [bytes(p) for p in packets], "packet bytes differ after read back")


def check_pcapng_file_read_write_adv() -> None:
    """Per-packet metadata: comments, interface names, direction, timestamps."""
    packets = _sample_packets(6)
    for i, pkt in enumerate(packets):
        pkt.time = 1700000000 + i + 0.25
        pkt.comments = [b"capharness packet %d" % i]
        pkt.sniffed_on = f"eth{i % 2}"
        pkt.direction = 1 + i % 2
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "adv.pcapng")
        _write_pcapng(path, packets)
        read = rdpcap(path)
    expect(len(read) == len(packets), f"expected {len(packets)} packets, read {len(read)}")
    for i, (written, got) in enumerate(zip(packets, read)):
        expect(bytes(got) == bytes(written), f"packet #{i} differs after read back")
        expect(got.comments == written.comments, f"packet #{i} comment lost: {got.comments!r}")
        expect(got.sniffed_on == written.sniffed_on, f"packet #{i} interface is {got.sniffed_on!r}")
        expect(got.direction == written.direction, f"packet #{i} direction is {got.direction!r}")
        expect(abs(float(got.time) - float(written.time)) < 1e-5, f"packet #{i} timestamp drifted")


def declare(registry: TestRegistry, config: RunConfiguration) -> None:
    registry.register("pcap_file_read_write", "no_network;pcap", check_pcap_file_read_write)
    registry.register("pcap_sll_file_read_write", "no_network;pcap", check_pcap_sll_file_read_write)
    registry.register("pcap_raw_ip_file_read_write", "no_network;pcap", check_pcap_raw_ip_file_read_write)
    registry.register("pcap_file_append", "no_network;pcap", check_pcap_file_append)
    registry.register("pcapng_file_read_write", "no_network;pcap;pcapng", check_pcapng_file_read_write)
    registry.register("pcapng_file_read_write_adv", "no_network;pcap;pcapng", check_pcapng_file_read_write_adv)
