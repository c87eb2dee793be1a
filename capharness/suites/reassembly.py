"""TCP stream reassembly and IP fragmentation."""

from __future__ import annotations

from scapy.layers.http import HTTPResponse
from scapy.layers.inet import IP, TCP, UDP, defrag, defragment, fragment
from scapy.layers.inet6 import IPv6
from scapy.layers.l2 import Ether
from scapy.packet import Raw
from scapy.sendrecv import sniff
from scapy.sessions import TCPSession

from capharness.config import RunConfiguration
from capharness.registry import TestRegistry
from capharness.suites._helpers import expect

_BODY = b"".join(b"line %04d of the reassembled body\n" % i for i in range(40))


def _http_segments(
    body: bytes = _BODY,
    *,
    dport: int = 40000,
    ipv6: bool = False,
    content_length: bool = True,
    last_flags: str = "PA",
) -> list:
    """An HTTP response from port 80 split over four TCP segments."""
    head = b"HTTP/1.1 200 OK\r\nContent-Type: text/plain\r\n"
    if content_length:
        head += b"Content-Length: %d\r\n" % len(body)
    stream = head + b"\r\n" + body
    chunk = len(stream) // 4 + 1
    if ipv6:
        base = Ether() / IPv6(src="2001:db8::2", dst="2001:db8::1")
    else:
        base = Ether() / IP(src="10.0.0.2", dst="10.0.0.1")
    seq = 1000
    offsets = list(range(0, len(stream), chunk))
    segments = []
    for off in offsets:
        flags = last_flags if off == offsets[-1] else "PA"
        data = stream[off:off + chunk]
        segments.append(base / TCP(sport=80, dport=dport, flags=flags, seq=seq + off) / Raw(data))
    return segments


def _reassembled_bodies(packets: list) -> list[bytes]:
    result = sniff(offline=packets, session=TCPSession)
    return [bytes(p[HTTPResponse].payload) for p in result if p.haslayer(HTTPResponse)]


def check_tcp_reassembly_sanity() -> None:
    bodies = _reassembled_bodies(_http_segments())
    expect(len(bodies) == 1, f"expected one reassembled response, got {len(bodies)}")
    expect(bodies[0] == _BODY, "reassembled body differs from what was sent")


def check_tcp_reassembly_out_of_order() -> None:
    segments = _http_segments()
    reordered = [segments[0], segments[2], segments[1], segments[3]]
    bodies = _reassembled_bodies(reordered)
    expect(bodies == [_BODY], "out-of-order segments were not reassembled")


def check_tcp_reassembly_retransmission() -> None:
    s = _http_segments()
    bodies = _reassembled_bodies([s[0], s[1], s[1], s[2], s[1], s[3]])
    expect(bodies == [_BODY], "retransmitted segments corrupted the stream")


def check_tcp_reassembly_missing_data() -> None:
    s = _http_segments()
    bodies = _reassembled_bodies([s[0], s[1], s[3]])
    expect(len(bodies) == 1, f"expected one response despite the gap, got {len(bodies)}")
    expect(bodies[0] != _BODY, "stream with a missing segment matched the full body")
    expect(len(bodies[0]) == len(_BODY), "gap was not filled to the announced length")
    expect(b"\x00" * 16 in bodies[0], "missing segment was not zero-filled")


def check_tcp_reassembly_with_fin_rst() -> None:
    fin = _http_segments(b"closed by FIN\n" * 30, dport=40001, content_length=False, last_flags="FPA")
    rst = _http_segments(b"closed by RST\n" * 30, dport=40002, content_length=False, last_flags="RA")
    bodies = _reassembled_bodies(fin + rst)
    expect(bodies == [b"closed by FIN\n" * 30, b"closed by RST\n" * 30],
           f"FIN/RST did not end the streams: got {len(bodies)} bodies")


def check_tcp_reassembly_ipv6() -> None:
    bodies = _reassembled_bodies(_http_segments(ipv6=True))
    expect(bodies == [_BODY], "IPv6 stream was not reassembled")


def check_tcp_reassembly_multiple_conns() -> None:
    streams = [_http_segments(b"connection %d\n" % n * 50, dport=41000 + n) for n in range(3)]
    interleaved = [seg for group in zip(*streams) for seg in group]
    bodies = _reassembled_bodies(interleaved)
    expect(sorted(bodies) == [b"connection %d\n" % n * 50 for n in range(3)],
           f"expected 3 independent streams, got {len(bodies)}")


def _fragmented_datagram(ident: int = 4242, fill: bytes = b"x") -> tuple:
    original = IP(src="10.0.0.1", dst="10.0.0.2", id=ident) / UDP(sport=5000, dport=6000) / (fill * 3000)
    return original, fragment(original, fragsize=1000)


def _payload(pkt) -> bytes:
    return bytes(pkt[IP].payload)


def check_ip_frag_sanity() -> None:
    original, frags = _fragmented_datagram()
    expect(len(frags) >= 3, f"expected at least 3 fragments, got {len(frags)}")
    rebuilt = defragment(frags)
    expect(len(rebuilt) == 1, f"expected one datagram, got {len(rebuilt)}")
    expect(_payload(rebuilt[0]) == _payload(original), "reassembled payload differs")


def check_ip_frag_out_of_order() -> None:
    # Reassembly completes when the final fragment arrives; the rest may
    # come in any order before it.
    original, frags = _fragmented_datagram()
    reordered = [frags[2], frags[0], frags[1]] + frags[3:]
    _, complete, bad = defrag(reordered)
    expect(not bad, f"{len(bad)} fragments rejected")
    expect(len(complete) == 1, f"expected one datagram, got {len(complete)}")
    expect(_payload(complete[0]) == _payload(original), "reassembled payload differs")


def check_ip_frag_multiple_frags() -> None:
    datagrams = [_fragmented_datagram(ident=100 + n, fill=bytes([0x41 + n])) for n in range(3)]
    interleaved = [frag for group in zip(*(frags for _, frags in datagrams)) for frag in group]
    _, complete, bad = defrag(interleaved)
    expect(not bad, f"{len(bad)} fragments rejected")
    expect(len(complete) == 3, f"expected 3 datagrams, got {len(complete)}")
    by_id = {p[IP].id: _payload(p) for p in complete}
    for original, _ in datagrams:
        expect(by_id.get(original[IP].id) == _payload(original),
               f"datagram id={original[IP].id} was not rebuilt intact")


def check_ip_frag_partial_data() -> None:
    _, frags = _fragmented_datagram()
    incomplete = frags[:1] + frags[2:]
    _, complete, missing = defrag(incomplete)
    expect(not complete, "datagram with a missing fragment was reassembled")
    expect(len(missing) == len(incomplete), "incomplete fragments were not reported")


def declare(registry: TestRegistry, config: RunConfiguration) -> None:
    registry.register("tcp_reassembly_sanity", "no_network;tcp_reassembly", check_tcp_reassembly_sanity)
    registry.register("tcp_reassembly_out_of_order", "no_network;tcp_reassembly",
                      check_tcp_reassembly_out_of_order)
    registry.register("tcp_reassembly_retransmission", "no_network;tcp_reassembly",
                      check_tcp_reassembly_retransmission)
    registry.register("tcp_reassembly_missing_data", "no_network;tcp_reassembly",
                      check_tcp_reassembly_missing_data)
    registry.register("tcp_reassembly_with_fin_rst", "no_network;tcp_reassembly",
                      check_tcp_reassembly_with_fin_rst)
    registry.register("tcp_reassembly_ipv6", "no_network;tcp_reassembly", check_tcp_reassembly_ipv6)
    registry.register("tcp_reassembly_multiple_conns", "no_network;tcp_reassembly",
                      check_tcp_reassembly_multiple_conns)
    registry.register("ip_frag_sanity", "no_network;ip_frag", check_ip_frag_sanity)
    registry.register("ip_frag_out_of_order", "no_network;ip_frag", check_ip_frag_out_of_order)
    registry.register("ip_frag_multiple_frags", "no_network;ip_frag", check_ip_frag_multiple_frags)
    registry.register("ip_frag_partial_data", "no_network;ip_frag", check_ip_frag_partial_data)
