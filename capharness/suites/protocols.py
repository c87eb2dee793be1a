"""Protocol parsing: HTTP, DNS and packet printing."""

from __future__ import annotations

from functools import partial

from scapy.layers.dns import DNS, DNSQR, DNSRR
from scapy.layers.http import HTTP, HTTPRequest, HTTPResponse
from scapy.layers.inet import IP, TCP, UDP
from scapy.layers.l2 import Ether

from capharness.config import RunConfiguration
from capharness.registry import TestRegistry
from capharness.suites._helpers import expect


def _tcp(sport: int, dport: int):
    return Ether() / IP(src="10.0.0.1", dst="10.0.0.2") / TCP(sport=sport, dport=dport, flags="PA")


def check_http_request_parsing() -> None:
    pkt = _tcp(40000, 80) / HTTP() / HTTPRequest(
        Method=b"GET", Path=b"/index.html", Http_Version=b"HTTP/1.1",
        Host=b"www.example.com", User_Agent=b"capharness",
    )
    parsed = Ether(bytes(pkt))
    expect(parsed.haslayer(HTTPRequest), "HTTP request layer not recognised")
    req = parsed[HTTPRequest]
    expect(req.Method == b"GET", f"method parsed as {req.Method!r}")
    expect(req.Path == b"/index.html", f"path parsed as {req.Path!r}")
    expect(req.Host == b"www.example.com", f"host parsed as {req.Host!r}")
    expect(req.User_Agent == b"capharness", f"user agent parsed as {req.User_Agent!r}")


def check_http_response_parsing() -> None:
    body = b"<html>hello</html>"
    pkt = _tcp(80, 40000) / HTTP() / HTTPResponse(
        Http_Version=b"HTTP/1.1", Status_Code=b"200", Reason_Phrase=b"OK",
        Content_Type=b"text/html", Content_Length=str(len(body)).encode(),
    ) / body
    parsed = Ether(bytes(pkt))
    expect(parsed.haslayer(HTTPResponse), "HTTP response layer not recognised")
    resp = parsed[HTTPResponse]
    expect(resp.Status_Code == b"200", f"status parsed as {resp.Status_Code!r}")
    expect(resp.Content_Length == str(len(body)).encode(), f"length parsed as {resp.Content_Length!r}")
    expect(bytes(resp.payload) == body, "response body differs")


def check_dns_parsing() -> None:
    query = Ether() / IP(dst="8.8.8.8") / UDP(sport=5353, dport=53) / DNS(
        id=0x1234, rd=1, qd=DNSQR(qname="www.example.com", qtype="A"),
    )
    parsed = Ether(bytes(query))
    expect(parsed[DNS].id == 0x1234, f"transaction id parsed as {parsed[DNS].id:#x}")
    expect(parsed[DNSQR].qname == b"www.example.com.", f"query name parsed as {parsed[DNSQR].qname!r}")

    answer = Ether() / IP(src="8.8.8.8") / UDP(sport=53, dport=5353) / DNS(
        id=0x1234, qr=1, qd=DNSQR(qname="www.example.com"),
        an=DNSRR(rrname="www.example.com", type="A", ttl=300, rdata="93.184.216.34"),
    )
    parsed = Ether(bytes(answer))
    expect(parsed[DNS].qr == 1, "answer not flagged as a response")
    expect(parsed[DNSRR].rdata == "93.184.216.34", f"A record parsed as {parsed[DNSRR].rdata!r}")
    expect(parsed[DNSRR].ttl == 300, f"TTL parsed as {parsed[DNSRR].ttl}")


def check_print_packet_and_layers(config: RunConfiguration) -> None:
    pkt = Ether(bytes(_tcp(40000, 443) / b"payload"))
    dump = pkt.show(dump=True)
    for layer in ("Ethernet", "IP", "TCP", "Raw"):
        expect(f"###[ {layer} ]###" in dump, f"{layer} missing from packet dump")
    summary = pkt.summary()
    expect("TCP" in summary and "10.0.0.1" in summary, f"unexpected summary: {summary}")
    if config.verbose:
        print(dump)


def declare(registry: TestRegistry, config: RunConfiguration) -> None:
    registry.register("http_request_parsing", "no_network;http", check_http_request_parsing)
    registry.register("http_response_parsing", "no_network;http", check_http_response_parsing)
    registry.register("print_packet_and_layers", "no_network;print", partial(check_print_packet_and_layers, config))
    registry.register("dns_parsing", "no_network;dns", check_dns_parsing)
