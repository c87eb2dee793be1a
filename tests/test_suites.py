"""Tests for the bundled capture-library suites."""

from __future__ import annotations

import pytest

from capharness.errors import SkipUnit
from capharness.features import Feature
from capharness.suites import (
    addresses,
    build_registry,
    files,
    filters,
    hardware,
    library_version,
    live,
    protocols,
    reassembly,
)
from capharness.suites._helpers import expect, find_iface_by_ip
from capharness.tags import Tag


class TestDeclaration:
    def test_names_unique_and_ordered(self, make_config):
        reg = build_registry(make_config())
        names = [u.name for u in reg] + [u.name for u in reg.omitted]
        assert len(names) == len(set(names))
        assert names[0] == "ip_address"
        assert [u.name for u in reg][-1] == "raw_sockets"

    def test_every_offline_unit_tagged(self, make_config):
        reg = build_registry(make_config())
        offline = {u.name for u in reg if Tag.NO_NETWORK in u.tags}
        assert {"pcap_file_read_write", "dns_parsing", "ip_frag_sanity", "live_device_list"} <= offline
        assert "send_packet" not in offline

    def test_feature_gated_units_omitted(self, make_config):
        reg = build_registry(make_config(features=frozenset()))
        omitted = {u.name for u in reg.omitted}
        assert {"dpdk_init_device", "kni_device", "winpcap_live_device", "remote_capture"} <= omitted
        assert "dpdk_init_device" not in reg

    def test_feature_gated_units_present(self, make_config):
        reg = build_registry(make_config(features=frozenset({Feature.DPDK, Feature.KNI}), hardware_port=0))
        assert "dpdk_init_device" in reg
        assert "kni_device" in reg
        assert "winpcap_live_device" not in reg

    def test_library_version(self):
        assert library_version().startswith("scapy ")


def _run_offline(action, *args):
    """Call a suite action, turning its own environment skips into pytest skips."""
    try:
        return action(*args)
    except SkipUnit as e:
        pytest.skip(e.reason)


OFFLINE_ACTIONS = [
    addresses.check_ip_address,
    addresses.check_mac_address,
    files.check_pcap_file_read_write,
    files.check_pcap_sll_file_read_write,
    files.check_pcap_raw_ip_file_read_write,
    files.check_pcap_file_append,
    files.check_pcapng_file_read_write,
    files.check_pcapng_file_read_write_adv,
    live.check_live_device_list,
    live.check_live_device_no_networking,
    filters.check_filters_general_bpf_str,
    filters.check_filters_offline,
    protocols.check_http_request_parsing,
    protocols.check_http_response_parsing,
    protocols.check_dns_parsing,
    reassembly.check_tcp_reassembly_sanity,
    reassembly.check_tcp_reassembly_out_of_order,
    reassembly.check_tcp_reassembly_retransmission,
    reassembly.check_tcp_reassembly_missing_data,
    reassembly.check_tcp_reassembly_with_fin_rst,
    reassembly.check_tcp_reassembly_ipv6,
    reassembly.check_tcp_reassembly_multiple_conns,
    reassembly.check_ip_frag_sanity,
    reassembly.check_ip_frag_out_of_order,
    reassembly.check_ip_frag_multiple_frags,
    reassembly.check_ip_frag_partial_data,
]


class TestOfflineActions:
    @pytest.mark.parametrize("action", OFFLINE_ACTIONS, ids=lambda a: a.__name__[len("check_"):])
    def test_passes(self, action):
        assert _run_offline(action) is None

    def test_every_offline_unit_covered(self, make_config):
        reg = build_registry(make_config())
        offline = {u.name for u in reg if Tag.NO_NETWORK in u.tags}
        covered = {a.__name__[len("check_"):] for a in OFFLINE_ACTIONS} | {"print_packet_and_layers"}
        assert offline == covered

    def test_print_packet_quiet(self, make_config, capsys):
        protocols.check_print_packet_and_layers(make_config(verbose=False))
        assert capsys.readouterr().out == ""

    def test_print_packet_verbose(self, make_config, capsys):
        protocols.check_print_packet_and_layers(make_config(verbose=True))
        assert "###[ TCP ]###" in capsys.readouterr().out


class TestExpect:
    def test_passing_condition(self):
        expect(True, "unused")

    def test_failing_condition_raises_assertion_error(self):
        with pytest.raises(AssertionError, match="^values differ$"):
            expect(1 == 2, "values differ")


class TestHardwareHelpers:
    def test_dpdk_bound_ports(self, tmp_path):
        (tmp_path / "vfio-pci" / "0000:03:00.1").mkdir(parents=True)
        (tmp_path / "vfio-pci" / "0000:03:00.0").mkdir()
        (tmp_path / "vfio-pci" / "new_id").touch()
        (tmp_path / "igb_uio" / "0000:01:00.0").mkdir(parents=True)
        assert hardware.dpdk_bound_ports(str(tmp_path)) == ["0000:01:00.0", "0000:03:00.0", "0000:03:00.1"]

    def test_dpdk_bound_ports_none(self, tmp_path):
        assert hardware.dpdk_bound_ports(str(tmp_path)) == []

    def test_hugepages_total(self, tmp_path):
        meminfo = tmp_path / "meminfo"
        meminfo.write_text("MemTotal:  1000 kB\nHugePages_Total:     512\nHugePages_Free: 512\n")
        assert hardware.hugepages_total(str(meminfo)) == 512
        assert hardware.hugepages_total(str(tmp_path / "missing")) == 0

    def test_dpdk_init_skips_without_port(self, make_config):
        with pytest.raises(SkipUnit):
            hardware.check_dpdk_init_device(make_config())

    def test_kni_skips_without_ip(self, make_config):
        with pytest.raises(SkipUnit, match="-k"):
            hardware.check_kni_device(make_config())


class TestLive:
    def test_no_ip_skips(self):
        with pytest.raises(SkipUnit):
            find_iface_by_ip("")

    def test_find_iface(self, capture_ip):
        assert find_iface_by_ip(capture_ip)
