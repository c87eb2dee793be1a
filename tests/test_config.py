"""Tests for capharness/config.py: option validation and derived tags."""

from __future__ import annotations

import dataclasses

import pytest

from capharness.config import RunConfiguration, build_config, load_config_file
from capharness.errors import ConfigError
from capharness.features import FEATURES_ENV, Feature
from capharness.tags import Tag


def _build(options, env=None):
    return build_config(options, environ=env or {}, platform="linux")


class TestNetworkingRequirement:
    def test_missing_ip_without_no_networking(self):
        with pytest.raises(ConfigError, match="-i argument"):
            _build({})

    def test_no_networking_injects_tag(self):
        config = _build({"no_networking": True})
        assert config.user_tags == {Tag.NO_NETWORK}
        assert config.target_ip == ""
        assert not config.networking

    def test_no_networking_added_to_user_tags(self):
        config = _build({"no_networking": True, "tags": "pcap;dns"})
        assert config.user_tags == {Tag.NO_NETWORK, Tag.PCAP, Tag.DNS}

    def test_ip_given(self):
        config = _build({"use_ip": "192.168.1.10"})
        assert config.target_ip == "192.168.1.10"
        assert config.networking
        assert config.user_tags == frozenset()

    def test_invalid_ip(self):
        with pytest.raises(ConfigError, match="Invalid IP address"):
            _build({"use_ip": "300.1.1.1"})


class TestHardwarePort:
    def test_dpdk_requires_port(self):
        with pytest.raises(ConfigError, match="DPDK NIC port"):
            _build({"use_ip": "10.0.0.1"}, env={FEATURES_ENV: "dpdk"})

    def test_dpdk_port_not_needed_without_networking(self):
        config = _build({"no_networking": True}, env={FEATURES_ENV: "dpdk"})
        assert Feature.DPDK in config.features
        assert config.hardware_port is None

    def test_dpdk_with_port(self):
        config = _build({"use_ip": "10.0.0.1", "dpdk_port": 1}, env={FEATURES_ENV: "dpdk"})
        assert config.hardware_port == 1

    def test_validation_precedes_tag_filtering(self):
        # Failing fast even if the filter would exclude all dpdk tests.
        with pytest.raises(ConfigError):
            _build({"use_ip": "10.0.0.1", "tags": "pcap"}, env={FEATURES_ENV: "dpdk"})

    def test_negative_port(self):
        with pytest.raises(ConfigError, match="non-negative"):
            _build({"use_ip": "10.0.0.1", "dpdk_port": -1})


class TestOtherOptions:
    def test_leak_config_tags(self):
        config = _build({"no_networking": True, "skip_mem_leak_check": True, "mem_verbose": True})
        assert config.config_tags == {Tag.SKIP_MEM_LEAK_CHECK, Tag.MEM_LEAK_CHECK_VERBOSE}
        assert config.skip_leak_check
        assert config.leak_check_verbose
        assert Tag.SKIP_MEM_LEAK_CHECK not in config.user_tags

    @pytest.mark.parametrize("tags", ["skip_mem_leak_check", "pcap;mem_leak_check_verbose"])
    def test_leak_modifier_tags_rejected_for_selection(self, tags):
        with pytest.raises(ConfigError, match="only configure the leak check"):
            _build({"no_networking": True, "tags": tags})

    def test_leak_modifier_tags_rejected_from_config_file_list(self):
        with pytest.raises(ConfigError, match="--skip-mem-leak-check"):
            _build({"use_ip": "10.0.0.1", "tags": ["dns", "skip_mem_leak_check"]})

    def test_remote_port_range(self):
        with pytest.raises(ConfigError, match="out of range"):
            _build({"no_networking": True, "remote_port": 70000})

    def test_kni_must_be_ipv4(self):
        with pytest.raises(ConfigError, match="IPv4"):
            _build({"no_networking": True, "kni_ip": "fe80::1"})

    def test_unknown_leak_tracker(self):
        with pytest.raises(ConfigError, match="leak tracker"):
            _build({"no_networking": True, "leak_tracker": "valgrind"})

    def test_defaults(self):
        config = _build({"no_networking": True})
        assert config.leak_tracker == "tracemalloc"
        assert config.leak_threshold == 0
        assert config.show_skipped is False
        assert config.isolate is False
        assert config.leak_warmup is True

    def test_leak_warmup_disabled(self):
        assert _build({"no_networking": True, "leak_warmup": False}).leak_warmup is False

    def test_frozen(self):
        config = _build({"no_networking": True})
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.target_ip = "1.2.3.4"


class TestConfigFile:
    def test_load(self, tmp_path):
        path = tmp_path / "cfg.yaml"
        path.write_text("use_ip: 10.1.1.1\ntags: [pcap, dns]\nfeatures: [pf_ring]\n")
        options = load_config_file(str(path))
        config = _build(options)
        assert config.target_ip == "10.1.1.1"
        assert config.user_tags == {Tag.PCAP, Tag.DNS}
        assert config.features == {Feature.PF_RING}

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config_file(str(path)) == {}

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError, match="expected mapping"):
            load_config_file(str(path))

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("use_ip: 10.0.0.1\ncolour: blue\n")
        with pytest.raises(ConfigError, match="colour"):
            load_config_file(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Cannot read"):
            load_config_file(str(tmp_path / "nope.yaml"))


def test_direct_construction_defaults():
    config = RunConfiguration()
    assert config.user_tags == frozenset()
    assert not config.networking
