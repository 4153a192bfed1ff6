"""Tests for local address selection against a discovered server."""

import socket
from collections import namedtuple

import pytest

from irxr import subnet
from irxr.errors import MalformedAddressError
from irxr.subnet import LOOPBACK, local_ip_in_subnet, local_ipv4_addresses, same_subnet

Addr = namedtuple("Addr", "family address netmask broadcast ptp")


class TestLocalIpInSubnet:
    def test_picks_address_in_peer_subnet(self):
        addrs = ["10.0.0.7", "192.168.1.42", "172.16.0.3"]
        assert local_ip_in_subnet("192.168.1.10", addresses=addrs) == "192.168.1.42"
        assert local_ip_in_subnet("10.0.0.200", addresses=addrs) == "10.0.0.7"
        assert local_ip_in_subnet("172.16.0.1", addresses=addrs) == "172.16.0.3"

    def test_falls_back_to_loopback(self):
        assert local_ip_in_subnet("192.168.2.10", addresses=["192.168.1.42", "10.0.0.7"]) == LOOPBACK
        assert local_ip_in_subnet("192.168.2.10", addresses=[]) == "127.0.0.1"

    def test_first_match_wins(self):
        addrs = ["192.168.1.5", "192.168.1.6"]
        assert local_ip_in_subnet("192.168.1.10", addresses=addrs) == "192.168.1.5"

    def test_custom_mask(self):
        assert local_ip_in_subnet("10.1.2.3", mask="255.255.0.0", addresses=["10.1.99.4"]) == "10.1.99.4"
        assert local_ip_in_subnet("10.1.2.3", addresses=["10.1.99.4"]) == LOOPBACK

    def test_skips_unparseable_local_entries(self):
        assert local_ip_in_subnet("192.168.1.10", addresses=["fe80::1", "192.168.1.9"]) == "192.168.1.9"

    @pytest.mark.parametrize("bad", ["300.1.1.1", "abc", "", "192.168.1", "::1"])
    def test_malformed_peer_raises(self, bad):
        with pytest.raises(MalformedAddressError, match="malformed address"):
            local_ip_in_subnet(bad, addresses=["192.168.1.9"])

    def test_malformed_mask_raises(self):
        with pytest.raises(ValueError):
            local_ip_in_subnet("192.168.1.10", mask="255.255.255", addresses=["192.168.1.9"])

    def test_uses_interface_enumeration(self, monkeypatch):
        fake = {
            "lo": [Addr(socket.AF_INET, "127.0.0.1", "255.0.0.0", None, None)],
            "eth0": [
                Addr(socket.AF_INET6, "fe80::1", None, None, None),
                Addr(socket.AF_INET, "192.168.50.20", "255.255.255.0", None, None),
            ],
        }
        monkeypatch.setattr(subnet.psutil, "net_if_addrs", lambda: fake)
        assert local_ipv4_addresses() == ["127.0.0.1", "192.168.50.20"]
        assert local_ip_in_subnet("192.168.50.1") == "192.168.50.20"
        assert local_ip_in_subnet("10.9.9.9") == LOOPBACK


class TestSameSubnet:
    def test_same_and_different(self):
        assert same_subnet("192.168.1.1", "192.168.1.254")
        assert not same_subnet("192.168.1.1", "192.168.2.1")
        assert same_subnet("192.168.1.1", "192.168.2.1", mask="255.255.0.0")

    def test_bad_input(self):
        with pytest.raises(MalformedAddressError):
            same_subnet("192.168.1.1", "nope")
