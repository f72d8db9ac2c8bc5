"""Tests for guest network address lookup."""

from unittest.mock import Mock

import pytest

from prox.api_clients.errors import APIRequestError
from prox.api_clients.network import AddressResolver, extract_ip_from_interfaces
from prox.models import ResourceKind


def _iface(name, *addresses):
    return {
        "name": name,
        "ip-addresses": [{"ip-address-type": kind, "ip-address": ip} for kind, ip in addresses],
    }


class TestExtractIpFromInterfaces:
    """Test cases for extract_ip_from_interfaces."""

    def test_primary_interface_wins(self):
        interfaces = [
            _iface("lo", ("ipv4", "127.0.0.1")),
            _iface("docker0", ("ipv4", "172.17.0.1")),
            _iface("ens18", ("ipv6", "fe80::1"), ("ipv4", "192.168.1.20")),
        ]

        assert extract_ip_from_interfaces(interfaces) == "192.168.1.20"

    def test_falls_back_to_first_non_loopback(self):
        interfaces = [
            _iface("lo", ("ipv4", "127.0.0.1")),
            _iface("wg0", ("ipv4", "10.8.0.2")),
            _iface("br0", ("ipv4", "10.9.0.2")),
        ]

        assert extract_ip_from_interfaces(interfaces) == "10.8.0.2"

    def test_no_ipv4(self):
        interfaces = [_iface("lo", ("ipv4", "127.0.0.1")), _iface("eth0", ("ipv6", "::1"))]

        assert extract_ip_from_interfaces(interfaces) == "N/A"

    @pytest.mark.parametrize("value", [None, {}, "eth0", [None, {"name": "eth0"}]])
    def test_malformed_input(self, value):
        assert extract_ip_from_interfaces(value) == "N/A"


class TestAddressResolver:
    """Test cases for AddressResolver."""

    def setup_method(self):
        self.client = Mock()
        self.resolver = AddressResolver(self.client)
        self.client.get_agent_interfaces.side_effect = APIRequestError(
            "agent not running", status_code=500
        )
        self.client.get_vm_config.return_value = {}
        self.client.get_vm_status.return_value = {}
        self.client.get_container_status.return_value = {}
        self.client.get_interfaces.return_value = []

    def test_vm_address_from_agent(self):
        self.client.get_agent_interfaces.side_effect = None
        self.client.get_agent_interfaces.return_value = {
            "result": [_iface("eth0", ("ipv4", "10.0.0.5"))]
        }

        assert self.resolver.get_vm_address("pve1", 100) == "10.0.0.5"
        self.client.get_vm_config.assert_not_called()

    def test_vm_address_from_config_when_agent_fails(self):
        self.client.get_vm_config.return_value = {
            "name": "web",
            "net0": "virtio=AA:BB:CC:DD:EE:FF,bridge=vmbr0",
            "net1": "virtio=AA:BB:CC:DD:EE:00,bridge=vmbr1,ip=192.168.10.4/24",
        }

        assert self.resolver.get_vm_address("pve1", 100) == "192.168.10.4"

    def test_vm_config_dhcp_is_skipped(self):
        self.client.get_vm_config.return_value = {"net0": "virtio=AA,bridge=vmbr0,ip=dhcp"}
        self.client.get_vm_status.return_value = {"net": {"net0": "bridge=vmbr0,ip=10.1.1.1/16"}}

        assert self.resolver.get_vm_address("pve1", 100) == "10.1.1.1"

    def test_vm_address_from_interfaces_listing(self):
        self.client.get_vm_status.side_effect = APIRequestError("gone", status_code=500)
        self.client.get_interfaces.return_value = [
            {"name": "lo", "inet": "127.0.0.1/8"},
            {"name": "eth0", "inet": "172.16.0.9/24"},
        ]

        assert self.resolver.get_vm_address("pve1", 100) == "172.16.0.9"

    def test_vm_every_source_fails(self):
        self.client.get_vm_config.side_effect = APIRequestError("x", status_code=500)
        self.client.get_vm_status.side_effect = APIRequestError("x", status_code=500)
        self.client.get_interfaces.side_effect = APIRequestError("x", status_code=501)

        assert self.resolver.get_vm_address("pve1", 100) == "N/A"

    def test_container_address_from_status_ips(self):
        self.client.get_container_status.return_value = {"ips": "10.0.3.7/24"}

        assert self.resolver.get_container_address("pve1", 200) == "10.0.3.7"

    def test_container_address_from_interfaces(self):
        self.client.get_interfaces.return_value = [{"name": "eth0", "inet": "10.0.3.8/24"}]

        assert self.resolver.get_container_address("pve1", 200) == "10.0.3.8"
        self.client.get_interfaces.assert_called_once_with(ResourceKind.LXC, "pve1", 200)

    def test_resolve_dispatches_on_kind(self):
        self.client.get_container_status.return_value = {"ips": "10.0.3.7"}

        assert self.resolver.resolve(ResourceKind.LXC, "pve1", 200) == "10.0.3.7"
        assert self.resolver.resolve(ResourceKind.STORAGE, "pve1", 0) == "N/A"

    def test_malformed_status_payload_falls_through(self):
        """A step that trips over an odd payload does not end the chain."""
        self.client.get_container_status.return_value = ["not", "a", "mapping"]
        self.client.get_interfaces.return_value = [{"name": "eth0", "inet": "10.0.3.9/24"}]

        assert self.resolver.get_container_address("pve1", 200) == "10.0.3.9"

    def test_malformed_config_payload_falls_through(self):
        self.client.get_vm_config.return_value = None
        self.client.get_vm_status.return_value = {"net": {"net0": "bridge=vmbr0,ip=10.2.2.2/24"}}

        assert self.resolver.get_vm_address("pve1", 100) == "10.2.2.2"
