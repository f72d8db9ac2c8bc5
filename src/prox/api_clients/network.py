"""Live network address lookup for VMs and containers."""

import logging
from typing import Any, Callable, Iterable, List, Optional

from ..models import ADDRESS_UNAVAILABLE, ResourceKind
from .errors import ProxError

logger = logging.getLogger(__name__)

PRIMARY_INTERFACES = ("eth0", "ens3", "ens18", "enp0s3")
LOOPBACK_ADDRESSES = ("127.0.0.1", "::1")


def _strip_prefix_length(address: str) -> str:
    return address.split("/", 1)[0]


def _usable(address: Optional[str]) -> bool:
    return bool(address) and address not in LOOPBACK_ADDRESSES and address != "dhcp"


def extract_ip_from_interfaces(interfaces: Any) -> str:
    """
    Pick an IPv4 address from a guest agent interface listing.

    Addresses on the usual primary interface names win. Otherwise the first
    non-loopback IPv4 address is returned, or ``"N/A"`` if there is none.

    Args:
        interfaces: The ``result`` list of ``network-get-interfaces``

    Returns:
        IPv4 address or the unavailable sentinel
    """
    if not isinstance(interfaces, list):
        return ADDRESS_UNAVAILABLE

    fallback: Optional[str] = None
    for iface in interfaces:
        if not isinstance(iface, dict):
            continue
        addresses = iface.get("ip-addresses")
        if not isinstance(addresses, list):
            continue

        for entry in addresses:
            if not isinstance(entry, dict) or entry.get("ip-address-type") != "ipv4":
                continue
            ip = entry.get("ip-address")
            if not isinstance(ip, str) or not _usable(ip):
                continue
            if iface.get("name") in PRIMARY_INTERFACES:
                return ip
            if fallback is None:
                fallback = ip

    return fallback or ADDRESS_UNAVAILABLE


def _ip_from_inet_listing(interfaces: Any) -> str:
    # /interfaces returns [{"name": ..., "inet": "10.0.0.5/24", ...}]
    if not isinstance(interfaces, list):
        return ADDRESS_UNAVAILABLE
    for iface in interfaces:
        if not isinstance(iface, dict):
            continue
        inet = iface.get("inet")
        if isinstance(inet, str) and inet:
            ip = _strip_prefix_length(inet)
            if _usable(ip):
                return ip
    return ADDRESS_UNAVAILABLE


def _ip_from_net_options(values: Iterable[Any]) -> str:
    # Option strings look like "virtio=AA:BB:..,bridge=vmbr0,ip=192.168.1.10/24"
    for value in values:
        if not isinstance(value, str) or "ip=" not in value:
            continue
        for part in value.split(","):
            if part.startswith("ip="):
                ip = _strip_prefix_length(part[len("ip="):])
                if _usable(ip):
                    return ip
    return ADDRESS_UNAVAILABLE


class AddressResolver:
    """
    Resolves the primary IPv4 address of a running guest.

    Each lookup walks a chain of sources and stops at the first one that
    yields an address. A failing source is skipped; if all of them fail the
    result is ``"N/A"``.
    """

    def __init__(self, client: Any):
        """
        Args:
            client: ProxmoxClient used for the lookups
        """
        self.client = client

    def resolve(self, kind: ResourceKind, node: str, vmid: int) -> str:
        """Dispatch on the guest kind."""
        if kind == ResourceKind.QEMU:
            return self.get_vm_address(node, vmid)
        if kind == ResourceKind.LXC:
            return self.get_container_address(node, vmid)
        return ADDRESS_UNAVAILABLE

    def get_vm_address(self, node: str, vmid: int) -> str:
        kind = ResourceKind.QEMU
        return self._first_address(
            f"vm {vmid}",
            [
                lambda: self._from_agent(kind, node, vmid),
                lambda: self._from_config(node, vmid),
                lambda: self._from_status_net(node, vmid),
                lambda: _ip_from_inet_listing(self.client.get_interfaces(kind, node, vmid)),
            ],
        )

    def get_container_address(self, node: str, vmid: int) -> str:
        kind = ResourceKind.LXC
        return self._first_address(
            f"ct {vmid}",
            [
                lambda: self._from_agent(kind, node, vmid),
                lambda: self._from_status_ips(node, vmid),
                lambda: _ip_from_inet_listing(self.client.get_interfaces(kind, node, vmid)),
            ],
        )

    def _first_address(self, label: str, sources: List[Callable[[], str]]) -> str:
        for source in sources:
            try:
                address = source()
            except (ProxError, TypeError, ValueError, AttributeError) as e:
                logger.debug(f"Address lookup step for {label} failed: {e}")
                continue
            if address and address != ADDRESS_UNAVAILABLE:
                return address
        return ADDRESS_UNAVAILABLE

    def _from_agent(self, kind: ResourceKind, node: str, vmid: int) -> str:
        data = self.client.get_agent_interfaces(kind, node, vmid)
        if not isinstance(data, dict):
            return ADDRESS_UNAVAILABLE
        return extract_ip_from_interfaces(data.get("result"))

    def _from_config(self, node: str, vmid: int) -> str:
        config = self.client.get_vm_config(node, vmid)
        return _ip_from_net_options(
            value for key, value in sorted(config.items()) if key.startswith("net")
        )

    def _from_status_net(self, node: str, vmid: int) -> str:
        net = self.client.get_vm_status(node, vmid).get("net")
        if not isinstance(net, dict):
            return ADDRESS_UNAVAILABLE
        return _ip_from_net_options(net.values())

    def _from_status_ips(self, node: str, vmid: int) -> str:
        ips = self.client.get_container_status(node, vmid).get("ips")
        if isinstance(ips, str) and ips:
            return _strip_prefix_length(ips)
        return ADDRESS_UNAVAILABLE
