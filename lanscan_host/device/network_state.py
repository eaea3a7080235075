"""Read the scanning device's own network state.

The scan engine only needs two facts about the device it runs on: whether it
is attached to a network, and which IPv4 address it currently holds. Both are
read from the OS through ``psutil``.
"""
from __future__ import annotations

import ipaddress
import logging
import socket
from dataclasses import dataclass
from typing import Dict, List, Optional

import psutil

LOGGER = logging.getLogger(__name__)

UNSPECIFIED_ADDRESS = "0.0.0.0"


@dataclass(frozen=True)
class NetworkState:
    is_connected: bool
    address_type: Optional[str] = None


def get_active_ipv4_interfaces() -> List[Dict[str, object]]:
    out = []
    addrs = psutil.net_if_addrs()
    stats = psutil.net_if_stats()

    for ifname, lst in addrs.items():
        st = stats.get(ifname)
        if not st or not st.isup:
            continue

        ipv4 = next((a for a in lst if a.family == socket.AF_INET), None)
        if not ipv4 or not ipv4.address or not ipv4.netmask:
            continue

        ip = ipv4.address
        try:
            net = ipaddress.IPv4Network(f"{ip}/{ipv4.netmask}", strict=False)
        except ValueError:
            continue
        if ipaddress.IPv4Address(ip).is_loopback:
            continue

        out.append({
            "name": ifname,
            "ip": ip,
            "mask": ipv4.netmask,
            "prefix": net.prefixlen,
            "cidr": str(net),
        })
    return out


def primary_ipv4_address() -> Optional[str]:
    """Address the OS would use for outbound traffic, if any."""

    try:
        # No packet is sent for a UDP connect; it only selects a route.
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.connect(("8.8.8.8", 80))
            ip = sock.getsockname()[0]
        finally:
            sock.close()
    except OSError:
        return None
    if not ip or ip == UNSPECIFIED_ADDRESS:
        return None
    return ip


class DeviceNetwork:
    """psutil-backed view of the device's connectivity."""

    def _interfaces(self) -> List[Dict[str, object]]:
        return get_active_ipv4_interfaces()

    def network_state(self) -> NetworkState:
        interfaces = self._interfaces()
        if not interfaces:
            return NetworkState(is_connected=False)
        address = self.ipv4_address(interfaces)
        name = next((i["name"] for i in interfaces if i["ip"] == address), interfaces[0]["name"])
        return NetworkState(is_connected=True, address_type=str(name))

    def ipv4_address(self, interfaces: Optional[List[Dict[str, object]]] = None) -> str:
        ip = primary_ipv4_address()
        if ip:
            return ip
        if interfaces is None:
            interfaces = self._interfaces()
        if interfaces:
            LOGGER.debug("No routed address; using interface %s", interfaces[0]["name"])
            return str(interfaces[0]["ip"])
        return UNSPECIFIED_ADDRESS


__all__ = [
    "DeviceNetwork",
    "NetworkState",
    "UNSPECIFIED_ADDRESS",
    "get_active_ipv4_interfaces",
    "primary_ipv4_address",
]
