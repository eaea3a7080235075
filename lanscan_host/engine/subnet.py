"""Derive the /24 prefix to sweep from the device's own address."""
from __future__ import annotations

import ipaddress
import logging
from typing import Optional, Protocol

from lanscan_host.device.network_state import UNSPECIFIED_ADDRESS, DeviceNetwork, NetworkState

LOGGER = logging.getLogger(__name__)


class NetworkAccessor(Protocol):
    def network_state(self) -> NetworkState: ...

    def ipv4_address(self) -> str: ...


def subnet_prefix(address: str) -> Optional[str]:
    """First three octets of ``address``, or ``None`` if it is unusable."""

    try:
        ip = ipaddress.IPv4Address(address)
    except ValueError:
        return None
    if str(ip) == UNSPECIFIED_ADDRESS:
        return None
    return str(ip).rsplit(".", 1)[0]


def subnet_cidr(prefix: str) -> str:
    """Render a three-octet prefix in CIDR notation."""

    return str(ipaddress.IPv4Network(f"{prefix}.0/24"))


def current_subnet_prefix(accessor: Optional[NetworkAccessor] = None) -> Optional[str]:
    """Prefix of the subnet the device is on, or ``None`` when it cannot scan.

    ``None`` is the normal answer when offline; accessor failures are treated
    the same way.
    """

    accessor = accessor or DeviceNetwork()
    try:
        state = accessor.network_state()
        address = accessor.ipv4_address()
    except Exception:
        LOGGER.debug("Network state unavailable", exc_info=True)
        return None

    LOGGER.debug("Connection type %s, IP address %s", state.address_type, address)
    if not state.is_connected:
        LOGGER.debug("Not connected to a network")
        return None
    return subnet_prefix(address)


__all__ = ["NetworkAccessor", "current_subnet_prefix", "subnet_cidr", "subnet_prefix"]
