from __future__ import annotations

import socket
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from lanscan_host.device.network_state import primary_ipv4_address


@dataclass
class ScanSettings:
    # seconds
    connect_timeout: float = 0.3
    banner_grace: float = 0.2
    fragment_grace: float = 0.1
    discovery_timeout: float = 1.0

    discovery_port: int = 80
    first_host: int = 1
    last_host: int = 255
    http_probe_ports: Tuple[int, ...] = (80, 443)

    # Max simultaneous TCP probes against a single host. None means every
    # selected port at once.
    fast_scan_port_concurrency: Optional[int] = None
    full_scan_port_concurrency: int = 1


@dataclass
class HostSettings:
    api_port: int = 8000
    service_name: str = "LAN Scanner Host"
    version: str = "0.1.0"
    capabilities: List[str] = field(
        default_factory=lambda: ["fast-scan", "full-scan", "ws", "mdns"]
    )
    scan: ScanSettings = field(default_factory=ScanSettings)

    @property
    def hostname(self) -> str:
        return socket.gethostname()

    @property
    def service_instance_name(self) -> str:
        return f"{self.service_name} - {self.hostname}"

    @property
    def host_ip(self) -> str:
        return primary_ipv4_address() or "127.0.0.1"


def get_settings() -> HostSettings:
    return HostSettings()


__all__ = ["HostSettings", "ScanSettings", "get_settings"]
