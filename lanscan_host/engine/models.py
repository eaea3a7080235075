from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

UNKNOWN_VERSION = "Unknown"


# -----------------------------
# Models
# -----------------------------
@dataclass(frozen=True)
class Service:
    name: str
    port: int

    def to_dict(self) -> Dict[str, object]:
        return {"name": self.name, "port": self.port}


@dataclass(frozen=True)
class OSInfo:
    os: str
    version: str = UNKNOWN_VERSION

    def to_dict(self) -> Dict[str, str]:
        return {"os": self.os, "version": self.version}


@dataclass(frozen=True)
class PortRange:
    min_port: int
    max_port: int

    def __len__(self) -> int:
        return self.max_port - self.min_port + 1


@dataclass(frozen=True)
class ProbeResult:
    connected: bool
    os_info: Optional[OSInfo] = None
    banner: Optional[str] = None


@dataclass
class Host:
    address: str
    alive_services: List[Service] = field(default_factory=list)
    is_checking: bool = False
    os_info: Optional[OSInfo] = None

    def copy(self) -> "Host":
        return replace(self, alive_services=list(self.alive_services))

    def to_dict(self) -> Dict[str, object]:
        return {
            "address": self.address,
            "alive_services": [s.to_dict() for s in self.alive_services],
            "is_checking": self.is_checking,
            "os_info": self.os_info.to_dict() if self.os_info else None,
        }


HostSet = Dict[str, Host]


def snapshot(hosts: HostSet) -> HostSet:
    """Independent copy of ``hosts`` safe to hand to an observer."""

    return {address: host.copy() for address, host in hosts.items()}


def host_set_to_dict(hosts: HostSet) -> Dict[str, Dict[str, object]]:
    return {address: host.to_dict() for address, host in hosts.items()}


__all__ = [
    "Host",
    "HostSet",
    "OSInfo",
    "PortRange",
    "ProbeResult",
    "Service",
    "UNKNOWN_VERSION",
    "host_set_to_dict",
    "snapshot",
]
