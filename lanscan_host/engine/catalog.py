from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from lanscan_host.engine.models import PortRange, Service

MIN_PORT = 0
MAX_PORT = 65535

KNOWN_SERVICES: Tuple[Service, ...] = (
    Service("FTP", 21),
    Service("SSH", 22),
    Service("HTTP", 80),
    Service("HTTPS", 443),
    Service("Telnet", 23),
    Service("SMTP", 25),
    Service("POP3", 110),
    Service("IMAP", 143),
    Service("MySQL", 3306),
)

_BY_PORT: Dict[int, Service] = {s.port: s for s in KNOWN_SERVICES}


def well_known_services() -> List[Service]:
    return list(KNOWN_SERVICES)


def ports_in_range(ports_range: PortRange) -> List[Service]:
    return [
        Service(str(port), port)
        for port in range(ports_range.min_port, ports_range.max_port + 1)
    ]


def select_ports(ports_range: Optional[PortRange] = None) -> List[Service]:
    """Ports to probe: the given range, or the well-known catalog."""

    if ports_range is not None:
        return ports_in_range(ports_range)
    return well_known_services()


def named_service(port: int) -> Service:
    """Catalog entry for ``port``, or a service named by the number."""

    return _BY_PORT.get(port) or Service(str(port), port)


def is_port_valid(port: int) -> bool:
    return MIN_PORT <= port <= MAX_PORT


def port_range(min_port: int, max_port: int) -> PortRange:
    """Build a validated :class:`PortRange`.

    Raises:
        ValueError: a bound is outside ``MIN_PORT..MAX_PORT`` or
            ``min_port > max_port``.
    """

    for port in (min_port, max_port):
        if not is_port_valid(port):
            raise ValueError(f"Invalid port: {port}")
    if min_port > max_port:
        raise ValueError(f"Invalid port range: {min_port}-{max_port}")
    return PortRange(min_port=min_port, max_port=max_port)


__all__ = [
    "KNOWN_SERVICES",
    "MAX_PORT",
    "MIN_PORT",
    "is_port_valid",
    "named_service",
    "port_range",
    "ports_in_range",
    "select_ports",
    "well_known_services",
]
