from lanscan_host.engine.banner import classify_banner
from lanscan_host.engine.catalog import port_range, ports_in_range, select_ports, well_known_services
from lanscan_host.engine.discovery import discover_hosts
from lanscan_host.engine.models import Host, HostSet, OSInfo, PortRange, ProbeResult, Service
from lanscan_host.engine.orchestrator import NetworkScanner, scan_local_network
from lanscan_host.engine.prober import probe_port
from lanscan_host.engine.subnet import current_subnet_prefix

__all__ = [
    "Host",
    "HostSet",
    "NetworkScanner",
    "OSInfo",
    "PortRange",
    "ProbeResult",
    "Service",
    "classify_banner",
    "current_subnet_prefix",
    "discover_hosts",
    "port_range",
    "ports_in_range",
    "probe_port",
    "scan_local_network",
    "select_ports",
    "well_known_services",
]
