from __future__ import annotations

import argparse
import asyncio
import logging
from typing import List, Optional

import uvicorn

from lanscan_host.api.app import build_app
from lanscan_host.discovery.mdns import MdnsAdvertiser
from lanscan_host.engine.catalog import port_range
from lanscan_host.engine.models import HostSet, PortRange
from lanscan_host.engine.orchestrator import NetworkScanner
from lanscan_host.settings import HostSettings, get_settings

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="lanscan-host", description="Local subnet host and service scanner")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = p.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the scan API (default)")
    serve.add_argument("--port", type=int, help="API port (default: 8000)")

    scan = sub.add_parser("scan", help="Run one scan and print the result")
    scan.add_argument("--full", action="store_true", help="Full port scan instead of fast scan")
    scan.add_argument("--min-port", type=int, help="First port of a custom range")
    scan.add_argument("--max-port", type=int, help="Last port of a custom range")
    return p


def parse_range(parser: argparse.ArgumentParser, args: argparse.Namespace) -> Optional[PortRange]:
    if args.min_port is None and args.max_port is None:
        return None
    if args.min_port is None or args.max_port is None:
        parser.error("--min-port and --max-port must be given together")
    try:
        return port_range(args.min_port, args.max_port)
    except ValueError as exc:
        parser.error(str(exc))


def format_hosts(hosts: HostSet) -> List[str]:
    lines = []
    for address in sorted(hosts, key=lambda a: tuple(int(o) for o in a.split("."))):
        host = hosts[address]
        os_text = f"{host.os_info.os} {host.os_info.version}" if host.os_info else "Not defined"
        services = ", ".join(f"{s.name}/{s.port}" for s in host.alive_services) or "-"
        lines.append(f"{address:<16} OS: {os_text:<24} Services: {services}")
    return lines


def run_scan(settings: HostSettings, fast: bool, ports: Optional[PortRange]) -> HostSet:
    scanner = NetworkScanner(settings.scan)
    if not scanner.subnet_prefix():
        LOGGER.warning("No usable IPv4 network; nothing to scan")
        return {}

    def on_update(hosts: HostSet) -> None:
        checking = sum(1 for h in hosts.values() if h.is_checking)
        LOGGER.info("%d hosts known, %d still checking", len(hosts), checking)

    return asyncio.run(scanner.run_scan(fast, on_update, ports))


def serve(settings: HostSettings) -> None:
    advertiser = MdnsAdvertiser(settings)
    app = build_app(settings, advertiser)
    uvicorn.run(app, host="0.0.0.0", port=settings.api_port, log_level="info")


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    settings = get_settings()
    if args.command == "scan":
        ports = parse_range(parser, args)
        hosts = run_scan(settings, fast=not args.full, ports=ports)
        print(f"Found {len(hosts)} hosts")
        for line in format_hosts(hosts):
            print(line)
        return 0

    if getattr(args, "port", None):
        settings.api_port = args.port
    serve(settings)
    return 0


__all__ = ["build_parser", "format_hosts", "main"]
