"""Fast and full subnet scans, streamed as host set snapshots.

Socket budgets matter on small scanning devices, so each strategy runs with a
fixed port concurrency budget:

* discovery: every address at once (HTTP, see :mod:`discovery`)
* fast scan: one host at a time, all of its ports at once
* full scan: one host at a time, one port at a time
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from contextlib import aclosing
from functools import partial
from typing import AsyncIterator, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, Union

from lanscan_host.engine.catalog import named_service, select_ports
from lanscan_host.engine.discovery import discover_hosts
from lanscan_host.engine.models import Host, HostSet, PortRange, ProbeResult, Service, snapshot
from lanscan_host.engine.prober import probe_port
from lanscan_host.engine.subnet import current_subnet_prefix
from lanscan_host.settings import ScanSettings

LOGGER = logging.getLogger(__name__)

SnapshotCallback = Callable[[HostSet], Union[None, Awaitable[None]]]
SubnetResolver = Callable[[], Optional[str]]
HostDiscoverer = Callable[[str], Awaitable[List[str]]]
PortProbe = Callable[[str, int], Awaitable[ProbeResult]]


class NetworkScanner:
    def __init__(
        self,
        settings: Optional[ScanSettings] = None,
        resolve_subnet: Optional[SubnetResolver] = None,
        discover: Optional[HostDiscoverer] = None,
        probe: Optional[PortProbe] = None,
    ):
        self.settings = settings or ScanSettings()
        s = self.settings
        self._resolve_subnet = resolve_subnet or current_subnet_prefix
        self._discover = discover or partial(
            discover_hosts,
            start=s.first_host,
            end=s.last_host,
            timeout=s.discovery_timeout,
            port=s.discovery_port,
        )
        self._probe = probe or partial(
            probe_port,
            timeout=s.connect_timeout,
            banner_grace=s.banner_grace,
            fragment_grace=s.fragment_grace,
            http_probe_ports=s.http_probe_ports,
        )

    def subnet_prefix(self) -> Optional[str]:
        return self._resolve_subnet()

    async def run_scan(
        self,
        is_fast_scan: bool,
        on_update: SnapshotCallback,
        ports_range: Optional[PortRange] = None,
    ) -> HostSet:
        """Scan the local subnet, pushing a snapshot to ``on_update`` on change.

        Returns the final host set; empty if the subnet could not be resolved,
        in which case ``on_update`` is never called.
        """

        if is_fast_scan:
            return await self.fast_scan(on_update, ports_range)
        return await self.full_scan(on_update, ports_range)

    async def fast_scan(
        self,
        on_update: SnapshotCallback,
        ports_range: Optional[PortRange] = None,
    ) -> HostSet:
        prefix = self._resolve_subnet()
        if not prefix:
            LOGGER.info("No subnet to scan")
            return {}

        LOGGER.info("Fast scan of %s.0/24 started", prefix)
        active = await self._discover(prefix)
        services = select_ports(ports_range)
        limit = self.settings.fast_scan_port_concurrency or len(services)

        hosts: HostSet = {address: Host(address, is_checking=True) for address in active}
        await self._emit(on_update, hosts)

        for address in active:
            host = Host(address)
            async with aclosing(self._iter_probes(address, services, limit)) as probes:
                async for service, result in probes:
                    if not result.connected:
                        continue
                    host.alive_services.append(service)
                    # first guess wins
                    if host.os_info is None:
                        host.os_info = result.os_info
            hosts[address] = host
            await self._emit(on_update, hosts)

        LOGGER.info("Fast scan finished: %d hosts", len(hosts))
        return snapshot(hosts)

    async def full_scan(
        self,
        on_update: SnapshotCallback,
        ports_range: Optional[PortRange] = None,
    ) -> HostSet:
        prefix = self._resolve_subnet()
        if not prefix:
            LOGGER.info("No subnet to scan")
            return {}

        LOGGER.info("Full port scan of %s.0/24 started", prefix)
        s = self.settings
        services = select_ports(ports_range)
        limit = max(1, s.full_scan_port_concurrency)

        hosts: HostSet = {}
        for i in range(s.first_host, s.last_host + 1):
            address = f"{prefix}.{i}"
            host = Host(address, is_checking=True)
            async with aclosing(self._iter_probes(address, services, limit)) as probes:
                async for service, result in probes:
                    if not result.connected:
                        continue
                    host.alive_services.append(named_service(service.port))
                    if host.os_info is None:
                        host.os_info = result.os_info
                    hosts[address] = host
                    await self._emit(on_update, hosts)

            if host.alive_services:
                host.is_checking = False
                hosts[address] = host
                await self._emit(on_update, hosts)

        LOGGER.info("Full port scan finished: %d hosts", len(hosts))
        return snapshot(hosts)

    async def _iter_probes(
        self,
        address: str,
        services: Iterable[Service],
        limit: int,
    ) -> AsyncIterator[Tuple[Service, ProbeResult]]:
        """Probe ``services`` on ``address`` with at most ``limit`` in flight.

        Results are yielded in completion order.
        """

        queue = iter(services)
        pending: Dict["asyncio.Future[ProbeResult]", Service] = {}

        def submit_next() -> bool:
            service = next(queue, None)
            if service is None:
                return False
            task = asyncio.ensure_future(self._probe(address, service.port))
            pending[task] = service
            return True

        while len(pending) < limit and submit_next():
            pass

        try:
            while pending:
                done, _ = await asyncio.wait(set(pending), return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    service = pending.pop(task)
                    yield service, task.result()
                while len(pending) < limit and submit_next():
                    pass
        finally:
            for task in pending:
                task.cancel()

    async def _emit(self, on_update: SnapshotCallback, hosts: HostSet) -> None:
        LOGGER.debug("Snapshot: %d hosts", len(hosts))
        result = on_update(snapshot(hosts))
        if inspect.isawaitable(result):
            await result


async def scan_local_network(
    is_fast_scan: bool,
    on_update: SnapshotCallback,
    ports_range: Optional[PortRange] = None,
    settings: Optional[ScanSettings] = None,
) -> HostSet:
    return await NetworkScanner(settings).run_scan(is_fast_scan, on_update, ports_range)


__all__ = ["NetworkScanner", "SnapshotCallback", "scan_local_network"]
