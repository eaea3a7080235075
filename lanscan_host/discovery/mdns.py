"""Advertise the scan host over mDNS.

Besides the API port, the TXT record carries the subnet this host sweeps and
whether a scan is running, so clients can pick an idle host on the right
network before connecting. The record is republished when a scan starts or
ends.
"""
from __future__ import annotations

import asyncio
import logging
import socket
from typing import Callable, Dict, Optional, Set

from zeroconf import IPVersion, ServiceInfo, Zeroconf

from lanscan_host.engine.models import HostSet
from lanscan_host.engine.subnet import current_subnet_prefix, subnet_cidr
from lanscan_host.settings import HostSettings

LOGGER = logging.getLogger(__name__)

SERVICE_TYPE = "_lanscan._tcp.local."
REGISTER_RETRY_DELAY = 0.5


class MdnsAdvertiser:
    def __init__(
        self,
        settings: HostSettings,
        resolve_subnet: Callable[[], Optional[str]] = current_subnet_prefix,
        attempts: int = 3,
    ):
        self.settings = settings
        self.attempts = attempts
        self._resolve_subnet = resolve_subnet
        self.zeroconf: Optional[Zeroconf] = None
        self.info: Optional[ServiceInfo] = None
        self.mdns_enabled = False
        self.scanning = False
        self.last_host_count: Optional[int] = None
        self._refreshes: Set["asyncio.Task[None]"] = set()

    def properties(self) -> Dict[str, str]:
        prefix = self._resolve_subnet()
        props = {
            "version": self.settings.version,
            "capabilities": ",".join(self.settings.capabilities),
            "api_port": str(self.settings.api_port),
            "subnet": subnet_cidr(prefix) if prefix else "",
            "scanning": "1" if self.scanning else "0",
        }
        if self.last_host_count is not None:
            props["hosts"] = str(self.last_host_count)
        return props

    def _service_info(self, host_ip: str) -> ServiceInfo:
        try:
            addresses = [socket.inet_aton(host_ip)]
        except OSError:
            addresses = []
        return ServiceInfo(
            SERVICE_TYPE,
            f"{self.settings.service_instance_name}.{SERVICE_TYPE}",
            addresses=addresses,
            port=self.settings.api_port,
            properties=self.properties(),
            server=f"{self.settings.hostname}.local.",
        )

    async def _call(self, action: str, fn, *args) -> bool:
        try:
            await asyncio.to_thread(fn, *args)
        except Exception:
            LOGGER.exception("mDNS %s failed", action)
            return False
        return True

    async def start(self) -> bool:
        host_ip = self.settings.host_ip
        self.info = await asyncio.to_thread(self._service_info, host_ip)
        try:
            self.zeroconf = Zeroconf(
                ip_version=IPVersion.V4Only,
                interfaces=[host_ip] if self.info.addresses else None,
            )
        except Exception:
            LOGGER.exception("Failed to initialize Zeroconf")
            self.info = None
            return False

        for attempt in range(1, self.attempts + 1):
            if await self._call(f"register (attempt {attempt})", self.zeroconf.register_service, self.info):
                self.mdns_enabled = True
                LOGGER.info("mDNS advertised as %s on %s:%s", SERVICE_TYPE, host_ip, self.settings.api_port)
                return True
            await asyncio.sleep(REGISTER_RETRY_DELAY)

        await self._close()
        return False

    def on_scan_state(self, running: bool, hosts: HostSet) -> None:
        """Scan registry listener; schedules a TXT record refresh."""

        self.scanning = running
        if not running:
            self.last_host_count = len(hosts)
        if not self.mdns_enabled:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            LOGGER.debug("No running loop, mDNS record not refreshed")
            return
        task = loop.create_task(self.refresh())
        self._refreshes.add(task)
        task.add_done_callback(self._refreshes.discard)

    async def refresh(self) -> None:
        if not (self.zeroconf and self.mdns_enabled):
            return
        info = await asyncio.to_thread(self._service_info, self.settings.host_ip)
        if await self._call("update", self.zeroconf.update_service, info):
            self.info = info
            LOGGER.debug("mDNS record refreshed: scanning=%s", self.scanning)

    async def _close(self) -> None:
        if self.zeroconf is not None:
            await self._call("close", self.zeroconf.close)
        self.zeroconf = None
        self.info = None
        self.mdns_enabled = False

    async def stop(self) -> None:
        pending = list(self._refreshes)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        if self.zeroconf is not None and self.info is not None and self.mdns_enabled:
            await self._call("unregister", self.zeroconf.unregister_service, self.info)
        await self._close()


__all__ = ["MdnsAdvertiser", "SERVICE_TYPE"]
