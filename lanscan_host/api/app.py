from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional, Tuple

from fastapi import Depends, FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRouter

from lanscan_host.api.sessions import ScanBusyError, ScanRegistry
from lanscan_host.discovery.mdns import MdnsAdvertiser
from lanscan_host.engine.catalog import port_range, well_known_services
from lanscan_host.engine.models import HostSet, PortRange, host_set_to_dict
from lanscan_host.engine.orchestrator import NetworkScanner
from lanscan_host.engine.subnet import subnet_cidr
from lanscan_host.settings import HostSettings

LOGGER = logging.getLogger(__name__)

router = APIRouter()


def get_host_settings() -> HostSettings:
    return router._settings  # type: ignore[attr-defined]


def get_scanner() -> NetworkScanner:
    return router._scanner  # type: ignore[attr-defined]


def get_scan_registry() -> ScanRegistry:
    return router._scan_registry  # type: ignore[attr-defined]


def parse_scan_request(payload: Dict[str, Any]) -> Tuple[bool, Optional[PortRange]]:
    """Read ``fast`` and the optional port bounds from a request body.

    Raises:
        ValueError: on a malformed flag or an invalid or half-specified range.
    """

    fast = payload.get("fast", True)
    if not isinstance(fast, bool):
        raise ValueError("fast must be a boolean")

    min_port = payload.get("min_port")
    max_port = payload.get("max_port")
    if min_port is None and max_port is None:
        return fast, None
    if min_port is None or max_port is None:
        raise ValueError("min_port and max_port must be given together")
    for value in (min_port, max_port):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError("ports must be integers")
    return fast, port_range(min_port, max_port)


@router.get("/status")
def status(
    settings: HostSettings = Depends(get_host_settings),
    scanner: NetworkScanner = Depends(get_scanner),
    registry: ScanRegistry = Depends(get_scan_registry),
):
    prefix = scanner.subnet_prefix()
    return {
        "service_name": settings.service_name,
        "service_instance": settings.service_instance_name,
        "version": settings.version,
        "hostname": settings.hostname,
        "ip": settings.host_ip,
        "api_port": settings.api_port,
        "capabilities": settings.capabilities,
        "subnet": prefix,
        "cidr": subnet_cidr(prefix) if prefix else None,
        "scanning": registry.is_running(),
    }


@router.get("/services")
def services():
    return [s.to_dict() for s in well_known_services()]


@router.get("/scan")
def latest_scan(registry: ScanRegistry = Depends(get_scan_registry)):
    return registry.latest()


@router.post("/scan")
async def run_scan(
    payload: Dict[str, Any],
    scanner: NetworkScanner = Depends(get_scanner),
    registry: ScanRegistry = Depends(get_scan_registry),
):
    try:
        fast, ports = parse_scan_request(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    try:
        registry.begin(fast)
    except ScanBusyError:
        raise HTTPException(status_code=409, detail="Scan already running")

    try:
        hosts = await scanner.run_scan(fast, registry.update, ports)
    except BaseException:
        registry.finish()
        raise
    registry.finish(hosts)
    return {"fast": fast, "hosts": host_set_to_dict(hosts)}


@router.websocket("/ws/scan")
async def scan_stream(
    websocket: WebSocket,
    scanner: NetworkScanner = Depends(get_scanner),
    registry: ScanRegistry = Depends(get_scan_registry),
):
    await websocket.accept()
    try:
        request = await websocket.receive_json()
        if request.get("type") != "scan":
            await websocket.close(code=4000)
            return
        try:
            fast, ports = parse_scan_request(request)
        except ValueError as exc:
            await websocket.send_json({"type": "error", "detail": str(exc)})
            await websocket.close(code=4000)
            return
        try:
            registry.begin(fast)
        except ScanBusyError:
            await websocket.close(code=4009)
            return

        async def relay(hosts: HostSet) -> None:
            registry.update(hosts)
            await websocket.send_json({"type": "snapshot", "hosts": host_set_to_dict(hosts)})

        try:
            hosts = await scanner.run_scan(fast, relay, ports)
        except BaseException:
            registry.finish()
            raise
        registry.finish(hosts)
        await websocket.send_json({"type": "done", "hosts": host_set_to_dict(hosts)})
        await websocket.close()
    except WebSocketDisconnect:
        LOGGER.info("Scan stream client disconnected")
    except Exception:
        LOGGER.exception("Scan stream error")


def build_app(
    settings: HostSettings,
    advertiser: MdnsAdvertiser,
    scanner: Optional[NetworkScanner] = None,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        await advertiser.start()
        try:
            yield
        finally:
            await advertiser.stop()

    app = FastAPI(title="LAN Scanner Host", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    router._settings = settings  # type: ignore[attr-defined]
    router._scanner = scanner or NetworkScanner(settings.scan)  # type: ignore[attr-defined]
    registry = ScanRegistry()
    registry.subscribe(advertiser.on_scan_state)
    router._scan_registry = registry  # type: ignore[attr-defined]

    app.include_router(router)
    return app


__all__ = ["build_app", "parse_scan_request"]
