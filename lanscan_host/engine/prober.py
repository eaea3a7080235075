"""Single TCP port liveness probe with best-effort banner capture."""
from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from lanscan_host.engine.banner import classify_banner
from lanscan_host.engine.models import OSInfo, ProbeResult

LOGGER = logging.getLogger(__name__)

HTTP_HEAD_PROBE = b"HEAD / HTTP/1.0\r\n\r\n"
HTTP_PROBE_PORTS = (80, 443)
READ_CHUNK = 4096


async def _read_banner(
    reader: asyncio.StreamReader,
    banner_grace: float,
    fragment_grace: float,
) -> str:
    """Collect inbound text until the grace window lapses or the peer closes.

    Banners can arrive in pieces, so each chunk re-arms a shorter wait, but
    never past the initial ``banner_grace`` deadline.
    """

    loop = asyncio.get_running_loop()
    hard_deadline = loop.time() + banner_grace
    deadline = hard_deadline
    buffer = bytearray()
    while True:
        remaining = deadline - loop.time()
        if remaining <= 0:
            break
        try:
            chunk = await asyncio.wait_for(reader.read(READ_CHUNK), timeout=remaining)
        except asyncio.TimeoutError:
            break
        except OSError:
            # reset mid-banner; keep what arrived
            break
        if not chunk:
            break
        buffer += chunk
        deadline = min(hard_deadline, loop.time() + fragment_grace)
    return buffer.decode(errors="ignore")


async def probe_port(
    host: str,
    port: int,
    timeout: float = 0.3,
    banner_grace: float = 0.2,
    fragment_grace: float = 0.1,
    http_probe_ports: Iterable[int] = HTTP_PROBE_PORTS,
) -> ProbeResult:
    """Check whether ``host:port`` accepts a TCP connection.

    On HTTP ports a ``HEAD`` request is sent to elicit a ``Server`` header.
    Any text received within the grace window is classified for an OS guess.
    Transport errors mean "not connected"; this coroutine never raises them.

    Args:
        host: IPv4 address or hostname.
        port: TCP port.
        timeout: Connect timeout in seconds.
        banner_grace: Seconds to wait for a banner after connecting.
        fragment_grace: Seconds to wait for further fragments after each chunk.
        http_probe_ports: Ports that receive the HTTP ``HEAD`` probe.

    Returns:
        A :class:`ProbeResult`.
    """

    try:
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port),
            timeout=timeout,
        )
    except (asyncio.TimeoutError, OSError, ValueError):
        return ProbeResult(connected=False)

    LOGGER.debug("server %s:%s online", host, port)

    banner = ""
    os_info: Optional[OSInfo] = None
    try:
        if port in tuple(http_probe_ports):
            writer.write(HTTP_HEAD_PROBE)
            await writer.drain()
        banner = await _read_banner(reader, banner_grace, fragment_grace)
    except OSError as exc:
        # The connect already succeeded; a failed write keeps it so.
        LOGGER.debug("probe write to %s:%s failed: %s", host, port, exc)
    finally:
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass

    if banner:
        LOGGER.debug("banner %s:%s %r", host, port, banner)
        os_info = classify_banner(banner)

    return ProbeResult(connected=True, os_info=os_info, banner=banner or None)


__all__ = ["HTTP_HEAD_PROBE", "HTTP_PROBE_PORTS", "probe_port"]
