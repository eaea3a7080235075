from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Tuple

import requests

LOGGER = logging.getLogger(__name__)

LivenessCheck = Callable[[str, float], bool]


def http_alive(url: str, timeout: float) -> bool:
    """True if anything answers an HTTP GET at ``url``.

    The status code is ignored; an error page still proves the address is up.
    """

    try:
        with requests.get(
            url,
            timeout=timeout,
            stream=True,
            allow_redirects=False,
            headers={"User-Agent": "LanScanHost/1.0"},
        ):
            return True
    except requests.RequestException:
        return False


async def discover_hosts(
    prefix: str,
    start: int = 1,
    end: int = 255,
    timeout: float = 1.0,
    port: int = 80,
    check: LivenessCheck = http_alive,
) -> List[str]:
    """Find addresses in ``prefix.start``..``prefix.end`` that answer HTTP.

    Every address is probed at once; there is deliberately no worker cap.

    Returns:
        Alive addresses, each once, in the order their probes completed.
    """

    addresses = [f"{prefix}.{i}" for i in range(start, end + 1)]
    if not addresses:
        return []

    loop = asyncio.get_running_loop()
    alive: List[str] = []
    executor = ThreadPoolExecutor(max_workers=len(addresses))

    async def _probe(address: str) -> Tuple[str, bool]:
        try:
            ok = await loop.run_in_executor(
                executor, check, f"http://{address}:{port}", timeout
            )
        except Exception:
            LOGGER.debug("Liveness check failed for %s", address, exc_info=True)
            return address, False
        return address, bool(ok)

    tasks = [asyncio.ensure_future(_probe(a)) for a in addresses]
    try:
        for fut in asyncio.as_completed(tasks):
            address, ok = await fut
            if ok and address not in alive:
                LOGGER.info("Active IP found: %s", address)
                alive.append(address)
    finally:
        for task in tasks:
            task.cancel()
        # Blocked requests finish on their own; the loop must not wait for them.
        executor.shutdown(wait=False, cancel_futures=True)

    return alive


__all__ = ["LivenessCheck", "discover_hosts", "http_alive"]
