"""Tests for HTTP-based host discovery."""

import asyncio
import threading
import time
from unittest.mock import MagicMock, patch

import pytest
import requests

from lanscan_host.engine.discovery import discover_hosts, http_alive


def fake_check(delays):
    """Liveness check where only addresses in ``delays`` answer, after a delay."""

    calls = []
    lock = threading.Lock()

    def check(url, timeout):
        with lock:
            calls.append((url, timeout))
        address = url[len("http://"):].rsplit(":", 1)[0]
        if address not in delays:
            raise requests.ConnectionError("refused")
        time.sleep(delays[address])
        return True

    check.calls = calls
    return check


@pytest.mark.asyncio
async def test_only_responding_hosts_are_returned():
    check = fake_check({"10.0.0.5": 0.2, "10.0.0.10": 0.01})

    alive = await discover_hosts("10.0.0", check=check)

    assert set(alive) == {"10.0.0.5", "10.0.0.10"}
    assert len(alive) == 2
    # completion order, not numeric order
    assert alive == ["10.0.0.10", "10.0.0.5"]


@pytest.mark.asyncio
async def test_every_address_is_probed_once():
    check = fake_check({})

    alive = await discover_hosts("192.168.1", check=check, timeout=1.0)

    assert alive == []
    urls = sorted(url for url, _ in check.calls)
    assert len(urls) == 255
    assert urls == sorted(f"http://192.168.1.{i}:80" for i in range(1, 256))
    assert {t for _, t in check.calls} == {1.0}


@pytest.mark.asyncio
async def test_probes_run_concurrently():
    delays = {f"10.1.1.{i}": 0.3 for i in range(1, 51)}
    check = fake_check(delays)

    started = time.monotonic()
    alive = await discover_hosts("10.1.1", start=1, end=50, check=check)
    elapsed = time.monotonic() - started

    assert len(alive) == 50
    # serial would take 15s
    assert elapsed < 5


@pytest.mark.asyncio
async def test_custom_range_and_port():
    check = fake_check({})

    await discover_hosts("10.0.0", start=3, end=4, port=8080, check=check)

    assert sorted(url for url, _ in check.calls) == ["http://10.0.0.3:8080", "http://10.0.0.4:8080"]


@pytest.mark.asyncio
async def test_empty_range():
    assert await discover_hosts("10.0.0", start=5, end=4) == []


@pytest.mark.asyncio
async def test_unexpected_check_error_means_dead():
    def check(url, timeout):
        raise RuntimeError("boom")

    assert await discover_hosts("10.0.0", start=1, end=3, check=check) == []


@pytest.mark.asyncio
async def test_cancelled_sweep_releases_the_loop():
    release = threading.Event()

    def stuck_check(url, timeout):
        release.wait(2.0)
        return False

    ticks = 0

    async def ticker():
        nonlocal ticks
        while True:
            ticks += 1
            await asyncio.sleep(0.01)

    ticking = asyncio.ensure_future(ticker())
    sweep = asyncio.ensure_future(discover_hosts("10.9.9", start=1, end=20, check=stuck_check))
    await asyncio.sleep(0.1)

    sweep.cancel()
    started = time.monotonic()
    with pytest.raises(asyncio.CancelledError):
        await sweep
    elapsed = time.monotonic() - started

    before = ticks
    await asyncio.sleep(0.05)
    ticking.cancel()
    release.set()

    assert elapsed < 0.5
    assert ticks > before


def test_http_alive_any_response_counts():
    response = MagicMock(status_code=500)
    with patch("lanscan_host.engine.discovery.requests.get", return_value=response) as get:
        assert http_alive("http://10.0.0.1:80", 1.0)

    _, kwargs = get.call_args
    assert kwargs["timeout"] == 1.0
    assert kwargs["stream"] is True


def test_http_alive_transport_error_is_dead():
    with patch(
        "lanscan_host.engine.discovery.requests.get",
        side_effect=requests.Timeout("slow"),
    ):
        assert not http_alive("http://10.0.0.1:80", 1.0)
