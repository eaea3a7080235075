"""Tests for the in-process scan registry."""

from unittest.mock import MagicMock, call

import pytest

from lanscan_host.api.sessions import ScanBusyError, ScanRegistry
from lanscan_host.engine.models import Host, Service


def test_empty_registry():
    registry = ScanRegistry()

    assert not registry.is_running()
    latest = registry.latest()
    assert latest["running"] is False
    assert latest["hosts"] == {}


def test_one_scan_at_a_time():
    registry = ScanRegistry()
    registry.begin(fast=True)

    with pytest.raises(ScanBusyError):
        registry.begin(fast=False)

    registry.finish()
    registry.begin(fast=False)
    assert registry.is_running()


def test_update_keeps_copy_of_latest_snapshot():
    registry = ScanRegistry()
    registry.begin(fast=True)
    hosts = {"10.0.0.1": Host("10.0.0.1", [Service("SSH", 22)], is_checking=True)}

    registry.update(hosts)
    hosts["10.0.0.1"].alive_services.append(Service("HTTP", 80))

    latest = registry.latest()
    assert latest["running"] is True
    assert latest["updates"] == 1
    assert latest["hosts"]["10.0.0.1"]["alive_services"] == [{"name": "SSH", "port": 22}]


def test_finish_records_final_hosts():
    registry = ScanRegistry()
    registry.begin(fast=False)
    registry.update({"10.0.0.1": Host("10.0.0.1", is_checking=True)})

    registry.finish({"10.0.0.1": Host("10.0.0.1", [Service("FTP", 21)])})

    latest = registry.latest()
    assert latest["running"] is False
    assert latest["finished_at"] is not None
    assert latest["hosts"]["10.0.0.1"]["is_checking"] is False


def test_new_scan_starts_empty():
    registry = ScanRegistry()
    registry.begin(fast=True)
    registry.finish({"10.0.0.1": Host("10.0.0.1")})

    registry.begin(fast=True)

    assert registry.latest()["hosts"] == {}


def test_update_without_scan_is_ignored():
    registry = ScanRegistry()
    registry.update({"10.0.0.1": Host("10.0.0.1")})
    registry.finish()

    assert registry.latest()["hosts"] == {}


def test_listeners_hear_start_and_finish():
    registry = ScanRegistry()
    listener = MagicMock()
    registry.subscribe(listener)
    final = {"10.0.0.1": Host("10.0.0.1", [Service("SSH", 22)])}

    registry.begin(fast=True)
    registry.update({"10.0.0.1": Host("10.0.0.1", is_checking=True)})
    registry.finish(final)
    registry.finish()

    assert listener.call_args_list == [call(True, {}), call(False, final)]


def test_failed_scan_reports_partial_hosts():
    registry = ScanRegistry()
    listener = MagicMock()
    registry.subscribe(listener)
    partial = {"10.0.0.1": Host("10.0.0.1", is_checking=True)}

    registry.begin(fast=False)
    registry.update(partial)
    registry.finish()

    listener.assert_called_with(False, partial)
