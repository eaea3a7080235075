from __future__ import annotations

import time
from dataclasses import dataclass, field
from threading import Lock
from typing import Callable, Dict, List, Optional

from lanscan_host.engine.models import HostSet, host_set_to_dict, snapshot

# Called with (running, hosts) whenever a scan starts or ends.
ScanStateListener = Callable[[bool, HostSet], None]


@dataclass
class ScanSession:
    fast: bool
    started_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None
    hosts: HostSet = field(default_factory=dict)
    updates: int = 0

    @property
    def running(self) -> bool:
        return self.finished_at is None


class ScanBusyError(RuntimeError):
    """A scan is already running on this host."""


class ScanRegistry:
    """Tracks the scan running on this host; only one at a time."""

    def __init__(self):
        self._session: Optional[ScanSession] = None
        self._lock = Lock()
        self._listeners: List[ScanStateListener] = []

    def subscribe(self, listener: ScanStateListener):
        self._listeners.append(listener)

    def _notify(self, running: bool, hosts: HostSet):
        for listener in list(self._listeners):
            listener(running, snapshot(hosts))

    def begin(self, fast: bool) -> ScanSession:
        with self._lock:
            if self._session and self._session.running:
                raise ScanBusyError("scan already running")
            self._session = session = ScanSession(fast=fast)
        self._notify(True, {})
        return session

    def update(self, hosts: HostSet):
        with self._lock:
            if self._session:
                self._session.hosts = snapshot(hosts)
                self._session.updates += 1

    def finish(self, hosts: Optional[HostSet] = None):
        with self._lock:
            if not self._session or not self._session.running:
                return
            if hosts is not None:
                self._session.hosts = snapshot(hosts)
            self._session.finished_at = time.time()
            final = self._session.hosts
        self._notify(False, final)

    def is_running(self) -> bool:
        with self._lock:
            return bool(self._session and self._session.running)

    def latest(self) -> Dict[str, object]:
        with self._lock:
            s = self._session
            if not s:
                return {"running": False, "fast": None, "started_at": None, "finished_at": None, "updates": 0, "hosts": {}}
            return {
                "running": s.running,
                "fast": s.fast,
                "started_at": s.started_at,
                "finished_at": s.finished_at,
                "updates": s.updates,
                "hosts": host_set_to_dict(s.hosts),
            }


__all__ = ["ScanBusyError", "ScanRegistry", "ScanSession", "ScanStateListener"]
