"""
Maintenance mode: a process-wide flag plus the gate that consults it.

The flag lives in this process only. Behind a load balancer every instance
keeps its own copy; moving it to shared storage (config row, cache) is the
known follow-up for multi-instance deployments.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Optional

from services.auth_pipeline import Principal
from services.errors import MaintenanceModeActive
from services.notifier import AuditRecorder, Notifier, UserAction
from utils.timezone_utils import Clock, utcnow

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

# Reachable by everyone while maintenance mode is on
ALLOWLISTED_PATHS = frozenset(
    f"{API_PREFIX}{path}"
    for path in (
        "/auth/login",
        "/config/maintenance/status",
        "/auth/refresh",
        "/auth/info",
    )
)


@dataclass(frozen=True)
class MaintenanceStatus:
    maintenance_mode: bool
    since: datetime


class MaintenanceState:
    """The flag and the time it last changed, read and written under a lock."""

    def __init__(self, enabled: bool = False, clock: Optional[Clock] = None):
        self._clock = clock or utcnow
        self._lock = threading.Lock()
        self._enabled = bool(enabled)
        self._since = self._clock()

    @property
    def enabled(self) -> bool:
        with self._lock:
            return self._enabled

    def status(self) -> MaintenanceStatus:
        with self._lock:
            return MaintenanceStatus(self._enabled, self._since)

    def set(self, enabled: bool) -> MaintenanceStatus:
        with self._lock:
            if self._enabled != bool(enabled):
                self._enabled = bool(enabled)
                self._since = self._clock()
            return MaintenanceStatus(self._enabled, self._since)


def is_allowlisted(path: str) -> bool:
    return path.rstrip("/") in ALLOWLISTED_PATHS


def evaluate_gate(path: str, principal: Optional[Principal], state: MaintenanceState) -> Optional[MaintenanceModeActive]:
    """None to let the request through, otherwise the rejection to send."""
    if is_allowlisted(path):
        return None
    if not state.enabled:
        return None
    if principal is not None and principal.is_admin:
        return None
    return MaintenanceModeActive()


def _start_daemon(fn: Callable[[], None]) -> None:
    threading.Thread(target=fn, name="maintenance-broadcast", daemon=True).start()


class MaintenanceService:
    def __init__(
        self,
        state: MaintenanceState,
        notifier: Notifier,
        audit: AuditRecorder,
        dispatch: Optional[Callable[[Callable[[], None]], None]] = None,
    ):
        self._state = state
        self._notifier = notifier
        self._audit = audit
        self._dispatch = dispatch or _start_daemon

    @property
    def state(self) -> MaintenanceState:
        return self._state

    def is_maintenance_mode(self) -> bool:
        return self._state.enabled

    def status(self) -> MaintenanceStatus:
        return self._state.status()

    def set_mode(self, enabled: bool, actor, recipients: Iterable[str]) -> MaintenanceStatus:
        """Flip the flag, then notify accounts fire-and-forget."""
        status = self._state.set(enabled)
        logger.warning("Maintenance mode set to %s by %s", status.maintenance_mode, actor.email)
        self._audit.record(
            UserAction.SYSTEM_MAINTENANCE_MODE,
            actor.id,
            actor.email,
            f"Admin set maintenance mode is: {status.maintenance_mode}",
        )

        emails = [e for e in recipients if e]

        def broadcast():
            try:
                self._notifier.broadcast_maintenance(emails, status.maintenance_mode)
            except Exception:  # noqa: BLE001
                logger.exception("Maintenance broadcast failed")

        self._dispatch(broadcast)
        return status
