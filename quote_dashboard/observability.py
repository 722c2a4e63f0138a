"""Refresh heartbeat: when passes ran and what the latest one stored."""
from __future__ import annotations

from datetime import datetime, timezone
from threading import Lock
from typing import Optional

from quote_dashboard.services.quote_service import RefreshResult


class RefreshHeartbeat:
    """Outcome of the most recent refresh pass, kept for /health."""

    def __init__(self):
        self.started_at = datetime.now(timezone.utc)
        self.runs = 0
        self.last_run_at: Optional[datetime] = None
        self.last_success_at: Optional[datetime] = None
        self.last_refreshed = 0
        self.last_failed = 0
        self._lock = Lock()

    def record(self, result: RefreshResult, at: Optional[datetime] = None):
        """Store counts from a finished pass; a pass counts as a success if it stored anything."""
        at = (at or datetime.now(timezone.utc)).astimezone(timezone.utc)
        with self._lock:
            self.runs += 1
            self.last_run_at = at
            self.last_refreshed = len(result.refreshed)
            self.last_failed = len(result.failed)
            if result.refreshed:
                self.last_success_at = at

    def seconds_since_last_success(self) -> Optional[float]:
        if self.last_success_at is None:
            return None
        return max((datetime.now(timezone.utc) - self.last_success_at).total_seconds(), 0.0)

    def uptime_seconds(self) -> float:
        return (datetime.now(timezone.utc) - self.started_at).total_seconds()

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "runs": self.runs,
                "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
                "last_success_at": self.last_success_at.isoformat() if self.last_success_at else None,
                "last_refreshed": self.last_refreshed,
                "last_failed": self.last_failed,
            }
