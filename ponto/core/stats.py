"""Validation statistics and active-employee tracking.

Tracks in-memory counters and a sliding window of employees who recently
attempted to clock in or out. No framework dependencies.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass

from ponto.core.models import ReasonCode


@dataclass
class EmployeeActivity:
    """Tracks a single employee's recent validation attempts."""
    last_seen: float          # time.monotonic() timestamp
    last_allowed: bool
    attempts: int = 0


class ValidationStats:
    """Thread-safe validation statistics with active-employee tracking.

    An employee is "active" if their last validation was within
    ``active_window_seconds`` (default 120s).
    """

    def __init__(self, active_window_seconds: float = 120.0) -> None:
        self._lock = threading.Lock()
        self._started_at = time.time()
        self._active_window = active_window_seconds

        # Counters
        self.validations: int = 0
        self.allowed: int = 0
        self.denied: int = 0
        self.samples_acquired: int = 0
        self.location_errors: int = 0
        self.readings_received: int = 0
        self.requests_rejected: int = 0
        self._by_reason: dict[str, int] = {code.value: 0 for code in ReasonCode}

        # Employee tracking: employee_id → EmployeeActivity
        self._employees: dict[str, EmployeeActivity] = {}

    def record_verdict(self, reason: ReasonCode, allowed: bool,
                       employee_id: str | None = None) -> None:
        """Record the outcome of one validation."""
        now = time.monotonic()
        with self._lock:
            self.validations += 1
            if allowed:
                self.allowed += 1
            else:
                self.denied += 1
            self._by_reason[reason.value] += 1
            if not employee_id:
                return
            if employee_id in self._employees:
                emp = self._employees[employee_id]
                emp.last_seen = now
                emp.last_allowed = allowed
                emp.attempts += 1
            else:
                self._employees[employee_id] = EmployeeActivity(
                    last_seen=now, last_allowed=allowed, attempts=1,
                )

    def record_sample(self) -> None:
        with self._lock:
            self.samples_acquired += 1

    def record_location_error(self) -> None:
        with self._lock:
            self.location_errors += 1

    def record_readings(self, count: int) -> None:
        with self._lock:
            self.readings_received += count

    def record_rejected_request(self) -> None:
        with self._lock:
            self.requests_rejected += 1

    def _prune_stale_employees(self, now: float) -> None:
        """Remove employees not seen within the active window. Caller holds lock."""
        cutoff = now - self._active_window
        stale = [eid for eid, emp in self._employees.items() if emp.last_seen < cutoff]
        for eid in stale:
            del self._employees[eid]

    def snapshot(self) -> dict:
        """Return a JSON-serializable snapshot of all stats."""
        now_mono = time.monotonic()
        with self._lock:
            self._prune_stale_employees(now_mono)

            active_allowed = sum(1 for emp in self._employees.values() if emp.last_allowed)

            return {
                "uptime_seconds": round(time.time() - self._started_at, 1),
                "validations": self.validations,
                "allowed": self.allowed,
                "denied": self.denied,
                "by_reason": dict(self._by_reason),
                "samples_acquired": self.samples_acquired,
                "location_errors": self.location_errors,
                "readings_received": self.readings_received,
                "requests_rejected": self.requests_rejected,
                "active_employees": {
                    "total": len(self._employees),
                    "allowed": active_allowed,
                    "denied": len(self._employees) - active_allowed,
                    "window_seconds": self._active_window,
                },
            }
