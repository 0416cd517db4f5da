"""
Session expiry tracking.

A session expires after SESSION_TIMEOUT_SECONDS without activity. The
manager is a plain object with an injectable clock; callers poll `check()`
(e.g. once per rerun or on a timer) instead of relying on background timers.
"""

import time
from typing import Callable, Optional

SESSION_TIMEOUT_SECONDS = 10 * 60
SESSION_WARNING_SECONDS = 2 * 60


class SessionManager:
    """Tracks last activity and expires the session after inactivity."""

    def __init__(self, timeout_seconds: float = SESSION_TIMEOUT_SECONDS,
                 warning_seconds: float = SESSION_WARNING_SECONDS,
                 clock: Callable[[], float] = time.time,
                 on_expire: Optional[Callable[[], None]] = None):
        self.timeout_seconds = timeout_seconds
        self.warning_seconds = warning_seconds
        self.clock = clock
        self.on_expire = on_expire
        self.last_activity = None
        self.expired = False

    @property
    def active(self) -> bool:
        return self.last_activity is not None

    def start(self):
        """Begin tracking a session (on login)."""
        self.expired = False
        self.last_activity = self.clock()

    def reset(self):
        """Record user activity. Ignored when no session is running."""
        if self.active and not self.expired:
            self.last_activity = self.clock()

    def stop(self):
        """Stop tracking (on logout). Does not fire `on_expire`."""
        self.last_activity = None
        self.expired = False

    def restore(self, last_activity: Optional[float]) -> bool:
        """
        Resume from a persisted activity timestamp (e.g. on page load).

        Args:
            last_activity: Clock value of the last recorded activity

        Returns:
            True if the session is still valid and was resumed
        """
        if last_activity is None:
            return False
        if self.clock() - last_activity > self.timeout_seconds:
            self.last_activity = last_activity
            self._expire()
            return False
        self.start()
        return True

    def time_remaining(self) -> float:
        """Seconds until expiry; 0 when no session is running."""
        if not self.active:
            return 0.0
        return max(0.0, self.timeout_seconds - (self.clock() - self.last_activity))

    def is_expired(self) -> bool:
        if self.expired:
            return True
        return self.active and self.clock() - self.last_activity > self.timeout_seconds

    def should_warn(self) -> bool:
        """True inside the warning window just before expiry."""
        if not self.active or self.is_expired():
            return False
        return 0 < self.time_remaining() <= self.warning_seconds

    def check(self) -> bool:
        """
        Expire the session if its deadline has passed.

        Returns:
            True if the session is (now) expired
        """
        if self.active and not self.expired and self.is_expired():
            self._expire()
        return self.expired

    def _expire(self):
        self.expired = True
        self.last_activity = None
        if self.on_expire is not None:
            self.on_expire()
