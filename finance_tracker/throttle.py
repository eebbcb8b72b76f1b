"""Failed-login bookkeeping with expiry.

One :class:`LoginThrottle` lives in ``app.extensions['login_throttle']``.
Entries expire on their own; every access sweeps the expired ones, so the
map never grows past the set of usernames that failed recently.
"""

import time


class _Attempts:
    __slots__ = ('count', 'locked_until', 'expires_at')

    def __init__(self, count, locked_until, expires_at):
        self.count = count
        self.locked_until = locked_until
        self.expires_at = expires_at


class LoginThrottle:
    def __init__(self, max_attempts=5, lockout_seconds=60, clock=time.time):
        self.max_attempts = max_attempts
        self.lockout_seconds = lockout_seconds
        self._clock = clock
        self._entries = {}

    def __len__(self):
        self._sweep(self._clock())
        return len(self._entries)

    def _sweep(self, now):
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]

    def locked_until(self, username):
        """Return the lockout end (epoch seconds) if ``username`` is locked, else None."""
        now = self._clock()
        self._sweep(now)
        entry = self._entries.get(username)
        if entry is not None and entry.locked_until and entry.locked_until > now:
            return entry.locked_until
        return None

    def register_failure(self, username):
        """Count a failed attempt. Returns ``(remaining_attempts, locked_until)``."""
        now = self._clock()
        self._sweep(now)
        entry = self._entries.get(username)
        count = entry.count + 1 if entry else 1
        if count >= self.max_attempts:
            locked_until = now + self.lockout_seconds
            self._entries[username] = _Attempts(count, locked_until, locked_until)
            return 0, locked_until
        # Failures are forgotten after one lockout window without another try.
        self._entries[username] = _Attempts(count, None, now + self.lockout_seconds)
        return self.max_attempts - count, None

    def reset(self, username):
        self._entries.pop(username, None)
