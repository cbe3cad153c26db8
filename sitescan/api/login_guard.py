"""
Failed-login tracking and temporary account lockout.
"""

import time
from collections.abc import Iterable
from dataclasses import dataclass


@dataclass
class LoginState:
    """Consecutive failures and lock expiry for one username."""

    failures: int = 0
    locked_until: float = 0.0

    def is_locked(self, now: float) -> bool:
        return self.locked_until > now

    def lock_remaining(self, now: float) -> float:
        """Seconds until the lock lifts."""
        return max(0.0, self.locked_until - now)


class LoginGuard:
    """
    In-memory lockout after repeated failed logins.

    After `max_attempts` consecutive failures the username is locked for
    `lockout_seconds`. A successful login resets the counter.

    When `usernames` is given, only those accounts are tracked; failures
    for any other name are not recorded, so guessing random usernames
    cannot grow the state table.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        lockout_seconds: float = 15 * 60,
        usernames: Iterable[str] | None = None,
    ):
        self.max_attempts = max_attempts
        self.lockout_seconds = lockout_seconds
        self.usernames = frozenset(usernames) if usernames is not None else None
        self._states: dict[str, LoginState] = {}

    def __len__(self) -> int:
        return len(self._states)

    def check(self, username: str) -> tuple[bool, float]:
        """
        Check whether a login attempt may proceed.

        Returns:
            Tuple of (allowed, seconds_until_unlock).
        """
        state = self._states.get(username)
        now = time.time()
        if state is None:
            return True, 0.0
        if not state.is_locked(now):
            # Expired lock with no new failures since
            if state.locked_until and not state.failures:
                del self._states[username]
            return True, 0.0
        return False, state.lock_remaining(now)

    def record_failure(self, username: str) -> None:
        if self.usernames is not None and username not in self.usernames:
            return

        state = self._states.setdefault(username, LoginState())
        state.failures += 1
        if state.failures >= self.max_attempts:
            state.locked_until = time.time() + self.lockout_seconds
            state.failures = 0

    def record_success(self, username: str) -> None:
        self._states.pop(username, None)

    def reset(self, username: str) -> None:
        """Clear any failures and lock for a username."""
        self._states.pop(username, None)
