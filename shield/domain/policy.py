"""Throttle policies -- how many failures block an identifier, and for how long."""
from datetime import datetime, timedelta

from shield.domain.enums import ThrottledAction


class ThrottlePolicy:
    """Immutable (max_attempts, block_duration_minutes) pair."""

    __slots__ = ("_max_attempts", "_block_duration_minutes")

    def __init__(self, max_attempts: int, block_duration_minutes: int):
        if int(max_attempts) < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}.")
        if int(block_duration_minutes) < 1:
            raise ValueError(
                f"block_duration_minutes must be >= 1, got {block_duration_minutes}."
            )
        self._max_attempts = int(max_attempts)
        self._block_duration_minutes = int(block_duration_minutes)

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    @property
    def block_duration_minutes(self) -> int:
        return self._block_duration_minutes

    def block_until(self, now: datetime) -> datetime:
        return now + timedelta(minutes=self._block_duration_minutes)

    def __eq__(self, other) -> bool:
        if not isinstance(other, ThrottlePolicy):
            return NotImplemented
        return (
            self._max_attempts == other._max_attempts
            and self._block_duration_minutes == other._block_duration_minutes
        )

    def __hash__(self) -> int:
        return hash((self._max_attempts, self._block_duration_minutes))

    def __repr__(self) -> str:
        return f"ThrottlePolicy({self._max_attempts}, {self._block_duration_minutes}min)"


class ActionPolicies:
    """Policies applied to one action across the three throttle scopes."""

    def __init__(self, ip: ThrottlePolicy, spam_ip: ThrottlePolicy, spam_email: ThrottlePolicy):
        self.ip = ip
        self.spam_ip = spam_ip
        self.spam_email = spam_email


# Signup is stricter than login: fewer attempts, longer blocks.
ACTION_POLICIES = {
    ThrottledAction.LOGIN: ActionPolicies(
        ip=ThrottlePolicy(5, 15),
        spam_ip=ThrottlePolicy(10, 60),
        spam_email=ThrottlePolicy(5, 30),
    ),
    ThrottledAction.SIGNUP: ActionPolicies(
        ip=ThrottlePolicy(3, 30),
        spam_ip=ThrottlePolicy(5, 120),
        spam_email=ThrottlePolicy(3, 60),
    ),
}


def policies_for(action) -> ActionPolicies:
    return ACTION_POLICIES[ThrottledAction(action)]
