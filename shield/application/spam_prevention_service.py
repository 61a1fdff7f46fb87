"""Spam prevention: the same throttle, scoped by identifier type (email | ip | user)."""
from shield import config
from shield.application.abuse_throttle import AbuseThrottle
from shield.domain.enums import IdentifierType
from shield.domain.policy import ThrottlePolicy


def _scoped(identifier: str, identifier_type) -> tuple[str, IdentifierType]:
    identifier_type = IdentifierType.parse(identifier_type)
    if identifier_type is None:
        raise ValueError("Spam prevention requires an identifier type (email, ip or user).")
    if identifier_type is IdentifierType.EMAIL:
        identifier = identifier.strip().lower()
    return identifier, identifier_type


class SpamPreventionService:
    """Typed throttle keyed by (identifier, type) (``spam_prevention``).

    ``a@b.com`` as ``email`` and ``a@b.com`` as ``ip`` are separate records.
    E-mail identifiers are case-insensitive.
    """

    def __init__(self, store, policy: ThrottlePolicy | None = None, clock=None):
        policy = policy or ThrottlePolicy(config.SPAM_MAX_ATTEMPTS, config.SPAM_BLOCK_MINUTES)
        self._throttle = AbuseThrottle(store, policy, clock=clock)

    @property
    def default_policy(self) -> ThrottlePolicy:
        return self._throttle.default_policy

    def is_blocked(self, identifier: str, identifier_type) -> bool:
        return self._throttle.is_blocked(*_scoped(identifier, identifier_type))

    def record_attempt(
        self,
        identifier: str,
        identifier_type,
        max_attempts: int | None = None,
        block_duration_minutes: int | None = None,
    ) -> None:
        self._throttle.record_failed_attempt(
            *_scoped(identifier, identifier_type),
            max_attempts=max_attempts,
            block_duration_minutes=block_duration_minutes,
        )

    def reset_attempts(self, identifier: str, identifier_type) -> None:
        self._throttle.reset_attempts(*_scoped(identifier, identifier_type))

    def get_attempt_count(self, identifier: str, identifier_type) -> int:
        return self._throttle.get_attempt_count(*_scoped(identifier, identifier_type))

    def get_status(self, identifier: str, identifier_type) -> dict:
        return self._throttle.get_status(*_scoped(identifier, identifier_type))

    def list_statuses(self, identifier_type=None, blocked_only: bool = False) -> list:
        """All records, optionally narrowed to one identifier type."""
        identifier_type = IdentifierType.parse(identifier_type)
        statuses = self._throttle.list_statuses(blocked_only)
        if identifier_type is None:
            return statuses
        return [s for s in statuses if s["type"] == identifier_type.value]

    def block(self, identifier: str, identifier_type, duration_minutes: int | None = None):
        return self._throttle.block(*_scoped(identifier, identifier_type), duration_minutes)

    def unblock(self, identifier: str, identifier_type) -> None:
        self._throttle.unblock(*_scoped(identifier, identifier_type))
