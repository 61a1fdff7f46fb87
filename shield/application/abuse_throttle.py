"""Abuse throttle core -- failure counting and lazy-expiring blocks over a store.

The throttle holds no state of its own. Every decision is a read (and at most
one conditional write) against the store, so any number of workers can share
one database.

Store contract (see ``ThrottleRepository`` / ``PgIpThrottleRepository``):
    find(identifier, type) -> ThrottleRecord | None
    get_all() -> list[ThrottleRecord]
    increment(identifier, type, now, block_at, block_until) -> ThrottleRecord
    block(identifier, type, until) -> ThrottleRecord
    clear(identifier, type) -> None
    lift_block(identifier, type, now) -> bool
"""
import logging
from datetime import datetime, timedelta, timezone

from shield.domain.enums import IdentifierType
from shield.domain.policy import ThrottlePolicy
from shield.domain.throttle_record import ThrottleRecord
from shield.infrastructure.audit import try_log_event

logger = logging.getLogger("shield.throttle")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _type_value(identifier_type: IdentifierType | None) -> str | None:
    return identifier_type.value if identifier_type else None


class AbuseThrottle:
    """Block an identifier after too many recorded failures."""

    def __init__(self, store, default_policy: ThrottlePolicy, label: str = "identifier", clock=None):
        self._store = store
        self._default_policy = default_policy
        self._label = label
        self._clock = clock

    @property
    def default_policy(self) -> ThrottlePolicy:
        return self._default_policy

    def _now(self) -> datetime:
        return self._clock() if self._clock else _utcnow()

    def _describe(self, identifier: str, identifier_type: IdentifierType | None) -> str:
        if identifier_type is None:
            return f"{self._label} {identifier}"
        return f"{identifier_type.value} {identifier}"

    def resolve_policy(self, max_attempts: int | None = None, block_duration_minutes: int | None = None) -> ThrottlePolicy:
        if max_attempts is None and block_duration_minutes is None:
            return self._default_policy
        return ThrottlePolicy(
            self._default_policy.max_attempts if max_attempts is None else max_attempts,
            self._default_policy.block_duration_minutes if block_duration_minutes is None else block_duration_minutes,
        )

    # ------------------------------------------------------------------
    # Gate
    # ------------------------------------------------------------------

    def is_blocked(self, identifier: str, identifier_type=None) -> bool:
        """Return True while *identifier* is blocked.

        An expired block is lifted here (attempts reset to 0), so this read
        may write. Unknown identifiers are never created.
        """
        identifier_type = IdentifierType.parse(identifier_type)
        record = self._store.find(identifier, identifier_type)
        if record is None or not record.blocked:
            return False

        now = self._now()
        if record.block_expired(now):
            if self._store.lift_block(identifier, identifier_type, now):
                logger.info("%s unblocked (block expired)", self._describe(identifier, identifier_type))
                return False
            # Re-blocked between the read and the lift: report the fresh state.
            record = self._store.find(identifier, identifier_type)
            return record is not None and record.is_blocked_at(now)

        return True

    # ------------------------------------------------------------------
    # Counting
    # ------------------------------------------------------------------

    def record_failed_attempt(
        self,
        identifier: str,
        identifier_type=None,
        max_attempts: int | None = None,
        block_duration_minutes: int | None = None,
    ) -> None:
        """Count one failure. Reaching ``max_attempts`` blocks for the policy duration.

        Further failures while blocked push ``blocked_until`` forward from now.
        """
        identifier_type = IdentifierType.parse(identifier_type)
        policy = self.resolve_policy(max_attempts, block_duration_minutes)
        now = self._now()
        record = self._store.increment(
            identifier,
            identifier_type,
            now=now,
            block_at=policy.max_attempts,
            block_until=policy.block_until(now),
        )

        if record.attempts >= policy.max_attempts:
            logger.warning(
                "%s blocked for %d minutes after %d failed attempts",
                self._describe(identifier, identifier_type),
                policy.block_duration_minutes,
                policy.max_attempts,
            )
            try_log_event(
                "identifier_blocked",
                identifier,
                _type_value(identifier_type),
                {
                    "attempts": record.attempts,
                    "blocked_until": record.blocked_until,
                    "reason": "max_attempts",
                },
            )

    def reset_attempts(self, identifier: str, identifier_type=None) -> None:
        """Clear the failure streak and any block (called on success)."""
        identifier_type = IdentifierType.parse(identifier_type)
        self._store.clear(identifier, identifier_type)

    def get_attempt_count(self, identifier: str, identifier_type=None) -> int:
        identifier_type = IdentifierType.parse(identifier_type)
        record = self._store.find(identifier, identifier_type)
        return record.attempts if record else 0

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def get_status(self, identifier: str, identifier_type=None) -> dict:
        """Read-only snapshot. ``blocked`` is the effective state at now."""
        identifier_type = IdentifierType.parse(identifier_type)
        record = self._store.find(identifier, identifier_type)
        tracked = record is not None
        if record is None:
            record = ThrottleRecord(identifier, identifier_type)
        status = record.to_dict()
        status["blocked"] = record.is_blocked_at(self._now())
        status["tracked"] = tracked
        return status

    def list_statuses(self, blocked_only: bool = False) -> list:
        """Snapshots of every stored record, most recent failure first."""
        now = self._now()
        never = datetime.min.replace(tzinfo=timezone.utc)
        records = sorted(self._store.get_all(), key=lambda r: r.last_attempt or never, reverse=True)
        statuses = []
        for record in records:
            blocked = record.is_blocked_at(now)
            if blocked_only and not blocked:
                continue
            status = record.to_dict()
            status["blocked"] = blocked
            status["tracked"] = True
            statuses.append(status)
        return statuses

    def block(self, identifier: str, identifier_type=None, duration_minutes: int | None = None) -> ThrottleRecord:
        """Block manually. No duration means no expiry."""
        identifier_type = IdentifierType.parse(identifier_type)
        until = None
        if duration_minutes is not None:
            if int(duration_minutes) < 1:
                raise ValueError(f"duration_minutes must be >= 1, got {duration_minutes}.")
            until = self._now() + timedelta(minutes=int(duration_minutes))
        record = self._store.block(identifier, identifier_type, until)
        logger.warning(
            "%s blocked manually until %s",
            self._describe(identifier, identifier_type),
            until.isoformat() if until else "further notice",
        )
        try_log_event(
            "identifier_blocked",
            identifier,
            _type_value(identifier_type),
            {"blocked_until": until, "reason": "manual"},
        )
        return record

    def unblock(self, identifier: str, identifier_type=None) -> None:
        identifier_type = IdentifierType.parse(identifier_type)
        self._store.clear(identifier, identifier_type)
        logger.info("%s unblocked manually", self._describe(identifier, identifier_type))
        try_log_event("identifier_unblocked", identifier, _type_value(identifier_type), {"reason": "manual"})
