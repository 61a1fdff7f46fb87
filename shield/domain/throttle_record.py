"""ThrottleRecord entity -- failure counter and block state for one identifier."""
from datetime import datetime, timezone

from shield.domain.enums import IdentifierType


def _as_utc(value):
    """Normalise stored timestamps (ISO strings or naive datetimes) to aware UTC."""
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


class ThrottleRecord:
    """
    State of one (identifier, type) pair.

    Created lazily on the first recorded failure. Never deleted by the
    throttle: an expired block is lifted on the next read instead.
    """

    def __init__(
        self,
        identifier: str,
        identifier_type: IdentifierType | None = None,
        attempts: int = 0,
        last_attempt: datetime | str | None = None,
        blocked: bool = False,
        blocked_until: datetime | str | None = None,
    ):
        self._identifier = identifier
        self._type = IdentifierType.parse(identifier_type)
        self._attempts = int(attempts or 0)
        self._last_attempt = _as_utc(last_attempt)
        self._blocked = bool(blocked)
        self._blocked_until = _as_utc(blocked_until)

    @property
    def identifier(self) -> str:
        return self._identifier

    @property
    def identifier_type(self) -> IdentifierType | None:
        return self._type

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def last_attempt(self) -> datetime | None:
        return self._last_attempt

    @property
    def blocked(self) -> bool:
        return self._blocked

    @property
    def blocked_until(self) -> datetime | None:
        return self._blocked_until

    @property
    def key(self) -> str:
        return record_key(self._identifier, self._type)

    def block_expired(self, now: datetime) -> bool:
        """True when a block is set and its expiry is strictly in the past.

        A missing expiry on a blocked record never expires.
        """
        return (
            self._blocked
            and self._blocked_until is not None
            and self._blocked_until < now
        )

    def is_blocked_at(self, now: datetime) -> bool:
        return self._blocked and not self.block_expired(now)

    def to_dict(self) -> dict:
        return {
            "identifier": self._identifier,
            "type": self._type.value if self._type else None,
            "attempts": self._attempts,
            "last_attempt": self._last_attempt.isoformat() if self._last_attempt else None,
            "blocked": self._blocked,
            "blocked_until": self._blocked_until.isoformat() if self._blocked_until else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ThrottleRecord":
        return cls(
            identifier=data["identifier"],
            identifier_type=data.get("type"),
            attempts=data.get("attempts", 0),
            last_attempt=data.get("last_attempt"),
            blocked=data.get("blocked", False),
            blocked_until=data.get("blocked_until"),
        )

    def __repr__(self) -> str:
        return (
            f"ThrottleRecord({self.key!r}, attempts={self._attempts}, "
            f"blocked={self._blocked}, blocked_until={self._blocked_until})"
        )


def record_key(identifier: str, identifier_type: IdentifierType | None = None) -> str:
    """Stable store key. Untyped (pure-IP) records use the bare identifier."""
    identifier_type = IdentifierType.parse(identifier_type)
    if identifier_type is None:
        return identifier
    return f"{identifier_type.value}:{identifier}"
