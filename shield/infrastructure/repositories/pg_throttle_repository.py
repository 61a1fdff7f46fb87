"""PostgreSQL-backed throttle repositories (ip_throttles, spam_prevention)."""
import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from shield.domain.enums import IdentifierType
from shield.domain.throttle_record import ThrottleRecord
from shield.infrastructure.database.models import IpThrottleModel, SpamPreventionModel

logger = logging.getLogger("shield.store")


class _PgThrottleRepository:
    """Shared row logic. Subclasses bind the model and its key columns."""

    model = None

    def __init__(self, session_factory):
        self._sf = session_factory

    # ------------------------------------------------------------------
    # Key mapping (per table)
    # ------------------------------------------------------------------

    def _where(self, identifier: str, identifier_type: IdentifierType | None) -> tuple:
        raise NotImplementedError

    def _new_row(self, identifier: str, identifier_type: IdentifierType | None, **values):
        raise NotImplementedError

    def _to_domain(self, row) -> ThrottleRecord:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def find(self, identifier: str, identifier_type: IdentifierType | None = None) -> ThrottleRecord | None:
        with self._sf() as session:
            row = session.execute(
                select(self.model).where(*self._where(identifier, identifier_type))
            ).scalar_one_or_none()
            return self._to_domain(row) if row else None

    def get_all(self) -> list:
        with self._sf() as session:
            rows = session.execute(
                select(self.model).order_by(self.model.updated_at.desc())
            ).scalars().all()
            return [self._to_domain(r) for r in rows]

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def increment(
        self,
        identifier: str,
        identifier_type: IdentifierType | None,
        now: datetime,
        block_at: int,
        block_until: datetime,
    ) -> ThrottleRecord:
        """Count one failure; block once ``attempts >= block_at``. One transaction.

        Two requests racing to create the first row: the loser hits the
        unique constraint and retries, landing on the update path.
        """
        try:
            return self._increment_once(identifier, identifier_type, now, block_at, block_until)
        except IntegrityError:
            logger.debug("Concurrent insert for %s; retrying as increment", identifier)
            return self._increment_once(identifier, identifier_type, now, block_at, block_until)

    def _increment_once(self, identifier, identifier_type, now, block_at, block_until) -> ThrottleRecord:
        where = self._where(identifier, identifier_type)
        with self._sf() as session:
            bumped = session.execute(
                update(self.model)
                .where(*where)
                .values(attempts=self.model.attempts + 1, last_attempt=now)
                .execution_options(synchronize_session=False)
            ).rowcount
            if not bumped:
                session.add(self._new_row(identifier, identifier_type, attempts=1, last_attempt=now))
                session.flush()
            session.execute(
                update(self.model)
                .where(*where, self.model.attempts >= block_at)
                .values(blocked=True, blocked_until=block_until)
                .execution_options(synchronize_session=False)
            )
            session.commit()
            row = session.execute(
                select(self.model).where(*where).execution_options(populate_existing=True)
            ).scalar_one()
            return self._to_domain(row)

    def block(
        self,
        identifier: str,
        identifier_type: IdentifierType | None,
        until: datetime | None,
    ) -> ThrottleRecord:
        """Upsert a block. ``until=None`` blocks with no expiry."""
        with self._sf() as session:
            row = session.execute(
                select(self.model).where(*self._where(identifier, identifier_type))
            ).scalar_one_or_none()
            if row is None:
                row = self._new_row(identifier, identifier_type, attempts=0)
                session.add(row)
            row.blocked = True
            row.blocked_until = until
            session.commit()
            return self._to_domain(row)

    def clear(self, identifier: str, identifier_type: IdentifierType | None = None) -> None:
        """Upsert to attempts=0, not blocked."""
        with self._sf() as session:
            row = session.execute(
                select(self.model).where(*self._where(identifier, identifier_type))
            ).scalar_one_or_none()
            if row is None:
                session.add(self._new_row(identifier, identifier_type, attempts=0))
            else:
                row.attempts = 0
                row.blocked = False
                row.blocked_until = None
            session.commit()

    def lift_block(
        self,
        identifier: str,
        identifier_type: IdentifierType | None,
        now: datetime,
    ) -> bool:
        """Clear a block only if it is still expired at *now*. Never inserts."""
        with self._sf() as session:
            lifted = session.execute(
                update(self.model)
                .where(
                    *self._where(identifier, identifier_type),
                    self.model.blocked.is_(True),
                    self.model.blocked_until.is_not(None),
                    self.model.blocked_until < now,
                )
                .values(blocked=False, blocked_until=None, attempts=0)
                .execution_options(synchronize_session=False)
            ).rowcount
            session.commit()
            return bool(lifted)


class PgIpThrottleRepository(_PgThrottleRepository):
    """Per-IP throttle rows. Records are untyped."""

    model = IpThrottleModel

    def _where(self, identifier, identifier_type=None) -> tuple:
        if identifier_type is not None:
            raise ValueError("ip_throttles rows are untyped; identifier_type must be None.")
        return (IpThrottleModel.ip_address == identifier,)

    def _new_row(self, identifier, identifier_type=None, **values):
        return IpThrottleModel(ip_address=identifier, blocked=False, **values)

    def _to_domain(self, row) -> ThrottleRecord:
        return ThrottleRecord(
            identifier=row.ip_address,
            attempts=row.attempts,
            last_attempt=row.last_attempt,
            blocked=row.blocked,
            blocked_until=row.blocked_until,
        )


class PgSpamPreventionRepository(_PgThrottleRepository):
    """Typed rows keyed by (identifier, type)."""

    model = SpamPreventionModel

    def _where(self, identifier, identifier_type=None) -> tuple:
        identifier_type = IdentifierType.parse(identifier_type)
        if identifier_type is None:
            raise ValueError("spam_prevention rows require an identifier_type.")
        return (
            SpamPreventionModel.identifier == identifier,
            SpamPreventionModel.type == identifier_type.value,
        )

    def _new_row(self, identifier, identifier_type=None, **values):
        return SpamPreventionModel(
            identifier=identifier,
            type=IdentifierType.parse(identifier_type).value,
            blocked=False,
            **values,
        )

    def _to_domain(self, row) -> ThrottleRecord:
        return ThrottleRecord(
            identifier=row.identifier,
            identifier_type=row.type,
            attempts=row.attempts,
            last_attempt=row.last_attempt,
            blocked=row.blocked,
            blocked_until=row.blocked_until,
        )
