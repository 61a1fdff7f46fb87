"""SQLAlchemy ORM models -- PostgreSQL schema definition."""
from datetime import datetime, timezone

from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, BigInteger, UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase


def _utcnow():
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# Per-IP throttle (login / signup failures by client address)
# ---------------------------------------------------------------------------

class IpThrottleModel(Base):
    __tablename__ = "ip_throttles"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    ip_address = Column(String(64), unique=True, nullable=False, index=True)
    attempts = Column(Integer, nullable=False, default=0)
    last_attempt = Column(DateTime(timezone=True), nullable=True)
    blocked = Column(Boolean, nullable=False, default=False)
    blocked_until = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)


# ---------------------------------------------------------------------------
# Typed spam prevention (email | ip | user share one table)
# ---------------------------------------------------------------------------

class SpamPreventionModel(Base):
    __tablename__ = "spam_prevention"
    __table_args__ = (
        UniqueConstraint("identifier", "type", name="uq_spam_prevention_identifier_type"),
    )

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    identifier = Column(String(255), nullable=False, index=True)
    type = Column(String(10), nullable=False)
    attempts = Column(Integer, nullable=False, default=0)
    last_attempt = Column(DateTime(timezone=True), nullable=True)
    blocked = Column(Boolean, nullable=False, default=False)
    blocked_until = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
