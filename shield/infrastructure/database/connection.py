"""Database engine and session factory.

Single engine, no fallback: a store failure is raised to the caller as-is.
Repositories receive ``session_factory`` (see ``ManagedSessionFactory``) and
use it as a context manager:

    with session_factory() as session:
        ...
"""
import os
import re
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker

_engine = None
_SessionLocal = None

# Matches a postgres(ql):// URL anywhere inside a string.
_PG_URL_RE = re.compile(r"(postgres(?:ql)?(?:\+\w+)?://\S+)")


def _resolve_database_url(env_var: str = "DATABASE_URL") -> str:
    """Read a database URL from environment and return a clean SQLAlchemy URL.

    Handles:
    - Leading/trailing whitespace or newlines from copy-paste.
    - Literal surrounding quotes pasted in dashboards.
    - Full ``psql`` command pasted instead of just the URL.
    - ``postgres://`` / ``postgresql://`` without driver -> ``postgresql+psycopg://``.
    """
    raw = os.environ.get(env_var, "").strip()

    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in ('"', "'"):
        raw = raw[1:-1].strip()

    match = _PG_URL_RE.search(raw)
    url = match.group(1) if match else raw

    # Strip trailing quote that may remain from psql 'url'
    url = url.rstrip("'\"").strip()

    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+psycopg://", 1)
    elif url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)

    return url


def _masked_host(url: str) -> str:
    if "@" not in url:
        return "<no-host>"
    return url.split("@")[-1].split("?")[0]


def _build_engine(url: str):
    print(f"[SHIELD] Initialising engine -> {_masked_host(url)}")
    if url.startswith("sqlite"):
        return create_engine(url, echo=False)
    return create_engine(
        url,
        pool_size=3,
        max_overflow=5,
        pool_timeout=15,
        pool_recycle=1800,
        pool_pre_ping=True,
        echo=False,
    )


def init_engine(url: str | None = None) -> None:
    """Create the engine from *url* or ``DATABASE_URL``. No-op when both are empty."""
    global _engine, _SessionLocal

    url = url or _resolve_database_url("DATABASE_URL")
    if not url:
        print("[SHIELD] DATABASE_URL is empty -- skipping database init.")
        return

    _engine = _build_engine(url)
    _SessionLocal = sessionmaker(bind=_engine, expire_on_commit=False)


def get_session_factory():
    """Return the raw sessionmaker. Raises RuntimeError before init_engine()."""
    if _SessionLocal is None:
        raise RuntimeError("Database not initialised. Call init_engine() first.")
    return _SessionLocal


def create_tables() -> None:
    """Create the throttle tables (idempotent)."""
    from shield.infrastructure.database.models import Base

    if _engine is None:
        raise RuntimeError("Database not initialised. Call init_engine() first.")
    Base.metadata.create_all(bind=_engine)
    print("[SHIELD] Tables verified.")


def check_health() -> bool:
    """Lightweight connectivity probe."""
    if _engine is None:
        return False
    try:
        with _engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False


class ManagedSessionFactory:
    """Callable passed to repositories.

    Opens a session on the given sessionmaker (or the module's active one),
    rolls back on any error and always closes. Errors are re-raised.
    """

    def __init__(self, sessionmaker_=None):
        self._sessionmaker = sessionmaker_

    def __call__(self):
        return self._managed_session()

    @contextmanager
    def _managed_session(self):
        sf = self._sessionmaker or get_session_factory()
        session = sf()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


# Singleton -- import and pass to all PG repositories.
managed_session_factory = ManagedSessionFactory()
