"""Database base configuration."""
import os
import ssl
import sys
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase


def normalize_async_pg_url(url: str) -> str:
    """Ensure URL uses asyncpg driver; cloud often gives postgresql:// (sync)."""
    u = (url or "").strip()
    if u.startswith("postgres://"):
        return u.replace("postgres://", "postgresql+asyncpg://", 1)
    if u.startswith("postgresql://") and "postgresql+asyncpg" not in u[:22]:
        return u.replace("postgresql://", "postgresql+asyncpg://", 1)
    return u


def _ssl_context_no_verify() -> ssl.SSLContext:
    """SSL context that skips certificate verification (for local/one-off use only)."""
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def async_pg_connect_args(url: str) -> dict:
    """connect_args for asyncpg: ssl when the URL carries sslmode=require (asyncpg does not accept sslmode).

    Set DATABASE_SSL_VERIFY=true to enable strict certificate verification.
    """
    parsed = urlparse(url)
    qs = parse_qs(parsed.query, keep_blank_values=True)
    if qs.get("sslmode") != ["require"]:
        return {}
    verify = os.environ.get("DATABASE_SSL_VERIFY", "false").strip().lower()
    if verify in ("true", "1"):
        return {"ssl": True}
    return {"ssl": _ssl_context_no_verify()}


def async_pg_url_without_sslmode(url: str) -> str:
    """Return URL with sslmode removed so asyncpg does not get unknown kwarg sslmode."""
    parsed = urlparse(url)
    qs = parse_qs(parsed.query, keep_blank_values=True)
    qs.pop("sslmode", None)
    return urlunparse(parsed._replace(query=urlencode(qs, doseq=True)))


def make_engine(url: str, echo: bool = False):
    """Create the async engine; SQLite gets a busy timeout so concurrent writers wait."""
    url = normalize_async_pg_url(url)
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=echo, future=True, connect_args={"timeout": 5})
    return create_async_engine(
        async_pg_url_without_sslmode(url),
        connect_args=async_pg_connect_args(url),
        echo=echo,
        future=True,
        pool_pre_ping=True,
    )


def make_sessionmaker(bind) -> async_sessionmaker:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


# Check if we're running in pytest (during collection or execution)
_is_pytest = "pytest" in sys.modules or "PYTEST_CURRENT_TEST" in os.environ

if not _is_pytest:
    from hangout.settings import settings

    engine = make_engine(settings.database_url, echo=settings.database_echo)
    AsyncSessionLocal = make_sessionmaker(engine)
else:
    # Tests build their own engine and override get_db
    engine = None
    AsyncSessionLocal = None


def violates_constraint(exc: IntegrityError, *names: str) -> bool:
    """True if the driver error names one of the given constraints.

    Postgres reports the constraint or index name; SQLite reports the
    columns (e.g. "UNIQUE constraint failed: rooms.room_id"), so pass both.
    """
    detail = str(exc.orig)
    return any(name in detail for name in names)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# Models are imported in hangout/infra/db/models/__init__.py, not here:
# base.py -> models -> base.py would be circular.
