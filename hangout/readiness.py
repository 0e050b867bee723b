"""Readiness checks: config, database, redis."""
import logging

import redis.asyncio as redis
from sqlalchemy import text

from hangout.infra.db.base import make_engine
from hangout.settings import get_settings

logger = logging.getLogger(__name__)

# Result: (passed: bool, message: str)
CheckResult = tuple[bool, str]
ChecksDict = dict[str, CheckResult]

REQUIRED_CHECKS = {"config", "database"}


def check_config() -> CheckResult:
    """Load settings and read the connection URLs."""
    try:
        s = get_settings()
        _ = s.app_name
        _ = s.database_url
        _ = s.redis_url
        return True, "ok"
    except Exception as e:
        return False, str(e)


async def check_database(database_url: str) -> CheckResult:
    """Run a trivial query against the database."""
    engine = make_engine(database_url)
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        return True, "ok"
    except Exception as e:
        return False, str(e)
    finally:
        await engine.dispose()


async def check_redis(redis_url: str) -> CheckResult:
    """Ping Redis. Not required: real-time delivery falls back to local sockets."""
    client = redis.from_url(redis_url)
    try:
        await client.ping()
        return True, "ok"
    except Exception as e:
        return False, str(e)
    finally:
        await client.aclose()


async def run_all_checks_async() -> ChecksDict:
    """Run all readiness checks from an async context (e.g. GET /ready)."""
    s = get_settings()
    return {
        "config": check_config(),
        "database": await check_database(s.database_url),
        "redis": await check_redis(s.redis_url),
    }


def is_ready(checks: ChecksDict) -> tuple[bool, dict[str, str]]:
    """
    True if all required checks pass.
    Returns (ready: bool, checks_summary: dict of name -> "ok" | error message).
    """
    summary = {name: msg for name, (_passed, msg) in checks.items()}
    ready = all(checks[n][0] for n in REQUIRED_CHECKS if n in checks)
    if not ready:
        logger.warning("Readiness failed: %s", summary)
    return ready, summary
