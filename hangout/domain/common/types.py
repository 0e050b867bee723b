"""Common domain types."""
import secrets
from datetime import datetime, timezone
from uuid import uuid4


def generate_id() -> str:
    """Generate a new UUID string."""
    return str(uuid4())


def generate_slug(prefix: str) -> str:
    """Generate an external-facing slug such as room_5f3a9c0d1e2b."""
    return f"{prefix}_{secrets.token_hex(6)}"


def utcnow() -> datetime:
    """Naive UTC now; all DateTime columns store naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def pair_key(user_a: str, user_b: str) -> str:
    """Order-independent key for an unordered pair of user ids."""
    low, high = sorted((str(user_a), str(user_b)))
    return f"{low}:{high}"


def user_topic(user_id: str) -> str:
    return f"user:{user_id}"


def room_topic(room_id: str) -> str:
    return f"room:{room_id}"
