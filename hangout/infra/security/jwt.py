"""Access token decoding. Tokens are issued by the auth service; core only verifies them."""
from datetime import timedelta
from typing import Optional

import jwt

from hangout.domain.common.types import utcnow
from hangout.settings import settings


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify a JWT. Returns the claims, or None if invalid or expired."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except jwt.PyJWTError:
        return None


def create_access_token(user_id: str, expires_minutes: int = 60) -> str:
    """Mint an access token with the shared secret (local tooling and tests)."""
    claims = {
        "sub": user_id,
        "type": "access",
        "exp": utcnow() + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)
