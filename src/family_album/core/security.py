"""Access token helpers built on python-jose."""
from __future__ import annotations

from datetime import timedelta

from jose import jwt

from family_album.core.settings import settings
from family_album.db.time import utcnow


def create_access_token(user_id: int, expires_delta: timedelta | None = None) -> str:
    """Issue a signed bearer token for the given user.

    Args:
        user_id: Primary key of the user the token identifies.
        expires_delta: Optional lifetime override.

    Returns:
        Encoded JWT whose subject is the user id.
    """
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        "sub": str(user_id),
        "exp": utcnow() + lifetime,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> int | None:
    """Return the user id carried by a token, or None if it has no subject.

    Raises:
        JWTError: If the token signature or expiry is invalid.
    """
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    subject = payload.get("sub")
    if subject is None:
        return None
    try:
        return int(subject)
    except (TypeError, ValueError):
        return None
