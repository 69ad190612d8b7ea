"""Signed session tokens for the admin dashboard.

Claims: sub (admin id), email, type ("access" or "refresh"), iat, exp, a
random jti so two tokens minted in the same second never collide in the
revocation list, and sid. The access and refresh token handed out by one
sign-in share a sid, so signing out can end both at once.
"""

import uuid
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from asset_intake.config import settings

ALGORITHM = settings.jwt_algorithm


def new_session_id() -> str:
    return uuid.uuid4().hex


def _encode(user_id: str, email: str, token_type: str, lifetime: timedelta, session_id: str | None) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": user_id,
        "email": email,
        "type": token_type,
        "iat": now,
        "exp": now + lifetime,
        "jti": uuid.uuid4().hex,
        "sid": session_id or new_session_id(),
    }
    return jwt.encode(claims, settings.secret_key, algorithm=ALGORITHM)


def create_access_token(
    user_id: str,
    email: str,
    session_id: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    return _encode(user_id, email, "access", lifetime, session_id)


def create_refresh_token(user_id: str, email: str, session_id: str | None = None) -> str:
    lifetime = timedelta(days=settings.refresh_token_expire_days)
    return _encode(user_id, email, "refresh", lifetime, session_id)


def decode_token(token: str) -> dict:
    """Claims of a valid token; {} if it is malformed, tampered with or expired."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return {}
