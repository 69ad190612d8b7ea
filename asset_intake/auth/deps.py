"""FastAPI dependencies for admin authentication.

  get_current_admin → decode JWT, check the sign-in is not revoked, load AdminUser
"""

import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from asset_intake.auth.jwt import decode_token
from asset_intake.auth.revocation import TokenRevocation
from asset_intake.database import get_db
from asset_intake.models.admin_user import AdminUser

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_admin(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> AdminUser:
    """Resolve the admin behind the bearer token, or 401.

    The decoded payload is stashed on the user as `_token_payload` so
    the session routes can read `sid` and `exp` without decoding twice.
    """
    payload = decode_token(token)
    user_id: str | None = payload.get("sub")
    session_id: str | None = payload.get("sid")
    if not user_id or not session_id or payload.get("type") != "access":
        raise _unauthorized("Invalid or expired token")

    if await TokenRevocation.is_session_revoked(session_id):
        raise _unauthorized("Session has ended. Please log in again.")

    result = await db.execute(select(AdminUser).where(AdminUser.id == user_id))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        logger.warning("Token for unknown or inactive admin", extra={"user_id": user_id})
        raise _unauthorized("User not found or inactive")

    user._token_payload = payload  # type: ignore[attr-defined]
    return user
