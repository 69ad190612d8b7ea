"""Admin auth routes: signup, login, session, logout, refresh.

Route overview:
  POST /signup  : create an admin account (only while ALLOW_ADMIN_SIGNUP)
  POST /login   : email + password → access + refresh token
  GET  /session : the admin behind the current token, or 401
  POST /logout  : end the sign-in (access and refresh token)
  POST /refresh : exchange a refresh token (once) for a new pair
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from asset_intake.auth.deps import get_current_admin
from asset_intake.auth.jwt import (
    create_access_token,
    create_refresh_token,
    decode_token,
    new_session_id,
)
from asset_intake.auth.password import hash_password, verify_password
from asset_intake.auth.revocation import TokenRevocation
from asset_intake.config import settings
from asset_intake.database import get_db
from asset_intake.models.admin_user import AdminUser
from asset_intake.schemas.auth import (
    AdminOut,
    LoginRequest,
    RefreshRequest,
    SessionOut,
    SignupRequest,
    TokenResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _build_token_response(user: AdminUser, session_id: str | None = None) -> TokenResponse:
    # Both tokens of one sign-in share a session id
    session_id = session_id or new_session_id()
    return TokenResponse(
        access_token=create_access_token(user_id=user.id, email=user.email, session_id=session_id),
        refresh_token=create_refresh_token(user_id=user.id, email=user.email, session_id=session_id),
        user=AdminOut.model_validate(user),
    )


# ── POST /signup ─────────────────────────────────────────────

@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def signup(body: SignupRequest, db: AsyncSession = Depends(get_db)):
    if not settings.allow_admin_signup:
        raise HTTPException(status_code=403, detail="Admin sign-up is disabled")

    email = body.email.lower()
    existing = await db.execute(select(AdminUser).where(AdminUser.email == email))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="Email already registered")

    user = AdminUser(
        email=email,
        hashed_password=hash_password(body.password),
        full_name=body.full_name,
    )
    db.add(user)
    await db.flush()
    logger.info(f"Admin account created: {email}")
    return _build_token_response(user)


# ── POST /login ──────────────────────────────────────────────

@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    email = body.email.lower()
    result = await db.execute(select(AdminUser).where(AdminUser.email == email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(body.password, user.hashed_password):
        logger.warning("Failed admin login", extra={"email": email})
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account deactivated")

    user.last_login_at = datetime.utcnow()
    await db.flush()
    return _build_token_response(user)


# ── GET /session ─────────────────────────────────────────────

@router.get("/session", response_model=SessionOut)
async def get_session(user: AdminUser = Depends(get_current_admin)):
    payload: dict = getattr(user, "_token_payload", {})
    return SessionOut(
        user=AdminOut.model_validate(user),
        expires_at=datetime.fromtimestamp(payload.get("exp", 0), tz=timezone.utc),
    )


# ── POST /logout ─────────────────────────────────────────────

@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(user: AdminUser = Depends(get_current_admin)):
    """End the sign-in: its access token and its refresh token stop working."""
    payload: dict = getattr(user, "_token_payload", {})
    # Outlive the longest-lived token of the sign-in
    until = time.time() + settings.refresh_token_expire_days * 86400
    if not await TokenRevocation.revoke_session(payload["sid"], until):
        raise HTTPException(status_code=503, detail="Could not end the session, try again")
    logger.info(f"Admin {user.email} signed out")


# ── POST /refresh ────────────────────────────────────────────

@router.post("/refresh", response_model=TokenResponse)
async def refresh(body: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """Exchange a refresh token for a new pair. Each refresh token works once."""
    payload = decode_token(body.refresh_token)
    session_id = payload.get("sid")
    if payload.get("type") != "refresh" or not session_id:
        raise HTTPException(status_code=401, detail="Invalid refresh token")
    if await TokenRevocation.is_session_revoked(session_id):
        raise HTTPException(status_code=401, detail="Session has ended. Please log in again.")
    if await TokenRevocation.is_revoked(body.refresh_token):
        raise HTTPException(status_code=401, detail="Token has been revoked")

    result = await db.execute(select(AdminUser).where(AdminUser.id == payload.get("sub")))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")

    if not await TokenRevocation.revoke_token(body.refresh_token, payload["exp"]):
        raise HTTPException(status_code=503, detail="Could not refresh the session, try again")
    return _build_token_response(user, session_id)
