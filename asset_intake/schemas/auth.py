from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class AdminOut(BaseModel):
    id: str
    email: str
    full_name: str | None
    is_active: bool
    last_login_at: datetime | None = None

    model_config = {"from_attributes": True}


# ── Sign-up / login ─────────────────────────────────────────

class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    full_name: str | None = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: AdminOut


class SessionOut(BaseModel):
    """What getSession returns: the admin plus when the token runs out."""
    user: AdminOut
    expires_at: datetime


class RefreshRequest(BaseModel):
    refresh_token: str
