"""Session and authenticated user models."""

from typing import Optional
from datetime import datetime, timezone
from pydantic import BaseModel, Field, field_validator


class Session(BaseModel):
    """Cookie-token session row."""
    token: str = Field(..., description="Opaque session token")
    user_id: str = Field(..., description="User the session acts as")
    expires_at: datetime = Field(..., description="Expiry (timezone-aware)")
    impersonated_by: Optional[str] = Field(None, description="Admin user ID when impersonating")
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("expires_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def is_impersonation(self) -> bool:
        return bool(self.impersonated_by)


class AuthUser(BaseModel):
    """User resolved from a session."""
    id: str
    email: str
    name: Optional[str] = None
    role: Optional[str] = None
    permissions: list[str] = Field(default_factory=list)

    @property
    def is_admin(self) -> bool:
        return (self.role or "").lower() == "admin"
