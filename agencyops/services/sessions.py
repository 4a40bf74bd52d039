"""Session lookup and admin impersonation."""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from agencyops.models.activity import ActivityAction
from agencyops.models.session import AuthUser, Session
from agencyops.services.assignment_writer import new_log_id
from agencyops.services.supabase_client import (
    create_activity_log,
    create_session_row,
    delete_session_row,
    find_user,
    get_role_permissions,
    get_session_row,
)
from agencyops.utils.config import AppConfig
from agencyops.utils.errors import (
    AuthenticationError,
    NotFoundError,
    PermissionDeniedError,
    RequestValidationError,
)
from agencyops.utils.logging import get_structured_logger, mask_user_id

logger = get_structured_logger(__name__)

IMPERSONATE_PERMISSION = "user_impersonate"


async def get_session(token: Optional[str]) -> Optional[Session]:
    """Return the session for a token, or None when missing or expired."""
    if not token:
        return None
    row = await get_session_row(token)
    if not row:
        return None
    session = Session.model_validate(row)
    if session.expires_at <= datetime.now(timezone.utc):
        return None
    return session


async def get_session_user(token: Optional[str]) -> Optional[AuthUser]:
    """Resolve the user behind a session cookie."""
    session = await get_session(token)
    if session is None:
        return None
    user = await find_user(user_id=session.user_id)
    if not user:
        return None
    permissions = await get_role_permissions(user["role"]) if user.get("role") else []
    return AuthUser(
        id=user["id"],
        email=user["email"],
        name=user.get("name"),
        role=user.get("role"),
        permissions=permissions,
    )


async def require_session_user(token: Optional[str]) -> AuthUser:
    user = await get_session_user(token)
    if user is None:
        raise AuthenticationError("Unauthorized")
    return user


def can_impersonate(user: AuthUser) -> bool:
    return user.is_admin or IMPERSONATE_PERMISSION in user.permissions


async def start_impersonation(
    admin_token: Optional[str],
    target_user_id: Optional[str],
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> dict:
    """
    Open a session acting as ``target_user_id`` on behalf of an admin.

    Returns the new session token, its lifetime in seconds and the target
    user. The caller keeps the admin token aside to restore it later.
    """
    if not target_user_id:
        raise RequestValidationError("targetUserId is required")

    admin_session = await get_session(admin_token)
    if admin_session is None:
        raise AuthenticationError("Not authenticated")
    admin = await get_session_user(admin_token)
    if admin is None:
        raise AuthenticationError("Not authenticated")
    if not can_impersonate(admin):
        raise PermissionDeniedError("Not allowed to impersonate")
    if admin.id == target_user_id:
        raise RequestValidationError("You are already this user")

    target = await find_user(user_id=target_user_id)
    if not target:
        raise NotFoundError("Target user not found")

    now = datetime.now(timezone.utc)
    ttl = timedelta(hours=AppConfig.IMPERSONATION_TTL_HOURS)
    token = str(uuid.uuid4())

    await create_session_row({
        "token": token,
        "user_id": target["id"],
        "expires_at": (now + ttl).isoformat(),
        "created_at": now.isoformat(),
        "updated_at": now.isoformat(),
        "ip_address": ip_address,
        "user_agent": user_agent,
        "impersonated_by": admin.id,
    })

    await create_activity_log({
        "id": new_log_id(),
        "entity_type": "auth",
        "entity_id": target["id"],
        "user_id": admin.id,
        "action": ActivityAction.IMPERSONATE_START.value,
        "timestamp": now.isoformat(),
        "details": {"targetUserId": target["id"]},
    })

    logger.info(
        "Impersonation started",
        admin_id=mask_user_id(admin.id),
        target_user_id=mask_user_id(target["id"]),
    )

    return {
        "token": token,
        "max_age": int(ttl.total_seconds()),
        "user": {"id": target["id"], "name": target.get("name"), "email": target.get("email")},
    }


async def stop_impersonation(
    current_token: Optional[str],
    origin_token: Optional[str],
) -> Optional[dict]:
    """
    End an impersonated session.

    Returns ``{"token", "max_age"}`` for the admin session to restore, or None
    when there is no live origin session to return to.
    """
    if not current_token:
        raise RequestValidationError("No active session")

    row = await get_session_row(current_token)
    if not row or not row.get("impersonated_by"):
        raise RequestValidationError("Not impersonating")
    session = Session.model_validate(row)

    await create_activity_log({
        "id": new_log_id(),
        "entity_type": "auth",
        "entity_id": session.user_id,
        "user_id": session.impersonated_by,
        "action": ActivityAction.IMPERSONATE_STOP.value,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "details": {},
    })

    await delete_session_row(current_token)

    logger.info(
        "Impersonation stopped",
        admin_id=mask_user_id(session.impersonated_by),
        target_user_id=mask_user_id(session.user_id),
    )

    if not origin_token:
        return None
    origin_row = await get_session_row(origin_token)
    if not origin_row:
        return None
    origin = Session.model_validate(origin_row)
    seconds = int((origin.expires_at - datetime.now(timezone.utc)).total_seconds())
    return {"token": origin_token, "max_age": max(1, seconds)}
