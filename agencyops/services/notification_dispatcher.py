"""Notification dispatch and the per-user notification mailbox."""

from datetime import datetime, time, timezone
from typing import Optional

from agencyops.models.activity import NotificationType
from agencyops.services.assignment_writer import PendingNotification
from agencyops.services.supabase_client import SupabaseClient, insert_notification
from agencyops.utils.errors import DatabaseError, RequestValidationError
from agencyops.utils.logging import get_structured_logger, mask_user_id

logger = get_structured_logger(__name__)

DEFAULT_TAKE = 50
MAX_TAKE = 200


async def dispatch_notifications(pending: list[PendingNotification]) -> int:
    """
    Insert notification rows after an assignment has committed.

    Best effort: failures are logged and never retried or raised. Returns the
    number of rows written.
    """
    delivered = 0
    now_iso = datetime.now(timezone.utc).isoformat()

    for notification in pending:
        try:
            await insert_notification({
                "user_id": notification.user_id,
                "task_id": notification.task_id,
                "type": notification.type.value,
                "message": notification.message,
                "is_read": False,
                "created_at": now_iso,
            })
            delivered += 1
        except Exception as e:
            logger.warning(
                "Failed to insert notification (non-fatal)",
                user_id=mask_user_id(notification.user_id),
                task_id=notification.task_id,
                error=str(e),
            )

    logger.info(
        "Notifications dispatched",
        requested=len(pending),
        delivered=delivered,
    )
    return delivered


def _parse_day(value: Optional[str], end_of_day: bool = False) -> Optional[str]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise RequestValidationError("Invalid date filter", f"cannot parse {value!r}")
    if end_of_day and len(value) <= 10:
        # date-only upper bound includes the whole day
        parsed = datetime.combine(parsed.date(), time.max)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.isoformat()


async def list_notifications(user_id: str, params: dict) -> list[dict]:
    """
    List a user's notifications.

    Query params: ``isRead`` (true/false), ``onlyUnread=1``, ``type``, ``q``,
    ``from``/``to`` dates, ``take``, ``cursorId`` and ``sort`` (asc/desc).
    """
    sort_desc = params.get("sort") != "asc"
    try:
        take = int(params.get("take") or DEFAULT_TAKE)
        cursor_id = int(params["cursorId"]) if params.get("cursorId") else None
    except ValueError:
        raise RequestValidationError("Invalid pagination parameters")
    take = max(1, min(take, MAX_TAKE))

    date_from = _parse_day(params.get("from"))
    date_to = _parse_day(params.get("to"), end_of_day=True)

    async with SupabaseClient() as client:
        try:
            query = client.table("notifications").select("*").eq("user_id", user_id)

            if params.get("onlyUnread") == "1" or params.get("isRead") == "false":
                query = query.eq("is_read", False)
            elif params.get("isRead") == "true":
                query = query.eq("is_read", True)

            notification_type = params.get("type")
            if notification_type in {t.value for t in NotificationType}:
                query = query.eq("type", notification_type)

            search = (params.get("q") or "").strip()
            if search:
                query = query.ilike("message", f"%{search}%")

            if date_from:
                query = query.gte("created_at", date_from)
            if date_to:
                query = query.lte("created_at", date_to)

            if cursor_id is not None:
                query = query.lt("id", cursor_id) if sort_desc else query.gt("id", cursor_id)

            result = query.order("created_at", desc=sort_desc).limit(take).execute()
            return result.data if result.data else []
        except Exception as e:
            raise DatabaseError(f"Failed to list notifications: {e}")


async def count_unread(user_id: str) -> int:
    async with SupabaseClient() as client:
        try:
            result = (
                client.table("notifications")
                .select("id", count="exact")
                .eq("user_id", user_id)
                .eq("is_read", False)
                .execute()
            )
            return result.count or 0
        except Exception as e:
            raise DatabaseError(f"Failed to count notifications: {e}")


async def mark_read(user_id: str, notification_id) -> None:
    """Flip is_read on one of the user's own notifications."""
    try:
        notification_id = int(notification_id)
    except (TypeError, ValueError):
        raise RequestValidationError("Invalid id")

    async with SupabaseClient() as client:
        try:
            (
                client.table("notifications")
                .update({"is_read": True})
                .eq("id", notification_id)
                .eq("user_id", user_id)
                .execute()
            )
        except Exception as e:
            raise DatabaseError(f"Failed to mark notification read: {e}")
