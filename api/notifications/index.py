"""Notification mailbox for the signed-in user."""

from agencyops.services.notification_dispatcher import list_notifications
from agencyops.services.sessions import require_session_user
from agencyops.utils.http import dispatch, get_query, json_response, session_token


async def get(request: dict) -> dict:
    user = await require_session_user(session_token(request))
    return json_response(200, await list_notifications(user.id, get_query(request)))


def handler(request):
    """Serverless entry point."""
    return dispatch(request, {"GET": get}, "Failed to fetch notifications")
