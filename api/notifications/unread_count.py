"""Unread notification count for the signed-in user."""

from agencyops.services.notification_dispatcher import count_unread
from agencyops.services.sessions import require_session_user
from agencyops.utils.http import dispatch, json_response, session_token


async def get(request: dict) -> dict:
    user = await require_session_user(session_token(request))
    return json_response(200, {"count": await count_unread(user.id)})


def handler(request):
    """Serverless entry point."""
    return dispatch(request, {"GET": get}, "Failed to count notifications")
