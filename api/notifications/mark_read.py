"""Mark one of the signed-in user's notifications as read.

PATCH body: ``{"id": <notificationId>}``
"""

from agencyops.services.notification_dispatcher import mark_read
from agencyops.services.sessions import require_session_user
from agencyops.utils.http import dispatch, json_response, parse_json_body, session_token


async def patch(request: dict) -> dict:
    user = await require_session_user(session_token(request))
    body = parse_json_body(request)
    await mark_read(user.id, body.get("id"))
    return json_response(200, {"ok": True})


def handler(request):
    """Serverless entry point."""
    return dispatch(request, {"PATCH": patch}, "Failed to mark notification read")
