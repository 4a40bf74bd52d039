"""Smart distribution endpoint - agents are picked by current load."""

from agencyops.models.distribution import SmartDistributeRequest, parse_payload
from agencyops.services.sessions import get_session_user
from agencyops.services.task_distribution import resolve_actor, smart_distribute
from agencyops.utils.http import dispatch, json_response, parse_json_body, session_token


async def post(request: dict) -> dict:
    payload = parse_payload(
        SmartDistributeRequest,
        parse_json_body(request),
        message="clientId & taskIds required",
    )
    session_user = await get_session_user(session_token(request))
    actor = await resolve_actor(payload.reassigned_by_id, payload.reassigned_by_email, session_user)
    return json_response(200, await smart_distribute(payload, actor))


def handler(request):
    """Serverless entry point."""
    return dispatch(request, {"POST": post}, "Failed to smart distribute")
