"""Task distribution endpoint.

POST assigns tasks to the agents chosen by the caller.
PUT reassigns, accepting either the single-task shape
``{taskId, newAgentId, reassignNotes?}`` or the bulk shape
``{clientId, reassignments: [{taskId, toAgentId, reassignNotes?}]}``.
"""

from agencyops.models.distribution import (
    BulkReassignRequest,
    DistributeRequest,
    SingleReassignRequest,
    parse_payload,
)
from agencyops.services.sessions import get_session_user
from agencyops.services.task_distribution import (
    distribute_tasks,
    reassign_task,
    reassign_tasks,
    resolve_actor,
)
from agencyops.utils.errors import RequestValidationError
from agencyops.utils.http import dispatch, json_response, parse_json_body, session_token


async def _actor(request: dict, payload) -> str:
    session_user = await get_session_user(session_token(request))
    return await resolve_actor(
        payload.reassigned_by_id, payload.reassigned_by_email, session_user
    )


async def post(request: dict) -> dict:
    payload = parse_payload(DistributeRequest, parse_json_body(request))
    result = await distribute_tasks(payload, await _actor(request, payload))
    return json_response(200, result)


async def put(request: dict) -> dict:
    body = parse_json_body(request)

    if body.get("taskId") and body.get("newAgentId"):
        payload = parse_payload(SingleReassignRequest, body)
        result = await reassign_task(payload, await _actor(request, payload))
        return json_response(200, result)

    if isinstance(body.get("reassignments"), list) and body["reassignments"]:
        payload = parse_payload(BulkReassignRequest, body)
        result = await reassign_tasks(payload, await _actor(request, payload))
        return json_response(200, result)

    raise RequestValidationError("Invalid request data")


def handler(request):
    """Serverless entry point."""
    failure = (
        "Failed to re-distribute tasks"
        if (request.get("method") or "").upper() == "PUT"
        else "Failed to distribute tasks"
    )
    return dispatch(request, {"POST": post, "PUT": put}, failure)
