"""Single-task rework endpoint: reassigns and rates the attempt Poor.

PUT /api/tasks/reassign_task?id=<taskId>
"""

from agencyops.models.distribution import TaskReassignRequest, parse_payload
from agencyops.services.sessions import get_session_user
from agencyops.services.task_distribution import penalize_and_reassign, resolve_actor
from agencyops.utils.errors import RequestValidationError
from agencyops.utils.http import dispatch, get_query, json_response, parse_json_body, session_token


async def put(request: dict) -> dict:
    task_id = get_query(request).get("id")
    if not task_id:
        raise RequestValidationError("Task id is required")

    payload = parse_payload(TaskReassignRequest, parse_json_body(request))
    session_user = await get_session_user(session_token(request))
    actor = await resolve_actor(payload.reassigned_by_id, payload.reassigned_by_email, session_user)
    return json_response(200, await penalize_and_reassign(task_id, payload, actor))


def handler(request):
    """Serverless entry point."""
    return dispatch(request, {"PUT": put}, "Failed to reassign")
