"""QC approval endpoint.

PUT /api/tasks/approve?id=<taskId>  body: {"performanceRating": "Good"}
"""

from agencyops.models.distribution import TaskApproveRequest, parse_payload
from agencyops.services.task_review import approve_task
from agencyops.utils.errors import RequestValidationError
from agencyops.utils.http import dispatch, get_query, json_response, parse_json_body


async def put(request: dict) -> dict:
    task_id = get_query(request).get("id")
    if not task_id:
        raise RequestValidationError("Task id is required")

    payload = parse_payload(
        TaskApproveRequest, parse_json_body(request), "Valid performance rating is required"
    )
    return json_response(200, await approve_task(task_id, payload))


def handler(request):
    """Serverless entry point."""
    return dispatch(request, {"PUT": put}, "Failed to approve task")
