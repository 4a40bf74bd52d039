"""Reassignment history endpoint.

GET /api/tasks/reassign?page=&limit=&from=&to=&agentId=&taskId=&clientId=
"""

from agencyops.services.activity_feed import list_reassignments
from agencyops.utils.http import dispatch, get_query, json_response


async def get(request: dict) -> dict:
    return json_response(200, await list_reassignments(get_query(request)))


def handler(request):
    """Serverless entry point."""
    return dispatch(request, {"GET": get}, "Failed to fetch reassign logs")
