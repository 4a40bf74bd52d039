"""Activity log feed endpoint."""

from agencyops.services.activity_feed import list_activity
from agencyops.utils.http import dispatch, get_query, json_response


async def get(request: dict) -> dict:
    return json_response(200, await list_activity(get_query(request)))


def handler(request):
    """Serverless entry point."""
    return dispatch(request, {"GET": get}, "Failed to fetch activity logs")
