"""Agent workload endpoint: active task counts and weighted scores, lightest first."""

from agencyops.services.load_calculator import compute_agent_loads
from agencyops.utils.http import dispatch, get_query, json_response


async def get(request: dict) -> dict:
    query = get_query(request)
    loads = await compute_agent_loads(
        category=query.get("category") or None,
        client_id=query.get("clientId") or None,
    )
    return json_response(200, loads)


def handler(request):
    """Serverless entry point."""
    return dispatch(request, {"GET": get}, "Failed to compute agent load")
