"""Start impersonating another user.

The admin's own session token is parked in the impersonation-origin cookie
and the session cookie is replaced with a short-lived impersonated session.
"""

from agencyops.services.sessions import start_impersonation
from agencyops.utils.config import AppConfig
from agencyops.utils.http import (
    build_cookie,
    dispatch,
    get_client_ip,
    get_header,
    json_response,
    parse_json_body,
    session_token,
)


async def post(request: dict) -> dict:
    body = parse_json_body(request)
    admin_token = session_token(request)

    result = await start_impersonation(
        admin_token,
        body.get("targetUserId"),
        ip_address=get_client_ip(request),
        user_agent=get_header(request, "user-agent"),
    )

    cookies = [
        build_cookie(AppConfig.IMPERSONATION_COOKIE_NAME, admin_token, result["max_age"]),
        build_cookie(AppConfig.SESSION_COOKIE_NAME, result["token"], result["max_age"]),
    ]
    return json_response(200, {"ok": True, "user": result["user"]}, cookies=cookies)


def handler(request):
    """Serverless entry point."""
    return dispatch(request, {"POST": post}, "Failed to start impersonation")
