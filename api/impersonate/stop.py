"""Stop impersonating and restore the admin's original session."""

from agencyops.services.sessions import stop_impersonation
from agencyops.utils.config import AppConfig
from agencyops.utils.http import build_cookie, dispatch, get_cookie, json_response, session_token


async def post(request: dict) -> dict:
    origin_token = get_cookie(request, AppConfig.IMPERSONATION_COOKIE_NAME)
    restored = await stop_impersonation(session_token(request), origin_token)

    # Expire the origin cookie either way
    cookies = [build_cookie(AppConfig.IMPERSONATION_COOKIE_NAME, "", 0)]
    if restored:
        cookies.append(
            build_cookie(AppConfig.SESSION_COOKIE_NAME, restored["token"], restored["max_age"])
        )
    else:
        cookies.append(build_cookie(AppConfig.SESSION_COOKIE_NAME, "", 0))

    return json_response(200, {"ok": True, "restored": restored is not None}, cookies=cookies)


def handler(request):
    """Serverless entry point."""
    return dispatch(request, {"POST": post}, "Failed to stop impersonation")
