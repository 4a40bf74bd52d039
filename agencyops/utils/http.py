"""Request/response helpers shared by the serverless handlers in ``api/``."""

import asyncio
import json
from http.cookies import SimpleCookie
from typing import Any, Awaitable, Callable, Optional

from agencyops.utils.config import AppConfig
from agencyops.utils.errors import AgencyOpsError, RequestValidationError
from agencyops.utils.logging import correlation_context, get_structured_logger
from agencyops.utils.logging_config import LoggingConfig

logger = get_structured_logger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}

RouteFn = Callable[[dict], Awaitable[dict]]


def get_header(request: dict, name: str) -> Optional[str]:
    """Case-insensitive header lookup."""
    headers = request.get("headers") or {}
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def get_cookie(request: dict, name: str) -> Optional[str]:
    """Read a cookie value from the Cookie header."""
    raw = get_header(request, "cookie")
    if not raw:
        return None
    jar = SimpleCookie()
    jar.load(raw)
    morsel = jar.get(name)
    return morsel.value if morsel else None


def get_query(request: dict) -> dict:
    return request.get("query") or {}


def get_client_ip(request: dict) -> Optional[str]:
    forwarded = get_header(request, "x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return get_header(request, "x-real-ip")


def parse_json_body(request: dict) -> dict:
    """Parse the request body as a JSON object."""
    body = request.get("body")
    if body is None or body == "":
        return {}
    if isinstance(body, dict):
        return body
    try:
        if isinstance(body, bytes):
            body = body.decode("utf-8")
        parsed = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise RequestValidationError("Invalid request data", "body is not valid JSON")
    if not isinstance(parsed, dict):
        raise RequestValidationError("Invalid request data", "body must be a JSON object")
    return parsed


def build_cookie(name: str, value: str, max_age: int) -> str:
    """Build a Set-Cookie header value for session cookies."""
    jar = SimpleCookie()
    jar[name] = value
    morsel = jar[name]
    morsel["httponly"] = True
    morsel["secure"] = AppConfig.is_production()
    morsel["samesite"] = "Lax"
    morsel["path"] = "/"
    morsel["max-age"] = max_age
    return morsel.OutputString()


def json_response(status: int, payload: Any, cookies: Optional[list[str]] = None) -> dict:
    response = {
        "statusCode": status,
        "headers": dict(JSON_HEADERS),
        "body": json.dumps(payload, default=str),
    }
    if cookies:
        response["multiValueHeaders"] = {"Set-Cookie": cookies}
    return response


def error_response(error: Exception, failure_message: str) -> dict:
    """Serialize an exception as the JSON error envelope."""
    if isinstance(error, AgencyOpsError) and error.status_code < 500:
        payload = {"message": error.message}
        if error.detail:
            payload["error"] = error.detail
        return json_response(error.status_code, payload)

    detail = str(error) or type(error).__name__
    if AppConfig.is_production():
        detail = "Internal server error"
    return json_response(500, {"message": failure_message, "error": detail})


def run_async(awaitable: Awaitable) -> Any:
    """Run a coroutine to completion from a synchronous handler."""
    return asyncio.run(awaitable)


def dispatch(request: dict, routes: dict[str, RouteFn], failure_message: str) -> dict:
    """
    Route a request to the coroutine registered for its HTTP method.

    All errors are caught here and serialized as JSON.
    """
    LoggingConfig.ensure_configured()
    incoming_id = get_header(request, LoggingConfig.LOG_CORRELATION_ID_HEADER)

    with correlation_context(incoming_id) as correlation_id:
        method = (request.get("method") or "GET").upper()
        route = routes.get(method)
        if route is None:
            return json_response(405, {"message": f"Method {method} not allowed"})

        try:
            return run_async(route(request))
        except AgencyOpsError as e:
            log = logger.warning if e.status_code < 500 else logger.error
            log(
                "Request failed",
                correlation_id=correlation_id,
                path=request.get("path"),
                method=method,
                status_code=e.status_code,
                error=e.message,
            )
            return error_response(e, failure_message)
        except Exception as e:
            logger.error(
                failure_message,
                correlation_id=correlation_id,
                path=request.get("path"),
                method=method,
                error=str(e),
                exc_info=True,
            )
            return error_response(e, failure_message)


def session_token(request: dict) -> Optional[str]:
    return get_cookie(request, AppConfig.SESSION_COOKIE_NAME)
