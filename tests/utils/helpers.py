"""Test helper functions."""

import json
from typing import Any, Dict, Optional


def create_request(
    method: str = "GET",
    path: str = "/api/health",
    body: Any = None,
    query: Optional[Dict[str, str]] = None,
    cookies: Optional[Dict[str, str]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """Create a serverless request dict for handler tests."""
    headers = dict(headers or {"content-type": "application/json"})
    if cookies:
        headers["cookie"] = "; ".join(f"{name}={value}" for name, value in cookies.items())

    if isinstance(body, (dict, list)):
        body = json.dumps(body)

    return {
        "method": method,
        "path": path,
        "headers": headers,
        "body": body,
        "query": query or {},
    }


def response_json(response: Dict[str, Any]) -> Any:
    """Decode a handler response body."""
    return json.loads(response["body"])


def set_cookies(response: Dict[str, Any]) -> Dict[str, str]:
    """Map cookie name to the raw Set-Cookie value."""
    cookies = (response.get("multiValueHeaders") or {}).get("Set-Cookie", [])
    return {cookie.split("=", 1)[0]: cookie for cookie in cookies}
