"""Tests for the request/response helpers."""

import json
import pytest
from agencyops.utils.errors import NotFoundError, RequestValidationError
from agencyops.utils.http import (
    build_cookie,
    dispatch,
    error_response,
    get_client_ip,
    get_cookie,
    get_header,
    parse_json_body,
)
from agencyops.utils.logging import get_correlation_id
from tests.utils.helpers import create_request


@pytest.mark.unit
def test_header_lookup_is_case_insensitive():
    request = create_request(headers={"X-Correlation-ID": "req_abc"})
    assert get_header(request, "x-correlation-id") == "req_abc"
    assert get_header(request, "missing") is None


@pytest.mark.unit
def test_get_cookie():
    request = create_request(cookies={"session-token": "abc", "other": "x"})
    assert get_cookie(request, "session-token") == "abc"
    assert get_cookie(request, "nope") is None
    assert get_cookie(create_request(), "session-token") is None


@pytest.mark.unit
def test_client_ip_prefers_forwarded_for():
    assert get_client_ip(create_request(headers={"x-forwarded-for": "1.2.3.4, 5.6.7.8"})) == "1.2.3.4"
    assert get_client_ip(create_request(headers={"x-real-ip": "9.9.9.9"})) == "9.9.9.9"


@pytest.mark.unit
@pytest.mark.parametrize("body,expected", [
    (None, {}),
    ("", {}),
    ('{"a": 1}', {"a": 1}),
    (b'{"a": 1}', {"a": 1}),
    ({"a": 1}, {"a": 1}),
])
def test_parse_json_body(body, expected):
    assert parse_json_body({"body": body}) == expected


@pytest.mark.unit
@pytest.mark.parametrize("body", ["{not json", "[1, 2]", '"text"', b"\xff\xfe{}"])
def test_parse_json_body_rejects(body):
    with pytest.raises(RequestValidationError):
        parse_json_body({"body": body})


@pytest.mark.unit
def test_build_cookie_flags():
    cookie = build_cookie("session-token", "abc", 3600)
    assert cookie.startswith("session-token=abc")
    assert "HttpOnly" in cookie
    assert "Max-Age=3600" in cookie
    assert "Path=/" in cookie
    assert "Secure" not in cookie


@pytest.mark.unit
def test_error_response_client_error_keeps_detail():
    response = error_response(NotFoundError("Task not found", "unknown task ids: t9"), "Failed")
    assert response["statusCode"] == 404
    assert json.loads(response["body"]) == {"message": "Task not found", "error": "unknown task ids: t9"}


@pytest.mark.unit
def test_dispatch_sets_correlation_id():
    seen = {}

    async def get(request):
        seen["id"] = get_correlation_id()
        return {"statusCode": 204, "headers": {}, "body": ""}

    response = dispatch(create_request(headers={"X-Correlation-ID": "req_fixed"}), {"GET": get}, "Failed")

    assert response["statusCode"] == 204
    assert seen["id"] == "req_fixed"
    assert get_correlation_id() is None


@pytest.mark.unit
def test_dispatch_unknown_method():
    response = dispatch(create_request(method="PATCH"), {"GET": None}, "Failed")
    assert response["statusCode"] == 405
    assert json.loads(response["body"]) == {"message": "Method PATCH not allowed"}
