"""Tests for error body normalization and the ApiError hierarchy."""

from __future__ import annotations

import httpx

from hydronyx_web.errors import (
    ApiError,
    AuthenticationMissingError,
    ErrorBody,
    ServerError,
    TransportError,
    UnexpectedPayloadError,
)


class TestErrorBody:
    def test_text_detail(self) -> None:
        body = ErrorBody.from_payload({"detail": "State not supported"})
        assert body.kind == "text"
        assert body.display_message("fallback") == "State not supported"

    def test_structured_detail_serialized(self) -> None:
        body = ErrorBody.from_payload({"detail": {"code": "E1", "fields": ["state"]}})
        assert body.kind == "structured"
        assert body.display_message("fallback") == '{"code": "E1", "fields": ["state"]}'

    def test_missing_detail_uses_fallback(self) -> None:
        assert ErrorBody.from_payload({"error": "x"}).display_message("Bad Request") == "Bad Request"
        assert ErrorBody.from_payload({"detail": None}).kind == "absent"

    def test_non_object_payload_is_absent(self) -> None:
        assert ErrorBody.from_payload(["detail"]).kind == "absent"
        assert ErrorBody.from_payload("detail").kind == "absent"

    def test_from_response_with_invalid_json(self) -> None:
        response = httpx.Response(502, content=b"Bad gateway page")
        assert ErrorBody.from_response(response).kind == "absent"


class TestServerError:
    def test_from_response_with_detail(self) -> None:
        response = httpx.Response(400, json={"detail": "months_ahead must be positive"})
        error = ServerError.from_response(response)
        assert str(error) == "months_ahead must be positive"
        assert error.status_code == 400
        assert error.body.kind == "text"

    def test_from_response_with_explicit_fallback(self) -> None:
        response = httpx.Response(500, content=b"")
        error = ServerError.from_response(response, fallback="Export failed (500)")
        assert str(error) == "Export failed (500)"

    def test_from_response_status_text_fallback(self) -> None:
        assert str(ServerError.from_response(httpx.Response(503, content=b""))) == "Service Unavailable"


def test_hierarchy() -> None:
    for error_type in (TransportError, AuthenticationMissingError, ServerError, UnexpectedPayloadError):
        assert issubclass(error_type, ApiError)


def test_authentication_missing_message() -> None:
    assert str(AuthenticationMissingError()) == "No authentication token found"


def test_unexpected_payload_message() -> None:
    error = UnexpectedPayloadError("text/html", "<html>")
    assert str(error) == "Unexpected response (content-type=text/html): <html>"
    assert error.content_type == "text/html"
