# src/hydronyx_web/errors.py

import json
from typing import Any, Literal, Optional

import httpx
from pydantic import BaseModel


class ErrorBody(BaseModel):
    """
    Parsed JSON error body returned by the Hydronyx API.

    The backend puts its message in ``detail``, which is either a plain string
    or a structured object (e.g. a list of validation errors). ``kind`` records
    which of the two arrived, or ``absent`` when there was no usable detail.
    """
    kind: Literal["text", "structured", "absent"] = "absent"
    detail: Any = None

    @classmethod
    def from_payload(cls, payload: Any) -> "ErrorBody":
        if not isinstance(payload, dict) or payload.get("detail") is None:
            return cls()
        detail = payload["detail"]
        if isinstance(detail, str):
            return cls(kind="text", detail=detail)
        return cls(kind="structured", detail=detail)

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ErrorBody":
        try:
            payload = response.json()
        except ValueError:
            return cls()
        return cls.from_payload(payload)

    def display_message(self, fallback: str) -> str:
        """Always returns a flat string suitable for an error banner."""
        if self.kind == "text":
            return self.detail
        if self.kind == "structured":
            return json.dumps(self.detail)
        return fallback


class ApiError(Exception):
    """Base class for every failure surfaced by the Hydronyx client."""


class TransportError(ApiError):
    """The request could not be sent or no response was received."""


class AuthenticationMissingError(ApiError):
    def __init__(self, message: str = "No authentication token found"):
        super().__init__(message)


class ServerError(ApiError):
    def __init__(self, message: str, status_code: int, body: Optional[ErrorBody] = None):
        self.status_code = status_code
        self.body = body or ErrorBody()
        super().__init__(message)

    @classmethod
    def from_response(cls, response: httpx.Response, fallback: Optional[str] = None) -> "ServerError":
        body = ErrorBody.from_response(response)
        if fallback is None:
            fallback = response.reason_phrase or f"HTTP {response.status_code}"
        return cls(body.display_message(fallback), status_code=response.status_code, body=body)


class UnexpectedPayloadError(ApiError):
    def __init__(self, content_type: str, excerpt: str):
        self.content_type = content_type
        self.excerpt = excerpt
        super().__init__(f"Unexpected response (content-type={content_type}): {excerpt}")
