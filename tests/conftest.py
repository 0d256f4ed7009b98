"""Shared fixtures: a recording stub of the Hydronyx API and a client wired to it."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest

from hydronyx_web.api_client import AuthenticatedApiClient
from hydronyx_web.credentials import MemoryCredentialStore

BASE_URL = "http://api.test"


class StubApi:
    """Answers canned responses per (method, path) and records every request it sees."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.routes: Dict[Tuple[str, str], Any] = {}

    def add(
        self,
        method: str,
        path: str,
        status_code: int = 200,
        json: Any = None,
        content: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.routes[(method, path)] = (status_code, json, content, headers)

    def fail(self, method: str, path: str, exc_type=httpx.ConnectError) -> None:
        self.routes[(method, path)] = exc_type

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"detail": f"no stub for {request.method} {request.url.path}"})
        if isinstance(route, type):
            raise route("connection refused", request=request)
        status_code, json_body, content, headers = route
        if content is not None:
            return httpx.Response(status_code, content=content, headers=headers)
        return httpx.Response(status_code, json=json_body, headers=headers)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def stub_api() -> StubApi:
    return StubApi()


@pytest.fixture
def store() -> MemoryCredentialStore:
    return MemoryCredentialStore()


@pytest.fixture
def authed_store() -> MemoryCredentialStore:
    return MemoryCredentialStore(access_token="tok-123", refresh_token="ref-456")


@pytest.fixture
def client(store: MemoryCredentialStore, stub_api: StubApi) -> AuthenticatedApiClient:
    return AuthenticatedApiClient(store, base_url=BASE_URL, transport=stub_api.transport)


@pytest.fixture
def authed_client(authed_store: MemoryCredentialStore, stub_api: StubApi) -> AuthenticatedApiClient:
    return AuthenticatedApiClient(authed_store, base_url=BASE_URL, transport=stub_api.transport)
