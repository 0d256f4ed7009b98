# src/hydronyx_web/api_client.py

import json
import logging
from typing import Any, Mapping, Optional
from urllib.parse import urlsplit

import httpx

from .config import settings
from .credentials import CredentialStore, MemoryCredentialStore
from .errors import ServerError, TransportError, UnexpectedPayloadError

logger = logging.getLogger(__name__)


def resolve_base_url() -> str:
    """Configured origin of the Hydronyx API, e.g. ``http://localhost:8000``."""
    return settings.HYDRONYX_API_URL


def is_absolute_url(path: str) -> bool:
    parts = urlsplit(path)
    return bool(parts.scheme) and bool(parts.netloc)


def join_url(base_url: str, path: str) -> str:
    if is_absolute_url(path):
        return path
    if not path:
        return base_url
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def _loggable_url(url) -> str:
    # Query strings can carry one-time secrets (verify-email tokens)
    return str(httpx.URL(str(url)).copy_with(query=None))


def _encode_body(body: Any) -> Optional[Any]:
    # Pre-serialized bodies (str/bytes) go out untouched
    if body is None or isinstance(body, (str, bytes)):
        return body
    return json.dumps(body)


class AuthenticatedApiClient:
    """
    Outbound access to the Hydronyx API.

    Every call reads the access token from ``credential_store`` at call time
    and attaches it as a bearer token. ``request`` hands back the raw
    ``httpx.Response`` whatever its status; ``get_json``/``post_json`` decode
    the body and raise ``ServerError`` for non-success statuses.

    No retries and no timeout: a call that never gets an answer stays pending
    until the caller cancels it.
    """

    def __init__(
            self,
            credential_store: Optional[CredentialStore] = None,
            base_url: Optional[str] = None,
            transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.credential_store = credential_store if credential_store is not None else MemoryCredentialStore()
        self.base_url = (base_url or resolve_base_url()).rstrip("/")
        self._transport = transport

    def current_token(self) -> Optional[str]:
        """The stored access token, or None when absent or the store can't be read."""
        try:
            return self.credential_store.get_access_token() or None
        except Exception as e:
            logger.warning(f"API_CLIENT: Credential store unavailable, continuing without a token: {e}")
            return None

    def build_headers(self) -> dict:
        headers = {
            "Content-Type": "application/json",
        }
        token = self.current_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def url_for(self, path: str) -> str:
        return join_url(self.base_url, path)

    async def request(
            self,
            path: str,
            method: str = "GET",
            body: Any = None,
            headers: Optional[Mapping[str, str]] = None,
            params: Optional[Mapping[str, Any]] = None,
    ) -> httpx.Response:
        url = self.url_for(path)
        merged_headers = httpx.Headers(self.build_headers())
        if headers:
            # Caller headers win on collision, compared case-insensitively
            merged_headers.update(headers)
        if params:
            params = {key: value for key, value in params.items() if value is not None}

        logger.debug(f"API_CLIENT: {method} {_loggable_url(url)} (authenticated: {'Authorization' in merged_headers})")
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=None) as client:
                response = await client.request(
                    method,
                    url,
                    headers=merged_headers,
                    content=_encode_body(body),
                    params=params or None,
                )
        except httpx.TransportError as e:
            logger.error(f"API_CLIENT: Request error calling {method} {_loggable_url(url)}: {e!r}")
            raise TransportError(f"Could not connect to Hydronyx API: {e}") from e

        logger.debug(f"API_CLIENT: {method} {_loggable_url(url)} -> {response.status_code}")
        return response

    async def get_json(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        response = await self.request(path, params=params)
        return self._decode(response)

    async def post_json(self, path: str, body: Any) -> Any:
        # Always JSON, even for str/bytes bodies that request() would pass through
        response = await self.request(path, method="POST", body=json.dumps(body))
        return self._decode(response)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.is_success:
            error = ServerError.from_response(response)
            logger.warning(
                f"API_CLIENT: {response.request.method} {_loggable_url(response.request.url)} failed: "
                f"{response.status_code} - {error}"
            )
            raise error
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            raise UnexpectedPayloadError(
                response.headers.get("content-type", ""),
                response.text[:settings.ERROR_EXCERPT_CHARS],
            )
