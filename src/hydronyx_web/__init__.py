# src/hydronyx_web/__init__.py

from .api_client import AuthenticatedApiClient, resolve_base_url
from .credentials import (
    CredentialStore,
    FileCredentialStore,
    MemoryCredentialStore,
    SessionCredentialStore,
)
from .errors import (
    ApiError,
    AuthenticationMissingError,
    ErrorBody,
    ServerError,
    TransportError,
    UnexpectedPayloadError,
)
from .services import DashboardApi
from .view_scope import ViewScope

__version__ = "0.1.0"
