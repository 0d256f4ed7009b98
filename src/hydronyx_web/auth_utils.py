# src/hydronyx_web/auth_utils.py

import logging
from typing import Any, Optional

from pydantic import ValidationError

from .api_client import AuthenticatedApiClient
from .config import settings
from .credentials import CredentialStore
from .errors import ErrorBody, ServerError, UnexpectedPayloadError
from .models import LoginRequest, PasswordResetRequest, RegisterRequest, TokenPair, to_payload

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


# --- Session token lifecycle ---

async def login(client: AuthenticatedApiClient, store: CredentialStore, email: str, password: str) -> TokenPair:
    """
    Exchanges credentials for an access/refresh token pair and stores both.
    The tokens are issued by the backend; they are kept opaque here.
    """
    data = await client.post_json("/api/auth/login", to_payload(LoginRequest(email=email, password=password)))
    try:
        tokens = TokenPair.model_validate(data)
    except ValidationError as e:
        logger.error(f"AUTH_UTILS: login - Response carried no access token: {e.error_count()} error(s)")
        raise UnexpectedPayloadError("application/json", str(data)[:settings.ERROR_EXCERPT_CHARS]) from e

    store.set_tokens(tokens.access_token, tokens.refresh_token)
    logger.info(f"AUTH_UTILS: login - Tokens stored for {email}. Refresh token: {'Yes' if tokens.refresh_token else 'No'}")
    return tokens


async def register(
        client: AuthenticatedApiClient,
        store: CredentialStore,
        name: str,
        email: str,
        password: str,
) -> Optional[TokenPair]:
    """
    Creates the account, then logs straight in.

    Returns None when the account was created but the automatic login was
    refused; the caller should send the user to the login form.
    """
    await client.post_json("/api/auth/register", to_payload(RegisterRequest(name=name, email=email, password=password)))
    logger.info(f"AUTH_UTILS: register - Account created for {email}. Logging in.")
    try:
        return await login(client, store, email, password)
    except ServerError as e:
        logger.warning(f"AUTH_UTILS: register - Automatic login failed ({e.status_code}): {e}")
        return None


def logout(store: CredentialStore) -> None:
    store.clear()
    logger.info("AUTH_UTILS: logout - Session tokens cleared.")


# --- Password recovery & email verification ---

async def request_password_reset(client: AuthenticatedApiClient, email: str) -> Any:
    return await client.post_json("/api/auth/forgot-password", {"email": email})


async def reset_password(client: AuthenticatedApiClient, token: str, new_password: str) -> Any:
    if not token:
        raise ValueError("Invalid reset link. Request a new one.")
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    payload = PasswordResetRequest(token=token, new_password=new_password)
    return await client.post_json("/api/auth/reset-password", to_payload(payload))


async def verify_email(client: AuthenticatedApiClient, token: str) -> Any:
    """
    Confirms an email address. The backend answers ``{"status": "ok"}`` on
    success; any other body is reported as a failure using its ``detail``.
    """
    if not token:
        raise ValueError("Invalid verification link")
    data = await client.get_json("/api/auth/verify-email", params={"token": token})
    if isinstance(data, dict) and data.get("status") == "ok":
        return data
    body = ErrorBody.from_payload(data)
    raise ServerError(body.display_message("Verification failed"), status_code=200, body=body)
