# src/hydronyx_web/main.py

import time
import typing
import uuid
from typing import Any, Awaitable, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response as StarletteResponse

from . import auth_utils
from .api_client import AuthenticatedApiClient
from .config import CONFIG_FILE_DIR, settings
from .credentials import SessionCredentialStore
from .errors import (
    ApiError,
    AuthenticationMissingError,
    ServerError,
    TransportError,
    UnexpectedPayloadError,
)
from .models import (
    ForecastRequest,
    LocationRequest,
    LoginRequest,
    OptimizationRequest,
    PolicySimulationRequest,
    RegisterRequest,
)
from .services import DashboardApi, PdfDocument
from .session_data import SessionInfo


# --- Simple In-Memory Session Store Implementation ---
# Session data lives server-side, keyed by the cookie value.
_in_memory_session_data_storage: typing.Dict[str, dict] = {}
# Last request time per session id
_session_last_seen: typing.Dict[str, float] = {}

SESSION_COOKIE_NAME = "session_id"


def expire_idle_sessions(now: Optional[float] = None) -> int:
    """Drops sessions idle for longer than the cookie lifetime. Returns how many were dropped."""
    now = time.time() if now is None else now
    cutoff = now - settings.SESSION_COOKIE_MAX_AGE
    stale = [sid for sid, seen in _session_last_seen.items() if seen < cutoff]
    # Sessions that never got a timestamp count as stale too
    stale.extend(sid for sid in _in_memory_session_data_storage if sid not in _session_last_seen)
    for sid in stale:
        _in_memory_session_data_storage.pop(sid, None)
        _session_last_seen.pop(sid, None)
    if stale:
        print(f"MAIN: Expired {len(stale)} idle session(s).")
    return len(stale)


class SessionMiddlewareCustom(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        expire_idle_sessions()
        session_id = request.cookies.get(SESSION_COOKIE_NAME)
        if not session_id or session_id not in _in_memory_session_data_storage:
            session_id = str(uuid.uuid4())
            _in_memory_session_data_storage[session_id] = {}
        _session_last_seen[session_id] = time.time()
        request.state.session_id = session_id
        request.state.session = _in_memory_session_data_storage[session_id]
        response: StarletteResponse = await call_next(request)
        response.set_cookie(
            SESSION_COOKIE_NAME,
            session_id,
            max_age=settings.SESSION_COOKIE_MAX_AGE,
            httponly=True,
            secure=settings.SESSION_COOKIE_SECURE,
            samesite="lax",
        )
        return response


def get_session(request: Request) -> dict:
    return request.state.session


# --- FastAPI App Setup ---
app = FastAPI(
    title="Hydronyx Web BFF",
    description="Backend-For-Frontend for the Hydronyx groundwater dashboards, holding session tokens and proxying to the Hydronyx API.",
    version="0.1.0"
)

app.add_middleware(
    SessionMiddlewareCustom,
)

# Tests swap this for an httpx.MockTransport
app.state.api_transport = None

templates = Jinja2Templates(directory=CONFIG_FILE_DIR / "templates")


# --- Dependencies ---
def get_credential_store(request: Request) -> SessionCredentialStore:
    return SessionCredentialStore(get_session(request))


def get_api_client(
        request: Request,
        store: SessionCredentialStore = Depends(get_credential_store),
) -> AuthenticatedApiClient:
    return AuthenticatedApiClient(store, transport=request.app.state.api_transport)


def get_dashboard_api(client: AuthenticatedApiClient = Depends(get_api_client)) -> DashboardApi:
    return DashboardApi(client)


async def call_api(awaitable: Awaitable[Any]) -> Any:
    """Awaits a client call and maps client errors onto HTTP errors for the browser."""
    try:
        return await awaitable
    except AuthenticationMissingError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    except ServerError as e:
        print(f"BFF: Hydronyx API returned {e.status_code}: {e}")
        upstream_status = e.status_code if e.status_code >= 400 else status.HTTP_400_BAD_REQUEST
        raise HTTPException(status_code=upstream_status, detail=str(e))
    except TransportError as e:
        print(f"BFF: Request error calling Hydronyx API: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except UnexpectedPayloadError as e:
        print(f"BFF: Unexpected payload from Hydronyx API: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    except ApiError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


def pdf_response(document: PdfDocument) -> Response:
    return Response(
        content=document.content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{document.filename}"'},
    )


def _start_session(session: dict, email: str) -> None:
    session["user_email"] = email
    session["logged_in_at"] = int(time.time())


# --- Authentication Routes ---
@app.post("/login", response_model=SessionInfo)
async def login(
        credentials: LoginRequest,
        request: Request,
        client: AuthenticatedApiClient = Depends(get_api_client),
):
    session = get_session(request)
    await call_api(auth_utils.login(client, client.credential_store, credentials.email, credentials.password))
    _start_session(session, credentials.email)
    print(f"MAIN: /login - User '{credentials.email}' logged in.")
    return SessionInfo.from_session(session)


@app.post("/register", response_model=SessionInfo)
async def register(
        account: RegisterRequest,
        request: Request,
        client: AuthenticatedApiClient = Depends(get_api_client),
):
    session = get_session(request)
    tokens = await call_api(
        auth_utils.register(client, client.credential_store, account.name, account.email, account.password)
    )
    if tokens is not None:
        _start_session(session, account.email)
    else:
        print(f"MAIN: /register - Account '{account.email}' created but automatic login failed.")
    return SessionInfo.from_session(session)


@app.post("/forgot-password")
async def forgot_password(body: dict, client: AuthenticatedApiClient = Depends(get_api_client)):
    email = body.get("email")
    if not email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing email.")
    return await call_api(auth_utils.request_password_reset(client, email))


@app.post("/reset-password")
async def reset_password(body: dict, client: AuthenticatedApiClient = Depends(get_api_client)):
    try:
        return await call_api(auth_utils.reset_password(client, body.get("token") or "", body.get("new_password") or ""))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@app.get("/verify-email")
async def verify_email(token: str = Query(""), client: AuthenticatedApiClient = Depends(get_api_client)):
    try:
        return await call_api(auth_utils.verify_email(client, token))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@app.get("/logout")
async def logout(request: Request, store: SessionCredentialStore = Depends(get_credential_store)):
    session = get_session(request)
    user_before_logout = session.get("user_email", "Not in session")
    auth_utils.logout(store)
    session.clear()
    print(f"MAIN: /logout - Session cleared for {user_before_logout}.")
    return RedirectResponse(url="/", status_code=status.HTTP_302_FOUND)


@app.get("/api/bff/session", response_model=SessionInfo)
async def session_info(request: Request):
    return SessionInfo.from_session(get_session(request))


# --- Forecasts ---
@app.get("/api/bff/forecast/history")
async def forecast_history(limit: int = Query(10, ge=1), api: DashboardApi = Depends(get_dashboard_api)):
    return await call_api(api.forecast_history(limit=limit))


@app.post("/api/bff/forecast/generate")
async def generate_forecast(payload: ForecastRequest, api: DashboardApi = Depends(get_dashboard_api)):
    return await call_api(api.generate_forecast(payload))


@app.get("/api/bff/states")
async def states(api: DashboardApi = Depends(get_dashboard_api)):
    return await call_api(api.states())


@app.get("/api/bff/districts")
async def districts(state: str, api: DashboardApi = Depends(get_dashboard_api)):
    return await call_api(api.districts(state))


# --- Policy ---
@app.post("/api/bff/policy/simulate")
async def simulate_policy(payload: PolicySimulationRequest, api: DashboardApi = Depends(get_dashboard_api)):
    return await call_api(api.simulate_policy(payload))


@app.get("/api/bff/policy/states")
async def policy_states(api: DashboardApi = Depends(get_dashboard_api)):
    return await call_api(api.policy_states())


@app.get("/api/bff/policy/history")
async def policy_history(limit: int = Query(10, ge=1), api: DashboardApi = Depends(get_dashboard_api)):
    return await call_api(api.policy_history(limit=limit))


@app.get("/api/bff/policy/export-pdf")
async def export_policy_pdf(intervention_id: str, api: DashboardApi = Depends(get_dashboard_api)):
    return pdf_response(await call_api(api.export_policy_pdf(intervention_id)))


# --- Optimizer ---
@app.post("/api/bff/optimizer/optimize")
async def optimize_sites(payload: OptimizationRequest, api: DashboardApi = Depends(get_dashboard_api)):
    return await call_api(api.optimize_sites(payload))


@app.get("/api/bff/optimizer/states")
async def optimizer_states(api: DashboardApi = Depends(get_dashboard_api)):
    return await call_api(api.optimizer_states())


# --- Validation ---
@app.get("/api/bff/validation/metrics")
async def validation_metrics(api: DashboardApi = Depends(get_dashboard_api)):
    return await call_api(api.validation_metrics())


@app.get("/api/bff/validation/metrics/history")
async def validation_metrics_history(limit: int = Query(10, ge=1), api: DashboardApi = Depends(get_dashboard_api)):
    return await call_api(api.validation_metrics_history(limit=limit))


@app.get("/api/bff/validation/model-info")
async def validation_model_info(api: DashboardApi = Depends(get_dashboard_api)):
    return await call_api(api.validation_model_info())


@app.get("/api/bff/validation/limitations")
async def validation_limitations(api: DashboardApi = Depends(get_dashboard_api)):
    return await call_api(api.validation_limitations())


@app.get("/api/bff/validation/confidence-map")
async def confidence_map(api: DashboardApi = Depends(get_dashboard_api)):
    return await call_api(api.confidence_map())


@app.get("/api/bff/validation/regions")
async def regions(api: DashboardApi = Depends(get_dashboard_api)):
    return await call_api(api.regions())


@app.get("/api/bff/validation/confidence-map/districts")
async def district_confidence(state: str, api: DashboardApi = Depends(get_dashboard_api)):
    return await call_api(api.district_confidence(state))


@app.get("/api/bff/validation/uncertainty")
async def uncertainty(state: str, horizon: int = Query(6, ge=1), api: DashboardApi = Depends(get_dashboard_api)):
    return await call_api(api.uncertainty(state, horizon=horizon))


# --- Location insight ---
@app.post("/api/bff/location/groundwater")
async def location_groundwater(payload: LocationRequest, api: DashboardApi = Depends(get_dashboard_api)):
    return await call_api(api.location_groundwater(payload))


@app.post("/api/bff/location/report.pdf")
async def location_report_pdf(payload: LocationRequest, api: DashboardApi = Depends(get_dashboard_api)):
    return pdf_response(await call_api(api.location_report_pdf(payload)))


# --- Drivers & alerts ---
@app.get("/api/bff/drivers/attribution")
async def driver_attribution(
        state: str,
        district: Optional[str] = None,
        api: DashboardApi = Depends(get_dashboard_api),
):
    return await call_api(api.driver_attribution(state, district=district))


@app.get("/api/bff/alerts")
async def alerts(severity: Optional[str] = None, api: DashboardApi = Depends(get_dashboard_api)):
    return await call_api(api.alerts(severity=severity))


# --- Simple Frontend Serving ---
@app.get("/", response_class=HTMLResponse)
async def read_root(request: Request):
    info = SessionInfo.from_session(get_session(request))
    return templates.TemplateResponse(
        request,
        "index.html",
        {"session": info, "api_url": settings.HYDRONYX_API_URL},
    )


# --- Startup Event ---
@app.on_event("startup")
async def startup_event():
    print("--- Hydronyx Web BFF (FastAPI) Starting Up ---")
    print(f"Hydronyx API URL: {settings.HYDRONYX_API_URL}")
    print(f"Session cookie secure: {settings.SESSION_COOKIE_SECURE}")
    print(f"Session cookie max age: {settings.SESSION_COOKIE_MAX_AGE}s")
    print("Using in-memory session store.")
    print("-------------------------------------------")
