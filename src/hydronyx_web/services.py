# src/hydronyx_web/services.py

import logging
import re
from typing import Any, Dict, Optional

from pydantic import BaseModel

from .api_client import AuthenticatedApiClient
from .config import settings
from .errors import AuthenticationMissingError, ServerError, UnexpectedPayloadError
from .models import (
    ForecastRequest,
    LocationRequest,
    OptimizationRequest,
    PolicySimulationRequest,
    to_payload,
)

logger = logging.getLogger(__name__)

_FILENAME_RE = re.compile(r'filename\s*=\s*"?([^";]+)"?', re.IGNORECASE)

POLICY_PDF_FILENAME = "policy_comparison.pdf"
LOCATION_PDF_FILENAME = "location_groundwater_report.pdf"


class PdfDocument(BaseModel):
    filename: str
    content: bytes


def filename_from_disposition(content_disposition: str, default: str) -> str:
    match = _FILENAME_RE.search(content_disposition or "")
    if match:
        return match.group(1).strip()
    return default


class DashboardApi:
    """
    Typed entry points for the authenticated Hydronyx endpoints.

    Every method checks that a token is stored before touching the network
    and raises ``AuthenticationMissingError`` otherwise. JSON results are
    returned as the backend sent them.
    """

    def __init__(self, client: AuthenticatedApiClient):
        self.client = client

    def _require_token(self) -> None:
        if not self.client.current_token():
            raise AuthenticationMissingError()

    async def _get(self, path: str, **params: Any) -> Any:
        self._require_token()
        return await self.client.get_json(path, params=params or None)

    async def _post(self, path: str, payload: BaseModel) -> Any:
        self._require_token()
        return await self.client.post_json(path, to_payload(payload))

    async def _fetch_pdf(
            self,
            path: str,
            default_filename: str,
            failure_message: str,
            method: str = "GET",
            body: Optional[Dict] = None,
            params: Optional[Dict] = None,
    ) -> PdfDocument:
        self._require_token()
        response = await self.client.request(path, method=method, body=body, params=params)
        if not response.is_success:
            raise ServerError.from_response(response, fallback=f"{failure_message} ({response.status_code})")

        content_type = response.headers.get("content-type", "")
        if "application/pdf" not in content_type.lower():
            raise UnexpectedPayloadError(content_type, response.text[:settings.ERROR_EXCERPT_CHARS])

        filename = filename_from_disposition(response.headers.get("content-disposition", ""), default_filename)
        logger.info(f"SERVICES: Downloaded {filename} ({len(response.content)} bytes) from {path}")
        return PdfDocument(filename=filename, content=response.content)

    # --- Forecasts ---
    async def forecast_history(self, limit: int = 10) -> Any:
        return await self._get("/api/forecast/history", limit=limit)

    async def generate_forecast(self, request: ForecastRequest) -> Any:
        return await self._post("/api/forecast/generate", request)

    # --- Location taxonomy ---
    async def states(self) -> Any:
        return await self._get("/api/states")

    async def districts(self, state: str) -> Any:
        return await self._get("/api/districts", state=state)

    # --- Policy simulation ---
    async def simulate_policy(self, request: PolicySimulationRequest) -> Any:
        return await self._post("/api/policy/simulate", request)

    async def policy_states(self) -> Any:
        return await self._get("/api/policy/states")

    async def policy_history(self, limit: int = 10) -> Any:
        return await self._get("/api/policy/history", limit=limit)

    async def export_policy_pdf(self, intervention_id: str) -> PdfDocument:
        return await self._fetch_pdf(
            "/api/policy/export-pdf",
            POLICY_PDF_FILENAME,
            "Export failed",
            params={"intervention_id": intervention_id},
        )

    # --- Site optimizer ---
    async def optimize_sites(self, request: OptimizationRequest) -> Any:
        return await self._post("/api/optimizer/optimize", request)

    async def optimizer_states(self) -> Any:
        return await self._get("/api/optimizer/states")

    # --- Validation ---
    async def validation_metrics(self) -> Any:
        return await self._get("/api/validation/metrics")

    async def validation_metrics_history(self, limit: int = 10) -> Any:
        return await self._get("/api/validation/metrics/history", limit=limit)

    async def validation_model_info(self) -> Any:
        return await self._get("/api/validation/model-info")

    async def validation_limitations(self) -> Any:
        return await self._get("/api/validation/limitations")

    async def confidence_map(self) -> Any:
        return await self._get("/api/validation/confidence-map")

    async def regions(self) -> Any:
        return await self._get("/api/validation/regions")

    async def district_confidence(self, state: str) -> Any:
        return await self._get("/api/validation/confidence-map/districts", state=state)

    async def uncertainty(self, state: str, horizon: int = 6) -> Any:
        return await self._get("/api/validation/uncertainty", state=state, horizon=horizon)

    # --- Location insight ---
    async def location_groundwater(self, request: LocationRequest) -> Any:
        return await self._post("/api/location/groundwater", request)

    async def location_report_pdf(self, request: LocationRequest) -> PdfDocument:
        return await self._fetch_pdf(
            "/api/location/report.pdf",
            LOCATION_PDF_FILENAME,
            "Failed to download report",
            method="POST",
            body=to_payload(request),
        )

    # --- Drivers & alerts ---
    async def driver_attribution(self, state: str, district: Optional[str] = None) -> Any:
        return await self._get("/api/drivers/attribution", state=state, district=district or None)

    async def alerts(self, severity: Optional[str] = None) -> Any:
        return await self._get("/api/alerts", severity=severity or None)
