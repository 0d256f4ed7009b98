# src/hydronyx_web/models.py

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Auth payloads ---
class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str


class PasswordResetRequest(BaseModel):
    token: str
    new_password: str = Field(..., min_length=6)


class TokenPair(BaseModel):
    # The backend may send more fields (token_type, user, ...); keep them.
    model_config = ConfigDict(extra="allow")

    access_token: str
    refresh_token: Optional[str] = None


# --- Dashboard payloads ---
class ForecastRequest(BaseModel):
    state: str = "Maharashtra"
    district: str = "Pune"
    forecast_horizon: int = Field(6, ge=1)
    rainfall_value: float = 100.0
    lag_gw: float = 45.0


class PolicySimulationRequest(BaseModel):
    state: str = "Maharashtra"
    pumping_change: float = 25
    recharge_structures: int = Field(10, ge=0)
    crop_intensity_change: float = 0
    months_ahead: int = Field(12, ge=1)


class OptimizationRequest(BaseModel):
    state: str = "Maharashtra"
    objectives: List[str] = Field(default_factory=lambda: ["impact", "cost"])
    max_budget: Optional[float] = None
    nl_query: Optional[str] = None
    n_sites: int = Field(10, ge=1)


class LocationRequest(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    months_ahead: int = Field(6, ge=1)
    k: int = Field(8, ge=1)
    power: float = 2.0


def to_payload(model: BaseModel) -> Dict:
    """JSON body for a request model; unset optionals are left out entirely."""
    return model.model_dump(mode="json", exclude_none=True)
