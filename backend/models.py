"""SafeRoute Backend — Pydantic Models"""

import math
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, FiniteFloat, PositiveFloat, field_validator

# (lat, lng)
Coordinate = tuple[FiniteFloat, FiniteFloat]

Intensity = Literal["High", "Medium", "Low"]


def _round_score(value):
    # The model is asked for NUMBER fields, so 82.5 is a legal answer
    if isinstance(value, float) and math.isfinite(value):
        return round(value)
    return value


class SafetyScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int = Field(ge=0, le=100)
    lighting: int = Field(ge=0, le=100)
    safetyHistory: int = Field(ge=0, le=100)  # incident-free score
    crowdActivity: int = Field(ge=0, le=100)  # witness density
    description: str

    @field_validator("total", "lighting", "safetyHistory", "crowdActivity", mode="before")
    @classmethod
    def _round(cls, v):
        return _round_score(v)


class ThreatZone(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    lat: FiniteFloat
    lng: FiniteFloat
    radius: PositiveFloat  # meters
    intensity: Intensity
    reason: str

    @property
    def center(self) -> Coordinate:
        return (self.lat, self.lng)


class RouteData(BaseModel):
    model_config = ConfigDict(frozen=True)

    points: list[Coordinate] = Field(min_length=2)
    distance: str
    duration: str
    safetyRating: str


class RiskPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    time: str
    score: int = Field(ge=0, le=100)

    @field_validator("score", mode="before")
    @classmethod
    def _round(cls, v):
        return _round_score(v)


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "model"]
    text: str


class DashboardSnapshot(BaseModel):
    """Read-only view of the application state at one instant."""

    model_config = ConfigDict(frozen=True)

    locationName: str
    currentLocation: Coordinate
    destination: Optional[Coordinate] = None
    safetyScore: Optional[SafetyScore] = None
    threatZones: tuple[ThreatZone, ...] = ()
    route: Optional[RouteData] = None
    riskTrend: tuple[RiskPoint, ...] = ()
    isDistress: bool = False
    showThreats: bool = True
    isLoading: bool = False
    isRateLimited: bool = False
    messages: tuple[ChatMessage, ...] = ()


# ─────────────────────────── HTTP request / response ────────────

class LocationUpdate(BaseModel):
    lat: FiniteFloat
    lng: FiniteFloat
    locationName: Optional[str] = None


class DestinationUpdate(BaseModel):
    lat: FiniteFloat
    lng: FiniteFloat


class DistressUpdate(BaseModel):
    active: Optional[bool] = None  # None toggles


class ChatRequest(BaseModel):
    message: str = Field(max_length=2000)


class ChatResponse(BaseModel):
    reply: Optional[str]
    messages: list[ChatMessage]


class RefreshResponse(BaseModel):
    started: bool
    detail: str = ""
