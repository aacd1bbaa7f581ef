"""SafeRoute Backend — Dashboard state owner

Holds the single mutable application state. Writers are split by field:
  orchestrator  score, zones, route, trend, loading, rate-limited
  user actions  distress, show-threats, location, destination
  chat adapter  transcript
Moving either route endpoint drops the stored route.
Readers get an immutable DashboardSnapshot.
"""

from typing import Optional, Sequence

from config import CHAT_GREETING, DEFAULT_DESTINATION, DEFAULT_LOCATION, DEFAULT_LOCATION_NAME
from models import ChatMessage, Coordinate, DashboardSnapshot, RiskPoint, RouteData, SafetyScore, ThreatZone


def coordinate_label(location: Coordinate) -> str:
    """Area name used for the score request when only coordinates are known."""
    return f"the area around [{location[0]:.4f}, {location[1]:.4f}]"


class DashboardState:

    def __init__(
        self,
        location: Coordinate = DEFAULT_LOCATION,
        destination: Optional[Coordinate] = DEFAULT_DESTINATION,
        location_name: str = DEFAULT_LOCATION_NAME,
        greeting: Optional[str] = CHAT_GREETING,
    ):
        self._location_name = location_name
        self._location = tuple(location)
        self._destination = tuple(destination) if destination is not None else None
        self._score: Optional[SafetyScore] = None
        self._zones: tuple[ThreatZone, ...] = ()
        self._route: Optional[RouteData] = None
        self._trend: tuple[RiskPoint, ...] = ()
        self._distress = False
        self._show_threats = True
        self._loading = False
        self._rate_limited = False
        self._messages: list[ChatMessage] = []
        if greeting:
            self._messages.append(ChatMessage(role="model", text=greeting))

    def snapshot(self) -> DashboardSnapshot:
        return DashboardSnapshot(
            locationName=self._location_name,
            currentLocation=self._location,
            destination=self._destination,
            safetyScore=self._score,
            threatZones=self._zones,
            route=self._route,
            riskTrend=self._trend,
            isDistress=self._distress,
            showThreats=self._show_threats,
            isLoading=self._loading,
            isRateLimited=self._rate_limited,
            messages=tuple(self._messages),
        )

    # Plain reads used on hot paths, without building a snapshot

    @property
    def location(self) -> Coordinate:
        return self._location

    @property
    def destination(self) -> Optional[Coordinate]:
        return self._destination

    @property
    def location_name(self) -> str:
        return self._location_name

    @property
    def is_distress(self) -> bool:
        return self._distress

    # ── orchestrator writers ──

    def set_score(self, score: SafetyScore) -> None:
        self._score = score

    def set_threat_zones(self, zones: Sequence[ThreatZone]) -> None:
        # replaced wholesale, never merged
        self._zones = tuple(zones)

    def set_route(self, route: RouteData) -> None:
        self._route = route

    def set_risk_trend(self, trend: Sequence[RiskPoint]) -> None:
        self._trend = tuple(trend)

    def set_loading(self, loading: bool) -> None:
        self._loading = loading

    def set_rate_limited(self, rate_limited: bool) -> None:
        self._rate_limited = rate_limited

    # ── user writers ──

    def set_distress(self, active: bool) -> None:
        self._distress = bool(active)

    def toggle_distress(self) -> bool:
        self._distress = not self._distress
        return self._distress

    def set_show_threats(self, show: bool) -> None:
        self._show_threats = bool(show)

    def set_location(self, location: Coordinate, location_name: Optional[str] = None) -> None:
        location = tuple(location)
        if location != self._location:
            # the stored route started at the old position
            self._route = None
        self._location = location
        self._location_name = location_name or coordinate_label(location)

    def set_destination(self, destination: Optional[Coordinate]) -> None:
        destination = tuple(destination) if destination is not None else None
        if destination != self._destination:
            self._route = None
        self._destination = destination

    # ── chat writer ──

    def append_message(self, role: str, text: str) -> None:
        self._messages.append(ChatMessage(role=role, text=text))
