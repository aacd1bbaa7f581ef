"""SafeRoute Backend — Map view reconciliation

``derive_view`` is a pure projection from a dashboard snapshot to what the
map should show. ``MapReconciler`` owns the live view handles and brings the
map in line with that projection:
  marker    created once, then moved in place; style updated in place
  route     removed and redrawn on every pass
  hotspots  all removed and redrawn on every pass (zone sets are small)
Reconciliation never awaits, so two passes can never interleave.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from config import (
    HOTSPOT_COLORS, HOTSPOT_DASH_ARRAY, HOTSPOT_FILL_OPACITY, HOTSPOT_WEIGHT,
    MARKER_STYLES, ROUTE_STYLES,
)
from mapview import MapViewUnavailable
from models import Coordinate, DashboardSnapshot

logger = logging.getLogger("saferoute.map")


@dataclass(frozen=True)
class Overlay:
    zone_id: str
    center: Coordinate
    radius: float
    style: dict


@dataclass(frozen=True)
class ViewModel:
    marker_position: Coordinate
    marker_style: dict
    route_points: tuple[Coordinate, ...]  # empty means no line
    route_style: dict
    overlays: tuple[Overlay, ...]


def effective_route_points(snapshot: DashboardSnapshot) -> tuple[Coordinate, ...]:
    """Route points if supplied, else a straight [current, destination] line, else nothing."""
    if snapshot.route is not None and snapshot.route.points:
        return tuple(tuple(p) for p in snapshot.route.points)
    if snapshot.destination is not None:
        return (tuple(snapshot.currentLocation), tuple(snapshot.destination))
    return ()


def hotspot_style(intensity: str, reason: str = "") -> dict:
    color = HOTSPOT_COLORS[intensity]
    return {
        "color": color,
        "fill_color": color,
        "fill_opacity": HOTSPOT_FILL_OPACITY,
        "weight": HOTSPOT_WEIGHT,
        "dash_array": HOTSPOT_DASH_ARRAY,
        "popup": f"{intensity} risk: {reason}" if reason else f"{intensity} risk",
    }


def derive_view(snapshot: DashboardSnapshot) -> ViewModel:
    variant = "distress" if snapshot.isDistress else "normal"
    overlays = ()
    if snapshot.showThreats:
        overlays = tuple(
            Overlay(z.id, z.center, z.radius, hotspot_style(z.intensity, z.reason))
            for z in snapshot.threatZones
        )
    return ViewModel(
        marker_position=tuple(snapshot.currentLocation),
        marker_style=dict(MARKER_STYLES[variant]),
        route_points=effective_route_points(snapshot),
        route_style=dict(ROUTE_STYLES[variant]),
        overlays=overlays,
    )


class MapReconciler:
    """Keeps exactly one marker, at most one route line and one overlay per zone."""

    def __init__(self, map_view):
        self.map_view = map_view
        self.marker_handle: Optional[str] = None
        self.route_handle: Optional[str] = None
        self.overlay_handles: list[str] = []
        self._marker_style: Optional[dict] = None

    def reconcile(self, snapshot: DashboardSnapshot) -> bool:
        """Sync the map to ``snapshot``. Returns False (and does nothing) if the map is not available."""
        if self.map_view is None or not self.map_view.initialized:
            return False
        view = derive_view(snapshot)
        try:
            self._sync_marker(view)
            self._sync_route(view)
            self._sync_overlays(view)
        except MapViewUnavailable as e:
            logger.debug(f"Map view unavailable, skipping reconciliation: {e}")
            return False
        return True

    def _sync_marker(self, view: ViewModel) -> None:
        if self.marker_handle is None:
            self.marker_handle = self.map_view.add_marker(view.marker_position, view.marker_style)
            self._marker_style = view.marker_style
            return
        self.map_view.move_marker(self.marker_handle, view.marker_position)
        if view.marker_style != self._marker_style:
            self.map_view.set_marker_style(self.marker_handle, view.marker_style)
            self._marker_style = view.marker_style

    def _sync_route(self, view: ViewModel) -> None:
        if self.route_handle is not None:
            self.map_view.remove(self.route_handle)
            self.route_handle = None
        if view.route_points:
            self.route_handle = self.map_view.add_polyline(list(view.route_points), view.route_style)

    def _sync_overlays(self, view: ViewModel) -> None:
        while self.overlay_handles:
            self.map_view.remove(self.overlay_handles.pop())
        for overlay in view.overlays:
            self.overlay_handles.append(
                self.map_view.add_circle(overlay.center, overlay.radius, overlay.style)
            )

    def handle_count(self) -> int:
        return (self.marker_handle is not None) + (self.route_handle is not None) + len(self.overlay_handles)
