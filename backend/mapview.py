"""SafeRoute Backend — Map view service

An in-process Leaflet-style map: layers are created, moved, restyled and
removed through opaque handles. ``render()`` turns the live layers into a
folium map for the dashboard page.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Optional

import folium

from config import MAP_ATTRIBUTION, MAP_TILES
from models import Coordinate

logger = logging.getLogger("saferoute.map")


class MapViewUnavailable(RuntimeError):
    """The map view has not been created yet."""


@dataclass
class Layer:
    kind: str  # marker, polyline, circle
    points: list[Coordinate]
    style: dict = field(default_factory=dict)
    radius: Optional[float] = None


class LayerMap:

    def __init__(self):
        self.center: Optional[Coordinate] = None
        self.zoom: Optional[int] = None
        self.layers: dict[str, Layer] = {}

    @property
    def initialized(self) -> bool:
        return self.center is not None

    def create_view(self, center: Coordinate, zoom: int) -> None:
        if self.initialized:
            return
        self.center = tuple(center)
        self.zoom = zoom
        logger.info(f"Map view created at {self.center} (zoom {zoom})")

    def _require_view(self):
        if not self.initialized:
            raise MapViewUnavailable("map view not created")

    def _add(self, layer: Layer) -> str:
        self._require_view()
        handle = uuid.uuid4().hex
        self.layers[handle] = layer
        return handle

    def _get(self, handle: str, kind: str) -> Layer:
        self._require_view()
        layer = self.layers.get(handle)
        if layer is None or layer.kind != kind:
            raise KeyError(f"no {kind} layer with handle {handle}")
        return layer

    def add_marker(self, position: Coordinate, style: dict) -> str:
        return self._add(Layer("marker", [tuple(position)], dict(style)))

    def move_marker(self, handle: str, position: Coordinate) -> None:
        self._get(handle, "marker").points = [tuple(position)]

    def set_marker_style(self, handle: str, style: dict) -> None:
        self._get(handle, "marker").style = dict(style)

    def add_polyline(self, points: list[Coordinate], style: dict) -> str:
        return self._add(Layer("polyline", [tuple(p) for p in points], dict(style)))

    def add_circle(self, center: Coordinate, radius: float, style: dict) -> str:
        return self._add(Layer("circle", [tuple(center)], dict(style), radius=radius))

    def remove(self, handle: str) -> None:
        self._require_view()
        self.layers.pop(handle, None)

    def count(self, kind: str) -> int:
        return sum(1 for layer in self.layers.values() if layer.kind == kind)

    # ─────────────────────────── Rendering ──────────────────────

    def render(self) -> folium.Map:
        self._require_view()
        m = folium.Map(
            location=list(self.center),
            zoom_start=self.zoom,
            tiles=MAP_TILES,
            attr=MAP_ATTRIBUTION,
            zoom_control=False,
        )
        # circles first so the route and marker draw on top
        order = {"circle": 0, "polyline": 1, "marker": 2}
        for layer in sorted(self.layers.values(), key=lambda layer: order[layer.kind]):
            if layer.kind == "circle":
                folium.Circle(
                    location=list(layer.points[0]),
                    radius=layer.radius,
                    color=layer.style.get("color"),
                    fill=True,
                    fill_color=layer.style.get("fill_color", layer.style.get("color")),
                    fill_opacity=layer.style.get("fill_opacity", 0.15),
                    weight=layer.style.get("weight", 2),
                    dash_array=layer.style.get("dash_array") or None,
                    popup=layer.style.get("popup"),
                ).add_to(m)
            elif layer.kind == "polyline":
                folium.PolyLine(
                    locations=[list(p) for p in layer.points],
                    color=layer.style.get("color"),
                    weight=layer.style.get("weight", 6),
                    opacity=layer.style.get("opacity", 0.8),
                    dash_array=layer.style.get("dash_array") or None,
                    line_join="round",
                    line_cap="round",
                ).add_to(m)
            else:
                folium.Marker(
                    location=list(layer.points[0]),
                    icon=folium.DivIcon(
                        html=_marker_html(layer.style),
                        icon_size=(48, 48),
                        icon_anchor=(24, 24),
                    ),
                ).add_to(m)
        return m

    def to_html(self) -> str:
        return self.render().get_root().render()


def _marker_html(style: dict) -> str:
    color = style.get("color", "#ec4899")
    halo = style.get("halo", "rgba(236, 72, 153, 0.3)")
    return (
        '<div style="position:relative;width:48px;height:48px;">'
        f'<div style="position:absolute;inset:0;border-radius:50%;background:{halo};"></div>'
        f'<div style="position:absolute;left:12px;top:12px;width:24px;height:24px;border-radius:50%;'
        f'background:{color};border:4px solid #fff;box-sizing:border-box;"></div>'
        "</div>"
    )
