"""SafeRoute Backend — Dashboard composition

Wires state, inference, orchestrator, map reconciler and chat together.
The reconciler runs after every orchestration run and after every user
action that changes what the map shows.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from chat import ChatSessionAdapter
from config import MAP_ZOOM, STAGE_DELAY
from inference import GeminiInference
from mapview import LayerMap
from models import Coordinate, DashboardSnapshot
from orchestrator import StagedOrchestrator
from reconciler import MapReconciler
from retry import RetryPolicy
from state import DashboardState

logger = logging.getLogger("saferoute")


class Dashboard:

    def __init__(
        self,
        inference=None,
        state: Optional[DashboardState] = None,
        map_view=None,
        retry_policy: Optional[RetryPolicy] = None,
        stage_delay: float = STAGE_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.inference = inference if inference is not None else GeminiInference()
        self.state = state or DashboardState()
        self.map_view = map_view if map_view is not None else LayerMap()
        self.reconciler = MapReconciler(self.map_view)
        self.orchestrator = StagedOrchestrator(
            self.state,
            self.inference,
            retry_policy=retry_policy or RetryPolicy(sleep=sleep),
            stage_delay=stage_delay,
            on_complete=self.reconcile,
            sleep=sleep,
        )
        self.chat = ChatSessionAdapter(self.state, self.inference.create_chat)

    def snapshot(self) -> DashboardSnapshot:
        return self.state.snapshot()

    def open_map(self, zoom: int = MAP_ZOOM) -> None:
        self.map_view.create_view(self.state.location, zoom)
        self.reconcile()

    def reconcile(self) -> bool:
        return self.reconciler.reconcile(self.state.snapshot())

    async def refresh(self) -> bool:
        return await self.orchestrator.run()

    # ── user actions ──

    def set_distress(self, active: Optional[bool] = None) -> bool:
        if active is None:
            self.state.toggle_distress()
        else:
            self.state.set_distress(active)
        logger.info(f"Distress mode {'ON' if self.state.is_distress else 'off'}")
        self.reconcile()
        return self.state.is_distress

    def toggle_threats(self) -> bool:
        show = not self.state.snapshot().showThreats
        self.state.set_show_threats(show)
        self.reconcile()
        return show

    def move_to(self, location: Coordinate, location_name: Optional[str] = None) -> None:
        self.state.set_location(location, location_name)
        self.reconcile()

    def set_destination(self, destination: Optional[Coordinate]) -> None:
        self.state.set_destination(destination)
        self.reconcile()

    async def send_chat(self, text: str) -> Optional[str]:
        return await self.chat.send_turn(text)

    def map_html(self) -> str:
        if not self.map_view.initialized:
            self.open_map()
        return self.map_view.to_html()
