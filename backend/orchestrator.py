"""SafeRoute Backend — Staged inference orchestrator

Runs the four dashboard requests strictly in order
    score -> threat zones -> route -> risk trend
with a fixed pause between consecutive stages so a cold start never bursts
past the inference quota. Each request goes through the rate-limit retry
policy. A failed stage leaves its state field untouched and the run moves
on; only the score stage has a fallback value for unparseable responses.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from config import STAGE_DELAY
from parsers import parse_risk_trend, parse_route, parse_safety_score, parse_threat_zones, ResponseParseError
from retry import RetryPolicy, is_rate_limited
from state import DashboardState

logger = logging.getLogger("saferoute.orchestrator")


@dataclass(frozen=True)
class Stage:
    name: str
    request: Callable[[DashboardState], Awaitable[str]]
    parse: Callable[[str], Any]
    apply: Callable[[DashboardState, Any], None]


def build_stages(inference) -> list[Stage]:
    """The fixed stage order for one dashboard refresh."""
    return [
        Stage(
            "score",
            lambda st: inference.analyze_route_safety(st.location_name),
            parse_safety_score,  # never raises; substitutes the fallback score
            DashboardState.set_score,
        ),
        Stage(
            "threat_zones",
            lambda st: inference.threat_zones(*st.location),
            parse_threat_zones,
            DashboardState.set_threat_zones,
        ),
        Stage(
            "route",
            _route_request(inference),
            parse_route,
            DashboardState.set_route,
        ),
        Stage(
            "risk_trend",
            lambda st: inference.risk_trend(*st.location),
            parse_risk_trend,
            DashboardState.set_risk_trend,
        ),
    ]


def _route_request(inference):
    async def request(st: DashboardState) -> str:
        if st.destination is None:
            raise ValueError("no destination set")
        return await inference.safe_route(st.location, st.destination)
    return request


class StagedOrchestrator:

    def __init__(
        self,
        state: DashboardState,
        inference,
        retry_policy: Optional[RetryPolicy] = None,
        stage_delay: float = STAGE_DELAY,
        on_complete: Optional[Callable[[], None]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.state = state
        self.stages = build_stages(inference)
        self.retry_policy = retry_policy or RetryPolicy(sleep=sleep)
        self.stage_delay = stage_delay
        self.on_complete = on_complete
        self._sleep = sleep
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def acquire(self) -> bool:
        """Claim the orchestrator for one run without starting it.

        Returns False if a run is already claimed. A successful claim must be
        followed by ``run_acquired()``, which releases it.
        """
        if self._running:
            return False
        self._running = True
        self.state.set_loading(True)
        return True

    async def run(self) -> bool:
        """Run every stage once. Returns False if another run is already in progress."""
        if not self.acquire():
            logger.warning("Refresh requested while a run is in progress; ignoring")
            return False
        return await self.run_acquired()

    async def run_acquired(self) -> bool:
        if not self._running:
            raise RuntimeError("run_acquired() called without acquire()")
        self.state.set_rate_limited(False)
        succeeded: list[str] = []
        try:
            for i, stage in enumerate(self.stages):
                if i > 0:
                    await self._sleep(self.stage_delay)
                if await self._run_stage(stage):
                    succeeded.append(stage.name)
        finally:
            self.state.set_loading(False)
            self._running = False
        logger.info(f"Refresh complete: {len(succeeded)}/{len(self.stages)} stages succeeded ({', '.join(succeeded) or 'none'})")
        if self.on_complete is not None:
            self.on_complete()
        return True

    async def _run_stage(self, stage: Stage) -> bool:
        try:
            text = await self.retry_policy.call(lambda: stage.request(self.state), label=stage.name)
        except Exception as e:
            if is_rate_limited(e):
                self.state.set_rate_limited(True)
            logger.warning(f"Stage {stage.name} failed: {e}")
            return False

        try:
            result = stage.parse(text)
        except ResponseParseError as e:
            logger.error(f"Stage {stage.name} returned an unparseable response, no fallback: {e}")
            return False

        stage.apply(self.state, result)
        logger.info(f"Stage {stage.name} applied")
        return True
