"""SafeRoute Backend — FastAPI Routes"""

import asyncio
import logging
import time

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse

from config import API_RATE_LIMIT, API_RATE_WINDOW, AUTO_REFRESH_ON_STARTUP, GEMINI_API_KEY
from dashboard import Dashboard
from models import (
    ChatRequest, ChatResponse, DashboardSnapshot, DestinationUpdate,
    DistressUpdate, LocationUpdate, RefreshResponse,
)

logger = logging.getLogger("saferoute")


# ─────────────────────────── App Setup ──────────────────────────

app = FastAPI(title="SafeRoute Sentinel API", version="1.0.0")

_allowed_origins = [
    f"http://localhost:{p}" for p in range(3000, 3010)
] + [
    f"http://localhost:{p}" for p in range(5173, 5180)
] + [
    f"http://127.0.0.1:{p}" for p in range(3000, 3010)
] + [
    f"http://127.0.0.1:{p}" for p in range(5173, 5180)
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

dashboard = Dashboard()
_background_tasks: set[asyncio.Task] = set()


def get_dashboard() -> Dashboard:
    return dashboard


# ─────────────────────────── Startup Event ──────────────────────

@app.on_event("startup")
async def startup_event():
    """Create the map view and kick off the first staged refresh."""
    dashboard.open_map()
    if not GEMINI_API_KEY:
        logger.warning("GEMINI_API_KEY not set; inference stages will fail and chat will use fallbacks")
    if AUTO_REFRESH_ON_STARTUP:
        task = asyncio.create_task(dashboard.refresh())
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)


# ─────────────────────────── Rate Limiting ──────────────────────

_rate_store: dict[str, list[float]] = {}
_RATE_EVICT_INTERVAL = 300  # evict stale IPs every 5 minutes
_last_rate_evict = 0.0


@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    client_ip = request.client.host if request.client else "unknown"
    now = time.time()

    global _last_rate_evict
    if now - _last_rate_evict > _RATE_EVICT_INTERVAL:
        stale_ips = [ip for ip, timestamps in _rate_store.items()
                     if not timestamps or now - timestamps[-1] > API_RATE_WINDOW * 2]
        for ip in stale_ips:
            del _rate_store[ip]
        _last_rate_evict = now

    timestamps = [t for t in _rate_store.get(client_ip, []) if now - t < API_RATE_WINDOW]
    if len(timestamps) >= API_RATE_LIMIT:
        _rate_store[client_ip] = timestamps
        return JSONResponse(
            status_code=429,
            content={"detail": "Rate limit exceeded. Try again in a minute."},
        )

    timestamps.append(now)
    _rate_store[client_ip] = timestamps
    return await call_next(request)


# ─────────────────────────── Dashboard ──────────────────────────

@app.get("/api/health")
async def health(dash: Dashboard = Depends(get_dashboard)):
    return {
        "status": "ok",
        "mapReady": dash.map_view.initialized,
        "refreshing": dash.orchestrator.running,
    }


@app.get("/api/dashboard", response_model=DashboardSnapshot)
async def get_dashboard_state(dash: Dashboard = Depends(get_dashboard)):
    return dash.snapshot()


@app.post("/api/refresh", response_model=RefreshResponse, status_code=202)
async def refresh(background_tasks: BackgroundTasks, dash: Dashboard = Depends(get_dashboard)):
    """Start a staged refresh. Overlapping runs are rejected rather than queued."""
    # claimed before responding so a second POST sees the run immediately
    if not dash.orchestrator.acquire():
        raise HTTPException(status_code=409, detail="A refresh is already in progress.")
    background_tasks.add_task(dash.orchestrator.run_acquired)
    return RefreshResponse(started=True, detail="Refresh scheduled.")


@app.post("/api/distress", response_model=DashboardSnapshot)
async def set_distress(req: DistressUpdate, dash: Dashboard = Depends(get_dashboard)):
    dash.set_distress(req.active)
    return dash.snapshot()


@app.post("/api/threats/toggle", response_model=DashboardSnapshot)
async def toggle_threats(dash: Dashboard = Depends(get_dashboard)):
    dash.toggle_threats()
    return dash.snapshot()


@app.post("/api/location", response_model=DashboardSnapshot)
async def update_location(req: LocationUpdate, dash: Dashboard = Depends(get_dashboard)):
    dash.move_to((req.lat, req.lng), req.locationName)
    return dash.snapshot()


@app.post("/api/destination", response_model=DashboardSnapshot)
async def update_destination(req: DestinationUpdate, dash: Dashboard = Depends(get_dashboard)):
    dash.set_destination((req.lat, req.lng))
    return dash.snapshot()


@app.get("/api/map", response_class=HTMLResponse)
async def get_map(dash: Dashboard = Depends(get_dashboard)):
    return HTMLResponse(dash.map_html())


# ─────────────────────────── Safety Chat ────────────────────────

@app.post("/api/chat", response_model=ChatResponse)
async def safety_chat(req: ChatRequest, dash: Dashboard = Depends(get_dashboard)):
    """Conversational safety companion. Always answers, falling back to a local reply."""
    reply = await dash.send_chat(req.message)
    return ChatResponse(reply=reply, messages=list(dash.snapshot().messages))
