"""SafeRoute Backend — Configuration & Constants"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env from project root (one level up from backend/)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# ── API Keys ──
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY") or os.environ.get("VITE_GEMINI_API_KEY", "")
GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.0-flash")

# ── Retry / backoff (seconds) ──
RETRY_MAX_RETRIES = int(os.environ.get("RETRY_MAX_RETRIES", "4"))
RETRY_INITIAL_DELAY = float(os.environ.get("RETRY_INITIAL_DELAY", "2.0"))
RETRY_MAX_JITTER = float(os.environ.get("RETRY_MAX_JITTER", "1.0"))

# Substrings (lowercased) that mark a quota / throughput rejection
RATE_LIMIT_MARKERS = ("429", "quota", "exhausted")

# ── Orchestration ──
STAGE_DELAY = float(os.environ.get("STAGE_DELAY", "2.0"))
AUTO_REFRESH_ON_STARTUP = _env_bool("AUTO_REFRESH_ON_STARTUP", True)

DEFAULT_LOCATION_NAME = "Chelsea District"
DEFAULT_LOCATION = (40.7484, -74.0010)
DEFAULT_DESTINATION = (40.7580, -73.9855)
MAP_ZOOM = 14
MAP_TILES = "https://{s}.tile.basemaps.cartocdn.com/dark_all/{z}/{x}/{y}{r}.png"
MAP_ATTRIBUTION = "&copy; OpenStreetMap contributors &copy; CARTO"

# ── View styling ──
MARKER_STYLES = {
    "normal": {"color": "#ec4899", "halo": "rgba(236, 72, 153, 0.3)"},
    "distress": {"color": "#dc2626", "halo": "rgba(239, 68, 68, 0.4)"},
}

ROUTE_STYLES = {
    "normal": {"color": "#ff007f", "weight": 7, "opacity": 0.9, "dash_array": ""},
    "distress": {"color": "#ef4444", "weight": 7, "opacity": 0.9, "dash_array": "1, 10"},
}

HOTSPOT_COLORS = {
    "High": "#ef4444",
    "Medium": "#f59e0b",
    "Low": "#3b82f6",
}
HOTSPOT_FILL_OPACITY = 0.15
HOTSPOT_WEIGHT = 2
HOTSPOT_DASH_ARRAY = "5, 10"

# ── Chat companion ──
CHAT_SYSTEM_INSTRUCTION = (
    "You are the SafeRoute AI Companion for women. You provide reassuring, tactical advice "
    "based on real-time lighting, incident history, and crowd density. If danger is hinted at, "
    "immediately suggest heading to a 'Safe Haven' (commercial building or police station). Be brief."
)
CHAT_GREETING = "SafeRoute Sentinel online. Analyzing local lighting grids and witness density."
CHAT_FALLBACK_RATE_LIMITED = "Service busy. I'm still watching your route locally."
CHAT_FALLBACK_ERROR = "Signal weak, but SOS links are active."
CHAT_MAX_OUTPUT_TOKENS = 512

# ── HTTP surface ──
API_RATE_LIMIT = int(os.environ.get("API_RATE_LIMIT", "30"))  # requests per minute per IP
API_RATE_WINDOW = 60  # seconds
