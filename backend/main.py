"""
SafeRoute Sentinel Backend — FastAPI + Gemini
Modular entry point. All logic is split across:
  config.py, models.py, retry.py, parsers.py, inference.py, state.py,
  orchestrator.py, mapview.py, reconciler.py, chat.py, dashboard.py, routes.py
"""

import logging

logging.basicConfig(level=logging.INFO)

# Import the FastAPI app from routes (this also builds the dashboard)
from routes import app  # noqa: F401,E402

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
