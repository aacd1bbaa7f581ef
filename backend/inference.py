"""SafeRoute Backend — Gemini inference service adapter

Thin async wrapper over google-generativeai. Each request method returns the
raw response text; parsing and validation live in parsers.py so that a bad
response never crashes the caller.
"""

import logging

from config import CHAT_MAX_OUTPUT_TOKENS, CHAT_SYSTEM_INSTRUCTION, GEMINI_API_KEY, GEMINI_MODEL

logger = logging.getLogger("saferoute.inference")


class InferenceUnavailable(RuntimeError):
    """Raised when the inference service cannot be used (no API key configured)."""


class ChatSession:
    """One long-lived Gemini conversation; history is kept by the SDK session."""

    def __init__(self, session, max_output_tokens: int = CHAT_MAX_OUTPUT_TOKENS):
        self._session = session
        self._max_output_tokens = max_output_tokens

    async def send(self, text: str) -> str:
        import google.generativeai as genai

        result = await self._session.send_message_async(
            text,
            generation_config=genai.types.GenerationConfig(
                max_output_tokens=self._max_output_tokens,
            ),
        )
        return result.text.strip()


class GeminiInference:
    """Issues the four dashboard requests plus chat against a Gemini model."""

    def __init__(self, api_key: str = GEMINI_API_KEY, model_name: str = GEMINI_MODEL):
        self._api_key = api_key
        self._model_name = model_name
        self._model = None

    def _ensure_model(self):
        if self._model is not None:
            return self._model
        if not self._api_key:
            raise InferenceUnavailable("GEMINI_API_KEY is not configured")
        import google.generativeai as genai
        genai.configure(api_key=self._api_key)
        self._model = genai.GenerativeModel(self._model_name)
        logger.info(f"Gemini model ready: {self._model_name}")
        return self._model

    async def _generate_json(self, prompt: str) -> str:
        import google.generativeai as genai

        model = self._ensure_model()
        result = await model.generate_content_async(
            prompt,
            generation_config=genai.types.GenerationConfig(
                response_mime_type="application/json",
            ),
        )
        return result.text.strip()

    async def analyze_route_safety(self, location_name: str) -> str:
        prompt = f"""Perform a tactical safety analysis for a route in {location_name}.
Evaluate based on three criteria (0-100 scale):
1. lighting: Density of street illumination infrastructure.
2. safetyHistory: Absence of historical safety incidents.
3. crowdActivity: Presence of safe community foot traffic (witness density).

Return ONLY valid JSON (no markdown):
{{"total": <int 0-100>, "lighting": <int 0-100>, "safetyHistory": <int 0-100>, "crowdActivity": <int 0-100>, "description": "1-sentence summary"}}"""
        return await self._generate_json(prompt)

    async def threat_zones(self, lat: float, lng: float) -> str:
        prompt = f"""Simulate 2-3 potential risk zones (hotspots) within 2km of [{lat}, {lng}].
Intensity must be one of: High, Medium, Low. Radius is in meters.

Return ONLY valid JSON (no markdown):
[
  {{"id": "unique id", "lat": <number>, "lng": <number>, "radius": <number>, "intensity": "High|Medium|Low", "reason": "short reason"}},
  ...
]"""
        return await self._generate_json(prompt)

    async def safe_route(self, start: tuple[float, float], end: tuple[float, float]) -> str:
        prompt = f"""Generate a high-safety path for a woman walking alone from [{start[0]}, {start[1]}] to [{end[0]}, {end[1]}].
Prioritize lit main roads. Provide 6 GPS points in travel order, starting at the origin and ending at the destination.

Return ONLY valid JSON (no markdown):
{{"points": [[<lat>, <lng>], ...], "distance": "e.g. 1.4 km", "duration": "e.g. 18 min", "safetyRating": "short rating"}}"""
        return await self._generate_json(prompt)

    async def risk_trend(self, lat: float, lng: float) -> str:
        prompt = f"""Generate a 6-point safety trend for coordinate [{lat}, {lng}] over the coming hours.
Score 0-100, higher is safer.

Return ONLY valid JSON (no markdown):
[{{"time": "HH:MM", "score": <int 0-100>}}, ...]"""
        return await self._generate_json(prompt)

    def create_chat(self) -> ChatSession:
        if not self._api_key:
            raise InferenceUnavailable("GEMINI_API_KEY is not configured")
        import google.generativeai as genai
        genai.configure(api_key=self._api_key)
        model = genai.GenerativeModel(
            self._model_name,
            system_instruction=CHAT_SYSTEM_INSTRUCTION,
        )
        return ChatSession(model.start_chat(history=[]))
