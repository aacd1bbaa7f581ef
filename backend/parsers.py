"""SafeRoute Backend — Inference response parsing

Every response from the inference service is untrusted text. It is cut down
to the outermost JSON value, decoded, then validated against the pydantic
models before anything is written to the dashboard state.
"""

import json
import logging

from pydantic import TypeAdapter, ValidationError

from models import RiskPoint, RouteData, SafetyScore, ThreatZone

logger = logging.getLogger("saferoute.parsers")


class ResponseParseError(ValueError):
    """The response text did not match the expected shape."""


FALLBACK_SAFETY_SCORE = SafetyScore(
    total=82,
    lighting=85,
    safetyHistory=90,
    crowdActivity=75,
    description="Standard safe urban zone with consistent lighting and moderate traffic.",
)

_ZONES = TypeAdapter(list[ThreatZone])
_TREND = TypeAdapter(list[RiskPoint])


def extract_json(text: str, opener: str = "{"):
    """Decode the outermost JSON object (``{``) or array (``[``) in ``text``."""
    if not isinstance(text, str):
        raise ResponseParseError(f"expected text, got {type(text).__name__}")
    closer = "}" if opener == "{" else "]"
    text = text.strip()
    start_idx = text.find(opener)
    end_idx = text.rfind(closer)
    if start_idx == -1 or end_idx < start_idx:
        raise ResponseParseError(f"no JSON {opener}{closer} found in response")
    try:
        return json.loads(text[start_idx:end_idx + 1])
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"invalid JSON: {e}") from e


def _validate(adapter_or_model, data, what: str):
    try:
        if isinstance(adapter_or_model, TypeAdapter):
            return adapter_or_model.validate_python(data)
        return adapter_or_model.model_validate(data)
    except ValidationError as e:
        raise ResponseParseError(f"{what} failed validation: {e.error_count()} error(s)") from e


def parse_safety_score(text: str) -> SafetyScore:
    """Parse a score response, substituting ``FALLBACK_SAFETY_SCORE`` on any mismatch."""
    try:
        return _validate(SafetyScore, extract_json(text, "{"), "safety score")
    except ResponseParseError as e:
        logger.error(f"Parse error, using fallback safety data: {e}")
        return FALLBACK_SAFETY_SCORE


def parse_threat_zones(text: str) -> list[ThreatZone]:
    zones = _validate(_ZONES, extract_json(text, "["), "threat zones")
    ids = [z.id for z in zones]
    if len(set(ids)) != len(ids):
        raise ResponseParseError("threat zone ids are not unique")
    return zones


def parse_route(text: str) -> RouteData:
    return _validate(RouteData, extract_json(text, "{"), "route")


def parse_risk_trend(text: str) -> list[RiskPoint]:
    return _validate(_TREND, extract_json(text, "["), "risk trend")
