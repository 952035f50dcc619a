"""Role-play instruction presets and the session configuration message."""

from __future__ import annotations

from typing import Any

from config.settings import Settings

SCENARIO_INSTRUCTIONS: dict[str, str] = {
    "default": "You are a friendly conversational AI.",
    "angry_customer": "Act as an angry customer complaining about service.",
    "sales_pitch": "Act as a curious customer evaluating a product.",
    "price_resistance": "Act as a customer pushing back on price.",
    "service_complaint": "Act as a customer reporting a service issue.",
    "landscaping_quote": "Act as a customer unhappy with a landscaping quote.",
}


def validate_scenario(scenario: str | None) -> str | None:
    if scenario is None:
        return None
    key = scenario.strip().lower()
    if key not in SCENARIO_INSTRUCTIONS:
        known = ", ".join(SCENARIO_INSTRUCTIONS)
        raise ValueError(f"Unknown scenario {scenario!r}. Choose one of: {known}")
    return key


def build_session_update(settings: Settings, scenario: str | None) -> dict[str, Any]:
    """Build the ``session.update`` message sent once the data channel opens."""

    session: dict[str, Any] = {
        "voice": settings.realtime_voice,
        "modalities": ["audio", "text"],
        "input_audio_transcription": {"model": settings.transcription_model},
        "turn_detection": {"type": settings.turn_detection_type},
    }
    key = validate_scenario(scenario)
    if key is not None:
        session["instructions"] = SCENARIO_INSTRUCTIONS[key]
    return {"type": "session.update", "session": session}
