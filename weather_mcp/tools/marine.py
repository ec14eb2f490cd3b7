"""``get_marine``: wave, swell and current data for ocean coordinates."""

from __future__ import annotations

from typing import Any, Dict

from weather_mcp.constants import MARINE_API_URL, TTL_REALTIME
from weather_mcp.fetch import build_url
from weather_mcp.tools.common import (
    Band,
    CoordinatesInput,
    cardinal_direction,
    classify,
    coords_label,
    num,
    sea_state,
)
from weather_mcp.tools.registry import ToolContext, ToolSpec

FEET_TO_METRES = 0.3048

CURRENT_FIELDS = [
    "wave_height",
    "wave_direction",
    "wave_period",
    "wind_wave_height",
    "wind_wave_direction",
    "wind_wave_period",
    "swell_wave_height",
    "swell_wave_direction",
    "swell_wave_period",
    "ocean_current_velocity",
    "ocean_current_direction",
]

# Wave height in metres, with the activities each height suits.
WAVE_CONDITIONS = (
    Band(0.3, "Flat", "Ideal for swimming, kayaking"),
    Band(1.0, "Small waves", "Good for beginners, SUP"),
    Band(2.0, "Moderate waves", "Suitable for intermediate surfers"),
    Band(3.5, "Large waves", "Advanced surfers only"),
    Band(6.0, "Very large waves", "Experts only, dangerous"),
    Band(float("inf"), "Extreme waves", "Stay on shore"),
)


class MarineInput(CoordinatesInput):
    pass


def wave_conditions(wave_height_m: float) -> Band:
    return classify(wave_height_m, WAVE_CONDITIONS)


def _direction(degrees: Any) -> str:
    return cardinal_direction(degrees) if degrees is not None else "N/A"


def format_marine_report(latitude: float, longitude: float, data: Dict[str, Any]) -> str:
    current = data["current"]
    units = data.get("current_units", {})
    if current.get("wave_height") is None:
        raise ValueError("No marine data available for this location (is it on land?)")

    height_m = current["wave_height"] * FEET_TO_METRES
    state = sea_state(height_m)
    conditions = wave_conditions(height_m)

    def unit(key: str, default: str) -> str:
        return units.get(key, default)

    lines = [
        f"Marine Conditions at {coords_label(latitude, longitude, 4)}",
        "",
        "=== Overall Conditions ===",
        f"Sea State: {state.code} - {state.description}",
        f"Conditions: {conditions.label}",
        f"Suitability: {conditions.description}",
        "",
        "=== Combined Waves ===",
        f"Height: {num(current['wave_height'])} {unit('wave_height', 'ft')}",
        f"Direction: {num(current.get('wave_direction'))}° "
        f"(from {_direction(current.get('wave_direction'))})",
        f"Period: {num(current.get('wave_period'))} {unit('wave_period', 's')}",
        "",
        "=== Wind Waves ===",
        f"Height: {num(current.get('wind_wave_height'))} {unit('wind_wave_height', 'ft')}",
        f"Direction: {num(current.get('wind_wave_direction'))}° "
        f"(from {_direction(current.get('wind_wave_direction'))})",
        f"Period: {num(current.get('wind_wave_period'))} {unit('wind_wave_period', 's')}",
        "",
        "=== Swell ===",
        f"Height: {num(current.get('swell_wave_height'))} {unit('swell_wave_height', 'ft')}",
        f"Direction: {num(current.get('swell_wave_direction'))}° "
        f"(from {_direction(current.get('swell_wave_direction'))})",
        f"Period: {num(current.get('swell_wave_period'))} {unit('swell_wave_period', 's')}",
        "",
        "=== Ocean Current ===",
        f"Velocity: {num(current.get('ocean_current_velocity'))} "
        f"{unit('ocean_current_velocity', 'km/h')}",
        f"Direction: {num(current.get('ocean_current_direction'))}° "
        f"(towards {_direction(current.get('ocean_current_direction'))})",
    ]
    return "\n".join(lines)


async def get_marine(params: MarineInput, ctx: ToolContext) -> str:
    url = build_url(
        MARINE_API_URL,
        {
            "latitude": params.latitude,
            "longitude": params.longitude,
            "current": CURRENT_FIELDS,
            "length_unit": "imperial",
            "timezone": "auto",
        },
    )
    data = await ctx.fetcher.fetch_json(url, ttl=TTL_REALTIME)
    return format_marine_report(params.latitude, params.longitude, data)


TOOL = ToolSpec(
    name="get_marine",
    description=(
        "Get current marine weather conditions for ocean coordinates. Returns wave "
        "height/direction/period, swell data, and ocean currents."
    ),
    input_model=MarineInput,
    handler=get_marine,
    category="primitive",
    tags=("marine", "waves", "ocean"),
    subject="marine data",
)
