"""``get_wind``: current wind, Beaufort force, advisories and forecasts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from weather_mcp.constants import FORECAST_API_URL, TTL_REALTIME
from weather_mcp.fetch import build_url
from weather_mcp.tools.common import (
    CityInput,
    Location,
    cardinal_direction,
    day_label,
    geocode,
    hour_label,
    num,
    pick,
)
from weather_mcp.tools.registry import ToolContext, ToolSpec

WIND_FIELDS = ["wind_speed_10m", "wind_direction_10m", "wind_gusts_10m"]
DAILY_FIELDS = ["wind_speed_10m_max", "wind_gusts_10m_max", "wind_direction_10m_dominant"]

# Advisory thresholds (mph)
WIND_ADVISORY = 31
HIGH_WIND_WARNING = 40
GUST_ADVISORY = 46
GUST_WARNING = 58


@dataclass(frozen=True)
class Beaufort:
    force: int
    description: str
    max_speed: float
    sea: str
    land: str


BEAUFORT_SCALE = (
    Beaufort(0, "Calm", 1, "Sea like a mirror", "Smoke rises vertically"),
    Beaufort(1, "Light air", 3, "Ripples", "Smoke drifts"),
    Beaufort(2, "Light breeze", 7, "Small wavelets", "Leaves rustle"),
    Beaufort(3, "Gentle breeze", 12, "Large wavelets", "Leaves in constant motion"),
    Beaufort(4, "Moderate breeze", 18, "Small waves", "Small branches move"),
    Beaufort(5, "Fresh breeze", 24, "Moderate waves", "Small trees sway"),
    Beaufort(6, "Strong breeze", 31, "Large waves", "Large branches move"),
    Beaufort(7, "Near gale", 38, "Sea heaps up", "Whole trees move"),
    Beaufort(8, "Gale", 46, "Moderately high waves", "Twigs break off"),
    Beaufort(9, "Strong gale", 54, "High waves", "Slight structural damage"),
    Beaufort(10, "Storm", 63, "Very high waves", "Trees uprooted"),
    Beaufort(11, "Violent storm", 72, "Exceptionally high waves", "Widespread damage"),
    Beaufort(12, "Hurricane", float("inf"), "Sea completely white", "Devastation"),
)


class WindInput(CityInput):
    pass


def beaufort(speed_mph: float) -> Beaufort:
    """Beaufort force for a sustained wind speed in mph."""
    for entry in BEAUFORT_SCALE:
        if speed_mph <= entry.max_speed:
            return entry
    return BEAUFORT_SCALE[-1]


def wind_warnings(speed: Optional[float], gusts: Optional[float]) -> List[str]:
    warnings = []
    speed = speed or 0
    gusts = gusts or 0
    if speed >= HIGH_WIND_WARNING:
        warnings.append("HIGH WIND WARNING: Dangerous wind speeds")
    elif speed >= WIND_ADVISORY:
        warnings.append("WIND ADVISORY: Strong winds expected")
    if gusts >= GUST_WARNING:
        warnings.append("GUST WARNING: Dangerous gusts")
    elif gusts >= GUST_ADVISORY:
        warnings.append("GUST ADVISORY: Strong gusts expected")
    return warnings


def format_wind_report(location: Location, data: Dict[str, Any]) -> str:
    current = data["current"]
    units = data.get("current_units", {})
    hourly = data.get("hourly", {})
    daily = data.get("daily", {})
    speed_unit = units.get("wind_speed_10m", "mph")

    speed = current["wind_speed_10m"]
    force = beaufort(speed)
    lines = [
        f"Wind Conditions for {location.label}",
        "",
        "=== Current Wind ===",
        f"Speed: {num(speed)} {speed_unit}",
        f"Direction: {num(current['wind_direction_10m'])}° "
        f"(from {cardinal_direction(current['wind_direction_10m'])})",
        f"Gusts: {num(current.get('wind_gusts_10m'))} {units.get('wind_gusts_10m', 'mph')}",
        "",
        f"Beaufort Scale: Force {force.force} - {force.description}",
        f"  Sea: {force.sea}",
        f"  Land: {force.land}",
    ]

    warnings = wind_warnings(speed, current.get("wind_gusts_10m"))
    if warnings:
        lines.append("")
        lines.append("=== Warnings ===")
        lines.extend(f"⚠️ {w}" for w in warnings)

    lines.append("")
    lines.append("=== 24-Hour Wind Forecast ===")
    times = hourly.get("time", [])
    for i in range(0, min(24, len(times)), 3):
        lines.append(
            f"{hour_label(times[i])}: {num(pick(hourly, 'wind_speed_10m', i))} {speed_unit} "
            f"from {cardinal_direction(pick(hourly, 'wind_direction_10m', i, 0))}, "
            f"gusts {num(pick(hourly, 'wind_gusts_10m', i))}"
        )

    lines.append("")
    lines.append("=== 7-Day Wind Forecast ===")
    for i, day in enumerate(daily.get("time", [])):
        max_speed = pick(daily, "wind_speed_10m_max", i, 0)
        lines.append(
            f"{day_label(day)}: Max {num(max_speed)} {speed_unit} "
            f"from {cardinal_direction(pick(daily, 'wind_direction_10m_dominant', i, 0))}, "
            f"gusts {num(pick(daily, 'wind_gusts_10m_max', i))} ({beaufort(max_speed).description})"
        )

    return "\n".join(lines)


async def get_wind(params: WindInput, ctx: ToolContext) -> str:
    location = await geocode(ctx, params.city)
    url = build_url(
        FORECAST_API_URL,
        {
            "latitude": location.latitude,
            "longitude": location.longitude,
            "current": WIND_FIELDS,
            "hourly": WIND_FIELDS,
            "daily": DAILY_FIELDS,
            "wind_speed_unit": "mph",
            "timezone": "auto",
            "forecast_days": 7,
            "forecast_hours": 24,
        },
    )
    data = await ctx.fetcher.fetch_json(url, ttl=TTL_REALTIME)
    return format_wind_report(location, data)


TOOL = ToolSpec(
    name="get_wind",
    description=(
        "Get wind conditions for a city. Returns current wind speed, direction, gusts, "
        "Beaufort scale, plus 24-hour and 7-day forecasts."
    ),
    input_model=WindInput,
    handler=get_wind,
    category="primitive",
    tags=("wind", "weather", "forecast"),
    subject="wind data",
)
