"""``get_marine_conditions``: sea state and activity suitability offshore."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List

from pydantic import Field

from weather_mcp.constants import FORECAST_API_URL, MARINE_API_URL, TTL_REALTIME
from weather_mcp.fetch import build_url
from weather_mcp.tools.common import (
    CoordinatesInput,
    cardinal_direction,
    coords_label,
    day_label,
    num,
    pick,
    sea_state,
    weather_condition,
)
from weather_mcp.tools.marine import FEET_TO_METRES
from weather_mcp.tools.registry import ToolContext, ToolSpec

MARINE_FIELDS = [
    "wave_height",
    "wave_direction",
    "wave_period",
    "swell_wave_height",
    "swell_wave_direction",
    "swell_wave_period",
    "wind_wave_height",
    "wind_wave_direction",
    "ocean_current_velocity",
    "ocean_current_direction",
]

WEATHER_FIELDS = [
    "temperature_2m",
    "wind_speed_10m",
    "wind_direction_10m",
    "wind_gusts_10m",
    "weather_code",
]

RATING_MARKS = {"Excellent": "✓", "Good": "✓", "Fair": "~", "Poor": "✗"}


class MarineConditionsInput(CoordinatesInput):
    latitude: float = Field(..., ge=-90, le=90, description="Latitude of the ocean location (-90 to 90)")
    longitude: float = Field(
        ..., ge=-180, le=180, description="Longitude of the ocean location (-180 to 180)"
    )


@dataclass(frozen=True)
class ActivityRating:
    activity: str
    rating: str
    notes: str

    @property
    def mark(self) -> str:
        return RATING_MARKS.get(self.rating, "⚠️")


@dataclass
class MarineAssessment:
    sea_state: str
    sea_state_code: int
    overall: str
    activities: List[ActivityRating] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


# ── Activity ratings ─────────────────────────────────────────────────
# Wave heights are in feet, current velocity in knots, speeds in mph.


def rate_swimming(wave_ft: float, current: float, temp_f: float) -> ActivityRating:
    if wave_ft > 4 or current > 1.5:
        return ActivityRating("swimming", "Dangerous", "Waves/currents too strong")
    if temp_f < 60:
        return ActivityRating("swimming", "Poor", "Water likely too cold")
    if wave_ft > 2 or current > 0.8:
        return ActivityRating("swimming", "Fair", "Moderate waves/currents")
    if wave_ft > 1:
        return ActivityRating("swimming", "Good", "Small waves present")
    return ActivityRating("swimming", "Excellent", "Calm conditions")


def rate_surfing(wave_ft: float, period: float, swell_ft: float, wind: float) -> ActivityRating:
    if wave_ft < 1 and swell_ft < 1:
        return ActivityRating("surfing", "Poor", "Waves too small")
    if wave_ft > 10:
        return ActivityRating("surfing", "Dangerous", "Expert only - very large waves")
    if wind > 20:
        return ActivityRating("surfing", "Fair", "Choppy conditions from wind")
    if 3 <= wave_ft <= 6 and period >= 8:
        return ActivityRating("surfing", "Excellent", "Good wave height and period")
    if wave_ft >= 2 and period >= 6:
        return ActivityRating("surfing", "Good", "Decent conditions")
    return ActivityRating("surfing", "Fair", "Marginal conditions")


def rate_boating(sea_code: int, wind: float, gusts: float) -> ActivityRating:
    if sea_code >= 6 or gusts >= 45:
        return ActivityRating("boating", "Dangerous", "Hazardous conditions")
    if sea_code >= 4 or wind >= 25:
        return ActivityRating("boating", "Poor", "Rough conditions")
    if sea_code >= 3 or wind >= 15:
        return ActivityRating("boating", "Fair", "Moderate conditions")
    if sea_code <= 1 and wind < 10:
        return ActivityRating("boating", "Excellent", "Calm seas")
    return ActivityRating("boating", "Good", "Light seas")


def rate_fishing(sea_code: int, wind: float, weather_code: int) -> ActivityRating:
    if sea_code >= 5:
        return ActivityRating("fishing", "Poor", "Too rough")
    if weather_code >= 61:
        return ActivityRating("fishing", "Fair", "Precipitation expected")
    if sea_code <= 2 and wind < 15:
        return ActivityRating("fishing", "Excellent", "Ideal conditions")
    if sea_code <= 3:
        return ActivityRating("fishing", "Good", "Manageable conditions")
    return ActivityRating("fishing", "Fair", "Moderate conditions")


def rate_diving(wave_ft: float, current: float, sea_code: int) -> ActivityRating:
    if sea_code >= 4 or current > 1.5:
        return ActivityRating("diving", "Dangerous", "Conditions too rough")
    if wave_ft > 3 or current > 1:
        return ActivityRating("diving", "Poor", "Reduced visibility likely")
    if wave_ft > 1.5 or current > 0.5:
        return ActivityRating("diving", "Fair", "Some surge possible")
    if wave_ft <= 1 and current <= 0.3:
        return ActivityRating("diving", "Excellent", "Calm conditions, good visibility")
    return ActivityRating("diving", "Good", "Light conditions")


def assess_marine_conditions(marine: Dict[str, Any], weather: Dict[str, Any]) -> MarineAssessment:
    m = marine["current"]
    w = weather["current"]
    wave_ft = m.get("wave_height")
    if wave_ft is None:
        raise ValueError("No wave data available for this location")

    current = m.get("ocean_current_velocity") or 0
    wind = w.get("wind_speed_10m") or 0
    gusts = w.get("wind_gusts_10m") or 0
    state = sea_state(wave_ft * FEET_TO_METRES)

    warnings: List[str] = []
    overall = "Safe"
    if state.code >= 6:
        overall = "Hazardous"
        warnings.append("Dangerous sea state - avoid water activities")
    elif state.code >= 4 or gusts >= 35:
        overall = "Caution"
        if state.code >= 4:
            warnings.append("Rough seas - exercise caution")
        if gusts >= 35:
            warnings.append("Strong wind gusts")
    if wind >= 25:
        warnings.append("Strong sustained winds")
    if current > 2:
        warnings.append("Strong currents present")

    activities = [
        rate_swimming(wave_ft, current, w.get("temperature_2m") or 0),
        rate_surfing(
            wave_ft,
            m.get("wave_period") or 0,
            m.get("swell_wave_height") or 0,
            wind,
        ),
        rate_boating(state.code, wind, gusts),
        rate_fishing(state.code, wind, w.get("weather_code") or 0),
        rate_diving(wave_ft, current, state.code),
    ]
    return MarineAssessment(
        sea_state=state.description,
        sea_state_code=state.code,
        overall=overall,
        activities=activities,
        warnings=warnings,
    )


def _direction(degrees: Any) -> str:
    return cardinal_direction(degrees) if degrees is not None else "N/A"


def format_marine_conditions_report(
    latitude: float,
    longitude: float,
    marine: Dict[str, Any],
    weather: Dict[str, Any],
    a: MarineAssessment,
) -> str:
    m = marine["current"]
    mu = marine.get("current_units", {})
    w = weather["current"]
    wu = weather.get("current_units", {})

    lines = [
        f"Marine Conditions at {coords_label(latitude, longitude, 4)}",
        "",
        f"=== OVERALL: {a.overall.upper()} ===",
        f"Sea State: {a.sea_state_code} - {a.sea_state}",
    ]
    if a.warnings:
        lines.append("")
        lines.append("Warnings:")
        lines.extend(f"  ⚠️ {warning}" for warning in a.warnings)

    lines.append("")
    lines.append("=== Activity Suitability ===")
    for act in a.activities:
        lines.append(f"  {act.mark} {act.activity.capitalize()}: {act.rating} - {act.notes}")

    def measure(key: str, default_unit: str) -> str:
        return f"{num(m.get(key))} {mu.get(key, default_unit)}"

    lines.extend(
        [
            "",
            "=== Waves ===",
            f"Combined Height: {measure('wave_height', 'ft')}",
            f"Direction: {num(m.get('wave_direction'))}° (from {_direction(m.get('wave_direction'))})",
            f"Period: {measure('wave_period', 's')}",
            "",
            "=== Swell ===",
            f"Height: {measure('swell_wave_height', 'ft')}",
            f"Direction: {num(m.get('swell_wave_direction'))}° "
            f"(from {_direction(m.get('swell_wave_direction'))})",
            f"Period: {measure('swell_wave_period', 's')}",
            "",
            "=== Wind Waves ===",
            f"Height: {measure('wind_wave_height', 'ft')}",
            f"Direction: {num(m.get('wind_wave_direction'))}° "
            f"(from {_direction(m.get('wind_wave_direction'))})",
            "",
            "=== Current ===",
            f"Velocity: {measure('ocean_current_velocity', 'kn')}",
            f"Direction: {num(m.get('ocean_current_direction'))}° "
            f"(towards {_direction(m.get('ocean_current_direction'))})",
            "",
            "=== Weather ===",
            f"Condition: {weather_condition(w.get('weather_code'))}",
            f"Air Temperature: {num(w.get('temperature_2m'))}{wu.get('temperature_2m', '°F')}",
            f"Wind: {num(w.get('wind_speed_10m'))} {wu.get('wind_speed_10m', 'mph')} "
            f"from {_direction(w.get('wind_direction_10m'))}",
            f"Gusts: {num(w.get('wind_gusts_10m'))} {wu.get('wind_gusts_10m', 'mph')}",
        ]
    )

    daily = marine.get("daily")
    if daily and daily.get("time"):
        height_unit = marine.get("daily_units", {}).get("wave_height_max", "ft")
        lines.append("")
        lines.append("=== 3-Day Wave Forecast ===")
        for i, day in enumerate(daily["time"]):
            lines.append(
                f"  {day_label(day)}: Max {num(pick(daily, 'wave_height_max', i))} {height_unit}, "
                f"Period {num(pick(daily, 'wave_period_max', i))}s"
            )

    return "\n".join(lines)


async def get_marine_conditions(params: MarineConditionsInput, ctx: ToolContext) -> str:
    coords = {"latitude": params.latitude, "longitude": params.longitude}
    marine_url = build_url(
        MARINE_API_URL,
        {
            **coords,
            "current": MARINE_FIELDS,
            "daily": ["wave_height_max", "wave_period_max"],
            "length_unit": "imperial",
            "timezone": "auto",
            "forecast_days": 3,
        },
    )
    weather_url = build_url(
        FORECAST_API_URL,
        {
            **coords,
            "current": WEATHER_FIELDS,
            "temperature_unit": "fahrenheit",
            "wind_speed_unit": "mph",
            "timezone": "auto",
        },
    )
    marine, weather = await asyncio.gather(
        ctx.fetcher.fetch_json(marine_url, ttl=TTL_REALTIME),
        ctx.fetcher.fetch_json(weather_url, ttl=TTL_REALTIME),
    )
    assessment = assess_marine_conditions(marine, weather)
    return format_marine_conditions_report(
        params.latitude, params.longitude, marine, weather, assessment
    )


TOOL = ToolSpec(
    name="get_marine_conditions",
    description=(
        "Get comprehensive marine conditions assessment for ocean coordinates. Includes "
        "waves, swell, wind, currents, and activity recommendations for swimming, "
        "surfing, boating, fishing, and diving."
    ),
    input_model=MarineConditionsInput,
    handler=get_marine_conditions,
    category="compound",
    tags=("marine", "boating", "surfing", "fishing", "diving"),
    subject="marine conditions",
)
