"""``get_fire_weather``: wildfire risk from heat, dryness, wind and fuel moisture."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from pydantic import Field

from weather_mcp.constants import FORECAST_API_URL, TTL_REALTIME
from weather_mcp.fetch import build_url
from weather_mcp.tools.common import (
    CityInput,
    Location,
    cardinal_direction,
    fixed,
    geocode,
    num,
    pick,
)
from weather_mcp.tools.registry import ToolContext, ToolSpec

LOOKBACK_DAYS = 7

# (minimum score, level, recommendations), highest first
RISK_LEVELS = (
    (
        80,
        "Extreme",
        (
            "Avoid all outdoor burning",
            "Have evacuation plan ready",
            "Clear defensible space around structures",
        ),
    ),
    (
        60,
        "Very High",
        (
            "No outdoor burning",
            "Avoid activities that create sparks",
            "Monitor local fire conditions",
        ),
    ),
    (
        40,
        "High",
        ("Exercise caution with fire activities", "Ensure campfires are fully extinguished"),
    ),
    (20, "Moderate", ("Be careful with outdoor burning", "Follow local fire restrictions")),
    (0, "Low", ("Normal fire precautions apply",)),
)


class FireWeatherInput(CityInput):
    city: str = Field(
        ...,
        min_length=1,
        description="City or location name to assess fire weather for",
    )


@dataclass
class FireConditions:
    temperature: float
    relative_humidity: float
    wind_speed: float
    wind_gusts: float
    recent_precipitation: float
    soil_moisture: float


@dataclass
class FireRisk:
    level: str
    score: int
    factors: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


def assess_fire_risk(c: FireConditions) -> FireRisk:
    """Score fire danger 0-100 and map it to a level with advice."""
    score = 0
    factors: List[str] = []

    if c.temperature >= 100:
        score += 25
        factors.append("Extreme heat (100°F+)")
    elif c.temperature >= 90:
        score += 20
        factors.append("High temperatures (90°F+)")
    elif c.temperature >= 80:
        score += 10
        factors.append("Warm temperatures")

    if c.relative_humidity < 15:
        score += 30
        factors.append("Critical humidity (<15%)")
    elif c.relative_humidity < 25:
        score += 25
        factors.append("Very low humidity (<25%)")
    elif c.relative_humidity < 35:
        score += 15
        factors.append("Low humidity (<35%)")

    if c.wind_gusts >= 50:
        score += 25
        factors.append("Dangerous wind gusts (50+ mph)")
    elif c.wind_gusts >= 35:
        score += 20
        factors.append("Strong wind gusts (35+ mph)")
    elif c.wind_speed >= 20:
        score += 10
        factors.append("Moderate winds (20+ mph)")

    if c.recent_precipitation == 0:
        score += 15
        factors.append(f"No rain in {LOOKBACK_DAYS} days")
    elif c.recent_precipitation < 0.1:
        score += 10
        factors.append(f"Minimal rain in {LOOKBACK_DAYS} days (<0.1 in)")

    if c.soil_moisture < 0.1:
        score += 15
        factors.append("Very dry soil conditions")
    elif c.soil_moisture < 0.2:
        score += 10
        factors.append("Dry soil conditions")

    score = min(score, 100)
    for threshold, level, advice in RISK_LEVELS[:-1]:
        if score >= threshold:
            return FireRisk(level, score, factors, list(advice))
    _, level, advice = RISK_LEVELS[-1]
    return FireRisk(level, score, factors, list(advice))


def conditions_from_response(data: Dict[str, Any]) -> FireConditions:
    current = data["current"]
    daily = data.get("daily", {})
    soil = pick(data.get("hourly", {}), "soil_moisture_0_to_1cm", 0)
    if soil is None:
        raise ValueError("No soil moisture data available for this location")
    precip = [v for v in (daily.get("precipitation_sum") or [])[:LOOKBACK_DAYS] if v is not None]
    return FireConditions(
        temperature=current["temperature_2m"],
        relative_humidity=current["relative_humidity_2m"],
        wind_speed=current.get("wind_speed_10m") or 0,
        wind_gusts=current.get("wind_gusts_10m") or 0,
        recent_precipitation=sum(precip),
        soil_moisture=soil,
    )


def format_fire_report(location: Location, data: Dict[str, Any], risk: FireRisk) -> str:
    current = data["current"]
    c_units = data.get("current_units", {})
    daily = data.get("daily", {})
    d_units = data.get("daily_units", {})
    conditions = conditions_from_response(data)
    highs = daily.get("temperature_2m_max") or [None]

    lines = [
        f"Fire Weather Assessment for {location.label}",
        "",
        f"=== FIRE RISK: {risk.level.upper()} ===",
        f"Risk Score: {risk.score}/100",
        "",
        "Contributing Factors:",
    ]
    lines.extend(f"  • {f}" for f in risk.factors or ["No significant risk factors"])
    lines.append("")
    lines.append("Recommendations:")
    lines.extend(f"  • {r}" for r in risk.recommendations)
    lines.extend(
        [
            "",
            "=== Current Conditions ===",
            f"Temperature: {num(current['temperature_2m'])}{c_units.get('temperature_2m', '°F')}",
            f"Today's High: {num(highs[-1])}{d_units.get('temperature_2m_max', '°F')}",
            f"Relative Humidity: {num(current['relative_humidity_2m'])}"
            f"{c_units.get('relative_humidity_2m', '%')}",
            "",
            "=== Wind ===",
            f"Speed: {num(current.get('wind_speed_10m'))} {c_units.get('wind_speed_10m', 'mph')}",
            f"Gusts: {num(current.get('wind_gusts_10m'))} {c_units.get('wind_gusts_10m', 'mph')}",
            f"Direction: {num(current.get('wind_direction_10m'))}° "
            f"(from {cardinal_direction(current.get('wind_direction_10m') or 0)})",
            "",
            "=== Moisture ===",
            f"Last {LOOKBACK_DAYS} Days Precipitation: {conditions.recent_precipitation:.2f} "
            f"{d_units.get('precipitation_sum', 'inch')}",
            f"Surface Soil Moisture: {fixed(conditions.soil_moisture * 100)}%",
        ]
    )
    return "\n".join(lines)


async def get_fire_weather(params: FireWeatherInput, ctx: ToolContext) -> str:
    location = await geocode(ctx, params.city, noun="location")
    url = build_url(
        FORECAST_API_URL,
        {
            "latitude": location.latitude,
            "longitude": location.longitude,
            "current": [
                "temperature_2m",
                "relative_humidity_2m",
                "wind_speed_10m",
                "wind_gusts_10m",
                "wind_direction_10m",
            ],
            "daily": ["temperature_2m_max", "precipitation_sum"],
            "hourly": "soil_moisture_0_to_1cm",
            "temperature_unit": "fahrenheit",
            "wind_speed_unit": "mph",
            "precipitation_unit": "inch",
            "timezone": "auto",
            "past_days": LOOKBACK_DAYS,
            "forecast_days": 1,
            "forecast_hours": 1,
        },
    )
    data = await ctx.fetcher.fetch_json(url, ttl=TTL_REALTIME)
    risk = assess_fire_risk(conditions_from_response(data))
    return format_fire_report(location, data, risk)


TOOL = ToolSpec(
    name="get_fire_weather",
    description=(
        "Get fire weather assessment for a location. Combines wind, humidity, temperature, "
        "precipitation history, and soil moisture to assess wildfire risk with recommendations."
    ),
    input_model=FireWeatherInput,
    handler=get_fire_weather,
    category="compound",
    tags=("fire", "wildfire", "safety", "risk-assessment"),
    subject="fire weather",
)
