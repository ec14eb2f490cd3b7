"""``get_outdoor_conditions``: weather, air quality, UV and pollen suitability."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import Field

from weather_mcp.constants import AIR_QUALITY_API_URL, FORECAST_API_URL, TTL_REALTIME
from weather_mcp.fetch import build_url
from weather_mcp.tools.air_quality import us_aqi_band
from weather_mcp.tools.common import CityInput, Location, geocode, num, weather_condition
from weather_mcp.tools.registry import ToolContext, ToolSpec

WEATHER_FIELDS = [
    "temperature_2m",
    "apparent_temperature",
    "relative_humidity_2m",
    "wind_speed_10m",
    "wind_gusts_10m",
    "weather_code",
    "precipitation",
]

AIR_FIELDS = [
    "us_aqi",
    "pm2_5",
    "pm10",
    "uv_index",
    "alder_pollen",
    "birch_pollen",
    "grass_pollen",
    "mugwort_pollen",
    "olive_pollen",
    "ragweed_pollen",
]

# Pollen types that count against the score, and the ones merely reported.
ALLERGEN_POLLEN = (("grass", "grass_pollen"), ("ragweed", "ragweed_pollen"), ("birch", "birch_pollen"))
REPORTED_POLLEN = (
    ("Grass", "grass_pollen"),
    ("Ragweed", "ragweed_pollen"),
    ("Birch", "birch_pollen"),
    ("Alder", "alder_pollen"),
    ("Mugwort", "mugwort_pollen"),
    ("Olive", "olive_pollen"),
)

# (minimum score, rating)
OVERALL_RATINGS = ((80, "Excellent"), (60, "Good"), (40, "Fair"), (20, "Poor"))


class OutdoorInput(CityInput):
    city: str = Field(..., min_length=1, description="City name to get outdoor conditions for")


@dataclass
class OutdoorAssessment:
    overall: str
    score: int
    weather: str
    air_quality: str
    uv_safety: str
    concerns: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


def overall_rating(score: int) -> str:
    for minimum, rating in OVERALL_RATINGS:
        if score >= minimum:
            return rating
    return "Avoid"


def uv_label(uv: float) -> str:
    if uv < 3:
        return "Low"
    if uv < 6:
        return "Moderate"
    if uv < 8:
        return "High"
    if uv < 11:
        return "Very High"
    return "Extreme"


def assess_outdoor_conditions(weather: Dict[str, Any], air: Dict[str, Any]) -> OutdoorAssessment:
    """Start from 100 and deduct for each hazard; rate every category."""
    w = weather["current"]
    aq = air["current"]
    concerns: List[str] = []
    advice: List[str] = []
    score = 100

    temp = w.get("temperature_2m") or 0
    code = w.get("weather_code") or 0
    weather_rating = "Excellent"

    def soften(rating: str) -> None:
        nonlocal weather_rating
        if weather_rating == "Excellent":
            weather_rating = rating

    if temp < 32:
        score -= 30
        weather_rating = "Poor"
        concerns.append("Freezing temperatures")
        advice.append("Dress in warm layers")
    elif temp < 50:
        score -= 15
        soften("Good")
        concerns.append("Cold temperatures")
        advice.append("Wear warm clothing")
    elif temp > 95:
        score -= 30
        weather_rating = "Poor"
        concerns.append("Extreme heat")
        advice.append("Limit outdoor activity, stay hydrated")
    elif temp > 85:
        score -= 15
        soften("Fair")
        concerns.append("Hot temperatures")
        advice.append("Stay hydrated, take breaks in shade")

    if (w.get("precipitation") or 0) > 0.1 or code >= 61:
        score -= 20
        weather_rating = "Poor"
        concerns.append("Active precipitation")
        advice.append("Bring rain gear or stay indoors")
    elif 51 <= code < 60:
        score -= 10
        soften("Fair")
        concerns.append("Drizzle/light precipitation")

    if (w.get("wind_gusts_10m") or 0) >= 40:
        score -= 20
        weather_rating = "Poor"
        concerns.append("Dangerous wind gusts")
        advice.append("Avoid outdoor activities")
    elif (w.get("wind_speed_10m") or 0) >= 20:
        score -= 10
        soften("Fair")
        concerns.append("Windy conditions")

    aqi = aq.get("us_aqi") or 0
    air_rating = "Excellent"
    if aqi > 200:
        score -= 40
        air_rating = "Avoid"
        concerns.append("Very unhealthy air quality")
        advice.append("Stay indoors, avoid outdoor exercise")
    elif aqi > 150:
        score -= 30
        air_rating = "Poor"
        concerns.append("Unhealthy air quality")
        advice.append("Limit prolonged outdoor exertion")
    elif aqi > 100:
        score -= 15
        air_rating = "Fair"
        concerns.append("Air quality unhealthy for sensitive groups")
        advice.append("Sensitive individuals should limit outdoor activity")
    elif aqi > 50:
        score -= 5
        air_rating = "Good"

    uv = aq.get("uv_index") or 0
    uv_rating = "Excellent"
    if uv >= 11:
        score -= 20
        uv_rating = "Avoid"
        concerns.append("Extreme UV radiation")
        advice.append("Avoid sun exposure, stay in shade")
    elif uv >= 8:
        score -= 15
        uv_rating = "Poor"
        concerns.append("Very high UV radiation")
        advice.append("Apply SPF 30+ sunscreen, wear protective clothing")
    elif uv >= 6:
        score -= 10
        uv_rating = "Fair"
        concerns.append("High UV radiation")
        advice.append("Wear sunscreen and hat")
    elif uv >= 3:
        score -= 5
        uv_rating = "Good"
        advice.append("Consider sunscreen")

    elevated = [name for name, key in ALLERGEN_POLLEN if (aq.get(key) or 0) > 50]
    if elevated:
        score -= 10
        concerns.append(f"Elevated pollen levels ({', '.join(elevated)})")
        advice.append("Allergy sufferers should take precautions")

    return OutdoorAssessment(
        overall=overall_rating(score),
        score=max(0, score),
        weather=weather_rating,
        air_quality=air_rating,
        uv_safety=uv_rating,
        concerns=concerns,
        recommendations=advice,
    )


def _pollen_level(value: float) -> str:
    if value > 100:
        return "High"
    if value > 50:
        return "Moderate"
    return "Low"


def format_outdoor_report(
    location: Location,
    weather: Dict[str, Any],
    air: Dict[str, Any],
    a: OutdoorAssessment,
) -> str:
    w = weather["current"]
    wu = weather.get("current_units", {})
    aq = air["current"]

    lines = [
        f"Outdoor Conditions for {location.label}",
        "",
        f"=== OVERALL: {a.overall.upper()} ({a.score}/100) ===",
        "",
        "Category Ratings:",
        f"  Weather: {a.weather}",
        f"  Air Quality: {a.air_quality}",
        f"  UV Safety: {a.uv_safety}",
    ]
    if a.concerns:
        lines.append("")
        lines.append("Concerns:")
        lines.extend(f"  ⚠️ {c}" for c in a.concerns)
    if a.recommendations:
        lines.append("")
        lines.append("Recommendations:")
        lines.extend(f"  • {r}" for r in a.recommendations)

    aqi: Optional[float] = aq.get("us_aqi")
    uv = aq.get("uv_index") or 0
    lines.extend(
        [
            "",
            "=== Current Weather ===",
            f"Condition: {weather_condition(w.get('weather_code'))}",
            f"Temperature: {num(w.get('temperature_2m'))}{wu.get('temperature_2m', '°F')}",
            f"Feels Like: {num(w.get('apparent_temperature'))}"
            f"{wu.get('apparent_temperature', '°F')}",
            f"Humidity: {num(w.get('relative_humidity_2m'))}{wu.get('relative_humidity_2m', '%')}",
            f"Wind: {num(w.get('wind_speed_10m'))} {wu.get('wind_speed_10m', 'mph')} "
            f"(gusts {num(w.get('wind_gusts_10m'))} {wu.get('wind_gusts_10m', 'mph')})",
            "",
            "=== Air Quality ===",
            f"US AQI: {num(aqi)} ({us_aqi_band(aqi).label})",
            f"PM2.5: {num(aq.get('pm2_5'))} µg/m³",
            f"PM10: {num(aq.get('pm10'))} µg/m³",
            "",
            "=== UV Index ===",
            f"Current: {num(aq.get('uv_index'))} ({uv_label(uv)})",
        ]
    )

    pollen = [(name, aq.get(key)) for name, key in REPORTED_POLLEN]
    pollen = [(name, value) for name, value in pollen if value is not None and value > 0]
    if pollen:
        lines.append("")
        lines.append("=== Pollen ===")
        for name, value in pollen:
            lines.append(f"{name}: {num(value)} grains/m³ ({_pollen_level(value)})")

    return "\n".join(lines)


async def get_outdoor_conditions(params: OutdoorInput, ctx: ToolContext) -> str:
    location = await geocode(ctx, params.city)
    coords = {"latitude": location.latitude, "longitude": location.longitude}
    weather_url = build_url(
        FORECAST_API_URL,
        {
            **coords,
            "current": WEATHER_FIELDS,
            "temperature_unit": "fahrenheit",
            "wind_speed_unit": "mph",
            "precipitation_unit": "inch",
            "timezone": "auto",
        },
    )
    air_url = build_url(AIR_QUALITY_API_URL, {**coords, "current": AIR_FIELDS, "timezone": "auto"})
    weather, air = await asyncio.gather(
        ctx.fetcher.fetch_json(weather_url, ttl=TTL_REALTIME),
        ctx.fetcher.fetch_json(air_url, ttl=TTL_REALTIME),
    )
    assessment = assess_outdoor_conditions(weather, air)
    return format_outdoor_report(location, weather, air, assessment)


TOOL = ToolSpec(
    name="get_outdoor_conditions",
    description=(
        "Get comprehensive outdoor activity assessment for a city. Combines current "
        "weather, air quality (AQI), UV index, and pollen levels with suitability "
        "recommendations."
    ),
    input_model=OutdoorInput,
    handler=get_outdoor_conditions,
    category="compound",
    tags=("outdoor", "recreation", "health", "activity"),
    subject="outdoor conditions",
)
