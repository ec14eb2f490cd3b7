"""``get_air_quality``: AQI, pollutants, UV and pollen for a city."""

from __future__ import annotations

from typing import Any, Dict, Optional

from weather_mcp.constants import AIR_QUALITY_API_URL, TTL_REALTIME
from weather_mcp.fetch import build_url
from weather_mcp.tools.common import Band, CityInput, Location, classify, geocode, num
from weather_mcp.tools.registry import ToolContext, ToolSpec

CURRENT_FIELDS = [
    "us_aqi",
    "european_aqi",
    "pm10",
    "pm2_5",
    "carbon_monoxide",
    "nitrogen_dioxide",
    "sulphur_dioxide",
    "ozone",
    "uv_index",
    "uv_index_clear_sky",
    "alder_pollen",
    "birch_pollen",
    "grass_pollen",
    "mugwort_pollen",
    "olive_pollen",
    "ragweed_pollen",
]

POLLEN_TYPES = (
    ("Alder", "alder_pollen"),
    ("Birch", "birch_pollen"),
    ("Grass", "grass_pollen"),
    ("Mugwort", "mugwort_pollen"),
    ("Olive", "olive_pollen"),
    ("Ragweed", "ragweed_pollen"),
)

US_AQI_BANDS = (
    Band(50, "Good", "Air quality is satisfactory"),
    Band(100, "Moderate", "Acceptable; some pollutants may be a concern for sensitive individuals"),
    Band(150, "Unhealthy for Sensitive Groups", "Sensitive groups may experience health effects"),
    Band(200, "Unhealthy", "Everyone may begin to experience health effects"),
    Band(300, "Very Unhealthy", "Health alert: everyone may experience serious health effects"),
    Band(float("inf"), "Hazardous", "Health emergency: entire population likely to be affected"),
)

EU_AQI_BANDS = (
    Band(20, "Good"),
    Band(40, "Fair"),
    Band(60, "Moderate"),
    Band(80, "Poor"),
    Band(100, "Very Poor"),
    Band(float("inf"), "Extremely Poor"),
)

UV_BANDS = (
    Band(2, "Low", "No protection needed"),
    Band(5, "Moderate", "Wear sunscreen, hat, and sunglasses"),
    Band(7, "High", "Reduce sun exposure between 10am-4pm"),
    Band(10, "Very High", "Take extra precautions; unprotected skin will burn"),
    Band(float("inf"), "Extreme", "Avoid sun exposure; stay indoors if possible"),
)

POLLEN_BANDS = (
    Band(10, "None"),
    Band(50, "Low"),
    Band(100, "Moderate"),
    Band(200, "High"),
    Band(float("inf"), "Very High"),
)


def us_aqi_band(aqi: Optional[float]) -> Band:
    return classify(aqi, US_AQI_BANDS)


def uv_band(uv: Optional[float]) -> Band:
    return classify(uv, UV_BANDS)


def pollen_level(value: float) -> str:
    return classify(value, POLLEN_BANDS).label


def format_air_quality_report(location: Location, data: Dict[str, Any]) -> str:
    current = data["current"]
    units = data.get("current_units", {})
    aqi = us_aqi_band(current.get("us_aqi"))
    eu = classify(current.get("european_aqi"), EU_AQI_BANDS)
    uv = uv_band(current.get("uv_index"))

    def pollutant(label: str, key: str) -> str:
        return f"{label}: {num(current.get(key))} {units.get(key, 'μg/m³')}"

    lines = [
        f"Air Quality for {location.label}",
        "",
        "=== Air Quality Index ===",
        f"US AQI: {num(current.get('us_aqi'))} ({aqi.label})",
        f"  {aqi.description}",
        f"European AQI: {num(current.get('european_aqi'))} ({eu.label})",
        "",
        "=== Pollutants ===",
        pollutant("PM2.5", "pm2_5"),
        pollutant("PM10", "pm10"),
        pollutant("Ozone (O₃)", "ozone"),
        pollutant("Nitrogen Dioxide (NO₂)", "nitrogen_dioxide"),
        pollutant("Sulphur Dioxide (SO₂)", "sulphur_dioxide"),
        pollutant("Carbon Monoxide (CO)", "carbon_monoxide"),
        "",
        "=== UV Index ===",
        f"Current: {num(current.get('uv_index'))} ({uv.label})",
        f"Clear Sky Max: {num(current.get('uv_index_clear_sky'))}",
        f"Protection: {uv.description}",
    ]

    pollen = [(name, current.get(key)) for name, key in POLLEN_TYPES]
    pollen = [(name, value) for name, value in pollen if value is not None and value > 0]
    if pollen:
        lines.append("")
        lines.append("=== Pollen Levels ===")
        for name, value in pollen:
            lines.append(f"{name}: {num(value)} grains/m³ ({pollen_level(value)})")

    return "\n".join(lines)


def air_quality_url(location: Location) -> str:
    return build_url(
        AIR_QUALITY_API_URL,
        {
            "latitude": location.latitude,
            "longitude": location.longitude,
            "current": CURRENT_FIELDS,
            "timezone": "auto",
        },
    )


async def get_air_quality(params: CityInput, ctx: ToolContext) -> str:
    location = await geocode(ctx, params.city)
    data = await ctx.fetcher.fetch_json(air_quality_url(location), ttl=TTL_REALTIME)
    return format_air_quality_report(location, data)


TOOL = ToolSpec(
    name="get_air_quality",
    description=(
        "Get current air quality for a city. Returns AQI (US/EU), pollutant levels "
        "(PM2.5, PM10, ozone), UV index, and pollen levels."
    ),
    input_model=CityInput,
    handler=get_air_quality,
    category="primitive",
    tags=("air-quality", "pollution", "health"),
    subject="air quality",
)
