"""``get_soil_conditions``: soil temperature and moisture by depth."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import Field

from weather_mcp.constants import FORECAST_API_URL, TTL_REALTIME
from weather_mcp.fetch import build_url
from weather_mcp.tools.common import Band, CityInput, Location, fixed, geocode, num, pick
from weather_mcp.tools.registry import ToolContext, ToolSpec

# (hourly key, depth label, what grows there)
TEMP_DEPTHS = (
    ("soil_temperature_0cm", "0cm", "Surface temperature"),
    ("soil_temperature_6cm", "6cm", "Shallow soil (~2.5 inches)"),
    ("soil_temperature_18cm", "18cm", "Root zone (~7 inches)"),
    ("soil_temperature_54cm", "54cm", "Deep soil (~21 inches)"),
)

MOISTURE_DEPTHS = (
    ("soil_moisture_0_to_1cm", "0-1cm", "Surface - seed germination zone"),
    ("soil_moisture_1_to_3cm", "1-3cm", "Shallow roots - seedlings"),
    ("soil_moisture_3_to_9cm", "3-9cm", "Typical root zone - annuals"),
    ("soil_moisture_9_to_27cm", "9-27cm", "Deep root zone - most crops"),
    ("soil_moisture_27_to_81cm", "27-81cm", "Subsoil - deep-rooted plants, trees"),
)

# Volumetric moisture (m³/m³); a level covers values strictly below ``upper``.
MOISTURE_LEVELS = (
    Band(0.1, "Very Dry", "Wilting point - irrigation needed"),
    Band(0.2, "Dry", "Below optimal - consider watering"),
    Band(0.35, "Optimal", "Good moisture for most plants"),
    Band(0.45, "Moist", "Well-watered soil"),
    Band(float("inf"), "Saturated", "Waterlogged - may cause root issues"),
)

# Minimum root-zone soil temperature (°F) for each crop group.
PLANTING_TEMPS = (
    (70, "Hot-season crops (melons, squash)"),
    (60, "Warm-season crops (tomatoes, peppers)"),
    (50, "Cool-season crops (broccoli, carrots)"),
    (40, "Cold-season crops (lettuce, spinach, peas)"),
)


class SoilInput(CityInput):
    city: str = Field(
        ...,
        min_length=1,
        description="City or location name to get soil conditions for",
    )


def moisture_level(moisture: float) -> Band:
    for level in MOISTURE_LEVELS:
        if moisture < level.upper:
            return level
    return MOISTURE_LEVELS[-1]


def planting_recommendation(temp_f: float) -> str:
    (hot, hot_label), (warm, warm_label), (cool, cool_label), (cold, cold_label) = PLANTING_TEMPS
    if temp_f >= hot:
        return f"Suitable for all crops including {hot_label}"
    if temp_f >= warm:
        return f"Good for {warm_label} and cooler"
    if temp_f >= cool:
        return f"Good for {cool_label} and cooler"
    if temp_f >= cold:
        return f"Only suitable for {cold_label}"
    return "Too cold for most planting"


def _require(value: Optional[float], what: str) -> float:
    if value is None:
        raise ValueError(f"No {what} data available for this location")
    return value


def format_soil_report(location: Location, data: Dict[str, Any]) -> str:
    hourly = data["hourly"]
    units = data.get("hourly_units", {})
    t_unit = units.get("soil_temperature_0cm", "°F")

    temps = [pick(hourly, key, 0) for key, _, _ in TEMP_DEPTHS]
    moistures = [_require(pick(hourly, key, 0), "soil moisture") for key, _, _ in MOISTURE_DEPTHS]
    root_temp = _require(temps[2], "soil temperature")

    lines = [f"Soil Conditions for {location.label}", "", "=== Soil Temperature ==="]
    for temp, (_, depth, description) in zip(temps, TEMP_DEPTHS):
        lines.append(f"{depth}: {num(temp)}{t_unit} ({description})")

    lines.append("")
    lines.append(f"Planting: {planting_recommendation(root_temp)}")
    lines.append("")
    lines.append("=== Soil Moisture ===")
    for moisture, (_, depth, description) in zip(moistures, MOISTURE_DEPTHS):
        level = moisture_level(moisture)
        lines.append(f"{depth}: {fixed(moisture * 100)}% ({level.label})")
        lines.append(f"  {description}")
        lines.append(f"  {level.description}")

    root_zone = (moistures[2] + moistures[3]) / 2
    lines.append("")
    lines.append(
        f"Root Zone Average (3-27cm): {fixed(root_zone * 100)}% - {moisture_level(root_zone).label}"
    )
    return "\n".join(lines)


async def get_soil_conditions(params: SoilInput, ctx: ToolContext) -> str:
    location = await geocode(ctx, params.city, noun="location")
    url = build_url(
        FORECAST_API_URL,
        {
            "latitude": location.latitude,
            "longitude": location.longitude,
            "hourly": [key for key, _, _ in TEMP_DEPTHS + MOISTURE_DEPTHS],
            "temperature_unit": "fahrenheit",
            "timezone": "auto",
            "forecast_hours": 1,
        },
    )
    data = await ctx.fetcher.fetch_json(url, ttl=TTL_REALTIME)
    return format_soil_report(location, data)


TOOL = ToolSpec(
    name="get_soil_conditions",
    description=(
        "Get current soil conditions for a location. Returns soil moisture and "
        "temperature at multiple depths, with planting recommendations."
    ),
    input_model=SoilInput,
    handler=get_soil_conditions,
    category="primitive",
    tags=("soil", "agriculture", "moisture"),
    subject="soil conditions",
)
