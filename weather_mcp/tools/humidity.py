"""``get_humidity``: humidity, dew point comfort, fog potential and VPD."""

from __future__ import annotations

from typing import Any, Dict

from weather_mcp.constants import FORECAST_API_URL, TTL_REALTIME
from weather_mcp.fetch import build_url
from weather_mcp.tools.common import (
    Band,
    CityInput,
    Location,
    classify,
    fixed,
    geocode,
    hour_label,
    mean,
    num,
    pick,
)
from weather_mcp.tools.registry import ToolContext, ToolSpec

HUMIDITY_LEVELS = (
    Band(25, "Dry", "Very dry air, may cause discomfort"),
    Band(40, "Comfortable", "Ideal humidity range"),
    Band(55, "Slightly Humid", "Still comfortable for most"),
    Band(65, "Humid", "Becoming uncomfortable"),
    Band(80, "Very Humid", "Uncomfortable, muggy"),
    Band(float("inf"), "Oppressive", "Very uncomfortable, tropical"),
)

# Dew point in °F; a better comfort gauge than relative humidity.
DEW_POINT_LEVELS = (
    Band(50, "Dry and comfortable"),
    Band(55, "Comfortable"),
    Band(60, "Slightly humid"),
    Band(65, "Becoming uncomfortable"),
    Band(70, "Humid and uncomfortable"),
    Band(75, "Very humid, oppressive"),
    Band(float("inf"), "Severely humid, dangerous"),
)

HUMID_HOUR_THRESHOLD = 70
DRY_HOUR_THRESHOLD = 30


class HumidityInput(CityInput):
    pass


def humidity_level(humidity: float) -> Band:
    return classify(humidity, HUMIDITY_LEVELS)


def dew_point_comfort(dew_point_f: float) -> str:
    return classify(dew_point_f, DEW_POINT_LEVELS).label


def fog_potential(temp_f: float, dew_point_f: float) -> str:
    spread = temp_f - dew_point_f
    if spread <= 2.5:
        return "High - fog likely"
    if spread <= 5:
        return "Moderate - fog possible"
    if spread <= 10:
        return "Low - mist possible"
    return "None"


def vpd_description(vpd: float) -> str:
    if vpd < 0.4:
        return "Low - risk of mold, fungal issues"
    if vpd < 0.8:
        return "Optimal for propagation/seedlings"
    if vpd < 1.2:
        return "Optimal for vegetative growth"
    if vpd < 1.6:
        return "Optimal for flowering/fruiting"
    return "High - plants may stress, increase watering"


def format_humidity_report(location: Location, data: Dict[str, Any]) -> str:
    current = data["current"]
    c_units = data.get("current_units", {})
    hourly = data.get("hourly", {})
    h_units = data.get("hourly_units", {})
    t_unit = c_units.get("temperature_2m", "°F")

    humidity = current["relative_humidity_2m"]
    dew_point = current["dew_point_2m"]
    level = humidity_level(humidity)

    lines = [
        f"Humidity & Moisture for {location.label}",
        "",
        "=== Current Conditions ===",
        f"Relative Humidity: {num(humidity)}{c_units.get('relative_humidity_2m', '%')}",
        f"  Comfort: {level.label} - {level.description}",
        "",
        f"Dew Point: {num(dew_point)}{c_units.get('dew_point_2m', t_unit)}",
        f"  Comfort: {dew_point_comfort(dew_point)}",
        "",
        f"Temperature: {num(current.get('temperature_2m'))}{t_unit}",
        f"Feels Like: {num(current.get('apparent_temperature'))}"
        f"{c_units.get('apparent_temperature', t_unit)}",
        f"Surface Pressure: {num(current.get('surface_pressure'))} "
        f"{c_units.get('surface_pressure', 'hPa')}",
        "",
        f"Fog Potential: {fog_potential(current['temperature_2m'], dew_point)}",
    ]

    vpd = pick(hourly, "vapour_pressure_deficit", 0)
    if vpd is not None:
        lines.append("")
        lines.append("=== Plant/Agriculture ===")
        lines.append(
            f"Vapour Pressure Deficit: {fixed(vpd, 2)} "
            f"{h_units.get('vapour_pressure_deficit', 'kPa')}"
        )
        lines.append(f"  {vpd_description(vpd)}")

    dp_unit = h_units.get("dew_point_2m", t_unit)
    times = hourly.get("time", [])
    lines.append("")
    lines.append("=== 24-Hour Humidity Forecast ===")
    for i in range(0, min(24, len(times)), 3):
        h = pick(hourly, "relative_humidity_2m", i, 0)
        lines.append(
            f"{hour_label(times[i])}: {num(h)}% ({humidity_level(h).label}), "
            f"Dew point {num(pick(hourly, 'dew_point_2m', i))}{dp_unit}"
        )

    humidities = [v for v in (hourly.get("relative_humidity_2m") or [])[:48] if v is not None]
    dew_points = [v for v in (hourly.get("dew_point_2m") or [])[:48] if v is not None]
    lines.append("")
    lines.append("=== 48-Hour Statistics ===")
    if humidities:
        lines.append(
            f"Humidity: Min {num(min(humidities))}%, Max {num(max(humidities))}%, "
            f"Avg {mean(humidities):.0f}%"
        )
    if dew_points:
        lines.append(f"Average Dew Point: {mean(dew_points):.1f}{dp_unit}")

    humid_hours = sum(1 for h in humidities if h > HUMID_HOUR_THRESHOLD)
    dry_hours = sum(1 for h in humidities if h < DRY_HOUR_THRESHOLD)
    if humid_hours:
        lines.append(f"Humid periods (>{HUMID_HOUR_THRESHOLD}%): {humid_hours} hours in next 48h")
    if dry_hours:
        lines.append(f"Dry periods (<{DRY_HOUR_THRESHOLD}%): {dry_hours} hours in next 48h")

    return "\n".join(lines)


async def get_humidity(params: HumidityInput, ctx: ToolContext) -> str:
    location = await geocode(ctx, params.city)
    url = build_url(
        FORECAST_API_URL,
        {
            "latitude": location.latitude,
            "longitude": location.longitude,
            "current": [
                "temperature_2m",
                "relative_humidity_2m",
                "dew_point_2m",
                "apparent_temperature",
                "surface_pressure",
            ],
            "hourly": ["relative_humidity_2m", "dew_point_2m", "vapour_pressure_deficit"],
            "temperature_unit": "fahrenheit",
            "timezone": "auto",
            "forecast_days": 7,
            "forecast_hours": 48,
        },
    )
    data = await ctx.fetcher.fetch_json(url, ttl=TTL_REALTIME)
    return format_humidity_report(location, data)


TOOL = ToolSpec(
    name="get_humidity",
    description=(
        "Get humidity and moisture data for a city. Returns relative humidity, dew point, "
        "comfort levels, fog potential, and 48-hour forecast."
    ),
    input_model=HumidityInput,
    handler=get_humidity,
    category="primitive",
    tags=("humidity", "moisture", "dew-point", "comfort"),
    subject="humidity data",
)
