"""``get_weather``: current conditions for a city."""

from __future__ import annotations

from typing import Any, Dict

from weather_mcp.constants import FORECAST_API_URL, TTL_REALTIME
from weather_mcp.fetch import build_url
from weather_mcp.tools.common import CityInput, Location, geocode, num, weather_condition
from weather_mcp.tools.registry import ToolContext, ToolSpec

CURRENT_FIELDS = [
    "temperature_2m",
    "relative_humidity_2m",
    "apparent_temperature",
    "wind_speed_10m",
    "wind_direction_10m",
    "weather_code",
]


class WeatherInput(CityInput):
    pass


def format_weather_report(location: Location, data: Dict[str, Any]) -> str:
    current = data["current"]
    units = data.get("current_units", {})
    code = current.get("weather_code")
    condition = weather_condition(code, default=f"Unknown (code {code})")
    return "\n".join(
        [
            f"Weather for {location.label}",
            f"Coordinates: {location.coordinates}",
            "",
            f"Condition: {condition}",
            f"Temperature: {num(current['temperature_2m'])}{units.get('temperature_2m', '°F')}",
            f"Feels like: {num(current['apparent_temperature'])}"
            f"{units.get('apparent_temperature', '°F')}",
            f"Humidity: {num(current['relative_humidity_2m'])}"
            f"{units.get('relative_humidity_2m', '%')}",
            f"Wind: {num(current['wind_speed_10m'])} {units.get('wind_speed_10m', 'mph')} "
            f"from {num(current['wind_direction_10m'])}°",
        ]
    )


async def get_weather(params: WeatherInput, ctx: ToolContext) -> str:
    location = await geocode(ctx, params.city)
    url = build_url(
        FORECAST_API_URL,
        {
            "latitude": location.latitude,
            "longitude": location.longitude,
            "current": CURRENT_FIELDS,
            "temperature_unit": "fahrenheit",
            "wind_speed_unit": "mph",
        },
    )
    data = await ctx.fetcher.fetch_json(url, ttl=TTL_REALTIME)
    return format_weather_report(location, data)


TOOL = ToolSpec(
    name="get_weather",
    description=(
        "Get current weather conditions for a city. "
        "Returns temperature, humidity, wind, and conditions."
    ),
    input_model=WeatherInput,
    handler=get_weather,
    category="primitive",
    tags=("weather", "current"),
    subject="weather",
)
