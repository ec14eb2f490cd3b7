"""Daily and hourly forecast tools."""

from __future__ import annotations

from typing import Any, Dict

from pydantic import Field

from weather_mcp.constants import FORECAST_API_URL, TTL_FORECAST
from weather_mcp.fetch import build_url
from weather_mcp.tools.common import (
    CityInput,
    Location,
    day_label,
    geocode,
    hour_label,
    num,
    pick,
    weather_condition,
)
from weather_mcp.tools.registry import ToolContext, ToolSpec

MAX_FORECAST_DAYS = 7
MAX_FORECAST_HOURS = 48
DEFAULT_FORECAST_HOURS = 24

DAILY_FIELDS = [
    "weather_code",
    "temperature_2m_max",
    "temperature_2m_min",
    "precipitation_sum",
    "precipitation_probability_max",
    "wind_speed_10m_max",
    "wind_gusts_10m_max",
    "sunrise",
    "sunset",
]

HOURLY_FIELDS = [
    "temperature_2m",
    "relative_humidity_2m",
    "precipitation_probability",
    "precipitation",
    "weather_code",
    "wind_speed_10m",
    "wind_direction_10m",
]


class ForecastInput(CityInput):
    pass


class HourlyForecastInput(CityInput):
    hours: int = Field(
        default=DEFAULT_FORECAST_HOURS,
        ge=1,
        le=MAX_FORECAST_HOURS,
        description=(
            f"Number of hours to forecast (1-{MAX_FORECAST_HOURS}, "
            f"default {DEFAULT_FORECAST_HOURS})"
        ),
    )


def format_daily_report(location: Location, data: Dict[str, Any]) -> str:
    daily = data["daily"]
    units = data.get("daily_units", {})
    t_unit = units.get("temperature_2m_max", "°F")
    p_unit = units.get("precipitation_sum", "inch")
    w_unit = units.get("wind_speed_10m_max", "mph")

    lines = [f"7-Day Forecast for {location.label}", ""]
    for i, day in enumerate(daily.get("time", [])):
        lines.append(f"{day_label(day)}:")
        lines.append(f"  {weather_condition(pick(daily, 'weather_code', i))}")
        lines.append(
            f"  High: {num(pick(daily, 'temperature_2m_max', i))}{t_unit} / "
            f"Low: {num(pick(daily, 'temperature_2m_min', i))}{t_unit}"
        )
        lines.append(
            f"  Precip: {num(pick(daily, 'precipitation_probability_max', i, 0))}% chance, "
            f"{num(pick(daily, 'precipitation_sum', i, 0))}{p_unit}"
        )
        lines.append(f"  Wind: up to {num(pick(daily, 'wind_speed_10m_max', i))} {w_unit}")
        lines.append("")
    return "\n".join(lines)


def format_hourly_report(location: Location, data: Dict[str, Any]) -> str:
    hourly = data["hourly"]
    units = data.get("hourly_units", {})
    t_unit = units.get("temperature_2m", "°F")
    w_unit = units.get("wind_speed_10m", "mph")

    lines = [f"Hourly Forecast for {location.label}", ""]
    for i, stamp in enumerate(hourly.get("time", [])):
        lines.append(
            f"{hour_label(stamp)}: {num(pick(hourly, 'temperature_2m', i))}{t_unit}, "
            f"{weather_condition(pick(hourly, 'weather_code', i))}, "
            f"{num(pick(hourly, 'precipitation_probability', i, 0))}% precip, "
            f"{num(pick(hourly, 'relative_humidity_2m', i))}% humidity, "
            f"{num(pick(hourly, 'wind_speed_10m', i))} {w_unit} wind"
        )
    return "\n".join(lines)


async def get_forecast(params: ForecastInput, ctx: ToolContext) -> str:
    location = await geocode(ctx, params.city)
    url = build_url(
        FORECAST_API_URL,
        {
            "latitude": location.latitude,
            "longitude": location.longitude,
            "daily": DAILY_FIELDS,
            "temperature_unit": "fahrenheit",
            "wind_speed_unit": "mph",
            "precipitation_unit": "inch",
            "timezone": "auto",
            "forecast_days": MAX_FORECAST_DAYS,
        },
    )
    data = await ctx.fetcher.fetch_json(url, ttl=TTL_FORECAST)
    return format_daily_report(location, data)


async def get_hourly_forecast(params: HourlyForecastInput, ctx: ToolContext) -> str:
    location = await geocode(ctx, params.city)
    url = build_url(
        FORECAST_API_URL,
        {
            "latitude": location.latitude,
            "longitude": location.longitude,
            "hourly": HOURLY_FIELDS,
            "temperature_unit": "fahrenheit",
            "wind_speed_unit": "mph",
            "precipitation_unit": "inch",
            "timezone": "auto",
            "forecast_hours": min(params.hours, MAX_FORECAST_HOURS),
        },
    )
    data = await ctx.fetcher.fetch_json(url, ttl=TTL_FORECAST)
    return format_hourly_report(location, data)


DAILY_TOOL = ToolSpec(
    name="get_forecast",
    description=(
        "Get 7-day daily weather forecast for a city. Returns daily high/low "
        "temperatures, conditions, and precipitation chance."
    ),
    input_model=ForecastInput,
    handler=get_forecast,
    category="primitive",
    tags=("weather", "forecast", "daily"),
    subject="forecast",
)

HOURLY_TOOL = ToolSpec(
    name="get_hourly_forecast",
    description=(
        "Get hourly weather forecast for a city. Returns temperature, conditions, "
        "and precipitation probability for each hour."
    ),
    input_model=HourlyForecastInput,
    handler=get_hourly_forecast,
    category="primitive",
    tags=("weather", "forecast", "hourly"),
    subject="hourly forecast",
)
