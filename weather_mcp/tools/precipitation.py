"""``get_precipitation``: current rates, 48-hour outlook and weekly totals."""

from __future__ import annotations

from typing import Any, Dict, NamedTuple, Optional

from weather_mcp.constants import FORECAST_API_URL, TTL_REALTIME
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

# (trace below, light below, moderate below) in inches per hour
RAIN_INTENSITY = (0.1, 0.3, 0.5)
SNOW_INTENSITY = (0.5, 1.0, 2.0)


class PrecipType(NamedTuple):
    kind: str  # none | rain | snow | showers
    intensity: str  # none | light | moderate | heavy


class PrecipitationInput(CityInput):
    pass


def precip_intensity(inches_per_hour: float, is_snow: bool = False) -> str:
    if inches_per_hour == 0:
        return "none"
    light, moderate, heavy = SNOW_INTENSITY if is_snow else RAIN_INTENSITY
    if inches_per_hour < light:
        return "trace"
    if inches_per_hour < moderate:
        return "light"
    if inches_per_hour < heavy:
        return "moderate"
    return "heavy"


def _grade(code: int, light_max: int, moderate_max: int) -> str:
    if code <= light_max:
        return "light"
    if code <= moderate_max:
        return "moderate"
    return "heavy"


def precip_type(code: Optional[int]) -> PrecipType:
    """Precipitation kind and intensity implied by a WMO weather code."""
    if code is None or code <= 3:
        return PrecipType("none", "none")
    if 51 <= code <= 57:
        return PrecipType("rain", _grade(code, 53, 55))
    if 61 <= code <= 67:
        return PrecipType("rain", _grade(code, 63, 65))
    if 71 <= code <= 77:
        return PrecipType("snow", _grade(code, 73, 75))
    if 80 <= code <= 82:
        return PrecipType("showers", _grade(code, 80, 81))
    if code in (85, 86):
        return PrecipType("snow", "light" if code == 85 else "heavy")
    if code >= 95:
        return PrecipType("showers", "heavy")
    return PrecipType("none", "none")


def probability_description(percent: float) -> str:
    if percent == 0:
        return "No chance"
    if percent < 20:
        return "Slight chance"
    if percent < 40:
        return "Possible"
    if percent < 60:
        return "Likely"
    if percent < 80:
        return "Very likely"
    return "Almost certain"


def format_precipitation_report(location: Location, data: Dict[str, Any]) -> str:
    current = data["current"]
    c_units = data.get("current_units", {})
    hourly = data.get("hourly", {})
    h_unit = data.get("hourly_units", {}).get("precipitation", "inch")
    daily = data.get("daily", {})
    d_unit = data.get("daily_units", {}).get("precipitation_sum", "inch")

    kind = precip_type(current.get("weather_code"))
    rate = current.get("precipitation") or 0
    type_text = "No precipitation" if kind.kind == "none" else f"{kind.intensity} {kind.kind}"
    unit = c_units.get("precipitation", "inch")

    lines = [
        f"Precipitation for {location.label}",
        "",
        "=== Current Conditions ===",
        f"Status: {weather_condition(current.get('weather_code'))}",
        f"Type: {type_text}",
        f"Rate: {num(rate)} {unit}/hr ({precip_intensity(rate, kind.kind == 'snow')})",
    ]
    for label, key in (("Rain", "rain"), ("Showers", "showers"), ("Snow", "snowfall")):
        value = current.get(key) or 0
        if value > 0:
            lines.append(f"  {label}: {num(value)} {c_units.get(key, unit)}/hr")

    times = hourly.get("time", [])
    amounts = [pick(hourly, "precipitation", i, 0) for i in range(len(times))]
    probabilities = [pick(hourly, "precipitation_probability", i, 0) for i in range(len(times))]

    next_12 = amounts[:12]
    max_prob = max(probabilities[:12], default=0)
    lines.append("")
    lines.append("=== Next 12 Hours ===")
    lines.append(
        f"Expected: {sum(next_12):.2f} {h_unit} over {sum(1 for a in next_12 if a > 0)} hours"
    )
    lines.append(f"Max probability: {num(max_prob)}% ({probability_description(max_prob)})")

    lines.append("")
    lines.append("=== Hourly Forecast (24h) ===")
    for i in range(0, min(24, len(times)), 3):
        amount, prob = amounts[i], probabilities[i]
        desc = "Dry"
        if amount > 0 or prob >= 20:
            hour_kind = precip_type(pick(hourly, "weather_code", i)).kind
            desc = f"{num(prob)}% {hour_kind if hour_kind != 'none' else 'precip'}, {amount:.2f}{h_unit}"
        lines.append(f"{hour_label(times[i])}: {desc}")

    lines.append("")
    lines.append("=== 7-Day Precipitation Forecast ===")
    week_total = 0.0
    for i, day in enumerate(daily.get("time", [])):
        total = pick(daily, "precipitation_sum", i, 0)
        rain = pick(daily, "rain_sum", i, 0)
        snow = pick(daily, "snowfall_sum", i, 0)
        week_total += total
        if snow > 0 and rain > 0:
            mix = " (rain/snow mix)"
        elif snow > 0:
            mix = " (snow)"
        elif rain > 0:
            mix = " (rain)"
        else:
            mix = ""
        lines.append(
            f"{day_label(day)}: {total:.2f}{d_unit}{mix}, "
            f"{num(pick(daily, 'precipitation_hours', i, 0))}hrs, "
            f"{num(pick(daily, 'precipitation_probability_max', i, 0))}% chance"
        )

    lines.append("")
    lines.append(f"Weekly Total: {week_total:.2f} {d_unit}")
    return "\n".join(lines)


async def get_precipitation(params: PrecipitationInput, ctx: ToolContext) -> str:
    location = await geocode(ctx, params.city)
    url = build_url(
        FORECAST_API_URL,
        {
            "latitude": location.latitude,
            "longitude": location.longitude,
            "current": ["precipitation", "rain", "showers", "snowfall", "weather_code"],
            "hourly": [
                "precipitation",
                "precipitation_probability",
                "rain",
                "showers",
                "snowfall",
                "weather_code",
            ],
            "daily": [
                "precipitation_sum",
                "precipitation_hours",
                "precipitation_probability_max",
                "rain_sum",
                "showers_sum",
                "snowfall_sum",
            ],
            "precipitation_unit": "inch",
            "timezone": "auto",
            "forecast_days": 7,
            "forecast_hours": 48,
        },
    )
    data = await ctx.fetcher.fetch_json(url, ttl=TTL_REALTIME)
    return format_precipitation_report(location, data)


TOOL = ToolSpec(
    name="get_precipitation",
    description=(
        "Get precipitation data for a city. Returns current precipitation (rain, snow, "
        "showers), hourly probabilities, and 7-day forecast with totals."
    ),
    input_model=PrecipitationInput,
    handler=get_precipitation,
    category="primitive",
    tags=("precipitation", "rain", "snow", "forecast"),
    subject="precipitation data",
)
