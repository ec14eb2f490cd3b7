"""``get_growing_conditions``: soil, water balance, frost and planting windows."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from pydantic import Field

from weather_mcp.constants import FORECAST_API_URL, TTL_FORECAST
from weather_mcp.fetch import build_url
from weather_mcp.tools.common import CityInput, Location, day_label, fixed, geocode, num, pick
from weather_mcp.tools.registry import ToolContext, ToolSpec

FROST_TEMP_F = 32
GDD_BASE_F = 50
IRRIGATION_DEFICIT = -0.5  # inches over the week

# (crop group, minimum root-zone soil temperature °F)
PLANTING_WINDOWS = (
    ("Cold-season (lettuce, spinach, peas)", 40),
    ("Cool-season (broccoli, carrots, beets)", 50),
    ("Warm-season (tomatoes, peppers, beans)", 60),
    ("Hot-season (melons, squash, corn)", 70),
)


class GrowingConditionsInput(CityInput):
    city: str = Field(
        ...,
        min_length=1,
        description="City or location name to get growing conditions for",
    )


@dataclass
class GrowingConditions:
    moisture_status: str
    irrigation_needed: bool
    frost_days: List[Tuple[str, float]]
    growing_degree_days: int
    weekly_precipitation: float
    weekly_et0: float

    @property
    def frost_risk(self) -> bool:
        return bool(self.frost_days)

    @property
    def water_balance(self) -> float:
        return self.weekly_precipitation - self.weekly_et0


def moisture_status(avg_moisture: float) -> str:
    if avg_moisture < 0.15:
        return "Dry"
    if avg_moisture < 0.35:
        return "Optimal"
    if avg_moisture < 0.45:
        return "Wet"
    return "Saturated"


def _required(series: Dict[str, Any], key: str) -> float:
    value = pick(series, key, 0)
    if value is None:
        raise ValueError(f"No {key.replace('_', ' ')} data available for this location")
    return value


def analyze_growing_conditions(data: Dict[str, Any]) -> GrowingConditions:
    hourly = data["hourly"]
    daily = data.get("daily", {})
    avg_moisture = (
        _required(hourly, "soil_moisture_3_to_9cm") + _required(hourly, "soil_moisture_9_to_27cm")
    ) / 2
    status = moisture_status(avg_moisture)

    days = daily.get("time", [])
    lows = [pick(daily, "temperature_2m_min", i) for i in range(len(days))]
    highs = [pick(daily, "temperature_2m_max", i) for i in range(len(days))]
    frost_days = [(d, low) for d, low in zip(days, lows) if low is not None and low <= FROST_TEMP_F]

    weekly_precip = sum(v for v in daily.get("precipitation_sum") or [] if v is not None)
    weekly_et0 = sum(v for v in daily.get("et0_fao_evapotranspiration") or [] if v is not None)

    gdd = 0.0
    for low, high in zip(lows, highs):
        if low is None or high is None:
            continue
        avg = (high + low) / 2
        if avg > GDD_BASE_F:
            gdd += avg - GDD_BASE_F

    return GrowingConditions(
        moisture_status=status,
        irrigation_needed=status == "Dry" or (weekly_precip - weekly_et0) < IRRIGATION_DEFICIT,
        frost_days=frost_days,
        growing_degree_days=round(gdd),
        weekly_precipitation=weekly_precip,
        weekly_et0=weekly_et0,
    )


def planting_windows(soil_temp_f: float) -> List[Tuple[str, int, bool]]:
    return [(crop, minimum, soil_temp_f >= minimum) for crop, minimum in PLANTING_WINDOWS]


def format_growing_report(location: Location, data: Dict[str, Any], c: GrowingConditions) -> str:
    hourly = data["hourly"]
    h_units = data.get("hourly_units", {})
    daily = data.get("daily", {})
    d_units = data.get("daily_units", {})
    p_unit = d_units.get("precipitation_sum", "inch")
    s_unit = h_units.get("soil_temperature_18cm", "°F")
    root_temp = _required(hourly, "soil_temperature_18cm")

    def pct(key: str) -> str:
        value = pick(hourly, key, 0)
        return "N/A" if value is None else f"{fixed(value * 100)}%"

    sign = "+" if c.water_balance >= 0 else ""
    irrigation = (
        "YES - soil is dry or water deficit expected"
        if c.irrigation_needed
        else "No - adequate moisture"
    )
    lines = [
        f"Growing Conditions for {location.label}",
        "",
        "=== Soil Status ===",
        f"Moisture Status: {c.moisture_status}",
        f"  Surface (0-1cm): {pct('soil_moisture_0_to_1cm')}",
        f"  Root Zone (3-9cm): {pct('soil_moisture_3_to_9cm')}",
        f"  Deep (9-27cm): {pct('soil_moisture_9_to_27cm')}",
        "",
        "Soil Temperature:",
        f"  Shallow (6cm): {num(pick(hourly, 'soil_temperature_6cm', 0))}"
        f"{h_units.get('soil_temperature_6cm', '°F')}",
        f"  Root Zone (18cm): {num(root_temp)}{s_unit}",
        "",
        "=== Water Balance (7-day) ===",
        f"Expected Precipitation: {c.weekly_precipitation:.2f} {p_unit}",
        f"Expected Evapotranspiration (ET₀): {c.weekly_et0:.2f} "
        f"{d_units.get('et0_fao_evapotranspiration', 'inch')}",
        f"Net Water Balance: {sign}{c.water_balance:.2f} {p_unit}",
        "",
        f"Irrigation Needed: {irrigation}",
        "",
        "=== Frost Risk ===",
    ]

    if c.frost_risk:
        lines.append("⚠️ FROST WARNING - Freezing temperatures expected:")
        for day, low in c.frost_days:
            lines.append(
                f"  {day_label(day)}: Low of {num(low)}{d_units.get('temperature_2m_min', '°F')}"
            )
    else:
        lines.append("No frost risk in 7-day forecast")

    lines.append("")
    lines.append(f"Growing Degree Days (7-day, base {GDD_BASE_F}°F): {c.growing_degree_days}")
    lines.append("")
    lines.append("=== Planting Windows ===")
    lines.append(f"Based on root zone soil temp of {num(root_temp)}{s_unit}:")
    for crop, minimum, ready in planting_windows(root_temp):
        status = "✓ Ready" if ready else "✗ Too cold"
        lines.append(f"  {status} - {crop} (need {minimum}°F+)")

    lines.append("")
    lines.append("=== 7-Day Precipitation Forecast ===")
    for i, day in enumerate(daily.get("time", [])):
        lines.append(
            f"  {day_label(day)}: {pick(daily, 'precipitation_sum', i, 0):.2f}{p_unit} "
            f"({num(pick(daily, 'precipitation_probability_max', i, 0))}% chance)"
        )

    return "\n".join(lines)


async def get_growing_conditions(params: GrowingConditionsInput, ctx: ToolContext) -> str:
    location = await geocode(ctx, params.city, noun="location")
    url = build_url(
        FORECAST_API_URL,
        {
            "latitude": location.latitude,
            "longitude": location.longitude,
            "current": "temperature_2m",
            "hourly": [
                "soil_temperature_6cm",
                "soil_temperature_18cm",
                "soil_moisture_0_to_1cm",
                "soil_moisture_3_to_9cm",
                "soil_moisture_9_to_27cm",
                "et0_fao_evapotranspiration",
            ],
            "daily": [
                "temperature_2m_min",
                "temperature_2m_max",
                "precipitation_sum",
                "precipitation_probability_max",
                "et0_fao_evapotranspiration",
            ],
            "temperature_unit": "fahrenheit",
            "precipitation_unit": "inch",
            "timezone": "auto",
            "forecast_days": 7,
            "forecast_hours": 1,
        },
    )
    data = await ctx.fetcher.fetch_json(url, ttl=TTL_FORECAST)
    conditions = analyze_growing_conditions(data)
    return format_growing_report(location, data, conditions)


TOOL = ToolSpec(
    name="get_growing_conditions",
    description=(
        "Get agricultural growing conditions for a location. Includes soil "
        "moisture/temperature, evapotranspiration, precipitation forecast, frost risk, "
        "and planting recommendations."
    ),
    input_model=GrowingConditionsInput,
    handler=get_growing_conditions,
    category="compound",
    tags=("agriculture", "farming", "planting", "irrigation"),
    subject="growing conditions",
)
