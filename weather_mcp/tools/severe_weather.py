"""``get_severe_weather``: NWS-style alerts from current conditions and forecast.

Current readings produce *Warning* or *Advisory* alerts timed "Now";
forecast days produce *Watch* alerts naming the day.  Each category emits
at most one current and one forecast alert, and the final list is ordered
Warning, Watch, Advisory.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List

from pydantic import Field

from weather_mcp.constants import AIR_QUALITY_API_URL, FORECAST_API_URL, TTL_FORECAST, TTL_REALTIME
from weather_mcp.fetch import build_url
from weather_mcp.tools.common import (
    THUNDERSTORM_CODES,
    CityInput,
    Location,
    geocode,
    num,
    pick,
    weekday_label,
)
from weather_mcp.tools.registry import ToolContext, ToolSpec

# ── Thresholds ───────────────────────────────────────────────────────

HEAT_ADVISORY = 100  # feels-like °F
HEAT_WARNING = 110
FREEZE_ADVISORY = 32  # air temperature °F
COLD_WARNING = 0  # wind chill °F
WIND_ADVISORY_SUSTAINED = 30  # mph
WIND_ADVISORY_GUSTS = 45
WIND_WARNING_SUSTAINED = 40
WIND_WARNING_GUSTS = 58
RAIN_ADVISORY = 1  # inches per day
RAIN_WARNING = 2
SNOW_ADVISORY = 4
SNOW_WARNING = 8
AQI_ADVISORY = 101
AQI_WARNING = 151
UV_ADVISORY = 8
UV_WARNING = 11

SEVERITY_ORDER = ("Warning", "Watch", "Advisory")
SEVERITY_RANK = {severity: rank for rank, severity in enumerate(SEVERITY_ORDER)}

ALERT_CATEGORIES = (
    "Heat",
    "Cold",
    "Wind",
    "Precipitation",
    "Thunderstorm",
    "Air Quality",
    "UV",
)

CURRENT_FIELDS = [
    "temperature_2m",
    "apparent_temperature",
    "wind_speed_10m",
    "wind_gusts_10m",
    "weather_code",
    "precipitation",
    "snowfall",
]

DAILY_FIELDS = [
    "temperature_2m_max",
    "temperature_2m_min",
    "apparent_temperature_max",
    "apparent_temperature_min",
    "precipitation_sum",
    "snowfall_sum",
    "wind_speed_10m_max",
    "wind_gusts_10m_max",
    "weather_code",
]


class SevereWeatherInput(CityInput):
    city: str = Field(
        ..., min_length=1, description="City or location name to check for severe weather"
    )


@dataclass(frozen=True)
class Alert:
    category: str
    severity: str
    headline: str
    timeframe: str
    recommendation: str


def _windy(speed: float, gusts: float, sustained: float, gust_limit: float) -> bool:
    return speed >= sustained or gusts >= gust_limit


def evaluate_alerts(forecast: Dict[str, Any], aq: Dict[str, Any]) -> List[Alert]:
    """Scan *forecast* and *aq* responses against the thresholds above."""
    current = forecast["current"]
    daily = forecast.get("daily") or {}
    days = daily.get("time") or []
    aq_now = aq.get("current") or {}
    alerts: List[Alert] = []

    def day_at(i: int) -> str:
        return weekday_label(days[i])

    # ── Heat ──
    feels = current.get("apparent_temperature") or 0
    if feels >= HEAT_WARNING:
        alerts.append(
            Alert(
                "Heat",
                "Warning",
                f"Feels like {num(feels)}°F",
                "Now",
                "Limit outdoor activity, stay hydrated, check on vulnerable people",
            )
        )
    elif feels >= HEAT_ADVISORY:
        alerts.append(
            Alert(
                "Heat",
                "Advisory",
                f"Feels like {num(feels)}°F",
                "Now",
                "Stay hydrated, take frequent breaks in shade",
            )
        )
    # today is already covered when a current alert fired
    for i in range(1 if feels >= HEAT_ADVISORY else 0, len(days)):
        feels_max = pick(daily, "apparent_temperature_max", i, 0)
        if feels_max >= HEAT_WARNING:
            alerts.append(
                Alert(
                    "Heat",
                    "Watch",
                    f"Feels like {num(feels_max)}°F expected",
                    day_at(i),
                    "Prepare for extreme heat, plan to limit outdoor exposure",
                )
            )
            break
        if feels_max >= HEAT_ADVISORY:
            alerts.append(
                Alert(
                    "Heat",
                    "Watch",
                    f"Feels like {num(feels_max)}°F expected",
                    day_at(i),
                    "Plan to stay hydrated and take breaks",
                )
            )
            break

    # ── Cold ──
    temp = current.get("temperature_2m") or 0
    if feels <= COLD_WARNING:
        alerts.append(
            Alert(
                "Cold",
                "Warning",
                f"Wind chill {num(feels)}°F",
                "Now",
                "Limit time outdoors, cover exposed skin, risk of frostbite",
            )
        )
    elif temp <= FREEZE_ADVISORY:
        alerts.append(
            Alert(
                "Cold",
                "Advisory",
                f"Temperature {num(temp)}°F",
                "Now",
                "Protect pipes and plants, dress in warm layers",
            )
        )
    for i in range(1 if temp <= FREEZE_ADVISORY else 0, len(days)):
        low = pick(daily, "temperature_2m_min", i, FREEZE_ADVISORY + 1)
        feels_min = pick(daily, "apparent_temperature_min", i, COLD_WARNING + 1)
        if feels_min <= COLD_WARNING:
            alerts.append(
                Alert(
                    "Cold",
                    "Watch",
                    f"Wind chill {num(feels_min)}°F expected",
                    day_at(i),
                    "Prepare for dangerous cold, protect pipes and pets",
                )
            )
            break
        if low <= FREEZE_ADVISORY:
            alerts.append(
                Alert(
                    "Cold",
                    "Watch",
                    f"Low of {num(low)}°F expected",
                    day_at(i),
                    "Protect sensitive plants and outdoor pipes",
                )
            )
            break

    # ── Wind ──
    speed = current.get("wind_speed_10m") or 0
    gusts = current.get("wind_gusts_10m") or 0
    headline = f"Winds {num(speed)} mph, gusts {num(gusts)} mph"
    windy_now = _windy(speed, gusts, WIND_ADVISORY_SUSTAINED, WIND_ADVISORY_GUSTS)
    if _windy(speed, gusts, WIND_WARNING_SUSTAINED, WIND_WARNING_GUSTS):
        alerts.append(
            Alert(
                "Wind",
                "Warning",
                headline,
                "Now",
                "Secure loose objects, avoid driving high-profile vehicles",
            )
        )
    elif windy_now:
        alerts.append(
            Alert(
                "Wind",
                "Advisory",
                headline,
                "Now",
                "Use caution outdoors, secure lightweight items",
            )
        )
    for i in range(1 if windy_now else 0, len(days)):
        max_wind = pick(daily, "wind_speed_10m_max", i, 0)
        max_gusts = pick(daily, "wind_gusts_10m_max", i, 0)
        expected = f"Winds to {num(max_wind)} mph, gusts to {num(max_gusts)} mph expected"
        if _windy(max_wind, max_gusts, WIND_WARNING_SUSTAINED, WIND_WARNING_GUSTS):
            alerts.append(
                Alert(
                    "Wind",
                    "Watch",
                    expected,
                    day_at(i),
                    "Secure outdoor furniture and plan accordingly",
                )
            )
            break
        if _windy(max_wind, max_gusts, WIND_ADVISORY_SUSTAINED, WIND_ADVISORY_GUSTS):
            alerts.append(
                Alert("Wind", "Watch", expected, day_at(i), "Be prepared for gusty conditions")
            )
            break

    # ── Precipitation ──
    for i in range(len(days)):
        rain = pick(daily, "precipitation_sum", i, 0)
        snow = pick(daily, "snowfall_sum", i, 0)
        today = i == 0
        timeframe = "Today" if today else day_at(i)
        if rain >= RAIN_WARNING:
            alert = Alert(
                "Precipitation",
                "Warning" if today else "Watch",
                f'{rain:.1f}" of rain expected',
                timeframe,
                "Flash flooding possible, avoid low-lying areas",
            )
        elif snow >= SNOW_WARNING:
            alert = Alert(
                "Precipitation",
                "Warning" if today else "Watch",
                f'{snow:.1f}" of snow expected',
                timeframe,
                "Hazardous travel expected, stock supplies",
            )
        elif rain >= RAIN_ADVISORY:
            alert = Alert(
                "Precipitation",
                "Advisory" if today else "Watch",
                f'{rain:.1f}" of rain expected',
                timeframe,
                "Localized flooding possible, plan travel carefully",
            )
        elif snow >= SNOW_ADVISORY:
            alert = Alert(
                "Precipitation",
                "Advisory" if today else "Watch",
                f'{snow:.1f}" of snow expected',
                timeframe,
                "Slippery roads possible, allow extra travel time",
            )
        else:
            continue
        alerts.append(alert)
        break

    # ── Thunderstorm ──
    if current.get("weather_code") in THUNDERSTORM_CODES:
        alerts.append(
            Alert(
                "Thunderstorm",
                "Warning",
                "Thunderstorm activity",
                "Now",
                "Seek shelter, avoid open areas and tall objects",
            )
        )
    else:
        for i in range(len(days)):
            if pick(daily, "weather_code", i) in THUNDERSTORM_CODES:
                alerts.append(
                    Alert(
                        "Thunderstorm",
                        "Watch",
                        "Thunderstorms possible",
                        "Today" if i == 0 else day_at(i),
                        "Monitor conditions, have a plan to seek shelter",
                    )
                )
                break

    # ── Air quality ──
    aqi = aq_now.get("us_aqi") or 0
    if aqi >= AQI_WARNING:
        alerts.append(
            Alert(
                "Air Quality",
                "Warning",
                f"AQI {num(aqi)} (Unhealthy)",
                "Now",
                "Limit prolonged outdoor exertion, keep windows closed",
            )
        )
    elif aqi >= AQI_ADVISORY:
        alerts.append(
            Alert(
                "Air Quality",
                "Advisory",
                f"AQI {num(aqi)} (Unhealthy for Sensitive Groups)",
                "Now",
                "Sensitive individuals should limit outdoor activity",
            )
        )

    # ── UV ──
    uv = aq_now.get("uv_index") or 0
    if uv >= UV_WARNING:
        alerts.append(
            Alert(
                "UV",
                "Warning",
                f"UV index {num(uv)} (Extreme)",
                "Now",
                "Avoid sun exposure, stay in shade, SPF 50+",
            )
        )
    elif uv >= UV_ADVISORY:
        alerts.append(
            Alert(
                "UV",
                "Advisory",
                f"UV index {num(uv)} (Very High)",
                "Now",
                "Apply SPF 30+ sunscreen, wear protective clothing",
            )
        )

    # stable sort keeps category order within a severity
    alerts.sort(key=lambda alert: SEVERITY_RANK[alert.severity])
    return alerts


def format_severe_weather_report(location: Location, alerts: List[Alert]) -> str:
    lines = [f"Severe Weather Summary for {location.label}", ""]

    if not alerts:
        lines.append("=== ALL CLEAR ===")
        lines.append("No active alerts or watches for the next 7 days.")
        return "\n".join(lines)

    for severity in SEVERITY_ORDER:
        group = [alert for alert in alerts if alert.severity == severity]
        if not group:
            continue
        label = severity.upper()
        plural = "S" if len(group) > 1 else ""
        lines.append(f"=== {len(group)} {label}{plural} ===")
        for alert in group:
            lines.append(
                f"  {alert.category.upper()} {label}: {alert.headline} ({alert.timeframe})"
            )
            lines.append(f"    -> {alert.recommendation}")
        lines.append("")

    alerted = {alert.category for alert in alerts}
    clear = [category for category in ALERT_CATEGORIES if category not in alerted]
    if clear:
        lines.append("=== ALL CLEAR ===")
        lines.append(f"  No alerts: {', '.join(clear)}")

    return "\n".join(lines).rstrip("\n")


async def get_severe_weather(params: SevereWeatherInput, ctx: ToolContext) -> str:
    location = await geocode(ctx, params.city, noun="location")
    coords = {"latitude": location.latitude, "longitude": location.longitude}
    forecast_url = build_url(
        FORECAST_API_URL,
        {
            **coords,
            "current": CURRENT_FIELDS,
            "daily": DAILY_FIELDS,
            "temperature_unit": "fahrenheit",
            "wind_speed_unit": "mph",
            "precipitation_unit": "inch",
            "timezone": "auto",
            "forecast_days": 7,
        },
    )
    aq_url = build_url(
        AIR_QUALITY_API_URL,
        {**coords, "current": ["us_aqi", "uv_index"], "timezone": "auto"},
    )
    forecast, aq = await asyncio.gather(
        ctx.fetcher.fetch_json(forecast_url, ttl=TTL_FORECAST),
        ctx.fetcher.fetch_json(aq_url, ttl=TTL_REALTIME),
    )
    return format_severe_weather_report(location, evaluate_alerts(forecast, aq))


TOOL = ToolSpec(
    name="get_severe_weather",
    description=(
        "Get severe weather summary for a city. Scans current conditions and 7-day "
        "forecast for heat, cold, wind, precipitation, thunderstorm, air quality, and "
        "UV hazards. Returns prioritised alerts with recommendations."
    ),
    input_model=SevereWeatherInput,
    handler=get_severe_weather,
    category="compound",
    tags=("severe", "alerts", "warnings", "safety", "hazards"),
    subject="severe weather",
)
