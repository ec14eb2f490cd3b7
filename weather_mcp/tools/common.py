"""Helpers shared by the weather tools: inputs, geocoding and labels."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional, Sequence

from pydantic import BaseModel, Field

from weather_mcp.constants import GEOCODING_API_URL, TTL_STATIC
from weather_mcp.errors import LocationNotFoundError
from weather_mcp.fetch import build_url
from weather_mcp.tools.registry import ToolContext

# ── Inputs ───────────────────────────────────────────────────────────


class CityInput(BaseModel):
    """Arguments for tools addressed by place name."""

    city: str = Field(
        ...,
        min_length=1,
        description="City name (e.g., 'London', 'Tokyo', 'New York')",
    )

    @property
    def target(self) -> str:
        return f'"{self.city}"'


class CoordinatesInput(BaseModel):
    """Arguments for tools addressed by ocean coordinates."""

    latitude: float = Field(..., ge=-90, le=90, description="Latitude (-90 to 90)")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude (-180 to 180)")

    @property
    def target(self) -> str:
        return f"coordinates ({num(self.latitude)}, {num(self.longitude)})"


# ── Geocoding ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Location:
    name: str
    latitude: float
    longitude: float
    country: str = ""
    admin1: Optional[str] = None

    @classmethod
    def from_result(cls, result: Mapping[str, Any]) -> "Location":
        return cls(
            name=result["name"],
            latitude=float(result["latitude"]),
            longitude=float(result["longitude"]),
            country=result.get("country", ""),
            admin1=result.get("admin1") or None,
        )

    @property
    def label(self) -> str:
        parts = [self.name, self.admin1, self.country]
        return ", ".join(p for p in parts if p)

    @property
    def coordinates(self) -> str:
        return coords_label(self.latitude, self.longitude)


async def geocode(ctx: ToolContext, query: str, *, noun: str = "city") -> Location:
    """Resolve *query* to the best-matching :class:`Location`.

    Raises :class:`LocationNotFoundError` when the geocoder has no match.
    """
    url = build_url(
        GEOCODING_API_URL,
        {"name": query, "count": 1, "language": "en", "format": "json"},
    )
    data = await ctx.fetcher.fetch_json(url, ttl=TTL_STATIC)
    results = (data or {}).get("results") or []
    if not results:
        raise LocationNotFoundError(query, noun)
    return Location.from_result(results[0])


# ── Number formatting ────────────────────────────────────────────────


def num(value: Any) -> str:
    """Render a JSON number the way it reads naturally (``72`` not ``72.0``)."""
    if value is None:
        return "N/A"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def fixed(value: Optional[float], digits: int = 1) -> str:
    if value is None:
        return "N/A"
    return f"{value:.{digits}f}"


def coords_label(latitude: float, longitude: float, digits: Optional[int] = None) -> str:
    """``51.5°N, 0.13°W`` style label."""
    lat_dir = "N" if latitude >= 0 else "S"
    lon_dir = "E" if longitude >= 0 else "W"
    if digits is None:
        lat_text, lon_text = num(abs(latitude)), num(abs(longitude))
    else:
        lat_text, lon_text = fixed(abs(latitude), digits), fixed(abs(longitude), digits)
    return f"{lat_text}°{lat_dir}, {lon_text}°{lon_dir}"


def mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def pick(series: Mapping[str, Sequence[Any]], key: str, index: int, default: Any = None) -> Any:
    """Return ``series[key][index]`` or *default* if the column is short or missing."""
    column = series.get(key) or []
    if 0 <= index < len(column) and column[index] is not None:
        return column[index]
    return default


# ── Threshold bands ──────────────────────────────────────────────────


@dataclass(frozen=True)
class Band:
    """A labelled range covering values up to and including ``upper``."""

    upper: float
    label: str
    description: str = ""


def classify(value: Optional[float], bands: Sequence[Band]) -> Band:
    """Return the first band whose ``upper`` bound is >= *value*.

    Bands must be ordered by ascending ``upper``; a missing value maps
    to the lowest band.
    """
    if value is None:
        return bands[0]
    for band in bands:
        if value <= band.upper:
            return band
    return bands[-1]


# ── Directions and sea state ─────────────────────────────────────────

_COMPASS_POINTS = (
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
)  # fmt: skip


def cardinal_direction(degrees: float) -> str:
    """16-point compass direction for *degrees*."""
    # round-half-up, matching how bearings are conventionally binned
    return _COMPASS_POINTS[int(degrees / 22.5 + 0.5) % 16]


@dataclass(frozen=True)
class SeaState:
    code: int
    description: str
    wave_height: str


# Douglas sea scale
SEA_STATES = (
    SeaState(0, "Calm (glassy)", "0 m"),
    SeaState(1, "Calm (rippled)", "0-0.1 m"),
    SeaState(2, "Smooth", "0.1-0.5 m"),
    SeaState(3, "Slight", "0.5-1.25 m"),
    SeaState(4, "Moderate", "1.25-2.5 m"),
    SeaState(5, "Rough", "2.5-4 m"),
    SeaState(6, "Very rough", "4-6 m"),
    SeaState(7, "High", "6-9 m"),
    SeaState(8, "Very high", "9-14 m"),
    SeaState(9, "Phenomenal", ">14 m"),
)

_SEA_STATE_LIMITS = (0.0, 0.1, 0.5, 1.25, 2.5, 4.0, 6.0, 9.0, 14.0)


def sea_state(wave_height_m: float) -> SeaState:
    """Douglas sea state for a significant wave height in metres."""
    for state, limit in zip(SEA_STATES, _SEA_STATE_LIMITS):
        if wave_height_m <= limit:
            return state
    return SEA_STATES[-1]


# ── WMO weather codes ────────────────────────────────────────────────

WMO_CODES: Dict[int, str] = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Foggy",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    56: "Light freezing drizzle",
    57: "Dense freezing drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    66: "Light freezing rain",
    67: "Heavy freezing rain",
    71: "Slight snowfall",
    73: "Moderate snowfall",
    75: "Heavy snowfall",
    77: "Snow grains",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}

THUNDERSTORM_CODES = frozenset({95, 96, 99})


def weather_condition(code: Optional[int], default: str = "Unknown") -> str:
    if code is None:
        return default
    return WMO_CODES.get(int(code), default)


# ── Date labels ──────────────────────────────────────────────────────


def _parse_date(value: str) -> date:
    return date.fromisoformat(value[:10])


def day_label(value: str) -> str:
    """``2024-01-05`` -> ``Fri, Jan 5``."""
    d = _parse_date(value)
    return f"{d:%a}, {d:%b} {d.day}"


def weekday_label(value: str) -> str:
    """``2024-01-05`` -> ``Friday``."""
    return f"{_parse_date(value):%A}"


def short_weekday(value: str) -> str:
    return f"{_parse_date(value):%a}"


def hour_label(value: str) -> str:
    """``2024-01-05T15:00`` -> ``Fri 3 PM``."""
    dt = datetime.fromisoformat(value)
    hour = dt.hour % 12 or 12
    return f"{dt:%a} {hour} {'AM' if dt.hour < 12 else 'PM'}"


def clock_label(value: str) -> str:
    """``2024-01-05T15:00`` -> ``3 PM``."""
    dt = datetime.fromisoformat(value)
    hour = dt.hour % 12 or 12
    return f"{hour} {'AM' if dt.hour < 12 else 'PM'}"
