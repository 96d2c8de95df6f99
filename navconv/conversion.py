"""
navconv — Coordinate, unit and number conversion

Pure functions shared by all formats. None goes in, None comes out: a
missing value is never turned into zero and nothing here raises on bad input.
"""

from __future__ import annotations
import math
import sys
from datetime import datetime, timezone
from typing import Optional, Tuple

# ─────────────────────────────────────────────────────────────
# Spherical Mercator
# ─────────────────────────────────────────────────────────────

EARTH_RADIUS = 6371000.0  # meters, also the Mercator scale

_TINY = sys.float_info.min


def wgs84_longitude_to_mercator_x(longitude: float) -> int:
    return int(round(longitude * EARTH_RADIUS * math.pi / 180.0))


def wgs84_latitude_to_mercator_y(latitude: float) -> int:
    # tan() reaches 0 at the south pole; clamp so both poles stay finite
    t = max(math.tan(latitude * math.pi / 360.0 + math.pi / 4.0), _TINY)
    return int(round(math.log(t) * EARTH_RADIUS))


def mercator_x_to_wgs84_longitude(x: int) -> float:
    return x * 180.0 / (EARTH_RADIUS * math.pi)


def mercator_y_to_wgs84_latitude(y: int) -> float:
    return (2.0 * math.atan(math.exp(y / EARTH_RADIUS)) - math.pi / 2.0) * 180.0 / math.pi


def to_projected(longitude: Optional[float], latitude: Optional[float]) -> Tuple[Optional[int], Optional[int]]:
    """WGS84 degrees to Mercator (x, y) meters."""
    x = wgs84_longitude_to_mercator_x(longitude) if longitude is not None else None
    y = wgs84_latitude_to_mercator_y(latitude) if latitude is not None else None
    return x, y


def to_geographic(x: Optional[int], y: Optional[int]) -> Tuple[Optional[float], Optional[float]]:
    """Mercator (x, y) meters to WGS84 (longitude, latitude) degrees."""
    longitude = mercator_x_to_wgs84_longitude(x) if x is not None else None
    latitude = mercator_y_to_wgs84_latitude(y) if y is not None else None
    return longitude, latitude


# ─────────────────────────────────────────────────────────────
# Units
# ─────────────────────────────────────────────────────────────

KMH_PER_MS = 3.6
FEET_IN_METERS = 0.3048


def kmh_to_ms(kmh: Optional[float]) -> Optional[float]:
    return kmh / KMH_PER_MS if kmh is not None else None


def ms_to_kmh(ms: Optional[float]) -> Optional[float]:
    return ms * KMH_PER_MS if ms is not None else None


def feet_to_meters(feet: Optional[float]) -> Optional[float]:
    return feet * FEET_IN_METERS if feet is not None else None


def meters_to_feet(meters: Optional[float]) -> Optional[float]:
    return meters / FEET_IN_METERS if meters is not None else None


# ─────────────────────────────────────────────────────────────
# Number formatting and parsing
# ─────────────────────────────────────────────────────────────

POSITION_DIGITS = 7
ELEVATION_DIGITS = 1
HEADING_DIGITS = 1
SPEED_DIGITS = 1
DOP_DIGITS = 6


def is_empty(value: Optional[float]) -> bool:
    return value is None or value == 0.0 or math.isnan(value)


def format_double(value: Optional[float], digits: int) -> Optional[float]:
    """Round to at most `digits` decimals; None for missing or non-finite values."""
    if value is None or math.isnan(value) or math.isinf(value):
        return None
    return round(value, digits)


def format_double_as_string(value: Optional[float], digits: int) -> str:
    """Fixed-point text with trailing zeros dropped, at least one decimal kept."""
    rounded = format_double(value, digits)
    if rounded is None:
        return ""
    text = f"{rounded:.{max(digits, 1)}f}".rstrip("0")
    return text + "0" if text.endswith(".") else text


def format_position(value: Optional[float]) -> Optional[float]:
    return format_double(value, POSITION_DIGITS)


def format_elevation(value: Optional[float]) -> Optional[float]:
    return format_double(value, ELEVATION_DIGITS)


def format_heading(value: Optional[float]) -> Optional[float]:
    return format_double(value, HEADING_DIGITS)


def format_elevation_as_string(value: Optional[float]) -> str:
    return format_double_as_string(value, ELEVATION_DIGITS)


def format_heading_as_string(value: Optional[float]) -> str:
    return format_double_as_string(value, HEADING_DIGITS)


def format_speed_as_string(value: Optional[float]) -> str:
    return format_double_as_string(value, SPEED_DIGITS)


def format_position_as_string(value: Optional[float]) -> str:
    return format_double_as_string(value, POSITION_DIGITS)


def parse_double(s: Optional[str]) -> Optional[float]:
    if s is None:
        return None
    try:
        value = float(s.strip())
    except (ValueError, TypeError):
        return None
    return None if math.isnan(value) else value


def parse_int(s: Optional[str]) -> Optional[int]:
    if s is None:
        return None
    try:
        return int(s.strip())
    except (ValueError, TypeError):
        value = parse_double(s)
        return int(value) if value is not None and not math.isinf(value) else None


# ─────────────────────────────────────────────────────────────
# Time
# ─────────────────────────────────────────────────────────────

def is_valid_start_date(value: Optional[datetime]) -> bool:
    """A start date of 1970-01-01 means "not set" rather than the epoch."""
    if value is None:
        return False
    return not (value.year == 1970 and value.timetuple().tm_yday == 1)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_iso_time(text: Optional[str]) -> Optional[datetime]:
    """Parse XML schema dateTime values like 2007-11-22T10:14:04Z or ...04.120+01:00."""
    if not text:
        return None
    s = text.strip()
    if not s:
        return None
    if s.endswith("Z") or s.endswith("z"):
        s = s[:-1] + "+00:00"
    if "." in s:
        # fromisoformat before 3.11 only takes 3 or 6 fraction digits
        head, _, rest = s.partition(".")
        digits = ""
        while rest and rest[0].isdigit():
            digits, rest = digits + rest[0], rest[1:]
        s = f"{head}.{(digits + '000000')[:6]}{rest}"
    try:
        parsed = datetime.fromisoformat(s)
    except ValueError:
        return None
    return as_utc(parsed)


def format_iso_time(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    value = as_utc(value)
    text = value.strftime("%Y-%m-%dT%H:%M:%S")
    if value.microsecond % 1000:
        text += f".{value.microsecond:06d}"
    elif value.microsecond:
        text += f".{value.microsecond // 1000:03d}"
    return text + "Z"
