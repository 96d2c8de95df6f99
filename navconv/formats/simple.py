"""
navconv — Simple comma separated formats (.csv)

Three formats share the .csv extension: the Haicom GPS logger export, the
Route 66 POI list and a generic latitude/longitude table. Route 66 lines
are valid generic CSV too, so Route66Format must be tried first.
"""

from __future__ import annotations
import logging
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional

from ..comments import as_comment, as_desc, as_name, escape, to_mixed_case, trim
from ..config import FormatConfig
from ..conversion import (
    format_double_as_string, format_elevation_as_string, format_heading_as_string,
    format_speed_as_string, is_valid_start_date, parse_double,
)
from ..models import NavigationPosition, Route
from .base import TRACK, WAYPOINTS, LineBasedFormat

log = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# Haicom Logger
# ─────────────────────────────────────────────────────────────

class HaicomLoggerFormat(LineBasedFormat):
    """Haicom HI-602 logger export: one fix per line, always a track."""

    extension = ".csv"
    name = "Haicom Logger (*.csv)"
    route_characteristics = TRACK

    HEADER_LINE = "INDEX,RCR,DATE,TIME,LATITUDE,N/S,LONGITUDE,E/W,ALTITUDE,COURSE,SPEED,"
    LINE_PATTERN = re.compile(
        r"^\d+,\w+,"
        r"(\d+/\d+/\d+)?,"
        r"(\d+:\d+:\d+)?,"
        r"([\d.]+),([NS]),"
        r"([\d.]+),([WE]),"
        r"(-?[\d.]*)m,"
        r"([\d.]*),"
        r"([\d.]*)km/h$")

    def is_position(self, line: str) -> bool:
        return self.LINE_PATTERN.match(line.strip()) is not None

    def is_header(self, line: str, index: int) -> bool:
        return line.startswith(self.HEADER_LINE)

    @staticmethod
    def parse_time(date: Optional[str], time: Optional[str],
                   start_date: Optional[datetime]) -> Optional[datetime]:
        """Date and time of a record; a record with only a time takes its day from `start_date`."""
        date, time = trim(date), trim(time)
        if time is None:
            return None
        try:
            if date is not None:
                parsed = datetime.strptime(f"{date} {time}", "%y/%m/%d %H:%M:%S")
                return parsed.replace(tzinfo=timezone.utc)
            if is_valid_start_date(start_date):
                clock = datetime.strptime(time, "%H:%M:%S")
                return datetime(start_date.year, start_date.month, start_date.day,
                                clock.hour, clock.minute, clock.second, tzinfo=timezone.utc)
        except ValueError:
            log.error("Could not parse date and time '%s %s'", date or "", time)
        return None

    def parse_position(self, line: str, start_date: Optional[datetime]) -> NavigationPosition:
        match = self.LINE_PATTERN.match(line.strip())
        if match is None:
            raise ValueError("not a Haicom logger record")
        date, time, lat, north_south, lng, west_east, altitude, course, speed = match.groups()
        latitude = parse_double(lat)
        longitude = parse_double(lng)
        if latitude is not None and north_south == "S":
            latitude = -latitude
        if longitude is not None and west_east == "W":
            longitude = -longitude
        return self.create_position(longitude, latitude,
                                    elevation=parse_double(altitude),
                                    heading=parse_double(course),
                                    speed=parse_double(speed),
                                    time=self.parse_time(date, time, start_date))

    def write_header(self, route: Route) -> List[str]:
        return [self.HEADER_LINE]

    def write_position(self, position: NavigationPosition, index: int, first: bool, last: bool) -> str:
        lng, lat = position.longitude, position.latitude
        time = position.time if self.config.write_time else None
        fields = [
            str(index + 1),
            "T",
            time.strftime("%y/%m/%d") if time else "",
            time.strftime("%H:%M:%S") if time else "",
            f"{abs(lat):.5f}", "N" if lat >= 0.0 else "S",
            f"{abs(lng):.5f}", "E" if lng >= 0.0 else "W",
            (format_elevation_as_string(position.elevation) if self.config.write_elevation else "") + "m",
            format_heading_as_string(position.heading) if self.config.write_heading else "",
            (format_speed_as_string(position.speed) if self.config.write_speed else "") + "km/h",
        ]
        return ",".join(fields)


# ─────────────────────────────────────────────────────────────
# Route 66 POI
# ─────────────────────────────────────────────────────────────

class Route66Format(LineBasedFormat):
    """Route 66 points of interest: lon,lat,"UPPER CASE NAME"."""

    extension = ".csv"
    name = "Route 66 POI (*.csv)"
    route_characteristics = WAYPOINTS

    LINE_PATTERN = re.compile(
        r'^\s*(-?\d+\.\d+)\s*,\s*(-?\d+\.\d+)\s*,\s*"([A-Z\s\d-]*)"\s*$')

    def is_position(self, line: str) -> bool:
        return self.LINE_PATTERN.match(line) is not None

    def parse_position(self, line: str, start_date: Optional[datetime]) -> NavigationPosition:
        match = self.LINE_PATTERN.match(line)
        if match is None:
            raise ValueError("not a Route 66 record")
        longitude, latitude, comment = match.groups()
        return self.create_position(parse_double(longitude), parse_double(latitude),
                                    comment=to_mixed_case(trim(comment)))

    @staticmethod
    def format_comment(comment: Optional[str]) -> str:
        comment = escape(comment, ",", ";")
        if comment is None:
            return ""
        return re.sub(r"[^A-Z\s\d-]", "", comment.upper())

    def write_position(self, position: NavigationPosition, index: int, first: bool, last: bool) -> str:
        comment = self.format_comment(position.comment) if self.config.write_name else ""
        return (f"{format_double_as_string(position.longitude, 6)},"
                f"{format_double_as_string(position.latitude, 6)},\"{comment}\"")


# ─────────────────────────────────────────────────────────────
# Generic CSV
# ─────────────────────────────────────────────────────────────

CSV_DEFAULTS: Dict[str, object] = {
    "separator": ",",
    "decimal": ".",
    "col_lat": 0,
    "col_lng": 1,
    "col_alt": 2,
    "col_name": 3,
    "col_comment": 4,
}

CSV_HEADERS = {
    "col_lat": "Latitude",
    "col_lng": "Longitude",
    "col_alt": "Altitude",
    "col_name": "Name",
    "col_comment": "Comment",
}


def csv_split(line: str, separator: str) -> List[str]:
    """Split a CSV line, keeping separators inside double quotes."""
    result = []
    current = ""
    in_quotes = False
    for ch in line:
        if ch == '"':
            in_quotes = not in_quotes
            current += ch
        elif ch == separator and not in_quotes:
            result.append(current)
            current = ""
        else:
            current += ch
    result.append(current)
    return result


class CsvFormat(LineBasedFormat):
    """
    Latitude,Longitude,Altitude,Name,Comment table.

    Separator, decimal mark and column positions are constructor options;
    a column index below 0 leaves that column out.
    """

    extension = ".csv"
    name = "Comma Separated Values (*.csv)"

    def __init__(self, config: Optional[FormatConfig] = None, **options):
        super().__init__(config)
        unknown = set(options) - set(CSV_DEFAULTS)
        if unknown:
            raise TypeError(f"Unknown CSV options: {', '.join(sorted(unknown))}")
        self.options = {**CSV_DEFAULTS, **options}

    @property
    def separator(self) -> str:
        return self.options["separator"]

    @property
    def decimal(self) -> str:
        return self.options["decimal"]

    def _field(self, parts: List[str], column: str) -> Optional[str]:
        index = self.options[column]
        if index < 0 or index >= len(parts):
            return None
        return trim(parts[index].strip().strip('"'))

    def _number(self, parts: List[str], column: str) -> Optional[float]:
        value = self._field(parts, column)
        if value is not None and self.decimal != ".":
            value = value.replace(self.decimal, ".")
        return parse_double(value)

    def is_position(self, line: str) -> bool:
        parts = csv_split(line.strip(), self.separator)
        return self._number(parts, "col_lat") is not None and self._number(parts, "col_lng") is not None

    def is_header(self, line: str, index: int) -> bool:
        return index == 0 and not self.is_position(line)

    def parse_position(self, line: str, start_date: Optional[datetime]) -> NavigationPosition:
        parts = csv_split(line.strip(), self.separator)
        return self.create_position(self._number(parts, "col_lng"), self._number(parts, "col_lat"),
                                    elevation=self._number(parts, "col_alt"),
                                    comment=as_comment(self._field(parts, "col_name"),
                                                       self._field(parts, "col_comment")))

    def _columns(self) -> List[str]:
        """Column keys in output order."""
        used = [key for key in CSV_HEADERS if self.options[key] >= 0]
        return sorted(used, key=lambda key: self.options[key])

    def write_header(self, route: Route) -> List[str]:
        return [self.separator.join(CSV_HEADERS[key] for key in self._columns())]

    def _format_number(self, value: Optional[float], digits: int) -> str:
        text = format_double_as_string(value, digits)
        return text.replace(".", self.decimal) if self.decimal != "." else text

    @staticmethod
    def _quote(text: Optional[str]) -> str:
        return '"' + (text or "").replace('"', "'") + '"'

    def write_position(self, position: NavigationPosition, index: int, first: bool, last: bool) -> str:
        cfg = self.config
        comment = position.comment if cfg.write_name else None
        if cfg.split_name_and_desc:
            name, desc = as_name(comment), as_desc(comment)
        else:
            name, desc = trim(comment), None
        values = {
            "col_lat": self._format_number(position.latitude, 7),
            "col_lng": self._format_number(position.longitude, 7),
            "col_alt": self._format_number(position.elevation, 1) if cfg.write_elevation else "",
            "col_name": self._quote(escape(name, self.separator, " ") if name else None),
            "col_comment": self._quote(escape(desc, self.separator, " ") if desc else None),
        }
        return self.separator.join(values[key] for key in self._columns())
