"""
navconv — TomTom itinerary (.itn)

    lng|lat|name|flag|

Coordinates are integers in 1e-5 degrees. The flag marks the departure
(4), intermediate waypoints (0) and the destination (2).
"""

from __future__ import annotations
import re
from datetime import datetime
from typing import Optional

from ..comments import escape, trim
from ..models import NavigationPosition
from .base import ROUTE, LineBasedFormat

ITN_FACTOR = 100000.0
TT_DEPARTURE = 4
TT_WAYPOINT = 0
TT_DESTINATION = 2

LINE_PATTERN = re.compile(r"^\s*(-?\d+)\|(-?\d+)\|([^|]*)\|(\d+)\|\s*$")


class TomTomItnFormat(LineBasedFormat):
    extension = ".itn"
    name = "TomTom Itinerary (*.itn)"
    route_characteristics = ROUTE

    def is_position(self, line: str) -> bool:
        return LINE_PATTERN.match(line) is not None

    def parse_position(self, line: str, start_date: Optional[datetime]) -> NavigationPosition:
        match = LINE_PATTERN.match(line)
        if match is None:
            raise ValueError("not a TomTom itinerary record")
        lng, lat, name, _ = match.groups()
        return self.create_position(int(lng) / ITN_FACTOR, int(lat) / ITN_FACTOR, comment=trim(name))

    def write_position(self, position: NavigationPosition, index: int, first: bool, last: bool) -> str:
        if first:
            flag = TT_DEPARTURE
        elif last:
            flag = TT_DESTINATION
        else:
            flag = TT_WAYPOINT
        lng = int(round(position.longitude * ITN_FACTOR))
        lat = int(round(position.latitude * ITN_FACTOR))
        name = escape(position.comment, "|", ";") if self.config.write_name else None
        return f"{lng:06d}|{lat:07d}|{name or ''}|{flag}|"
