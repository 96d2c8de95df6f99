"""
navconv — Navigon Mobile Navigator 5 routes (.rte)

Each line holds 17 '|' separated fields; city, street and house number sit
in fields 6, 8 and 9, longitude and latitude in fields 12 and 13 and again
in 16 and 17. Unused fields are '-'.
"""

from __future__ import annotations
import re
from datetime import datetime
from typing import Optional

from ..comments import escape, to_mixed_case, trim
from ..conversion import format_position_as_string, parse_double
from ..models import NavigationPosition
from .base import ROUTE, LineBasedFormat

SEPARATOR = "|"
_ANY = r"[^|]*"
_POSITION = r"\s*-?\d+\.\d+\s*"

LINE_PATTERN = re.compile(
    "^" + r"\|".join([_ANY] * 5 + [f"({_ANY})", _ANY, f"({_ANY})", f"({_ANY})", _ANY, _ANY,
                                  f"({_POSITION})", f"({_POSITION})"] + [_ANY] * 4) + r"\|\s*$")


def parse_field(text: Optional[str]) -> Optional[str]:
    value = trim(text)
    if value == "-":
        return None
    if value is not None and len(value) > 2:
        value = to_mixed_case(value)
    return value


def format_field(text: Optional[str]) -> str:
    value = trim(escape(text, SEPARATOR, ";"))
    return value if value is not None else "-"


def as_nmn_comment(city: Optional[str], street: Optional[str], number: Optional[str]) -> Optional[str]:
    """'Bad Urach, Hauptstrasse 5'; any part may be missing."""
    address = " ".join(part for part in (street, number) if part) or None
    if city and address:
        return f"{city}, {address}"
    return city or address


class Nmn5Format(LineBasedFormat):
    extension = ".rte"
    name = "Navigon Mobile Navigator 5 (*.rte)"
    route_characteristics = ROUTE

    def is_position(self, line: str) -> bool:
        return LINE_PATTERN.match(line) is not None

    def parse_position(self, line: str, start_date: Optional[datetime]) -> NavigationPosition:
        match = LINE_PATTERN.match(line)
        if match is None:
            raise ValueError("not a Navigon Mobile Navigator 5 record")
        city, street, number, longitude, latitude = match.groups()
        return self.create_position(parse_double(longitude), parse_double(latitude),
                                    comment=as_nmn_comment(parse_field(city), parse_field(street),
                                                           parse_field(number)))

    def write_position(self, position: NavigationPosition, index: int, first: bool, last: bool) -> str:
        longitude = format_position_as_string(position.longitude)
        latitude = format_position_as_string(position.latitude)
        # the packed comment goes unstructured into the city field
        city = format_field(position.comment if self.config.write_name else None)
        fields = ["-"] * 5 + [city, "-", "-", "-", "-", "-", longitude, latitude,
                              "-", "-", longitude, latitude]
        return SEPARATOR.join(fields) + SEPARATOR
