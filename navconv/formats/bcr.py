"""
navconv — Marco Polo / Motorrad Routenplaner (.bcr)

An INI document:

    [CLIENT]
    REQUEST=TRUE
    ROUTENAME=Tour
    STATION1=Standort,999999999
    [COORDINATES]
    STATION1=916091,6152598
    [DESCRIPTION]
    STATION1=Bad Urach
    [ROUTE]

Coordinates are spherical Mercator meters, so positions are kept as
MercatorPosition and written back without a round trip through degrees.
"""

from __future__ import annotations
import configparser
import io
import logging
import re
from datetime import datetime
from typing import BinaryIO, List, Optional

from ..comments import trim
from ..context import ParserContext, Source, as_source
from ..conversion import to_projected
from ..errors import MalformedRecordError
from ..models import MercatorPosition, NavigationPosition, Route, RouteCharacteristics
from .base import ROUTE, NavigationFormat, ReuseScope

log = logging.getLogger(__name__)

CLIENT = "CLIENT"
COORDINATES = "COORDINATES"
DESCRIPTION = "DESCRIPTION"
ROUTE_SECTION = "ROUTE"
STATION_SECTIONS = (CLIENT, COORDINATES, DESCRIPTION)

STATION_KEY = re.compile(r"^STATION\d+$")
COORDINATE_PATTERN = re.compile(r"^\s*(-?\d+)\s*,\s*(-?\d+)\s*$")
DEFAULT_STATION = "Standort,999999999"


def new_document() -> configparser.ConfigParser:
    parser = configparser.ConfigParser(interpolation=None, strict=False)
    parser.optionxform = str  # keys are upper case
    return parser


class BcrFormat(NavigationFormat):
    extension = ".bcr"
    name = "Marco Polo Routenplaner (*.bcr)"
    characteristics = (ROUTE,)
    encoding = "latin-1"

    def _parse(self, source: Source) -> Optional[configparser.ConfigParser]:
        parser = new_document()
        try:
            parser.read_string(source.text)
        except configparser.Error as e:
            log.debug("Not an INI document: %s", e)
            return None
        if not (parser.has_section(CLIENT) and parser.has_section(COORDINATES)):
            return None
        return parser

    def is_valid_format(self, source) -> bool:
        parser = self._parse(as_source(source))
        if parser is None:
            return False
        first = parser.get(COORDINATES, "STATION1", fallback=None)
        return first is not None and COORDINATE_PATTERN.match(first) is not None

    def create_position(self, longitude: Optional[float], latitude: Optional[float], **fields) -> NavigationPosition:
        return MercatorPosition.from_wgs84(longitude, latitude, **fields)

    def read(self, source: Source, start_date: Optional[datetime], context: ParserContext):
        parser = self._parse(source)
        if parser is None:
            return
        context.keep_document(parser)
        positions: List[NavigationPosition] = []
        index = 1
        while parser.has_option(COORDINATES, f"STATION{index}"):
            key = f"STATION{index}"
            value = parser.get(COORDINATES, key)
            match = COORDINATE_PATTERN.match(value)
            if match is None:
                raise MalformedRecordError(self.name, None, f"{key}={value}", "expected x,y")
            positions.append(MercatorPosition(int(match.group(1)), int(match.group(2)),
                                              comment=trim(parser.get(DESCRIPTION, key, fallback=None))))
            index += 1
        if positions:
            name = trim(parser.get(CLIENT, "ROUTENAME", fallback=None))
            context.append_route(self.create_route(ROUTE, name, positions, document=parser))

    def _recycle(self, scope: ReuseScope, route: Route) -> configparser.ConfigParser:
        parser = scope.claim(scope.document([route]))
        if not isinstance(parser, configparser.ConfigParser):
            parser = new_document()
            parser[CLIENT] = {"REQUEST": "TRUE"}
        else:
            log.debug("%s: reusing document of %r", self.name, route)
            for section in STATION_SECTIONS:
                if parser.has_section(section):
                    for key in [k for k in parser[section] if STATION_KEY.match(k)]:
                        parser.remove_option(section, key)
        for section in STATION_SECTIONS + (ROUTE_SECTION,):
            if not parser.has_section(section):
                parser.add_section(section)
        return parser

    def _write(self, route: Route, target: BinaryIO, indices: range,
               kinds: List[RouteCharacteristics]):
        scope = ReuseScope([route], self.reuse_read_objects_for_writing)
        parser = self._recycle(scope, route)
        parser[CLIENT]["ROUTENAME"] = self.as_route_name(route.name) or ""

        station = 0
        for i in indices:
            position = route[i]
            if not position.has_coordinates():
                log.warning("%s: skipping position %d without coordinates", self.name, i)
                continue
            station += 1
            key = f"STATION{station}"
            if isinstance(position, MercatorPosition):
                x, y = position.x, position.y
            else:
                x, y = to_projected(position.longitude, position.latitude)
            comment = position.comment if self.config.write_name else None
            parser[CLIENT][key] = DEFAULT_STATION
            parser[COORDINATES][key] = f"{x},{y}"
            parser[DESCRIPTION][key] = (comment or "").replace("\r", " ").replace("\n", " ")

        buffer = io.StringIO()
        parser.write(buffer, space_around_delimiters=False)
        target.write(buffer.getvalue().replace("\n", "\r\n").encode(self.encoding, errors="replace"))
