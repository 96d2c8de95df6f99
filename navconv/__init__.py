"""
navconv — GPS route, track and waypoint format interchange
==========================================================
Read GPX 1.0/1.1, Marco Polo BCR, Haicom logger, Route 66, Navigon NMN5,
TomTom ITN and CSV files into one route model and write them back.
Zero external dependencies.

Library:
    from navconv import read_file, write_file, convert
    routes = read_file("tour.gpx")
    routes[0].reverse()
    write_file("tour.gpx", routes)      # updates the document read before
    convert("tour.gpx", "tour.itn")
"""

from .config import DEFAULT_CONFIG, FormatConfig
from .context import ParseResult, ParserContext, Source
from .errors import (
    EncodingError, MalformedRecordError, NavigationError,
    UnrepresentableCharacteristicsError, UnsupportedFormatError,
)
from .formats import (
    FORMAT_REGISTRY, convert, create_formats, get_format, read_file,
    supported_input_formats, supported_output_formats, write_file,
)
from .models import (
    GpxPosition, MercatorPosition, NavigationPosition, Route, RouteCharacteristics,
    Wgs84Position,
)

__version__ = "1.0.0"
__all__ = [
    "NavigationPosition", "Wgs84Position", "GpxPosition", "MercatorPosition",
    "Route", "RouteCharacteristics", "ParserContext", "ParseResult", "Source",
    "FormatConfig", "DEFAULT_CONFIG",
    "NavigationError", "UnsupportedFormatError", "MalformedRecordError",
    "UnrepresentableCharacteristicsError", "EncodingError",
    "read_file", "write_file", "convert", "create_formats",
    "supported_input_formats", "supported_output_formats",
    "get_format", "FORMAT_REGISTRY",
]
