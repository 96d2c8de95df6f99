"""
navconv — Format registry and file level helpers

FORMAT_REGISTRY lists one instance of every format in detection priority
order. Order matters: formats with near-identical line signatures must be
tried most specific first (Route 66 before the generic CSV table).
"""

from __future__ import annotations
import io
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Type, Union

from ..config import FormatConfig
from ..context import ParseResult, ParserContext
from ..errors import NavigationError, UnsupportedFormatError
from ..models import Route, RouteCharacteristics
from .base import NavigationFormat
from .bcr import BcrFormat
from .gpx import Gpx10Format, Gpx11Format
from .nmn import Nmn5Format
from .simple import CsvFormat, HaicomLoggerFormat, Route66Format
from .tomtom import TomTomItnFormat

log = logging.getLogger(__name__)

FORMAT_CLASSES: List[Type[NavigationFormat]] = [
    Gpx10Format,
    Gpx11Format,
    BcrFormat,
    HaicomLoggerFormat,
    Route66Format,
    Nmn5Format,
    TomTomItnFormat,
    CsvFormat,
]

# Extensions shared by several formats resolve to these when writing
PREFERRED_BY_EXTENSION: Dict[str, Type[NavigationFormat]] = {
    ".csv": CsvFormat,
}


def create_formats(config: Optional[FormatConfig] = None) -> List[NavigationFormat]:
    """A fresh registry whose formats all use `config`."""
    return [cls(config) for cls in FORMAT_CLASSES]


FORMAT_REGISTRY: List[NavigationFormat] = create_formats()


def get_format(ext_or_name: str, formats: Optional[Sequence[NavigationFormat]] = None) -> Optional[NavigationFormat]:
    """Find a format by class name, display name or file extension."""
    formats = FORMAT_REGISTRY if formats is None else formats
    key = ext_or_name.strip().lower()
    for fmt in formats:
        if key in (type(fmt).__name__.lower(), fmt.name.lower()):
            return fmt
    extension = "." + key.lstrip(".")
    matching = [fmt for fmt in formats if fmt.extension == extension]
    preferred = PREFERRED_BY_EXTENSION.get(extension)
    for fmt in matching:
        if preferred is not None and isinstance(fmt, preferred):
            return fmt
    return matching[0] if matching else None


def supported_input_formats(formats: Optional[Sequence[NavigationFormat]] = None) -> List[str]:
    """Extensions of readable formats."""
    formats = FORMAT_REGISTRY if formats is None else formats
    return sorted({f.extension.lstrip(".") for f in formats if f.supports_reading})


def supported_output_formats(formats: Optional[Sequence[NavigationFormat]] = None) -> List[str]:
    """Extensions of writable formats."""
    formats = FORMAT_REGISTRY if formats is None else formats
    return sorted({f.extension.lstrip(".") for f in formats if f.supports_writing})


def _resolve(format: Union[str, NavigationFormat, None], path: Union[str, Path],
             formats: Optional[Sequence[NavigationFormat]]) -> NavigationFormat:
    if isinstance(format, NavigationFormat):
        return format
    key = format or Path(path).suffix
    fmt = get_format(key, formats) if key else None
    if fmt is None:
        raise UnsupportedFormatError([key or "(no extension)"], str(path))
    return fmt


def read_file(path: Union[str, Path], formats: Optional[Sequence[NavigationFormat]] = None,
              start_date: Optional[datetime] = None, encoding: Optional[str] = None,
              format: Union[str, NavigationFormat, None] = None) -> ParseResult:
    """
    Read all routes of a file.

    The format is detected from the content; pass `format` (an instance, a
    name or an extension) to skip detection.

    The returned ParseResult owns the documents that were read. Keep it
    while the routes are edited and written back: once it is gone, writes
    build fresh documents and unknown elements such as <sym> are lost.
    """
    data = Path(path).read_bytes()
    context = ParserContext(formats, start_date=start_date, encoding=encoding)
    forced = _resolve(format, path, formats) if format is not None else None
    return context.parse(data, format=forced, name=str(path))


def write_file(path: Union[str, Path], routes: Union[Route, Sequence[Route]],
               format: Union[str, NavigationFormat, None] = None,
               characteristics: Optional[Sequence[RouteCharacteristics]] = None,
               formats: Optional[Sequence[NavigationFormat]] = None) -> NavigationFormat:
    """
    Write one route or several routes to a file, by default in the format
    its extension names. Nothing is written if the format rejects the routes.
    """
    fmt = _resolve(format, path, formats)
    if isinstance(routes, Route):
        routes = [routes]
    buffer = io.BytesIO()
    fmt.write_routes(list(routes), buffer, characteristics)
    Path(path).write_bytes(buffer.getvalue())
    log.debug("Wrote %d route(s) to %s as %s", len(routes), path, fmt.name)
    return fmt


def convert(input_path: Union[str, Path], output_path: Union[str, Path],
            format: Union[str, NavigationFormat, None] = None,
            start_date: Optional[datetime] = None, encoding: Optional[str] = None,
            formats: Optional[Sequence[NavigationFormat]] = None) -> List[Route]:
    """
    Convert a file from one format to another.

    Formats holding a single route per file get all positions merged into
    the first route.
    """
    result = read_file(input_path, formats, start_date=start_date, encoding=encoding)
    target = _resolve(format, output_path, formats)
    routes: List[Route] = list(result)
    if len(routes) > 1 and not target.supports_multiple_routes:
        merged = Route(routes[0].characteristics, routes[0].name, routes[0].description,
                       [p for route in routes for p in route], format=routes[0].format)
        routes = [merged]
    if not routes:
        raise NavigationError(f"No routes found in {input_path}")
    write_file(output_path, routes, target)
    return routes
