"""
navconv — Parsing: format detection and route collection

A ParserContext reads one document: it asks each format in priority order
whether it recognizes the input, lets the first one that does parse it, and
collects the resulting routes. Contexts share no state, so separate
documents may be parsed in parallel with separate contexts.
"""

from __future__ import annotations
import logging
import xml.etree.ElementTree as ET
from datetime import datetime
from functools import cached_property
from typing import Any, Iterable, List, Optional, Sequence

from .errors import EncodingError, MalformedRecordError, UnsupportedFormatError
from .models import Route

log = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8-sig"
FALLBACK_ENCODING = "latin-1"


class Source:
    """Raw input plus lazily decoded views of it, shared by all format checks."""

    def __init__(self, data: bytes, encoding: Optional[str] = None, name: Optional[str] = None):
        self.data = data
        self.encoding = encoding
        self.name = name

    @cached_property
    def text(self) -> str:
        if self.encoding:
            try:
                return self.data.decode(self.encoding)
            except (UnicodeDecodeError, LookupError) as e:
                raise EncodingError(self.encoding, e) from e
        try:
            return self.data.decode(DEFAULT_ENCODING)
        except UnicodeDecodeError:
            log.debug("Input is not UTF-8, decoding as %s", FALLBACK_ENCODING)
            return self.data.decode(FALLBACK_ENCODING)

    @cached_property
    def lines(self) -> List[str]:
        return self.text.splitlines()

    @cached_property
    def xml_root(self) -> Optional[ET.Element]:
        """The parsed document element, or None if the input is not well-formed XML."""
        data = self.data.lstrip()
        if not data.startswith(b"<"):
            return None
        try:
            return ET.fromstring(data)
        except ET.ParseError as e:
            log.debug("Input is not well-formed XML: %s", e)
            return None


def as_source(source, encoding: Optional[str] = None) -> Source:
    if isinstance(source, Source):
        return source
    if isinstance(source, str):
        return Source(source.encode("utf-8"), "utf-8")
    return Source(bytes(source), encoding)


class ParseResult(list):
    """
    The routes read from one document.

    It also owns the native structures the routes were read from: as long
    as the result is alive, writing the routes back can reuse them.
    """

    def __init__(self, routes: Iterable[Route] = (), format=None, documents: Sequence[Any] = ()):
        super().__init__(routes)
        self.format = format
        self.documents = list(documents)


class ParserContext:
    """Collects the routes of one document while a format reads it."""

    def __init__(self, formats: Optional[Sequence] = None,
                 start_date: Optional[datetime] = None,
                 encoding: Optional[str] = None):
        if formats is None:
            from .formats import FORMAT_REGISTRY
            formats = FORMAT_REGISTRY
        self.formats = list(formats)
        self.start_date = start_date
        self.encoding = encoding
        self._routes: List[Route] = []
        self._documents: List[Any] = []

    @property
    def routes(self) -> List[Route]:
        return list(self._routes)

    def append_route(self, route: Route):
        self._routes.append(route)

    def append_routes(self, routes: Iterable[Route]):
        self._routes.extend(routes)

    def keep_document(self, document: Any):
        """Hold a native document for the lifetime of the parse result."""
        self._documents.append(document)

    def _reset(self):
        self._routes = []
        self._documents = []

    def detect(self, data) -> Any:
        """The first readable format accepting the input."""
        source = as_source(data, self.encoding)
        for fmt in self.formats:
            if fmt.supports_reading and fmt.is_valid_format(source):
                return fmt
        raise UnsupportedFormatError([f.name for f in self.formats if f.supports_reading], source.name)

    def parse(self, data, format=None, name: Optional[str] = None) -> ParseResult:
        """
        Read all routes of a document.

        Formats are tried in priority order; a format that accepts the input
        but finds no routes in it hands over to the next one. With `format`
        given, detection is skipped and that format must parse the input.
        """
        source = as_source(data, self.encoding)
        if name:
            source.name = name

        if format is not None:
            self._read(format, source)
            if not self._routes:
                raise UnsupportedFormatError([format.name], source.name)
            return self._result(format)

        attempted = []
        for fmt in self.formats:
            if not fmt.supports_reading:
                continue
            attempted.append(fmt.name)
            if not fmt.is_valid_format(source):
                continue
            log.debug("%s accepts %s", fmt.name, source.name or "input")
            self._read(fmt, source)
            if self._routes:
                return self._result(fmt)
            log.debug("%s found no routes, trying next format", fmt.name)
        raise UnsupportedFormatError(attempted, source.name)

    def _read(self, fmt, source: Source):
        self._reset()
        try:
            fmt.read(source, self.start_date, self)
        except MalformedRecordError:
            self._reset()
            raise

    def _result(self, fmt) -> ParseResult:
        result = ParseResult(self._routes, fmt, self._documents)
        log.debug("Read %d route(s) with %s", len(result), fmt.name)
        return result
