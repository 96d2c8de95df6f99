"""
navconv — Format base classes

NavigationFormat is the contract every file format implements: a cheap
recognizer, a reader feeding a ParserContext and a writer producing bytes.
TextNavigationFormat, LineBasedFormat and XmlNavigationFormat carry what
families of formats share.
"""

from __future__ import annotations
import copy
import logging
import xml.etree.ElementTree as ET
from datetime import datetime
from typing import Any, BinaryIO, Dict, Iterable, List, Optional, Sequence

from ..comments import trim
from ..config import DEFAULT_CONFIG, FormatConfig
from ..context import ParserContext, Source, as_source
from ..errors import MalformedRecordError, NavigationError, UnrepresentableCharacteristicsError
from ..models import NavigationPosition, Route, RouteCharacteristics, Wgs84Position

log = logging.getLogger(__name__)

SOFT_NAME = "navconv"
SOFT_VERSION = "1.0"
GENERATED_BY = f"{SOFT_NAME} v{SOFT_VERSION}"

ROUTE = RouteCharacteristics.ROUTE
TRACK = RouteCharacteristics.TRACK
WAYPOINTS = RouteCharacteristics.WAYPOINTS
ALL_CHARACTERISTICS = (ROUTE, TRACK, WAYPOINTS)


# ─────────────────────────────────────────────────────────────
# Reuse of native structures during one write
# ─────────────────────────────────────────────────────────────

class ReuseScope:
    """
    Hands out the native structures of the routes being written.

    Origins are only weakly referenced by positions, so the scope pins them
    before the writer starts clearing native collections. Each native object
    is handed out once; a second position with the same origin gets a deep
    copy so one element never appears twice in a document.
    """

    def __init__(self, routes: Iterable[Route], enabled: bool):
        self.enabled = enabled
        self._pinned: List[Any] = []
        self._claimed = set()
        if enabled:
            for route in routes:
                if route.document is None:
                    log.debug("Route %r has no live document, writing it without reuse", route.name)
                self._pinned.extend(o for o in (route.document, route.origin) if o is not None)
                self._pinned.extend(p.origin for p in route if p.origin is not None)

    def document(self, routes: Iterable[Route]) -> Any:
        """The first live document-level origin of the routes."""
        if not self.enabled:
            return None
        for route in routes:
            if route.document is not None:
                return route.document
        return None

    def claim(self, native: Any) -> Any:
        if not self.enabled or native is None:
            return None
        if id(native) in self._claimed:
            log.debug("Origin %r already written, copying it", native)
            native = copy.deepcopy(native)
        self._claimed.add(id(native))
        self._pinned.append(native)
        return native


# ─────────────────────────────────────────────────────────────
# NavigationFormat
# ─────────────────────────────────────────────────────────────

class NavigationFormat:
    """Base of all formats."""

    extension: str = ""
    name: str = ""
    characteristics: Sequence[RouteCharacteristics] = ALL_CHARACTERISTICS
    supports_reading: bool = True
    supports_writing: bool = True
    supports_multiple_routes: bool = False

    def __init__(self, config: Optional[FormatConfig] = None):
        self.config = config or DEFAULT_CONFIG

    # ─── Descriptor ───────────────────────────────────────────

    @property
    def max_route_name_length(self) -> int:
        return self.config.max_route_name_length

    @property
    def reuse_read_objects_for_writing(self) -> bool:
        return self.config.reuse_read_objects_for_writing

    def as_route_name(self, name: Optional[str]) -> Optional[str]:
        return trim(name, self.max_route_name_length)

    def __eq__(self, other) -> bool:
        return other is not None and type(self) is type(other)

    def __hash__(self) -> int:
        return hash(type(self).__qualname__)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.extension}>"

    # ─── Reading ──────────────────────────────────────────────

    def is_valid_format(self, source) -> bool:
        """Cheap structural check; False for anything this format cannot read."""
        raise NotImplementedError

    def read(self, source: Source, start_date: Optional[datetime], context: ParserContext):
        raise NotImplementedError

    def create_route(self, characteristics: RouteCharacteristics, name: Optional[str],
                     positions: List[NavigationPosition], **kwargs) -> Route:
        return Route(characteristics, name, positions=positions, format=self, **kwargs)

    def create_position(self, longitude: Optional[float], latitude: Optional[float], **fields) -> NavigationPosition:
        return Wgs84Position(longitude, latitude, **fields)

    # ─── Writing ──────────────────────────────────────────────

    def _check_characteristics(self, requested: Optional[Sequence[RouteCharacteristics]]):
        for characteristic in requested or ():
            if characteristic not in self.characteristics:
                raise UnrepresentableCharacteristicsError(self.name, characteristic)

    def _writable_kind(self, route: Route) -> RouteCharacteristics:
        """The route's own kind, or this format's kind when it cannot represent it."""
        if route.characteristics in self.characteristics:
            return route.characteristics
        log.debug("%s writes %s data as %s", self.name, route.characteristics.value,
                  self.characteristics[0].value)
        return self.characteristics[0]

    @staticmethod
    def _range(route: Route, start_index: int, end_index: Optional[int]) -> range:
        end = len(route) if end_index is None else min(end_index, len(route))
        return range(max(0, start_index), end)

    def write(self, route: Route, target: BinaryIO, start_index: int = 0,
              end_index: Optional[int] = None,
              characteristics: Optional[Sequence[RouteCharacteristics]] = None):
        """
        Write positions [start_index, end_index) of a route.

        `characteristics` names the kinds to emit the route as; asking for a
        kind this format cannot represent fails before anything is written.
        """
        if not self.supports_writing:
            raise NavigationError(f"{self.name} is read only")
        self._check_characteristics(characteristics)
        kinds = list(characteristics) if characteristics else [self._writable_kind(route)]
        self._write(route, target, self._range(route, start_index, end_index), kinds)

    def write_routes(self, routes: Sequence[Route], target: BinaryIO,
                     characteristics: Optional[Sequence[RouteCharacteristics]] = None):
        """Write several routes into one document, optionally only those of some kinds."""
        if not self.supports_writing:
            raise NavigationError(f"{self.name} is read only")
        self._check_characteristics(characteristics)
        if characteristics:
            routes = [r for r in routes if r.characteristics in characteristics]
        if len(routes) == 1:
            return self.write(routes[0], target)
        if not routes and not self.supports_multiple_routes:
            raise NavigationError(f"No routes to write as {self.name}")
        if not self.supports_multiple_routes:
            raise NavigationError(f"{self.name} cannot store {len(routes)} routes in one file")
        self._write_routes(list(routes), target)

    def _write(self, route: Route, target: BinaryIO, indices: range,
               kinds: List[RouteCharacteristics]):
        raise NotImplementedError

    def _write_routes(self, routes: List[Route], target: BinaryIO):
        raise NotImplementedError


# ─────────────────────────────────────────────────────────────
# Text formats
# ─────────────────────────────────────────────────────────────

class TextNavigationFormat(NavigationFormat):
    """Formats stored as lines of text."""

    encoding: str = "utf-8"
    newline: str = "\r\n"

    def _emit(self, lines: Iterable[str], target: BinaryIO):
        text = "".join(line + self.newline for line in lines)
        target.write(text.encode(self.encoding, errors="replace"))


class LineBasedFormat(TextNavigationFormat):
    """
    One position per line.

    A document is accepted only if every non-blank line is either a position
    or a header line this format knows; one foreign line rejects it.
    """

    route_characteristics: RouteCharacteristics = ROUTE

    def __init__(self, config: Optional[FormatConfig] = None):
        super().__init__(config)
        self.characteristics = (self.route_characteristics,)

    def is_position(self, line: str) -> bool:
        raise NotImplementedError

    def is_header(self, line: str, index: int) -> bool:
        """`index` counts non-blank lines from 0."""
        return False

    def parse_position(self, line: str, start_date: Optional[datetime]) -> NavigationPosition:
        raise NotImplementedError

    def is_valid_format(self, source) -> bool:
        source = as_source(source)
        found_position = False
        index = 0
        for line in source.lines:
            if not line.strip():
                continue
            if self.is_position(line):
                found_position = True
            elif not self.is_header(line, index):
                return False
            index += 1
        return found_position

    def read(self, source: Source, start_date: Optional[datetime], context: ParserContext):
        positions: List[NavigationPosition] = []
        index = 0
        for number, line in enumerate(source.lines, start=1):
            if not line.strip():
                continue
            if self.is_position(line):
                try:
                    position = self.parse_position(line, start_date)
                except ValueError as e:
                    raise MalformedRecordError(self.name, number, line, str(e)) from e
                if not position.has_coordinates():
                    raise MalformedRecordError(self.name, number, line, "no coordinates")
                positions.append(position)
            elif not self.is_header(line, index):
                raise MalformedRecordError(self.name, number, line)
            index += 1
        if positions:
            context.append_route(self.create_route(self.route_characteristics, None, positions))

    def write_header(self, route: Route) -> List[str]:
        return []

    def write_position(self, position: NavigationPosition, index: int, first: bool, last: bool) -> str:
        raise NotImplementedError

    def write_footer(self, route: Route) -> List[str]:
        return []

    def _write(self, route: Route, target: BinaryIO, indices: range,
               kinds: List[RouteCharacteristics]):
        positions = []
        for i in indices:
            position = route[i]
            if not position.has_coordinates():
                log.warning("%s: skipping position %d without coordinates", self.name, i)
                continue
            positions.append(position)
        lines = self.write_header(route)
        for index, position in enumerate(positions):
            lines.append(self.write_position(position, index, index == 0, index == len(positions) - 1))
        lines.extend(self.write_footer(route))
        self._emit(lines, target)


# ─────────────────────────────────────────────────────────────
# XML formats
# ─────────────────────────────────────────────────────────────

def local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1] if isinstance(tag, str) else ""


def namespace_of(tag: str) -> Optional[str]:
    if isinstance(tag, str) and tag.startswith("{"):
        return tag[1:].split("}", 1)[0]
    return None


class XmlNavigationFormat(NavigationFormat):
    """Formats stored as XML documents, handled with ElementTree."""

    namespace: Optional[str] = None

    @staticmethod
    def qualify(namespace: Optional[str], name: str) -> str:
        return f"{{{namespace}}}{name}" if namespace else name

    @staticmethod
    def children(parent: ET.Element, name: str) -> List[ET.Element]:
        return [child for child in parent if local_name(child.tag) == name]

    @classmethod
    def child(cls, parent: ET.Element, name: str) -> Optional[ET.Element]:
        found = cls.children(parent, name)
        return found[0] if found else None

    @classmethod
    def child_text(cls, parent: ET.Element, name: str) -> Optional[str]:
        element = cls.child(parent, name)
        if element is None or element.text is None:
            return None
        return element.text.strip() or None

    @classmethod
    def set_child(cls, parent: ET.Element, name: str, text: Optional[str], order: Sequence[str]):
        """
        Set, replace or (for None) remove the text child `name` of `parent`.

        New children are inserted where `order` puts them; children not in
        `order` (extensions, vendor elements) sort after all known ones.
        """
        existing = cls.children(parent, name)
        if text is None:
            for element in existing:
                parent.remove(element)
            return
        if existing:
            existing[0].text = text
            for element in existing[1:]:
                parent.remove(element)
            return
        element = ET.Element(cls.qualify(namespace_of(parent.tag), name))
        element.text = text
        parent.insert(cls._insert_index(parent, name, order), element)

    @staticmethod
    def _insert_index(parent: ET.Element, name: str, order: Sequence[str]) -> int:
        rank: Dict[str, int] = {n: i for i, n in enumerate(order)}
        new_rank = rank.get(name, len(order))
        for index, child in enumerate(parent):
            if rank.get(local_name(child.tag), len(order)) > new_rank:
                return index
        return len(parent)

    @staticmethod
    def serialize(root: ET.Element, target: BinaryIO):
        """Write `root` with its own namespace as the default one."""
        ET.indent(root, space="  ")
        default = namespace_of(root.tag)
        if default:
            # default_namespace= rejects unqualified attributes such as lat/lon
            prefix = f"{{{default}}}"
            root = copy.deepcopy(root)
            for element in root.iter():
                if isinstance(element.tag, str) and element.tag.startswith(prefix):
                    element.tag = element.tag[len(prefix):]
            root.set("xmlns", default)
        target.write(ET.tostring(root, encoding="utf-8", xml_declaration=True))
        target.write(b"\n")
