"""
navconv — GPS Exchange Format 1.0 and 1.1 (.gpx)

One GPX document holds a waypoint list, any number of routes and any
number of tracks; each becomes its own Route. Writing back reuses the
elements that were read: unchanged values keep their original text and
vendor elements (sym, extensions, ...) survive a read/write cycle.

Speed and heading have dedicated elements in GPX 1.0 only. Some devices
put them into the cmt element instead, as "Speed: 42.0 Km/h" and
"Heading: 97.8"; both places are read, the element taking precedence.
"""

from __future__ import annotations
import logging
import re
import xml.etree.ElementTree as ET
from datetime import datetime
from typing import BinaryIO, List, Optional, Sequence

from ..comments import (
    as_comment, as_desc, as_description, as_name, format_description, trim,
)
from ..context import ParserContext, Source, as_source
from ..conversion import (
    DOP_DIGITS, ELEVATION_DIGITS, HEADING_DIGITS, POSITION_DIGITS,
    format_double_as_string, format_iso_time, format_speed_as_string,
    format_heading_as_string, kmh_to_ms, ms_to_kmh, parse_double, parse_int,
    parse_iso_time,
)
from ..errors import MalformedRecordError
from ..models import GpxPosition, NavigationPosition, Route, RouteCharacteristics
from .base import (
    GENERATED_BY, ROUTE, TRACK, WAYPOINTS, ReuseScope, XmlNavigationFormat,
    local_name, namespace_of,
)

log = logging.getLogger(__name__)

XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"

KMH_CREATORS = ("Mobile Action http://www.mobileaction.com/", "Holux Utility")

SPEED_PATTERN = re.compile(r"Speed\s*:\s*(-?\d+(?:\.\d+)?)\s*Km/h", re.IGNORECASE)
HEADING_PATTERN = re.compile(r"Heading\s*:\s*(-?\d+(?:\.\d+)?)", re.IGNORECASE)

TRIPMASTER_REASON_PATTERN = re.compile(
    r"^\s*(Punkt|Richtung \d+|Abstand \d+|Dur\. \d+:\d+:\d+|Course \d+|Dist\. \d+)\s*[-:]\s*")

POINT_TAGS = ("wpt", "rtept", "trkpt")


def parse_speed(comment: Optional[str]) -> Optional[float]:
    match = SPEED_PATTERN.search(comment) if comment else None
    return parse_double(match.group(1)) if match else None


def parse_heading(comment: Optional[str]) -> Optional[float]:
    match = HEADING_PATTERN.search(comment) if comment else None
    return parse_double(match.group(1)) if match else None


def tripmaster_reason(comment: Optional[str]) -> Optional[str]:
    match = TRIPMASTER_REASON_PATTERN.match(comment) if comment else None
    return match.group(1) if match else None


def is_tripmaster_track(positions: Sequence[NavigationPosition]) -> bool:
    """Waypoints written by Tripmaster all carry a reason; such a list is a track."""
    return bool(positions) and all(getattr(p, "reason", None) is not None for p in positions)


def _replace_marker(comment: Optional[str], pattern, marker: Optional[str]) -> Optional[str]:
    """Update, append or (marker None) drop a value marker inside a comment."""
    if pattern.search(comment or ""):
        if marker is None:
            return trim(re.sub(r"\s+", " ", pattern.sub("", comment)))
        return pattern.sub(marker, comment, count=1)
    if marker is None:
        return comment
    return f"{comment} {marker}" if comment else marker


class GpxFormat(XmlNavigationFormat):
    """What GPX 1.0 and 1.1 share."""

    extension = ".gpx"
    supports_multiple_routes = True
    VERSION = ""
    SCHEMA = ""
    has_speed_element = False

    ROOT_ORDER: Sequence[str] = ()
    METADATA_ORDER: Optional[Sequence[str]] = None
    POINT_ORDER: Sequence[str] = ()
    ROUTE_ORDER: Sequence[str] = ()
    TRACK_ORDER: Sequence[str] = ()

    # ─── Reading ──────────────────────────────────────────────

    def is_valid_format(self, source) -> bool:
        root = as_source(source).xml_root
        return (root is not None and local_name(root.tag) == "gpx"
                and namespace_of(root.tag) in (self.namespace, None)
                and root.get("version") == self.VERSION)

    def _metadata(self, root: ET.Element, create: bool = False) -> Optional[ET.Element]:
        if self.METADATA_ORDER is None:
            return root
        metadata = self.child(root, "metadata")
        if metadata is None and create:
            metadata = ET.Element(self.qualify(namespace_of(root.tag), "metadata"))
            root.insert(self._insert_index(root, "metadata", self.ROOT_ORDER), metadata)
        return metadata

    def _speed_in_kmh(self, root: ET.Element) -> bool:
        return self.has_speed_element and root.get("creator") in KMH_CREATORS

    def read(self, source: Source, start_date: Optional[datetime], context: ParserContext):
        root = source.xml_root
        if root is None:
            return
        context.keep_document(root)
        kmh = self._speed_in_kmh(root)

        waypoints = [self._parse_point(wpt, kmh) for wpt in self.children(root, "wpt")]
        if waypoints:
            metadata = self._metadata(root)
            name = self.child_text(metadata, "name") if metadata is not None else None
            desc = self.child_text(metadata, "desc") if metadata is not None else None
            kind = TRACK if is_tripmaster_track(waypoints) else WAYPOINTS
            context.append_route(self.create_route(kind, name, waypoints,
                                                   description=as_description(desc), document=root))

        for rte in self.children(root, "rte"):
            positions = [self._parse_point(rtept, kmh) for rtept in self.children(rte, "rtept")]
            context.append_route(self.create_route(
                ROUTE, self.child_text(rte, "name"), positions,
                description=as_description(self.child_text(rte, "desc")), origin=rte, document=root))

        for trk in self.children(root, "trk"):
            positions = [self._parse_point(trkpt, kmh)
                         for trkseg in self.children(trk, "trkseg")
                         for trkpt in self.children(trkseg, "trkpt")]
            if positions:
                context.append_route(self.create_route(
                    TRACK, self.child_text(trk, "name"), positions,
                    description=as_description(self.child_text(trk, "desc")), origin=trk, document=root))

    def _read_speed(self, element: ET.Element, kmh: bool) -> Optional[float]:
        speed = parse_double(self.child_text(element, "speed")) if self.has_speed_element else None
        if speed is not None and not kmh:
            speed = ms_to_kmh(speed)
        if speed is None:
            speed = parse_speed(self.child_text(element, "cmt"))
        return speed

    def _read_heading(self, element: ET.Element) -> Optional[float]:
        heading = parse_double(self.child_text(element, "course")) if self.has_speed_element else None
        if heading is None:
            heading = parse_heading(self.child_text(element, "cmt"))
        return heading

    def _parse_point(self, element: ET.Element, kmh: bool) -> GpxPosition:
        longitude = parse_double(element.get("lon"))
        latitude = parse_double(element.get("lat"))
        if longitude is None or latitude is None:
            raise MalformedRecordError(self.name, None, ET.tostring(element, encoding="unicode")[:120],
                                       "lat/lon missing")
        comment = as_comment(self.child_text(element, "name"), self.child_text(element, "desc"))
        return GpxPosition(
            longitude, latitude,
            reason=tripmaster_reason(comment),
            elevation=parse_double(self.child_text(element, "ele")),
            speed=self._read_speed(element, kmh),
            heading=self._read_heading(element),
            time=parse_iso_time(self.child_text(element, "time")),
            comment=comment,
            hdop=parse_double(self.child_text(element, "hdop")),
            pdop=parse_double(self.child_text(element, "pdop")),
            vdop=parse_double(self.child_text(element, "vdop")),
            satellites=parse_int(self.child_text(element, "sat")),
            origin=element,
        )

    # ─── Writing ──────────────────────────────────────────────

    def _new_root(self) -> ET.Element:
        root = ET.Element(self.qualify(self.namespace, "gpx"))
        root.set("version", self.VERSION)
        root.set("creator", GENERATED_BY)
        root.set(f"{{{XSI_NS}}}schemaLocation", f"{self.namespace} {self.SCHEMA}")
        return root

    def _recycle(self, scope: ReuseScope, routes: Sequence[Route]) -> ET.Element:
        """The document read before, emptied of its waypoints, routes and tracks, or a new one."""
        root = scope.claim(scope.document(routes))
        if root is None or not self.is_valid_format_root(root):
            return self._new_root()
        for child in [c for c in root if local_name(c.tag) in ("wpt", "rte", "trk")]:
            root.remove(child)
        if not root.get("creator"):
            root.set("creator", GENERATED_BY)
        log.debug("%s: reusing document %r", self.name, root)
        return root

    def is_valid_format_root(self, root: ET.Element) -> bool:
        return (local_name(root.tag) == "gpx" and namespace_of(root.tag) in (self.namespace, None)
                and root.get("version") == self.VERSION)

    def _claim_point(self, scope: ReuseScope, position: NavigationPosition, ns: Optional[str],
                     tag: str) -> ET.Element:
        origin = position.origin
        if (isinstance(origin, ET.Element) and local_name(origin.tag) in POINT_TAGS
                and namespace_of(origin.tag) == ns):
            element = scope.claim(origin)
            if element is not None:
                element.tag = self.qualify(ns, tag)
                return element
        return ET.Element(self.qualify(ns, tag))

    def _claim_container(self, scope: ReuseScope, route: Route, ns: Optional[str], tag: str) -> ET.Element:
        origin = route.origin
        if isinstance(origin, ET.Element) and origin.tag == self.qualify(ns, tag):
            element = scope.claim(origin)
            if element is not None:
                return element
        return ET.Element(self.qualify(ns, tag))

    def _set_number(self, element: ET.Element, name: str, value: Optional[float], digits: int,
                    order: Sequence[str]):
        if value is not None and parse_double(self.child_text(element, name)) == value:
            return
        text = format_double_as_string(value, digits) if value is not None else None
        self.set_child(element, name, text or None, order)

    def _set_coordinate(self, element: ET.Element, attribute: str, value: float):
        if parse_double(element.get(attribute)) != value:
            element.set(attribute, format_double_as_string(value, POSITION_DIGITS))

    def _write_speed(self, element: ET.Element, speed: Optional[float], kmh: bool):
        order = self.POINT_ORDER
        if not self.config.write_speed:
            if self.has_speed_element:
                self.set_child(element, "speed", None, order)
            return
        if self._read_speed(element, kmh) == speed:
            return
        cmt = self.child_text(element, "cmt")
        marker = f"Speed: {format_speed_as_string(speed)} Km/h" if speed is not None else None
        if self.has_speed_element:
            value = speed if kmh else kmh_to_ms(speed)
            self.set_child(element, "speed", format_double_as_string(value, 3) or None, order)
            if self.reuse_read_objects_for_writing or marker is None:
                cmt = _replace_marker(cmt, SPEED_PATTERN, marker)
        else:
            cmt = _replace_marker(cmt, SPEED_PATTERN, marker)
        self.set_child(element, "cmt", cmt, order)

    def _write_heading(self, element: ET.Element, heading: Optional[float]):
        order = self.POINT_ORDER
        if not self.config.write_heading:
            if self.has_speed_element:
                self.set_child(element, "course", None, order)
            return
        if self._read_heading(element) == heading:
            return
        cmt = self.child_text(element, "cmt")
        marker = f"Heading: {format_heading_as_string(heading)}" if heading is not None else None
        if self.has_speed_element:
            self.set_child(element, "course", format_double_as_string(heading, HEADING_DIGITS) or None, order)
            if self.reuse_read_objects_for_writing or marker is None:
                cmt = _replace_marker(cmt, HEADING_PATTERN, marker)
        else:
            cmt = _replace_marker(cmt, HEADING_PATTERN, marker)
        self.set_child(element, "cmt", cmt, order)

    def _write_point(self, element: ET.Element, position: NavigationPosition, kmh: bool):
        cfg = self.config
        order = self.POINT_ORDER
        self._set_coordinate(element, "lat", position.latitude)
        self._set_coordinate(element, "lon", position.longitude)
        self._set_number(element, "ele", position.elevation if cfg.write_elevation else None,
                         ELEVATION_DIGITS, order)
        if not cfg.write_time or position.time is None:
            self.set_child(element, "time", None, order)
        elif parse_iso_time(self.child_text(element, "time")) != position.time:
            self.set_child(element, "time", format_iso_time(position.time), order)
        self._write_heading(element, position.heading)
        self._write_speed(element, position.speed, kmh)

        if not cfg.write_name:
            self.set_child(element, "name", None, order)
            self.set_child(element, "desc", None, order)
        elif as_comment(self.child_text(element, "name"), self.child_text(element, "desc")) == position.comment:
            pass  # name and desc still read back as the same comment
        elif cfg.split_name_and_desc:
            self.set_child(element, "name", as_name(position.comment), order)
            self.set_child(element, "desc", trim(as_desc(position.comment, self.child_text(element, "desc"))), order)
        else:
            self.set_child(element, "name", trim(position.comment), order)
            self.set_child(element, "desc", None, order)

        accuracy = cfg.write_accuracy
        satellites = position.satellites if accuracy else None
        if satellites is None or parse_int(self.child_text(element, "sat")) != satellites:
            self.set_child(element, "sat", str(satellites) if satellites is not None else None, order)
        self._set_number(element, "hdop", position.hdop if accuracy else None, DOP_DIGITS, order)
        self._set_number(element, "vdop", position.vdop if accuracy else None, DOP_DIGITS, order)
        self._set_number(element, "pdop", position.pdop if accuracy else None, DOP_DIGITS, order)

    def _points(self, route: Route, indices: range, tag: str, scope: ReuseScope,
                ns: Optional[str], kmh: bool) -> List[ET.Element]:
        elements = []
        for i in indices:
            position = route[i]
            if not position.has_coordinates():
                log.warning("%s: skipping position %d without coordinates", self.name, i)
                continue
            element = self._claim_point(scope, position, ns, tag)
            self._write_point(element, position, kmh)
            elements.append(element)
        return elements

    def _write_names(self, element: ET.Element, route: Route, order: Sequence[str]):
        if not self.config.write_name:
            return
        self.set_child(element, "name", self.as_route_name(route.name), order)
        if as_description(self.child_text(element, "desc")) != route.description:
            self.set_child(element, "desc", format_description(route.description), order)

    def _build(self, root: ET.Element, scope: ReuseScope, route: Route, indices: range,
               kind: RouteCharacteristics, containers: dict):
        ns = namespace_of(root.tag)
        kmh = self._speed_in_kmh(root)
        if kind is WAYPOINTS:
            self._write_names(self._metadata(root, create=True), route,
                              self.METADATA_ORDER or self.ROOT_ORDER)
            containers["wpt"].extend(self._points(route, indices, "wpt", scope, ns, kmh))
        elif kind is ROUTE:
            rte = self._claim_container(scope, route, ns, "rte")
            for rtept in self.children(rte, "rtept"):
                rte.remove(rtept)
            self._write_names(rte, route, self.ROUTE_ORDER)
            rte.extend(self._points(route, indices, "rtept", scope, ns, kmh))
            containers["rte"].append(rte)
        elif kind is TRACK:
            trk = self._claim_container(scope, route, ns, "trk")
            for trkseg in self.children(trk, "trkseg"):
                trk.remove(trkseg)
            self._write_names(trk, route, self.TRACK_ORDER)
            trkseg = ET.SubElement(trk, self.qualify(ns, "trkseg"))
            trkseg.extend(self._points(route, indices, "trkpt", scope, ns, kmh))
            containers["trk"].append(trk)
        else:
            raise ValueError(f"Unknown route characteristics {kind}")

    def _finish(self, root: ET.Element, containers: dict, target: BinaryIO):
        index = self._insert_index(root, "wpt", self.ROOT_ORDER)
        for element in containers["wpt"] + containers["rte"] + containers["trk"]:
            root.insert(index, element)
            index += 1
        points = [e for e in root.iter() if local_name(e.tag) in POINT_TAGS]
        self._write_bounds(root, points)
        self.serialize(root, target)

    def _write_bounds(self, root: ET.Element, points: List[ET.Element]):
        parent = self._metadata(root, create=bool(points))
        if parent is None:
            return
        bounds = self.child(parent, "bounds")
        if not points:
            if bounds is not None:
                parent.remove(bounds)
            return
        lats = [float(p.get("lat")) for p in points]
        lons = [float(p.get("lon")) for p in points]
        if bounds is None:
            order = self.METADATA_ORDER or self.ROOT_ORDER
            bounds = ET.Element(self.qualify(namespace_of(parent.tag), "bounds"))
            parent.insert(self._insert_index(parent, "bounds", order), bounds)
        bounds.set("minlat", format_double_as_string(min(lats), POSITION_DIGITS))
        bounds.set("minlon", format_double_as_string(min(lons), POSITION_DIGITS))
        bounds.set("maxlat", format_double_as_string(max(lats), POSITION_DIGITS))
        bounds.set("maxlon", format_double_as_string(max(lons), POSITION_DIGITS))

    def _write(self, route: Route, target: BinaryIO, indices: range,
               kinds: List[RouteCharacteristics]):
        scope = ReuseScope([route], self.reuse_read_objects_for_writing)
        root = self._recycle(scope, [route])
        containers = {"wpt": [], "rte": [], "trk": []}
        for kind in kinds:
            self._build(root, scope, route, indices, kind, containers)
        self._finish(root, containers, target)

    def _write_routes(self, routes: List[Route], target: BinaryIO):
        scope = ReuseScope(routes, self.reuse_read_objects_for_writing)
        root = self._recycle(scope, routes)
        containers = {"wpt": [], "rte": [], "trk": []}
        for route in routes:
            self._build(root, scope, route, range(len(route)), self._writable_kind(route), containers)
        self._finish(root, containers, target)


class Gpx10Format(GpxFormat):
    VERSION = "1.0"
    namespace = "http://www.topografix.com/GPX/1/0"
    SCHEMA = "http://www.topografix.com/GPX/1/0/gpx.xsd"
    name = "GPS Exchange Format 1.0 (*.gpx)"
    has_speed_element = True

    ROOT_ORDER = ("name", "desc", "author", "email", "url", "urlname", "time", "keywords",
                  "bounds", "wpt", "rte", "trk")
    POINT_ORDER = ("ele", "time", "course", "speed", "magvar", "geoidheight", "name", "cmt",
                   "desc", "src", "url", "urlname", "sym", "type", "fix", "sat", "hdop", "vdop",
                   "pdop", "ageofdgpsdata", "dgpsid")
    ROUTE_ORDER = ("name", "cmt", "desc", "src", "url", "urlname", "number", "rtept")
    TRACK_ORDER = ("name", "cmt", "desc", "src", "url", "urlname", "number", "trkseg")


class Gpx11Format(GpxFormat):
    VERSION = "1.1"
    namespace = "http://www.topografix.com/GPX/1/1"
    SCHEMA = "http://www.topografix.com/GPX/1/1/gpx.xsd"
    name = "GPS Exchange Format 1.1 (*.gpx)"

    ROOT_ORDER = ("metadata", "wpt", "rte", "trk", "extensions")
    METADATA_ORDER = ("name", "desc", "author", "copyright", "link", "time", "keywords",
                      "bounds", "extensions")
    POINT_ORDER = ("ele", "time", "magvar", "geoidheight", "name", "cmt", "desc", "src", "link",
                   "sym", "type", "fix", "sat", "hdop", "vdop", "pdop", "ageofdgpsdata", "dgpsid",
                   "extensions")
    ROUTE_ORDER = ("name", "cmt", "desc", "src", "link", "number", "type", "extensions", "rtept")
    TRACK_ORDER = ("name", "cmt", "desc", "src", "link", "number", "type", "extensions", "trkseg")
