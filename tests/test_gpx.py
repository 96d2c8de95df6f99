"""
Tests for the GPX formats: reading, classification and writing back.
"""

import gc
import io
import logging
import xml.etree.ElementTree as ET
from datetime import datetime, timezone

import pytest

from navconv import FormatConfig, ParserContext, Route, RouteCharacteristics, Wgs84Position
from navconv.errors import NavigationError
from navconv.formats.base import local_name
from navconv.formats.gpx import (
    Gpx10Format, Gpx11Format, is_tripmaster_track, parse_heading, parse_speed, tripmaster_reason,
)

GPX10_NS = "http://www.topografix.com/GPX/1/0"

NAMED_GPX11 = b"""<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="test" xmlns="http://www.topografix.com/GPX/1/1">
  <metadata><name>Pois</name><desc>Alb, Sights</desc></metadata>
  <wpt lat="48.1" lon="9.1"><name>Home</name><sym>Flag</sym></wpt>
  <wpt lat="48.2" lon="9.2"><name>Church</name><desc>Old town</desc></wpt>
  <wpt lat="48.3" lon="9.3"><desc>x;y</desc></wpt>
  <rte><name>Tour</name><desc>Day 1, Day 2</desc><rtept lat="48.4" lon="9.4"><name>A</name></rtept></rte>
</gpx>
"""


def _write(fmt, routes):
    buffer = io.BytesIO()
    fmt.write_routes(routes, buffer)
    return buffer.getvalue()


def _gpx(body, version="1.0"):
    ns = "http://www.topografix.com/GPX/1/0" if version == "1.0" else "http://www.topografix.com/GPX/1/1"
    return f'<gpx version="{version}" creator="test" xmlns="{ns}">{body}</gpx>'.encode("utf-8")


def _snapshot(routes):
    return [(r.characteristics, r.name, r.description, list(r.positions)) for r in routes]


class TestReading:

    def test_routes_of_each_kind(self, gpx10):
        waypoints, route, track = ParserContext().parse(gpx10)
        assert waypoints.characteristics is RouteCharacteristics.WAYPOINTS
        assert waypoints.name == "Tour"
        assert route.characteristics is RouteCharacteristics.ROUTE
        assert route.name == "Route A"
        assert track.characteristics is RouteCharacteristics.TRACK
        assert len(track) == 2  # both segments

    def test_position_fields(self, gpx10):
        waypoints, _, track = ParserContext().parse(gpx10)
        first = waypoints[0]
        assert first.latitude == 48.4926
        assert first.elevation == 460.5
        assert first.time == datetime(2007, 11, 22, 10, 14, 4, tzinfo=timezone.utc)
        assert first.comment == "Bad Urach; Marktplatz"
        assert track[0].speed == pytest.approx(36.0)
        assert track[0].heading == 97.78

    def test_speed_from_comment(self, gpx10):
        waypoints = ParserContext().parse(gpx10)[0]
        assert waypoints[1].speed == 42.0

    def test_speed_in_kmh_for_some_creators(self):
        data = _gpx('<wpt lat="1" lon="2"><speed>50</speed></wpt>').replace(
            b'creator="test"', b'creator="Holux Utility"')
        assert ParserContext().parse(data)[0][0].speed == 50.0

    def test_heading_from_comment(self, gpx11):
        waypoints = ParserContext().parse(gpx11)[0]
        assert waypoints.name == "Pois"
        assert waypoints[0].heading == 90.5

    def test_missing_coordinates_are_malformed(self):
        from navconv import MalformedRecordError
        with pytest.raises(MalformedRecordError):
            ParserContext().parse(_gpx('<wpt lat="1"><name>x</name></wpt>'))

    def test_markers(self):
        assert parse_speed("fast, Speed: 42.0 Km/h") == 42.0
        assert parse_speed("no speed") is None
        assert parse_heading("Heading: 97.8") == 97.8
        assert parse_heading(None) is None


class TestTripmaster:
    """A waypoint list is a track when every waypoint carries a Tripmaster reason."""

    def test_reasons(self):
        assert tripmaster_reason("Punkt: Bad Urach") == "Punkt"
        assert tripmaster_reason("Richtung 90 - Bad Urach") == "Richtung 90"
        assert tripmaster_reason("Dur. 0:01:05 : Bad Urach") == "Dur. 0:01:05"
        assert tripmaster_reason("Bad Urach") is None

    def test_all_reasons_make_a_track(self):
        data = _gpx('<wpt lat="1" lon="2"><name>Punkt: A</name></wpt>'
                    '<wpt lat="1" lon="3"><name>Richtung 90 - B</name></wpt>')
        route = ParserContext().parse(data)[0]
        assert route.characteristics is RouteCharacteristics.TRACK
        assert [p.reason for p in route] == ["Punkt", "Richtung 90"]
        assert route[0].comment == "Punkt: A"

    def test_one_plain_waypoint_keeps_waypoints(self):
        data = _gpx('<wpt lat="1" lon="2"><name>Punkt: A</name></wpt>'
                    '<wpt lat="1" lon="3"><name>B</name></wpt>')
        route = ParserContext().parse(data)[0]
        assert route.characteristics is RouteCharacteristics.WAYPOINTS

    def test_empty_list_is_not_a_track(self):
        assert not is_tripmaster_track([])


class TestReuse:
    """Writing routes back into the document they were read from."""

    def test_unchanged_round_trip(self, gpx10):
        before = ParserContext().parse(gpx10)
        data = _write(Gpx10Format(), list(before))
        assert _snapshot(ParserContext().parse(data)) == _snapshot(before)

    def test_unchanged_names_round_trip(self):
        before = ParserContext().parse(NAMED_GPX11)
        data = _write(Gpx11Format(), list(before))
        assert _snapshot(ParserContext().parse(data)) == _snapshot(before)
        assert [p.comment for p in before[0]] == ["Home", "Church; Old town", "x;y"]
        assert before[0].description == ["Alb", "Sights"]

    def test_desc_without_name_stays_alone(self):
        result = ParserContext().parse(NAMED_GPX11)
        data = _write(Gpx11Format(), list(result))
        assert b"<desc>x;y</desc>" in data
        assert b"<name>x</name>" not in data
        assert ParserContext().parse(data)[0][2].comment == "x;y"

    def test_edited_comment_is_split_again(self):
        result = ParserContext().parse(NAMED_GPX11)
        result[0][2].comment = "Chapel; Hill"
        data = _write(Gpx11Format(), list(result))
        assert b"<name>Chapel</name>" in data
        assert b"<desc>Hill</desc>" in data

    def test_unknown_elements_survive(self, gpx10):
        result = ParserContext().parse(gpx10)
        data = _write(Gpx10Format(), list(result))
        assert b"<sym>Flag</sym>" in data

    def test_unchanged_values_keep_their_text(self, gpx10):
        result = ParserContext().parse(gpx10)
        data = _write(Gpx10Format(), list(result))
        assert b"<course>97.78</course>" in data
        assert b"<ele>470.25</ele>" in data

    def test_speed_marker_not_duplicated(self, gpx10):
        result = ParserContext().parse(gpx10)
        data = _write(Gpx10Format(), list(result))
        assert data.count(b"Speed: 42.0 Km/h") == 1
        again = ParserContext().parse(data)
        data = _write(Gpx10Format(), list(again))
        assert data.count(b"Speed: 42.0 Km/h") == 1

    def test_changed_speed_updates_marker(self, gpx10):
        result = ParserContext().parse(gpx10)
        result[0][1].speed = 50.0
        data = _write(Gpx10Format(), list(result))
        assert b"Speed: 50.0 Km/h" in data
        assert b"Speed: 42.0 Km/h" not in data
        assert b"<speed>13.889</speed>" in data

    def test_edits_are_written_in_place(self, gpx10):
        result = ParserContext().parse(gpx10)
        route = result[1]
        route.reverse()
        route[0].comment = "Renamed"
        data = _write(Gpx10Format(), list(result))
        again = ParserContext().parse(data)[1]
        assert [p.comment for p in again] == ["Renamed", "A1"]

    def test_same_origin_written_twice(self, gpx10):
        result = ParserContext().parse(gpx10)
        route = result[1]
        route.append(route[0])
        data = _write(Gpx10Format(), [route])
        root = ET.fromstring(data)
        rtepts = [e for e in root.iter() if local_name(e.tag) == "rtept"]
        names = [e.findtext(f"{{{GPX10_NS}}}name") for e in rtepts]
        assert names == ["A1", "A2", "A1"]

    def test_waypoints_written_as_track(self, gpx10):
        result = ParserContext().parse(gpx10)
        buffer = io.BytesIO()
        Gpx10Format().write(result[0], buffer, characteristics=[RouteCharacteristics.TRACK])
        again = ParserContext().parse(buffer.getvalue())
        assert [r.characteristics for r in again] == [RouteCharacteristics.TRACK]
        assert list(again[0].positions) == list(result[0].positions)
        assert b"<sym>Flag</sym>" in buffer.getvalue()

    def test_kept_result_allows_reuse(self, gpx10):
        result = ParserContext().parse(gpx10)
        route = result[0]
        gc.collect()
        assert route.document is not None
        assert b"<sym>Flag</sym>" in _write(Gpx10Format(), [route])

    def test_dropped_result_writes_without_reuse(self, gpx10, caplog):
        route = ParserContext().parse(gpx10)[0]
        gc.collect()
        assert route.document is None
        with caplog.at_level(logging.DEBUG, logger="navconv.formats.base"):
            data = _write(Gpx10Format(), [route])
        assert b"<sym>" not in data
        assert "no live document" in caplog.text
        assert [p.comment for p in ParserContext().parse(data)[0]] == [p.comment for p in route]


class TestRecreate:
    """Writing without reusing what was read."""

    def test_fresh_elements(self, gpx10):
        result = ParserContext().parse(gpx10)
        fmt = Gpx10Format(FormatConfig(reuse_read_objects_for_writing=False))
        data = _write(fmt, [result[0]])
        assert b"<sym>" not in data
        assert b"<speed>11.667</speed>" in data
        assert b"Speed:" not in data

    def test_gpx11_writes_markers(self):
        route = Route(RouteCharacteristics.WAYPOINTS, "Pois",
                      positions=[Wgs84Position(9.0, 48.0, speed=42.0, heading=97.8, comment="Home")])
        data = _write(Gpx11Format(), [route])
        assert b"Speed: 42.0 Km/h" in data
        assert b"Heading: 97.8" in data
        assert b"<speed>" not in data
        again = ParserContext().parse(data)[0]
        assert again.name == "Pois"
        assert again[0].speed == 42.0
        assert again[0].heading == 97.8
        assert again[0].comment == "Home"

    def test_name_and_description_split(self):
        route = Route(RouteCharacteristics.ROUTE, "R",
                      positions=[Wgs84Position(9.0, 48.0, comment="Bad Urach; Marktplatz")])
        root = ET.fromstring(_write(Gpx10Format(), [route]))
        rtept = next(e for e in root.iter() if local_name(e.tag) == "rtept")
        texts = {local_name(c.tag): c.text for c in rtept}
        assert texts["name"] == "Bad Urach"
        assert texts["desc"] == "Marktplatz"

    def test_schema_order_of_children(self):
        route = Route(RouteCharacteristics.WAYPOINTS, "W", positions=[
            Wgs84Position(9.0, 48.0, elevation=400.0, speed=36.0, heading=10.0, comment="X",
                          time=datetime(2008, 1, 1, tzinfo=timezone.utc), hdop=1.5, satellites=7)])
        root = ET.fromstring(_write(Gpx10Format(FormatConfig(reuse_read_objects_for_writing=False)), [route]))
        wpt = next(e for e in root if local_name(e.tag) == "wpt")
        assert [local_name(c.tag) for c in wpt] == ["ele", "time", "course", "speed", "name", "sat", "hdop"]

    def test_route_names_are_cut(self):
        route = Route(RouteCharacteristics.ROUTE, "x" * 100, positions=[Wgs84Position(9.0, 48.0)])
        again = ParserContext().parse(_write(Gpx10Format(), [route]))[0]
        assert again.name == "x" * 64

    def test_positions_without_coordinates_are_skipped(self):
        route = Route(RouteCharacteristics.ROUTE, "R",
                      positions=[Wgs84Position(9.0, 48.0), Wgs84Position(None, None)])
        again = ParserContext().parse(_write(Gpx10Format(), [route]))[0]
        assert len(again) == 1


class TestMultipleRoutes:

    def test_grouped_by_kind_in_order(self):
        def route(kind, name):
            return Route(kind, name, positions=[Wgs84Position(9.0, 48.0, comment=name)])
        routes = [
            route(RouteCharacteristics.TRACK, "t1"),
            route(RouteCharacteristics.WAYPOINTS, "w1"),
            route(RouteCharacteristics.ROUTE, "r1"),
            route(RouteCharacteristics.WAYPOINTS, "w2"),
            route(RouteCharacteristics.ROUTE, "r2"),
        ]
        root = ET.fromstring(_write(Gpx10Format(), routes))
        kinds = [local_name(c.tag) for c in root if local_name(c.tag) in ("wpt", "rte", "trk")]
        assert kinds == ["wpt", "wpt", "rte", "rte", "trk"]
        names = [c.findtext(f"{{{GPX10_NS}}}name") for c in root if local_name(c.tag) == "rte"]
        assert names == ["r1", "r2"]

    def test_filter_by_characteristics(self, gpx10):
        result = ParserContext().parse(gpx10)
        buffer = io.BytesIO()
        Gpx10Format().write_routes(list(result), buffer, characteristics=[RouteCharacteristics.ROUTE])
        again = ParserContext().parse(buffer.getvalue())
        assert [r.characteristics for r in again] == [RouteCharacteristics.ROUTE]

    def test_single_route_formats_reject_many(self, gpx10):
        from navconv.formats.tomtom import TomTomItnFormat
        result = ParserContext().parse(gpx10)
        with pytest.raises(NavigationError):
            TomTomItnFormat().write_routes(list(result), io.BytesIO())
