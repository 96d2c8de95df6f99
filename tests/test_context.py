"""
Tests for format detection and the parse pipeline.
"""

from datetime import datetime, timezone

import pytest

from navconv import (
    EncodingError, FormatConfig, MalformedRecordError, ParserContext, RouteCharacteristics,
    UnsupportedFormatError,
)
from navconv.formats import FORMAT_REGISTRY, create_formats, get_format
from navconv.formats.bcr import BcrFormat
from navconv.formats.gpx import Gpx10Format, Gpx11Format
from navconv.formats.nmn import Nmn5Format
from navconv.formats.simple import CsvFormat, HaicomLoggerFormat, Route66Format
from navconv.formats.tomtom import TomTomItnFormat


SAMPLES = [
    ("gpx10", Gpx10Format),
    ("gpx11", Gpx11Format),
    ("bcr", BcrFormat),
    ("haicom", HaicomLoggerFormat),
    ("route66", Route66Format),
    ("nmn5", Nmn5Format),
    ("itn", TomTomItnFormat),
    ("csv", CsvFormat),
]


class TestDetection:
    """Each sample is read by its own format, whatever else might accept it."""

    @pytest.mark.parametrize("fixture,expected", SAMPLES)
    def test_sample_detected(self, request, fixture, expected):
        data = request.getfixturevalue(fixture)
        result = ParserContext().parse(data)
        assert isinstance(result.format, expected)
        assert len(result) >= 1
        assert all(route.format is result.format for route in result)

    @pytest.mark.parametrize("fixture,expected", SAMPLES)
    def test_no_earlier_format_accepts_sample(self, request, fixture, expected):
        data = request.getfixturevalue(fixture)
        accepting = [type(f) for f in FORMAT_REGISTRY if f.is_valid_format(data)]
        assert accepting[0] is expected

    def test_route66_lines_are_generic_csv_too(self, route66):
        assert CsvFormat().is_valid_format(route66)
        assert Route66Format().is_valid_format(route66)
        order = [type(f) for f in FORMAT_REGISTRY]
        assert order.index(Route66Format) < order.index(CsvFormat)

        result = ParserContext().parse(route66)
        assert isinstance(result.format, Route66Format)
        assert result[0].characteristics is RouteCharacteristics.WAYPOINTS
        assert [p.comment for p in result[0]] == ["Bad Urach", "Metzingen-Nord"]

    def test_generic_csv_alone_misreads_route66(self, route66):
        result = ParserContext([CsvFormat()]).parse(route66)
        assert result[0].characteristics is RouteCharacteristics.ROUTE
        # the name column of Route 66 lands in the altitude column
        assert result[0][0].latitude == 9.3945

    def test_detect(self, itn):
        assert isinstance(ParserContext().detect(itn), TomTomItnFormat)

    def test_unsupported_lists_attempted_formats(self):
        with pytest.raises(UnsupportedFormatError) as e:
            ParserContext().parse(b"hello world\n", name="notes.txt")
        assert e.value.attempted == [f.name for f in FORMAT_REGISTRY]
        assert "notes.txt" in str(e.value)

    def test_accepting_format_without_routes_falls_through(self):
        empty = b'<gpx version="1.0" xmlns="http://www.topografix.com/GPX/1/0"><name>x</name></gpx>'
        assert Gpx10Format().is_valid_format(empty)
        with pytest.raises(UnsupportedFormatError):
            ParserContext().parse(empty)

    def test_malformed_record_is_fatal(self):
        data = b"[CLIENT]\nROUTENAME=x\n[COORDINATES]\nSTATION1=1,2\nSTATION2=abc\n"
        with pytest.raises(MalformedRecordError) as e:
            ParserContext().parse(data)
        assert e.value.format_name == BcrFormat.name

    def test_forced_format_reports_line(self):
        data = b"945000|4849260|A|4|\r\ngarbage\r\n"
        with pytest.raises(MalformedRecordError) as e:
            ParserContext().parse(data, format=TomTomItnFormat())
        assert e.value.line_number == 2
        assert e.value.record == "garbage"

    def test_forced_format_skips_detection(self, route66):
        result = ParserContext().parse(route66, format=CsvFormat())
        assert isinstance(result.format, CsvFormat)

    def test_explicit_encoding_failure(self):
        with pytest.raises(EncodingError) as e:
            ParserContext(encoding="ascii").parse("Ümlaut,1\n".encode("utf-8"))
        assert e.value.encoding == "ascii"

    def test_latin1_fallback(self):
        data = "945000|4849260|Grüningen|4|\r\n".encode("latin-1")
        result = ParserContext().parse(data)
        assert result[0][0].comment == "Grüningen"

    def test_contexts_are_independent(self, itn, csv):
        first, second = ParserContext(), ParserContext()
        a = first.parse(itn)
        b = second.parse(csv)
        assert isinstance(a.format, TomTomItnFormat)
        assert isinstance(b.format, CsvFormat)
        assert first.routes != second.routes


class TestPlainFormats:
    """Reading the line based formats."""

    def test_haicom(self, haicom):
        route = ParserContext().parse(haicom)[0]
        assert route.characteristics is RouteCharacteristics.TRACK
        first, second = route
        assert first.latitude == 48.4926
        assert first.longitude == 9.3945
        assert first.elevation == 460.5
        assert first.heading == 97.8
        assert first.speed == 12.5
        assert first.time == datetime(2008, 4, 4, 10, 20, 30, tzinfo=timezone.utc)
        assert second.latitude == -48.493
        assert second.longitude == -9.395
        assert second.speed is None
        assert second.time is None

    def test_haicom_time_only_uses_start_date(self, haicom):
        start = datetime(2008, 4, 5, tzinfo=timezone.utc)
        route = ParserContext(start_date=start).parse(haicom)[0]
        assert route[1].time == datetime(2008, 4, 5, 10, 20, 40, tzinfo=timezone.utc)

    def test_haicom_ignores_unset_start_date(self, haicom):
        start = datetime(1970, 1, 1, tzinfo=timezone.utc)
        route = ParserContext(start_date=start).parse(haicom)[0]
        assert route[1].time is None

    def test_nmn5(self, nmn5):
        route = ParserContext().parse(nmn5)[0]
        assert route.characteristics is RouteCharacteristics.ROUTE
        assert [p.comment for p in route] == ["Bad Urach, Hauptstrasse 5", "Metzingen"]
        assert route[0].longitude == 9.3945

    def test_itn(self, itn):
        route = ParserContext().parse(itn)[0]
        assert route.characteristics is RouteCharacteristics.ROUTE
        assert [p.comment for p in route] == ["Bad Urach", "Somewhere", "Ziel"]
        assert route[0].longitude == pytest.approx(9.45)
        assert route[0].latitude == pytest.approx(48.4926)

    def test_csv(self, csv):
        route = ParserContext().parse(csv)[0]
        assert [p.comment for p in route] == ["Bad Urach; Marktplatz", "Metzingen"]
        assert route[0].elevation == 460.5
        assert route[1].elevation is None

    def test_csv_options(self):
        data = b"48,4926;9,3945;460,5;\"Bad Urach\";\"\"\n"
        fmt = CsvFormat(separator=";", decimal=",")
        route = ParserContext([fmt]).parse(data)[0]
        assert route[0].latitude == 48.4926
        assert route[0].elevation == 460.5

    def test_bcr(self, bcr):
        route = ParserContext().parse(bcr)[0]
        assert route.name == "Tour"
        assert route[0].x == 1045880
        assert route[0].y == 6184135
        assert [p.comment for p in route] == ["Bad Urach", "Metzingen"]


class TestRegistry:

    def test_get_format(self):
        assert isinstance(get_format("itn"), TomTomItnFormat)
        assert isinstance(get_format(".gpx"), Gpx10Format)
        assert isinstance(get_format("csv"), CsvFormat)
        assert isinstance(get_format("Route66Format"), Route66Format)
        assert get_format("xyz") is None

    def test_create_formats_uses_config(self):
        config = FormatConfig(max_route_name_length=10)
        formats = create_formats(config)
        assert all(f.max_route_name_length == 10 for f in formats)
        assert [type(f) for f in formats] == [type(f) for f in FORMAT_REGISTRY]

    def test_equality_by_class(self):
        assert Gpx10Format() == Gpx10Format(FormatConfig(write_time=False))
        assert Gpx10Format() != Gpx11Format()
