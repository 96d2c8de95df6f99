"""
Sample documents shared by the tests, one per format.
"""

import pytest


GPX10 = b"""<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.0" creator="test" xmlns="http://www.topografix.com/GPX/1/0">
  <name>Tour</name>
  <wpt lat="48.4926" lon="9.3945">
    <ele>460.5</ele>
    <time>2007-11-22T10:14:04Z</time>
    <name>Bad Urach</name>
    <desc>Marktplatz</desc>
    <sym>Flag</sym>
  </wpt>
  <wpt lat="48.5" lon="9.4">
    <name>Speedy</name>
    <cmt>Speed: 42.0 Km/h</cmt>
  </wpt>
  <rte>
    <name>Route A</name>
    <rtept lat="48.1" lon="9.1"><name>A1</name></rtept>
    <rtept lat="48.2" lon="9.2"><name>A2</name></rtept>
  </rte>
  <trk>
    <name>Track B</name>
    <trkseg>
      <trkpt lat="48.3" lon="9.3"><course>97.78</course><speed>10</speed></trkpt>
    </trkseg>
    <trkseg>
      <trkpt lat="48.31" lon="9.31"><ele>470.25</ele></trkpt>
    </trkseg>
  </trk>
</gpx>
"""

GPX11 = b"""<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="test" xmlns="http://www.topografix.com/GPX/1/1">
  <metadata><name>Pois</name></metadata>
  <wpt lat="48.4926" lon="9.3945">
    <name>Home</name>
    <cmt>Heading: 90.5</cmt>
    <extensions><color>red</color></extensions>
  </wpt>
</gpx>
"""

BCR = b"""[CLIENT]
REQUEST=TRUE
ROUTENAME=Tour
EXTRA=kept
STATION1=Standort,999999999
STATION2=Standort,999999999
[COORDINATES]
STATION1=1045880,6184135
STATION2=1046436,6185374
[DESCRIPTION]
STATION1=Bad Urach
STATION2=Metzingen
[ROUTE]
"""

HAICOM = b"""INDEX,RCR,DATE,TIME,LATITUDE,N/S,LONGITUDE,E/W,ALTITUDE,COURSE,SPEED,
1,T,08/04/04,10:20:30,48.49260,N,9.39450,E,460.5m,97.8,12.5km/h
2,T,,10:20:40,48.49300,S,9.39500,W,461.0m,,km/h
"""

ROUTE66 = b"""9.394500,48.492600,"BAD URACH"
9.400000,48.500000,"METZINGEN-NORD"
"""

NMN5 = (b"-|-|-|-|-|BAD URACH|-|HAUPTSTRASSE|5|-|-|9.394500|48.492600|-|-|9.394500|48.492600|\r\n"
        b"-|-|-|-|-|Metzingen|-|-|-|-|-|9.400000|48.500000|-|-|9.400000|48.500000|\r\n")

ITN = b"""945000|4849260|Bad Urach|4|\r
940000|4850000|Somewhere|0|\r
910000|4810000|Ziel|2|\r
"""

CSV = b"""Latitude,Longitude,Altitude,Name,Comment
48.4926,9.3945,460.5,"Bad Urach","Marktplatz"
48.5,9.4,,"Metzingen",""
"""


@pytest.fixture
def gpx10():
    return GPX10


@pytest.fixture
def gpx11():
    return GPX11


@pytest.fixture
def bcr():
    return BCR


@pytest.fixture
def haicom():
    return HAICOM


@pytest.fixture
def route66():
    return ROUTE66


@pytest.fixture
def nmn5():
    return NMN5


@pytest.fixture
def itn():
    return ITN


@pytest.fixture
def csv():
    return CSV
