"""
navconv — Data models: positions and routes

Positions and routes are format neutral. A position or route that was read
from a file keeps a weak handle on the native structure it came from (an
XML element, a parsed INI document) so that writing back can update that
structure in place instead of rebuilding it.
"""

from __future__ import annotations
import math
import weakref
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, List, Optional, Tuple

from .conversion import (
    EARTH_RADIUS, mercator_x_to_wgs84_longitude, mercator_y_to_wgs84_latitude,
    wgs84_latitude_to_mercator_y, wgs84_longitude_to_mercator_x,
)


class RouteCharacteristics(Enum):
    ROUTE = "route"
    TRACK = "track"
    WAYPOINTS = "waypoints"


class _OriginHandle:
    """Descriptor storing a weak reference; reading returns None once the target is gone."""

    def __set_name__(self, owner, name):
        self._attr = "_" + name

    def __get__(self, obj, objtype=None):
        if obj is None:
            return self
        ref = getattr(obj, self._attr, None)
        return ref() if ref is not None else None

    def __set__(self, obj, value):
        setattr(obj, self._attr, weakref.ref(value) if value is not None else None)


# ─────────────────────────────────────────────────────────────
# Positions
# ─────────────────────────────────────────────────────────────

class NavigationPosition:
    """Fields every position carries, whatever stores its coordinates."""

    origin = _OriginHandle()

    def __init__(self, elevation: Optional[float] = None, speed: Optional[float] = None,
                 heading: Optional[float] = None, time: Optional[datetime] = None,
                 comment: Optional[str] = None, hdop: Optional[float] = None,
                 pdop: Optional[float] = None, vdop: Optional[float] = None,
                 satellites: Optional[int] = None, origin: Any = None):
        self.elevation = elevation
        self.speed = speed  # km/h
        self.heading = heading
        self.time = time
        self.comment = comment
        self.hdop = hdop
        self.pdop = pdop
        self.vdop = vdop
        self.satellites = satellites
        self.origin = origin

    @property
    def longitude(self) -> Optional[float]:
        raise NotImplementedError

    @property
    def latitude(self) -> Optional[float]:
        raise NotImplementedError

    def has_coordinates(self) -> bool:
        return self.longitude is not None and self.latitude is not None

    def distance_from(self, other: NavigationPosition) -> Optional[float]:
        """Haversine distance in meters."""
        if not (self.has_coordinates() and other.has_coordinates()):
            return None
        lat1, lat2 = math.radians(self.latitude), math.radians(other.latitude)
        dlat = math.radians(other.latitude - self.latitude)
        dlng = math.radians(other.longitude - self.longitude)
        a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
        return EARTH_RADIUS * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    def _accuracy(self) -> Tuple:
        return self.hdop, self.pdop, self.vdop, self.satellites

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(longitude={self.longitude!r}, latitude={self.latitude!r}, "
                f"elevation={self.elevation!r}, time={self.time!r}, comment={self.comment!r})")


class Wgs84Position(NavigationPosition):
    """Position stored as floating point WGS84 degrees."""

    def __init__(self, longitude: Optional[float] = None, latitude: Optional[float] = None, **fields):
        super().__init__(**fields)
        self._longitude = longitude
        self._latitude = latitude

    @property
    def longitude(self) -> Optional[float]:
        return self._longitude

    @longitude.setter
    def longitude(self, value: Optional[float]):
        self._longitude = value

    @property
    def latitude(self) -> Optional[float]:
        return self._latitude

    @latitude.setter
    def latitude(self, value: Optional[float]):
        self._latitude = value

    def _key(self) -> Tuple:
        return (self._longitude, self._latitude, self.elevation, self.speed, self.heading,
                self.time, self.comment) + self._accuracy()

    def __eq__(self, other) -> bool:
        if not isinstance(other, Wgs84Position):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def copy(self) -> Wgs84Position:
        return type(self)(self._longitude, self._latitude, elevation=self.elevation, speed=self.speed,
                          heading=self.heading, time=self.time, comment=self.comment,
                          hdop=self.hdop, pdop=self.pdop, vdop=self.vdop,
                          satellites=self.satellites, origin=self.origin)


class GpxPosition(Wgs84Position):
    """A GPX point; `reason` is the Tripmaster prefix of the comment, if any."""

    def __init__(self, longitude: Optional[float] = None, latitude: Optional[float] = None,
                 reason: Optional[str] = None, **fields):
        super().__init__(longitude, latitude, **fields)
        self.reason = reason

    def copy(self) -> GpxPosition:
        duplicate = super().copy()
        duplicate.reason = self.reason
        return duplicate


class MercatorPosition(NavigationPosition):
    """
    Position stored as integer spherical Mercator meters.

    Longitude and latitude are computed on access and setting them projects
    the value, so reading back returns the center of the 1 m cell rather
    than the exact degrees. Equality compares the integers.
    """

    def __init__(self, x: Optional[int] = None, y: Optional[int] = None, **fields):
        super().__init__(**fields)
        self.x = x
        self.y = y

    @classmethod
    def from_wgs84(cls, longitude: Optional[float], latitude: Optional[float], **fields) -> MercatorPosition:
        position = cls(**fields)
        position.longitude = longitude
        position.latitude = latitude
        return position

    @property
    def longitude(self) -> Optional[float]:
        return mercator_x_to_wgs84_longitude(self.x) if self.x is not None else None

    @longitude.setter
    def longitude(self, value: Optional[float]):
        self.x = wgs84_longitude_to_mercator_x(value) if value is not None else None

    @property
    def latitude(self) -> Optional[float]:
        return mercator_y_to_wgs84_latitude(self.y) if self.y is not None else None

    @latitude.setter
    def latitude(self, value: Optional[float]):
        self.y = wgs84_latitude_to_mercator_y(value) if value is not None else None

    def _key(self) -> Tuple:
        return self.x, self.y, self.elevation, self.comment, self.time

    def __eq__(self, other) -> bool:
        if not isinstance(other, MercatorPosition):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def copy(self) -> MercatorPosition:
        return MercatorPosition(self.x, self.y, elevation=self.elevation, speed=self.speed,
                                heading=self.heading, time=self.time, comment=self.comment,
                                hdop=self.hdop, pdop=self.pdop, vdop=self.vdop,
                                satellites=self.satellites, origin=self.origin)


# ─────────────────────────────────────────────────────────────
# Routes
# ─────────────────────────────────────────────────────────────

class Route:
    """An ordered list of positions with a kind, a name and a description."""

    origin = _OriginHandle()
    document = _OriginHandle()

    def __init__(self, characteristics: RouteCharacteristics,
                 name: Optional[str] = None,
                 description: Optional[List[str]] = None,
                 positions: Optional[Iterable[NavigationPosition]] = None,
                 format=None, origin: Any = None, document: Any = None):
        self._characteristics = characteristics
        self.name = name
        self.description = description
        self._positions: List[NavigationPosition] = list(positions or [])
        self.format = format
        self.origin = origin
        self.document = document

    @property
    def characteristics(self) -> RouteCharacteristics:
        return self._characteristics

    @property
    def positions(self) -> List[NavigationPosition]:
        return self._positions

    def __len__(self) -> int:
        return len(self._positions)

    def __getitem__(self, index):
        return self._positions[index]

    def __setitem__(self, index, value: NavigationPosition):
        self._positions[index] = value

    def __iter__(self):
        return iter(self._positions)

    def __bool__(self) -> bool:
        return len(self._positions) > 0

    def append(self, position: NavigationPosition):
        self._positions.append(position)

    def extend(self, positions: Iterable[NavigationPosition]):
        self._positions.extend(positions)

    def insert(self, index: int, position: NavigationPosition):
        self._positions.insert(index, position)

    def remove(self, position: NavigationPosition):
        self._positions.remove(position)

    def pop(self, index: int = -1) -> NavigationPosition:
        return self._positions.pop(index)

    def move(self, index: int, new_index: int):
        self._positions.insert(new_index, self._positions.pop(index))

    def reverse(self):
        self._positions.reverse()

    def remove_duplicates(self):
        """Drop positions repeating the coordinates of their predecessor."""
        result: List[NavigationPosition] = []
        for p in self._positions:
            if result and (result[-1].longitude, result[-1].latitude) == (p.longitude, p.latitude):
                continue
            result.append(p)
        self._positions = result

    def total_distance(self) -> float:
        """Total distance in meters."""
        total = 0.0
        for previous, current in zip(self._positions, self._positions[1:]):
            distance = previous.distance_from(current)
            if distance is not None:
                total += distance
        return total

    def bounds(self) -> Optional[Tuple[float, float, float, float]]:
        """Returns (min_lat, min_lng, max_lat, max_lng) or None without coordinates."""
        located = [p for p in self._positions if p.has_coordinates()]
        if not located:
            return None
        lats = [p.latitude for p in located]
        lngs = [p.longitude for p in located]
        return min(lats), min(lngs), max(lats), max(lngs)

    def __repr__(self) -> str:
        return (f"Route({self._characteristics.value}, name={self.name!r}, "
                f"positions={len(self._positions)})")
