"""Great-circle distance and base-32 geohash math.

Pure functions with no dependencies on the domain. Geohashes interleave
longitude (even bits) and latitude (odd bits), five bits per character.
"""

import math
from dataclasses import dataclass

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE = 111.0

BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"
_DECODE_MAP = {char: index for index, char in enumerate(BASE32)}
_BITS = (16, 8, 4, 2, 1)

MAX_PRECISION = 9

# Approximate cell size (km) at which each precision becomes appropriate.
_PRECISION_THRESHOLDS = (
    (5000.0, 1),
    (1250.0, 2),
    (156.0, 3),
    (39.0, 4),
    (4.9, 5),
    (1.2, 6),
    (0.153, 7),
    (0.038, 8),
)


class InvalidCoordinate(ValueError):
    pass


class InvalidGeohash(ValueError):
    pass


@dataclass(frozen=True)
class DecodedGeohash:
    lat: float
    lng: float
    lat_error: float
    lng_error: float


@dataclass(frozen=True)
class Bounds:
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def contains_point(self, lat: float, lng: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lng <= lng <= self.max_lng


def haversine(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in kilometres between two points."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)

    a = math.sin(d_lat / 2) ** 2 + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    # Floating point noise can push `a` marginally outside [0, 1] for antipodal points.
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def encode(lat: float, lng: float, precision: int = MAX_PRECISION) -> str:
    """Encode a coordinate into a geohash of ``precision`` characters."""
    if not -90 <= lat <= 90:
        raise InvalidCoordinate(f"Latitude must be between -90 and 90, got {lat}")
    if not -180 <= lng <= 180:
        raise InvalidCoordinate(f"Longitude must be between -180 and 180, got {lng}")
    if precision < 1:
        raise InvalidCoordinate(f"Precision must be at least 1, got {precision}")

    lat_range = [-90.0, 90.0]
    lng_range = [-180.0, 180.0]

    chars = []
    bit = 0
    ch = 0
    even = True

    while len(chars) < precision:
        if even:
            mid = (lng_range[0] + lng_range[1]) / 2
            if lng >= mid:
                ch |= _BITS[bit]
                lng_range[0] = mid
            else:
                lng_range[1] = mid
        else:
            mid = (lat_range[0] + lat_range[1]) / 2
            if lat >= mid:
                ch |= _BITS[bit]
                lat_range[0] = mid
            else:
                lat_range[1] = mid

        even = not even
        bit += 1

        if bit == 5:
            chars.append(BASE32[ch])
            bit = 0
            ch = 0

    return "".join(chars)


def _bisect(geohash: str) -> tuple[list[float], list[float]]:
    if not geohash:
        raise InvalidGeohash("Geohash cannot be empty")

    lat_range = [-90.0, 90.0]
    lng_range = [-180.0, 180.0]
    even = True

    for char in geohash.lower():
        index = _DECODE_MAP.get(char)
        if index is None:
            raise InvalidGeohash(f"Invalid character in geohash: {char!r}")

        for shift in range(4, -1, -1):
            bit = (index >> shift) & 1
            target = lng_range if even else lat_range
            mid = (target[0] + target[1]) / 2
            if bit:
                target[0] = mid
            else:
                target[1] = mid
            even = not even

    return lat_range, lng_range


def decode(geohash: str) -> DecodedGeohash:
    """Return the centre of the geohash cell and its half-widths."""
    lat_range, lng_range = _bisect(geohash)
    return DecodedGeohash(
        lat=(lat_range[0] + lat_range[1]) / 2,
        lng=(lng_range[0] + lng_range[1]) / 2,
        lat_error=(lat_range[1] - lat_range[0]) / 2,
        lng_error=(lng_range[1] - lng_range[0]) / 2,
    )


def bounds(geohash: str) -> Bounds:
    """Return the edges of the geohash cell."""
    lat_range, lng_range = _bisect(geohash)
    return Bounds(min_lat=lat_range[0], max_lat=lat_range[1], min_lng=lng_range[0], max_lng=lng_range[1])


def _wrap_lng(lng: float) -> float:
    if lng > 180:
        return lng - 360
    if lng < -180:
        return lng + 360
    return lng


def neighbors(geohash: str) -> dict[str, str]:
    """Return the eight adjacent cells keyed by compass direction.

    Latitude saturates at the poles; longitude wraps across the antimeridian.
    """
    cell = decode(geohash)
    precision = len(geohash)
    lat_step = cell.lat_error * 2
    lng_step = cell.lng_error * 2

    def shifted(d_lat: int, d_lng: int) -> str:
        lat = min(90.0, max(-90.0, cell.lat + d_lat * lat_step))
        lng = _wrap_lng(cell.lng + d_lng * lng_step)
        return encode(lat, lng, precision)

    return {
        "n": shifted(1, 0),
        "ne": shifted(1, 1),
        "e": shifted(0, 1),
        "se": shifted(-1, 1),
        "s": shifted(-1, 0),
        "sw": shifted(-1, -1),
        "w": shifted(0, -1),
        "nw": shifted(1, -1),
    }


def precision_for_accuracy(accuracy_km: float) -> int:
    """Pick the coarsest precision whose cell is no larger than ``accuracy_km``."""
    for threshold, precision in _PRECISION_THRESHOLDS:
        if accuracy_km >= threshold:
            return precision
    return MAX_PRECISION


def contains(parent: str, child: str) -> bool:
    return child.lower().startswith(parent.lower())


def bounding_box(lat: float, lng: float, radius_km: float) -> Bounds:
    """Approximate box around a point; longitude span widens with latitude."""
    lat_delta = radius_km / KM_PER_DEGREE
    cos_lat = math.cos(math.radians(lat))
    lng_delta = radius_km / (KM_PER_DEGREE * cos_lat) if cos_lat > 1e-12 else 180.0

    return Bounds(
        min_lat=max(-90.0, lat - lat_delta),
        max_lat=min(90.0, lat + lat_delta),
        min_lng=max(-180.0, lng - lng_delta),
        max_lng=min(180.0, lng + lng_delta),
    )


def geohashes_in_bounds(box: Bounds, precision: int) -> list[str]:
    """All cells of ``precision`` that intersect ``box``, in scan order."""
    sample = decode(encode(box.min_lat, box.min_lng, precision))
    lat_step = sample.lat_error * 2
    lng_step = sample.lng_error * 2

    seen: dict[str, None] = {}
    lat = box.min_lat
    while True:
        lng = box.min_lng
        while True:
            seen.setdefault(encode(lat, lng, precision))
            if lng >= box.max_lng:
                break
            lng = min(box.max_lng, lng + lng_step)
        if lat >= box.max_lat:
            break
        lat = min(box.max_lat, lat + lat_step)

    return list(seen)
