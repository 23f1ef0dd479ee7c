"""
Planar and spherical geometry helpers used by the geohash coverage engine.

Points are (longitude, latitude) tuples, matching the GeoJSON axis order.
Function arguments that take separate coordinates are ordered
latitude first, longitude second. Mixing the two conventions up is the most
common way to get silently wrong answers, so coordinates are validated
wherever they enter.

All distances assume a spherical earth with a radius of 6,371 km, which is
off by up to ~0.5% compared to the WGS84 ellipsoid. That is plenty for
picking geohash lengths and building search covers.
"""
import math
from dataclasses import dataclass
from typing import Iterable, Sequence

from src.geocover.errors import InvalidArgumentError

EARTH_RADIUS_METERS = 6371000.0
EARTH_CIRCUMFERENCE_METERS = EARTH_RADIUS_METERS * math.pi * 2.0
DEGREE_LATITUDE_METERS = EARTH_RADIUS_METERS * math.pi / 180.0

# Some data sources produce values like 180.00000000000023
COORDINATE_TOLERANCE = 0.0002

# Tolerance for treating two parallel lines as the same line
COLINEAR_EPSILON = 1e-7

Point = tuple[float, float]


@dataclass(frozen=True)
class BoundingBox:
    """
    An axis-aligned box in degrees.

    south <= north always holds. A box where west > east crosses the
    antimeridian; callers have to special-case those.
    """
    west: float
    south: float
    east: float
    north: float

    @property
    def width(self) -> float:
        return self.east - self.west

    @property
    def height(self) -> float:
        return self.north - self.south

    @property
    def center(self) -> Point:
        return (self.west + self.east) / 2, (self.south + self.north) / 2

    @property
    def corners(self) -> tuple[Point, Point, Point, Point]:
        """North-west, north-east, south-east and south-west corner, in ring order."""
        return (
            (self.west, self.north),
            (self.east, self.north),
            (self.east, self.south),
            (self.west, self.south),
        )

    @property
    def edges(self) -> list[tuple[Point, Point]]:
        nw, ne, se, sw = self.corners
        return [(nw, ne), (ne, se), (se, sw), (sw, nw)]

    def contains(self, latitude: float, longitude: float) -> bool:
        """Inclusive containment check; validates the coordinate first."""
        validate(latitude, longitude)
        return self.south <= latitude <= self.north and self.west <= longitude <= self.east

    def intersects(self, other: "BoundingBox") -> bool:
        return (
            self.west <= other.east and other.west <= self.east
            and self.south <= other.north and other.south <= self.north
        )


def validate(latitude: float, longitude: float, strict: bool = False) -> None:
    """
    Check that a coordinate is within the legal ranges.

    Args:
        latitude: Latitude between -90 and 90
        longitude: Longitude between -180 and 180
        strict: When False, allow a small tolerance for rounding errors

    Raises:
        InvalidArgumentError: If either value is out of range or not a number
    """
    tolerance = 0.0 if strict else COORDINATE_TOLERANCE
    if not -90.0 - tolerance <= latitude <= 90.0 + tolerance:
        raise InvalidArgumentError(f"Latitude {latitude} is outside legal range of -90,90")
    if not -180.0 - tolerance <= longitude <= 180.0 + tolerance:
        raise InvalidArgumentError(f"Longitude {longitude} is outside legal range of -180,180")


def bounding_box(points: Iterable[Sequence[float]]) -> BoundingBox:
    """
    Get the smallest box containing all points.

    Args:
        points: (longitude, latitude) pairs

    Returns:
        BoundingBox around the points

    Raises:
        InvalidArgumentError: If there are no points
    """
    west = south = math.inf
    east = north = -math.inf
    for longitude, latitude in points:
        west = min(west, longitude)
        south = min(south, latitude)
        east = max(east, longitude)
        north = max(north, latitude)

    if west == math.inf:
        raise InvalidArgumentError("cannot calculate a bounding box without points")
    return BoundingBox(west, south, east, north)


def polygon_contains(latitude: float, longitude: float, ring: Sequence[Sequence[float]]) -> bool:
    """
    Even-odd ray casting test of a point against a polygon ring.

    A ray is cast east from the point along its latitude and the number of
    ring edges it crosses is counted. Edges parallel to the ray are skipped.

    Points exactly on the boundary are not guaranteed to be contained; which
    vertices and edges count as inside depends on the crossing rules below.
    This is a known approximation and good enough for geohash covers.

    Args:
        latitude: Latitude of the point
        longitude: Longitude of the point
        ring: Polygon vertices as (longitude, latitude); closing the ring is optional

    Returns:
        True if the point is inside the polygon
    """
    validate(latitude, longitude)
    if len(ring) < 3:
        raise InvalidArgumentError("a polygon must have at least three points")

    box = bounding_box(ring)
    if not (box.south <= latitude <= box.north and box.west <= longitude <= box.east):
        return False

    inside = False
    last_lon, last_lat = ring[-1][0], ring[-1][1]
    for point in ring:
        current_lon, current_lat = point[0], point[1]
        if current_lat != last_lat and (current_lat > latitude) != (last_lat > latitude):
            crossing_lon = current_lon + (latitude - current_lat) * (last_lon - current_lon) / (last_lat - current_lat)
            if longitude < crossing_lon:
                inside = not inside
        last_lon, last_lat = current_lon, current_lat

    return inside


def _is_between(x1: float, x2: float, value: float) -> bool:
    return min(x1, x2) <= value <= max(x1, x2)


def _ranges_overlap(a1: float, a2: float, b1: float, b2: float) -> bool:
    return min(a1, a2) <= max(b1, b2) and min(b1, b2) <= max(a1, a2)


def segments_intersect(a1: Sequence[float], a2: Sequence[float], b1: Sequence[float], b2: Sequence[float]) -> bool:
    """
    Check whether the segment a1-a2 crosses or touches the segment b1-b2.

    Uses the y = a + bx form of both lines. Vertical segments have no slope
    and are handled separately.

    Args:
        a1, a2: End points of the first segment as (x, y)
        b1, b2: End points of the second segment as (x, y)

    Returns:
        True if the segments share at least one point
    """
    x1, y1 = a1[0], a1[1]
    x2, y2 = a2[0], a2[1]
    u1, v1 = b1[0], b1[1]
    u2, v2 = b2[0], b2[1]

    first_vertical = x1 == x2
    second_vertical = u1 == u2

    if first_vertical and second_vertical:
        if x1 != u1:
            # parallel
            return False
        return _ranges_overlap(y1, y2, v1, v2)

    if first_vertical:
        gradient2 = (v2 - v1) / (u2 - u1)
        yi = v1 - gradient2 * u1 + gradient2 * x1
        return _is_between(u1, u2, x1) and _is_between(y1, y2, yi) and _is_between(v1, v2, yi)

    if second_vertical:
        gradient1 = (y2 - y1) / (x2 - x1)
        yi = y1 - gradient1 * x1 + gradient1 * u1
        return _is_between(x1, x2, u1) and _is_between(y1, y2, yi) and _is_between(v1, v2, yi)

    gradient1 = (y2 - y1) / (x2 - x1)
    gradient2 = (v2 - v1) / (u2 - u1)
    intercept1 = y1 - gradient1 * x1
    intercept2 = v1 - gradient2 * u1

    if gradient1 == gradient2:
        if abs(intercept1 - intercept2) >= COLINEAR_EPSILON:
            # parallel
            return False
        return _ranges_overlap(x1, x2, u1, u2)

    xi = -(intercept1 - intercept2) / (gradient1 - gradient2)
    yi = intercept1 + gradient1 * xi

    return (
        (x1 - xi) * (xi - x2) >= 0
        and (u1 - xi) * (xi - u2) >= 0
        and (y1 - yi) * (yi - y2) >= 0
        and (v1 - yi) * (yi - v2) >= 0
    )


def distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Haversine distance between two coordinates.

    Assumes a perfectly spherical earth, which means an error margin of about
    0.5% given the difference in curvature between the equator and the poles.

    Returns:
        Distance in meters
    """
    validate(lat1, lon1)
    validate(lat2, lon2)

    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(delta_lon / 2) ** 2
    )
    # clamp because rounding can push a slightly above 1 for antipodal points
    c = 2 * math.asin(math.sqrt(min(1.0, a)))

    return EARTH_RADIUS_METERS * c


def meters_per_longitude_degree(latitude: float) -> float:
    """Length of one degree of longitude at the given latitude."""
    return math.cos(math.radians(latitude)) * EARTH_CIRCUMFERENCE_METERS / 360.0


def translate(latitude: float, longitude: float, lat_meters: float, lon_meters: float) -> Point:
    """
    Move a coordinate by a number of meters north and east.

    Treats the earth as locally flat, so this is only reasonable for
    distances that are small relative to the size of the earth.

    Args:
        latitude: Latitude of the start point
        longitude: Longitude of the start point
        lat_meters: Meters to move north (negative for south)
        lon_meters: Meters to move east (negative for west)

    Returns:
        The translated (longitude, latitude)
    """
    validate(latitude, longitude)
    translated_lon = longitude + lon_meters / meters_per_longitude_degree(latitude)
    translated_lat = latitude + lat_meters / DEGREE_LATITUDE_METERS
    return translated_lon, translated_lat


def circle_to_polygon(segments: int, latitude: float, longitude: float, radius: float) -> list[Point]:
    """
    Approximate a circle with a regular polygon.

    More segments give a better approximation but make every containment
    test against the polygon more expensive.

    Args:
        segments: Number of polygon edges (at least 3)
        latitude: Latitude of the center
        longitude: Longitude of the center
        radius: Radius in meters

    Returns:
        Closed ring of (longitude, latitude) points
    """
    validate(latitude, longitude)
    if segments < 3:
        raise InvalidArgumentError(f"a circle needs at least 3 segments, got {segments}")
    if radius <= 0:
        raise InvalidArgumentError(f"radius must be positive, got {radius}")

    relative_latitude = radius / EARTH_RADIUS_METERS * 180 / math.pi
    # modulo 90 keeps the longitudinal radius sane close to the poles
    relative_longitude = relative_latitude / math.cos(math.radians(latitude)) % 90

    points = []
    for i in range(segments):
        # exact multiples of pi behave badly near the poles
        theta = 2.0 * math.pi * i / segments + 0.001
        if theta >= 2 * math.pi:
            theta -= 2 * math.pi

        lat_on_circle = latitude + relative_latitude * math.sin(theta)
        lon_on_circle = longitude + relative_longitude * math.cos(theta)

        if lon_on_circle > 180:
            lon_on_circle = -180 + (lon_on_circle - 180)
        elif lon_on_circle < -180:
            lon_on_circle = 180 + (lon_on_circle + 180)

        if lat_on_circle > 90:
            lat_on_circle = 90 - (lat_on_circle - 90)
        elif lat_on_circle < -90:
            lat_on_circle = -90 - (lat_on_circle + 90)

        points.append((lon_on_circle, lat_on_circle))

    points.append(points[0])
    return points


def bbox_area(bbox: BoundingBox) -> float:
    """Approximate area of a bounding box in square meters."""
    mid_latitude = (bbox.south + bbox.north) / 2
    height = distance(bbox.south, bbox.west, bbox.north, bbox.west)
    width = distance(mid_latitude, bbox.west, mid_latitude, bbox.east)
    return height * width


def polygon_area(ring: Sequence[Sequence[float]]) -> float:
    """
    Approximate area of a polygon ring in square meters.

    Projects the vertices onto a plane around their average position and
    applies the shoelace formula, so expect errors similar to distance().
    """
    if len(ring) < 3:
        raise InvalidArgumentError("a polygon must have at least three points")

    ref_lon = sum(p[0] for p in ring) / len(ring)
    ref_lat = sum(p[1] for p in ring) / len(ring)
    lon_scale = meters_per_longitude_degree(ref_lat)

    projected = [((p[0] - ref_lon) * lon_scale, (p[1] - ref_lat) * DEGREE_LATITUDE_METERS) for p in ring]

    total = 0.0
    last_x, last_y = projected[-1]
    for x, y in projected:
        total += last_x * y - x * last_y
        last_x, last_y = x, y

    return abs(total) / 2
