"""
Covering polygons, lines and circles with geohashes.

The result of a cover is a set of geohashes whose cells together fill the
shape, suitable for use as keys in an inverted index: index a document under
every geohash of its shape's cover, then query with the geohash of a point
and its prefixes.

How a polygon gets covered:
1. Pick a starting length whose cells are a bit smaller than the diagonal of
   the polygon's bounding box
2. Tile the bounding box with cells of that length (scanning west to east,
   south to north)
3. Classify every cell by its four corners: all inside the polygon means
   fully contained, some inside means partially contained; a cell with no
   corner inside is still partial if its edges cross the polygon's edges
4. Replace partial cells by their 32 children and classify those, one level
   per pass, until the maximum length is reached and at least one fully
   contained cell exists

Rings have to enclose some area and must not cross the antimeridian; split
shapes that do at 180 degrees and cover the parts separately.

WARNING: every pass can multiply the number of partial cells by up to 32 and
every cell is tested against every polygon edge. Covering a big or detailed
shape at a large length gets slow and returns huge sets. Bound the length
(and simplify the polygon) for anything latency sensitive.
"""
import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

from src.geocover.codec import MAX_GEOHASH_LENGTH, decode_bbox, encode, encode_with_bbox, refine_bbox
from src.geocover.errors import InvalidArgumentError, UnsupportedRegionError
from src.geocover.geometry import (
    DEGREE_LATITUDE_METERS,
    BoundingBox,
    Point,
    bbox_area,
    bounding_box,
    circle_to_polygon,
    distance,
    meters_per_longitude_degree,
    polygon_area,
    polygon_contains,
    segments_intersect,
    translate,
    validate,
)
from src.geocover.logging_config import get_logger
from src.geocover.navigation import east, north, sub_hashes

logger = get_logger(__name__)

# Refinement is not guaranteed to terminate close to the poles, so refuse
# polygons that get there. The value is empirical.
POLE_LATITUDE_LIMIT = 89.5

# Covers stop one short of the maximum geohash length
MAX_COVER_LENGTH = 11

MIN_CIRCLE_SEGMENTS = 20
MAX_CIRCLE_SEGMENTS = 72

FULL = "full"
# some corners inside
PARTIAL = "partial"
# no corner inside, but the polygon's border runs through the cell
CROSSING = "crossing"
OUTSIDE = "outside"

# Rings whose area is below this fraction of their bounding box are lines
ZERO_AREA_RATIO = 1e-9


@dataclass
class CoverResult:
    """Outcome of covering a ring, before the final set is picked."""
    fully_contained: set[str] = field(default_factory=set)
    partially_contained: set[str] = field(default_factory=set)
    # the partially contained cells with at least one corner inside the polygon
    corner_inside: set[str] = field(default_factory=set)
    start_length: int = 0
    final_length: int = 0
    passes: int = 0

    @property
    def geohashes(self) -> set[str]:
        """
        The cover: fully contained cells, or the partial cells when the
        shape was too thin for any cell to fit inside it.
        """
        if self.fully_contained:
            return set(self.fully_contained)
        return set(self.partially_contained)

    @property
    def with_border(self) -> set[str]:
        """The cover plus the border cells that reach into the polygon with a corner."""
        return self.geohashes | self.corner_inside

    @property
    def touching(self) -> set[str]:
        """Every cell that shares some area with the polygon."""
        return self.fully_contained | self.partially_contained


class _RingClassifier:
    """Classifies geohash cells against one polygon ring."""

    def __init__(self, ring: list[Point]):
        self.ring = ring
        self.bbox = bounding_box(ring)
        self.edges = []
        for i in range(len(ring)):
            start, end = ring[i - 1], ring[i]
            if start != end:
                edge_box = bounding_box((start, end))
                self.edges.append((start, end, edge_box))

    def _corner_inside(self, corner: Point, cache: dict) -> bool:
        inside = cache.get(corner)
        if inside is None:
            inside = polygon_contains(corner[1], corner[0], self.ring)
            cache[corner] = inside
        return inside

    def _touches(self, cell: BoundingBox) -> bool:
        # a polygon vertex inside the cell (e.g. the whole polygon fits in it)
        for lon, lat in self.ring:
            if cell.west <= lon <= cell.east and cell.south <= lat <= cell.north:
                return True

        cell_edges = cell.edges
        for start, end, edge_box in self.edges:
            if not cell.intersects(edge_box):
                continue
            for corner1, corner2 in cell_edges:
                if segments_intersect(corner1, corner2, start, end):
                    return True
        return False

    def classify(self, cell: BoundingBox, cache: dict) -> str:
        """
        Args:
            cell: Bounding box of the geohash
            cache: Containment results of corners already tested; cells
                sharing a corner share the answer

        Returns:
            FULL, PARTIAL, CROSSING or OUTSIDE
        """
        inside = [self._corner_inside(corner, cache) for corner in cell.corners]
        if all(inside):
            return FULL
        if any(inside):
            return PARTIAL
        if not cell.intersects(self.bbox):
            return OUTSIDE
        if self._touches(cell):
            return CROSSING
        return OUTSIDE


def _check_length(name: str, length: int, maximum: int) -> None:
    if length < 1 or length > maximum:
        raise InvalidArgumentError(f"{name} must be between 1 and {maximum}, was {length}")


def _prepare_ring(ring: Sequence[Sequence[float]]) -> list[Point]:
    points = []
    for point in ring:
        if len(point) < 2:
            raise InvalidArgumentError(f"points need a longitude and a latitude, got {point}")
        longitude, latitude = float(point[0]), float(point[1])
        validate(latitude, longitude)
        if latitude < -POLE_LATITUDE_LIMIT or latitude > POLE_LATITUDE_LIMIT:
            raise UnsupportedRegionError(
                f"latitude {latitude} is too close to a pole; covers are only supported "
                f"between -{POLE_LATITUDE_LIMIT} and {POLE_LATITUDE_LIMIT}"
            )
        points.append((longitude, latitude))

    if len(set(points)) < 3:
        raise InvalidArgumentError("a polygon must have at least three distinct points")

    # an edge spanning more than half the globe is the short way across 180
    for i in range(len(points)):
        if abs(points[i][0] - points[i - 1][0]) > 180:
            raise InvalidArgumentError(
                "polygons crossing the antimeridian are not supported; split them at 180 degrees"
            )

    if polygon_area(points) <= ZERO_AREA_RATIO * bbox_area(bounding_box(points)):
        raise InvalidArgumentError("a polygon must have an area; all points are on one line")
    return points


def starting_length(bbox: BoundingBox) -> int:
    """Length of the initial tiling: cells a bit smaller than the bbox diagonal."""
    diagonal = distance(bbox.south, bbox.west, bbox.north, bbox.east)
    return suitable_hash_length(diagonal, bbox.south, bbox.west)


def suitable_hash_length(granularity_meters: float, latitude: float, longitude: float) -> int:
    """
    Get the shortest geohash length whose cells are narrower than the granularity.

    Cell height only depends on the length, but cell width shrinks towards
    the poles, so the answer depends on where you are.

    Args:
        granularity_meters: Desired maximum cell width in meters
        latitude: Latitude of the location
        longitude: Longitude of the location

    Returns:
        Geohash length between 1 and 12
    """
    if granularity_meters <= 0:
        raise InvalidArgumentError(f"granularity must be positive, got {granularity_meters}")

    geohash = encode(latitude, longitude, MAX_GEOHASH_LENGTH)
    for length in range(1, MAX_GEOHASH_LENGTH + 1):
        bbox = decode_bbox(geohash[:length])
        width = distance(latitude, bbox.west, latitude, bbox.east)
        if width < granularity_meters:
            return length
    return MAX_GEOHASH_LENGTH


def _sweep(bbox: BoundingBox, length: int) -> dict[str, BoundingBox]:
    """Tile a bounding box with geohashes of one length, row by row from the south west."""
    cells = {}
    row_hash, row_box = encode_with_bbox(bbox.south, bbox.west, length)
    while row_box.south < bbox.north:
        column_hash, column_box = row_hash, row_box
        while column_box.west < bbox.east:
            cells[column_hash] = column_box
            next_hash = east(column_hash)
            next_box = decode_bbox(next_hash)
            if next_box.west <= column_box.west:
                # wrapped around the antimeridian
                break
            column_hash, column_box = next_hash, next_box

        next_row = north(row_hash)
        next_row_box = decode_bbox(next_row)
        if next_row_box.south <= row_box.south:
            # top row; north() does not wrap over the pole
            break
        row_hash, row_box = next_row, next_row_box
    return cells


def _split_and_filter(
    classifier: _RingClassifier,
    fully_contained: set[str],
    partially_contained: dict[str, BoundingBox],
    corner_inside: set[str],
) -> dict[str, BoundingBox]:
    """
    Break partial cells into their children; returns the children that are
    still partial and adds those with a corner in the polygon to corner_inside.
    """
    still_partial = {}
    for geohash, bbox in partially_contained.items():
        cache = {}
        for child in sub_hashes(geohash):
            child_bbox = refine_bbox(bbox, len(geohash), child[-1])
            kind = classifier.classify(child_bbox, cache)
            if kind == FULL:
                fully_contained.add(child)
            elif kind != OUTSIDE:
                still_partial[child] = child_bbox
                if kind == PARTIAL:
                    corner_inside.add(child)
    return still_partial


def cover_ring(
    ring: Sequence[Sequence[float]],
    max_length: Optional[int] = None,
    start_length: Optional[int] = None,
) -> CoverResult:
    """
    Run the cover algorithm on a polygon ring.

    Args:
        ring: Polygon vertices as (longitude, latitude); at least 3 distinct points
        max_length: Length to refine to (1 to 12); defaults to one more than
            the starting length
        start_length: Length of the initial tiling; derived from the
            bounding box diagonal when omitted

    Returns:
        CoverResult with the fully and partially contained geohashes

    Raises:
        InvalidArgumentError: For bad lengths, rings without area and rings
            crossing the antimeridian
        UnsupportedRegionError: When a vertex is within half a degree of a pole
    """
    points = _prepare_ring(ring)
    bbox = bounding_box(points)

    if start_length is None:
        start_length = starting_length(bbox)
    else:
        _check_length("start_length", start_length, MAX_GEOHASH_LENGTH)

    if max_length is None:
        max_length = min(start_length + 1, MAX_COVER_LENGTH)
    else:
        _check_length("max_length", max_length, MAX_GEOHASH_LENGTH)

    length = min(start_length, max_length)
    result = CoverResult(start_length=length)
    classifier = _RingClassifier(points)

    partial = {}
    corner_inside = set()
    cache = {}
    for geohash, cell in _sweep(bbox, length).items():
        kind = classifier.classify(cell, cache)
        if kind == FULL:
            result.fully_contained.add(geohash)
        elif kind != OUTSIDE:
            partial[geohash] = cell
            if kind == PARTIAL:
                corner_inside.add(geohash)

    # May go past max_length when nothing fits inside the polygon yet
    while (length < max_length or not result.fully_contained) and length < MAX_GEOHASH_LENGTH:
        if not partial:
            break
        corner_inside = set()
        partial = _split_and_filter(classifier, result.fully_contained, partial, corner_inside)
        length += 1
        result.passes += 1
        logger.debug(
            f"Refined to length {length}: {len(result.fully_contained)} full, {len(partial)} partial"
        )

    if not result.fully_contained:
        logger.warning(
            f"No geohash fits inside the polygon at length {length}; "
            f"falling back to {len(partial)} partially contained geohashes"
        )

    result.partially_contained = set(partial)
    result.corner_inside = corner_inside
    result.final_length = length
    return result


def geohashes_for_polygon(
    ring: Sequence[Sequence[float]],
    max_length: Optional[int] = None,
    start_length: Optional[int] = None,
    include_partial: bool = False,
) -> set[str]:
    """
    Cover a polygon with geohashes.

    The polygon is filled from the inside: cells that stick out of the
    polygon are dropped unless include_partial is set. Pick a max_length
    small enough to resolve the narrowest part of the polygon, otherwise
    parts of it stay uncovered.

    Args:
        ring: Outer ring as (longitude, latitude) points; holes are not supported
        max_length: Maximum geohash length (1 to 11); the larger, the more expensive
        start_length: Length of the initial tiling of the bounding box
        include_partial: Also return the border cells that have a corner
            inside the polygon

    Returns:
        Set of geohashes of mixed lengths covering the polygon

    Raises:
        InvalidArgumentError: For bad lengths, rings without area and rings
            crossing the antimeridian
        UnsupportedRegionError: When a vertex is within half a degree of a pole
    """
    if max_length is not None:
        _check_length("max_length", max_length, MAX_COVER_LENGTH)

    result = cover_ring(ring, max_length=max_length, start_length=start_length)
    if include_partial:
        return result.with_border
    return result.geohashes


def geohashes_for_multi_polygon(
    polygons: Sequence[Sequence[Sequence[float]]],
    max_length: Optional[int] = None,
    include_partial: bool = False,
) -> set[str]:
    """Cover several polygons; the result is the union of their covers."""
    if not polygons:
        raise InvalidArgumentError("a multi polygon needs at least one polygon")

    geohashes = set()
    for ring in polygons:
        geohashes |= geohashes_for_polygon(ring, max_length=max_length, include_partial=include_partial)
    return geohashes


def geohashes_for_bbox(bbox: BoundingBox, max_length: Optional[int] = None) -> set[str]:
    """Cover a (non antimeridian crossing) bounding box with geohashes."""
    if bbox.west > bbox.east:
        raise InvalidArgumentError("bounding boxes crossing the antimeridian are not supported")
    nw, ne, se, sw = bbox.corners
    return geohashes_for_polygon([sw, se, ne, nw], max_length=max_length)


def _corridor(lat1: float, lon1: float, lat2: float, lon2: float, half_width: float) -> list[Point]:
    """Rectangle around a segment, half_width meters on every side."""
    mid_latitude = (lat1 + lat2) / 2
    dx = (lon2 - lon1) * meters_per_longitude_degree(mid_latitude)
    dy = (lat2 - lat1) * DEGREE_LATITUDE_METERS
    length = math.hypot(dx, dy)

    # unit vectors along and across the segment, scaled to half the width
    along_x, along_y = dx / length * half_width, dy / length * half_width
    across_x, across_y = -along_y, along_x

    return [
        translate(lat1, lon1, -along_y + across_y, -along_x + across_x),
        translate(lat2, lon2, along_y + across_y, along_x + across_x),
        translate(lat2, lon2, along_y - across_y, along_x - across_x),
        translate(lat1, lon1, -along_y - across_y, -along_x - across_x),
    ]


def geohashes_for_line(
    width_meters: float,
    points: Sequence[Sequence[float]],
    max_length: Optional[int] = None,
) -> set[str]:
    """
    Cover a line (or path) of a given width with geohashes.

    Every segment becomes a thin rectangle that is covered like a polygon,
    keeping every cell that shares area with the rectangle so the line has
    no gaps. The covers of all segments are merged.

    Args:
        width_meters: Width of the corridor around the line
        points: Way points as (longitude, latitude); at least two
        max_length: Geohash length to use; derived from the width when omitted

    Returns:
        Set of geohashes along the line
    """
    if len(points) < 2:
        raise InvalidArgumentError("a line must have at least two points")
    if width_meters <= 0:
        raise InvalidArgumentError(f"width must be positive, got {width_meters}")
    if max_length is not None:
        _check_length("max_length", max_length, MAX_COVER_LENGTH)

    geohashes = set()
    for start, end in zip(points, points[1:]):
        lon1, lat1 = float(start[0]), float(start[1])
        lon2, lat2 = float(end[0]), float(end[1])
        hash_length = max_length or min(suitable_hash_length(width_meters, lat1, lon1), MAX_COVER_LENGTH)

        if lat1 == lat2 and lon1 == lon2:
            geohashes.add(encode(lat1, lon1, hash_length))
            continue

        corridor = _corridor(lat1, lon1, lat2, lon2, width_meters / 2)
        geohashes |= cover_ring(corridor, max_length=hash_length).touching

    return geohashes


def circle_segments(length: int, latitude: float, longitude: float, radius_meters: float) -> int:
    """
    Number of polygon edges to approximate a circle with.

    Aims for edges about as long as a cell of the given length is wide.
    """
    _, bbox = encode_with_bbox(latitude, longitude, length)
    cell_width = distance(latitude, bbox.west, latitude, bbox.east)
    segments = math.ceil(2 * math.pi * radius_meters / cell_width) if cell_width > 0 else MAX_CIRCLE_SEGMENTS
    return max(MIN_CIRCLE_SEGMENTS, min(segments, MAX_CIRCLE_SEGMENTS))


def geohashes_for_circle(
    length: int,
    latitude: float,
    longitude: float,
    radius_meters: float,
    segments: Optional[int] = None,
    include_partial: bool = False,
) -> set[str]:
    """
    Cover a circle with geohashes.

    The circle is approximated by a regular polygon, so cells right on the
    circle's edge may be missing.

    Args:
        length: Maximum geohash length (1 to 12)
        latitude: Latitude of the center
        longitude: Longitude of the center
        radius_meters: Radius in meters
        segments: Number of polygon edges; derived from length and radius when omitted
        include_partial: Also return the border cells that have a corner
            inside the circle

    Returns:
        Set of geohashes covering the circle

    Raises:
        InvalidArgumentError: For bad arguments and circles crossing the antimeridian
        UnsupportedRegionError: When the circle gets within half a degree of a pole
    """
    _check_length("length", length, MAX_GEOHASH_LENGTH)
    validate(latitude, longitude)
    if radius_meters <= 0:
        raise InvalidArgumentError(f"radius must be positive, got {radius_meters}")

    if segments is None:
        segments = circle_segments(length, latitude, longitude, radius_meters)
    ring = circle_to_polygon(segments, latitude, longitude, radius_meters)

    result = cover_ring(ring, max_length=length)
    if include_partial:
        return result.with_border
    return result.geohashes
