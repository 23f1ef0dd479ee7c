"""
Geocover API
FastAPI application exposing geohash encoding and shape covers as JSON endpoints.
"""
from fastapi import FastAPI, Response, HTTPException
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
import time
from typing import Iterable

from src.geocover.config import API_MAX_COVER_LENGTH
from src.geocover.models import PolygonCoverRequest, LineCoverRequest, CircleCoverRequest
from src.geocover.errors import GeoCoverError, UnsupportedRegionError
from src.geocover.codec import MAX_GEOHASH_LENGTH, decode_bbox, encode_with_bbox, is_valid
from src.geocover.geometry import bounding_box
from src.geocover.navigation import SUB_HASH_DIRECTIONS, geographic_sub_hashes, neighbors
from src.geocover.coverage import (
    cover_ring,
    geohashes_for_line,
    geohashes_for_circle,
    starting_length,
    suitable_hash_length,
    MAX_COVER_LENGTH,
)
from src.geocover.logging_config import get_logger
from src.geocover import metrics

logger = get_logger(__name__)

metrics.api_max_cover_length.set(API_MAX_COVER_LENGTH)


def error_status(error: GeoCoverError) -> int:
    """
    Map engine errors to HTTP status codes.

    Unsupported regions are well-formed input the engine refuses, so they get
    422 like other unprocessable bodies; everything else is a bad argument.
    """
    if isinstance(error, UnsupportedRegionError):
        return 422
    return 400


def check_cover_length(shape: str, length: int) -> None:
    """
    Reject cover lengths above the configured API bound.

    Raises:
        HTTPException 400: If the length is too large
    """
    if length > API_MAX_COVER_LENGTH:
        metrics.cover_requests_total.labels(shape=shape, status="rejected").inc()
        logger.info(f"Rejected {shape} cover with length {length} (limit {API_MAX_COVER_LENGTH})")
        raise HTTPException(
            status_code=400,
            detail=f"Length {length} exceeds the maximum of {API_MAX_COVER_LENGTH} allowed by this API"
        )


def check_geohash(geohash: str, endpoint: str) -> None:
    if not is_valid(geohash):
        metrics.codec_requests_total.labels(endpoint=endpoint, status="error").inc()
        raise HTTPException(status_code=400, detail=f"Invalid geohash: {geohash!r}")


def bbox_dict(bbox) -> dict:
    return {"west": bbox.west, "south": bbox.south, "east": bbox.east, "north": bbox.north}


def cover_response(shape: str, geohashes: Iterable[str], start_time: float) -> dict:
    """Build the JSON body of a cover and record its metrics."""
    codes = sorted(geohashes)
    lengths = [len(code) for code in codes]

    metrics.cover_requests_total.labels(shape=shape, status="success").inc()
    metrics.cover_result_size.labels(shape=shape).observe(len(codes))
    metrics.request_duration_seconds.labels(endpoint=f"cover_{shape}").observe(time.time() - start_time)

    return {
        "shape": shape,
        "count": len(codes),
        "min_length": min(lengths) if lengths else None,
        "max_length": max(lengths) if lengths else None,
        "geohashes": codes,
        "processing_time_ms": round((time.time() - start_time) * 1000, 2)
    }


def cover_failed(shape: str, error: GeoCoverError) -> HTTPException:
    metrics.cover_requests_total.labels(shape=shape, status="error").inc()
    logger.info(f"Rejected {shape} cover: {error}")
    return HTTPException(status_code=error_status(error), detail=str(error))


# Initialize FastAPI application
app = FastAPI(
    title="Geocover",
    description="Geohash encoding and polygon, line and circle covers for search indexing",
    version="1.0.0"
)


@app.get("/metrics")
def get_metrics():
    """
    Prometheus metrics endpoint.

    Returns:
        Response: Prometheus-formatted metrics
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
        dict: API status and the largest cover length accepted
    """
    return {"status": "healthy", "max_cover_length": API_MAX_COVER_LENGTH}


@app.get("/v1/encode")
def encode_location(lat: float, lon: float, length: int = MAX_GEOHASH_LENGTH):
    """
    Encode a location as a geohash.

    Args:
        lat: Latitude
        lon: Longitude
        length: Geohash length (1 to 12)

    Returns:
        dict: The geohash and the bounding box of its cell

    Raises:
        HTTPException 400: If the coordinate or the length is out of range
    """
    start_time = time.time()
    try:
        geohash, bbox = encode_with_bbox(lat, lon, length)
    except GeoCoverError as e:
        metrics.codec_requests_total.labels(endpoint="encode", status="error").inc()
        raise HTTPException(status_code=error_status(e), detail=str(e))

    metrics.codec_requests_total.labels(endpoint="encode", status="success").inc()
    metrics.request_duration_seconds.labels(endpoint="encode").observe(time.time() - start_time)
    return {"geohash": geohash, "bbox": bbox_dict(bbox)}


@app.get("/v1/decode")
def decode_geohash(geohash: str):
    """
    Decode a geohash to the center and bounds of its cell.

    Returns:
        dict: lat/lon of the cell center plus the cell bounding box
    """
    start_time = time.time()
    check_geohash(geohash, "decode")
    bbox = decode_bbox(geohash)
    lon, lat = bbox.center

    metrics.codec_requests_total.labels(endpoint="decode", status="success").inc()
    metrics.request_duration_seconds.labels(endpoint="decode").observe(time.time() - start_time)
    return {"geohash": geohash, "lat": lat, "lon": lon, "bbox": bbox_dict(bbox)}


@app.get("/v1/neighbors")
def get_neighbors(geohash: str):
    """
    Get the adjacent cells of a geohash.

    East and west wrap around the antimeridian; north and south stop at the poles.

    Returns:
        dict: The geohash and its north/south/east/west neighbours
    """
    check_geohash(geohash, "neighbors")
    metrics.codec_requests_total.labels(endpoint="neighbors", status="success").inc()
    return {"geohash": geohash, "neighbors": neighbors(geohash)}


@app.get("/v1/subhashes")
def get_sub_hashes(geohash: str, direction: str = "all", geographic: bool = False):
    """
    Get the children of a geohash, optionally only those in one half or quadrant.

    Args:
        geohash: Parent geohash (at most 11 characters)
        direction: One of all, n, s, nw, ne, sw, se
        geographic: Pick the children that lie in that part of the cell
            instead of the fixed character ranges

    Returns:
        dict: The parent, the direction and the child geohashes
    """
    check_geohash(geohash, "subhashes")
    if len(geohash) >= MAX_GEOHASH_LENGTH:
        metrics.codec_requests_total.labels(endpoint="subhashes", status="error").inc()
        raise HTTPException(status_code=400, detail=f"Geohash {geohash!r} is already at maximum length")

    sub_hashes = SUB_HASH_DIRECTIONS.get(direction)
    if sub_hashes is None:
        metrics.codec_requests_total.labels(endpoint="subhashes", status="error").inc()
        raise HTTPException(
            status_code=400,
            detail=f"Unknown direction {direction!r}, expected one of {', '.join(SUB_HASH_DIRECTIONS)}"
        )

    children = geographic_sub_hashes(geohash, direction) if geographic else sub_hashes(geohash)
    metrics.codec_requests_total.labels(endpoint="subhashes", status="success").inc()
    return {"geohash": geohash, "direction": direction, "geographic": geographic, "sub_hashes": children}


@app.post("/v1/cover/polygon")
def cover_polygon(request: PolygonCoverRequest):
    """
    Cover a polygon with geohashes.

    Process:
    1. Tile the polygon's bounding box with cells a bit smaller than its diagonal
    2. Keep cells fully inside the polygon
    3. Split cells on the polygon border into their 32 children, one level
       per pass, up to max_length

    Args:
        request: Outer ring as [lon, lat] pairs, optional max_length and include_partial

    Returns:
        dict: Sorted geohashes with count, min/max length, refinement passes
            and processing time

    Raises:
        HTTPException 400: Malformed ring or max_length above the API limit
        HTTPException 422: Polygon too close to a pole
    """
    start_time = time.time()
    max_length = request.max_length
    if max_length is not None:
        check_cover_length("polygon", max_length)

    try:
        if max_length is None:
            # one level below the starting tiling, within the API limit
            start = starting_length(bounding_box(request.coordinates))
            max_length = min(start + 1, MAX_COVER_LENGTH, API_MAX_COVER_LENGTH)
        result = cover_ring(request.coordinates, max_length=max_length)
    except GeoCoverError as e:
        raise cover_failed("polygon", e)

    if result.final_length > API_MAX_COVER_LENGTH:
        logger.info(f"Polygon cover refined to length {result.final_length}, beyond the API limit")

    geohashes = result.with_border if request.include_partial else result.geohashes

    metrics.cover_refinement_passes.observe(result.passes)
    if not result.fully_contained:
        metrics.cover_fallback_total.inc()

    response = cover_response("polygon", geohashes, start_time)
    response["passes"] = result.passes
    return response


@app.post("/v1/cover/line")
def cover_line(request: LineCoverRequest):
    """
    Cover a path with geohashes along a corridor of the given width.

    When max_length is omitted it is derived from the width at the first
    way point, capped at the API limit.

    Raises:
        HTTPException 400: Malformed path or max_length above the API limit
        HTTPException 422: Path too close to a pole
    """
    start_time = time.time()
    max_length = request.max_length
    try:
        if max_length is None:
            lon, lat = request.coordinates[0]
            max_length = min(suitable_hash_length(request.width_meters, lat, lon), API_MAX_COVER_LENGTH, MAX_COVER_LENGTH)
        check_cover_length("line", max_length)
        geohashes = geohashes_for_line(request.width_meters, request.coordinates, max_length=max_length)
    except GeoCoverError as e:
        raise cover_failed("line", e)

    return cover_response("line", geohashes, start_time)


@app.post("/v1/cover/circle")
def cover_circle(request: CircleCoverRequest):
    """
    Cover a circle with geohashes.

    Raises:
        HTTPException 400: length above the API limit or bad segment count
        HTTPException 422: Circle reaching too close to a pole
    """
    start_time = time.time()
    check_cover_length("circle", request.length)

    try:
        geohashes = geohashes_for_circle(
            request.length,
            request.lat,
            request.lon,
            request.radius_meters,
            segments=request.segments,
            include_partial=request.include_partial,
        )
    except GeoCoverError as e:
        raise cover_failed("circle", e)

    return cover_response("circle", geohashes, start_time)
