"""
Geohash encoding and decoding.

A geohash interleaves bits of longitude and latitude, starting with
longitude. Each bit halves the current interval: 1 means the value is in the
upper half, 0 in the lower half. Every 5 bits become one base32 character.

Code length vs. cell size (at the equator):
    1 = ~5000km x 5000km
    4 = ~39km x 20km
    6 = ~1.2km x 0.6km
    8 = ~38m x 19m
   12 = ~3.7cm x 1.9cm

Cells get narrower (not lower) towards the poles.
"""
from src.geocover.errors import InvalidArgumentError
from src.geocover.geometry import BoundingBox, Point, validate

# note: no a, i, l and o
BASE32_CHARS = "0123456789bcdefghjkmnpqrstuvwxyz"
BASE32_DECODE_MAP = {c: i for i, c in enumerate(BASE32_CHARS)}

BITS = (16, 8, 4, 2, 1)

DEFAULT_GEOHASH_LENGTH = 12
MAX_GEOHASH_LENGTH = 12

WORLD = BoundingBox(-180.0, -90.0, 180.0, 90.0)


def _check_length(length: int) -> None:
    if length < 1 or length > MAX_GEOHASH_LENGTH:
        raise InvalidArgumentError(f"length must be between 1 and {MAX_GEOHASH_LENGTH}, was {length}")


def encode_with_bbox(latitude: float, longitude: float, length: int = DEFAULT_GEOHASH_LENGTH) -> tuple[str, BoundingBox]:
    """
    Encode a coordinate and return the bounding box of the resulting cell.

    Args:
        latitude: Latitude
        longitude: Longitude
        length: Number of characters (1 to 12)

    Returns:
        Tuple of (geohash, bbox of the geohash)
    """
    _check_length(length)
    validate(latitude, longitude)

    west, east = -180.0, 180.0
    south, north = -90.0, 90.0

    chars = []
    is_even = True
    bit = 0
    ch = 0

    while len(chars) < length:
        if is_even:
            mid = (west + east) / 2
            if longitude > mid:
                ch |= BITS[bit]
                west = mid
            else:
                east = mid
        else:
            mid = (south + north) / 2
            if latitude > mid:
                ch |= BITS[bit]
                south = mid
            else:
                north = mid

        is_even = not is_even

        if bit < 4:
            bit += 1
        else:
            chars.append(BASE32_CHARS[ch])
            bit = 0
            ch = 0

    return "".join(chars), BoundingBox(west, south, east, north)


def encode(latitude: float, longitude: float, length: int = DEFAULT_GEOHASH_LENGTH) -> str:
    """
    Convert lat/lon to a geohash.

    Args:
        latitude: Latitude
        longitude: Longitude
        length: Number of characters (1 to 12)

    Returns:
        Geohash (e.g., "u33dbfcyegk2")

    Raises:
        InvalidArgumentError: If the length or the coordinate is out of range
    """
    geohash, _ = encode_with_bbox(latitude, longitude, length)
    return geohash


def refine_bbox(bbox: BoundingBox, parent_length: int, char: str) -> BoundingBox:
    """
    Narrow a cell's bbox to the bbox of one of its children.

    Args:
        bbox: Bounding box of the parent geohash
        parent_length: Length of the parent geohash; decides whether the
            first bit of the new character applies to longitude or latitude
        char: The base32 character appended to the parent

    Returns:
        Bounding box of parent + char
    """
    value = BASE32_DECODE_MAP.get(char)
    if value is None:
        raise InvalidArgumentError(f"not a base32 character: {char!r}")

    west, south, east, north = bbox.west, bbox.south, bbox.east, bbox.north
    # 5 bits per character, so the parity of the length tells which axis is next
    is_even = parent_length % 2 == 0
    for mask in BITS:
        if is_even:
            if value & mask:
                west = (west + east) / 2
            else:
                east = (west + east) / 2
        else:
            if value & mask:
                south = (south + north) / 2
            else:
                north = (south + north) / 2
        is_even = not is_even

    return BoundingBox(west, south, east, north)


def decode_bbox(geohash: str) -> BoundingBox:
    """
    Get the cell covered by a geohash.

    Args:
        geohash: Valid geohash

    Returns:
        BoundingBox of (west, south, east, north)

    Raises:
        InvalidArgumentError: If the geohash is empty or has characters
            outside the base32 alphabet
    """
    if not geohash:
        raise InvalidArgumentError("geohash must not be empty")

    bbox = WORLD
    for i, char in enumerate(geohash):
        bbox = refine_bbox(bbox, i, char)
    return bbox


def decode(geohash: str) -> Point:
    """
    Decode a geohash to the center of its cell.

    The coordinate that was encoded can be anywhere in the cell, so don't
    expect to get it back exactly. The center is not rounded; short
    geohashes still give the precise middle of their (large) cell.

    Returns:
        Tuple of (longitude, latitude)
    """
    return decode_bbox(geohash).center


def contains(geohash: str, latitude: float, longitude: float) -> bool:
    """
    Check whether a coordinate falls inside the cell of a geohash.

    Args:
        geohash: Geohash
        latitude: Latitude
        longitude: Longitude

    Returns:
        True if the cell contains the coordinate (edges included)
    """
    return decode_bbox(geohash).contains(latitude, longitude)


def is_valid(geohash: str) -> bool:
    """True for non-empty strings of at most 12 base32 characters."""
    return 0 < len(geohash) <= MAX_GEOHASH_LENGTH and all(c in BASE32_DECODE_MAP for c in geohash)
