"""
Moving around the geohash grid: neighbours, children and relative direction.
"""
from src.geocover.codec import BASE32_CHARS, decode_bbox, encode

# Each child character carries 5 bits. Which axis the first of those bits
# splits depends on how many bits the parent already used, so where a child
# sits inside its parent alternates with the parity of the parent's length.
#
# Parent of even length (next bit is longitude):
#
#   8-g | s-z         nw | ne
#   ----+----   ==    ---+---
#   0-7 | h-r         sw | se
#
# Parent of odd length (next bit is latitude):
#
#   h-r | s-z         nw | ne
#   ----+----   ==    ---+---
#   0-7 | 8-g         sw | se
_QUADRANTS = {
    0: {"sw": BASE32_CHARS[0:8], "nw": BASE32_CHARS[8:16], "se": BASE32_CHARS[16:24], "ne": BASE32_CHARS[24:32]},
    1: {"sw": BASE32_CHARS[0:8], "se": BASE32_CHARS[8:16], "nw": BASE32_CHARS[16:24], "ne": BASE32_CHARS[24:32]},
}

# Fixed character ranges of the filtered sub hash functions
_RANGES = {
    "n": ("0", "g"),
    "s": ("h", "z"),
    "nw": ("0", "7"),
    "ne": ("8", "g"),
    "sw": ("h", "r"),
    "se": ("s", "z"),
}


def north(geohash: str) -> str:
    """
    Get the geohash of the same length directly north of this one.

    There is no wrapping at the north pole; the top row maps onto itself.
    """
    bbox = decode_bbox(geohash)
    lat = min(bbox.north + bbox.height / 2, 90.0)
    lon = (bbox.west + bbox.east) / 2
    return encode(lat, lon, len(geohash))


def south(geohash: str) -> str:
    """
    Get the geohash of the same length directly south of this one.

    There is no wrapping at the south pole; the bottom row maps onto itself.
    """
    bbox = decode_bbox(geohash)
    lat = max(bbox.south - bbox.height / 2, -90.0)
    lon = (bbox.west + bbox.east) / 2
    return encode(lat, lon, len(geohash))


def east(geohash: str) -> str:
    """Get the geohash of the same length directly east of this one, wrapping at 180."""
    bbox = decode_bbox(geohash)
    lat = (bbox.south + bbox.north) / 2
    lon = bbox.east + bbox.width / 2
    if lon > 180:
        lon = -180 + (lon - 180)
    return encode(lat, lon, len(geohash))


def west(geohash: str) -> str:
    """Get the geohash of the same length directly west of this one, wrapping at -180."""
    bbox = decode_bbox(geohash)
    lat = (bbox.south + bbox.north) / 2
    lon = bbox.west - bbox.width / 2
    if lon < -180:
        lon = 180 + (lon + 180)
    return encode(lat, lon, len(geohash))


def neighbors(geohash: str) -> dict[str, str]:
    """Get the four adjacent geohashes keyed by direction."""
    return {
        "north": north(geohash),
        "south": south(geohash),
        "east": east(geohash),
        "west": west(geohash),
    }


def sub_hashes(geohash: str) -> list[str]:
    """
    Get the 32 geohashes this geohash divides into, in alphabet order.

    Examples:
        sub_hashes("u33") -> ["u330", "u331", ..., "u33z"]
    """
    return [geohash + c for c in BASE32_CHARS]


def _sub_hashes_between(geohash: str, direction: str) -> list[str]:
    first, last = _RANGES[direction]
    start, end = BASE32_CHARS.index(first), BASE32_CHARS.index(last)
    return [geohash + c for c in BASE32_CHARS[start:end + 1]]


def sub_hashes_north(geohash: str) -> list[str]:
    """
    The 16 children with characters '0' to 'g'.

    The ranges of the filtered sub hash functions are fixed character
    ranges. They only line up with the geographic halves and quadrants for
    some parent lengths; use geographic_sub_hashes() when the children have
    to lie in a given part of the cell.
    """
    return _sub_hashes_between(geohash, "n")


def sub_hashes_south(geohash: str) -> list[str]:
    """The 16 children with characters 'h' to 'z' (see sub_hashes_north)."""
    return _sub_hashes_between(geohash, "s")


def sub_hashes_north_west(geohash: str) -> list[str]:
    return _sub_hashes_between(geohash, "nw")


def sub_hashes_north_east(geohash: str) -> list[str]:
    return _sub_hashes_between(geohash, "ne")


def sub_hashes_south_west(geohash: str) -> list[str]:
    return _sub_hashes_between(geohash, "sw")


def sub_hashes_south_east(geohash: str) -> list[str]:
    return _sub_hashes_between(geohash, "se")


SUB_HASH_DIRECTIONS = {
    "all": sub_hashes,
    "n": sub_hashes_north,
    "s": sub_hashes_south,
    "nw": sub_hashes_north_west,
    "ne": sub_hashes_north_east,
    "sw": sub_hashes_south_west,
    "se": sub_hashes_south_east,
}

_GEOGRAPHIC_QUADRANTS = {
    "all": ("sw", "nw", "se", "ne"),
    "n": ("nw", "ne"),
    "s": ("sw", "se"),
    "nw": ("nw",),
    "ne": ("ne",),
    "sw": ("sw",),
    "se": ("se",),
}


def geographic_sub_hashes(geohash: str, direction: str) -> list[str]:
    """
    Get the children that lie in one half or quadrant of the cell.

    Args:
        geohash: Parent geohash
        direction: One of the keys of SUB_HASH_DIRECTIONS

    Returns:
        Children in alphabet order

    Raises:
        KeyError: For an unknown direction
    """
    layout = _QUADRANTS[len(geohash) % 2]
    allowed = "".join(layout[q] for q in _GEOGRAPHIC_QUADRANTS[direction])
    return [geohash + c for c in BASE32_CHARS if c in allowed]


def is_west(l1: float, l2: float) -> bool:
    """
    True if longitude l1 is west of longitude l2.

    The antimeridian is treated as contiguous: 179 is west of -179. Two
    longitudes exactly half a turn apart are neither west nor east.
    """
    ll1 = l1 + 180
    ll2 = l2 + 180
    if ll1 < ll2 and ll2 - ll1 < 180:
        return True
    return ll1 > ll2 and ll2 + 360 - ll1 < 180


def is_east(l1: float, l2: float) -> bool:
    """True if longitude l1 is east of longitude l2 (see is_west)."""
    ll1 = l1 + 180
    ll2 = l2 + 180
    if ll1 > ll2 and ll1 - ll2 < 180:
        return True
    return ll1 < ll2 and ll1 + 360 - ll2 < 180


def is_north(l1: float, l2: float) -> bool:
    """True if latitude l1 is north of latitude l2."""
    return l1 > l2


def is_south(l1: float, l2: float) -> bool:
    """True if latitude l1 is south of latitude l2."""
    return l1 < l2
