"""
Demo script to show geohash covers for a polygon, a line and a circle.

This script calls the running API to demonstrate:
1. How a location is encoded and how its neighbours relate to it
2. How a polygon is filled with cells of mixed lengths
3. How a line and a circle are turned into covers

Usage:
    uvicorn src.geocover.main:app --reload
    python scripts/demo_cover.py
    python scripts/demo_cover.py --length 7     # Finer covers (slower)
    python scripts/demo_cover.py --show 20      # Print more geohashes per cover
"""
import requests
import argparse
from collections import Counter

API_URL = "http://localhost:8000"

# Berlin, Mitte
DEMO_LOCATION = {
    "lat": 52.530888,
    "lon": 13.394904
}

# Rough outline around the Tiergarten, as [lon, lat]
DEMO_POLYGON = [
    [13.3340, 52.5145],
    [13.3760, 52.5165],
    [13.3775, 52.5090],
    [13.3500, 52.5080],
    [13.3340, 52.5110],
]

# Friedrichstrasse, north to south, as [lon, lat]
DEMO_LINE = [
    [13.3880, 52.5250],
    [13.3894, 52.5163],
    [13.3906, 52.5067],
]


def print_cover(title: str, data: dict, show: int):
    """Print a summary of a cover response."""
    lengths = Counter(len(code) for code in data["geohashes"])

    print(f"{title}:")
    print(f"  Geohashes:   {data['count']}")
    print(f"  Lengths:     {data['min_length']}-{data['max_length']}")
    for length, count in sorted(lengths.items()):
        bar = "#" * min(count, 40)
        print(f"    {length:2d}: {count:5d}  {bar}")
    if "passes" in data:
        print(f"  Passes:      {data['passes']}")
    print(f"  Time:        {data['processing_time_ms']} ms")
    print(f"  First {min(show, data['count'])}:    {', '.join(data['geohashes'][:show])}")
    print()


def main():
    parser = argparse.ArgumentParser(description="Demo geohash covers")
    parser.add_argument("--url", default=API_URL, help=f"Base URL of the API (default: {API_URL})")
    parser.add_argument("--length", type=int, default=6, help="Maximum geohash length of the covers (default: 6)")
    parser.add_argument("--show", type=int, default=8, help="Number of geohashes to print per cover (default: 8)")
    parser.add_argument("--radius", type=float, default=1000, help="Circle radius in meters (default: 1000)")
    args = parser.parse_args()

    print("=" * 60)
    print("GEOHASH COVER DEMO")
    print("=" * 60)
    print()

    # Check API is running
    try:
        response = requests.get(f"{args.url}/health", timeout=5)
        if response.status_code != 200:
            print("ERROR: API not healthy")
            return
        print(f"API is running (max cover length {response.json()['max_cover_length']})")
    except requests.ConnectionError:
        print("ERROR: Cannot connect to API at", args.url)
        print("Make sure to run: uvicorn src.geocover.main:app --reload")
        return

    print()
    print("-" * 60)

    # Encode and look around
    data = requests.get(f"{args.url}/v1/encode", params={**DEMO_LOCATION, "length": 7}).json()
    geohash = data["geohash"]
    print(f"Location {DEMO_LOCATION['lat']}, {DEMO_LOCATION['lon']} -> {geohash}")
    print(f"  Cell:        {data['bbox']}")

    data = requests.get(f"{args.url}/v1/neighbors", params={"geohash": geohash}).json()
    for direction, neighbour in data["neighbors"].items():
        print(f"  {direction:5s}        {neighbour}")

    data = requests.get(f"{args.url}/v1/subhashes", params={"geohash": geohash, "direction": "ne"}).json()
    print(f"  NE children: {', '.join(data['sub_hashes'])}")
    print()
    print("-" * 60)
    print()

    response = requests.post(
        f"{args.url}/v1/cover/polygon",
        json={"coordinates": DEMO_POLYGON, "max_length": args.length}
    )
    if response.status_code != 200:
        print(f"Polygon cover failed: {response.json()['detail']}")
    else:
        print_cover("POLYGON (Tiergarten)", response.json(), args.show)

    response = requests.post(
        f"{args.url}/v1/cover/line",
        json={"coordinates": DEMO_LINE, "width_meters": 50, "max_length": args.length + 1}
    )
    if response.status_code != 200:
        print(f"Line cover failed: {response.json()['detail']}")
    else:
        print_cover("LINE (Friedrichstrasse, 50m wide)", response.json(), args.show)

    response = requests.post(
        f"{args.url}/v1/cover/circle",
        json={**DEMO_LOCATION, "radius_meters": args.radius, "length": args.length}
    )
    if response.status_code != 200:
        print(f"Circle cover failed: {response.json()['detail']}")
    else:
        print_cover(f"CIRCLE ({args.radius:.0f}m around the location)", response.json(), args.show)

    print("-" * 60)
    print()
    print("Index a document under every geohash of its cover; query with the")
    print("geohash of a point and all of its prefixes.")
    print()


if __name__ == "__main__":
    main()
