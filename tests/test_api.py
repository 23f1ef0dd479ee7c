"""
Integration tests for FastAPI endpoints.
"""
import pytest
from fastapi.testclient import TestClient
from unittest.mock import patch
from src.geocover.main import app
from src.geocover.coverage import CoverResult
from src.geocover.errors import InvalidArgumentError

SQUARE = [[13.38, 52.51], [13.41, 52.51], [13.41, 52.53], [13.38, 52.53]]


@pytest.fixture
def client():
    """Create a test client for the FastAPI app."""
    return TestClient(app)


@pytest.fixture
def api_limit():
    """Pin the API cover length limit regardless of the environment."""
    with patch("src.geocover.main.API_MAX_COVER_LENGTH", 9):
        yield 9


@pytest.mark.unit
class TestHealthEndpoint:
    """Test suite for /health and /metrics endpoints."""

    def test_health(self, client, api_limit):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["max_cover_length"] == 9

    def test_metrics(self, client):
        client.get("/v1/encode", params={"lat": 52.5, "lon": 13.4})
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "codec_requests_total" in response.text
        assert "request_duration_seconds" in response.text


@pytest.mark.unit
class TestCodecEndpoints:
    """Test suite for encode/decode/neighbors/subhashes endpoints."""

    def test_encode(self, client):
        response = client.get("/v1/encode", params={"lat": 52.530888, "lon": 13.394904})

        assert response.status_code == 200
        data = response.json()
        assert data["geohash"] == "u33dbfcyegk2"
        assert data["bbox"]["south"] <= 52.530888 <= data["bbox"]["north"]

    def test_encode_with_length(self, client):
        response = client.get("/v1/encode", params={"lat": 52.530888, "lon": 13.394904, "length": 4})
        assert response.json()["geohash"] == "u33d"

    def test_encode_invalid_length(self, client):
        response = client.get("/v1/encode", params={"lat": 52.5, "lon": 13.4, "length": 13})
        assert response.status_code == 400

    def test_encode_invalid_latitude(self, client):
        response = client.get("/v1/encode", params={"lat": 95, "lon": 13.4})
        assert response.status_code == 400
        assert "Latitude" in response.json()["detail"]

    def test_encode_invalid_type(self, client):
        response = client.get("/v1/encode", params={"lat": "abc", "lon": 13.4})
        assert response.status_code == 422

    def test_decode(self, client):
        response = client.get("/v1/decode", params={"geohash": "s"})

        assert response.status_code == 200
        data = response.json()
        assert data["lat"] == 22.5
        assert data["lon"] == 22.5
        assert data["bbox"] == {"west": 0.0, "south": 0.0, "east": 45.0, "north": 45.0}

    def test_decode_invalid_geohash(self, client):
        response = client.get("/v1/decode", params={"geohash": "u33a"})
        assert response.status_code == 400

    def test_neighbors(self, client):
        response = client.get("/v1/neighbors", params={"geohash": "u33d"})

        assert response.status_code == 200
        neighbours = response.json()["neighbors"]
        assert set(neighbours) == {"north", "south", "east", "west"}
        assert all(len(code) == 4 for code in neighbours.values())

    def test_subhashes(self, client):
        response = client.get("/v1/subhashes", params={"geohash": "u33"})

        assert response.status_code == 200
        data = response.json()
        assert data["direction"] == "all"
        assert len(data["sub_hashes"]) == 32

    def test_subhashes_direction(self, client):
        response = client.get("/v1/subhashes", params={"geohash": "u33", "direction": "n"})
        assert len(response.json()["sub_hashes"]) == 16

    def test_subhashes_fixed_ranges(self, client):
        response = client.get("/v1/subhashes", params={"geohash": "u", "direction": "n"})

        data = response.json()
        assert data["geographic"] is False
        assert data["sub_hashes"] == ["u" + c for c in "0123456789bcdefg"]

    def test_subhashes_geographic(self, client):
        response = client.get("/v1/subhashes", params={"geohash": "u", "direction": "n", "geographic": "true"})

        assert response.status_code == 200
        data = response.json()
        assert data["geographic"] is True
        assert data["sub_hashes"] == ["u" + c for c in "hjkmnpqrstuvwxyz"]

    def test_subhashes_unknown_direction(self, client):
        response = client.get("/v1/subhashes", params={"geohash": "u33", "direction": "up"})
        assert response.status_code == 400

    def test_subhashes_of_longest_geohash(self, client):
        response = client.get("/v1/subhashes", params={"geohash": "u33dbfcyegk2"})
        assert response.status_code == 400


@pytest.mark.unit
class TestPolygonCoverEndpoint:
    """Test suite for POST /v1/cover/polygon."""

    def test_cover_polygon(self, client, api_limit):
        result = CoverResult(fully_contained={"u33db", "u33d8", "u33dbf"}, partially_contained={"u33dc"}, passes=1)

        with patch("src.geocover.main.cover_ring", return_value=result) as mock_cover:
            response = client.post("/v1/cover/polygon", json={"coordinates": SQUARE, "max_length": 6})

        assert response.status_code == 200
        data = response.json()
        assert data["shape"] == "polygon"
        assert data["geohashes"] == ["u33d8", "u33db", "u33dbf"]
        assert data["count"] == 3
        assert data["min_length"] == 5
        assert data["max_length"] == 6
        assert data["passes"] == 1
        assert "processing_time_ms" in data
        mock_cover.assert_called_once()
        assert mock_cover.call_args.kwargs["max_length"] == 6

    def test_cover_polygon_include_partial(self, client, api_limit):
        # u33dd only crosses the border, none of its corners is inside
        result = CoverResult(
            fully_contained={"u33db"}, partially_contained={"u33dc", "u33dd"}, corner_inside={"u33dc"}
        )

        with patch("src.geocover.main.cover_ring", return_value=result):
            response = client.post(
                "/v1/cover/polygon",
                json={"coordinates": SQUARE, "max_length": 6, "include_partial": True}
            )

        assert response.json()["geohashes"] == ["u33db", "u33dc"]

    def test_cover_polygon_real_engine(self, client, api_limit):
        response = client.post("/v1/cover/polygon", json={"coordinates": SQUARE, "max_length": 6})

        assert response.status_code == 200
        data = response.json()
        assert data["count"] > 0
        assert data["max_length"] <= 6

    def test_cover_polygon_derived_length_is_capped(self, client):
        result = CoverResult(fully_contained={"u33d"})

        with patch("src.geocover.main.API_MAX_COVER_LENGTH", 4), \
                patch("src.geocover.main.cover_ring", return_value=result) as mock_cover:
            response = client.post("/v1/cover/polygon", json={"coordinates": SQUARE})

        assert response.status_code == 200
        # the block alone would start at length 5 and refine to 6
        assert mock_cover.call_args.kwargs["max_length"] == 4

    def test_cover_polygon_derived_length(self, client, api_limit):
        result = CoverResult(fully_contained={"u33d"})

        with patch("src.geocover.main.cover_ring", return_value=result) as mock_cover:
            client.post("/v1/cover/polygon", json={"coordinates": SQUARE})

        assert mock_cover.call_args.kwargs["max_length"] == 6

    def test_cover_polygon_crossing_antimeridian(self, client, api_limit):
        ring = [[179.0, 0.0], [-179.0, 0.0], [-179.0, 1.0], [179.0, 1.0]]
        response = client.post("/v1/cover/polygon", json={"coordinates": ring, "max_length": 4})

        assert response.status_code == 400
        assert "antimeridian" in response.json()["detail"]

    def test_cover_polygon_without_area(self, client, api_limit):
        ring = [[13.38, 52.51], [13.39, 52.52], [13.40, 52.53]]
        response = client.post("/v1/cover/polygon", json={"coordinates": ring, "max_length": 6})
        assert response.status_code == 400

    def test_cover_polygon_above_api_limit(self, client, api_limit):
        with patch("src.geocover.main.cover_ring") as mock_cover:
            response = client.post("/v1/cover/polygon", json={"coordinates": SQUARE, "max_length": 10})

        assert response.status_code == 400
        mock_cover.assert_not_called()

    def test_cover_polygon_above_model_limit(self, client):
        response = client.post("/v1/cover/polygon", json={"coordinates": SQUARE, "max_length": 12})
        assert response.status_code == 422

    def test_cover_polygon_near_pole(self, client, api_limit):
        ring = [[0.0, 89.0], [10.0, 89.6], [20.0, 89.0]]
        response = client.post("/v1/cover/polygon", json={"coordinates": ring, "max_length": 4})

        assert response.status_code == 422
        assert "pole" in response.json()["detail"]

    def test_cover_polygon_degenerate_ring(self, client, api_limit):
        ring = [[13.38, 52.51], [13.38, 52.51], [13.41, 52.53]]
        response = client.post("/v1/cover/polygon", json={"coordinates": ring, "max_length": 4})
        assert response.status_code == 400

    def test_cover_polygon_too_few_points(self, client):
        response = client.post("/v1/cover/polygon", json={"coordinates": SQUARE[:2]})
        assert response.status_code == 422


@pytest.mark.unit
class TestLineCoverEndpoint:
    """Test suite for POST /v1/cover/line."""

    def test_cover_line(self, client, api_limit):
        with patch("src.geocover.main.geohashes_for_line", return_value={"u33db", "u33dc"}) as mock_line:
            response = client.post(
                "/v1/cover/line",
                json={"coordinates": SQUARE[:2], "width_meters": 100, "max_length": 7}
            )

        assert response.status_code == 200
        data = response.json()
        assert data["shape"] == "line"
        assert data["geohashes"] == ["u33db", "u33dc"]
        mock_line.assert_called_once()
        assert mock_line.call_args.kwargs["max_length"] == 7

    def test_cover_line_derives_length_from_width(self, client, api_limit):
        with patch("src.geocover.main.geohashes_for_line", return_value={"u33db"}) as mock_line:
            response = client.post("/v1/cover/line", json={"coordinates": SQUARE[:2], "width_meters": 1000})

        assert response.status_code == 200
        # cells of length 6 are about 750m wide at this latitude
        assert mock_line.call_args.kwargs["max_length"] == 6

    def test_cover_line_derived_length_is_capped(self, client, api_limit):
        with patch("src.geocover.main.geohashes_for_line", return_value={"u33db"}) as mock_line:
            response = client.post("/v1/cover/line", json={"coordinates": SQUARE[:2], "width_meters": 0.5})

        assert response.status_code == 200
        assert mock_line.call_args.kwargs["max_length"] == 9

    def test_cover_line_above_api_limit(self, client, api_limit):
        response = client.post(
            "/v1/cover/line",
            json={"coordinates": SQUARE[:2], "width_meters": 100, "max_length": 11}
        )
        assert response.status_code == 400

    def test_cover_line_engine_error(self, client, api_limit):
        error = InvalidArgumentError("width must be positive")
        with patch("src.geocover.main.geohashes_for_line", side_effect=error):
            response = client.post(
                "/v1/cover/line",
                json={"coordinates": SQUARE[:2], "width_meters": 100, "max_length": 7}
            )

        assert response.status_code == 400
        assert response.json()["detail"] == "width must be positive"


@pytest.mark.unit
class TestCircleCoverEndpoint:
    """Test suite for POST /v1/cover/circle."""

    def test_cover_circle(self, client, api_limit):
        with patch("src.geocover.main.geohashes_for_circle", return_value={"u33dbf"}) as mock_circle:
            response = client.post(
                "/v1/cover/circle",
                json={"lat": 52.52, "lon": 13.40, "radius_meters": 200, "length": 7, "segments": 24}
            )

        assert response.status_code == 200
        assert response.json()["geohashes"] == ["u33dbf"]
        mock_circle.assert_called_once_with(7, 52.52, 13.40, 200, segments=24, include_partial=False)

    def test_cover_circle_real_engine(self, client, api_limit):
        response = client.post(
            "/v1/cover/circle",
            json={"lat": 52.52, "lon": 13.40, "radius_meters": 200, "length": 7}
        )

        assert response.status_code == 200
        assert response.json()["count"] > 0

    def test_cover_circle_above_api_limit(self, client, api_limit):
        response = client.post(
            "/v1/cover/circle",
            json={"lat": 52.52, "lon": 13.40, "radius_meters": 200, "length": 10}
        )
        assert response.status_code == 400

    def test_cover_circle_crossing_antimeridian(self, client, api_limit):
        response = client.post(
            "/v1/cover/circle",
            json={"lat": 0.0, "lon": 179.99, "radius_meters": 5000, "length": 5}
        )
        assert response.status_code == 400

    def test_cover_circle_near_pole(self, client, api_limit):
        response = client.post(
            "/v1/cover/circle",
            json={"lat": 89.4, "lon": 0.0, "radius_meters": 20000, "length": 5}
        )
        assert response.status_code == 422
