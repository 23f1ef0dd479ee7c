"""
Unit tests for Pydantic models.
"""
import pytest
from pydantic import ValidationError
from src.geocover.models import PolygonCoverRequest, LineCoverRequest, CircleCoverRequest

SQUARE = [[13.38, 52.51], [13.41, 52.51], [13.41, 52.53], [13.38, 52.53]]


@pytest.mark.unit
class TestPolygonCoverRequest:
    """Test suite for PolygonCoverRequest model."""

    def test_valid_request(self):
        request = PolygonCoverRequest(coordinates=SQUARE, max_length=6)

        assert request.coordinates[0] == (13.38, 52.51)
        assert request.max_length == 6
        assert request.include_partial is False

    def test_max_length_is_optional(self):
        assert PolygonCoverRequest(coordinates=SQUARE).max_length is None

    def test_too_few_points(self):
        with pytest.raises(ValidationError) as exc_info:
            PolygonCoverRequest(coordinates=SQUARE[:2])

        errors = exc_info.value.errors()
        assert any(error["loc"] == ("coordinates",) for error in errors)

    def test_points_need_two_values(self):
        with pytest.raises(ValidationError):
            PolygonCoverRequest(coordinates=[[13.38], [13.41, 52.51], [13.41, 52.53]])

    @pytest.mark.parametrize("max_length", [0, 12])
    def test_max_length_bounds(self, max_length):
        with pytest.raises(ValidationError) as exc_info:
            PolygonCoverRequest(coordinates=SQUARE, max_length=max_length)

        errors = exc_info.value.errors()
        assert any(error["loc"] == ("max_length",) for error in errors)


@pytest.mark.unit
class TestLineCoverRequest:
    """Test suite for LineCoverRequest model."""

    def test_valid_request(self):
        request = LineCoverRequest(coordinates=SQUARE[:2], width_meters=50)

        assert len(request.coordinates) == 2
        assert request.width_meters == 50
        assert request.max_length is None

    def test_single_point(self):
        with pytest.raises(ValidationError):
            LineCoverRequest(coordinates=SQUARE[:1], width_meters=50)

    def test_width_must_be_positive(self):
        with pytest.raises(ValidationError) as exc_info:
            LineCoverRequest(coordinates=SQUARE[:2], width_meters=0)

        errors = exc_info.value.errors()
        assert any(error["loc"] == ("width_meters",) for error in errors)

    def test_width_is_required(self):
        with pytest.raises(ValidationError):
            LineCoverRequest(coordinates=SQUARE[:2])


@pytest.mark.unit
class TestCircleCoverRequest:
    """Test suite for CircleCoverRequest model."""

    def test_valid_request(self):
        request = CircleCoverRequest(lat=52.52, lon=13.40, radius_meters=500)

        assert request.length == 8
        assert request.segments is None
        assert request.include_partial is False

    def test_latitude_out_of_range(self):
        with pytest.raises(ValidationError) as exc_info:
            CircleCoverRequest(lat=91, lon=13.40, radius_meters=500)

        errors = exc_info.value.errors()
        assert any(error["loc"] == ("lat",) for error in errors)

    def test_invalid_lat_type(self):
        with pytest.raises(ValidationError):
            CircleCoverRequest(lat="invalid", lon=13.40, radius_meters=500)

    def test_radius_must_be_positive(self):
        with pytest.raises(ValidationError):
            CircleCoverRequest(lat=52.52, lon=13.40, radius_meters=0)

    def test_segments_lower_bound(self):
        with pytest.raises(ValidationError):
            CircleCoverRequest(lat=52.52, lon=13.40, radius_meters=500, segments=2)

    @pytest.mark.parametrize("length", [0, 13])
    def test_length_bounds(self, length):
        with pytest.raises(ValidationError):
            CircleCoverRequest(lat=52.52, lon=13.40, radius_meters=500, length=length)
