from pydantic import BaseModel, Field
from typing import Optional, List, Tuple


class PolygonCoverRequest(BaseModel):
    """Outer ring of a polygon to cover."""
    coordinates: List[Tuple[float, float]] = Field(
        ..., min_length=3, max_length=10000, description="Ring as [lon, lat] pairs"
    )
    max_length: Optional[int] = Field(default=None, ge=1, le=11, description="Maximum geohash length")
    include_partial: bool = Field(default=False, description="Also return cells on the border")


class LineCoverRequest(BaseModel):
    """Path to cover with a corridor of a given width."""
    coordinates: List[Tuple[float, float]] = Field(
        ..., min_length=2, max_length=10000, description="Way points as [lon, lat] pairs"
    )
    width_meters: float = Field(..., gt=0, description="Corridor width in meters")
    max_length: Optional[int] = Field(default=None, ge=1, le=11)


class CircleCoverRequest(BaseModel):
    """Circle to cover."""
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    radius_meters: float = Field(..., gt=0)
    length: int = Field(default=8, ge=1, le=12, description="Maximum geohash length")
    segments: Optional[int] = Field(default=None, ge=3, le=1000, description="Polygon edges approximating the circle")
    include_partial: bool = Field(default=False)
