# models/tree.py

from datetime import date
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator

from .enums import TreeHealthStatus


# -------------------------------------------------
# Species
# -------------------------------------------------
class TreeSpeciesBase(BaseModel):
    common_name: str = Field(..., min_length=2)
    scientific_name: str = Field(..., min_length=2)
    family: Optional[str] = None
    origin: Optional[str] = None
    climate_zone: Optional[str] = None
    growth_rate: Optional[str] = None
    height_mature: Optional[float] = Field(None, ge=0)
    canopy_diameter: Optional[float] = Field(None, ge=0)
    lifespan: Optional[int] = Field(None, ge=0)
    image_url: Optional[str] = None
    description: Optional[str] = None
    maintenance_requirements: Optional[str] = None
    water_requirements: Optional[str] = None
    sun_requirements: Optional[str] = None
    soil_requirements: Optional[str] = None
    ecological_benefits: Optional[str] = None
    ornamental_value: Optional[str] = None
    common_uses: Optional[str] = None
    is_endangered: bool = False
    icon_color: Optional[str] = "#4CAF50"


class TreeSpeciesCreate(TreeSpeciesBase):
    pass


class TreeSpeciesUpdate(BaseModel):
    common_name: Optional[str] = None
    scientific_name: Optional[str] = None
    family: Optional[str] = None
    origin: Optional[str] = None
    climate_zone: Optional[str] = None
    growth_rate: Optional[str] = None
    height_mature: Optional[float] = Field(None, ge=0)
    canopy_diameter: Optional[float] = Field(None, ge=0)
    lifespan: Optional[int] = Field(None, ge=0)
    image_url: Optional[str] = None
    description: Optional[str] = None
    maintenance_requirements: Optional[str] = None
    water_requirements: Optional[str] = None
    sun_requirements: Optional[str] = None
    soil_requirements: Optional[str] = None
    ecological_benefits: Optional[str] = None
    ornamental_value: Optional[str] = None
    common_uses: Optional[str] = None
    is_endangered: Optional[bool] = None
    icon_color: Optional[str] = None


# -------------------------------------------------
# Park areas (polygon = list of {lat, lng})
# -------------------------------------------------
class LatLng(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class ParkAreaCreate(BaseModel):
    park_id: int
    name: str = Field(..., min_length=2)
    description: Optional[str] = None
    polygon: Optional[List[LatLng]] = None

    @field_validator("polygon")
    def polygon_needs_three_points(cls, v):
        if v is not None and len(v) < 3:
            raise ValueError("A polygon needs at least 3 points")
        return v


class ParkAreaUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    polygon: Optional[List[LatLng]] = None

    @field_validator("polygon")
    def polygon_needs_three_points(cls, v):
        if v is not None and len(v) < 3:
            raise ValueError("A polygon needs at least 3 points")
        return v


# -------------------------------------------------
# Trees
# -------------------------------------------------
class TreeBase(BaseModel):
    species_id: int
    park_id: int
    area_id: Optional[int] = None

    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    height: Optional[float] = Field(None, ge=0)
    trunk_diameter: Optional[float] = Field(None, ge=0)
    age_estimate: Optional[int] = Field(None, ge=0)
    canopy_coverage: Optional[float] = Field(None, ge=0)

    planting_date: Optional[date] = None
    location_description: Optional[str] = None
    notes: Optional[str] = None

    condition: Optional[str] = None
    development_stage: Optional[str] = None
    health_status: Optional[TreeHealthStatus] = TreeHealthStatus.bueno
    has_hollows: bool = False
    has_exposed_roots: bool = False
    has_pests: bool = False
    is_protected: bool = False

    image_url: Optional[str] = None


class TreeCreate(TreeBase):
    """tree_code is generated by the API."""
    pass


class TreeUpdate(BaseModel):
    species_id: Optional[int] = None
    area_id: Optional[int] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    height: Optional[float] = Field(None, ge=0)
    trunk_diameter: Optional[float] = Field(None, ge=0)
    age_estimate: Optional[int] = Field(None, ge=0)
    canopy_coverage: Optional[float] = Field(None, ge=0)
    planting_date: Optional[date] = None
    location_description: Optional[str] = None
    notes: Optional[str] = None
    condition: Optional[str] = None
    development_stage: Optional[str] = None
    health_status: Optional[TreeHealthStatus] = None
    has_hollows: Optional[bool] = None
    has_exposed_roots: Optional[bool] = None
    has_pests: Optional[bool] = None
    is_protected: Optional[bool] = None
    image_url: Optional[str] = None


class TreeMaintenanceCreate(BaseModel):
    maintenance_type: str = Field(..., min_length=1)
    maintenance_date: date
    description: Optional[str] = None
    performed_by: Optional[str] = None
    notes: Optional[str] = None
    next_maintenance_date: Optional[date] = None

    @field_validator("next_maintenance_date")
    def next_after_current(cls, v, info):
        current = info.data.get("maintenance_date")
        if v is not None and current is not None and v < current:
            raise ValueError("next_maintenance_date cannot be before maintenance_date")
        return v
