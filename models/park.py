# models/park.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from .enums import ParkStatus


def _check_coordinate(value, limit: float, name: str):
    if value is None:
        return value
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be numeric")
    if not -limit <= number <= limit:
        raise ValueError(f"{name} must be between -{limit} and {limit}")
    return str(value).strip()


# -------------------------------------------------
# Shared fields
# -------------------------------------------------
class ParkBase(BaseModel):
    name: str = Field(..., min_length=1)
    park_type: str
    address: str
    latitude: str
    longitude: str

    municipality_text: Optional[str] = None
    description: Optional[str] = None
    postal_code: Optional[str] = None
    area: Optional[float] = Field(None, ge=0, description="Total surface in m²")
    green_area: Optional[float] = Field(None, ge=0, description="Permeable surface in m²")
    foundation_year: Optional[int] = Field(None, ge=1500, le=2100)
    administrator: Optional[str] = None
    status: Optional[ParkStatus] = ParkStatus.en_funcionamiento
    regulation_url: Optional[str] = None
    opening_hours: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    video_url: Optional[str] = None
    certificaciones: Optional[str] = None

    @field_validator("latitude", mode="before")
    def validate_latitude(cls, v):
        return _check_coordinate(v, 90, "latitude")

    @field_validator("longitude", mode="before")
    def validate_longitude(cls, v):
        return _check_coordinate(v, 180, "longitude")


class ParkCreate(ParkBase):
    """Supabase generates id, code_prefix is assigned by the API."""
    pass


class ParkUpdate(BaseModel):
    name: Optional[str] = None
    park_type: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    municipality_text: Optional[str] = None
    description: Optional[str] = None
    postal_code: Optional[str] = None
    area: Optional[float] = Field(None, ge=0)
    green_area: Optional[float] = Field(None, ge=0)
    foundation_year: Optional[int] = Field(None, ge=1500, le=2100)
    administrator: Optional[str] = None
    status: Optional[ParkStatus] = None
    regulation_url: Optional[str] = None
    opening_hours: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    video_url: Optional[str] = None
    certificaciones: Optional[str] = None

    @field_validator("latitude", mode="before")
    def validate_latitude(cls, v):
        return _check_coordinate(v, 90, "latitude")

    @field_validator("longitude", mode="before")
    def validate_longitude(cls, v):
        return _check_coordinate(v, 180, "longitude")


class ParkRead(ParkBase):
    id: int
    code_prefix: Optional[str] = None
    is_deleted: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# -------------------------------------------------
# Park images
# -------------------------------------------------
class ParkImageRead(BaseModel):
    id: int
    park_id: int
    image_url: str
    caption: Optional[str] = None
    is_primary: bool = False
    created_at: Optional[datetime] = None
