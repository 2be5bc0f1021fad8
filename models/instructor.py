# models/instructor.py

from typing import Optional, List
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from .enums import InstructorStatus


def clean_specialties(values):
    """Trim, drop blanks and repeat entries (case-insensitive), keep order."""
    if values is None:
        return None
    seen = set()
    cleaned = []
    for value in values:
        text = str(value).strip()
        if text and text.lower() not in seen:
            seen.add(text.lower())
            cleaned.append(text)
    return cleaned


class InstructorBase(BaseModel):
    full_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: EmailStr
    phone: Optional[str] = None
    age: Optional[int] = Field(None, ge=16, le=100)
    gender: Optional[str] = None
    address: Optional[str] = None

    specialties: List[str] = []
    certifications: Optional[List[str]] = None
    experience_years: int = Field(0, ge=0)
    available_days: Optional[List[str]] = None
    available_hours: Optional[str] = None
    preferred_park_id: Optional[int] = None

    bio: Optional[str] = None
    qualifications: Optional[str] = None
    education: Optional[str] = None
    hourly_rate: float = Field(0, ge=0)
    status: InstructorStatus = InstructorStatus.pending

    @field_validator("specialties")
    def normalize_specialties(cls, v):
        return clean_specialties(v)


class InstructorCreate(InstructorBase):

    @model_validator(mode="after")
    def build_full_name(self):
        if not (self.full_name or "").strip():
            self.full_name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        if not self.full_name:
            raise ValueError("full_name or first_name/last_name is required")
        return self


class InstructorUpdate(BaseModel):
    full_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    age: Optional[int] = Field(None, ge=16, le=100)
    gender: Optional[str] = None
    address: Optional[str] = None
    specialties: Optional[List[str]] = None
    certifications: Optional[List[str]] = None
    experience_years: Optional[int] = Field(None, ge=0)
    available_days: Optional[List[str]] = None
    available_hours: Optional[str] = None
    preferred_park_id: Optional[int] = None
    bio: Optional[str] = None
    qualifications: Optional[str] = None
    education: Optional[str] = None
    hourly_rate: Optional[float] = Field(None, ge=0)
    status: Optional[InstructorStatus] = None

    @field_validator("specialties")
    def normalize_specialties(cls, v):
        return clean_specialties(v)
