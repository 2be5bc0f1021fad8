# models/volunteer.py

from datetime import date
from typing import Optional, List
from pydantic import BaseModel, EmailStr, Field

from .enums import VolunteerStatus


class VolunteerBase(BaseModel):
    full_name: str = Field(..., min_length=2)
    email: EmailStr
    phone: Optional[str] = None
    gender: Optional[str] = None
    age: Optional[int] = Field(None, ge=14, le=100)
    address: Optional[str] = None
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None
    preferred_park_id: Optional[int] = None
    skills: Optional[str] = None
    interest_areas: Optional[List[str]] = None
    available_days: Optional[List[str]] = None
    available_hours: Optional[str] = None
    previous_experience: Optional[str] = None
    legal_consent: bool = True
    status: VolunteerStatus = VolunteerStatus.active


class VolunteerCreate(VolunteerBase):
    pass


class VolunteerUpdate(BaseModel):
    full_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    gender: Optional[str] = None
    age: Optional[int] = Field(None, ge=14, le=100)
    address: Optional[str] = None
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None
    preferred_park_id: Optional[int] = None
    skills: Optional[str] = None
    interest_areas: Optional[List[str]] = None
    available_days: Optional[List[str]] = None
    available_hours: Optional[str] = None
    previous_experience: Optional[str] = None
    legal_consent: Optional[bool] = None
    status: Optional[VolunteerStatus] = None


class ParticipationCreate(BaseModel):
    activity_id: Optional[int] = None
    activity_name: str = Field(..., min_length=1)
    park_id: Optional[int] = None
    activity_date: date
    hours_contributed: float = Field(..., gt=0, le=24)
    supervisor_name: Optional[str] = None
    notes: Optional[str] = None


class EvaluationCreate(BaseModel):
    participation_id: Optional[int] = None
    evaluator_name: Optional[str] = None
    punctuality: int = Field(..., ge=1, le=5)
    attitude: int = Field(..., ge=1, le=5)
    responsibility: int = Field(..., ge=1, le=5)
    overall_performance: int = Field(..., ge=1, le=5)
    comments: Optional[str] = None
    follow_up_required: bool = False


class RecognitionCreate(BaseModel):
    recognition_type: str = Field(..., min_length=1)
    level: Optional[str] = None
    reason: str = Field(..., min_length=1)
    hours_completed: Optional[float] = Field(None, ge=0)
    certificate_url: Optional[str] = None
    issued_at: Optional[date] = None
