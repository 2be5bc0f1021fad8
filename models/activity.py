# models/activity.py

from datetime import date, datetime
from typing import Optional, List
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from core.utils import end_of_day

from .enums import ActivityStatus, RegistrationStatus


# -------------------------------------------------
# Categories
# -------------------------------------------------
class ActivityCategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    color: Optional[str] = "#00a587"
    icon: Optional[str] = "calendar"
    is_active: bool = True
    sort_order: int = 0


class ActivityCategoryUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None


# -------------------------------------------------
# Activities
# -------------------------------------------------
class ActivityBase(BaseModel):
    park_id: int
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    category_id: Optional[int] = None

    start_date: datetime
    end_date: Optional[datetime] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration: Optional[int] = Field(None, ge=0, description="Minutes")
    location: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    capacity: Optional[int] = Field(None, ge=0)
    price: Optional[float] = Field(None, ge=0)
    is_free: bool = True
    materials: Optional[str] = None
    requirements: Optional[str] = None
    is_recurring: bool = False
    recurring_days: Optional[List[str]] = None
    target_market: Optional[List[str]] = None
    special_needs: Optional[List[str]] = None
    instructor_id: Optional[int] = None
    status: ActivityStatus = ActivityStatus.programada

    registration_enabled: bool = False
    max_registrations: Optional[int] = Field(None, ge=0)
    registration_deadline: Optional[datetime] = None
    registration_instructions: Optional[str] = None
    requires_approval: bool = False

    @field_validator("registration_deadline", mode="before")
    def deadline_covers_whole_day(cls, v):
        return end_of_day(v)


class ActivityCreate(ActivityBase):

    @model_validator(mode="after")
    def check_dates_and_price(self):
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        if not self.is_free and (self.price is None or self.price <= 0):
            raise ValueError("Paid activities require a price greater than zero")
        return self


class ActivityUpdate(BaseModel):
    park_id: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration: Optional[int] = Field(None, ge=0)
    location: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    capacity: Optional[int] = Field(None, ge=0)
    price: Optional[float] = Field(None, ge=0)
    is_free: Optional[bool] = None
    materials: Optional[str] = None
    requirements: Optional[str] = None
    is_recurring: Optional[bool] = None
    recurring_days: Optional[List[str]] = None
    target_market: Optional[List[str]] = None
    special_needs: Optional[List[str]] = None
    instructor_id: Optional[int] = None
    status: Optional[ActivityStatus] = None
    registration_enabled: Optional[bool] = None
    max_registrations: Optional[int] = Field(None, ge=0)
    registration_deadline: Optional[datetime] = None
    registration_instructions: Optional[str] = None
    requires_approval: Optional[bool] = None

    @field_validator("registration_deadline", mode="before")
    def deadline_covers_whole_day(cls, v):
        return end_of_day(v)


# -------------------------------------------------
# Registrations (public form)
# -------------------------------------------------
class RegistrationCreate(BaseModel):
    participant_name: str = Field(..., min_length=2)
    participant_email: EmailStr
    participant_phone: Optional[str] = None
    age: Optional[int] = Field(None, ge=0, le=120)
    birth_date: Optional[date] = None
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None
    medical_conditions: Optional[str] = None
    notes: Optional[str] = None
    accepts_terms: bool = False

    @field_validator("accepts_terms")
    def must_accept_terms(cls, v):
        if not v:
            raise ValueError("Terms must be accepted to register")
        return v


class RegistrationStatusUpdate(BaseModel):
    status: RegistrationStatus
    rejection_reason: Optional[str] = None

    @model_validator(mode="after")
    def rejection_needs_reason(self):
        if self.status == RegistrationStatus.rejected and not (self.rejection_reason or "").strip():
            raise ValueError("rejection_reason is required when rejecting")
        return self
