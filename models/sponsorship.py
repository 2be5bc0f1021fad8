# models/sponsorship.py

from datetime import date
from typing import Optional, List
from pydantic import BaseModel, EmailStr, Field, model_validator

from .enums import SponsorStatus, ContractStatus


class PackageCreate(BaseModel):
    name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    level: int = Field(..., ge=1, le=10)
    price: float = Field(..., ge=0)
    duration_months: int = Field(12, ge=1)
    benefits: Optional[List[str]] = None
    description: Optional[str] = None
    is_active: bool = True


class PackageUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    level: Optional[int] = Field(None, ge=1, le=10)
    price: Optional[float] = Field(None, ge=0)
    duration_months: Optional[int] = Field(None, ge=1)
    benefits: Optional[List[str]] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


class SponsorCreate(BaseModel):
    name: str = Field(..., min_length=1)
    sector: Optional[str] = None
    contact_name: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None
    package_id: Optional[int] = None
    status: SponsorStatus = SponsorStatus.potencial
    notes: Optional[str] = None


class SponsorUpdate(BaseModel):
    name: Optional[str] = None
    sector: Optional[str] = None
    contact_name: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None
    package_id: Optional[int] = None
    status: Optional[SponsorStatus] = None
    notes: Optional[str] = None


class ContractCreate(BaseModel):
    sponsor_id: int
    package_id: Optional[int] = None
    contract_number: Optional[str] = None
    start_date: date
    end_date: date
    total_amount: float = Field(..., ge=0)
    payment_terms: Optional[str] = None
    status: ContractStatus = ContractStatus.draft
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        return self


class ContractUpdate(BaseModel):
    package_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total_amount: Optional[float] = Field(None, ge=0)
    payment_terms: Optional[str] = None
    status: Optional[ContractStatus] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        return self


class SponsorEventCreate(BaseModel):
    sponsor_id: int
    event_name: str = Field(..., min_length=1)
    event_date: date
    park_id: Optional[int] = None
    sponsorship_level: Optional[str] = None
    logo_placement: Optional[str] = None
    exposure_minutes: Optional[int] = Field(None, ge=0)
    status: str = "planned"


class MetricCreate(BaseModel):
    sponsor_id: int
    metric_type: str = Field(..., min_length=1)
    metric_value: float
    measurement_date: date
    impressions: int = Field(0, ge=0)
    source: Optional[str] = None
    notes: Optional[str] = None


class SponsorEvaluationCreate(BaseModel):
    sponsor_id: int
    overall_rating: int = Field(..., ge=1, le=5)
    communication_rating: Optional[int] = Field(None, ge=1, le=5)
    compliance_rating: Optional[int] = Field(None, ge=1, le=5)
    evaluation_date: date
    would_renew: Optional[bool] = None
    comments: Optional[str] = None
