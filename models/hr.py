# models/hr.py

from datetime import date
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, model_validator

from .enums import EmployeeStatus, TimeOffType, TimeOffStatus


class EmployeeCreate(BaseModel):
    employee_code: Optional[str] = None
    full_name: str = Field(..., min_length=2)
    email: EmailStr
    phone: Optional[str] = None
    position: str = Field(..., min_length=1)
    department: str = Field(..., min_length=1)
    hire_date: date
    salary: Optional[float] = Field(None, ge=0)
    status: EmployeeStatus = EmployeeStatus.active
    park_id: Optional[int] = None
    supervisor_id: Optional[int] = None
    user_id: Optional[str] = None


class EmployeeUpdate(BaseModel):
    full_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    position: Optional[str] = None
    department: Optional[str] = None
    hire_date: Optional[date] = None
    salary: Optional[float] = Field(None, ge=0)
    status: Optional[EmployeeStatus] = None
    park_id: Optional[int] = None
    supervisor_id: Optional[int] = None
    user_id: Optional[str] = None


class TimeOffCreate(BaseModel):
    employee_id: int
    request_type: TimeOffType
    start_date: date
    end_date: date
    reason: Optional[str] = None

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        return self


class TimeOffDecision(BaseModel):
    status: TimeOffStatus
    review_notes: Optional[str] = None

    @model_validator(mode="after")
    def only_final_states(self):
        if self.status == TimeOffStatus.pending:
            raise ValueError("A decision cannot leave the request pending")
        return self


class ClockEvent(BaseModel):
    employee_id: int
    park_id: Optional[int] = None
    notes: Optional[str] = None
