# models/role.py

from typing import Optional
from pydantic import BaseModel, Field, field_validator

from core.permissions import ROLES_BY_SLUG


class UserRoleAssign(BaseModel):
    user_id: str = Field(..., min_length=1)
    role_id: str
    is_primary: bool = False

    @field_validator("role_id")
    def role_must_exist(cls, v):
        if v not in ROLES_BY_SLUG:
            raise ValueError(f"Unknown role '{v}'")
        return v


class UserRoleRead(BaseModel):
    id: int
    user_id: str
    role_id: str
    is_primary: bool = False
    assigned_by: Optional[str] = None
    assigned_at: Optional[str] = None
