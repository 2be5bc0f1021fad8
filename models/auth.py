from typing import Optional
from pydantic import BaseModel, EmailStr


# -----------------------------------------------------
# LOGIN REQUEST (using Supabase email/password)
# -----------------------------------------------------
class LoginRequest(BaseModel):
    email: EmailStr
    password: str


# -----------------------------------------------------
# TOKEN RESPONSE (Supabase session JWT)
# -----------------------------------------------------
class TokenResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    token_type: str = "bearer"


class ProfileUpdate(BaseModel):
    """Self-service profile fields stored in user_metadata."""
    full_name: Optional[str] = None
    phone: Optional[str] = None
