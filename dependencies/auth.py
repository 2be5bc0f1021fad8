from typing import Optional, List
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel
from supabase import Client

from core.supabase_client import get_supabase_client
from core.permissions import ROLE_PERMISSIONS, DEFAULT_ROLE


bearer_scheme = HTTPBearer()


# ============================================================
# Current User Model
# ============================================================
class CurrentUser(BaseModel):
    id: str
    email: str
    role: str

    full_name: Optional[str] = None
    phone: Optional[str] = None

    # Parks this user is assigned to (coordinators, field operators)
    park_ids: Optional[List[int]] = []

    # Per-user permission overrides, e.g. ["marketing:write"]
    permissions: Optional[List[str]] = []


# ============================================================
# AUTH DECODING (Supabase: validates JWT + reads metadata)
# ============================================================
def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> CurrentUser:

    token = credentials.credentials

    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired authentication token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    client: Client = get_supabase_client()
    if not client:
        raise HTTPException(500, "Supabase client not configured")

    try:
        auth_resp = client.auth.get_user(token)
        if not auth_resp or not auth_resp.user:
            raise unauthorized
        auth_user = auth_resp.user
    except Exception:
        raise unauthorized

    email = auth_user.email
    metadata = auth_user.user_metadata or {}

    if not email:
        raise unauthorized

    # ---------------------------------------------------------
    # SYSTEM ACCOUNTS (scheduled jobs)
    # ---------------------------------------------------------
    if metadata.get("system") is True:
        return CurrentUser(
            id="system",
            email=email,
            role="super-admin",
            full_name="ParkSys System",
            permissions=["*"],
        )

    role = metadata.get("role", DEFAULT_ROLE)
    if role not in ROLE_PERMISSIONS:
        role = DEFAULT_ROLE

    extended_permissions = metadata.get("permissions", [])
    if not isinstance(extended_permissions, list):
        extended_permissions = []

    park_ids = metadata.get("park_ids", [])
    if not isinstance(park_ids, list):
        park_ids = []

    return CurrentUser(
        id=auth_user.id,
        email=email,
        role=role,
        full_name=metadata.get("full_name"),
        phone=metadata.get("phone"),
        park_ids=[int(p) for p in park_ids if str(p).isdigit()],
        permissions=extended_permissions,
    )


# ============================================================
# OPTIONAL AUTHENTICATION (for public endpoints)
# ============================================================
def get_optional_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(HTTPBearer(auto_error=False)),
) -> Optional[CurrentUser]:
    """
    Returns CurrentUser if a valid token was provided, None otherwise.
    """
    if not credentials:
        return None

    try:
        return get_current_user(credentials)
    except HTTPException:
        return None
