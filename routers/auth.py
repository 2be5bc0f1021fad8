from fastapi import APIRouter, HTTPException, Depends, Request

from core.supabase_client import get_supabase_client
from core.rate_limiter import require_rate_limit, get_rate_limit_identifier
from core.logging_config import logger
from dependencies.auth import get_current_user, CurrentUser
from models.auth import LoginRequest, TokenResponse, ProfileUpdate


router = APIRouter(
    prefix="/auth",
    tags=["Auth"],
)

LOGIN_RATE_LIMIT = 5
LOGIN_WINDOW_SECONDS = 300


# ============================================================
# LOGIN (SUPABASE AUTH)
# ============================================================
@router.post("/login", response_model=TokenResponse, summary="Authenticate user")
def login(payload: LoginRequest, request: Request):

    email = payload.email.strip().lower()

    require_rate_limit(
        request,
        identifier=f"{get_rate_limit_identifier(request)}:{email}",
        max_requests=LOGIN_RATE_LIMIT,
        window_seconds=LOGIN_WINDOW_SECONDS,
        scope="login",
    )

    client = get_supabase_client()
    if not client:
        raise HTTPException(500, "Supabase client not configured")

    try:
        response = client.auth.sign_in_with_password(
            {"email": email, "password": payload.password}
        )
    except Exception as e:
        # Don't expose auth provider details to the caller
        logger.warning(f"Login attempt failed for {email}: {type(e).__name__}")
        raise HTTPException(
            status_code=401,
            detail="Invalid email or password"
        )

    if not response.session or not response.session.access_token:
        raise HTTPException(401, "Invalid email or password")

    return TokenResponse(
        access_token=response.session.access_token,
        refresh_token=getattr(response.session, "refresh_token", None),
        expires_in=getattr(response.session, "expires_in", None),
    )


# ============================================================
# CURRENT USER
# ============================================================
@router.get("/me", response_model=CurrentUser, summary="Current authenticated user")
def read_me(current_user: CurrentUser = Depends(get_current_user)):
    return current_user


@router.patch("/me", response_model=CurrentUser, summary="Update current user profile")
def update_profile(
    payload: ProfileUpdate,
    current_user: CurrentUser = Depends(get_current_user)
):
    """
    Update the current user's profile (self-service).

    Users can update their own full_name and phone.
    Role and park assignments are managed from /roles.
    """
    update_metadata = payload.model_dump(exclude_unset=True)
    update_metadata = {
        key: (value.strip() or None) if isinstance(value, str) else value
        for key, value in update_metadata.items()
    }

    if not update_metadata:
        return current_user

    client = get_supabase_client()

    try:
        resp = client.auth.admin.get_user_by_id(current_user.id)
        if not resp.user:
            raise HTTPException(404, "User not found")

        merged = {**(resp.user.user_metadata or {}), **update_metadata}
        client.auth.admin.update_user_by_id(current_user.id, {"user_metadata": merged})

    except HTTPException:
        raise
    except Exception as e:
        from core.errors import handle_supabase_error
        raise handle_supabase_error(e, "Failed to update profile", 500)

    logger.info(f"User {current_user.id} updated their profile")
    return current_user.model_copy(update=update_metadata)
