# routers/activities.py

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query, Request, UploadFile, File, Form

from dependencies.auth import get_current_user, get_optional_auth, CurrentUser
from core.permission_helpers import requires_permission
from core.supabase_client import get_supabase_client
from core.errors import handle_supabase_error
from core.rate_limiter import require_rate_limit
from core.logging_config import logger
from core.utils import sanitize, utc_now_iso, parse_timestamp, parse_deadline
from models.activity import (
    ActivityCategoryCreate,
    ActivityCategoryUpdate,
    ActivityCreate,
    ActivityUpdate,
    RegistrationCreate,
    RegistrationStatusUpdate,
)
from models.enums import RegistrationStatus
from services.storage import UnifiedStorageService, get_storage
from routers.uploads import store_upload
from routers.instructors import ensure_assignable_instructor


router = APIRouter(
    prefix="/activities",
    tags=["Activities"],
)

# Registrations that hold a seat
SEAT_HOLDING_STATUSES = [RegistrationStatus.pending.value, RegistrationStatus.approved.value]


def _get_activity_or_404(client, activity_id: int) -> dict:
    res = client.table("activities").select("*").eq("id", activity_id).limit(1).execute()
    if not res.data:
        raise HTTPException(404, f"Activity {activity_id} not found")
    return res.data[0]


# ============================================================
# CATEGORIES
# ============================================================
@router.get("/categories", summary="List activity categories")
def list_categories(include_inactive: bool = False):
    client = get_supabase_client()
    try:
        query = client.table("activity_categories").select("*")
        if not include_inactive:
            query = query.eq("is_active", True)
        res = query.order("sort_order").execute()
        return {"success": True, "data": res.data or []}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch categories", 500)


@router.post(
    "/categories",
    summary="Create activity category",
    status_code=201,
    dependencies=[Depends(requires_permission("activities:write"))],
)
def create_category(payload: ActivityCategoryCreate):
    client = get_supabase_client()
    try:
        res = client.table("activity_categories").insert(sanitize(payload.model_dump())).execute()
        if not res.data:
            raise HTTPException(500, "Insert returned no data")
        return res.data[0]
    except Exception as e:
        raise handle_supabase_error(e, "Failed to create category", 500)


@router.put(
    "/categories/{category_id}",
    summary="Update activity category",
    dependencies=[Depends(requires_permission("activities:write"))],
)
def update_category(category_id: int, payload: ActivityCategoryUpdate):
    client = get_supabase_client()
    try:
        res = (
            client.table("activity_categories")
            .update(sanitize(payload.model_dump(exclude_unset=True)))
            .eq("id", category_id)
            .execute()
        )
        if not res.data:
            raise HTTPException(404, f"Category {category_id} not found")
        return res.data[0]
    except Exception as e:
        raise handle_supabase_error(e, "Failed to update category", 500)


@router.delete(
    "/categories/{category_id}",
    summary="Delete activity category",
    dependencies=[Depends(requires_permission("activities:admin"))],
)
def delete_category(category_id: int):
    client = get_supabase_client()
    try:
        in_use = client.table("activities").select("id").eq("category_id", category_id).limit(1).execute()
        if in_use.data:
            raise HTTPException(400, "Category is used by activities; deactivate it instead")

        res = client.table("activity_categories").delete().eq("id", category_id).execute()
        if not res.data:
            raise HTTPException(404, f"Category {category_id} not found")
        return {"success": True, "deleted": category_id}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to delete category", 500)


# ============================================================
# REGISTRATION STATUS (admin)
# ============================================================
@router.put(
    "/registrations/{registration_id}/status",
    summary="Approve, reject or cancel a registration",
    dependencies=[Depends(requires_permission("activities:write"))],
)
def update_registration_status(
    registration_id: int,
    payload: RegistrationStatusUpdate,
    current_user: CurrentUser = Depends(get_current_user),
):
    client = get_supabase_client()

    try:
        res = client.table("activity_registrations").select("*").eq("id", registration_id).execute()
        if not res.data:
            raise HTTPException(404, f"Registration {registration_id} not found")

        update = {
            "status": payload.status.value,
            "updated_at": utc_now_iso(),
        }
        if payload.status == RegistrationStatus.approved:
            update["approved_by"] = current_user.id
            update["approved_at"] = utc_now_iso()
        if payload.status == RegistrationStatus.rejected:
            update["rejection_reason"] = payload.rejection_reason.strip()

        updated = client.table("activity_registrations").update(update).eq("id", registration_id).execute()
        logger.info(f"Registration {registration_id} set to {payload.status.value} by {current_user.id}")
        return updated.data[0]

    except Exception as e:
        raise handle_supabase_error(e, "Failed to update registration", 500)


# ============================================================
# ACTIVITIES
# ============================================================
@router.get("", summary="List activities")
def list_activities(
    park_id: Optional[int] = None,
    category_id: Optional[int] = None,
    instructor_id: Optional[int] = None,
    status: Optional[str] = None,
    date_from: Optional[datetime] = Query(None, description="start_date on or after"),
    date_to: Optional[datetime] = Query(None, description="start_date on or before"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
):
    client = get_supabase_client()

    try:
        query = client.table("activities").select("*")
        if park_id is not None:
            query = query.eq("park_id", park_id)
        if category_id is not None:
            query = query.eq("category_id", category_id)
        if instructor_id is not None:
            query = query.eq("instructor_id", instructor_id)
        if status:
            query = query.eq("status", status)
        if date_from:
            query = query.gte("start_date", date_from.isoformat())
        if date_to:
            query = query.lte("start_date", date_to.isoformat())

        res = query.order("start_date").range(offset, offset + limit - 1).execute()
        return {"success": True, "data": res.data or []}

    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch activities", 500)


@router.post(
    "",
    summary="Create activity",
    status_code=201,
    dependencies=[Depends(requires_permission("activities:write"))],
)
def create_activity(payload: ActivityCreate, current_user: CurrentUser = Depends(get_current_user)):
    client = get_supabase_client()
    data = sanitize(payload.model_dump(mode="json"))
    if payload.is_free:
        data["price"] = None
    data["created_by"] = current_user.id

    try:
        park = client.table("parks").select("id").eq("id", payload.park_id).execute()
        if not park.data:
            raise HTTPException(400, f"Park {payload.park_id} does not exist")
        ensure_assignable_instructor(client, payload.instructor_id)

        res = client.table("activities").insert(data).execute()
        if not res.data:
            raise HTTPException(500, "Insert returned no data")
        return res.data[0]

    except Exception as e:
        raise handle_supabase_error(e, "Failed to create activity", 500)


@router.get("/{activity_id}", summary="Get activity")
def get_activity(activity_id: int):
    client = get_supabase_client()
    try:
        activity = _get_activity_or_404(client, activity_id)
        images = (
            client.table("activity_images")
            .select("*")
            .eq("activity_id", activity_id)
            .order("is_primary", desc=True)
            .execute()
        )
        return {**activity, "images": images.data or []}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch activity", 500)


@router.put(
    "/{activity_id}",
    summary="Update activity",
    dependencies=[Depends(requires_permission("activities:write"))],
)
def update_activity(activity_id: int, payload: ActivityUpdate):
    client = get_supabase_client()
    update_data = sanitize(payload.model_dump(mode="json", exclude_unset=True))

    try:
        current = _get_activity_or_404(client, activity_id)
        merged = {**current, **update_data}

        start = parse_timestamp(merged.get("start_date"))
        end = parse_timestamp(merged.get("end_date"))
        if start and end and end < start:
            raise HTTPException(400, "end_date cannot be before start_date")

        if not merged.get("is_free", True) and not merged.get("price"):
            raise HTTPException(400, "Paid activities require a price greater than zero")
        if update_data.get("instructor_id") is not None:
            ensure_assignable_instructor(client, update_data["instructor_id"])

        update_data["updated_at"] = utc_now_iso()
        res = client.table("activities").update(update_data).eq("id", activity_id).execute()
        return res.data[0]

    except Exception as e:
        raise handle_supabase_error(e, "Failed to update activity", 500)


@router.delete(
    "/{activity_id}",
    summary="Delete activity",
    dependencies=[Depends(requires_permission("activities:admin"))],
)
def delete_activity(activity_id: int, storage: UnifiedStorageService = Depends(get_storage)):
    client = get_supabase_client()
    try:
        _get_activity_or_404(client, activity_id)

        images = client.table("activity_images").select("*").eq("activity_id", activity_id).execute().data or []
        for image in images:
            storage.delete_image(image.get("image_url"))

        client.table("activity_images").delete().eq("activity_id", activity_id).execute()
        client.table("activity_registrations").delete().eq("activity_id", activity_id).execute()
        client.table("activities").delete().eq("id", activity_id).execute()
        return {"success": True, "deleted": activity_id}

    except Exception as e:
        raise handle_supabase_error(e, "Failed to delete activity", 500)


# ============================================================
# IMAGES
# ============================================================
@router.post(
    "/{activity_id}/images",
    summary="Upload activity image",
    status_code=201,
    dependencies=[Depends(requires_permission("activities:write"))],
)
async def upload_activity_image(
    activity_id: int,
    file: UploadFile = File(...),
    caption: Optional[str] = Form(None),
    is_primary: bool = Form(False),
    storage: UnifiedStorageService = Depends(get_storage),
):
    client = get_supabase_client()

    try:
        _get_activity_or_404(client, activity_id)
        existing = client.table("activity_images").select("id").eq("activity_id", activity_id).execute().data or []
        is_primary = is_primary or not existing

        stored = await store_upload(file, "activities", storage)

        if is_primary:
            client.table("activity_images").update({"is_primary": False}).eq("activity_id", activity_id).execute()

        res = client.table("activity_images").insert({
            "activity_id": activity_id,
            "image_url": stored.image_url,
            "file_name": stored.filename,
            "file_size": file.size,
            "mime_type": file.content_type,
            "caption": (caption or "").strip() or None,
            "is_primary": is_primary,
        }).execute()

        return {**res.data[0], "storage_method": stored.method}

    except Exception as e:
        raise handle_supabase_error(e, "Failed to upload activity image", 500)


@router.delete(
    "/{activity_id}/images/{image_id}",
    summary="Delete activity image",
    dependencies=[Depends(requires_permission("activities:write"))],
)
def delete_activity_image(
    activity_id: int,
    image_id: int,
    storage: UnifiedStorageService = Depends(get_storage),
):
    client = get_supabase_client()
    try:
        res = (
            client.table("activity_images")
            .select("*")
            .eq("id", image_id)
            .eq("activity_id", activity_id)
            .execute()
        )
        if not res.data:
            raise HTTPException(404, "Image not found")

        client.table("activity_images").delete().eq("id", image_id).execute()
        storage.delete_image(res.data[0].get("image_url"))
        return {"success": True, "deleted": image_id}

    except Exception as e:
        raise handle_supabase_error(e, "Failed to delete activity image", 500)


# ============================================================
# REGISTRATIONS
# ============================================================
@router.post(
    "/{activity_id}/registrations",
    summary="Register for an activity (public)",
    status_code=201,
)
def register_for_activity(
    activity_id: int,
    payload: RegistrationCreate,
    request: Request,
    current_user: Optional[CurrentUser] = Depends(get_optional_auth),
):
    require_rate_limit(request, max_requests=10, window_seconds=60, scope="registrations")

    client = get_supabase_client()

    try:
        activity = _get_activity_or_404(client, activity_id)

        if not activity.get("registration_enabled"):
            raise HTTPException(400, "Registration is not enabled for this activity")

        deadline = parse_deadline(activity.get("registration_deadline"))
        if deadline and datetime.now(timezone.utc) > deadline:
            raise HTTPException(400, "The registration deadline has passed")

        email = payload.participant_email.lower()
        duplicate = (
            client.table("activity_registrations")
            .select("id")
            .eq("activity_id", activity_id)
            .eq("participant_email", email)
            .in_("status", SEAT_HOLDING_STATUSES)
            .execute()
        )
        if duplicate.data:
            raise HTTPException(400, "This email is already registered for the activity")

        seat_limit = activity.get("max_registrations") or activity.get("capacity")
        if seat_limit:
            taken = (
                client.table("activity_registrations")
                .select("id")
                .eq("activity_id", activity_id)
                .in_("status", SEAT_HOLDING_STATUSES)
                .execute()
            )
            if len(taken.data or []) >= int(seat_limit):
                raise HTTPException(400, "The activity is full")

        status = RegistrationStatus.pending if activity.get("requires_approval") else RegistrationStatus.approved

        data = sanitize(payload.model_dump(mode="json"))
        data.update({
            "activity_id": activity_id,
            "participant_email": email,
            "status": status.value,
            "registration_date": utc_now_iso(),
            "user_id": current_user.id if current_user else None,
        })
        if status == RegistrationStatus.approved:
            data["approved_at"] = data["registration_date"]

        res = client.table("activity_registrations").insert(data).execute()
        if not res.data:
            raise HTTPException(500, "Insert returned no data")

        logger.info(f"Registration for activity {activity_id}: {email} ({status.value})")
        return res.data[0]

    except Exception as e:
        raise handle_supabase_error(e, "Failed to register for activity", 500)


@router.get(
    "/{activity_id}/registrations",
    summary="List registrations of an activity",
    dependencies=[Depends(requires_permission("activities:read"))],
)
def list_registrations(activity_id: int, status: Optional[RegistrationStatus] = None):
    client = get_supabase_client()
    try:
        activity = _get_activity_or_404(client, activity_id)

        query = client.table("activity_registrations").select("*").eq("activity_id", activity_id)
        if status:
            query = query.eq("status", status.value)
        rows = query.order("registration_date").execute().data or []

        seat_limit = activity.get("max_registrations") or activity.get("capacity")
        taken = len([r for r in rows if r.get("status") in SEAT_HOLDING_STATUSES]) if not status else None

        return {
            "success": True,
            "data": rows,
            "capacity": seat_limit,
            "seats_taken": taken,
        }
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch registrations", 500)
