# routers/instructors.py

from collections import Counter
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query, UploadFile, File

from core.permission_helpers import requires_permission
from core.supabase_client import get_supabase_client
from core.errors import handle_supabase_error
from core.logging_config import logger
from core.utils import sanitize, utc_now_iso
from models.enums import InstructorStatus
from models.instructor import InstructorCreate, InstructorUpdate
from services.storage import UnifiedStorageService, get_storage
from routers.uploads import store_upload


router = APIRouter(
    prefix="/instructors",
    tags=["Instructors"],
)

# Instructors in these states cannot be put in charge of an activity
UNASSIGNABLE_STATUSES = {InstructorStatus.inactive.value, InstructorStatus.rejected.value}


def _get_instructor_or_404(client, instructor_id: int) -> dict:
    res = client.table("instructors").select("*").eq("id", instructor_id).limit(1).execute()
    if not res.data:
        raise HTTPException(404, f"Instructor {instructor_id} not found")
    return res.data[0]


def ensure_assignable_instructor(client, instructor_id: Optional[int]):
    """Used by activities: the referenced instructor must exist and be available."""
    if instructor_id is None:
        return
    res = client.table("instructors").select("id, full_name, status").eq("id", instructor_id).limit(1).execute()
    if not res.data:
        raise HTTPException(400, f"Instructor {instructor_id} does not exist")
    if res.data[0].get("status") in UNASSIGNABLE_STATUSES:
        raise HTTPException(400, f"Instructor '{res.data[0]['full_name']}' is {res.data[0]['status']}")


def _check_park(client, park_id: Optional[int]):
    if park_id is None:
        return
    park = client.table("parks").select("id").eq("id", park_id).execute()
    if not park.data:
        raise HTTPException(400, f"Park {park_id} does not exist")


def _with_display_fields(client, instructors: list) -> list:
    """full_name fallback plus the preferred park's name."""
    park_ids = {i["preferred_park_id"] for i in instructors if i.get("preferred_park_id") is not None}
    park_names = {}
    if park_ids:
        parks = client.table("parks").select("id, name").in_("id", list(park_ids)).execute()
        park_names = {p["id"]: p.get("name") for p in parks.data or []}

    enriched = []
    for instructor in instructors:
        full_name = instructor.get("full_name") or (
            f"{instructor.get('first_name') or ''} {instructor.get('last_name') or ''}".strip()
        )
        enriched.append({
            **instructor,
            "full_name": full_name,
            "preferred_park_name": park_names.get(instructor.get("preferred_park_id")),
        })
    return enriched


# ============================================================
# LIST / CREATE
# ============================================================
@router.get(
    "",
    summary="List instructors",
    dependencies=[Depends(requires_permission("instructors:read"))],
)
def list_instructors(
    status: Optional[str] = None,
    specialty: Optional[str] = Query(None, description="Case-insensitive specialty match"),
    park_id: Optional[int] = Query(None, description="Filter by preferred park"),
    search: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
):
    client = get_supabase_client()

    try:
        query = client.table("instructors").select("*")
        if status:
            query = query.eq("status", status)
        if park_id is not None:
            query = query.eq("preferred_park_id", park_id)
        if search:
            query = query.ilike("full_name", f"%{search}%")

        rows = query.order("full_name").execute().data or []

        if specialty:
            wanted = specialty.strip().lower()
            rows = [r for r in rows if wanted in {s.lower() for s in r.get("specialties") or []}]

        page = rows[offset:offset + limit]
        return {"success": True, "data": _with_display_fields(client, page), "total": len(rows)}

    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch instructors", 500)


@router.post(
    "",
    summary="Register instructor",
    status_code=201,
    dependencies=[Depends(requires_permission("instructors:write"))],
)
def create_instructor(payload: InstructorCreate):
    client = get_supabase_client()
    data = sanitize(payload.model_dump(mode="json"))
    data["email"] = data["email"].lower()

    try:
        existing = client.table("instructors").select("id").eq("email", data["email"]).execute()
        if existing.data:
            raise HTTPException(400, f"An instructor with email {data['email']} already exists")

        _check_park(client, payload.preferred_park_id)

        data.update({"rating": 0, "application_date": utc_now_iso()})
        res = client.table("instructors").insert(data).execute()
        if not res.data:
            raise HTTPException(500, "Insert returned no data")

        logger.info(f"Instructor registered: {data['email']}")
        return res.data[0]

    except Exception as e:
        raise handle_supabase_error(e, "Failed to create instructor", 500)


# ============================================================
# SPECIALTIES
# ============================================================
@router.get(
    "/specialties/stats",
    summary="How specialties are spread across instructors",
    dependencies=[Depends(requires_permission("instructors:read"))],
)
def specialty_stats():
    client = get_supabase_client()

    try:
        rows = client.table("instructors").select("id, specialties, status").execute().data or []

        counts = Counter()
        active_with_specialties = 0
        for row in rows:
            specialties = [s.strip() for s in row.get("specialties") or [] if s and s.strip()]
            if specialties and row.get("status") == InstructorStatus.active.value:
                active_with_specialties += 1
            counts.update(specialties)

        ranked = counts.most_common()
        total = len(rows)

        return {
            "total_unique_specialties": len(counts),
            "total_instructors": total,
            "active_instructors_with_specialties": active_with_specialties,
            "top_specialties": [{"name": name, "count": count} for name, count in ranked[:5]],
            "specialty_distribution": [
                {"specialty": name, "count": count, "percentage": round(count * 100 / total)}
                for name, count in ranked
            ],
        }

    except Exception as e:
        raise handle_supabase_error(e, "Failed to compute specialty stats", 500)


# ============================================================
# GET / UPDATE / DELETE
# ============================================================
@router.get(
    "/{instructor_id}",
    summary="Get instructor",
    dependencies=[Depends(requires_permission("instructors:read"))],
)
def get_instructor(instructor_id: int):
    client = get_supabase_client()
    try:
        instructor = _get_instructor_or_404(client, instructor_id)
        return _with_display_fields(client, [instructor])[0]
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch instructor", 500)


@router.put(
    "/{instructor_id}",
    summary="Update instructor",
    dependencies=[Depends(requires_permission("instructors:write"))],
)
def update_instructor(instructor_id: int, payload: InstructorUpdate):
    client = get_supabase_client()
    update_data = sanitize(payload.model_dump(mode="json", exclude_unset=True))
    if update_data.get("email"):
        update_data["email"] = update_data["email"].lower()

    try:
        _get_instructor_or_404(client, instructor_id)
        if not update_data:
            raise HTTPException(400, "No fields to update")

        if update_data.get("email"):
            clash = (
                client.table("instructors")
                .select("id")
                .eq("email", update_data["email"])
                .neq("id", instructor_id)
                .execute()
            )
            if clash.data:
                raise HTTPException(400, f"An instructor with email {update_data['email']} already exists")

        _check_park(client, update_data.get("preferred_park_id"))

        update_data["updated_at"] = utc_now_iso()
        res = client.table("instructors").update(update_data).eq("id", instructor_id).execute()
        return res.data[0]

    except Exception as e:
        raise handle_supabase_error(e, "Failed to update instructor", 500)


@router.delete(
    "/{instructor_id}",
    summary="Delete instructor",
    dependencies=[Depends(requires_permission("instructors:admin"))],
)
def delete_instructor(instructor_id: int, storage: UnifiedStorageService = Depends(get_storage)):
    client = get_supabase_client()

    try:
        instructor = _get_instructor_or_404(client, instructor_id)

        assigned = client.table("activities").select("id").eq("instructor_id", instructor_id).execute()
        if assigned.data:
            raise HTTPException(
                400,
                f"Instructor is assigned to {len(assigned.data)} activities; reassign them first",
            )

        client.table("instructors").delete().eq("id", instructor_id).execute()

        if instructor.get("profile_image_url"):
            storage.delete_image(instructor["profile_image_url"])

        logger.info(f"Instructor deleted: {instructor.get('email')}")
        return {"success": True, "deleted": instructor_id}

    except Exception as e:
        raise handle_supabase_error(e, "Failed to delete instructor", 500)


# ============================================================
# PROFILE IMAGE
# ============================================================
@router.post(
    "/{instructor_id}/profile-image",
    summary="Upload instructor profile image",
    dependencies=[Depends(requires_permission("instructors:write"))],
)
async def upload_profile_image(
    instructor_id: int,
    file: UploadFile = File(...),
    storage: UnifiedStorageService = Depends(get_storage),
):
    client = get_supabase_client()

    try:
        instructor = _get_instructor_or_404(client, instructor_id)
        stored = await store_upload(file, "instructors", storage)

        res = (
            client.table("instructors")
            .update({"profile_image_url": stored.image_url, "updated_at": utc_now_iso()})
            .eq("id", instructor_id)
            .execute()
        )

        previous = instructor.get("profile_image_url")
        if previous and previous != stored.image_url:
            storage.delete_image(previous)

        return {**res.data[0], "storage_method": stored.method}

    except Exception as e:
        raise handle_supabase_error(e, "Failed to upload profile image", 500)


# ============================================================
# ACTIVITIES LED BY THE INSTRUCTOR
# ============================================================
@router.get(
    "/{instructor_id}/activities",
    summary="List activities assigned to an instructor",
    dependencies=[Depends(requires_permission("instructors:read"))],
)
def list_instructor_activities(instructor_id: int):
    client = get_supabase_client()
    try:
        _get_instructor_or_404(client, instructor_id)
        res = (
            client.table("activities")
            .select("*")
            .eq("instructor_id", instructor_id)
            .order("start_date")
            .execute()
        )
        return {"success": True, "data": res.data or []}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch instructor activities", 500)
