# routers/volunteers.py

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query, UploadFile, File

from dependencies.auth import get_current_user, CurrentUser
from core.permission_helpers import requires_permission
from core.supabase_client import get_supabase_client
from core.errors import handle_supabase_error
from core.logging_config import logger
from core.utils import sanitize, utc_now_iso, to_float
from models.volunteer import (
    VolunteerCreate,
    VolunteerUpdate,
    ParticipationCreate,
    EvaluationCreate,
    RecognitionCreate,
)
from services.storage import UnifiedStorageService, get_storage
from routers.uploads import store_upload


router = APIRouter(
    prefix="/volunteers",
    tags=["Volunteers"],
)

SCORE_FIELDS = ["punctuality", "attitude", "responsibility", "overall_performance"]


def _get_volunteer_or_404(client, volunteer_id: int) -> dict:
    res = client.table("volunteers").select("*").eq("id", volunteer_id).limit(1).execute()
    if not res.data:
        raise HTTPException(404, f"Volunteer {volunteer_id} not found")
    return res.data[0]


def evaluation_average(evaluation: dict) -> float:
    scores = [to_float(evaluation.get(f)) for f in SCORE_FIELDS if evaluation.get(f) is not None]
    return round(sum(scores) / len(scores), 2) if scores else 0.0


# ============================================================
# LIST / CREATE
# ============================================================
@router.get(
    "",
    summary="List volunteers",
    dependencies=[Depends(requires_permission("volunteers:read"))],
)
def list_volunteers(
    status: Optional[str] = None,
    park_id: Optional[int] = Query(None, description="Filter by preferred park"),
    search: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
):
    client = get_supabase_client()

    try:
        query = client.table("volunteers").select("*")
        if status:
            query = query.eq("status", status)
        if park_id is not None:
            query = query.eq("preferred_park_id", park_id)
        if search:
            query = query.ilike("full_name", f"%{search}%")

        res = query.order("full_name").range(offset, offset + limit - 1).execute()
        return {"success": True, "data": res.data or []}

    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch volunteers", 500)


@router.post(
    "",
    summary="Register volunteer",
    status_code=201,
    dependencies=[Depends(requires_permission("volunteers:write"))],
)
def create_volunteer(payload: VolunteerCreate):
    client = get_supabase_client()
    data = sanitize(payload.model_dump(mode="json"))
    data["email"] = data["email"].lower()

    try:
        existing = client.table("volunteers").select("id").eq("email", data["email"]).execute()
        if existing.data:
            raise HTTPException(400, f"A volunteer with email {data['email']} already exists")

        if payload.preferred_park_id is not None:
            park = client.table("parks").select("id").eq("id", payload.preferred_park_id).execute()
            if not park.data:
                raise HTTPException(400, f"Park {payload.preferred_park_id} does not exist")

        data["total_hours"] = 0
        res = client.table("volunteers").insert(data).execute()
        if not res.data:
            raise HTTPException(500, "Insert returned no data")

        logger.info(f"Volunteer registered: {data['email']}")
        return res.data[0]

    except Exception as e:
        raise handle_supabase_error(e, "Failed to create volunteer", 500)


# ============================================================
# GET / UPDATE / DELETE
# ============================================================
@router.get(
    "/{volunteer_id}",
    summary="Get volunteer",
    dependencies=[Depends(requires_permission("volunteers:read"))],
)
def get_volunteer(volunteer_id: int):
    client = get_supabase_client()
    try:
        return _get_volunteer_or_404(client, volunteer_id)
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch volunteer", 500)


@router.put(
    "/{volunteer_id}",
    summary="Update volunteer",
    dependencies=[Depends(requires_permission("volunteers:write"))],
)
def update_volunteer(volunteer_id: int, payload: VolunteerUpdate):
    client = get_supabase_client()
    update_data = sanitize(payload.model_dump(mode="json", exclude_unset=True))
    if update_data.get("email"):
        update_data["email"] = update_data["email"].lower()

    try:
        _get_volunteer_or_404(client, volunteer_id)
        if not update_data:
            raise HTTPException(400, "No fields to update")

        update_data["updated_at"] = utc_now_iso()
        res = client.table("volunteers").update(update_data).eq("id", volunteer_id).execute()
        return res.data[0]

    except Exception as e:
        raise handle_supabase_error(e, "Failed to update volunteer", 500)


@router.delete(
    "/{volunteer_id}",
    summary="Delete volunteer",
    dependencies=[Depends(requires_permission("volunteers:admin"))],
)
def delete_volunteer(volunteer_id: int, storage: UnifiedStorageService = Depends(get_storage)):
    client = get_supabase_client()

    try:
        volunteer = _get_volunteer_or_404(client, volunteer_id)

        for table in ("volunteer_evaluations", "volunteer_recognitions", "volunteer_participations"):
            client.table(table).delete().eq("volunteer_id", volunteer_id).execute()
        client.table("volunteers").delete().eq("id", volunteer_id).execute()

        if volunteer.get("profile_image_url"):
            storage.delete_image(volunteer["profile_image_url"])

        return {"success": True, "deleted": volunteer_id}

    except Exception as e:
        raise handle_supabase_error(e, "Failed to delete volunteer", 500)


# ============================================================
# PROFILE IMAGE
# ============================================================
@router.post(
    "/{volunteer_id}/profile-image",
    summary="Upload volunteer profile image",
    dependencies=[Depends(requires_permission("volunteers:write"))],
)
async def upload_profile_image(
    volunteer_id: int,
    file: UploadFile = File(...),
    storage: UnifiedStorageService = Depends(get_storage),
):
    client = get_supabase_client()

    try:
        volunteer = _get_volunteer_or_404(client, volunteer_id)
        stored = await store_upload(file, "volunteers", storage)

        res = (
            client.table("volunteers")
            .update({"profile_image_url": stored.image_url, "updated_at": utc_now_iso()})
            .eq("id", volunteer_id)
            .execute()
        )

        previous = volunteer.get("profile_image_url")
        if previous and previous != stored.image_url:
            storage.delete_image(previous)

        return {**res.data[0], "storage_method": stored.method}

    except Exception as e:
        raise handle_supabase_error(e, "Failed to upload profile image", 500)


# ============================================================
# PARTICIPATIONS
# ============================================================
@router.get(
    "/{volunteer_id}/participations",
    summary="List participations",
    dependencies=[Depends(requires_permission("volunteers:read"))],
)
def list_participations(volunteer_id: int):
    client = get_supabase_client()
    try:
        res = (
            client.table("volunteer_participations")
            .select("*")
            .eq("volunteer_id", volunteer_id)
            .order("activity_date", desc=True)
            .execute()
        )
        return {"success": True, "data": res.data or []}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch participations", 500)


@router.post(
    "/{volunteer_id}/participations",
    summary="Record hours served",
    status_code=201,
    dependencies=[Depends(requires_permission("volunteers:write"))],
)
def create_participation(volunteer_id: int, payload: ParticipationCreate):
    client = get_supabase_client()

    try:
        volunteer = _get_volunteer_or_404(client, volunteer_id)

        data = sanitize(payload.model_dump(mode="json"))
        data["volunteer_id"] = volunteer_id
        res = client.table("volunteer_participations").insert(data).execute()
        if not res.data:
            raise HTTPException(500, "Insert returned no data")

        # Running total kept on the volunteer row for listings
        total = to_float(volunteer.get("total_hours")) + payload.hours_contributed
        client.table("volunteers").update({
            "total_hours": round(total, 2),
            "last_activity_at": data["activity_date"],
        }).eq("id", volunteer_id).execute()

        return res.data[0]

    except Exception as e:
        raise handle_supabase_error(e, "Failed to record participation", 500)


# ============================================================
# EVALUATIONS
# ============================================================
@router.get(
    "/{volunteer_id}/evaluations",
    summary="List evaluations",
    dependencies=[Depends(requires_permission("volunteers:read"))],
)
def list_evaluations(volunteer_id: int):
    client = get_supabase_client()
    try:
        rows = (
            client.table("volunteer_evaluations")
            .select("*")
            .eq("volunteer_id", volunteer_id)
            .order("created_at", desc=True)
            .execute()
            .data
            or []
        )
        return {"success": True, "data": [{**r, "average_score": evaluation_average(r)} for r in rows]}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch evaluations", 500)


@router.post(
    "/{volunteer_id}/evaluations",
    summary="Evaluate volunteer",
    status_code=201,
    dependencies=[Depends(requires_permission("volunteers:write"))],
)
def create_evaluation(
    volunteer_id: int,
    payload: EvaluationCreate,
    current_user: CurrentUser = Depends(get_current_user),
):
    client = get_supabase_client()

    try:
        _get_volunteer_or_404(client, volunteer_id)

        if payload.participation_id is not None:
            participation = (
                client.table("volunteer_participations")
                .select("id")
                .eq("id", payload.participation_id)
                .eq("volunteer_id", volunteer_id)
                .execute()
            )
            if not participation.data:
                raise HTTPException(400, "Participation does not belong to this volunteer")

        data = sanitize(payload.model_dump())
        data.update({
            "volunteer_id": volunteer_id,
            "evaluator_id": current_user.id,
            "evaluator_name": data.get("evaluator_name") or current_user.full_name,
            "created_at": utc_now_iso(),
        })
        res = client.table("volunteer_evaluations").insert(data).execute()
        if not res.data:
            raise HTTPException(500, "Insert returned no data")

        return {**res.data[0], "average_score": evaluation_average(res.data[0])}

    except Exception as e:
        raise handle_supabase_error(e, "Failed to create evaluation", 500)


# ============================================================
# RECOGNITIONS
# ============================================================
@router.get(
    "/{volunteer_id}/recognitions",
    summary="List recognitions",
    dependencies=[Depends(requires_permission("volunteers:read"))],
)
def list_recognitions(volunteer_id: int):
    client = get_supabase_client()
    try:
        res = client.table("volunteer_recognitions").select("*").eq("volunteer_id", volunteer_id).execute()
        return {"success": True, "data": res.data or []}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch recognitions", 500)


@router.post(
    "/{volunteer_id}/recognitions",
    summary="Grant recognition",
    status_code=201,
    dependencies=[Depends(requires_permission("volunteers:write"))],
)
def create_recognition(
    volunteer_id: int,
    payload: RecognitionCreate,
    current_user: CurrentUser = Depends(get_current_user),
):
    client = get_supabase_client()

    try:
        _get_volunteer_or_404(client, volunteer_id)

        data = sanitize(payload.model_dump(mode="json"))
        data["volunteer_id"] = volunteer_id
        data["issued_by"] = current_user.id
        data["issued_at"] = data.get("issued_at") or utc_now_iso()[:10]

        res = client.table("volunteer_recognitions").insert(data).execute()
        if not res.data:
            raise HTTPException(500, "Insert returned no data")
        return res.data[0]

    except Exception as e:
        raise handle_supabase_error(e, "Failed to create recognition", 500)


# ============================================================
# STATS
# ============================================================
@router.get(
    "/{volunteer_id}/stats",
    summary="Hours, participations and evaluation average",
    dependencies=[Depends(requires_permission("volunteers:read"))],
)
def volunteer_stats(volunteer_id: int):
    client = get_supabase_client()

    try:
        _get_volunteer_or_404(client, volunteer_id)

        participations = (
            client.table("volunteer_participations").select("*").eq("volunteer_id", volunteer_id).execute().data or []
        )
        evaluations = (
            client.table("volunteer_evaluations").select("*").eq("volunteer_id", volunteer_id).execute().data or []
        )
        recognitions = (
            client.table("volunteer_recognitions").select("id").eq("volunteer_id", volunteer_id).execute().data or []
        )

        averages = [evaluation_average(ev) for ev in evaluations]

        return {
            "volunteer_id": volunteer_id,
            "total_hours": round(sum(to_float(p.get("hours_contributed")) for p in participations), 2),
            "participation_count": len(participations),
            "evaluation_count": len(evaluations),
            "average_evaluation": round(sum(averages) / len(averages), 2) if averages else None,
            "recognition_count": len(recognitions),
        }

    except Exception as e:
        raise handle_supabase_error(e, "Failed to build volunteer stats", 500)
