# routers/parks.py

import csv
import io
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query, UploadFile, File, Form
from pydantic import ValidationError

from dependencies.auth import get_current_user, CurrentUser
from core.permission_helpers import requires_permission
from core.supabase_client import get_supabase_client
from core.code_generator import generate_park_prefix
from core.errors import handle_supabase_error, CodeGenerationError
from core.cache import cache_get, cache_set, cache_delete_prefix
from core.logging_config import logger
from core.utils import sanitize, utc_now_iso
from models.park import ParkCreate, ParkUpdate
from services.storage import UnifiedStorageService, get_storage
from routers.uploads import store_upload


router = APIRouter(
    prefix="/parks",
    tags=["Parks"],
)

PARKS_CACHE_PREFIX = "parks:"
IMPORT_REQUIRED_COLUMNS = ["name", "address", "latitude", "longitude", "park_type"]


def _get_park_or_404(client, park_id: int, include_deleted: bool = False) -> dict:
    res = client.table("parks").select("*").eq("id", park_id).limit(1).execute()
    if not res.data or (res.data[0].get("is_deleted") and not include_deleted):
        raise HTTPException(404, f"Park {park_id} not found")
    return res.data[0]


# ============================================================
# LIST PARKS
# ============================================================
@router.get(
    "",
    summary="List Parks",
    description="""
    Retrieve parks with optional filtering.

    **Caching:** the unfiltered first page is cached for 5 minutes.
    **Permissions:** Requires `parks:read`.
    """,
    dependencies=[Depends(requires_permission("parks:read"))],
)
def list_parks(
    search: Optional[str] = None,
    municipality: Optional[str] = None,
    park_type: Optional[str] = None,
    status: Optional[str] = None,
    include_deleted: bool = False,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
):
    filtered = any([search, municipality, park_type, status, include_deleted, offset])
    cache_key = f"{PARKS_CACHE_PREFIX}list:{limit}"

    if not filtered:
        cached = cache_get(cache_key)
        if cached is not None:
            return cached

    client = get_supabase_client()

    try:
        query = client.table("parks").select("*")

        if not include_deleted:
            query = query.eq("is_deleted", False)
        if search:
            query = query.ilike("name", f"%{search}%")
        if municipality:
            query = query.ilike("municipality_text", f"%{municipality}%")
        if park_type:
            query = query.eq("park_type", park_type)
        if status:
            query = query.eq("status", status)

        res = query.order("name").range(offset, offset + limit - 1).execute()
        result = {"success": True, "data": res.data or []}

        if not filtered:
            cache_set(cache_key, result, ttl_seconds=300)

        return result

    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch parks", 500)


# ============================================================
# CREATE PARK
# ============================================================
@router.post(
    "",
    summary="Create Park",
    status_code=201,
    dependencies=[Depends(requires_permission("parks:write"))],
)
def create_park(payload: ParkCreate):
    client = get_supabase_client()
    data = sanitize(payload.model_dump(mode="json"))

    try:
        data["code_prefix"] = generate_park_prefix(client, payload.name)
        data["is_deleted"] = False

        insert_res = client.table("parks").insert(data).execute()
        if not insert_res.data:
            raise HTTPException(500, "Insert returned no data")

        cache_delete_prefix(PARKS_CACHE_PREFIX)
        logger.info(f"Park '{payload.name}' created with prefix {data['code_prefix']}")
        return insert_res.data[0]

    except CodeGenerationError as e:
        raise HTTPException(400, str(e))
    except Exception as e:
        raise handle_supabase_error(e, "Failed to create park", 500)


# ============================================================
# CSV IMPORT
# ============================================================
@router.post(
    "/import",
    summary="Import parks from CSV",
    description="""
    Columns `name`, `address`, `latitude`, `longitude` and `park_type` are
    required; any other ParkCreate field may be present. The file is
    validated completely before anything is written: if a row fails, nothing
    is imported and every error is returned with its row number.
    """,
    dependencies=[Depends(requires_permission("parks:write"))],
)
def import_parks(file: UploadFile = File(...)):
    try:
        content = file.file.read().decode("utf-8-sig")
        reader = csv.DictReader(io.StringIO(content))
        rows = list(reader)
    except (UnicodeDecodeError, csv.Error):
        raise HTTPException(400, "Invalid CSV file")

    missing_columns = [c for c in IMPORT_REQUIRED_COLUMNS if c not in (reader.fieldnames or [])]
    if missing_columns:
        raise HTTPException(400, f"Missing required columns: {', '.join(missing_columns)}")

    parks = []
    errors = []

    # Row 1 is the header
    for row_number, row in enumerate(rows, start=2):
        values = {k: v for k, v in sanitize(row).items() if k and v is not None}
        try:
            parks.append(ParkCreate(**values))
        except ValidationError as e:
            for err in e.errors():
                field = ".".join(str(p) for p in err["loc"]) or "row"
                errors.append({"row": row_number, "field": field, "error": err["msg"]})

    if errors:
        raise HTTPException(400, {"message": "CSV contains invalid rows", "errors": errors})

    if not parks:
        raise HTTPException(400, "CSV file has no data rows")

    client = get_supabase_client()
    inserted = []

    try:
        for park in parks:
            data = sanitize(park.model_dump(mode="json"))
            data["code_prefix"] = generate_park_prefix(client, park.name)
            data["is_deleted"] = False
            res = client.table("parks").insert(data).execute()
            inserted.extend(res.data or [])

    except CodeGenerationError as e:
        raise HTTPException(400, str(e))
    except Exception as e:
        raise handle_supabase_error(e, "Failed to import parks", 500)
    finally:
        cache_delete_prefix(PARKS_CACHE_PREFIX)

    logger.info(f"Imported {len(inserted)} parks from CSV")
    return {"success": True, "inserted": len(inserted), "data": inserted}


# ============================================================
# GET / UPDATE / DELETE
# ============================================================
@router.get(
    "/{park_id}",
    summary="Get Park",
    dependencies=[Depends(requires_permission("parks:read"))],
)
def get_park(park_id: int):
    client = get_supabase_client()
    try:
        return _get_park_or_404(client, park_id)
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch park", 500)


@router.put(
    "/{park_id}",
    summary="Update Park",
    dependencies=[Depends(requires_permission("parks:write"))],
)
def update_park(park_id: int, payload: ParkUpdate):
    client = get_supabase_client()
    update_data = sanitize(payload.model_dump(mode="json", exclude_unset=True))

    try:
        _get_park_or_404(client, park_id)

        if not update_data:
            raise HTTPException(400, "No fields to update")

        update_data["updated_at"] = utc_now_iso()
        res = client.table("parks").update(update_data).eq("id", park_id).execute()
        if not res.data:
            raise HTTPException(404, f"Park {park_id} not found")

        cache_delete_prefix(PARKS_CACHE_PREFIX)
        return res.data[0]

    except Exception as e:
        raise handle_supabase_error(e, "Failed to update park", 500)


@router.delete(
    "/{park_id}",
    summary="Delete Park (soft)",
    dependencies=[Depends(requires_permission("parks:admin"))],
)
def delete_park(park_id: int, current_user: CurrentUser = Depends(get_current_user)):
    client = get_supabase_client()

    try:
        _get_park_or_404(client, park_id)
        client.table("parks").update({
            "is_deleted": True,
            "updated_at": utc_now_iso(),
        }).eq("id", park_id).execute()

        cache_delete_prefix(PARKS_CACHE_PREFIX)
        logger.info(f"Park {park_id} soft-deleted by {current_user.id}")
        return {"success": True, "deleted": park_id}

    except Exception as e:
        raise handle_supabase_error(e, "Failed to delete park", 500)


# ============================================================
# DASHBOARD SUMMARY
# ============================================================
@router.get(
    "/{park_id}/summary",
    summary="Counts for the park dashboard",
    dependencies=[Depends(requires_permission("parks:read"))],
)
def park_summary(park_id: int):
    client = get_supabase_client()

    def count(table: str, column: str) -> int:
        res = client.table(table).select("id").eq(column, park_id).execute()
        return len(res.data or [])

    try:
        park = _get_park_or_404(client, park_id)
        return {
            "park_id": park_id,
            "name": park.get("name"),
            "code_prefix": park.get("code_prefix"),
            "trees": count("trees", "park_id"),
            "areas": count("park_areas", "park_id"),
            "activities": count("activities", "park_id"),
            "volunteers": count("volunteers", "preferred_park_id"),
            "images": count("park_images", "park_id"),
        }

    except Exception as e:
        raise handle_supabase_error(e, "Failed to build park summary", 500)


# ============================================================
# PARK IMAGES
# ============================================================
@router.get(
    "/{park_id}/images",
    summary="List park images",
    dependencies=[Depends(requires_permission("parks:read"))],
)
def list_park_images(park_id: int):
    client = get_supabase_client()
    try:
        res = (
            client.table("park_images")
            .select("*")
            .eq("park_id", park_id)
            .order("is_primary", desc=True)
            .execute()
        )
        return {"success": True, "data": res.data or []}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch park images", 500)


@router.post(
    "/{park_id}/images",
    summary="Upload a park image",
    status_code=201,
    dependencies=[Depends(requires_permission("parks:write"))],
)
async def upload_park_image(
    park_id: int,
    file: UploadFile = File(...),
    caption: Optional[str] = Form(None),
    is_primary: bool = Form(False),
    storage: UnifiedStorageService = Depends(get_storage),
):
    client = get_supabase_client()

    try:
        _get_park_or_404(client, park_id)

        existing = client.table("park_images").select("id").eq("park_id", park_id).execute().data or []
        # First image of a park becomes its cover
        is_primary = is_primary or not existing

        stored = await store_upload(file, "parks", storage)

        if is_primary:
            client.table("park_images").update({"is_primary": False}).eq("park_id", park_id).execute()

        res = client.table("park_images").insert({
            "park_id": park_id,
            "image_url": stored.image_url,
            "caption": (caption or "").strip() or None,
            "is_primary": is_primary,
        }).execute()

        if not res.data:
            storage.delete_image(stored.image_url)
            raise HTTPException(500, "Insert returned no data")

        return {**res.data[0], "storage_method": stored.method}

    except Exception as e:
        raise handle_supabase_error(e, "Failed to upload park image", 500)


@router.put(
    "/{park_id}/images/{image_id}/primary",
    summary="Set the park's primary image",
    dependencies=[Depends(requires_permission("parks:write"))],
)
def set_primary_image(park_id: int, image_id: int):
    client = get_supabase_client()

    try:
        res = client.table("park_images").select("*").eq("id", image_id).eq("park_id", park_id).execute()
        if not res.data:
            raise HTTPException(404, "Image not found")

        client.table("park_images").update({"is_primary": False}).eq("park_id", park_id).execute()
        updated = client.table("park_images").update({"is_primary": True}).eq("id", image_id).execute()
        return updated.data[0] if updated.data else {**res.data[0], "is_primary": True}

    except Exception as e:
        raise handle_supabase_error(e, "Failed to set primary image", 500)


@router.delete(
    "/{park_id}/images/{image_id}",
    summary="Delete a park image",
    dependencies=[Depends(requires_permission("parks:write"))],
)
def delete_park_image(
    park_id: int,
    image_id: int,
    storage: UnifiedStorageService = Depends(get_storage),
):
    client = get_supabase_client()

    try:
        res = client.table("park_images").select("*").eq("id", image_id).eq("park_id", park_id).execute()
        if not res.data:
            raise HTTPException(404, "Image not found")

        image = res.data[0]
        client.table("park_images").delete().eq("id", image_id).execute()

        file_removed = storage.delete_image(image.get("image_url"))
        return {"success": True, "deleted": image_id, "file_removed": file_removed}

    except Exception as e:
        raise handle_supabase_error(e, "Failed to delete park image", 500)
