# routers/trees.py

from collections import Counter
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query, UploadFile, File

from dependencies.auth import get_current_user, CurrentUser
from core.permission_helpers import requires_permission
from core.supabase_client import get_supabase_client
from core.code_generator import (
    generate_species_code,
    generate_area_code,
    generate_tree_code,
    detect_area,
)
from core.errors import handle_supabase_error, CodeGenerationError
from core.logging_config import logger
from core.utils import sanitize, utc_now_iso
from models.tree import (
    TreeSpeciesCreate,
    TreeSpeciesUpdate,
    ParkAreaCreate,
    ParkAreaUpdate,
    TreeCreate,
    TreeUpdate,
    TreeMaintenanceCreate,
)
from services.storage import UnifiedStorageService, get_storage
from routers.uploads import store_upload


router = APIRouter(
    prefix="/trees",
    tags=["Trees"],
)


def _fetch_one(client, table: str, row_id: int, label: str) -> dict:
    res = client.table(table).select("*").eq("id", row_id).limit(1).execute()
    if not res.data:
        raise HTTPException(404, f"{label} {row_id} not found")
    return res.data[0]


# ============================================================
# SPECIES
# ============================================================
@router.get("/species", summary="List tree species", dependencies=[Depends(requires_permission("trees:read"))])
def list_species(search: Optional[str] = None, is_endangered: Optional[bool] = None):
    client = get_supabase_client()
    try:
        query = client.table("tree_species").select("*")
        if search:
            query = query.ilike("common_name", f"%{search}%")
        if is_endangered is not None:
            query = query.eq("is_endangered", is_endangered)
        res = query.order("common_name").execute()
        return {"success": True, "data": res.data or []}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch species", 500)


@router.post(
    "/species",
    summary="Create tree species",
    status_code=201,
    dependencies=[Depends(requires_permission("trees:write"))],
)
def create_species(payload: TreeSpeciesCreate):
    client = get_supabase_client()
    data = sanitize(payload.model_dump(mode="json"))

    try:
        data["species_code"] = generate_species_code(client, payload.common_name, payload.scientific_name)
        res = client.table("tree_species").insert(data).execute()
        if not res.data:
            raise HTTPException(500, "Insert returned no data")
        return res.data[0]

    except CodeGenerationError as e:
        raise HTTPException(400, str(e))
    except Exception as e:
        raise handle_supabase_error(e, "Failed to create species", 500)


@router.get("/species/{species_id}", summary="Get tree species", dependencies=[Depends(requires_permission("trees:read"))])
def get_species(species_id: int):
    client = get_supabase_client()
    try:
        return _fetch_one(client, "tree_species", species_id, "Species")
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch species", 500)


@router.put("/species/{species_id}", summary="Update tree species", dependencies=[Depends(requires_permission("trees:write"))])
def update_species(species_id: int, payload: TreeSpeciesUpdate):
    client = get_supabase_client()
    update_data = sanitize(payload.model_dump(mode="json", exclude_unset=True))

    try:
        _fetch_one(client, "tree_species", species_id, "Species")
        update_data["updated_at"] = utc_now_iso()
        res = client.table("tree_species").update(update_data).eq("id", species_id).execute()
        return res.data[0]
    except Exception as e:
        raise handle_supabase_error(e, "Failed to update species", 500)


@router.delete("/species/{species_id}", summary="Delete tree species", dependencies=[Depends(requires_permission("trees:admin"))])
def delete_species(species_id: int):
    client = get_supabase_client()
    try:
        _fetch_one(client, "tree_species", species_id, "Species")

        in_use = client.table("trees").select("id").eq("species_id", species_id).limit(1).execute()
        if in_use.data:
            raise HTTPException(400, "Species has registered trees and cannot be deleted")

        client.table("tree_species").delete().eq("id", species_id).execute()
        return {"success": True, "deleted": species_id}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to delete species", 500)


@router.post(
    "/species/{species_id}/image",
    summary="Upload species image",
    dependencies=[Depends(requires_permission("trees:write"))],
)
async def upload_species_image(
    species_id: int,
    file: UploadFile = File(...),
    storage: UnifiedStorageService = Depends(get_storage),
):
    client = get_supabase_client()
    try:
        species = _fetch_one(client, "tree_species", species_id, "Species")
        stored = await store_upload(file, "species", storage)

        res = client.table("tree_species").update({"image_url": stored.image_url}).eq("id", species_id).execute()
        storage.delete_image(species.get("image_url"))

        return {**res.data[0], "storage_method": stored.method}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to upload species image", 500)


# ============================================================
# PARK AREAS
# ============================================================
@router.get("/areas", summary="List park areas", dependencies=[Depends(requires_permission("trees:read"))])
def list_areas(park_id: Optional[int] = None):
    client = get_supabase_client()
    try:
        query = client.table("park_areas").select("*")
        if park_id is not None:
            query = query.eq("park_id", park_id)
        res = query.order("area_code").execute()
        return {"success": True, "data": res.data or []}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch areas", 500)


@router.post(
    "/areas",
    summary="Create park area",
    status_code=201,
    dependencies=[Depends(requires_permission("trees:write"))],
)
def create_area(payload: ParkAreaCreate):
    client = get_supabase_client()
    data = sanitize(payload.model_dump(mode="json"))

    try:
        _fetch_one(client, "parks", payload.park_id, "Park")
        data["area_code"] = generate_area_code(client, payload.name, payload.park_id)

        res = client.table("park_areas").insert(data).execute()
        if not res.data:
            raise HTTPException(500, "Insert returned no data")
        return res.data[0]

    except CodeGenerationError as e:
        raise HTTPException(400, str(e))
    except Exception as e:
        raise handle_supabase_error(e, "Failed to create area", 500)


@router.put("/areas/{area_id}", summary="Update park area", dependencies=[Depends(requires_permission("trees:write"))])
def update_area(area_id: int, payload: ParkAreaUpdate):
    client = get_supabase_client()
    update_data = sanitize(payload.model_dump(mode="json", exclude_unset=True))

    try:
        _fetch_one(client, "park_areas", area_id, "Area")
        res = client.table("park_areas").update(update_data).eq("id", area_id).execute()
        return res.data[0]
    except Exception as e:
        raise handle_supabase_error(e, "Failed to update area", 500)


@router.delete("/areas/{area_id}", summary="Delete park area", dependencies=[Depends(requires_permission("trees:admin"))])
def delete_area(area_id: int):
    client = get_supabase_client()
    try:
        _fetch_one(client, "park_areas", area_id, "Area")

        in_use = client.table("trees").select("id").eq("area_id", area_id).limit(1).execute()
        if in_use.data:
            raise HTTPException(400, "Area has registered trees and cannot be deleted")

        client.table("park_areas").delete().eq("id", area_id).execute()
        return {"success": True, "deleted": area_id}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to delete area", 500)


# ============================================================
# STATS (before /{tree_id} so the paths are not captured)
# ============================================================
def _tree_rows(client, columns: str) -> list:
    return client.table("trees").select(columns).execute().data or []


@router.get("/stats/by-park", summary="Tree count per park", dependencies=[Depends(requires_permission("trees:read"))])
def stats_by_park():
    client = get_supabase_client()
    try:
        counts = Counter(row.get("park_id") for row in _tree_rows(client, "park_id"))
        parks = {
            p["id"]: p.get("name")
            for p in client.table("parks").select("id, name").execute().data or []
        }
        data = [
            {"park_id": park_id, "park_name": parks.get(park_id), "count": count}
            for park_id, count in counts.most_common()
        ]
        return {"success": True, "data": data}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to build tree stats", 500)


@router.get("/stats/by-species", summary="Tree count per species", dependencies=[Depends(requires_permission("trees:read"))])
def stats_by_species():
    client = get_supabase_client()
    try:
        counts = Counter(row.get("species_id") for row in _tree_rows(client, "species_id"))
        species = {
            s["id"]: s
            for s in client.table("tree_species").select("id, common_name, species_code").execute().data or []
        }
        data = [
            {
                "species_id": species_id,
                "common_name": species.get(species_id, {}).get("common_name"),
                "species_code": species.get(species_id, {}).get("species_code"),
                "count": count,
            }
            for species_id, count in counts.most_common()
        ]
        return {"success": True, "data": data}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to build tree stats", 500)


@router.get("/stats/by-health", summary="Tree count per health status", dependencies=[Depends(requires_permission("trees:read"))])
def stats_by_health(park_id: Optional[int] = None):
    client = get_supabase_client()
    try:
        query = client.table("trees").select("health_status")
        if park_id is not None:
            query = query.eq("park_id", park_id)
        counts = Counter(row.get("health_status") or "Sin evaluar" for row in query.execute().data or [])
        total = sum(counts.values())
        data = [
            {
                "health_status": status,
                "count": count,
                "percentage": round(count / total * 100, 1) if total else 0.0,
            }
            for status, count in counts.most_common()
        ]
        return {"success": True, "total": total, "data": data}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to build tree stats", 500)


# ============================================================
# TREES
# ============================================================
@router.get("", summary="List trees", dependencies=[Depends(requires_permission("trees:read"))])
def list_trees(
    park_id: Optional[int] = None,
    species_id: Optional[int] = None,
    area_id: Optional[int] = None,
    health_status: Optional[str] = None,
    search: Optional[str] = Query(None, description="Partial tree code"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=500),
):
    client = get_supabase_client()
    offset = (page - 1) * limit

    try:
        query = client.table("trees").select("*")
        if park_id is not None:
            query = query.eq("park_id", park_id)
        if species_id is not None:
            query = query.eq("species_id", species_id)
        if area_id is not None:
            query = query.eq("area_id", area_id)
        if health_status:
            query = query.eq("health_status", health_status)
        if search:
            query = query.ilike("tree_code", f"%{search}%")

        res = query.order("tree_code").range(offset, offset + limit - 1).execute()
        return {"success": True, "page": page, "limit": limit, "data": res.data or []}

    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch trees", 500)


@router.post(
    "",
    summary="Register a tree",
    description="""
    When `area_id` is omitted but coordinates are given, the area whose
    polygon contains the point is assigned. The tree code is generated
    from the area (or park) code and the species code.
    """,
    status_code=201,
    dependencies=[Depends(requires_permission("trees:write"))],
)
def create_tree(payload: TreeCreate, current_user: CurrentUser = Depends(get_current_user)):
    client = get_supabase_client()
    data = sanitize(payload.model_dump(mode="json"))

    try:
        _fetch_one(client, "tree_species", payload.species_id, "Species")
        _fetch_one(client, "parks", payload.park_id, "Park")

        area_id = payload.area_id
        if area_id is not None:
            area = _fetch_one(client, "park_areas", area_id, "Area")
            if area.get("park_id") != payload.park_id:
                raise HTTPException(400, "Area does not belong to the selected park")
        elif payload.latitude is not None and payload.longitude is not None:
            area_id = detect_area(client, payload.latitude, payload.longitude, payload.park_id)
            if area_id:
                logger.info(f"Tree placed in area {area_id} by coordinates")

        data["area_id"] = area_id
        data["tree_code"] = generate_tree_code(client, payload.species_id, area_id, payload.park_id)
        data["created_by"] = current_user.id

        res = client.table("trees").insert(data).execute()
        if not res.data:
            raise HTTPException(500, "Insert returned no data")
        return res.data[0]

    except CodeGenerationError as e:
        raise HTTPException(400, str(e))
    except Exception as e:
        raise handle_supabase_error(e, "Failed to register tree", 500)


@router.get("/{tree_id}", summary="Get tree", dependencies=[Depends(requires_permission("trees:read"))])
def get_tree(tree_id: int):
    client = get_supabase_client()
    try:
        tree = _fetch_one(client, "trees", tree_id, "Tree")
        species = client.table("tree_species").select("*").eq("id", tree.get("species_id")).execute().data
        return {**tree, "species": species[0] if species else None}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch tree", 500)


@router.put("/{tree_id}", summary="Update tree", dependencies=[Depends(requires_permission("trees:write"))])
def update_tree(tree_id: int, payload: TreeUpdate):
    """The tree code is permanent; moving a tree to another area keeps it."""
    client = get_supabase_client()
    update_data = sanitize(payload.model_dump(mode="json", exclude_unset=True))

    try:
        _fetch_one(client, "trees", tree_id, "Tree")
        update_data["updated_at"] = utc_now_iso()
        res = client.table("trees").update(update_data).eq("id", tree_id).execute()
        return res.data[0]
    except Exception as e:
        raise handle_supabase_error(e, "Failed to update tree", 500)


@router.delete("/{tree_id}", summary="Delete tree", dependencies=[Depends(requires_permission("trees:admin"))])
def delete_tree(tree_id: int):
    client = get_supabase_client()
    try:
        _fetch_one(client, "trees", tree_id, "Tree")
        client.table("tree_maintenances").delete().eq("tree_id", tree_id).execute()
        client.table("trees").delete().eq("id", tree_id).execute()
        return {"success": True, "deleted": tree_id}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to delete tree", 500)


# ============================================================
# MAINTENANCES
# ============================================================
@router.get("/{tree_id}/maintenances", summary="List tree maintenances", dependencies=[Depends(requires_permission("trees:read"))])
def list_maintenances(tree_id: int):
    client = get_supabase_client()
    try:
        _fetch_one(client, "trees", tree_id, "Tree")
        res = (
            client.table("tree_maintenances")
            .select("*")
            .eq("tree_id", tree_id)
            .order("maintenance_date", desc=True)
            .execute()
        )
        return {"success": True, "data": res.data or []}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch maintenances", 500)


@router.post(
    "/{tree_id}/maintenances",
    summary="Record a maintenance",
    status_code=201,
    dependencies=[Depends(requires_permission("trees:write"))],
)
def create_maintenance(
    tree_id: int,
    payload: TreeMaintenanceCreate,
    current_user: CurrentUser = Depends(get_current_user),
):
    client = get_supabase_client()
    data = sanitize(payload.model_dump(mode="json"))
    data["tree_id"] = tree_id
    data["created_by"] = current_user.id

    try:
        tree = _fetch_one(client, "trees", tree_id, "Tree")

        res = client.table("tree_maintenances").insert(data).execute()
        if not res.data:
            raise HTTPException(500, "Insert returned no data")

        # Only move last_maintenance_date forward; back-filled records keep the newer date
        last = tree.get("last_maintenance_date")
        if not last or str(last) < data["maintenance_date"]:
            client.table("trees").update({
                "last_maintenance_date": data["maintenance_date"],
                "updated_at": utc_now_iso(),
            }).eq("id", tree_id).execute()

        return res.data[0]

    except Exception as e:
        raise handle_supabase_error(e, "Failed to record maintenance", 500)
