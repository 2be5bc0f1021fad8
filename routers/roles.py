# routers/roles.py

from typing import Optional
from fastapi import APIRouter, HTTPException, Depends, Query

from dependencies.auth import get_current_user, CurrentUser
from core.permissions import ROLES, ROLES_BY_SLUG, ROLE_PERMISSIONS, MODULES, ACTIONS
from core.permission_helpers import (
    requires_permission,
    has_permission,
    permission_matrix,
    resolve_permission,
    get_role_level,
)
from core.supabase_client import get_supabase_client
from core.errors import handle_supabase_error
from core.logging_config import logger
from core.utils import utc_now_iso
from models.role import UserRoleAssign


router = APIRouter(
    prefix="/roles",
    tags=["Roles"],
)


def _expanded_role_permissions(slug: str) -> dict:
    matrix = ROLE_PERMISSIONS[slug]
    if matrix.get("all") is True:
        return {module: list(ACTIONS) for module in MODULES}
    return {module: list(matrix.get(module, [])) for module in MODULES}


# ============================================================
# ROLE CATALOG (static)
# ============================================================
@router.get("", summary="List system roles ordered by level")
def list_roles(current_user: CurrentUser = Depends(get_current_user)):
    return {
        "success": True,
        "data": sorted(ROLES, key=lambda role: role["level"]),
    }


@router.get("/modules", summary="Permission modules and actions")
def list_modules(current_user: CurrentUser = Depends(get_current_user)):
    return {"modules": MODULES, "actions": ACTIONS}


# ============================================================
# CURRENT USER PERMISSIONS
# ============================================================
@router.get("/me/permissions", summary="Effective permissions of the current user")
def my_permissions(current_user: CurrentUser = Depends(get_current_user)):
    return {
        "role": current_user.role,
        "level": get_role_level(current_user.role),
        "permissions": permission_matrix(current_user),
    }


@router.get("/me/check", summary="Check a single permission for the current user")
def check_my_permission(
    permission: str = Query(..., description="e.g. 'parks:write' or 'marketing:read'"),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        resolve_permission(permission)
    except ValueError as e:
        raise HTTPException(400, str(e))

    return {"permission": permission, "allowed": has_permission(current_user, permission)}


# ============================================================
# USER ROLE ASSIGNMENTS (user_roles table)
# ============================================================
@router.get(
    "/assignments",
    summary="List user role assignments",
    dependencies=[Depends(requires_permission("roles:admin"))],
)
def list_assignments(user_id: Optional[str] = None, role_id: Optional[str] = None):
    client = get_supabase_client()

    try:
        query = client.table("user_roles").select("*")
        if user_id:
            query = query.eq("user_id", user_id)
        if role_id:
            query = query.eq("role_id", role_id)
        res = query.order("assigned_at", desc=True).execute()
        return {"success": True, "data": res.data or []}

    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch role assignments", 500)


@router.post(
    "/assignments",
    summary="Assign a role to a user",
    dependencies=[Depends(requires_permission("roles:admin"))],
)
def assign_role(payload: UserRoleAssign, current_user: CurrentUser = Depends(get_current_user)):
    client = get_supabase_client()

    try:
        existing = (
            client.table("user_roles")
            .select("id")
            .eq("user_id", payload.user_id)
            .eq("role_id", payload.role_id)
            .execute()
        )
        if existing.data:
            raise HTTPException(400, f"User already has role '{payload.role_id}'")

        if payload.is_primary:
            client.table("user_roles").update({"is_primary": False}).eq("user_id", payload.user_id).execute()

        res = client.table("user_roles").insert({
            **payload.model_dump(),
            "assigned_by": current_user.id,
            "assigned_at": utc_now_iso(),
        }).execute()

        if not res.data:
            raise HTTPException(500, "Insert returned no data")

        if payload.is_primary:
            _sync_primary_role(client, payload.user_id, payload.role_id)

        logger.info(f"Role '{payload.role_id}' assigned to {payload.user_id} by {current_user.id}")
        return {"success": True, "data": res.data[0]}

    except Exception as e:
        raise handle_supabase_error(e, "Failed to assign role", 500)


@router.put(
    "/assignments/{assignment_id}/primary",
    summary="Make an assignment the user's primary role",
    dependencies=[Depends(requires_permission("roles:admin"))],
)
def set_primary_role(assignment_id: int):
    client = get_supabase_client()

    try:
        res = client.table("user_roles").select("*").eq("id", assignment_id).execute()
        if not res.data:
            raise HTTPException(404, "Role assignment not found")

        assignment = res.data[0]
        client.table("user_roles").update({"is_primary": False}).eq("user_id", assignment["user_id"]).execute()
        updated = client.table("user_roles").update({"is_primary": True}).eq("id", assignment_id).execute()

        _sync_primary_role(client, assignment["user_id"], assignment["role_id"])
        return {"success": True, "data": updated.data[0] if updated.data else assignment}

    except Exception as e:
        raise handle_supabase_error(e, "Failed to set primary role", 500)


@router.delete(
    "/assignments/{assignment_id}",
    summary="Remove a role assignment",
    dependencies=[Depends(requires_permission("roles:admin"))],
)
def remove_assignment(assignment_id: int):
    client = get_supabase_client()

    try:
        res = client.table("user_roles").delete().eq("id", assignment_id).execute()
        if not res.data:
            raise HTTPException(404, "Role assignment not found")
        return {"success": True, "deleted": assignment_id}

    except Exception as e:
        raise handle_supabase_error(e, "Failed to remove role assignment", 500)


def _sync_primary_role(client, user_id: str, role_id: str):
    """Mirror the primary role into auth user_metadata, which is what get_current_user reads."""
    try:
        resp = client.auth.admin.get_user_by_id(user_id)
        if resp and resp.user:
            meta = {**(resp.user.user_metadata or {}), "role": role_id}
            client.auth.admin.update_user_by_id(user_id, {"user_metadata": meta})
    except Exception as e:
        logger.warning(f"Could not sync primary role for {user_id}: {e}")


# ============================================================
# SINGLE ROLE (keep last: /{slug} would shadow the routes above)
# ============================================================
@router.get("/{slug}", summary="Get a role by slug")
def get_role(slug: str, current_user: CurrentUser = Depends(get_current_user)):
    role = ROLES_BY_SLUG.get(slug)
    if not role:
        raise HTTPException(404, f"Role '{slug}' not found")
    return {"success": True, "data": role}


@router.get("/{slug}/permissions", summary="Permission matrix of a role")
def get_role_permissions(slug: str, current_user: CurrentUser = Depends(get_current_user)):
    if slug not in ROLES_BY_SLUG:
        raise HTTPException(404, f"Role '{slug}' not found")
    return {"role": slug, "permissions": _expanded_role_permissions(slug)}
