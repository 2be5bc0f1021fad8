# routers/warehouse.py

from typing import Optional
from datetime import date

from fastapi import APIRouter, HTTPException, Depends, Query

from dependencies.auth import get_current_user, CurrentUser
from core.permission_helpers import requires_permission
from core.supabase_client import get_supabase_client
from core.errors import handle_supabase_error
from core.logging_config import logger
from core.utils import sanitize, utc_now_iso, to_float
from models.warehouse import (
    CategoryCreate,
    CategoryUpdate,
    ConsumableCreate,
    ConsumableUpdate,
    StockCreate,
    StockUpdate,
    MovementCreate,
)
from services import inventory


router = APIRouter(
    prefix="/warehouse",
    tags=["Warehouse"],
)


def build_category_tree(categories: list) -> list:
    """Nest flat category rows under their parent_id. Orphans become roots."""
    nodes = {c["id"]: {**c, "children": []} for c in categories}
    roots = []
    for category in categories:
        node = nodes[category["id"]]
        parent = nodes.get(category.get("parent_id"))
        if parent is not None and parent is not node:
            parent["children"].append(node)
        else:
            roots.append(node)
    return roots


# ============================================================
# CATEGORIES
# ============================================================
@router.get(
    "/categories",
    summary="List consumable categories",
    dependencies=[Depends(requires_permission("warehouse:read"))],
)
def list_categories(include_inactive: bool = False, parent_id: Optional[int] = None):
    client = get_supabase_client()
    try:
        query = client.table("consumable_categories").select("*")
        if not include_inactive:
            query = query.eq("is_active", True)
        if parent_id is not None:
            query = query.eq("parent_id", parent_id)
        res = query.order("name").execute()
        return {"success": True, "data": res.data or []}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch categories", 500)


@router.get(
    "/categories/parents",
    summary="Top level categories",
    dependencies=[Depends(requires_permission("warehouse:read"))],
)
def list_parent_categories():
    client = get_supabase_client()
    try:
        res = (
            client.table("consumable_categories")
            .select("*")
            .eq("is_active", True)
            .is_("parent_id", "null")
            .order("name")
            .execute()
        )
        return {"success": True, "data": res.data or []}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch parent categories", 500)


@router.get(
    "/categories/tree/structure",
    summary="Categories as a nested tree",
    dependencies=[Depends(requires_permission("warehouse:read"))],
)
def category_tree():
    client = get_supabase_client()
    try:
        rows = client.table("consumable_categories").select("*").eq("is_active", True).order("name").execute().data or []
        return {"success": True, "data": build_category_tree(rows)}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to build category tree", 500)


@router.post(
    "/categories",
    summary="Create category",
    status_code=201,
    dependencies=[Depends(requires_permission("warehouse:write"))],
)
def create_category(payload: CategoryCreate):
    client = get_supabase_client()
    data = sanitize(payload.model_dump())

    try:
        if payload.parent_id is not None:
            parent = client.table("consumable_categories").select("id").eq("id", payload.parent_id).execute()
            if not parent.data:
                raise HTTPException(400, f"Parent category {payload.parent_id} does not exist")

        data["is_active"] = True
        res = client.table("consumable_categories").insert(data).execute()
        if not res.data:
            raise HTTPException(500, "Insert returned no data")
        return res.data[0]

    except Exception as e:
        raise handle_supabase_error(e, "Failed to create category", 500)


@router.put(
    "/categories/{category_id}",
    summary="Update category",
    dependencies=[Depends(requires_permission("warehouse:write"))],
)
def update_category(category_id: int, payload: CategoryUpdate):
    client = get_supabase_client()
    update_data = sanitize(payload.model_dump(exclude_unset=True))

    if update_data.get("parent_id") == category_id:
        raise HTTPException(400, "A category cannot be its own parent")

    try:
        update_data["updated_at"] = utc_now_iso()
        res = client.table("consumable_categories").update(update_data).eq("id", category_id).execute()
        if not res.data:
            raise HTTPException(404, f"Category {category_id} not found")
        return res.data[0]
    except Exception as e:
        raise handle_supabase_error(e, "Failed to update category", 500)


@router.delete(
    "/categories/{category_id}",
    summary="Deactivate category",
    dependencies=[Depends(requires_permission("warehouse:admin"))],
)
def delete_category(category_id: int):
    client = get_supabase_client()
    try:
        children = (
            client.table("consumable_categories")
            .select("id")
            .eq("parent_id", category_id)
            .eq("is_active", True)
            .execute()
        )
        if children.data:
            raise HTTPException(400, "Category has active subcategories")

        res = (
            client.table("consumable_categories")
            .update({"is_active": False, "updated_at": utc_now_iso()})
            .eq("id", category_id)
            .execute()
        )
        if not res.data:
            raise HTTPException(404, f"Category {category_id} not found")
        return {"success": True, "deleted": category_id}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to delete category", 500)


# ============================================================
# CONSUMABLES
# ============================================================
@router.get(
    "/consumables",
    summary="List consumables",
    dependencies=[Depends(requires_permission("warehouse:read"))],
)
def list_consumables(
    category_id: Optional[int] = None,
    search: Optional[str] = None,
    include_inactive: bool = False,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
):
    client = get_supabase_client()
    try:
        query = client.table("consumables").select("*")
        if not include_inactive:
            query = query.eq("is_active", True)
        if category_id is not None:
            query = query.eq("category_id", category_id)
        if search:
            query = query.ilike("name", f"%{search}%")
        res = query.order("name").range(offset, offset + limit - 1).execute()
        return {"success": True, "data": res.data or []}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch consumables", 500)


@router.post(
    "/consumables",
    summary="Create consumable",
    status_code=201,
    dependencies=[Depends(requires_permission("warehouse:write"))],
)
def create_consumable(payload: ConsumableCreate):
    client = get_supabase_client()
    data = sanitize(payload.model_dump())
    data["code"] = data["code"].upper()

    try:
        category = client.table("consumable_categories").select("id").eq("id", payload.category_id).execute()
        if not category.data:
            raise HTTPException(400, f"Category {payload.category_id} does not exist")

        duplicate = client.table("consumables").select("id").eq("code", data["code"]).execute()
        if duplicate.data:
            raise HTTPException(400, f"Consumable code {data['code']} already exists")

        data["is_active"] = True
        res = client.table("consumables").insert(data).execute()
        if not res.data:
            raise HTTPException(500, "Insert returned no data")
        return res.data[0]

    except Exception as e:
        raise handle_supabase_error(e, "Failed to create consumable", 500)


@router.get(
    "/consumables/{consumable_id}",
    summary="Get consumable with its stock",
    dependencies=[Depends(requires_permission("warehouse:read"))],
)
def get_consumable(consumable_id: int):
    client = get_supabase_client()
    try:
        res = client.table("consumables").select("*").eq("id", consumable_id).execute()
        if not res.data:
            raise HTTPException(404, f"Consumable {consumable_id} not found")

        stock = client.table("inventory_stock").select("*").eq("consumable_id", consumable_id).execute().data or []
        return {
            **res.data[0],
            "stock": stock,
            "total_stock": sum(to_float(s.get("quantity")) for s in stock),
        }
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch consumable", 500)


@router.put(
    "/consumables/{consumable_id}",
    summary="Update consumable",
    dependencies=[Depends(requires_permission("warehouse:write"))],
)
def update_consumable(consumable_id: int, payload: ConsumableUpdate):
    client = get_supabase_client()
    update_data = sanitize(payload.model_dump(exclude_unset=True))
    if update_data.get("code"):
        update_data["code"] = update_data["code"].upper()

    try:
        update_data["updated_at"] = utc_now_iso()
        res = client.table("consumables").update(update_data).eq("id", consumable_id).execute()
        if not res.data:
            raise HTTPException(404, f"Consumable {consumable_id} not found")
        return res.data[0]
    except Exception as e:
        raise handle_supabase_error(e, "Failed to update consumable", 500)


@router.delete(
    "/consumables/{consumable_id}",
    summary="Deactivate consumable",
    dependencies=[Depends(requires_permission("warehouse:admin"))],
)
def delete_consumable(consumable_id: int):
    client = get_supabase_client()
    try:
        res = (
            client.table("consumables")
            .update({"is_active": False, "updated_at": utc_now_iso()})
            .eq("id", consumable_id)
            .execute()
        )
        if not res.data:
            raise HTTPException(404, f"Consumable {consumable_id} not found")
        return {"success": True, "deleted": consumable_id}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to delete consumable", 500)


# ============================================================
# STOCK
# ============================================================
@router.get(
    "/stock",
    summary="Stock per park with low-stock flag",
    dependencies=[Depends(requires_permission("warehouse:read"))],
)
def list_stock(
    park_id: Optional[int] = None,
    consumable_id: Optional[int] = None,
    low_stock_only: bool = False,
):
    client = get_supabase_client()
    try:
        query = client.table("inventory_stock").select("*")
        if park_id is not None:
            query = query.eq("park_id", park_id)
        if consumable_id is not None:
            query = query.eq("consumable_id", consumable_id)
        rows = query.execute().data or []

        consumable_ids = list({r["consumable_id"] for r in rows})
        consumables = {}
        if consumable_ids:
            consumables = {
                c["id"]: c
                for c in client.table("consumables").select("*").in_("id", consumable_ids).execute().data or []
            }

        data = []
        for row in rows:
            consumable = consumables.get(row["consumable_id"], {})
            quantity = to_float(row.get("quantity"))
            minimum = to_float(consumable.get("minimum_stock"))
            item = {
                **row,
                "consumable_name": consumable.get("name"),
                "consumable_code": consumable.get("code"),
                "unit_of_measure": consumable.get("unit_of_measure"),
                "available_quantity": quantity - to_float(row.get("reserved_quantity")),
                "is_low_stock": quantity <= minimum,
            }
            if low_stock_only and not item["is_low_stock"]:
                continue
            data.append(item)

        return {"success": True, "data": data}

    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch stock", 500)


@router.post(
    "/stock",
    summary="Create stock row",
    status_code=201,
    dependencies=[Depends(requires_permission("warehouse:write"))],
)
def create_stock(payload: StockCreate):
    client = get_supabase_client()
    data = sanitize(payload.model_dump())

    try:
        consumable = client.table("consumables").select("id").eq("id", payload.consumable_id).execute()
        if not consumable.data:
            raise HTTPException(400, f"Consumable {payload.consumable_id} does not exist")

        query = client.table("inventory_stock").select("id").eq("consumable_id", payload.consumable_id)
        query = query.eq("park_id", payload.park_id) if payload.park_id is not None else query.is_("park_id", "null")
        if query.execute().data:
            raise HTTPException(400, "Stock row already exists for this consumable and park; use a movement")

        data["last_updated"] = utc_now_iso()
        res = client.table("inventory_stock").insert(data).execute()
        if not res.data:
            raise HTTPException(500, "Insert returned no data")
        return res.data[0]

    except Exception as e:
        raise handle_supabase_error(e, "Failed to create stock row", 500)


@router.put(
    "/stock/{stock_id}",
    summary="Update stock row",
    dependencies=[Depends(requires_permission("warehouse:write"))],
)
def update_stock(stock_id: int, payload: StockUpdate):
    client = get_supabase_client()
    update_data = sanitize(payload.model_dump(exclude_unset=True))

    try:
        update_data["last_updated"] = utc_now_iso()
        res = client.table("inventory_stock").update(update_data).eq("id", stock_id).execute()
        if not res.data:
            raise HTTPException(404, f"Stock row {stock_id} not found")
        return res.data[0]
    except Exception as e:
        raise handle_supabase_error(e, "Failed to update stock row", 500)


# ============================================================
# MOVEMENTS
# ============================================================
@router.get(
    "/movements",
    summary="List movements",
    dependencies=[Depends(requires_permission("warehouse:read"))],
)
def list_movements(
    consumable_id: Optional[int] = None,
    park_id: Optional[int] = None,
    movement_type: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
):
    client = get_supabase_client()
    offset = (page - 1) * limit

    try:
        query = client.table("inventory_movements").select("*")
        if consumable_id is not None:
            query = query.eq("consumable_id", consumable_id)
        if park_id is not None:
            query = query.eq("park_id", park_id)
        if movement_type:
            query = query.eq("movement_type", movement_type)
        if date_from:
            query = query.gte("movement_date", date_from.isoformat())
        if date_to:
            query = query.lte("movement_date", f"{date_to.isoformat()}T23:59:59")

        res = query.order("movement_date", desc=True).range(offset, offset + limit - 1).execute()
        return {"success": True, "data": res.data or [], "page": page, "limit": limit}

    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch movements", 500)


@router.post(
    "/movements",
    summary="Record a movement and update stock",
    status_code=201,
    dependencies=[Depends(requires_permission("warehouse:write"))],
)
def create_movement(payload: MovementCreate, current_user: CurrentUser = Depends(get_current_user)):
    client = get_supabase_client()

    try:
        movement = inventory.apply_movement(client, sanitize(payload.model_dump(mode="json")), current_user.id)
        logger.info(
            f"Movement {payload.movement_type.value} x{payload.quantity} "
            f"on consumable {payload.consumable_id} by {current_user.id}"
        )
        return movement

    except Exception as e:
        raise handle_supabase_error(e, "Failed to record movement", 500)


# ============================================================
# DASHBOARD
# ============================================================
@router.get(
    "/dashboard",
    summary="Warehouse dashboard",
    dependencies=[Depends(requires_permission("warehouse:read"))],
)
def warehouse_dashboard():
    client = get_supabase_client()
    try:
        return inventory.dashboard(client)
    except Exception as e:
        raise handle_supabase_error(e, "Failed to build warehouse dashboard", 500)


@router.get(
    "/low-stock",
    summary="Stock rows at or below minimum",
    dependencies=[Depends(requires_permission("warehouse:read"))],
)
def low_stock():
    client = get_supabase_client()
    try:
        return {"success": True, "data": inventory.low_stock_items(client)}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch low stock items", 500)
