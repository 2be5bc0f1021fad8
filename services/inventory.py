# services/inventory.py

"""
Warehouse stock bookkeeping.

Every movement carries a positive quantity; its type decides the sign.
The stock row for (consumable, park) is created on the first incoming
movement and is never allowed to go below zero.
"""

from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException

from core.logging_config import logger
from core.utils import to_float, parse_timestamp


INCOMING_PREFIX = "entrada_"
INCOMING_ADJUSTMENTS = {"ajuste_positivo", "conteo_fisico"}
CONSUMPTION_TYPES = {"salida_consumo", "salida_transferencia", "salida_merma", "salida_robo"}


def is_incoming(movement_type: str) -> bool:
    return movement_type.startswith(INCOMING_PREFIX) or movement_type in INCOMING_ADJUSTMENTS


def signed_quantity(movement_type: str, quantity: float) -> float:
    quantity = abs(float(quantity))
    return quantity if is_incoming(movement_type) else -quantity


def _find_stock_row(client, consumable_id: int, park_id: Optional[int]):
    query = client.table("inventory_stock").select("*").eq("consumable_id", consumable_id)
    query = query.eq("park_id", park_id) if park_id is not None else query.is_("park_id", "null")
    res = query.limit(1).execute()
    return res.data[0] if res.data else None


# ============================================================
# Apply a movement
# ============================================================
def apply_movement(client, movement: dict, user_id: Optional[str] = None) -> dict:
    """
    Record a movement and update stock. Returns the inserted movement row
    (with previous_stock / new_stock filled in).

    Raises 404 for an unknown consumable, 400 for an inactive one or when
    the result would be negative.
    """
    consumable_id = movement["consumable_id"]
    park_id = movement.get("park_id")
    movement_type = str(movement["movement_type"])

    consumable_res = (
        client.table("consumables")
        .select("id, name, unit_cost, is_active")
        .eq("id", consumable_id)
        .limit(1)
        .execute()
    )
    if not consumable_res.data:
        raise HTTPException(404, f"Consumable {consumable_id} not found")
    consumable = consumable_res.data[0]
    if consumable.get("is_active") is False:
        raise HTTPException(400, f"Consumable '{consumable['name']}' is inactive")

    delta = signed_quantity(movement_type, movement["quantity"])
    stock = _find_stock_row(client, consumable_id, park_id)

    previous = to_float(stock.get("quantity")) if stock else 0.0
    new_quantity = previous + delta

    if new_quantity < 0:
        raise HTTPException(
            400,
            f"Insufficient stock for '{consumable['name']}': available {previous:g}, requested {abs(delta):g}",
        )

    now_iso = datetime.now(timezone.utc).isoformat()

    unit_cost = movement.get("unit_cost")
    if unit_cost is None:
        unit_cost = consumable.get("unit_cost")
    total_cost = round(abs(delta) * to_float(unit_cost), 2) if unit_cost is not None else None

    row = {
        **movement,
        "movement_type": movement_type,
        "quantity": abs(delta),
        "unit_cost": unit_cost,
        "total_cost": total_cost,
        "previous_stock": previous,
        "new_stock": new_quantity,
        "movement_date": now_iso,
        "created_by": user_id,
    }

    # The movement row goes in first: stock never changes without a ledger entry
    inserted = client.table("inventory_movements").insert(row).execute()
    if not inserted.data:
        raise HTTPException(500, "Insert returned no data")
    movement_row = inserted.data[0]

    try:
        if stock:
            reserved = to_float(stock.get("reserved_quantity"))
            client.table("inventory_stock").update({
                "quantity": new_quantity,
                "available_quantity": max(new_quantity - reserved, 0),
                "last_movement_date": now_iso,
                "updated_at": now_iso,
            }).eq("id", stock["id"]).execute()
        else:
            client.table("inventory_stock").insert({
                "consumable_id": consumable_id,
                "park_id": park_id,
                "quantity": new_quantity,
                "reserved_quantity": 0,
                "available_quantity": new_quantity,
                "last_movement_date": now_iso,
            }).execute()
    except Exception:
        logger.error(f"[warehouse] Stock update failed, removing movement {movement_row['id']}")
        client.table("inventory_movements").delete().eq("id", movement_row["id"]).execute()
        raise

    logger.info(
        f"[warehouse] {movement_type} consumable={consumable_id} park={park_id} "
        f"{previous:g} -> {new_quantity:g}"
    )
    return movement_row


# ============================================================
# Low stock
# ============================================================
def low_stock_items(client) -> list:
    """Stock rows of active consumables at or below their minimum."""
    consumables = {
        c["id"]: c
        for c in client.table("consumables").select("*").eq("is_active", True).execute().data or []
    }
    stock_rows = client.table("inventory_stock").select("*").execute().data or []

    items = []
    for row in stock_rows:
        consumable = consumables.get(row.get("consumable_id"))
        if not consumable:
            continue
        quantity = to_float(row.get("quantity"))
        minimum = to_float(consumable.get("minimum_stock"))
        if quantity <= minimum:
            items.append({
                "id": row["id"],
                "consumable_id": consumable["id"],
                "consumable_name": consumable.get("name"),
                "consumable_code": consumable.get("code"),
                "park_id": row.get("park_id"),
                "quantity": quantity,
                "minimum_stock": minimum,
            })

    return sorted(items, key=lambda item: item["quantity"] - item["minimum_stock"])


# ============================================================
# Dashboard
# ============================================================
def dashboard(client, now: Optional[datetime] = None) -> dict:
    now = now or datetime.now(timezone.utc)
    week_ago = now - timedelta(days=7)
    month_ago = now - timedelta(days=30)

    total_consumables = len(
        client.table("consumables").select("id").eq("is_active", True).execute().data or []
    )
    total_categories = len(
        client.table("consumable_categories").select("id").eq("is_active", True).execute().data or []
    )

    movements = (
        client.table("inventory_movements")
        .select("*")
        .gte("movement_date", month_ago.isoformat())
        .execute()
        .data
        or []
    )

    recent_count = 0
    by_type = defaultdict(lambda: {"count": 0, "total_value": 0.0})
    consumed = defaultdict(lambda: {"total_quantity": 0.0, "total_value": 0.0})

    for movement in movements:
        moved_at = parse_timestamp(movement.get("movement_date"))
        if moved_at and moved_at >= week_ago:
            recent_count += 1

        kind = movement.get("movement_type")
        by_type[kind]["count"] += 1
        by_type[kind]["total_value"] += to_float(movement.get("total_cost"))

        if kind in CONSUMPTION_TYPES:
            entry = consumed[movement.get("consumable_id")]
            entry["total_quantity"] += abs(to_float(movement.get("quantity")))
            entry["total_value"] += abs(to_float(movement.get("total_cost")))

    names = {}
    if consumed:
        names = {
            c["id"]: c
            for c in client.table("consumables")
            .select("id, name, code")
            .in_("id", list(consumed.keys()))
            .execute()
            .data
            or []
        }

    top_consumables = sorted(
        (
            {
                "consumable_id": consumable_id,
                "consumable_name": names.get(consumable_id, {}).get("name"),
                "consumable_code": names.get(consumable_id, {}).get("code"),
                **totals,
            }
            for consumable_id, totals in consumed.items()
        ),
        key=lambda item: item["total_quantity"],
        reverse=True,
    )[:5]

    low_stock = low_stock_items(client)

    return {
        "summary": {
            "total_consumables": total_consumables,
            "total_categories": total_categories,
            "low_stock_count": len(low_stock),
            "recent_movements": recent_count,
        },
        "movements_by_type": [
            {"movement_type": kind, **values} for kind, values in sorted(by_type.items())
        ],
        "top_consumables": top_consumables,
        "low_stock_items": low_stock[:10],
    }
