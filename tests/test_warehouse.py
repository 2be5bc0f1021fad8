# tests/test_warehouse.py

"""
Tests for the warehouse: categories, consumables, stock and movements.
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from routers.warehouse import build_category_tree
from services import inventory


@pytest.fixture
def consumable(client, db, admin):
    category = client.post("/warehouse/categories", json={"name": "Fertilizantes"}).json()
    response = client.post("/warehouse/consumables", json={
        "code": "fer-001",
        "name": "Composta",
        "category_id": category["id"],
        "unit_of_measure": "kg",
        "minimum_stock": 10,
        "unit_cost": 2.5,
    })
    assert response.status_code == 201, response.text
    return response.json()


def move(client, consumable_id, movement_type, quantity, **extra):
    return client.post("/warehouse/movements", json={
        "consumable_id": consumable_id,
        "movement_type": movement_type,
        "quantity": quantity,
        **extra,
    })


# ------------------------------------------------------------------
# Pure helpers
# ------------------------------------------------------------------
@pytest.mark.parametrize(
    "movement_type, expected",
    [
        ("entrada_compra", 5.0),
        ("entrada_donacion", 5.0),
        ("ajuste_positivo", 5.0),
        ("conteo_fisico", 5.0),
        ("salida_consumo", -5.0),
        ("salida_merma", -5.0),
        ("ajuste_negativo", -5.0),
    ],
)
def test_signed_quantity(movement_type, expected):
    assert inventory.signed_quantity(movement_type, 5) == expected
    assert inventory.signed_quantity(movement_type, -5) == expected


def test_build_category_tree():
    rows = [
        {"id": 1, "name": "Herramientas", "parent_id": None},
        {"id": 2, "name": "Manuales", "parent_id": 1},
        {"id": 3, "name": "Huérfana", "parent_id": 99},
    ]
    tree = build_category_tree(rows)
    assert [node["name"] for node in tree] == ["Herramientas", "Huérfana"]
    assert tree[0]["children"][0]["name"] == "Manuales"


# ------------------------------------------------------------------
# Categories
# ------------------------------------------------------------------
def test_category_hierarchy(client: TestClient, db, admin):
    parent = client.post("/warehouse/categories", json={"name": "Herramientas"}).json()
    child = client.post("/warehouse/categories", json={"name": "Manuales", "parent_id": parent["id"]}).json()

    assert client.post("/warehouse/categories", json={"name": "X", "parent_id": 999}).status_code == 400
    assert client.put(f"/warehouse/categories/{parent['id']}", json={"parent_id": parent["id"]}).status_code == 400

    parents = client.get("/warehouse/categories/parents").json()["data"]
    assert [c["name"] for c in parents] == ["Herramientas"]

    tree = client.get("/warehouse/categories/tree/structure").json()["data"]
    assert tree[0]["children"][0]["id"] == child["id"]

    # Active children block deactivation
    assert client.delete(f"/warehouse/categories/{parent['id']}").status_code == 400
    assert client.delete(f"/warehouse/categories/{child['id']}").status_code == 200
    assert client.delete(f"/warehouse/categories/{parent['id']}").status_code == 200

    assert client.get("/warehouse/categories").json()["data"] == []
    assert len(client.get("/warehouse/categories", params={"include_inactive": True}).json()["data"]) == 2


# ------------------------------------------------------------------
# Consumables
# ------------------------------------------------------------------
def test_consumable_codes_are_unique_and_uppercase(client: TestClient, consumable):
    assert consumable["code"] == "FER-001"

    duplicate = client.post("/warehouse/consumables", json={
        "code": "FER-001", "name": "Otra", "category_id": consumable["category_id"],
    })
    assert duplicate.status_code == 400


def test_consumable_needs_category(client: TestClient, db, admin):
    response = client.post("/warehouse/consumables", json={"code": "X1", "name": "X", "category_id": 5})
    assert response.status_code == 400


def test_consumable_soft_delete(client: TestClient, consumable):
    assert client.delete(f"/warehouse/consumables/{consumable['id']}").status_code == 200
    assert client.get("/warehouse/consumables").json()["data"] == []
    assert client.get(f"/warehouse/consumables/{consumable['id']}").json()["is_active"] is False


# ------------------------------------------------------------------
# Movements and stock
# ------------------------------------------------------------------
def test_incoming_movement_creates_stock(client: TestClient, db, consumable):
    response = move(client, consumable["id"], "entrada_compra", 40, park_id=1)
    assert response.status_code == 201
    movement = response.json()
    assert movement["previous_stock"] == 0
    assert movement["new_stock"] == 40
    assert movement["total_cost"] == 100.0
    assert movement["created_by"] == "user-super-admin"

    stock = db.rows("inventory_stock")
    assert len(stock) == 1
    assert stock[0]["quantity"] == 40
    assert stock[0]["park_id"] == 1


def test_outgoing_movement_cannot_go_negative(client: TestClient, db, consumable):
    move(client, consumable["id"], "entrada_compra", 5)

    response = move(client, consumable["id"], "salida_consumo", 8)
    assert response.status_code == 400
    assert "Insufficient stock" in response.json()["detail"]

    assert db.rows("inventory_stock")[0]["quantity"] == 5
    assert len(db.rows("inventory_movements")) == 1


def test_stock_is_tracked_per_park(client: TestClient, db, consumable):
    move(client, consumable["id"], "entrada_compra", 20, park_id=1)
    move(client, consumable["id"], "entrada_compra", 3, park_id=2)
    move(client, consumable["id"], "salida_consumo", 15, park_id=1)

    detail = client.get(f"/warehouse/consumables/{consumable['id']}").json()
    assert detail["total_stock"] == 8

    low = client.get("/warehouse/stock", params={"low_stock_only": True}).json()["data"]
    assert sorted(row["park_id"] for row in low) == [1, 2]

    park_one = client.get("/warehouse/stock", params={"park_id": 1}).json()["data"][0]
    assert park_one["quantity"] == 5
    assert park_one["available_quantity"] == 5
    assert park_one["consumable_code"] == "FER-001"


def test_unknown_consumable_movement(client: TestClient, db, admin):
    assert move(client, 404, "entrada_compra", 1).status_code == 404


def test_movement_quantity_must_be_positive(client: TestClient, consumable):
    assert move(client, consumable["id"], "entrada_compra", 0).status_code == 422


def test_manual_stock_rows(client: TestClient, consumable):
    created = client.post("/warehouse/stock", json={"consumable_id": consumable["id"], "park_id": 3, "quantity": 12})
    assert created.status_code == 201

    duplicate = client.post("/warehouse/stock", json={"consumable_id": consumable["id"], "park_id": 3})
    assert duplicate.status_code == 400

    updated = client.put(f"/warehouse/stock/{created.json()['id']}", json={"reserved_quantity": 2}).json()
    assert updated["reserved_quantity"] == 2
    assert client.put("/warehouse/stock/999", json={"quantity": 1}).status_code == 404


def test_list_movements(client: TestClient, consumable):
    move(client, consumable["id"], "entrada_compra", 10)
    move(client, consumable["id"], "salida_merma", 2)

    data = client.get("/warehouse/movements", params={"movement_type": "salida_merma"}).json()["data"]
    assert len(data) == 1
    assert data[0]["new_stock"] == 8

    today = datetime.now(timezone.utc).date().isoformat()
    assert len(client.get("/warehouse/movements", params={"date_from": today}).json()["data"]) == 2


# ------------------------------------------------------------------
# Dashboard
# ------------------------------------------------------------------
def test_dashboard(db):
    now = datetime(2024, 6, 30, tzinfo=timezone.utc)
    db.seed("consumable_categories", {"name": "Fertilizantes", "is_active": True})
    db.seed(
        "consumables",
        {"id": 1, "name": "Composta", "code": "FER-001", "minimum_stock": 10, "is_active": True},
        {"id": 2, "name": "Guantes", "code": "HER-001", "minimum_stock": 0, "is_active": True},
    )
    db.seed(
        "inventory_stock",
        {"consumable_id": 1, "park_id": 1, "quantity": 4},
        {"consumable_id": 2, "park_id": 1, "quantity": 50},
    )
    db.seed(
        "inventory_movements",
        {"consumable_id": 1, "movement_type": "salida_consumo", "quantity": 6, "total_cost": 15,
         "movement_date": (now - timedelta(days=2)).isoformat()},
        {"consumable_id": 2, "movement_type": "salida_consumo", "quantity": 2, "total_cost": 10,
         "movement_date": (now - timedelta(days=20)).isoformat()},
        {"consumable_id": 1, "movement_type": "entrada_compra", "quantity": 10, "total_cost": 25,
         "movement_date": (now - timedelta(days=3)).isoformat()},
        {"consumable_id": 1, "movement_type": "entrada_compra", "quantity": 99, "total_cost": 1,
         "movement_date": (now - timedelta(days=90)).isoformat()},
    )

    result = inventory.dashboard(db, now=now)

    assert result["summary"] == {
        "total_consumables": 2,
        "total_categories": 1,
        "low_stock_count": 1,
        "recent_movements": 2,
    }
    assert result["movements_by_type"] == [
        {"movement_type": "entrada_compra", "count": 1, "total_value": 25.0},
        {"movement_type": "salida_consumo", "count": 2, "total_value": 25.0},
    ]
    assert [c["consumable_code"] for c in result["top_consumables"]] == ["FER-001", "HER-001"]
    assert result["low_stock_items"][0]["consumable_name"] == "Composta"


def test_dashboard_endpoint(client: TestClient, db, login_as):
    login_as("consultor-auditor")
    response = client.get("/warehouse/dashboard")
    assert response.status_code == 200
    assert response.json()["summary"]["total_consumables"] == 0


def test_inactive_consumable_rejects_movements(client: TestClient, db, consumable):
    client.delete(f"/warehouse/consumables/{consumable['id']}")

    response = move(client, consumable["id"], "entrada_compra", 5)
    assert response.status_code == 400
    assert "inactive" in response.json()["detail"]
    assert db.rows("inventory_stock") == []


def test_failed_movement_insert_leaves_stock_untouched(client: TestClient, db, consumable):
    move(client, consumable["id"], "entrada_compra", 10)
    db.failing_tables.add("inventory_movements")

    assert move(client, consumable["id"], "salida_consumo", 4).status_code == 500
    assert db.rows("inventory_stock")[0]["quantity"] == 10


def test_failed_stock_write_removes_movement(client: TestClient, db, consumable, monkeypatch):
    move(client, consumable["id"], "entrada_compra", 10)

    def broken_update(self, payload):
        raise Exception("connection reset")

    monkeypatch.setattr(type(db.table("inventory_stock")), "update", broken_update)

    assert move(client, consumable["id"], "salida_consumo", 4).status_code == 500
    assert db.rows("inventory_stock")[0]["quantity"] == 10
    assert [m["movement_type"] for m in db.rows("inventory_movements")] == ["entrada_compra"]
