# tests/test_trees.py

"""
Tests for the tree inventory: species, park areas, trees and maintenances.
"""

import pytest
from fastapi.testclient import TestClient


SQUARE = [
    {"lat": 20.0, "lng": -104.0},
    {"lat": 20.0, "lng": -103.0},
    {"lat": 21.0, "lng": -103.0},
    {"lat": 21.0, "lng": -104.0},
]


@pytest.fixture
def park(db):
    return db.seed("parks", {"id": 1, "name": "Bosque Urbano", "code_prefix": "BO", "is_deleted": False})[0]


@pytest.fixture
def species(client, admin, db):
    response = client.post("/trees/species", json={
        "common_name": "Fresno Blanco",
        "scientific_name": "Fraxinus uhdei",
    })
    assert response.status_code == 201
    return response.json()


# ------------------------------------------------------------------
# Species
# ------------------------------------------------------------------
def test_species_get_generated_codes(client: TestClient, species):
    assert species["species_code"] == "FB"
    assert species["icon_color"] == "#4CAF50"

    clash = client.post("/trees/species", json={
        "common_name": "Ficus Benjamina",
        "scientific_name": "Ficus benjamina",
    }).json()
    assert clash["species_code"] == "FIC"


def test_species_search(client: TestClient, species):
    client.post("/trees/species", json={"common_name": "Jacaranda", "scientific_name": "Jacaranda mimosifolia"})
    found = client.get("/trees/species", params={"search": "jaca"}).json()["data"]
    assert [s["common_name"] for s in found] == ["Jacaranda"]


def test_species_in_use_cannot_be_deleted(client: TestClient, db, species):
    db.seed("trees", {"species_id": species["id"], "park_id": 1})
    assert client.delete(f"/trees/species/{species['id']}").status_code == 400


def test_species_image_replaces_previous(client: TestClient, species, no_object_storage, png_bytes):
    first = client.post(
        f"/trees/species/{species['id']}/image",
        files={"file": ("a.png", png_bytes, "image/png")},
    ).json()
    second = client.post(
        f"/trees/species/{species['id']}/image",
        files={"file": ("b.png", png_bytes, "image/png")},
    ).json()

    assert second["image_url"] != first["image_url"]
    assert second["storage_method"] == "filesystem"


# ------------------------------------------------------------------
# Areas
# ------------------------------------------------------------------
def test_create_area_with_polygon(client: TestClient, admin, park):
    response = client.post("/trees/areas", json={"park_id": 1, "name": "Zona Infantil", "polygon": SQUARE})
    assert response.status_code == 201
    assert response.json()["area_code"] == "BO-IN"


def test_area_polygon_needs_three_points(client: TestClient, admin, park):
    response = client.post("/trees/areas", json={"park_id": 1, "name": "Zona Infantil", "polygon": SQUARE[:2]})
    assert response.status_code == 422


def test_area_for_missing_park(client: TestClient, admin, db):
    assert client.post("/trees/areas", json={"park_id": 9, "name": "Zona Norte"}).status_code == 404


# ------------------------------------------------------------------
# Trees
# ------------------------------------------------------------------
def test_tree_codes_follow_area_and_species(client: TestClient, admin, park, species):
    area = client.post("/trees/areas", json={"park_id": 1, "name": "Zona Infantil"}).json()

    first = client.post("/trees", json={"species_id": species["id"], "park_id": 1, "area_id": area["id"]})
    second = client.post("/trees", json={"species_id": species["id"], "park_id": 1, "area_id": area["id"]})

    assert first.status_code == 201
    assert first.json()["tree_code"] == "BO-IN-FB-0001"
    assert second.json()["tree_code"] == "BO-IN-FB-0002"
    assert first.json()["created_by"] == "user-super-admin"


def test_tree_area_is_detected_from_coordinates(client: TestClient, admin, park, species):
    area = client.post("/trees/areas", json={"park_id": 1, "name": "Zona Infantil", "polygon": SQUARE}).json()

    inside = client.post("/trees", json={
        "species_id": species["id"], "park_id": 1, "latitude": 20.5, "longitude": -103.5,
    }).json()
    outside = client.post("/trees", json={
        "species_id": species["id"], "park_id": 1, "latitude": 25.0, "longitude": -103.5,
    }).json()

    assert inside["area_id"] == area["id"]
    assert inside["tree_code"] == "BO-IN-FB-0001"
    assert outside["area_id"] is None
    assert outside["tree_code"] == "BO-XX-FB-0001"


def test_tree_area_must_belong_to_park(client: TestClient, admin, db, park, species):
    db.seed("parks", {"id": 2, "name": "Colomos", "code_prefix": "CO"})
    db.seed("park_areas", {"id": 50, "park_id": 2, "area_code": "CO-NO"})

    response = client.post("/trees", json={"species_id": species["id"], "park_id": 1, "area_id": 50})
    assert response.status_code == 400


def test_tree_code_survives_updates(client: TestClient, admin, park, species):
    tree = client.post("/trees", json={"species_id": species["id"], "park_id": 1}).json()

    updated = client.put(f"/trees/{tree['id']}", json={"health_status": "Regular", "height": 4.5}).json()

    assert updated["tree_code"] == tree["tree_code"]
    assert updated["health_status"] == "Regular"

    detail = client.get(f"/trees/{tree['id']}").json()
    assert detail["species"]["species_code"] == "FB"


def test_list_and_delete_trees(client: TestClient, admin, db, park, species):
    for _ in range(3):
        client.post("/trees", json={"species_id": species["id"], "park_id": 1})

    page = client.get("/trees", params={"limit": 2, "page": 2}).json()
    assert [t["tree_code"] for t in page["data"]] == ["BO-XX-FB-0003"]

    searched = client.get("/trees", params={"search": "0002"}).json()["data"]
    assert len(searched) == 1

    tree_id = searched[0]["id"]
    client.post(f"/trees/{tree_id}/maintenances", json={"maintenance_type": "poda", "maintenance_date": "2024-03-01"})
    assert client.delete(f"/trees/{tree_id}").status_code == 200
    assert db.rows("tree_maintenances") == []
    assert client.get(f"/trees/{tree_id}").status_code == 404


def test_operator_cannot_register_trees(client: TestClient, login_as, db, park):
    login_as("operador-campo")
    response = client.post("/trees", json={"species_id": 1, "park_id": 1})
    assert response.status_code == 403


# ------------------------------------------------------------------
# Maintenances
# ------------------------------------------------------------------
def test_last_maintenance_date_only_moves_forward(client: TestClient, admin, db, park, species):
    tree = client.post("/trees", json={"species_id": species["id"], "park_id": 1}).json()
    url = f"/trees/{tree['id']}/maintenances"

    assert client.post(url, json={"maintenance_type": "poda", "maintenance_date": "2024-05-10"}).status_code == 201
    client.post(url, json={"maintenance_type": "riego", "maintenance_date": "2024-01-15"})

    stored = db.rows("trees")[0]
    assert stored["last_maintenance_date"] == "2024-05-10"

    listed = client.get(url).json()["data"]
    assert [m["maintenance_date"] for m in listed] == ["2024-05-10", "2024-01-15"]


def test_next_maintenance_must_follow(client: TestClient, admin, park, species):
    tree = client.post("/trees", json={"species_id": species["id"], "park_id": 1}).json()
    response = client.post(f"/trees/{tree['id']}/maintenances", json={
        "maintenance_type": "poda",
        "maintenance_date": "2024-05-10",
        "next_maintenance_date": "2024-01-01",
    })
    assert response.status_code == 422


# ------------------------------------------------------------------
# Stats
# ------------------------------------------------------------------
def test_stats(client: TestClient, admin, db):
    db.seed("parks", {"id": 1, "name": "Colomos"}, {"id": 2, "name": "Agua Azul"})
    db.seed("tree_species", {"id": 1, "common_name": "Fresno", "species_code": "FR"})
    db.seed(
        "trees",
        {"park_id": 1, "species_id": 1, "health_status": "Bueno"},
        {"park_id": 1, "species_id": 1, "health_status": "Bueno"},
        {"park_id": 2, "species_id": 1, "health_status": None},
    )

    by_park = client.get("/trees/stats/by-park").json()["data"]
    assert by_park[0] == {"park_id": 1, "park_name": "Colomos", "count": 2}

    by_species = client.get("/trees/stats/by-species").json()["data"]
    assert by_species[0]["count"] == 3

    health = client.get("/trees/stats/by-health").json()
    assert health["total"] == 3
    assert health["data"][0] == {"health_status": "Bueno", "count": 2, "percentage": 66.7}
    assert health["data"][1]["health_status"] == "Sin evaluar"
