# tests/test_instructors.py

"""
Tests for instructors: registry, specialties, profile image and
the link between activities and the instructor who leads them.
"""

import pytest
from fastapi.testclient import TestClient

from models.instructor import clean_specialties


def instructor_payload(**overrides):
    payload = {
        "first_name": "Lucía",
        "last_name": "Hernández",
        "email": "Lucia@Example.com",
        "specialties": ["Yoga", " yoga ", "Meditación", ""],
        "experience_years": 6,
        "status": "active",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def park(db):
    return db.seed("parks", {"id": 1, "name": "Colomos", "is_deleted": False})[0]


@pytest.fixture
def instructor(client, db, admin, park):
    def _create(**overrides):
        response = client.post("/instructors", json=instructor_payload(**overrides))
        assert response.status_code == 201, response.text
        return response.json()
    return _create


def activity_payload(**overrides):
    payload = {
        "park_id": 1,
        "title": "Yoga al amanecer",
        "start_date": "2030-06-01T07:00:00+00:00",
    }
    payload.update(overrides)
    return payload


def test_clean_specialties_keeps_first_spelling():
    assert clean_specialties(["Danza", " danza", "Arte ", "  "]) == ["Danza", "Arte"]
    assert clean_specialties(None) is None


# ------------------------------------------------------------------
# Registry
# ------------------------------------------------------------------
def test_create_builds_full_name_and_normalizes(instructor):
    created = instructor()
    assert created["full_name"] == "Lucía Hernández"
    assert created["email"] == "lucia@example.com"
    assert created["specialties"] == ["Yoga", "Meditación"]
    assert created["rating"] == 0


def test_name_is_required(client: TestClient, admin):
    response = client.post("/instructors", json={"email": "x@example.com"})
    assert response.status_code == 422


def test_duplicate_email_is_rejected(client: TestClient, instructor):
    instructor()
    response = client.post("/instructors", json=instructor_payload(email="LUCIA@example.com"))
    assert response.status_code == 400


def test_preferred_park_must_exist(client: TestClient, admin, park):
    response = client.post("/instructors", json=instructor_payload(preferred_park_id=99))
    assert response.status_code == 400


def test_list_filters_and_park_name(client: TestClient, instructor):
    instructor(preferred_park_id=1)
    instructor(
        first_name="Jorge",
        last_name="Ruiz",
        email="jorge@example.com",
        specialties=["Ciclismo"],
        status="pending",
    )

    everyone = client.get("/instructors").json()
    assert everyone["total"] == 2
    assert [i["full_name"] for i in everyone["data"]] == ["Jorge Ruiz", "Lucía Hernández"]
    assert everyone["data"][1]["preferred_park_name"] == "Colomos"

    yoga = client.get("/instructors", params={"specialty": "YOGA"}).json()["data"]
    assert [i["email"] for i in yoga] == ["lucia@example.com"]

    pending = client.get("/instructors", params={"status": "pending"}).json()["data"]
    assert [i["email"] for i in pending] == ["jorge@example.com"]


def test_get_update_and_missing(client: TestClient, instructor):
    created = instructor()
    url = f"/instructors/{created['id']}"

    updated = client.put(url, json={"specialties": ["Tai chi", "tai chi"], "hourly_rate": 250})
    assert updated.status_code == 200
    assert updated.json()["specialties"] == ["Tai chi"]

    assert client.get(url).json()["hourly_rate"] == 250
    assert client.put(url, json={}).status_code == 400
    assert client.get("/instructors/999").status_code == 404


def test_update_rejects_taken_email(client: TestClient, instructor):
    instructor()
    other = instructor(email="otro@example.com")
    response = client.put(f"/instructors/{other['id']}", json={"email": "lucia@example.com"})
    assert response.status_code == 400


def test_field_operator_can_read_but_not_write(client: TestClient, instructor, login_as):
    created = instructor()
    login_as("operador-campo")
    assert client.get(f"/instructors/{created['id']}").status_code == 200
    assert client.put(f"/instructors/{created['id']}", json={"bio": "x"}).status_code == 403


# ------------------------------------------------------------------
# Specialties
# ------------------------------------------------------------------
def test_specialty_stats(client: TestClient, instructor):
    instructor()
    instructor(email="b@example.com", specialties=["Yoga", "Danza"], status="pending")
    instructor(email="c@example.com", specialties=[])

    stats = client.get("/instructors/specialties/stats").json()
    assert stats["total_instructors"] == 3
    assert stats["total_unique_specialties"] == 3
    assert stats["active_instructors_with_specialties"] == 1
    assert stats["top_specialties"][0] == {"name": "Yoga", "count": 2}
    assert stats["specialty_distribution"][0]["percentage"] == 67


def test_specialty_stats_without_instructors(client: TestClient, db, admin):
    stats = client.get("/instructors/specialties/stats").json()
    assert stats["total_instructors"] == 0
    assert stats["specialty_distribution"] == []


# ------------------------------------------------------------------
# Profile image
# ------------------------------------------------------------------
def test_profile_image_replaces_previous(client: TestClient, instructor, no_object_storage, png_bytes):
    created = instructor()
    url = f"/instructors/{created['id']}/profile-image"

    first = client.post(url, files={"file": ("me.png", png_bytes, "image/png")}).json()
    assert first["profile_image_url"].startswith("/uploads/instructors/")
    assert first["storage_method"] == "filesystem"

    second = client.post(url, files={"file": ("me2.png", png_bytes, "image/png")}).json()
    assert second["profile_image_url"] != first["profile_image_url"]


def test_profile_image_rejects_non_images(client: TestClient, instructor, no_object_storage):
    created = instructor()
    response = client.post(
        f"/instructors/{created['id']}/profile-image",
        files={"file": ("cv.txt", b"hola", "text/plain")},
    )
    assert response.status_code == 400


# ------------------------------------------------------------------
# Activities
# ------------------------------------------------------------------
def test_activity_links_to_instructor(client: TestClient, instructor):
    lead = instructor()

    created = client.post("/activities", json=activity_payload(instructor_id=lead["id"]))
    assert created.status_code == 201
    assert created.json()["instructor_id"] == lead["id"]

    led = client.get(f"/instructors/{lead['id']}/activities").json()["data"]
    assert [a["title"] for a in led] == ["Yoga al amanecer"]

    filtered = client.get("/activities", params={"instructor_id": lead["id"]}).json()["data"]
    assert len(filtered) == 1


def test_activity_rejects_unknown_or_inactive_instructor(client: TestClient, instructor):
    assert client.post("/activities", json=activity_payload(instructor_id=404)).status_code == 400

    retired = instructor(email="retirada@example.com", status="inactive")
    response = client.post("/activities", json=activity_payload(instructor_id=retired["id"]))
    assert response.status_code == 400
    assert "inactive" in response.json()["detail"]


def test_activity_update_checks_instructor(client: TestClient, instructor):
    lead = instructor()
    activity = client.post("/activities", json=activity_payload()).json()

    assert client.put(f"/activities/{activity['id']}", json={"instructor_id": 404}).status_code == 400
    assert client.put(f"/activities/{activity['id']}", json={"instructor_id": lead["id"]}).status_code == 200


def test_delete_refuses_assigned_instructor(client: TestClient, db, instructor):
    lead = instructor()
    activity = client.post("/activities", json=activity_payload(instructor_id=lead["id"])).json()

    response = client.delete(f"/instructors/{lead['id']}")
    assert response.status_code == 400
    assert "reassign" in response.json()["detail"]

    client.put(f"/activities/{activity['id']}", json={"instructor_id": None})
    assert client.delete(f"/instructors/{lead['id']}").status_code == 200
    assert db.rows("instructors") == []
