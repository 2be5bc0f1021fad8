# tests/test_advertising.py

"""
Tests for advertising: campaigns, spaces, ads, placements, public serving
and impression/click tracking.
"""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from core.config import settings
from services import advertising as ads_service


ALWAYS = {"start_date": "2020-01-01T00:00:00+00:00", "end_date": "2099-12-31T00:00:00+00:00"}


@pytest.fixture
def setup_ads(client, db, admin):
    """Campaign + space + ad + placement on the parks page, created through the API."""
    campaign = client.post("/advertising/campaigns", json={"name": "Verano", "client": "Municipio", **ALWAYS}).json()
    space = client.post("/advertising/spaces", json={
        "space_key": "parks-sidebar", "name": "Lateral parques", "page_type": "parks", "position": "sidebar",
    }).json()
    ad = client.post("/advertising/ads", json={"campaign_id": campaign["id"], "title": "Festival", "priority": 8}).json()
    placement = client.post("/advertising/placements", json={
        "advertisement_id": ad["id"], "ad_space_id": space["id"], **ALWAYS,
    }).json()
    return {"campaign": campaign, "space": space, "ad": ad, "placement": placement}


def test_calculate_ctr():
    assert ads_service.calculate_ctr(0, 5) == 0.0
    assert ads_service.calculate_ctr(None, None) == 0.0
    assert ads_service.calculate_ctr(300, 7) == 2.33


# ------------------------------------------------------------------
# Selection
# ------------------------------------------------------------------
def test_get_active_ads_filters_and_orders(db):
    now = datetime(2024, 6, 15, tzinfo=timezone.utc)
    db.seed("ad_spaces", {"id": 1, "space_key": "parks-sidebar", "is_active": True},
            {"id": 2, "space_key": "parks-header", "is_active": True})
    db.seed(
        "advertisements",
        {"id": 10, "title": "Baja", "priority": 2, "is_active": True},
        {"id": 11, "title": "Alta", "priority": 9, "is_active": True},
        {"id": 12, "title": "Apagada", "priority": 10, "is_active": False},
    )
    window = {"start_date": "2024-06-01T00:00:00+00:00", "end_date": "2024-06-30T00:00:00+00:00"}
    db.seed(
        "ad_placements",
        {"id": 1, "advertisement_id": 10, "ad_space_id": 1, "page_type": "parks", "page_id": None, "is_active": True, **window},
        {"id": 2, "advertisement_id": 11, "ad_space_id": 1, "page_type": "parks", "page_id": 5, "is_active": True, **window},
        {"id": 3, "advertisement_id": 12, "ad_space_id": 1, "page_type": "parks", "page_id": None, "is_active": True, **window},
        {"id": 4, "advertisement_id": 11, "ad_space_id": 2, "page_type": "parks", "page_id": 7, "is_active": True, **window},
        {"id": 5, "advertisement_id": 10, "ad_space_id": 1, "page_type": "parks", "page_id": None, "is_active": True,
         "start_date": "2024-07-01T00:00:00+00:00", "end_date": "2024-07-31T00:00:00+00:00"},
        {"id": 6, "advertisement_id": 10, "ad_space_id": 1, "page_type": "activities", "is_active": True, **window},
    )

    results = ads_service.get_active_ads(db, page_type="parks", page_id=5, now=now)
    assert [r["id"] for r in results] == [2, 1]
    assert results[0]["advertisement"]["title"] == "Alta"
    assert results[0]["space"]["space_key"] == "parks-sidebar"

    header = ads_service.get_active_ads(db, page_type="parks", page_id=7, space_key="parks-header", now=now)
    assert [r["id"] for r in header] == [4]


def test_deactivate_expired_placements(db):
    now = datetime(2024, 6, 15, tzinfo=timezone.utc)
    db.seed(
        "ad_placements",
        {"id": 1, "is_active": True, "end_date": "2024-06-01T00:00:00+00:00"},
        {"id": 2, "is_active": True, "end_date": "2024-07-01T00:00:00+00:00"},
        {"id": 3, "is_active": False, "end_date": "2024-01-01T00:00:00+00:00"},
    )
    assert ads_service.deactivate_expired_placements(db, now=now) == 1
    assert [p["is_active"] for p in db.rows("ad_placements")] == [False, True, False]


# ------------------------------------------------------------------
# Admin CRUD
# ------------------------------------------------------------------
def test_placement_inherits_page_type(setup_ads):
    placement = setup_ads["placement"]
    assert placement["page_type"] == "parks"
    assert placement["impressions"] == 0
    assert placement["clicks"] == 0


def test_space_keys_are_unique(client: TestClient, setup_ads):
    response = client.post("/advertising/spaces", json={
        "space_key": "parks-sidebar", "name": "Otro", "page_type": "parks", "position": "header",
    })
    assert response.status_code == 400


def test_campaign_dates_are_validated(client: TestClient, db, admin):
    response = client.post("/advertising/campaigns", json={
        "name": "Mal", "client": "X",
        "start_date": "2024-06-30T00:00:00+00:00", "end_date": "2024-06-01T00:00:00+00:00",
    })
    assert response.status_code == 422


def test_placement_update_checks_merged_dates(client: TestClient, setup_ads):
    url = f"/advertising/placements/{setup_ads['placement']['id']}"
    assert client.put(url, json={"end_date": "2019-01-01T00:00:00+00:00"}).status_code == 400
    assert client.put(url, json={"is_active": False}).json()["is_active"] is False


def test_delete_guards(client: TestClient, db, setup_ads):
    campaign_id = setup_ads["campaign"]["id"]
    space_id = setup_ads["space"]["id"]
    ad_id = setup_ads["ad"]["id"]

    assert client.delete(f"/advertising/campaigns/{campaign_id}").status_code == 400
    assert client.delete(f"/advertising/spaces/{space_id}").status_code == 400

    # Deleting the ad removes its placements, which frees the space and campaign
    assert client.delete(f"/advertising/ads/{ad_id}").status_code == 200
    assert db.rows("ad_placements") == []
    assert client.delete(f"/advertising/spaces/{space_id}").status_code == 200
    assert client.delete(f"/advertising/campaigns/{campaign_id}").status_code == 200
    assert client.delete(f"/advertising/campaigns/{campaign_id}").status_code == 404


def test_ad_requires_existing_campaign(client: TestClient, db, admin):
    assert client.post("/advertising/ads", json={"campaign_id": 99, "title": "X"}).status_code == 404


def test_marketing_permissions(client: TestClient, db, login_as):
    login_as("operador-campo")
    assert client.get("/advertising/campaigns").status_code == 200
    assert client.post("/advertising/campaigns", json={"name": "V", "client": "M", **ALWAYS}).status_code == 403


# ------------------------------------------------------------------
# Public endpoints
# ------------------------------------------------------------------
def test_public_ads_are_served_and_cached(client: TestClient, app, setup_ads, db):
    app.dependency_overrides.clear()

    response = client.get("/advertising/public/ads", params={"page_type": "parks", "page_id": 3})
    assert response.status_code == 200
    assert [item["id"] for item in response.json()["data"]] == [setup_ads["placement"]["id"]]

    # Direct DB change is not visible until the cache entry is invalidated
    db.rows("ad_placements")[0]["is_active"] = False
    assert len(client.get("/advertising/public/ads", params={"page_type": "parks", "page_id": 3}).json()["data"]) == 1


def test_admin_writes_invalidate_public_cache(client: TestClient, setup_ads):
    params = {"page_type": "parks"}
    assert len(client.get("/advertising/public/ads", params=params).json()["data"]) == 1

    client.put(f"/advertising/placements/{setup_ads['placement']['id']}", json={"is_active": False})
    assert client.get("/advertising/public/ads", params=params).json()["data"] == []


def test_tracking_updates_lifetime_and_daily_counters(client: TestClient, db, setup_ads):
    placement_id = setup_ads["placement"]["id"]

    for _ in range(3):
        assert client.post("/advertising/analytics/impression", json={"placement_id": placement_id}).status_code == 200
    click = client.post("/advertising/analytics/click", json={"placement_id": placement_id}).json()["data"]
    assert click["clicks"] == 1

    placement = client.get(f"/advertising/placements/{placement_id}").json()
    assert placement["impressions"] == 3
    assert placement["clicks"] == 1
    assert placement["ctr"] == 33.33

    daily = db.rows("ad_analytics")
    assert len(daily) == 1
    assert daily[0]["impressions"] == 3
    assert daily[0]["clicks"] == 1

    report = client.get(f"/advertising/analytics/campaigns/{setup_ads['campaign']['id']}").json()
    assert report["totals"] == {"impressions": 3, "clicks": 1, "conversions": 0, "ctr": 33.33}
    assert len(report["daily"]) == 1


def test_tracking_unknown_placement(client: TestClient, db):
    assert client.post("/advertising/analytics/click", json={"placement_id": 404}).status_code == 404


def test_tracking_is_rate_limited(client: TestClient, db, monkeypatch):
    monkeypatch.setattr(settings, "TRACKING_RATE_LIMIT", 2)
    db.seed("ad_placements", {"id": 1, "impressions": 0, "clicks": 0})

    codes = [client.post("/advertising/analytics/impression", json={"placement_id": 1}).status_code for _ in range(3)]
    assert codes == [200, 200, 429]
