# routers/advertising.py

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query, Request

from dependencies.auth import get_current_user, CurrentUser
from core.config import settings
from core.permission_helpers import requires_permission
from core.supabase_client import get_supabase_client
from core.errors import handle_supabase_error
from core.cache import cache_get, cache_set, cache_delete_prefix
from core.rate_limiter import require_rate_limit
from core.logging_config import logger
from core.utils import sanitize, utc_now_iso, parse_timestamp
from models.advertising import (
    CampaignCreate,
    CampaignUpdate,
    SpaceCreate,
    SpaceUpdate,
    AdvertisementCreate,
    AdvertisementUpdate,
    PlacementCreate,
    PlacementUpdate,
    TrackingEvent,
)
from services import advertising as ads_service


router = APIRouter(
    prefix="/advertising",
    tags=["Advertising"],
)

ADS_CACHE_PREFIX = "ads:"


def _fetch_one(client, table: str, row_id: int, label: str) -> dict:
    res = client.table(table).select("*").eq("id", row_id).limit(1).execute()
    if not res.data:
        raise HTTPException(404, f"{label} {row_id} not found")
    return res.data[0]


def _insert(client, table: str, data: dict) -> dict:
    res = client.table(table).insert(data).execute()
    if not res.data:
        raise HTTPException(500, "Insert returned no data")
    cache_delete_prefix(ADS_CACHE_PREFIX)
    return res.data[0]


def _update(client, table: str, row_id: int, data: dict, label: str) -> dict:
    if not data:
        raise HTTPException(400, "No fields to update")
    data["updated_at"] = utc_now_iso()
    res = client.table(table).update(data).eq("id", row_id).execute()
    if not res.data:
        raise HTTPException(404, f"{label} {row_id} not found")
    cache_delete_prefix(ADS_CACHE_PREFIX)
    return res.data[0]


def _delete(client, table: str, row_id: int, label: str) -> dict:
    res = client.table(table).delete().eq("id", row_id).execute()
    if not res.data:
        raise HTTPException(404, f"{label} {row_id} not found")
    cache_delete_prefix(ADS_CACHE_PREFIX)
    return {"success": True, "deleted": row_id}


# ============================================================
# PUBLIC: ads for a page
# ============================================================
@router.get("/public/ads", summary="Active ads for a page (public)")
def public_ads(
    page_type: Optional[str] = None,
    page_id: Optional[int] = None,
    space_key: Optional[str] = None,
):
    cache_key = f"{ADS_CACHE_PREFIX}{page_type}:{page_id}:{space_key}"
    cached = cache_get(cache_key)
    if cached is not None:
        return cached

    client = get_supabase_client()

    try:
        result = {
            "success": True,
            "data": ads_service.get_active_ads(client, page_type, page_id, space_key),
        }
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch ads", 500)

    cache_set(cache_key, result, ttl_seconds=settings.PUBLIC_ADS_CACHE_SECONDS)
    return result


# ============================================================
# PUBLIC: tracking
# ============================================================
def _track(request: Request, payload: TrackingEvent, counter: str):
    require_rate_limit(
        request,
        max_requests=settings.TRACKING_RATE_LIMIT,
        window_seconds=60,
        scope="tracking",
    )

    client = get_supabase_client()
    try:
        return {"success": True, "data": ads_service.record_event(client, payload.placement_id, counter)}
    except Exception as e:
        raise handle_supabase_error(e, f"Failed to record {counter}", 500)


@router.post("/analytics/impression", summary="Record an impression (public)")
def track_impression(payload: TrackingEvent, request: Request):
    return _track(request, payload, "impressions")


@router.post("/analytics/click", summary="Record a click (public)")
def track_click(payload: TrackingEvent, request: Request):
    return _track(request, payload, "clicks")


@router.get(
    "/analytics/campaigns/{campaign_id}",
    summary="Daily totals for a campaign",
    dependencies=[Depends(requires_permission("advertising:read"))],
)
def campaign_analytics(campaign_id: int):
    client = get_supabase_client()
    try:
        campaign = _fetch_one(client, "ad_campaigns", campaign_id, "Campaign")
        days = ads_service.campaign_daily_analytics(client, campaign_id)

        impressions = sum(d["impressions"] for d in days)
        clicks = sum(d["clicks"] for d in days)
        return {
            "campaign_id": campaign_id,
            "name": campaign.get("name"),
            "totals": {
                "impressions": impressions,
                "clicks": clicks,
                "conversions": sum(d["conversions"] for d in days),
                "ctr": ads_service.calculate_ctr(impressions, clicks),
            },
            "daily": days,
        }
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch campaign analytics", 500)


# ============================================================
# CAMPAIGNS
# ============================================================
@router.get(
    "/campaigns",
    summary="List campaigns",
    dependencies=[Depends(requires_permission("advertising:read"))],
)
def list_campaigns(status: Optional[str] = None):
    client = get_supabase_client()
    try:
        query = client.table("ad_campaigns").select("*")
        if status:
            query = query.eq("status", status)
        return {"success": True, "data": query.order("start_date", desc=True).execute().data or []}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch campaigns", 500)


@router.post(
    "/campaigns",
    summary="Create campaign",
    status_code=201,
    dependencies=[Depends(requires_permission("advertising:write"))],
)
def create_campaign(payload: CampaignCreate, current_user: CurrentUser = Depends(get_current_user)):
    client = get_supabase_client()
    data = sanitize(payload.model_dump(mode="json"))
    data["created_by"] = current_user.id
    try:
        return _insert(client, "ad_campaigns", data)
    except Exception as e:
        raise handle_supabase_error(e, "Failed to create campaign", 500)


@router.get(
    "/campaigns/{campaign_id}",
    summary="Get campaign",
    dependencies=[Depends(requires_permission("advertising:read"))],
)
def get_campaign(campaign_id: int):
    client = get_supabase_client()
    try:
        campaign = _fetch_one(client, "ad_campaigns", campaign_id, "Campaign")
        ads = client.table("advertisements").select("*").eq("campaign_id", campaign_id).execute().data or []
        return {**campaign, "advertisements": ads}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch campaign", 500)


@router.put(
    "/campaigns/{campaign_id}",
    summary="Update campaign",
    dependencies=[Depends(requires_permission("advertising:write"))],
)
def update_campaign(campaign_id: int, payload: CampaignUpdate):
    client = get_supabase_client()
    try:
        return _update(
            client, "ad_campaigns", campaign_id,
            sanitize(payload.model_dump(mode="json", exclude_unset=True)), "Campaign",
        )
    except Exception as e:
        raise handle_supabase_error(e, "Failed to update campaign", 500)


@router.delete(
    "/campaigns/{campaign_id}",
    summary="Delete campaign",
    dependencies=[Depends(requires_permission("advertising:admin"))],
)
def delete_campaign(campaign_id: int):
    client = get_supabase_client()
    try:
        in_use = client.table("advertisements").select("id").eq("campaign_id", campaign_id).limit(1).execute()
        if in_use.data:
            raise HTTPException(400, "Campaign still has advertisements")
        return _delete(client, "ad_campaigns", campaign_id, "Campaign")
    except Exception as e:
        raise handle_supabase_error(e, "Failed to delete campaign", 500)


# ============================================================
# SPACES
# ============================================================
@router.get(
    "/spaces",
    summary="List ad spaces",
    dependencies=[Depends(requires_permission("advertising:read"))],
)
def list_spaces(page_type: Optional[str] = None):
    client = get_supabase_client()
    try:
        query = client.table("ad_spaces").select("*")
        if page_type:
            query = query.eq("page_type", page_type)
        return {"success": True, "data": query.order("space_key").execute().data or []}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch ad spaces", 500)


@router.post(
    "/spaces",
    summary="Create ad space",
    status_code=201,
    dependencies=[Depends(requires_permission("advertising:write"))],
)
def create_space(payload: SpaceCreate):
    client = get_supabase_client()
    data = sanitize(payload.model_dump(mode="json"))
    try:
        duplicate = client.table("ad_spaces").select("id").eq("space_key", data["space_key"]).execute()
        if duplicate.data:
            raise HTTPException(400, f"Space key '{data['space_key']}' already exists")
        return _insert(client, "ad_spaces", data)
    except Exception as e:
        raise handle_supabase_error(e, "Failed to create ad space", 500)


@router.put(
    "/spaces/{space_id}",
    summary="Update ad space",
    dependencies=[Depends(requires_permission("advertising:write"))],
)
def update_space(space_id: int, payload: SpaceUpdate):
    client = get_supabase_client()
    try:
        return _update(
            client, "ad_spaces", space_id,
            sanitize(payload.model_dump(mode="json", exclude_unset=True)), "Space",
        )
    except Exception as e:
        raise handle_supabase_error(e, "Failed to update ad space", 500)


@router.delete(
    "/spaces/{space_id}",
    summary="Delete ad space",
    dependencies=[Depends(requires_permission("advertising:admin"))],
)
def delete_space(space_id: int):
    client = get_supabase_client()
    try:
        in_use = client.table("ad_placements").select("id").eq("ad_space_id", space_id).limit(1).execute()
        if in_use.data:
            raise HTTPException(400, "Space still has placements")
        return _delete(client, "ad_spaces", space_id, "Space")
    except Exception as e:
        raise handle_supabase_error(e, "Failed to delete ad space", 500)


# ============================================================
# ADVERTISEMENTS
# ============================================================
@router.get(
    "/ads",
    summary="List advertisements",
    dependencies=[Depends(requires_permission("advertising:read"))],
)
def list_advertisements(campaign_id: Optional[int] = None, is_active: Optional[bool] = None):
    client = get_supabase_client()
    try:
        query = client.table("advertisements").select("*")
        if campaign_id is not None:
            query = query.eq("campaign_id", campaign_id)
        if is_active is not None:
            query = query.eq("is_active", is_active)
        return {"success": True, "data": query.order("priority", desc=True).execute().data or []}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch advertisements", 500)


@router.post(
    "/ads",
    summary="Create advertisement",
    status_code=201,
    dependencies=[Depends(requires_permission("advertising:write"))],
)
def create_advertisement(payload: AdvertisementCreate, current_user: CurrentUser = Depends(get_current_user)):
    client = get_supabase_client()
    data = sanitize(payload.model_dump(mode="json"))
    data["created_by"] = current_user.id
    try:
        if payload.campaign_id is not None:
            _fetch_one(client, "ad_campaigns", payload.campaign_id, "Campaign")
        return _insert(client, "advertisements", data)
    except Exception as e:
        raise handle_supabase_error(e, "Failed to create advertisement", 500)


@router.get(
    "/ads/{ad_id}",
    summary="Get advertisement",
    dependencies=[Depends(requires_permission("advertising:read"))],
)
def get_advertisement(ad_id: int):
    client = get_supabase_client()
    try:
        return _fetch_one(client, "advertisements", ad_id, "Advertisement")
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch advertisement", 500)


@router.put(
    "/ads/{ad_id}",
    summary="Update advertisement",
    dependencies=[Depends(requires_permission("advertising:write"))],
)
def update_advertisement(ad_id: int, payload: AdvertisementUpdate):
    client = get_supabase_client()
    try:
        return _update(
            client, "advertisements", ad_id,
            sanitize(payload.model_dump(mode="json", exclude_unset=True)), "Advertisement",
        )
    except Exception as e:
        raise handle_supabase_error(e, "Failed to update advertisement", 500)


@router.delete(
    "/ads/{ad_id}",
    summary="Delete advertisement",
    dependencies=[Depends(requires_permission("advertising:admin"))],
)
def delete_advertisement(ad_id: int):
    client = get_supabase_client()
    try:
        client.table("ad_placements").delete().eq("advertisement_id", ad_id).execute()
        return _delete(client, "advertisements", ad_id, "Advertisement")
    except Exception as e:
        raise handle_supabase_error(e, "Failed to delete advertisement", 500)


# ============================================================
# PLACEMENTS
# ============================================================
@router.get(
    "/placements",
    summary="List placements",
    dependencies=[Depends(requires_permission("advertising:read"))],
)
def list_placements(
    advertisement_id: Optional[int] = None,
    ad_space_id: Optional[int] = None,
    page_type: Optional[str] = None,
    is_active: Optional[bool] = None,
    limit: int = Query(100, ge=1, le=1000),
):
    client = get_supabase_client()
    try:
        query = client.table("ad_placements").select("*")
        if advertisement_id is not None:
            query = query.eq("advertisement_id", advertisement_id)
        if ad_space_id is not None:
            query = query.eq("ad_space_id", ad_space_id)
        if page_type:
            query = query.eq("page_type", page_type)
        if is_active is not None:
            query = query.eq("is_active", is_active)
        rows = query.order("start_date", desc=True).limit(limit).execute().data or []
        return {
            "success": True,
            "data": [
                {**p, "ctr": ads_service.calculate_ctr(p.get("impressions"), p.get("clicks"))}
                for p in rows
            ],
        }
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch placements", 500)


@router.post(
    "/placements",
    summary="Place an advertisement in a space",
    status_code=201,
    dependencies=[Depends(requires_permission("advertising:write"))],
)
def create_placement(payload: PlacementCreate):
    client = get_supabase_client()
    data = sanitize(payload.model_dump(mode="json"))

    try:
        _fetch_one(client, "advertisements", payload.advertisement_id, "Advertisement")
        space = _fetch_one(client, "ad_spaces", payload.ad_space_id, "Space")

        data["page_type"] = data.get("page_type") or space.get("page_type")
        data["impressions"] = 0
        data["clicks"] = 0

        placement = _insert(client, "ad_placements", data)
        logger.info(
            f"Ad {payload.advertisement_id} placed in space {space.get('space_key')} "
            f"({data['page_type']}/{data.get('page_id') or '*'})"
        )
        return placement

    except Exception as e:
        raise handle_supabase_error(e, "Failed to create placement", 500)


@router.get(
    "/placements/{placement_id}",
    summary="Get placement with CTR",
    dependencies=[Depends(requires_permission("advertising:read"))],
)
def get_placement(placement_id: int):
    client = get_supabase_client()
    try:
        placement = _fetch_one(client, "ad_placements", placement_id, "Placement")
        return {
            **placement,
            "ctr": ads_service.calculate_ctr(placement.get("impressions"), placement.get("clicks")),
        }
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch placement", 500)


@router.put(
    "/placements/{placement_id}",
    summary="Update placement",
    dependencies=[Depends(requires_permission("advertising:write"))],
)
def update_placement(placement_id: int, payload: PlacementUpdate):
    client = get_supabase_client()
    update_data = sanitize(payload.model_dump(mode="json", exclude_unset=True))

    try:
        current = _fetch_one(client, "ad_placements", placement_id, "Placement")
        merged = {**current, **update_data}
        start, end = parse_timestamp(merged.get("start_date")), parse_timestamp(merged.get("end_date"))
        if start and end and end < start:
            raise HTTPException(400, "end_date cannot be before start_date")
        return _update(client, "ad_placements", placement_id, update_data, "Placement")
    except Exception as e:
        raise handle_supabase_error(e, "Failed to update placement", 500)


@router.delete(
    "/placements/{placement_id}",
    summary="Delete placement",
    dependencies=[Depends(requires_permission("advertising:admin"))],
)
def delete_placement(placement_id: int):
    client = get_supabase_client()
    try:
        client.table("ad_analytics").delete().eq("placement_id", placement_id).execute()
        return _delete(client, "ad_placements", placement_id, "Placement")
    except Exception as e:
        raise handle_supabase_error(e, "Failed to delete placement", 500)
