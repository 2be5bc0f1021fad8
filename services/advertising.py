# services/advertising.py

"""
Placement selection and impression/click tracking for the public site.

Counters live in two places:
  • ad_placements.impressions / clicks   lifetime totals
  • ad_analytics (placement_id, date)    one row per placement per day

PostgREST has no "col = col + 1", so both are read-modify-write. Under
concurrent traffic a count can be lost; the daily rollup is the source of
truth for reporting.
"""

from collections import OrderedDict
from datetime import datetime, timezone
from typing import Optional

from fastapi import HTTPException

from core.logging_config import logger
from core.utils import parse_timestamp


TRACKED_COUNTERS = ("impressions", "clicks")


def calculate_ctr(impressions, clicks) -> float:
    """Click-through rate as a percentage, two decimals."""
    impressions = int(impressions or 0)
    if impressions <= 0:
        return 0.0
    return round(int(clicks or 0) / impressions * 100, 2)


def _index_by_id(rows) -> dict:
    return {row["id"]: row for row in rows or []}


# ============================================================
# Public selection
# ============================================================
def get_active_ads(
    client,
    page_type: Optional[str] = None,
    page_id: Optional[int] = None,
    space_key: Optional[str] = None,
    now: Optional[datetime] = None,
) -> list:
    """
    Active placements for a page, joined with their advertisement and
    space, highest ad priority first.

    A placement with page_id NULL runs on every page of its page_type.
    """
    now = now or datetime.now(timezone.utc)
    now_iso = now.isoformat()

    query = (
        client.table("ad_placements")
        .select("*")
        .eq("is_active", True)
        .lte("start_date", now_iso)
        .gte("end_date", now_iso)
    )
    if page_type:
        query = query.eq("page_type", page_type)

    placements = query.execute().data or []

    if page_id is not None:
        placements = [p for p in placements if p.get("page_id") in (None, page_id)]

    if not placements:
        return []

    ad_ids = sorted({p["advertisement_id"] for p in placements})
    space_ids = sorted({p["ad_space_id"] for p in placements})

    ads = _index_by_id(
        client.table("advertisements").select("*").in_("id", ad_ids).eq("is_active", True).execute().data
    )
    spaces = _index_by_id(
        client.table("ad_spaces").select("*").in_("id", space_ids).eq("is_active", True).execute().data
    )

    results = []
    for placement in placements:
        ad = ads.get(placement["advertisement_id"])
        space = spaces.get(placement["ad_space_id"])
        if not ad or not space:
            continue
        if space_key and space.get("space_key") != space_key:
            continue

        results.append({
            "id": placement["id"],
            "page_type": placement.get("page_type"),
            "page_id": placement.get("page_id"),
            "advertisement": {
                "id": ad["id"],
                "title": ad.get("title"),
                "content": ad.get("content"),
                "image_url": ad.get("image_url"),
                "video_url": ad.get("video_url"),
                "target_url": ad.get("target_url"),
                "button_text": ad.get("button_text"),
                "media_type": ad.get("media_type"),
                "ad_type": ad.get("ad_type"),
                "priority": ad.get("priority") or 0,
            },
            "space": {
                "id": space["id"],
                "space_key": space.get("space_key"),
                "name": space.get("name"),
                "dimensions": space.get("dimensions"),
                "position": space.get("position"),
            },
        })

    results.sort(key=lambda item: (-item["advertisement"]["priority"], item["id"]))
    return results


# ============================================================
# Tracking
# ============================================================
def record_event(client, placement_id: int, counter: str, today: Optional[str] = None) -> dict:
    """
    Increment `counter` ("impressions" or "clicks") on the placement and on
    today's analytics row. Raises 404 for an unknown placement.
    """
    if counter not in TRACKED_COUNTERS:
        raise ValueError(f"Unknown counter '{counter}'")

    placement_res = (
        client.table("ad_placements")
        .select("*")
        .eq("id", placement_id)
        .limit(1)
        .execute()
    )
    if not placement_res.data:
        raise HTTPException(404, f"Placement {placement_id} not found")

    placement = placement_res.data[0]
    now_iso = datetime.now(timezone.utc).isoformat()
    today = today or now_iso[:10]

    lifetime = int(placement.get(counter) or 0) + 1
    client.table("ad_placements").update({counter: lifetime}).eq("id", placement_id).execute()

    daily_res = (
        client.table("ad_analytics")
        .select("*")
        .eq("placement_id", placement_id)
        .eq("date", today)
        .limit(1)
        .execute()
    )
    daily = daily_res.data[0] if daily_res.data else {}

    row = {
        "placement_id": placement_id,
        "date": today,
        "impressions": int(daily.get("impressions") or 0),
        "clicks": int(daily.get("clicks") or 0),
        "conversions": int(daily.get("conversions") or 0),
        "updated_at": now_iso,
    }
    row[counter] += 1

    client.table("ad_analytics").upsert(row, on_conflict="placement_id,date").execute()

    logger.debug(f"[ads] placement={placement_id} {counter} total={lifetime} today={row[counter]}")
    return {"placement_id": placement_id, counter: lifetime, "today": row[counter]}


# ============================================================
# Reporting
# ============================================================
def campaign_daily_analytics(client, campaign_id: int) -> list:
    """Per-day impressions/clicks/conversions across every placement of a campaign, newest first."""
    ads = client.table("advertisements").select("id").eq("campaign_id", campaign_id).execute().data or []
    if not ads:
        return []

    placements = (
        client.table("ad_placements")
        .select("id")
        .in_("advertisement_id", [a["id"] for a in ads])
        .execute()
        .data
        or []
    )
    if not placements:
        return []

    rows = (
        client.table("ad_analytics")
        .select("*")
        .in_("placement_id", [p["id"] for p in placements])
        .execute()
        .data
        or []
    )

    by_day = OrderedDict()
    for row in sorted(rows, key=lambda r: str(r["date"]), reverse=True):
        day = by_day.setdefault(
            str(row["date"]),
            {"date": str(row["date"]), "impressions": 0, "clicks": 0, "conversions": 0},
        )
        day["impressions"] += int(row.get("impressions") or 0)
        day["clicks"] += int(row.get("clicks") or 0)
        day["conversions"] += int(row.get("conversions") or 0)

    days = list(by_day.values())
    for day in days:
        day["ctr"] = calculate_ctr(day["impressions"], day["clicks"])
    return days


def deactivate_expired_placements(client, now: Optional[datetime] = None) -> int:
    """Flip is_active off for placements whose end_date has passed. Returns how many changed."""
    now = now or datetime.now(timezone.utc)

    expired = (
        client.table("ad_placements")
        .select("id, end_date")
        .eq("is_active", True)
        .lt("end_date", now.isoformat())
        .execute()
        .data
        or []
    )

    changed = 0
    for placement in expired:
        end = parse_timestamp(placement.get("end_date"))
        if end is None or end >= now:
            continue
        client.table("ad_placements").update({"is_active": False}).eq("id", placement["id"]).execute()
        changed += 1

    if changed:
        logger.info(f"[ads] Deactivated {changed} expired placements")
    return changed
