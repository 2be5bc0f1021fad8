# routers/sponsorship.py

from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from dependencies.auth import get_current_user, CurrentUser
from core.permission_helpers import requires_permission
from core.supabase_client import get_supabase_client
from core.errors import handle_supabase_error
from core.logging_config import logger
from core.utils import sanitize, utc_now_iso, to_float
from models.enums import SponsorStatus, ContractStatus
from models.sponsorship import (
    PackageCreate,
    PackageUpdate,
    SponsorCreate,
    SponsorUpdate,
    ContractCreate,
    ContractUpdate,
    SponsorEventCreate,
    MetricCreate,
    SponsorEvaluationCreate,
)


router = APIRouter(
    prefix="/sponsorship",
    tags=["Sponsorship"],
)

EXPIRING_WINDOW_DAYS = 30


def _fetch_one(client, table: str, row_id: int, label: str) -> dict:
    res = client.table(table).select("*").eq("id", row_id).limit(1).execute()
    if not res.data:
        raise HTTPException(404, f"{label} {row_id} not found")
    return res.data[0]


def _update(client, table: str, row_id: int, data: dict, label: str) -> dict:
    if not data:
        raise HTTPException(400, "No fields to update")
    data["updated_at"] = utc_now_iso()
    res = client.table(table).update(data).eq("id", row_id).execute()
    if not res.data:
        raise HTTPException(404, f"{label} {row_id} not found")
    return res.data[0]


# ============================================================
# PACKAGES
# ============================================================
@router.get(
    "/packages",
    summary="List sponsorship packages",
    dependencies=[Depends(requires_permission("sponsorship:read"))],
)
def list_packages(include_inactive: bool = False):
    client = get_supabase_client()
    try:
        query = client.table("sponsorship_packages").select("*")
        if not include_inactive:
            query = query.eq("is_active", True)
        return {"success": True, "data": query.order("level").execute().data or []}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch packages", 500)


@router.post(
    "/packages",
    summary="Create package",
    status_code=201,
    dependencies=[Depends(requires_permission("sponsorship:write"))],
)
def create_package(payload: PackageCreate):
    client = get_supabase_client()
    try:
        res = client.table("sponsorship_packages").insert(sanitize(payload.model_dump())).execute()
        if not res.data:
            raise HTTPException(500, "Insert returned no data")
        return res.data[0]
    except Exception as e:
        raise handle_supabase_error(e, "Failed to create package", 500)


@router.put(
    "/packages/{package_id}",
    summary="Update package",
    dependencies=[Depends(requires_permission("sponsorship:write"))],
)
def update_package(package_id: int, payload: PackageUpdate):
    client = get_supabase_client()
    try:
        return _update(
            client, "sponsorship_packages", package_id,
            sanitize(payload.model_dump(exclude_unset=True)), "Package",
        )
    except Exception as e:
        raise handle_supabase_error(e, "Failed to update package", 500)


@router.delete(
    "/packages/{package_id}",
    summary="Delete package",
    dependencies=[Depends(requires_permission("sponsorship:admin"))],
)
def delete_package(package_id: int):
    client = get_supabase_client()
    try:
        in_use = client.table("sponsors").select("id").eq("package_id", package_id).limit(1).execute()
        if in_use.data:
            raise HTTPException(400, "Package is assigned to sponsors; deactivate it instead")

        res = client.table("sponsorship_packages").delete().eq("id", package_id).execute()
        if not res.data:
            raise HTTPException(404, f"Package {package_id} not found")
        return {"success": True, "deleted": package_id}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to delete package", 500)


# ============================================================
# SPONSORS
# ============================================================
@router.get(
    "/sponsors",
    summary="List sponsors",
    dependencies=[Depends(requires_permission("sponsorship:read"))],
)
def list_sponsors(
    status: Optional[str] = None,
    package_id: Optional[int] = None,
    search: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
):
    client = get_supabase_client()
    try:
        query = client.table("sponsors").select("*")
        if status:
            query = query.eq("status", status)
        if package_id is not None:
            query = query.eq("package_id", package_id)
        if search:
            query = query.ilike("name", f"%{search}%")
        res = query.order("name").range(offset, offset + limit - 1).execute()
        return {"success": True, "data": res.data or []}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch sponsors", 500)


@router.post(
    "/sponsors",
    summary="Create sponsor",
    status_code=201,
    dependencies=[Depends(requires_permission("sponsorship:write"))],
)
def create_sponsor(payload: SponsorCreate):
    client = get_supabase_client()
    data = sanitize(payload.model_dump(mode="json"))
    try:
        if payload.package_id is not None:
            _fetch_one(client, "sponsorship_packages", payload.package_id, "Package")

        res = client.table("sponsors").insert(data).execute()
        if not res.data:
            raise HTTPException(500, "Insert returned no data")
        return res.data[0]
    except Exception as e:
        raise handle_supabase_error(e, "Failed to create sponsor", 500)


@router.get(
    "/sponsors/{sponsor_id}",
    summary="Get sponsor with contracts",
    dependencies=[Depends(requires_permission("sponsorship:read"))],
)
def get_sponsor(sponsor_id: int):
    client = get_supabase_client()
    try:
        sponsor = _fetch_one(client, "sponsors", sponsor_id, "Sponsor")
        contracts = (
            client.table("sponsorship_contracts")
            .select("*")
            .eq("sponsor_id", sponsor_id)
            .order("start_date", desc=True)
            .execute()
            .data
            or []
        )
        return {**sponsor, "contracts": contracts}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch sponsor", 500)


@router.put(
    "/sponsors/{sponsor_id}",
    summary="Update sponsor",
    dependencies=[Depends(requires_permission("sponsorship:write"))],
)
def update_sponsor(sponsor_id: int, payload: SponsorUpdate):
    client = get_supabase_client()
    try:
        return _update(
            client, "sponsors", sponsor_id,
            sanitize(payload.model_dump(mode="json", exclude_unset=True)), "Sponsor",
        )
    except Exception as e:
        raise handle_supabase_error(e, "Failed to update sponsor", 500)


@router.delete(
    "/sponsors/{sponsor_id}",
    summary="Delete sponsor",
    dependencies=[Depends(requires_permission("sponsorship:admin"))],
)
def delete_sponsor(sponsor_id: int):
    client = get_supabase_client()
    try:
        active = (
            client.table("sponsorship_contracts")
            .select("id")
            .eq("sponsor_id", sponsor_id)
            .eq("status", ContractStatus.active.value)
            .execute()
        )
        if active.data:
            raise HTTPException(400, "Sponsor has active contracts")

        for table in ("sponsorship_events", "sponsorship_metrics", "sponsorship_evaluations", "sponsorship_contracts"):
            client.table(table).delete().eq("sponsor_id", sponsor_id).execute()

        res = client.table("sponsors").delete().eq("id", sponsor_id).execute()
        if not res.data:
            raise HTTPException(404, f"Sponsor {sponsor_id} not found")
        return {"success": True, "deleted": sponsor_id}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to delete sponsor", 500)


@router.get(
    "/sponsors/{sponsor_id}/roi",
    summary="Investment against measured return",
    dependencies=[Depends(requires_permission("sponsorship:read"))],
)
def sponsor_roi(sponsor_id: int):
    client = get_supabase_client()

    try:
        sponsor = _fetch_one(client, "sponsors", sponsor_id, "Sponsor")
        contracts = client.table("sponsorship_contracts").select("*").eq("sponsor_id", sponsor_id).execute().data or []
        metrics = client.table("sponsorship_metrics").select("*").eq("sponsor_id", sponsor_id).execute().data or []

        investment = sum(
            to_float(c.get("total_amount"))
            for c in contracts
            if c.get("status") != ContractStatus.terminated.value
        )
        total_value = sum(to_float(m.get("metric_value")) for m in metrics)
        impressions = sum(int(m.get("impressions") or 0) for m in metrics)

        return {
            "sponsor_id": sponsor_id,
            "name": sponsor.get("name"),
            "investment": round(investment, 2),
            "total_metric_value": round(total_value, 2),
            "total_impressions": impressions,
            "roi_percentage": round((total_value - investment) / investment * 100, 2) if investment else None,
            "cost_per_impression": round(investment / impressions, 4) if impressions else None,
            "metric_count": len(metrics),
        }

    except Exception as e:
        raise handle_supabase_error(e, "Failed to compute sponsor ROI", 500)


# ============================================================
# CONTRACTS
# ============================================================
@router.get(
    "/contracts",
    summary="List contracts",
    dependencies=[Depends(requires_permission("sponsorship:read"))],
)
def list_contracts(sponsor_id: Optional[int] = None, status: Optional[str] = None):
    client = get_supabase_client()
    try:
        query = client.table("sponsorship_contracts").select("*")
        if sponsor_id is not None:
            query = query.eq("sponsor_id", sponsor_id)
        if status:
            query = query.eq("status", status)
        return {"success": True, "data": query.order("start_date", desc=True).execute().data or []}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch contracts", 500)


@router.post(
    "/contracts",
    summary="Create contract",
    status_code=201,
    dependencies=[Depends(requires_permission("sponsorship:write"))],
)
def create_contract(payload: ContractCreate, current_user: CurrentUser = Depends(get_current_user)):
    client = get_supabase_client()
    data = sanitize(payload.model_dump(mode="json"))

    try:
        sponsor = _fetch_one(client, "sponsors", payload.sponsor_id, "Sponsor")
        data["package_id"] = data.get("package_id") or sponsor.get("package_id")

        if not data.get("contract_number"):
            count = len(client.table("sponsorship_contracts").select("id").execute().data or [])
            data["contract_number"] = f"CTR-{payload.start_date.year}-{count + 1:04d}"

        data["created_by"] = current_user.id
        res = client.table("sponsorship_contracts").insert(data).execute()
        if not res.data:
            raise HTTPException(500, "Insert returned no data")

        if payload.status == ContractStatus.active and sponsor.get("status") != SponsorStatus.activo.value:
            client.table("sponsors").update({"status": SponsorStatus.activo.value}).eq("id", payload.sponsor_id).execute()

        logger.info(f"Contract {data['contract_number']} created for sponsor {payload.sponsor_id}")
        return res.data[0]

    except Exception as e:
        raise handle_supabase_error(e, "Failed to create contract", 500)


@router.put(
    "/contracts/{contract_id}",
    summary="Update contract",
    dependencies=[Depends(requires_permission("sponsorship:write"))],
)
def update_contract(contract_id: int, payload: ContractUpdate):
    client = get_supabase_client()
    update_data = sanitize(payload.model_dump(mode="json", exclude_unset=True))

    try:
        current = _fetch_one(client, "sponsorship_contracts", contract_id, "Contract")
        merged = {**current, **update_data}
        if str(merged["end_date"])[:10] < str(merged["start_date"])[:10]:
            raise HTTPException(400, "end_date cannot be before start_date")
        return _update(client, "sponsorship_contracts", contract_id, update_data, "Contract")
    except Exception as e:
        raise handle_supabase_error(e, "Failed to update contract", 500)


@router.delete(
    "/contracts/{contract_id}",
    summary="Delete contract",
    dependencies=[Depends(requires_permission("sponsorship:admin"))],
)
def delete_contract(contract_id: int):
    client = get_supabase_client()
    try:
        res = client.table("sponsorship_contracts").delete().eq("id", contract_id).execute()
        if not res.data:
            raise HTTPException(404, f"Contract {contract_id} not found")
        return {"success": True, "deleted": contract_id}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to delete contract", 500)


# ============================================================
# EVENTS / METRICS / EVALUATIONS
# ============================================================
@router.get(
    "/events",
    summary="List sponsored events",
    dependencies=[Depends(requires_permission("sponsorship:read"))],
)
def list_events(sponsor_id: Optional[int] = None):
    client = get_supabase_client()
    try:
        query = client.table("sponsorship_events").select("*")
        if sponsor_id is not None:
            query = query.eq("sponsor_id", sponsor_id)
        return {"success": True, "data": query.order("event_date", desc=True).execute().data or []}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch sponsor events", 500)


@router.post(
    "/events",
    summary="Link a sponsor to an event",
    status_code=201,
    dependencies=[Depends(requires_permission("sponsorship:write"))],
)
def create_event(payload: SponsorEventCreate):
    client = get_supabase_client()
    try:
        _fetch_one(client, "sponsors", payload.sponsor_id, "Sponsor")
        res = client.table("sponsorship_events").insert(sanitize(payload.model_dump(mode="json"))).execute()
        if not res.data:
            raise HTTPException(500, "Insert returned no data")
        return res.data[0]
    except Exception as e:
        raise handle_supabase_error(e, "Failed to create sponsor event", 500)


@router.get(
    "/metrics",
    summary="List sponsorship metrics",
    dependencies=[Depends(requires_permission("sponsorship:read"))],
)
def list_metrics(sponsor_id: Optional[int] = None, metric_type: Optional[str] = None):
    client = get_supabase_client()
    try:
        query = client.table("sponsorship_metrics").select("*")
        if sponsor_id is not None:
            query = query.eq("sponsor_id", sponsor_id)
        if metric_type:
            query = query.eq("metric_type", metric_type)
        return {"success": True, "data": query.order("measurement_date", desc=True).execute().data or []}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch metrics", 500)


@router.post(
    "/metrics",
    summary="Record a metric",
    status_code=201,
    dependencies=[Depends(requires_permission("sponsorship:write"))],
)
def create_metric(payload: MetricCreate):
    client = get_supabase_client()
    try:
        _fetch_one(client, "sponsors", payload.sponsor_id, "Sponsor")
        res = client.table("sponsorship_metrics").insert(sanitize(payload.model_dump(mode="json"))).execute()
        if not res.data:
            raise HTTPException(500, "Insert returned no data")
        return res.data[0]
    except Exception as e:
        raise handle_supabase_error(e, "Failed to record metric", 500)


@router.get(
    "/evaluations",
    summary="List sponsor evaluations",
    dependencies=[Depends(requires_permission("sponsorship:read"))],
)
def list_evaluations(sponsor_id: Optional[int] = None):
    client = get_supabase_client()
    try:
        query = client.table("sponsorship_evaluations").select("*")
        if sponsor_id is not None:
            query = query.eq("sponsor_id", sponsor_id)
        return {"success": True, "data": query.order("evaluation_date", desc=True).execute().data or []}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch evaluations", 500)


@router.post(
    "/evaluations",
    summary="Evaluate a sponsor",
    status_code=201,
    dependencies=[Depends(requires_permission("sponsorship:write"))],
)
def create_evaluation(payload: SponsorEvaluationCreate, current_user: CurrentUser = Depends(get_current_user)):
    client = get_supabase_client()
    data = sanitize(payload.model_dump(mode="json"))
    data["evaluated_by"] = current_user.id
    try:
        _fetch_one(client, "sponsors", payload.sponsor_id, "Sponsor")
        res = client.table("sponsorship_evaluations").insert(data).execute()
        if not res.data:
            raise HTTPException(500, "Insert returned no data")
        return res.data[0]
    except Exception as e:
        raise handle_supabase_error(e, "Failed to create evaluation", 500)


# ============================================================
# DASHBOARD
# ============================================================
@router.get(
    "/dashboard",
    summary="Sponsorship dashboard",
    dependencies=[Depends(requires_permission("sponsorship:read"))],
)
def sponsorship_dashboard():
    client = get_supabase_client()
    today = date.today()
    horizon = today + timedelta(days=EXPIRING_WINDOW_DAYS)

    try:
        sponsors = client.table("sponsors").select("id, status").execute().data or []
        contracts = client.table("sponsorship_contracts").select("*").execute().data or []

        active_contracts = [c for c in contracts if c.get("status") == ContractStatus.active.value]
        expiring = [
            c for c in active_contracts
            if today.isoformat() <= str(c.get("end_date"))[:10] <= horizon.isoformat()
        ]

        by_status = {}
        for sponsor in sponsors:
            by_status[sponsor.get("status")] = by_status.get(sponsor.get("status"), 0) + 1

        return {
            "total_sponsors": len(sponsors),
            "active_sponsors": by_status.get(SponsorStatus.activo.value, 0),
            "sponsors_by_status": by_status,
            "active_contracts": len(active_contracts),
            "total_contract_value": round(sum(to_float(c.get("total_amount")) for c in active_contracts), 2),
            "expiring_contracts": sorted(expiring, key=lambda c: str(c.get("end_date"))),
        }

    except Exception as e:
        raise handle_supabase_error(e, "Failed to build sponsorship dashboard", 500)
