# routers/hr.py

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from dependencies.auth import get_current_user, CurrentUser
from core.permission_helpers import requires_permission
from core.supabase_client import get_supabase_client
from core.code_generator import generate_employee_code
from core.errors import handle_supabase_error, CodeGenerationError
from core.logging_config import logger
from core.utils import sanitize, utc_now_iso, parse_timestamp, to_float
from models.enums import EmployeeStatus, TimeOffType, TimeOffStatus
from models.hr import EmployeeCreate, EmployeeUpdate, TimeOffCreate, TimeOffDecision, ClockEvent


router = APIRouter(
    prefix="/hr",
    tags=["HR"],
)


def working_days(start: date, end: date) -> int:
    """Monday to Friday days between start and end, both inclusive."""
    if end < start:
        return 0
    days = 0
    current = start
    while current <= end:
        if current.weekday() < 5:
            days += 1
        current += timedelta(days=1)
    return days


def _get_employee_or_404(client, employee_id: int) -> dict:
    res = client.table("employees").select("*").eq("id", employee_id).limit(1).execute()
    if not res.data:
        raise HTTPException(404, f"Employee {employee_id} not found")
    return res.data[0]


# ============================================================
# EMPLOYEES
# ============================================================
@router.get(
    "/employees",
    summary="List employees",
    dependencies=[Depends(requires_permission("hr:read"))],
)
def list_employees(
    department: Optional[str] = None,
    status: Optional[str] = None,
    park_id: Optional[int] = None,
    search: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
):
    client = get_supabase_client()
    try:
        query = client.table("employees").select("*")
        if department:
            query = query.eq("department", department)
        if status:
            query = query.eq("status", status)
        if park_id is not None:
            query = query.eq("park_id", park_id)
        if search:
            query = query.ilike("full_name", f"%{search}%")
        res = query.order("full_name").range(offset, offset + limit - 1).execute()
        return {"success": True, "data": res.data or []}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch employees", 500)


@router.post(
    "/employees",
    summary="Create employee",
    status_code=201,
    dependencies=[Depends(requires_permission("hr:write"))],
)
def create_employee(payload: EmployeeCreate):
    client = get_supabase_client()
    data = sanitize(payload.model_dump(mode="json"))
    data["email"] = data["email"].lower()

    try:
        if data.get("employee_code"):
            data["employee_code"] = data["employee_code"].upper()
            taken = client.table("employees").select("id").eq("employee_code", data["employee_code"]).execute()
            if taken.data:
                raise HTTPException(400, f"Employee code {data['employee_code']} already exists")
        else:
            data["employee_code"] = generate_employee_code(client)

        res = client.table("employees").insert(data).execute()
        if not res.data:
            raise HTTPException(500, "Insert returned no data")

        logger.info(f"Employee {data['employee_code']} created ({data['department']})")
        return res.data[0]

    except CodeGenerationError as e:
        raise HTTPException(400, str(e))
    except Exception as e:
        raise handle_supabase_error(e, "Failed to create employee", 500)


@router.get(
    "/employees/{employee_id}",
    summary="Get employee",
    dependencies=[Depends(requires_permission("hr:read"))],
)
def get_employee(employee_id: int):
    client = get_supabase_client()
    try:
        return _get_employee_or_404(client, employee_id)
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch employee", 500)


@router.put(
    "/employees/{employee_id}",
    summary="Update employee",
    dependencies=[Depends(requires_permission("hr:write"))],
)
def update_employee(employee_id: int, payload: EmployeeUpdate):
    client = get_supabase_client()
    update_data = sanitize(payload.model_dump(mode="json", exclude_unset=True))
    if update_data.get("email"):
        update_data["email"] = update_data["email"].lower()

    try:
        _get_employee_or_404(client, employee_id)
        if update_data.get("supervisor_id") == employee_id:
            raise HTTPException(400, "An employee cannot supervise themselves")
        if not update_data:
            raise HTTPException(400, "No fields to update")

        update_data["updated_at"] = utc_now_iso()
        res = client.table("employees").update(update_data).eq("id", employee_id).execute()
        return res.data[0]

    except Exception as e:
        raise handle_supabase_error(e, "Failed to update employee", 500)


@router.delete(
    "/employees/{employee_id}",
    summary="Terminate employee",
    dependencies=[Depends(requires_permission("hr:admin"))],
)
def terminate_employee(employee_id: int):
    client = get_supabase_client()
    try:
        _get_employee_or_404(client, employee_id)
        client.table("employees").update({
            "status": EmployeeStatus.terminated.value,
            "updated_at": utc_now_iso(),
        }).eq("id", employee_id).execute()
        return {"success": True, "terminated": employee_id}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to terminate employee", 500)


# ============================================================
# VACATION BALANCES
# ============================================================
@router.get(
    "/employees/{employee_id}/vacation-balance",
    summary="Vacation balance of an employee",
    dependencies=[Depends(requires_permission("hr:read"))],
)
def get_vacation_balance(employee_id: int, year: Optional[int] = None):
    client = get_supabase_client()
    year = year or date.today().year
    try:
        res = (
            client.table("vacation_balances")
            .select("*")
            .eq("employee_id", employee_id)
            .eq("year", year)
            .execute()
        )
        if not res.data:
            raise HTTPException(404, f"No vacation balance for employee {employee_id} in {year}")
        return res.data[0]
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch vacation balance", 500)


# ============================================================
# TIME OFF
# ============================================================
@router.get(
    "/time-off",
    summary="List time-off requests",
    dependencies=[Depends(requires_permission("hr:read"))],
)
def list_time_off(employee_id: Optional[int] = None, status: Optional[str] = None):
    client = get_supabase_client()
    try:
        query = client.table("time_off_requests").select("*")
        if employee_id is not None:
            query = query.eq("employee_id", employee_id)
        if status:
            query = query.eq("status", status)
        return {"success": True, "data": query.order("start_date", desc=True).execute().data or []}
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch time-off requests", 500)


@router.post(
    "/time-off",
    summary="Request time off",
    status_code=201,
    dependencies=[Depends(requires_permission("hr:write"))],
)
def create_time_off(payload: TimeOffCreate, current_user: CurrentUser = Depends(get_current_user)):
    client = get_supabase_client()
    data = sanitize(payload.model_dump(mode="json"))

    try:
        _get_employee_or_404(client, payload.employee_id)

        days = working_days(payload.start_date, payload.end_date)
        if days == 0:
            raise HTTPException(400, "The requested period has no working days")

        data.update({
            "days_requested": days,
            "status": TimeOffStatus.pending.value,
            "requested_by": current_user.id,
            "created_at": utc_now_iso(),
        })
        res = client.table("time_off_requests").insert(data).execute()
        if not res.data:
            raise HTTPException(500, "Insert returned no data")
        return res.data[0]

    except Exception as e:
        raise handle_supabase_error(e, "Failed to create time-off request", 500)


@router.put(
    "/time-off/{request_id}/decision",
    summary="Approve or reject a time-off request",
    dependencies=[Depends(requires_permission("hr:write"))],
)
def decide_time_off(
    request_id: int,
    payload: TimeOffDecision,
    current_user: CurrentUser = Depends(get_current_user),
):
    client = get_supabase_client()

    try:
        res = client.table("time_off_requests").select("*").eq("id", request_id).execute()
        if not res.data:
            raise HTTPException(404, f"Time-off request {request_id} not found")

        request_row = res.data[0]
        if request_row.get("status") != TimeOffStatus.pending.value:
            raise HTTPException(400, f"Request is already {request_row.get('status')}")

        approving_vacation = (
            payload.status == TimeOffStatus.approved
            and request_row.get("request_type") == TimeOffType.vacation.value
        )

        if approving_vacation:
            start = date.fromisoformat(str(request_row["start_date"])[:10])
            end = date.fromisoformat(str(request_row["end_date"])[:10])
            days = working_days(start, end)

            balance_res = (
                client.table("vacation_balances")
                .select("*")
                .eq("employee_id", request_row["employee_id"])
                .eq("year", start.year)
                .execute()
            )
            if not balance_res.data:
                raise HTTPException(400, f"No vacation balance for {start.year}")

            balance = balance_res.data[0]
            remaining = to_float(balance.get("remaining_days"))
            if remaining < days:
                raise HTTPException(
                    400,
                    f"Insufficient vacation balance: {days} days requested, {remaining:g} available",
                )

            client.table("vacation_balances").update({
                "used_days": to_float(balance.get("used_days")) + days,
                "remaining_days": remaining - days,
                "updated_at": utc_now_iso(),
            }).eq("id", balance["id"]).execute()

        updated = client.table("time_off_requests").update({
            "status": payload.status.value,
            "review_notes": payload.review_notes,
            "reviewed_by": current_user.id,
            "reviewed_at": utc_now_iso(),
        }).eq("id", request_id).execute()

        logger.info(f"Time-off request {request_id} {payload.status.value} by {current_user.id}")
        return updated.data[0]

    except Exception as e:
        raise handle_supabase_error(e, "Failed to decide time-off request", 500)


# ============================================================
# TIME RECORDS
# ============================================================
def _open_record(client, employee_id: int):
    res = (
        client.table("time_records")
        .select("*")
        .eq("employee_id", employee_id)
        .is_("clock_out", "null")
        .limit(1)
        .execute()
    )
    return res.data[0] if res.data else None


@router.post(
    "/time-records/clock-in",
    summary="Clock in",
    status_code=201,
    dependencies=[Depends(requires_permission("hr:write"))],
)
def clock_in(payload: ClockEvent):
    client = get_supabase_client()
    now = datetime.now(timezone.utc)

    try:
        employee = _get_employee_or_404(client, payload.employee_id)
        if employee.get("status") != EmployeeStatus.active.value:
            raise HTTPException(400, "Only active employees can clock in")

        if _open_record(client, payload.employee_id):
            raise HTTPException(400, "Employee is already clocked in")

        res = client.table("time_records").insert({
            "employee_id": payload.employee_id,
            "park_id": payload.park_id or employee.get("park_id"),
            "date": now.date().isoformat(),
            "clock_in": now.isoformat(),
            "clock_out": None,
            "notes": payload.notes,
        }).execute()
        if not res.data:
            raise HTTPException(500, "Insert returned no data")
        return res.data[0]

    except Exception as e:
        raise handle_supabase_error(e, "Failed to clock in", 500)


@router.post(
    "/time-records/clock-out",
    summary="Clock out",
    dependencies=[Depends(requires_permission("hr:write"))],
)
def clock_out(payload: ClockEvent):
    client = get_supabase_client()
    now = datetime.now(timezone.utc)

    try:
        record = _open_record(client, payload.employee_id)
        if not record:
            raise HTTPException(400, "Employee is not clocked in")

        started = parse_timestamp(record.get("clock_in"))
        hours = round((now - started).total_seconds() / 3600, 2) if started else 0.0

        update = {"clock_out": now.isoformat(), "hours_worked": hours}
        if payload.notes:
            update["notes"] = payload.notes

        res = client.table("time_records").update(update).eq("id", record["id"]).execute()
        return res.data[0]

    except Exception as e:
        raise handle_supabase_error(e, "Failed to clock out", 500)


@router.get(
    "/time-records",
    summary="List time records",
    dependencies=[Depends(requires_permission("hr:read"))],
)
def list_time_records(
    employee_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
):
    client = get_supabase_client()
    try:
        query = client.table("time_records").select("*")
        if employee_id is not None:
            query = query.eq("employee_id", employee_id)
        if date_from:
            query = query.gte("date", date_from.isoformat())
        if date_to:
            query = query.lte("date", date_to.isoformat())
        rows = query.order("clock_in", desc=True).execute().data or []
        return {
            "success": True,
            "data": rows,
            "total_hours": round(sum(to_float(r.get("hours_worked")) for r in rows), 2),
        }
    except Exception as e:
        raise handle_supabase_error(e, "Failed to fetch time records", 500)


# ============================================================
# DASHBOARD
# ============================================================
@router.get(
    "/dashboard",
    summary="HR dashboard",
    dependencies=[Depends(requires_permission("hr:read"))],
)
def hr_dashboard():
    client = get_supabase_client()
    today = date.today().isoformat()

    try:
        employees = client.table("employees").select("*").execute().data or []
        pending = (
            client.table("time_off_requests")
            .select("id")
            .eq("status", TimeOffStatus.pending.value)
            .execute()
            .data
            or []
        )
        clocked_today = client.table("time_records").select("employee_id").eq("date", today).execute().data or []

        by_department = {}
        by_status = {}
        for employee in employees:
            status = employee.get("status")
            by_status[status] = by_status.get(status, 0) + 1
            if status == EmployeeStatus.active.value:
                department = employee.get("department") or "Sin departamento"
                by_department[department] = by_department.get(department, 0) + 1

        return {
            "total_employees": len(employees),
            "active_employees": by_status.get(EmployeeStatus.active.value, 0),
            "by_department": by_department,
            "by_status": by_status,
            "pending_time_off": len(pending),
            "present_today": len({r["employee_id"] for r in clocked_today}),
        }

    except Exception as e:
        raise handle_supabase_error(e, "Failed to build HR dashboard", 500)
