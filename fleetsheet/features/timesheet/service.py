"""
Timesheet Service Module

Persistence-facing timesheet operations. Every function takes the database
handle and the caller explicitly; nothing reads ambient session state.

Features:
- Create with wage snapshot
- Full-replace edit with immutable employee/date
- Employer-only delete
- Filtered listing with totals
- Existence check per employee and date

Security:
- Tenant scoping on every query
- Employees limited to their own entries
- Employer role for deletes

Dependencies:
- MongoDB (Motor) for storage
- logging for tracking

Author: Fleetsheet Development Team
"""

import logging
from typing import List, Optional

from fleetsheet.shared.auth import Caller, ensure_employer, ensure_same_tenant
from fleetsheet.shared.database import CLIENTS, EMPLOYEES, PROJECTS, TIMESHEETS
from fleetsheet.shared.errors import AuthorizationError, NotFoundError, ValidationError
from fleetsheet.shared.models import new_id, utcnow

from .models import TimesheetSubmission
from .normalizer import local_sort_key, merge_edit, normalize_submission, parse_date

logger = logging.getLogger(__name__)


async def _load_employee(db, caller: Caller, employee_id: str) -> dict:
    employee = await db[EMPLOYEES].find_one({"_id": employee_id, "tenant_id": caller.tenant_id})
    if not employee:
        raise NotFoundError("employee not found")
    return employee


def _ensure_can_access(caller: Caller, employee: dict):
    """Employees may only touch entries that belong to their own employee record."""
    if caller.is_employer:
        return
    if employee.get("user_id") != caller.caller_id:
        raise AuthorizationError("Access denied: employees may only manage their own timesheets")


async def _ensure_client_and_project(db, caller: Caller, client_id: str, project_id: str):
    client = await db[CLIENTS].find_one({"_id": client_id, "tenant_id": caller.tenant_id})
    if not client:
        raise NotFoundError("client not found")
    project = await db[PROJECTS].find_one({"_id": project_id, "tenant_id": caller.tenant_id})
    if not project:
        raise NotFoundError("project not found")


async def _load_timesheet(db, caller: Caller, timesheet_id: str) -> dict:
    timesheet = await db[TIMESHEETS].find_one({"_id": timesheet_id})
    if not timesheet:
        raise NotFoundError("timesheet not found")
    ensure_same_tenant(caller, timesheet, "timesheet")
    return timesheet


async def _own_employee_ids(db, caller: Caller) -> List[str]:
    cursor = db[EMPLOYEES].find({"tenant_id": caller.tenant_id, "user_id": caller.caller_id})
    return [employee["_id"] for employee in await cursor.to_list(length=None)]


async def create_timesheet(db, caller: Caller, submission: TimesheetSubmission) -> dict:
    """
    Validate, normalise and store a new timesheet entry.

    Args:
        db: Database handle
        caller: Request caller
        submission: Raw payload

    Returns:
        dict: Stored document

    Raises:
        ValidationError: From the normalizer
        NotFoundError: Employee, client or project not in the tenant
        AuthorizationError: Employee submitting for someone else
    """
    fields = normalize_submission(submission)
    employee = await _load_employee(db, caller, fields["employee_id"])
    _ensure_can_access(caller, employee)
    if fields["client_id"]:
        await _ensure_client_and_project(db, caller, fields["client_id"], fields["project_id"])

    now = utcnow()
    document = {
        "_id": new_id(),
        "tenant_id": caller.tenant_id,
        **fields,
        "hourly_wage": float(employee.get("wage") or 0),
        "created_at": now,
        "updated_at": now,
    }
    await db[TIMESHEETS].insert_one(document)
    logger.info(
        f"Timesheet {document['_id']} created for employee {fields['employee_id']} "
        f"on {fields['date']} ({fields['total_hours']}h)"
    )
    return document


async def update_timesheet(db, caller: Caller, timesheet_id: str, submission: TimesheetSubmission) -> dict:
    """
    Replace every mutable field of an entry.

    Notes:
        - Employee and date are taken from the stored entry; supplying
          different values is a ValidationError
        - The wage snapshot and creation time are kept
    """
    existing = await _load_timesheet(db, caller, timesheet_id)
    fields = normalize_submission(merge_edit(existing, submission))
    employee = await _load_employee(db, caller, existing["employee_id"])
    _ensure_can_access(caller, employee)
    if fields["client_id"]:
        await _ensure_client_and_project(db, caller, fields["client_id"], fields["project_id"])

    updated = {**existing, **fields, "updated_at": utcnow()}
    await db[TIMESHEETS].replace_one({"_id": existing["_id"]}, updated)
    logger.info(f"Timesheet {timesheet_id} updated ({fields['total_hours']}h)")
    return updated


async def delete_timesheet(db, caller: Caller, timesheet_id: str):
    ensure_employer(caller)
    await _load_timesheet(db, caller, timesheet_id)
    await db[TIMESHEETS].delete_one({"_id": timesheet_id})
    logger.info(f"Timesheet {timesheet_id} deleted by {caller.caller_id}")


async def get_timesheet(db, caller: Caller, timesheet_id: str) -> dict:
    timesheet = await _load_timesheet(db, caller, timesheet_id)
    if not caller.is_employer:
        employee = await _load_employee(db, caller, timesheet["employee_id"])
        _ensure_can_access(caller, employee)
    return timesheet


def date_range_filter(start_date: Optional[str], end_date: Optional[str]) -> dict:
    """
    Build an inclusive ``{"$gte", "$lte"}`` filter on YYYY-MM-DD strings.

    Raises:
        ValidationError: Malformed dates or start after end
    """
    date_filter = {}
    if start_date:
        date_filter["$gte"] = parse_date(start_date).isoformat()
    if end_date:
        date_filter["$lte"] = parse_date(end_date).isoformat()
    if start_date and end_date and date_filter["$gte"] > date_filter["$lte"]:
        raise ValidationError("start date must not be after end date")
    return date_filter


async def list_timesheets(
    db,
    caller: Caller,
    employee_ids: Optional[List[str]] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> dict:
    """
    List entries in the caller's tenant, oldest first.

    Returns:
        dict: ``timesheets``, ``total_hours`` and ``avg_hours``
    """
    query = {"tenant_id": caller.tenant_id}
    wanted = [employee_id for employee_id in (employee_ids or []) if employee_id]
    if not caller.is_employer:
        own = await _own_employee_ids(db, caller)
        wanted = [employee_id for employee_id in wanted if employee_id in own] if wanted else own
        if not wanted:
            return {"timesheets": [], "total_hours": 0.0, "avg_hours": 0.0}
    if wanted:
        query["employee_id"] = {"$in": wanted}

    date_filter = date_range_filter(start_date, end_date)
    if date_filter:
        query["date"] = date_filter

    cursor = db[TIMESHEETS].find(query)
    timesheets = sorted(await cursor.to_list(length=None), key=local_sort_key)

    total = sum(timesheet.get("total_hours") or 0 for timesheet in timesheets)
    average = round(total / len(timesheets), 2) if timesheets else 0.0
    return {"timesheets": timesheets, "total_hours": round(total, 2), "avg_hours": average}


async def check_timesheet(db, caller: Caller, employee_id: str, date: str) -> Optional[dict]:
    """Return the entry for an employee and date, if one exists."""
    employee = await _load_employee(db, caller, employee_id)
    _ensure_can_access(caller, employee)
    return await db[TIMESHEETS].find_one(
        {"tenant_id": caller.tenant_id, "employee_id": employee_id, "date": parse_date(date).isoformat()}
    )
