"""
Timesheet Management Module

This module exposes the timesheet endpoints.

Features:
- Time entry creation
- Full-replace edits
- Employer deletes
- Filtered listing
- Existence check

Security:
- Authentication required
- Role-based access
- Tenant scoping

Dependencies:
- FastAPI for routing
- MongoDB for storage
- Pydantic for validation

Author: Fleetsheet Development Team
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from fleetsheet.shared.auth import Caller, get_current_caller, require_employer
from fleetsheet.shared.database import get_database

from . import service
from .models import TimesheetCheck, TimesheetEntry, TimesheetList, TimesheetSubmission

router = APIRouter(
    prefix="/timesheets",
    tags=["timesheets"]
)

logger = logging.getLogger(__name__)


@router.get("", response_model=TimesheetList)
async def get_timesheets(
    employee_ids: Optional[List[str]] = Query(None, alias="employeeIds"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    caller: Caller = Depends(get_current_caller),
    db=Depends(get_database),
):
    """
    Retrieve timesheets for the caller's tenant.

    Args:
        employee_ids: Optional employee filter (repeated or comma separated)
        start_date: Inclusive lower date bound
        end_date: Inclusive upper date bound

    Returns:
        TimesheetList: Entries with total and average hours
    """
    ids = []
    for value in employee_ids or []:
        ids.extend(part.strip() for part in value.split(",") if part.strip())
    result = await service.list_timesheets(db, caller, ids, start_date, end_date)
    return TimesheetList(
        timesheets=[TimesheetEntry.from_document(doc) for doc in result["timesheets"]],
        total_hours=result["total_hours"],
        avg_hours=result["avg_hours"],
    )


@router.get("/check", response_model=TimesheetCheck)
async def check_timesheet(
    employee: str,
    date: str,
    caller: Caller = Depends(get_current_caller),
    db=Depends(get_database),
):
    """Check whether an employee already has an entry on a date."""
    existing = await service.check_timesheet(db, caller, employee, date)
    return TimesheetCheck(
        exists=existing is not None,
        timesheet=TimesheetEntry.from_document(existing) if existing else None,
    )


@router.get("/{timesheet_id}", response_model=TimesheetEntry)
async def get_timesheet(
    timesheet_id: str,
    caller: Caller = Depends(get_current_caller),
    db=Depends(get_database),
):
    return TimesheetEntry.from_document(await service.get_timesheet(db, caller, timesheet_id))


@router.post("", status_code=201)
async def create_timesheet(
    submission: TimesheetSubmission,
    caller: Caller = Depends(get_current_caller),
    db=Depends(get_database),
):
    """
    Create a new timesheet entry.

    Args:
        submission (TimesheetSubmission): Raw entry data
        caller (Caller): Authenticated caller

    Returns:
        dict: Message and the stored entry

    Raises:
        ValidationError: For invalid submissions
        NotFoundError: For unknown employee, client or project

    Notes:
        - Times are normalised to UTC
        - Hours are calculated server-side
        - Wage is snapshotted from the employee
    """
    document = await service.create_timesheet(db, caller, submission)
    return {
        "message": "Timesheet created successfully",
        "data": TimesheetEntry.from_document(document).model_dump(by_alias=True, mode="json"),
    }


@router.put("/{timesheet_id}")
async def update_timesheet(
    timesheet_id: str,
    submission: TimesheetSubmission,
    caller: Caller = Depends(get_current_caller),
    db=Depends(get_database),
):
    """Replace a timesheet entry; employee and date cannot change."""
    document = await service.update_timesheet(db, caller, timesheet_id, submission)
    return {
        "message": "Timesheet updated successfully",
        "timesheet": TimesheetEntry.from_document(document).model_dump(by_alias=True, mode="json"),
    }


@router.delete("/{timesheet_id}")
async def delete_timesheet(
    timesheet_id: str,
    caller: Caller = Depends(require_employer),
    db=Depends(get_database),
):
    await service.delete_timesheet(db, caller, timesheet_id)
    return {"message": "Timesheet deleted successfully"}
