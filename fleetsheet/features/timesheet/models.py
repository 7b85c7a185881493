"""
Timesheet Data Models Module

This module defines the request and response models for timesheet entries.

Features:
- Raw submission model
- Stored entry model
- List aggregates
- Existence check

Data Models:
- TimesheetSubmission: lenient payload, rules enforced by the normalizer
- TimesheetEntry: persisted entry as returned by the API
- TimesheetList: filtered entries with totals
- TimesheetCheck: entry lookup by employee and date

Dependencies:
- Pydantic for validation
- datetime for timestamps
- typing for type hints

Author: Fleetsheet Development Team
"""

from datetime import datetime
from typing import List, Optional

from fleetsheet.shared.models import CamelModel, LeaveType, YesNo


class TimesheetSubmission(CamelModel):
    """
    Timesheet create/update payload.

    Every field is optional here so that missing values reach the
    normalizer and fail with its ordered messages.

    Attributes:
        employee_id (Optional[str]): Employee the entry belongs to
        date (Optional[str]): Calendar date, YYYY-MM-DD
        leave_type (Optional[str]): One of LeaveType, defaults to "None"
        client_id (Optional[str]): Client worked for (work days)
        project_id (Optional[str]): Project worked on (work days)
        start_time (Optional[str]): Local HH:MM
        end_time (Optional[str]): Local HH:MM
        lunch_break (Optional[str]): "Yes" or "No"
        lunch_duration (Optional[str]): HH:MM
        description (Optional[str]): Leave description
        notes (Optional[str]): Work notes
        timezone (Optional[str]): IANA zone of the submitted times
    """
    employee_id: Optional[str] = None
    date: Optional[str] = None
    leave_type: Optional[str] = LeaveType.NONE.value
    client_id: Optional[str] = None
    project_id: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    lunch_break: Optional[str] = YesNo.NO.value
    lunch_duration: Optional[str] = "00:00"
    description: Optional[str] = ""
    notes: Optional[str] = ""
    timezone: Optional[str] = None


class TimesheetEntry(CamelModel):
    """
    Persisted timesheet entry.

    Attributes:
        start_time / end_time: UTC HH:MM, null on leave days
        hourly_wage: Employee wage snapshot taken at creation
        total_hours: Hours worked net of lunch
    """
    id: str
    tenant_id: str
    employee_id: str
    client_id: Optional[str] = None
    project_id: Optional[str] = None
    date: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    lunch_break: str = YesNo.NO.value
    lunch_duration: str = "00:00"
    leave_type: str = LeaveType.NONE.value
    description: str = ""
    notes: str = ""
    hourly_wage: float = 0
    total_hours: float = 0
    timezone: str = "UTC"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, document: dict) -> "TimesheetEntry":
        data = {key: value for key, value in document.items() if key != "_id"}
        return cls(id=str(document["_id"]), **data)


class TimesheetList(CamelModel):
    timesheets: List[TimesheetEntry]
    total_hours: float
    avg_hours: float


class TimesheetCheck(CamelModel):
    exists: bool
    timesheet: Optional[TimesheetEntry] = None
