"""
Timesheet Report Module

Builds employer timesheet reports for a date range, grouped by employee
or by project.

Columns:
    Full Name, Date, Day, Client, Project, Start, End, Lunch, Leave Type,
    Description, Work Notes, Wage, Total Hours

Notes:
    Start and End are shown in the entry's own timezone, using the same
    fixed-offset arithmetic the entry was stored with.

Author: Fleetsheet Development Team
"""

from typing import Dict, List, Optional, Sequence

from fleetsheet.shared.config import DEFAULT_TIMEZONE
from fleetsheet.shared.errors import ValidationError
from fleetsheet.shared.models import LeaveType, YesNo
from fleetsheet.features.timesheet.normalizer import local_sort_key, to_local_clock

from .renderer import NOT_AVAILABLE, UNKNOWN_EMPLOYEE, ReportTable, day_name, format_calendar_date

TIMESHEET_TITLE = "Timesheet Report"
TIMESHEET_COLUMNS = [
    "Full Name",
    "Date",
    "Day",
    "Client",
    "Project",
    "Start",
    "End",
    "Lunch",
    "Leave Type",
    "Description",
    "Work Notes",
    "Wage",
    "Total Hours",
]
GROUP_BY_EMPLOYEE = "employee"
GROUP_BY_PROJECT = "project"
GROUPINGS = (GROUP_BY_EMPLOYEE, GROUP_BY_PROJECT)


def _name(document: Optional[dict]) -> str:
    if not document:
        return ""
    return str(document.get("name") or "")


def _lunch(entry: dict) -> str:
    if entry.get("lunch_break") == YesNo.YES.value:
        return entry.get("lunch_duration") or "00:00"
    return YesNo.NO.value


def timesheet_row(
    entry: dict,
    employees: Dict[str, dict],
    clients: Dict[str, dict],
    projects: Dict[str, dict],
) -> List[str]:
    tz_name = entry.get("timezone") or DEFAULT_TIMEZONE
    wage = entry.get("hourly_wage")
    leave_type = entry.get("leave_type") or LeaveType.NONE.value
    return [
        _name(employees.get(entry.get("employee_id"))) or UNKNOWN_EMPLOYEE,
        format_calendar_date(entry.get("date")),
        day_name(entry.get("date")),
        _name(clients.get(entry.get("client_id"))),
        _name(projects.get(entry.get("project_id"))),
        to_local_clock(entry.get("start_time"), tz_name),
        to_local_clock(entry.get("end_time"), tz_name),
        _lunch(entry),
        "" if leave_type == LeaveType.NONE.value else leave_type,
        entry.get("description") or "",
        entry.get("notes") or "",
        f"${float(wage):.2f}" if wage is not None else NOT_AVAILABLE,
        f"{float(entry.get('total_hours') or 0):.2f}",
    ]


def _group_key(entry: dict, group_by: str, employees: Dict[str, dict], projects: Dict[str, dict]):
    if group_by == GROUP_BY_PROJECT:
        owner = projects.get(entry.get("project_id"))
    else:
        owner = employees.get(entry.get("employee_id"))
    return (_name(owner).lower(),) + local_sort_key(entry)


def build_timesheet_table(
    entries: Sequence[dict],
    employees: Dict[str, dict],
    clients: Dict[str, dict],
    projects: Dict[str, dict],
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    group_by: str = GROUP_BY_EMPLOYEE,
) -> ReportTable:
    """
    Build the timesheet report table.

    Args:
        entries: Timesheet documents in range
        employees / clients / projects: Referenced documents keyed by id
        start_date / end_date: Inclusive range shown in the summary
        group_by: "employee" or "project"

    Returns:
        ReportTable: Rows ordered by group name, then date and local start time

    Raises:
        ValidationError: Unknown grouping
    """
    if group_by not in GROUPINGS:
        raise ValidationError(f"group by must be one of: {', '.join(GROUPINGS)}")

    ordered = sorted(entries, key=lambda entry: _group_key(entry, group_by, employees, projects))
    total = sum(float(entry.get("total_hours") or 0) for entry in ordered)
    period = f"{format_calendar_date(start_date) if start_date else 'Start'} to " \
             f"{format_calendar_date(end_date) if end_date else 'End'}"

    return ReportTable(
        title=TIMESHEET_TITLE,
        columns=list(TIMESHEET_COLUMNS),
        rows=[timesheet_row(entry, employees, clients, projects) for entry in ordered],
        summary=[
            ("Period", period),
            ("Grouped By", group_by.capitalize()),
            ("Entries", str(len(ordered))),
            ("Total Hours", f"{total:.2f}"),
        ],
        sheet_name="Timesheets",
        empty_message="No timesheets found for this date range.",
    )
