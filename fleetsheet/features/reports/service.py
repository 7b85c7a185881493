"""
Report Service Module

Loads the data behind each report, renders it and hands back an artifact.

Features:
- Single review report
- Vehicle history report over a date range
- All-vehicles overview
- Employer timesheet report grouped by employee or project
- Optional "Generated At" stamp

Notes:
    Format and date range are validated before anything is read. Missing
    referenced vehicles or employees render as placeholders rather than
    failing the report.

Author: Fleetsheet Development Team
"""

import logging
from typing import Dict, Iterable, List, Optional

from fleetsheet.shared.auth import Caller, ensure_employer
from fleetsheet.shared.database import CLIENTS, EMPLOYEES, PROJECTS, TIMESHEETS
from fleetsheet.shared.errors import ValidationError
from fleetsheet.shared.models import utcnow
from fleetsheet.features.timesheet.normalizer import local_sort_key
from fleetsheet.features.timesheet.service import date_range_filter
from fleetsheet.features.vehicles.service import (
    find_employee,
    find_vehicle,
    get_review,
    get_vehicle,
    list_reviews,
    list_vehicles,
)

from .delivery import ReportArtifact, build_artifact, parse_format
from .renderer import build_review_table, build_vehicle_history_table, build_vehicles_table, with_generated_at
from .timesheet_report import GROUPINGS, build_timesheet_table

logger = logging.getLogger(__name__)


async def _documents_by_id(db, collection: str, caller: Caller, ids: Iterable[str]) -> Dict[str, dict]:
    wanted = sorted({doc_id for doc_id in ids if doc_id})
    if not wanted:
        return {}
    cursor = db[collection].find({"_id": {"$in": wanted}, "tenant_id": caller.tenant_id})
    return {document["_id"]: document for document in await cursor.to_list(length=None)}


def _stamp(table, include_generated_at: bool):
    return with_generated_at(table, utcnow()) if include_generated_at else table


async def review_report(
    db,
    caller: Caller,
    review_id: str,
    report_format,
    filename: Optional[str] = None,
    include_generated_at: bool = False,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> ReportArtifact:
    """
    Render a single vehicle review.

    A date range, when given, is only checked for shape; the review is
    rendered whatever its date.

    Raises:
        ValidationError: Unsupported format or start date after end date
        NotFoundError: Unknown review
        AuthorizationError: Review owned by another tenant
    """
    report_format = parse_format(report_format)
    date_range_filter(start_date, end_date)
    review = await get_review(db, caller, review_id)

    vehicle = await find_vehicle(db, review["vehicle_id"])
    employee = await find_employee(db, review["employee_id"])
    if employee and employee.get("tenant_id") != caller.tenant_id:
        employee = None

    table = _stamp(build_review_table(review, vehicle, employee), include_generated_at)
    return build_artifact(table, report_format, "review", review_id, filename)


async def vehicle_report(
    db,
    caller: Caller,
    vehicle_id: str,
    report_format,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    filename: Optional[str] = None,
    include_generated_at: bool = False,
) -> ReportArtifact:
    """
    Render every review of a vehicle in an inclusive date range, oldest first.

    Raises:
        ValidationError: Unsupported format or start date after end date
        NotFoundError: Unknown vehicle
        AuthorizationError: Vehicle owned by another tenant
    """
    report_format = parse_format(report_format)
    date_filter = date_range_filter(start_date, end_date)
    vehicle = await get_vehicle(db, caller, vehicle_id)

    reviews = await list_reviews(db, vehicle_id, date_filter, newest_first=False)
    employees = await _documents_by_id(db, EMPLOYEES, caller, (review.get("employee_id") for review in reviews))

    table = build_vehicle_history_table(vehicle, reviews, employees, start_date, end_date)
    logger.info(f"Vehicle report for {vehicle_id}: {len(reviews)} review(s)")
    return build_artifact(_stamp(table, include_generated_at), report_format, "vehicle", vehicle_id, filename)


async def vehicles_report(
    db,
    caller: Caller,
    report_format,
    filename: Optional[str] = None,
    include_generated_at: bool = False,
) -> ReportArtifact:
    """Render every vehicle in the tenant with its hours and WOF/Rego."""
    report_format = parse_format(report_format)
    vehicles = await list_vehicles(db, caller)

    table = build_vehicles_table(vehicles)
    logger.info(f"All vehicles report for tenant {caller.tenant_id}: {len(vehicles)} vehicle(s)")
    return build_artifact(
        _stamp(table, include_generated_at), report_format, "all_vehicles", "report", filename
    )


async def timesheet_report(
    db,
    caller: Caller,
    report_format,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    employee_ids: Optional[List[str]] = None,
    project_ids: Optional[List[str]] = None,
    group_by: str = "employee",
    filename: Optional[str] = None,
    include_generated_at: bool = False,
) -> ReportArtifact:
    """
    Render the tenant's timesheets for a date range.

    Args:
        employee_ids: Restrict to these employees, all when empty
        project_ids: Restrict to these projects, all when empty
        group_by: "employee" or "project"

    Raises:
        AuthorizationError: Caller is not an employer
        ValidationError: Unsupported format, bad range or grouping
    """
    ensure_employer(caller)
    report_format = parse_format(report_format)
    date_filter = date_range_filter(start_date, end_date)
    if group_by not in GROUPINGS:
        raise ValidationError(f"group by must be one of: {', '.join(GROUPINGS)}")

    query = {"tenant_id": caller.tenant_id}
    if date_filter:
        query["date"] = date_filter
    if employee_ids:
        query["employee_id"] = {"$in": list(employee_ids)}
    if project_ids:
        query["project_id"] = {"$in": list(project_ids)}

    cursor = db[TIMESHEETS].find(query)
    entries = sorted(await cursor.to_list(length=None), key=local_sort_key)

    employees = await _documents_by_id(db, EMPLOYEES, caller, (entry.get("employee_id") for entry in entries))
    clients = await _documents_by_id(db, CLIENTS, caller, (entry.get("client_id") for entry in entries))
    projects = await _documents_by_id(db, PROJECTS, caller, (entry.get("project_id") for entry in entries))

    table = build_timesheet_table(entries, employees, clients, projects, start_date, end_date, group_by)
    period = f"{start_date or 'start'}_{end_date or 'end'}"
    return build_artifact(_stamp(table, include_generated_at), report_format, "timesheets", period, filename)
