"""
Report Routes Module

Download and email endpoints for vehicle and timesheet reports.

Features:
- Review and vehicle history reports (PDF or spreadsheet)
- All-vehicles overview
- Employer timesheet reports
- Email delivery with the report attached

Security:
- Authentication required
- Employer role for timesheet reports
- Tenant scoping

Author: Fleetsheet Development Team
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from fleetsheet.shared.auth import Caller, get_current_caller, require_employer
from fleetsheet.shared.database import get_database
from fleetsheet.shared.mailer import get_mail_transport

from . import service
from .delivery import ReportArtifact, content_disposition, email_artifact
from .models import EmailReportRequest, EmailReportResponse, TimesheetEmailRequest, TimesheetReportRequest

router = APIRouter(
    prefix="/reports",
    tags=["reports"]
)

logger = logging.getLogger(__name__)


def _download(artifact: ReportArtifact) -> Response:
    return Response(
        content=artifact.content,
        media_type=artifact.mime_type,
        headers={
            "Content-Disposition": content_disposition(artifact.filename)
        }
    )


async def _send(transport, artifact: ReportArtifact, request, default_subject: str) -> EmailReportResponse:
    subject = request.subject or default_subject
    body = request.message or f"Please find the attached {default_subject.lower()}."
    message_id = await email_artifact(transport, artifact, request.email, subject, body)
    return EmailReportResponse(
        message=f"Report sent to {request.email}",
        message_id=message_id,
        filename=artifact.filename,
    )


# --- Vehicle Review Reports ---

@router.get("/reviews/{review_id}")
async def download_review_report(
    review_id: str,
    format: str = Query("pdf"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    filename: Optional[str] = Query(None),
    include_generated_at: bool = Query(False, alias="includeGeneratedAt"),
    caller: Caller = Depends(get_current_caller),
    db=Depends(get_database),
):
    """
    Download a single review as PDF or spreadsheet.

    Args:
        review_id (str): Review to render
        format (str): "pdf" or "excel"
        filename (Optional[str]): Overrides review_<id>.<ext>

    Returns:
        Response: Report bytes with an attachment Content-Disposition

    Raises:
        ValidationError: Unsupported format or start date after end date
        NotFoundError: Unknown review
    """
    artifact = await service.review_report(
        db, caller, review_id, format, filename, include_generated_at, start_date, end_date
    )
    return _download(artifact)


@router.post("/reviews/{review_id}/email", response_model=EmailReportResponse)
async def email_review_report(
    review_id: str,
    request: EmailReportRequest,
    caller: Caller = Depends(get_current_caller),
    db=Depends(get_database),
    transport=Depends(get_mail_transport),
):
    artifact = await service.review_report(
        db, caller, review_id, request.format, request.filename, request.include_generated_at,
        request.start_date, request.end_date,
    )
    return await _send(transport, artifact, request, "Vehicle Review Report")


@router.get("/vehicles")
async def download_vehicles_report(
    format: str = Query("pdf"),
    filename: Optional[str] = Query(None),
    include_generated_at: bool = Query(False, alias="includeGeneratedAt"),
    caller: Caller = Depends(get_current_caller),
    db=Depends(get_database),
):
    """Download the tenant's vehicles with hours and WOF/Rego."""
    artifact = await service.vehicles_report(db, caller, format, filename, include_generated_at)
    return _download(artifact)


@router.post("/vehicles/email", response_model=EmailReportResponse)
async def email_vehicles_report(
    request: EmailReportRequest,
    caller: Caller = Depends(get_current_caller),
    db=Depends(get_database),
    transport=Depends(get_mail_transport),
):
    artifact = await service.vehicles_report(
        db, caller, request.format, request.filename, request.include_generated_at
    )
    return await _send(transport, artifact, request, "All Vehicles Report")


@router.get("/vehicles/{vehicle_id}")
async def download_vehicle_report(
    vehicle_id: str,
    format: str = Query("pdf"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    filename: Optional[str] = Query(None),
    include_generated_at: bool = Query(False, alias="includeGeneratedAt"),
    caller: Caller = Depends(get_current_caller),
    db=Depends(get_database),
):
    """Download every review of a vehicle in a date range."""
    artifact = await service.vehicle_report(
        db, caller, vehicle_id, format, start_date, end_date, filename, include_generated_at
    )
    return _download(artifact)


@router.post("/vehicles/{vehicle_id}/email", response_model=EmailReportResponse)
async def email_vehicle_report(
    vehicle_id: str,
    request: EmailReportRequest,
    caller: Caller = Depends(get_current_caller),
    db=Depends(get_database),
    transport=Depends(get_mail_transport),
):
    artifact = await service.vehicle_report(
        db, caller, vehicle_id, request.format, request.start_date, request.end_date,
        request.filename, request.include_generated_at,
    )
    return await _send(transport, artifact, request, "Vehicle History Report")


# --- Timesheet Reports ---

@router.post("/timesheets/download")
async def download_timesheet_report(
    request: TimesheetReportRequest,
    caller: Caller = Depends(require_employer),
    db=Depends(get_database),
):
    artifact = await service.timesheet_report(
        db, caller, request.format, request.start_date, request.end_date,
        request.employee_ids, request.project_ids, request.group_by,
        request.filename, request.include_generated_at,
    )
    return _download(artifact)


@router.post("/timesheets/email", response_model=EmailReportResponse)
async def email_timesheet_report(
    request: TimesheetEmailRequest,
    caller: Caller = Depends(require_employer),
    db=Depends(get_database),
    transport=Depends(get_mail_transport),
):
    """
    Email a timesheet report.

    Raises:
        ValidationError: Bad format, range, grouping or recipient
        DeliveryError: Mail transport rejected the message
    """
    artifact = await service.timesheet_report(
        db, caller, request.format, request.start_date, request.end_date,
        request.employee_ids, request.project_ids, request.group_by,
        request.filename, request.include_generated_at,
    )
    return await _send(transport, artifact, request, "Timesheet Report")
