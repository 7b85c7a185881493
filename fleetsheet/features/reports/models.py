"""
Report Request Models Module

Request bodies for report downloads and email delivery.

Notes:
    ``format`` is a plain string so unsupported values are rejected by the
    delivery layer with a ``validation_error`` body.

Author: Fleetsheet Development Team
"""

from typing import List, Optional

from fleetsheet.shared.models import CamelModel


class ReportRequest(CamelModel):
    """
    Common report options.

    Attributes:
        format (str): "pdf" or "excel"
        start_date (Optional[str]): Inclusive range start, YYYY-MM-DD
        end_date (Optional[str]): Inclusive range end, YYYY-MM-DD
        filename (Optional[str]): Overrides the default artifact name
        include_generated_at (bool): Stamp the report with the render time
    """
    format: str = "pdf"
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    filename: Optional[str] = None
    include_generated_at: bool = False


class EmailReportRequest(ReportRequest):
    email: str
    subject: Optional[str] = None
    message: Optional[str] = None


class TimesheetReportRequest(ReportRequest):
    employee_ids: List[str] = []
    project_ids: List[str] = []
    group_by: str = "employee"


class TimesheetEmailRequest(TimesheetReportRequest):
    email: str
    subject: Optional[str] = None
    message: Optional[str] = None


class EmailReportResponse(CamelModel):
    message: str
    message_id: str
    filename: str
