"""
Report Renderer Module

Renders report tables into PDF and spreadsheet byte buffers.

Features:
- Vehicle review tables (single review or date-ranged history)
- Fixed field order shared by both encodings
- Placeholders for missing referenced data
- PDF rendering with reportlab
- Spreadsheet rendering with openpyxl
- Optional "Generated At" stamp

Output contract:
    A single-review PDF lists, in order: title, Vehicle, Employee, Date
    Reviewed, WOF/Rego, Oil Checked, Vehicle Checked, Vehicle Broken,
    Hours Used, Notes. The spreadsheet's first sheet has a header row with
    the same labels and one row per review.

    Rendering reads no clock and no locale. PDFs are written in reportlab's
    invariant mode, so identical input gives identical bytes.

Dependencies:
- reportlab for PDF
- openpyxl for XLSX
- io for buffers

Author: Fleetsheet Development Team
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from io import BytesIO
from textwrap import wrap
from typing import Any, Dict, List, Optional, Sequence, Tuple

from openpyxl import Workbook
from openpyxl.styles import Border, Font, PatternFill, Side
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from fleetsheet.shared.errors import ValidationError
from fleetsheet.shared.models import ReportFormat

REVIEW_TITLE = "Vehicle Review Report"
VEHICLE_HISTORY_TITLE = "Vehicle History Report"
VEHICLES_TITLE = "All Vehicles Report"
VEHICLE_COLUMNS = ["Name", "Hours", "WOF/Rego"]
REVIEW_COLUMNS = [
    "Vehicle",
    "Employee",
    "Date Reviewed",
    "WOF/Rego",
    "Oil Checked",
    "Vehicle Checked",
    "Vehicle Broken",
    "Hours Used",
    "Notes",
]

UNNAMED_VEHICLE = "Unnamed"
UNKNOWN_EMPLOYEE = "Unknown"
NOT_AVAILABLE = "N/A"
NO_HOURS = "--"

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

# PDF layout
PAGE_WIDTH, PAGE_HEIGHT = letter
MARGIN = 50
LINE_HEIGHT = 16
WRAP_CHARS = 90

HEADER_FILL = PatternFill(start_color="FFD3D3D3", end_color="FFD3D3D3", fill_type="solid")


@dataclass(frozen=True)
class ReportTable:
    """
    Encoding-neutral report content.

    Attributes:
        title (str): Document title
        columns (List[str]): Field labels, in output order
        rows (List[List[str]]): One list of values per record
        summary (List[Tuple[str, str]]): Label/value lines shown before rows
        sheet_name (str): Name of the spreadsheet's data sheet
        empty_message (str): Shown when there are no rows
    """
    title: str
    columns: List[str]
    rows: List[List[str]]
    summary: List[Tuple[str, str]] = field(default_factory=list)
    sheet_name: str = "Report"
    empty_message: str = "No records found."

    def records(self) -> List[Dict[str, str]]:
        return [dict(zip(self.columns, row)) for row in self.rows]


def _as_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.strptime(value[:10], "%Y-%m-%d").date()
        except ValueError:
            return None
    return None


def format_calendar_date(value: Any) -> str:
    """Human readable date, e.g. ``1 June 2024``; N/A when unparseable."""
    parsed = _as_date(value)
    if parsed is None:
        return NOT_AVAILABLE
    return f"{parsed.day} {MONTH_NAMES[parsed.month - 1]} {parsed.year}"


def day_name(value: Any) -> str:
    parsed = _as_date(value)
    return DAY_NAMES[parsed.weekday()] if parsed else ""


def yes_no(flag: Any) -> str:
    return "Yes" if flag else "No"


def format_hours(hours: Any) -> str:
    if hours is None or hours == "":
        return NO_HOURS
    try:
        value = float(hours)
    except (TypeError, ValueError):
        return NO_HOURS
    if value.is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip("0")


def _text(value: Any, placeholder: str) -> str:
    if value is None:
        return placeholder
    text = str(value).strip()
    return text or placeholder


def review_row(review: dict, vehicle: Optional[dict], employee: Optional[dict]) -> List[str]:
    """Values for one review in REVIEW_COLUMNS order."""
    vehicle = vehicle or {}
    employee = employee or {}
    return [
        _text(vehicle.get("name"), UNNAMED_VEHICLE),
        _text(employee.get("name"), UNKNOWN_EMPLOYEE),
        format_calendar_date(review.get("date_reviewed")),
        _text(vehicle.get("wof_rego"), NOT_AVAILABLE),
        yes_no(review.get("oil_checked")),
        yes_no(review.get("vehicle_checked")),
        yes_no(review.get("vehicle_broken")),
        format_hours(review.get("hours")),
        _text(review.get("notes"), NOT_AVAILABLE),
    ]


def build_review_table(review: dict, vehicle: Optional[dict], employee: Optional[dict]) -> ReportTable:
    return ReportTable(
        title=REVIEW_TITLE,
        columns=list(REVIEW_COLUMNS),
        rows=[review_row(review, vehicle, employee)],
        sheet_name="Review Report",
    )


def build_vehicle_history_table(
    vehicle: dict,
    reviews: Sequence[dict],
    employees: Dict[str, dict],
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> ReportTable:
    """
    Batch report: one row per review of a vehicle in a date range.

    Args:
        vehicle: Vehicle document
        reviews: Review documents, in the order they should appear
        employees: Employee documents keyed by id
        start_date / end_date: Inclusive range shown in the summary
    """
    period = f"{format_calendar_date(start_date) if start_date else 'Start'} to " \
             f"{format_calendar_date(end_date) if end_date else 'End'}"
    return ReportTable(
        title=VEHICLE_HISTORY_TITLE,
        columns=list(REVIEW_COLUMNS),
        rows=[review_row(review, vehicle, employees.get(review.get("employee_id"))) for review in reviews],
        summary=[
            ("Vehicle Name", _text(vehicle.get("name"), UNNAMED_VEHICLE)),
            ("Total Hours", format_hours(vehicle.get("hours"))),
            ("WOF/Rego", _text(vehicle.get("wof_rego"), NOT_AVAILABLE)),
            ("Period", period),
        ],
        sheet_name="Vehicle History",
        empty_message="No reviews found for this date range.",
    )


def build_vehicles_table(vehicles: Sequence[dict]) -> ReportTable:
    """Fleet overview: one row per vehicle, ordered by name."""
    ordered = sorted(vehicles, key=lambda vehicle: (str(vehicle.get("name") or "").lower(), str(vehicle.get("_id"))))
    return ReportTable(
        title=VEHICLES_TITLE,
        columns=list(VEHICLE_COLUMNS),
        rows=[
            [
                _text(vehicle.get("name"), UNNAMED_VEHICLE),
                format_hours(vehicle.get("hours")),
                _text(vehicle.get("wof_rego"), NOT_AVAILABLE),
            ]
            for vehicle in ordered
        ],
        summary=[("Vehicles", str(len(ordered)))],
        sheet_name="All Vehicles",
        empty_message="No vehicles found.",
    )


def with_generated_at(table: ReportTable, generated_at: datetime) -> ReportTable:
    """Add a "Generated At" line; the only place a timestamp enters a report."""
    stamp = generated_at.strftime("%Y-%m-%d %H:%M UTC")
    return replace(table, summary=list(table.summary) + [("Generated At", stamp)])


# --- PDF ---

class _PdfWriter:
    """Line-oriented writer over a reportlab canvas with page breaks."""

    def __init__(self, buffer: BytesIO, title: str):
        self.canvas = canvas.Canvas(buffer, pagesize=letter, invariant=1, pageCompression=0)
        self.canvas.setTitle(title)
        self.canvas.setAuthor("Fleetsheet")
        self.y = PAGE_HEIGHT - MARGIN

    def _ensure_room(self, lines: int = 1):
        if self.y - lines * LINE_HEIGHT < MARGIN:
            self.canvas.showPage()
            self.y = PAGE_HEIGHT - MARGIN

    def title(self, text: str):
        self.canvas.setFont("Helvetica-Bold", 16)
        self.canvas.drawCentredString(PAGE_WIDTH / 2, self.y, text)
        self.y -= LINE_HEIGHT * 2

    def heading(self, text: str):
        self._ensure_room(2)
        self.canvas.setFont("Helvetica-Bold", 12)
        self.canvas.drawString(MARGIN, self.y, text)
        self.y -= LINE_HEIGHT

    def line(self, text: str):
        for chunk in wrap(text, WRAP_CHARS) or [""]:
            self._ensure_room()
            self.canvas.setFont("Helvetica", 12)
            self.canvas.drawString(MARGIN, self.y, chunk)
            self.y -= LINE_HEIGHT

    def gap(self):
        self.y -= LINE_HEIGHT / 2

    def finish(self):
        self.canvas.showPage()
        self.canvas.save()


def render_pdf(table: ReportTable) -> bytes:
    buffer = BytesIO()
    pdf = _PdfWriter(buffer, table.title)
    pdf.title(table.title)

    for label, value in table.summary:
        pdf.line(f"{label}: {value}")
    if table.summary:
        pdf.gap()

    multiple = len(table.rows) > 1
    for index, row in enumerate(table.rows, start=1):
        if multiple:
            pdf.heading(f"Record {index}")
        for label, value in zip(table.columns, row):
            pdf.line(f"{label}: {value}")
        pdf.gap()

    if not table.rows:
        pdf.line(table.empty_message)

    pdf.finish()
    return buffer.getvalue()


# --- Spreadsheet ---

def render_excel(table: ReportTable) -> bytes:
    """
    Encode a table as XLSX.

    Sheet 1 holds the header row and data rows; a second "Summary" sheet
    holds the summary lines when there are any.
    """
    workbook = Workbook()
    workbook.properties.creator = "Fleetsheet"
    workbook.properties.title = table.title

    sheet = workbook.active
    sheet.title = table.sheet_name[:31]
    sheet.append(table.columns)
    for cell in sheet[1]:
        cell.font = Font(bold=True)
        cell.fill = HEADER_FILL
        cell.border = Border(bottom=Side(style="thin"))

    for row in table.rows:
        sheet.append(row)
    if not table.rows:
        sheet.append([table.empty_message])

    for index, column in enumerate(table.columns):
        width = max([len(column)] + [len(str(row[index])) for row in table.rows if index < len(row)])
        sheet.column_dimensions[sheet.cell(row=1, column=index + 1).column_letter].width = min(width + 2, 60)

    if table.summary:
        summary = workbook.create_sheet("Summary")
        summary.append(["Field", "Value"])
        summary["A1"].font = Font(bold=True)
        summary["B1"].font = Font(bold=True)
        for label, value in table.summary:
            summary.append([label, value])
        summary.column_dimensions["A"].width = 20
        summary.column_dimensions["B"].width = 40

    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


RENDERERS = {
    ReportFormat.PDF: render_pdf,
    ReportFormat.EXCEL: render_excel,
}


def render(table: ReportTable, report_format: ReportFormat) -> bytes:
    renderer = RENDERERS.get(report_format)
    if renderer is None:
        raise ValidationError("unsupported format")
    return renderer(table)
