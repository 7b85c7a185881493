"""
Test Report Rendering

This module tests the report renderer including:
- PDF field order and placeholders
- Spreadsheet header and rows
- PDF and spreadsheet field equivalence
- Deterministic output
- Timesheet report rows and grouping
"""

import re
from datetime import datetime, timezone
from io import BytesIO

import pytest
from openpyxl import load_workbook

from fleetsheet.shared.errors import ValidationError
from fleetsheet.shared.models import ReportFormat
from fleetsheet.features.reports.renderer import (
    REVIEW_COLUMNS,
    build_review_table,
    build_vehicle_history_table,
    build_vehicles_table,
    format_calendar_date,
    render,
    render_excel,
    render_pdf,
    with_generated_at,
)
from fleetsheet.features.reports.timesheet_report import TIMESHEET_COLUMNS, build_timesheet_table

VEHICLE = {"_id": "v1", "name": "Hilux", "hours": 120, "wof_rego": "WOF due 2024-12-01"}
EMPLOYEE = {"_id": "e2", "name": "Ben Jones"}
REVIEW = {
    "_id": "r1",
    "vehicle_id": "v1",
    "employee_id": "e2",
    "date_reviewed": "2024-06-01",
    "oil_checked": True,
    "vehicle_checked": False,
    "vehicle_broken": False,
    "hours": 120,
    "notes": "All good",
}


def pdf_lines(content: bytes):
    """Text drawn on the page, read from the uncompressed content stream"""
    return [
        match.decode("latin-1").replace("\\(", "(").replace("\\)", ")")
        for match in re.findall(rb"\(((?:[^()\\]|\\.)*)\) Tj", content)
    ]


def test_format_calendar_date():
    assert format_calendar_date("2024-06-01") == "1 June 2024"
    assert format_calendar_date("2023-12-25") == "25 December 2023"
    assert format_calendar_date(None) == "N/A"


def test_review_pdf_field_order():
    """Test a single-review PDF lists every field in the fixed order"""
    content = render_pdf(build_review_table(REVIEW, VEHICLE, EMPLOYEE))

    assert content.startswith(b"%PDF")
    assert pdf_lines(content) == [
        "Vehicle Review Report",
        "Vehicle: Hilux",
        "Employee: Ben Jones",
        "Date Reviewed: 1 June 2024",
        "WOF/Rego: WOF due 2024-12-01",
        "Oil Checked: Yes",
        "Vehicle Checked: No",
        "Vehicle Broken: No",
        "Hours Used: 120",
        "Notes: All good",
    ]


def test_review_placeholders():
    bare_review = {**REVIEW, "hours": None, "notes": None}

    table = build_review_table(bare_review, {"_id": "v1"}, None)

    assert table.records()[0] == {
        "Vehicle": "Unnamed",
        "Employee": "Unknown",
        "Date Reviewed": "1 June 2024",
        "WOF/Rego": "N/A",
        "Oil Checked": "Yes",
        "Vehicle Checked": "No",
        "Vehicle Broken": "No",
        "Hours Used": "--",
        "Notes": "N/A",
    }


def test_spreadsheet_matches_pdf_fields():
    """Test both encodings carry the same labels and values"""
    table = build_review_table(REVIEW, VEHICLE, EMPLOYEE)

    workbook = load_workbook(BytesIO(render_excel(table)))
    rows = list(workbook.worksheets[0].iter_rows(values_only=True))

    assert list(rows[0]) == REVIEW_COLUMNS
    assert len(rows) == 2
    spreadsheet_fields = dict(zip(rows[0], rows[1]))
    pdf_fields = dict(line.split(": ", 1) for line in pdf_lines(render_pdf(table))[1:])
    assert spreadsheet_fields == pdf_fields


def test_pdf_is_deterministic():
    table = build_review_table(REVIEW, VEHICLE, EMPLOYEE)

    assert render_pdf(table) == render_pdf(table)


def test_generated_at_only_when_requested():
    table = build_review_table(REVIEW, VEHICLE, EMPLOYEE)
    stamped = with_generated_at(table, datetime(2024, 6, 2, 8, 30, tzinfo=timezone.utc))

    assert not any(line.startswith("Generated At") for line in pdf_lines(render_pdf(table)))
    assert "Generated At: 2024-06-02 08:30 UTC" in pdf_lines(render_pdf(stamped))


def test_vehicle_history_report():
    reviews = [REVIEW, {**REVIEW, "_id": "r2", "date_reviewed": "2024-06-08", "employee_id": "gone", "hours": 131.5}]

    table = build_vehicle_history_table(VEHICLE, reviews, {"e2": EMPLOYEE}, "2024-06-01", "2024-06-30")

    assert table.summary[0] == ("Vehicle Name", "Hilux")
    assert ("Period", "1 June 2024 to 30 June 2024") in table.summary
    assert [record["Employee"] for record in table.records()] == ["Ben Jones", "Unknown"]
    assert table.records()[1]["Hours Used"] == "131.5"

    lines = pdf_lines(render_pdf(table))
    assert "Record 1" in lines
    assert "Record 2" in lines

    workbook = load_workbook(BytesIO(render_excel(table)))
    assert workbook.sheetnames == ["Vehicle History", "Summary"]
    assert workbook["Vehicle History"].max_row == 3


def test_empty_history_report():
    table = build_vehicle_history_table(VEHICLE, [], {})

    assert "No reviews found for this date range." in pdf_lines(render_pdf(table))


def test_render_dispatch():
    table = build_review_table(REVIEW, VEHICLE, EMPLOYEE)

    assert render(table, ReportFormat.PDF).startswith(b"%PDF")
    assert render(table, ReportFormat.EXCEL).startswith(b"PK")
    with pytest.raises(ValidationError, match="unsupported format"):
        render(table, "word")


def test_timesheet_table_grouping():
    """Test timesheet rows render local times and group by project"""
    entries = [
        {"employee_id": "e1", "client_id": "c1", "project_id": "p1", "date": "2024-05-01",
         "start_time": "21:00", "end_time": "05:00", "lunch_break": "No", "lunch_duration": "00:00",
         "leave_type": "None", "description": "", "notes": "Posts", "hourly_wage": 25.5,
         "total_hours": 8.0, "timezone": "Pacific/Auckland"},
        {"employee_id": "e2", "client_id": "c1", "project_id": "p2", "date": "2024-05-01",
         "start_time": "08:00", "end_time": "12:00", "lunch_break": "Yes", "lunch_duration": "00:30",
         "leave_type": "None", "description": "", "notes": "", "hourly_wage": 30,
         "total_hours": 3.5, "timezone": "UTC"},
    ]
    employees = {"e1": {"name": "Aroha Smith"}, "e2": {"name": "Ben Jones"}}
    clients = {"c1": {"name": "Acme Ltd"}}
    projects = {"p1": {"name": "Fence Build"}, "p2": {"name": "Driveway"}}

    table = build_timesheet_table(entries, employees, clients, projects, group_by="project")
    records = table.records()

    assert table.columns == TIMESHEET_COLUMNS
    assert [record["Project"] for record in records] == ["Driveway", "Fence Build"]
    assert records[1]["Start"] == "09:00"
    assert records[1]["End"] == "17:00"
    assert records[1]["Day"] == "Wednesday"
    assert records[1]["Wage"] == "$25.50"
    assert records[0]["Lunch"] == "00:30"
    assert ("Total Hours", "11.50") in table.summary

    with pytest.raises(ValidationError):
        build_timesheet_table(entries, employees, clients, projects, group_by="client")


def test_timesheet_rows_follow_local_start():
    entries = [
        {"employee_id": "e1", "project_id": "p1", "date": "2024-05-01", "start_time": start,
         "end_time": end, "lunch_break": "No", "leave_type": "None", "total_hours": 2.0,
         "hourly_wage": 25.5, "timezone": "Pacific/Auckland"}
        for start, end in (("01:00", "03:00"), ("21:00", "23:00"))
    ]

    table = build_timesheet_table(entries, {"e1": {"name": "Aroha Smith"}}, {}, {"p1": {"name": "Fence Build"}})

    assert [record["Start"] for record in table.records()] == ["09:00", "13:00"]


def test_all_vehicles_table():
    vehicles = [
        {"_id": "v2", "name": "Ranger", "hours": None, "wof_rego": None},
        {"_id": "v1", "name": "Hilux", "hours": 120, "wof_rego": "WOF due 2024-12-01"},
        {"_id": "v3", "name": None, "hours": 131.5},
    ]

    table = build_vehicles_table(vehicles)

    assert table.columns == ["Name", "Hours", "WOF/Rego"]
    assert table.rows == [
        ["Unnamed", "131.5", "N/A"],
        ["Hilux", "120", "WOF due 2024-12-01"],
        ["Ranger", "--", "N/A"],
    ]
    assert ("Vehicles", "3") in table.summary
    assert load_workbook(BytesIO(render_excel(table))).sheetnames == ["All Vehicles", "Summary"]
    assert "No vehicles found." in pdf_lines(render_pdf(build_vehicles_table([])))
