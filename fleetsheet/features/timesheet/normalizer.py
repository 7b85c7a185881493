"""
Timesheet Normalizer Module

Turns a raw timesheet submission into the canonical document stored in the
timesheets collection.

Features:
- Ordered validation with fail-fast errors
- Local wall-clock to UTC HH:MM conversion
- Lunch deduction
- Total hours calculation
- Leave entry canonicalisation
- Edit immutability checks

Time handling:
    Submitted times are HH:MM in the submitter's zone. The zone offset is
    taken at a fixed reference date and applied as integer minutes, so
    durations never depend on the entry's own date or on daylight saving.

Dependencies:
- pytz for zone offsets
- decimal for rounding

Author: Fleetsheet Development Team
"""

import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import pytz

from fleetsheet.shared.config import DEFAULT_TIMEZONE
from fleetsheet.shared.errors import ValidationError
from fleetsheet.shared.models import LeaveType, YesNo

from .models import TimesheetSubmission

REFERENCE_DATE = datetime(1970, 1, 1, 12, 0)
MINUTES_PER_DAY = 24 * 60
CLOCK_PATTERN = re.compile(r"^(\d{2}):(\d{2})$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_clock(value: str, label: str = "time") -> int:
    """
    Parse an HH:MM string into minutes since midnight.

    Raises:
        ValidationError: For anything that is not a valid 24h clock value
    """
    match = CLOCK_PATTERN.match(str(value or "").strip())
    if not match:
        raise ValidationError(f"{label} must be in HH:MM format")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValidationError(f"{label} must be in HH:MM format")
    return hours * 60 + minutes


def format_clock(minutes: int) -> str:
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_date(value: str) -> date:
    if not DATE_PATTERN.match(str(value).strip()):
        raise ValidationError("date must be in YYYY-MM-DD format")
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError("date must be in YYYY-MM-DD format")


def utc_offset_minutes(tz_name: str) -> int:
    """
    Offset of a zone from UTC, in minutes, at the fixed reference date.

    Raises:
        ValidationError: For unknown zone names
    """
    try:
        zone = pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        raise ValidationError(f"unknown timezone '{tz_name}'")
    offset = zone.utcoffset(REFERENCE_DATE)
    return int(offset.total_seconds() // 60)


def to_utc_minutes(local_minutes: int, tz_name: str) -> int:
    """
    Shift a local minute-of-day to UTC without wrapping.

    The result can fall outside 0..1439; ordering between two values
    shifted by the same zone is therefore preserved.
    """
    return local_minutes - utc_offset_minutes(tz_name)


def to_local_clock(utc_clock: Optional[str], tz_name: str) -> str:
    """Render a stored UTC HH:MM back into the entry's zone."""
    if not utc_clock:
        return ""
    return format_clock(parse_clock(utc_clock) + utc_offset_minutes(tz_name))


def local_sort_key(entry: dict):
    """Date, then start time on the entry's own clock."""
    tz_name = entry.get("timezone") or DEFAULT_TIMEZONE
    return entry.get("date") or "", to_local_clock(entry.get("start_time"), tz_name)


def lunch_deduction_minutes(lunch_break: str, lunch_duration: Optional[str]) -> int:
    if lunch_break != YesNo.YES.value:
        return 0
    return parse_clock(lunch_duration, "lunch duration")


def compute_total_hours(
    start_minutes: int,
    end_minutes: int,
    lunch_break: str = YesNo.NO.value,
    lunch_duration: Optional[str] = "00:00",
) -> float:
    """
    Hours worked between two minute counts, net of lunch.

    Args:
        start_minutes: Start, minutes (same reference as end)
        end_minutes: End, minutes
        lunch_break: "Yes" to deduct lunch_duration
        lunch_duration: HH:MM lunch length

    Returns:
        float: Hours rounded half-up to two decimals, never negative

    Notes:
        - A non-positive raw span returns 0 so half-edited forms do not
          show negative totals; final submissions are rejected by
          normalize_submission before this matters
    """
    raw_minutes = end_minutes - start_minutes
    if raw_minutes <= 0:
        return 0.0
    net_minutes = max(0, raw_minutes - lunch_deduction_minutes(lunch_break, lunch_duration))
    hours = (Decimal(net_minutes) / Decimal(60)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return float(hours)


def _leave_type(value: Optional[str]) -> LeaveType:
    try:
        return LeaveType(value or LeaveType.NONE.value)
    except ValueError:
        raise ValidationError(f"invalid leave type '{value}'")


def _lunch_break(value: Optional[str]) -> str:
    try:
        return YesNo(value or YesNo.NO.value).value
    except ValueError:
        raise ValidationError("lunch break must be Yes or No")


def normalize_submission(submission: TimesheetSubmission) -> dict:
    """
    Validate a submission and build the canonical timesheet fields.

    Args:
        submission: Raw request payload

    Returns:
        dict: Document fields (without id, tenant, wage and timestamps)

    Raises:
        ValidationError: First violated rule, in this order:
            employee and date present, leave description present,
            client and project present, start before end
    """
    if not submission.employee_id or not submission.date:
        raise ValidationError("employee and date required")
    entry_date = parse_date(submission.date)
    leave_type = _leave_type(submission.leave_type)
    tz_name = submission.timezone or DEFAULT_TIMEZONE

    if leave_type != LeaveType.NONE:
        description = (submission.description or "").strip()
        if not description:
            raise ValidationError("leave description required")
        utc_offset_minutes(tz_name)
        # Leave days never carry work fields, whatever the caller sent
        return {
            "employee_id": submission.employee_id,
            "date": entry_date.isoformat(),
            "leave_type": leave_type.value,
            "client_id": None,
            "project_id": None,
            "start_time": None,
            "end_time": None,
            "lunch_break": YesNo.NO.value,
            "lunch_duration": "00:00",
            "description": description,
            "notes": "",
            "total_hours": 0.0,
            "timezone": tz_name,
        }

    if not submission.client_id or not submission.project_id:
        raise ValidationError("client and project required")
    if not submission.start_time or not submission.end_time:
        raise ValidationError("start and end time required")

    start_utc = to_utc_minutes(parse_clock(submission.start_time, "start time"), tz_name)
    end_utc = to_utc_minutes(parse_clock(submission.end_time, "end time"), tz_name)
    if end_utc <= start_utc:
        raise ValidationError("start time must precede end time")

    lunch_break = _lunch_break(submission.lunch_break)
    lunch_duration = submission.lunch_duration or "00:00"
    if lunch_break == YesNo.YES.value:
        parse_clock(lunch_duration, "lunch duration")
    else:
        lunch_duration = "00:00"

    return {
        "employee_id": submission.employee_id,
        "date": entry_date.isoformat(),
        "leave_type": leave_type.value,
        "client_id": submission.client_id,
        "project_id": submission.project_id,
        "start_time": format_clock(start_utc),
        "end_time": format_clock(end_utc),
        "lunch_break": lunch_break,
        "lunch_duration": lunch_duration,
        "description": "",
        "notes": submission.notes or "",
        "total_hours": compute_total_hours(start_utc, end_utc, lunch_break, lunch_duration),
        "timezone": tz_name,
    }


def merge_edit(existing: dict, submission: TimesheetSubmission) -> TimesheetSubmission:
    """
    Apply edit semantics: employee and date come from the stored entry.

    Raises:
        ValidationError: When the submission tries to change either field
    """
    if submission.employee_id and submission.employee_id != existing["employee_id"]:
        raise ValidationError("employee and date cannot be changed")
    if submission.date and submission.date != existing["date"]:
        raise ValidationError("employee and date cannot be changed")
    return submission.model_copy(
        update={"employee_id": existing["employee_id"], "date": existing["date"]}
    )

