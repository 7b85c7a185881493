"""
Shared Models Module

This module contains shared data models and enums used across
the application.

Features:
- Leave and lunch enums
- Caller roles
- Report formats
- camelCase API base model
- Document id helpers

Author: Fleetsheet Development Team
"""

from datetime import datetime, timezone
from enum import Enum

from bson import ObjectId
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class LeaveType(str, Enum):
    """
    Classification of a timesheet entry.

    Attributes:
        NONE: Regular work day
        ANNUAL: Annual leave
        PUBLIC_HOLIDAY: Public holiday
        PAID: Other paid leave
        SICK: Sick leave
        UNPAID: Unpaid leave
    """
    NONE = "None"
    ANNUAL = "Annual"
    PUBLIC_HOLIDAY = "Public Holiday"
    PAID = "Paid"
    SICK = "Sick"
    UNPAID = "Unpaid"


class YesNo(str, Enum):
    YES = "Yes"
    NO = "No"


class Role(str, Enum):
    """
    Caller role supplied by the auth token.

    Attributes:
        EMPLOYER: Tenant owner, may mutate everything in the tenant
        EMPLOYEE: Staff member, limited to their own records
    """
    EMPLOYER = "employer"
    EMPLOYEE = "employee"


class ReportFormat(str, Enum):
    PDF = "pdf"
    EXCEL = "excel"


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def new_id() -> str:
    """Generate a document id (hex string of a fresh ObjectId)."""
    return str(ObjectId())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
