"""
Vehicle Data Models Module

Request and response models for vehicles and their reviews.

Author: Fleetsheet Development Team
"""

from datetime import datetime
from typing import Any, List, Optional

from fleetsheet.shared.models import CamelModel


class VehicleIn(CamelModel):
    """
    Vehicle create/update payload.

    Attributes:
        name (str): Display name
        hours (Optional[float]): Current hour-meter reading
        wof_rego (Optional[str]): WOF / registration details
    """
    name: str
    hours: Optional[float] = None
    wof_rego: Optional[str] = None


class Vehicle(CamelModel):
    id: str
    tenant_id: str
    name: str
    hours: Optional[float] = None
    wof_rego: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, document: dict) -> "Vehicle":
        data = {key: value for key, value in document.items() if key != "_id"}
        return cls(id=str(document["_id"]), **data)


class ReviewSubmission(CamelModel):
    """
    Vehicle review create/update payload.

    ``hours`` is left untyped so that non-numeric input is rejected by the
    review service with its own message.
    """
    vehicle_id: Optional[str] = None
    employee_id: Optional[str] = None
    date_reviewed: Optional[str] = None
    oil_checked: bool = False
    vehicle_checked: bool = False
    vehicle_broken: bool = False
    hours: Optional[Any] = None
    notes: Optional[str] = None


class VehicleReview(CamelModel):
    id: str
    tenant_id: str
    vehicle_id: str
    employee_id: str
    date_reviewed: str
    oil_checked: bool = False
    vehicle_checked: bool = False
    vehicle_broken: bool = False
    hours: Optional[float] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, document: dict) -> "VehicleReview":
        data = {key: value for key, value in document.items() if key != "_id"}
        return cls(id=str(document["_id"]), **data)


class VehicleWithReviews(CamelModel):
    vehicle: Vehicle
    reviews: List[VehicleReview]
    latest_review: Optional[VehicleReview] = None
