"""
Vehicle Service Module

Vehicle CRUD and vehicle review capture.

Features:
- Tenant-scoped vehicle management
- Review validation and capture
- Hour-meter defaulting from the vehicle
- Full-replace review edits
- Latest review derived from stored reviews

Data Model:
- vehicles: name, hours, wof_rego
- vehicle_reviews: vehicle_id, employee_id, date_reviewed, checks,
  hours, notes

Security:
- Tenant ownership checks
- Employer role for vehicle mutations and review deletes

Notes:
    Review creation receives its vehicle and employee lookups as
    callables so it can be exercised without a database.

Author: Fleetsheet Development Team
"""

import logging
import math
from functools import partial
from typing import Any, Awaitable, Callable, List, Optional

from fleetsheet.shared.auth import Caller, ensure_employer, ensure_same_tenant
from fleetsheet.shared.database import EMPLOYEES, VEHICLE_REVIEWS, VEHICLES
from fleetsheet.shared.errors import NotFoundError, ValidationError
from fleetsheet.shared.models import new_id, utcnow
from fleetsheet.features.timesheet.normalizer import parse_date

from .models import ReviewSubmission, VehicleIn

logger = logging.getLogger(__name__)

Lookup = Callable[[str], Awaitable[Optional[dict]]]


async def find_vehicle(db, vehicle_id: str) -> Optional[dict]:
    return await db[VEHICLES].find_one({"_id": vehicle_id})


async def find_employee(db, employee_id: str) -> Optional[dict]:
    return await db[EMPLOYEES].find_one({"_id": employee_id})


def coerce_hours(value: Any) -> Optional[float]:
    """
    Validate an hour-meter value.

    Returns:
        Optional[float]: None when the value is absent

    Raises:
        ValidationError: Non-numeric or negative values
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValidationError("hours must be a number")
    try:
        hours = float(value)
    except (TypeError, ValueError):
        raise ValidationError("hours must be a number")
    if math.isnan(hours) or math.isinf(hours):
        raise ValidationError("hours must be a number")
    if hours < 0:
        raise ValidationError("hours must not be negative")
    return hours


def _meter_reading(vehicle: dict) -> Optional[float]:
    try:
        return coerce_hours(vehicle.get("hours"))
    except ValidationError:
        logger.warning(f"Vehicle {vehicle.get('_id')} has an unreadable hour meter: {vehicle.get('hours')!r}")
        return None


def _review_fields(submission: ReviewSubmission) -> dict:
    if not submission.vehicle_id or not submission.employee_id or not submission.date_reviewed:
        raise ValidationError("vehicle, employee and review date required")
    return {
        "vehicle_id": submission.vehicle_id,
        "employee_id": submission.employee_id,
        "date_reviewed": parse_date(submission.date_reviewed).isoformat(),
        "oil_checked": bool(submission.oil_checked),
        "vehicle_checked": bool(submission.vehicle_checked),
        "vehicle_broken": bool(submission.vehicle_broken),
        "hours": coerce_hours(submission.hours),
        "notes": submission.notes or None,
    }


async def _resolve_references(caller: Caller, fields: dict, vehicle_lookup: Lookup, employee_lookup: Lookup) -> dict:
    vehicle = await vehicle_lookup(fields["vehicle_id"])
    if not vehicle:
        raise NotFoundError("vehicle not found")
    ensure_same_tenant(caller, vehicle, "vehicle")

    employee = await employee_lookup(fields["employee_id"])
    if not employee or employee.get("tenant_id") != caller.tenant_id:
        raise NotFoundError("employee not found")
    return vehicle


# --- Vehicles ---

async def list_vehicles(db, caller: Caller) -> List[dict]:
    cursor = db[VEHICLES].find({"tenant_id": caller.tenant_id}).sort("created_at", -1)
    return await cursor.to_list(length=None)


async def get_vehicle(db, caller: Caller, vehicle_id: str) -> dict:
    vehicle = await find_vehicle(db, vehicle_id)
    if not vehicle:
        raise NotFoundError("vehicle not found")
    ensure_same_tenant(caller, vehicle, "vehicle")
    return vehicle


async def create_vehicle(db, caller: Caller, payload: VehicleIn) -> dict:
    ensure_employer(caller)
    if not payload.name.strip():
        raise ValidationError("vehicle name required")
    document = {
        "_id": new_id(),
        "tenant_id": caller.tenant_id,
        "name": payload.name.strip(),
        "hours": coerce_hours(payload.hours),
        "wof_rego": payload.wof_rego,
        "created_at": utcnow(),
    }
    await db[VEHICLES].insert_one(document)
    logger.info(f"Vehicle {document['_id']} created in tenant {caller.tenant_id}")
    return document


async def update_vehicle(db, caller: Caller, vehicle_id: str, payload: VehicleIn) -> dict:
    ensure_employer(caller)
    vehicle = await get_vehicle(db, caller, vehicle_id)
    if not payload.name.strip():
        raise ValidationError("vehicle name required")
    updated = {
        **vehicle,
        "name": payload.name.strip(),
        "hours": coerce_hours(payload.hours),
        "wof_rego": payload.wof_rego,
    }
    await db[VEHICLES].replace_one({"_id": vehicle_id}, updated)
    return updated


async def delete_vehicle(db, caller: Caller, vehicle_id: str):
    """
    Delete a vehicle that has no reviews.

    Raises:
        ValidationError: While reviews still reference the vehicle
    """
    ensure_employer(caller)
    await get_vehicle(db, caller, vehicle_id)
    review_count = await db[VEHICLE_REVIEWS].count_documents({"vehicle_id": vehicle_id})
    if review_count:
        raise ValidationError(f"vehicle has {review_count} review(s); delete them first")
    await db[VEHICLES].delete_one({"_id": vehicle_id})
    logger.info(f"Vehicle {vehicle_id} deleted by {caller.caller_id}")


# --- Reviews ---

async def create_review(
    db,
    caller: Caller,
    submission: ReviewSubmission,
    vehicle_lookup: Optional[Lookup] = None,
    employee_lookup: Optional[Lookup] = None,
) -> dict:
    """
    Validate and store a vehicle review.

    Args:
        db: Database handle
        caller: Request caller
        submission: Review payload
        vehicle_lookup: Async callable resolving a vehicle id
        employee_lookup: Async callable resolving an employee id

    Returns:
        dict: Stored review document

    Raises:
        ValidationError: Missing fields, bad date or bad hours
        NotFoundError: Unknown vehicle or employee
        AuthorizationError: Vehicle owned by another tenant

    Notes:
        - Omitted hours default to the vehicle's current meter reading
    """
    vehicle_lookup = vehicle_lookup or partial(find_vehicle, db)
    employee_lookup = employee_lookup or partial(find_employee, db)

    fields = _review_fields(submission)
    vehicle = await _resolve_references(caller, fields, vehicle_lookup, employee_lookup)
    if fields["hours"] is None:
        fields["hours"] = _meter_reading(vehicle)

    now = utcnow()
    document = {
        "_id": new_id(),
        "tenant_id": caller.tenant_id,
        **fields,
        "created_at": now,
        "updated_at": now,
    }
    await db[VEHICLE_REVIEWS].insert_one(document)
    logger.info(f"Review {document['_id']} created for vehicle {fields['vehicle_id']}")
    return document


async def get_review(db, caller: Caller, review_id: str) -> dict:
    review = await db[VEHICLE_REVIEWS].find_one({"_id": review_id})
    if not review:
        raise NotFoundError("review not found")
    ensure_same_tenant(caller, review, "review")
    return review


async def update_review(
    db,
    caller: Caller,
    review_id: str,
    submission: ReviewSubmission,
    vehicle_lookup: Optional[Lookup] = None,
    employee_lookup: Optional[Lookup] = None,
) -> dict:
    """
    Replace a review; the vehicle it belongs to cannot change.

    Omitted hours are stored as absent, matching full-replace semantics.
    """
    vehicle_lookup = vehicle_lookup or partial(find_vehicle, db)
    employee_lookup = employee_lookup or partial(find_employee, db)

    existing = await get_review(db, caller, review_id)
    if submission.vehicle_id and submission.vehicle_id != existing["vehicle_id"]:
        raise ValidationError("vehicle cannot be changed")
    fields = _review_fields(submission.model_copy(update={"vehicle_id": existing["vehicle_id"]}))
    await _resolve_references(caller, fields, vehicle_lookup, employee_lookup)

    updated = {**existing, **fields, "updated_at": utcnow()}
    await db[VEHICLE_REVIEWS].replace_one({"_id": review_id}, updated)
    return updated


async def delete_review(db, caller: Caller, review_id: str):
    ensure_employer(caller)
    await get_review(db, caller, review_id)
    await db[VEHICLE_REVIEWS].delete_one({"_id": review_id})
    logger.info(f"Review {review_id} deleted by {caller.caller_id}")


async def list_reviews(
    db,
    vehicle_id: str,
    date_filter: Optional[dict] = None,
    newest_first: bool = True,
) -> List[dict]:
    query = {"vehicle_id": vehicle_id}
    if date_filter:
        query["date_reviewed"] = date_filter
    direction = -1 if newest_first else 1
    cursor = db[VEHICLE_REVIEWS].find(query).sort([("date_reviewed", direction), ("created_at", direction)])
    return await cursor.to_list(length=None)


async def get_vehicle_with_reviews(db, caller: Caller, vehicle_id: str) -> dict:
    """Vehicle, its reviews newest first, and the latest review read from them."""
    vehicle = await get_vehicle(db, caller, vehicle_id)
    reviews = await list_reviews(db, vehicle_id)
    return {
        "vehicle": vehicle,
        "reviews": reviews,
        "latest_review": reviews[0] if reviews else None,
    }
