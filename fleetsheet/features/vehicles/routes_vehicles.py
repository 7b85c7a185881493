"""
Vehicle Routes Module

Endpoints for vehicles and vehicle reviews.

Features:
- Vehicle CRUD
- Review capture and edits
- Vehicle history

Security:
- Authentication required
- Employer role for vehicle mutations and review deletes
- Tenant scoping

Author: Fleetsheet Development Team
"""

import logging
from typing import List

from fastapi import APIRouter, Depends

from fleetsheet.shared.auth import Caller, get_current_caller, require_employer
from fleetsheet.shared.database import get_database

from . import service
from .models import ReviewSubmission, Vehicle, VehicleIn, VehicleReview, VehicleWithReviews

router = APIRouter(
    prefix="/vehicles",
    tags=["vehicles"]
)

logger = logging.getLogger(__name__)


def _with_reviews(result: dict) -> VehicleWithReviews:
    latest = result["latest_review"]
    return VehicleWithReviews(
        vehicle=Vehicle.from_document(result["vehicle"]),
        reviews=[VehicleReview.from_document(review) for review in result["reviews"]],
        latest_review=VehicleReview.from_document(latest) if latest else None,
    )


# --- Vehicle Review Routes ---
# Declared before /{vehicle_id} so "reviews" is never taken for an id.

@router.post("/reviews", response_model=VehicleReview, status_code=201)
async def create_vehicle_review(
    submission: ReviewSubmission,
    caller: Caller = Depends(get_current_caller),
    db=Depends(get_database),
):
    """
    Create a vehicle review.

    Args:
        submission (ReviewSubmission): Review data
        caller (Caller): Authenticated caller

    Returns:
        VehicleReview: Stored review

    Raises:
        NotFoundError: Unknown vehicle or employee
        AuthorizationError: Vehicle outside the caller's tenant
        ValidationError: Invalid hours or missing fields
    """
    return VehicleReview.from_document(await service.create_review(db, caller, submission))


@router.get("/reviews/{review_id}", response_model=VehicleReview)
async def get_review(
    review_id: str,
    caller: Caller = Depends(get_current_caller),
    db=Depends(get_database),
):
    return VehicleReview.from_document(await service.get_review(db, caller, review_id))


@router.put("/reviews/{review_id}", response_model=VehicleReview)
async def update_review(
    review_id: str,
    submission: ReviewSubmission,
    caller: Caller = Depends(get_current_caller),
    db=Depends(get_database),
):
    return VehicleReview.from_document(await service.update_review(db, caller, review_id, submission))


@router.delete("/reviews/{review_id}")
async def delete_review(
    review_id: str,
    caller: Caller = Depends(require_employer),
    db=Depends(get_database),
):
    await service.delete_review(db, caller, review_id)
    return {"message": "Review deleted successfully"}


# --- Vehicle Routes ---

@router.get("", response_model=List[Vehicle])
async def get_vehicles(caller: Caller = Depends(get_current_caller), db=Depends(get_database)):
    return [Vehicle.from_document(vehicle) for vehicle in await service.list_vehicles(db, caller)]


@router.post("", response_model=Vehicle, status_code=201)
async def create_vehicle(
    payload: VehicleIn,
    caller: Caller = Depends(require_employer),
    db=Depends(get_database),
):
    return Vehicle.from_document(await service.create_vehicle(db, caller, payload))


@router.get("/{vehicle_id}", response_model=Vehicle)
async def get_vehicle(
    vehicle_id: str,
    caller: Caller = Depends(get_current_caller),
    db=Depends(get_database),
):
    return Vehicle.from_document(await service.get_vehicle(db, caller, vehicle_id))


@router.put("/{vehicle_id}", response_model=Vehicle)
async def update_vehicle(
    vehicle_id: str,
    payload: VehicleIn,
    caller: Caller = Depends(require_employer),
    db=Depends(get_database),
):
    return Vehicle.from_document(await service.update_vehicle(db, caller, vehicle_id, payload))


@router.delete("/{vehicle_id}")
async def delete_vehicle(
    vehicle_id: str,
    caller: Caller = Depends(require_employer),
    db=Depends(get_database),
):
    """Delete a vehicle; refused while reviews still reference it."""
    await service.delete_vehicle(db, caller, vehicle_id)
    return {"message": "Vehicle deleted successfully"}


@router.get("/{vehicle_id}/reviews", response_model=VehicleWithReviews)
async def get_vehicle_reviews(
    vehicle_id: str,
    caller: Caller = Depends(get_current_caller),
    db=Depends(get_database),
):
    """Vehicle with its reviews, newest first, and the latest review."""
    return _with_reviews(await service.get_vehicle_with_reviews(db, caller, vehicle_id))
