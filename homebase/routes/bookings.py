"""
Booking (job) routes
Status changes here drive the engagement workflow
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..domain.workflow.service import WorkflowService
from ..models import Booking, User
from ..shared.access import ensure_provider_access

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])

BOOKING_STATUSES = ("pending", "confirmed", "scheduled", "in_progress", "completed", "cancelled")


class BookingStatusUpdate(BaseModel):
    status: str
    scheduled_date: Optional[datetime] = None
    final_price: Optional[float] = None


def booking_to_dict(booking: Booking) -> dict:
    return {
        "id": booking.id,
        "service_request_id": booking.service_request_id,
        "homeowner_id": booking.homeowner_id,
        "provider_org_id": booking.provider_org_id,
        "service_name": booking.service_name,
        "status": booking.status,
        "scheduled_date": booking.scheduled_date.isoformat() if booking.scheduled_date else None,
        "estimated_price_low": booking.estimated_price_low,
        "estimated_price_high": booking.estimated_price_high,
        "final_price": booking.final_price,
    }


@router.patch("/{booking_id}/status")
async def update_booking_status(
    booking_id: int,
    data: BookingStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update a job's status and sync its workflow"""
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    ensure_provider_access(current_user, booking.provider_org_id, "Booking")

    if data.status not in BOOKING_STATUSES:
        raise HTTPException(status_code=400, detail=f"Invalid booking status: {data.status}")

    booking.status = data.status
    if data.scheduled_date is not None:
        booking.scheduled_date = data.scheduled_date
    if data.final_price is not None:
        booking.final_price = data.final_price
    db.commit()
    db.refresh(booking)
    logger.info(f"✅ Booking {booking.id} status updated to {booking.status}")

    workflows = WorkflowService(db)
    await workflows.sync_job(booking.id, booking.status)

    if booking.status == "completed":
        try:
            await workflows.orchestrate(
                "job_completed",
                booking_id=booking.id,
                homeowner_id=booking.homeowner_id,
                provider_org_id=booking.provider_org_id,
                metadata={"service_name": booking.service_name},
            )
        except Exception as e:
            db.rollback()
            logger.error(f"❌ Workflow orchestration failed for booking {booking.id}: {e}")

    db.refresh(booking)
    return booking_to_dict(booking)
