"""Quote routes - send, accept and reject"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..domain.workflow.service import WorkflowService
from ..models import Booking, Quote, User
from ..shared.access import ensure_homeowner_access, ensure_provider_access

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quotes", tags=["Quotes"])


class QuoteAcceptRequest(BaseModel):
    scheduled_date: Optional[datetime] = None
    booking_id: Optional[int] = None


class QuoteRejectRequest(BaseModel):
    reason: Optional[str] = None


def quote_to_dict(quote: Quote) -> dict:
    return {
        "id": quote.id,
        "service_request_id": quote.service_request_id,
        "provider_org_id": quote.provider_org_id,
        "homeowner_id": quote.homeowner_id,
        "booking_id": quote.booking_id,
        "service_name": quote.service_name,
        "status": quote.status,
        "total_cost": quote.total_cost,
        "rejection_reason": quote.rejection_reason,
    }


def _get_quote(db: Session, quote_id: int) -> Quote:
    quote = db.query(Quote).filter(Quote.id == quote_id).first()
    if not quote:
        raise HTTPException(status_code=404, detail="Quote not found")
    return quote


def _ensure_booking_matches_quote(db: Session, booking_id: int, quote: Quote) -> Booking:
    """A quote may only be tied to a booking between the same homeowner and provider"""
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    if (
        booking.homeowner_id != quote.homeowner_id
        or booking.provider_org_id != quote.provider_org_id
    ):
        logger.warning(f"⚠️ Booking {booking_id} does not belong to quote {quote.id} parties")
        raise HTTPException(status_code=400, detail="Booking does not match this quote")
    return booking


@router.post("/{quote_id}/send")
async def send_quote(
    quote_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    quote = _get_quote(db, quote_id)
    ensure_provider_access(current_user, quote.provider_org_id, "Quote")
    if quote.status not in ("draft", "sent"):
        raise HTTPException(status_code=400, detail=f"Quote is already {quote.status}")

    quote.status = "sent"
    db.commit()
    logger.info(f"📤 Quote {quote.id} sent to homeowner {quote.homeowner_id}")

    await WorkflowService(db).sync_quote(quote.id, "sent")
    db.refresh(quote)
    return quote_to_dict(quote)


@router.post("/{quote_id}/accept")
async def accept_quote(
    quote_id: int,
    data: QuoteAcceptRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    quote = _get_quote(db, quote_id)
    ensure_homeowner_access(current_user, quote.homeowner_id, "Quote")
    if quote.status != "sent":
        raise HTTPException(status_code=400, detail="Only sent quotes can be accepted")
    if data.booking_id:
        _ensure_booking_matches_quote(db, data.booking_id, quote)

    quote.status = "accepted"
    if data.booking_id:
        quote.booking_id = data.booking_id
    db.commit()
    logger.info(f"✅ Quote {quote.id} accepted")

    metadata = {}
    if data.scheduled_date:
        metadata["scheduled_date"] = data.scheduled_date
    if data.booking_id:
        metadata["booking_id"] = data.booking_id
    await WorkflowService(db).sync_quote(quote.id, "accepted", metadata)
    db.refresh(quote)
    return quote_to_dict(quote)


@router.post("/{quote_id}/reject")
async def reject_quote(
    quote_id: int,
    data: QuoteRejectRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    quote = _get_quote(db, quote_id)
    ensure_homeowner_access(current_user, quote.homeowner_id, "Quote")
    if quote.status != "sent":
        raise HTTPException(status_code=400, detail="Only sent quotes can be rejected")

    quote.status = "rejected"
    quote.rejection_reason = data.reason
    db.commit()
    logger.info(f"⚠️ Quote {quote.id} rejected")

    await WorkflowService(db).sync_quote(quote.id, "rejected")
    db.refresh(quote)
    return quote_to_dict(quote)
