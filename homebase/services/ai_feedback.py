"""
AI feedback collection
Turns finished jobs and decided quotes into learning events for the pricing model
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ..models import Booking, Quote
from ..models_workflow import AILearningEvent

logger = logging.getLogger(__name__)

LOOKBACK = timedelta(hours=24)
BATCH_LIMIT = 100


def property_size_bucket(square_feet: Optional[int]) -> str:
    if not square_feet:
        return "unknown"
    if square_feet < 1500:
        return "small"
    if square_feet < 2500:
        return "medium"
    return "large"


def anonymized_region(zip_code: Optional[str]) -> str:
    if not zip_code:
        return "unknown"
    return f"{zip_code[:3]}XX"


def price_accuracy(estimated: Optional[float], actual: Optional[float]) -> float:
    if not actual or actual <= 0 or not estimated:
        return 0.0
    return min(1.0, actual / estimated)


def _has_event(db: Session, event_type: str, **filters) -> bool:
    query = db.query(AILearningEvent.id).filter(AILearningEvent.event_type == event_type)
    for column, value in filters.items():
        query = query.filter(getattr(AILearningEvent, column) == value)
    return query.first() is not None


def _job_outcome_event(booking: Booking, quote: Quote) -> AILearningEvent:
    estimated_price = quote.total_cost
    actual_price = booking.final_price or booking.deposit_amount or 0
    pricing_factors = quote.pricing_factors or {}

    actual_duration = 0
    if booking.updated_at and booking.scheduled_date:
        actual_duration = (booking.updated_at - booking.scheduled_date).total_seconds()

    return AILearningEvent(
        event_type="job_outcome",
        service_request_id=quote.service_request_id,
        quote_id=quote.id,
        booking_id=booking.id,
        provider_org_id=booking.provider_org_id,
        ai_predicted={
            "estimated_price": estimated_price,
            "estimated_duration": pricing_factors.get("estimated_duration", 0),
            "confidence": quote.ai_confidence or 0.5,
        },
        actual_outcome={
            "final_price": actual_price,
            "actual_duration": actual_duration,
            "completed": True,
        },
        accuracy_score=price_accuracy(estimated_price, actual_price),
        service_category=booking.service_name,
        region_zip=anonymized_region(booking.property_zip),
        property_size_bucket=property_size_bucket(booking.property_sqft),
        complexity_factors=[],
    )


def _quote_accuracy_event(quote: Quote) -> AILearningEvent:
    accepted = quote.status == "accepted"
    return AILearningEvent(
        event_type="quote_accuracy",
        quote_id=quote.id,
        service_request_id=quote.service_request_id,
        provider_org_id=quote.provider_org_id,
        ai_predicted={"quote_amount": quote.total_cost, "confidence": quote.ai_confidence or 0.5},
        actual_outcome={"accepted": accepted, "rejection_reason": quote.rejection_reason},
        accuracy_score=1.0 if accepted else 0.0,
        service_category=quote.service_name,
    )


def collect_ai_feedback(db: Session, now: Optional[datetime] = None) -> dict:
    """Log job outcomes and quote decisions from the last 24 hours that are not logged yet"""
    now = now or datetime.utcnow()
    since = now - LOOKBACK

    completed_bookings = (
        db.query(Booking)
        .filter(Booking.status == "completed", Booking.updated_at >= since)
        .order_by(Booking.id)
        .limit(BATCH_LIMIT)
        .all()
    )

    job_events = []
    for booking in completed_bookings:
        quote = db.query(Quote).filter(Quote.booking_id == booking.id).order_by(Quote.id).first()
        if not quote:
            continue
        if _has_event(db, "job_outcome", booking_id=booking.id):
            continue
        job_events.append(_job_outcome_event(booking, quote))

    db.add_all(job_events)
    db.commit()

    recent_quotes = (
        db.query(Quote)
        .filter(Quote.status.in_(["accepted", "rejected"]), Quote.updated_at >= since)
        .order_by(Quote.id)
        .limit(BATCH_LIMIT)
        .all()
    )

    quote_events = []
    for quote in recent_quotes:
        if _has_event(db, "quote_accuracy", quote_id=quote.id):
            continue
        quote_events.append(_quote_accuracy_event(quote))

    db.add_all(quote_events)
    db.commit()

    logger.info(
        f"🧠 AI feedback collected: {len(job_events)} job outcomes, {len(quote_events)} quote decisions"
    )
    return {
        "success": True,
        "job_outcomes_logged": len(job_events),
        "quote_feedback_logged": len(quote_events),
        "total_events": len(job_events) + len(quote_events),
    }
