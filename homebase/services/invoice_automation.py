"""
Invoice Automation
Creates a draft invoice when a job is completed
"""

import logging
import random
import string
import time
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ..domain.workflow.service import WorkflowService
from ..models import Booking, Invoice, Organization, Quote
from .notification_service import dispatch_notification

logger = logging.getLogger(__name__)

INVOICE_DUE_DAYS = 7


def generate_invoice_number() -> str:
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=6))
    return f"INV-{int(time.time() * 1000)}-{suffix}"


def _converted_quote(db: Session, booking_id: int) -> Optional[Quote]:
    """Quote that was converted into this booking, preferring an accepted one"""
    quotes = db.query(Quote).filter(Quote.booking_id == booking_id).order_by(Quote.id).all()
    for quote in quotes:
        if quote.status == "accepted":
            return quote
    return quotes[0] if quotes else None


def build_line_items(booking: Booking, quote: Optional[Quote]) -> tuple[list[dict], float]:
    """Invoice line items and total from the quote, falling back to the booking estimate"""
    line_items = []

    if quote is not None:
        if quote.line_items:
            for item in quote.line_items:
                line_items.append(
                    {
                        "description": item.get("name") or item.get("description"),
                        "quantity": 1,
                        "rate": item.get("amount") or 0,
                    }
                )
        else:
            if quote.labor_cost:
                line_items.append({"description": "Labor", "quantity": 1, "rate": quote.labor_cost})
            if quote.parts_cost:
                line_items.append(
                    {"description": "Parts & Materials", "quantity": 1, "rate": quote.parts_cost}
                )
        total = quote.total_cost
        if total is None:
            total = sum(item["rate"] for item in line_items)
        return line_items, total

    estimated_price = booking.estimated_price_high or booking.estimated_price_low or 0
    line_items.append(
        {"description": booking.service_name or "Service", "quantity": 1, "rate": estimated_price}
    )
    return line_items, estimated_price


async def auto_generate_invoice(db: Session, booking_id: int, now: Optional[datetime] = None) -> dict:
    """
    Create a draft invoice for a completed booking.

    Idempotent per booking: an existing invoice is returned with
    already_exists set. The workflow update and provider notification that
    follow are best-effort.
    """
    now = now or datetime.utcnow()
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")

    existing = db.query(Invoice).filter(Invoice.booking_id == booking_id).first()
    if existing:
        logger.info(f"ℹ️ Invoice already exists for booking {booking_id}")
        return {"success": True, "invoice": existing, "already_exists": True}

    line_items, total = build_line_items(booking, _converted_quote(db, booking_id))

    invoice = Invoice(
        organization_id=booking.provider_org_id,
        homeowner_id=booking.homeowner_id,
        booking_id=booking.id,
        invoice_number=generate_invoice_number(),
        amount=total,
        due_date=now + timedelta(days=INVOICE_DUE_DAYS),
        line_items=line_items,
        status="draft",
        notes=f"Auto-generated invoice for: {booking.service_name or 'Service'}",
        extra_data={
            "auto_generated": True,
            "booking_id": booking.id,
            "generated_at": now.isoformat(),
        },
    )
    db.add(invoice)
    db.commit()
    db.refresh(invoice)
    logger.info(f"✅ Auto-generated invoice {invoice.invoice_number} for booking {booking_id}")

    try:
        await WorkflowService(db).orchestrate(
            "invoice_generated",
            booking_id=booking.id,
            invoice_id=invoice.id,
            homeowner_id=booking.homeowner_id,
            provider_org_id=booking.provider_org_id,
            metadata={"invoice_number": invoice.invoice_number, "amount": total},
            now=now,
        )
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to update workflow for invoice {invoice.id}: {e}")

    org = db.query(Organization).filter(Organization.id == booking.provider_org_id).first()
    if org and org.owner_id:
        try:
            await dispatch_notification(
                db,
                user_id=org.owner_id,
                notification_type="invoice_created",
                title="📄 Invoice Auto-Generated",
                message=f"Invoice {invoice.invoice_number} created for completed job",
                action_url=f"/provider/accounting?invoice={invoice.id}",
                channels={"inapp": True},
                now=now,
            )
        except Exception as e:
            db.rollback()
            logger.error(f"❌ Failed to notify provider about invoice {invoice.id}: {e}")

    db.refresh(invoice)
    return {"success": True, "invoice": invoice, "already_exists": False}
