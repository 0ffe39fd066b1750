"""Invoice routes - payment confirmation and auto-generation for completed jobs"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..domain.workflow.service import WorkflowService
from ..models import Booking, Invoice, User
from ..services.invoice_automation import auto_generate_invoice
from ..shared.access import ensure_provider_access

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/invoices", tags=["Invoices"])


class AutoGenerateRequest(BaseModel):
    booking_id: int


def invoice_to_dict(invoice: Invoice) -> dict:
    return {
        "id": invoice.id,
        "organization_id": invoice.organization_id,
        "homeowner_id": invoice.homeowner_id,
        "booking_id": invoice.booking_id,
        "invoice_number": invoice.invoice_number,
        "amount": invoice.amount,
        "due_date": invoice.due_date.isoformat() if invoice.due_date else None,
        "line_items": invoice.line_items or [],
        "status": invoice.status,
        "notes": invoice.notes,
        "metadata": invoice.extra_data or {},
        "paid_at": invoice.paid_at.isoformat() if invoice.paid_at else None,
    }


@router.post("/{invoice_id}/mark-paid")
async def mark_invoice_paid(
    invoice_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Record an offline payment and move the workflow to payment received"""
    invoice = db.query(Invoice).filter(Invoice.id == invoice_id).first()
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    ensure_provider_access(current_user, invoice.organization_id, "Invoice")

    if invoice.status == "paid":
        return invoice_to_dict(invoice)
    if invoice.status == "cancelled":
        raise HTTPException(status_code=400, detail="Cancelled invoices cannot be paid")

    invoice.status = "paid"
    invoice.paid_at = datetime.utcnow()
    db.commit()
    logger.info(f"💰 Invoice {invoice.invoice_number} marked paid")

    await WorkflowService(db).sync_invoice(invoice.id, True)
    db.refresh(invoice)
    return invoice_to_dict(invoice)


@router.post("/auto-generate")
async def auto_generate(
    data: AutoGenerateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    booking = db.query(Booking).filter(Booking.id == data.booking_id).first()
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    ensure_provider_access(current_user, booking.provider_org_id, "Booking")

    result = await auto_generate_invoice(db, booking.id)
    return {
        "success": result["success"],
        "already_exists": result["already_exists"],
        "invoice": invoice_to_dict(result["invoice"]),
    }
