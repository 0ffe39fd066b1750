"""
Partner Webhook Routes
Receives Stripe events that drive partner attribution and commissions
"""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from .. import config
from ..database import get_db
from ..domain.partners.webhooks import PartnerWebhookHandler
from ..webhook_security import verify_stripe_webhook

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post("/partners")
async def partner_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Stripe webhook for the partner program.

    Every verified event is acknowledged with {"received": true}; a failure
    while applying it returns 500 so Stripe retries the delivery.
    """
    raw_body = await verify_stripe_webhook(request, config.STRIPE_WEBHOOK_SECRET)

    try:
        event = json.loads(raw_body)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    try:
        PartnerWebhookHandler(db).handle_event(event)
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Partner webhook {event.get('type')} failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return {"received": True}
