"""
Partner webhook processing
Attributes Stripe customers to partners and keeps the commission ledger in
step with invoices and refunds
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ...models_partner import Partner, PartnerCommission, PartnerReferral
from .commission import compute_commission, format_cents
from .repository import PartnerRepository

logger = logging.getLogger(__name__)


def _from_epoch(value: Optional[int]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc).replace(tzinfo=None)


def _as_int(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class PartnerWebhookHandler:
    """Dispatches verified Stripe events to the partner ledger"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PartnerRepository()
        self.handlers = {
            "checkout.session.completed": self.handle_checkout_completed,
            "invoice.payment_succeeded": self.handle_invoice_payment_succeeded,
            "customer.subscription.updated": self.handle_subscription_updated,
            "customer.subscription.deleted": self.handle_subscription_deleted,
            "charge.refunded": self.handle_charge_refunded,
        }

    def handle_event(self, event: dict, now: Optional[datetime] = None) -> None:
        event_type = event.get("type")
        data_object = (event.get("data") or {}).get("object") or {}
        handler = self.handlers.get(event_type)
        if handler is None:
            logger.info(f"ℹ️ Unhandled partner webhook event type: {event_type}")
            return
        logger.info(f"📥 Partner webhook {event_type} ({event.get('id')})")
        handler(data_object, now or datetime.utcnow())

    def _attributed_partner(self, metadata: dict) -> Optional[Partner]:
        partner_id = _as_int(metadata.get("partner_id"))
        if partner_id is not None:
            return self.repo.get_partner(self.db, partner_id)
        partner_code = metadata.get("partner_code")
        if partner_code:
            return self.repo.get_partner_by_code(self.db, partner_code)
        return None

    def handle_checkout_completed(self, session: dict, now: datetime) -> None:
        customer_id = session.get("customer")
        metadata = session.get("metadata") or {}
        partner_id = metadata.get("partner_id")
        partner_code = metadata.get("partner_code")

        if not partner_id and not partner_code:
            logger.info(f"ℹ️ No partner attribution in checkout session {session.get('id')}")
            return
        if not customer_id:
            logger.warning(f"⚠️ Checkout session {session.get('id')} has no customer")
            return

        partner = self._attributed_partner(metadata)
        if not partner:
            logger.warning(f"⚠️ Partner not found for attribution: {partner_id or partner_code}")
            return

        referral = self.repo.get_referral_by_customer(self.db, customer_id)
        if referral:
            referral.activated = True
            referral.activated_at = now
            referral.deactivated_at = None
        else:
            referral = PartnerReferral(
                partner_id=partner.id,
                stripe_customer_id=customer_id,
                promo_code_used=partner_code or None,
                attributed_via="link" if partner_id else "code",
                activated=True,
                activated_at=now,
            )
            self.db.add(referral)
        self.db.commit()
        logger.info(f"✅ Partner referral recorded for customer {customer_id} (partner {partner.id})")

    def handle_invoice_payment_succeeded(self, invoice: dict, now: datetime) -> None:
        customer_id = invoice.get("customer")
        referral = self.repo.get_referral_by_customer(self.db, customer_id) if customer_id else None
        if not referral:
            logger.info(f"ℹ️ No partner referral for customer {customer_id}")
            return

        if self.repo.get_commission_for_invoice(self.db, invoice.get("id")):
            logger.info(f"ℹ️ Commission already exists for invoice {invoice.get('id')}")
            return

        partner = referral.partner
        base_amount = invoice.get("subtotal") or invoice.get("total") or 0
        commission_amount = compute_commission(base_amount, partner.commission_rate_bp)

        commission = PartnerCommission(
            partner_id=partner.id,
            referral_id=referral.id,
            stripe_invoice_id=invoice.get("id"),
            stripe_charge_id=invoice.get("charge"),
            kind="commission",
            base_amount_cents=base_amount,
            commission_rate_bp=partner.commission_rate_bp,
            commission_amount_cents=commission_amount,
            currency=invoice.get("currency") or "usd",
            status="PENDING",
            invoice_period_start=_from_epoch(invoice.get("period_start")),
            invoice_period_end=_from_epoch(invoice.get("period_end")),
        )
        self.db.add(commission)
        self.db.commit()
        logger.info(
            f"💰 Commission created: {format_cents(commission_amount)} for partner {partner.referral_code}"
        )

    def handle_subscription_updated(self, subscription: dict, now: datetime) -> None:
        logger.info(
            f"ℹ️ Subscription {subscription.get('id')} updated for customer {subscription.get('customer')}"
        )

    def handle_subscription_deleted(self, subscription: dict, now: datetime) -> None:
        customer_id = subscription.get("customer")
        referral = self.repo.get_referral_by_customer(self.db, customer_id) if customer_id else None
        if not referral:
            return
        referral.activated = False
        referral.deactivated_at = now
        self.db.commit()
        logger.info(f"⚠️ Partner referral {referral.id} deactivated after subscription cancellation")

    def handle_charge_refunded(self, charge: dict, now: datetime) -> None:
        charge_id = charge.get("id")
        commission = self.repo.get_commission_for_charge(self.db, charge_id) if charge_id else None
        if not commission:
            logger.info(f"ℹ️ No commission found for refunded charge {charge_id}")
            return

        if commission.status == "PENDING":
            commission.status = "VOID"
            commission.notes = "Charge refunded"
            self.db.commit()
            logger.info(f"✅ Commission {commission.id} voided due to refund")
            return

        if commission.status != "PAID":
            return

        if self.repo.refund_adjustment_exists(self.db, charge_id):
            logger.info(f"ℹ️ Refund adjustment already recorded for charge {charge_id}")
            return

        adjustment = PartnerCommission(
            partner_id=commission.partner_id,
            referral_id=commission.referral_id,
            stripe_invoice_id=commission.stripe_invoice_id,
            stripe_charge_id=charge_id,
            kind="refund_adjustment",
            base_amount_cents=-commission.base_amount_cents,
            commission_rate_bp=commission.commission_rate_bp,
            commission_amount_cents=-commission.commission_amount_cents,
            currency=commission.currency,
            status="PENDING",
            notes="Refund adjustment",
        )
        self.db.add(adjustment)
        self.db.commit()
        logger.info(
            f"✅ Refund adjustment of {format_cents(adjustment.commission_amount_cents)} recorded for charge {charge_id}"
        )
