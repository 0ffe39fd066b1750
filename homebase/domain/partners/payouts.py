"""
Partner payouts
Transfers each partner's pending commission balance to their Connect account
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import PARTNER_MINIMUM_PAYOUT_CENTS
from ...email_service import send_partner_payout_email
from ...models_partner import Partner, PartnerCommission, PartnerPayout
from ...services.stripe_service import StripeService
from .commission import format_cents
from .repository import PartnerRepository

logger = logging.getLogger(__name__)


class PayoutService:
    """Runs scheduled and admin-triggered partner payouts"""

    def __init__(
        self,
        db: Session,
        stripe_service: Optional[StripeService] = None,
        minimum_payout_cents: int = PARTNER_MINIMUM_PAYOUT_CENTS,
    ):
        self.db = db
        self.repo = PartnerRepository()
        self.stripe = stripe_service or StripeService()
        self.minimum_payout_cents = minimum_payout_cents

    async def _pay_partner(
        self,
        partner: Partner,
        commissions: list[PartnerCommission],
        amount_cents: int,
        trigger: str,
        description: str,
        now: datetime,
    ) -> PartnerPayout:
        """
        Transfer `amount_cents` and settle `commissions` against the payout.

        Any failure is recorded as a FAILED payout with the attempted amount and
        then re-raised.
        """
        try:
            if not partner.stripe_account_id:
                raise ValueError("Partner has no connected Stripe account")

            transfer = await self.stripe.create_transfer(
                amount_cents=amount_cents,
                destination=partner.stripe_account_id,
                description=description,
                currency="usd",
            )

            payout = PartnerPayout(
                partner_id=partner.id,
                amount_cents=amount_cents,
                currency="usd",
                status="COMPLETED",
                stripe_transfer_id=transfer["id"],
                commissions_count=len(commissions),
                trigger=trigger,
                payout_date=now,
            )
            self.db.add(payout)
            self.db.flush()
            for commission in commissions:
                commission.status = "PAID"
                commission.payout_id = payout.id
            self.db.commit()
            self.db.refresh(payout)
        except Exception as e:
            self.db.rollback()
            self.db.add(
                PartnerPayout(
                    partner_id=partner.id,
                    amount_cents=amount_cents,
                    currency="usd",
                    status="FAILED",
                    commissions_count=len(commissions),
                    error=str(e),
                    trigger=trigger,
                    payout_date=now,
                )
            )
            self.db.commit()
            raise

        logger.info(f"✅ Payout sent to {partner.referral_code}: {format_cents(amount_cents)}")

        try:
            await send_partner_payout_email(
                partner.email,
                partner.display_name,
                amount_cents,
                transfer["id"],
                len(commissions),
            )
        except Exception as e:
            logger.error(f"❌ Failed to send payout email to {partner.email}: {e}")

        return payout

    async def run_automated_payouts(self, now: Optional[datetime] = None) -> dict:
        """Pay every eligible partner whose pending balance meets the minimum"""
        now = now or datetime.utcnow()
        partners = self.repo.list_payable_partners(self.db)
        logger.info(f"📊 Found {len(partners)} active partners for payout")

        results = {"successful": [], "failed": [], "skipped": []}
        for partner in partners:
            commissions = self.repo.pending_commissions(self.db, partner.id)
            total = sum(c.commission_amount_cents for c in commissions)
            logger.info(f"💰 Partner {partner.referral_code}: {format_cents(total)} pending")

            if total < self.minimum_payout_cents:
                results["skipped"].append(
                    {
                        "partner": partner.referral_code,
                        "reason": f"Below minimum ({format_cents(total)} < {format_cents(self.minimum_payout_cents)})",
                    }
                )
                continue

            try:
                payout = await self._pay_partner(
                    partner,
                    commissions,
                    total,
                    trigger="cron",
                    description=f"Partner commission payout - {now.strftime('%m/%d/%Y')}",
                    now=now,
                )
            except Exception as e:
                logger.error(f"❌ Failed to process payout for {partner.referral_code}: {e}")
                results["failed"].append({"partner": partner.referral_code, "error": str(e)})
                continue

            results["successful"].append(
                {
                    "partner": partner.referral_code,
                    "amount_cents": payout.amount_cents,
                    "transfer_id": payout.stripe_transfer_id,
                }
            )

        logger.info(
            f"✅ Payout run completed: {len(results['successful'])} paid, "
            f"{len(results['failed'])} failed, {len(results['skipped'])} skipped"
        )
        return results

    async def run_manual_payout(
        self, partner_id: Optional[int] = None, now: Optional[datetime] = None
    ) -> list[dict]:
        """Admin payout for one partner or all eligible partners, without the minimum"""
        now = now or datetime.utcnow()
        if partner_id is not None:
            partner = self.repo.get_partner(self.db, partner_id)
            if not partner:
                raise HTTPException(status_code=404, detail="Partner not found")
            partners = [partner]
        else:
            partners = self.repo.list_payable_partners(self.db)

        results = []
        for partner in partners:
            commissions = self.repo.pending_commissions(self.db, partner.id)
            total = sum(c.commission_amount_cents for c in commissions)
            if total <= 0:
                results.append(
                    {"partner": partner.referral_code, "status": "skipped", "reason": "No pending balance"}
                )
                continue

            try:
                payout = await self._pay_partner(
                    partner,
                    commissions,
                    total,
                    trigger="manual",
                    description="Manual partner payout by admin",
                    now=now,
                )
            except Exception as e:
                logger.error(f"❌ Manual payout failed for {partner.referral_code}: {e}")
                results.append({"partner": partner.referral_code, "status": "failed", "error": str(e)})
                continue

            results.append(
                {
                    "partner": partner.referral_code,
                    "status": "success",
                    "amount_cents": payout.amount_cents,
                    "transfer_id": payout.stripe_transfer_id,
                }
            )
        return results
