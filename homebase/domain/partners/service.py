"""Partner service - Applications, approval and partner-facing reporting"""

import logging
import secrets
import string
import uuid
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import PENDING_AUTH_UID_PREFIX
from ...config import APP_URL, PARTNER_DEFAULT_COMMISSION_RATE_BP, PARTNER_DEFAULT_DISCOUNT_RATE_BP
from ...email_service import send_partner_application_received_email, send_partner_approved_email
from ...models import User
from ...models_partner import Partner
from ...services.stripe_service import StripeService, StripeServiceError
from .commission import coupon_percent_off
from .repository import PartnerRepository
from .schemas import PartnerApply

logger = logging.getLogger(__name__)

PARTNER_TYPES = ("PRO", "CREATOR")
CODE_SUFFIX = {"PRO": "25", "CREATOR": "15"}
SLUG_ALPHABET = string.ascii_lowercase + string.digits
MAX_CODE_ATTEMPTS = 20

# (from, to) pairs an admin may apply directly
STATUS_TRANSITIONS = {
    ("ACTIVE", "PAUSED"),
    ("PAUSED", "ACTIVE"),
    ("PENDING", "REJECTED"),
}


def generate_referral_code(full_name: str, partner_type: str) -> str:
    """e.g. JOHN2507: first name, type suffix, two random digits"""
    first_name = full_name.split()[0].upper()[:5] if full_name.split() else "HB"
    return f"{first_name}{CODE_SUFFIX[partner_type]}{secrets.randbelow(100):02d}"


def generate_referral_slug() -> str:
    return "".join(secrets.choice(SLUG_ALPHABET) for _ in range(8))


def onboarding_urls() -> tuple[str, str]:
    return (
        f"{APP_URL}/partners/dashboard?onboarding=refresh",
        f"{APP_URL}/partners/dashboard?onboarding=complete",
    )


class PartnerService:
    """Service layer for partner program business logic"""

    def __init__(self, db: Session, stripe_service: Optional[StripeService] = None):
        self.db = db
        self.repo = PartnerRepository()
        self.stripe = stripe_service or StripeService()

    def get_partner(self, partner_id: int) -> Partner:
        partner = self.repo.get_partner(self.db, partner_id)
        if not partner:
            raise HTTPException(status_code=404, detail="Partner not found")
        return partner

    def get_partner_for_user(self, user: User) -> Partner:
        partner = self.repo.get_partner_for_user(self.db, user.id)
        if not partner:
            raise HTTPException(status_code=404, detail="Partner profile not found")
        return partner

    def list_partners(self, status: Optional[str] = None) -> list[Partner]:
        return self.repo.list_partners(self.db, status)

    def _unique_referral_code(self, full_name: str, partner_type: str) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_referral_code(full_name, partner_type)
            if not self.repo.code_exists(self.db, code):
                return code
        raise HTTPException(status_code=500, detail="Could not generate a unique referral code")

    def _unique_referral_slug(self) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            slug = generate_referral_slug()
            if not self.repo.slug_exists(self.db, slug):
                return slug
        raise HTTPException(status_code=500, detail="Could not generate a unique referral link")

    async def apply(self, data: PartnerApply) -> Partner:
        """Create a PENDING partner application, creating the user profile if needed"""
        if not data.email or not data.full_name or not data.type:
            raise HTTPException(
                status_code=400, detail="Missing required fields: email, full_name, type"
            )
        if data.type not in PARTNER_TYPES:
            raise HTTPException(status_code=400, detail="Partner type must be PRO or CREATOR")

        logger.info(f"📥 Partner application from {data.email} ({data.type})")

        user = self.repo.get_user_by_email(self.db, data.email)
        if user:
            existing = self.repo.get_partner_for_user(self.db, user.id)
            if existing and existing.status == "PENDING":
                raise HTTPException(
                    status_code=409,
                    detail="You have already applied. Your application is pending review.",
                )
            if existing and existing.status == "ACTIVE":
                raise HTTPException(status_code=409, detail="You are already an active partner.")
        else:
            # Placeholder auth uid until the applicant signs in with the same email
            user = User(
                auth_uid=f"{PENDING_AUTH_UID_PREFIX}{uuid.uuid4()}",
                email=data.email,
                full_name=data.full_name,
                role="partner",
            )
            self.db.add(user)
            self.db.flush()
            logger.info(f"✅ Created user profile {user.id} for partner applicant")

        partner = Partner(
            user_id=user.id,
            email=data.email,
            contact_name=data.full_name,
            type=data.type,
            status="PENDING",
            referral_code=self._unique_referral_code(data.full_name, data.type),
            referral_slug=self._unique_referral_slug(),
            business_name=data.business_name,
            website=data.website,
            audience_size=data.audience_size,
            application_notes=data.application_notes,
            commission_rate_bp=PARTNER_DEFAULT_COMMISSION_RATE_BP,
            discount_rate_bp=PARTNER_DEFAULT_DISCOUNT_RATE_BP,
        )
        self.db.add(partner)
        self.db.commit()
        self.db.refresh(partner)
        logger.info(f"✅ Partner application {partner.id} created with code {partner.referral_code}")

        try:
            await send_partner_application_received_email(
                partner.email, data.full_name, partner.referral_code
            )
        except Exception as e:
            logger.error(f"❌ Failed to send application confirmation to {partner.email}: {e}")

        return partner

    async def approve(self, partner_id: int, admin: User, now: Optional[datetime] = None) -> dict:
        """
        Activate a pending partner.

        Creates the Stripe coupon (id = referral code), an Express Connect
        account and its onboarding link, then marks the partner ACTIVE.
        """
        partner = self.get_partner(partner_id)
        if partner.status != "PENDING":
            raise HTTPException(status_code=400, detail="Partner is not pending approval")

        percent_off = coupon_percent_off(partner.discount_rate_bp)
        stripe_metadata = {"partner_id": str(partner.id), "partner_code": partner.referral_code}
        refresh_url, return_url = onboarding_urls()

        try:
            coupon = await self.stripe.create_coupon(
                coupon_id=partner.referral_code,
                percent_off=percent_off,
                name=f"Partner {partner.referral_code} - {percent_off}% off",
                metadata=stripe_metadata,
            )
            account = await self.stripe.create_express_account(partner.email, stripe_metadata)
            account_link = await self.stripe.create_account_link(account["id"], refresh_url, return_url)
        except StripeServiceError as e:
            logger.error(f"❌ Partner {partner.id} approval failed at Stripe: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to approve partner: {e}")

        partner.status = "ACTIVE"
        partner.stripe_coupon_id = coupon["id"]
        # Customers enter the coupon id directly, so it doubles as the promo id
        partner.stripe_promo_id = coupon["id"]
        partner.stripe_account_id = account["id"]
        partner.approved_by = admin.id
        partner.approved_at = now or datetime.utcnow()
        self.db.commit()
        self.db.refresh(partner)
        logger.info(f"✅ Partner {partner.id} approved by admin {admin.id}")

        try:
            await send_partner_approved_email(
                partner.email, partner.display_name, partner.referral_code, account_link["url"]
            )
        except Exception as e:
            logger.error(f"❌ Failed to send approval email to {partner.email}: {e}")

        return {
            "message": "Partner approved successfully",
            "partner_id": partner.id,
            "referral_code": partner.referral_code,
            "onboarding_url": account_link["url"],
            "stripe_account_id": account["id"],
        }

    def set_status(self, partner_id: int, status: str) -> Partner:
        """Pause, resume or reject a partner"""
        partner = self.get_partner(partner_id)
        status = status.upper()
        if (partner.status, status) not in STATUS_TRANSITIONS:
            raise HTTPException(
                status_code=400,
                detail=f"Cannot change partner status from {partner.status} to {status}",
            )
        partner.status = status
        self.db.commit()
        self.db.refresh(partner)
        logger.info(f"✅ Partner {partner.id} status set to {status}")
        return partner

    def dashboard(self, partner: Partner) -> dict:
        return {
            "partner_id": partner.id,
            "status": partner.status,
            "referral_code": partner.referral_code,
            "referral_link": f"{APP_URL}/r/{partner.referral_slug}",
            "commission_rate_bp": partner.commission_rate_bp,
            "discount_rate_bp": partner.discount_rate_bp,
            "onboarded": bool(partner.stripe_account_id),
            "referrals": {
                "total": self.repo.count_referrals(self.db, partner.id),
                "active": self.repo.count_referrals(self.db, partner.id, active_only=True),
            },
            "commissions": {
                "pending_cents": self.repo.commission_total(self.db, "PENDING", partner.id),
                "paid_cents": self.repo.commission_total(self.db, "PAID", partner.id),
            },
        }

    def commission_summary(self) -> dict:
        totals = self.repo.commission_totals_by_status(self.db)
        summary = {}
        for status in ("PENDING", "PAID", "VOID"):
            total, count = totals.get(status, (0, 0))
            summary[f"{status.lower()}_cents"] = total
            summary[f"{status.lower()}_count"] = count
        return summary

    def list_commissions(self, status: Optional[str] = None, partner_id: Optional[int] = None):
        return self.repo.list_commissions(self.db, status.upper() if status else None, partner_id)

    def list_payouts(self, partner_id: Optional[int] = None):
        return self.repo.list_payouts(self.db, partner_id)
