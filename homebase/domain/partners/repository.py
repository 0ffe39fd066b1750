"""Partner repository - Database operations for partners, referrals and the commission ledger"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import User
from ...models_partner import Partner, PartnerCommission, PartnerPayout, PartnerReferral


class PartnerRepository:
    """Repository for partner program database operations"""

    @staticmethod
    def get_partner(db: Session, partner_id) -> Optional[Partner]:
        return db.query(Partner).filter(Partner.id == partner_id).first()

    @staticmethod
    def get_partner_by_code(db: Session, referral_code: str) -> Optional[Partner]:
        return db.query(Partner).filter(Partner.referral_code == referral_code).first()

    @staticmethod
    def get_partner_for_user(db: Session, user_id: int) -> Optional[Partner]:
        return (
            db.query(Partner)
            .filter(Partner.user_id == user_id)
            .order_by(Partner.id.desc())
            .first()
        )

    @staticmethod
    def code_exists(db: Session, referral_code: str) -> bool:
        return db.query(Partner.id).filter(Partner.referral_code == referral_code).first() is not None

    @staticmethod
    def slug_exists(db: Session, referral_slug: str) -> bool:
        return db.query(Partner.id).filter(Partner.referral_slug == referral_slug).first() is not None

    @staticmethod
    def list_partners(db: Session, status: Optional[str] = None) -> list[Partner]:
        query = db.query(Partner)
        if status:
            query = query.filter(Partner.status == status)
        return query.order_by(Partner.created_at.desc(), Partner.id.desc()).all()

    @staticmethod
    def list_payable_partners(db: Session) -> list[Partner]:
        """Active partners that finished Connect onboarding"""
        return (
            db.query(Partner)
            .filter(Partner.status == "ACTIVE", Partner.stripe_account_id.isnot(None))
            .order_by(Partner.id)
            .all()
        )

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(func.lower(User.email) == email.lower()).first()

    # Referrals

    @staticmethod
    def get_referral_by_customer(db: Session, stripe_customer_id: str) -> Optional[PartnerReferral]:
        return (
            db.query(PartnerReferral)
            .filter(PartnerReferral.stripe_customer_id == stripe_customer_id)
            .first()
        )

    @staticmethod
    def count_referrals(db: Session, partner_id: int, active_only: bool = False) -> int:
        query = db.query(func.count(PartnerReferral.id)).filter(PartnerReferral.partner_id == partner_id)
        if active_only:
            query = query.filter(PartnerReferral.activated.is_(True))
        return query.scalar() or 0

    # Commissions

    @staticmethod
    def get_commission_for_invoice(db: Session, stripe_invoice_id: str) -> Optional[PartnerCommission]:
        return (
            db.query(PartnerCommission)
            .filter(
                PartnerCommission.stripe_invoice_id == stripe_invoice_id,
                PartnerCommission.kind == "commission",
            )
            .first()
        )

    @staticmethod
    def get_commission_for_charge(db: Session, stripe_charge_id: str) -> Optional[PartnerCommission]:
        return (
            db.query(PartnerCommission)
            .filter(
                PartnerCommission.stripe_charge_id == stripe_charge_id,
                PartnerCommission.kind == "commission",
            )
            .order_by(PartnerCommission.id)
            .first()
        )

    @staticmethod
    def refund_adjustment_exists(db: Session, stripe_charge_id: str) -> bool:
        return (
            db.query(PartnerCommission.id)
            .filter(
                PartnerCommission.stripe_charge_id == stripe_charge_id,
                PartnerCommission.kind == "refund_adjustment",
            )
            .first()
            is not None
        )

    @staticmethod
    def pending_commissions(db: Session, partner_id: int) -> list[PartnerCommission]:
        return (
            db.query(PartnerCommission)
            .filter(PartnerCommission.partner_id == partner_id, PartnerCommission.status == "PENDING")
            .order_by(PartnerCommission.id)
            .all()
        )

    @staticmethod
    def commission_total(db: Session, status: str, partner_id: Optional[int] = None) -> int:
        query = db.query(func.coalesce(func.sum(PartnerCommission.commission_amount_cents), 0)).filter(
            PartnerCommission.status == status
        )
        if partner_id is not None:
            query = query.filter(PartnerCommission.partner_id == partner_id)
        return int(query.scalar() or 0)

    @staticmethod
    def commission_totals_by_status(db: Session) -> dict[str, tuple[int, int]]:
        """status -> (total cents, row count)"""
        rows = (
            db.query(
                PartnerCommission.status,
                func.coalesce(func.sum(PartnerCommission.commission_amount_cents), 0),
                func.count(PartnerCommission.id),
            )
            .group_by(PartnerCommission.status)
            .all()
        )
        return {status: (int(total), int(count)) for status, total, count in rows}

    @staticmethod
    def list_commissions(
        db: Session, status: Optional[str] = None, partner_id: Optional[int] = None
    ) -> list[PartnerCommission]:
        query = db.query(PartnerCommission)
        if status:
            query = query.filter(PartnerCommission.status == status)
        if partner_id is not None:
            query = query.filter(PartnerCommission.partner_id == partner_id)
        return query.order_by(PartnerCommission.id.desc()).all()

    # Payouts

    @staticmethod
    def list_payouts(db: Session, partner_id: Optional[int] = None) -> list[PartnerPayout]:
        query = db.query(PartnerPayout)
        if partner_id is not None:
            query = query.filter(PartnerPayout.partner_id == partner_id)
        return query.order_by(PartnerPayout.payout_date.desc(), PartnerPayout.id.desc()).all()
