"""
Partner program models: affiliates, attributed customers, commission ledger
and payouts. All money is stored in integer cents.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class Partner(Base):
    __tablename__ = "partners"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    email = Column(String(255), nullable=False)
    contact_name = Column(String(255), nullable=True)
    type = Column(String(20), nullable=False)  # PRO, CREATOR
    status = Column(String(20), default="PENDING", index=True)  # PENDING, ACTIVE, PAUSED, REJECTED
    referral_code = Column(String(50), unique=True, nullable=False, index=True)
    referral_slug = Column(String(20), unique=True, nullable=False)
    business_name = Column(String(255), nullable=True)
    website = Column(String(500), nullable=True)
    audience_size = Column(String(100), nullable=True)
    application_notes = Column(Text, nullable=True)
    commission_rate_bp = Column(Integer, nullable=False, default=1000)
    discount_rate_bp = Column(Integer, nullable=False, default=1000)
    stripe_coupon_id = Column(String(255), nullable=True)
    stripe_promo_id = Column(String(255), nullable=True)
    stripe_account_id = Column(String(255), nullable=True)
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    referrals = relationship("PartnerReferral", back_populates="partner")
    commissions = relationship("PartnerCommission", back_populates="partner")

    @property
    def display_name(self) -> str:
        return self.business_name or self.contact_name or self.referral_code


class PartnerReferral(Base):
    __tablename__ = "partner_referrals"

    id = Column(Integer, primary_key=True, index=True)
    partner_id = Column(Integer, ForeignKey("partners.id"), nullable=False, index=True)
    stripe_customer_id = Column(String(255), unique=True, nullable=False, index=True)
    promo_code_used = Column(String(50), nullable=True)
    attributed_via = Column(String(20), nullable=True)  # link, code
    activated = Column(Boolean, default=False, nullable=False)
    activated_at = Column(DateTime, nullable=True)
    deactivated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    partner = relationship("Partner", back_populates="referrals")


class PartnerCommission(Base):
    __tablename__ = "partner_commissions"

    id = Column(Integer, primary_key=True, index=True)
    partner_id = Column(Integer, ForeignKey("partners.id"), nullable=False, index=True)
    referral_id = Column(Integer, ForeignKey("partner_referrals.id"), nullable=True)
    stripe_invoice_id = Column(String(255), nullable=True, index=True)
    stripe_charge_id = Column(String(255), nullable=True, index=True)
    kind = Column(String(30), default="commission", nullable=False)  # commission, refund_adjustment
    base_amount_cents = Column(Integer, nullable=False)
    commission_rate_bp = Column(Integer, nullable=False)
    commission_amount_cents = Column(Integer, nullable=False)
    currency = Column(String(10), default="usd")
    status = Column(String(20), default="PENDING", index=True)  # PENDING, PAID, VOID
    notes = Column(Text, nullable=True)
    invoice_period_start = Column(DateTime, nullable=True)
    invoice_period_end = Column(DateTime, nullable=True)
    payout_id = Column(Integer, ForeignKey("partner_payouts.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    partner = relationship("Partner", back_populates="commissions")


class PartnerPayout(Base):
    __tablename__ = "partner_payouts"

    id = Column(Integer, primary_key=True, index=True)
    partner_id = Column(Integer, ForeignKey("partners.id"), nullable=False, index=True)
    amount_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String(10), default="usd")
    status = Column(String(20), nullable=False)  # COMPLETED, FAILED
    stripe_transfer_id = Column(String(255), nullable=True)
    commissions_count = Column(Integer, default=0)
    error = Column(Text, nullable=True)
    trigger = Column(String(20), default="cron")  # cron, manual
    payout_date = Column(DateTime, server_default=func.now())
