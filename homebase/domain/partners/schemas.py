"""Partner domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator


class PartnerApply(BaseModel):
    """Public partner application; required fields are checked by the service"""

    email: Optional[str] = None
    full_name: Optional[str] = None
    type: Optional[str] = None
    business_name: Optional[str] = None
    website: Optional[str] = None
    audience_size: Optional[str] = None
    application_notes: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        if v:
            return v.strip().lower()
        return v

    @field_validator("type")
    @classmethod
    def normalize_type(cls, v):
        if v:
            return v.strip().upper()
        return v


class PartnerApplyResponse(BaseModel):
    message: str
    partner_id: int
    status: str
    email: str


class PartnerApproveResponse(BaseModel):
    message: str
    partner_id: int
    referral_code: str
    onboarding_url: str
    stripe_account_id: str


class PartnerStatusUpdate(BaseModel):
    status: str


class PartnerResponse(BaseModel):
    id: int
    user_id: int
    email: str
    contact_name: Optional[str] = None
    type: str
    status: str
    referral_code: str
    referral_slug: str
    business_name: Optional[str] = None
    website: Optional[str] = None
    audience_size: Optional[str] = None
    commission_rate_bp: int
    discount_rate_bp: int
    stripe_account_id: Optional[str] = None
    approved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CommissionResponse(BaseModel):
    id: int
    partner_id: int
    referral_id: Optional[int] = None
    stripe_invoice_id: Optional[str] = None
    stripe_charge_id: Optional[str] = None
    kind: str
    base_amount_cents: int
    commission_rate_bp: int
    commission_amount_cents: int
    currency: Optional[str] = None
    status: str
    notes: Optional[str] = None
    payout_id: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PayoutResponse(BaseModel):
    id: int
    partner_id: int
    amount_cents: int
    currency: Optional[str] = None
    status: str
    stripe_transfer_id: Optional[str] = None
    commissions_count: Optional[int] = None
    error: Optional[str] = None
    trigger: Optional[str] = None
    payout_date: Optional[datetime] = None

    class Config:
        from_attributes = True


class ManualPayoutRequest(BaseModel):
    partner_id: Optional[int] = None


class CommissionSummary(BaseModel):
    pending_cents: int
    paid_cents: int
    void_cents: int
    pending_count: int
    paid_count: int
    void_count: int
