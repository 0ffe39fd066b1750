"""Partner router - FastAPI endpoints for the partner program"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...config import PARTNER_APPLY_RATE_LIMIT, PARTNER_APPLY_RATE_WINDOW
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from ...services.stripe_service import StripeService, get_stripe_service
from .payouts import PayoutService
from .schemas import (
    CommissionResponse,
    CommissionSummary,
    ManualPayoutRequest,
    PartnerApply,
    PartnerApplyResponse,
    PartnerApproveResponse,
    PartnerResponse,
    PartnerStatusUpdate,
    PayoutResponse,
)
from .service import PartnerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/partners", tags=["Partners"])

apply_rate_limit = create_rate_limiter(
    limit=PARTNER_APPLY_RATE_LIMIT,
    window_seconds=PARTNER_APPLY_RATE_WINDOW,
    key_prefix="partner_apply",
)


def get_partner_service(
    db: Session = Depends(get_db),
    stripe_service: StripeService = Depends(get_stripe_service),
) -> PartnerService:
    """Dependency injection for PartnerService"""
    return PartnerService(db, stripe_service)


def get_payout_service(
    db: Session = Depends(get_db),
    stripe_service: StripeService = Depends(get_stripe_service),
) -> PayoutService:
    return PayoutService(db, stripe_service)


# ============================================================================
# PUBLIC
# ============================================================================


@router.post("/apply", response_model=PartnerApplyResponse)
async def apply(
    data: PartnerApply,
    _: None = Depends(apply_rate_limit),
    service: PartnerService = Depends(get_partner_service),
):
    """Submit a partner application"""
    partner = await service.apply(data)
    return PartnerApplyResponse(
        message="Application submitted successfully",
        partner_id=partner.id,
        status=partner.status,
        email=partner.email,
    )


# ============================================================================
# PARTNER SELF-SERVICE
# ============================================================================


@router.get("/me/dashboard")
async def get_my_dashboard(
    current_user: User = Depends(get_current_user),
    service: PartnerService = Depends(get_partner_service),
):
    partner = service.get_partner_for_user(current_user)
    return service.dashboard(partner)


@router.get("/me/payouts", response_model=list[PayoutResponse])
async def get_my_payouts(
    current_user: User = Depends(get_current_user),
    service: PartnerService = Depends(get_partner_service),
):
    partner = service.get_partner_for_user(current_user)
    return service.list_payouts(partner.id)


# ============================================================================
# ADMIN
# ============================================================================


@router.get("", response_model=list[PartnerResponse])
async def list_partners(
    status: Optional[str] = Query(None),
    admin: User = Depends(require_admin),
    service: PartnerService = Depends(get_partner_service),
):
    return service.list_partners(status.upper() if status else None)


@router.get("/commissions", response_model=list[CommissionResponse])
async def list_commissions(
    status: Optional[str] = Query(None),
    partner_id: Optional[int] = Query(None),
    admin: User = Depends(require_admin),
    service: PartnerService = Depends(get_partner_service),
):
    return service.list_commissions(status, partner_id)


@router.get("/commissions/summary", response_model=CommissionSummary)
async def get_commission_summary(
    admin: User = Depends(require_admin),
    service: PartnerService = Depends(get_partner_service),
):
    return service.commission_summary()


@router.post("/payouts/run")
async def run_manual_payout(
    data: ManualPayoutRequest,
    admin: User = Depends(require_admin),
    payouts: PayoutService = Depends(get_payout_service),
):
    """Pay out pending commissions now, for one partner or everyone eligible"""
    logger.info(f"📥 Manual payout requested by admin {admin.id} (partner={data.partner_id})")
    results = await payouts.run_manual_payout(data.partner_id)
    return {"results": results}


@router.post("/{partner_id}/approve", response_model=PartnerApproveResponse)
async def approve_partner(
    partner_id: int,
    admin: User = Depends(require_admin),
    service: PartnerService = Depends(get_partner_service),
):
    return await service.approve(partner_id, admin)


@router.post("/{partner_id}/status", response_model=PartnerResponse)
async def update_partner_status(
    partner_id: int,
    data: PartnerStatusUpdate,
    admin: User = Depends(require_admin),
    service: PartnerService = Depends(get_partner_service),
):
    """Pause, resume or reject a partner"""
    return service.set_status(partner_id, data.status)
