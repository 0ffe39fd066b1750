"""Stripe service - coupons, Connect accounts and transfers for the partner program"""

import logging
from typing import Optional

import stripe

from ..config import STRIPE_CONNECT_COUNTRY, STRIPE_SECRET_KEY

logger = logging.getLogger(__name__)


class StripeServiceError(Exception):
    """Raised when a Stripe API call fails or Stripe is not configured"""


class StripeService:
    """Service for Stripe API operations"""

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key or STRIPE_SECRET_KEY
        if not self.api_key:
            logger.warning("STRIPE_SECRET_KEY not set; partner payouts will fail until configured")

    def is_available(self) -> bool:
        """Check if Stripe is configured"""
        return bool(self.api_key)

    def _require_client(self) -> None:
        if not self.api_key:
            raise StripeServiceError("Stripe client not initialized")

    async def create_coupon(
        self, coupon_id: str, percent_off: int, name: str, metadata: Optional[dict] = None
    ) -> dict:
        """
        Create a forever coupon whose id customers can enter directly.

        A coupon left behind by an earlier, partly failed approval is reused.
        """
        self._require_client()
        try:
            coupon = await stripe.Coupon.create_async(
                api_key=self.api_key,
                id=coupon_id,
                percent_off=percent_off,
                duration="forever",
                name=name,
                metadata=metadata or {},
            )
        except stripe.InvalidRequestError as e:
            if e.code != "resource_already_exists":
                logger.error(f"❌ Stripe coupon creation failed for {coupon_id}: {e}")
                raise StripeServiceError(e.user_message or str(e)) from e
            logger.info(f"ℹ️ Stripe coupon {coupon_id} already exists, reusing it")
            return await self.retrieve_coupon(coupon_id)
        except stripe.StripeError as e:
            logger.error(f"❌ Stripe coupon creation failed for {coupon_id}: {e}")
            raise StripeServiceError(e.user_message or str(e)) from e
        logger.info(f"✅ Created Stripe coupon: {coupon.id}")
        return {"id": coupon.id}

    async def retrieve_coupon(self, coupon_id: str) -> dict:
        self._require_client()
        try:
            coupon = await stripe.Coupon.retrieve_async(coupon_id, api_key=self.api_key)
        except stripe.StripeError as e:
            logger.error(f"❌ Stripe coupon lookup failed for {coupon_id}: {e}")
            raise StripeServiceError(e.user_message or str(e)) from e
        return {"id": coupon.id}

    async def create_express_account(self, email: str, metadata: Optional[dict] = None) -> dict:
        """Create an Express Connect account able to receive transfers"""
        self._require_client()
        try:
            account = await stripe.Account.create_async(
                api_key=self.api_key,
                type="express",
                country=STRIPE_CONNECT_COUNTRY,
                email=email,
                capabilities={"transfers": {"requested": True}},
                metadata=metadata or {},
            )
        except stripe.StripeError as e:
            logger.error(f"❌ Stripe Connect account creation failed for {email}: {e}")
            raise StripeServiceError(e.user_message or str(e)) from e
        logger.info(f"✅ Created Stripe Connect account: {account.id}")
        return {"id": account.id}

    async def create_account_link(self, account_id: str, refresh_url: str, return_url: str) -> dict:
        """Create a hosted onboarding link for a Connect account"""
        self._require_client()
        try:
            link = await stripe.AccountLink.create_async(
                api_key=self.api_key,
                account=account_id,
                refresh_url=refresh_url,
                return_url=return_url,
                type="account_onboarding",
            )
        except stripe.StripeError as e:
            logger.error(f"❌ Stripe account link creation failed for {account_id}: {e}")
            raise StripeServiceError(e.user_message or str(e)) from e
        return {"url": link.url}

    async def create_transfer(
        self, amount_cents: int, destination: str, description: str, currency: str = "usd"
    ) -> dict:
        """Transfer funds from the platform balance to a connected account"""
        self._require_client()
        try:
            transfer = await stripe.Transfer.create_async(
                api_key=self.api_key,
                amount=amount_cents,
                currency=currency,
                destination=destination,
                description=description,
            )
        except stripe.StripeError as e:
            logger.error(f"❌ Stripe transfer to {destination} failed: {e}")
            raise StripeServiceError(e.user_message or str(e) or "Stripe transfer failed") from e
        logger.info(f"💸 Stripe transfer {transfer.id}: {amount_cents} {currency} -> {destination}")
        return {"id": transfer.id}


def get_stripe_service() -> StripeService:
    """Dependency injection for StripeService"""
    return StripeService()
