"""Tests for the Stripe service wrapper"""

from types import SimpleNamespace

import pytest
import stripe

from homebase.services.stripe_service import StripeService, StripeServiceError


@pytest.fixture
def service():
    return StripeService(api_key="sk_test_123")


class TestCreateCoupon:
    async def test_creates_forever_coupon(self, service, monkeypatch):
        created = {}

        async def fake_create(**kwargs):
            created.update(kwargs)
            return SimpleNamespace(id=kwargs["id"])

        monkeypatch.setattr(stripe.Coupon, "create_async", staticmethod(fake_create))

        coupon = await service.create_coupon("JOHN2507", 10, "Partner JOHN2507 - 10% off")

        assert coupon == {"id": "JOHN2507"}
        assert created["duration"] == "forever"
        assert created["percent_off"] == 10

    async def test_existing_coupon_is_reused(self, service, monkeypatch):
        """Retrying an approval must not fail on the coupon created the first time"""

        async def fake_create(**kwargs):
            raise stripe.InvalidRequestError(
                "Coupon already exists.", "id", code="resource_already_exists"
            )

        async def fake_retrieve(coupon_id, **kwargs):
            return SimpleNamespace(id=coupon_id)

        monkeypatch.setattr(stripe.Coupon, "create_async", staticmethod(fake_create))
        monkeypatch.setattr(stripe.Coupon, "retrieve_async", staticmethod(fake_retrieve))

        coupon = await service.create_coupon("JOHN2507", 10, "Partner JOHN2507 - 10% off")

        assert coupon == {"id": "JOHN2507"}

    async def test_other_invalid_request_still_fails(self, service, monkeypatch):
        async def fake_create(**kwargs):
            raise stripe.InvalidRequestError("Invalid percent_off", "percent_off", code="parameter_invalid")

        monkeypatch.setattr(stripe.Coupon, "create_async", staticmethod(fake_create))

        with pytest.raises(StripeServiceError):
            await service.create_coupon("JOHN2507", 500, "bad")


async def test_unconfigured_service_refuses_calls(monkeypatch):
    monkeypatch.setattr("homebase.services.stripe_service.STRIPE_SECRET_KEY", None)
    service = StripeService()

    assert not service.is_available()
    with pytest.raises(StripeServiceError):
        await service.create_transfer(5000, "acct_1", "payout")
