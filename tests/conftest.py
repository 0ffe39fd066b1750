"""
Shared fixtures: an in-memory database per test, fake Stripe and email
collaborators, and a TestClient with dependency overrides.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTH_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("RESEND_API_KEY", "re_test_key")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from homebase import email_service  # noqa: E402
from homebase.auth import get_current_user  # noqa: E402
from homebase.database import Base, get_db  # noqa: E402
from homebase.domain.partners.router import apply_rate_limit  # noqa: E402
from homebase.main import app  # noqa: E402
from homebase.models import Booking, Organization, Quote, ServiceRequest, User  # noqa: E402
from homebase.models_partner import Partner  # noqa: E402
from homebase.services.stripe_service import StripeServiceError, get_stripe_service  # noqa: E402


class FakeStripeService:
    """Records calls instead of talking to Stripe"""

    def __init__(self):
        self.calls = []
        self.fail_transfers = False
        self._transfer_count = 0

    def is_available(self) -> bool:
        return True

    async def create_coupon(self, coupon_id, percent_off, name, metadata=None):
        self.calls.append(("coupon", coupon_id, percent_off))
        return {"id": coupon_id}

    async def create_express_account(self, email, metadata=None):
        self.calls.append(("account", email))
        return {"id": "acct_test_123"}

    async def create_account_link(self, account_id, refresh_url, return_url):
        self.calls.append(("account_link", account_id))
        return {"url": f"https://connect.stripe.test/onboarding/{account_id}"}

    async def create_transfer(self, amount_cents, destination, description, currency="usd"):
        self.calls.append(("transfer", amount_cents, destination))
        if self.fail_transfers:
            raise StripeServiceError("Insufficient platform balance")
        self._transfer_count += 1
        return {"id": f"tr_test_{self._transfer_count}"}


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def db(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    """Capture outgoing email instead of calling Resend"""
    outbox = []

    async def fake_send_email(to, subject, mjml_content, from_address=None):
        outbox.append({"to": to, "subject": subject, "body": mjml_content})
        return {"id": f"email_{len(outbox)}"}

    monkeypatch.setattr(email_service, "send_email", fake_send_email)
    return outbox


@pytest.fixture
def fake_stripe():
    return FakeStripeService()


@pytest.fixture
def client(db, fake_stripe):
    def override_get_db():
        yield db

    async def no_rate_limit():
        return None

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_stripe_service] = lambda: fake_stripe
    app.dependency_overrides[apply_rate_limit] = no_rate_limit
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login():
    """Authenticate subsequent requests as the given user"""

    def _login(user):
        app.dependency_overrides[get_current_user] = lambda: user
        return user

    return _login


# ----------------------------------------------------------------------------
# Data builders
# ----------------------------------------------------------------------------


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(role="homeowner", organization_id=None, **fields):
        counter["n"] += 1
        user = User(
            auth_uid=f"auth-{role}-{counter['n']}",
            email=fields.pop("email", f"{role}{counter['n']}@example.com"),
            full_name=fields.pop("full_name", f"Test {role.title()} {counter['n']}"),
            role=role,
            organization_id=organization_id,
            **fields,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def homeowner(make_user):
    return make_user("homeowner")


@pytest.fixture
def admin(make_user):
    return make_user("admin")


@pytest.fixture
def provider_org(db, make_user):
    org = Organization(name="Ace Plumbing")
    db.add(org)
    db.commit()
    owner = make_user("provider", organization_id=org.id)
    org.owner_id = owner.id
    db.commit()
    db.refresh(org)
    return org


@pytest.fixture
def provider(db, provider_org):
    return db.query(User).filter(User.id == provider_org.owner_id).first()


@pytest.fixture
def service_request(db, homeowner, provider_org):
    request = ServiceRequest(
        homeowner_id=homeowner.id,
        provider_org_id=provider_org.id,
        service_type="plumbing",
        description="Leaking water heater",
    )
    db.add(request)
    db.commit()
    db.refresh(request)
    return request


@pytest.fixture
def booking(db, homeowner, provider_org, service_request):
    job = Booking(
        service_request_id=service_request.id,
        homeowner_id=homeowner.id,
        provider_org_id=provider_org.id,
        service_name="Water Heater Repair",
        status="pending",
        estimated_price_low=200.0,
        estimated_price_high=300.0,
        property_zip="78704",
        property_sqft=1800,
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    return job


@pytest.fixture
def quote(db, homeowner, provider_org, service_request):
    proposal = Quote(
        service_request_id=service_request.id,
        provider_org_id=provider_org.id,
        homeowner_id=homeowner.id,
        service_name="Water Heater Repair",
        status="draft",
        total_cost=250.0,
        labor_cost=150.0,
        parts_cost=100.0,
        line_items=[],
    )
    db.add(proposal)
    db.commit()
    db.refresh(proposal)
    return proposal


@pytest.fixture
def make_partner(db, make_user):
    counter = {"n": 0}

    def _make_partner(status="ACTIVE", stripe_account_id="acct_partner", commission_rate_bp=1000, **fields):
        counter["n"] += 1
        user = make_user("partner")
        partner = Partner(
            user_id=user.id,
            email=user.email,
            contact_name=user.full_name,
            type=fields.pop("type", "PRO"),
            status=status,
            referral_code=fields.pop("referral_code", f"PART25{counter['n']:02d}"),
            referral_slug=fields.pop("referral_slug", f"slug{counter['n']:04d}"),
            commission_rate_bp=commission_rate_bp,
            discount_rate_bp=1000,
            stripe_account_id=stripe_account_id,
            **fields,
        )
        db.add(partner)
        db.commit()
        db.refresh(partner)
        return partner

    return _make_partner
