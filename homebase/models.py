from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class User(Base):
    """Platform profile for homeowners, provider staff, partners and admins"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    auth_uid = Column(String(255), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    role = Column(String(20), default="homeowner", nullable=False)  # homeowner, provider, partner, admin
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=True)
    # Notification preferences
    notify_email = Column(Boolean, default=True, nullable=False)
    notify_push = Column(Boolean, default=True, nullable=False)
    quiet_hours_start = Column(String(5), nullable=True)  # "HH:MM"
    quiet_hours_end = Column(String(5), nullable=True)  # "HH:MM"
    milestone_celebrations = Column(JSON, default=dict, nullable=True)
    last_activity_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    organization = relationship(
        "Organization", back_populates="members", foreign_keys=[organization_id]
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class Organization(Base):
    """Service-provider business"""

    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    owner_id = Column(
        Integer,
        ForeignKey("users.id", use_alter=True, name="fk_organizations_owner_id"),
        nullable=True,
    )
    created_at = Column(DateTime, server_default=func.now())

    owner = relationship("User", foreign_keys=[owner_id])
    members = relationship(
        "User", back_populates="organization", foreign_keys="User.organization_id"
    )


class ServiceRequest(Base):
    __tablename__ = "service_requests"

    id = Column(Integer, primary_key=True, index=True)
    homeowner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    provider_org_id = Column(Integer, ForeignKey("organizations.id"), nullable=True)
    service_type = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    status = Column(String(50), default="open")
    created_at = Column(DateTime, server_default=func.now())


class Booking(Base):
    """Scheduled service appointment (a provider's job)"""

    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    service_request_id = Column(Integer, ForeignKey("service_requests.id"), nullable=True)
    homeowner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    provider_org_id = Column(Integer, ForeignKey("organizations.id"), nullable=False)
    service_name = Column(String(255), nullable=True)
    # pending, confirmed, scheduled, in_progress, completed, cancelled
    status = Column(String(50), default="pending")
    scheduled_date = Column(DateTime, nullable=True)
    estimated_price_low = Column(Float, nullable=True)
    estimated_price_high = Column(Float, nullable=True)
    final_price = Column(Float, nullable=True)
    deposit_amount = Column(Float, nullable=True)
    property_zip = Column(String(10), nullable=True)
    property_sqft = Column(Integer, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    quotes = relationship("Quote", back_populates="booking")


class Quote(Base):
    """Priced proposal sent by a provider to a homeowner"""

    __tablename__ = "quotes"

    id = Column(Integer, primary_key=True, index=True)
    service_request_id = Column(Integer, ForeignKey("service_requests.id"), nullable=True)
    provider_org_id = Column(Integer, ForeignKey("organizations.id"), nullable=False)
    homeowner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    # Booking this quote was converted into once accepted
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)
    service_name = Column(String(255), nullable=True)
    status = Column(String(50), default="draft")  # draft, sent, accepted, rejected
    total_cost = Column(Float, nullable=True)
    labor_cost = Column(Float, nullable=True)
    parts_cost = Column(Float, nullable=True)
    line_items = Column(JSON, default=list)
    pricing_factors = Column(JSON, default=dict)
    ai_confidence = Column(Float, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    booking = relationship("Booking", back_populates="quotes")


class ServiceCall(Base):
    """Diagnostic visit attached to a booking"""

    __tablename__ = "service_calls"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)
    provider_org_id = Column(Integer, ForeignKey("organizations.id"), nullable=False)
    homeowner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    status = Column(String(50), default="pending")
    diagnosis = Column(Text, nullable=True)
    parts_needed = Column(JSON, default=list)
    created_at = Column(DateTime, server_default=func.now())


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False)
    homeowner_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True, index=True)
    invoice_number = Column(String(50), unique=True, nullable=False, index=True)
    amount = Column(Float, nullable=False)
    due_date = Column(DateTime, nullable=True)
    line_items = Column(JSON, default=list)
    status = Column(String(50), default="draft")  # draft, sent, paid, cancelled
    notes = Column(Text, nullable=True)
    extra_data = Column("metadata", JSON, default=dict)
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
