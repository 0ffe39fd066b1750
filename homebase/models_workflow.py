"""
Workflow tracking models: per-engagement stage record, scheduled follow-ups,
AI learning events and in-app notifications
"""

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from .database import Base


class WorkflowState(Base):
    __tablename__ = "workflow_states"

    id = Column(Integer, primary_key=True, index=True)
    service_request_id = Column(
        Integer, ForeignKey("service_requests.id"), nullable=True, index=True
    )
    homeowner_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    provider_org_id = Column(Integer, ForeignKey("organizations.id"), nullable=True, index=True)
    quote_id = Column(Integer, ForeignKey("quotes.id"), nullable=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=True, index=True)
    service_call_id = Column(Integer, ForeignKey("service_calls.id"), nullable=True, index=True)
    payment_id = Column(String(255), nullable=True)
    workflow_stage = Column(String(50), nullable=False, default="request_submitted")
    stage_started_at = Column(DateTime, nullable=False, server_default=func.now())
    stage_completed_at = Column(DateTime, nullable=True)
    extra_data = Column("metadata", JSON, default=dict)
    homeowner_notified_at = Column(DateTime, nullable=True)
    provider_notified_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class FollowUpAction(Base):
    __tablename__ = "follow_up_actions"

    id = Column(Integer, primary_key=True, index=True)
    homeowner_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    provider_org_id = Column(Integer, ForeignKey("organizations.id"), nullable=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)
    service_visit_id = Column(Integer, ForeignKey("service_calls.id"), nullable=True)
    action_type = Column(String(50), nullable=False)  # review_request, appointment_reminder
    scheduled_for = Column(DateTime, nullable=False, index=True)
    status = Column(String(20), default="pending", index=True)  # pending, sent, cancelled
    sent_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    response_data = Column(JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class AILearningEvent(Base):
    __tablename__ = "ai_learning_events"

    id = Column(Integer, primary_key=True, index=True)
    event_type = Column(String(50), nullable=False)  # workflow_complete, job_outcome, quote_accuracy
    service_request_id = Column(Integer, nullable=True)
    booking_id = Column(Integer, nullable=True, index=True)
    quote_id = Column(Integer, nullable=True, index=True)
    service_call_id = Column(Integer, nullable=True)
    provider_org_id = Column(Integer, nullable=True)
    service_category = Column(String(255), nullable=True)
    ai_predicted = Column(JSON, nullable=True)
    actual_outcome = Column(JSON, nullable=True)
    accuracy_score = Column(Float, nullable=True)
    complexity_factors = Column(JSON, default=list)
    region_zip = Column(String(10), nullable=True)
    property_size_bucket = Column(String(20), nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    action_url = Column(String(500), nullable=True)
    channel_inapp = Column(Boolean, default=True)
    channel_email = Column(Boolean, default=False)
    channel_push = Column(Boolean, default=False)
    delivered_inapp = Column(Boolean, default=True)
    delivered_email = Column(Boolean, default=False)
    delivered_push = Column(Boolean, default=False)
    extra_data = Column("metadata", JSON, default=dict)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), index=True)
