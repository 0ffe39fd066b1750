"""Tests for AI feedback collection"""

from datetime import datetime, timedelta

import pytest

from homebase.models import Booking, Quote
from homebase.models_workflow import AILearningEvent
from homebase.services.ai_feedback import (
    anonymized_region,
    collect_ai_feedback,
    price_accuracy,
    property_size_bucket,
)

NOON = datetime(2026, 3, 2, 12, 0, 0)


def test_property_size_bucket():
    assert property_size_bucket(None) == "unknown"
    assert property_size_bucket(1200) == "small"
    assert property_size_bucket(1500) == "medium"
    assert property_size_bucket(2499) == "medium"
    assert property_size_bucket(4000) == "large"


def test_anonymized_region():
    assert anonymized_region("78704") == "787XX"
    assert anonymized_region(None) == "unknown"


def test_price_accuracy():
    assert price_accuracy(250, 200) == pytest.approx(0.8)
    assert price_accuracy(200, 250) == 1.0
    assert price_accuracy(250, 0) == 0.0
    assert price_accuracy(None, 250) == 0.0


@pytest.fixture
def completed_job(db, homeowner, provider_org, service_request):
    job = Booking(
        service_request_id=service_request.id,
        homeowner_id=homeowner.id,
        provider_org_id=provider_org.id,
        service_name="Roof Repair",
        status="completed",
        scheduled_date=NOON - timedelta(hours=6),
        final_price=400.0,
        property_zip="94110",
        property_sqft=2600,
        updated_at=NOON - timedelta(hours=2),
    )
    db.add(job)
    db.commit()
    quote = Quote(
        service_request_id=service_request.id,
        provider_org_id=provider_org.id,
        homeowner_id=homeowner.id,
        booking_id=job.id,
        service_name="Roof Repair",
        status="accepted",
        total_cost=500.0,
        ai_confidence=0.9,
        pricing_factors={"estimated_duration": 4},
        updated_at=NOON - timedelta(days=3),
    )
    db.add(quote)
    db.commit()
    return job, quote


def test_logs_job_outcome(db, completed_job):
    job, quote = completed_job

    result = collect_ai_feedback(db, now=NOON)

    assert result["success"] is True
    assert result["job_outcomes_logged"] == 1
    event = db.query(AILearningEvent).filter(AILearningEvent.event_type == "job_outcome").one()
    assert event.booking_id == job.id
    assert event.quote_id == quote.id
    assert event.ai_predicted["estimated_price"] == 500.0
    assert event.ai_predicted["estimated_duration"] == 4
    assert event.actual_outcome["final_price"] == 400.0
    assert event.actual_outcome["actual_duration"] == 4 * 3600
    assert event.accuracy_score == pytest.approx(0.8)
    assert event.region_zip == "941XX"
    assert event.property_size_bucket == "large"


def test_job_outcome_is_logged_once(db, completed_job):
    collect_ai_feedback(db, now=NOON)
    result = collect_ai_feedback(db, now=NOON)

    assert result["job_outcomes_logged"] == 0
    assert db.query(AILearningEvent).filter(AILearningEvent.event_type == "job_outcome").count() == 1


def test_old_bookings_are_ignored(db, completed_job):
    result = collect_ai_feedback(db, now=NOON + timedelta(days=2))
    assert result["job_outcomes_logged"] == 0


def test_quote_decisions(db, homeowner, provider_org):
    recent = dict(provider_org_id=provider_org.id, homeowner_id=homeowner.id, updated_at=NOON - timedelta(hours=1))
    accepted = Quote(status="accepted", total_cost=300.0, **recent)
    rejected = Quote(status="rejected", total_cost=900.0, rejection_reason="Too expensive", **recent)
    draft = Quote(status="draft", total_cost=100.0, **recent)
    db.add_all([accepted, rejected, draft])
    db.commit()

    result = collect_ai_feedback(db, now=NOON)

    assert result["quote_feedback_logged"] == 2
    assert result["total_events"] == 2
    events = {
        e.quote_id: e
        for e in db.query(AILearningEvent).filter(AILearningEvent.event_type == "quote_accuracy")
    }
    assert events[accepted.id].accuracy_score == 1.0
    assert events[rejected.id].accuracy_score == 0.0
    assert events[rejected.id].actual_outcome == {"accepted": False, "rejection_reason": "Too expensive"}
    assert draft.id not in events
