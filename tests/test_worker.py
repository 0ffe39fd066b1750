"""Tests for the scheduled background tasks"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy.orm import sessionmaker

from homebase import worker
from homebase.domain.partners.payouts import PayoutService
from homebase.models_partner import PartnerCommission
from homebase.models_workflow import FollowUpAction


@pytest.fixture
def worker_sessions(engine, monkeypatch):
    monkeypatch.setattr(worker, "SessionLocal", sessionmaker(autocommit=False, autoflush=False, bind=engine))


def test_cron_schedule():
    schedules = {job.coroutine.__name__: job for job in worker.WorkerSettings.cron_jobs}

    assert schedules["partner_payouts_task"].hour == 9
    assert schedules["ai_feedback_task"].hour == 2
    assert schedules["follow_ups_task"].minute == {0, 15, 30, 45}


async def test_follow_ups_task(db, worker_sessions, homeowner):
    db.add(
        FollowUpAction(
            homeowner_id=homeowner.id,
            action_type="review_request",
            scheduled_for=datetime.utcnow() - timedelta(minutes=1),
            status="pending",
        )
    )
    db.commit()

    result = await worker.follow_ups_task({})

    assert result == {"sent": 1, "cancelled": 0}


async def test_ai_feedback_task(worker_sessions):
    result = await worker.ai_feedback_task({})
    assert result["total_events"] == 0


async def test_partner_payouts_task(db, worker_sessions, monkeypatch, fake_stripe, make_partner):
    partner = make_partner()
    db.add(
        PartnerCommission(
            partner_id=partner.id, base_amount_cents=60000, commission_rate_bp=1000,
            commission_amount_cents=6000, status="PENDING",
        )
    )
    db.commit()
    monkeypatch.setattr(worker, "PayoutService", lambda session: PayoutService(session, fake_stripe))

    result = await worker.partner_payouts_task({})

    assert result == {"successful": 1, "failed": 0, "skipped": 0}
