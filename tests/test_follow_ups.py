"""Tests for delivering due follow-up actions"""

from datetime import datetime, timedelta

import pytest

from homebase.models_workflow import FollowUpAction, Notification
from homebase.services.follow_ups import process_due_follow_ups

NOON = datetime(2026, 3, 2, 12, 0, 0)


@pytest.fixture
def make_follow_up(db):
    def _make_follow_up(homeowner_id, action_type="review_request", scheduled_for=NOON, booking_id=None):
        action = FollowUpAction(
            homeowner_id=homeowner_id,
            booking_id=booking_id,
            action_type=action_type,
            scheduled_for=scheduled_for,
            status="pending",
        )
        db.add(action)
        db.commit()
        return action

    return _make_follow_up


async def test_due_review_request_is_sent(db, homeowner, booking, make_follow_up, sent_emails):
    action = make_follow_up(homeowner.id, booking_id=booking.id, scheduled_for=NOON - timedelta(minutes=5))

    result = await process_due_follow_ups(db, now=NOON)

    assert result == {"sent": 1, "cancelled": 0}
    db.refresh(action)
    assert action.status == "sent"
    assert action.sent_at == NOON

    notification = db.query(Notification).one()
    assert notification.type == "review_request"
    assert notification.title == "⭐ How did we do?"
    assert notification.action_url == f"/homeowner/bookings/{booking.id}/review"
    assert [email["to"] for email in sent_emails] == [homeowner.email]


async def test_appointment_reminder_mentions_the_date(db, homeowner, booking, make_follow_up):
    booking.scheduled_date = datetime(2026, 3, 3, 9, 30)
    db.commit()
    make_follow_up(homeowner.id, action_type="appointment_reminder", booking_id=booking.id)

    await process_due_follow_ups(db, now=NOON)

    notification = db.query(Notification).one()
    assert notification.title == "📅 Upcoming Appointment"
    assert "Mar 03 at 09:30 AM" in notification.body


async def test_future_follow_ups_are_left_pending(db, homeowner, make_follow_up):
    action = make_follow_up(homeowner.id, scheduled_for=NOON + timedelta(hours=1))

    result = await process_due_follow_ups(db, now=NOON)

    assert result == {"sent": 0, "cancelled": 0}
    db.refresh(action)
    assert action.status == "pending"


async def test_missing_homeowner_cancels(db, make_follow_up):
    action = make_follow_up(None)

    result = await process_due_follow_ups(db, now=NOON)

    assert result == {"sent": 0, "cancelled": 1}
    db.refresh(action)
    assert action.status == "cancelled"


async def test_email_opt_out(db, homeowner, make_follow_up, sent_emails):
    homeowner.notify_email = False
    db.commit()
    make_follow_up(homeowner.id)

    await process_due_follow_ups(db, now=NOON)

    assert sent_emails == []
    assert db.query(Notification).count() == 1


async def test_already_sent_is_not_resent(db, homeowner, make_follow_up):
    make_follow_up(homeowner.id)
    await process_due_follow_ups(db, now=NOON)

    result = await process_due_follow_ups(db, now=NOON + timedelta(minutes=15))

    assert result == {"sent": 0, "cancelled": 0}
    assert db.query(Notification).count() == 1
