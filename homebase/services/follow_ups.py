"""
Follow-up processing
Delivers review requests and appointment reminders once they come due
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..email_service import send_follow_up_reminder_email
from ..models import Booking, User
from ..models_workflow import FollowUpAction
from .notification_service import dispatch_notification

logger = logging.getLogger(__name__)


def _follow_up_content(db: Session, action: FollowUpAction) -> tuple[str, str, str]:
    if action.action_type == "appointment_reminder":
        booking = (
            db.query(Booking).filter(Booking.id == action.booking_id).first()
            if action.booking_id
            else None
        )
        when = ""
        if booking and booking.scheduled_date:
            when = f" on {booking.scheduled_date.strftime('%b %d at %I:%M %p')}"
        return (
            "📅 Upcoming Appointment",
            f"Reminder: your service appointment is scheduled{when}.",
            f"/homeowner/bookings/{action.booking_id}" if action.booking_id else "/homeowner",
        )

    return (
        "⭐ How did we do?",
        "Your service is complete. Leave a quick review to help other homeowners.",
        f"/homeowner/bookings/{action.booking_id}/review" if action.booking_id else "/homeowner",
    )


async def process_due_follow_ups(db: Session, now: Optional[datetime] = None) -> dict:
    """Send every pending follow-up whose time has come"""
    now = now or datetime.utcnow()
    due = (
        db.query(FollowUpAction)
        .filter(FollowUpAction.status == "pending", FollowUpAction.scheduled_for <= now)
        .order_by(FollowUpAction.scheduled_for)
        .all()
    )

    sent = 0
    cancelled = 0
    for action in due:
        homeowner = (
            db.query(User).filter(User.id == action.homeowner_id).first()
            if action.homeowner_id
            else None
        )
        if not homeowner:
            action.status = "cancelled"
            db.commit()
            cancelled += 1
            logger.warning(f"⚠️ Follow-up {action.id} cancelled: homeowner missing")
            continue

        title, message, action_url = _follow_up_content(db, action)
        try:
            notification = await dispatch_notification(
                db,
                user_id=homeowner.id,
                notification_type=action.action_type,
                title=title,
                message=message,
                action_url=action_url,
                channels={"inapp": True},
                metadata={"follow_up_id": action.id},
                now=now,
            )
        except Exception as e:
            db.rollback()
            logger.error(f"❌ Failed to deliver follow-up {action.id}: {e}")
            continue

        if homeowner.notify_email and homeowner.email:
            try:
                await send_follow_up_reminder_email(homeowner.email, title, message, action_url)
                if notification is not None:
                    notification.channel_email = True
                    notification.delivered_email = True
            except Exception as e:
                logger.error(f"❌ Failed to email follow-up {action.id} to {homeowner.email}: {e}")

        action.status = "sent"
        action.sent_at = now
        db.commit()
        sent += 1

    if due:
        logger.info(f"📬 Follow-ups processed: {sent} sent, {cancelled} cancelled")
    return {"sent": sent, "cancelled": cancelled}
