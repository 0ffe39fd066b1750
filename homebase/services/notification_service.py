"""
Notification Service
In-app notification records with optional email delivery, plus workflow
stage notifications that respect quiet hours and avoid duplicates
"""

import logging
from collections import OrderedDict
from datetime import datetime, time, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ..config import DEFAULT_QUIET_HOURS_END, DEFAULT_QUIET_HOURS_START
from ..domain.workflow.stages import format_stage_label
from ..email_service import send_notification_email
from ..models import User
from ..models_workflow import Notification

logger = logging.getLogger(__name__)

DUPLICATE_WINDOW = timedelta(hours=1)


def _parse_clock(value: str) -> time:
    hour, minute = value.split(":")
    return time(int(hour), int(minute))


def is_quiet_hours(start: Optional[str], end: Optional[str], now: datetime) -> bool:
    """True when now falls inside [start, end]; windows may span midnight"""
    if not start or not end:
        return False

    current = now.time().replace(second=0, microsecond=0)
    start_time = _parse_clock(start)
    end_time = _parse_clock(end)

    if start_time < end_time:
        return start_time <= current <= end_time
    # Quiet hours span midnight
    return current >= start_time or current <= end_time


def workflow_action_url(workflow_id: int) -> str:
    return f"/homeowner/service-progress/{workflow_id}"


async def dispatch_notification(
    db: Session,
    user_id: int,
    notification_type: str,
    title: str,
    message: str,
    action_url: Optional[str] = None,
    channels: Optional[dict] = None,
    metadata: Optional[dict] = None,
    now: Optional[datetime] = None,
) -> Optional[Notification]:
    """
    Store an in-app notification and deliver it on the requested channels.

    Email failures are logged and recorded on the notification; they never
    fail the caller.
    """
    channels = channels or {"inapp": True}
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        logger.warning(f"⚠️ Notification {notification_type} skipped: user {user_id} not found")
        return None

    notification = Notification(
        user_id=user.id,
        type=notification_type,
        title=title,
        body=message,
        action_url=action_url,
        channel_inapp=channels.get("inapp", True),
        channel_email=bool(channels.get("email")),
        channel_push=bool(channels.get("push")),
        delivered_inapp=channels.get("inapp", True),
        extra_data=metadata or {},
        created_at=now or datetime.utcnow(),
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)

    if notification.channel_email and user.notify_email and user.email:
        try:
            await send_notification_email(user.email, title, message, action_url)
            notification.delivered_email = True
            db.commit()
        except Exception as e:
            logger.error(f"❌ Failed to email {notification_type} notification to {user.email}: {e}")

    if notification.channel_push and user.notify_push:
        # Push is delivered by the device gateway reading undelivered rows
        logger.debug(f"📱 Push queued for notification {notification.id}")

    logger.info(f"🔔 Notification {notification_type} created for user {user.id}")
    return notification


def recently_notified(
    db: Session, user_id: int, workflow_id: int, stage: str, now: datetime
) -> bool:
    """True if the user got this stage notification for this workflow in the last hour"""
    existing = (
        db.query(Notification.id)
        .filter(
            Notification.user_id == user_id,
            Notification.action_url == workflow_action_url(workflow_id),
            Notification.title == f"Workflow Update: {format_stage_label(stage)}",
            Notification.created_at >= now - DUPLICATE_WINDOW,
        )
        .first()
    )
    return existing is not None


async def send_workflow_notification(
    db: Session,
    user_id: int,
    workflow_id: int,
    stage: str,
    message: str,
    now: Optional[datetime] = None,
) -> Optional[Notification]:
    """Notify a user about a workflow stage change unless it would be spam"""
    now = now or datetime.utcnow()
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        return None

    quiet_start = user.quiet_hours_start or DEFAULT_QUIET_HOURS_START
    quiet_end = user.quiet_hours_end or DEFAULT_QUIET_HOURS_END
    if is_quiet_hours(quiet_start, quiet_end, now):
        logger.info(f"🌙 Skipping workflow notification for user {user_id} during quiet hours")
        return None

    if recently_notified(db, user_id, workflow_id, stage, now):
        logger.info(f"ℹ️ User {user_id} already notified for {stage} on workflow {workflow_id}")
        return None

    return await dispatch_notification(
        db,
        user_id=user_id,
        notification_type="workflow_update",
        title=f"Workflow Update: {format_stage_label(stage)}",
        message=message,
        action_url=workflow_action_url(workflow_id),
        channels={"inapp": True, "email": user.notify_email, "push": user.notify_push},
        metadata={"workflow_id": workflow_id, "stage": stage},
        now=now,
    )


async def batch_notify_workflow_updates(
    db: Session, notifications: list[dict], now: Optional[datetime] = None
) -> int:
    """
    Send one notification per user for a batch of workflow updates.

    Each item needs user_id, workflow_id, stage and message. Users with several
    updates get a single summary. Returns the number of notifications created.
    """
    grouped: "OrderedDict[int, list[dict]]" = OrderedDict()
    for item in notifications:
        grouped.setdefault(item["user_id"], []).append(item)

    sent = 0
    for user_id, items in grouped.items():
        if len(items) == 1:
            result = await send_workflow_notification(
                db, user_id, items[0]["workflow_id"], items[0]["stage"], items[0]["message"], now
            )
        else:
            result = await send_workflow_notification(
                db,
                user_id,
                items[0]["workflow_id"],
                "batch_update",
                f"{len(items)} workflow updates",
                now,
            )
        if result is not None:
            sent += 1
    return sent
