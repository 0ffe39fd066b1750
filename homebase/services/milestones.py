"""
Milestone celebrations
Each milestone is celebrated once per user
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ..models import User

logger = logging.getLogger(__name__)

MILESTONE_TYPES = (
    "first_invoice",
    "first_payment",
    "first_job_scheduled",
    "revenue_100",
    "revenue_500",
    "revenue_1000",
    "revenue_5000",
    "perfect_week",
    "ai_first_use",
)


def milestone_message(milestone_type: str, metadata: Optional[dict] = None) -> dict:
    metadata = metadata or {}
    amount = metadata.get("amount")
    messages = {
        "first_invoice": {
            "title": "First Invoice Sent! 🎉",
            "description": "You're officially in business! Your first invoice is on its way to your client.",
        },
        "first_payment": {
            "title": "First Payment Received! 💰",
            "description": (
                f"Congratulations! You just received {f'${amount}' if amount else 'your first payment'}. "
                "This is the start of something big."
            ),
        },
        "first_job_scheduled": {
            "title": "First Job Scheduled! 📅",
            "description": "Your calendar is filling up! You've scheduled your first job with a client.",
        },
        "revenue_100": {
            "title": "You've Made $100! 🎯",
            "description": "Your business is growing! You've managed over $100 in work with HomeBase.",
        },
        "revenue_500": {
            "title": "You've Made $500! 🚀",
            "description": "Impressive progress! You're building real momentum with your business.",
        },
        "revenue_1000": {
            "title": "You've Made $1,000! 💎",
            "description": "That's $1,000 managed through HomeBase. You're a pro!",
        },
        "revenue_5000": {
            "title": "You've Made $5,000! 🏆",
            "description": "You're crushing it! $5,000 in business managed through HomeBase.",
        },
        "perfect_week": {
            "title": "Perfect Week! ⭐",
            "description": "All jobs completed on time this week. That's how pros do it!",
        },
        "ai_first_use": {
            "title": "AI Activated! 🤖",
            "description": "You just saved hours of work! Let HomeBase AI handle the heavy lifting.",
        },
    }
    return messages[milestone_type]


def track_milestone(
    db: Session,
    user: User,
    milestone_type: str,
    metadata: Optional[dict] = None,
    now: Optional[datetime] = None,
) -> dict:
    if milestone_type not in MILESTONE_TYPES:
        raise HTTPException(status_code=400, detail=f"Unknown milestone type: {milestone_type}")

    now = now or datetime.utcnow()
    celebrations = dict(user.milestone_celebrations or {})
    if milestone_type in celebrations:
        return {"celebrated": False, "reason": "Already celebrated", "milestoneType": milestone_type}

    celebrations[milestone_type] = {"celebrated_at": now.isoformat(), "metadata": metadata or {}}
    user.milestone_celebrations = celebrations
    user.last_activity_at = now
    db.commit()
    logger.info(f"🎉 Milestone {milestone_type} tracked for user {user.id}")

    return {
        "celebrated": True,
        "milestoneType": milestone_type,
        "showCelebration": True,
        "message": milestone_message(milestone_type, metadata),
    }
