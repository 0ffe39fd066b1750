from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import User
from ..services.milestones import track_milestone

router = APIRouter(prefix="/milestones", tags=["Milestones"])


class MilestoneRequest(BaseModel):
    milestone_type: str
    metadata: Optional[dict[str, Any]] = None


@router.post("")
async def record_milestone(
    data: MilestoneRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Celebrate a milestone the first time the user reaches it"""
    return track_milestone(db, current_user, data.milestone_type, data.metadata)
