"""Shared ownership checks for provider and homeowner resources"""

from typing import Optional

from fastapi import HTTPException

from ..models import User


def ensure_provider_access(user: User, provider_org_id: Optional[int], resource: str) -> None:
    """Allow admins and members of the owning provider organization"""
    if user.is_admin:
        return
    if not user.organization_id or user.organization_id != provider_org_id:
        raise HTTPException(status_code=404, detail=f"{resource} not found")


def ensure_homeowner_access(user: User, homeowner_id: Optional[int], resource: str) -> None:
    """Allow admins and the homeowner the resource belongs to"""
    if user.is_admin:
        return
    if user.id != homeowner_id:
        raise HTTPException(status_code=404, detail=f"{resource} not found")
