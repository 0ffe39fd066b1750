"""Workflow domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class WorkflowCreate(BaseModel):
    service_request_id: int
    homeowner_id: int
    provider_org_id: int


class WorkflowAdvance(BaseModel):
    stage: str
    metadata: dict[str, Any] = {}


class OrchestrateRequest(BaseModel):
    """Event reported by the booking, quote or invoice flows"""

    action: str
    quote_id: Optional[int] = None
    booking_id: Optional[int] = None
    invoice_id: Optional[int] = None
    homeowner_id: Optional[int] = None
    provider_org_id: Optional[int] = None
    metadata: dict[str, Any] = {}


class OrchestrateResponse(BaseModel):
    success: bool
    workflow_id: int
    stage: str


class StageProgress(BaseModel):
    current: int
    total: int
    percentage: int


class WorkflowResponse(BaseModel):
    id: int
    service_request_id: Optional[int] = None
    homeowner_id: Optional[int] = None
    provider_org_id: Optional[int] = None
    quote_id: Optional[int] = None
    booking_id: Optional[int] = None
    invoice_id: Optional[int] = None
    service_call_id: Optional[int] = None
    payment_id: Optional[str] = None
    workflow_stage: str
    stage_label: str
    next_stage: Optional[str] = None
    progress: StageProgress
    stage_started_at: Optional[datetime] = None
    stage_completed_at: Optional[datetime] = None
    metadata: dict[str, Any] = {}


class BoardEntry(BaseModel):
    workflow_id: int
    stage: str
    stage_label: str
    next_stage: Optional[str] = None
    time_since_start: str
    is_overdue: bool
    homeowner_id: Optional[int] = None
    booking_id: Optional[int] = None
    quote_id: Optional[int] = None
    invoice_id: Optional[int] = None


class BoardColumn(BaseModel):
    id: str
    title: str
    workflows: list[BoardEntry]
