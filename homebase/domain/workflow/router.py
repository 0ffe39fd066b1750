"""Workflow router - FastAPI endpoints for workflow tracking"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import (
    BoardColumn,
    OrchestrateRequest,
    OrchestrateResponse,
    WorkflowAdvance,
    WorkflowCreate,
    WorkflowResponse,
)
from .service import WorkflowService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workflows", tags=["Workflows"])


def get_workflow_service(db: Session = Depends(get_db)) -> WorkflowService:
    """Dependency injection for WorkflowService"""
    return WorkflowService(db)


@router.post("", response_model=WorkflowResponse, status_code=201)
async def create_workflow(
    data: WorkflowCreate,
    current_user: User = Depends(get_current_user),
    service: WorkflowService = Depends(get_workflow_service),
):
    """Start tracking a service request"""
    workflow_id = service.create_from_service_request(
        data.service_request_id, data.homeowner_id, data.provider_org_id
    )
    return service.serialize(service.get_workflow(workflow_id))


@router.get("/board", response_model=list[BoardColumn])
async def get_board(
    current_user: User = Depends(get_current_user),
    service: WorkflowService = Depends(get_workflow_service),
):
    """Kanban board of the provider organization's open workflows"""
    if not current_user.organization_id:
        raise HTTPException(status_code=403, detail="Provider organization required")
    return service.board(current_user.organization_id)


@router.post("/orchestrate", response_model=OrchestrateResponse)
async def orchestrate_workflow(
    data: OrchestrateRequest,
    current_user: User = Depends(get_current_user),
    service: WorkflowService = Depends(get_workflow_service),
):
    return await service.orchestrate(
        data.action,
        quote_id=data.quote_id,
        booking_id=data.booking_id,
        invoice_id=data.invoice_id,
        homeowner_id=data.homeowner_id,
        provider_org_id=data.provider_org_id,
        metadata=data.metadata,
    )


@router.get("/{workflow_id}", response_model=WorkflowResponse)
async def get_workflow(
    workflow_id: int,
    current_user: User = Depends(get_current_user),
    service: WorkflowService = Depends(get_workflow_service),
):
    workflow = service.get_workflow_for_user(workflow_id, current_user)
    return service.serialize(workflow)


@router.post("/{workflow_id}/advance", response_model=WorkflowResponse)
async def advance_workflow(
    workflow_id: int,
    data: WorkflowAdvance,
    current_user: User = Depends(get_current_user),
    service: WorkflowService = Depends(get_workflow_service),
):
    """Manually move a workflow to another stage"""
    workflow = service.get_workflow(workflow_id)
    service.ensure_provider_access(workflow, current_user)
    workflow = await service.advance_stage(workflow_id, data.stage, data.metadata)
    return service.serialize(workflow)
