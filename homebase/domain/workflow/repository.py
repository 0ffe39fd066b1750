"""Workflow repository - Database operations for workflow states"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import Booking, Invoice, Organization, Quote, ServiceCall
from ...models_workflow import AILearningEvent, FollowUpAction, WorkflowState


class WorkflowRepository:
    """Repository for workflow database operations"""

    @staticmethod
    def get_workflow(db: Session, workflow_id: int) -> Optional[WorkflowState]:
        return db.query(WorkflowState).filter(WorkflowState.id == workflow_id).first()

    @staticmethod
    def get_by_job(db: Session, job_id: int) -> Optional[WorkflowState]:
        """A job id may refer to either the booking or the diagnostic service call"""
        return (
            db.query(WorkflowState)
            .filter(or_(WorkflowState.booking_id == job_id, WorkflowState.service_call_id == job_id))
            .order_by(WorkflowState.id)
            .first()
        )

    @staticmethod
    def get_by_quote(db: Session, quote_id: int) -> Optional[WorkflowState]:
        return (
            db.query(WorkflowState)
            .filter(WorkflowState.quote_id == quote_id)
            .order_by(WorkflowState.id)
            .first()
        )

    @staticmethod
    def list_by_quote(db: Session, quote_id: int) -> list[WorkflowState]:
        return db.query(WorkflowState).filter(WorkflowState.quote_id == quote_id).all()

    @staticmethod
    def get_by_invoice(db: Session, invoice_id: int) -> Optional[WorkflowState]:
        return (
            db.query(WorkflowState)
            .filter(WorkflowState.invoice_id == invoice_id)
            .order_by(WorkflowState.id)
            .first()
        )

    @staticmethod
    def get_by_service_request(db: Session, service_request_id: int) -> Optional[WorkflowState]:
        return (
            db.query(WorkflowState)
            .filter(WorkflowState.service_request_id == service_request_id)
            .order_by(WorkflowState.id)
            .first()
        )

    @staticmethod
    def list_open_for_org(db: Session, provider_org_id: int) -> list[WorkflowState]:
        """Active workflows for a provider, most recently advanced first"""
        return (
            db.query(WorkflowState)
            .filter(
                WorkflowState.provider_org_id == provider_org_id,
                WorkflowState.workflow_stage != "workflow_complete",
            )
            .order_by(WorkflowState.stage_started_at.desc(), WorkflowState.id.desc())
            .all()
        )

    @staticmethod
    def create_workflow(db: Session, **workflow_data) -> WorkflowState:
        workflow = WorkflowState(**workflow_data)
        db.add(workflow)
        db.commit()
        db.refresh(workflow)
        return workflow

    @staticmethod
    def create_follow_up(db: Session, **follow_up_data) -> FollowUpAction:
        follow_up = FollowUpAction(**follow_up_data)
        db.add(follow_up)
        db.commit()
        db.refresh(follow_up)
        return follow_up

    @staticmethod
    def create_learning_event(db: Session, **event_data) -> AILearningEvent:
        event = AILearningEvent(**event_data)
        db.add(event)
        db.commit()
        db.refresh(event)
        return event

    @staticmethod
    def get_booking(db: Session, booking_id: Optional[int]) -> Optional[Booking]:
        if not booking_id:
            return None
        return db.query(Booking).filter(Booking.id == booking_id).first()

    @staticmethod
    def get_quote(db: Session, quote_id: Optional[int]) -> Optional[Quote]:
        if not quote_id:
            return None
        return db.query(Quote).filter(Quote.id == quote_id).first()

    @staticmethod
    def get_service_call(db: Session, service_call_id: Optional[int]) -> Optional[ServiceCall]:
        if not service_call_id:
            return None
        return db.query(ServiceCall).filter(ServiceCall.id == service_call_id).first()

    @staticmethod
    def get_invoice(db: Session, invoice_id: Optional[int]) -> Optional[Invoice]:
        if not invoice_id:
            return None
        return db.query(Invoice).filter(Invoice.id == invoice_id).first()

    @staticmethod
    def get_org_owner_id(db: Session, provider_org_id: Optional[int]) -> Optional[int]:
        if not provider_org_id:
            return None
        org = db.query(Organization).filter(Organization.id == provider_org_id).first()
        return org.owner_id if org else None
