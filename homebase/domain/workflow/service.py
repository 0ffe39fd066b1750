"""Workflow service - Keeps workflow states in step with jobs, quotes and invoices"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import User
from ...models_workflow import WorkflowState
from ...services.notification_service import dispatch_notification, send_workflow_notification
from .repository import WorkflowRepository
from .stages import (
    BOARD_COLUMNS,
    JOB_STATUS_TO_STAGE,
    ORCHESTRATOR_PROGRESSION,
    QUOTE_ACTION_TO_STAGE,
    board_column_for,
    format_stage_label,
    is_valid_stage,
    next_stage,
    stage_progress,
)

logger = logging.getLogger(__name__)

# Metadata keys that are stored as columns instead of in the metadata blob
LINK_FIELDS = ("quote_id", "booking_id", "invoice_id", "service_call_id", "payment_id")

REVIEW_REQUEST_DELAY = timedelta(hours=24)
APPOINTMENT_REMINDER_LEAD = timedelta(hours=24)


def _json_safe(metadata: Optional[dict]) -> dict:
    safe = {}
    for key, value in (metadata or {}).items():
        safe[key] = value.isoformat() if isinstance(value, datetime) else value
    return safe


def _coerce_datetime(value: Any) -> Optional[datetime]:
    """Accept datetimes or ISO-8601 strings; aware values are converted to naive UTC"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def estimate_accuracy(
    estimate_low: Optional[float], estimate_high: Optional[float], actual: Optional[float]
) -> float:
    """
    How close the AI price estimate came to the actual quote.

    1.0 is a perfect match against the midpoint of the estimate range, falling
    linearly to 0 at a 100% difference. Missing inputs score 0.
    """
    if not estimate_low or not actual:
        return 0.0
    if estimate_high is None:
        estimate_high = estimate_low
    average = (estimate_low + estimate_high) / 2
    if average <= 0:
        return 0.0
    return max(0.0, 1 - abs(actual - average) / average)


def time_since_start(started_at: Optional[datetime], now: Optional[datetime] = None) -> dict:
    """Human readable age of the current stage and whether it is overdue"""
    now = now or datetime.utcnow()
    if started_at is None:
        return {"label": "0m ago", "is_overdue": False}

    elapsed = now - started_at
    hours = elapsed.total_seconds() / 3600
    if hours > 48:
        return {"label": f"{int(hours // 24)}d ago", "is_overdue": True}
    if hours > 2:
        return {"label": f"{int(hours)}h ago", "is_overdue": True}
    minutes = max(0, int(elapsed.total_seconds() // 60))
    return {"label": f"{minutes}m ago", "is_overdue": False}


class WorkflowService:
    """Service layer for workflow business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = WorkflowRepository()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_workflow(self, workflow_id: int) -> WorkflowState:
        workflow = self.repo.get_workflow(self.db, workflow_id)
        if not workflow:
            raise HTTPException(status_code=404, detail="Workflow not found")
        return workflow

    def get_workflow_for_user(self, workflow_id: int, user: User) -> WorkflowState:
        """Workflow visible to its homeowner, its provider organization and admins"""
        workflow = self.get_workflow(workflow_id)
        if user.is_admin:
            return workflow
        if workflow.homeowner_id == user.id:
            return workflow
        if user.organization_id and workflow.provider_org_id == user.organization_id:
            return workflow
        raise HTTPException(status_code=404, detail="Workflow not found")

    def ensure_provider_access(self, workflow: WorkflowState, user: User) -> None:
        if user.is_admin:
            return
        if not user.organization_id or workflow.provider_org_id != user.organization_id:
            raise HTTPException(status_code=403, detail="Only the assigned provider can update this workflow")

    @staticmethod
    def serialize(workflow: WorkflowState) -> dict:
        return {
            "id": workflow.id,
            "service_request_id": workflow.service_request_id,
            "homeowner_id": workflow.homeowner_id,
            "provider_org_id": workflow.provider_org_id,
            "quote_id": workflow.quote_id,
            "booking_id": workflow.booking_id,
            "invoice_id": workflow.invoice_id,
            "service_call_id": workflow.service_call_id,
            "payment_id": workflow.payment_id,
            "workflow_stage": workflow.workflow_stage,
            "stage_label": format_stage_label(workflow.workflow_stage),
            "next_stage": next_stage(workflow.workflow_stage),
            "progress": stage_progress(workflow.workflow_stage),
            "stage_started_at": workflow.stage_started_at,
            "stage_completed_at": workflow.stage_completed_at,
            "metadata": workflow.extra_data or {},
        }

    def board(self, provider_org_id: int, now: Optional[datetime] = None) -> list[dict]:
        """Open workflows for a provider grouped into board columns"""
        now = now or datetime.utcnow()
        columns = {
            column["id"]: {"id": column["id"], "title": column["title"], "workflows": []}
            for column in BOARD_COLUMNS
        }

        for workflow in self.repo.list_open_for_org(self.db, provider_org_id):
            column_id = board_column_for(workflow.workflow_stage)
            if column_id is None:
                continue
            age = time_since_start(workflow.stage_started_at, now)
            columns[column_id]["workflows"].append(
                {
                    "workflow_id": workflow.id,
                    "stage": workflow.workflow_stage,
                    "stage_label": format_stage_label(workflow.workflow_stage),
                    "next_stage": next_stage(workflow.workflow_stage),
                    "time_since_start": age["label"],
                    "is_overdue": age["is_overdue"],
                    "homeowner_id": workflow.homeowner_id,
                    "booking_id": workflow.booking_id,
                    "quote_id": workflow.quote_id,
                    "invoice_id": workflow.invoice_id,
                }
            )

        return [columns[column["id"]] for column in BOARD_COLUMNS]

    # ------------------------------------------------------------------
    # Stage changes
    # ------------------------------------------------------------------

    def create_from_service_request(
        self,
        service_request_id: int,
        homeowner_id: int,
        provider_org_id: int,
        now: Optional[datetime] = None,
    ) -> int:
        workflow = self.repo.create_workflow(
            self.db,
            service_request_id=service_request_id,
            homeowner_id=homeowner_id,
            provider_org_id=provider_org_id,
            workflow_stage="request_submitted",
            stage_started_at=now or datetime.utcnow(),
            extra_data={},
        )
        logger.info(f"✅ Created workflow {workflow.id} for service request {service_request_id}")
        return workflow.id

    async def advance_stage(
        self,
        workflow_id: int,
        new_stage: str,
        metadata: Optional[dict] = None,
        now: Optional[datetime] = None,
    ) -> WorkflowState:
        """
        Move a workflow to `new_stage`.

        Link ids found in metadata are copied onto the record and the rest is
        merged into the metadata blob. Follow-ups, the homeowner notification
        and the learning event are best-effort.
        """
        if not is_valid_stage(new_stage):
            raise HTTPException(status_code=400, detail=f"Invalid workflow stage: {new_stage}")

        workflow = self.get_workflow(workflow_id)
        now = now or datetime.utcnow()
        extra = _json_safe(metadata)

        workflow.workflow_stage = new_stage
        workflow.stage_started_at = now
        workflow.stage_completed_at = now
        workflow.updated_at = now
        for field in LINK_FIELDS:
            value = extra.pop(field, None)
            if value is not None:
                setattr(workflow, field, value)
        if extra:
            workflow.extra_data = {**(workflow.extra_data or {}), **extra}

        self.db.commit()
        self.db.refresh(workflow)
        logger.info(f"✅ Workflow {workflow.id} advanced to {new_stage}")

        try:
            self._create_follow_up_actions(workflow, new_stage, extra, now)
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to create follow-up actions for workflow {workflow.id}: {e}")

        if workflow.homeowner_id:
            try:
                await send_workflow_notification(
                    self.db,
                    workflow.homeowner_id,
                    workflow.id,
                    new_stage,
                    f"Your service is now at: {format_stage_label(new_stage)}",
                    now=now,
                )
            except Exception as e:
                self.db.rollback()
                logger.error(f"❌ Failed to notify homeowner for workflow {workflow.id}: {e}")

        if new_stage == "workflow_complete":
            try:
                self._log_learning_event(workflow, extra)
            except Exception as e:
                self.db.rollback()
                logger.error(f"❌ Failed to log AI learning event for workflow {workflow.id}: {e}")

        return workflow

    def _create_follow_up_actions(
        self, workflow: WorkflowState, stage: str, metadata: dict, now: datetime
    ) -> None:
        if stage == "payment_received":
            self.repo.create_follow_up(
                self.db,
                homeowner_id=workflow.homeowner_id,
                provider_org_id=workflow.provider_org_id,
                booking_id=workflow.booking_id,
                service_visit_id=workflow.service_call_id,
                action_type="review_request",
                scheduled_for=now + REVIEW_REQUEST_DELAY,
                status="pending",
            )
            logger.info(f"📅 Review request scheduled for workflow {workflow.id}")

        scheduled_date = _coerce_datetime(metadata.get("scheduled_date"))
        if stage == "job_scheduled" and scheduled_date:
            self.repo.create_follow_up(
                self.db,
                homeowner_id=workflow.homeowner_id,
                provider_org_id=workflow.provider_org_id,
                booking_id=workflow.booking_id,
                action_type="appointment_reminder",
                scheduled_for=scheduled_date - APPOINTMENT_REMINDER_LEAD,
                status="pending",
            )
            logger.info(f"📅 Appointment reminder scheduled for workflow {workflow.id}")

    def _log_learning_event(self, workflow: WorkflowState, metadata: dict) -> None:
        booking = self.repo.get_booking(self.db, workflow.booking_id)
        quote = self.repo.get_quote(self.db, workflow.quote_id)
        service_call = self.repo.get_service_call(self.db, workflow.service_call_id)

        estimate_low = booking.estimated_price_low if booking else None
        estimate_high = booking.estimated_price_high if booking else None
        quote_total = quote.total_cost if quote else None

        self.repo.create_learning_event(
            self.db,
            event_type="workflow_complete",
            service_request_id=workflow.service_request_id,
            booking_id=workflow.booking_id,
            quote_id=workflow.quote_id,
            service_call_id=workflow.service_call_id,
            provider_org_id=workflow.provider_org_id,
            service_category=(booking.service_name if booking else None) or "unknown",
            ai_predicted={"price_low": estimate_low, "price_high": estimate_high},
            actual_outcome={
                "quote_amount": quote_total,
                "final_price": booking.final_price if booking else None,
                "diagnosis": service_call.diagnosis if service_call else None,
                "parts_needed": service_call.parts_needed if service_call else None,
            },
            accuracy_score=estimate_accuracy(estimate_low, estimate_high, quote_total),
            complexity_factors=metadata.get("complexity_factors") or [],
        )
        logger.info(f"🧠 Logged AI learning event for workflow {workflow.id}")

    # ------------------------------------------------------------------
    # Event sync
    # ------------------------------------------------------------------

    async def sync_job(self, job_id: int, job_status: str) -> Optional[WorkflowState]:
        """Advance the workflow linked to a booking or service call after a status change"""
        try:
            workflow = self.repo.get_by_job(self.db, job_id)
            if not workflow:
                return None

            new_stage = JOB_STATUS_TO_STAGE.get(job_status)
            if not new_stage or new_stage == workflow.workflow_stage:
                return None

            metadata = {}
            booking = self.repo.get_booking(self.db, job_id)
            if booking and booking.scheduled_date:
                metadata["scheduled_date"] = booking.scheduled_date.isoformat()

            return await self.advance_stage(workflow.id, new_stage, metadata)
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Error syncing job {job_id} to workflow: {e}")
            return None

    async def sync_quote(
        self, quote_id: int, action: str, metadata: Optional[dict] = None
    ) -> Optional[WorkflowState]:
        try:
            workflow = self.repo.get_by_quote(self.db, quote_id)
            if not workflow:
                return None

            new_stage = QUOTE_ACTION_TO_STAGE.get(action)
            if not new_stage:
                logger.warning(f"⚠️ Unknown quote action {action} for quote {quote_id}")
                return None

            metadata = dict(metadata or {})
            workflow = await self.advance_stage(
                workflow.id, new_stage, {"quote_id": quote_id, **metadata}
            )

            if action == "accepted" and metadata.get("scheduled_date") and metadata.get("booking_id"):
                for linked in self.repo.list_by_quote(self.db, quote_id):
                    linked.booking_id = metadata["booking_id"]
                self.db.commit()
                logger.info(f"🔗 Linked booking {metadata['booking_id']} to quote {quote_id} workflows")

            return workflow
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Error syncing quote {quote_id} to workflow: {e}")
            return None

    async def sync_invoice(self, invoice_id: int, paid: bool) -> Optional[WorkflowState]:
        try:
            workflow = self.repo.get_by_invoice(self.db, invoice_id)
            if not workflow or not paid:
                return None
            return await self.advance_stage(workflow.id, "payment_received", {"invoice_id": invoice_id})
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Error syncing invoice {invoice_id} to workflow: {e}")
            return None

    # ------------------------------------------------------------------
    # Orchestrator
    # ------------------------------------------------------------------

    async def orchestrate(
        self,
        action: str,
        quote_id: Optional[int] = None,
        booking_id: Optional[int] = None,
        invoice_id: Optional[int] = None,
        homeowner_id: Optional[int] = None,
        provider_org_id: Optional[int] = None,
        metadata: Optional[dict] = None,
        now: Optional[datetime] = None,
    ) -> dict:
        """Apply a server-side workflow event, creating the workflow if needed"""
        target_stage = ORCHESTRATOR_PROGRESSION.get(action)
        if not target_stage:
            raise HTTPException(status_code=400, detail=f"Unknown workflow action: {action}")

        now = now or datetime.utcnow()
        metadata = _json_safe(metadata)
        logger.info(f"📊 Workflow orchestrator: {action} (quote={quote_id}, booking={booking_id}, invoice={invoice_id})")

        source = None
        if quote_id:
            source = self.repo.get_quote(self.db, quote_id)
        elif booking_id:
            source = self.repo.get_booking(self.db, booking_id)
        service_request_id = source.service_request_id if source else None
        if source is not None:
            homeowner_id = homeowner_id or source.homeowner_id
            provider_org_id = provider_org_id or source.provider_org_id

        workflow = None
        if service_request_id:
            workflow = self.repo.get_by_service_request(self.db, service_request_id)

        links = {
            key: value
            for key, value in (("quote_id", quote_id), ("booking_id", booking_id), ("invoice_id", invoice_id))
            if value is not None
        }

        if workflow is None:
            workflow = self.repo.create_workflow(
                self.db,
                service_request_id=service_request_id,
                homeowner_id=homeowner_id,
                provider_org_id=provider_org_id,
                workflow_stage=target_stage,
                stage_started_at=now,
                extra_data=metadata,
                **links,
            )
            logger.info(f"✅ Created new workflow: {workflow.id}")
        else:
            workflow.workflow_stage = target_stage
            workflow.stage_started_at = now
            workflow.stage_completed_at = None
            workflow.extra_data = {**(workflow.extra_data or {}), **metadata, "last_action": action}
            for key, value in links.items():
                setattr(workflow, key, value)
            self.db.commit()
            self.db.refresh(workflow)
            logger.info(f"✅ Advanced workflow {workflow.id} to: {target_stage}")

        service_name = metadata.get("service_name") or "your service request"

        if action == "quote_created" and homeowner_id:
            try:
                await dispatch_notification(
                    self.db,
                    user_id=homeowner_id,
                    notification_type="quote_received",
                    title="📋 New Quote Received",
                    message=f"You have a new quote for {service_name}",
                    action_url=f"/homeowner/quotes/{quote_id}",
                    channels={"inapp": True, "email": True},
                    now=now,
                )
            except Exception as e:
                self.db.rollback()
                logger.error(f"❌ Failed to notify homeowner {homeowner_id} of new quote: {e}")

        if action == "quote_accepted":
            owner_id = self.repo.get_org_owner_id(self.db, provider_org_id)
            if owner_id:
                try:
                    await dispatch_notification(
                        self.db,
                        user_id=owner_id,
                        notification_type="quote_accepted",
                        title="🎉 Quote Accepted!",
                        message=f"Your quote for {service_name} was accepted",
                        action_url="/provider/jobs",
                        channels={"inapp": True, "push": True},
                        now=now,
                    )
                except Exception as e:
                    self.db.rollback()
                    logger.error(f"❌ Failed to notify provider org {provider_org_id} of accepted quote: {e}")

        if action == "job_completed" and booking_id:
            from ...services.invoice_automation import auto_generate_invoice

            try:
                await auto_generate_invoice(self.db, booking_id, now=now)
            except Exception as e:
                self.db.rollback()
                logger.error(f"❌ Failed to auto-generate invoice for booking {booking_id}: {e}")

        if action == "payment_received":
            self.db.refresh(workflow)
            workflow.stage_completed_at = now
            workflow.extra_data = {**(workflow.extra_data or {}), "completed": True}
            self.db.commit()
            self.repo.create_follow_up(
                self.db,
                homeowner_id=homeowner_id,
                provider_org_id=provider_org_id,
                booking_id=booking_id,
                action_type="review_request",
                scheduled_for=now + REVIEW_REQUEST_DELAY,
                status="pending",
            )

        return {"success": True, "workflow_id": workflow.id, "stage": target_stage}