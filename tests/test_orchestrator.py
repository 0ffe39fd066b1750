"""Tests for the server-side workflow orchestrator"""

from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException

from homebase.domain.workflow.service import WorkflowService
from homebase.models import Invoice
from homebase.models_workflow import FollowUpAction, Notification, WorkflowState

NOON = datetime(2026, 3, 2, 12, 0, 0)


@pytest.fixture
def service(db):
    return WorkflowService(db)


class TestOrchestrate:
    async def test_unknown_action(self, service):
        with pytest.raises(HTTPException) as exc:
            await service.orchestrate("quote_exploded", now=NOON)
        assert exc.value.status_code == 400

    async def test_quote_created_creates_workflow_and_notifies_homeowner(
        self, db, service, quote, homeowner, provider_org, sent_emails
    ):
        result = await service.orchestrate(
            "quote_created", quote_id=quote.id, metadata={"service_name": "Water Heater Repair"}, now=NOON
        )

        assert result["success"] is True
        assert result["stage"] == "quote_sent"
        workflow = db.query(WorkflowState).filter(WorkflowState.id == result["workflow_id"]).one()
        assert workflow.quote_id == quote.id
        assert workflow.homeowner_id == homeowner.id
        assert workflow.provider_org_id == provider_org.id
        assert workflow.service_request_id == quote.service_request_id

        notification = db.query(Notification).filter(Notification.user_id == homeowner.id).one()
        assert notification.type == "quote_received"
        assert notification.title == "📋 New Quote Received"
        assert notification.body == "You have a new quote for Water Heater Repair"
        assert notification.action_url == f"/homeowner/quotes/{quote.id}"
        assert [email["to"] for email in sent_emails] == [homeowner.email]

    async def test_existing_workflow_is_advanced(self, db, service, quote, service_request, homeowner, provider_org):
        workflow_id = service.create_from_service_request(
            service_request.id, homeowner.id, provider_org.id, now=NOON - timedelta(days=1)
        )

        result = await service.orchestrate("quote_created", quote_id=quote.id, now=NOON)

        assert result["workflow_id"] == workflow_id
        workflow = service.get_workflow(workflow_id)
        assert workflow.workflow_stage == "quote_sent"
        assert workflow.stage_started_at == NOON
        assert workflow.stage_completed_at is None
        assert workflow.extra_data["last_action"] == "quote_created"
        assert workflow.quote_id == quote.id
        assert db.query(WorkflowState).count() == 1

    async def test_quote_accepted_notifies_provider_owner(self, db, service, quote, provider):
        result = await service.orchestrate("quote_accepted", quote_id=quote.id, now=NOON)

        assert result["stage"] == "job_scheduled"
        notification = db.query(Notification).filter(Notification.user_id == provider.id).one()
        assert notification.type == "quote_accepted"
        assert notification.action_url == "/provider/jobs"

    async def test_job_completed_generates_invoice(self, db, service, booking):
        result = await service.orchestrate("job_completed", booking_id=booking.id, now=NOON)

        assert result["stage"] == "job_completed"
        invoice = db.query(Invoice).filter(Invoice.booking_id == booking.id).one()
        workflow = service.get_workflow(result["workflow_id"])
        # The generated invoice moves the same workflow on to invoice_sent
        assert workflow.workflow_stage == "invoice_sent"
        assert workflow.invoice_id == invoice.id

    async def test_job_completed_survives_invoice_failure(self, db, service, booking, monkeypatch):
        from homebase.services import invoice_automation

        async def broken(*args, **kwargs):
            raise RuntimeError("invoice numbering exhausted")

        monkeypatch.setattr(invoice_automation, "auto_generate_invoice", broken)
        result = await service.orchestrate("job_completed", booking_id=booking.id, now=NOON)

        assert result["success"] is True
        assert db.query(Invoice).count() == 0

    async def test_payment_received_completes_and_schedules_review(self, db, service, booking):
        result = await service.orchestrate("payment_received", booking_id=booking.id, now=NOON)

        workflow = service.get_workflow(result["workflow_id"])
        assert workflow.workflow_stage == "payment_received"
        assert workflow.stage_completed_at == NOON
        assert workflow.extra_data["completed"] is True

        follow_up = db.query(FollowUpAction).one()
        assert follow_up.action_type == "review_request"
        assert follow_up.booking_id == booking.id
        assert follow_up.scheduled_for == NOON + timedelta(hours=24)

    async def test_explicit_ids_without_source(self, db, service, homeowner, provider_org):
        result = await service.orchestrate(
            "booking_scheduled", homeowner_id=homeowner.id, provider_org_id=provider_org.id, now=NOON
        )
        workflow = service.get_workflow(result["workflow_id"])
        assert workflow.workflow_stage == "job_scheduled"
        assert workflow.service_request_id is None
        assert workflow.homeowner_id == homeowner.id
