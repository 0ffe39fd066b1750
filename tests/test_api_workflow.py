"""API tests for workflow, booking, quote, invoice, milestone and notification routes"""

from datetime import datetime

import pytest

from homebase.domain.workflow.service import WorkflowService
from homebase.models import Booking, Invoice, Organization
from homebase.models_workflow import Notification, WorkflowState


@pytest.fixture
def workflow(db, service_request, homeowner, provider_org):
    workflow_id = WorkflowService(db).create_from_service_request(
        service_request.id, homeowner.id, provider_org.id
    )
    return db.query(WorkflowState).filter(WorkflowState.id == workflow_id).one()


@pytest.fixture
def other_provider(db, make_user):
    org = Organization(name="Other Co")
    db.add(org)
    db.commit()
    return make_user("provider", organization_id=org.id)


class TestWorkflowRoutes:
    def test_create(self, client, login, provider, service_request, homeowner, provider_org):
        login(provider)

        response = client.post(
            "/workflows",
            json={
                "service_request_id": service_request.id,
                "homeowner_id": homeowner.id,
                "provider_org_id": provider_org.id,
            },
        )

        assert response.status_code == 201
        body = response.json()
        assert body["workflow_stage"] == "request_submitted"
        assert body["stage_label"] == "Request Submitted"
        assert body["next_stage"] == "ai_analyzing"
        assert body["progress"] == {"current": 1, "total": 14, "percentage": 7}

    def test_homeowner_can_view(self, client, login, homeowner, workflow):
        login(homeowner)
        assert client.get(f"/workflows/{workflow.id}").status_code == 200

    def test_stranger_cannot_view(self, client, login, make_user, workflow):
        login(make_user("homeowner"))
        assert client.get(f"/workflows/{workflow.id}").status_code == 404

    def test_provider_advances(self, client, login, provider, workflow):
        login(provider)

        response = client.post(
            f"/workflows/{workflow.id}/advance", json={"stage": "ai_analyzing", "metadata": {"source": "manual"}}
        )

        assert response.status_code == 200
        assert response.json()["workflow_stage"] == "ai_analyzing"
        assert response.json()["metadata"] == {"source": "manual"}

    def test_homeowner_cannot_advance(self, client, login, homeowner, workflow):
        login(homeowner)
        response = client.post(f"/workflows/{workflow.id}/advance", json={"stage": "ai_analyzing"})
        assert response.status_code == 403

    def test_invalid_stage(self, client, login, provider, workflow):
        login(provider)
        response = client.post(f"/workflows/{workflow.id}/advance", json={"stage": "teleported"})
        assert response.status_code == 400

    def test_board(self, client, login, provider, workflow):
        login(provider)

        response = client.get("/workflows/board")

        assert response.status_code == 200
        leads = response.json()[0]
        assert leads["id"] == "leads"
        assert [entry["workflow_id"] for entry in leads["workflows"]] == [workflow.id]

    def test_board_requires_organization(self, client, login, homeowner):
        login(homeowner)
        assert client.get("/workflows/board").status_code == 403

    def test_orchestrate(self, client, login, provider, quote):
        login(provider)

        response = client.post("/workflows/orchestrate", json={"action": "quote_created", "quote_id": quote.id})

        assert response.status_code == 200
        assert response.json()["stage"] == "quote_sent"

    def test_orchestrate_unknown_action(self, client, login, provider):
        login(provider)
        response = client.post("/workflows/orchestrate", json={"action": "launch_rocket"})
        assert response.status_code == 400


class TestBookingRoutes:
    def test_completing_a_job_generates_invoice(self, client, db, login, provider, booking, workflow):
        workflow.booking_id = booking.id
        db.commit()
        login(provider)

        response = client.patch(f"/bookings/{booking.id}/status", json={"status": "completed", "final_price": 275.0})

        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        assert response.json()["final_price"] == 275.0
        invoice = db.query(Invoice).filter(Invoice.booking_id == booking.id).one()
        db.refresh(workflow)
        assert workflow.workflow_stage == "invoice_sent"
        assert workflow.invoice_id == invoice.id

    def test_scheduling_moves_workflow(self, client, db, login, provider, booking, workflow):
        workflow.booking_id = booking.id
        db.commit()
        login(provider)

        response = client.patch(
            f"/bookings/{booking.id}/status",
            json={"status": "scheduled", "scheduled_date": "2030-05-01T09:00:00"},
        )

        assert response.status_code == 200
        assert response.json()["scheduled_date"] == "2030-05-01T09:00:00"
        db.refresh(workflow)
        assert workflow.workflow_stage == "job_scheduled"

    def test_other_provider_gets_404(self, client, login, other_provider, booking):
        login(other_provider)
        response = client.patch(f"/bookings/{booking.id}/status", json={"status": "completed"})
        assert response.status_code == 404

    def test_invalid_status(self, client, login, provider, booking):
        login(provider)
        response = client.patch(f"/bookings/{booking.id}/status", json={"status": "vanished"})
        assert response.status_code == 400


class TestQuoteRoutes:
    def test_send_accept_flow(self, client, db, login, provider, homeowner, quote, booking, workflow):
        workflow.quote_id = quote.id
        db.commit()

        login(provider)
        assert client.post(f"/quotes/{quote.id}/send").json()["status"] == "sent"
        db.refresh(workflow)
        assert workflow.workflow_stage == "quote_sent"

        login(homeowner)
        response = client.post(
            f"/quotes/{quote.id}/accept",
            json={"scheduled_date": "2030-05-01T09:00:00", "booking_id": booking.id},
        )

        assert response.status_code == 200
        assert response.json()["booking_id"] == booking.id
        db.refresh(workflow)
        assert workflow.workflow_stage == "quote_approved"
        assert workflow.booking_id == booking.id

    def test_reject_returns_to_matching(self, client, db, login, homeowner, quote, workflow):
        quote.status = "sent"
        workflow.quote_id = quote.id
        db.commit()
        login(homeowner)

        response = client.post(f"/quotes/{quote.id}/reject", json={"reason": "Too expensive"})

        assert response.json()["rejection_reason"] == "Too expensive"
        db.refresh(workflow)
        assert workflow.workflow_stage == "providers_matched"

    def test_only_sent_quotes_can_be_accepted(self, client, login, homeowner, quote):
        login(homeowner)
        assert client.post(f"/quotes/{quote.id}/accept", json={}).status_code == 400

    def test_provider_cannot_accept(self, client, db, login, provider, quote):
        quote.status = "sent"
        db.commit()
        login(provider)
        assert client.post(f"/quotes/{quote.id}/accept", json={}).status_code == 404

    def test_accept_rejects_booking_from_another_provider(
        self, client, db, login, homeowner, quote, workflow, other_provider
    ):
        foreign = Booking(
            homeowner_id=homeowner.id,
            provider_org_id=other_provider.organization_id,
            service_name="Roof Inspection",
        )
        db.add(foreign)
        quote.status = "sent"
        workflow.quote_id = quote.id
        db.commit()
        login(homeowner)

        response = client.post(
            f"/quotes/{quote.id}/accept",
            json={"scheduled_date": "2030-05-01T09:00:00", "booking_id": foreign.id},
        )

        assert response.status_code == 400
        db.refresh(quote)
        db.refresh(workflow)
        assert quote.status == "sent"
        assert quote.booking_id is None
        assert workflow.booking_id is None

    def test_accept_with_unknown_booking(self, client, db, login, homeowner, quote):
        quote.status = "sent"
        db.commit()
        login(homeowner)

        response = client.post(f"/quotes/{quote.id}/accept", json={"booking_id": 9999})

        assert response.status_code == 404
        db.refresh(quote)
        assert quote.status == "sent"


class TestInvoiceRoutes:
    @pytest.fixture
    def invoice(self, db, provider_org, homeowner, booking):
        invoice = Invoice(
            organization_id=provider_org.id,
            homeowner_id=homeowner.id,
            booking_id=booking.id,
            invoice_number="INV-TEST-1",
            amount=250.0,
            status="sent",
        )
        db.add(invoice)
        db.commit()
        return invoice

    def test_mark_paid_moves_workflow(self, client, db, login, provider, invoice, workflow):
        workflow.invoice_id = invoice.id
        db.commit()
        login(provider)

        response = client.post(f"/invoices/{invoice.id}/mark-paid")

        assert response.status_code == 200
        assert response.json()["status"] == "paid"
        assert response.json()["paid_at"] is not None
        db.refresh(workflow)
        assert workflow.workflow_stage == "payment_received"

    def test_mark_paid_is_idempotent(self, client, login, provider, invoice):
        login(provider)
        first = client.post(f"/invoices/{invoice.id}/mark-paid").json()
        second = client.post(f"/invoices/{invoice.id}/mark-paid").json()
        assert first["paid_at"] == second["paid_at"]

    def test_cancelled_invoice(self, client, db, login, provider, invoice):
        invoice.status = "cancelled"
        db.commit()
        login(provider)
        assert client.post(f"/invoices/{invoice.id}/mark-paid").status_code == 400

    def test_auto_generate(self, client, login, provider, booking):
        login(provider)

        first = client.post("/invoices/auto-generate", json={"booking_id": booking.id}).json()
        second = client.post("/invoices/auto-generate", json={"booking_id": booking.id}).json()

        assert first["already_exists"] is False
        assert first["invoice"]["status"] == "draft"
        assert first["invoice"]["metadata"]["auto_generated"] is True
        assert second["already_exists"] is True
        assert second["invoice"]["id"] == first["invoice"]["id"]

    def test_auto_generate_unknown_booking(self, client, login, provider):
        login(provider)
        assert client.post("/invoices/auto-generate", json={"booking_id": 9999}).status_code == 404


class TestMilestoneRoutes:
    def test_celebrate_once(self, client, login, provider):
        login(provider)

        first = client.post("/milestones", json={"milestone_type": "first_payment", "metadata": {"amount": 120}})
        second = client.post("/milestones", json={"milestone_type": "first_payment"})

        assert first.json()["celebrated"] is True
        assert "$120" in first.json()["message"]["description"]
        assert second.json()["celebrated"] is False

    def test_unknown_type(self, client, login, provider):
        login(provider)
        assert client.post("/milestones", json={"milestone_type": "moon_landing"}).status_code == 400


class TestNotificationRoutes:
    @pytest.fixture
    def notifications(self, db, homeowner):
        rows = [
            Notification(
                user_id=homeowner.id, type="workflow_update", title=f"Update {i}", body="b",
                created_at=datetime(2026, 3, 2, 12, i),
            )
            for i in range(3)
        ]
        db.add_all(rows)
        db.commit()
        return rows

    def test_list_newest_first(self, client, login, homeowner, notifications):
        login(homeowner)

        body = client.get("/notifications").json()

        assert body["unread_count"] == 3
        assert [n["title"] for n in body["notifications"]] == ["Update 2", "Update 1", "Update 0"]

    def test_mark_read(self, client, login, homeowner, notifications):
        login(homeowner)

        response = client.post(f"/notifications/{notifications[0].id}/read")

        assert response.json()["read_at"] is not None
        body = client.get("/notifications", params={"unread_only": True}).json()
        assert body["unread_count"] == 2
        assert len(body["notifications"]) == 2

    def test_cannot_read_someone_elses(self, client, login, make_user, notifications):
        login(make_user("homeowner"))
        assert client.post(f"/notifications/{notifications[0].id}/read").status_code == 404

    def test_preferences(self, client, db, login, homeowner):
        login(homeowner)

        response = client.put(
            "/notifications/preferences",
            json={"notify_email": False, "notify_push": True, "quiet_hours_start": "21:00", "quiet_hours_end": "07:30"},
        )

        assert response.status_code == 200
        db.refresh(homeowner)
        assert homeowner.notify_email is False
        assert homeowner.quiet_hours_start == "21:00"
        assert client.get("/notifications/preferences").json()["quiet_hours_end"] == "07:30"

    def test_invalid_quiet_hours(self, client, login, homeowner):
        login(homeowner)
        response = client.put("/notifications/preferences", json={"quiet_hours_start": "9pm"})
        assert response.status_code == 422
