"""Tests for automatic invoice generation on job completion"""

import re
from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException

from homebase.domain.workflow.service import WorkflowService
from homebase.models import Booking, Invoice, Quote
from homebase.models_workflow import Notification
from homebase.services.invoice_automation import (
    auto_generate_invoice,
    build_line_items,
    generate_invoice_number,
)

NOON = datetime(2026, 3, 2, 12, 0, 0)


def test_invoice_number_format():
    number = generate_invoice_number()
    assert re.fullmatch(r"INV-\d{13}-[A-Z0-9]{6}", number)
    assert generate_invoice_number() != number


class TestLineItems:
    def test_quote_line_items(self):
        booking = Booking(service_name="Repair")
        quote = Quote(
            total_cost=300.0,
            line_items=[{"name": "Thermostat", "amount": 120}, {"description": "Labor", "amount": 180}],
        )
        items, total = build_line_items(booking, quote)
        assert items == [
            {"description": "Thermostat", "quantity": 1, "rate": 120},
            {"description": "Labor", "quantity": 1, "rate": 180},
        ]
        assert total == 300.0

    def test_labor_and_parts_breakdown(self):
        booking = Booking(service_name="Repair")
        quote = Quote(total_cost=250.0, labor_cost=150.0, parts_cost=100.0, line_items=[])
        items, total = build_line_items(booking, quote)
        assert [item["description"] for item in items] == ["Labor", "Parts & Materials"]
        assert total == 250.0

    def test_booking_estimate_without_quote(self):
        booking = Booking(service_name="Gutter Cleaning", estimated_price_low=80.0, estimated_price_high=120.0)
        items, total = build_line_items(booking, None)
        assert items == [{"description": "Gutter Cleaning", "quantity": 1, "rate": 120.0}]
        assert total == 120.0

    def test_no_estimate(self):
        items, total = build_line_items(Booking(), None)
        assert items == [{"description": "Service", "quantity": 1, "rate": 0}]
        assert total == 0


class TestAutoGenerate:
    async def test_missing_booking(self, db):
        with pytest.raises(HTTPException) as exc:
            await auto_generate_invoice(db, 9999, now=NOON)
        assert exc.value.status_code == 404

    async def test_creates_draft_invoice_from_accepted_quote(self, db, booking, quote, provider):
        quote.booking_id = booking.id
        quote.status = "accepted"
        db.commit()

        result = await auto_generate_invoice(db, booking.id, now=NOON)

        assert result["success"] is True
        assert result["already_exists"] is False
        invoice = result["invoice"]
        assert invoice.status == "draft"
        assert invoice.amount == 250.0
        assert invoice.organization_id == booking.provider_org_id
        assert invoice.homeowner_id == booking.homeowner_id
        assert invoice.due_date == NOON + timedelta(days=7)
        assert invoice.notes == "Auto-generated invoice for: Water Heater Repair"
        assert invoice.extra_data["auto_generated"] is True
        assert invoice.extra_data["booking_id"] == booking.id

        notification = db.query(Notification).filter(Notification.user_id == provider.id).one()
        assert notification.type == "invoice_created"

    async def test_falls_back_to_booking_estimate(self, db, booking):
        result = await auto_generate_invoice(db, booking.id, now=NOON)
        assert result["invoice"].amount == 300.0

    async def test_is_idempotent_per_booking(self, db, booking):
        first = await auto_generate_invoice(db, booking.id, now=NOON)
        second = await auto_generate_invoice(db, booking.id, now=NOON)

        assert second["already_exists"] is True
        assert second["invoice"].id == first["invoice"].id
        assert db.query(Invoice).count() == 1

    async def test_advances_workflow_to_invoice_sent(
        self, db, booking, service_request, homeowner, provider_org
    ):
        service = WorkflowService(db)
        workflow_id = service.create_from_service_request(
            service_request.id, homeowner.id, provider_org.id, now=NOON
        )

        result = await auto_generate_invoice(db, booking.id, now=NOON)

        workflow = service.get_workflow(workflow_id)
        assert workflow.workflow_stage == "invoice_sent"
        assert workflow.invoice_id == result["invoice"].id
        assert workflow.extra_data["invoice_number"] == result["invoice"].invoice_number
