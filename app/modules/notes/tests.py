"""
Tests para notas crédito y débito
"""

import pytest
from fastapi import HTTPException
from decimal import Decimal
from uuid import uuid4

from app.modules.invoices.models import InvoiceStatus
from app.modules.notes.models import CreditNote, DebitNote
from app.modules.notes.schemas import NoteCreate
from app.modules.notes.service import NoteService
from app.modules.payments.schemas import PaymentCreate
from app.modules.payments.service import PaymentService


class TestNoteService:
    """Tests para NoteService"""

    def test_credit_note_reduces_balance(self, db_session, make_invoice):
        invoice = make_invoice()
        result = NoteService(db_session, CreditNote).create_note(
            NoteCreate(invoice_id=invoice.id, amount="20.00", reason="Flor maltratada")
        )

        assert result.amount == Decimal("20.00")
        assert result.invoice_balance == Decimal("80.00")
        assert result.invoice_status == InvoiceStatus.PENDING

    def test_credit_note_can_settle_invoice(self, db_session, make_invoice):
        invoice = make_invoice()
        PaymentService(db_session).add_payment(invoice.id, PaymentCreate(invoice_id=invoice.id, amount="90.00"))

        result = NoteService(db_session, CreditNote).create_note(NoteCreate(invoice_id=invoice.id, amount="10.00"))

        assert result.invoice_balance == Decimal("0.00")
        assert result.invoice_status == InvoiceStatus.PAID

    def test_debit_note_reopens_paid_invoice(self, db_session, make_invoice):
        invoice = make_invoice()
        PaymentService(db_session).add_payment(invoice.id, PaymentCreate(invoice_id=invoice.id, amount="100.00"))
        db_session.refresh(invoice)
        assert invoice.status == InvoiceStatus.PAID

        result = NoteService(db_session, DebitNote).create_note(
            NoteCreate(invoice_id=invoice.id, amount="15.00", reason="Flete adicional")
        )

        assert result.invoice_balance == Decimal("15.00")
        assert result.invoice_status == InvoiceStatus.PENDING

    def test_delete_note_rederives_status(self, db_session, make_invoice):
        invoice = make_invoice()
        service = NoteService(db_session, DebitNote)
        note = service.create_note(NoteCreate(invoice_id=invoice.id, amount="5.00"))
        PaymentService(db_session).add_payment(invoice.id, PaymentCreate(invoice_id=invoice.id, amount="100.00"))
        db_session.refresh(invoice)
        assert invoice.status == InvoiceStatus.PENDING

        service.delete_note(note.id)

        db_session.refresh(invoice)
        assert invoice.status == InvoiceStatus.PAID

    def test_note_on_missing_invoice(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            NoteService(db_session, CreditNote).create_note(NoteCreate(invoice_id=uuid4(), amount="1.00"))
        assert exc_info.value.status_code == 404

    def test_delete_missing_note(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            NoteService(db_session, CreditNote).delete_note(uuid4())
        assert exc_info.value.status_code == 404

    def test_non_positive_amount_rejected(self):
        with pytest.raises(ValueError):
            NoteCreate(invoice_id=uuid4(), amount="0")


class TestNoteAPI:
    """Tests de endpoints API"""

    def test_create_and_list_credit_notes(self, client, make_invoice):
        invoice = make_invoice()

        response = client.post("/notes/credit", json={
            "invoice_id": str(invoice.id),
            "amount": "25.50",
            "reason": "Devolución parcial"
        })
        assert response.status_code == 201
        assert Decimal(response.json()["invoice_balance"]) == Decimal("74.50")

        listing = client.get("/notes/credit", params={"invoice_id": str(invoice.id)})
        assert listing.status_code == 200
        assert listing.json()["total"] == 1
        assert client.get("/notes/debit").json()["total"] == 0

    def test_delete_debit_note_endpoint(self, client, make_invoice):
        invoice = make_invoice()
        note = client.post("/notes/debit", json={"invoice_id": str(invoice.id), "amount": "5.00"}).json()

        response = client.delete(f"/notes/debit/{note['id']}")
        assert response.status_code == 204
        assert client.get("/notes/debit").json()["total"] == 0

    def test_negative_amount_is_unprocessable(self, client, make_invoice):
        invoice = make_invoice()
        response = client.post("/notes/credit", json={"invoice_id": str(invoice.id), "amount": "-5.00"})
        assert response.status_code == 422
