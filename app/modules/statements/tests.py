"""
Tests para estados de cuenta de clientes y fincas
"""

import pytest
from fastapi import HTTPException
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

from app.modules.invoices.models import InvoiceStatus, InvoiceType
from app.modules.notes.models import CreditNote
from app.modules.notes.schemas import NoteCreate
from app.modules.notes.service import NoteService
from app.modules.payments.schemas import PaymentCreate
from app.modules.payments.service import PaymentService
from app.modules.statements.service import StatementService


@pytest.fixture
def customer_portfolio(db_session, make_invoice, overdue_date):
    """
    INV-1: 100.00 pendiente
    INV-2: 100.00 vencida con pago de 40.00 (saldo 60.00)
    INV-3: 100.00 pagada
    PUR-1: compra, no aparece en cartera del cliente
    """
    payments = PaymentService(db_session)
    make_invoice(number="INV-1")
    overdue = make_invoice(number="INV-2", flight_date=overdue_date)
    paid = make_invoice(number="INV-3")
    make_invoice(number="PUR-1", type=InvoiceType.PURCHASE)
    payments.add_payment(overdue.id, PaymentCreate(invoice_id=overdue.id, amount="40.00"))
    payments.add_payment(paid.id, PaymentCreate(invoice_id=paid.id, amount="100.00"))


class TestStatementService:
    """Tests para StatementService"""

    def test_customer_statement_lines(self, db_session, customer, customer_portfolio):
        statement = StatementService(db_session).customer_statement(customer.id)

        assert [l.invoice_number for l in statement.lines] == ["INV-2", "INV-1", "INV-3"]
        assert [l.status for l in statement.lines] == [
            InvoiceStatus.OVERDUE, InvoiceStatus.PENDING, InvoiceStatus.PAID
        ]
        assert statement.lines[0].balance == Decimal("60.00")
        assert statement.lines[0].days_overdue == 15
        assert statement.lines[1].days_overdue == 0

    def test_customer_statement_totals(self, db_session, customer, customer_portfolio):
        totals = StatementService(db_session).customer_statement(customer.id).totals

        assert totals.total_charge == Decimal("300.00")
        assert totals.total_paid == Decimal("140.00")
        assert totals.outstanding == Decimal("160.00")
        assert totals.urgent_payment == Decimal("60.00")
        assert totals.overdue_invoices == 1
        assert totals.open_invoices == 2

    def test_credit_available(self, db_session, customer, customer_portfolio):
        statement = StatementService(db_session).customer_statement(customer.id)
        assert statement.credit_available == Decimal("840.00")

    def test_statement_as_of_future_date(self, db_session, customer, customer_portfolio, today):
        statement = StatementService(db_session).customer_statement(customer.id, today + timedelta(days=31))

        assert statement.totals.overdue_invoices == 2
        assert statement.totals.urgent_payment == Decimal("160.00")

    def test_credit_notes_in_statement(self, db_session, customer, make_invoice):
        invoice = make_invoice()
        NoteService(db_session, CreditNote).create_note(NoteCreate(invoice_id=invoice.id, amount="12.50"))

        statement = StatementService(db_session).customer_statement(customer.id)

        assert statement.lines[0].charge == Decimal("87.50")
        assert statement.totals.total_credits == Decimal("12.50")

    def test_farm_statement_uses_purchase_price(self, db_session, farm, make_invoice):
        make_invoice(number="INV-1")
        make_invoice(number="PUR-1", type=InvoiceType.PURCHASE)
        make_invoice(number="BOTH-1", type=InvoiceType.BOTH)

        statement = StatementService(db_session).farm_statement(farm.id)

        assert {l.invoice_number for l in statement.lines} == {"PUR-1", "BOTH-1"}
        assert all(l.subtotal == Decimal("50.00") for l in statement.lines)
        assert statement.totals.outstanding == Decimal("100.00")

    def test_unknown_customer(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            StatementService(db_session).customer_statement(uuid4())
        assert exc_info.value.status_code == 404


class TestStatementAPI:
    """Tests de endpoints API"""

    def test_customer_statement_endpoint(self, client, customer, customer_portfolio):
        response = client.get(f"/statements/customers/{customer.id}")

        assert response.status_code == 200
        data = response.json()
        assert data["customer"]["id"] == str(customer.id)
        assert Decimal(data["totals"]["urgent_payment"]) == Decimal("60.00")
        assert len(data["lines"]) == 3

    def test_customer_statement_as_of_param(self, client, customer, customer_portfolio, today):
        as_of = (today + timedelta(days=31)).isoformat()

        response = client.get(f"/statements/customers/{customer.id}", params={"as_of": as_of})

        assert response.status_code == 200
        data = response.json()
        assert data["as_of"] == as_of
        assert data["totals"]["overdue_invoices"] == 2

    def test_farm_statement_endpoint(self, client, farm, make_invoice):
        make_invoice(number="PUR-1", type=InvoiceType.PURCHASE)

        response = client.get(f"/statements/farms/{farm.id}")

        assert response.status_code == 200
        data = response.json()
        assert data["farm"]["name"] == farm.name
        assert Decimal(data["totals"]["outstanding"]) == Decimal("50.00")

    def test_farm_statement_not_found(self, client):
        response = client.get(f"/statements/farms/{uuid4()}")
        assert response.status_code == 404
