"""
Tests para el módulo de Pagos

- Distribución pura (allocate / oldest_first)
- Pago simple: saldo, estado y sobrepago
- Pago masivo: más antigua primero, conservación del monto y excedente
- Endpoints API
"""

import pytest
from fastapi import HTTPException
from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

from app.modules.invoices.ledger import InvoiceLedger
from app.modules.invoices.models import InvoiceStatus, InvoiceType
from app.modules.notes.models import CreditNote, DebitNote
from app.modules.notes.schemas import NoteCreate
from app.modules.notes.service import NoteService
from app.modules.payments.allocation import AllocationTarget, allocate, oldest_first
from app.modules.payments.models import Payment, PaymentMethod
from app.modules.payments.schemas import BulkPaymentCreate, PaymentCreate
from app.modules.payments.service import PaymentService
from app.modules.statements.service import StatementService


def target(balance, flight_date=date(2024, 5, 1), number=""):
    return AllocationTarget(invoice_id=uuid4(), balance=Decimal(balance), flight_date=flight_date, invoice_number=number)


# ===== TESTS DE DISTRIBUCIÓN =====

class TestAllocate:
    """Tests para la distribución pura de un pago masivo"""

    as_of = date(2024, 5, 10)

    def test_covers_in_given_order(self):
        targets = [target("40"), target("40"), target("40")]

        plan = allocate(targets, Decimal("100"), self.as_of)

        assert [a.applied for a in plan.allocations] == [Decimal("40.00"), Decimal("40.00"), Decimal("20.00")]
        assert [a.status for a in plan.allocations] == [
            InvoiceStatus.PAID, InvoiceStatus.PAID, InvoiceStatus.PENDING
        ]
        assert plan.allocations[2].balance_after == Decimal("20.00")
        assert plan.unapplied == Decimal("0.00")
        assert plan.applied_amount == Decimal("100.00")

    def test_follows_given_order_even_when_not_by_date(self):
        newer = target("30", flight_date=date(2024, 5, 5))
        older = target("50", flight_date=date(2024, 5, 1))

        plan = allocate([newer, older], Decimal("40"), self.as_of)

        assert plan.allocations[0].invoice_id == newer.invoice_id
        assert plan.allocations[0].status == InvoiceStatus.PAID
        assert plan.allocations[1].invoice_id == older.invoice_id
        assert plan.allocations[1].balance_after == Decimal("40.00")

    def test_skips_settled_invoices(self):
        settled = target("0")
        credited = target("-5")
        open_invoice = target("25")

        plan = allocate([settled, credited, open_invoice], Decimal("10"), self.as_of)

        assert len(plan.allocations) == 1
        assert plan.allocations[0].invoice_id == open_invoice.invoice_id
        assert plan.allocations[0].balance_after == Decimal("15.00")

    def test_stops_when_amount_exhausted(self):
        plan = allocate([target("10"), target("10"), target("10")], Decimal("10"), self.as_of)
        assert len(plan.allocations) == 1

    def test_excess_is_unapplied(self):
        plan = allocate([target("30"), target("20")], Decimal("80"), self.as_of)

        assert plan.applied_amount == Decimal("50.00")
        assert plan.unapplied == Decimal("30.00")

    def test_conservation(self):
        targets = [target("12.35"), target("7.10"), target("99.99"), target("0.01")]
        for total in ("0.01", "19.45", "50", "119.45", "500"):
            plan = allocate(targets, Decimal(total), self.as_of)
            assert plan.applied_amount + plan.unapplied == Decimal(total)
            assert plan.applied_amount <= Decimal(total)
            for allocation in plan.allocations:
                assert allocation.applied <= allocation.balance_before

    def test_overdue_status_for_old_flights(self):
        plan = allocate([target("100", flight_date=date(2024, 1, 1))], Decimal("60"), self.as_of)
        assert plan.allocations[0].status == InvoiceStatus.OVERDUE


class TestOldestFirst:

    def test_sorts_by_flight_date_then_number(self):
        b = target("10", date(2024, 5, 2), "B-2")
        a2 = target("10", date(2024, 5, 1), "A-2")
        a1 = target("10", date(2024, 5, 1), "A-1")

        assert oldest_first([b, a2, a1]) == [a1, a2, b]

    def test_drops_non_positive_balances(self):
        paid = target("0")
        open_invoice = target("5")
        assert oldest_first([paid, open_invoice]) == [open_invoice]


# ===== TESTS DE SERVICIOS =====

class TestSinglePayment:
    """Tests para PaymentService.add_payment"""

    def test_full_payment_marks_paid(self, db_session, make_invoice):
        """Subtotal 100, crédito 20, débito 5 → cargo 85; pago 85 → pagada"""
        invoice = make_invoice()
        NoteService(db_session, CreditNote).create_note(NoteCreate(invoice_id=invoice.id, amount="20.00"))
        NoteService(db_session, DebitNote).create_note(NoteCreate(invoice_id=invoice.id, amount="5.00"))

        result = PaymentService(db_session).add_payment(
            invoice.id, PaymentCreate(invoice_id=invoice.id, amount="85.00", method=PaymentMethod.CHECK, reference="CHK-881")
        )

        assert result.invoice_balance == Decimal("0.00")
        assert result.invoice_status == InvoiceStatus.PAID
        assert result.method == PaymentMethod.CHECK
        db_session.refresh(invoice)
        assert invoice.status == InvoiceStatus.PAID

    def test_partial_payment_pending(self, db_session, make_invoice):
        invoice = make_invoice()
        NoteService(db_session, CreditNote).create_note(NoteCreate(invoice_id=invoice.id, amount="20.00"))
        NoteService(db_session, DebitNote).create_note(NoteCreate(invoice_id=invoice.id, amount="5.00"))

        result = PaymentService(db_session).add_payment(invoice.id, PaymentCreate(invoice_id=invoice.id, amount="50.00"))

        assert result.invoice_balance == Decimal("35.00")
        assert result.invoice_status == InvoiceStatus.PENDING

    def test_partial_payment_overdue(self, db_session, make_invoice, overdue_date):
        invoice = make_invoice(flight_date=overdue_date)

        result = PaymentService(db_session).add_payment(invoice.id, PaymentCreate(invoice_id=invoice.id, amount="50.00"))

        assert result.invoice_balance == Decimal("50.00")
        assert result.invoice_status == InvoiceStatus.OVERDUE

    def test_overpayment_recorded_in_full(self, db_session, make_invoice, caplog):
        invoice = make_invoice()

        with caplog.at_level("WARNING"):
            result = PaymentService(db_session).add_payment(
                invoice.id, PaymentCreate(invoice_id=invoice.id, amount="120.00")
            )

        assert result.amount == Decimal("120.00")
        assert result.invoice_balance == Decimal("-20.00")
        assert result.invoice_status == InvoiceStatus.PAID
        assert "Overpayment" in caplog.text

    def test_status_matches_balance_after_each_payment(self, db_session, make_invoice):
        invoice = make_invoice()
        service = PaymentService(db_session)
        for amount in ("33.33", "33.33", "33.33", "0.01"):
            result = service.add_payment(invoice.id, PaymentCreate(invoice_id=invoice.id, amount=amount))
            assert (result.invoice_status == InvoiceStatus.PAID) == (result.invoice_balance <= Decimal("0.01"))

    def test_missing_invoice_is_404_without_writes(self, db_session):
        invoice_id = uuid4()
        with pytest.raises(HTTPException) as exc_info:
            PaymentService(db_session).add_payment(invoice_id, PaymentCreate(invoice_id=invoice_id, amount="10.00"))
        assert exc_info.value.status_code == 404
        assert db_session.query(Payment).count() == 0

    def test_non_positive_amount_rejected(self):
        with pytest.raises(ValueError):
            PaymentCreate(invoice_id=uuid4(), amount="0.00")
        with pytest.raises(ValueError):
            PaymentCreate(invoice_id=uuid4(), amount="-10.00")


class TestBulkPayment:
    """Tests para PaymentService.add_bulk_payment"""

    def three_open_invoices(self, make_invoice, today):
        """Tres facturas de 40.00 con fechas de vuelo distintas"""
        return [
            make_invoice(number=f"INV-{i}", flight_date=today - timedelta(days=3 - i), sale_price="0.40")
            for i in range(3)
        ]

    def test_oldest_first_distribution(self, db_session, make_invoice, today):
        invoices = self.three_open_invoices(make_invoice, today)
        # seleccionadas en orden inverso: el servicio ordena por fecha de vuelo
        selected = [inv.id for inv in reversed(invoices)]

        result = PaymentService(db_session).add_bulk_payment(BulkPaymentCreate(invoice_ids=selected, amount="100.00"))

        assert [a.invoice_number for a in result.allocations] == ["INV-0", "INV-1", "INV-2"]
        assert [a.applied for a in result.allocations] == [Decimal("40.00"), Decimal("40.00"), Decimal("20.00")]
        assert result.applied_amount == Decimal("100.00")
        assert result.unapplied_amount == Decimal("0.00")
        assert result.warnings == []

        for invoice in invoices:
            db_session.refresh(invoice)
        assert [inv.status for inv in invoices] == [
            InvoiceStatus.PAID, InvoiceStatus.PAID, InvoiceStatus.PENDING
        ]
        assert InvoiceLedger.load(db_session, invoices[2]).balance == Decimal("20.00")
        assert db_session.query(Payment).count() == 3

    def test_balances_come_from_ledger(self, db_session, make_invoice, today):
        first, second = self.three_open_invoices(make_invoice, today)[:2]
        PaymentService(db_session).add_payment(first.id, PaymentCreate(invoice_id=first.id, amount="30.00"))

        result = PaymentService(db_session).add_bulk_payment(
            BulkPaymentCreate(invoice_ids=[first.id, second.id], amount="20.00")
        )

        assert result.allocations[0].invoice_id == first.id
        assert result.allocations[0].balance_before == Decimal("10.00")
        assert result.allocations[0].applied == Decimal("10.00")
        assert result.allocations[1].applied == Decimal("10.00")

    def test_paid_invoices_are_skipped(self, db_session, make_invoice, today):
        first, second = self.three_open_invoices(make_invoice, today)[:2]
        PaymentService(db_session).add_payment(first.id, PaymentCreate(invoice_id=first.id, amount="40.00"))

        result = PaymentService(db_session).add_bulk_payment(
            BulkPaymentCreate(invoice_ids=[first.id, second.id], amount="15.00")
        )

        assert len(result.allocations) == 1
        assert result.allocations[0].invoice_id == second.id

    def test_excess_reported_as_unapplied(self, db_session, make_invoice, today, caplog):
        invoices = self.three_open_invoices(make_invoice, today)

        with caplog.at_level("WARNING"):
            result = PaymentService(db_session).add_bulk_payment(
                BulkPaymentCreate(invoice_ids=[inv.id for inv in invoices], amount="150.00")
            )

        assert result.applied_amount == Decimal("120.00")
        assert result.unapplied_amount == Decimal("30.00")
        assert len(result.warnings) == 1
        assert "unapplied" in caplog.text
        assert db_session.query(Payment).count() == 3

    def test_unknown_invoice_aborts_everything(self, db_session, make_invoice, today):
        invoices = self.three_open_invoices(make_invoice, today)

        with pytest.raises(HTTPException) as exc_info:
            PaymentService(db_session).add_bulk_payment(
                BulkPaymentCreate(invoice_ids=[invoices[0].id, uuid4()], amount="40.00")
            )

        assert exc_info.value.status_code == 404
        assert db_session.query(Payment).count() == 0

    def test_duplicate_ids_rejected(self):
        invoice_id = uuid4()
        with pytest.raises(ValueError):
            BulkPaymentCreate(invoice_ids=[invoice_id, invoice_id], amount="10.00")

    def test_empty_selection_rejected(self):
        with pytest.raises(ValueError):
            BulkPaymentCreate(invoice_ids=[], amount="10.00")


class TestPaymentStore:
    """Tests de consulta y eliminación de pagos"""

    def test_open_invoices_for_customer(self, db_session, make_invoice, customer, today, overdue_date):
        paid = make_invoice(number="INV-PAID")
        make_invoice(number="INV-NEW")
        make_invoice(number="INV-OLD", flight_date=overdue_date)
        make_invoice(number="PUR-1", type=InvoiceType.PURCHASE)
        PaymentService(db_session).add_payment(paid.id, PaymentCreate(invoice_id=paid.id, amount="100.00"))

        result = PaymentService(db_session).get_open_invoices(customer_id=customer.id)

        assert [i.invoice_number for i in result.items] == ["INV-OLD", "INV-NEW"]
        assert result.items[0].status == InvoiceStatus.OVERDUE
        assert result.total_balance == Decimal("200.00")

    def test_open_invoices_for_farm(self, db_session, make_invoice, farm):
        make_invoice(number="INV-1")
        make_invoice(number="PUR-1", type=InvoiceType.PURCHASE)
        make_invoice(number="BOTH-1", type=InvoiceType.BOTH)

        result = PaymentService(db_session).get_open_invoices(farm_id=farm.id)

        assert {i.invoice_number for i in result.items} == {"PUR-1", "BOTH-1"}

    def test_open_invoices_requires_one_party(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            PaymentService(db_session).get_open_invoices()
        assert exc_info.value.status_code == 400

    def test_delete_payment_reopens_invoice(self, db_session, make_invoice):
        invoice = make_invoice()
        service = PaymentService(db_session)
        payment = service.add_payment(invoice.id, PaymentCreate(invoice_id=invoice.id, amount="100.00"))

        service.delete_payment(payment.id)

        db_session.refresh(invoice)
        assert invoice.status == InvoiceStatus.PENDING
        assert service.get_invoice_payments(invoice.id) == []

    def test_list_payments_by_date(self, db_session, make_invoice, today):
        invoice = make_invoice()
        service = PaymentService(db_session)
        service.add_payment(invoice.id, PaymentCreate(invoice_id=invoice.id, amount="10.00", payment_date=today - timedelta(days=10)))
        service.add_payment(invoice.id, PaymentCreate(invoice_id=invoice.id, amount="20.00", payment_date=today))

        result = service.list_payments(date_from=today - timedelta(days=1))

        assert result.total == 1
        assert result.items[0].amount == Decimal("20.00")
        assert service.list_payments(invoice_id=invoice.id).total == 2


class TestPaymentSides:
    """Tests de cobros al cliente y pagos a la finca sobre la misma factura"""

    def test_farm_open_balance_matches_farm_statement(self, db_session, make_invoice, farm):
        make_invoice(number="BOTH-1", type=InvoiceType.BOTH)

        open_invoices = PaymentService(db_session).get_open_invoices(farm_id=farm.id)
        statement = StatementService(db_session).farm_statement(farm.id)

        assert open_invoices.items[0].balance == Decimal("50.00")
        assert open_invoices.items[0].balance == statement.lines[0].balance

    def test_farm_bulk_payment_settles_purchase_side_only(self, db_session, make_invoice, customer, farm):
        invoice = make_invoice(number="BOTH-1", type=InvoiceType.BOTH)

        result = PaymentService(db_session).add_bulk_payment(
            BulkPaymentCreate(invoice_ids=[invoice.id], amount="50.00", side="purchase")
        )

        assert result.allocations[0].balance_before == Decimal("50.00")
        assert result.allocations[0].balance_after == Decimal("0.00")
        assert result.allocations[0].status == InvoiceStatus.PAID

        farm_line = StatementService(db_session).farm_statement(farm.id).lines[0]
        customer_line = StatementService(db_session).customer_statement(customer.id).lines[0]
        assert farm_line.status == InvoiceStatus.PAID
        assert farm_line.balance == Decimal("0.00")
        assert customer_line.paid == Decimal("0.00")
        assert customer_line.balance == Decimal("100.00")

        # el estado guardado sigue el saldo del cliente
        db_session.refresh(invoice)
        assert invoice.status == InvoiceStatus.PENDING
        assert db_session.query(Payment).one().side == "purchase"

    def test_purchase_invoice_defaults_to_purchase_side(self, db_session, make_invoice):
        invoice = make_invoice(number="PUR-1", type=InvoiceType.PURCHASE)

        result = PaymentService(db_session).add_payment(invoice.id, PaymentCreate(invoice_id=invoice.id, amount="50.00"))

        assert result.side == "purchase"
        assert result.invoice_balance == Decimal("0.00")
        db_session.refresh(invoice)
        assert invoice.status == InvoiceStatus.PAID

    def test_customer_payment_on_both_invoice_ignores_farm_payments(self, db_session, make_invoice):
        invoice = make_invoice(number="BOTH-1", type=InvoiceType.BOTH)
        service = PaymentService(db_session)
        service.add_payment(invoice.id, PaymentCreate(invoice_id=invoice.id, amount="50.00", side="purchase"))

        result = service.add_payment(invoice.id, PaymentCreate(invoice_id=invoice.id, amount="30.00"))

        assert result.side == "sale"
        assert result.invoice_balance == Decimal("70.00")
        assert result.invoice_status == InvoiceStatus.PENDING

    def test_side_must_match_invoice_type(self, db_session, make_invoice):
        invoice = make_invoice(number="INV-1")

        with pytest.raises(HTTPException) as exc_info:
            PaymentService(db_session).add_payment(
                invoice.id, PaymentCreate(invoice_id=invoice.id, amount="10.00", side="purchase")
            )

        assert exc_info.value.status_code == 400
        assert db_session.query(Payment).count() == 0

    def test_bulk_mixing_sales_and_purchases_rejected(self, db_session, make_invoice):
        sale = make_invoice(number="INV-1")
        purchase = make_invoice(number="PUR-1", type=InvoiceType.PURCHASE)

        with pytest.raises(HTTPException) as exc_info:
            PaymentService(db_session).add_bulk_payment(
                BulkPaymentCreate(invoice_ids=[sale.id, purchase.id], amount="10.00")
            )

        assert exc_info.value.status_code == 400
        assert "PUR-1" in exc_info.value.detail
        assert db_session.query(Payment).count() == 0


# ===== TESTS DE API ENDPOINTS =====

class TestPaymentAPI:
    """Tests de endpoints API"""

    def test_create_payment_endpoint(self, client, make_invoice):
        invoice = make_invoice()

        response = client.post("/payments/", json={
            "invoice_id": str(invoice.id),
            "amount": "60.00",
            "method": "transfer",
            "reference": "WIRE-2201"
        })

        assert response.status_code == 201
        data = response.json()
        assert Decimal(data["invoice_balance"]) == Decimal("40.00")
        assert data["invoice_status"] == "pending"

    def test_zero_amount_is_unprocessable(self, client, make_invoice):
        invoice = make_invoice()
        response = client.post("/payments/", json={"invoice_id": str(invoice.id), "amount": "0"})
        assert response.status_code == 422

    def test_payment_on_missing_invoice(self, client):
        response = client.post("/payments/", json={"invoice_id": str(uuid4()), "amount": "10.00"})
        assert response.status_code == 404

    def test_bulk_payment_endpoint(self, client, make_invoice, today):
        older = make_invoice(number="INV-A", flight_date=today - timedelta(days=2), sale_price="0.30")
        newer = make_invoice(number="INV-B", flight_date=today, sale_price="0.50")

        response = client.post("/payments/bulk", json={
            "invoice_ids": [str(newer.id), str(older.id)],
            "amount": "40.00",
            "method": "cash"
        })

        assert response.status_code == 201
        data = response.json()
        assert [a["invoice_number"] for a in data["allocations"]] == ["INV-A", "INV-B"]
        assert data["allocations"][0]["status"] == "paid"
        assert Decimal(data["allocations"][1]["balance_after"]) == Decimal("40.00")
        assert Decimal(data["unapplied_amount"]) == Decimal("0.00")

    def test_open_invoices_and_history_endpoints(self, client, make_invoice, customer):
        invoice = make_invoice()
        client.post("/payments/", json={"invoice_id": str(invoice.id), "amount": "25.00"})

        open_invoices = client.get("/payments/open-invoices", params={"customer_id": str(customer.id)})
        assert open_invoices.status_code == 200
        assert Decimal(open_invoices.json()["items"][0]["balance"]) == Decimal("75.00")

        history = client.get(f"/payments/invoice/{invoice.id}")
        assert history.status_code == 200
        assert len(history.json()) == 1

        listing = client.get("/payments/", params={"invoice_id": str(invoice.id)})
        assert listing.json()["total"] == 1

    def test_farm_bulk_payment_endpoint(self, client, make_invoice, farm):
        invoice = make_invoice(number="BOTH-1", type=InvoiceType.BOTH)

        response = client.post("/payments/bulk", json={
            "invoice_ids": [str(invoice.id)],
            "amount": "20.00",
            "side": "purchase"
        })

        assert response.status_code == 201
        assert Decimal(response.json()["allocations"][0]["balance_after"]) == Decimal("30.00")
        open_invoices = client.get("/payments/open-invoices", params={"farm_id": str(farm.id)}).json()
        assert Decimal(open_invoices["total_balance"]) == Decimal("30.00")

    def test_delete_payment_endpoint(self, client, make_invoice):
        invoice = make_invoice()
        payment = client.post("/payments/", json={"invoice_id": str(invoice.id), "amount": "25.00"}).json()

        assert client.delete(f"/payments/{payment['id']}").status_code == 204
        assert client.delete(f"/payments/{payment['id']}").status_code == 404
