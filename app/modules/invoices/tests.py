"""
Tests para el módulo de Facturación

- Cálculo de subtotal, cargo y saldo (ledger)
- Derivación de estado: pagada / vencida / pendiente
- Creación, consulta, resumen y eliminación de facturas
- Actualización periódica de estados (servicio y tarea Celery)
"""

import pytest
from fastapi import HTTPException
from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

from app.modules.invoices.ledger import (
    InvoiceLedger, PriceSide, compute_subtotal, derive_status, due_date_for
)
from app.modules.invoices.models import (
    Invoice, InvoiceLineItem, BunchItem, InvoiceStatus, InvoiceType
)
from app.modules.invoices.schemas import InvoiceCreate
from app.modules.invoices.service import InvoiceService
from app.modules.invoices.tasks import refresh_invoice_statuses
from app.modules.notes.models import CreditNote, DebitNote
from app.modules.notes.schemas import NoteCreate
from app.modules.notes.service import NoteService
from app.modules.payments.schemas import PaymentCreate
from app.modules.payments.service import PaymentService


def build_invoice(invoice_type=InvoiceType.SALE, bunches=None):
    """Factura en memoria, sin sesión, para probar el cálculo del subtotal"""
    invoice = Invoice(invoice_number="MEM-1", type=invoice_type, flight_date=date(2024, 3, 1))
    item = InvoiceLineItem(product="Rosa", box_count=1, bunches_per_box=4)
    item.bunches = bunches or [
        BunchItem(stems_per_bunch=25, bunches=4, purchase_price=Decimal("0.50"), sale_price=Decimal("1.00"))
    ]
    invoice.line_items.append(item)
    return invoice


# ===== TESTS DE LEDGER =====

class TestLedger:
    """Tests para cálculo de saldos y estados"""

    def test_subtotal_uses_sale_price_for_sales(self):
        assert compute_subtotal(build_invoice(InvoiceType.SALE)) == Decimal("100.00")

    def test_subtotal_uses_purchase_price_for_purchases(self):
        assert compute_subtotal(build_invoice(InvoiceType.PURCHASE)) == Decimal("50.00")

    def test_both_invoice_prices_at_sale_unless_overridden(self):
        invoice = build_invoice(InvoiceType.BOTH)
        assert compute_subtotal(invoice) == Decimal("100.00")
        assert compute_subtotal(invoice, PriceSide.PURCHASE) == Decimal("50.00")

    def test_subtotal_sums_every_bunch(self):
        invoice = build_invoice(bunches=[
            BunchItem(stems_per_bunch=25, bunches=2, purchase_price=0, sale_price=Decimal("0.35")),
            BunchItem(stems_per_bunch=10, bunches=3, purchase_price=0, sale_price=Decimal("1.10")),
        ])
        # 50 x 0.35 + 30 x 1.10
        assert compute_subtotal(invoice) == Decimal("50.50")

    def test_charge_and_balance(self):
        ledger = InvoiceLedger(
            invoice_id=None,
            subtotal=Decimal("100.00"),
            credits=Decimal("20.00"),
            debits=Decimal("5.00"),
            paid=Decimal("50.00")
        )
        assert ledger.charge == Decimal("85.00")
        assert ledger.balance == Decimal("35.00")
        assert ledger.with_payment(Decimal("35.00")).balance == Decimal("0.00")

    def test_due_date_is_flight_plus_terms(self):
        assert due_date_for(date(2024, 1, 1)) == date(2024, 1, 31)


class TestDeriveStatus:
    """Tests para la derivación de estado"""

    flight = date(2024, 1, 1)

    def test_zero_balance_is_paid(self):
        assert derive_status(Decimal("0.00"), self.flight, date(2024, 6, 1)) == InvoiceStatus.PAID

    def test_balance_within_tolerance_is_paid(self):
        assert derive_status(Decimal("0.01"), self.flight, date(2024, 1, 2)) == InvoiceStatus.PAID

    def test_overpaid_is_paid(self):
        assert derive_status(Decimal("-10.00"), self.flight, date(2024, 1, 2)) == InvoiceStatus.PAID

    def test_open_balance_after_term_is_overdue(self):
        assert derive_status(Decimal("0.02"), self.flight, date(2024, 2, 1)) == InvoiceStatus.OVERDUE

    def test_open_balance_on_due_date_is_pending(self):
        assert derive_status(Decimal("35.00"), self.flight, date(2024, 1, 31)) == InvoiceStatus.PENDING

    def test_missing_flight_date_is_pending(self):
        assert derive_status(Decimal("35.00"), None, date(2024, 6, 1)) == InvoiceStatus.PENDING


# ===== TESTS DE SERVICIOS =====

class TestInvoiceService:
    """Tests para InvoiceService"""

    def test_create_invoice_pending(self, db_session, make_invoice):
        invoice = make_invoice()

        assert invoice.id is not None
        assert invoice.status == InvoiceStatus.PENDING
        assert len(invoice.line_items) == 1
        assert invoice.line_items[0].bunches[0].stems == 100

    def test_create_invoice_with_old_flight_is_overdue(self, db_session, make_invoice, overdue_date):
        invoice = make_invoice(flight_date=overdue_date)
        assert invoice.status == InvoiceStatus.OVERDUE

    def test_duplicate_invoice_number(self, db_session, make_invoice):
        make_invoice(number="INV-100")
        with pytest.raises(HTTPException) as exc_info:
            make_invoice(number="INV-100")
        assert exc_info.value.status_code == 409

    def test_unknown_customer_rejected(self, db_session, today):
        data = InvoiceCreate(
            invoice_number="INV-X",
            customer_id=uuid4(),
            flight_date=today,
            items=[{"product": "Rosa", "bunches": [{"stems_per_bunch": 25, "bunches": 1}]}]
        )
        with pytest.raises(HTTPException) as exc_info:
            InvoiceService(db_session).create_invoice(data)
        assert exc_info.value.status_code == 400

    def test_purchase_invoice_requires_farm(self, customer, today):
        with pytest.raises(ValueError):
            InvoiceCreate(
                invoice_number="P-1",
                type=InvoiceType.PURCHASE,
                customer_id=customer.id,
                flight_date=today,
                items=[{"product": "Rosa", "bunches": [{"stems_per_bunch": 25, "bunches": 1}]}]
            )

    def test_summary_with_notes_and_payment(self, db_session, make_invoice):
        """Subtotal 100, nota crédito 20, nota débito 5 → cargo 85; pago 50 → saldo 35"""
        invoice = make_invoice()
        NoteService(db_session, CreditNote).create_note(NoteCreate(invoice_id=invoice.id, amount="20.00"))
        NoteService(db_session, DebitNote).create_note(NoteCreate(invoice_id=invoice.id, amount="5.00"))
        PaymentService(db_session).add_payment(invoice.id, PaymentCreate(invoice_id=invoice.id, amount="50.00"))

        summary = InvoiceService(db_session).get_invoice_summary(invoice.id)

        assert summary.subtotal == Decimal("100.00")
        assert summary.credits == Decimal("20.00")
        assert summary.debits == Decimal("5.00")
        assert summary.charge == Decimal("85.00")
        assert summary.paid == Decimal("50.00")
        assert summary.balance == Decimal("35.00")
        assert summary.status == InvoiceStatus.PENDING

    def test_ledger_is_idempotent(self, db_session, make_invoice):
        invoice = make_invoice()
        PaymentService(db_session).add_payment(invoice.id, PaymentCreate(invoice_id=invoice.id, amount="30.00"))

        first = InvoiceLedger.load(db_session, invoice)
        second = InvoiceLedger.load(db_session, invoice)
        assert first == second

    def test_list_invoices_filters(self, db_session, make_invoice, overdue_date):
        make_invoice(number="INV-1")
        make_invoice(number="INV-2", flight_date=overdue_date)
        make_invoice(number="PUR-1", type=InvoiceType.PURCHASE)
        service = InvoiceService(db_session)

        from app.modules.invoices.schemas import InvoiceFilters
        assert service.list_invoices(InvoiceFilters()).total == 3
        assert service.list_invoices(InvoiceFilters(type=InvoiceType.PURCHASE)).total == 1
        assert service.list_invoices(InvoiceFilters(status=InvoiceStatus.OVERDUE)).total == 1
        assert service.list_invoices(InvoiceFilters(date_to=overdue_date)).items[0].invoice_number == "INV-2"
        assert service.list_invoices(InvoiceFilters(search="pur")).total == 1

    def test_delete_invoice_cascades_payments(self, db_session, make_invoice):
        from app.modules.payments.models import Payment

        invoice = make_invoice()
        PaymentService(db_session).add_payment(invoice.id, PaymentCreate(invoice_id=invoice.id, amount="10.00"))
        InvoiceService(db_session).delete_invoice(invoice.id)

        assert db_session.query(Invoice).count() == 0
        assert db_session.query(Payment).count() == 0

    def test_lock_invoices_reports_missing(self, db_session, make_invoice):
        invoice = make_invoice()
        missing = uuid4()
        with pytest.raises(HTTPException) as exc_info:
            InvoiceService(db_session).lock_invoices([invoice.id, missing])
        assert exc_info.value.status_code == 404
        assert str(missing) in exc_info.value.detail


class TestStatusRefresh:
    """Tests para la re-derivación periódica de estados"""

    def test_pending_becomes_overdue_after_term(self, db_session, make_invoice, today):
        invoice = make_invoice()
        assert invoice.status == InvoiceStatus.PENDING

        result = InvoiceService(db_session).refresh_statuses(today + timedelta(days=31))

        assert result.checked == 1
        assert result.updated == 1
        db_session.refresh(invoice)
        assert invoice.status == InvoiceStatus.OVERDUE

    def test_paid_invoice_never_becomes_overdue(self, db_session, make_invoice, today):
        invoice = make_invoice()
        PaymentService(db_session).add_payment(invoice.id, PaymentCreate(invoice_id=invoice.id, amount="100.00"))

        result = InvoiceService(db_session).refresh_statuses(today + timedelta(days=90))

        assert result.updated == 0
        db_session.refresh(invoice)
        assert invoice.status == InvoiceStatus.PAID

    def test_refresh_task(self, db_session, make_invoice, today):
        make_invoice()
        as_of = (today + timedelta(days=31)).isoformat()

        result = refresh_invoice_statuses(as_of=as_of)

        assert result["status"] == "success"
        assert result["checked"] == 1
        assert result["updated"] == 1
        assert result["as_of"] == as_of


# ===== TESTS DE API ENDPOINTS =====

class TestInvoiceAPI:
    """Tests de endpoints API"""

    def invoice_payload(self, customer, farm, number="API-001", flight_date=None):
        return {
            "invoice_number": number,
            "type": "both",
            "customer_id": str(customer.id),
            "farm_id": str(farm.id),
            "flight_date": (flight_date or date.today()).isoformat(),
            "master_awb": "145-12345675",
            "items": [{
                "box_type": "hb",
                "box_count": 2,
                "bunches_per_box": 10,
                "product": "Rosa",
                "variety": "Explorer",
                "length": 70,
                "bunches": [{
                    "stems_per_bunch": 25,
                    "bunches": 20,
                    "purchase_price": "0.30",
                    "sale_price": "0.45"
                }]
            }]
        }

    def test_create_invoice_endpoint(self, client, customer, farm):
        response = client.post("/invoices/", json=self.invoice_payload(customer, farm))

        assert response.status_code == 201
        data = response.json()
        assert data["invoice_number"] == "API-001"
        assert data["status"] == "pending"
        assert data["line_items"][0]["box_type"] == "hb"

    def test_create_invoice_validation_error(self, client, customer, farm):
        payload = self.invoice_payload(customer, farm)
        payload["items"] = []
        response = client.post("/invoices/", json=payload)
        assert response.status_code == 422

    def test_summary_endpoint(self, client, customer, farm):
        created = client.post("/invoices/", json=self.invoice_payload(customer, farm)).json()

        response = client.get(f"/invoices/{created['id']}/summary")

        assert response.status_code == 200
        data = response.json()
        # 500 tallos x 0.45
        assert Decimal(data["subtotal"]) == Decimal("225.00")
        assert Decimal(data["balance"]) == Decimal("225.00")

    def test_get_invoice_not_found(self, client):
        response = client.get(f"/invoices/{uuid4()}")
        assert response.status_code == 404

    def test_list_and_delete_endpoints(self, client, customer, farm):
        created = client.post("/invoices/", json=self.invoice_payload(customer, farm)).json()

        listing = client.get("/invoices/", params={"customer_id": str(customer.id)})
        assert listing.status_code == 200
        assert listing.json()["total"] == 1

        response = client.delete(f"/invoices/{created['id']}")
        assert response.status_code == 204
        assert client.get(f"/invoices/{created['id']}").status_code == 404

    def test_refresh_status_endpoint(self, client, customer, farm):
        client.post("/invoices/", json=self.invoice_payload(customer, farm))
        as_of = (date.today() + timedelta(days=31)).isoformat()

        response = client.post("/invoices/refresh-status", params={"as_of": as_of})

        assert response.status_code == 200
        assert response.json()["updated"] == 1
