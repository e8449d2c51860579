"""
Cálculo de cargo, saldo y estado de una factura

    subtotal = Σ tallos × precio (compra o venta según el lado)
    charge   = subtotal − Σ notas crédito + Σ notas débito
    balance  = charge − Σ pagos del mismo lado

Una factura "both" lleva dos saldos: el del cliente (precio de venta, pagos
de lado sale) y el de la finca (precio de compra, pagos de lado purchase).
El estado guardado en la factura sigue el lado principal de su tipo.

Estado: PAID si balance <= tolerancia; OVERDUE si hoy > fecha de vuelo + plazo;
PENDING en otro caso.
"""
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.common.money import to_money
from app.core.config import settings
from app.modules.invoices.models import Invoice, InvoiceStatus, InvoiceType


class PriceSide:
    SALE = "sale"
    PURCHASE = "purchase"


def price_side_for(invoice_type: InvoiceType) -> str:
    if invoice_type == InvoiceType.PURCHASE:
        return PriceSide.PURCHASE
    return PriceSide.SALE


def compute_subtotal(invoice: Invoice, price_side: Optional[str] = None) -> Decimal:
    side = price_side or price_side_for(invoice.type)
    total = Decimal("0")
    for item in invoice.line_items:
        for bunch in item.bunches:
            price = bunch.purchase_price if side == PriceSide.PURCHASE else bunch.sale_price
            total += Decimal(bunch.stems) * Decimal(str(price or 0))
    return to_money(total)


def due_date_for(flight_date: date) -> date:
    return flight_date + timedelta(days=settings.PAYMENT_TERMS_DAYS)


def derive_status(balance: Decimal, flight_date: Optional[date], today: Optional[date] = None) -> InvoiceStatus:
    if balance <= settings.PAID_TOLERANCE:
        return InvoiceStatus.PAID
    today = today or date.today()
    if flight_date is not None and today > due_date_for(flight_date):
        return InvoiceStatus.OVERDUE
    return InvoiceStatus.PENDING


@dataclass(frozen=True)
class InvoiceLedger:
    invoice_id: object
    subtotal: Decimal
    credits: Decimal
    debits: Decimal
    paid: Decimal

    @property
    def charge(self) -> Decimal:
        return to_money(self.subtotal - self.credits + self.debits)

    @property
    def balance(self) -> Decimal:
        return to_money(self.charge - self.paid)

    def status(self, flight_date: Optional[date], today: Optional[date] = None) -> InvoiceStatus:
        return derive_status(self.balance, flight_date, today)

    def with_payment(self, amount: Decimal) -> "InvoiceLedger":
        return InvoiceLedger(self.invoice_id, self.subtotal, self.credits, self.debits, to_money(self.paid + amount))

    @classmethod
    def load(cls, db: Session, invoice: Invoice, price_side: Optional[str] = None) -> "InvoiceLedger":
        # imports locales: payments y notes importan este módulo
        from app.modules.notes.models import CreditNote, DebitNote
        from app.modules.payments.models import Payment

        side = price_side or price_side_for(invoice.type)

        def total_for(model, *criteria) -> Decimal:
            value = db.query(func.coalesce(func.sum(model.amount), 0)).filter(
                model.invoice_id == invoice.id, *criteria
            ).scalar()
            return to_money(value)

        return cls(
            invoice_id=invoice.id,
            subtotal=compute_subtotal(invoice, side),
            credits=total_for(CreditNote),
            debits=total_for(DebitNote),
            paid=total_for(Payment, Payment.side == side),
        )

