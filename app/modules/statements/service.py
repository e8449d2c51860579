"""
Estados de cuenta de clientes (cuentas por cobrar) y fincas (cuentas por pagar)

Los saldos y estados se calculan al vuelo con el ledger a la fecha `as_of`,
sin depender del estado almacenado. Las fincas se liquidan siempre a precio
de compra.
"""

from datetime import date
from typing import List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session, selectinload

from app.common.money import money_sum, to_money, ZERO
from app.modules.contacts.schemas import CustomerOut, FarmOut
from app.modules.contacts.service import ContactService
from app.modules.invoices.ledger import InvoiceLedger, PriceSide, due_date_for
from app.modules.invoices.models import Invoice, InvoiceLineItem, InvoiceStatus
from app.modules.invoices.service import invoice_types_for
from app.modules.statements.schemas import (
    StatementLine, StatementTotals, CustomerStatement, FarmStatement
)

logger = logging.getLogger(__name__)


class StatementService:
    def __init__(self, db: Session):
        self.db = db
        self.contacts = ContactService(db)

    def customer_statement(self, customer_id: UUID, as_of: Optional[date] = None) -> CustomerStatement:
        customer = self.contacts.get_customer_by_id(customer_id)
        as_of = as_of or date.today()

        invoices = self._invoices_query().filter(
            Invoice.customer_id == customer_id,
            Invoice.type.in_(invoice_types_for(PriceSide.SALE))
        ).all()
        lines = self._build_lines(invoices, as_of)
        totals = self._build_totals(lines)

        credit_available = None
        if customer.credit_limit is not None:
            credit_available = to_money(customer.credit_limit - totals.outstanding)

        logger.debug(f"Statement for customer {customer_id}: {len(lines)} invoices, outstanding {totals.outstanding}")
        return CustomerStatement(
            customer=CustomerOut.model_validate(customer),
            as_of=as_of,
            lines=lines,
            totals=totals,
            credit_available=credit_available
        )

    def farm_statement(self, farm_id: UUID, as_of: Optional[date] = None) -> FarmStatement:
        farm = self.contacts.get_farm_by_id(farm_id)
        as_of = as_of or date.today()

        invoices = self._invoices_query().filter(
            Invoice.farm_id == farm_id,
            Invoice.type.in_(invoice_types_for(PriceSide.PURCHASE))
        ).all()
        lines = self._build_lines(invoices, as_of, price_side=PriceSide.PURCHASE)
        totals = self._build_totals(lines)

        logger.debug(f"Statement for farm {farm_id}: {len(lines)} invoices, outstanding {totals.outstanding}")
        return FarmStatement(farm=FarmOut.model_validate(farm), as_of=as_of, lines=lines, totals=totals)

    def _invoices_query(self):
        return self.db.query(Invoice).options(
            selectinload(Invoice.line_items).selectinload(InvoiceLineItem.bunches)
        ).order_by(Invoice.flight_date, Invoice.invoice_number)

    def _build_lines(self, invoices: List[Invoice], as_of: date, price_side: Optional[str] = None) -> List[StatementLine]:
        lines = []
        for invoice in invoices:
            ledger = InvoiceLedger.load(self.db, invoice, price_side)
            due_date = due_date_for(invoice.flight_date)
            current_status = ledger.status(invoice.flight_date, as_of)
            days_overdue = (as_of - due_date).days if current_status == InvoiceStatus.OVERDUE else 0
            lines.append(StatementLine(
                invoice_id=invoice.id,
                invoice_number=invoice.invoice_number,
                type=invoice.type,
                flight_date=invoice.flight_date,
                due_date=due_date,
                days_overdue=days_overdue,
                status=current_status,
                subtotal=ledger.subtotal,
                credits=ledger.credits,
                debits=ledger.debits,
                charge=ledger.charge,
                paid=ledger.paid,
                balance=ledger.balance
            ))
        return lines

    @staticmethod
    def _build_totals(lines: List[StatementLine]) -> StatementTotals:
        open_lines = [l for l in lines if l.status != InvoiceStatus.PAID]
        overdue = [l for l in lines if l.status == InvoiceStatus.OVERDUE]
        return StatementTotals(
            total_charge=money_sum(l.charge for l in lines),
            total_credits=money_sum(l.credits for l in lines),
            total_debits=money_sum(l.debits for l in lines),
            total_paid=money_sum(l.paid for l in lines),
            outstanding=money_sum(max(l.balance, ZERO) for l in open_lines),
            urgent_payment=money_sum(max(l.balance, ZERO) for l in overdue),
            overdue_invoices=len(overdue),
            open_invoices=len(open_lines)
        )
