"""
Servicios de negocio para pagos

Cada pago pertenece a un lado: sale (cobro al cliente) o purchase (pago a la
finca). Una factura "both" se cobra a precio de venta y se paga a precio de
compra, con saldos independientes.

Flujo de un pago simple:
1. Bloquear la factura (SELECT ... FOR UPDATE)
2. Calcular cargo y saldo del lado con el ledger (subtotal, notas, pagos previos)
3. Registrar el pago completo, aun si excede el saldo
4. Re-derivar el estado de la factura en la misma transacción

Flujo de un pago masivo:
1. Bloquear todas las facturas seleccionadas en orden de id
2. Calcular saldos desde el ledger, nunca desde el cliente
3. Ordenar la más antigua primero y distribuir el monto
4. Un pago por factura cubierta; el excedente se reporta sin aplicar
"""

from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
from datetime import date
import logging

from app.common.money import to_money, money_sum, ZERO
from app.common.transactions import commit_or_raise
from app.core.config import settings
from app.modules.invoices.ledger import InvoiceLedger, PriceSide, due_date_for, price_side_for
from app.modules.invoices.models import Invoice, InvoiceStatus, InvoiceType
from app.modules.invoices.service import InvoiceService, invoice_types_for
from app.modules.payments.allocation import AllocationTarget, allocate, oldest_first
from app.modules.payments.models import Payment
from app.modules.payments.schemas import (
    PaymentCreate, PaymentResult, PaymentList, BulkPaymentCreate,
    BulkPaymentResult, AllocationOut, OpenInvoice, OpenInvoiceList
)

logger = logging.getLogger(__name__)


class PaymentService:
    def __init__(self, db: Session):
        self.db = db
        self.invoices = InvoiceService(db)

    def add_payment(self, invoice_id: UUID, payment_data: PaymentCreate, today: Optional[date] = None) -> PaymentResult:
        """Registrar un pago contra una factura"""
        if payment_data.amount <= 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="El monto del pago debe ser mayor a 0"
            )
        amount = to_money(payment_data.amount)

        def work():
            invoice = self.invoices.lock_invoice(invoice_id)
            side = self._resolve_side([invoice], payment_data.side)
            ledger = InvoiceLedger.load(self.db, invoice, side)
            after = ledger.with_payment(amount)

            if after.balance < ZERO:
                logger.warning(
                    f"Overpayment on invoice {invoice.invoice_number}: amount {amount}, "
                    f"balance {ledger.balance}, excess {-after.balance}"
                )

            payment = Payment(
                invoice_id=invoice.id,
                side=side,
                amount=amount,
                method=payment_data.method,
                reference=payment_data.reference,
                payment_date=payment_data.payment_date,
                notes=payment_data.notes
            )
            self.db.add(payment)
            new_status = after.status(invoice.flight_date, today)
            self._store_status(invoice, side, new_status, after.balance)
            self.db.flush()
            return payment, new_status, after.balance

        payment, new_status, balance = commit_or_raise(
            self.db, work, "add_payment", "Error registrando pago"
        )
        self.db.refresh(payment)
        logger.info(f"Payment {payment.id} of {amount} recorded on invoice {invoice_id}, balance {balance}")
        return PaymentResult(
            **self._payment_fields(payment),
            invoice_status=new_status,
            invoice_balance=balance
        )

    def add_bulk_payment(self, bulk_data: BulkPaymentCreate, today: Optional[date] = None) -> BulkPaymentResult:
        """
        Distribuir un monto entre varias facturas, la más antigua primero.

        Todo ocurre en una transacción: si falla una factura no queda ningún
        pago registrado.
        """
        if bulk_data.amount <= 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="El monto del pago debe ser mayor a 0"
            )

        def work():
            invoices = self.invoices.lock_invoices(bulk_data.invoice_ids)
            by_id = {inv.id: inv for inv in invoices}
            side = self._resolve_side(invoices, bulk_data.side)

            targets = []
            for invoice in invoices:
                ledger = InvoiceLedger.load(self.db, invoice, side)
                targets.append(AllocationTarget(
                    invoice_id=invoice.id,
                    balance=ledger.balance,
                    flight_date=invoice.flight_date,
                    invoice_number=invoice.invoice_number
                ))

            plan = allocate(oldest_first(targets), bulk_data.amount, today)

            created = []
            for allocation in plan.allocations:
                invoice = by_id[allocation.invoice_id]
                payment = Payment(
                    invoice_id=invoice.id,
                    side=side,
                    amount=allocation.applied,
                    method=bulk_data.method,
                    reference=bulk_data.reference,
                    payment_date=bulk_data.payment_date,
                    notes=bulk_data.notes
                )
                self.db.add(payment)
                self._store_status(invoice, side, allocation.status, allocation.balance_after)
                created.append((payment, invoice, allocation))

            self.db.flush()
            return plan, [
                AllocationOut(
                    invoice_id=invoice.id,
                    invoice_number=invoice.invoice_number,
                    payment_id=payment.id,
                    applied=allocation.applied,
                    balance_before=allocation.balance_before,
                    balance_after=allocation.balance_after,
                    status=allocation.status
                )
                for payment, invoice, allocation in created
            ]

        plan, allocations = commit_or_raise(
            self.db, work, "add_bulk_payment", "Error registrando pago masivo"
        )

        warnings = []
        if plan.unapplied > settings.PAID_TOLERANCE:
            warnings.append(
                f"El monto excede el saldo de las facturas seleccionadas; "
                f"{plan.unapplied} quedó sin aplicar"
            )
            logger.warning(
                f"Bulk payment of {plan.total_amount}: {plan.unapplied} left unapplied "
                f"over {len(bulk_data.invoice_ids)} invoices"
            )

        logger.info(
            f"Bulk payment of {plan.total_amount} applied {plan.applied_amount} "
            f"across {len(allocations)} invoices"
        )
        return BulkPaymentResult(
            total_amount=plan.total_amount,
            applied_amount=plan.applied_amount,
            unapplied_amount=plan.unapplied,
            allocations=allocations,
            warnings=warnings
        )

    def get_open_invoices(
        self,
        customer_id: Optional[UUID] = None,
        farm_id: Optional[UUID] = None,
        today: Optional[date] = None
    ) -> OpenInvoiceList:
        """Facturas con saldo pendiente de un cliente o finca, la más antigua primero"""
        if bool(customer_id) == bool(farm_id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Debe indicar un cliente o una finca"
            )

        query = self.db.query(Invoice)
        if customer_id:
            side = PriceSide.SALE
            query = query.filter(Invoice.customer_id == customer_id)
        else:
            side = PriceSide.PURCHASE
            query = query.filter(Invoice.farm_id == farm_id)
        query = query.filter(Invoice.type.in_(invoice_types_for(side)))

        items = []
        for invoice in query.order_by(Invoice.flight_date, Invoice.invoice_number).all():
            ledger = InvoiceLedger.load(self.db, invoice, side)
            if ledger.balance <= ZERO:
                continue
            items.append(OpenInvoice(
                invoice_id=invoice.id,
                invoice_number=invoice.invoice_number,
                type=invoice.type,
                flight_date=invoice.flight_date,
                due_date=due_date_for(invoice.flight_date),
                status=ledger.status(invoice.flight_date, today),
                charge=ledger.charge,
                paid=ledger.paid,
                balance=ledger.balance
            ))

        return OpenInvoiceList(items=items, total_balance=money_sum(i.balance for i in items))

    def list_payments(
        self,
        invoice_id: Optional[UUID] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 100,
        offset: int = 0
    ) -> PaymentList:
        query = self.db.query(Payment)
        if invoice_id:
            query = query.filter(Payment.invoice_id == invoice_id)
        if date_from:
            query = query.filter(Payment.payment_date >= date_from)
        if date_to:
            query = query.filter(Payment.payment_date <= date_to)

        total = query.count()
        items = query.order_by(Payment.payment_date.desc(), Payment.created_at.desc()).offset(offset).limit(limit).all()
        return PaymentList(items=items, total=total, limit=limit, offset=offset)

    def get_invoice_payments(self, invoice_id: UUID) -> List[Payment]:
        # 404 si la factura no existe
        self.invoices.get_invoice_by_id(invoice_id)
        return self.db.query(Payment).filter(
            Payment.invoice_id == invoice_id
        ).order_by(Payment.payment_date, Payment.created_at).all()

    def delete_payment(self, payment_id: UUID, today: Optional[date] = None) -> None:
        """Eliminar un pago y re-derivar el estado de la factura"""
        def work():
            payment = self.db.query(Payment).filter(Payment.id == payment_id).first()
            if not payment:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Pago no encontrado"
                )
            invoice = self.invoices.lock_invoice(payment.invoice_id)
            self.db.delete(payment)
            self.db.flush()
            self.invoices.apply_status(invoice, InvoiceLedger.load(self.db, invoice), today)

        commit_or_raise(self.db, work, "delete_payment", "Error eliminando pago")
        logger.info(f"Payment {payment_id} deleted")

    @staticmethod
    def _resolve_side(invoices: List[Invoice], requested: Optional[str]) -> str:
        """
        Lado del pago: el solicitado o, si no se indica, purchase cuando todas
        las facturas son de compra y sale en otro caso. Cada factura debe
        pertenecer a la cartera de ese lado.
        """
        side = requested
        if side is None:
            all_purchases = all(inv.type == InvoiceType.PURCHASE for inv in invoices)
            side = PriceSide.PURCHASE if all_purchases else PriceSide.SALE

        allowed = invoice_types_for(side)
        mismatched = [inv.invoice_number for inv in invoices if inv.type not in allowed]
        if mismatched:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Las facturas {', '.join(mismatched)} no admiten pagos de lado {side}"
            )
        return side

    @staticmethod
    def _store_status(invoice: Invoice, side: str, new_status: InvoiceStatus, balance) -> None:
        # el estado guardado solo refleja el lado principal de la factura
        if side != price_side_for(invoice.type):
            logger.debug(f"Invoice {invoice.invoice_number}: {side} side now {new_status.value} (balance {balance})")
            return
        if invoice.status != new_status:
            logger.info(
                f"Invoice {invoice.invoice_number}: {invoice.status.value} -> {new_status.value} "
                f"(balance {balance})"
            )
            invoice.status = new_status

    @staticmethod
    def _payment_fields(payment: Payment) -> dict:
        return {
            "id": payment.id,
            "invoice_id": payment.invoice_id,
            "side": payment.side,
            "amount": payment.amount,
            "method": payment.method,
            "reference": payment.reference,
            "payment_date": payment.payment_date,
            "notes": payment.notes,
            "created_at": payment.created_at,
        }
