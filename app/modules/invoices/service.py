from fastapi import HTTPException, status
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import or_
from typing import List, Optional
from uuid import UUID
from datetime import date
import logging

from app.common.transactions import commit_or_raise
from app.modules.contacts.service import ContactService
from app.modules.invoices.ledger import InvoiceLedger, due_date_for
from app.modules.invoices.models import (
    Invoice, InvoiceLineItem, BunchItem, InvoiceStatus, InvoiceType
)
from app.modules.invoices.schemas import (
    InvoiceCreate, InvoiceFilters, InvoiceList, InvoiceSummary, StatusRefreshResult
)

logger = logging.getLogger(__name__)


class InvoiceService:
    def __init__(self, db: Session):
        self.db = db

    def create_invoice(self, invoice_data: InvoiceCreate) -> Invoice:
        """Crear factura con sus cajas y ramos"""
        contacts = ContactService(self.db)
        contacts.require_customer(invoice_data.customer_id)
        if invoice_data.farm_id:
            contacts.require_farm(invoice_data.farm_id)

        existing = self.db.query(Invoice).filter(
            Invoice.invoice_number == invoice_data.invoice_number
        ).first()
        if existing:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Ya existe una factura con el número {invoice_data.invoice_number}"
            )

        def work():
            header = invoice_data.model_dump(exclude={"items"})
            invoice = Invoice(**header)
            for item_data in invoice_data.items:
                item = InvoiceLineItem(**item_data.model_dump(exclude={"bunches"}))
                item.bunches = [BunchItem(**b.model_dump()) for b in item_data.bunches]
                invoice.line_items.append(item)
            self.db.add(invoice)
            self.db.flush()

            # Estado inicial según saldo y fecha de vuelo
            ledger = InvoiceLedger.load(self.db, invoice)
            invoice.status = ledger.status(invoice.flight_date)
            return invoice

        invoice = commit_or_raise(self.db, work, "create_invoice", "Error creando factura")
        self.db.refresh(invoice)
        logger.info(f"Invoice {invoice.invoice_number} ({invoice.type.value}) created with status {invoice.status.value}")
        return invoice

    def get_invoice_by_id(self, invoice_id: UUID) -> Invoice:
        invoice = self.db.query(Invoice).options(
            selectinload(Invoice.line_items).selectinload(InvoiceLineItem.bunches)
        ).filter(Invoice.id == invoice_id).first()
        if not invoice:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Factura no encontrada"
            )
        return invoice

    def lock_invoice(self, invoice_id: UUID) -> Invoice:
        """
        Obtener la factura con bloqueo de fila (SELECT ... FOR UPDATE).

        Serializa las escrituras concurrentes sobre la misma factura hasta el
        commit de la transacción en curso. Sin factura → 404 antes de escribir.
        """
        invoice = self.db.query(Invoice).filter(
            Invoice.id == invoice_id
        ).with_for_update().populate_existing().first()
        if not invoice:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Factura no encontrada"
            )
        return invoice

    def lock_invoices(self, invoice_ids: List[UUID]) -> List[Invoice]:
        """Bloquea varias facturas en orden de id para evitar deadlocks"""
        unique_ids = sorted(set(invoice_ids), key=str)
        invoices = self.db.query(Invoice).filter(
            Invoice.id.in_(unique_ids)
        ).order_by(Invoice.id).with_for_update().populate_existing().all()
        found = {inv.id for inv in invoices}
        missing = [str(i) for i in unique_ids if i not in found]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Facturas no encontradas: {', '.join(missing)}"
            )
        return invoices

    def apply_status(self, invoice: Invoice, ledger: InvoiceLedger, today: Optional[date] = None) -> InvoiceStatus:
        """Actualiza invoice.status según el saldo; devuelve el nuevo estado"""
        new_status = ledger.status(invoice.flight_date, today)
        if invoice.status != new_status:
            logger.info(
                f"Invoice {invoice.invoice_number}: {invoice.status.value} -> {new_status.value} "
                f"(balance {ledger.balance})"
            )
            invoice.status = new_status
        return new_status

    def list_invoices(self, filters: InvoiceFilters, limit: int = 100, offset: int = 0) -> InvoiceList:
        query = self.db.query(Invoice)

        if filters.type:
            query = query.filter(Invoice.type == filters.type)
        if filters.status:
            query = query.filter(Invoice.status == filters.status)
        if filters.customer_id:
            query = query.filter(Invoice.customer_id == filters.customer_id)
        if filters.farm_id:
            query = query.filter(Invoice.farm_id == filters.farm_id)
        if filters.date_from:
            query = query.filter(Invoice.flight_date >= filters.date_from)
        if filters.date_to:
            query = query.filter(Invoice.flight_date <= filters.date_to)
        if filters.search:
            like = f"%{filters.search}%"
            query = query.filter(or_(
                Invoice.invoice_number.ilike(like),
                Invoice.master_awb.ilike(like),
                Invoice.house_awb.ilike(like),
                Invoice.reference.ilike(like)
            ))

        total = query.count()
        items = query.order_by(Invoice.flight_date.desc(), Invoice.invoice_number).offset(offset).limit(limit).all()
        return InvoiceList(items=items, total=total, limit=limit, offset=offset)

    def get_invoice_summary(self, invoice_id: UUID) -> InvoiceSummary:
        invoice = self.get_invoice_by_id(invoice_id)
        ledger = InvoiceLedger.load(self.db, invoice)
        return InvoiceSummary(
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            status=invoice.status,
            subtotal=ledger.subtotal,
            credits=ledger.credits,
            debits=ledger.debits,
            charge=ledger.charge,
            paid=ledger.paid,
            balance=ledger.balance,
            due_date=due_date_for(invoice.flight_date)
        )

    def delete_invoice(self, invoice_id: UUID) -> None:
        """Eliminar factura junto con sus pagos y notas"""
        def work():
            invoice = self.lock_invoice(invoice_id)
            self.db.delete(invoice)
            return invoice.invoice_number

        number = commit_or_raise(self.db, work, "delete_invoice", "Error eliminando factura")
        logger.info(f"Invoice {number} deleted")

    def refresh_statuses(self, today: Optional[date] = None) -> StatusRefreshResult:
        """
        Re-deriva el estado de todas las facturas.

        Las facturas pendientes pasan a vencidas cuando la fecha de vuelo más el
        plazo queda en el pasado; nada cambia si el saldo ya está cubierto.
        """
        today = today or date.today()

        def work():
            invoices = self.db.query(Invoice).options(
                selectinload(Invoice.line_items).selectinload(InvoiceLineItem.bunches)
            ).with_for_update().all()
            updated = 0
            for invoice in invoices:
                previous = invoice.status
                ledger = InvoiceLedger.load(self.db, invoice)
                if self.apply_status(invoice, ledger, today) != previous:
                    updated += 1
            return StatusRefreshResult(checked=len(invoices), updated=updated, as_of=today)

        result = commit_or_raise(self.db, work, "refresh_statuses", "Error actualizando estados")
        logger.info(f"Status refresh as of {today}: {result.updated}/{result.checked} invoices updated")
        return result


def invoice_types_for(side: str) -> List[InvoiceType]:
    """Tipos de factura que participan en cartera de venta o de compra"""
    if side == "purchase":
        return [InvoiceType.PURCHASE, InvoiceType.BOTH]
    return [InvoiceType.SALE, InvoiceType.BOTH]
