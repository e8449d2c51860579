"""
Servicios de negocio para notas crédito y débito

Crear o eliminar una nota cambia el cargo de la factura, así que el estado
se re-deriva bajo el mismo bloqueo de fila que usan los pagos. Una nota
débito sobre una factura pagada la devuelve a pendiente (o vencida).
"""

from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from typing import Optional, Type, Union
from uuid import UUID
from datetime import date
import logging

from app.common.money import to_money
from app.common.transactions import commit_or_raise
from app.modules.invoices.ledger import InvoiceLedger
from app.modules.invoices.service import InvoiceService
from app.modules.notes.models import CreditNote, DebitNote
from app.modules.notes.schemas import NoteCreate, NoteList, NoteResult

logger = logging.getLogger(__name__)

NoteModel = Union[CreditNote, DebitNote]


class NoteService:
    """Servicio genérico para notas; `model` es CreditNote o DebitNote"""

    def __init__(self, db: Session, model: Type[NoteModel]):
        self.db = db
        self.model = model
        self.label = "crédito" if model is CreditNote else "débito"

    def create_note(self, note_data: NoteCreate, today: Optional[date] = None) -> NoteResult:
        """Registrar nota y re-derivar el estado de la factura"""
        if note_data.amount <= 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="El monto de la nota debe ser mayor a 0"
            )
        invoices = InvoiceService(self.db)

        def work():
            invoice = invoices.lock_invoice(note_data.invoice_id)
            note = self.model(
                invoice_id=invoice.id,
                amount=to_money(note_data.amount),
                reason=note_data.reason,
                note_date=note_data.note_date
            )
            self.db.add(note)
            self.db.flush()

            ledger = InvoiceLedger.load(self.db, invoice)
            new_status = invoices.apply_status(invoice, ledger, today)
            return note, new_status, ledger.balance

        note, new_status, balance = commit_or_raise(
            self.db, work, f"create_{self.model.__tablename__}", f"Error registrando nota {self.label}"
        )
        self.db.refresh(note)
        logger.info(f"Nota {self.label} {note.id} por {note.amount} registrada en factura {note.invoice_id}")
        return NoteResult(
            **self._note_fields(note),
            invoice_status=new_status,
            invoice_balance=balance
        )

    @staticmethod
    def _note_fields(note: NoteModel) -> dict:
        return {
            "id": note.id,
            "invoice_id": note.invoice_id,
            "amount": note.amount,
            "reason": note.reason,
            "note_date": note.note_date,
            "created_at": note.created_at,
        }

    def delete_note(self, note_id: UUID, today: Optional[date] = None) -> None:
        invoices = InvoiceService(self.db)

        def work():
            note = self.db.query(self.model).filter(self.model.id == note_id).first()
            if not note:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail=f"Nota {self.label} no encontrada"
                )
            invoice = invoices.lock_invoice(note.invoice_id)
            self.db.delete(note)
            self.db.flush()
            invoices.apply_status(invoice, InvoiceLedger.load(self.db, invoice), today)

        commit_or_raise(self.db, work, f"delete_{self.model.__tablename__}", f"Error eliminando nota {self.label}")
        logger.info(f"Nota {self.label} {note_id} eliminada")

    def list_notes(self, invoice_id: Optional[UUID] = None, limit: int = 100, offset: int = 0) -> NoteList:
        query = self.db.query(self.model)
        if invoice_id:
            query = query.filter(self.model.invoice_id == invoice_id)
        total = query.count()
        items = query.order_by(self.model.note_date.desc(), self.model.created_at.desc()).offset(offset).limit(limit).all()
        return NoteList(items=items, total=total, limit=limit, offset=offset)
