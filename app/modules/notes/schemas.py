from pydantic import BaseModel, ConfigDict, Field
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime

from app.modules.invoices.models import InvoiceStatus


class NoteCreate(BaseModel):
    invoice_id: UUID
    amount: Decimal = Field(..., gt=0, decimal_places=2, description="Monto de la nota")
    reason: Optional[str] = Field(None, max_length=255)
    note_date: date = Field(default_factory=date.today)


class NoteOut(BaseModel):
    id: UUID
    invoice_id: UUID
    amount: Decimal
    reason: Optional[str] = None
    note_date: date
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NoteResult(NoteOut):
    """Nota creada junto con el estado resultante de la factura"""
    invoice_status: InvoiceStatus
    invoice_balance: Decimal


class NoteList(BaseModel):
    items: List[NoteOut]
    total: int
    limit: int
    offset: int
