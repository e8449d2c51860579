from pydantic import BaseModel, ConfigDict, Field, field_validator
from decimal import Decimal
from typing import Optional, List, Literal
from uuid import UUID
from datetime import date, datetime

from app.modules.invoices.models import InvoiceStatus, InvoiceType
from app.modules.payments.models import PaymentMethod


class PaymentDetails(BaseModel):
    """Datos comunes a un pago simple o masivo"""
    payment_date: date = Field(default_factory=date.today)
    method: PaymentMethod = PaymentMethod.TRANSFER
    reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None
    side: Optional[Literal["sale", "purchase"]] = Field(
        None, description="sale: cobro al cliente, purchase: pago a la finca (por defecto según el tipo de factura)"
    )


class PaymentCreate(PaymentDetails):
    invoice_id: UUID
    amount: Decimal = Field(..., gt=0, decimal_places=2, description="Monto del pago")


class PaymentOut(BaseModel):
    id: UUID
    invoice_id: UUID
    side: str
    amount: Decimal
    method: PaymentMethod
    reference: Optional[str] = None
    payment_date: date
    notes: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentResult(PaymentOut):
    """Pago registrado con el estado resultante de la factura"""
    invoice_status: InvoiceStatus
    invoice_balance: Decimal


class PaymentList(BaseModel):
    items: List[PaymentOut]
    total: int
    limit: int
    offset: int


class BulkPaymentCreate(PaymentDetails):
    invoice_ids: List[UUID] = Field(..., min_length=1, description="Facturas seleccionadas")
    amount: Decimal = Field(..., gt=0, decimal_places=2, description="Monto total a distribuir")

    @field_validator('invoice_ids')
    @classmethod
    def validate_unique_ids(cls, v):
        if len(set(v)) != len(v):
            raise ValueError('Las facturas seleccionadas no pueden repetirse')
        return v


class AllocationOut(BaseModel):
    invoice_id: UUID
    invoice_number: str
    payment_id: UUID
    applied: Decimal
    balance_before: Decimal
    balance_after: Decimal
    status: InvoiceStatus


class BulkPaymentResult(BaseModel):
    total_amount: Decimal
    applied_amount: Decimal
    unapplied_amount: Decimal
    allocations: List[AllocationOut]
    warnings: List[str] = []


class OpenInvoice(BaseModel):
    """Factura candidata para pago masivo"""
    invoice_id: UUID
    invoice_number: str
    type: InvoiceType
    flight_date: date
    due_date: date
    status: InvoiceStatus
    charge: Decimal
    paid: Decimal
    balance: Decimal


class OpenInvoiceList(BaseModel):
    items: List[OpenInvoice]
    total_balance: Decimal
