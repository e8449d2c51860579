"""
Pydantic schemas para estados de cuenta
"""

from datetime import date
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.modules.contacts.schemas import CustomerOut, FarmOut
from app.modules.invoices.models import InvoiceStatus, InvoiceType


class StatementLine(BaseModel):
    """Una factura dentro del estado de cuenta"""
    invoice_id: UUID
    invoice_number: str
    type: InvoiceType
    flight_date: date
    due_date: date
    days_overdue: int = Field(0, description="Días transcurridos desde el vencimiento")
    status: InvoiceStatus
    subtotal: Decimal
    credits: Decimal
    debits: Decimal
    charge: Decimal = Field(description="Subtotal - notas crédito + notas débito")
    paid: Decimal
    balance: Decimal


class StatementTotals(BaseModel):
    total_charge: Decimal
    total_credits: Decimal
    total_debits: Decimal
    total_paid: Decimal
    outstanding: Decimal = Field(description="Suma de saldos pendientes")
    urgent_payment: Decimal = Field(description="Suma de saldos de facturas vencidas")
    overdue_invoices: int
    open_invoices: int


class CustomerStatement(BaseModel):
    customer: CustomerOut
    as_of: date
    lines: List[StatementLine]
    totals: StatementTotals
    credit_available: Optional[Decimal] = Field(None, description="Cupo menos saldo pendiente")


class FarmStatement(BaseModel):
    farm: FarmOut
    as_of: date
    lines: List[StatementLine]
    totals: StatementTotals
