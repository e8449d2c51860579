from fastapi import APIRouter, Depends, status, Query, Response
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
from datetime import date

from app.database.database import get_db
from app.modules.payments.service import PaymentService
from app.modules.payments.schemas import (
    PaymentCreate, PaymentResult, PaymentOut, PaymentList,
    BulkPaymentCreate, BulkPaymentResult, OpenInvoiceList
)

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/", response_model=PaymentResult, status_code=status.HTTP_201_CREATED)
def create_payment(payment_data: PaymentCreate, db: Session = Depends(get_db)):
    """
    Registrar un pago contra una factura.

    El monto completo se registra aunque exceda el saldo; la respuesta incluye
    el estado y saldo resultantes de la factura.
    """
    service = PaymentService(db)
    return service.add_payment(payment_data.invoice_id, payment_data)


@router.post("/bulk", response_model=BulkPaymentResult, status_code=status.HTTP_201_CREATED)
def create_bulk_payment(bulk_data: BulkPaymentCreate, db: Session = Depends(get_db)):
    """
    Pago masivo: distribuye el monto entre las facturas seleccionadas,
    cubriendo primero la de fecha de vuelo más antigua.

    Si el monto supera la suma de saldos, el excedente se devuelve en
    `unapplied_amount` junto con una advertencia.
    """
    service = PaymentService(db)
    return service.add_bulk_payment(bulk_data)


@router.get("/", response_model=PaymentList)
def list_payments(
    invoice_id: Optional[UUID] = Query(None, description="Filtrar por factura"),
    date_from: Optional[date] = Query(None, description="Fecha de pago desde"),
    date_to: Optional[date] = Query(None, description="Fecha de pago hasta"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    service = PaymentService(db)
    return service.list_payments(invoice_id, date_from, date_to, limit, offset)


@router.get("/open-invoices", response_model=OpenInvoiceList)
def get_open_invoices(
    customer_id: Optional[UUID] = Query(None, description="Cliente (cuentas por cobrar)"),
    farm_id: Optional[UUID] = Query(None, description="Finca (cuentas por pagar)"),
    db: Session = Depends(get_db)
):
    """Facturas con saldo pendiente, candidatas para pago masivo"""
    service = PaymentService(db)
    return service.get_open_invoices(customer_id=customer_id, farm_id=farm_id)


@router.get("/invoice/{invoice_id}", response_model=List[PaymentOut])
def get_invoice_payments(invoice_id: UUID, db: Session = Depends(get_db)):
    service = PaymentService(db)
    return service.get_invoice_payments(invoice_id)


@router.delete("/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_payment(payment_id: UUID, db: Session = Depends(get_db)):
    service = PaymentService(db)
    service.delete_payment(payment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
