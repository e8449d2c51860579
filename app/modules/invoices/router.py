from fastapi import APIRouter, Depends, status, Query, Response
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
from datetime import date

from app.database.database import get_db
from app.modules.invoices.service import InvoiceService
from app.modules.invoices.schemas import (
    InvoiceCreate, InvoiceOut, InvoiceDetail, InvoiceList, InvoiceFilters,
    InvoiceStatus, InvoiceType, InvoiceSummary, StatusRefreshResult
)

# Router principal del módulo de facturas
router = APIRouter(prefix="/invoices", tags=["Invoices"])


@router.post("/", response_model=InvoiceDetail, status_code=status.HTTP_201_CREATED)
def create_invoice(invoice_data: InvoiceCreate, db: Session = Depends(get_db)):
    """
    Crear una nueva factura de venta, compra o ambas

    El estado inicial se deriva del saldo y de la fecha de vuelo.
    """
    service = InvoiceService(db)
    return service.create_invoice(invoice_data)


@router.get("/", response_model=InvoiceList)
def list_invoices(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    start_date: Optional[date] = Query(None, description="Fecha de vuelo inicial (YYYY-MM-DD)"),
    end_date: Optional[date] = Query(None, description="Fecha de vuelo final (YYYY-MM-DD)"),
    customer_id: Optional[UUID] = Query(None, description="Filtrar por cliente"),
    farm_id: Optional[UUID] = Query(None, description="Filtrar por finca"),
    type: Optional[InvoiceType] = Query(None, description="sale, purchase o both"),
    status: Optional[InvoiceStatus] = Query(None, description="Estado de la factura"),
    search: Optional[str] = Query(None, description="Buscar por número, AWB o referencia"),
    db: Session = Depends(get_db)
):
    """Listar facturas con filtros"""
    service = InvoiceService(db)
    filters = InvoiceFilters(
        type=type,
        status=status,
        customer_id=customer_id,
        farm_id=farm_id,
        date_from=start_date,
        date_to=end_date,
        search=search
    )
    return service.list_invoices(filters, limit, offset)


@router.post("/refresh-status", response_model=StatusRefreshResult)
def refresh_invoice_statuses(
    as_of: Optional[date] = Query(None, description="Fecha de corte (por defecto hoy)"),
    db: Session = Depends(get_db)
):
    """Re-derivar el estado (pendiente/vencida/pagada) de todas las facturas"""
    return InvoiceService(db).refresh_statuses(as_of)


@router.get("/{invoice_id}", response_model=InvoiceDetail)
def get_invoice(invoice_id: UUID, db: Session = Depends(get_db)):
    """Obtener detalles completos de una factura"""
    return InvoiceService(db).get_invoice_by_id(invoice_id)


@router.get("/{invoice_id}/summary", response_model=InvoiceSummary)
def get_invoice_summary(invoice_id: UUID, db: Session = Depends(get_db)):
    """Subtotal, notas, pagos y saldo de la factura"""
    return InvoiceService(db).get_invoice_summary(invoice_id)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_invoice(invoice_id: UUID, db: Session = Depends(get_db)):
    """Eliminar una factura con sus pagos y notas"""
    InvoiceService(db).delete_invoice(invoice_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
