from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
from datetime import date

from app.database.database import get_db
from app.modules.statements.service import StatementService
from app.modules.statements.schemas import CustomerStatement, FarmStatement

router = APIRouter(prefix="/statements", tags=["Account Statements"])


@router.get("/customers/{customer_id}", response_model=CustomerStatement)
def get_customer_statement(
    customer_id: UUID,
    as_of: Optional[date] = Query(None, description="Fecha de corte (por defecto hoy)"),
    db: Session = Depends(get_db)
):
    """
    Estado de cuenta del cliente (cuentas por cobrar).

    Incluye cada factura de venta con su saldo y estado, y los totales:
    saldo pendiente y pago urgente (saldo de facturas vencidas).
    """
    return StatementService(db).customer_statement(customer_id, as_of)


@router.get("/farms/{farm_id}", response_model=FarmStatement)
def get_farm_statement(
    farm_id: UUID,
    as_of: Optional[date] = Query(None, description="Fecha de corte (por defecto hoy)"),
    db: Session = Depends(get_db)
):
    """Estado de cuenta de la finca (cuentas por pagar, a precio de compra)"""
    return StatementService(db).farm_statement(farm_id, as_of)
