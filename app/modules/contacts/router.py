"""
Router para el módulo de Contactos

Endpoints REST para clientes y fincas.
"""

from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from app.database.database import get_db
from app.modules.contacts.service import ContactService
from app.modules.contacts.schemas import (
    CustomerCreate, CustomerOut, CustomerList,
    FarmCreate, FarmOut, FarmList
)

router = APIRouter(
    prefix="/contacts",
    tags=["Contacts"],
    responses={404: {"description": "Not found"}}
)


# ===== CUSTOMERS =====

@router.post("/customers", response_model=CustomerOut, status_code=status.HTTP_201_CREATED)
def create_customer(customer_data: CustomerCreate, db: Session = Depends(get_db)):
    """Crear un nuevo cliente"""
    return ContactService(db).create_customer(customer_data)


@router.get("/customers", response_model=CustomerList)
def list_customers(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    search: Optional[str] = Query(None, description="Búsqueda por nombre o documento"),
    db: Session = Depends(get_db)
):
    return ContactService(db).list_customers(search, limit, offset)


@router.get("/customers/{customer_id}", response_model=CustomerOut)
def get_customer(customer_id: UUID, db: Session = Depends(get_db)):
    return ContactService(db).get_customer_by_id(customer_id)


# ===== FARMS =====

@router.post("/farms", response_model=FarmOut, status_code=status.HTTP_201_CREATED)
def create_farm(farm_data: FarmCreate, db: Session = Depends(get_db)):
    """Crear una nueva finca proveedora"""
    return ContactService(db).create_farm(farm_data)


@router.get("/farms", response_model=FarmList)
def list_farms(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    search: Optional[str] = Query(None, description="Búsqueda por nombre"),
    db: Session = Depends(get_db)
):
    return ContactService(db).list_farms(search, limit, offset)


@router.get("/farms/{farm_id}", response_model=FarmOut)
def get_farm(farm_id: UUID, db: Session = Depends(get_db)):
    return ContactService(db).get_farm_by_id(farm_id)
