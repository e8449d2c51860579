"""
Servicios de negocio para el módulo de Contactos

Alta y consulta de clientes y fincas. Los demás módulos usan
`require_customer` / `require_farm` para validar referencias.
"""

from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
import logging

from app.common.transactions import commit_or_raise
from app.modules.contacts.models import Customer, Farm
from app.modules.contacts.schemas import CustomerCreate, CustomerList, FarmCreate, FarmList

logger = logging.getLogger(__name__)


class ContactService:
    """Servicio para clientes y fincas"""

    def __init__(self, db: Session):
        self.db = db

    # ===== CUSTOMERS =====

    def create_customer(self, customer_data: CustomerCreate) -> Customer:
        """Crear un nuevo cliente"""
        customer = Customer(**customer_data.model_dump())

        def work():
            self.db.add(customer)
            self.db.flush()
            return customer

        commit_or_raise(self.db, work, "create_customer", "Error creando cliente")
        self.db.refresh(customer)
        logger.info(f"Customer {customer.id} created: {customer.name}")
        return customer

    def get_customer_by_id(self, customer_id: UUID) -> Customer:
        customer = self.db.query(Customer).filter(Customer.id == customer_id).first()
        if not customer:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Cliente no encontrado"
            )
        return customer

    def list_customers(self, search: Optional[str] = None, limit: int = 100, offset: int = 0) -> CustomerList:
        query = self.db.query(Customer)
        if search:
            like = f"%{search}%"
            query = query.filter(Customer.name.ilike(like) | Customer.tax_id.ilike(like))
        total = query.count()
        items = query.order_by(Customer.name).offset(offset).limit(limit).all()
        return CustomerList(items=items, total=total, limit=limit, offset=offset)

    def require_customer(self, customer_id: UUID) -> Customer:
        """Valida referencia a cliente desde otros módulos (400 en vez de 404)"""
        customer = self.db.query(Customer).filter(Customer.id == customer_id).first()
        if not customer:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="El cliente especificado no existe"
            )
        return customer

    # ===== FARMS =====

    def create_farm(self, farm_data: FarmCreate) -> Farm:
        """Crear una nueva finca"""
        farm = Farm(**farm_data.model_dump())

        def work():
            self.db.add(farm)
            self.db.flush()
            return farm

        commit_or_raise(self.db, work, "create_farm", "Error creando finca")
        self.db.refresh(farm)
        logger.info(f"Farm {farm.id} created: {farm.name}")
        return farm

    def get_farm_by_id(self, farm_id: UUID) -> Farm:
        farm = self.db.query(Farm).filter(Farm.id == farm_id).first()
        if not farm:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Finca no encontrada"
            )
        return farm

    def list_farms(self, search: Optional[str] = None, limit: int = 100, offset: int = 0) -> FarmList:
        query = self.db.query(Farm)
        if search:
            query = query.filter(Farm.name.ilike(f"%{search}%"))
        total = query.count()
        items = query.order_by(Farm.name).offset(offset).limit(limit).all()
        return FarmList(items=items, total=total, limit=limit, offset=offset)

    def require_farm(self, farm_id: UUID) -> Farm:
        farm = self.db.query(Farm).filter(Farm.id == farm_id).first()
        if not farm:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="La finca especificada no existe"
            )
        return farm
