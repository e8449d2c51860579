"""
Esquemas Pydantic para el módulo de Contactos
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import datetime


# ===== CUSTOMERS =====

class CustomerBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, description="Nombre del cliente")
    tax_id: Optional[str] = Field(None, max_length=50, description="Cédula, RUC o Tax ID")
    country: Optional[str] = Field(None, max_length=100)
    state_city: Optional[str] = Field(None, max_length=150)
    address: Optional[str] = None
    email: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    agency: Optional[str] = Field(None, max_length=150)
    seller: Optional[str] = Field(None, max_length=150)
    payment_terms_days: int = Field(30, ge=0, le=365, description="Plazo de pago en días")
    credit_limit: Optional[Decimal] = Field(None, ge=0, description="Cupo de crédito")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        if v and v.strip():
            if '@' not in v or '.' not in v:
                raise ValueError('Email debe tener formato válido')
        return v


class CustomerCreate(CustomerBase):
    pass


class CustomerOut(CustomerBase):
    id: UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CustomerList(BaseModel):
    items: List[CustomerOut]
    total: int
    limit: int
    offset: int


# ===== FARMS =====

class FarmBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, description="Nombre de la finca")
    address: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=50)
    tax_id: Optional[str] = Field(None, max_length=50)
    product_type: Optional[str] = Field(None, max_length=100)


class FarmCreate(FarmBase):
    pass


class FarmOut(FarmBase):
    id: UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FarmList(BaseModel):
    items: List[FarmOut]
    total: int
    limit: int
    offset: int
