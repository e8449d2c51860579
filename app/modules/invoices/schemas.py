from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime
from app.modules.invoices.models import InvoiceType, InvoiceStatus, BoxType


# Bunch Item Schemas
class BunchItemCreate(BaseModel):
    product: Optional[str] = Field(None, max_length=100)
    variety: Optional[str] = Field(None, max_length=100)
    length: Optional[int] = Field(None, ge=0)
    stems_per_bunch: int = Field(..., gt=0, description="Tallos por ramo")
    bunches: int = Field(..., gt=0, description="Cantidad de ramos")
    purchase_price: Decimal = Field(Decimal("0"), ge=0, description="Precio por tallo a la finca")
    sale_price: Decimal = Field(Decimal("0"), ge=0, description="Precio por tallo al cliente")


class BunchItemOut(BunchItemCreate):
    id: UUID

    model_config = ConfigDict(from_attributes=True)


# Invoice Line Item Schemas
class InvoiceLineItemCreate(BaseModel):
    box_type: BoxType = BoxType.QB
    box_count: int = Field(1, gt=0)
    bunches_per_box: int = Field(0, ge=0)
    product: str = Field(..., min_length=1, max_length=100)
    variety: Optional[str] = Field(None, max_length=100)
    length: Optional[int] = Field(None, ge=0)
    bunches: List[BunchItemCreate] = Field(..., min_length=1, description="Debe incluir al menos un ramo")


class InvoiceLineItemOut(BaseModel):
    id: UUID
    box_type: BoxType
    box_count: int
    bunches_per_box: int
    product: str
    variety: Optional[str] = None
    length: Optional[int] = None
    bunches: List[BunchItemOut]

    model_config = ConfigDict(from_attributes=True)


# Invoice Schemas
class InvoiceCreate(BaseModel):
    invoice_number: str = Field(..., min_length=1, max_length=50)
    type: InvoiceType = InvoiceType.SALE
    customer_id: UUID
    farm_id: Optional[UUID] = None
    farm_departure_date: Optional[date] = None
    flight_date: date
    seller: Optional[str] = Field(None, max_length=150)
    carrier: Optional[str] = Field(None, max_length=150)
    country: Optional[str] = Field(None, max_length=100)
    reference: Optional[str] = Field(None, max_length=100)
    master_awb: Optional[str] = Field(None, max_length=50)
    house_awb: Optional[str] = Field(None, max_length=50)
    items: List[InvoiceLineItemCreate] = Field(..., min_length=1, description="Debe incluir al menos un item")

    @field_validator('invoice_number')
    @classmethod
    def strip_number(cls, v):
        return v.strip()

    @model_validator(mode='after')
    def validate_purchase_farm(self):
        if self.type in (InvoiceType.PURCHASE, InvoiceType.BOTH) and not self.farm_id:
            raise ValueError('Las facturas de compra requieren una finca')
        if self.farm_departure_date and self.farm_departure_date > self.flight_date:
            raise ValueError('La fecha de salida de finca no puede ser posterior a la fecha de vuelo')
        return self


class InvoiceOut(BaseModel):
    id: UUID
    invoice_number: str
    type: InvoiceType
    status: InvoiceStatus
    customer_id: UUID
    farm_id: Optional[UUID] = None
    farm_departure_date: Optional[date] = None
    flight_date: date
    seller: Optional[str] = None
    carrier: Optional[str] = None
    country: Optional[str] = None
    reference: Optional[str] = None
    master_awb: Optional[str] = None
    house_awb: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InvoiceDetail(InvoiceOut):
    line_items: List[InvoiceLineItemOut] = []


class InvoiceList(BaseModel):
    items: List[InvoiceOut]
    total: int
    limit: int
    offset: int


class InvoiceFilters(BaseModel):
    type: Optional[InvoiceType] = None
    status: Optional[InvoiceStatus] = None
    customer_id: Optional[UUID] = None
    farm_id: Optional[UUID] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    search: Optional[str] = None


class InvoiceSummary(BaseModel):
    """Cifras de cartera de una factura"""
    invoice_id: UUID
    invoice_number: str
    status: InvoiceStatus
    subtotal: Decimal
    credits: Decimal
    debits: Decimal
    charge: Decimal
    paid: Decimal
    balance: Decimal
    due_date: date


class StatusRefreshResult(BaseModel):
    checked: int
    updated: int
    as_of: date
