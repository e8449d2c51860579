from app.database.database import Base
from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Enum, Date, Text, Uuid
from sqlalchemy.orm import relationship
from uuid import uuid4
from app.common.mixins import BaseMixin, TimestampMixin
import enum


class InvoiceType(str, enum.Enum):
    SALE = "sale"          # Venta al cliente (cuentas por cobrar)
    PURCHASE = "purchase"  # Compra a la finca (cuentas por pagar)
    BOTH = "both"          # Documento que registra venta y compra


class InvoiceStatus(str, enum.Enum):
    PENDING = "pending"    # Con saldo, dentro del plazo
    OVERDUE = "overdue"    # Con saldo, plazo vencido
    PAID = "paid"          # Saldo <= tolerancia


class BoxType(str, enum.Enum):
    QB = "qb"  # Quarter box
    EB = "eb"  # Eighth box
    HB = "hb"  # Half box


class Invoice(Base, BaseMixin):
    __tablename__ = "invoices"

    # References
    customer_id = Column(Uuid(as_uuid=True), ForeignKey("customers.id"), nullable=False, index=True)
    farm_id = Column(Uuid(as_uuid=True), ForeignKey("farms.id"), nullable=True, index=True)

    # Invoice data
    invoice_number = Column(String(50), nullable=False, unique=True, index=True)
    type = Column(Enum(InvoiceType), nullable=False, default=InvoiceType.SALE)
    status = Column(Enum(InvoiceStatus), nullable=False, default=InvoiceStatus.PENDING, index=True)

    # Dates
    farm_departure_date = Column(Date, nullable=True)
    flight_date = Column(Date, nullable=False, index=True)  # Base del vencimiento

    # Logistics
    seller = Column(String(150), nullable=True)
    carrier = Column(String(150), nullable=True)  # Carguera
    country = Column(String(100), nullable=True)
    reference = Column(String(100), nullable=True)
    master_awb = Column(String(50), nullable=True)
    house_awb = Column(String(50), nullable=True)

    # Relationships
    customer = relationship("Customer", back_populates="invoices")
    farm = relationship("Farm", back_populates="invoices")
    line_items = relationship("InvoiceLineItem", back_populates="invoice", cascade="all, delete-orphan")
    payments = relationship("Payment", back_populates="invoice", cascade="all, delete-orphan")
    credit_notes = relationship("CreditNote", back_populates="invoice", cascade="all, delete-orphan")
    debit_notes = relationship("DebitNote", back_populates="invoice", cascade="all, delete-orphan")


class InvoiceLineItem(Base, TimestampMixin):
    __tablename__ = "invoice_line_items"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    invoice_id = Column(Uuid(as_uuid=True), ForeignKey("invoices.id"), nullable=False, index=True)

    box_type = Column(Enum(BoxType), nullable=False, default=BoxType.QB)
    box_count = Column(Integer, nullable=False, default=1)
    bunches_per_box = Column(Integer, nullable=False, default=0)
    product = Column(String(100), nullable=False)
    variety = Column(String(100), nullable=True)
    length = Column(Integer, nullable=True)  # cm

    # Relationships
    invoice = relationship("Invoice", back_populates="line_items")
    bunches = relationship("BunchItem", back_populates="line_item", cascade="all, delete-orphan")


class BunchItem(Base, TimestampMixin):
    """Sub-ítem de una caja: ramos con precio por tallo"""
    __tablename__ = "invoice_bunch_items"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    line_item_id = Column(Uuid(as_uuid=True), ForeignKey("invoice_line_items.id"), nullable=False, index=True)

    product = Column(String(100), nullable=True)
    variety = Column(String(100), nullable=True)
    length = Column(Integer, nullable=True)
    stems_per_bunch = Column(Integer, nullable=False)
    bunches = Column(Integer, nullable=False)
    purchase_price = Column(Numeric(15, 4), nullable=False, default=0)  # Precio por tallo a la finca
    sale_price = Column(Numeric(15, 4), nullable=False, default=0)      # Precio por tallo al cliente

    # Relationships
    line_item = relationship("InvoiceLineItem", back_populates="bunches")

    @property
    def stems(self) -> int:
        return (self.stems_per_bunch or 0) * (self.bunches or 0)
