"""
Modelos SQLAlchemy para el módulo de Contactos

Terceros de la exportadora:
- Customers: importadores a quienes se factura la venta de flor
- Farms (fincas): proveedores de quienes se compra la flor

Las facturas referencian un cliente y una finca; una misma factura
puede ser de venta, de compra o ambas.
"""

from app.database.database import Base
from sqlalchemy import Column, String, Numeric, Integer, Text
from sqlalchemy.orm import relationship
from app.common.mixins import BaseMixin


class Customer(Base, BaseMixin):
    """
    Clientes (importadores)

    Incluye plazo de pago (días) y cupo de crédito informativos.
    """
    __tablename__ = "customers"

    name = Column(String(200), nullable=False, index=True)
    tax_id = Column(String(50), nullable=True, index=True)  # Cédula / RUC / Tax ID
    country = Column(String(100), nullable=True)
    state_city = Column(String(150), nullable=True)
    address = Column(Text, nullable=True)
    email = Column(String(100), nullable=True)
    phone = Column(String(50), nullable=True)
    agency = Column(String(150), nullable=True)  # Agencia de carga
    seller = Column(String(150), nullable=True)

    payment_terms_days = Column(Integer, nullable=False, default=30)  # Plazo
    credit_limit = Column(Numeric(15, 2), nullable=True)  # Cupo

    # Relationships
    invoices = relationship("Invoice", back_populates="customer")


class Farm(Base, BaseMixin):
    """Fincas proveedoras"""
    __tablename__ = "farms"

    name = Column(String(200), nullable=False, index=True)
    address = Column(Text, nullable=True)
    phone = Column(String(50), nullable=True)
    tax_id = Column(String(50), nullable=True)
    product_type = Column(String(100), nullable=True)  # rosas, gypsophila, etc.

    # Relationships
    invoices = relationship("Invoice", back_populates="farm")
