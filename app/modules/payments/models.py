from app.database.database import Base
from sqlalchemy import Column, String, ForeignKey, Numeric, Enum, Date, Text, Uuid
from sqlalchemy.orm import relationship
from datetime import date
from app.common.mixins import BaseMixin
import enum


class PaymentMethod(str, enum.Enum):
    CASH = "cash"           # Efectivo
    TRANSFER = "transfer"   # Transferencia
    CARD = "card"           # Tarjeta
    CHECK = "check"         # Cheque
    OTHER = "other"         # Otro


class Payment(Base, BaseMixin):
    __tablename__ = "payments"

    invoice_id = Column(Uuid(as_uuid=True), ForeignKey("invoices.id"), nullable=False, index=True)

    # sale: cobro al cliente, purchase: pago a la finca
    side = Column(String(10), nullable=False, default="sale", index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    method = Column(Enum(PaymentMethod), nullable=False, default=PaymentMethod.TRANSFER)
    reference = Column(String(100), nullable=True)  # Número de transferencia, cheque, etc.
    payment_date = Column(Date, nullable=False, default=date.today)
    notes = Column(Text, nullable=True)

    # Relationships
    invoice = relationship("Invoice", back_populates="payments")
