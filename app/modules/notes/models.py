"""
Modelos SQLAlchemy para notas crédito y débito

- CreditNote: reduce el monto adeudado de una factura
- DebitNote: incrementa el monto adeudado de una factura

Las notas son inmutables: solo se crean o eliminan.
"""

from app.database.database import Base
from sqlalchemy import Column, String, ForeignKey, Numeric, Date, Uuid
from sqlalchemy.orm import relationship
from datetime import date
from app.common.mixins import BaseMixin


class CreditNote(Base, BaseMixin):
    __tablename__ = "credit_notes"

    invoice_id = Column(Uuid(as_uuid=True), ForeignKey("invoices.id"), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    reason = Column(String(255), nullable=True)
    note_date = Column(Date, nullable=False, default=date.today)

    invoice = relationship("Invoice", back_populates="credit_notes")


class DebitNote(Base, BaseMixin):
    __tablename__ = "debit_notes"

    invoice_id = Column(Uuid(as_uuid=True), ForeignKey("invoices.id"), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    reason = Column(String(255), nullable=True)
    note_date = Column(Date, nullable=False, default=date.today)

    invoice = relationship("Invoice", back_populates="debit_notes")
