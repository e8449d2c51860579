from fastapi import APIRouter, Depends, status, Query, Response
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from app.database.database import get_db
from app.modules.notes.models import CreditNote, DebitNote
from app.modules.notes.service import NoteService
from app.modules.notes.schemas import NoteCreate, NoteList, NoteResult

router = APIRouter(prefix="/notes", tags=["Credit & Debit Notes"])


# ===== NOTAS CRÉDITO =====

@router.post("/credit", response_model=NoteResult, status_code=status.HTTP_201_CREATED)
def create_credit_note(note_data: NoteCreate, db: Session = Depends(get_db)):
    """Registrar nota crédito (reduce el monto adeudado)"""
    return NoteService(db, CreditNote).create_note(note_data)


@router.get("/credit", response_model=NoteList)
def list_credit_notes(
    invoice_id: Optional[UUID] = Query(None, description="Filtrar por factura"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    return NoteService(db, CreditNote).list_notes(invoice_id, limit, offset)


@router.delete("/credit/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_credit_note(note_id: UUID, db: Session = Depends(get_db)):
    NoteService(db, CreditNote).delete_note(note_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ===== NOTAS DÉBITO =====

@router.post("/debit", response_model=NoteResult, status_code=status.HTTP_201_CREATED)
def create_debit_note(note_data: NoteCreate, db: Session = Depends(get_db)):
    """Registrar nota débito (incrementa el monto adeudado)"""
    return NoteService(db, DebitNote).create_note(note_data)


@router.get("/debit", response_model=NoteList)
def list_debit_notes(
    invoice_id: Optional[UUID] = Query(None, description="Filtrar por factura"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    return NoteService(db, DebitNote).list_notes(invoice_id, limit, offset)


@router.delete("/debit/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_debit_note(note_id: UUID, db: Session = Depends(get_db)):
    NoteService(db, DebitNote).delete_note(note_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
