"""
Tareas periódicas de Celery para la cartera de facturas.
"""
import logging
from datetime import date
from typing import Optional

from app.core.celery import celery_app
from app.database.database import SessionLocal
from app.modules.invoices.service import InvoiceService

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3)
def refresh_invoice_statuses(self, as_of: Optional[str] = None):
    """
    Re-deriva el estado de todas las facturas (pendiente → vencida).

    `as_of` es una fecha ISO opcional; por defecto se usa la fecha actual.
    """
    db = SessionLocal()
    try:
        today = date.fromisoformat(as_of) if as_of else None
        result = InvoiceService(db).refresh_statuses(today)
        return {"status": "success", **result.model_dump(mode="json")}

    except Exception as exc:
        logger.error(f"Invoice status refresh failed: {str(exc)}")

        # Retry with exponential backoff
        if self.request.retries < self.max_retries:
            raise self.retry(exc=exc, countdown=30 * (2 ** self.request.retries))

        return {"status": "failed", "error": str(exc)}
    finally:
        db.close()
