"""
Ejecución transaccional con reintentos ante conflictos transitorios
"""
import logging
import time
from typing import Callable, Optional, TypeVar

from fastapi import HTTPException, status
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# serialization_failure, deadlock_detected
TRANSIENT_SQLSTATES = {"40001", "40P01"}


class TransactionConflictError(Exception):
    """Se agotaron los reintentos ante un conflicto de escritura"""


def is_transient(exc: Exception) -> bool:
    """Conflictos de serialización, deadlocks y conexiones invalidadas"""
    if isinstance(exc, DBAPIError):
        orig = getattr(exc, "orig", None)
        code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
        return code in TRANSIENT_SQLSTATES or bool(exc.connection_invalidated)
    return False


def run_in_transaction(
    db: Session,
    work: Callable[[], T],
    max_attempts: Optional[int] = None,
    operation: str = "transaction",
) -> T:
    """
    Ejecuta ``work`` y confirma la transacción.

    Cualquier excepción revierte todo lo escrito por ``work``; los conflictos
    transitorios se reintentan hasta ``max_attempts`` veces, volviendo a
    ejecutar ``work`` desde cero (relee el estado bloqueado).
    """
    attempts = max_attempts or settings.TRANSACTION_MAX_RETRIES
    for attempt in range(1, attempts + 1):
        try:
            result = work()
            db.commit()
            return result
        except HTTPException:
            db.rollback()
            raise
        except DBAPIError as e:
            db.rollback()
            if not is_transient(e):
                raise
            if attempt >= attempts:
                logger.error(f"{operation}: conflict not resolved after {attempts} attempts: {e}")
                raise TransactionConflictError(str(e)) from e
            logger.warning(f"{operation}: transient conflict on attempt {attempt}/{attempts}, retrying")
            time.sleep(settings.TRANSACTION_RETRY_BACKOFF * attempt)
        except Exception:
            db.rollback()
            raise
    raise TransactionConflictError(operation)


def commit_or_raise(db: Session, work: Callable[[], T], operation: str, error_detail: str) -> T:
    """
    Envoltura de servicio: traduce fallas de la transacción a HTTPException.

    409 si el conflicto persiste tras los reintentos, 500 para cualquier otro error.
    """
    try:
        return run_in_transaction(db, work, operation=operation)
    except HTTPException:
        raise
    except IntegrityError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{error_detail}: violación de integridad ({e.orig})"
        )
    except TransactionConflictError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{error_detail}: conflicto de concurrencia, intente nuevamente"
        )
    except Exception as e:
        logger.exception(f"{operation} failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"{error_detail}: {str(e)}"
        )
