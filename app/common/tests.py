"""
Tests para la ejecución transaccional

- Clasificación de errores transitorios
- Reintentos acotados, 409 al agotarlos
- Rollback y 500 ante errores no transitorios
"""

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import OperationalError

from app.common.transactions import (
    TransactionConflictError, commit_or_raise, is_transient, run_in_transaction
)
from app.core.config import settings
from app.modules.contacts.models import Customer


class DriverError(Exception):
    """Error del driver con el SQLSTATE que expone psycopg2"""

    def __init__(self, pgcode=None):
        super().__init__(f"driver error {pgcode}")
        self.pgcode = pgcode


def db_error(pgcode=None, connection_invalidated=False):
    return OperationalError(
        "UPDATE invoices SET status = ...", {}, DriverError(pgcode),
        connection_invalidated=connection_invalidated
    )


@pytest.fixture
def no_backoff(monkeypatch):
    monkeypatch.setattr("app.common.transactions.time.sleep", lambda seconds: None)


class FlakyWork:
    """Agrega un cliente y falla las primeras `failures` veces"""

    def __init__(self, db, failures, error):
        self.db = db
        self.failures = failures
        self.error = error
        self.attempts = 0

    def __call__(self):
        self.attempts += 1
        self.db.add(Customer(name=f"Intento {self.attempts}"))
        self.db.flush()
        if self.attempts <= self.failures:
            raise self.error
        return "ok"


class TestIsTransient:
    """Tests para la clasificación de conflictos"""

    def test_serialization_failure(self):
        assert is_transient(db_error("40001"))

    def test_deadlock(self):
        assert is_transient(db_error("40P01"))

    def test_invalidated_connection(self):
        assert is_transient(db_error(connection_invalidated=True))

    def test_permanent_operational_error(self):
        # p. ej. tabla inexistente o credenciales inválidas
        assert not is_transient(db_error("42P01"))
        assert not is_transient(db_error())

    def test_non_database_error(self):
        assert not is_transient(ValueError("boom"))


class TestRunInTransaction:
    """Tests para run_in_transaction y commit_or_raise"""

    def test_retries_until_success(self, db_session, no_backoff):
        work = FlakyWork(db_session, failures=2, error=db_error("40001"))

        assert run_in_transaction(db_session, work) == "ok"

        assert work.attempts == 3
        # los intentos fallidos se revierten; solo queda el último
        assert [c.name for c in db_session.query(Customer).all()] == ["Intento 3"]

    def test_exhausted_retries_raise_conflict(self, db_session, no_backoff):
        work = FlakyWork(db_session, failures=99, error=db_error("40P01"))

        with pytest.raises(TransactionConflictError):
            run_in_transaction(db_session, work)

        assert work.attempts == settings.TRANSACTION_MAX_RETRIES

    def test_exhausted_retries_map_to_409(self, db_session, no_backoff):
        work = FlakyWork(db_session, failures=99, error=db_error("40001"))

        with pytest.raises(HTTPException) as exc_info:
            commit_or_raise(db_session, work, "test_op", "Error de prueba")

        assert exc_info.value.status_code == 409
        assert work.attempts == 3
        assert db_session.query(Customer).count() == 0

    def test_non_transient_error_rolls_back_with_500(self, db_session, no_backoff):
        work = FlakyWork(db_session, failures=1, error=RuntimeError("boom"))

        with pytest.raises(HTTPException) as exc_info:
            commit_or_raise(db_session, work, "test_op", "Error de prueba")

        assert exc_info.value.status_code == 500
        assert work.attempts == 1
        assert db_session.query(Customer).count() == 0

    def test_permanent_operational_error_is_not_retried(self, db_session, no_backoff):
        work = FlakyWork(db_session, failures=1, error=db_error("42P01"))

        with pytest.raises(HTTPException) as exc_info:
            commit_or_raise(db_session, work, "test_op", "Error de prueba")

        assert exc_info.value.status_code == 500
        assert work.attempts == 1
        assert db_session.query(Customer).count() == 0

    def test_http_exception_passes_through(self, db_session):
        work = FlakyWork(
            db_session, failures=1,
            error=HTTPException(status_code=404, detail="Factura no encontrada")
        )

        with pytest.raises(HTTPException) as exc_info:
            commit_or_raise(db_session, work, "test_op", "Error de prueba")

        assert exc_info.value.status_code == 404
        assert exc_info.value.detail == "Factura no encontrada"
        assert db_session.query(Customer).count() == 0
