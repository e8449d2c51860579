"""
Fixtures compartidas para los tests de los módulos

Base de datos SQLite en memoria (StaticPool: una sola conexión compartida) y
TestClient con la dependencia get_db sobrescrita.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"

import pytest
from datetime import date, timedelta
from decimal import Decimal
from fastapi.testclient import TestClient

from app.main import app
from app.database.database import Base, SessionLocal, sync_engine, get_db
from app.modules.contacts.models import Customer, Farm
from app.modules.invoices.models import InvoiceType
from app.modules.invoices.schemas import InvoiceCreate
from app.modules.invoices.service import InvoiceService


@pytest.fixture
def database():
    Base.metadata.create_all(bind=sync_engine)
    yield
    Base.metadata.drop_all(bind=sync_engine)


@pytest.fixture
def db_session(database):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def today():
    return date.today()


@pytest.fixture
def customer(db_session):
    customer = Customer(
        name="Blooming Imports LLC",
        tax_id="US-554433",
        country="USA",
        state_city="Miami, FL",
        email="ap@bloomingimports.com",
        agency="Fresh Cargo",
        credit_limit=Decimal("1000.00")
    )
    db_session.add(customer)
    db_session.commit()
    db_session.refresh(customer)
    return customer


@pytest.fixture
def farm(db_session):
    farm = Farm(name="Finca La Esperanza", tax_id="1790011223001", product_type="Rosas")
    db_session.add(farm)
    db_session.commit()
    db_session.refresh(farm)
    return farm


@pytest.fixture
def make_invoice(db_session, customer, farm, today):
    """
    Crea facturas de prueba con una caja y un ramo.

    Por defecto 25 tallos x 4 ramos = 100 tallos; a precio de venta 1.00 el
    subtotal es 100.00 y a precio de compra 0.50 es 50.00.
    """
    service = InvoiceService(db_session)

    def _make(
        number="INV-001",
        flight_date=None,
        type=InvoiceType.SALE,
        sale_price="1.00",
        purchase_price="0.50",
        stems_per_bunch=25,
        bunches=4,
    ):
        data = InvoiceCreate(
            invoice_number=number,
            type=type,
            customer_id=customer.id,
            farm_id=farm.id,
            flight_date=flight_date or today,
            carrier="Fresh Cargo",
            items=[{
                "box_type": "qb",
                "box_count": 1,
                "bunches_per_box": bunches,
                "product": "Rosa",
                "variety": "Freedom",
                "length": 60,
                "bunches": [{
                    "product": "Rosa",
                    "variety": "Freedom",
                    "length": 60,
                    "stems_per_bunch": stems_per_bunch,
                    "bunches": bunches,
                    "purchase_price": purchase_price,
                    "sale_price": sale_price,
                }],
            }],
        )
        return service.create_invoice(data)

    return _make


@pytest.fixture
def overdue_date(today):
    """Fecha de vuelo con el plazo de 30 días ya vencido"""
    return today - timedelta(days=45)
