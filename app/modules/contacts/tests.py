"""
Tests para el módulo de Contactos

- Alta y consulta de clientes y fincas
- Validación de referencias desde otros módulos
- Endpoints API
"""

import pytest
from fastapi import HTTPException
from decimal import Decimal
from uuid import uuid4

from app.modules.contacts.schemas import CustomerCreate, FarmCreate
from app.modules.contacts.service import ContactService


@pytest.fixture
def sample_customer_data():
    return {
        "name": "Petals & Stems Inc.",
        "tax_id": "EIN-99-1234567",
        "country": "USA",
        "state_city": "New York, NY",
        "email": "billing@petalsandstems.com",
        "phone": "+1 212 555 0100",
        "agency": "Cargo Master",
        "seller": "Andrea",
        "payment_terms_days": 30,
        "credit_limit": "5000.00"
    }


# ===== TESTS DE SERVICIOS =====

class TestContactService:
    """Tests para ContactService"""

    def test_create_customer(self, db_session, sample_customer_data):
        service = ContactService(db_session)
        customer = service.create_customer(CustomerCreate(**sample_customer_data))

        assert customer.id is not None
        assert customer.name == "Petals & Stems Inc."
        assert customer.credit_limit == Decimal("5000.00")
        assert customer.created_at is not None

    def test_get_customer_not_found(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            ContactService(db_session).get_customer_by_id(uuid4())
        assert exc_info.value.status_code == 404

    def test_require_customer_is_bad_request(self, db_session):
        """Una referencia inválida desde otro módulo es un 400, no un 404"""
        with pytest.raises(HTTPException) as exc_info:
            ContactService(db_session).require_customer(uuid4())
        assert exc_info.value.status_code == 400

    def test_list_customers_with_search(self, db_session, sample_customer_data):
        service = ContactService(db_session)
        service.create_customer(CustomerCreate(**sample_customer_data))
        service.create_customer(CustomerCreate(**{**sample_customer_data, "name": "Tulip Traders", "tax_id": "T-1"}))

        result = service.list_customers(search="tulip")
        assert result.total == 1
        assert result.items[0].name == "Tulip Traders"

        result = service.list_customers(limit=1, offset=0)
        assert result.total == 2
        assert len(result.items) == 1

    def test_create_and_require_farm(self, db_session):
        service = ContactService(db_session)
        farm = service.create_farm(FarmCreate(name="Finca Rosaprima", product_type="Rosas"))

        assert service.require_farm(farm.id).name == "Finca Rosaprima"
        with pytest.raises(HTTPException) as exc_info:
            service.require_farm(uuid4())
        assert exc_info.value.status_code == 400

    def test_invalid_email_rejected(self, sample_customer_data):
        with pytest.raises(ValueError):
            CustomerCreate(**{**sample_customer_data, "email": "no-es-un-email"})


# ===== TESTS DE API ENDPOINTS =====

class TestContactAPI:
    """Tests de endpoints API"""

    def test_create_customer_endpoint(self, client, sample_customer_data):
        response = client.post("/contacts/customers", json=sample_customer_data)

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == sample_customer_data["name"]
        assert data["payment_terms_days"] == 30

    def test_get_customer_endpoint(self, client, customer):
        response = client.get(f"/contacts/customers/{customer.id}")

        assert response.status_code == 200
        assert response.json()["id"] == str(customer.id)

    def test_get_customer_not_found_endpoint(self, client):
        response = client.get(f"/contacts/customers/{uuid4()}")
        assert response.status_code == 404

    def test_list_farms_endpoint(self, client, farm):
        response = client.get("/contacts/farms")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["name"] == farm.name
        assert "limit" in data
        assert "offset" in data

    def test_create_farm_requires_name(self, client):
        response = client.post("/contacts/farms", json={"name": ""})
        assert response.status_code == 422
