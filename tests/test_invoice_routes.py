"""HTTP tests for the /api/v1/invoices endpoints over in-memory repositories."""

import uuid

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from jose import jwt

from app.api.v1 import v1_router
from app.api.v1.deps import CurrentUser, get_current_user, get_invoice_service
from app.config.settings import settings


@pytest.fixture
def api(make_service, business_id, user_id):
    service = make_service()
    app = FastAPI()
    app.include_router(v1_router)
    app.dependency_overrides[get_invoice_service] = lambda: service
    app.dependency_overrides[get_current_user] = lambda: CurrentUser(
        user_id=user_id, business_id=business_id,
    )
    return TestClient(app)


@pytest.fixture
def json_payload(create_payload):
    return {**create_payload, "invoice_date": create_payload["invoice_date"].isoformat()}


def _create(api, payload):
    resp = api.post("/api/v1/invoices", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def test_create_invoice(api, json_payload, user_id):
    resp = api.post("/api/v1/invoices", json=json_payload)
    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "ok"
    assert body["message"] == "Invoice created"

    data = body["data"]
    assert data["invoice_number"] == "INV-001"
    assert data["due_date"] == "2025-02-14"
    assert data["created_by"] == str(user_id)
    assert len(data["items"]) == 2
    # money travels as strings so no precision is lost
    assert data["total_amount"] in ("2188", "2188.00")
    assert data["cgst_amount"] in ("144", "144.00")


def test_create_rejects_negative_quantity(api, json_payload):
    json_payload["items"][0]["quantity"] = "-1"
    resp = api.post("/api/v1/invoices", json=json_payload)
    assert resp.status_code == 422


def test_create_rejects_rate_over_100(api, json_payload):
    json_payload["items"][0]["tax_rate"] = "101"
    resp = api.post("/api/v1/invoices", json=json_payload)
    assert resp.status_code == 422


def test_create_rejects_empty_items(api, json_payload):
    json_payload["items"] = []
    resp = api.post("/api/v1/invoices", json=json_payload)
    assert resp.status_code == 422


def test_get_invoice(api, json_payload):
    created = _create(api, json_payload)
    resp = api.get(f"/api/v1/invoices/{created['id']}")
    assert resp.status_code == 200
    assert resp.json()["data"]["invoice_number"] == "INV-001"


def test_get_unknown_invoice(api):
    resp = api.get(f"/api/v1/invoices/{uuid.uuid4()}")
    assert resp.status_code == 404


def test_list_invoices(api, json_payload):
    _create(api, json_payload)
    _create(api, json_payload)
    resp = api.get("/api/v1/invoices", params={"limit": 1})
    assert resp.status_code == 200
    page = resp.json()["data"]
    assert page["total"] == 2
    assert page["has_more"] is True
    assert len(page["items"]) == 1


def test_update_invoice_items(api, json_payload):
    created = _create(api, json_payload)
    resp = api.patch(
        f"/api/v1/invoices/{created['id']}",
        json={
            "is_interstate": True,
            "items": [{"item_name": "Consulting", "quantity": "2", "unit_price": "500", "tax_rate": "18"}],
        },
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["invoice_number"] == "INV-001"
    assert len(data["items"]) == 1
    assert data["igst_amount"] in ("180", "180.00")


def test_update_cannot_clear_party(api, json_payload):
    created = _create(api, json_payload)
    resp = api.patch(f"/api/v1/invoices/{created['id']}", json={"party_id": None})
    assert resp.status_code == 422


def test_delete_invoice(api, json_payload):
    created = _create(api, json_payload)
    resp = api.delete(f"/api/v1/invoices/{created['id']}")
    assert resp.status_code == 200
    assert api.get(f"/api/v1/invoices/{created['id']}").status_code == 404


def test_quote(api, json_payload):
    resp = api.post("/api/v1/invoices/quote", json={"items": json_payload["items"]})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert len(data["lines"]) == 2
    assert data["lines"][1]["discount_amount"] == "100.00"
    assert data["total_amount"] in ("2188", "2188.00")
    assert api.get("/api/v1/invoices").json()["data"]["total"] == 0


class TestAuth:

    @pytest.fixture
    def secured(self, make_service):
        service = make_service()
        app = FastAPI()
        app.include_router(v1_router)
        app.dependency_overrides[get_invoice_service] = lambda: service
        return TestClient(app)

    def test_missing_token(self, secured):
        assert secured.get("/api/v1/invoices").status_code == 401

    def test_bad_token(self, secured):
        resp = secured.get("/api/v1/invoices", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401

    def test_token_without_business(self, secured, user_id):
        token = jwt.encode(
            {"sub": str(user_id)}, settings.USER_JWT_SECRET, algorithm=settings.JWT_ALGORITHM,
        )
        resp = secured.get("/api/v1/invoices", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    def test_valid_token(self, secured, user_id, business_id):
        token = jwt.encode(
            {"sub": str(user_id), "business_id": str(business_id)},
            settings.USER_JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
        )
        resp = secured.get("/api/v1/invoices", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json()["data"]["items"] == []
