import mongomock
import pytest
from fastapi.testclient import TestClient

import auth
from ai_flows import get_llm
from database import create_document, get_db
from main import app
from schemas import Product


@pytest.fixture
def db():
    return mongomock.MongoClient()["furniture_store_test"]


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_llm] = lambda: None
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def signup(client, email, password="secret123", display_name=None):
    res = client.post("/api/auth/signup", json={"email": email, "password": password, "display_name": display_name})
    assert res.status_code == 200, res.text
    return res.json()


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def customer(client):
    return signup(client, "amina@example.com", display_name="Amina")


@pytest.fixture
def admin(client, db):
    data = signup(client, "owner@example.com", display_name="Shop Owner")
    auth.grant_admin(db, data["uid"])
    return data


@pytest.fixture
def make_product(db):
    def _make(**overrides):
        fields = {
            "name": "Teak Chair",
            "description": "Solid teak dining chair",
            "price": 10000,
            "category": "dining",
            "stock": 5,
        }
        fields.update(overrides)
        return create_document(db, "products", Product(**fields))
    return _make
