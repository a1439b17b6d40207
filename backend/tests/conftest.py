import os

# In-memory database and a fixed key before any application module reads settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from database import Base, get_db
from main import app
from models.category import Category
from models.material import Material
from models.warehouse import Warehouse

engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _register_and_login(client, email):
    client.post("/register", json={
        "email": email, "password": "secret123", "first_name": "Test", "last_name": "User",
    })
    res = client.post("/login", json={"email": email, "password": "secret123"})
    token = res.json()["data"]["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(client):
    # The first registered account becomes ADMIN
    return _register_and_login(client, "owner@restaurant.io")


@pytest.fixture
def staff_headers(client, admin_headers):
    return _register_and_login(client, "cook@restaurant.io")


@pytest.fixture
def warehouses(db):
    kitchen = Warehouse(name="Kitchen")
    store = Warehouse(name="Main Store")
    db.add_all([kitchen, store])
    db.commit()
    return {"kitchen": kitchen, "store": store}


@pytest.fixture
def materials(db, warehouses):
    dry = Category(name="Dry Goods")
    db.add(dry)
    db.flush()
    flour_cat = Category(name="Flour & Grains", parent_id=dry.id)
    semi = Category(name="Semi-Finished")
    db.add_all([flour_cat, semi])
    db.flush()

    flour = Material(name="Flour", code="FLR", unit="kg", category_id=flour_cat.id,
                     default_warehouse_id=warehouses["store"].id)
    salt = Material(name="Salt", code="SLT", unit="kg", category_id=flour_cat.id,
                    default_warehouse_id=warehouses["store"].id)
    dough = Material(name="Dough", code="DGH", unit="kg", category_id=semi.id,
                     default_warehouse_id=warehouses["kitchen"].id)
    db.add_all([flour, salt, dough])
    db.commit()
    return {"flour": flour, "salt": salt, "dough": dough}
