import json

import pytest
from fastapi.testclient import TestClient

from main import create_app
from settings import Settings

ADMIN_PIN = "4321"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        admin_pass=ADMIN_PIN,
        data_dir=tmp_path / "data",
        env_file_path=tmp_path / ".env",
        log_level="DEBUG",
    )


@pytest.fixture
def seed_products(settings):
    products = [
        {"id": "prod-001", "title": "Cola", "category": "Drinks", "price": 40, "stock": 3},
        {"id": "prod-002", "title": "Water", "category": "Drinks", "price": 20, "stock": 1},
        {"id": "prod-003", "title": "Chips", "category": "Snacks", "price": 30, "stock": 0},
    ]
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.products_path.write_text(json.dumps(products), encoding="utf-8")
    return products


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def admin_headers():
    return {"X-Admin-Pass": ADMIN_PIN}
