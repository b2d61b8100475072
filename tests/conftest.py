import json
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from storefront.api.deps import Container
from storefront.domain.schemas import Product
from storefront.main import create_app
from storefront.repos.cart_repo import InMemoryCartRepository
from storefront.repos.price_repo import JsonFilePriceStore
from storefront.services.admin_service import AdminService
from storefront.services.auth_service import AuthService
from storefront.services.cart_service import CartService, CartSessionStore
from storefront.services.catalog_service import CatalogLoader, CatalogService
from storefront.services.checkout_service import CheckoutDispatcher
from storefront.services.image_resolver import ImageCache


PRICE_RECORDS = [
    {"name": "Arcana A", "hero": "Pudge", "price": 600000, "qty": 2},
    {"name": "Immortal B", "hero": "Lina", "price": 50000, "qty": 0},
    {"name": "Set C", "hero": "Lina", "price": 150000, "qty": 5},
    {"name": "Courier D", "price": 30000, "qty": 1},
    {"name": "Free Ward", "hero": "Pudge", "price": 0, "qty": 10},
]

IMAGE_MAPPING = {
    "Arcana A": "https://img.example/arcana-a.png",
    "Set C": "https://img.example/set-c.png",
}


def make_product(name: str, price: int = 1000, qty: int = 3, hero: str | None = None) -> Product:
    return Product(id=name, name=name, hero=hero, qty=qty, price=price)


@pytest.fixture
def price_file(tmp_path):
    path = tmp_path / "prices.json"
    path.write_text(json.dumps(PRICE_RECORDS, indent=2), encoding="utf-8")
    return path


@pytest.fixture
def price_store(price_file):
    return JsonFilePriceStore(price_file)


@pytest.fixture
def image_cache():
    return ImageCache(lambda: dict(IMAGE_MAPPING), placeholder="/icon.png")


@pytest.fixture
def cart_repo():
    return InMemoryCartRepository()


@pytest.fixture
def notify():
    return MagicMock()


@pytest.fixture
def auth_service():
    return AuthService(
        secret="test-secret",
        username="admin",
        password="s3cret",
        upload_password="upload-pass",
        ttl_seconds=3600,
    )


@pytest.fixture
def container(price_store, image_cache, cart_repo, notify, auth_service):
    loader = CatalogLoader(price_store)
    return Container(
        price_store=price_store,
        catalog=CatalogService(loader, image_cache, initial=2, page_size=2),
        carts=CartService(cart_repo, loader, CartSessionStore()),
        checkout=CheckoutDispatcher(number="6280000000000", notify=notify),
        admin=AdminService(price_store),
        auth=auth_service,
        steam=MagicMock(),
    )


@pytest.fixture
def client(container):
    with TestClient(create_app(container)) as c:
        yield c


@pytest.fixture
def admin_client(client):
    resp = client.post("/api/auth/login", json={"username": "admin", "password": "s3cret"})
    assert resp.status_code == 200, resp.text
    return client
