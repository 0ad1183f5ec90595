"""
Pytest configuration and fixtures for the Otrocoro admin tests.
"""
import os

import pytest

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DOCUMENT_STORE_BACKEND"] = "memory"
os.environ["DEBUG"] = "false"

from otrocoro_admin.core.memory_store import InMemoryDocumentStore  # noqa: E402
from otrocoro_admin.schemas.bundle import (  # noqa: E402
    BundleCreate,
    BundleItemRef,
    PercentageDiscount,
)
from otrocoro_admin.services.bundle_service import BundleService  # noqa: E402

PRODUCTS = {
    "A": {
        "name": "Gold Ring",
        "images": [{"url": "https://cdn.example.com/ring.jpg"}],
        "basePrice": 100,
        "totalInventory": 9,
    },
    "B": {
        "name": "Silver Chain",
        "images": ["https://cdn.example.com/chain.jpg"],
        "basePrice": 50,
    },
    "C": {
        "name": "Pearl Earrings",
        "images": [],
        "basePrice": 80,
        "variations": [
            {"id": "c-small", "sku": "PE-S", "price": 70, "inventoryQuantity": 4},
            {"id": "c-large", "size": "L", "color": "White", "price": 95, "hasInfiniteStock": True},
            {"id": "c-nameless", "inventoryQuantity": 0},
        ],
    },
}


async def seed_products(store: InMemoryDocumentStore, products=None) -> None:
    for product_id, data in (products or PRODUCTS).items():
        await store.set("products", product_id, data)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
async def seeded_store(store) -> InMemoryDocumentStore:
    await seed_products(store)
    return store


@pytest.fixture
def service(seeded_store) -> BundleService:
    return BundleService(seeded_store)


def make_create(**overrides) -> BundleCreate:
    """BundleCreate for products A (2 x 100) and B (1 x 50) at 20% off."""
    data = {
        "store_id": "store-1",
        "name": "Wedding Set",
        "description": "Ring and chain",
        "items": [
            BundleItemRef(product_id="A", quantity=2),
            BundleItemRef(product_id="B"),
        ],
        "discount": PercentageDiscount(value=20),
    }
    data.update(overrides)
    return BundleCreate(**data)


@pytest.fixture
def bundle_data():
    return make_create
