"""Pytest configuration and fixtures"""
import json
import os

import pytest
import pytest_asyncio

# Keep tests off the real disk unless a test asks for it
os.environ.setdefault("CART_STORAGE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from gomarket.cart import CartProvider, MemoryStorage, ProductInput  # noqa: E402

CART_KEY = "@GoMarketplace:products"


@pytest.fixture
def storage():
    """Empty in-memory storage"""
    return MemoryStorage()


@pytest.fixture
def shirt():
    """Sample product"""
    return ProductInput(id="p1", title="Shirt", image_url="u", price=50)


@pytest.fixture
def mug():
    """Another sample product"""
    return ProductInput(id="p2", title="Mug", image_url="https://cdn.test/mug.png", price=12.5)


@pytest.fixture
def stored_record():
    """Cart record as the app writes it"""
    return json.dumps([
        {"id": "p1", "title": "Shirt", "imageUrl": "u", "price": 50, "quantity": 3},
        {"id": "p2", "title": "Mug", "imageUrl": "https://cdn.test/mug.png", "price": 12.5, "quantity": 1},
    ])


@pytest.fixture
def read_stored(storage):
    """Decode whatever the write lane last wrote to the storage fixture"""
    def _read():
        raw = storage._store.get(CART_KEY)
        return json.loads(raw) if raw is not None else None
    return _read


@pytest_asyncio.fixture
async def cart(storage):
    """Ready cart backed by the storage fixture"""
    async with CartProvider(storage) as store:
        yield store
