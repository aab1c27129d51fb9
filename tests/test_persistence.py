"""
Tests for PersistenceSync hydration and write-back
"""

import json
import logging
from unittest.mock import AsyncMock

import pytest

from gomarket.cart import CartProvider, CartState, LineItem, MemoryStorage, PersistenceSync

from conftest import CART_KEY


@pytest.mark.asyncio
async def test_load_missing_record(storage):
    sync = PersistenceSync(storage)

    assert await sync.load() == ()


@pytest.mark.asyncio
async def test_load_stored_record(stored_record):
    sync = PersistenceSync(MemoryStorage({CART_KEY: stored_record}))

    collection = await sync.load()

    assert collection[0] == LineItem(id="p1", title="Shirt", image_url="u", price=50, quantity=3)
    assert len(collection) == 2


@pytest.mark.asyncio
async def test_corrupted_record_hydrates_empty(caplog):
    storage = MemoryStorage({CART_KEY: "{{not json"})

    with caplog.at_level(logging.WARNING):
        async with CartProvider(storage) as cart:
            assert cart.products == ()

    assert "Discarding cart record" in caplog.text


@pytest.mark.asyncio
async def test_storage_read_failure_hydrates_empty(shirt):
    storage = MemoryStorage()
    storage.get = AsyncMock(side_effect=ConnectionError("medium unavailable"))

    async with CartProvider(storage) as cart:
        assert cart.products == ()
        cart.add_to_cart(shirt)

    assert storage.writes == 1


@pytest.mark.asyncio
async def test_restart_hydrates_previous_state(storage, shirt):
    async with CartProvider(storage) as cart:
        cart.add_to_cart(shirt)
        cart.increment("p1")
        cart.increment("p1")

    async with CartProvider(storage) as restarted:
        assert restarted.products == (
            LineItem(id="p1", title="Shirt", image_url="u", price=50, quantity=3),
        )


@pytest.mark.asyncio
async def test_legacy_record_hydrates():
    legacy = json.dumps([{"id": "p1", "title": "Shirt", "image_url": "u", "price": 50, "quantity": 2}])

    async with CartProvider(MemoryStorage({CART_KEY: legacy})) as cart:
        assert cart.get_item("p1").image_url == "u"
        assert cart.get_item("p1").quantity == 2


@pytest.mark.asyncio
async def test_write_failure_is_contained(shirt, caplog):
    storage = MemoryStorage()
    storage.set = AsyncMock(side_effect=[OSError("quota exceeded"), None])

    async with CartProvider(storage) as cart:
        with caplog.at_level(logging.ERROR):
            result = cart.add_to_cart(shirt)
            await cart.sync.flush()

        assert result == cart.products
        assert cart.sync.failed_writes == 1
        assert "Failed to write cart to storage" in caplog.text

        cart.increment("p1")
        await cart.sync.flush()

    assert storage.set.await_count == 2
    assert cart.get_item("p1").quantity == 2


@pytest.mark.asyncio
async def test_writes_land_in_mutation_order(shirt, mug):
    written = []
    storage = MemoryStorage()

    async def record_set(key, value):
        written.append([(item["id"], item["quantity"]) for item in json.loads(value)])

    storage.set = record_set

    async with CartProvider(storage) as cart:
        cart.add_to_cart(shirt)
        cart.add_to_cart(mug)
        cart.increment("p2")
        cart.decrement("p1")

    assert written == [
        [("p1", 1)],
        [("p1", 1), ("p2", 1)],
        [("p1", 1), ("p2", 2)],
        [("p2", 2)],
    ]


@pytest.mark.asyncio
async def test_custom_key(shirt):
    storage = MemoryStorage()

    async with CartProvider(storage, key="@Test:cart") as cart:
        cart.add_to_cart(shirt)

    assert await storage.get("@Test:cart") is not None
    assert await storage.get(CART_KEY) is None


@pytest.mark.asyncio
async def test_close_is_idempotent(storage, shirt):
    provider = CartProvider(storage)
    cart = await provider.__aenter__()
    cart.add_to_cart(shirt)

    await provider.stop()
    await provider.stop()

    assert storage.writes == 1
    assert not cart.sync.running


@pytest.mark.asyncio
async def test_persist_after_close_is_dropped(storage, shirt):
    async with CartProvider(storage) as cart:
        pass

    cart.add_to_cart(shirt)

    assert cart.get_item("p1").quantity == 1
    assert storage.writes == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", [
    '[{"id": "p1", "title": "Shirt", "price": 1' + "0" * 400 + ', "quantity": 1}]',
    '[{"id": "p1", "title": "Shirt", "price": 50, "quantity": ' + "1" * 5000 + "}]",
    "[" * 100000,
])
async def test_hostile_record_hydrates_empty(raw, shirt):
    storage = MemoryStorage({CART_KEY: raw})

    async with CartProvider(storage) as cart:
        assert cart.state is CartState.READY
        assert cart.products == ()
        cart.add_to_cart(shirt)

    assert storage.writes == 1
