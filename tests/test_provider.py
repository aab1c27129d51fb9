"""Tests for CartProvider wiring"""
import pytest

from gomarket.cart import CartProvider, CartState, CartStore, PersistenceSync, require_cart
from gomarket.errors import CartContextError, ERROR_NO_PROVIDER


class TestRequireCart:
    """Tests for the usage precondition."""

    def test_none_fails(self):
        with pytest.raises(CartContextError, match=ERROR_NO_PROVIDER):
            require_cart(None)

    def test_unstarted_provider_fails(self, storage):
        with pytest.raises(CartContextError):
            require_cart(CartProvider(storage))

    def test_unstarted_store_fails(self, storage):
        with pytest.raises(CartContextError):
            require_cart(CartStore(PersistenceSync(storage)))

    def test_error_is_runtime_error(self):
        with pytest.raises(RuntimeError):
            require_cart(object())

    @pytest.mark.asyncio
    async def test_started_provider_returns_store(self, storage):
        async with CartProvider(storage) as cart:
            assert require_cart(cart) is cart

    @pytest.mark.asyncio
    async def test_accepts_provider(self, storage):
        provider = CartProvider(storage)
        store = await provider.start()

        assert require_cart(provider) is store

        await provider.stop()


class TestCartProvider:
    """Tests for provider lifecycle."""

    @pytest.mark.asyncio
    async def test_lifecycle(self, storage):
        provider = CartProvider(storage)
        assert not provider.started
        assert provider.store.state is CartState.UNINITIALIZED

        store = await provider.start()
        assert provider.started
        assert store.state is CartState.HYDRATING

        await provider.wait_until_ready()
        assert store.state is CartState.READY

        await provider.stop()
        assert not store.sync.running

    @pytest.mark.asyncio
    async def test_start_twice_returns_same_store(self, storage):
        provider = CartProvider(storage)

        first = await provider.start()
        second = await provider.start()

        assert first is second
        await provider.stop()

    @pytest.mark.asyncio
    async def test_wait_before_start_fails(self, storage):
        with pytest.raises(CartContextError):
            await CartProvider(storage).wait_until_ready()

    @pytest.mark.asyncio
    async def test_enter_without_waiting(self, storage):
        async with CartProvider(storage, wait_ready=False) as cart:
            assert cart.state in (CartState.HYDRATING, CartState.READY)
