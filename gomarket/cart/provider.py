"""
Cart provider: explicit wiring of a CartStore to its storage.

Usage:
    async with CartProvider(get_storage()) as cart:
        cart.add_to_cart(product)

Components that need the cart receive the store (or the provider) by
reference and call require_cart() on it.
"""
import asyncio
from typing import Optional, Union

from gomarket.errors import CartContextError
from gomarket.logging import get_logger
from .persistence import PersistenceSync
from .storage import KeyValueStorage
from .store import CartState, CartStore

logger = get_logger(__name__)


class CartProvider:
    """Owns one CartStore and its PersistenceSync for the life of the process."""

    def __init__(
        self,
        storage: KeyValueStorage,
        key: Optional[str] = None,
        wait_ready: bool = True,
    ):
        self.sync = PersistenceSync(storage, key=key)
        self.store = CartStore(self.sync)
        self.wait_ready = wait_ready
        self._hydration: Optional[asyncio.Task] = None

    @property
    def started(self) -> bool:
        return self._hydration is not None

    async def start(self) -> CartStore:
        """
        Start the write lane and kick off hydration.

        Returns as soon as the store is hydrating; mutations are allowed
        from that point on.
        """
        if self._hydration is not None:
            return self.store
        self.sync.start()
        self.store.begin_hydration()
        self._hydration = asyncio.create_task(self.sync.hydrate(self.store), name="cart-hydrate")
        return self.store

    async def wait_until_ready(self) -> CartStore:
        if self._hydration is None:
            raise CartContextError()
        await self._hydration
        return self.store

    async def stop(self) -> None:
        """Finish hydration, flush pending writes and stop the write lane."""
        if self._hydration is not None and not self._hydration.done():
            await self._hydration
        await self.sync.close()
        logger.info("Cart provider stopped")

    async def __aenter__(self) -> CartStore:
        await self.start()
        if self.wait_ready:
            await self.wait_until_ready()
        return self.store

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()


def require_cart(cart: Union[CartStore, CartProvider, None]) -> CartStore:
    """
    Return a usable store or fail loudly.

    Raises:
        CartContextError: if there is no provider or it was never started
    """
    if isinstance(cart, CartProvider):
        cart = cart.store
    if not isinstance(cart, CartStore) or cart.state is CartState.UNINITIALIZED:
        raise CartContextError()
    return cart
