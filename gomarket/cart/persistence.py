"""
Cart persistence: hydrate on start, write back after every mutation.

Writes go through a single background task that drains an asyncio.Queue,
so they reach storage in the order mutations happened. A failed write is
logged and dropped; the in-memory cart stays authoritative.
"""
import asyncio
from typing import TYPE_CHECKING, Optional

from gomarket import config
from gomarket.errors import CartContextError, HydrationDecodeError, PersistenceWriteError
from gomarket.logging import get_logger, sanitize_string_for_logging
from .models import CartCollection, dumps_collection, loads_collection
from .storage import KeyValueStorage

if TYPE_CHECKING:
    from .store import CartStore

logger = get_logger(__name__)

# Sentinel that tells the write lane to exit
_STOP = object()


class PersistenceSync:
    """
    Keeps durable storage eventually consistent with a CartStore.

    Features:
    - One-shot hydration with corrupt-record recovery
    - FIFO write lane, one attempt per write, no retries
    - flush()/close() for graceful shutdown
    """

    def __init__(self, storage: KeyValueStorage, key: Optional[str] = None):
        self.storage = storage
        self.key = key or config.CART_STORAGE_KEY
        self.failed_writes = 0
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        """Start the write lane. Must be called from a running event loop."""
        if self._closed:
            raise CartContextError("Persistence for this cart was already closed")
        if self.running:
            return
        self._queue = asyncio.Queue()
        self._worker = asyncio.create_task(self._drain(), name="cart-write-lane")

    # ==================== HYDRATION ====================

    async def load(self) -> CartCollection:
        """
        Read and decode the stored record.

        Missing, unreadable and corrupted records all come back as an empty cart.
        """
        key = sanitize_string_for_logging(self.key)
        try:
            raw = await self.storage.get(self.key)
        except Exception as e:
            logger.error(f"Failed to read cart record {key}: {e}", exc_info=True)
            return ()

        if raw is None:
            logger.info(f"No stored cart under {key}, starting empty")
            return ()

        try:
            collection = loads_collection(raw)
        except HydrationDecodeError as e:
            logger.warning(f"Discarding cart record {key}: {e}")
            return ()

        logger.info(f"Hydrated cart from {key} with {len(collection)} item(s)")
        return collection

    async def hydrate(self, store: "CartStore") -> CartCollection:
        """Load the stored record into the store and mark it ready."""
        store.begin_hydration()
        collection = await self.load()
        return store.install_hydrated(collection)

    # ==================== WRITE-BACK ====================

    def persist(self, collection: CartCollection) -> None:
        """
        Queue a write of this exact collection. Returns immediately.

        The collection is serialized now, so a later mutation cannot change
        what this write stores.
        """
        if self._closed or self._queue is None:
            logger.warning("Cart write lane is not running, dropping write")
            return
        self._queue.put_nowait(dumps_collection(collection))

    async def _write(self, payload: str) -> None:
        try:
            await self.storage.set(self.key, payload)
        except Exception as e:
            self.failed_writes += 1
            error = PersistenceWriteError(sanitize_string_for_logging(self.key), e)
            logger.error(str(error), exc_info=True)

    async def _drain(self) -> None:
        queue = self._queue
        while True:
            payload = await queue.get()
            try:
                if payload is _STOP:
                    return
                await self._write(payload)
            finally:
                queue.task_done()

    async def flush(self) -> None:
        """Wait until every queued write has been attempted."""
        if self._queue is not None and self.running:
            await self._queue.join()

    async def close(self) -> None:
        """Flush pending writes and stop the write lane. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        if self.running:
            await self._queue.join()
            self._queue.put_nowait(_STOP)
            await self._worker
        self._worker = None
