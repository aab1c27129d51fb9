"""Cart package: models, store, persistence and provider."""
from .models import CartCollection, LineItem, ProductInput
from .persistence import PersistenceSync
from .provider import CartProvider, require_cart
from .storage import FileStorage, KeyValueStorage, MemoryStorage, RedisStorage, get_storage
from .store import CartState, CartStore

__all__ = [
    "CartCollection",
    "LineItem",
    "ProductInput",
    "CartState",
    "CartStore",
    "PersistenceSync",
    "CartProvider",
    "require_cart",
    "KeyValueStorage",
    "MemoryStorage",
    "FileStorage",
    "RedisStorage",
    "get_storage",
]
