"""In-memory cart state and its mutations."""
from enum import Enum
from typing import Callable, List, Mapping, Optional, Union

from gomarket.errors import CartContextError
from gomarket.logging import get_logger, sanitize_id_for_logging
from .models import CartCollection, LineItem, ProductInput, find_item, total_items
from .persistence import PersistenceSync

logger = get_logger(__name__)

Mutation = Callable[[CartCollection], CartCollection]


class CartState(str, Enum):
    """Store lifecycle. Moves forward only."""
    UNINITIALIZED = "uninitialized"
    HYDRATING = "hydrating"
    READY = "ready"


# ==================== PURE TRANSFORMS ====================

def add_product(collection: CartCollection, product: ProductInput) -> CartCollection:
    """Bump an existing item by one, keeping its stored fields, or append a new one."""
    existing = find_item(collection, product.id)
    if existing is None:
        return collection + (product.to_line_item(),)
    return tuple(
        item.with_quantity(item.quantity + 1) if item.id == product.id else item
        for item in collection
    )


def increment_item(collection: CartCollection, item_id: str) -> CartCollection:
    if find_item(collection, item_id) is None:
        return collection
    return tuple(
        item.with_quantity(item.quantity + 1) if item.id == item_id else item
        for item in collection
    )


def decrement_item(collection: CartCollection, item_id: str) -> CartCollection:
    """Lower the quantity by one; an item at quantity 1 leaves the cart."""
    existing = find_item(collection, item_id)
    if existing is None:
        return collection
    if existing.quantity == 1:
        return tuple(item for item in collection if item.id != item_id)
    return tuple(
        item.with_quantity(item.quantity - 1) if item.id == item_id else item
        for item in collection
    )


def _to_product(product: Union[ProductInput, Mapping]) -> ProductInput:
    if isinstance(product, ProductInput):
        return product
    return ProductInput(
        id=product["id"],
        title=product["title"],
        image_url=product.get("image_url", product.get("imageUrl", "")),
        price=product["price"],
    )


# ==================== STORE ====================

class CartStore:
    """
    Single source of truth for the cart.

    Mutations are applied synchronously and the result is handed to
    PersistenceSync afterwards. While the store is hydrating, mutations are
    applied to what readers see and journaled; once the stored record
    arrives they are replayed on top of it.
    """

    def __init__(self, sync: PersistenceSync):
        self._sync = sync
        self._products: CartCollection = ()
        self._state = CartState.UNINITIALIZED
        self._journal: List[Mutation] = []

    @property
    def state(self) -> CartState:
        return self._state

    @property
    def ready(self) -> bool:
        return self._state is CartState.READY

    @property
    def sync(self) -> PersistenceSync:
        return self._sync

    def _ensure_started(self) -> None:
        if self._state is CartState.UNINITIALIZED:
            raise CartContextError()

    # ==================== READERS ====================

    @property
    def products(self) -> CartCollection:
        """Current collection. Tuples of frozen items, safe to hand out."""
        self._ensure_started()
        return self._products

    @property
    def total_items(self) -> int:
        self._ensure_started()
        return total_items(self._products)

    def get_item(self, item_id: str) -> Optional[LineItem]:
        self._ensure_started()
        return find_item(self._products, item_id)

    # ==================== MUTATIONS ====================

    def add_to_cart(self, product: Union[ProductInput, Mapping]) -> CartCollection:
        """Add one unit of a product. Accepts a ProductInput or a plain mapping."""
        self._ensure_started()
        product = _to_product(product)
        return self._apply("add_to_cart", product.id, lambda products: add_product(products, product))

    def increment(self, item_id: str) -> CartCollection:
        return self._apply("increment", item_id, lambda products: increment_item(products, item_id))

    def decrement(self, item_id: str) -> CartCollection:
        return self._apply("decrement", item_id, lambda products: decrement_item(products, item_id))

    def _apply(self, action: str, item_id: str, mutation: Mutation) -> CartCollection:
        self._ensure_started()
        result = mutation(self._products)
        self._products = result

        if self._state is CartState.HYDRATING:
            self._journal.append(mutation)
        else:
            self._sync.persist(result)

        logger.debug(f"Cart {action} {sanitize_id_for_logging(item_id)}: {len(result)} item(s)")
        return result

    # ==================== HYDRATION ====================

    def begin_hydration(self) -> None:
        """UNINITIALIZED -> HYDRATING. Repeated calls while hydrating are ignored."""
        if self._state is CartState.READY:
            raise CartContextError("Cart is already hydrated")
        self._state = CartState.HYDRATING

    def install_hydrated(self, collection: CartCollection) -> CartCollection:
        """
        Install the stored collection and replay mutations made meanwhile.

        If anything was replayed, the merged result is written back once.
        """
        if self._state is not CartState.HYDRATING:
            raise CartContextError("Cart is not hydrating")

        products = collection
        for mutation in self._journal:
            products = mutation(products)
        replayed = len(self._journal)
        self._journal.clear()

        self._products = products
        self._state = CartState.READY

        if replayed:
            logger.info(f"Replayed {replayed} cart mutation(s) issued during hydration")
            self._sync.persist(products)
        return products
