"""Cart models and the JSON record codec."""
import json
import math
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional, Tuple, Union

from gomarket.errors import HydrationDecodeError
from gomarket.logging import get_logger, sanitize_id_for_logging

logger = get_logger(__name__)

Number = Union[int, float, str, Decimal]


def to_price(value: Number) -> Decimal:
    """
    Convert a unit price to Decimal.

    Floats go through str() so 19.99 stays 19.99.

    Raises:
        ValueError: if the value is not a finite, non-negative number
    """
    if isinstance(value, bool):
        raise ValueError("price must be a number")
    try:
        price = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValueError(f"price must be a number, got {value!r}") from None
    if not price.is_finite() or price < 0:
        raise ValueError("price must be a non-negative number")
    # Stored records carry prices as JSON numbers
    if not math.isfinite(float(price)):
        raise ValueError("price is too large")
    return price


def _price_to_json(price: Decimal) -> Union[int, float]:
    """Integral prices serialize as ints so 50 stays 50."""
    if price == price.to_integral_value():
        return int(price)
    return float(price)


@dataclass(frozen=True)
class ProductInput:
    """Product fields passed to add_to_cart. Quantity is implied."""
    id: str
    title: str
    image_url: str
    price: Decimal

    def __post_init__(self):
        if not self.id or not isinstance(self.id, str):
            raise ValueError("id must be a non-empty string")
        if not isinstance(self.title, str):
            raise ValueError("title must be a string")
        if not isinstance(self.image_url, str):
            raise ValueError("image_url must be a string")
        object.__setattr__(self, "price", to_price(self.price))

    def to_line_item(self) -> "LineItem":
        return LineItem(
            id=self.id,
            title=self.title,
            image_url=self.image_url,
            price=self.price,
            quantity=1,
        )


@dataclass(frozen=True)
class LineItem:
    """One distinct product in the cart."""
    id: str
    title: str
    image_url: str
    price: Decimal
    quantity: int

    def __post_init__(self):
        if not self.id or not isinstance(self.id, str):
            raise ValueError("id must be a non-empty string")
        if not isinstance(self.title, str):
            raise ValueError("title must be a string")
        if not isinstance(self.image_url, str):
            raise ValueError("image_url must be a string")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity < 1:
            raise ValueError("quantity must be a positive integer")
        object.__setattr__(self, "price", to_price(self.price))

    def with_quantity(self, quantity: int) -> "LineItem":
        """Copy of this item with another quantity; every other field kept."""
        return replace(self, quantity=quantity)

    def to_dict(self) -> dict:
        """Convert to the stored record shape."""
        return {
            "id": self.id,
            "title": self.title,
            "imageUrl": self.image_url,
            "price": _price_to_json(self.price),
            "quantity": self.quantity,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LineItem":
        """
        Create from a stored record entry.

        Accepts the legacy ``image_url`` key and ignores unknown fields.

        Raises:
            ValueError: if a required field is missing or has the wrong type
        """
        if not isinstance(data, dict):
            raise ValueError("entry is not an object")
        missing = [field for field in ("id", "title", "price", "quantity") if field not in data]
        if missing:
            raise ValueError(f"missing {', '.join(missing)}")
        price = data["price"]
        if isinstance(price, bool) or not isinstance(price, (int, float)):
            raise ValueError("price must be a JSON number")

        image_url = data.get("imageUrl", data.get("image_url", ""))
        return cls(
            id=data["id"],
            title=data["title"],
            image_url=image_url,
            price=data["price"],
            quantity=data["quantity"],
        )


CartCollection = Tuple[LineItem, ...]


def find_item(collection: CartCollection, item_id: str) -> Optional[LineItem]:
    return next((item for item in collection if item.id == item_id), None)


def total_items(collection: Iterable[LineItem]) -> int:
    """Number of units in the cart."""
    return sum(item.quantity for item in collection)


def dumps_collection(collection: Iterable[LineItem]) -> str:
    """Serialize a collection to the stored JSON text."""
    return json.dumps([item.to_dict() for item in collection], separators=(",", ":"))


def _is_spent(entry: Any) -> bool:
    """An entry whose quantity ran out; skipped instead of failing the record."""
    if not isinstance(entry, dict):
        return False
    quantity = entry.get("quantity")
    return isinstance(quantity, int) and not isinstance(quantity, bool) and quantity < 1


def loads_collection(raw: str) -> CartCollection:
    """
    Decode stored JSON text into a collection.

    Entries with quantity below 1 are dropped. Repeated ids are merged into
    the first occurrence by summing quantities.

    Raises:
        HydrationDecodeError: if the text is not a list of valid item objects
    """
    try:
        data = json.loads(raw)
    except (ValueError, TypeError, RecursionError) as e:
        # JSONDecodeError is a ValueError, as is an int literal past the digit limit
        raise HydrationDecodeError(f"invalid JSON: {e}") from e

    if not isinstance(data, list):
        raise HydrationDecodeError("record is not a list")

    items: list = []
    positions: dict = {}
    for index, entry in enumerate(data):
        if _is_spent(entry):
            logger.warning(
                f"Dropping stored cart item {sanitize_id_for_logging(str(entry.get('id')))} "
                f"with quantity {entry['quantity']}"
            )
            continue
        try:
            item = LineItem.from_dict(entry)
        except (ValueError, OverflowError) as e:
            raise HydrationDecodeError(f"entry {index}: {e}") from e

        if item.id in positions:
            pos = positions[item.id]
            logger.warning(f"Merging duplicate stored cart item {sanitize_id_for_logging(item.id)}")
            items[pos] = items[pos].with_quantity(items[pos].quantity + item.quantity)
        else:
            positions[item.id] = len(items)
            items.append(item)

    return tuple(items)
