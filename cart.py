"""
Client-side cart and viewed-product history.

The cart never lives on the server. `reduce_cart` is a pure reducer; `Cart`
owns one state behind a lock, loads it once from storage and writes the JSON
blob back after every transition. Storage is pluggable so clients can keep
it in a file and tests in memory.
"""

import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from schemas import CheckoutLine

logger = logging.getLogger(__name__)

CART_KEY = "cart"
VIEWED_KEY = "viewed_product_ids"
VIEWED_LIMIT = 5


class MemoryStorage:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStorage:
    """Key/value strings kept in one JSON file, like browser local storage."""

    def __init__(self, path):
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        return json.loads(self.path.read_text(encoding="utf-8"))

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")


@dataclass(frozen=True)
class CartLine:
    product: Dict[str, Any]
    quantity: int

    @property
    def product_id(self) -> str:
        return self.product["id"]


@dataclass(frozen=True)
class CartState:
    items: tuple = field(default_factory=tuple)

    def to_json(self) -> str:
        return json.dumps({"items": [{"product": i.product, "quantity": i.quantity} for i in self.items]}, default=str)

    @classmethod
    def from_json(cls, raw: str) -> "CartState":
        data = json.loads(raw)
        return cls(items=tuple(CartLine(product=i["product"], quantity=int(i["quantity"])) for i in data.get("items", [])))


def reduce_cart(state: CartState, action: Dict[str, Any]) -> CartState:
    kind = action["type"]
    if kind == "add":
        product, quantity = action["product"], action["quantity"]
        if any(i.product_id == product["id"] for i in state.items):
            return CartState(items=tuple(
                CartLine(i.product, i.quantity + quantity) if i.product_id == product["id"] else i
                for i in state.items
            ))
        return CartState(items=state.items + (CartLine(product, quantity),))
    if kind == "remove":
        return CartState(items=tuple(i for i in state.items if i.product_id != action["product_id"]))
    if kind == "update_quantity":
        updated = (
            CartLine(i.product, action["quantity"]) if i.product_id == action["product_id"] else i
            for i in state.items
        )
        return CartState(items=tuple(i for i in updated if i.quantity > 0))
    if kind == "clear":
        return CartState()
    if kind == "set_state":
        return action["state"]
    return state


class Cart:
    def __init__(self, storage=None):
        self.storage = storage if storage is not None else MemoryStorage()
        self._lock = threading.Lock()
        self.state = self._load()

    def _load(self) -> CartState:
        raw = self.storage.get(CART_KEY)
        if not raw:
            return CartState()
        try:
            return CartState.from_json(raw)
        except (ValueError, KeyError, TypeError):
            logger.error("Could not parse stored cart, starting empty", exc_info=True)
            return CartState()

    def dispatch(self, action: Dict[str, Any]) -> CartState:
        with self._lock:
            self.state = reduce_cart(self.state, action)
            try:
                self.storage.set(CART_KEY, self.state.to_json())
            except OSError:
                logger.error("Could not save cart", exc_info=True)
            return self.state

    def add_item(self, product: Dict[str, Any], quantity: int = 1) -> CartState:
        return self.dispatch({"type": "add", "product": product, "quantity": quantity})

    def remove_item(self, product_id: str) -> CartState:
        return self.dispatch({"type": "remove", "product_id": product_id})

    def update_quantity(self, product_id: str, quantity: int) -> CartState:
        return self.dispatch({"type": "update_quantity", "product_id": product_id, "quantity": quantity})

    def clear(self) -> CartState:
        return self.dispatch({"type": "clear"})

    @property
    def items(self) -> List[CartLine]:
        return list(self.state.items)

    @property
    def total_price(self) -> int:
        return sum(int(i.product.get("price", 0)) * i.quantity for i in self.state.items)

    def product_ids(self) -> List[str]:
        return [i.product_id for i in self.state.items]

    def checkout_lines(self) -> List[CheckoutLine]:
        return [CheckoutLine(product_id=i.product_id, quantity=i.quantity) for i in self.state.items]


class ViewedHistory:
    def __init__(self, storage=None, limit: int = VIEWED_LIMIT):
        self.storage = storage if storage is not None else MemoryStorage()
        self.limit = limit

    def ids(self) -> List[str]:
        raw = self.storage.get(VIEWED_KEY)
        if not raw:
            return []
        try:
            return list(json.loads(raw))
        except ValueError:
            return []

    def record(self, product_id: str) -> List[str]:
        current = self.ids()
        if product_id in current:
            return current
        updated = [product_id] + current
        updated = updated[: self.limit]
        self.storage.set(VIEWED_KEY, json.dumps(updated))
        return updated
