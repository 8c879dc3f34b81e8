import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Optional

from .storage import CART_KEYS

logger = logging.getLogger(__name__)

ORDER_BUMP_PREFIX = "order-bump-"


def _json_number(value: Decimal):
    if value == value.to_integral_value():
        return int(value)
    return float(value)


@dataclass
class CartItem:
    id: str
    sku: str
    name: str
    price: Decimal
    quantity: int = 1
    image: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    @property
    def is_order_bump(self) -> bool:
        return self.id.startswith(ORDER_BUMP_PREFIX)

    @classmethod
    def from_dict(cls, data):
        """Rebuild a line this application saved itself."""
        return cls(
            id=str(data["id"]),
            sku=str(data.get("sku") or data["id"]),
            name=str(data["name"]),
            price=Decimal(str(data["price"])),
            quantity=int(data.get("quantity", 1)),
            image=data.get("image"),
            category=data.get("category"),
            description=data.get("description"),
        )

    def to_dict(self):
        data = {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "price": _json_number(self.price),
            "quantity": self.quantity,
        }
        for field in ("image", "category", "description"):
            value = getattr(self, field)
            if value:
                data[field] = value
        return data


def merge_duplicates(items):
    """Collapse lines sharing an id, summing quantities at the first position."""
    merged = {}
    for item in items:
        if item.id in merged:
            current = merged[item.id]
            merged[item.id] = replace(current, quantity=current.quantity + item.quantity)
        else:
            merged[item.id] = replace(item)
    return list(merged.values())


def restore_items(raw_items, source):
    """
    Rebuild lines read back from this application's own cart keys.

    Only ``CartState`` writes those keys, so lines skip the input gate and keep
    their names and quantities as saved. Unreadable lines are dropped.
    """
    items = []
    for index, raw in enumerate(raw_items):
        try:
            items.append(CartItem.from_dict(raw))
        except (KeyError, TypeError, ValueError, ArithmeticError):
            logger.warning(f"Skipping unreadable cart line {index} in {source}")
    return items


class CartState:
    """
    The canonical cart for one visitor.

    Every mutation writes the whole cart back through the storage utility,
    so storage always mirrors ``items``.
    """

    def __init__(self, storage, items=None):
        self.storage = storage
        self.items = list(items or [])

    @classmethod
    def from_storage(cls, storage):
        result = storage.load(keys=CART_KEYS)
        return cls(storage, restore_items(result.items, result.source))

    def _persist(self):
        self.storage.save(self.items)

    def find(self, item_id):
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def add(self, item):
        if item.quantity < 1:
            raise ValueError("Quantity must be 1 or more.")
        existing = self.find(item.id)
        if existing:
            existing.quantity += item.quantity
        else:
            self.items.append(replace(item))
        self._persist()

    def remove(self, item_id):
        self.items = [item for item in self.items if item.id != item_id]
        self._persist()

    def update_quantity(self, item_id, quantity):
        if quantity <= 0:
            self.remove(item_id)
            return
        existing = self.find(item_id)
        if existing:
            existing.quantity = quantity
        self._persist()

    def clear(self):
        self.items = []
        self._persist()

    def replace(self, items):
        self.items = merge_duplicates(items)
        self._persist()
        logger.info(f"Cart replaced with {len(self.items)} line(s)")

    @property
    def total(self):
        return sum((item.line_total for item in self.items), Decimal("0"))

    @property
    def item_count(self):
        return sum(item.quantity for item in self.items)

    @property
    def product_subtotal(self):
        return sum((item.line_total for item in self.items if not item.is_order_bump), Decimal("0"))

    @property
    def order_bump_total(self):
        return sum((item.line_total for item in self.items if item.is_order_bump), Decimal("0"))

    def __len__(self):
        return len(self.items)
