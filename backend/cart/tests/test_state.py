import json
from decimal import Decimal

import pytest

from cart.serializers import MAX_CART_ITEMS, gate_cart_items
from cart.state import CartItem, CartState, restore_items


def _item(item_id="TEN-TEA", price="14000", quantity=1, name="Detox Tea"):
    return CartItem(id=item_id, sku=item_id, name=name, price=Decimal(price), quantity=quantity)


def _raw(item_id="TEN-TEA", price=14000, quantity=1, **extra):
    return dict({"id": item_id, "name": "Detox Tea", "price": price, "quantity": quantity}, **extra)


def test_add_merges_lines_with_the_same_id(memory_storage, memory_backend):
    state = CartState(memory_storage)

    state.add(_item(quantity=2))
    state.add(_item(quantity=3))

    assert len(state) == 1
    assert state.items[0].quantity == 5
    assert json.loads(memory_backend.data["cart"])[0]["quantity"] == 5


def test_add_rejects_non_positive_quantity(memory_storage):
    state = CartState(memory_storage)

    with pytest.raises(ValueError):
        state.add(_item(quantity=0))
    assert state.items == []


def test_update_quantity_to_zero_removes_line(memory_storage):
    state = CartState(memory_storage, [_item(), _item("TEN-OIL", "9500")])

    state.update_quantity("TEN-TEA", 0)

    assert [item.id for item in state.items] == ["TEN-OIL"]
    state.update_quantity("TEN-TEA", 0)
    assert [item.id for item in state.items] == ["TEN-OIL"]


def test_update_quantity_sets_exact_value(memory_storage):
    state = CartState(memory_storage, [_item()])

    state.update_quantity("TEN-TEA", 4)

    assert state.items[0].quantity == 4
    assert state.item_count == 4


def test_clear_persists_empty_cart(memory_storage, memory_backend):
    state = CartState(memory_storage, [_item()])

    state.clear()

    assert json.loads(memory_backend.data["teneraCart"]) == []
    assert memory_storage.load() == ([], None)


def test_totals_split_order_bumps_from_products(memory_storage):
    state = CartState(memory_storage, [
        _item(quantity=2),
        _item("order-bump-1", "3500", name="Herbal Soap"),
    ])

    assert state.total == Decimal("31500")
    assert state.product_subtotal == Decimal("28000")
    assert state.order_bump_total == Decimal("3500")
    assert state.item_count == 3


def test_from_storage_reads_only_own_keys(memory_storage, memory_backend):
    memory_backend.set("TENERA_CART_UPDATE", json.dumps([_raw("TEN-OIL")]))
    memory_backend.set("cart", json.dumps([_raw()]))

    state = CartState.from_storage(memory_storage)

    assert [item.id for item in state.items] == ["TEN-TEA"]


def test_from_storage_keeps_saved_lines_as_written(memory_storage):
    state = CartState(memory_storage)
    state.add(_item(name="Men's Tonic & Bitters", quantity=60))
    state.add(_item(name="Men's Tonic & Bitters", quantity=60))

    restored = CartState.from_storage(memory_storage)

    assert len(restored) == 1
    assert restored.items[0].quantity == 120
    assert restored.items[0].name == "Men's Tonic & Bitters"
    assert restored.total == Decimal("1680000")


def test_restore_items_skips_unreadable_lines():
    items = restore_items([_raw(), {"name": "No id", "price": 1}, _raw("TEN-OIL", price="abc"), "junk"], "cart")

    assert [item.id for item in items] == ["TEN-TEA"]
    assert items[0].price == Decimal("14000")


def test_to_dict_writes_whole_prices_as_integers():
    assert _item().to_dict()["price"] == 14000
    assert _item(price="99.50").to_dict()["price"] == 99.5


def test_gate_drops_invalid_lines_and_keeps_the_rest():
    items = gate_cart_items([
        _raw(),
        _raw("TEN-OIL", price=-5),
        _raw("TEN-BAD", quantity=0),
        _raw("TEN-MAX", quantity=101),
        _raw("bad id!"),
        {"name": "No id", "price": 10, "quantity": 1},
        "not an object",
    ])

    assert [item.id for item in items] == ["TEN-TEA"]


def test_gate_rejects_non_arrays_and_oversized_carts():
    assert gate_cart_items({"id": "TEN-TEA"}) == []
    assert gate_cart_items([_raw(f"SKU-{i}") for i in range(MAX_CART_ITEMS + 1)]) == []
    assert len(gate_cart_items([_raw(f"SKU-{i}") for i in range(MAX_CART_ITEMS)])) == MAX_CART_ITEMS


def test_gate_merges_duplicates_and_falls_back_to_sku():
    items = gate_cart_items([
        {"sku": "TEN-TEA", "name": "Detox Tea", "price": 14000, "quantity": 1},
        _raw(quantity=2),
    ])

    assert len(items) == 1
    assert items[0].id == "TEN-TEA"
    assert items[0].quantity == 3


def test_gate_sanitizes_names():
    items = gate_cart_items([_raw(name="<b>Detox</b> Tea")])

    assert items[0].name == "bDetox/b Tea"


def test_gate_rejects_prices_above_limit():
    assert gate_cart_items([_raw(price=10_000_001)]) == []
