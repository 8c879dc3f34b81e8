import json
from decimal import Decimal

import pytest

from cart.models import Cart
from cart.state import CartItem
from cart.storage import (
    CART_KEYS,
    CUSTOMER_EMAIL_KEY,
    SNAPSHOT_KEY,
    CartStorage,
    DatabaseBackend,
    unwrap_cart_payload,
)
from conftest import MemoryBackend

TEA = {"id": "TEN-TEA", "sku": "TEN-TEA", "name": "Detox Tea", "price": 14000, "quantity": 2}


def _item(**overrides):
    data = dict(id="TEN-TEA", sku="TEN-TEA", name="Detox Tea", price=14000, quantity=2)
    data.update(overrides)
    data["price"] = Decimal(str(data["price"]))
    return CartItem(**data)


def test_save_fans_out_to_every_cart_key(memory_storage, memory_backend):
    memory_storage.save([_item()])

    for key in CART_KEYS:
        assert json.loads(memory_backend.data[key]) == [TEA]
    snapshot = json.loads(memory_backend.data[SNAPSHOT_KEY])
    assert snapshot["items"] == [TEA]
    assert "timestamp" in snapshot


def test_save_drops_landing_page_handoff_keys(memory_storage, memory_backend):
    memory_backend.set("TENERA_CART_UPDATE", json.dumps([TEA]))
    memory_backend.set("TeneraShoppingCart", json.dumps([TEA]))

    memory_storage.save([_item()])

    assert "TENERA_CART_UPDATE" not in memory_backend.data
    assert "TeneraShoppingCart" not in memory_backend.data


def test_save_swallows_backend_errors(caplog):
    class BrokenBackend(MemoryBackend):
        def set(self, key, value):
            raise OSError("quota exceeded")

    CartStorage([BrokenBackend()]).save([_item()])

    assert "Error saving cart to storage" in caplog.text


def test_load_prefers_handoff_keys_over_own_keys(memory_storage, memory_backend):
    memory_backend.set("cart", json.dumps([TEA]))
    memory_backend.set("TENERA_CART_UPDATE", json.dumps({"data": {"cartItems": [dict(TEA, quantity=5)]}}))

    result = memory_storage.load()

    assert result.source == "TENERA_CART_UPDATE"
    assert result.items[0]["quantity"] == 5


def test_load_skips_malformed_keys(memory_storage, memory_backend):
    memory_backend.set("cart", "{not json")
    memory_backend.set("cartItems", json.dumps([TEA]))

    result = memory_storage.load()

    assert result.source == "cartItems"
    assert result.items == [TEA]


def test_load_returns_empty_result_when_nothing_stored(memory_storage):
    result = memory_storage.load()

    assert result.items == []
    assert result.source is None


@pytest.mark.parametrize("payload", [
    [TEA],
    {"cartItems": [TEA]},
    {"items": [TEA]},
    {"data": [TEA]},
    {"data": {"cartItems": [TEA]}},
    {"data": {"data": {"cartItems": [TEA]}}},
])
def test_unwrap_cart_payload_envelopes(payload):
    assert unwrap_cart_payload(payload) == [TEA]


def test_unwrap_cart_payload_rejects_other_shapes():
    assert unwrap_cart_payload({"data": {"total": 3}}) == []
    assert unwrap_cart_payload("cart") == []


def test_customer_info_is_stored_with_email(memory_storage, memory_backend):
    memory_storage.save_customer_info({"name": "Ada Obi", "email": "ada@example.com"})

    assert memory_storage.load_customer_info() == {"name": "Ada Obi", "email": "ada@example.com"}
    assert memory_backend.data[CUSTOMER_EMAIL_KEY] == "ada@example.com"


def test_flags_and_payment_reference(memory_storage):
    assert memory_storage.get_flag("externalCheckoutMode") is False
    memory_storage.set_flag("externalCheckoutMode", True)
    memory_storage.remember_payment_reference("TENERA_123456789")

    assert memory_storage.get_flag("externalCheckoutMode") is True
    assert memory_storage.last_payment_reference() == "TENERA_123456789"


@pytest.mark.django_db
def test_database_backend_round_trips_entries():
    cart = Cart.objects.create(session_id="abc")
    backend = DatabaseBackend(cart)

    backend.set("cart", "[]")
    backend.set("cart", json.dumps([TEA]))
    assert json.loads(backend.get("cart")) == [TEA]
    assert cart.entries.count() == 1

    backend.delete("cart")
    assert backend.get("cart") is None


def test_saved_cart_loads_back_from_first_own_key(memory_storage):
    memory_storage.save([_item()])

    assert memory_storage.load() == ([TEA], "cart")
