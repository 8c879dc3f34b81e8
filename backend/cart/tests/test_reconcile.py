import json
from urllib.parse import parse_qs, quote, urlencode, urlsplit

import pytest

from cart.messaging import CART_READY, IFRAME_READY, ReadyBeacon
from cart.reconcile import CartReconciler, strip_params
from cart.state import CartState
from cart.storage import EXTERNAL_MODE_KEY

CHECKOUT = "https://shop.tenera.test/checkout"
TEA = {"id": "TEN-TEA", "sku": "TEN-TEA", "name": "Detox Tea", "price": 14000, "quantity": 2}
OIL = {"id": "TEN-OIL", "sku": "TEN-OIL", "name": "Castor Oil", "price": 9500, "quantity": 1}
CUSTOMER = {"name": "Ada Obi", "email": "Ada@Example.com", "phone": "08012345678", "city": "Lagos"}


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def _reconciler(storage, clock=None):
    beacon = ReadyBeacon(
        {}, own_origin="https://shop.tenera.test", parent_origin="https://www.teneraholisticandwellness.com",
        interval=2, window=10, clock=clock or FakeClock(),
    )
    return CartReconciler(CartState.from_storage(storage), beacon)


def _url(**params):
    return f"{CHECKOUT}?{urlencode(params)}"


def test_url_cart_wins_over_storage(memory_storage, memory_backend):
    memory_backend.set("TENERA_CART_UPDATE", json.dumps([OIL]))

    result = _reconciler(memory_storage).reconcile(_url(cart=json.dumps([TEA]), t="1700000000", utm_source="ig"))

    assert result.source == "url"
    assert [item.id for item in result.items] == ["TEN-TEA"]
    assert result.external_mode is True
    assert memory_storage.get_flag(EXTERNAL_MODE_KEY) is True
    assert parse_qs(urlsplit(result.cleaned_url).query) == {"utm_source": ["ig"]}


def test_url_cart_may_be_encoded_twice(memory_storage):
    result = _reconciler(memory_storage).reconcile(_url(cart=quote(json.dumps([TEA]))))

    assert result.source == "url"
    assert result.items[0].quantity == 2


def test_invalid_url_cart_falls_back_to_storage(memory_storage, memory_backend):
    memory_backend.set("teneraCart", json.dumps([OIL]))

    url = _url(cart="not-json")
    result = _reconciler(memory_storage).reconcile(url)

    assert result.source == "teneraCart"
    assert [item.id for item in result.items] == ["TEN-OIL"]
    assert result.cleaned_url == url


def test_landing_page_handoff_sets_external_mode(memory_storage, memory_backend):
    memory_backend.set("TENERA_CART_UPDATE", json.dumps({"data": {"cartItems": [TEA, OIL]}}))

    result = _reconciler(memory_storage).reconcile(CHECKOUT)

    assert result.source == "TENERA_CART_UPDATE"
    assert result.external_mode is True
    # the handoff is consumed by the save
    assert "TENERA_CART_UPDATE" not in memory_backend.data
    assert len(json.loads(memory_backend.data["cart"])) == 2


def test_own_saved_cart_is_not_external(memory_storage, memory_backend):
    memory_backend.set("cart", json.dumps([TEA]))

    result = _reconciler(memory_storage).reconcile(CHECKOUT)

    assert result.source == "cart"
    assert result.external_mode is False


def test_own_saved_cart_skips_the_input_gate(memory_storage, memory_backend):
    memory_backend.set("cart", json.dumps([dict(TEA, name="Men's Tonic", quantity=120)]))

    result = _reconciler(memory_storage).reconcile(CHECKOUT)

    assert result.source == "cart"
    assert [(item.name, item.quantity) for item in result.items] == [("Men's Tonic", 120)]


def test_handoff_cart_still_goes_through_the_input_gate(memory_storage, memory_backend):
    memory_backend.set("TENERA_CART_UPDATE", json.dumps([dict(TEA, quantity=120), OIL]))

    result = _reconciler(memory_storage).reconcile(CHECKOUT)

    assert result.source == "TENERA_CART_UPDATE"
    assert [item.id for item in result.items] == ["TEN-OIL"]


def test_nothing_found_leaves_cart_empty(memory_storage):
    result = _reconciler(memory_storage).reconcile(CHECKOUT)

    assert result.source is None
    assert result.items == []
    assert result.redirect is None


def test_customer_info_is_saved_whichever_source_wins(memory_storage, memory_backend):
    memory_backend.set("cart", json.dumps([TEA]))

    result = _reconciler(memory_storage).reconcile(_url(customerInfo=json.dumps(CUSTOMER)))

    assert result.customer_info["email"] == "ada@example.com"
    assert memory_storage.load_customer_info()["city"] == "Lagos"


def test_invalid_customer_info_is_ignored(memory_storage):
    result = _reconciler(memory_storage).reconcile(_url(customerInfo=json.dumps({"name": "Ada"})))

    assert result.customer_info is None
    assert memory_storage.load_customer_info() is None


def test_reconcile_runs_once(memory_storage, memory_backend):
    reconciler = _reconciler(memory_storage)
    first = reconciler.reconcile(_url(cart=json.dumps([TEA])))

    second = reconciler.reconcile(_url(cart=json.dumps([OIL])))

    assert second is first
    assert [item.id for item in second.items] == ["TEN-TEA"]


def test_redirect_instruction_is_parsed(memory_storage):
    result = _reconciler(memory_storage).reconcile(
        _url(redirect="true", redirectUrl="https://shop.tenera.test/pay", delay="500", direct="true")
    )

    assert result.redirect.url == "https://shop.tenera.test/pay"
    assert result.redirect.delay == 500
    assert result.redirect.direct is True


@pytest.mark.parametrize("embedded, expected", [
    (False, [("window", CART_READY)]),
    (True, [("window", CART_READY), ("parent", CART_READY), ("parent", IFRAME_READY)]),
])
def test_ready_messages_are_announced_on_load(memory_storage, embedded, expected):
    result = _reconciler(memory_storage).reconcile(CHECKOUT, embedded=embedded)

    assert [(m["target"], m["message"]["type"]) for m in result.messages] == expected


def test_strip_params_keeps_other_parameters():
    url = strip_params("https://a.test/p?cart=x&t=1&ref=abc#top", ("cart", "t"))

    assert url == "https://a.test/p?ref=abc#top"
