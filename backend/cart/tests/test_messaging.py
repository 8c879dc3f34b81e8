import json

from cart.messaging import (
    CART_DATA,
    CART_READY,
    CART_RECEIVED,
    CartMessageHandler,
    ReadyBeacon,
    is_allowed_origin,
    origin_of,
)
from cart.state import CartState
from cart.storage import EXTERNAL_MODE_KEY

LANDING = "https://www.teneraholisticandwellness.com"
TEA = {"id": "TEN-TEA", "sku": "TEN-TEA", "name": "Detox Tea", "price": 14000, "quantity": 2}


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


def _beacon(clock, session=None):
    return ReadyBeacon(session if session is not None else {}, own_origin="https://shop.tenera.test",
                       parent_origin=LANDING, interval=2, window=10, clock=clock)


def _handler(storage):
    return CartMessageHandler(CartState(storage), allowed_origins=[LANDING])


def test_beacon_repeats_every_interval_within_window():
    clock = FakeClock()
    beacon = _beacon(clock)

    assert len(beacon.start()) == 1
    clock.now = 1
    assert beacon.poll() == []
    clock.now = 2
    messages = beacon.poll()
    assert messages[0]["message"]["type"] == CART_READY
    assert messages[0]["targetOrigin"] == "https://shop.tenera.test"


def test_beacon_stops_after_window():
    clock = FakeClock()
    beacon = _beacon(clock)
    beacon.start(embedded=True)

    clock.now = 10
    assert beacon.poll() == []
    assert beacon.is_open() is False


def test_beacon_targets_parent_origin_when_embedded():
    beacon = _beacon(FakeClock())

    messages = beacon.start(embedded=True)

    parent = [m for m in messages if m["target"] == "parent"]
    assert {m["targetOrigin"] for m in parent} == {LANDING}
    assert "*" not in {m["targetOrigin"] for m in messages}


def test_beacon_state_survives_between_requests():
    clock = FakeClock()
    session = {}
    _beacon(clock, session).start()

    clock.now = 4
    assert len(_beacon(clock, session).poll()) == 1


def test_poll_without_start_is_silent():
    assert _beacon(FakeClock()).poll() == []


def test_cart_data_from_allowed_origin_replaces_cart(memory_storage, memory_backend):
    handler = _handler(memory_storage)

    outcome = handler.handle({"type": CART_DATA, "cart": [TEA], "redirectUrl": "https://shop.tenera.test/pay"}, LANDING)

    assert outcome.item_count == 1
    assert outcome.redirect_url == "https://shop.tenera.test/pay"
    assert outcome.ack["target"] == "source"
    assert outcome.ack["targetOrigin"] == LANDING
    assert outcome.ack["message"]["type"] == CART_RECEIVED
    assert outcome.ack["message"]["itemCount"] == 1
    assert json.loads(memory_backend.data["cart"])[0]["id"] == "TEN-TEA"
    assert memory_storage.get_flag(EXTERNAL_MODE_KEY) is True


def test_tenera_cart_update_envelope_is_unwrapped(memory_storage):
    outcome = _handler(memory_storage).handle(
        {"type": "TENERA_CART_UPDATE", "data": {"cartItems": [TEA]}}, LANDING
    )

    assert outcome.item_count == 1


def test_messages_from_other_origins_are_ignored(memory_storage, memory_backend):
    outcome = _handler(memory_storage).handle({"type": CART_DATA, "cart": [TEA]}, "https://evil.test")

    assert outcome is None
    assert "cart" not in memory_backend.data


def test_bad_payloads_leave_cart_alone(memory_storage, memory_backend):
    handler = _handler(memory_storage)
    handler.state.clear()

    assert handler.handle({"type": CART_DATA, "cart": {"id": "TEN-TEA"}}, LANDING) is None
    assert handler.handle({"type": CART_DATA, "cart": [{"id": "TEN-TEA", "price": -1}]}, LANDING) is None
    assert handler.handle({"type": "PING"}, LANDING) is None
    assert handler.handle(["not", "a", "message"], LANDING) is None
    assert json.loads(memory_backend.data["cart"]) == []


def test_origin_helpers(settings):
    settings.CART_ALLOWED_ORIGINS = [LANDING]

    assert origin_of("https://www.teneraholisticandwellness.com/shop?x=1") == LANDING
    assert origin_of("not a url") is None
    assert is_allowed_origin(LANDING) is True
    assert is_allowed_origin(None) is False
    assert is_allowed_origin("http://localhost:9999") is False
