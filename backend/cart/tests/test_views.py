import json
from urllib.parse import urlencode

import pytest

from cart.models import Cart

pytestmark = pytest.mark.django_db

LANDING = "https://www.teneraholisticandwellness.com"
TEA = {"id": "TEN-TEA", "sku": "TEN-TEA", "name": "Detox Tea", "price": 14000, "quantity": 2}


def _sync(client, items, **extra):
    return client.post("/api/cart/sync/", {"cartItems": items, **extra}, format="json", HTTP_ORIGIN=LANDING)


def test_get_cart_sets_cookie_and_starts_empty(api_client):
    res = api_client.get("/api/cart/")

    assert res.status_code == 200, res.content
    assert res.data["items"] == []
    assert res.data["external_checkout_mode"] is False
    assert "cart_session_id" in res.cookies


def test_add_update_and_remove_items(api_client, product):
    res = api_client.post("/api/cart/items/", {"sku": "TEN-TEA", "quantity": 2}, format="json")
    assert res.status_code == 201, res.content
    assert res.data["item_count"] == 2
    assert res.data["cart_total"] == "28000.00"

    res = api_client.patch("/api/cart/items/TEN-TEA/", {"quantity": 3}, format="json")
    assert res.data["items"][0]["quantity"] == 3

    res = api_client.patch("/api/cart/items/TEN-TEA/", {"quantity": 0}, format="json")
    assert res.data["items"] == []


def test_add_unknown_or_inactive_product_is_404(api_client, product):
    product.is_active = False
    product.save()

    assert api_client.post("/api/cart/items/", {"sku": "TEN-TEA"}, format="json").status_code == 404
    assert api_client.post("/api/cart/items/", {"sku": "NOPE"}, format="json").status_code == 404


def test_patch_missing_item_is_404(api_client):
    res = api_client.patch("/api/cart/items/TEN-TEA/", {"quantity": 2}, format="json")

    assert res.status_code == 404


def test_delete_clears_cart(api_client, product):
    api_client.post("/api/cart/items/", {"sku": "TEN-TEA"}, format="json")

    res = api_client.delete("/api/cart/")

    assert res.data["items"] == []
    assert api_client.get("/api/cart/").data["items"] == []


def test_cart_persists_for_the_cookie_across_sessions(api_client, product):
    api_client.post("/api/cart/items/", {"sku": "TEN-TEA"}, format="json")
    api_client.cookies.pop("sessionid", None)

    res = api_client.get("/api/cart/")

    assert res.data["item_count"] == 1


def test_init_requires_url(api_client):
    assert api_client.get("/api/cart/init/").status_code == 400


def test_init_adopts_cart_from_url(api_client):
    url = "https://shop.tenera.test/checkout?" + urlencode({"cart": json.dumps([TEA]), "t": "1"})

    res = api_client.get("/api/cart/init/", {"url": url, "embedded": "true", "parent_origin": LANDING})

    assert res.status_code == 200, res.content
    assert res.data["source"] == "url"
    assert res.data["external_checkout_mode"] is True
    assert res.data["cleaned_url"] == "https://shop.tenera.test/checkout"
    assert {m["targetOrigin"] for m in res.data["messages"] if m["target"] == "parent"} == {LANDING}


def test_messages_poll_reports_listening_after_init(api_client):
    api_client.get("/api/cart/init/", {"url": "https://shop.tenera.test/checkout"})

    res = api_client.get("/api/cart/messages/")

    assert res.data["listening"] is True


def test_post_message_from_allowed_origin(api_client):
    res = api_client.post(
        "/api/cart/messages/", {"type": "CART_DATA", "cart": [TEA]}, format="json", HTTP_ORIGIN=LANDING
    )

    assert res.status_code == 200
    assert res.data["accepted"] is True
    assert res.data["messages"][0]["message"]["type"] == "CART_RECEIVED"
    assert res.data["item_count"] == 2


def test_post_message_from_unknown_origin_is_ignored(api_client):
    res = api_client.post(
        "/api/cart/messages/", {"type": "CART_DATA", "cart": [TEA]}, format="json", HTTP_ORIGIN="https://evil.test"
    )

    assert res.status_code == 202
    assert res.data["accepted"] is False
    assert res.data["items"] == []


def test_sync_stages_cart_for_next_checkout_load(api_client):
    res = _sync(api_client, [TEA], customerInfo={"name": "Ada Obi", "email": "ada@example.com"})

    assert res.status_code == 200, res.content
    assert res.data["success"] is True
    assert res.data["totalAmount"] == "28000.00"
    assert res.data["currency"] == "NGN"
    assert Cart.objects.filter(session_id=res.data["session_id"]).exists()

    init = api_client.get("/api/cart/init/", {"url": "https://shop.tenera.test/checkout"})
    assert init.data["source"] == "TENERA_CART_UPDATE"
    assert init.data["external_checkout_mode"] is True
    assert init.data["customer_info"]["email"] == "ada@example.com"


def test_sync_rejects_unknown_origin(api_client):
    res = api_client.post("/api/cart/sync/", {"cartItems": [TEA]}, format="json", HTTP_ORIGIN="https://evil.test")

    assert res.status_code == 403


def test_sync_refuses_whole_request_on_any_bad_line(api_client):
    res = _sync(api_client, [TEA, dict(TEA, id="TEN-OIL", price=0)])

    assert res.status_code == 400
    assert res.data["success"] is False


def test_sync_is_rate_limited(api_client, settings):
    settings.CART_SYNC_RATE_LIMIT = 2

    statuses = [_sync(api_client, [TEA]).status_code for _ in range(3)]

    assert statuses == [200, 200, 429]


def test_saved_cart_keeps_large_summed_quantities(api_client, product):
    api_client.post("/api/cart/items/", {"sku": "TEN-TEA", "quantity": 60}, format="json")
    res = api_client.post("/api/cart/items/", {"sku": "TEN-TEA", "quantity": 60}, format="json")
    assert res.data["items"][0]["quantity"] == 120

    res = api_client.get("/api/cart/")

    assert [(i["id"], i["quantity"]) for i in res.data["items"]] == [("TEN-TEA", 120)]
    assert res.data["cart_total"] == "1680000.00"


def test_saved_cart_keeps_catalog_names(api_client, product):
    product.name = "Men's Tonic & Bitters"
    product.save()
    api_client.post("/api/cart/items/", {"sku": "TEN-TEA"}, format="json")

    res = api_client.get("/api/cart/")

    assert res.data["items"][0]["name"] == "Men's Tonic & Bitters"
