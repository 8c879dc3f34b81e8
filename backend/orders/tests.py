import hashlib
import hmac
import json
import re
from datetime import timedelta
from decimal import Decimal
from unittest import mock

import pytest
from django.core import mail
from django.utils import timezone

from cart.models import Cart
from customers.models import Customer
from offers.models import DiscountCode, UpsellProduct
from orders.emails import send_order_emails
from orders.models import Order
from orders.paystack import build_inline_config, from_kobo, to_kobo, verify_signature

pytestmark = pytest.mark.django_db

SECRET = "sk_test_tenera"
CUSTOMER = {
    "name": "Ada Obi",
    "email": "ada@example.com",
    "phone": "08012345678",
    "address": "12 Allen Avenue",
    "city": "Ikeja",
    "state": "Lagos",
}


@pytest.fixture(autouse=True)
def paystack_settings(settings):
    settings.PAYSTACK_SECRET_KEY = SECRET
    settings.PAYSTACK_PUBLIC_KEY = "pk_test_tenera"
    settings.PAYSTACK_SUBACCOUNT = "ACCT_tenera"


def _signed(payload):
    body = json.dumps(payload).encode()
    return body, hmac.new(SECRET.encode(), body, hashlib.sha512).hexdigest()


def _webhook(client, payload, signature=None):
    body, valid_signature = _signed(payload)
    return client.post(
        "/api/webhooks/paystack/",
        data=body,
        content_type="application/json",
        HTTP_X_PAYSTACK_SIGNATURE=valid_signature if signature is None else signature,
    )


def _checkout(client, **extra):
    return client.post("/api/orders/checkout/", {**CUSTOMER, **extra}, format="json")


def _paid_order(**fields):
    data = dict(
        customer_name="Ada Obi",
        customer_email="ada@example.com",
        cart_items=[{"id": "TEN-TEA", "sku": "TEN-TEA", "name": "Detox Tea", "price": 14000, "quantity": 1}],
        subtotal=Decimal("14000"),
        total_amount=Decimal("14000"),
        payment_status="paid",
        order_status="confirmed",
    )
    data.update(fields)
    return Order.objects.create(**data)


def test_kobo_conversion():
    assert to_kobo(Decimal("25200.00")) == 2520000
    assert to_kobo("99.995") == 10000
    assert from_kobo(2520000) == Decimal("25200.00")


def test_verify_signature(settings):
    body, signature = _signed({"event": "charge.success"})

    assert verify_signature(body, signature) is True
    assert verify_signature(body, "0" * 128) is False
    assert verify_signature(body, "") is False
    settings.PAYSTACK_SECRET_KEY = ""
    assert verify_signature(body, signature) is False


def test_checkout_with_empty_cart_is_rejected(api_client):
    res = _checkout(api_client)

    assert res.status_code == 400
    assert Order.objects.count() == 0


def test_checkout_validates_customer_info(api_client, product):
    api_client.post("/api/cart/items/", {"sku": "TEN-TEA"}, format="json")

    res = _checkout(api_client, phone="123", email="not-an-email")

    assert res.status_code == 400
    assert set(res.data) >= {"phone", "email"}


def test_checkout_creates_pending_order_and_paystack_config(api_client, product):
    api_client.post("/api/cart/items/", {"sku": "TEN-TEA", "quantity": 2}, format="json")

    res = _checkout(api_client)

    assert res.status_code == 201, res.content
    order = Order.objects.get()
    assert order.payment_status == "pending"
    assert order.total_amount == Decimal("28000.00")
    assert order.cart_items[0]["quantity"] == 2
    assert order.customer == Customer.objects.get(email="ada@example.com")
    assert order.cart_session_id == Cart.objects.get().session_id

    config = res.data["paystack"]
    assert re.fullmatch(r"TENERA_\d{9}", config["ref"])
    assert config["ref"] == res.data["order_reference"] == order.payment_reference
    assert config["amount"] == 2800000
    assert config["currency"] == "NGN"
    assert config["subaccount"] == "ACCT_tenera"
    assert json.loads(config["metadata"]["cart_items"])[0]["sku"] == "TEN-TEA"
    assert config["metadata"]["cart_summary"] == "Detox Tea x2"


def test_checkout_applies_percentage_discount(api_client, product):
    DiscountCode.objects.create(code="WELLNESS10", type=DiscountCode.PERCENTAGE, value=Decimal("10"))
    api_client.post("/api/cart/items/", {"sku": "TEN-TEA", "quantity": 2}, format="json")

    res = _checkout(api_client, discount_code="wellness10")

    assert res.status_code == 201, res.content
    assert res.data["total_amount"] == "25200.00"
    assert res.data["paystack"]["amount"] == 2520000
    order = Order.objects.get()
    assert order.discount_amount == Decimal("2800.00")
    assert order.discount_code.code == "WELLNESS10"
    # usage is only counted once payment is confirmed
    assert DiscountCode.objects.get().current_uses == 0


def test_checkout_with_unusable_discount_is_rejected(api_client, product):
    DiscountCode.objects.create(code="OLD", value=Decimal("10"), is_active=False)
    api_client.post("/api/cart/items/", {"sku": "TEN-TEA"}, format="json")

    res = _checkout(api_client, discount_code="OLD")

    assert res.status_code == 400
    assert res.data["detail"] == "Discount code is not active"


def test_webhook_requires_valid_signature(api_client):
    payload = {"event": "charge.success", "data": {"reference": "TENERA_123456789"}}

    assert _webhook(api_client, payload, signature="").status_code == 401
    assert _webhook(api_client, payload, signature="bad").status_code == 401


def test_webhook_charge_success_confirms_order(api_client, product):
    DiscountCode.objects.create(code="WELLNESS10", value=Decimal("10"))
    api_client.post("/api/cart/items/", {"sku": "TEN-TEA", "quantity": 2}, format="json")
    reference = _checkout(api_client, discount_code="WELLNESS10").data["order_reference"]
    cart = Cart.objects.get()
    assert cart.entries.filter(key="cart").exists()

    payload = {
        "event": "charge.success",
        "data": {
            "reference": reference,
            "amount": 2520000,
            "customer": {"email": "ada@example.com"},
            "metadata": {"cart_session_id": cart.session_id},
        },
    }
    res = _webhook(api_client, payload)

    assert res.status_code == 200
    order = Order.objects.get(payment_reference=reference)
    assert order.payment_status == "paid"
    assert order.order_status == "confirmed"
    assert order.paid_at is not None
    assert order.email_sent is True
    assert len(mail.outbox) == 2
    assert json.loads(cart.entries.get(key="cart").value) == []
    assert DiscountCode.objects.get().current_uses == 1

    # Paystack retries deliveries; a replay must not count or email twice
    assert _webhook(api_client, payload).status_code == 200
    assert DiscountCode.objects.get().current_uses == 1
    assert len(mail.outbox) == 2


def _charge_success(order, metadata):
    return {
        "event": "charge.success",
        "data": {
            "reference": order.payment_reference,
            "amount": to_kobo(order.total_amount),
            "customer": {"email": order.customer_email},
            "metadata": metadata,
        },
    }


def test_paid_cart_is_gone_from_the_shoppers_session(api_client, product):
    api_client.post("/api/cart/items/", {"sku": "TEN-TEA", "quantity": 2}, format="json")
    res = _checkout(api_client)
    order = Order.objects.get()
    assert order.checkout_session_key == api_client.session.session_key
    assert api_client.get("/api/cart/").data["item_count"] == 2

    assert _webhook(api_client, _charge_success(order, res.data["paystack"]["metadata"])).status_code == 200

    res = api_client.get("/api/cart/")
    assert res.data["items"] == []
    assert res.data["cart_total"] == "0.00"


def test_upsell_payment_leaves_the_current_cart_alone(api_client, product):
    offer = UpsellProduct.objects.create(name="Wellness Bundle", price=Decimal("45000"))
    api_client.post("/api/cart/items/", {"sku": "TEN-TEA"}, format="json")
    _checkout(api_client)

    res = api_client.post(f"/api/upsells/{offer.id}/pay/")
    upsell = Order.objects.get(source="upsell")
    assert upsell.cart_session_id == ""
    assert res.data["paystack"]["metadata"]["cart_session_id"] == ""

    assert _webhook(api_client, _charge_success(upsell, res.data["paystack"]["metadata"])).status_code == 200

    upsell.refresh_from_db()
    assert upsell.payment_status == "paid"
    assert [i["id"] for i in api_client.get("/api/cart/").data["items"]] == ["TEN-TEA"]


def test_webhook_records_unknown_charge_from_metadata(api_client):
    payload = {
        "event": "charge.success",
        "data": {
            "reference": "TENERA_987654321",
            "amount": 1400000,
            "customer": {"email": "ada@example.com"},
            "metadata": {
                "customer_name": "Ada Obi",
                "customer_phone": "08012345678",
                "cart_items": json.dumps([{"id": "TEN-TEA", "name": "Detox Tea", "price": 14000, "quantity": 1}]),
            },
        },
    }

    assert _webhook(api_client, payload).status_code == 200

    order = Order.objects.get(payment_reference="TENERA_987654321")
    assert order.source == "webhook"
    assert order.payment_status == "paid"
    assert order.total_amount == Decimal("14000.00")
    assert order.cart_items[0]["name"] == "Detox Tea"


def test_webhook_charge_failed_marks_order_failed(api_client):
    order = _paid_order(payment_status="pending", order_status="pending")

    res = _webhook(api_client, {"event": "charge.failed", "data": {"reference": order.payment_reference}})

    assert res.status_code == 200
    order.refresh_from_db()
    assert order.payment_status == "failed"
    assert len(mail.outbox) == 2


def test_webhook_rejects_malformed_events(api_client):
    assert _webhook(api_client, {"event": "charge.success", "data": {}}).status_code == 400
    assert _webhook(api_client, {"event": "charge.failed", "data": {"reference": "TENERA_000000000"}}).status_code == 404


def test_webhook_is_rate_limited(api_client, settings):
    settings.PAYSTACK_WEBHOOK_RATE_LIMIT = 1
    payload = {"event": "transfer.success", "data": {"reference": "x"}}

    assert _webhook(api_client, payload).status_code == 200
    assert _webhook(api_client, payload).status_code == 429


def test_order_status_lookup(api_client):
    order = _paid_order(tracking_number="GIG-1234")

    res = api_client.get(f"/api/orders/{order.payment_reference}/status/")

    assert res.status_code == 200
    assert res.data["order_status"] == "confirmed"
    assert res.data["tracking_number"] == "GIG-1234"
    assert res.data["item_count"] == 1
    assert api_client.get("/api/orders/TENERA_000000000/status/").status_code == 404


def test_dashboard_is_staff_only(api_client, admin_client):
    _paid_order()
    _paid_order(payment_status="failed", total_amount=Decimal("5000"))

    assert api_client.get("/api/admin/dashboard/").status_code == 401
    res = admin_client.get("/api/admin/dashboard/")

    assert res.status_code == 200
    assert res.data["orders"] == {"total": 2, "paid": 1, "pending": 0, "failed": 1}
    assert res.data["revenue"] == "14000.00"
    assert res.data["awaiting_shipment"] == 1


def test_send_order_emails_only_once():
    order = _paid_order()

    assert send_order_emails(order) == (True, True)
    assert send_order_emails(order) == (True, True)

    assert len(mail.outbox) == 2
    assert order.payment_reference in mail.outbox[0].subject
    assert "Detox Tea" in mail.outbox[0].body


def test_marking_order_shipped_queues_shipping_email(django_capture_on_commit_callbacks):
    order = _paid_order(tracking_number="GIG-1234")

    with mock.patch("orders.signals.send_order_shipped_email_task.delay") as delay:
        with django_capture_on_commit_callbacks(execute=True):
            order.order_status = "shipped"
            order.save()
        with django_capture_on_commit_callbacks(execute=True):
            order.save()

    delay.assert_called_once_with(order.id)


def test_shipping_task_sends_once():
    from orders.tasks import send_order_shipped_email_task

    order = _paid_order(order_status="shipped", tracking_number="GIG-1234")

    send_order_shipped_email_task(order.id)
    send_order_shipped_email_task(order.id)

    assert len(mail.outbox) == 1
    assert "GIG-1234" in mail.outbox[0].body
    order.refresh_from_db()
    assert order.shipping_email_sent is True


def test_inline_config_omits_subaccount_when_unset(settings):
    settings.PAYSTACK_SUBACCOUNT = ""

    config = build_inline_config(_paid_order())

    assert "subaccount" not in config


def test_order_emails_keep_product_names():
    order = _paid_order(cart_items=[{"id": "TEN-TONIC", "name": "Men's Tonic & Bitters", "price": 14000, "quantity": 1}])

    send_order_emails(order)

    customer_email = mail.outbox[0]
    assert "Men's Tonic & Bitters" in customer_email.body
    assert "Men&#x27;s Tonic &amp; Bitters" in customer_email.alternatives[0][0]


def test_abandoned_checkouts_are_reminded_once(settings):
    from orders.tasks import notify_abandoned_checkouts

    settings.ABANDONED_CHECKOUT_AFTER_MINUTES = 30
    stale = _paid_order(payment_status="pending", order_status="pending")
    fresh = _paid_order(payment_status="pending", order_status="pending")
    paid = _paid_order()
    upsell = _paid_order(payment_status="pending", order_status="pending", source="upsell")
    Order.objects.filter(id__in=[stale.id, paid.id, upsell.id]).update(
        created_at=timezone.now() - timedelta(hours=2)
    )

    assert notify_abandoned_checkouts() == 1
    assert notify_abandoned_checkouts() == 0

    assert len(mail.outbox) == 2
    assert mail.outbox[0].to == ["ada@example.com"]
    assert "Detox Tea" in mail.outbox[0].body
    assert stale.payment_reference in mail.outbox[1].subject
    stale.refresh_from_db()
    fresh.refresh_from_db()
    assert stale.abandoned_notified is True
    assert fresh.abandoned_notified is False
