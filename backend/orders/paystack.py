import hashlib
import hmac
import json
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings


def to_kobo(amount):
    return int((Decimal(amount) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def from_kobo(amount):
    return (Decimal(amount) / 100).quantize(Decimal('0.01'))


def build_cart_summary(cart_items):
    return ", ".join(f"{item['name']} x{item['quantity']}" for item in cart_items)


def build_inline_config(order):
    """
    Settings for the Paystack inline popup, built for ``order``.

    The browser SDK performs the charge; the webhook later confirms it.
    """
    config = {
        "key": settings.PAYSTACK_PUBLIC_KEY,
        "email": order.customer_email,
        "amount": to_kobo(order.total_amount),
        "currency": settings.PAYSTACK_CURRENCY,
        "ref": order.payment_reference,
        "callback_url": settings.PAYSTACK_CALLBACK_URL,
        "metadata": {
            "order_reference": order.payment_reference,
            "customer_name": order.customer_name,
            "customer_phone": order.customer_phone,
            "delivery_address": order.delivery_address,
            "delivery_city": order.delivery_city,
            "delivery_state": order.delivery_state,
            "cart_session_id": order.cart_session_id,
            "cart_items": json.dumps(order.cart_items),
            "cart_summary": build_cart_summary(order.cart_items),
            "custom_fields": [
                {"display_name": "Customer Name", "variable_name": "customer_name", "value": order.customer_name},
                {"display_name": "Items", "variable_name": "cart_summary", "value": build_cart_summary(order.cart_items)},
            ],
        },
    }
    if settings.PAYSTACK_SUBACCOUNT:
        config["subaccount"] = settings.PAYSTACK_SUBACCOUNT
    return config


def verify_signature(payload: bytes, signature: str) -> bool:
    if not signature or not settings.PAYSTACK_SECRET_KEY:
        return False
    expected = hmac.new(settings.PAYSTACK_SECRET_KEY.encode(), payload, hashlib.sha512).hexdigest()
    return hmac.compare_digest(expected, signature)
