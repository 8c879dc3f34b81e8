from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from offers.models import DiscountCode, DiscountError, OrderBump, UpsellProduct
from orders.models import Order

pytestmark = pytest.mark.django_db

LANDING = "https://www.teneraholisticandwellness.com"


def _code(**fields):
    data = dict(code="WELLNESS10", type=DiscountCode.PERCENTAGE, value=Decimal("10"))
    data.update(fields)
    return DiscountCode.objects.create(**data)


def test_percentage_discount():
    code = _code()

    assert code.discount_amount(Decimal("28000")) == Decimal("2800.00")
    assert code.apply(Decimal("28000")) == Decimal("25200.00")


def test_fixed_discount_never_goes_below_zero():
    code = _code(code="FLAT5K", type=DiscountCode.FIXED_AMOUNT, value=Decimal("5000"))

    assert code.apply(Decimal("12000")) == Decimal("7000.00")
    assert code.apply(Decimal("3000")) == Decimal("0.00")


def test_lookup_is_case_insensitive_and_codes_are_stored_upper():
    _code(code="  wellness10 ")

    assert DiscountCode.lookup("Wellness10").code == "WELLNESS10"


@pytest.mark.parametrize("fields, message", [
    ({"is_active": False}, "Discount code is not active"),
    ({"expires_at": timezone.now() - timedelta(days=1)}, "Discount code has expired"),
    ({"max_uses": 2, "current_uses": 2}, "Discount code usage limit reached"),
])
def test_unusable_codes(fields, message):
    _code(**fields)

    with pytest.raises(DiscountError, match=message):
        DiscountCode.lookup("WELLNESS10")


def test_unknown_code():
    with pytest.raises(DiscountError, match="Discount code not found"):
        DiscountCode.lookup("NOPE")


def test_redeem_increments_usage():
    code = _code(max_uses=1)

    code.redeem()

    code.refresh_from_db()
    assert code.current_uses == 1
    with pytest.raises(DiscountError):
        code.check_usable()


def test_validate_endpoint(api_client):
    _code()

    res = api_client.post("/api/discounts/validate/", {"code": "wellness10", "subtotal": "28000"}, format="json")

    assert res.status_code == 200, res.content
    assert res.data["valid"] is True
    assert res.data["discount_amount"] == "2800.00"
    assert res.data["total"] == "25200.00"

    res = api_client.post("/api/discounts/validate/", {"code": "NOPE", "subtotal": "28000"}, format="json")
    assert res.status_code == 400
    assert res.data["detail"] == "Discount code not found"


def test_order_bumps_follow_product_subtotal(api_client, product):
    always = OrderBump.objects.create(title="Herbal Soap", original_price=Decimal("5000"),
                                      discounted_price=Decimal("3500"))
    big = OrderBump.objects.create(title="Spa Kit", original_price=Decimal("20000"),
                                   min_cart_value=Decimal("25000"), position=1)
    api_client.post("/api/cart/items/", {"sku": "TEN-TEA"}, format="json")

    res = api_client.get("/api/order-bumps/")
    assert [b["id"] for b in res.data["order_bumps"]] == [always.id]
    assert res.data["order_bumps"][0]["price"] == "3500.00"

    assert api_client.post(f"/api/order-bumps/{big.id}/").status_code == 400

    api_client.patch("/api/cart/items/TEN-TEA/", {"quantity": 2}, format="json")
    res = api_client.get("/api/order-bumps/")
    assert [b["id"] for b in res.data["order_bumps"]] == [always.id, big.id]


def test_add_and_remove_order_bump(api_client, product):
    bump = OrderBump.objects.create(title="Herbal Soap", original_price=Decimal("5000"),
                                    discounted_price=Decimal("3500"))
    api_client.post("/api/cart/items/", {"sku": "TEN-TEA"}, format="json")

    api_client.post(f"/api/order-bumps/{bump.id}/")
    res = api_client.post(f"/api/order-bumps/{bump.id}/")

    assert res.status_code == 200
    bump_lines = [i for i in res.data["items"] if i["is_order_bump"]]
    assert len(bump_lines) == 1
    assert bump_lines[0]["quantity"] == 1
    assert res.data["cart_order_bump_total"] == "3500.00"
    assert res.data["cart_product_subtotal"] == "14000.00"
    assert api_client.get("/api/order-bumps/").data["order_bumps"][0]["in_cart"] is True

    res = api_client.delete(f"/api/order-bumps/{bump.id}/")
    assert res.data["cart_order_bump_total"] == "0.00"


def test_upsell_list_shows_active_offers(api_client):
    UpsellProduct.objects.create(name="Wellness Bundle", price=Decimal("45000"))
    UpsellProduct.objects.create(name="Mini Bundle", kind=UpsellProduct.DOWNSELL, price=Decimal("15000"))
    UpsellProduct.objects.create(name="Retired", price=Decimal("1000"), is_active=False)

    res = api_client.get("/api/upsells/")
    assert {o["name"] for o in res.data} == {"Wellness Bundle", "Mini Bundle"}

    res = api_client.get("/api/upsells/", {"kind": "downsell"})
    assert [o["name"] for o in res.data] == ["Mini Bundle"]


def test_upsell_pay_needs_customer_info(api_client):
    offer = UpsellProduct.objects.create(name="Wellness Bundle", price=Decimal("45000"))

    assert api_client.post(f"/api/upsells/{offer.id}/pay/").status_code == 400
    assert api_client.post("/api/upsells/999/pay/").status_code == 404


def test_upsell_pay_builds_paystack_config(api_client):
    offer = UpsellProduct.objects.create(name="Wellness Bundle", price=Decimal("45000"))
    api_client.post(
        "/api/cart/sync/",
        {
            "cartItems": [{"id": "TEN-TEA", "name": "Detox Tea", "price": 14000, "quantity": 1}],
            "customerInfo": {"name": "Ada Obi", "email": "ada@example.com"},
        },
        format="json",
        HTTP_ORIGIN=LANDING,
    )

    res = api_client.post(f"/api/upsells/{offer.id}/pay/")

    assert res.status_code == 201, res.content
    order = Order.objects.get(source="upsell")
    assert order.customer_email == "ada@example.com"
    assert order.cart_items[0]["id"] == f"upsell-{offer.id}"
    assert res.data["paystack"]["amount"] == 4500000
    assert res.data["paystack"]["ref"] == order.payment_reference
