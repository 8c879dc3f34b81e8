import logging
import re

from django.core.validators import RegexValidator
from rest_framework import serializers

from customers.serializers import CustomerInfoSerializer

from .state import CartItem, merge_duplicates

logger = logging.getLogger(__name__)

MAX_CART_ITEMS = 50
MAX_ITEM_PRICE = 10_000_000
MAX_ITEM_QUANTITY = 100

sku_validator = RegexValidator(r"^[A-Za-z0-9_-]+$", "Only letters, digits, '-' and '_' are allowed.")


def sanitize_text(value):
    return re.sub(r"[<>\"'&]", "", value.strip())


class ExternalCartItemSerializer(serializers.Serializer):
    """Input gate for cart lines that arrive from outside (URL, storage, messages)."""

    id = serializers.CharField(max_length=50, required=False, validators=[sku_validator])
    sku = serializers.CharField(max_length=50, required=False, validators=[sku_validator])
    name = serializers.CharField(max_length=200)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, max_value=MAX_ITEM_PRICE)
    quantity = serializers.IntegerField(min_value=1, max_value=MAX_ITEM_QUANTITY)
    image = serializers.CharField(max_length=500, required=False, allow_blank=True, allow_null=True)
    category = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate_price(self, value):
        if value <= 0:
            raise serializers.ValidationError("Price must be positive.")
        return value

    def validate_name(self, value):
        value = sanitize_text(value)
        if not value:
            raise serializers.ValidationError("Name is empty after sanitizing.")
        return value

    def validate_category(self, value):
        return sanitize_text(value) if value else value

    def validate(self, attrs):
        item_id = attrs.get("id") or attrs.get("sku")
        if not item_id:
            raise serializers.ValidationError("Either id or sku is required.")
        attrs["id"] = item_id
        attrs["sku"] = attrs.get("sku") or item_id
        return attrs


def gate_cart_items(raw_items, source="external"):
    """
    Validate an externally sourced array and return ``CartItem`` objects.

    Invalid lines are dropped with a warning. Arrays that are not lists or
    that exceed ``MAX_CART_ITEMS`` are rejected outright.
    """
    if not isinstance(raw_items, list):
        logger.warning(f"Rejected cart from {source}: payload is not an array")
        return []
    if len(raw_items) > MAX_CART_ITEMS:
        logger.warning(f"Rejected cart from {source}: {len(raw_items)} items exceeds limit of {MAX_CART_ITEMS}")
        return []

    items = []
    for index, raw in enumerate(raw_items):
        serializer = ExternalCartItemSerializer(data=raw)
        if not serializer.is_valid():
            logger.warning(f"Dropping cart item {index} from {source}: {serializer.errors}")
            continue
        items.append(CartItem(**serializer.validated_data))
    return merge_duplicates(items)


class CartItemSerializer(serializers.Serializer):
    id = serializers.CharField()
    sku = serializers.CharField()
    name = serializers.CharField()
    price = serializers.DecimalField(max_digits=12, decimal_places=2)
    quantity = serializers.IntegerField()
    image = serializers.CharField(allow_null=True)
    category = serializers.CharField(allow_null=True)
    description = serializers.CharField(allow_null=True)
    line_total = serializers.DecimalField(max_digits=14, decimal_places=2)
    is_order_bump = serializers.BooleanField()


class CartSerializer(serializers.Serializer):
    items = CartItemSerializer(many=True)
    item_count = serializers.IntegerField()
    cart_product_subtotal = serializers.DecimalField(max_digits=14, decimal_places=2, source="product_subtotal")
    cart_order_bump_total = serializers.DecimalField(max_digits=14, decimal_places=2, source="order_bump_total")
    cart_total = serializers.DecimalField(max_digits=14, decimal_places=2, source="total")


class AddCartItemSerializer(serializers.Serializer):
    sku = serializers.CharField(max_length=50)
    quantity = serializers.IntegerField(min_value=1, max_value=MAX_ITEM_QUANTITY, default=1)


class UpdateQuantitySerializer(serializers.Serializer):
    # zero or less removes the line
    quantity = serializers.IntegerField(max_value=MAX_ITEM_QUANTITY)


class CartSyncSerializer(serializers.Serializer):
    session_id = serializers.CharField(max_length=255, required=False)
    cartItems = serializers.ListField(child=serializers.JSONField(), min_length=1, max_length=MAX_CART_ITEMS)
    customerInfo = CustomerInfoSerializer(required=False)

    def validate_cartItems(self, value):
        # unlike the lenient gate, a sync with any bad line is refused whole
        for raw in value:
            if not ExternalCartItemSerializer(data=raw).is_valid():
                raise serializers.ValidationError("Invalid cart item data.")
        return gate_cart_items(value, source="cart sync")
