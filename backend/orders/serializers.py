# orders/serializers.py
from rest_framework import serializers

from customers.serializers import CustomerInfoSerializer, phone_validator
from .models import Order


class CheckoutSerializer(CustomerInfoSerializer):
    phone = serializers.CharField(validators=[phone_validator])
    address = serializers.CharField(max_length=200)
    city = serializers.CharField(max_length=50)
    discount_code = serializers.CharField(max_length=50, required=False, allow_blank=True)


class OrderLineSerializer(serializers.Serializer):
    name = serializers.CharField()
    quantity = serializers.IntegerField()
    price = serializers.DecimalField(max_digits=12, decimal_places=2)
    total = serializers.DecimalField(max_digits=12, decimal_places=2)


class OrderSerializer(serializers.ModelSerializer):
    items = OrderLineSerializer(source='line_items', many=True, read_only=True)
    discount_code = serializers.CharField(source='discount_code.code', read_only=True, default=None)

    class Meta:
        model = Order
        fields = [
            'payment_reference',
            'customer_name',
            'customer_email',
            'customer_phone',
            'delivery_address',
            'delivery_city',
            'delivery_state',
            'payment_status',
            'order_status',
            'source',
            'subtotal',
            'discount_code',
            'discount_amount',
            'total_amount',
            'tracking_number',
            'paid_at',
            'created_at',
            'items',
        ]


class OrderStatusSerializer(serializers.ModelSerializer):
    item_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Order
        fields = [
            'payment_reference',
            'payment_status',
            'order_status',
            'total_amount',
            'item_count',
            'tracking_number',
            'created_at',
        ]
