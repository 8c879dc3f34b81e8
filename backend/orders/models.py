# orders/models.py

import secrets
from decimal import Decimal

from django.db import models


def generate_payment_reference():
    return f"TENERA_{secrets.randbelow(900_000_000) + 100_000_000}"


class Order(models.Model):
    PAYMENT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('paid', 'Paid'),
        ('failed', 'Failed'),
        ('refunded', 'Refunded'),
    ]
    ORDER_STATUS = [
        ('pending', 'Pending'),
        ('confirmed', 'Confirmed'),
        ('processing', 'Processing'),
        ('shipped', 'Shipped'),
        ('delivered', 'Delivered'),
        ('cancelled', 'Cancelled'),
    ]
    SOURCE_CHOICES = [
        ('checkout', 'Checkout'),
        ('upsell', 'Upsell'),
        ('webhook', 'Payment webhook'),
        ('admin', 'Admin'),
    ]

    customer = models.ForeignKey(
        'customers.Customer',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='orders'
    )
    customer_name = models.CharField(max_length=100)
    customer_email = models.EmailField()
    customer_phone = models.CharField(max_length=20, blank=True)
    delivery_address = models.CharField(max_length=200, blank=True)
    delivery_city = models.CharField(max_length=50, blank=True)
    delivery_state = models.CharField(max_length=50, blank=True)

    cart_items = models.JSONField(default=list, blank=True)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    discount_code = models.ForeignKey(
        'offers.DiscountCode',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='orders'
    )
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    payment_reference = models.CharField(max_length=100, unique=True, default=generate_payment_reference)
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='pending')
    order_status = models.CharField(max_length=20, choices=ORDER_STATUS, default='pending')
    source = models.CharField(max_length=20, choices=SOURCE_CHOICES, default='checkout')
    cart_session_id = models.CharField(max_length=255, blank=True)
    checkout_session_key = models.CharField(max_length=40, blank=True)
    tracking_number = models.CharField(max_length=255, blank=True, null=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    email_sent = models.BooleanField(default=False)
    email_sent_at = models.DateTimeField(null=True, blank=True)
    shipping_email_sent = models.BooleanField(default=False)
    abandoned_notified = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._previous_status = self.order_status  # Store current status

    def __str__(self):
        return f"Order {self.payment_reference} by {self.customer_email}"

    def get_recipient_email(self):
        if self.customer_id and self.customer.email:
            return self.customer.email
        return self.customer_email

    @property
    def item_count(self):
        return sum(int(item.get('quantity', 0)) for item in self.cart_items)

    @property
    def line_items(self):
        """Snapshot lines with their totals, for templates and the admin."""
        lines = []
        for item in self.cart_items:
            price = Decimal(str(item.get('price', 0)))
            quantity = int(item.get('quantity', 0))
            lines.append({
                'name': item.get('name', ''),
                'quantity': quantity,
                'price': price,
                'total': price * quantity,
            })
        return lines

    def calculate_total(self):
        subtotal = sum((line['total'] for line in self.line_items), Decimal('0.00'))
        return max(subtotal - self.discount_amount, Decimal('0.00'))
