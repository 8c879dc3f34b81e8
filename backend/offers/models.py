from decimal import ROUND_HALF_UP, Decimal

from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from cart.state import ORDER_BUMP_PREFIX, CartItem

CENT = Decimal("0.01")


class DiscountError(Exception):
    pass


class DiscountCode(models.Model):
    PERCENTAGE = 'percentage'
    FIXED_AMOUNT = 'fixed_amount'
    TYPE_CHOICES = [
        (PERCENTAGE, 'Percentage'),
        (FIXED_AMOUNT, 'Fixed amount'),
    ]

    code = models.CharField(max_length=50, unique=True)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default=PERCENTAGE)
    value = models.DecimalField(max_digits=12, decimal_places=2)
    max_uses = models.PositiveIntegerField(null=True, blank=True)
    current_uses = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.code

    def save(self, *args, **kwargs):
        self.code = self.code.strip().upper()
        super().save(*args, **kwargs)

    @classmethod
    def lookup(cls, code):
        """Return the usable code matching ``code`` or raise ``DiscountError``."""
        try:
            discount = cls.objects.get(code__iexact=(code or '').strip())
        except cls.DoesNotExist:
            raise DiscountError('Discount code not found')
        discount.check_usable()
        return discount

    def check_usable(self, now=None):
        now = now or timezone.now()
        if not self.is_active:
            raise DiscountError('Discount code is not active')
        if self.expires_at and self.expires_at < now:
            raise DiscountError('Discount code has expired')
        if self.max_uses is not None and self.current_uses >= self.max_uses:
            raise DiscountError('Discount code usage limit reached')

    def discount_amount(self, subtotal):
        subtotal = Decimal(subtotal)
        if self.type == self.PERCENTAGE:
            amount = subtotal * self.value / Decimal(100)
        else:
            amount = min(self.value, subtotal)
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)

    def apply(self, subtotal):
        return max(Decimal(subtotal) - self.discount_amount(subtotal), Decimal("0")).quantize(CENT)

    def redeem(self):
        DiscountCode.objects.filter(pk=self.pk).update(current_uses=F('current_uses') + 1)


class OrderBumpQuerySet(models.QuerySet):
    def applicable_to(self, subtotal):
        return self.filter(
            Q(min_cart_value__isnull=True) | Q(min_cart_value__lte=subtotal),
            is_active=True,
        ).order_by('position', 'id')


class OrderBump(models.Model):
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    original_price = models.DecimalField(max_digits=12, decimal_places=2)
    discounted_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    image_url = models.CharField(max_length=500, blank=True)
    min_cart_value = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    position = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = OrderBumpQuerySet.as_manager()

    class Meta:
        ordering = ['position', 'id']

    def __str__(self):
        return self.title

    @property
    def price(self):
        return self.discounted_price or self.original_price

    @property
    def cart_item_id(self):
        return f"{ORDER_BUMP_PREFIX}{self.pk}"

    def to_cart_item(self):
        return CartItem(
            id=self.cart_item_id,
            sku=self.cart_item_id,
            name=self.title,
            price=self.price,
            quantity=1,
            image=self.image_url or None,
            description=self.description or None,
        )


class UpsellProduct(models.Model):
    UPSELL = 'upsell'
    DOWNSELL = 'downsell'
    KIND_CHOICES = [
        (UPSELL, 'Upsell'),
        (DOWNSELL, 'Downsell'),
    ]

    name = models.CharField(max_length=200)
    kind = models.CharField(max_length=10, choices=KIND_CHOICES, default=UPSELL)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    description = models.TextField(blank=True)
    image_url = models.CharField(max_length=500, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['kind', 'price']

    def __str__(self):
        return f"{self.name} ({self.get_kind_display()})"

    def to_cart_item(self):
        item_id = f"{self.kind}-{self.pk}"
        return CartItem(id=item_id, sku=item_id, name=self.name, price=self.price, quantity=1)
