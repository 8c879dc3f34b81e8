from django.db import models
from django.utils.text import slugify


class Category(models.Model):
    name = models.CharField(max_length=50, unique=True)
    slug = models.SlugField(unique=True)

    class Meta:
        verbose_name = "category"
        verbose_name_plural = "categories"
        ordering = ["name"]

    def __str__(self):
        return self.name


class Product(models.Model):
    sku = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=200)
    slug = models.SlugField(unique=True, blank=True)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    category = models.ForeignKey(
        Category, on_delete=models.SET_NULL, related_name="products", blank=True, null=True
    )
    image_url = models.CharField(max_length=500, blank=True)
    stock = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.name) or slugify(self.sku)
        super().save(*args, **kwargs)

    def __str__(self):
        return self.name

    def to_cart_item(self, quantity=1):
        # Imported here to avoid circular imports
        from cart.state import CartItem

        return CartItem(
            id=self.sku,
            sku=self.sku,
            name=self.name,
            price=self.price,
            quantity=quantity,
            image=self.image_url or None,
            category=self.category.name if self.category else None,
            description=self.description or None,
        )
