from django.db import models

# ------------------
# 🛒 Cart Models
# ------------------

class Cart(models.Model):
    session_id = models.CharField(max_length=255, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Cart {self.session_id}"


class CartStorageEntry(models.Model):
    """One named storage slot (e.g. ``systemeCart``) holding a raw JSON string."""

    cart = models.ForeignKey(Cart, on_delete=models.CASCADE, related_name='entries')
    key = models.CharField(max_length=64)
    value = models.TextField()
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('cart', 'key')

    def __str__(self):
        return f"{self.key} for cart {self.cart_id}"
