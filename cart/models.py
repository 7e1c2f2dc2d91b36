# cart/models.py
from django.db import models
from django.conf import settings
from catalog.models import Product


class Cart(models.Model):
    """Shopping cart, one per user"""
    customer = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='cart')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'cart_carts'

    def __str__(self):
        return f"Cart of {self.customer}"


class CartItem(models.Model):
    """A product in the cart with how many units of it were added."""
    cart = models.ForeignKey(Cart, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='cart_items')

    quantity = models.PositiveIntegerField(default=1)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'cart_items'
        ordering = ['created_at', 'id']
        unique_together = [['cart', 'product']]
        indexes = [
            models.Index(fields=['cart']),
        ]
