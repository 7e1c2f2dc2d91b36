# wishlist/models.py
from django.conf import settings
from django.db import models, transaction


class Wishlist(models.Model):
    """Set of products a user saved for later; created on first use."""
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='wishlist')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'wishlists'

    def __str__(self):
        return f"Wishlist of {self.user}"

    @property
    def count(self):
        return self.items.count()

    def contains(self, product):
        return self.items.filter(product=product).exists()

    @transaction.atomic
    def toggle(self, product):
        """Add ``product`` when absent, drop it when present. Returns True when added."""
        deleted, _ = self.items.filter(product=product).delete()
        if deleted:
            return False
        self.items.create(product=product)
        return True

    def add(self, product):
        self.items.get_or_create(product=product)

    def discard(self, product):
        self.items.filter(product=product).delete()


class WishlistItem(models.Model):
    wishlist = models.ForeignKey(Wishlist, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey('catalog.Product', on_delete=models.CASCADE, related_name='wishlisted_by')

    added_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'wishlist_items'
        ordering = ['-added_at', '-id']
        constraints = [
            models.UniqueConstraint(fields=['wishlist', 'product'], name='product_once_per_wishlist'),
        ]

    def __str__(self):
        return f"{self.product} in {self.wishlist}"
