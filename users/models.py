# users/models.py
from django.db import models
from django.contrib.auth.models import AbstractUser
from django.conf import settings


class User(AbstractUser):
    """Extended user model"""
    USER_TYPES = [
        ('customer', 'Customer'),
        ('owner', 'Owner'),
    ]

    email = models.EmailField(unique=True)
    fullname = models.CharField(max_length=200, blank=True)
    contact = models.CharField(max_length=20, blank=True)

    user_type = models.CharField(max_length=20, choices=USER_TYPES, default='customer')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'
        indexes = [
            models.Index(fields=['email']),
        ]

    def __str__(self):
        return self.email

    @property
    def display_name(self):
        return self.fullname or self.get_full_name() or self.username

    @property
    def default_address(self):
        return self.addresses.filter(is_default=True).first()


class Address(models.Model):
    """Customer saved addresses; at most one is the default."""
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='addresses')

    fullname = models.CharField(max_length=200)
    phone = models.CharField(max_length=20)
    address = models.CharField(max_length=255)
    city = models.CharField(max_length=100)
    state = models.CharField(max_length=100, blank=True)
    pincode = models.CharField(max_length=20, blank=True)

    is_default = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'addresses'
        verbose_name_plural = 'Addresses'
        ordering = ['-is_default', '-created_at']
        indexes = [
            models.Index(fields=['user']),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['user'],
                condition=models.Q(is_default=True),
                name='one_default_address_per_user',
            ),
        ]

    def __str__(self):
        return f"{self.fullname}, {self.city}"

    def as_snapshot(self):
        return {
            'fullname': self.fullname,
            'phone':    self.phone,
            'address':  self.address,
            'city':     self.city,
            'state':    self.state,
            'pincode':  self.pincode,
        }


class RecentlyViewed(models.Model):
    """Products a user looked at, newest first, bounded by RECENTLY_VIEWED_LIMIT."""
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='recently_viewed')
    product = models.ForeignKey('catalog.Product', on_delete=models.CASCADE, related_name='+')
    viewed_at = models.DateTimeField()

    class Meta:
        db_table = 'recently_viewed'
        ordering = ['-viewed_at', '-id']
        unique_together = [['user', 'product']]
        indexes = [
            models.Index(fields=['user', '-viewed_at']),
        ]
