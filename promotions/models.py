# promotions/models.py
from django.conf import settings
from django.db import models
from django.core.exceptions import ValidationError
from django.utils import timezone


def normalize_code(code):
    return (code or '').strip().upper()


class Coupon(models.Model):
    """Discount coupons"""
    DISCOUNT_TYPES = [
        ('percentage', 'Percentage'),
        ('fixed', 'Fixed Amount'),
    ]

    code = models.CharField(max_length=50, unique=True, db_index=True)
    description = models.TextField(blank=True)

    discount_type = models.CharField(max_length=20, choices=DISCOUNT_TYPES, default='percentage')
    discount_value = models.PositiveIntegerField()

    # Conditions
    min_order_amount = models.PositiveIntegerField(default=0)
    max_discount = models.PositiveIntegerField(null=True, blank=True)  # percentage coupons only

    # Limitations
    usage_limit = models.PositiveIntegerField(null=True, blank=True)  # Total uses
    used_count = models.PositiveIntegerField(default=0)
    used_by = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        through='CouponUsage',
        related_name='used_coupons',
        blank=True,
    )

    # Validity
    valid_from = models.DateTimeField(default=timezone.now)
    valid_until = models.DateTimeField()

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'coupons'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['is_active', 'valid_from', 'valid_until']),
        ]

    def __str__(self):
        return self.code

    def clean(self):
        if self.discount_type == 'percentage' and self.discount_value is not None and self.discount_value > 100:
            raise ValidationError({'discount_value': 'A percentage discount cannot exceed 100.'})
        if self.discount_type == 'fixed' and self.max_discount is not None:
            raise ValidationError({'max_discount': 'Maximum discount only applies to percentage coupons.'})
        if self.valid_from and self.valid_until and self.valid_until < self.valid_from:
            raise ValidationError({'valid_until': 'Coupon must end after it starts.'})

    def save(self, *args, **kwargs):
        self.code = normalize_code(self.code)
        super().save(*args, **kwargs)

    @property
    def label(self):
        if self.discount_type == 'percentage':
            return f"{self.discount_value}% off"
        return f"{self.discount_value} off"


class CouponUsage(models.Model):
    """One row per (coupon, user): the coupon's used-by set."""
    coupon = models.ForeignKey(Coupon, on_delete=models.CASCADE, related_name='usage_records')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='coupon_usage')
    order = models.ForeignKey('orders.Order', on_delete=models.SET_NULL, null=True, blank=True, related_name='coupon_usage')

    discount_amount = models.PositiveIntegerField()

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'coupon_usage'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['coupon', 'user'], name='coupon_used_once_per_user'),
        ]
