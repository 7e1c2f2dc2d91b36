# orders/models.py
from django.db import models
from django.conf import settings
from catalog.models import Product


class Order(models.Model):
    """Main order model"""
    ORDER_STATUS = [
        ('pending', 'Pending'),
        ('confirmed', 'Confirmed'),
        ('processing', 'Processing'),
        ('shipped', 'Shipped'),
        ('delivered', 'Delivered'),
        ('cancelled', 'Cancelled'),
    ]

    PAYMENT_METHODS = [
        ('cod', 'Cash on Delivery'),
        ('online', 'Online'),
    ]

    PAYMENT_STATUS = [
        ('pending', 'Pending'),
        ('paid', 'Paid'),
        ('failed', 'Failed'),
    ]

    # Order Identifiers
    order_number = models.CharField(max_length=50, unique=True, db_index=True)
    customer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='orders')

    # Status
    status = models.CharField(max_length=20, choices=ORDER_STATUS, default='pending', db_index=True)

    # Pricing (whole currency units)
    currency = models.CharField(max_length=3, default='INR')
    total_amount = models.PositiveIntegerField()
    total_discount = models.PositiveIntegerField(default=0)
    coupon_discount = models.PositiveIntegerField(default=0)
    platform_fee = models.PositiveIntegerField(default=20)
    shipping_fee = models.PositiveIntegerField(default=0)
    final_amount = models.PositiveIntegerField()

    # Coupon (snapshot of the code at order time)
    coupon = models.ForeignKey('promotions.Coupon', on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    coupon_code = models.CharField(max_length=50, blank=True)

    # Shipping Address (snapshot at order time)
    shipping_fullname = models.CharField(max_length=200)
    shipping_phone = models.CharField(max_length=20, blank=True)
    shipping_address = models.CharField(max_length=255, blank=True)
    shipping_city = models.CharField(max_length=100, blank=True)
    shipping_state = models.CharField(max_length=100, blank=True)
    shipping_pincode = models.CharField(max_length=20, blank=True)

    # Payment
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHODS, default='cod')
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS, default='pending')
    paid_at = models.DateTimeField(null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    shipped_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['customer', '-created_at']),
            models.Index(fields=['status', '-created_at']),
            models.Index(fields=['-created_at']),
        ]

    def __str__(self):
        return self.order_number

    @property
    def can_be_cancelled(self):
        return self.status in ('pending', 'confirmed')

    @property
    def shipping_snapshot(self):
        return {
            'fullname': self.shipping_fullname,
            'phone':    self.shipping_phone,
            'address':  self.shipping_address,
            'city':     self.shipping_city,
            'state':    self.shipping_state,
            'pincode':  self.shipping_pincode,
        }


class OrderItem(models.Model):
    """
    Snapshot of a product at purchase time. Later catalog edits or
    deletions never change it; ``product`` is only a back-reference.
    """
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, blank=True, related_name='order_items')

    name = models.CharField(max_length=255)
    price = models.PositiveIntegerField()
    discount = models.PositiveIntegerField(default=0)
    quantity = models.PositiveIntegerField(default=1)
    image = models.URLField(max_length=500, blank=True)
    bgcolor = models.CharField(max_length=20, blank=True)

    class Meta:
        db_table = 'order_items'
        ordering = ['id']
        indexes = [
            models.Index(fields=['order']),
        ]

    @property
    def line_total(self):
        return (self.price - self.discount) * self.quantity


class OrderStatusHistory(models.Model):
    """Track order status changes"""
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='status_history')
    from_status = models.CharField(max_length=20, blank=True)
    to_status = models.CharField(max_length=20)

    notes = models.TextField(blank=True)
    changed_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'order_status_history'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['order', '-created_at']),
        ]
