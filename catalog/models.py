# catalog/models.py
from django.db import models
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator
from django.utils import timezone


class Category(models.Model):
    """Product categories"""
    name = models.CharField(max_length=100)
    slug = models.SlugField(unique=True, db_index=True)
    description = models.TextField(blank=True)
    display_order = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'catalog_categories'
        verbose_name_plural = 'Categories'
        ordering = ['display_order', 'name']

    def __str__(self):
        return self.name


class Product(models.Model):
    """
    Sellable product. Prices and discounts are whole currency units;
    ``discount`` is an absolute amount taken off ``price``.
    """
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=300, unique=True, db_index=True)
    category = models.ForeignKey(Category, on_delete=models.SET_NULL, null=True, blank=True, related_name='products')

    description = models.TextField(blank=True)
    features = models.JSONField(default=list, blank=True)
    image = models.URLField(max_length=500, blank=True)

    # Pricing
    price = models.PositiveIntegerField()
    discount = models.PositiveIntegerField(default=0)

    # Inventory
    in_stock = models.BooleanField(default=True)
    stock_quantity = models.PositiveIntegerField(default=100)

    # Flash sale
    is_flash_sale = models.BooleanField(default=False)
    flash_sale_price = models.PositiveIntegerField(null=True, blank=True)
    flash_sale_ends_at = models.DateTimeField(null=True, blank=True)

    # Ratings
    rating = models.DecimalField(
        max_digits=3, decimal_places=2, default=0,
        validators=[MinValueValidator(0), MaxValueValidator(5)],
    )
    rating_count = models.PositiveIntegerField(default=0)

    # Display colors
    bgcolor = models.CharField(max_length=20, blank=True)
    panelcolor = models.CharField(max_length=20, blank=True)
    textcolor = models.CharField(max_length=20, blank=True)

    # Analytics
    view_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'catalog_products'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['slug']),
            models.Index(fields=['category', 'in_stock']),
            models.Index(fields=['-created_at']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(discount__lte=models.F('price')),
                name='product_discount_lte_price',
            ),
        ]

    def __str__(self):
        return self.name

    def clean(self):
        if self.price is not None and self.discount is not None and self.discount > self.price:
            raise ValidationError({'discount': 'Discount cannot exceed the price.'})
        if self.is_flash_sale and self.flash_sale_price is None:
            raise ValidationError({'flash_sale_price': 'Flash sale price is required for a flash sale.'})
        if self.flash_sale_price is not None and self.price is not None and self.flash_sale_price > self.price:
            raise ValidationError({'flash_sale_price': 'Flash sale price cannot exceed the price.'})

    def is_available(self, quantity=1):
        return self.in_stock and self.stock_quantity >= quantity

    def flash_sale_active(self, now=None):
        if not self.is_flash_sale or self.flash_sale_price is None:
            return False
        now = now or timezone.now()
        return self.flash_sale_ends_at is None or now < self.flash_sale_ends_at

    def current_discount(self, now=None):
        """Discount in effect at ``now``; a running flash sale wins when it is deeper."""
        discount = min(self.discount, self.price)
        if self.flash_sale_active(now):
            discount = max(discount, self.price - min(self.flash_sale_price, self.price))
        return discount

    def selling_price(self, now=None):
        return self.price - self.current_discount(now)


def resolve_products(product_ids, for_update=False):
    """Map each still-existing product id to its product row."""
    products = Product.objects.select_related('category')
    if for_update:
        products = products.select_for_update(of=('self',))
    return products.in_bulk(list(set(product_ids)))
