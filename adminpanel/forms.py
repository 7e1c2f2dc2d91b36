# adminpanel/forms.py
from django import forms

from catalog.models import Product
from promotions.models import Coupon, normalize_code


class ProductForm(forms.ModelForm):
    class Meta:
        model = Product
        fields = [
            'name', 'slug', 'category', 'description', 'features', 'image',
            'price', 'discount', 'in_stock', 'stock_quantity',
            'is_flash_sale', 'flash_sale_price', 'flash_sale_ends_at',
            'bgcolor', 'panelcolor', 'textcolor',
        ]

    def clean_features(self):
        # an empty JSON value comes back as None; the column is NOT NULL
        return self.cleaned_data.get('features') or []


class CouponForm(forms.ModelForm):
    class Meta:
        model = Coupon
        fields = [
            'code', 'description', 'discount_type', 'discount_value',
            'min_order_amount', 'max_discount', 'usage_limit',
            'valid_from', 'valid_until', 'is_active',
        ]

    def clean_code(self):
        code = normalize_code(self.cleaned_data['code'])
        if not code:
            raise forms.ValidationError('Coupon code is required')
        if Coupon.objects.filter(code=code).exclude(pk=self.instance.pk).exists():
            raise forms.ValidationError('Coupon code already exists')
        return code
