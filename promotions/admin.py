from django.contrib import admin
from unfold.admin import ModelAdmin, TabularInline
from unfold.decorators import display
from .models import Coupon, CouponUsage


class CouponUsageInline(TabularInline):
    model = CouponUsage
    extra = 0
    can_delete = False
    readonly_fields = ["user", "order", "discount_amount", "created_at"]


@admin.register(Coupon)
class CouponAdmin(ModelAdmin):
    list_display = ["code", "discount_type", "discount_value", "usage_display", "valid_from", "valid_until", "is_active"]
    list_filter = ["discount_type", "is_active"]
    search_fields = ["code", "description"]
    readonly_fields = ["used_count"]
    inlines = [CouponUsageInline]

    @display(description="Used")
    def usage_display(self, obj):
        if obj.usage_limit is None:
            return f"{obj.used_count}"
        return f"{obj.used_count} / {obj.usage_limit}"
