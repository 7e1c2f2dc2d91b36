from django.contrib import admin
from django.utils.html import format_html
from unfold.admin import ModelAdmin, TabularInline
from unfold.decorators import display
from .models import Order, OrderItem, OrderStatusHistory


STATUS_COLORS = {
    'pending':    '#f59e0b',
    'confirmed':  '#3b82f6',
    'processing': '#6366f1',
    'shipped':    '#0ea5e9',
    'delivered':  '#16a34a',
    'cancelled':  '#dc2626',
}


class OrderItemInline(TabularInline):
    model = OrderItem
    extra = 0
    can_delete = False
    readonly_fields = ["product", "name", "price", "discount", "quantity", "image", "bgcolor"]


class OrderStatusHistoryInline(TabularInline):
    model = OrderStatusHistory
    extra = 0
    can_delete = False
    readonly_fields = ["from_status", "to_status", "notes", "changed_by", "created_at"]


@admin.register(Order)
class OrderAdmin(ModelAdmin):
    list_display = ["order_number", "customer", "status_display", "payment_method", "payment_status", "final_amount", "created_at"]
    list_filter = ["status", "payment_method", "payment_status"]
    search_fields = ["order_number", "customer__email", "shipping_fullname"]
    inlines = [OrderItemInline, OrderStatusHistoryInline]
    # Status changes go through the adminpanel endpoints so transitions are checked.
    readonly_fields = [
        "order_number", "customer", "status", "payment_status", "total_amount", "total_discount",
        "coupon", "coupon_code", "coupon_discount", "platform_fee", "shipping_fee", "final_amount",
        "created_at", "updated_at", "confirmed_at", "shipped_at", "delivered_at", "cancelled_at", "paid_at",
    ]

    @display(description="Status", ordering="status")
    def status_display(self, obj):
        return format_html(
            '<span style="color: {}; font-weight: 600;">{}</span>',
            STATUS_COLORS.get(obj.status, '#6b7280'),
            obj.get_status_display(),
        )

    def has_delete_permission(self, request, obj=None):
        return False
