from django.contrib import admin
from django.utils.html import format_html
from unfold.admin import ModelAdmin
from unfold.decorators import display
from .models import Category, Product


@admin.register(Category)
class CategoryAdmin(ModelAdmin):
    list_display = ("name", "display_order", "is_active")
    prepopulated_fields = {"slug": ("name",)}
    list_filter = ("is_active",)
    search_fields = ("name",)


@admin.register(Product)
class ProductAdmin(ModelAdmin):
    list_display = [
        "product_image_display",
        "name",
        "category",
        "price",
        "discount",
        "stock_display",
        "flash_sale_display",
    ]
    list_filter = ["category", "in_stock", "is_flash_sale"]
    search_fields = ["name", "category__name"]
    prepopulated_fields = {"slug": ("name",)}
    readonly_fields = ["rating", "rating_count", "view_count"]

    @display(description="Image", header=True)
    def product_image_display(self, obj):
        if obj.image:
            return format_html(
                '<img src="{}" style="width: 50px; height: 50px; object-fit: cover; border-radius: 8px;" />',
                obj.image
            )
        return format_html(
            '<div style="width: 50px; height: 50px; background: {}; border-radius: 8px;"></div>',
            obj.bgcolor or '#f3f4f6'
        )

    @display(description="Stock", ordering="stock_quantity")
    def stock_display(self, obj):
        if not obj.in_stock or obj.stock_quantity == 0:
            return format_html('<span style="color: #dc2626;">{}</span>', 'Out of stock')
        return obj.stock_quantity

    @display(description="Flash sale", boolean=True)
    def flash_sale_display(self, obj):
        return obj.flash_sale_active()
