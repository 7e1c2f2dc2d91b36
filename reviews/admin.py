from django.contrib import admin
from unfold.admin import ModelAdmin
from unfold.decorators import display
from .models import Review


@admin.register(Review)
class ReviewAdmin(ModelAdmin):
    list_display = ["product", "customer", "rating_display", "title", "created_at"]
    list_filter = ["rating"]
    search_fields = ["product__name", "customer__email", "title"]
    readonly_fields = ["created_at", "updated_at"]

    @display(description="Rating", ordering="rating")
    def rating_display(self, obj):
        return f"{obj.rating}/5"
