from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from unfold.admin import ModelAdmin, TabularInline
from .models import User, Address


class AddressInline(TabularInline):
    model = Address
    extra = 0


@admin.register(User)
class UserAdmin(BaseUserAdmin, ModelAdmin):
    list_display = ("email", "fullname", "user_type", "is_staff", "created_at")
    list_filter = ("user_type", "is_staff", "is_active")
    search_fields = ("email", "fullname", "username")
    ordering = ("-created_at",)
    inlines = [AddressInline]
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Store", {"fields": ("fullname", "contact", "user_type")}),
    )
