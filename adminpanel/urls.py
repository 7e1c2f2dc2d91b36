from django.urls import path
from .import views

app_name = "adminpanel"

urlpatterns = [
    # Orders
    path("orders/", views.order_list, name="order_list"),
    path("orders/<str:order_number>/status/", views.order_update_status, name="order_update_status"),
    path("orders/<str:order_number>/payment/", views.order_update_payment, name="order_update_payment"),

    # Products
    path("products/add/", views.product_add, name="product_add"),
    path("products/edit/<int:product_id>/", views.product_edit, name="product_edit"),
    path("products/delete/<int:product_id>/", views.product_delete, name="product_delete"),

    # Coupons
    path("coupons/add/", views.coupon_add, name="coupon_add"),
]
