# cart/urls.py
from django.urls import path
from . import views

app_name = 'cart'

urlpatterns = [
    # Cart View
    path('', views.cart_view, name='cart_view'),

    # Add / Remove
    path('add/<int:product_id>/', views.add_to_cart_view, name='add_to_cart'),
    path('remove/<int:product_id>/', views.remove_from_cart_view, name='remove_from_cart'),
    path('clear/', views.clear_cart_view, name='clear_cart'),

    # AJAX Endpoints
    path('api/count/', views.get_cart_count, name='get_cart_count'),
]
