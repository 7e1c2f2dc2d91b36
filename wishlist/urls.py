# wishlist/urls.py
from django.urls import path
from . import views

app_name = 'wishlist'

urlpatterns = [
    path('', views.wishlist_view, name='wishlist'),
    path('count/', views.wishlist_count, name='count'),

    # POST only
    path('toggle/<int:product_id>/', views.toggle_wishlist, name='toggle'),
    path('add/<int:product_id>/', views.add_to_wishlist, name='add'),
    path('remove/<int:product_id>/', views.remove_from_wishlist, name='remove'),
    path('move-to-cart/<int:product_id>/', views.move_to_cart, name='move_to_cart'),
]
