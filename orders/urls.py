# orders/urls.py
from django.urls import path
from . import views

app_name = 'orders'

urlpatterns = [
    # Checkout
    path('checkout/', views.checkout, name='checkout'),
    path('place-order/', views.place_order_view, name='place_order'),

    # Order Management
    path('', views.order_list, name='order_list'),
    path('recent/', views.recent_orders, name='recent_orders'),
    path('<str:order_number>/', views.order_detail, name='order_detail'),
    path('<str:order_number>/track/', views.track_order, name='track_order'),
    path('<str:order_number>/cancel/', views.cancel_order_view, name='cancel_order'),
]
