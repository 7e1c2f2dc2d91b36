# promotions/urls.py
from django.urls import path
from . import views

app_name = 'promotions'

urlpatterns = [
    path('apply/', views.apply_coupon, name='apply_coupon'),
    path('my-coupons/', views.my_coupons, name='my_coupons'),
]
