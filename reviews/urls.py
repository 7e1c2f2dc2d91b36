# reviews/urls.py
from django.urls import path
from . import views

app_name = 'reviews'

urlpatterns = [
    path('product/<int:product_id>/', views.product_reviews, name='product_reviews'),
    path('product/<int:product_id>/write/', views.write_review, name='write_review'),
]
