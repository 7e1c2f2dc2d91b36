# users/urls.py
from django.urls import path
from . import views

app_name = 'users'

urlpatterns = [
    # Authentication
    path('login/', views.user_login, name='login'),
    path('logout/', views.user_logout, name='logout'),

    # Profile
    path('profile/', views.profile_view, name='profile'),
    path('profile/update/', views.profile_update, name='profile_update'),

    # Addresses
    path('addresses/', views.address_list, name='address_list'),
    path('addresses/add/', views.address_add, name='address_add'),
    path('addresses/default/<int:address_id>/', views.address_set_default, name='address_set_default'),
    path('addresses/delete/<int:address_id>/', views.address_delete, name='address_delete'),

    # Recently viewed
    path('track-view/<int:product_id>/', views.track_view_api, name='track_view'),
    path('recently-viewed/', views.recently_viewed, name='recently_viewed'),
]
