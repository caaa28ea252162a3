from django.urls import path
from . import views

app_name = 'accounts'

urlpatterns = [
    path('api/login/', views.firebase_login, name='firebase_login'),
    path('api/logout/', views.logout_view, name='logout'),
    path('api/profile/', views.profile, name='profile'),
    path('api/sync-profile/', views.sync_profile, name='sync_profile'),
    path('api/feed/', views.feed, name='feed'),
    path('api/u/<str:username>/', views.public_profile, name='public_profile'),
    path('api/u/<str:username>/follow/', views.toggle_follow, name='toggle_follow'),
    path('api/u/<str:username>/followers/', views.followers, name='followers'),
    path('api/u/<str:username>/following/', views.following, name='following'),
]
