from django.urls import path
from . import views

urlpatterns = [
    path('', views.home, name='home'),
    path('api/firebase-config/', views.firebase_config, name='firebase_config'),
    path('api/get-firebase-token/', views.get_firebase_token, name='get_firebase_token'),
]
