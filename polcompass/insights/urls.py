from django.urls import path
from . import views

app_name = 'insights'

urlpatterns = [
    path('api/', views.generate, name='generate'),
    path('api/mine/', views.mine, name='mine'),
]
