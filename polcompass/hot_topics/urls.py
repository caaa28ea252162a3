from django.urls import path
from . import views

app_name = 'hot_topics'

urlpatterns = [
    path('api/', views.topic_list, name='list'),
    path('api/<str:topic_id>/answer/', views.answer_topic, name='answer'),
    path('api/admin/create/', views.admin_create, name='admin_create'),
    path('api/admin/<str:topic_id>/toggle/', views.admin_toggle, name='admin_toggle'),
    path('api/admin/<str:topic_id>/delete/', views.admin_delete, name='admin_delete'),
]
