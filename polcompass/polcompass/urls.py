"""
URL configuration for polcompass project.

Every application route is a JSON API under its app prefix.
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('', include('core.urls')),
    path('accounts/', include('accounts.urls')),
    path('quiz/', include('quiz.urls')),
    path('hot-topics/', include('hot_topics.urls')),
    path('insights/', include('insights.urls')),
]
