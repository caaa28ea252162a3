from django.apps import AppConfig


class HotTopicsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'hot_topics'
