from django.urls import path
from . import views

app_name = 'quiz'

urlpatterns = [
    path('api/questions/', views.questions, name='questions'),
    path('api/answers/', views.answers, name='answers'),
    path('api/answers/reset/', views.reset_answers, name='reset_answers'),
    path('api/results/', views.results, name='results'),
    path('api/party-match/', views.party_match, name='party_match'),
]
