from django.urls import path

from . import views

app_name = 'api'

urlpatterns = [
    path('auth/register', views.auth_register, name='auth-register'),
    path('auth/login', views.auth_login, name='auth-login'),
    path('auth/logout', views.auth_logout, name='auth-logout'),
    path('decks/', views.decks_collection, name='decks-collection'),
    path('cards/', views.cards_collection, name='cards-collection'),
    path('review/due', views.review_due, name='review-due'),
    path('study/start', views.study_start, name='study-start'),
    path('study/<uuid:session_id>/end', views.study_end, name='study-end'),
    path('study/review', views.study_review, name='study-review'),
    path('stats/summary', views.stats_summary, name='stats-summary'),
    path('stats/period', views.stats_period, name='stats-period'),
    path('stats/difficulty', views.stats_difficulty, name='stats-difficulty'),
    path('stats/decks', views.stats_decks, name='stats-decks'),
    path('stats/time-distribution', views.stats_time_distribution, name='stats-time-distribution'),
    path('stats/detailed', views.stats_detailed, name='stats-detailed'),
    path('stats/export', views.stats_export, name='stats-export'),
    path('gamification/stats', views.gamification_stats, name='gamification-stats'),
    path('achievements/', views.achievements_collection, name='achievements-collection'),
    path('achievements/unlocked', views.achievements_unlocked, name='achievements-unlocked'),
    path('achievements/category/<str:category>', views.achievements_by_category, name='achievements-category'),
    path('achievements/check', views.achievements_check, name='achievements-check'),
    path('achievements/initialize', views.achievements_initialize, name='achievements-initialize'),
]
