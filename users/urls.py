"""
Users — Auth URL Configuration

Endpoints: login, refresh, me, me/hierarchy.

@file users/urls.py
"""

from django.urls import path

from .views import LoginView, MeView, MyHierarchyView, TokenRefreshAPIView

app_name = 'auth'

urlpatterns = [
    path('login/', LoginView.as_view(), name='login'),
    path('refresh/', TokenRefreshAPIView.as_view(), name='token-refresh'),
    path('me/', MeView.as_view(), name='me'),
    path('me/hierarchy/', MyHierarchyView.as_view(), name='me-hierarchy'),
]
