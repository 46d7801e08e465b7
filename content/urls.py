"""
Content — URL Configuration

/api/v1/content/bulletins/, surveys/, voting/, reports/, archive/

@file content/urls.py
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import ArchiveDocumentViewSet, BulletinViewSet, ReportViewSet, SurveyViewSet, VotingItemViewSet

app_name = 'content'

router = DefaultRouter()
router.register('bulletins', BulletinViewSet, basename='bulletin')
router.register('surveys', SurveyViewSet, basename='survey')
router.register('voting', VotingItemViewSet, basename='voting')
router.register('reports', ReportViewSet, basename='report')
router.register('archive', ArchiveDocumentViewSet, basename='archive')

urlpatterns = [
    path('', include(router.urls)),
]
