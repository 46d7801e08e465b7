"""
MemberHub — Root URL Configuration

All API endpoints are namespaced under /api/v1/.
The DRF browsable API is available for route inspection in development.

@file config/urls.py
"""

from django.contrib import admin
from django.urls import include, path
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.reverse import reverse

from hierarchy.urls import ROUTES

admin.site.site_header = 'MemberHub Administration'
admin.site.site_title = 'MemberHub'
admin.site.index_title = 'Members, hierarchy and content'


@api_view(['GET'])
@permission_classes([AllowAny])
def api_root(request, format=None):
    """MemberHub API v1: endpoint directory."""
    return Response({
        'auth': {
            'login': reverse('api-v1:auth:login', request=request, format=format),
            'refresh': reverse('api-v1:auth:token-refresh', request=request, format=format),
            'me': reverse('api-v1:auth:me', request=request, format=format),
            'hierarchy': reverse('api-v1:auth:me-hierarchy', request=request, format=format),
        },
        'users': reverse('api-v1:users:user-list', request=request, format=format),
        'hierarchy': {
            prefix: reverse(f'api-v1:hierarchy:{key.replace("_", "-")}-list', request=request, format=format)
            for key, prefix in ROUTES.items()
        },
        'content': {
            name: reverse(f'api-v1:content:{name}-list', request=request, format=format)
            for name in ('bulletin', 'survey', 'voting', 'report', 'archive')
        },
    })


api_v1_patterns = [
    path('', api_root, name='api-root'),
    path('auth/', include('users.urls', namespace='auth')),
    path('users/', include('users.urls_users', namespace='users')),
    path('hierarchy/', include('hierarchy.urls', namespace='hierarchy')),
    path('content/', include('content.urls', namespace='content')),
]

urlpatterns = [
    path('admin/', admin.site.urls),

    # DRF session auth (powers the "Log in" button on the browsable API)
    path('api/auth/', include('rest_framework.urls', namespace='rest_framework')),

    # Versioned API
    path('api/v1/', include((api_v1_patterns, 'api-v1'))),
]
