"""
Hierarchy — URL Configuration

One route per level, e.g. /api/v1/hierarchy/regions/,
/api/v1/hierarchy/sector-districts/.

@file hierarchy/urls.py
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import NODE_VIEWSETS

app_name = 'hierarchy'

ROUTES = {
    'national_level': 'national-levels',
    'region': 'regions',
    'locality': 'localities',
    'admin_unit': 'admin-units',
    'district': 'districts',
    'expatriate_region': 'expatriate-regions',
    'sector_national_level': 'sector-national-levels',
    'sector_region': 'sector-regions',
    'sector_locality': 'sector-localities',
    'sector_admin_unit': 'sector-admin-units',
    'sector_district': 'sector-districts',
}

router = DefaultRouter()
for key, prefix in ROUTES.items():
    router.register(prefix, NODE_VIEWSETS[key], basename=key.replace('_', '-'))

urlpatterns = [
    path('', include(router.urls)),
]
