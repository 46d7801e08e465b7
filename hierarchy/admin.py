"""
Hierarchy — Django Admin Configuration

One admin per level. Sector admins show the sector type badge and the
expatriate region the node belongs to.

@file hierarchy/admin.py
"""

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from core.admin import colored_badge

from .models import (
    AdminUnit,
    District,
    ExpatriateRegion,
    Locality,
    NationalLevel,
    Region,
    SectorAdminUnit,
    SectorDistrict,
    SectorLocality,
    SectorNationalLevel,
    SectorRegion,
)

SECTOR_COLORS = {
    'SOCIAL': '#0891b2',
    'ECONOMIC': '#65a30d',
    'ORGANIZATIONAL': '#7c3aed',
    'POLITICAL': '#dc2626',
}


class HierarchyNodeAdmin(admin.ModelAdmin):
    list_display = ('name', 'code', 'parent_display', 'active', 'created_at')
    list_filter = ('active',)
    search_fields = ('name', 'code')
    readonly_fields = ('id', 'created_at', 'updated_at', 'created_by', 'updated_by')
    list_per_page = 50
    ordering = ('name',)

    def get_fieldsets(self, request, obj=None):
        parent_fields = (self.model.parent_field,) if self.model.parent_field else ()
        return (
            (None, {
                'fields': ('id', 'name', 'code', 'description', 'active') + parent_fields + self.extra_fields,
            }),
            (_('Audit'), {
                'fields': ('created_at', 'updated_at', 'created_by', 'updated_by'),
                'classes': ('collapse',),
            }),
        )

    extra_fields = ()

    def get_raw_id_fields(self, request):
        return (self.model.parent_field,) if self.model.parent_field else ()

    def get_list_select_related(self, request):
        return (self.model.parent_field,) if self.model.parent_field else False

    @admin.display(description=_('Parent'))
    def parent_display(self, obj):
        parent = obj.parent
        return parent.name if parent is not None else '-'


class SectorNodeAdmin(HierarchyNodeAdmin):
    list_display = ('name', 'code', 'sector_type_badge', 'expatriate_region', 'parent_display', 'active')
    list_filter = ('active', 'sector_type', 'expatriate_region')
    extra_fields = ('sector_type', 'expatriate_region')

    @admin.display(description=_('Sector'))
    def sector_type_badge(self, obj):
        return colored_badge(SECTOR_COLORS.get(obj.sector_type, '#6b7280'), obj.get_sector_type_display())


for model in (NationalLevel, Region, Locality, AdminUnit, District, ExpatriateRegion):
    admin.site.register(model, HierarchyNodeAdmin)

for model in (SectorNationalLevel, SectorRegion, SectorLocality, SectorAdminUnit, SectorDistrict):
    admin.site.register(model, SectorNodeAdmin)
