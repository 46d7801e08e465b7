"""
Hierarchy — Serializers

Read and write serializers for every hierarchy level. The per-level
classes are generated from the level table so that all eleven node
kinds share one representation.

@file hierarchy/serializers.py
"""

from rest_framework import serializers

from .branches import ALL_LEVELS, Branch, HierarchyLevel

BASE_FIELDS = ['id', 'name', 'code', 'description', 'active']


class HierarchyNodeMinimalSerializer(serializers.Serializer):
    """Embedded representation, e.g. for a user's position."""

    id = serializers.UUIDField(read_only=True)
    name = serializers.CharField(read_only=True)
    code = serializers.CharField(read_only=True, allow_null=True)


class HierarchyNodeReadSerializer(serializers.ModelSerializer):
    level = serializers.SerializerMethodField()
    parent_name = serializers.SerializerMethodField()
    full_path = serializers.CharField(read_only=True)

    def get_level(self, obj):
        return self.Meta.level.key

    def get_parent_name(self, obj):
        parent = obj.parent
        return parent.name if parent is not None else None


class HierarchyNodeWriteSerializer(serializers.ModelSerializer):
    """Input shape only; normalisation and parent rules live in the services."""

    code = serializers.CharField(max_length=30, required=False, allow_null=True, allow_blank=True)


def _level_fields(level: HierarchyLevel) -> list[str]:
    fields = []
    if level.parent is not None:
        fields.append(level.parent.key)
    if level.branch == Branch.SECTOR:
        fields += ['sector_type', 'expatriate_region']
    return fields


def _build_serializers(level: HierarchyLevel):
    model = level.model
    level_fields = _level_fields(level)

    read_fields = BASE_FIELDS + level_fields + ['level', 'parent_name', 'full_path', 'created_at']
    read_meta = type('Meta', (), {
        'model': model,
        'level': level,
        'fields': read_fields,
        'read_only_fields': read_fields,
    })
    read_class = type(f'{model.__name__}ReadSerializer', (HierarchyNodeReadSerializer,), {'Meta': read_meta})

    extra_kwargs = {field: {'required': False, 'allow_null': True} for field in level_fields}
    write_meta = type('Meta', (), {
        'model': model,
        'fields': BASE_FIELDS[1:] + level_fields,
        'extra_kwargs': extra_kwargs,
    })
    write_class = type(f'{model.__name__}WriteSerializer', (HierarchyNodeWriteSerializer,), {'Meta': write_meta})
    return read_class, write_class


NODE_SERIALIZERS = {level.key: _build_serializers(level) for level in ALL_LEVELS}


def get_read_serializer(level: HierarchyLevel):
    return NODE_SERIALIZERS[level.key][0]


def get_write_serializer(level: HierarchyLevel):
    return NODE_SERIALIZERS[level.key][1]
