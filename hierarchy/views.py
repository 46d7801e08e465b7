"""
Hierarchy — Views

One ViewSet per hierarchy level, all built on HierarchyNodeViewSet.
Writes go through the service layer so that parent rules, sector
inheritance and the expatriate-region fan-out apply to API calls too.

@file hierarchy/views.py
"""

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .branches import ALL_LEVELS, Branch, HierarchyLevel
from .permissions import CanModifyHierarchy
from .serializers import get_read_serializer, get_write_serializer
from .services import HierarchyNodeService, HierarchyService


class HierarchyNodeViewSet(viewsets.ModelViewSet):
    """
    CRUD for one hierarchy level.

    List / retrieve is open to any authenticated user.
    Create / update / delete restricted to the platform administration.
    """

    level: HierarchyLevel = None
    permission_classes = [IsAuthenticated, CanModifyHierarchy]
    search_fields = ['name', 'code']
    ordering_fields = ['name', 'code', 'created_at']
    ordering = ['name']

    def get_queryset(self):
        qs = self.level.model.objects.all()
        if self.level.chain_path:
            qs = qs.select_related(self.level.chain_path)
        return qs

    def get_serializer_class(self):
        if self.action in ('list', 'retrieve'):
            return get_read_serializer(self.level)
        return get_write_serializer(self.level)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        node = HierarchyNodeService.create_node(
            self.level,
            actor=request.user,
            **serializer.validated_data,
        )
        read_serializer = get_read_serializer(self.level)(node, context={'request': request})
        return Response(read_serializer.data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        node = HierarchyNodeService.update_node(
            self.level, instance.pk,
            actor=request.user,
            **serializer.validated_data,
        )
        return Response(get_read_serializer(self.level)(node, context={'request': request}).data)

    def perform_destroy(self, instance):
        HierarchyNodeService.delete_node(self.level, instance.pk, actor=self.request.user)

    @action(detail=True, methods=['get'], url_path='children')
    def children(self, request, pk=None):
        node = self.get_object()
        child_level = HierarchyService.child_level(self.level)
        if child_level is None:
            return Response({'success': True, 'data': []})
        qs = HierarchyService.get_children(self.level, node.pk)
        serializer = get_read_serializer(child_level)(qs, many=True, context={'request': request})
        return Response({'success': True, 'data': serializer.data})

    @action(detail=True, methods=['get'], url_path='ancestors')
    def ancestors(self, request, pk=None):
        node = self.get_object()
        chain = HierarchyService.get_ancestor_chain(self.level, node.pk)
        return Response({'success': True, 'data': chain})

    @action(detail=True, methods=['get'], url_path='descendants')
    def descendants(self, request, pk=None):
        """Descendant ids grouped by level."""
        node = self.get_object()
        found = HierarchyService.get_descendant_ids(self.level, node.pk)
        data = {key: [str(pk) for pk in ids] for key, ids in found.items()}
        return Response({'success': True, 'data': data})


def _filterset_fields(level: HierarchyLevel) -> list[str]:
    fields = ['active']
    if level.parent is not None:
        fields.append(level.parent.key)
    if level.branch == Branch.SECTOR:
        fields += ['sector_type', 'expatriate_region']
    return fields


NODE_VIEWSETS = {
    level.key: type(
        f'{level.model_name}ViewSet',
        (HierarchyNodeViewSet,),
        {'level': level, 'filterset_fields': _filterset_fields(level)},
    )
    for level in ALL_LEVELS
}
