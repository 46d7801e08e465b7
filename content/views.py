"""
Content — Views

Every targeted content ViewSet lists what the caller may read (the
cascading visibility filter) and exposes a ``manage/`` listing scoped by
the management filter. Writes go through the service layer so that
targeting is classified and validated on every path.

@file content/views.py
"""

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from core.constants import AUDIT_ACTION_CREATE, AUDIT_ACTION_UPDATE
from core.services import AuditService
from users.models import User
from users.permissions import CanManageObject, HasAdminLevel, IsActiveUser, IsContentAdmin

from .models import ArchiveDocument, Bulletin, Report, Survey, VotingItem
from .serializers import (
    ArchiveDocumentSerializer,
    BulletinReadSerializer,
    BulletinWriteSerializer,
    ReportReadSerializer,
    ReportStatusSerializer,
    ReportWriteSerializer,
    SurveyReadSerializer,
    SurveyResponseSerializer,
    SurveyWriteSerializer,
    VoteSerializer,
    VotingItemReadSerializer,
    VotingItemWriteSerializer,
)
from .services import ContentService, ReportService, SurveyService, VotingService

READ_ACTIONS = ('list', 'retrieve')


class TargetedContentViewSet(viewsets.ModelViewSet):
    """
    Base ViewSet for hierarchy-targeted content.

    list / retrieve: published content visible to the caller.
    manage: everything inside the caller's management scope.
    create / update / destroy: admins, inside their scope.
    """

    model = None
    read_serializer_class = None
    write_serializer_class = None
    permission_classes = [IsActiveUser, IsContentAdmin, CanManageObject]
    search_fields = ['title']
    ordering_fields = ['created_at', 'title']

    def get_queryset(self):
        if self.action in READ_ACTIONS:
            return self.model.objects.visible_to(self.request.user)
        return self.model.objects.manageable_by(self.request.user)

    def get_serializer_class(self):
        if self.action in (*READ_ACTIONS, 'manage'):
            return self.read_serializer_class
        return self.write_serializer_class

    def _read(self, instance, status_code=status.HTTP_200_OK):
        serializer = self.read_serializer_class(instance, context=self.get_serializer_context())
        return Response(serializer.data, status=status_code)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        instance = ContentService.create(self.model, actor=request.user, **serializer.validated_data)
        return self._read(instance, status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        instance = ContentService.update(instance, actor=request.user, **serializer.validated_data)
        return self._read(instance)

    def perform_destroy(self, instance):
        ContentService.delete(instance, actor=self.request.user)

    @action(detail=False, methods=['get'], url_path='manage')
    def manage(self, request):
        qs = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(qs)
        if page is not None:
            serializer = self.get_serializer(page, many=True)
            return self.get_paginated_response(serializer.data)
        return Response(self.get_serializer(qs, many=True).data)


class BulletinViewSet(TargetedContentViewSet):
    model = Bulletin
    read_serializer_class = BulletinReadSerializer
    write_serializer_class = BulletinWriteSerializer
    filterset_fields = ['published', 'date']
    search_fields = ['title', 'content']
    ordering_fields = ['date', 'created_at', 'title']
    ordering = ['-date']


class SurveyViewSet(TargetedContentViewSet):
    model = Survey
    read_serializer_class = SurveyReadSerializer
    write_serializer_class = SurveyWriteSerializer
    filterset_fields = ['published', 'audience']
    search_fields = ['title', 'description']
    ordering_fields = ['due_date', 'created_at', 'title']
    ordering = ['due_date']

    def get_queryset(self):
        if self.action == 'respond':
            return Survey.objects.visible_to(self.request.user)
        return super().get_queryset()

    @action(
        detail=True,
        methods=['post'],
        url_path='respond',
        permission_classes=[IsActiveUser],
    )
    def respond(self, request, pk=None):
        survey = self.get_object()
        serializer = SurveyResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        response = SurveyService.submit_response(
            survey=survey,
            user=request.user,
            answers=serializer.validated_data['answers'],
        )
        return Response(SurveyResponseSerializer(response).data, status=status.HTTP_201_CREATED)


class VotingItemViewSet(TargetedContentViewSet):
    model = VotingItem
    read_serializer_class = VotingItemReadSerializer
    write_serializer_class = VotingItemWriteSerializer
    filterset_fields = ['published', 'vote_type']
    search_fields = ['title', 'description']
    ordering_fields = ['start_date', 'end_date', 'created_at']
    ordering = ['-start_date']

    def get_queryset(self):
        if self.action == 'vote':
            return VotingItem.objects.visible_to(self.request.user)
        return super().get_queryset()

    @action(
        detail=True,
        methods=['post'],
        url_path='vote',
        permission_classes=[IsActiveUser],
    )
    def vote(self, request, pk=None):
        voting = self.get_object()
        serializer = VoteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        vote = VotingService.submit_vote(
            voting=voting,
            user=request.user,
            option_id=serializer.validated_data['option_id'],
        )
        return Response(VoteSerializer(vote).data, status=status.HTTP_201_CREATED)


class ReportViewSet(TargetedContentViewSet):
    """
    Reports: any active member may submit; the list shows the caller's
    own reports plus those inside their management scope.
    """

    model = Report
    read_serializer_class = ReportReadSerializer
    write_serializer_class = ReportWriteSerializer
    permission_classes = [IsActiveUser, CanManageObject]
    filterset_fields = ['status', 'report_type']
    search_fields = ['title', 'description']
    ordering_fields = ['date', 'created_at', 'status']
    ordering = ['-created_at']
    required_admin_level = User.AdminLevel.DISTRICT

    def get_queryset(self):
        if self.action == 'manage':
            qs = Report.objects.manageable_by(self.request.user)
        else:
            qs = Report.objects.visible_to(self.request.user)
        return qs.select_related('submitted_by')

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = ReportService.submit(user=request.user, **serializer.validated_data)
        return self._read(report, status.HTTP_201_CREATED)

    @action(
        detail=True,
        methods=['post'],
        url_path='status',
        permission_classes=[IsActiveUser, HasAdminLevel, CanManageObject],
    )
    def change_status(self, request, pk=None):
        report = self.get_object()
        serializer = ReportStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = ReportService.change_status(
            report_id=report.pk,
            new_status=serializer.validated_data['status'],
            actor=request.user,
        )
        return self._read(report)


class ArchiveDocumentViewSet(viewsets.ModelViewSet):
    """
    Shared archive. Published documents are listed for every member;
    administrators see and edit everything.
    """

    serializer_class = ArchiveDocumentSerializer
    permission_classes = [IsActiveUser, IsContentAdmin]
    filterset_fields = ['category', 'doc_type', 'published']
    search_fields = ['title', 'category']
    ordering_fields = ['date', 'title', 'created_at']
    ordering = ['-date']
    required_admin_level = User.AdminLevel.DISTRICT

    def get_queryset(self):
        qs = ArchiveDocument.objects.all()
        if self.action in READ_ACTIONS:
            qs = qs.filter(published=True)
        return qs

    def perform_create(self, serializer):
        document = serializer.save(created_by=self.request.user)
        AuditService.record(document, action=AUDIT_ACTION_CREATE, actor=self.request.user)

    def perform_update(self, serializer):
        old_snapshot = AuditService.snapshot(serializer.instance)
        document = serializer.save(updated_by=self.request.user)
        AuditService.record(document, action=AUDIT_ACTION_UPDATE, actor=self.request.user, old_values=old_snapshot)

    @action(
        detail=False,
        methods=['get'],
        url_path='manage',
        permission_classes=[IsActiveUser, HasAdminLevel],
    )
    def manage(self, request):
        qs = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(qs, many=True).data)
