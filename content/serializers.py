"""
Content — Serializers

Read serializers expose the stored targets plus the derived
``hierarchy`` kind. Write serializers take raw node ids for the target
fields; existence and branch exclusivity are checked by the services.

@file content/serializers.py
"""

from rest_framework import serializers

from hierarchy.branches import ALL_TARGET_FIELDS

from .models import ArchiveDocument, Bulletin, Report, Survey, SurveyResponse, Vote, VotingItem
from .services import VotingService

TARGET_FIELDS = list(ALL_TARGET_FIELDS)
AUDIT_READ_FIELDS = ['created_by', 'created_at', 'updated_at']

TargetWriteFields = type('TargetWriteFields', (serializers.Serializer,), {
    field: serializers.UUIDField(source=f'{field}_id', required=False, allow_null=True)
    for field in ALL_TARGET_FIELDS
})


class TargetedReadSerializer(serializers.ModelSerializer):
    hierarchy = serializers.CharField(read_only=True)


# ---------------------------------------------------------------------------
# Bulletins
# ---------------------------------------------------------------------------

class BulletinReadSerializer(TargetedReadSerializer):

    class Meta:
        model = Bulletin
        fields = [
            'id', 'title', 'content', 'date', 'image', 'published',
            'hierarchy', *TARGET_FIELDS, *AUDIT_READ_FIELDS,
        ]
        read_only_fields = fields


class BulletinWriteSerializer(TargetWriteFields, serializers.ModelSerializer):

    class Meta:
        model = Bulletin
        fields = ['title', 'content', 'date', 'image', 'published', *TARGET_FIELDS]


# ---------------------------------------------------------------------------
# Surveys
# ---------------------------------------------------------------------------

class SurveyReadSerializer(TargetedReadSerializer):
    questions_count = serializers.IntegerField(read_only=True)
    responses_count = serializers.SerializerMethodField()
    has_responded = serializers.SerializerMethodField()

    class Meta:
        model = Survey
        fields = [
            'id', 'title', 'description', 'due_date', 'questions', 'questions_count',
            'audience', 'published', 'responses_count', 'has_responded',
            'hierarchy', *TARGET_FIELDS, *AUDIT_READ_FIELDS,
        ]
        read_only_fields = fields

    def get_responses_count(self, obj):
        return obj.responses.count()

    def get_has_responded(self, obj):
        request = self.context.get('request')
        if request is None or not request.user.is_authenticated:
            return False
        return obj.responses.filter(user=request.user).exists()


class SurveyWriteSerializer(TargetWriteFields, serializers.ModelSerializer):

    class Meta:
        model = Survey
        fields = ['title', 'description', 'due_date', 'questions', 'audience', 'published', *TARGET_FIELDS]

    def validate_questions(self, value):
        if not isinstance(value, list):
            raise serializers.ValidationError('Questions must be a list.')
        return value


class SurveyResponseSerializer(serializers.ModelSerializer):
    answers = serializers.DictField()

    class Meta:
        model = SurveyResponse
        fields = ['id', 'survey', 'user', 'answers', 'created_at']
        read_only_fields = ['id', 'survey', 'user', 'created_at']


# ---------------------------------------------------------------------------
# Voting
# ---------------------------------------------------------------------------

class VotingItemReadSerializer(TargetedReadSerializer):
    status = serializers.SerializerMethodField()
    results = serializers.SerializerMethodField()
    total_votes = serializers.SerializerMethodField()
    has_voted = serializers.SerializerMethodField()

    class Meta:
        model = VotingItem
        fields = [
            'id', 'title', 'description', 'start_date', 'end_date', 'options',
            'target_level', 'vote_type', 'published', 'status',
            'results', 'total_votes', 'has_voted',
            'hierarchy', *TARGET_FIELDS, *AUDIT_READ_FIELDS,
        ]
        read_only_fields = fields

    def get_status(self, obj):
        return obj.get_status()

    def get_results(self, obj):
        return VotingService.option_counts(obj)

    def get_total_votes(self, obj):
        return obj.votes.count()

    def get_has_voted(self, obj):
        request = self.context.get('request')
        return VotingService.has_voted(obj, request.user if request else None)


class VotingItemWriteSerializer(TargetWriteFields, serializers.ModelSerializer):

    class Meta:
        model = VotingItem
        fields = [
            'title', 'description', 'start_date', 'end_date', 'options',
            'target_level', 'vote_type', 'published', *TARGET_FIELDS,
        ]

    def validate_options(self, value):
        if not isinstance(value, list) or len(value) < 2:
            raise serializers.ValidationError('At least two options are required.')
        return value

    def validate(self, attrs):
        start = attrs.get('start_date', getattr(self.instance, 'start_date', None))
        end = attrs.get('end_date', getattr(self.instance, 'end_date', None))
        if start and end and end <= start:
            raise serializers.ValidationError({'end_date': 'End date must be after start date.'})
        return attrs


class VoteSerializer(serializers.ModelSerializer):

    class Meta:
        model = Vote
        fields = ['id', 'voting', 'user', 'option_id', 'created_at']
        read_only_fields = ['id', 'voting', 'user', 'created_at']


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

class ReportReadSerializer(TargetedReadSerializer):
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    submitted_by_name = serializers.CharField(source='submitted_by.get_full_name', read_only=True)

    class Meta:
        model = Report
        fields = [
            'id', 'title', 'report_type', 'description', 'date', 'status', 'status_display',
            'attachment_name', 'submitted_by', 'submitted_by_name',
            'hierarchy', *TARGET_FIELDS, *AUDIT_READ_FIELDS,
        ]
        read_only_fields = fields


class ReportWriteSerializer(TargetWriteFields, serializers.ModelSerializer):

    class Meta:
        model = Report
        fields = ['title', 'report_type', 'description', 'date', 'attachment_name', *TARGET_FIELDS]


class ReportStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Report.StatusChoices.choices)


# ---------------------------------------------------------------------------
# Archive
# ---------------------------------------------------------------------------

class ArchiveDocumentSerializer(serializers.ModelSerializer):

    class Meta:
        model = ArchiveDocument
        fields = [
            'id', 'title', 'doc_type', 'category', 'date', 'size', 'url', 'published',
            *AUDIT_READ_FIELDS,
        ]
        read_only_fields = ['id', *AUDIT_READ_FIELDS]
