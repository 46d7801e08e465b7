"""
Content — Service Layer

Create / update for targeted content with hierarchy classification and
node existence checks, survey responses, votes, and the report status
lifecycle.

@file content/services.py
"""

import logging
from collections import Counter
from typing import Any

from django.db import IntegrityError, transaction
from django.utils import timezone

from core.constants import AUDIT_ACTION_CREATE, AUDIT_ACTION_DELETE, AUDIT_ACTION_STATUS_CHANGE, AUDIT_ACTION_UPDATE
from core.exceptions import (
    BusinessRuleViolation,
    DuplicateResourceError,
    InvalidStateTransition,
    ResourceNotFoundError,
)
from core.services import AuditService
from hierarchy.branches import ALL_TARGET_FIELDS
from visibility.resolver import UserHierarchyResolver
from visibility.targeting import validate_exclusive, validate_targets_exist

from .models import Report, Survey, SurveyResponse, Vote, VotingItem

logger = logging.getLogger('memberhub')

# Valid report transitions: from_status -> set of allowed to_status
REPORT_TRANSITIONS = {
    Report.StatusChoices.PENDING: {Report.StatusChoices.RESOLVED, Report.StatusChoices.REJECTED},
    Report.StatusChoices.RESOLVED: {Report.StatusChoices.PENDING},
    Report.StatusChoices.REJECTED: {Report.StatusChoices.PENDING},
}


def _merged_targets(instance, fields: dict[str, Any]) -> dict[str, Any]:
    """Target values ``instance`` would carry after applying ``fields``."""
    targets = {}
    for field in ALL_TARGET_FIELDS:
        if field in fields:
            targets[field] = fields[field]
        elif f'{field}_id' in fields:
            targets[field] = fields[f'{field}_id']
        elif instance is not None:
            targets[field] = getattr(instance, f'{field}_id')
    return targets


def validate_targeting(fields: dict[str, Any], instance=None) -> str:
    """Classify the resulting targets; MIXED and unknown nodes are rejected."""
    targets = _merged_targets(instance, fields)
    kind = validate_exclusive(targets)
    validate_targets_exist(targets)
    return kind


class ContentService:
    """Generic writes for every targeted content model."""

    @staticmethod
    @transaction.atomic
    def create(model, *, actor=None, **fields):
        kind = validate_targeting(fields)
        instance = model(created_by=actor, **fields)
        instance.save()
        AuditService.record(instance, action=AUDIT_ACTION_CREATE, actor=actor)
        logger.info('Created %s %s targeting %s', model.__name__, instance.pk, kind)
        return instance

    @staticmethod
    @transaction.atomic
    def update(instance, *, actor=None, **fields):
        kind = validate_targeting(fields, instance=instance)
        old_snapshot = AuditService.snapshot(instance)
        for field, value in fields.items():
            setattr(instance, field, value)
        instance.updated_by = actor
        instance.save()
        AuditService.record(instance, action=AUDIT_ACTION_UPDATE, actor=actor, old_values=old_snapshot)
        logger.info('Updated %s %s targeting %s', type(instance).__name__, instance.pk, kind)
        return instance

    @staticmethod
    @transaction.atomic
    def delete(instance, *, actor=None) -> None:
        snapshot = AuditService.snapshot(instance)
        pk = instance.pk
        instance.delete()
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_DELETE,
            model_name=type(instance).__name__,
            object_id=str(pk),
            old_values=snapshot,
        )

    @staticmethod
    def list_visible(model, viewer):
        return model.objects.visible_to(viewer)

    @staticmethod
    def list_manageable(model, user):
        return model.objects.manageable_by(user)


class SurveyService:

    @staticmethod
    @transaction.atomic
    def submit_response(*, survey: Survey, user, answers: dict) -> SurveyResponse:
        if not survey.published:
            raise BusinessRuleViolation(detail='This survey is not available.')
        if SurveyResponse.objects.filter(survey=survey, user=user).exists():
            raise DuplicateResourceError(detail='You have already responded to this survey.')
        try:
            with transaction.atomic():
                response = SurveyResponse.objects.create(
                    survey=survey, user=user, answers=answers, created_by=user,
                )
        except IntegrityError:
            raise DuplicateResourceError(detail='You have already responded to this survey.')
        logger.info('User %s responded to survey %s', user.pk, survey.pk)
        return response


class VotingService:

    @staticmethod
    @transaction.atomic
    def submit_vote(*, voting: VotingItem, user, option_id: str) -> Vote:
        if Vote.objects.filter(voting=voting, user=user).exists():
            raise DuplicateResourceError(detail='You have already voted in this poll.')
        if not voting.published:
            raise BusinessRuleViolation(detail='This voting poll is not available.')
        if voting.get_status() != VotingItem.StatusChoices.ACTIVE:
            raise BusinessRuleViolation(detail='This voting poll is not currently active.')
        if not voting.has_option(option_id):
            raise BusinessRuleViolation(detail='Invalid voting option.')

        try:
            with transaction.atomic():
                vote = Vote.objects.create(voting=voting, user=user, option_id=option_id, created_by=user)
        except IntegrityError:
            raise DuplicateResourceError(detail='You have already voted in this poll.')
        logger.info('User %s voted in poll %s', user.pk, voting.pk)
        return vote

    @staticmethod
    def option_counts(voting: VotingItem) -> dict[str, int]:
        """Votes per option id; options without votes count zero."""
        counts = Counter(voting.votes.values_list('option_id', flat=True))
        return {option_id: counts.get(option_id, 0) for option_id in voting.option_ids()}

    @staticmethod
    def has_voted(voting: VotingItem, user) -> bool:
        if user is None or not user.is_authenticated:
            return False
        return Vote.objects.filter(voting=voting, user=user).exists()


class ReportService:

    @staticmethod
    @transaction.atomic
    def submit(*, user, **fields) -> Report:
        """
        File a report. Without an explicit target the report is pinned
        to the submitter's most specific node in their active branch, so
        it lands in the scope of the admins above them.
        """
        if not any(fields.get(field) or fields.get(f'{field}_id') for field in ALL_TARGET_FIELDS):
            pinned = UserHierarchyResolver.resolve_user(user).most_specific()
            if pinned is not None:
                level, node_id = pinned
                fields[f'{level.target_field}_id'] = node_id

        fields.pop('status', None)
        kind = validate_targeting(fields)
        report = Report(submitted_by=user, created_by=user, **fields)
        report.save()
        AuditService.record(report, action=AUDIT_ACTION_CREATE, actor=user)
        logger.info('Report %s submitted by %s targeting %s', report.pk, user.pk, kind)
        return report

    @staticmethod
    @transaction.atomic
    def change_status(*, report_id, new_status: str, actor=None) -> Report:
        try:
            report = Report.objects.select_for_update().get(pk=report_id)
        except Report.DoesNotExist:
            raise ResourceNotFoundError(detail='Report not found.')

        allowed = REPORT_TRANSITIONS.get(report.status, set())
        if new_status not in allowed:
            raise InvalidStateTransition(
                detail=f'Cannot transition report from {report.status} to {new_status}.',
            )

        old_status = report.status
        report.status = new_status
        report.updated_by = actor
        report.save(update_fields=['status', 'updated_by', 'updated_at'])
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_STATUS_CHANGE,
            model_name='Report',
            object_id=str(report.pk),
            old_values={'status': old_status},
            new_values={'status': new_status, 'at': timezone.now().isoformat()},
        )
        logger.info('Report %s moved %s -> %s', report.pk, old_status, new_status)
        return report
