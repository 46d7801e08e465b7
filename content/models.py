"""
Content — Models

Member-facing content. Bulletins, surveys, voting items and reports
carry the eleven hierarchy target fields (``TargetedContent``); at most
one branch may be targeted and no target at all means GLOBAL. Archive
documents are not targeted.

@file content/models.py
"""

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel
from visibility.querysets import ReportQuerySet, TargetedQuerySet
from visibility.targeting import classify


def _target_fk(model: str, verbose_name):
    return models.ForeignKey(
        f'hierarchy.{model}',
        null=True, blank=True,
        on_delete=models.PROTECT,
        related_name='+',
        verbose_name=verbose_name,
    )


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class TargetedContent(BaseModel):
    """Eleven nullable target foreign keys, one per hierarchy level."""

    target_national_level = _target_fk('NationalLevel', _('target national level'))
    target_region = _target_fk('Region', _('target region'))
    target_locality = _target_fk('Locality', _('target locality'))
    target_admin_unit = _target_fk('AdminUnit', _('target administrative unit'))
    target_district = _target_fk('District', _('target district'))

    target_expatriate_region = _target_fk('ExpatriateRegion', _('target expatriate region'))

    target_sector_national_level = _target_fk('SectorNationalLevel', _('target sector national level'))
    target_sector_region = _target_fk('SectorRegion', _('target sector region'))
    target_sector_locality = _target_fk('SectorLocality', _('target sector locality'))
    target_sector_admin_unit = _target_fk('SectorAdminUnit', _('target sector administrative unit'))
    target_sector_district = _target_fk('SectorDistrict', _('target sector district'))

    class Meta:
        abstract = True

    @property
    def hierarchy(self) -> str:
        return classify(self)


# ---------------------------------------------------------------------------
# Bulletin
# ---------------------------------------------------------------------------

class Bulletin(TargetedContent):
    title = models.CharField(_('title'), max_length=255)
    content = models.TextField(_('content'))
    date = models.DateField(_('date'), default=timezone.localdate)
    image = models.CharField(_('image'), max_length=500, blank=True, default='')
    published = models.BooleanField(_('published'), default=True, db_index=True)

    objects = TargetedQuerySet.as_manager()

    class Meta:
        verbose_name = _('bulletin')
        verbose_name_plural = _('bulletins')
        ordering = ['-date', '-created_at']

    def __str__(self):
        return self.title


# ---------------------------------------------------------------------------
# Surveys
# ---------------------------------------------------------------------------

class Survey(TargetedContent):

    class AudienceChoices(models.TextChoices):
        PUBLIC = 'public', _('Public')
        MEMBER = 'member', _('Members')

    title = models.CharField(_('title'), max_length=255)
    description = models.TextField(_('description'), blank=True, default='')
    due_date = models.DateField(_('due date'))
    questions = models.JSONField(_('questions'), default=list)
    audience = models.CharField(
        _('audience'), max_length=10,
        choices=AudienceChoices.choices, default=AudienceChoices.PUBLIC,
        db_index=True,
    )
    published = models.BooleanField(_('published'), default=False, db_index=True)

    objects = TargetedQuerySet.as_manager()

    class Meta:
        verbose_name = _('survey')
        verbose_name_plural = _('surveys')
        ordering = ['due_date']

    def __str__(self):
        return self.title

    @property
    def questions_count(self) -> int:
        return len(self.questions) if isinstance(self.questions, list) else 0


class SurveyResponse(BaseModel):
    survey = models.ForeignKey(
        Survey,
        on_delete=models.CASCADE,
        related_name='responses',
        verbose_name=_('survey'),
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='survey_responses',
        verbose_name=_('user'),
    )
    answers = models.JSONField(_('answers'), default=dict)

    class Meta:
        verbose_name = _('survey response')
        verbose_name_plural = _('survey responses')
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['survey', 'user'], name='unique_survey_response_per_user'),
        ]

    def __str__(self):
        return f'{self.user} → {self.survey}'


# ---------------------------------------------------------------------------
# Voting
# ---------------------------------------------------------------------------

class VotingItem(TargetedContent):

    class VoteTypeChoices(models.TextChoices):
        OPINION = 'opinion', _('Opinion')
        ELECTORAL = 'electoral', _('Electoral')

    class StatusChoices(models.TextChoices):
        UPCOMING = 'upcoming', _('Upcoming')
        ACTIVE = 'active', _('Active')
        CLOSED = 'closed', _('Closed')

    title = models.CharField(_('title'), max_length=255)
    description = models.TextField(_('description'))
    start_date = models.DateTimeField(_('start date'))
    end_date = models.DateTimeField(_('end date'))
    options = models.JSONField(_('options'), default=list)
    target_level = models.CharField(_('target level label'), max_length=50, blank=True, default='')
    vote_type = models.CharField(
        _('vote type'), max_length=10,
        choices=VoteTypeChoices.choices, default=VoteTypeChoices.OPINION,
    )
    published = models.BooleanField(_('published'), default=False, db_index=True)

    objects = TargetedQuerySet.as_manager()

    class Meta:
        verbose_name = _('voting item')
        verbose_name_plural = _('voting items')
        ordering = ['-start_date']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gt=models.F('start_date')),
                name='voting_end_after_start',
            ),
        ]

    def __str__(self):
        return self.title

    def get_status(self, now=None) -> str:
        now = now or timezone.now()
        if now < self.start_date:
            return self.StatusChoices.UPCOMING
        if now > self.end_date:
            return self.StatusChoices.CLOSED
        return self.StatusChoices.ACTIVE

    def option_ids(self) -> list[str]:
        """Option ids, ``option-<index>`` for options stored without one."""
        return [
            str(option.get('id')) if isinstance(option, dict) and option.get('id') else f'option-{index}'
            for index, option in enumerate(self.options or [])
        ]

    def has_option(self, option_id: str) -> bool:
        if not option_id:
            return False
        if option_id in self.option_ids():
            return True
        return option_id in {f'option-{index}' for index in range(len(self.options or []))}


class Vote(BaseModel):
    voting = models.ForeignKey(
        VotingItem,
        on_delete=models.CASCADE,
        related_name='votes',
        verbose_name=_('voting item'),
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='votes',
        verbose_name=_('user'),
    )
    option_id = models.CharField(_('option'), max_length=100)

    class Meta:
        verbose_name = _('vote')
        verbose_name_plural = _('votes')
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['voting', 'user'], name='unique_vote_per_user'),
        ]

    def __str__(self):
        return f'{self.user} → {self.voting}: {self.option_id}'


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

class Report(TargetedContent):

    class StatusChoices(models.TextChoices):
        PENDING = 'PENDING', _('Pending')
        RESOLVED = 'RESOLVED', _('Resolved')
        REJECTED = 'REJECTED', _('Rejected')

    title = models.CharField(_('title'), max_length=255)
    report_type = models.CharField(_('type'), max_length=50)
    description = models.TextField(_('description'))
    date = models.DateField(_('date'), default=timezone.localdate)
    status = models.CharField(
        _('status'), max_length=10,
        choices=StatusChoices.choices, default=StatusChoices.PENDING,
        db_index=True,
    )
    attachment_name = models.CharField(_('attachment name'), max_length=255, blank=True, default='')
    submitted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='reports',
        verbose_name=_('submitted by'),
    )

    objects = ReportQuerySet.as_manager()

    class Meta:
        verbose_name = _('report')
        verbose_name_plural = _('reports')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['submitted_by', 'status']),
        ]

    def __str__(self):
        return f'{self.title} ({self.get_status_display()})'


# ---------------------------------------------------------------------------
# Archive
# ---------------------------------------------------------------------------

class ArchiveDocument(BaseModel):
    """Shared document library. Not targeted: published documents are visible to every member."""

    title = models.CharField(_('title'), max_length=255)
    doc_type = models.CharField(_('type'), max_length=50)
    category = models.CharField(_('category'), max_length=100, db_index=True)
    date = models.DateField(_('date'), default=timezone.localdate)
    size = models.CharField(_('size'), max_length=30, blank=True, default='')
    url = models.CharField(_('URL'), max_length=500)
    published = models.BooleanField(_('published'), default=True, db_index=True)

    class Meta:
        verbose_name = _('archive document')
        verbose_name_plural = _('archive documents')
        ordering = ['-date', '-created_at']

    def __str__(self):
        return self.title
