"""
Content — Service Layer Tests

@file content/tests/test_services.py
"""

import uuid
from datetime import timedelta

import pytest
from django.utils import timezone

from content.models import Bulletin, Report, VotingItem
from content.services import ContentService, ReportService, SurveyService, VotingService
from core.exceptions import (
    BusinessRuleViolation,
    DuplicateResourceError,
    HierarchyTargetingError,
    InvalidStateTransition,
    ResourceNotFoundError,
)
from core.models import AuditLog
from tests.factories import (
    BulletinFactory,
    DistrictFactory,
    ExpatriateRegionFactory,
    RegionFactory,
    ReportFactory,
    SurveyFactory,
    UserFactory,
    VotingItemFactory,
)
from users.models import User
from visibility.targeting import HierarchyKind


@pytest.fixture
def admin():
    return UserFactory(admin_level=User.AdminLevel.ADMIN)


@pytest.mark.django_db
class TestContentService:
    def test_create_original(self, admin):
        region = RegionFactory()
        bulletin = ContentService.create(
            Bulletin, actor=admin, title='Notice', content='Body', target_region_id=region.pk,
        )
        assert bulletin.hierarchy == HierarchyKind.ORIGINAL
        assert bulletin.created_by == admin
        assert AuditLog.objects.filter(model_name='Bulletin', object_id=str(bulletin.pk)).exists()

    def test_create_global(self, admin):
        bulletin = ContentService.create(Bulletin, actor=admin, title='All', content='Body')
        assert bulletin.hierarchy == HierarchyKind.GLOBAL

    def test_mixed_targeting_not_persisted(self, admin):
        with pytest.raises(HierarchyTargetingError):
            ContentService.create(
                Bulletin,
                actor=admin,
                title='Mixed',
                content='Body',
                target_region=RegionFactory(),
                target_expatriate_region=ExpatriateRegionFactory(),
            )
        assert not Bulletin.objects.filter(title='Mixed').exists()

    def test_unknown_node_rejected(self, admin):
        with pytest.raises(ResourceNotFoundError):
            ContentService.create(
                Bulletin, actor=admin, title='Ghost', content='Body', target_region_id=uuid.uuid4(),
            )
        assert not Bulletin.objects.exists()

    def test_update_into_mixed_rejected(self, admin):
        bulletin = BulletinFactory(target_region=RegionFactory())
        with pytest.raises(HierarchyTargetingError):
            ContentService.update(
                bulletin, actor=admin, target_expatriate_region_id=ExpatriateRegionFactory().pk,
            )
        bulletin.refresh_from_db()
        assert bulletin.target_expatriate_region_id is None

    def test_update_switching_branch(self, admin):
        bulletin = BulletinFactory(target_region=RegionFactory())
        expat = ExpatriateRegionFactory()
        bulletin = ContentService.update(
            bulletin, actor=admin, target_region_id=None, target_expatriate_region_id=expat.pk,
        )
        assert bulletin.hierarchy == HierarchyKind.EXPATRIATE
        assert bulletin.updated_by == admin

    def test_delete_audited(self, admin):
        bulletin = BulletinFactory()
        pk = bulletin.pk
        ContentService.delete(bulletin, actor=admin)
        assert not Bulletin.objects.filter(pk=pk).exists()
        assert AuditLog.objects.filter(action='DELETE', object_id=str(pk)).exists()


@pytest.mark.django_db
class TestSurveyService:
    def test_submit_response(self):
        survey = SurveyFactory()
        user = UserFactory()
        response = SurveyService.submit_response(survey=survey, user=user, answers={'q1': 5})
        assert response.answers == {'q1': 5}

    def test_duplicate_response(self):
        survey = SurveyFactory()
        user = UserFactory()
        SurveyService.submit_response(survey=survey, user=user, answers={'q1': 5})
        with pytest.raises(DuplicateResourceError):
            SurveyService.submit_response(survey=survey, user=user, answers={'q1': 1})

    def test_unpublished_survey(self):
        with pytest.raises(BusinessRuleViolation):
            SurveyService.submit_response(survey=SurveyFactory(published=False), user=UserFactory(), answers={})


@pytest.mark.django_db
class TestVotingService:
    def test_vote_and_counts(self):
        voting = VotingItemFactory()
        VotingService.submit_vote(voting=voting, user=UserFactory(), option_id='yes')
        VotingService.submit_vote(voting=voting, user=UserFactory(), option_id='yes')
        assert VotingService.option_counts(voting) == {'yes': 2, 'no': 0}

    def test_duplicate_vote(self):
        voting = VotingItemFactory()
        user = UserFactory()
        VotingService.submit_vote(voting=voting, user=user, option_id='yes')
        with pytest.raises(DuplicateResourceError):
            VotingService.submit_vote(voting=voting, user=user, option_id='no')
        assert VotingService.has_voted(voting, user)

    def test_invalid_option(self):
        with pytest.raises(BusinessRuleViolation, match='Invalid voting option'):
            VotingService.submit_vote(voting=VotingItemFactory(), user=UserFactory(), option_id='maybe')

    def test_closed_poll(self):
        now = timezone.now()
        voting = VotingItemFactory(start_date=now - timedelta(days=5), end_date=now - timedelta(days=1))
        assert voting.get_status() == VotingItem.StatusChoices.CLOSED
        with pytest.raises(BusinessRuleViolation, match='not currently active'):
            VotingService.submit_vote(voting=voting, user=UserFactory(), option_id='yes')

    def test_unpublished_poll(self):
        with pytest.raises(BusinessRuleViolation, match='not available'):
            VotingService.submit_vote(voting=VotingItemFactory(published=False), user=UserFactory(), option_id='yes')


@pytest.mark.django_db
class TestReportService:
    def test_submit_pins_to_most_specific_node(self):
        district = DistrictFactory()
        user = UserFactory(district=district)
        report = ReportService.submit(user=user, title='Broken pump', report_type='complaint', description='...')
        assert report.target_district_id == district.pk
        assert report.target_region_id is None
        assert report.submitted_by == user
        assert report.status == Report.StatusChoices.PENDING

    def test_explicit_target_kept(self):
        user = UserFactory(district=DistrictFactory())
        region = RegionFactory()
        report = ReportService.submit(
            user=user, title='R', report_type='suggestion', description='...', target_region_id=region.pk,
        )
        assert report.target_region_id == region.pk
        assert report.target_district_id is None

    def test_user_without_position_submits_global(self):
        report = ReportService.submit(user=UserFactory(), title='R', report_type='other', description='...')
        assert report.hierarchy == HierarchyKind.GLOBAL

    def test_status_cannot_be_forced_on_submit(self):
        report = ReportService.submit(
            user=UserFactory(), title='R', report_type='other', description='...',
            status=Report.StatusChoices.RESOLVED,
        )
        assert report.status == Report.StatusChoices.PENDING

    def test_valid_transitions(self, admin):
        report = ReportFactory()
        report = ReportService.change_status(report_id=report.pk, new_status='RESOLVED', actor=admin)
        assert report.status == Report.StatusChoices.RESOLVED
        report = ReportService.change_status(report_id=report.pk, new_status='PENDING', actor=admin)
        assert report.status == Report.StatusChoices.PENDING
        assert AuditLog.objects.filter(action='STATUS_CHANGE', object_id=str(report.pk)).count() == 2

    def test_invalid_transition(self, admin):
        report = ReportFactory(status=Report.StatusChoices.RESOLVED)
        with pytest.raises(InvalidStateTransition):
            ReportService.change_status(report_id=report.pk, new_status='REJECTED', actor=admin)

    def test_missing_report(self, admin):
        with pytest.raises(ResourceNotFoundError):
            ReportService.change_status(report_id=uuid.uuid4(), new_status='RESOLVED', actor=admin)
