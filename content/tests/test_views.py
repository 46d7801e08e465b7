"""
Content — API Integration Tests

@file content/tests/test_views.py
"""

import pytest
from django.urls import reverse
from rest_framework import status

from content.models import Bulletin, Report
from tests.factories import (
    AdminUnitFactory,
    ArchiveDocumentFactory,
    BulletinFactory,
    DistrictFactory,
    ExpatriateRegionFactory,
    ReportFactory,
    SurveyFactory,
    UserFactory,
    VotingItemFactory,
)
from users.models import User


@pytest.fixture
def districts():
    unit = AdminUnitFactory()
    return DistrictFactory(admin_unit=unit), DistrictFactory(admin_unit=unit)


@pytest.fixture
def member(districts):
    return UserFactory(district=districts[0])


@pytest.fixture
def member_client(api_client, member):
    api_client.force_authenticate(user=member)
    return api_client


@pytest.fixture
def region_admin(districts):
    return UserFactory(admin_level=User.AdminLevel.REGION, district=districts[0])


@pytest.fixture
def region_admin_client(api_client, region_admin):
    api_client.force_authenticate(user=region_admin)
    return api_client


@pytest.mark.django_db
class TestBulletinEndpoints:
    def test_list_is_visibility_filtered(self, member_client, districts):
        d1, d2 = districts
        BulletinFactory(title='mine', target_district=d1)
        BulletinFactory(title='region', target_region=d1.admin_unit.locality.region)
        BulletinFactory(title='sibling', target_district=d2)
        BulletinFactory(title='everyone')

        response = member_client.get(reverse('api-v1:content:bulletin-list'))
        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body['meta']['count'] == 3
        assert {row['title'] for row in body['data']} == {'mine', 'region', 'everyone'}

    def test_hierarchy_kind_exposed(self, member_client, districts):
        bulletin = BulletinFactory(target_district=districts[0])
        response = member_client.get(reverse('api-v1:content:bulletin-detail', args=[bulletin.pk]))
        assert response.json()['data']['hierarchy'] == 'ORIGINAL'

    def test_invisible_detail_is_not_found(self, member_client, districts):
        bulletin = BulletinFactory(target_district=districts[1])
        response = member_client.get(reverse('api-v1:content:bulletin-detail', args=[bulletin.pk]))
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_unauthenticated(self, api_client):
        response = api_client.get(reverse('api-v1:content:bulletin-list'))
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_member_cannot_create(self, member_client):
        response = member_client.post(
            reverse('api-v1:content:bulletin-list'), {'title': 'x', 'content': 'y'}, format='json',
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_admin_creates_targeted_bulletin(self, region_admin_client, districts):
        region = districts[0].admin_unit.locality.region
        response = region_admin_client.post(
            reverse('api-v1:content:bulletin-list'),
            {'title': 'Meeting', 'content': 'Friday', 'target_region': str(region.pk)},
            format='json',
        )
        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()['data']
        assert data['hierarchy'] == 'ORIGINAL'
        assert data['target_region'] == str(region.pk)

    def test_mixed_targeting_rejected(self, region_admin_client, districts):
        response = region_admin_client.post(
            reverse('api-v1:content:bulletin-list'),
            {
                'title': 'Mixed',
                'content': 'x',
                'target_district': str(districts[0].pk),
                'target_expatriate_region': str(ExpatriateRegionFactory().pk),
            },
            format='json',
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()['code'] == 'MIXED_HIERARCHY_TARGETING'
        assert not Bulletin.objects.filter(title='Mixed').exists()

    def test_manage_lists_scope_including_drafts(self, region_admin_client, districts):
        BulletinFactory(title='draft', target_district=districts[1], published=False)
        BulletinFactory(title='everyone')
        BulletinFactory(title='elsewhere', target_district=DistrictFactory())

        response = region_admin_client.get(reverse('api-v1:content:bulletin-manage'))
        assert response.status_code == status.HTTP_200_OK
        assert [row['title'] for row in response.json()['data']] == ['draft']

    def test_update_outside_scope_not_found(self, region_admin_client):
        bulletin = BulletinFactory(target_district=DistrictFactory())
        response = region_admin_client.patch(
            reverse('api-v1:content:bulletin-detail', args=[bulletin.pk]), {'title': 'x'}, format='json',
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_delete_inside_scope(self, region_admin_client, districts):
        bulletin = BulletinFactory(target_district=districts[1])
        response = region_admin_client.delete(reverse('api-v1:content:bulletin-detail', args=[bulletin.pk]))
        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not Bulletin.objects.filter(pk=bulletin.pk).exists()


@pytest.mark.django_db
class TestParticipation:
    def test_respond_to_survey(self, member_client):
        survey = SurveyFactory()
        url = reverse('api-v1:content:survey-respond', args=[survey.pk])

        response = member_client.post(url, {'answers': {'q1': 4}}, format='json')
        assert response.status_code == status.HTTP_201_CREATED

        response = member_client.post(url, {'answers': {'q1': 2}}, format='json')
        assert response.status_code == status.HTTP_409_CONFLICT

    def test_cannot_respond_to_invisible_survey(self, member_client, districts):
        survey = SurveyFactory(target_district=districts[1])
        response = member_client.post(
            reverse('api-v1:content:survey-respond', args=[survey.pk]), {'answers': {}}, format='json',
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_vote(self, member_client):
        voting = VotingItemFactory()
        response = member_client.post(
            reverse('api-v1:content:voting-vote', args=[voting.pk]), {'option_id': 'no'}, format='json',
        )
        assert response.status_code == status.HTTP_201_CREATED

        detail = member_client.get(reverse('api-v1:content:voting-detail', args=[voting.pk])).json()['data']
        assert detail['results'] == {'yes': 0, 'no': 1}
        assert detail['has_voted'] is True
        assert detail['status'] == 'active'

    def test_invalid_option(self, member_client):
        voting = VotingItemFactory()
        response = member_client.post(
            reverse('api-v1:content:voting-vote', args=[voting.pk]), {'option_id': 'maybe'}, format='json',
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
class TestReportEndpoints:
    def test_member_submits_report(self, member_client, member, districts):
        response = member_client.post(
            reverse('api-v1:content:report-list'),
            {'title': 'Water', 'report_type': 'complaint', 'description': 'No water since Monday'},
            format='json',
        )
        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()['data']
        assert data['target_district'] == str(districts[0].pk)
        assert data['submitted_by'] == str(member.pk)
        assert data['status'] == 'PENDING'

    def test_member_sees_only_own_reports(self, member_client, member, districts):
        ReportFactory(submitted_by=member, target_district=districts[0])
        ReportFactory(target_district=districts[0])
        response = member_client.get(reverse('api-v1:content:report-list'))
        assert response.json()['meta']['count'] == 1

    def test_admin_changes_status(self, region_admin_client, districts):
        report = ReportFactory(target_district=districts[1])
        response = region_admin_client.post(
            reverse('api-v1:content:report-change-status', args=[report.pk]), {'status': 'RESOLVED'}, format='json',
        )
        assert response.status_code == status.HTTP_200_OK
        report.refresh_from_db()
        assert report.status == Report.StatusChoices.RESOLVED

    def test_member_cannot_change_status(self, member_client, member, districts):
        report = ReportFactory(submitted_by=member, target_district=districts[0])
        response = member_client.post(
            reverse('api-v1:content:report-change-status', args=[report.pk]), {'status': 'RESOLVED'}, format='json',
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_invalid_transition(self, region_admin_client, districts):
        report = ReportFactory(target_district=districts[1], status=Report.StatusChoices.REJECTED)
        response = region_admin_client.post(
            reverse('api-v1:content:report-change-status', args=[report.pk]), {'status': 'RESOLVED'}, format='json',
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()['code'] == 'INVALID_STATE_TRANSITION'


@pytest.mark.django_db
class TestArchiveEndpoints:
    def test_members_see_published_documents(self, member_client):
        ArchiveDocumentFactory(title='public')
        ArchiveDocumentFactory(title='hidden', published=False)
        response = member_client.get(reverse('api-v1:content:archive-list'))
        assert [row['title'] for row in response.json()['data']] == ['public']

    def test_manage_requires_admin_level(self, member_client):
        response = member_client.get(reverse('api-v1:content:archive-manage'))
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_admin_manage_lists_drafts(self, region_admin_client):
        ArchiveDocumentFactory(title='hidden', published=False)
        response = region_admin_client.get(reverse('api-v1:content:archive-manage'))
        assert response.json()['meta']['count'] == 1
