"""
Users — API Integration Tests

End-to-end tests for auth endpoints, memberships and scoped user
management.

@file users/tests/test_views.py
"""

import pytest
from django.urls import reverse
from rest_framework import status

from hierarchy.branches import Branch
from tests.factories import (
    DistrictFactory,
    ExpatriateRegionFactory,
    LocalityFactory,
    RegionFactory,
    UserFactory,
)
from users.models import User


@pytest.fixture
def region_tree():
    """R1 with two districts below it, plus a district in a sibling region."""
    region = RegionFactory()
    locality = LocalityFactory(region=region)
    d1 = DistrictFactory(admin_unit__locality=locality)
    d2 = DistrictFactory(admin_unit__locality=locality)
    outside = DistrictFactory()
    return region, d1, d2, outside


@pytest.mark.django_db
class TestLoginEndpoint:
    def test_login_success(self, api_client):
        UserFactory(phone='+249968000000', password='Login2026!!', admin_level=User.AdminLevel.REGION)
        response = api_client.post(
            reverse('api-v1:auth:login'),
            {'phone': '+249968000000', 'password': 'Login2026!!'},
            format='json',
        )
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data['success'] is True
        assert 'access' in data['data']
        assert 'refresh' in data['data']
        assert data['data']['user']['admin_level'] == 'REGION'

    def test_login_wrong_password(self, api_client):
        UserFactory(phone='+249968000001', password='Login2026!!')
        response = api_client.post(
            reverse('api-v1:auth:login'),
            {'phone': '+249968000001', 'password': 'wrong'},
            format='json',
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_login_pending_user(self, api_client):
        UserFactory(phone='+249968000002', password='Login2026!!', status=User.StatusChoices.PENDING)
        response = api_client.post(
            reverse('api-v1:auth:login'),
            {'phone': '+249968000002', 'password': 'Login2026!!'},
            format='json',
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
class TestMeEndpoints:
    def test_me_authenticated(self, authenticated_client, user):
        response = authenticated_client.get(reverse('api-v1:auth:me'))
        assert response.status_code == status.HTTP_200_OK
        assert response.json()['data']['phone'] == user.phone

    def test_me_unauthenticated(self, api_client):
        response = api_client.get(reverse('api-v1:auth:me'))
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_my_hierarchy(self, api_client, district_member):
        api_client.force_authenticate(user=district_member)
        response = api_client.get(reverse('api-v1:auth:me-hierarchy'))
        assert response.status_code == status.HTTP_200_OK
        memberships = response.json()['data']['memberships']
        assert [m['hierarchy'] for m in memberships] == ['ORIGINAL']

    def test_switch_active_hierarchy(self, api_client):
        user = UserFactory(district=DistrictFactory(), expatriate_region=ExpatriateRegionFactory())
        api_client.force_authenticate(user=user)
        response = api_client.patch(
            reverse('api-v1:auth:me-hierarchy'), {'active_hierarchy': Branch.EXPATRIATE}, format='json',
        )
        assert response.status_code == status.HTTP_200_OK
        user.refresh_from_db()
        assert user.active_hierarchy == Branch.EXPATRIATE

    def test_switch_to_branch_without_membership(self, authenticated_client):
        response = authenticated_client.patch(
            reverse('api-v1:auth:me-hierarchy'), {'active_hierarchy': Branch.SECTOR}, format='json',
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
class TestUserManagement:
    def test_member_forbidden(self, authenticated_client):
        response = authenticated_client.get(reverse('api-v1:users:user-list'))
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_unauthenticated_access_denied(self, api_client):
        response = api_client.get(reverse('api-v1:users:user-list'))
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_region_admin_sees_users_below(self, api_client, region_tree):
        region, d1, d2, outside = region_tree
        admin = UserFactory(admin_level=User.AdminLevel.REGION, region=region)
        below_1 = UserFactory(district=d1)
        below_2 = UserFactory(district=d2)
        UserFactory(district=outside)

        api_client.force_authenticate(user=admin)
        response = api_client.get(reverse('api-v1:users:user-list'))
        assert response.status_code == status.HTTP_200_OK
        ids = {row['id'] for row in response.json()['data']}
        assert ids == {str(admin.pk), str(below_1.pk), str(below_2.pk)}

    def test_out_of_scope_user_not_found(self, api_client, region_tree):
        region, _, _, outside = region_tree
        admin = UserFactory(admin_level=User.AdminLevel.REGION, region=region)
        stranger = UserFactory(district=outside)
        api_client.force_authenticate(user=admin)
        response = api_client.get(reverse('api-v1:users:user-detail', kwargs={'pk': stranger.pk}))
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_admin_creates_user_with_position(self, admin_client):
        district = DistrictFactory()
        response = admin_client.post(
            reverse('api-v1:users:user-list'),
            {
                'phone': '+249968100000',
                'first_name': 'Test',
                'last_name': 'User',
                'password': 'NewUser2026!!',
                'district': str(district.pk),
            },
            format='json',
        )
        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()['data']
        assert data['region'] == str(district.admin_unit.locality.region_id)

    def test_cannot_grant_higher_level(self, api_client, region_tree):
        region = region_tree[0]
        admin = UserFactory(admin_level=User.AdminLevel.REGION, region=region)
        api_client.force_authenticate(user=admin)
        response = api_client.post(
            reverse('api-v1:users:user-list'),
            {'phone': '+249968100001', 'admin_level': 'ADMIN'},
            format='json',
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_change_status(self, admin_client):
        user = UserFactory(status=User.StatusChoices.PENDING)
        response = admin_client.post(
            reverse('api-v1:users:user-change-status', kwargs={'pk': user.pk}),
            {'status': 'ACTIVE'},
            format='json',
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()['data']['status'] == 'ACTIVE'
