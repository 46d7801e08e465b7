"""
Hierarchy — Service Tests

Traversal (ancestors, children, descendants), the expatriate region
sector fan-out and the sector expatriate-region invariant.

@file hierarchy/tests/test_services.py
"""

from unittest import mock

import pytest
from django.db import IntegrityError

from content.models import Bulletin
from core.exceptions import BusinessRuleViolation, DuplicateResourceError, ResourceNotFoundError
from core.models import AuditLog
from hierarchy.branches import (
    DISTRICT,
    EXPATRIATE_REGION,
    LOCALITY,
    NATIONAL_LEVEL,
    REGION,
    SECTOR_NATIONAL_LEVEL,
    SECTOR_REGION,
)
from hierarchy.models import ExpatriateRegion, Locality, Region, SectorLocality, SectorNationalLevel, SectorType
from hierarchy.services import ExpatriateRegionService, HierarchyNodeService, HierarchyService
from tests.factories import (
    AdminUnitFactory,
    BulletinFactory,
    DistrictFactory,
    ExpatriateRegionFactory,
    LocalityFactory,
    NationalLevelFactory,
    RegionFactory,
    SectorDistrictFactory,
    SectorLocalityFactory,
    SectorNationalLevelFactory,
    SectorRegionFactory,
    UserFactory,
)
from users.models import User


@pytest.mark.django_db
class TestAncestors:
    def test_ancestor_ids_of_district(self):
        district = DistrictFactory()
        au = district.admin_unit
        chain = HierarchyService.get_ancestor_ids(DISTRICT, district.pk)
        assert chain == {
            'admin_unit': au.pk,
            'locality': au.locality_id,
            'region': au.locality.region_id,
            'national_level': au.locality.region.national_level_id,
        }

    def test_ancestor_ids_missing_node(self):
        assert HierarchyService.get_ancestor_ids(DISTRICT, '00000000-0000-0000-0000-000000000000') is None

    def test_broken_link_leaves_upper_levels_empty(self):
        locality = LocalityFactory(region=None)
        district = DistrictFactory(admin_unit=AdminUnitFactory(locality=locality))
        chain = HierarchyService.get_ancestor_ids(DISTRICT, district.pk)
        assert chain['locality'] == locality.pk
        assert chain['region'] is None
        assert chain['national_level'] is None

    def test_ancestor_chain_root_first(self):
        district = DistrictFactory(name='D1')
        chain = HierarchyService.get_ancestor_chain(DISTRICT, district.pk)
        assert [entry['level'] for entry in chain] == [
            'national_level', 'region', 'locality', 'admin_unit', 'district',
        ]
        assert chain[-1]['name'] == 'D1'

    def test_ancestor_chain_unknown_node(self):
        assert HierarchyService.get_ancestor_chain(REGION, 'not-a-uuid') == []


@pytest.mark.django_db
class TestDescendants:
    def test_full_recursive_expansion(self):
        region = RegionFactory()
        l1 = LocalityFactory(region=region)
        l2 = LocalityFactory(region=region)
        au1 = AdminUnitFactory(locality=l1)
        au2 = AdminUnitFactory(locality=l2)
        d1 = DistrictFactory(admin_unit=au1)
        d2 = DistrictFactory(admin_unit=au2)
        DistrictFactory()  # elsewhere

        found = HierarchyService.get_descendant_ids(REGION, region.pk)
        assert set(found['locality']) == {l1.pk, l2.pk}
        assert set(found['admin_unit']) == {au1.pk, au2.pk}
        assert set(found['district']) == {d1.pk, d2.pk}

    def test_leaf_has_no_descendants(self):
        district = DistrictFactory()
        assert HierarchyService.get_descendant_ids(DISTRICT, district.pk) == {}

    def test_empty_level_stops_descent(self):
        region = RegionFactory()
        found = HierarchyService.get_descendant_ids(REGION, region.pk)
        assert found == {'locality': [], 'admin_unit': [], 'district': []}

    def test_expatriate_region_scopes_sector_nodes(self):
        district = SectorDistrictFactory()
        region = district.expatriate_region
        SectorDistrictFactory()  # other expatriate region

        found = HierarchyService.get_descendant_ids(EXPATRIATE_REGION, region.pk)
        assert found['sector_district'] == [district.pk]
        assert len(found['sector_national_level']) == 1

    def test_children(self):
        region = RegionFactory()
        LocalityFactory(region=region, name='B')
        LocalityFactory(region=region, name='A')
        names = list(HierarchyService.get_children(REGION, region.pk).values_list('name', flat=True))
        assert names == ['A', 'B']

    def test_children_of_expatriate_region_are_sector_roots(self):
        region = ExpatriateRegionService.create(name='Gulf')
        children = HierarchyService.get_children(EXPATRIATE_REGION, region.pk)
        assert children.count() == 4
        assert HierarchyService.child_level(EXPATRIATE_REGION) == SECTOR_NATIONAL_LEVEL


@pytest.mark.django_db
class TestHierarchyNodeService:
    def test_create_requires_parent(self):
        with pytest.raises(BusinessRuleViolation):
            HierarchyNodeService.create_node(LOCALITY, name='Orphan')

    def test_create_with_parent_id(self):
        region = RegionFactory()
        locality = HierarchyNodeService.create_node(LOCALITY, name=' Town ', code='t-1', region=region.pk)
        assert locality.region == region
        assert locality.name == 'Town'
        assert locality.code == 'T-1'

    def test_unknown_parent(self):
        with pytest.raises(ResourceNotFoundError):
            HierarchyNodeService.create_node(
                LOCALITY, name='Town', region='00000000-0000-0000-0000-000000000000',
            )

    def test_invalid_code_rejected(self):
        with pytest.raises(BusinessRuleViolation):
            HierarchyNodeService.create_node(NATIONAL_LEVEL, name='National', code='bad code!')

    def test_duplicate_code(self):
        NationalLevelFactory(code='NAT')
        with pytest.raises(DuplicateResourceError):
            HierarchyNodeService.create_node(NATIONAL_LEVEL, name='Other', code='nat')

    def test_create_is_audited(self):
        actor = UserFactory()
        node = HierarchyNodeService.create_node(NATIONAL_LEVEL, name='National', actor=actor)
        log = AuditLog.objects.get(model_name='NationalLevel', object_id=str(node.pk))
        assert log.actor == actor
        assert log.action == 'CREATE'

    def test_update_moves_node(self):
        locality = LocalityFactory()
        new_region = RegionFactory()
        updated = HierarchyNodeService.update_node(LOCALITY, locality.pk, region=new_region.pk, name='Moved')
        assert updated.region == new_region
        assert updated.name == 'Moved'

    def test_delete_targeted_node_blocked(self):
        region = RegionFactory()
        BulletinFactory(target_region=region)
        with pytest.raises(BusinessRuleViolation):
            HierarchyNodeService.delete_node(REGION, region.pk)
        assert Region.objects.filter(pk=region.pk).exists()

    def test_delete_parent_with_children_blocked(self):
        region = RegionFactory()
        locality = LocalityFactory(region=region)
        with pytest.raises(BusinessRuleViolation) as exc:
            HierarchyNodeService.delete_node(REGION, region.pk)
        assert 'child nodes' in str(exc.value.detail)
        assert Region.objects.filter(pk=region.pk).exists()
        assert Locality.objects.get(pk=locality.pk).region_id == region.pk

    def test_delete_expatriate_region_removes_its_sector_tree(self):
        locality = SectorLocalityFactory()
        region = locality.expatriate_region
        HierarchyNodeService.delete_node(EXPATRIATE_REGION, region.pk)
        assert not SectorLocality.objects.filter(pk=locality.pk).exists()
        assert not SectorNationalLevel.objects.filter(expatriate_region_id=region.pk).exists()

    def test_delete(self):
        region = RegionFactory()
        HierarchyNodeService.delete_node(REGION, region.pk)
        assert not Region.objects.filter(pk=region.pk).exists()
        assert AuditLog.objects.filter(model_name='Region', action='DELETE').exists()


@pytest.mark.django_db
class TestExpatriateRegionService:
    def test_fan_out_creates_four_sectors(self):
        region = HierarchyNodeService.create_node(EXPATRIATE_REGION, name='Gulf', code='GULF')
        sectors = SectorNationalLevel.objects.filter(expatriate_region=region)
        assert sectors.count() == 4
        assert set(sectors.values_list('sector_type', flat=True)) == set(SectorType.values)
        assert sectors.filter(name='Gulf - Social').exists()

    def test_sector_failure_keeps_region(self):
        with mock.patch.object(SectorNationalLevel.objects, 'create', side_effect=IntegrityError('boom')):
            region = ExpatriateRegionService.create(name='Europe')
        assert ExpatriateRegion.objects.filter(pk=region.pk).exists()
        assert not SectorNationalLevel.objects.filter(expatriate_region=region).exists()


@pytest.mark.django_db
class TestSectorHierarchyService:
    def test_national_level_requires_expatriate_region(self):
        with pytest.raises(BusinessRuleViolation):
            HierarchyNodeService.create_node(SECTOR_NATIONAL_LEVEL, name='S', sector_type=SectorType.SOCIAL)

    def test_child_derives_expatriate_region(self):
        parent = SectorNationalLevelFactory(sector_type=SectorType.POLITICAL)
        child = HierarchyNodeService.create_node(SECTOR_REGION, name='SR', sector_national_level=parent.pk)
        assert child.expatriate_region_id == parent.expatriate_region_id
        assert child.sector_type == SectorType.POLITICAL

    def test_conflicting_expatriate_region_rejected(self):
        parent = SectorNationalLevelFactory()
        other = ExpatriateRegionFactory()
        with pytest.raises(BusinessRuleViolation) as exc:
            HierarchyNodeService.create_node(
                SECTOR_REGION, name='SR', sector_national_level=parent.pk, expatriate_region=other.pk,
            )
        assert 'conflicts' in str(exc.value.detail)

    def test_matching_expatriate_region_accepted(self):
        parent = SectorNationalLevelFactory()
        child = HierarchyNodeService.create_node(
            SECTOR_REGION, name='SR',
            sector_national_level=parent.pk,
            expatriate_region=parent.expatriate_region_id,
        )
        assert child.expatriate_region_id == parent.expatriate_region_id

    def test_update_reparent_rederives_expatriate_region(self):
        child = SectorRegionFactory()
        grandchild = SectorLocalityFactory(sector_region=child)
        old_region_id = child.expatriate_region_id
        new_parent = SectorNationalLevelFactory(sector_type=SectorType.ECONOMIC)

        updated = HierarchyNodeService.update_node(SECTOR_REGION, child.pk, sector_national_level=new_parent.pk)

        assert updated.expatriate_region_id == new_parent.expatriate_region_id
        assert updated.sector_type == SectorType.ECONOMIC
        grandchild.refresh_from_db()
        assert grandchild.expatriate_region_id == new_parent.expatriate_region_id
        assert grandchild.sector_type == SectorType.ECONOMIC

        moved = HierarchyService.get_descendant_ids(EXPATRIATE_REGION, new_parent.expatriate_region_id)
        assert grandchild.pk in moved['sector_locality']
        left = HierarchyService.get_descendant_ids(EXPATRIATE_REGION, old_region_id)
        assert left['sector_locality'] == []

    def test_reparented_subtree_enters_new_admin_scope(self):
        child = SectorRegionFactory()
        grandchild = SectorLocalityFactory(sector_region=child)
        BulletinFactory(target_sector_locality=grandchild)
        new_parent = SectorNationalLevelFactory()
        admin = UserFactory(
            admin_level=User.AdminLevel.EXPATRIATE_REGION, expatriate_region=new_parent.expatriate_region,
        )

        HierarchyNodeService.update_node(SECTOR_REGION, child.pk, sector_national_level=new_parent.pk)

        assert Bulletin.objects.manageable_by(admin).count() == 1

    def test_conflicting_sector_type_rejected(self):
        parent = SectorNationalLevelFactory(sector_type=SectorType.SOCIAL)
        with pytest.raises(BusinessRuleViolation) as exc:
            HierarchyNodeService.create_node(
                SECTOR_REGION, name='SR', sector_national_level=parent.pk, sector_type=SectorType.ECONOMIC,
            )
        assert 'Sector type conflicts' in str(exc.value.detail)

    def test_update_conflicting_sector_type_rejected(self):
        child = SectorRegionFactory()
        with pytest.raises(BusinessRuleViolation):
            HierarchyNodeService.update_node(SECTOR_REGION, child.pk, sector_type=SectorType.POLITICAL)
        child.refresh_from_db()
        assert child.sector_type == SectorType.SOCIAL

    def test_update_conflicting_expatriate_region_rejected(self):
        child = SectorRegionFactory()
        with pytest.raises(BusinessRuleViolation):
            HierarchyNodeService.update_node(
                SECTOR_REGION, child.pk, expatriate_region=ExpatriateRegionFactory().pk,
            )
