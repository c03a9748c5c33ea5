"""
Test suite for theaters, memberships and role permissions
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.theaters.models import Theater, TheaterUser
from backend.theaters.permissions import (
    CAPABILITIES, ROLE_CAPABILITIES, accessible_theater_ids, has_capability, require_capability,
)


class PermissionTests(TestCase):
    """Test the role to capability mapping"""

    def setUp(self):
        cache.clear()
        self.theater = TestDataFactory.create_theater()
        self.user = TestDataFactory.create_user()

    def test_role_capabilities(self):
        self.assertEqual(ROLE_CAPABILITIES[TheaterUser.ROLE_ADMIN], frozenset(CAPABILITIES))
        self.assertNotIn('manage_users', ROLE_CAPABILITIES[TheaterUser.ROLE_MANAGER])
        self.assertEqual(ROLE_CAPABILITIES[TheaterUser.ROLE_STAFF], {'view_stock', 'manage_orders'})
        self.assertEqual(ROLE_CAPABILITIES[TheaterUser.ROLE_KIOSK], {'manage_orders'})

    def test_has_capability(self):
        TestDataFactory.add_member(self.theater, self.user, role=TheaterUser.ROLE_STAFF)
        self.assertTrue(has_capability(self.user, self.theater.id))
        self.assertTrue(has_capability(self.user, self.theater.id, 'view_stock'))
        self.assertFalse(has_capability(self.user, self.theater.id, 'manage_stock'))

    def test_inactive_membership_grants_nothing(self):
        TestDataFactory.add_member(self.theater, self.user, role=TheaterUser.ROLE_ADMIN, is_active=False)
        self.assertFalse(has_capability(self.user, self.theater.id))
        self.assertEqual(accessible_theater_ids(self.user), [])

    def test_inactive_theater_grants_nothing(self):
        TestDataFactory.add_member(self.theater, self.user, role=TheaterUser.ROLE_ADMIN)
        self.theater.is_active = False
        self.theater.save()
        self.assertFalse(has_capability(self.user, self.theater.id, 'view_stock'))

    def test_platform_admin_has_everything(self):
        admin = TestDataFactory.create_user(is_superuser=True)
        self.assertTrue(has_capability(admin, self.theater.id, 'manage_users'))

    def test_accessible_theater_ids_by_capability(self):
        other = TestDataFactory.create_theater()
        TestDataFactory.add_member(self.theater, self.user, role=TheaterUser.ROLE_MANAGER)
        TestDataFactory.add_member(other, self.user, role=TheaterUser.ROLE_KIOSK)
        self.assertEqual(sorted(accessible_theater_ids(self.user)), sorted([self.theater.id, other.id]))
        self.assertEqual(accessible_theater_ids(self.user, 'view_stock'), [self.theater.id])

    def test_unknown_capability_rejected(self):
        with self.assertRaises(ValueError):
            require_capability('fly')


class TheaterAPITests(TestCase):
    """Test theater endpoints"""

    def setUp(self):
        cache.clear()
        self.theater = TestDataFactory.create_theater(name='Galaxy Cinema', code='GALAXY')
        self.other_theater = TestDataFactory.create_theater(name='Zenith Cinema', code='ZENITH')
        self.platform_admin = TestDataFactory.create_user(is_staff=True)
        self.theater_admin = TestDataFactory.create_user()
        self.staff = TestDataFactory.create_user()
        TestDataFactory.add_member(self.theater, self.theater_admin, role=TheaterUser.ROLE_ADMIN)
        TestDataFactory.add_member(self.theater, self.staff, role=TheaterUser.ROLE_STAFF)
        self.client = AuthenticatedAPIClient()

    def test_list_only_member_theaters(self):
        self.client.authenticate_user(self.staff)
        response = self.client.get('/api/v1/theaters/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([t['code'] for t in response.data], ['GALAXY'])

    def test_platform_admin_lists_all(self):
        self.client.authenticate_user(self.platform_admin)
        response = self.client.get('/api/v1/theaters/')
        self.assertEqual(len(response.data), 2)

    def test_create_requires_platform_admin(self):
        data = {'name': 'Orbit Cinema', 'code': 'ORBIT', 'email': 'orbit@test.com'}
        self.client.authenticate_user(self.theater_admin)
        response = self.client.post('/api/v1/theaters/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.platform_admin)
        response = self.client.post('/api/v1/theaters/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(AuditLog.objects.filter(model_name='Theater', object_reference='ORBIT').exists())

    def test_duplicate_code_rejected(self):
        self.client.authenticate_user(self.platform_admin)
        response = self.client.post('/api/v1/theaters/', {'name': 'Copy', 'code': 'GALAXY'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('code', response.data)

    def test_staff_can_read_but_not_update(self):
        self.client.authenticate_user(self.staff)
        url = f'/api/v1/theaters/{self.theater.id}/'
        self.assertEqual(self.client.get(url).status_code, status.HTTP_200_OK)
        response = self.client.patch(url, {'phone': '999'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_denial_names_the_capability_of_the_method(self):
        kiosk = TestDataFactory.create_user()
        TestDataFactory.add_member(self.theater, kiosk, role=TheaterUser.ROLE_KIOSK)
        url = f'/api/v1/theaters/{self.theater.id}/'

        self.client.authenticate_user(kiosk)
        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertIn('view_stock', str(response.data['detail']))

        self.client.authenticate_user(self.staff)
        response = self.client.patch(url, {'phone': '999'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertIn('manage_users', str(response.data['detail']))

    def test_theater_admin_updates(self):
        self.client.authenticate_user(self.theater_admin)
        response = self.client.patch(f'/api/v1/theaters/{self.theater.id}/', {'email': 'new@test.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.theater.refresh_from_db()
        self.assertEqual(self.theater.email, 'new@test.com')

    def test_no_access_to_other_theater(self):
        self.client.authenticate_user(self.theater_admin)
        response = self.client.get(f'/api/v1/theaters/{self.other_theater.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_requires_platform_admin(self):
        url = f'/api/v1/theaters/{self.other_theater.id}/'
        self.client.authenticate_user(self.platform_admin)
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Theater.objects.filter(pk=self.other_theater.id).exists())

        self.client.authenticate_user(self.theater_admin)
        response = self.client.delete(f'/api/v1/theaters/{self.theater.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class TheaterMemberAPITests(TestCase):
    """Test membership management"""

    def setUp(self):
        cache.clear()
        self.theater = TestDataFactory.create_theater()
        self.admin = TestDataFactory.create_user(username='theater_admin')
        self.manager = TestDataFactory.create_user(username='theater_manager')
        self.newcomer = TestDataFactory.create_user(username='newcomer')
        self.admin_membership = TestDataFactory.add_member(self.theater, self.admin, role=TheaterUser.ROLE_ADMIN)
        self.manager_membership = TestDataFactory.add_member(self.theater, self.manager,
                                                             role=TheaterUser.ROLE_MANAGER)
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)
        self.url = f'/api/v1/theaters/{self.theater.id}/users/'

    def test_list_members(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([m['username'] for m in response.data], ['theater_admin', 'theater_manager'])
        self.assertIn('manage_users', response.data[0]['capabilities'])

    def test_manager_cannot_manage_members(self):
        client = AuthenticatedAPIClient().authenticate_user(self.manager)
        response = client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_add_member(self):
        response = self.client.post(self.url, {'user': self.newcomer.id, 'role': 'kiosk'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['capabilities'], ['manage_orders'])
        self.assertTrue(TheaterUser.objects.filter(theater=self.theater, user=self.newcomer, role='kiosk').exists())

    def test_add_existing_member_rejected(self):
        response = self.client.post(self.url, {'user': self.manager.id, 'role': 'staff'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('user', response.data)

    def test_change_role(self):
        response = self.client.patch(f'{self.url}{self.manager_membership.id}/', {'role': 'staff'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.manager_membership.refresh_from_db()
        self.assertEqual(self.manager_membership.role, 'staff')

    def test_remove_member(self):
        response = self.client.delete(f'{self.url}{self.manager_membership.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(TheaterUser.objects.filter(pk=self.manager_membership.id).exists())

    def test_cannot_remove_self(self):
        response = self.client.delete(f'{self.url}{self.admin_membership.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)
