"""
Test suite for authentication, users and audit logs
"""
from datetime import timedelta
from django.conf import settings
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.core.utils import create_audit_log
from backend.theaters.models import TheaterUser


class AuthTests(TestCase):
    """Test JWT login, refresh and the current user endpoint"""

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.user = TestDataFactory.create_user(username='cashier', password='Counter-Pass-91')
        self.theater = TestDataFactory.create_theater(name='Galaxy Cinema')
        TestDataFactory.add_member(self.theater, self.user, role=TheaterUser.ROLE_STAFF)

    def test_login_returns_tokens_with_theater_roles(self):
        response = self.client.post('/api/v1/auth/login/', {
            'username': 'cashier', 'password': 'Counter-Pass-91'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('refresh', response.data)
        token = AccessToken(response.data['access'])
        self.assertEqual(token['username'], 'cashier')
        self.assertEqual(token['theaters'], {str(self.theater.id): 'staff'})

    def test_token_lifetimes_come_from_settings(self):
        self.assertEqual(settings.SIMPLE_JWT['ACCESS_TOKEN_LIFETIME'], timedelta(hours=12))
        self.assertEqual(settings.SIMPLE_JWT['REFRESH_TOKEN_LIFETIME'], timedelta(days=7))
        token = AccessToken.for_user(self.user)
        self.assertEqual(token['exp'] - token['iat'], 12 * 60 * 60)

    def test_login_wrong_password(self):
        response = self.client.post('/api/v1/auth/login/', {
            'username': 'cashier', 'password': 'wrong'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh(self):
        login = self.client.post('/api/v1/auth/login/', {
            'username': 'cashier', 'password': 'Counter-Pass-91'
        }, format='json')
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': login.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_refresh_with_garbage_token(self):
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': 'not-a-token'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_lists_memberships_and_capabilities(self):
        client = AuthenticatedAPIClient().authenticate_user(self.user)
        response = client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_admin'])
        self.assertEqual(len(response.data['theaters']), 1)
        membership = response.data['theaters'][0]
        self.assertEqual(membership['role'], 'staff')
        self.assertEqual(membership['capabilities'], ['manage_orders', 'view_stock'])

    def test_me_hides_inactive_theaters(self):
        self.theater.is_active = False
        self.theater.save()
        client = AuthenticatedAPIClient().authenticate_user(self.user)
        response = client.get('/api/v1/auth/me/')
        self.assertEqual(response.data['theaters'], [])

    def test_me_requires_authentication(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class UserAPITests(TestCase):
    """Test user management (platform admins only)"""

    def setUp(self):
        cache.clear()
        self.admin = TestDataFactory.create_user(username='root', is_staff=True, is_superuser=True)
        self.user = TestDataFactory.create_user(username='plain')
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)

    def test_list_users(self):
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([u['username'] for u in response.data], ['plain', 'root'])

    def test_non_admin_denied(self):
        client = AuthenticatedAPIClient().authenticate_user(self.user)
        response = client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_user(self):
        response = self.client.post('/api/v1/users/', {
            'username': 'newcashier',
            'email': 'newcashier@test.com',
            'password': 'Counter-Pass-91',
            'password_confirm': 'Counter-Pass-91',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertNotIn('password', response.data)

    def test_create_user_with_theater_role(self):
        theater = TestDataFactory.create_theater()
        response = self.client.post('/api/v1/users/', {
            'username': 'kiosk1',
            'password': 'Counter-Pass-91',
            'password_confirm': 'Counter-Pass-91',
            'theater': theater.id,
            'role': 'kiosk',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['theater_count'], 1)
        membership = TheaterUser.objects.get(user__username='kiosk1')
        self.assertEqual(membership.theater, theater)
        self.assertEqual(membership.role, 'kiosk')

    def test_role_without_theater_rejected(self):
        response = self.client.post('/api/v1/users/', {
            'username': 'kiosk1',
            'password': 'Counter-Pass-91',
            'password_confirm': 'Counter-Pass-91',
            'role': 'kiosk',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('theater', response.data)

    def test_create_user_password_mismatch(self):
        response = self.client.post('/api/v1/users/', {
            'username': 'newcashier',
            'password': 'Counter-Pass-91',
            'password_confirm': 'Counter-Pass-92',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('password', response.data)

    def test_delete_deactivates(self):
        response = self.client.delete(f'/api/v1/users/{self.user.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.user.refresh_from_db()
        self.assertFalse(self.user.is_active)


class AuditLogTests(TestCase):
    """Test audit log creation and visibility"""

    def setUp(self):
        cache.clear()
        self.theater = TestDataFactory.create_theater(name='Galaxy Cinema')
        self.other_theater = TestDataFactory.create_theater(name='Zenith Cinema')
        self.manager = TestDataFactory.create_user(username='manager')
        self.staff = TestDataFactory.create_user(username='staff')
        TestDataFactory.add_member(self.theater, self.manager, role=TheaterUser.ROLE_MANAGER)
        TestDataFactory.add_member(self.theater, self.staff, role=TheaterUser.ROLE_STAFF)

        self.own_log = create_audit_log(action='stock_add', model_name='StockEntry', object_id=1,
                                        user=self.manager, theater=self.theater, object_name='Popcorn')
        self.other_log = create_audit_log(action='order_create', model_name='Order', object_id=2,
                                          theater=self.other_theater, object_reference='ORD-1')

    def test_missing_fields_skip_logging(self):
        self.assertIsNone(create_audit_log(action='create', model_name='Product'))
        self.assertEqual(AuditLog.objects.count(), 2)

    def test_manager_sees_only_their_theaters(self):
        client = AuthenticatedAPIClient().authenticate_user(self.manager)
        response = client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([log['id'] for log in response.data], [self.own_log.id])
        self.assertEqual(response.data[0]['theater_name'], 'Galaxy Cinema')

    def test_staff_without_reports_sees_nothing(self):
        client = AuthenticatedAPIClient().authenticate_user(self.staff)
        response = client.get('/api/v1/audit-logs/')
        self.assertEqual(response.data, [])

    def test_admin_filters_by_action(self):
        admin = TestDataFactory.create_user(is_staff=True)
        client = AuthenticatedAPIClient().authenticate_user(admin)
        response = client.get('/api/v1/audit-logs/?action=order_create')
        self.assertEqual([log['id'] for log in response.data], [self.other_log.id])

    def test_detail_permission(self):
        client = AuthenticatedAPIClient().authenticate_user(self.manager)
        self.assertEqual(client.get(f'/api/v1/audit-logs/{self.own_log.id}/').status_code, status.HTTP_200_OK)
        self.assertEqual(client.get(f'/api/v1/audit-logs/{self.other_log.id}/').status_code,
                         status.HTTP_403_FORBIDDEN)
