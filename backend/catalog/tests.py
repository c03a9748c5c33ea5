"""
Test suite for categories and products
"""
from decimal import Decimal
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.catalog.models import Product
from backend.theaters.models import TheaterUser


class ProductModelTests(TestCase):
    """Test stock status helpers"""

    def setUp(self):
        self.theater = TestDataFactory.create_theater()

    def test_low_stock_threshold_falls_back_to_default(self):
        product = TestDataFactory.create_product(self.theater)
        self.assertEqual(product.low_stock_threshold, 5)
        product.min_stock = 12
        self.assertEqual(product.low_stock_threshold, 12)

    def test_stock_status(self):
        product = TestDataFactory.create_product(self.theater, min_stock=10)
        self.assertEqual(product.stock_status, 'out_of_stock')
        product.current_stock = 10
        self.assertEqual(product.stock_status, 'low_stock')
        product.current_stock = 11
        self.assertEqual(product.stock_status, 'in_stock')
        product.track_stock = False
        self.assertEqual(product.stock_status, 'untracked')


class CategoryAPITests(TestCase):
    """Test category endpoints"""

    def setUp(self):
        cache.clear()
        self.theater = TestDataFactory.create_theater()
        self.manager = TestDataFactory.create_user()
        self.staff = TestDataFactory.create_user()
        TestDataFactory.add_member(self.theater, self.manager, role=TheaterUser.ROLE_MANAGER)
        TestDataFactory.add_member(self.theater, self.staff, role=TheaterUser.ROLE_STAFF)
        self.client = AuthenticatedAPIClient().authenticate_user(self.manager)
        self.url = f'/api/v1/theaters/{self.theater.id}/categories/'

    def test_create_and_list_with_product_count(self):
        response = self.client.post(self.url, {'name': 'Snacks'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        category_id = response.data['id']
        product = TestDataFactory.create_product(self.theater)
        product.category_id = category_id
        product.save()

        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['name'], 'Snacks')
        self.assertEqual(response.data[0]['product_count'], 1)

    def test_duplicate_name_case_insensitive(self):
        TestDataFactory.create_category(self.theater, name='Drinks')
        response = self.client.post(self.url, {'name': 'drinks'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data)

    def test_same_name_in_other_theater_allowed(self):
        other = TestDataFactory.create_theater()
        TestDataFactory.create_category(other, name='Drinks')
        response = self.client.post(self.url, {'name': 'Drinks'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_staff_read_only(self):
        client = AuthenticatedAPIClient().authenticate_user(self.staff)
        self.assertEqual(client.get(self.url).status_code, status.HTTP_200_OK)
        response = client.post(self.url, {'name': 'Combos'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_keeps_products(self):
        category = TestDataFactory.create_category(self.theater)
        product = TestDataFactory.create_product(self.theater, category=category)
        response = self.client.delete(f'{self.url}{category.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        product.refresh_from_db()
        self.assertIsNone(product.category)


class ProductAPITests(TestCase):
    """Test product endpoints and filters"""

    def setUp(self):
        cache.clear()
        self.theater = TestDataFactory.create_theater()
        self.other_theater = TestDataFactory.create_theater()
        self.manager = TestDataFactory.create_user()
        self.staff = TestDataFactory.create_user()
        TestDataFactory.add_member(self.theater, self.manager, role=TheaterUser.ROLE_MANAGER)
        TestDataFactory.add_member(self.theater, self.staff, role=TheaterUser.ROLE_STAFF)
        self.category = TestDataFactory.create_category(self.theater, name='Snacks')
        self.client = AuthenticatedAPIClient().authenticate_user(self.manager)
        self.url = f'/api/v1/theaters/{self.theater.id}/products/'

    def test_create_product(self):
        response = self.client.post(self.url, {
            'name': 'Caramel Popcorn',
            'sku': 'POP-CAR',
            'category': self.category.id,
            'base_price': '180.00',
            'tax_rate': '5.00',
            'gst_type': 'INCLUDE',
            'min_stock': 15,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['category_name'], 'Snacks')
        self.assertEqual(response.data['current_stock'], 0)
        self.assertEqual(response.data['stock_status'], 'out_of_stock')
        self.assertTrue(AuditLog.objects.filter(model_name='Product', object_reference='POP-CAR').exists())

    def test_current_stock_is_read_only(self):
        response = self.client.post(self.url, {'name': 'Water', 'current_stock': 500}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Product.objects.get(pk=response.data['id']).current_stock, 0)

    def test_duplicate_sku_rejected(self):
        TestDataFactory.create_product(self.theater, sku='DUP-1')
        response = self.client.post(self.url, {'name': 'Copy', 'sku': 'DUP-1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('sku', response.data)

    def test_category_from_other_theater_rejected(self):
        foreign = TestDataFactory.create_category(self.other_theater)
        response = self.client.post(self.url, {'name': 'Nachos', 'category': foreign.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('category', response.data)

    def test_invalid_discount(self):
        response = self.client.post(self.url, {'name': 'Nachos', 'discount_percentage': '120'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('discount_percentage', response.data)

    def test_staff_cannot_write(self):
        client = AuthenticatedAPIClient().authenticate_user(self.staff)
        self.assertEqual(client.get(self.url).status_code, status.HTTP_200_OK)
        response = client.post(self.url, {'name': 'Nachos'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_is_scoped_and_paginated(self):
        for i in range(3):
            TestDataFactory.create_product(self.theater, name=f'Item {i}')
        TestDataFactory.create_product(self.other_theater, name='Elsewhere')
        response = self.client.get(f'{self.url}?limit=2&page=2')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 3)
        self.assertEqual(response.data['total_pages'], 2)
        self.assertEqual([p['name'] for p in response.data['results']], ['Item 2'])

    def test_invalid_pagination(self):
        response = self.client.get(f'{self.url}?page=abc')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_search_filter(self):
        TestDataFactory.create_product(self.theater, name='Salted Popcorn', category=self.category)
        TestDataFactory.create_product(self.theater, name='Cola', sku='COLA-1')
        response = self.client.get(f'{self.url}?search=pop')
        self.assertEqual([p['name'] for p in response.data['results']], ['Salted Popcorn'])
        response = self.client.get(f'{self.url}?search=snacks')
        self.assertEqual([p['name'] for p in response.data['results']], ['Salted Popcorn'])

    def test_stock_filters(self):
        low = TestDataFactory.create_product(self.theater, name='Low', min_stock=10)
        low.current_stock = 4
        low.save()
        plenty = TestDataFactory.create_product(self.theater, name='Plenty', min_stock=10)
        plenty.current_stock = 40
        plenty.save()
        TestDataFactory.create_product(self.theater, name='Empty')
        TestDataFactory.create_product(self.theater, name='Untracked', track_stock=False)

        def names(query):
            return [p['name'] for p in self.client.get(f'{self.url}?{query}').data['results']]

        self.assertEqual(names('low_stock=true'), ['Low'])
        self.assertEqual(names('out_of_stock=true'), ['Empty'])
        self.assertEqual(names('in_stock=true'), ['Low', 'Plenty'])
        self.assertEqual(names('track_stock=false'), ['Untracked'])

    def test_update_logs_changes(self):
        product = TestDataFactory.create_product(self.theater, name='Cola', base_price=Decimal('50.00'))
        response = self.client.patch(f'{self.url}{product.id}/', {'base_price': '60.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        log = AuditLog.objects.get(model_name='Product', action='update')
        self.assertEqual(log.changes, {'base_price': {'old': '50.00', 'new': '60.00'}})

    def test_product_from_other_theater_not_found(self):
        foreign = TestDataFactory.create_product(self.other_theater)
        response = self.client.get(f'{self.url}{foreign.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_product(self):
        product = TestDataFactory.create_product(self.theater)
        response = self.client.delete(f'{self.url}{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Product.objects.filter(pk=product.id).exists())
