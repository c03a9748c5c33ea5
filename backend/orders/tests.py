"""
Test suite for the Orders module
Tests: GST/discount totals, stock deduction on order, returns on cancellation, QR seat ordering
"""
from decimal import Decimal
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.inventory.models import StockEntry
from backend.inventory.services import StockService
from backend.orders.calculations import calculate_order_totals
from backend.orders.exceptions import InvalidStatusTransition, OrderError
from backend.orders.models import Order, QRCode
from backend.orders.services import create_order, update_order_status
from backend.theaters.models import TheaterUser
from django.utils import timezone


class OrderCalculationTests(TestCase):
    """Test order totals with GST and discounts"""

    def test_gst_exclude_adds_tax_on_discounted_amount(self):
        totals = calculate_order_totals([
            {'unit_price': '100.00', 'quantity': 2, 'tax_rate': '5', 'gst_type': 'EXCLUDE',
             'discount_percentage': '10'},
        ])
        self.assertEqual(totals['subtotal'], Decimal('200.00'))
        self.assertEqual(totals['discount'], Decimal('20.00'))
        self.assertEqual(totals['tax'], Decimal('9.00'))
        self.assertEqual(totals['total'], Decimal('189.00'))

    def test_gst_include_extracts_tax(self):
        totals = calculate_order_totals([
            {'unit_price': '105.00', 'quantity': 1, 'tax_rate': '5', 'gst_type': 'INCLUDE',
             'discount_percentage': '0'},
        ])
        self.assertEqual(totals['tax'], Decimal('5.00'))
        self.assertEqual(totals['total'], Decimal('105.00'))

    def test_any_include_item_keeps_tax_out_of_total(self):
        totals = calculate_order_totals([
            {'unit_price': '105.00', 'quantity': 1, 'tax_rate': '5', 'gst_type': 'INCLUDE'},
            {'unit_price': '50.00', 'quantity': 1, 'tax_rate': '10', 'gst_type': 'EXCLUDE'},
        ])
        self.assertEqual(totals['subtotal'], Decimal('155.00'))
        self.assertEqual(totals['tax'], Decimal('10.00'))
        self.assertEqual(totals['total'], Decimal('155.00'))

    def test_rounding_to_two_places(self):
        totals = calculate_order_totals([
            {'unit_price': '33.33', 'quantity': 3, 'tax_rate': '18', 'gst_type': 'EXCLUDE',
             'discount_percentage': '7.5'},
        ])
        self.assertEqual(totals['subtotal'], Decimal('99.99'))
        self.assertEqual(totals['discount'], Decimal('7.50'))
        self.assertEqual(totals['tax'], Decimal('16.65'))
        self.assertEqual(totals['total'], Decimal('109.14'))

    def test_empty_order(self):
        self.assertEqual(calculate_order_totals([])['total'], Decimal('0.00'))


class OrderServiceTests(TestCase):
    """Test order creation and cancellation against the stock ledger"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.theater = TestDataFactory.create_theater()
        self.popcorn = TestDataFactory.create_product(self.theater, name='Popcorn', base_price=Decimal('150.00'),
                                                      tax_rate=Decimal('5.00'))
        self.water = TestDataFactory.create_product(self.theater, name='Water', base_price=Decimal('20.00'),
                                                    track_stock=False)
        StockService.add_entry(self.theater, self.popcorn, timezone.localdate(), 'ADDED', 30)

    def test_create_order_prices_items_and_records_sale(self):
        order = TestDataFactory.create_order(self.theater, [(self.popcorn, 2), (self.water, 1)], user=self.user)

        self.assertTrue(order.order_number.startswith(f"ORD-{timezone.now().strftime('%Y%m%d')}-"))
        self.assertEqual(len(order.order_number), len('ORD-YYYYMMDD-') + 8)
        self.assertEqual(order.subtotal, Decimal('320.00'))
        self.assertEqual(order.tax_amount, Decimal('15.00'))
        self.assertEqual(order.total, Decimal('335.00'))
        self.assertEqual(order.items.count(), 2)
        self.assertEqual(order.items.get(product=self.popcorn).line_total, Decimal('315.00'))

        sale = StockEntry.objects.get(entry_type='SOLD')
        self.assertEqual(sale.quantity, 2)
        self.assertEqual(sale.reference, order.order_number)
        self.popcorn.refresh_from_db()
        self.assertEqual(self.popcorn.current_stock, 28)
        self.assertTrue(AuditLog.objects.filter(action='order_create', object_reference=order.order_number).exists())

    def test_untracked_products_skip_the_ledger(self):
        TestDataFactory.create_order(self.theater, [(self.water, 3)])
        self.assertFalse(StockEntry.objects.filter(entry_type='SOLD').exists())

    def test_order_beyond_stock_is_accepted(self):
        order = TestDataFactory.create_order(self.theater, [(self.popcorn, 40)])
        self.assertEqual(order.status, Order.STATUS_PENDING)
        self.popcorn.refresh_from_db()
        self.assertEqual(self.popcorn.current_stock, 0)

    def test_invalid_items_rejected(self):
        other = TestDataFactory.create_product(TestDataFactory.create_theater())
        with self.assertRaises(OrderError):
            TestDataFactory.create_order(self.theater, [(other, 1)])
        with self.assertRaises(OrderError):
            create_order(self.theater, [])
        self.popcorn.is_available = False
        self.popcorn.save()
        with self.assertRaises(OrderError):
            TestDataFactory.create_order(self.theater, [(self.popcorn, 1)])
        self.assertFalse(Order.objects.exists())

    def test_cancel_returns_items_to_stock(self):
        order = TestDataFactory.create_order(self.theater, [(self.popcorn, 5)])
        update_order_status(order, Order.STATUS_CANCELLED, user=self.user)

        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_CANCELLED)
        self.assertIsNotNone(order.cancelled_at)
        returned = StockEntry.objects.get(entry_type='RETURNED')
        self.assertEqual(returned.quantity, 5)
        self.assertEqual(returned.reference, order.order_number)
        self.popcorn.refresh_from_db()
        self.assertEqual(self.popcorn.current_stock, 30)

    def test_cancelled_order_is_final(self):
        order = TestDataFactory.create_order(self.theater, [(self.popcorn, 1)])
        update_order_status(order, Order.STATUS_CANCELLED)
        with self.assertRaises(InvalidStatusTransition):
            update_order_status(order, Order.STATUS_CANCELLED)
        with self.assertRaises(InvalidStatusTransition):
            update_order_status(order, Order.STATUS_COMPLETED)
        self.assertEqual(StockEntry.objects.filter(entry_type='RETURNED').count(), 1)

    def test_status_change_without_stock_movement(self):
        order = TestDataFactory.create_order(self.theater, [(self.popcorn, 1)])
        update_order_status(order, Order.STATUS_PREPARING)
        self.assertEqual(order.status, Order.STATUS_PREPARING)
        self.assertFalse(StockEntry.objects.filter(entry_type='RETURNED').exists())
        self.assertTrue(AuditLog.objects.filter(action='order_status').exists())


class OrderAPITests(TestCase):
    """Test order and QR code API endpoints"""

    def setUp(self):
        cache.clear()
        self.theater = TestDataFactory.create_theater()
        self.product = TestDataFactory.create_product(self.theater, name='Nachos', base_price=Decimal('120.00'))
        StockService.add_entry(self.theater, self.product, timezone.localdate(), 'ADDED', 20)
        self.kiosk = TestDataFactory.create_user()
        self.manager = TestDataFactory.create_user()
        TestDataFactory.add_member(self.theater, self.kiosk, role=TheaterUser.ROLE_KIOSK)
        TestDataFactory.add_member(self.theater, self.manager, role=TheaterUser.ROLE_MANAGER)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.kiosk)
        self.orders_url = f'/api/v1/theaters/{self.theater.id}/orders/'

    def test_create_and_list_orders(self):
        data = {'source': 'kiosk', 'items': [{'product': self.product.id, 'quantity': 2}], 'payment_method': 'upi'}
        response = self.client.post(self.orders_url, data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['source'], 'kiosk')
        self.assertEqual(response.data['total'], '240.00')
        self.assertEqual(len(response.data['items']), 1)

        response = self.client.get(self.orders_url, {'status': 'pending'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_create_order_validation(self):
        response = self.client.post(self.orders_url, {'items': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post(self.orders_url, {'items': [{'product': 999999, 'quantity': 1}]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_cancel_order_via_status_endpoint(self):
        order = TestDataFactory.create_order(self.theater, [(self.product, 4)])
        url = f'{self.orders_url}{order.id}/status/'
        response = self.client.patch(url, {'status': 'cancelled'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'cancelled')
        self.product.refresh_from_db()
        self.assertEqual(self.product.current_stock, 20)

        response = self.client.patch(url, {'status': 'completed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_order_of_other_theater_not_found(self):
        other_theater = TestDataFactory.create_theater()
        order = TestDataFactory.create_order(other_theater,
                                             [(TestDataFactory.create_product(other_theater), 1)])
        response = self.client.get(f'{self.orders_url}{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_kiosk_cannot_manage_qr_codes(self):
        url = f'/api/v1/theaters/{self.theater.id}/qrcodes/'
        response = self.client.post(url, {'name': 'Screen 1 A1', 'qr_type': 'single', 'seat': 'A1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.manager)
        response = self.client.post(url, {'name': 'Screen 1 A1', 'qr_type': 'single', 'seat': 'A1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['token'])
        response = self.client.post(url, {'name': 'Screen 1', 'qr_type': 'single'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class QRSeatOrderTests(TestCase):
    """Test unauthenticated ordering from a seat QR code"""

    def setUp(self):
        cache.clear()
        self.theater = TestDataFactory.create_theater()
        self.product = TestDataFactory.create_product(self.theater, name='Cola', base_price=Decimal('60.00'))
        self.hidden = TestDataFactory.create_product(self.theater, name='Hidden')
        self.hidden.is_available = False
        self.hidden.save()
        self.qr_code = TestDataFactory.create_qr_code(self.theater, seat='B7')
        self.client = AuthenticatedAPIClient()

    def test_menu_lists_available_products(self):
        response = self.client.get(f'/api/v1/qr/{self.qr_code.token}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['qr_code']['seat'], 'B7')
        self.assertEqual([p['name'] for p in response.data['products']], ['Cola'])
        self.assertFalse(response.data['products'][0]['in_stock'])

    def test_seat_order(self):
        response = self.client.post(f'/api/v1/qr/{self.qr_code.token}/orders/',
                                    {'items': [{'product': self.product.id, 'quantity': 2}],
                                     'customer_name': 'Asha'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        order = Order.objects.get(pk=response.data['id'])
        self.assertEqual(order.source, Order.SOURCE_QR)
        self.assertEqual(order.seat, 'B7')
        self.assertEqual(order.qr_code, self.qr_code)
        self.assertIsNone(order.created_by)

    def test_screen_qr_needs_seat(self):
        screen = TestDataFactory.create_qr_code(self.theater, name='Screen 2', qr_type=QRCode.TYPE_SCREEN, seat='')
        url = f'/api/v1/qr/{screen.token}/orders/'
        items = [{'product': self.product.id, 'quantity': 1}]
        response = self.client.post(url, {'items': items}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post(url, {'items': items, 'seat': 'C3'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['seat'], 'C3')

    def test_inactive_qr_code_not_found(self):
        self.qr_code.is_active = False
        self.qr_code.save()
        response = self.client.get(f'/api/v1/qr/{self.qr_code.token}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
