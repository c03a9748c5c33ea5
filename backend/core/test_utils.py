"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from backend.theaters.models import Theater, TheaterUser
from backend.catalog.models import Category, Product
from backend.orders.models import QRCode
from decimal import Decimal
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        user = User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )
        return user

    @staticmethod
    def create_theater(name=None, code=None, email='canteen@test.com', is_active=True):
        """Create a test theater"""
        if not name:
            name = f'Theater_{TestDataFactory.random_string(6)}'
        if not code:
            code = f'TH_{TestDataFactory.random_string(6).upper()}'
        return Theater.objects.create(
            name=name,
            code=code,
            email=email,
            phone='1234567890',
            is_active=is_active
        )

    @staticmethod
    def add_member(theater, user, role=TheaterUser.ROLE_STAFF, is_active=True):
        """Give a user a role in a theater"""
        return TheaterUser.objects.create(theater=theater, user=user, role=role, is_active=is_active)

    @staticmethod
    def create_category(theater, name=None, description=None):
        """Create a test category"""
        if not name:
            name = f'Category_{TestDataFactory.random_string(6)}'
        return Category.objects.create(
            theater=theater,
            name=name,
            description=description or f'Test category {name}'
        )

    @staticmethod
    def create_product(theater, name=None, sku=None, category=None, base_price=Decimal('100.00'),
                       tax_rate=Decimal('0.00'), gst_type=Product.GST_EXCLUDE, discount_percentage=Decimal('0.00'),
                       track_stock=True, min_stock=0):
        """Create a test product"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if not sku:
            sku = f'SKU_{TestDataFactory.random_string(8).upper()}'
        return Product.objects.create(
            theater=theater,
            name=name,
            sku=sku,
            category=category,
            base_price=base_price,
            tax_rate=tax_rate,
            gst_type=gst_type,
            discount_percentage=discount_percentage,
            track_stock=track_stock,
            min_stock=min_stock
        )

    @staticmethod
    def create_qr_code(theater, name=None, qr_type=QRCode.TYPE_SINGLE, seat='A1', seat_class='Gold'):
        """Create a test seat QR code"""
        if not name:
            name = f'Screen 1 {seat}' if seat else 'Screen 1'
        return QRCode.objects.create(
            theater=theater,
            name=name,
            qr_type=qr_type,
            seat=seat,
            seat_class=seat_class
        )

    @staticmethod
    def create_order(theater, items, user=None, source='pos'):
        """Create an order through the order service; ``items`` are (product, quantity) pairs"""
        from backend.orders.services import create_order
        return create_order(
            theater,
            [{'product': product, 'quantity': quantity} for product, quantity in items],
            source=source,
            user=user
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
