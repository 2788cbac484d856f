"""
Shared fixtures for the marketplace test suite.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from core.models import Product, Store

User = get_user_model()


@pytest.fixture
def api_client():
    """Return API client for testing."""
    return APIClient()


def authenticate(client, user):
    """Attach a bearer token for the user to the client."""
    token = RefreshToken.for_user(user).access_token
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
    return client


@pytest.fixture
def buyer(db):
    """Create a buyer for testing."""
    return User.objects.create_user(
        email='buyer@test.com',
        username='buyer',
        password='TestPass123!',
        first_name='Bea',
        last_name='Buyer',
        user_type='buyer'
    )


@pytest.fixture
def other_buyer(db):
    return User.objects.create_user(
        email='buyer2@test.com',
        username='buyer2',
        password='TestPass123!',
        user_type='buyer'
    )


@pytest.fixture
def seller(db):
    """Create a seller for testing."""
    return User.objects.create_user(
        email='seller@test.com',
        username='seller',
        password='TestPass123!',
        first_name='Sam',
        last_name='Seller',
        user_type='seller',
        is_verified=True
    )


@pytest.fixture
def other_seller(db):
    return User.objects.create_user(
        email='seller2@test.com',
        username='seller2',
        password='TestPass123!',
        user_type='seller'
    )


@pytest.fixture
def admin_user(db):
    """Create a marketplace administrator for testing."""
    return User.objects.create_user(
        email='admin@test.com',
        username='admin',
        password='TestPass123!',
        user_type='admin'
    )


@pytest.fixture
def store(seller):
    return Store.objects.create(
        seller=seller,
        name='Corner Bakery',
        address='1 Main St',
        phone='+1-555-123-4567',
        email='bakery@test.com'
    )


@pytest.fixture
def make_product(db):
    """
    Factory for listings.

    Defaults to an active listing created an hour ago that expires in a day.
    """
    def _make_product(seller, **overrides):
        now = timezone.now()
        original_price = overrides.pop('original_price', Decimal('10.00'))
        fields = {
            'seller': seller,
            'seller_name': seller.display_name,
            'store_name': 'Corner Bakery',
            'store_address': '1 Main St',
            'name': 'Sourdough Loaf',
            'category': 'bakery',
            'original_price': original_price,
            'current_price': original_price,
            'created_at': now - timedelta(hours=1),
            'expiry_date': now + timedelta(days=1),
            'quantity_available': 10,
        }
        fields.update(overrides)
        return Product.objects.create(**fields)

    return _make_product


@pytest.fixture
def client_for(db):
    """Factory returning an API client authenticated as the given user."""
    def _client_for(user):
        return authenticate(APIClient(), user)

    return _client_for
