"""
Test suite for the Product model and its catalog operations.

Tests cover:
- Field validation (price, seller role, listing window)
- Discount recomputation on save and on price updates
- Active listing query
- Atomic price updates
- Conditional quantity decrement and sold-out transition
"""

from datetime import timedelta
from decimal import Decimal
from unittest import mock

import pytest
from django.core.exceptions import ValidationError
from django.db.models import QuerySet
from django.utils import timezone

from core.exceptions import InsufficientStock
from core.models import Product, ProductQuerySet, calculate_discount_percentage


# ============================================================================
# Validation
# ============================================================================

@pytest.mark.django_db
class TestProductValidation:

    def test_original_price_must_be_positive(self, seller, make_product):
        with pytest.raises(ValidationError) as exc_info:
            make_product(seller, original_price=Decimal('0.00'))

        assert 'original_price' in exc_info.value.message_dict

    def test_buyer_cannot_own_listing(self, buyer, make_product):
        with pytest.raises(ValidationError) as exc_info:
            make_product(buyer)

        assert 'seller' in exc_info.value.message_dict

    def test_expiry_must_follow_creation(self, seller, make_product):
        now = timezone.now()
        with pytest.raises(ValidationError) as exc_info:
            make_product(seller, created_at=now, expiry_date=now - timedelta(hours=1))

        assert 'expiry_date' in exc_info.value.message_dict

    def test_empty_store_name_rejected(self, seller, make_product):
        with pytest.raises(ValidationError):
            make_product(seller, store_name='   ')


# ============================================================================
# Discount
# ============================================================================

def test_calculate_discount_percentage():
    assert calculate_discount_percentage(Decimal('100.00'), Decimal('77.88')) == 22
    assert calculate_discount_percentage(Decimal('10.00'), Decimal('10.00')) == 0
    assert calculate_discount_percentage(Decimal('8.00'), Decimal('1.00')) == 88
    assert calculate_discount_percentage(Decimal('0'), Decimal('1.00')) is None


@pytest.mark.django_db
def test_discount_recomputed_on_save(seller, make_product):
    product = make_product(seller, original_price=Decimal('20.00'), current_price=Decimal('15.00'))
    assert product.discount_percentage == 25

    product.current_price = Decimal('5.00')
    product.save()
    product.refresh_from_db()

    assert product.discount_percentage == 75


@pytest.mark.django_db
def test_admin_override_above_original_clamps_discount(seller, make_product):
    product = make_product(seller, original_price=Decimal('10.00'), current_price=Decimal('12.00'))

    assert product.discount_percentage == 0


# ============================================================================
# Active listings
# ============================================================================

@pytest.mark.django_db
def test_active_excludes_expired_inactive_and_empty(seller, make_product):
    now = timezone.now()
    live = make_product(seller, name='Live')
    make_product(seller, name='Expired', created_at=now - timedelta(days=2), expiry_date=now - timedelta(days=1))
    make_product(seller, name='Inactive', status='inactive')
    make_product(seller, name='Empty', quantity_available=0)

    assert list(Product.objects.active(now)) == [live]


@pytest.mark.django_db
def test_active_uses_evaluation_instant(seller, make_product):
    now = timezone.now()
    product = make_product(seller, expiry_date=now + timedelta(hours=2))

    assert product in Product.objects.active(now)
    assert product not in Product.objects.active(now + timedelta(hours=3))


@pytest.mark.django_db
def test_listing_expires_at_its_expiry_instant(seller, make_product):
    product = make_product(seller)

    assert not product.is_expired(product.expiry_date - timedelta(microseconds=1))
    assert product.is_expired(product.expiry_date)
    assert not product.is_purchasable(product.expiry_date)
    assert product not in Product.objects.active(product.expiry_date)


# ============================================================================
# Price updates
# ============================================================================

@pytest.mark.django_db
def test_update_price_sets_price_and_discount(seller, make_product):
    product = make_product(seller, original_price=Decimal('100.00'))

    assert Product.objects.update_price(product.pk, Decimal('77.88')) is True

    product.refresh_from_db()
    assert product.current_price == Decimal('77.88')
    assert product.discount_percentage == 22


@pytest.mark.django_db
def test_update_price_uses_stored_original_price(seller, make_product):
    product = make_product(seller, original_price=Decimal('100.00'))
    Product.objects.filter(pk=product.pk).update(original_price=Decimal('50.00'))

    Product.objects.update_price(product.pk, Decimal('25.00'))

    product.refresh_from_db()
    assert product.current_price == Decimal('25.00')
    assert product.discount_percentage == 50


@pytest.mark.django_db
def test_update_price_locks_row_while_reading_original_price(seller, make_product):
    product = make_product(seller)
    lock = QuerySet.select_for_update

    with mock.patch.object(ProductQuerySet, 'select_for_update', autospec=True, side_effect=lock) as locked:
        Product.objects.update_price(product.pk, Decimal('4.00'))

    locked.assert_called_once()


@pytest.mark.django_db
def test_update_price_unknown_listing_returns_false():
    assert Product.objects.update_price(999999, Decimal('1.00')) is False


@pytest.mark.django_db
def test_update_price_leaves_quantity_untouched(seller, make_product):
    product = make_product(seller, quantity_available=7)

    Product.objects.update_price(product.pk, Decimal('3.00'))

    product.refresh_from_db()
    assert product.quantity_available == 7


# ============================================================================
# Quantity decrement
# ============================================================================

@pytest.mark.django_db
class TestDecrementQuantity:

    def test_decrement_reduces_stock(self, seller, make_product):
        product = make_product(seller, quantity_available=5, current_price=Decimal('8.00'))

        remaining = Product.objects.decrement_quantity(product.pk, 2)

        product.refresh_from_db()
        assert remaining == 3
        assert product.quantity_available == 3
        assert product.status == 'active'
        assert product.current_price == Decimal('8.00')

    def test_decrement_to_zero_marks_sold_out(self, seller, make_product):
        product = make_product(seller, quantity_available=2)

        Product.objects.decrement_quantity(product.pk, 2)

        product.refresh_from_db()
        assert product.quantity_available == 0
        assert product.status == 'sold_out'

    def test_decrement_beyond_stock_raises(self, seller, make_product):
        product = make_product(seller, quantity_available=1)

        with pytest.raises(InsufficientStock):
            Product.objects.decrement_quantity(product.pk, 2)

        product.refresh_from_db()
        assert product.quantity_available == 1

    def test_decrement_unknown_listing_raises(self):
        with pytest.raises(Product.DoesNotExist):
            Product.objects.decrement_quantity(999999, 1)

    def test_decrement_requires_positive_amount(self, seller, make_product):
        product = make_product(seller)

        with pytest.raises(ValueError):
            Product.objects.decrement_quantity(product.pk, 0)
