"""
Test suite for the time-decay pricing function.

Tests cover:
- No decay at the creation instant
- Reference scenario halfway through the lifespan
- Floor price at and after expiry
- Degenerate lifespans
- Monotonic decrease and bounds
- Clamping of evaluation instants before creation
"""

from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest

from core.pricing import FLOOR_PRICE, calculate_decayed_price

T0 = datetime(2025, 1, 1, tzinfo=dt_timezone.utc)
T1 = T0 + timedelta(days=10)


def test_price_at_creation_equals_original():
    """No time has elapsed, so the listing keeps its original price."""
    price = calculate_decayed_price(Decimal('100.00'), T0, T1, decay_rate=0.5, now=T0)

    assert price == Decimal('100.00')


def test_price_halfway_through_lifespan():
    """100 * e^(-0.5 * 0.5) = 77.8800..."""
    price = calculate_decayed_price(Decimal('100.00'), T0, T1, decay_rate=0.5, now=T0 + timedelta(days=5))

    assert price == Decimal('77.88')


def test_price_is_rounded_half_up_to_cents():
    price = calculate_decayed_price(Decimal('19.99'), T0, T1, decay_rate=0.5, now=T0 + timedelta(days=2))

    assert price == price.quantize(Decimal('0.01'))
    # 19.99 * e^(-0.1) = 18.0877...
    assert price == Decimal('18.09')


@pytest.mark.parametrize('offset', [timedelta(0), timedelta(seconds=1), timedelta(days=30)])
def test_price_at_or_after_expiry_is_floor(offset):
    price = calculate_decayed_price(Decimal('100.00'), T0, T1, decay_rate=0.5, now=T1 + offset)

    assert price == FLOOR_PRICE == Decimal('0.01')


@pytest.mark.parametrize('expiry', [T0, T0 - timedelta(hours=1)])
def test_non_positive_lifespan_is_floor(expiry):
    price = calculate_decayed_price(Decimal('100.00'), T0, expiry, decay_rate=0.5, now=T0)

    assert price == Decimal('0.01')


def test_tiny_price_never_drops_below_floor():
    """0.01 decayed rounds to 0.00 and is lifted back to the floor."""
    price = calculate_decayed_price(Decimal('0.01'), T0, T1, decay_rate=5.0, now=T0 + timedelta(days=9))

    assert price == Decimal('0.01')


def test_zero_decay_rate_keeps_original_until_expiry():
    price = calculate_decayed_price(Decimal('42.50'), T0, T1, decay_rate=0.0, now=T0 + timedelta(days=9))

    assert price == Decimal('42.50')


def test_evaluation_before_creation_is_clamped():
    """A clock running behind the listing's creation time never raises the price."""
    price = calculate_decayed_price(Decimal('100.00'), T0, T1, decay_rate=0.5, now=T0 - timedelta(days=3))

    assert price == Decimal('100.00')


@pytest.mark.parametrize('original', [Decimal('0.50'), Decimal('9.99'), Decimal('100.00'), Decimal('2500.00')])
@pytest.mark.parametrize('decay_rate', [0.1, 0.5, 2.0])
def test_price_is_non_increasing_and_bounded(original, decay_rate):
    previous = None
    for hour in range(0, 24 * 10 + 1, 6):
        price = calculate_decayed_price(original, T0, T1, decay_rate=decay_rate, now=T0 + timedelta(hours=hour))

        assert Decimal('0.01') <= price <= original
        if previous is not None:
            assert price <= previous
        previous = price


def test_returns_decimal():
    price = calculate_decayed_price(Decimal('10.00'), T0, T1, now=T0 + timedelta(days=1))

    assert isinstance(price, Decimal)
