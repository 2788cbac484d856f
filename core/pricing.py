"""
Time-decay pricing for perishable listings.

Prices fall exponentially from the original price as a listing approaches
its expiry date:

    price = original_price * e^(-decay_rate * elapsed / lifespan)

rounded half-up to cents and never below the floor price of 0.01.
The revaluation job applies this to every active listing once a day.
"""

import logging
import math
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone

from .exceptions import StoreUnavailable
from .models import Product

logger = logging.getLogger(__name__)

FLOOR_PRICE = Decimal('0.01')
DEFAULT_DECAY_RATE = 0.5

CENTS = Decimal('0.01')


def get_decay_rate():
    """Decay constant configured for the deployment."""
    return float(getattr(settings, 'PRICE_DECAY_RATE', DEFAULT_DECAY_RATE))


def calculate_decayed_price(original_price, created_at, expiry_date,
                            decay_rate=DEFAULT_DECAY_RATE, now=None):
    """
    Compute the time-decayed price of a listing.

    An evaluation instant before created_at is treated as created_at, so the
    result never exceeds original_price.

    Args:
        original_price: Price at listing time (> 0)
        created_at: Start of the decay window
        expiry_date: End of the decay window
        decay_rate: Exponential decay constant (>= 0)
        now: Evaluation instant (defaults to timezone.now())

    Returns:
        Decimal: Price with two decimal places, at least 0.01
    """
    if now is None:
        now = timezone.now()

    lifespan = (expiry_date - created_at).total_seconds()
    elapsed = max((now - created_at).total_seconds(), 0.0)

    if lifespan <= 0 or elapsed >= lifespan:
        return FLOOR_PRICE

    ratio = elapsed / lifespan
    candidate = Decimal(str(original_price)) * Decimal(math.exp(-decay_rate * ratio))
    price = candidate.quantize(CENTS, rounding=ROUND_HALF_UP)

    return max(FLOOR_PRICE, price)


def run_price_revaluation(now=None, decay_rate=None, dry_run=False):
    """
    Recompute and persist the current price of every active listing.

    Each listing is handled independently: a failure to persist one listing
    is logged and counted, and the run moves on. Running twice with the same
    now performs no writes the second time.

    Args:
        now: Evaluation instant shared by the whole run (defaults to timezone.now())
        decay_rate: Decay constant (defaults to settings.PRICE_DECAY_RATE)
        dry_run: Compute prices without writing them

    Returns:
        dict: Counts of listings 'examined', 'updated' and 'failed'

    Raises:
        StoreUnavailable: If the active listings cannot be read
    """
    if now is None:
        now = timezone.now()
    if decay_rate is None:
        decay_rate = get_decay_rate()

    logger.info(f"Starting price revaluation at {now.isoformat()} (decay_rate={decay_rate}, dry_run={dry_run})")

    try:
        listings = list(
            Product.objects.active(now).only(
                'id', 'original_price', 'current_price', 'created_at', 'expiry_date'
            )
        )
    except DatabaseError as e:
        logger.error(f"Price revaluation aborted, could not load active listings: {e}", exc_info=True)
        raise StoreUnavailable() from e

    examined = 0
    updated = 0
    failed = 0

    for listing in listings:
        examined += 1
        new_price = calculate_decayed_price(
            listing.original_price,
            listing.created_at,
            listing.expiry_date,
            decay_rate=decay_rate,
            now=now,
        )

        if new_price == listing.current_price:
            continue

        if dry_run:
            logger.info(f"[DRY-RUN] Product {listing.id}: {listing.current_price} -> {new_price}")
            updated += 1
            continue

        try:
            # Savepoint per listing keeps an enclosing transaction usable after a failure
            with transaction.atomic():
                repriced = Product.objects.update_price(listing.id, new_price)
            if repriced:
                updated += 1
                logger.debug(f"Product {listing.id} repriced: {listing.current_price} -> {new_price}")
        except DatabaseError as e:
            failed += 1
            logger.error(f"Failed to update price for product {listing.id}: {e}", exc_info=True)

    logger.info(
        f"Price revaluation finished: examined={examined}, updated={updated}, failed={failed}"
    )

    return {
        'examined': examined,
        'updated': updated,
        'failed': failed,
    }
