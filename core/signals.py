"""
Django signals for buyer statistics.

Buyer order statistics are accumulated when an order is created, inside the
same transaction as the order insert.
"""

import logging
from django.db import transaction
from django.db.models import F
from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import Order, User

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Order)
def update_buyer_stats_on_order_create(sender, instance, created, **kwargs):
    """
    Signal receiver to increment buyer statistics when an order is placed.

    Increments total_orders, total_spent, items_saved, co2_saved_kg and
    water_saved_liters by the order's totals and sets last_order_date.
    Updates on an existing order (status or payment changes) are ignored.

    The increments are F() expressions applied in one UPDATE, so concurrent
    orders by the same buyer never lose counts. If this signal fails, the
    order creation is rolled back with it.

    Args:
        sender: The Order model class
        instance: The Order instance that was saved
        created: Boolean indicating if this is a new order
        **kwargs: Additional keyword arguments
    """
    if not created or kwargs.get('raw', False):
        return

    try:
        with transaction.atomic():
            User.objects.filter(pk=instance.buyer_id).update(
                total_orders=F('total_orders') + 1,
                total_spent=F('total_spent') + instance.total_amount,
                items_saved=F('items_saved') + instance.items_saved,
                co2_saved_kg=F('co2_saved_kg') + instance.co2_saved_kg,
                water_saved_liters=F('water_saved_liters') + instance.water_saved_liters,
                last_order_date=instance.created_at,
            )

        logger.info(
            f"Updated stats for buyer {instance.buyer_id} after order {instance.order_id}: "
            f"total={instance.total_amount}, items_saved={instance.items_saved}"
        )

    except Exception as e:
        logger.error(
            f"Error updating buyer stats for order {instance.order_id}: {e}",
            exc_info=True
        )
        # Re-raise so the order insert rolls back too
        raise
