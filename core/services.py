"""
Order operations for the Food Rescue Marketplace.

Every operation takes the resolved actor (a User), runs all-or-nothing inside
a database transaction and raises one of the marketplace API exceptions on
failure. Views call these functions and only translate HTTP input and output.
"""

import logging
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP

from django.core.paginator import EmptyPage, Paginator
from django.db import DatabaseError, transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from .exceptions import (
    EmptyOrder,
    InsufficientStock,
    InvalidTransition,
    OrderNotCancellable,
    StoreUnavailable,
)
from .models import Order, OrderItem, Product, calculate_eco_impact
from .permissions import AccessPolicy

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
RECENT_ORDERS_LIMIT = 5

STATUS_VALUES = [choice[0] for choice in Order.STATUS_CHOICES]
PAYMENT_STATUS_VALUES = [choice[0] for choice in Order.PAYMENT_STATUS_CHOICES]
PAYMENT_METHOD_VALUES = [choice[0] for choice in Order.PAYMENT_METHOD_CHOICES]


# ============================================================================
# Scoping
# ============================================================================

def visible_orders(actor):
    """
    Orders the actor is allowed to see.

    - Buyers see the orders they placed
    - Sellers see orders containing at least one of their line-items, plus
      any order they placed themselves
    - Admins see every order

    Seller scoping uses a subquery rather than a join so aggregates never
    count an order twice.

    Args:
        actor: Authenticated user

    Returns:
        QuerySet: Orders visible to the actor
    """
    role = AccessPolicy.role_of(actor)

    if role == 'admin':
        return Order.objects.all()

    if role == 'seller':
        sold = OrderItem.objects.filter(seller=actor).values('order_id')
        return Order.objects.filter(Q(pk__in=sold) | Q(buyer=actor))

    if role == 'buyer':
        return Order.objects.filter(buyer=actor)

    return Order.objects.none()


def _lookup_order(actor, order_code, action, for_update=False):
    """
    Fetch an order and check the actor may perform an action on it.

    Orders the actor cannot view are reported as missing.

    Raises:
        NotFound: If the order does not exist or is not visible to the actor
        PermissionDenied: If the actor can view the order but not perform the action
    """
    queryset = Order.objects.all()
    if for_update:
        queryset = queryset.select_for_update()

    try:
        order = queryset.get(order_id=order_code)
    except Order.DoesNotExist:
        raise NotFound('Order not found.')

    if not AccessPolicy.allows(actor, 'view', order):
        logger.warning(
            f"User {getattr(actor, 'pk', None)} attempted to {action} order {order_code} without access"
        )
        raise NotFound('Order not found.')

    if not AccessPolicy.allows(actor, action, order):
        logger.warning(
            f"User {actor.pk} ({AccessPolicy.role_of(actor)}) denied {action} on order {order_code}"
        )
        raise PermissionDenied(f'You do not have permission to {action.replace("_", " ")} this order.')

    return order


# ============================================================================
# Creation
# ============================================================================

def _normalize_items(items):
    """
    Validate the requested line-items.

    Returns:
        list: (product_id, quantity) tuples in request order

    Raises:
        EmptyOrder: If no items were given
        ValidationError: If an item is malformed
    """
    if not items:
        raise EmptyOrder()

    normalized = []
    for index, entry in enumerate(items):
        if not isinstance(entry, dict):
            raise ValidationError({'items': [f'Item {index} must be an object.']})

        product = entry.get('product')
        product_id = product.pk if isinstance(product, Product) else product
        if product_id in (None, ''):
            raise ValidationError({'items': [f'Item {index} is missing a product.']})

        quantity = entry.get('quantity')
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError({'items': [f'Item {index} quantity must be a positive integer.']})

        normalized.append((product_id, quantity))

    return normalized


def create_order(actor, items, delivery_address=None, delivery_instructions=None,
                 payment_method='wallet', estimated_delivery=None, now=None):
    """
    Place an order for one or more listings.

    Each line-item captures the listing's current price at this moment.
    Stock is removed from every listing and the buyer's statistics are
    incremented; either everything is committed or nothing is.

    Args:
        actor: Purchasing user
        items: List of {'product': <id or Product>, 'quantity': int}
        delivery_address: Optional delivery address
        delivery_instructions: Optional delivery notes
        payment_method: wallet, card, upi or cash
        estimated_delivery: Optional expected delivery time
        now: Instant used for listing availability checks

    Returns:
        Order: The persisted order with status and payment_status 'pending'

    Raises:
        EmptyOrder: If items is empty
        ValidationError: If an item is malformed or a listing cannot be bought
        InsufficientStock: If a listing lacks the requested quantity
        StoreUnavailable: If the database fails
    """
    normalized = _normalize_items(items)

    if payment_method not in PAYMENT_METHOD_VALUES:
        raise ValidationError({
            'payment_method': [f'Invalid payment method. Must be one of: {", ".join(PAYMENT_METHOD_VALUES)}']
        })

    if now is None:
        now = timezone.now()

    try:
        with transaction.atomic():
            product_ids = sorted({product_id for product_id, _ in normalized})
            products = {
                product.pk: product
                for product in Product.objects.select_for_update().filter(pk__in=product_ids)
            }

            requested = {}
            line_items = []
            for position, (product_id, quantity) in enumerate(normalized):
                product = products.get(product_id)
                if product is None:
                    raise ValidationError({'items': [f'Product {product_id} not found.']})

                if not product.is_purchasable(now):
                    raise ValidationError({'items': [f'Product "{product.name}" is no longer available.']})

                requested[product.pk] = requested.get(product.pk, 0) + quantity
                if requested[product.pk] > product.quantity_available:
                    raise InsufficientStock(
                        f'Only {product.quantity_available} unit(s) of "{product.name}" available.'
                    )

                unit_price = product.current_price
                line_items.append(OrderItem(
                    position=position,
                    product=product,
                    product_name=product.name,
                    quantity=quantity,
                    unit_price=unit_price,
                    total_price=unit_price * quantity,
                    seller_id=product.seller_id,
                    seller_name=product.seller_name,
                    store_name=product.store_name,
                ))

            total_amount = sum((item.total_price for item in line_items), Decimal('0.00'))
            eco_impact = calculate_eco_impact(item.quantity for item in line_items)

            order = Order(
                buyer=actor,
                buyer_name=actor.display_name,
                buyer_email=actor.email,
                total_amount=total_amount,
                payment_method=payment_method,
                delivery_address=delivery_address or '',
                delivery_instructions=delivery_instructions or '',
                estimated_delivery=estimated_delivery,
                **eco_impact
            )
            # Buyer statistics are incremented by the post_save signal
            order.save()

            for item in line_items:
                Product.objects.decrement_quantity(item.product_id, item.quantity)
                item.order = order
                item.save()

            if order.total_amount != sum(item.total_price for item in line_items):
                raise ValidationError({'total_amount': ['Order total does not match its line items.']})

    except DatabaseError as e:
        logger.error(f"Database error creating order for user {actor.pk}: {e}", exc_info=True)
        raise StoreUnavailable() from e

    logger.info(
        f"Order {order.order_id} created by user {actor.pk}: "
        f"{len(line_items)} item(s), total={order.total_amount}"
    )
    return order


# ============================================================================
# Queries
# ============================================================================

def _apply_date_range(queryset, start_date=None, end_date=None):
    """Restrict a queryset to orders created within an inclusive date range."""
    if start_date is not None:
        if isinstance(start_date, datetime):
            queryset = queryset.filter(created_at__gte=start_date)
        elif isinstance(start_date, date):
            queryset = queryset.filter(created_at__date__gte=start_date)
        else:
            raise ValidationError({'start_date': ['Invalid date.']})

    if end_date is not None:
        if isinstance(end_date, datetime):
            queryset = queryset.filter(created_at__lte=end_date)
        elif isinstance(end_date, date):
            queryset = queryset.filter(created_at__date__lte=end_date)
        else:
            raise ValidationError({'end_date': ['Invalid date.']})

    return queryset


def list_orders(actor, status=None, payment_status=None, start_date=None, end_date=None,
                page=1, limit=DEFAULT_PAGE_SIZE):
    """
    List the actor's visible orders, newest first, one page at a time.

    Args:
        actor: Authenticated user
        status: Optional status filter
        payment_status: Optional payment status filter
        start_date: Optional inclusive lower bound on created_at
        end_date: Optional inclusive upper bound on created_at
        page: Page number, starting at 1
        limit: Page size (1 to 100)

    Returns:
        dict: {'orders': [Order, ...], 'pagination': {'page', 'limit', 'total', 'pages'}}

    Raises:
        ValidationError: If a filter or paging value is invalid
    """
    if status and status not in STATUS_VALUES:
        raise ValidationError({'status': [f'Invalid status. Must be one of: {", ".join(STATUS_VALUES)}']})

    if payment_status and payment_status not in PAYMENT_STATUS_VALUES:
        raise ValidationError({
            'payment_status': [f'Invalid payment status. Must be one of: {", ".join(PAYMENT_STATUS_VALUES)}']
        })

    if page < 1:
        raise ValidationError({'page': ['Page must be at least 1.']})

    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError({'limit': [f'Limit must be between 1 and {MAX_PAGE_SIZE}.']})

    queryset = visible_orders(actor)
    if status:
        queryset = queryset.filter(status=status)
    if payment_status:
        queryset = queryset.filter(payment_status=payment_status)
    queryset = _apply_date_range(queryset, start_date, end_date)

    paginator = Paginator(
        queryset.order_by('-created_at', '-id').prefetch_related('items'),
        limit
    )
    try:
        orders = list(paginator.page(page).object_list)
    except EmptyPage:
        orders = []

    return {
        'orders': orders,
        'pagination': {
            'page': page,
            'limit': limit,
            'total': paginator.count,
            'pages': paginator.num_pages if paginator.count else 0,
        },
    }


def get_order(actor, order_code):
    """
    Fetch a single order visible to the actor.

    Raises:
        NotFound: If the order is missing or not visible to the actor
    """
    return _lookup_order(actor, order_code, 'view')


def get_order_stats_summary(actor, start_date=None, end_date=None):
    """
    Aggregate statistics over the actor's visible orders.

    Revenue sums whole order totals, including line-items sold by other
    sellers in orders a seller participates in.

    Args:
        actor: Authenticated user
        start_date: Optional inclusive lower bound on created_at
        end_date: Optional inclusive upper bound on created_at

    Returns:
        dict: 'summary', 'status_distribution' and 'recent_orders'
    """
    queryset = _apply_date_range(visible_orders(actor), start_date, end_date)

    totals = queryset.aggregate(
        total_orders=Count('id'),
        total_revenue=Sum('total_amount'),
        total_items_saved=Sum('items_saved'),
        total_co2_saved=Sum('co2_saved_kg'),
        total_water_saved=Sum('water_saved_liters'),
    )

    total_orders = totals['total_orders'] or 0
    total_revenue = totals['total_revenue'] or Decimal('0.00')
    if total_orders:
        avg_order_value = (total_revenue / total_orders).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    else:
        avg_order_value = Decimal('0.00')

    status_distribution = [
        {'status': row['status'], 'count': row['count']}
        for row in queryset.order_by('status').values('status').annotate(count=Count('id'))
    ]

    recent_orders = list(
        queryset.order_by('-created_at', '-id').values(
            'order_id', 'total_amount', 'status', 'created_at'
        )[:RECENT_ORDERS_LIMIT]
    )

    return {
        'summary': {
            'total_orders': total_orders,
            'total_revenue': total_revenue,
            'total_items_saved': totals['total_items_saved'] or 0,
            'total_co2_saved': totals['total_co2_saved'] or Decimal('0.00'),
            'total_water_saved': totals['total_water_saved'] or Decimal('0.00'),
            'avg_order_value': avg_order_value,
        },
        'status_distribution': status_distribution,
        'recent_orders': recent_orders,
    }


# ============================================================================
# Mutations
# ============================================================================

def set_order_status(actor, order_code, new_status, now=None):
    """
    Move an order one step through its fulfilment state machine.

    Args:
        actor: Authenticated user
        order_code: Human-readable order code
        new_status: Target status
        now: Timestamp for actual_delivery when delivering

    Returns:
        Order: The updated order

    Raises:
        ValidationError: If new_status is not a known status
        NotFound: If the order is missing or not visible to the actor
        PermissionDenied: If the actor may not change the status
        InvalidTransition: If the transition is not allowed
    """
    if new_status not in STATUS_VALUES:
        raise ValidationError({'status': [f'Invalid status. Must be one of: {", ".join(STATUS_VALUES)}']})

    try:
        with transaction.atomic():
            order = _lookup_order(actor, order_code, 'change_status', for_update=True)
            old_status = order.status

            is_valid, error_message = order.can_transition_to(new_status)
            if not is_valid:
                raise InvalidTransition(error_message)

            order.apply_status(new_status, now=now)
            order.save(update_fields=['status', 'actual_delivery', 'updated_at'])
    except DatabaseError as e:
        logger.error(f"Database error updating status of order {order_code}: {e}", exc_info=True)
        raise StoreUnavailable() from e

    logger.info(f"Order {order_code} status changed from {old_status} to {new_status} by user {actor.pk}")
    return order


def set_payment_status(actor, order_code, new_status):
    """
    Record an order's payment status.

    Any of pending, paid, failed and refunded may be set in any order.

    Raises:
        ValidationError: If new_status is not a known payment status
        NotFound: If the order is missing or not visible to the actor
        PermissionDenied: If the actor may not change the payment status
    """
    if new_status not in PAYMENT_STATUS_VALUES:
        raise ValidationError({
            'payment_status': [f'Invalid payment status. Must be one of: {", ".join(PAYMENT_STATUS_VALUES)}']
        })

    try:
        with transaction.atomic():
            order = _lookup_order(actor, order_code, 'change_payment', for_update=True)
            old_status = order.payment_status
            order.payment_status = new_status
            order.save(update_fields=['payment_status', 'updated_at'])
    except DatabaseError as e:
        logger.error(f"Database error updating payment of order {order_code}: {e}", exc_info=True)
        raise StoreUnavailable() from e

    logger.info(
        f"Order {order_code} payment status changed from {old_status} to {new_status} by user {actor.pk}"
    )
    return order


def cancel_order(actor, order_code):
    """
    Cancel a pending order.

    Stock taken by the order is not returned to the listings.

    Raises:
        NotFound: If the order is missing or not visible to the actor
        PermissionDenied: If the actor may not cancel the order
        OrderNotCancellable: If the order is no longer pending
    """
    try:
        with transaction.atomic():
            order = _lookup_order(actor, order_code, 'cancel', for_update=True)

            if order.status != 'pending':
                raise OrderNotCancellable(
                    f'Only pending orders can be cancelled; order is {order.status}.'
                )

            order.status = 'cancelled'
            order.save(update_fields=['status', 'updated_at'])
    except DatabaseError as e:
        logger.error(f"Database error cancelling order {order_code}: {e}", exc_info=True)
        raise StoreUnavailable() from e

    logger.info(f"Order {order_code} cancelled by user {actor.pk}")
    return order
