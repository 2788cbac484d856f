"""
Test suite for order fulfilment, payment and cancellation endpoints.

Tests cover:
- Participating sellers moving orders through fulfilment
- Invalid transitions and unknown statuses
- Authorization: buyers, unrelated sellers and administrators
- Payment status updates
- Cancellation of pending orders only
"""

from decimal import Decimal

import pytest
from rest_framework import status

from core import services
from core.exceptions import InvalidTransition, OrderNotCancellable
from core.models import Order, Product


@pytest.fixture
def order(buyer, seller, make_product):
    """A pending order from buyer for two units of seller's listing."""
    product = make_product(seller, original_price=Decimal('12.50'), quantity_available=4)
    return services.create_order(buyer, [{'product': product.id, 'quantity': 2}])


def status_url(order):
    return f'/api/orders/{order.order_id}/status/'


def payment_url(order):
    return f'/api/orders/{order.order_id}/payment/'


def detail_url(order):
    return f'/api/orders/{order.order_id}/'


# ============================================================================
# Fulfilment status
# ============================================================================

@pytest.mark.django_db
class TestOrderStatusUpdate:

    def test_seller_walks_order_to_delivery(self, client_for, seller, order):
        client = client_for(seller)

        for new_status in ['confirmed', 'preparing', 'ready', 'delivered']:
            response = client.put(status_url(order), {'status': new_status}, format='json')
            assert response.status_code == status.HTTP_200_OK, response.data
            assert response.data['status'] == new_status

        order.refresh_from_db()
        assert order.status == 'delivered'
        assert order.actual_delivery is not None
        assert response.data['actual_delivery'] is not None

    def test_skipping_a_step_is_conflict(self, client_for, seller, order):
        response = client_for(seller).put(status_url(order), {'status': 'ready'}, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['error'] == 'invalid_transition'
        order.refresh_from_db()
        assert order.status == 'pending'

    def test_delivered_order_cannot_change(self, client_for, seller, order):
        Order.objects.filter(pk=order.pk).update(status='delivered')

        response = client_for(seller).put(status_url(order), {'status': 'cancelled'}, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert 'delivered' in str(response.data['detail'])

    def test_unknown_status_is_bad_request(self, client_for, seller, order):
        response = client_for(seller).put(status_url(order), {'status': 'shipped'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'invalid'

    def test_buyer_cannot_change_status(self, client_for, buyer, order):
        response = client_for(buyer).put(status_url(order), {'status': 'confirmed'}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['error'] == 'permission_denied'

    def test_unrelated_seller_sees_not_found(self, client_for, other_seller, order):
        response = client_for(other_seller).put(status_url(order), {'status': 'confirmed'}, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['error'] == 'not_found'

    def test_admin_can_change_any_order(self, client_for, admin_user, order):
        response = client_for(admin_user).put(status_url(order), {'status': 'confirmed'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'confirmed'

    def test_missing_order_is_not_found(self, client_for, seller):
        response = client_for(seller).put(
            '/api/orders/ORD-0000000000000-MISSING00/status/',
            {'status': 'confirmed'},
            format='json'
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_requires_authentication(self, api_client, order):
        response = api_client.put(status_url(order), {'status': 'confirmed'}, format='json')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
def test_set_order_status_service_raises_invalid_transition(seller, order):
    with pytest.raises(InvalidTransition):
        services.set_order_status(seller, order.order_id, 'pending')


# ============================================================================
# Payment status
# ============================================================================

@pytest.mark.django_db
class TestPaymentStatusUpdate:

    def test_seller_records_payment(self, client_for, seller, order):
        response = client_for(seller).put(payment_url(order), {'payment_status': 'paid'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['payment_status'] == 'paid'
        order.refresh_from_db()
        assert order.payment_status == 'paid'
        assert order.status == 'pending'

    def test_payment_status_can_move_freely(self, client_for, admin_user, order):
        client = client_for(admin_user)

        for new_status in ['paid', 'refunded', 'failed', 'pending']:
            response = client.put(payment_url(order), {'payment_status': new_status}, format='json')
            assert response.status_code == status.HTTP_200_OK

    def test_buyer_cannot_record_payment(self, client_for, buyer, order):
        response = client_for(buyer).put(payment_url(order), {'payment_status': 'paid'}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_unknown_payment_status_is_bad_request(self, client_for, seller, order):
        response = client_for(seller).put(payment_url(order), {'payment_status': 'bounced'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST


# ============================================================================
# Cancellation
# ============================================================================

@pytest.mark.django_db
class TestOrderCancellation:

    def test_buyer_cancels_pending_order(self, client_for, buyer, order):
        response = client_for(buyer).delete(detail_url(order))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['detail'] == 'Order cancelled successfully.'
        assert response.data['order']['status'] == 'cancelled'
        order.refresh_from_db()
        assert order.status == 'cancelled'

    def test_participating_seller_can_cancel(self, client_for, seller, order):
        response = client_for(seller).delete(detail_url(order))

        assert response.status_code == status.HTTP_200_OK

    def test_cancel_does_not_restore_stock(self, client_for, buyer, order):
        product_id = order.items.get().product_id

        client_for(buyer).delete(detail_url(order))

        assert Product.objects.get(pk=product_id).quantity_available == 2

    def test_confirmed_order_is_not_cancellable(self, client_for, buyer, seller, order):
        services.set_order_status(seller, order.order_id, 'confirmed')

        response = client_for(buyer).delete(detail_url(order))

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['error'] == 'not_cancellable'
        order.refresh_from_db()
        assert order.status == 'confirmed'

    def test_other_buyer_sees_not_found(self, client_for, other_buyer, order):
        response = client_for(other_buyer).delete(detail_url(order))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        order.refresh_from_db()
        assert order.status == 'pending'

    def test_cancelled_order_cannot_be_cancelled_again(self, buyer, order):
        services.cancel_order(buyer, order.order_id)

        with pytest.raises(OrderNotCancellable):
            services.cancel_order(buyer, order.order_id)
