"""
Test suite for the listing endpoints.

Tests cover:
- Public browsing of active listings with filters, search and ordering
- Listing creation by sellers and administrators
- Listing creation denied to buyers and anonymous callers
- Edits and deletes by the owner and by administrators
- Deleting a listing that has been ordered
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework import status

from core import services
from core.models import Product

LIST_URL = '/api/products/'


def detail_url(product):
    return f'/api/products/{product.id}/'


@pytest.fixture
def new_listing():
    return {
        'name': 'Croissants (box of 6)',
        'description': 'Baked this morning',
        'category': 'bakery',
        'original_price': '12.00',
        'expiry_date': (timezone.now() + timedelta(hours=12)).isoformat(),
        'quantity_available': 4,
        'store_name': 'Corner Bakery',
        'store_address': '1 Main St',
    }


# ============================================================================
# Browsing
# ============================================================================

@pytest.mark.django_db
class TestProductList:

    def test_lists_only_active_listings(self, api_client, seller, make_product):
        now = timezone.now()
        live = make_product(seller, name='Live')
        make_product(seller, name='Expired', created_at=now - timedelta(days=2), expiry_date=now - timedelta(hours=1))
        make_product(seller, name='Hidden', status='inactive')
        make_product(seller, name='Gone', quantity_available=0)

        response = api_client.get(LIST_URL)

        assert response.status_code == status.HTTP_200_OK
        assert [p['id'] for p in response.data['products']] == [live.id]
        assert response.data['pagination']['total'] == 1

    def test_filter_by_category(self, api_client, seller, make_product):
        make_product(seller, name='Bagel', category='bakery')
        milk = make_product(seller, name='Milk', category='dairy')

        response = api_client.get(LIST_URL, {'category': 'dairy'})

        assert [p['id'] for p in response.data['products']] == [milk.id]

    def test_filter_by_seller(self, api_client, seller, other_seller, make_product):
        make_product(seller)
        theirs = make_product(other_seller)

        response = api_client.get(LIST_URL, {'seller_id': other_seller.id})

        assert [p['id'] for p in response.data['products']] == [theirs.id]

    def test_search_matches_name_and_description(self, api_client, seller, make_product):
        soup = make_product(seller, name='Tomato Soup')
        salad = make_product(seller, name='Salad', description='With cherry tomatoes')
        make_product(seller, name='Rye Bread')

        response = api_client.get(LIST_URL, {'search': 'tomato'})

        assert {p['id'] for p in response.data['products']} == {soup.id, salad.id}

    def test_order_by_price(self, api_client, seller, make_product):
        dear = make_product(seller, original_price=Decimal('20.00'))
        cheap = make_product(seller, original_price=Decimal('3.00'))

        ascending = api_client.get(LIST_URL, {'ordering': 'price'})
        descending = api_client.get(LIST_URL, {'ordering': '-price'})

        assert [p['id'] for p in ascending.data['products']] == [cheap.id, dear.id]
        assert [p['id'] for p in descending.data['products']] == [dear.id, cheap.id]

    def test_order_by_expiry(self, api_client, seller, make_product):
        now = timezone.now()
        later = make_product(seller, expiry_date=now + timedelta(days=3))
        sooner = make_product(seller, expiry_date=now + timedelta(hours=3))

        response = api_client.get(LIST_URL, {'ordering': 'expiry'})

        assert [p['id'] for p in response.data['products']] == [sooner.id, later.id]

    def test_order_by_discount(self, api_client, seller, make_product):
        small = make_product(seller, original_price=Decimal('10.00'), current_price=Decimal('9.00'))
        big = make_product(seller, original_price=Decimal('10.00'), current_price=Decimal('4.00'))

        response = api_client.get(LIST_URL, {'ordering': 'discount'})

        assert [p['id'] for p in response.data['products']] == [big.id, small.id]

    def test_pagination(self, api_client, seller, make_product):
        for index in range(5):
            make_product(seller, name=f'Loaf {index}')

        response = api_client.get(LIST_URL, {'limit': 2, 'page': 3})

        assert len(response.data['products']) == 1
        assert response.data['pagination'] == {'page': 3, 'limit': 2, 'total': 5, 'pages': 3}

    @pytest.mark.parametrize('params', [
        {'category': 'electronics'},
        {'ordering': 'popularity'},
        {'limit': 500},
        {'seller_id': 'abc'},
    ])
    def test_invalid_query_rejected(self, api_client, params):
        response = api_client.get(LIST_URL, params)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'invalid'

    def test_detail_is_public(self, api_client, seller, make_product):
        product = make_product(seller, original_price=Decimal('8.00'), current_price=Decimal('6.00'))

        response = api_client.get(detail_url(product))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['current_price'] == '6.00'
        assert response.data['discount_percentage'] == 25
        assert response.data['seller_name'] == 'Sam Seller'

    def test_missing_detail_is_not_found(self, api_client):
        response = api_client.get('/api/products/999999/')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['error'] == 'not_found'


# ============================================================================
# Creation
# ============================================================================

@pytest.mark.django_db
class TestProductCreate:

    def test_seller_creates_listing(self, client_for, seller, new_listing):
        response = client_for(seller).post(LIST_URL, new_listing, format='json')

        assert response.status_code == status.HTTP_201_CREATED, response.data
        assert response.data['seller'] == seller.id
        assert response.data['seller_name'] == 'Sam Seller'
        assert response.data['current_price'] == '12.00'
        assert response.data['discount_percentage'] == 0
        assert response.data['status'] == 'active'

    def test_listing_under_own_store_copies_store_details(self, client_for, seller, store, new_listing):
        del new_listing['store_name']
        del new_listing['store_address']
        new_listing['store'] = store.id

        response = client_for(seller).post(LIST_URL, new_listing, format='json')

        assert response.status_code == status.HTTP_201_CREATED, response.data
        product = Product.objects.get(pk=response.data['id'])
        assert product.store == store
        assert product.store_phone == '+1-555-123-4567'
        assert product.store_email == 'bakery@test.com'

    def test_cannot_list_under_another_sellers_store(self, client_for, other_seller, store, new_listing):
        new_listing['store'] = store.id

        response = client_for(other_seller).post(LIST_URL, new_listing, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_admin_creates_listing(self, client_for, admin_user, new_listing):
        response = client_for(admin_user).post(LIST_URL, new_listing, format='json')

        assert response.status_code == status.HTTP_201_CREATED

    def test_buyer_is_forbidden(self, client_for, buyer, new_listing):
        response = client_for(buyer).post(LIST_URL, new_listing, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert Product.objects.count() == 0

    def test_anonymous_is_unauthorized(self, api_client, new_listing):
        response = api_client.post(LIST_URL, new_listing, format='json')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.parametrize('field, value', [
        ('original_price', '0.00'),
        ('name', '   '),
        ('current_price', '15.00'),
        ('expiry_date', '2000-01-01T00:00:00Z'),
    ])
    def test_invalid_listing_rejected(self, client_for, seller, new_listing, field, value):
        new_listing[field] = value

        response = client_for(seller).post(LIST_URL, new_listing, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'invalid'

    def test_store_details_required(self, client_for, seller, new_listing):
        del new_listing['store_address']

        response = client_for(seller).post(LIST_URL, new_listing, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'store' in response.data['detail']


# ============================================================================
# Edit and delete
# ============================================================================

@pytest.mark.django_db
class TestProductEditDelete:

    def test_owner_updates_listing(self, client_for, seller, make_product):
        product = make_product(seller)

        response = client_for(seller).patch(
            detail_url(product),
            {'current_price': '6.00', 'quantity_available': 3},
            format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['current_price'] == '6.00'
        assert response.data['discount_percentage'] == 40
        assert response.data['quantity_available'] == 3

    def test_admin_overrides_price(self, client_for, admin_user, seller, make_product):
        product = make_product(seller)

        response = client_for(admin_user).patch(detail_url(product), {'current_price': '2.50'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        product.refresh_from_db()
        assert product.current_price == Decimal('2.50')

    def test_other_seller_cannot_update(self, client_for, other_seller, seller, make_product):
        product = make_product(seller)

        response = client_for(other_seller).patch(detail_url(product), {'name': 'Mine now'}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN
        product.refresh_from_db()
        assert product.name == 'Sourdough Loaf'

    def test_owner_can_hide_listing(self, client_for, seller, make_product):
        product = make_product(seller)

        client_for(seller).patch(detail_url(product), {'status': 'inactive'}, format='json')

        assert not Product.objects.active().filter(pk=product.pk).exists()

    def test_owner_deletes_unordered_listing(self, client_for, seller, make_product):
        product = make_product(seller)

        response = client_for(seller).delete(detail_url(product))

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not Product.objects.filter(pk=product.pk).exists()

    def test_ordered_listing_cannot_be_deleted(self, client_for, seller, buyer, make_product):
        product = make_product(seller)
        services.create_order(buyer, [{'product': product.id, 'quantity': 1}])

        response = client_for(seller).delete(detail_url(product))

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['error'] == 'product_in_use'
        assert Product.objects.filter(pk=product.pk).exists()

    def test_anonymous_cannot_delete(self, api_client, seller, make_product):
        product = make_product(seller)

        response = api_client.delete(detail_url(product))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
