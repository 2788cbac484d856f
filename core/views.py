"""
API views for the Food Rescue Marketplace.

Views parse HTTP input, delegate to the order service, pricing job and
serializers, and return JSON. Errors are raised as API exceptions and rendered
by core.handlers.marketplace_exception_handler.
"""

import logging

from django.core.paginator import EmptyPage, Paginator
from django.db.models import ProtectedError, Q
from django.shortcuts import get_object_or_404
from django.utils.dateparse import parse_date, parse_datetime
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView

from . import services
from .exceptions import ProductInUse, StoreInUse
from .models import Product, Store
from .permissions import (
    CanManageProduct,
    CanManageStore,
    IsAdminActor,
    IsSellerOrAdmin,
    IsStoreSellerOrAdmin,
)
from .pricing import get_decay_rate, run_price_revaluation
from .serializers import (
    EmailTokenObtainPairSerializer,
    OrderCreateSerializer,
    OrderPaymentStatusSerializer,
    OrderSerializer,
    OrderStatsSerializer,
    OrderStatusUpdateSerializer,
    PriceRevaluationRequestSerializer,
    PriceRevaluationResultSerializer,
    ProductSerializer,
    StoreSerializer,
    UserStatsSerializer,
)

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """
    Get client IP address from request.
    Handles proxy headers for accurate IP detection.
    """
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def parse_int_param(params, name, default):
    """
    Read an integer query parameter.

    Raises:
        ValidationError: If the value is not an integer
    """
    value = params.get(name)
    if value in (None, ''):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError({name: [f'"{value}" is not a valid integer.']})


def parse_date_param(params, name):
    """
    Read a date or datetime query parameter.

    Accepts ISO 8601 dates (2025-01-31) and datetimes (2025-01-31T12:00:00Z).

    Raises:
        ValidationError: If the value cannot be parsed
    """
    value = params.get(name)
    if not value:
        return None
    try:
        parsed = parse_datetime(value) or parse_date(value)
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError({name: [f'"{value}" is not a valid date.']})
    return parsed


# ============================================================================
# Authentication
# ============================================================================

class EmailTokenObtainPairView(TokenObtainPairView):
    """
    Obtain a JWT pair by email and password.
    """
    serializer_class = EmailTokenObtainPairSerializer


class CurrentUserView(APIView):
    """
    API endpoint returning the authenticated user with order statistics.

    GET /api/users/me/
    Headers: Authorization: Bearer <access_token>
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        serializer = UserStatsSerializer(request.user)
        return Response(serializer.data, status=status.HTTP_200_OK)


# ============================================================================
# Store Views
# ============================================================================

class StoreListCreateView(APIView):
    """
    API endpoint for browsing stores and opening new ones.

    Query Parameters (GET):
    - seller_id: Filter by owning seller
    - verified: true or false

    Returns:
    - 200 OK: {'stores': [...], 'count': n}, newest first
    - 201 Created: Created store
    - 400 Bad Request: Invalid query parameters or payload
    - 401/403: Caller may not create stores
    """
    permission_classes = [IsStoreSellerOrAdmin]

    def get(self, request, *args, **kwargs):
        params = request.query_params
        queryset = Store.objects.select_related('seller')

        seller_id = parse_int_param(params, 'seller_id', None)
        if seller_id is not None:
            queryset = queryset.filter(seller_id=seller_id)

        verified = params.get('verified')
        if verified:
            if verified.lower() not in ('true', 'false'):
                raise ValidationError({'verified': ['Must be true or false.']})
            queryset = queryset.filter(is_verified=verified.lower() == 'true')

        stores = queryset.order_by('-created_at', '-id')
        serializer = StoreSerializer(stores, many=True)
        return Response({
            'stores': serializer.data,
            'count': len(serializer.data),
        }, status=status.HTTP_200_OK)

    def post(self, request, *args, **kwargs):
        serializer = StoreSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        store = serializer.save()

        logger.info(f"Store {store.id} opened by seller {request.user.id}: {store.name}")
        return Response(StoreSerializer(store).data, status=status.HTTP_201_CREATED)


class StoreDetailView(APIView):
    """
    API endpoint for a single store.

    GET    /api/stores/<id>/  Public store detail
    PUT    /api/stores/<id>/  Full edit (owner or admin)
    PATCH  /api/stores/<id>/  Partial edit (owner or admin)
    DELETE /api/stores/<id>/  Delete (owner or admin); 409 while it has active listings

    Editing a store does not rewrite the store details already copied onto
    its listings.
    """
    permission_classes = [CanManageStore]

    def get_object(self, pk):
        store = get_object_or_404(Store.objects.select_related('seller'), pk=pk)
        self.check_object_permissions(self.request, store)
        return store

    def get(self, request, pk, *args, **kwargs):
        store = self.get_object(pk)
        return Response(StoreSerializer(store).data, status=status.HTTP_200_OK)

    def put(self, request, pk, *args, **kwargs):
        return self._update(request, pk, partial=False)

    def patch(self, request, pk, *args, **kwargs):
        return self._update(request, pk, partial=True)

    def _update(self, request, pk, partial):
        store = self.get_object(pk)
        serializer = StoreSerializer(
            store,
            data=request.data,
            partial=partial,
            context={'request': request}
        )
        serializer.is_valid(raise_exception=True)
        store = serializer.save()

        logger.info(f"Store {store.id} updated by user {request.user.id}")
        return Response(StoreSerializer(store).data, status=status.HTTP_200_OK)

    def delete(self, request, pk, *args, **kwargs):
        store = self.get_object(pk)
        if Product.objects.active().filter(store=store).exists():
            logger.warning(
                f"User {request.user.id} attempted to delete store {pk} with active listings"
            )
            raise StoreInUse()

        store.delete()
        logger.info(f"Store {pk} deleted by user {request.user.id}")
        return Response(status=status.HTTP_204_NO_CONTENT)


class StoreProductsView(APIView):
    """
    API endpoint listing a store's active, unexpired, in-stock listings.

    GET /api/stores/<id>/products/

    Returns:
    - 200 OK: {'store': {...}, 'products': [...], 'count': n}, newest first
    - 404 Not Found: Unknown store
    """
    permission_classes = [AllowAny]

    def get(self, request, pk, *args, **kwargs):
        store = get_object_or_404(Store.objects.select_related('seller'), pk=pk)
        products = Product.objects.active().filter(store=store).order_by('-created_at', '-id')

        serializer = ProductSerializer(products, many=True)
        return Response({
            'store': StoreSerializer(store).data,
            'products': serializer.data,
            'count': len(serializer.data),
        }, status=status.HTTP_200_OK)


# ============================================================================
# Product Views
# ============================================================================

class ProductListCreateView(APIView):
    """
    API endpoint for browsing active listings and creating new ones.

    GET is public and returns only active, unexpired, in-stock listings.
    POST requires a seller or administrator account.

    Query Parameters (GET):
    - category: Filter by category
    - seller_id: Filter by seller
    - search: Case-insensitive match on name or description
    - ordering: price, -price, discount, expiry, newest (default)
    - page: Page number (default: 1)
    - limit: Page size (default: 20, max: 100)

    Returns:
    - 200 OK: {'products': [...], 'pagination': {...}}
    - 201 Created: Created listing
    - 400 Bad Request: Invalid query parameters or payload
    - 401/403: Caller may not create listings
    """
    permission_classes = [IsSellerOrAdmin]

    VALID_ORDERINGS = {
        'price': ('current_price', 'id'),
        '-price': ('-current_price', 'id'),
        'discount': ('-discount_percentage', 'id'),
        'expiry': ('expiry_date', 'id'),
        'newest': ('-created_at', '-id'),
    }

    def get(self, request, *args, **kwargs):
        params = request.query_params
        queryset = Product.objects.active()

        category = params.get('category')
        if category:
            valid_categories = [choice[0] for choice in Product.CATEGORY_CHOICES]
            if category not in valid_categories:
                raise ValidationError({
                    'category': [f'Invalid category. Must be one of: {", ".join(valid_categories)}']
                })
            queryset = queryset.filter(category=category)

        seller_id = parse_int_param(params, 'seller_id', None)
        if seller_id is not None:
            queryset = queryset.filter(seller_id=seller_id)

        search = params.get('search')
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(description__icontains=search))

        ordering = params.get('ordering') or 'newest'
        if ordering not in self.VALID_ORDERINGS:
            raise ValidationError({
                'ordering': [f'Invalid ordering. Valid options: {", ".join(self.VALID_ORDERINGS)}']
            })
        queryset = queryset.order_by(*self.VALID_ORDERINGS[ordering])

        page_number = parse_int_param(params, 'page', 1)
        limit = parse_int_param(params, 'limit', 20)
        if page_number < 1:
            raise ValidationError({'page': ['Page must be at least 1.']})
        if limit < 1 or limit > 100:
            raise ValidationError({'limit': ['Limit must be between 1 and 100.']})

        paginator = Paginator(queryset, limit)
        try:
            products = paginator.page(page_number).object_list
        except EmptyPage:
            products = []

        serializer = ProductSerializer(products, many=True)
        return Response({
            'products': serializer.data,
            'pagination': {
                'page': page_number,
                'limit': limit,
                'total': paginator.count,
                'pages': paginator.num_pages if paginator.count else 0,
            },
        }, status=status.HTTP_200_OK)

    def post(self, request, *args, **kwargs):
        serializer = ProductSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        product = serializer.save()

        logger.info(
            f"Product {product.id} listed by seller {request.user.id}: "
            f"{product.name} at {product.original_price}"
        )
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)


class ProductDetailView(APIView):
    """
    API endpoint for a single listing.

    GET    /api/products/<id>/  Public listing detail
    PUT    /api/products/<id>/  Full edit (owner or admin)
    PATCH  /api/products/<id>/  Partial edit (owner or admin)
    DELETE /api/products/<id>/  Delete (owner or admin); 409 if ordered before
    """
    permission_classes = [CanManageProduct]

    def get_object(self, pk):
        product = get_object_or_404(Product, pk=pk)
        self.check_object_permissions(self.request, product)
        return product

    def get(self, request, pk, *args, **kwargs):
        product = self.get_object(pk)
        return Response(ProductSerializer(product).data, status=status.HTTP_200_OK)

    def put(self, request, pk, *args, **kwargs):
        return self._update(request, pk, partial=False)

    def patch(self, request, pk, *args, **kwargs):
        return self._update(request, pk, partial=True)

    def _update(self, request, pk, partial):
        product = self.get_object(pk)
        serializer = ProductSerializer(
            product,
            data=request.data,
            partial=partial,
            context={'request': request}
        )
        serializer.is_valid(raise_exception=True)
        product = serializer.save()

        logger.info(f"Product {product.id} updated by user {request.user.id}")
        return Response(ProductSerializer(product).data, status=status.HTTP_200_OK)

    def delete(self, request, pk, *args, **kwargs):
        product = self.get_object(pk)
        try:
            product.delete()
        except ProtectedError:
            logger.warning(
                f"User {request.user.id} attempted to delete product {pk} referenced by orders"
            )
            raise ProductInUse()

        logger.info(f"Product {pk} deleted by user {request.user.id}")
        return Response(status=status.HTTP_204_NO_CONTENT)


class PriceRevaluationView(APIView):
    """
    API endpoint that runs the price revaluation job on demand.

    POST /api/admin/revalue-prices/
    Request body (optional): {"decay_rate": 0.5, "dry_run": false}

    Returns:
    - 200 OK: {"examined": n, "updated": n, "failed": n, "decay_rate": r, "dry_run": bool}
    - 403: Caller is not an administrator
    - 503: Listings could not be loaded
    """
    permission_classes = [IsAuthenticated, IsAdminActor]

    def post(self, request, *args, **kwargs):
        serializer = PriceRevaluationRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        decay_rate = serializer.validated_data.get('decay_rate')
        if decay_rate is None:
            decay_rate = get_decay_rate()
        dry_run = serializer.validated_data['dry_run']

        logger.info(
            f"Price revaluation triggered by user {request.user.id} from {get_client_ip(request)}"
        )
        result = run_price_revaluation(decay_rate=decay_rate, dry_run=dry_run)

        data = PriceRevaluationResultSerializer(result).data
        data['decay_rate'] = decay_rate
        data['dry_run'] = dry_run
        return Response(data, status=status.HTTP_200_OK)


# ============================================================================
# Order Views
# ============================================================================

class OrderListCreateView(APIView):
    """
    API endpoint for listing and placing orders.

    GET /api/orders/
    Query Parameters:
    - status, payment_status: Filters
    - start_date, end_date: Inclusive creation date range
    - page (default 1), limit (default 10, max 100)

    Returns {'orders': [...], 'pagination': {'page', 'limit', 'total', 'pages'}}
    scoped to the caller: buyers see their own orders, sellers see orders
    containing their items, admins see everything.

    POST /api/orders/
    Request body:
    {
        "items": [{"product": 1, "quantity": 2}],
        "delivery_address": "12 Elm St",
        "delivery_instructions": "Leave at the door",
        "payment_method": "wallet"
    }

    Returns 201 with the created order. Errors: 400 (empty or invalid items),
    409 (insufficient stock), 503 (database unavailable).
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        params = request.query_params
        result = services.list_orders(
            request.user,
            status=params.get('status') or None,
            payment_status=params.get('payment_status') or None,
            start_date=parse_date_param(params, 'start_date'),
            end_date=parse_date_param(params, 'end_date'),
            page=parse_int_param(params, 'page', 1),
            limit=parse_int_param(params, 'limit', services.DEFAULT_PAGE_SIZE),
        )

        return Response({
            'orders': OrderSerializer(result['orders'], many=True).data,
            'pagination': result['pagination'],
        }, status=status.HTTP_200_OK)

    def post(self, request, *args, **kwargs):
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        order = services.create_order(
            request.user,
            [dict(item) for item in data['items']],
            delivery_address=data.get('delivery_address'),
            delivery_instructions=data.get('delivery_instructions'),
            payment_method=data.get('payment_method', 'wallet'),
            estimated_delivery=data.get('estimated_delivery'),
        )

        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


class OrderStatsSummaryView(APIView):
    """
    API endpoint for aggregate order statistics over the caller's visible orders.

    GET /api/orders/stats/summary/?start_date=2025-01-01&end_date=2025-01-31
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        stats = services.get_order_stats_summary(
            request.user,
            start_date=parse_date_param(request.query_params, 'start_date'),
            end_date=parse_date_param(request.query_params, 'end_date'),
        )
        return Response(OrderStatsSerializer(stats).data, status=status.HTTP_200_OK)


class OrderDetailView(APIView):
    """
    API endpoint for a single order.

    GET    /api/orders/<order_id>/  Order detail (404 when not visible)
    DELETE /api/orders/<order_id>/  Cancel a pending order (409 otherwise)
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, order_id, *args, **kwargs):
        order = services.get_order(request.user, order_id)
        return Response(OrderSerializer(order).data, status=status.HTTP_200_OK)

    def delete(self, request, order_id, *args, **kwargs):
        order = services.cancel_order(request.user, order_id)
        return Response({
            'detail': 'Order cancelled successfully.',
            'order': OrderSerializer(order).data,
        }, status=status.HTTP_200_OK)


class OrderStatusUpdateView(APIView):
    """
    API endpoint for moving an order through fulfilment.

    PUT /api/orders/<order_id>/status/
    Request body: {"status": "confirmed"}

    Error responses:
    - 400: Unknown status
    - 403: Caller cannot change this order's status
    - 404: Order not found or not visible
    - 409: Transition not allowed from the current status
    """
    permission_classes = [IsAuthenticated]

    def put(self, request, order_id, *args, **kwargs):
        serializer = OrderStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = services.set_order_status(request.user, order_id, serializer.validated_data['status'])
        return Response(OrderSerializer(order).data, status=status.HTTP_200_OK)


class OrderPaymentStatusView(APIView):
    """
    API endpoint for recording an order's payment status.

    PUT /api/orders/<order_id>/payment/
    Request body: {"payment_status": "paid"}
    """
    permission_classes = [IsAuthenticated]

    def put(self, request, order_id, *args, **kwargs):
        serializer = OrderPaymentStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = services.set_payment_status(
            request.user,
            order_id,
            serializer.validated_data['payment_status']
        )
        return Response(OrderSerializer(order).data, status=status.HTTP_200_OK)
