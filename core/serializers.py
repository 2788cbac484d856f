"""
Serializers for authentication, stores, listings and orders.
"""

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .models import Order, OrderItem, Product, Store

User = get_user_model()


class EmailTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Token serializer that authenticates with email instead of username.
    """
    username_field = 'email'

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if 'username' in self.fields:
            del self.fields['username']
        if 'email' not in self.fields:
            self.fields['email'] = serializers.EmailField()


# ============================================================================
# User Serializers
# ============================================================================

class UserStatsSerializer(serializers.ModelSerializer):
    """
    Current user's profile with accumulated order statistics.

    All fields are read-only; statistics only change when orders are placed.
    """

    role = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = [
            'id',
            'username',
            'email',
            'first_name',
            'last_name',
            'phone_number',
            'user_type',
            'role',
            'is_verified',
            'total_orders',
            'total_spent',
            'items_saved',
            'co2_saved_kg',
            'water_saved_liters',
            'last_order_date',
            'created_at',
        ]
        read_only_fields = fields


# ============================================================================
# Store Serializers
# ============================================================================

class StoreSerializer(serializers.ModelSerializer):
    """
    Serializer for a seller's store.

    The owning seller is taken from the authenticated user on creation and
    cannot be changed afterwards. Verification is managed by administrators
    outside the API.
    """

    seller_name = serializers.CharField(source='seller.display_name', read_only=True)

    class Meta:
        model = Store
        fields = [
            'id',
            'seller',
            'seller_name',
            'name',
            'description',
            'address',
            'phone',
            'email',
            'is_verified',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'seller', 'seller_name', 'is_verified', 'created_at', 'updated_at']

    def validate_name(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError("Store name cannot be empty or whitespace only.")
        return value.strip()

    def validate_address(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError("Store address cannot be empty or whitespace only.")
        return value.strip()

    def create(self, validated_data):
        request = self.context.get('request')
        if not request or not request.user:
            raise serializers.ValidationError("Authentication required to create a store.")

        validated_data['seller'] = request.user
        # Store.save() calls full_clean()
        return Store.objects.create(**validated_data)


# ============================================================================
# Product Serializers
# ============================================================================

class ProductSerializer(serializers.ModelSerializer):
    """
    Serializer for reading, creating and editing listings.

    Security features:
    - Auto-populates seller and seller_name from the authenticated user
    - Copies store display fields from the referenced store
    - Rejects a current price above the original price
    - Requires the expiry date to be in the future on creation

    Fields:
    - name, description, category, image_url: Descriptive fields
    - original_price: Required on creation, must be positive
    - current_price: Optional, defaults to original_price
    - expiry_date: Required on creation
    - quantity_available: Units for sale
    - store: Optional id of one of the seller's stores
    - store_name, store_address, store_phone, store_email: Required when
      no store is given

    Read-only fields:
    - id, seller, seller_name, discount_percentage, status (on creation),
      created_at, updated_at
    """

    store = serializers.PrimaryKeyRelatedField(
        queryset=Store.objects.all(),
        required=False,
        allow_null=True
    )

    class Meta:
        model = Product
        fields = [
            'id',
            'name',
            'description',
            'category',
            'image_url',
            'original_price',
            'current_price',
            'discount_percentage',
            'expiry_date',
            'quantity_available',
            'status',
            'seller',
            'seller_name',
            'store',
            'store_name',
            'store_address',
            'store_phone',
            'store_email',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'seller', 'seller_name', 'discount_percentage', 'created_at', 'updated_at']
        extra_kwargs = {
            'current_price': {'required': False},
            'store_name': {'required': False},
            'store_address': {'required': False},
        }

    def validate_name(self, value):
        """
        Validate the name is not empty.

        Raises:
            ValidationError: If the name is blank
        """
        if not value or not value.strip():
            raise serializers.ValidationError(
                "Product name cannot be empty or whitespace only."
            )
        return value.strip()

    def validate_original_price(self, value):
        if value <= 0:
            raise serializers.ValidationError("Original price must be greater than 0.")
        return value

    def validate_store(self, value):
        """
        Ensure sellers only list under their own stores.

        Raises:
            ValidationError: If the store belongs to another seller
        """
        request = self.context.get('request')
        if value is None or request is None:
            return value
        if value.seller_id != request.user.pk and not request.user.is_marketplace_admin():
            raise serializers.ValidationError("You can only list products under your own store.")
        return value

    def validate(self, attrs):
        """
        Cross-field validation.

        Ensures:
        - current_price does not exceed original_price
        - a new listing expires in the future
        - store details are known, either from the store or from the payload
        """
        original_price = attrs.get('original_price', getattr(self.instance, 'original_price', None))
        current_price = attrs.get('current_price', getattr(self.instance, 'current_price', None))

        if original_price is not None and current_price is not None and current_price > original_price:
            raise serializers.ValidationError({
                'current_price': 'Current price cannot exceed the original price.'
            })

        if self.instance is None:
            expiry_date = attrs.get('expiry_date')
            if expiry_date is None:
                raise serializers.ValidationError({'expiry_date': 'This field is required.'})
            if expiry_date <= timezone.now():
                raise serializers.ValidationError({'expiry_date': 'Expiry date must be in the future.'})

            store = attrs.get('store')
            if store is None and not (attrs.get('store_name') and attrs.get('store_address')):
                raise serializers.ValidationError({
                    'store': 'Provide a store or the store name and address.'
                })

        return attrs

    def _copy_store_fields(self, validated_data):
        store = validated_data.get('store')
        if store is not None:
            validated_data['store_name'] = store.name
            validated_data['store_address'] = store.address
            validated_data['store_phone'] = store.phone
            validated_data['store_email'] = store.email
        return validated_data

    def create(self, validated_data):
        """
        Create a listing owned by the authenticated seller.

        Args:
            validated_data: Validated data from serializer

        Returns:
            Product: Created listing
        """
        request = self.context.get('request')
        if not request or not request.user:
            raise serializers.ValidationError("Authentication required to create a listing.")

        validated_data['seller'] = request.user
        validated_data['seller_name'] = request.user.display_name
        validated_data.setdefault('current_price', validated_data['original_price'])
        validated_data['status'] = 'active'
        self._copy_store_fields(validated_data)

        # Product.save() calls full_clean()
        return Product.objects.create(**validated_data)

    def update(self, instance, validated_data):
        self._copy_store_fields(validated_data)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()
        return instance


# ============================================================================
# Order Serializers
# ============================================================================

class OrderItemSerializer(serializers.ModelSerializer):
    """Read-only snapshot of an order line-item."""

    class Meta:
        model = OrderItem
        fields = [
            'product',
            'product_name',
            'quantity',
            'unit_price',
            'total_price',
            'seller',
            'seller_name',
            'store_name',
        ]
        read_only_fields = fields


class EcoImpactSerializer(serializers.Serializer):
    items_saved = serializers.IntegerField()
    co2_saved_kg = serializers.DecimalField(max_digits=12, decimal_places=2)
    water_saved_liters = serializers.DecimalField(max_digits=14, decimal_places=2)


class OrderSerializer(serializers.ModelSerializer):
    """
    Full order representation returned by every order endpoint.

    Line-items are listed in the order they were placed.
    """

    items = OrderItemSerializer(many=True, read_only=True)
    eco_impact = EcoImpactSerializer(read_only=True)

    class Meta:
        model = Order
        fields = [
            'id',
            'order_id',
            'buyer',
            'buyer_name',
            'buyer_email',
            'items',
            'total_amount',
            'status',
            'payment_status',
            'payment_method',
            'eco_impact',
            'delivery_address',
            'delivery_instructions',
            'estimated_delivery',
            'actual_delivery',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class OrderItemInputSerializer(serializers.Serializer):
    product = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)


class OrderCreateSerializer(serializers.Serializer):
    """
    Input for placing an order.

    An empty item list passes validation here and is rejected by the order
    service with the 'empty_order' error.
    """

    items = OrderItemInputSerializer(many=True, allow_empty=True)
    delivery_address = serializers.CharField(max_length=300, required=False, allow_blank=True)
    delivery_instructions = serializers.CharField(required=False, allow_blank=True)
    payment_method = serializers.ChoiceField(
        choices=Order.PAYMENT_METHOD_CHOICES,
        required=False,
        default='wallet'
    )
    estimated_delivery = serializers.DateTimeField(required=False, allow_null=True)


class OrderStatusUpdateSerializer(serializers.Serializer):
    """Input for a fulfilment status change."""

    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES)


class OrderPaymentStatusSerializer(serializers.Serializer):
    """Input for a payment status change."""

    payment_status = serializers.ChoiceField(choices=Order.PAYMENT_STATUS_CHOICES)


# ============================================================================
# Statistics Serializers
# ============================================================================

class RecentOrderSerializer(serializers.Serializer):
    order_id = serializers.CharField()
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    status = serializers.CharField()
    created_at = serializers.DateTimeField()


class StatusCountSerializer(serializers.Serializer):
    status = serializers.CharField()
    count = serializers.IntegerField()


class OrderSummarySerializer(serializers.Serializer):
    total_orders = serializers.IntegerField()
    total_revenue = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_items_saved = serializers.IntegerField()
    total_co2_saved = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_water_saved = serializers.DecimalField(max_digits=16, decimal_places=2)
    avg_order_value = serializers.DecimalField(max_digits=14, decimal_places=2)


class OrderStatsSerializer(serializers.Serializer):
    """Aggregate order statistics for the current user."""

    summary = OrderSummarySerializer()
    status_distribution = StatusCountSerializer(many=True)
    recent_orders = RecentOrderSerializer(many=True)


class PriceRevaluationResultSerializer(serializers.Serializer):
    examined = serializers.IntegerField()
    updated = serializers.IntegerField()
    failed = serializers.IntegerField()


class PriceRevaluationRequestSerializer(serializers.Serializer):
    """Optional overrides for an on-demand revaluation run."""

    decay_rate = serializers.FloatField(min_value=0, required=False, allow_null=True)
    dry_run = serializers.BooleanField(required=False, default=False)
