"""
Django admin configuration for the Food Rescue Marketplace.
"""

from django.contrib import admin, messages
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .exceptions import StoreUnavailable
from .models import Order, OrderItem, Product, Store, User
from .pricing import run_price_revaluation


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Custom admin interface for User model.

    Extends Django's UserAdmin with marketplace role and order statistics.
    Statistics are read-only; they only change when orders are placed.
    """

    list_display = [
        'email',
        'username',
        'user_type',
        'is_verified',
        'total_orders',
        'total_spent',
        'is_staff',
        'is_active',
        'created_at',
    ]

    list_filter = [
        'user_type',
        'is_verified',
        'is_staff',
        'is_superuser',
        'is_active',
        'created_at',
    ]

    search_fields = [
        'email',
        'username',
        'first_name',
        'last_name',
    ]

    ordering = ['-created_at']

    fieldsets = (
        (None, {
            'fields': ('username', 'password')
        }),
        (_('Personal Info'), {
            'fields': (
                'first_name',
                'last_name',
                'email',
                'phone_number',
            )
        }),
        (_('Role & Verification'), {
            'fields': ('user_type', 'is_verified')
        }),
        (_('Order Statistics'), {
            'fields': (
                'total_orders',
                'total_spent',
                'items_saved',
                'co2_saved_kg',
                'water_saved_liters',
                'last_order_date',
            ),
        }),
        (_('Permissions'), {
            'fields': (
                'is_active',
                'is_staff',
                'is_superuser',
                'groups',
                'user_permissions',
            ),
            'classes': ('collapse',),
        }),
        (_('Important Dates'), {
            'fields': ('last_login', 'date_joined', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': (
                'username',
                'email',
                'password1',
                'password2',
                'user_type',
            ),
        }),
    )

    readonly_fields = [
        'created_at',
        'updated_at',
        'last_login',
        'date_joined',
        'total_orders',
        'total_spent',
        'items_saved',
        'co2_saved_kg',
        'water_saved_liters',
        'last_order_date',
    ]

    date_hierarchy = 'created_at'

    list_per_page = 25

    def get_readonly_fields(self, request, obj=None):
        if obj:  # Editing an existing object
            return self.readonly_fields
        return []


@admin.register(Store)
class StoreAdmin(admin.ModelAdmin):
    """Admin interface for Store model."""

    list_display = ['name', 'seller', 'address', 'is_verified', 'created_at']
    list_filter = ['is_verified', 'created_at']
    search_fields = ['name', 'address', 'seller__email', 'seller__username']
    readonly_fields = ['created_at', 'updated_at']
    ordering = ['name']
    list_per_page = 25


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """
    Admin interface for Product model.

    Administrators may set current_price directly, including above the
    original price, as a manual override.
    """

    list_display = [
        'name',
        'seller',
        'category',
        'original_price',
        'current_price',
        'discount_percentage',
        'quantity_available',
        'status',
        'expiry_date',
    ]

    list_filter = [
        'status',
        'category',
        'expiry_date',
        'created_at',
    ]

    search_fields = [
        'name',
        'description',
        'store_name',
        'seller__email',
        'seller__username',
    ]

    readonly_fields = ['discount_percentage', 'updated_at']

    ordering = ['-created_at']

    date_hierarchy = 'created_at'

    list_per_page = 25

    actions = ['revalue_all_prices']

    fieldsets = (
        (None, {
            'fields': ('seller', 'seller_name', 'name', 'description', 'category', 'image_url')
        }),
        (_('Store'), {
            'fields': ('store', 'store_name', 'store_address', 'store_phone', 'store_email')
        }),
        (_('Pricing & Stock'), {
            'fields': (
                'original_price',
                'current_price',
                'discount_percentage',
                'quantity_available',
                'status',
            )
        }),
        (_('Lifecycle'), {
            'fields': ('created_at', 'expiry_date', 'updated_at'),
        }),
    )

    @admin.action(description=_('Run price revaluation for all active listings'))
    def revalue_all_prices(self, request, queryset):
        """Run the revaluation job; the selection is ignored."""
        try:
            result = run_price_revaluation()
        except StoreUnavailable:
            self.message_user(request, _('Listings could not be loaded. Try again later.'), messages.ERROR)
            return

        self.message_user(
            request,
            f"Examined {result['examined']}, updated {result['updated']}, failed {result['failed']}.",
            messages.SUCCESS if not result['failed'] else messages.WARNING
        )


class OrderItemInline(admin.TabularInline):
    """Read-only inline for order line-items."""
    model = OrderItem
    extra = 0
    can_delete = False
    fields = ['position', 'product', 'product_name', 'quantity', 'unit_price', 'total_price', 'seller_name', 'store_name']
    readonly_fields = fields
    ordering = ['position']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """Admin interface for Order model."""

    list_display = [
        'order_id',
        'buyer',
        'total_amount',
        'status',
        'payment_status',
        'payment_method',
        'items_saved',
        'created_at',
    ]

    list_filter = [
        'status',
        'payment_status',
        'payment_method',
        'created_at',
    ]

    search_fields = [
        'order_id',
        'buyer_name',
        'buyer_email',
        'buyer__email',
    ]

    readonly_fields = [
        'order_id',
        'buyer',
        'buyer_name',
        'buyer_email',
        'total_amount',
        'items_saved',
        'co2_saved_kg',
        'water_saved_liters',
        'actual_delivery',
        'created_at',
        'updated_at',
    ]

    ordering = ['-created_at']

    date_hierarchy = 'created_at'

    list_per_page = 25

    inlines = [OrderItemInline]

    fieldsets = (
        (None, {
            'fields': ('order_id', 'buyer', 'buyer_name', 'buyer_email')
        }),
        (_('Status'), {
            'fields': ('status', 'payment_status', 'payment_method', 'total_amount')
        }),
        (_('Delivery'), {
            'fields': ('delivery_address', 'delivery_instructions', 'estimated_delivery', 'actual_delivery')
        }),
        (_('Eco Impact'), {
            'fields': ('items_saved', 'co2_saved_kg', 'water_saved_liters'),
        }),
        (_('Timestamps'), {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    def has_delete_permission(self, request, obj=None):
        # Orders are kept as purchase history
        return False
