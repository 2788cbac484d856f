"""
Models for the Food Rescue Marketplace.

- User: buyers, sellers and admins, with per-buyer order statistics
- Store: a seller's shop front
- Product: a perishable listing whose price decays towards expiry
- Order / OrderItem: a purchase with immutable price snapshots
"""

import secrets
import time
from decimal import Decimal, ROUND_HALF_UP

from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models, transaction
from django.db.models import F
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from .exceptions import InsufficientStock
from .validators import validate_phone_number, validate_listing_window

# Width of denormalized user names on listings, orders and line-items
DISPLAY_NAME_MAX_LENGTH = 150


class User(AbstractUser):
    """
    Custom User model extending Django's AbstractUser.

    Additional fields:
    - email: Required, unique email address
    - phone_number: Optional phone number with validation
    - user_type: 'buyer', 'seller' or 'admin'
    - is_verified: Seller verification status
    - total_orders, total_spent, items_saved, co2_saved_kg,
      water_saved_liters, last_order_date: order statistics accumulated
      once per placed order
    - created_at: Account creation timestamp
    - updated_at: Last update timestamp
    """

    USER_TYPE_CHOICES = [
        ('buyer', 'Buyer'),
        ('seller', 'Seller'),
        ('admin', 'Administrator'),
    ]

    # Override email to make it required and unique
    email = models.EmailField(
        _('email address'),
        unique=True,
        blank=False,
        null=False,
        error_messages={
            'unique': _('A user with that email already exists.'),
        },
        help_text=_('Required. Enter a valid email address.')
    )

    phone_number = models.CharField(
        _('phone number'),
        max_length=20,
        blank=True,
        default='',
        validators=[validate_phone_number],
        help_text=_('Optional. Enter phone number in international format.')
    )

    user_type = models.CharField(
        _('user type'),
        max_length=10,
        choices=USER_TYPE_CHOICES,
        default='buyer',
        help_text=_('Whether the account buys, sells or administers the marketplace.')
    )

    is_verified = models.BooleanField(
        _('verified status'),
        default=False,
        help_text=_('Indicates whether a seller has been verified.')
    )

    total_orders = models.PositiveIntegerField(
        _('total orders'),
        default=0,
        help_text=_('Number of orders placed.')
    )

    total_spent = models.DecimalField(
        _('total spent'),
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text=_('Sum of all order totals.')
    )

    items_saved = models.PositiveIntegerField(
        _('items saved'),
        default=0,
        help_text=_('Number of items rescued across all orders.')
    )

    co2_saved_kg = models.DecimalField(
        _('CO2 saved (kg)'),
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text=_('Estimated CO2 emissions avoided.')
    )

    water_saved_liters = models.DecimalField(
        _('water saved (liters)'),
        max_digits=14,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text=_('Estimated water usage avoided.')
    )

    last_order_date = models.DateTimeField(
        _('last order date'),
        null=True,
        blank=True,
        help_text=_('Timestamp of the most recent order.')
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
        help_text=_('Timestamp when the account was created.')
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
        help_text=_('Timestamp when the account was last updated.')
    )

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['email'], name='core_user_email_7ec3d2_idx'),
            models.Index(fields=['user_type'], name='core_user_user_ty_1b6a1e_idx'),
            models.Index(fields=['is_verified'], name='core_user_is_veri_2d8c54_idx'),
        ]

    def __str__(self):
        """Return email as string representation."""
        return self.email or self.username

    @property
    def role(self):
        """
        Resolve the marketplace role used for access decisions.

        Superusers always act as administrators.

        Returns:
            str: 'buyer', 'seller' or 'admin'
        """
        if self.is_superuser:
            return 'admin'
        return self.user_type

    def is_buyer(self):
        """Return True if the account acts as a buyer."""
        return self.role == 'buyer'

    def is_seller(self):
        """Return True if the account acts as a seller."""
        return self.role == 'seller'

    def is_marketplace_admin(self):
        """Return True if the account acts as an administrator."""
        return self.role == 'admin'

    @property
    def display_name(self):
        """Full name if set, otherwise the username, cut to DISPLAY_NAME_MAX_LENGTH."""
        return (self.get_full_name() or self.username)[:DISPLAY_NAME_MAX_LENGTH]

    def clean(self):
        """
        Validate model fields.

        Ensures:
        - Email is provided and lowercase for case-insensitive uniqueness
        - User type is provided

        Raises:
            ValidationError: If validation fails
        """
        super().clean()

        if self.email:
            self.email = self.email.lower()

        if not self.email:
            raise ValidationError({
                'email': _('Email address is required.')
            })

        if not self.user_type:
            raise ValidationError({
                'user_type': _('User type is required.')
            })

    def save(self, *args, **kwargs):
        """Normalize email to lowercase before saving."""
        if self.email:
            self.email = self.email.lower()
        super().save(*args, **kwargs)


class Store(models.Model):
    """
    A seller's shop front.

    Listings copy the store's display fields when they are created so that
    later store edits do not rewrite existing listings.
    """

    seller = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='stores',
        help_text=_('Seller operating this store')
    )

    name = models.CharField(
        _('name'),
        max_length=100,
        help_text=_('Store name shown to buyers')
    )

    description = models.TextField(
        _('description'),
        max_length=500,
        blank=True,
        default=''
    )

    address = models.CharField(
        _('address'),
        max_length=300,
        help_text=_('Pickup address of the store')
    )

    phone = models.CharField(
        _('phone'),
        max_length=20,
        blank=True,
        default='',
        validators=[validate_phone_number]
    )

    email = models.EmailField(
        _('email'),
        blank=True,
        default=''
    )

    is_verified = models.BooleanField(
        _('verified'),
        default=False
    )

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('store')
        verbose_name_plural = _('stores')
        ordering = ['name']
        indexes = [
            models.Index(fields=['seller'], name='core_store_seller__4b1e0a_idx'),
            models.Index(fields=['is_verified'], name='core_store_is_veri_9c0f3e_idx'),
        ]

    def __str__(self):
        return self.name

    def clean(self):
        """
        Validate model fields.

        Raises:
            ValidationError: If the owner is not a seller or fields are empty
        """
        super().clean()

        if self.seller_id and self.seller and self.seller.is_buyer():
            raise ValidationError({
                'seller': _('Only sellers can operate a store.')
            })

        if not self.name or not self.name.strip():
            raise ValidationError({
                'name': _('Store name cannot be empty.')
            })

        if not self.address or not self.address.strip():
            raise ValidationError({
                'address': _('Store address cannot be empty.')
            })

        if self.email:
            self.email = self.email.lower()

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


def calculate_discount_percentage(original_price, current_price):
    """
    Percentage off the original price, rounded to a whole number.

    Args:
        original_price: Listing price at creation
        current_price: Price being charged now

    Returns:
        int or None: Discount in percent, None when original_price is not positive
    """
    if original_price is None or current_price is None or original_price <= 0:
        return None
    ratio = (Decimal(original_price) - Decimal(current_price)) / Decimal(original_price)
    return int((ratio * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


class ProductQuerySet(models.QuerySet):
    """Queries over listings."""

    def active(self, now=None):
        """
        Listings that can currently be bought.

        A listing is active when its status is 'active', it has not expired
        and it has stock left. No particular ordering is implied.

        Args:
            now: Evaluation instant (defaults to timezone.now())

        Returns:
            QuerySet: Active listings
        """
        if now is None:
            now = timezone.now()
        return self.filter(
            status='active',
            expiry_date__gt=now,
            quantity_available__gt=0
        )

    def for_seller(self, seller):
        return self.filter(seller=seller)


class ProductManager(models.Manager.from_queryset(ProductQuerySet)):
    """
    Catalog store operations.

    Quantity is decremented with a single UPDATE statement. A price update
    locks the listing row only while it reads original_price and writes the
    new price and discount.
    """

    def update_price(self, pk, new_price):
        """
        Atomically set a listing's current price and its discount.

        The row is locked while original_price is read, so the discount is
        always computed against the original_price stored alongside it.
        Last writer wins: concurrent price edits are not version-checked.

        Args:
            pk: Listing primary key
            new_price: New current price

        Returns:
            bool: True if a listing was updated
        """
        new_price = Decimal(new_price).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
        with transaction.atomic():
            original_price = (
                self.select_for_update()
                .filter(pk=pk)
                .values_list('original_price', flat=True)
                .first()
            )
            if original_price is None:
                return False

            fields = {'current_price': new_price, 'updated_at': timezone.now()}
            discount = calculate_discount_percentage(original_price, new_price)
            if discount is not None:
                fields['discount_percentage'] = max(0, min(100, discount))

            return self.filter(pk=pk).update(**fields) > 0

    def decrement_quantity(self, pk, amount):
        """
        Atomically remove stock from a listing.

        The decrement only applies when enough stock remains, so two
        concurrent purchases can never drive quantity below zero. A listing
        whose stock reaches zero is marked 'sold_out'. Price is untouched.

        Args:
            pk: Listing primary key
            amount: Units to remove (must be >= 1)

        Returns:
            int: Remaining quantity

        Raises:
            ValueError: If amount is not positive
            Product.DoesNotExist: If the listing does not exist
            InsufficientStock: If the listing holds fewer than amount units
        """
        if amount < 1:
            raise ValueError('Quantity to decrement must be at least 1.')

        updated = self.filter(pk=pk, quantity_available__gte=amount).update(
            quantity_available=F('quantity_available') - amount,
            updated_at=timezone.now()
        )
        if not updated:
            available = self.filter(pk=pk).values_list('quantity_available', flat=True).first()
            if available is None:
                raise self.model.DoesNotExist(f'Product {pk} does not exist.')
            raise InsufficientStock(
                f'Only {available} unit(s) of product {pk} available, {amount} requested.'
            )

        self.filter(pk=pk, quantity_available=0, status='active').update(status='sold_out')
        return self.filter(pk=pk).values_list('quantity_available', flat=True).first()


class Product(models.Model):
    """
    Perishable listing offered by a seller.

    Fields:
    - seller / seller_name: Owning seller (name denormalized for display)
    - store and store_*: Store the item is picked up from (display fields copied)
    - name, description, category, image_url: Descriptive fields
    - original_price: Price at listing time (must be > 0)
    - current_price: Price charged now, lowered over time by the revaluation job
    - discount_percentage: Derived from the two prices on every save
    - created_at: Start of the price decay window
    - expiry_date: End of the price decay window
    - quantity_available: Units left to sell
    - status: active, inactive, sold_out or expired
    """

    CATEGORY_CHOICES = [
        ('dairy', 'Dairy'),
        ('bakery', 'Bakery'),
        ('meat', 'Meat'),
        ('produce', 'Produce'),
        ('pantry', 'Pantry'),
        ('frozen', 'Frozen'),
        ('beverages', 'Beverages'),
        ('other', 'Other'),
    ]

    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('sold_out', 'Sold Out'),
        ('expired', 'Expired'),
    ]

    seller = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='products',
        help_text=_('Seller offering this listing')
    )

    seller_name = models.CharField(
        _('seller name'),
        max_length=DISPLAY_NAME_MAX_LENGTH,
        help_text=_('Seller display name at listing time')
    )

    store = models.ForeignKey(
        Store,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='products',
        help_text=_('Store the listing is sold from')
    )

    store_name = models.CharField(_('store name'), max_length=100)
    store_address = models.CharField(_('store address'), max_length=300)
    store_phone = models.CharField(_('store phone'), max_length=20, blank=True, default='')
    store_email = models.EmailField(_('store email'), blank=True, default='')

    name = models.CharField(
        _('name'),
        max_length=100,
        help_text=_('Name of the product')
    )

    description = models.TextField(
        _('description'),
        max_length=500,
        blank=True,
        default=''
    )

    category = models.CharField(
        _('category'),
        max_length=20,
        choices=CATEGORY_CHOICES,
        default='other'
    )

    image_url = models.URLField(
        _('image URL'),
        max_length=500,
        blank=True,
        default=''
    )

    original_price = models.DecimalField(
        _('original price'),
        max_digits=10,
        decimal_places=2,
        help_text=_('Price when the listing was created')
    )

    current_price = models.DecimalField(
        _('current price'),
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text=_('Price charged now')
    )

    discount_percentage = models.PositiveSmallIntegerField(
        _('discount percentage'),
        default=0,
        validators=[MaxValueValidator(100)],
        help_text=_('Derived from original and current price')
    )

    created_at = models.DateTimeField(
        _('created at'),
        default=timezone.now,
        help_text=_('Start of the price decay window')
    )

    expiry_date = models.DateTimeField(
        _('expiry date'),
        help_text=_('End of the price decay window')
    )

    quantity_available = models.PositiveIntegerField(
        _('quantity available'),
        default=0
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default='active'
    )

    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    objects = ProductManager()

    class Meta:
        verbose_name = _('product')
        verbose_name_plural = _('products')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['category', 'status'], name='core_produc_categor_5e2a7b_idx'),
            models.Index(fields=['expiry_date'], name='core_produc_expiry__8d1c4f_idx'),
            models.Index(fields=['-discount_percentage'], name='core_produc_discoun_3a9e62_idx'),
            models.Index(fields=['-created_at'], name='core_produc_created_6f4b10_idx'),
            models.Index(fields=['seller'], name='core_produc_seller__0c7d95_idx'),
        ]

    def __str__(self):
        return self.name

    def clean(self):
        """
        Validate model fields.

        Ensures:
        - Seller is not a buyer account
        - Name and store display fields are not empty
        - Original price is greater than 0

        Raises:
            ValidationError: If validation fails
        """
        super().clean()

        if self.seller_id and self.seller and self.seller.is_buyer():
            raise ValidationError({
                'seller': _('Only sellers can create listings.')
            })

        if not self.name or not self.name.strip():
            raise ValidationError({
                'name': _('Product name cannot be empty.')
            })

        if self.original_price is not None and self.original_price <= 0:
            raise ValidationError({
                'original_price': _('Original price must be greater than 0.')
            })

        if not self.store_name or not self.store_name.strip():
            raise ValidationError({
                'store_name': _('Store name cannot be empty.')
            })

        if not self.store_address or not self.store_address.strip():
            raise ValidationError({
                'store_address': _('Store address cannot be empty.')
            })

        validate_listing_window(self.created_at, self.expiry_date)

    def save(self, *args, **kwargs):
        """
        Recompute the discount, validate and save.

        Args:
            *args: Positional arguments
            **kwargs: Keyword arguments
        """
        discount = calculate_discount_percentage(self.original_price, self.current_price)
        if discount is not None:
            self.discount_percentage = max(0, min(100, discount))
            update_fields = kwargs.get('update_fields')
            if update_fields is not None and 'current_price' in update_fields:
                kwargs['update_fields'] = set(update_fields) | {'discount_percentage'}

        self.full_clean()
        super().save(*args, **kwargs)

    def is_expired(self, now=None):
        """Return True from the expiry instant onwards."""
        if now is None:
            now = timezone.now()
        return now >= self.expiry_date

    def is_purchasable(self, now=None):
        """
        Check whether the listing can be added to an order.

        Returns:
            bool: True if active, unexpired and in stock
        """
        return (
            self.status == 'active'
            and not self.is_expired(now)
            and self.quantity_available > 0
        )


# ============================================================================
# Orders
# ============================================================================

ORDER_CODE_ALPHABET = '0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ'

# Per-unit eco-impact estimates, applied uniformly across categories.
CO2_SAVED_KG_PER_ITEM = Decimal('0.2')
WATER_SAVED_LITERS_PER_ITEM = Decimal('40')


def generate_order_code():
    """
    Build a human-readable order code.

    Format: ORD-<epoch milliseconds>-<9 uppercase base36 characters>.
    Uniqueness comes from the timestamp plus randomness; the unique index
    on Order.order_id is the store-level guarantee.
    """
    suffix = ''.join(secrets.choice(ORDER_CODE_ALPHABET) for _ in range(9))
    return f'ORD-{int(time.time() * 1000)}-{suffix}'


def calculate_eco_impact(quantities):
    """
    Eco-impact of a set of line-item quantities.

    Args:
        quantities: Iterable of line-item quantities

    Returns:
        dict: items_saved, co2_saved_kg, water_saved_liters
    """
    items_saved = sum(quantities)
    return {
        'items_saved': items_saved,
        'co2_saved_kg': CO2_SAVED_KG_PER_ITEM * items_saved,
        'water_saved_liters': WATER_SAVED_LITERS_PER_ITEM * items_saved,
    }


class Order(models.Model):
    """
    A buyer's purchase of one or more listings.

    Fields:
    - order_id: Human-readable code generated on first save
    - buyer / buyer_name / buyer_email: Purchasing user (denormalized)
    - total_amount: Sum of line totals, fixed at creation
    - status: Fulfilment state machine
    - payment_status: Payment state, independent of status
    - payment_method: wallet, card, upi or cash
    - items_saved, co2_saved_kg, water_saved_liters: Eco-impact, fixed at creation
    - delivery_address, delivery_instructions: Optional free text
    - estimated_delivery / actual_delivery: actual_delivery is stamped on delivery
    """

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('confirmed', 'Confirmed'),
        ('preparing', 'Preparing'),
        ('ready', 'Ready'),
        ('delivered', 'Delivered'),
        ('cancelled', 'Cancelled'),
    ]

    PAYMENT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('paid', 'Paid'),
        ('failed', 'Failed'),
        ('refunded', 'Refunded'),
    ]

    PAYMENT_METHOD_CHOICES = [
        ('wallet', 'Wallet'),
        ('card', 'Card'),
        ('upi', 'UPI'),
        ('cash', 'Cash'),
    ]

    # Valid state transitions for fulfilment status
    VALID_TRANSITIONS = {
        'pending': ['confirmed', 'cancelled'],
        'confirmed': ['preparing'],
        'preparing': ['ready'],
        'ready': ['delivered'],
        'delivered': [],  # Terminal state
        'cancelled': [],  # Terminal state
    }

    TERMINAL_STATUSES = ('delivered', 'cancelled')

    order_id = models.CharField(
        _('order code'),
        max_length=40,
        unique=True,
        editable=False,
        help_text=_('Human-readable order reference')
    )

    buyer = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name='orders',
        help_text=_('User who placed the order')
    )

    buyer_name = models.CharField(_('buyer name'), max_length=DISPLAY_NAME_MAX_LENGTH)
    buyer_email = models.EmailField(_('buyer email'))

    total_amount = models.DecimalField(
        _('total amount'),
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default='pending'
    )

    payment_status = models.CharField(
        _('payment status'),
        max_length=20,
        choices=PAYMENT_STATUS_CHOICES,
        default='pending'
    )

    payment_method = models.CharField(
        _('payment method'),
        max_length=20,
        choices=PAYMENT_METHOD_CHOICES,
        default='wallet'
    )

    delivery_address = models.CharField(
        _('delivery address'),
        max_length=300,
        blank=True,
        default=''
    )

    delivery_instructions = models.TextField(
        _('delivery instructions'),
        blank=True,
        default=''
    )

    estimated_delivery = models.DateTimeField(
        _('estimated delivery'),
        null=True,
        blank=True
    )

    actual_delivery = models.DateTimeField(
        _('actual delivery'),
        null=True,
        blank=True,
        help_text=_('Set when the order is delivered')
    )

    items_saved = models.PositiveIntegerField(_('items saved'), default=0)

    co2_saved_kg = models.DecimalField(
        _('CO2 saved (kg)'),
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00')
    )

    water_saved_liters = models.DecimalField(
        _('water saved (liters)'),
        max_digits=14,
        decimal_places=2,
        default=Decimal('0.00')
    )

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('order')
        verbose_name_plural = _('orders')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['buyer', '-created_at'], name='core_order_buyer_i_2f6a8c_idx'),
            models.Index(fields=['status'], name='core_order_status_7b3e19_idx'),
            models.Index(fields=['payment_status'], name='core_order_payment_c4d057_idx'),
        ]

    def __str__(self):
        return self.order_id or f'Order {self.pk}'

    @property
    def eco_impact(self):
        """Eco-impact metrics as a single mapping."""
        return {
            'items_saved': self.items_saved,
            'co2_saved_kg': self.co2_saved_kg,
            'water_saved_liters': self.water_saved_liters,
        }

    def seller_ids(self):
        """Ids of every seller contributing at least one line-item."""
        return set(self.items.values_list('seller_id', flat=True))

    def clean(self):
        """
        Validate model fields.

        Raises:
            ValidationError: If the total is negative or delivery is stamped early
        """
        super().clean()

        if self.total_amount is not None and self.total_amount < 0:
            raise ValidationError({
                'total_amount': _('Total amount cannot be negative.')
            })

        if self.actual_delivery and self.status != 'delivered':
            raise ValidationError({
                'actual_delivery': _('Only delivered orders have a delivery date.')
            })

    def can_transition_to(self, new_status):
        """
        Validate if the order can move to a new fulfilment status.

        Valid transitions:
        - pending -> confirmed
        - pending -> cancelled
        - confirmed -> preparing
        - preparing -> ready
        - ready -> delivered
        - delivered, cancelled -> (terminal states)

        Args:
            new_status: Target status

        Returns:
            tuple: (is_valid: bool, error_message: str or None)
        """
        current_status = self.status

        if new_status not in self.VALID_TRANSITIONS:
            return False, f'Invalid status "{new_status}".'

        if current_status == new_status:
            return False, f'Order is already {current_status}.'

        if current_status == 'delivered':
            return False, 'Cannot modify a delivered order.'

        if current_status == 'cancelled':
            return False, 'Cannot modify a cancelled order.'

        if new_status == 'cancelled':
            return False, f'Only pending orders can be cancelled; order is {current_status}.'

        if new_status not in self.VALID_TRANSITIONS.get(current_status, []):
            return False, f'Invalid status transition from {current_status} to {new_status}.'

        return True, None

    def apply_status(self, new_status, now=None):
        """
        Move the order to a new status after validating the transition.

        Delivery stamps actual_delivery. The caller saves the order.

        Args:
            new_status: Target status
            now: Timestamp used for actual_delivery (defaults to timezone.now())

        Raises:
            ValidationError: If the transition is not allowed
        """
        is_valid, error_message = self.can_transition_to(new_status)
        if not is_valid:
            raise ValidationError({'status': error_message})

        self.status = new_status
        if new_status == 'delivered':
            self.actual_delivery = now or timezone.now()

    def save(self, *args, **kwargs):
        """
        Assign an order code on first save, validate and save.

        Args:
            *args: Positional arguments
            **kwargs: Keyword arguments
        """
        if not self.order_id:
            self.order_id = generate_order_code()
        self.full_clean()
        super().save(*args, **kwargs)


class OrderItem(models.Model):
    """
    Immutable snapshot of a listing captured when an order is placed.

    Later price changes on the listing never touch the snapshot.
    """

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='items'
    )

    position = models.PositiveSmallIntegerField(
        _('position'),
        default=0,
        help_text=_('Order of the line within the order')
    )

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name='order_items'
    )

    product_name = models.CharField(_('product name'), max_length=100)

    quantity = models.PositiveIntegerField(
        _('quantity'),
        validators=[MinValueValidator(1)]
    )

    unit_price = models.DecimalField(
        _('unit price'),
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )

    total_price = models.DecimalField(
        _('total price'),
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )

    seller = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name='sold_items'
    )

    seller_name = models.CharField(_('seller name'), max_length=DISPLAY_NAME_MAX_LENGTH)
    store_name = models.CharField(_('store name'), max_length=100)

    class Meta:
        verbose_name = _('order item')
        verbose_name_plural = _('order items')
        ordering = ['order', 'position']
        indexes = [
            models.Index(fields=['seller'], name='core_orderi_seller__8a51f3_idx'),
            models.Index(fields=['product'], name='core_orderi_product_e92b7d_idx'),
        ]

    def __str__(self):
        return f'{self.quantity} x {self.product_name}'

    def clean(self):
        """
        Validate the line total.

        Raises:
            ValidationError: If total_price differs from quantity x unit_price
        """
        super().clean()

        if self.quantity is not None and self.unit_price is not None:
            expected = Decimal(self.quantity) * Decimal(self.unit_price)
            if self.total_price is not None and Decimal(self.total_price) != expected:
                raise ValidationError({
                    'total_price': _('Line total must equal quantity times unit price.')
                })

    def save(self, *args, **kwargs):
        """
        Save a new line-item. Existing line-items cannot be modified.

        Raises:
            ValidationError: If the line-item was already saved
        """
        if self.pk is not None:
            raise ValidationError(_('Order items cannot be modified once placed.'))
        if self.total_price is None and self.quantity is not None and self.unit_price is not None:
            self.total_price = Decimal(self.quantity) * Decimal(self.unit_price)
        self.full_clean()
        super().save(*args, **kwargs)
