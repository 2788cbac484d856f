import core.validators
import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('email', models.EmailField(error_messages={'unique': 'A user with that email already exists.'}, help_text='Required. Enter a valid email address.', max_length=254, unique=True, verbose_name='email address')),
                ('phone_number', models.CharField(blank=True, default='', help_text='Optional. Enter phone number in international format.', max_length=20, validators=[core.validators.validate_phone_number], verbose_name='phone number')),
                ('user_type', models.CharField(choices=[('buyer', 'Buyer'), ('seller', 'Seller'), ('admin', 'Administrator')], default='buyer', help_text='Whether the account buys, sells or administers the marketplace.', max_length=10, verbose_name='user type')),
                ('is_verified', models.BooleanField(default=False, help_text='Indicates whether a seller has been verified.', verbose_name='verified status')),
                ('total_orders', models.PositiveIntegerField(default=0, help_text='Number of orders placed.', verbose_name='total orders')),
                ('total_spent', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Sum of all order totals.', max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))], verbose_name='total spent')),
                ('items_saved', models.PositiveIntegerField(default=0, help_text='Number of items rescued across all orders.', verbose_name='items saved')),
                ('co2_saved_kg', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Estimated CO2 emissions avoided.', max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))], verbose_name='CO2 saved (kg)')),
                ('water_saved_liters', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Estimated water usage avoided.', max_digits=14, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))], verbose_name='water saved (liters)')),
                ('last_order_date', models.DateTimeField(blank=True, help_text='Timestamp of the most recent order.', null=True, verbose_name='last order date')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when the account was created.', verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the account was last updated.', verbose_name='updated at')),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['email'], name='core_user_email_7ec3d2_idx'),
                    models.Index(fields=['user_type'], name='core_user_user_ty_1b6a1e_idx'),
                    models.Index(fields=['is_verified'], name='core_user_is_veri_2d8c54_idx'),
                ],
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Store',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text='Store name shown to buyers', max_length=100, verbose_name='name')),
                ('description', models.TextField(blank=True, default='', max_length=500, verbose_name='description')),
                ('address', models.CharField(help_text='Pickup address of the store', max_length=300, verbose_name='address')),
                ('phone', models.CharField(blank=True, default='', max_length=20, validators=[core.validators.validate_phone_number], verbose_name='phone')),
                ('email', models.EmailField(blank=True, default='', max_length=254, verbose_name='email')),
                ('is_verified', models.BooleanField(default=False, verbose_name='verified')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('seller', models.ForeignKey(help_text='Seller operating this store', on_delete=django.db.models.deletion.CASCADE, related_name='stores', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'store',
                'verbose_name_plural': 'stores',
                'ordering': ['name'],
                'indexes': [
                    models.Index(fields=['seller'], name='core_store_seller__4b1e0a_idx'),
                    models.Index(fields=['is_verified'], name='core_store_is_veri_9c0f3e_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('seller_name', models.CharField(help_text='Seller display name at listing time', max_length=150, verbose_name='seller name')),
                ('store_name', models.CharField(max_length=100, verbose_name='store name')),
                ('store_address', models.CharField(max_length=300, verbose_name='store address')),
                ('store_phone', models.CharField(blank=True, default='', max_length=20, verbose_name='store phone')),
                ('store_email', models.EmailField(blank=True, default='', max_length=254, verbose_name='store email')),
                ('name', models.CharField(help_text='Name of the product', max_length=100, verbose_name='name')),
                ('description', models.TextField(blank=True, default='', max_length=500, verbose_name='description')),
                ('category', models.CharField(choices=[('dairy', 'Dairy'), ('bakery', 'Bakery'), ('meat', 'Meat'), ('produce', 'Produce'), ('pantry', 'Pantry'), ('frozen', 'Frozen'), ('beverages', 'Beverages'), ('other', 'Other')], default='other', max_length=20, verbose_name='category')),
                ('image_url', models.URLField(blank=True, default='', max_length=500, verbose_name='image URL')),
                ('original_price', models.DecimalField(decimal_places=2, help_text='Price when the listing was created', max_digits=10, verbose_name='original price')),
                ('current_price', models.DecimalField(decimal_places=2, help_text='Price charged now', max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))], verbose_name='current price')),
                ('discount_percentage', models.PositiveSmallIntegerField(default=0, help_text='Derived from original and current price', validators=[django.core.validators.MaxValueValidator(100)], verbose_name='discount percentage')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, help_text='Start of the price decay window', verbose_name='created at')),
                ('expiry_date', models.DateTimeField(help_text='End of the price decay window', verbose_name='expiry date')),
                ('quantity_available', models.PositiveIntegerField(default=0, verbose_name='quantity available')),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive'), ('sold_out', 'Sold Out'), ('expired', 'Expired')], default='active', max_length=20, verbose_name='status')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('seller', models.ForeignKey(help_text='Seller offering this listing', on_delete=django.db.models.deletion.CASCADE, related_name='products', to=settings.AUTH_USER_MODEL)),
                ('store', models.ForeignKey(blank=True, help_text='Store the listing is sold from', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='products', to='core.store')),
            ],
            options={
                'verbose_name': 'product',
                'verbose_name_plural': 'products',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['category', 'status'], name='core_produc_categor_5e2a7b_idx'),
                    models.Index(fields=['expiry_date'], name='core_produc_expiry__8d1c4f_idx'),
                    models.Index(fields=['-discount_percentage'], name='core_produc_discoun_3a9e62_idx'),
                    models.Index(fields=['-created_at'], name='core_produc_created_6f4b10_idx'),
                    models.Index(fields=['seller'], name='core_produc_seller__0c7d95_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('order_id', models.CharField(editable=False, help_text='Human-readable order reference', max_length=40, unique=True, verbose_name='order code')),
                ('buyer_name', models.CharField(max_length=150, verbose_name='buyer name')),
                ('buyer_email', models.EmailField(max_length=254, verbose_name='buyer email')),
                ('total_amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))], verbose_name='total amount')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('confirmed', 'Confirmed'), ('preparing', 'Preparing'), ('ready', 'Ready'), ('delivered', 'Delivered'), ('cancelled', 'Cancelled')], default='pending', max_length=20, verbose_name='status')),
                ('payment_status', models.CharField(choices=[('pending', 'Pending'), ('paid', 'Paid'), ('failed', 'Failed'), ('refunded', 'Refunded')], default='pending', max_length=20, verbose_name='payment status')),
                ('payment_method', models.CharField(choices=[('wallet', 'Wallet'), ('card', 'Card'), ('upi', 'UPI'), ('cash', 'Cash')], default='wallet', max_length=20, verbose_name='payment method')),
                ('delivery_address', models.CharField(blank=True, default='', max_length=300, verbose_name='delivery address')),
                ('delivery_instructions', models.TextField(blank=True, default='', verbose_name='delivery instructions')),
                ('estimated_delivery', models.DateTimeField(blank=True, null=True, verbose_name='estimated delivery')),
                ('actual_delivery', models.DateTimeField(blank=True, help_text='Set when the order is delivered', null=True, verbose_name='actual delivery')),
                ('items_saved', models.PositiveIntegerField(default=0, verbose_name='items saved')),
                ('co2_saved_kg', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name='CO2 saved (kg)')),
                ('water_saved_liters', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14, verbose_name='water saved (liters)')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('buyer', models.ForeignKey(help_text='User who placed the order', on_delete=django.db.models.deletion.PROTECT, related_name='orders', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'order',
                'verbose_name_plural': 'orders',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['buyer', '-created_at'], name='core_order_buyer_i_2f6a8c_idx'),
                    models.Index(fields=['status'], name='core_order_status_7b3e19_idx'),
                    models.Index(fields=['payment_status'], name='core_order_payment_c4d057_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='OrderItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('position', models.PositiveSmallIntegerField(default=0, help_text='Order of the line within the order', verbose_name='position')),
                ('product_name', models.CharField(max_length=100, verbose_name='product name')),
                ('quantity', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)], verbose_name='quantity')),
                ('unit_price', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))], verbose_name='unit price')),
                ('total_price', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))], verbose_name='total price')),
                ('seller_name', models.CharField(max_length=150, verbose_name='seller name')),
                ('store_name', models.CharField(max_length=100, verbose_name='store name')),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='core.order')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='order_items', to='core.product')),
                ('seller', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='sold_items', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'order item',
                'verbose_name_plural': 'order items',
                'ordering': ['order', 'position'],
                'indexes': [
                    models.Index(fields=['seller'], name='core_orderi_seller__8a51f3_idx'),
                    models.Index(fields=['product'], name='core_orderi_product_e92b7d_idx'),
                ],
            },
        ),
    ]
