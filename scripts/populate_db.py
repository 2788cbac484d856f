import os
import sys
import django
import random
from decimal import Decimal
from datetime import timedelta
from faker import Faker

# Add project root to Python path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set up Django environment
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'food_rescue_marketplace.settings')
django.setup()

from django.utils import timezone  # noqa: E402

from core import services  # noqa: E402
from core.exceptions import InsufficientStock  # noqa: E402
from core.models import User, Store, Product, Order  # noqa: E402
from core.pricing import run_price_revaluation  # noqa: E402

fake = Faker()

PRODUCT_NAMES = {
    'dairy': ["Greek Yogurt", "Whole Milk", "Cheddar Block", "Butter"],
    'bakery': ["Sourdough Loaf", "Croissants", "Bagels", "Banana Bread"],
    'meat': ["Chicken Thighs", "Ground Beef", "Pork Sausages"],
    'produce': ["Strawberries", "Baby Spinach", "Avocados", "Bananas"],
    'pantry': ["Granola", "Pasta Sauce", "Canned Beans"],
    'frozen': ["Frozen Peas", "Veggie Burgers"],
    'beverages': ["Orange Juice", "Cold Brew Coffee"],
    'other': ["Meal Kit", "Sandwich Platter"],
}


def phone():
    return fake.numerify('+1-###-###-####')


def create_users(num_buyers=10, num_sellers=5):
    print(f"Creating {num_buyers} buyers and {num_sellers} sellers...")

    buyers = []
    sellers = []

    for _ in range(num_buyers):
        email = fake.unique.email()
        user = User.objects.create_user(
            username=email.split('@')[0],
            email=email,
            password='password123',
            first_name=fake.first_name(),
            last_name=fake.last_name(),
            phone_number=phone(),
            user_type='buyer'
        )
        buyers.append(user)

    for _ in range(num_sellers):
        email = fake.unique.email()
        user = User.objects.create_user(
            username=email.split('@')[0],
            email=email,
            password='password123',
            first_name=fake.first_name(),
            last_name=fake.last_name(),
            phone_number=phone(),
            user_type='seller',
            is_verified=random.choice([True, False])
        )
        sellers.append(user)

    print(f"Created {len(buyers)} buyers and {len(sellers)} sellers.")
    return buyers, sellers


def create_stores(sellers):
    print("Creating stores...")
    stores = []

    for seller in sellers:
        store = Store.objects.create(
            seller=seller,
            name=f"{fake.last_name()}'s {random.choice(['Market', 'Bakery', 'Grocer', 'Deli'])}",
            description=fake.sentence(),
            address=fake.address().replace('\n', ', '),
            phone=phone(),
            email=fake.company_email(),
            is_verified=seller.is_verified
        )
        stores.append(store)

    print(f"Created {len(stores)} stores.")
    return stores


def create_products(stores):
    print("Creating products...")
    products = []
    now = timezone.now()

    for store in stores:
        # Each store lists 3-8 items
        for _ in range(random.randint(3, 8)):
            category = random.choice(list(PRODUCT_NAMES))
            original_price = Decimal(random.uniform(2.0, 40.0)).quantize(Decimal('0.01'))
            created_at = now - timedelta(hours=random.randint(1, 72))

            product = Product.objects.create(
                seller=store.seller,
                seller_name=store.seller.display_name,
                store=store,
                store_name=store.name,
                store_address=store.address,
                store_phone=store.phone,
                store_email=store.email,
                name=random.choice(PRODUCT_NAMES[category]),
                description=fake.sentence(),
                category=category,
                original_price=original_price,
                current_price=original_price,
                created_at=created_at,
                expiry_date=now + timedelta(hours=random.randint(6, 120)),
                quantity_available=random.randint(1, 25),
            )
            products.append(product)

    print(f"Created {len(products)} products.")
    return products


def create_orders(buyers):
    print("Creating orders...")
    orders = []

    for buyer in buyers:
        # Each buyer places 0-3 orders
        for _ in range(random.randint(0, 3)):
            available = list(Product.objects.active())
            if not available:
                break

            picks = random.sample(available, min(len(available), random.randint(1, 3)))
            items = [
                {'product': product.id, 'quantity': random.randint(1, min(3, product.quantity_available))}
                for product in picks
            ]

            try:
                order = services.create_order(
                    buyer,
                    items,
                    delivery_address=fake.address().replace('\n', ', '),
                    payment_method=random.choice(['wallet', 'card', 'upi', 'cash']),
                )
            except InsufficientStock:
                continue
            orders.append(order)

    print(f"Created {len(orders)} orders.")
    return orders


def advance_orders(orders):
    print("Advancing order statuses...")
    path = ['confirmed', 'preparing', 'ready', 'delivered']

    for order in orders:
        seller = User.objects.get(pk=order.items.first().seller_id)
        if random.random() < 0.15:
            services.cancel_order(order.buyer, order.order_id)
            continue

        for new_status in path[:random.randint(0, len(path))]:
            services.set_order_status(seller, order.order_id, new_status)

        if Order.objects.get(pk=order.pk).status == 'delivered':
            services.set_payment_status(seller, order.order_id, 'paid')


def main():
    print("Starting database population...")

    buyers, sellers = create_users(num_buyers=20, num_sellers=8)
    stores = create_stores(sellers)
    create_products(stores)

    # Bring prices in line with each listing's age before orders snapshot them
    result = run_price_revaluation()
    print(f"Revalued prices: {result}")

    orders = create_orders(buyers)
    advance_orders(orders)

    print("Database population completed successfully!")


if __name__ == '__main__':
    main()
