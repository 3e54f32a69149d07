import os
import sys
import django
import random
from decimal import Decimal
from datetime import timedelta
from django.utils import timezone
from faker import Faker

# Add project root to Python path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set up Django environment
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'rentlens.settings')
django.setup()

from core.bookings import BookingService
from core.exceptions import RentLensError
from core.models import Booking, Payment, Product, Report, User

fake = Faker('id_ID')

# City centers the fake users are scattered around
CITIES = {
    'Jakarta': (-6.2088, 106.8456),
    'Bandung': (-6.9175, 107.6191),
    'Yogyakarta': (-7.7956, 110.3695),
    'Surabaya': (-7.2575, 112.7521),
}

PRODUCT_NAMES = {
    'DSLR': ['Canon EOS 90D', 'Nikon D7500', 'Canon EOS 5D Mark IV', 'Nikon D850'],
    'Mirrorless': ['Sony A7 III', 'Fujifilm X-T4', 'Canon EOS R6', 'Lumix S5'],
    'Drone': ['DJI Mini 3 Pro', 'DJI Air 2S', 'DJI Mavic 3'],
    'Lens': ['Sigma 24-70mm f/2.8', 'Canon RF 50mm f/1.8', 'Sony FE 85mm f/1.8'],
}


def fake_phone():
    return '08' + ''.join(random.choice('0123456789') for _ in range(10))


def create_users(num_users=20):
    print(f"Creating {num_users} users and 1 admin...")

    users = []

    for _ in range(num_users):
        city, (lat, lon) = random.choice(list(CITIES.items()))
        email = fake.unique.email()
        username = email.split('@')[0]
        user = User.objects.create_user(
            username=username,
            email=email,
            password='password123',
            full_name=fake.name(),
            phone_number=fake_phone(),
            city=city,
            address=fake.street_address(),
            # Roughly within 15 km of the city center
            latitude=round(lat + random.uniform(-0.12, 0.12), 6),
            longitude=round(lon + random.uniform(-0.12, 0.12), 6),
        )
        users.append(user)

    admin = User.objects.create_user(
        username='admin',
        email='admin@rentlens.local',
        password='password123',
        full_name='RentLens Admin',
        role='admin',
        is_staff=True,
    )

    print(f"Created {len(users)} users.")
    return users, admin


def create_products(users):
    print("Creating products...")
    products = []

    for user in users:
        # Each user lists 0-3 products
        for _ in range(random.randint(0, 3)):
            category = random.choice(list(PRODUCT_NAMES))
            product = Product.objects.create(
                owner=user,
                name=random.choice(PRODUCT_NAMES[category]),
                description=fake.paragraph(),
                category=category,
                price_per_day=Decimal(random.randrange(75000, 500000, 5000)),
                image_urls=[f'https://picsum.photos/seed/{fake.uuid4()}/800/600'],
                is_available=random.random() < 0.9,
            )
            products.append(product)

    print(f"Created {len(products)} products.")
    return products


def create_bookings(users, products):
    print("Creating bookings...")
    bookings = []
    service = BookingService()
    available = [p for p in products if p.is_available]

    for renter in users:
        # Each user makes 0-2 bookings
        for _ in range(random.randint(0, 2)):
            candidates = [p for p in available if p.owner_id != renter.pk]
            if not candidates:
                break

            product = random.choice(candidates)
            start = timezone.localdate() + timedelta(days=random.randint(1, 60))
            end = start + timedelta(days=random.randint(1, 7))

            try:
                booking = service.create(
                    renter=renter,
                    product=product,
                    start_date=start,
                    end_date=end,
                    delivery_method=random.choice(['pickup', 'delivery']),
                    renter_address=renter.address,
                )
            except RentLensError as e:
                print(f"  Skipped booking for {product.name}: {e.message}")
                continue

            bookings.append(booking)

    print(f"Created {len(bookings)} bookings.")
    return bookings


def create_payments(bookings):
    print("Creating payments...")
    payments = []

    for booking in bookings:
        status = random.choice(['pending', 'paid', 'paid', 'failed'])
        payment = Payment.objects.create(
            booking=booking,
            order_id=f'RENT-{booking.pk}-{int(timezone.now().timestamp())}',
            amount=int(booking.total_price),
            status=status,
            paid_at=timezone.now() if status == 'paid' else None,
        )
        payments.append(payment)

        # Owners confirm most paid bookings
        if status == 'paid' and random.random() < 0.7:
            BookingService().transition(booking.pk, 'confirmed', booking.owner)

    print(f"Created {len(payments)} payments.")
    return payments


def create_reports(users, products):
    print("Creating reports...")
    reports = []

    for reporter in random.sample(users, k=min(5, len(users))):
        others = [p for p in products if p.owner_id != reporter.pk]
        if not others:
            continue
        product = random.choice(others)
        report = Report.objects.create(
            reporter=reporter,
            report_type='product',
            reported_product=product,
            reason=random.choice(['Misleading listing', 'Suspected fraud', 'Item not as described']),
            description=fake.sentence(),
        )
        reports.append(report)

    print(f"Created {len(reports)} reports.")
    return reports


def main():
    print("Starting database population...")

    users, _admin = create_users(num_users=20)
    products = create_products(users)
    bookings = create_bookings(users, products)
    create_payments(bookings)
    create_reports(users, products)

    print("Database population completed successfully!")


if __name__ == '__main__':
    main()
