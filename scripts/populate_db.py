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
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'campus_marketplace.settings')
django.setup()

from marketplace.coordinator import coordinator
from marketplace.exceptions import MarketplaceError
from marketplace.lifecycle import ReviewType
from marketplace.models import Listing, User
from marketplace.reviews import submit_review

fake = Faker()

DEPARTMENTS = [
    "Computer Science", "Mechanical Engineering", "Biology", "Economics",
    "History", "Mathematics", "Medicine", "Architecture",
]

GOODS_TITLES = [
    "Desk Lamp", "Calculus Textbook", "Mini Fridge", "Office Chair", "Bike",
    "Graphing Calculator", "Bookshelf", "Microwave", "Monitor", "Backpack",
]

SERVICES = [
    ("Math Tutoring", "Tutoring"), ("Essay Proofreading", "Editing"),
    ("Laptop Repair", "Repair"), ("Moving Help", "Moving"),
]

RENTALS = ["Camera Kit", "Projector", "Camping Tent", "Parking Spot"]


def create_users(num_users=20, num_admins=1):
    print(f"Creating {num_users} users and {num_admins} admins...")

    users = []
    for index in range(num_users + num_admins):
        email = fake.unique.email()
        username = email.split('@')[0]
        user = User.objects.create_user(
            username=username,
            email=email,
            password='password123',
            first_name=fake.first_name(),
            last_name=fake.last_name(),
            phone_number=fake.numerify('+1-###-###-####'),
            department=random.choice(DEPARTMENTS),
            role=User.ROLE_ADMIN if index < num_admins else User.ROLE_USER,
            is_verified=random.random() < 0.9,
        )
        users.append(user)

    print(f"Created {len(users)} users.")
    return users


def create_listings(users):
    print("Creating listings...")
    listings = []

    locations = [choice for choice, _ in Listing.LOCATION_CHOICES]
    conditions = [choice for choice, _ in Listing.CONDITION_CHOICES]

    for user in users:
        # Each user offers 0-3 listings
        for _ in range(random.randint(0, 3)):
            category = random.choice([
                Listing.CATEGORY_GOODS, Listing.CATEGORY_SERVICES, Listing.CATEGORY_RENTALS
            ])
            fields = {
                'seller': user,
                'description': fake.text(max_nb_chars=300),
                'price': Decimal(random.uniform(5.0, 300.0)).quantize(Decimal('0.01')),
                'category': category,
                'images': [fake.image_url() for _ in range(random.randint(1, 3))],
                'location': random.choice(locations),
                'specific_location': fake.street_name(),
            }

            if category == Listing.CATEGORY_GOODS:
                fields.update(
                    title=f"{random.choice(['Used', 'Like New', 'Vintage'])} {random.choice(GOODS_TITLES)}",
                    subcategory='General',
                    condition=random.choice(conditions),
                )
            elif category == Listing.CATEGORY_SERVICES:
                title, service_type = random.choice(SERVICES)
                fields.update(title=title, subcategory=service_type, service_type=service_type)
            else:
                start = timezone.now() + timedelta(days=random.randint(1, 14))
                fields.update(
                    title=f"{random.choice(RENTALS)} for rent",
                    subcategory='Equipment',
                    rental_start=start,
                    rental_end=start + timedelta(days=random.randint(1, 7)),
                )

            listings.append(Listing.objects.create(**fields))

    print(f"Created {len(listings)} listings.")
    return listings


def create_transactions(users, listings):
    """Drive a share of the listings through the lifecycle coordinator."""
    print("Creating transactions...")
    completed = []
    count = 0

    for listing in random.sample(listings, len(listings) // 2):
        buyer = random.choice([u for u in users if u.pk != listing.seller_id])
        try:
            txn = coordinator.reserve(listing.pk, buyer.pk)
            outcome = random.choice(['reserved', 'completed', 'completed', 'cancelled'])
            if outcome == 'completed':
                txn = coordinator.complete_by_seller(txn.pk, listing.seller_id)
                completed.append(txn)
            elif outcome == 'cancelled':
                coordinator.cancel(txn.pk, buyer.pk, reason=fake.sentence())
            count += 1
        except MarketplaceError as exc:
            print(f"Skipped listing {listing.pk}: {exc.detail}")

    print(f"Created {count} transactions, {len(completed)} completed.")
    return completed


def create_reviews(transactions):
    print("Creating reviews...")
    count = 0

    for txn in transactions:
        # 70% chance of the buyer leaving a review, 50% for the seller
        if random.random() < 0.7:
            submit_review(txn.buyer_id, txn.pk, ReviewType.BUYER_TO_SELLER,
                          random.randint(3, 5), comment=fake.paragraph())
            count += 1
        if random.random() < 0.5:
            submit_review(txn.seller_id, txn.pk, ReviewType.SELLER_TO_BUYER,
                          random.randint(3, 5), comment=fake.paragraph())
            count += 1

    print(f"Created {count} reviews.")


def main():
    print("Starting database population...")

    users = create_users(num_users=20, num_admins=1)
    listings = create_listings(users)
    completed = create_transactions(users, listings)
    create_reviews(completed)

    print("Database population completed successfully!")


if __name__ == '__main__':
    main()
