"""Shared factories for marketplace tests."""

from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework_simplejwt.tokens import RefreshToken

from marketplace.coordinator import coordinator
from marketplace.models import Listing

User = get_user_model()


def create_test_user(email, **kwargs):
    """Create a verified test user unless told otherwise."""
    kwargs.setdefault('is_verified', True)
    return User.objects.create_user(
        username=email.split('@')[0],
        email=email,
        password='testpass123',
        **kwargs
    )


def create_listing(seller, **kwargs):
    """Create an Available goods listing."""
    fields = {
        'title': 'Desk Lamp',
        'description': 'Barely used LED desk lamp',
        'price': Decimal('25.00'),
        'category': Listing.CATEGORY_GOODS,
        'subcategory': 'Electronics',
        'images': ['https://example.com/lamp.jpg'],
        'location': 'Main Campus',
        'condition': 'Good',
    }
    fields.update(kwargs)
    return Listing.objects.create(seller=seller, **fields)


def create_completed_transaction(seller, buyer, **listing_kwargs):
    """Create a listing and drive it through reserve and completion."""
    listing = create_listing(seller, **listing_kwargs)
    txn = coordinator.reserve(listing.pk, buyer.pk)
    return coordinator.complete_by_seller(txn.pk, seller.pk)


def get_jwt_token(user):
    """Generate JWT access token for a user."""
    refresh = RefreshToken.for_user(user)
    return str(refresh.access_token)


def authenticate(client, user):
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {get_jwt_token(user)}')
