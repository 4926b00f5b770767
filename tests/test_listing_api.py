"""
Test suite for the listing endpoints.

Test Coverage:
- Public browsing with filters and pagination
- Listing creation (authentication, verification, category rules, images)
- Seller-only edits and deletion
- Edits blocked while a listing is reserved or sold
- Reserve endpoint
- Moderator status changes
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from marketplace.coordinator import coordinator
from marketplace.lifecycle import ListingStatus, TransactionStatus
from marketplace.models import Listing, User
from tests.helpers import authenticate, create_listing, create_test_user


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def api_client():
    """Return API client for testing."""
    return APIClient()


@pytest.fixture
def seller(db):
    return create_test_user('seller@test.com', department='Physics')


@pytest.fixture
def buyer(db):
    return create_test_user('buyer@test.com')


@pytest.fixture
def moderator(db):
    return create_test_user('mod@test.com', role=User.ROLE_ADMIN)


@pytest.fixture
def listing(seller):
    return create_listing(seller)


@pytest.fixture
def listing_payload():
    return {
        'title': 'Calculus Textbook',
        'description': 'Stewart, 8th edition, some highlighting',
        'price': '35.00',
        'category': 'Goods',
        'subcategory': 'Books',
        'images': ['https://example.com/book.jpg', 'https://example.com/book2.jpg'],
        'location': 'Science Campus',
        'specific_location': 'Library entrance',
        'condition': 'Good',
    }


# ============================================================================
# Browsing
# ============================================================================

@pytest.mark.django_db
class TestListingBrowsing:
    """GET /api/listings/"""

    def test_browsing_is_public_and_paginated(self, api_client, listing):
        response = api_client.get('/api/listings/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1
        assert response.data['results'][0]['id'] == listing.id
        assert response.data['results'][0]['seller']['email'] == 'seller@test.com'

    def test_only_available_listings_are_shown(self, api_client, seller, buyer, listing):
        reserved = create_listing(seller, title='Reserved Lamp')
        coordinator.reserve(reserved.pk, buyer.pk)
        hidden = create_listing(seller, title='Hidden Lamp')
        Listing.objects.filter(pk=hidden.pk).update(status=ListingStatus.HIDDEN)

        response = api_client.get('/api/listings/')

        ids = [item['id'] for item in response.data['results']]
        assert ids == [listing.id]

    def test_filters(self, api_client, seller):
        cheap = create_listing(seller, title='Cheap Lamp', price=Decimal('5.00'))
        create_listing(seller, title='Pricey Lamp', price=Decimal('500.00'))
        create_listing(seller, title='Far Lamp', price=Decimal('5.00'), location='Medical Campus')
        create_listing(
            seller, title='Tutoring', price=Decimal('5.00'), category='Services',
            service_type='Tutoring', condition=''
        )

        response = api_client.get('/api/listings/', {
            'category': 'Goods',
            'location': 'Main Campus',
            'min_price': '1',
            'max_price': '10',
        })

        assert [item['id'] for item in response.data['results']] == [cheap.id]


# ============================================================================
# Creation
# ============================================================================

@pytest.mark.django_db
class TestListingCreation:
    """POST /api/listings/"""

    def test_verified_user_creates_available_listing(self, api_client, seller, listing_payload):
        authenticate(api_client, seller)

        response = api_client.post('/api/listings/', listing_payload, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['status'] == ListingStatus.AVAILABLE
        assert response.data['seller']['id'] == seller.id
        assert len(response.data['images']) == 2

    def test_status_in_payload_is_ignored(self, api_client, seller, listing_payload):
        authenticate(api_client, seller)
        listing_payload['status'] = 'Sold'

        response = api_client.post('/api/listings/', listing_payload, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert Listing.objects.get(pk=response.data['id']).status == ListingStatus.AVAILABLE

    def test_unauthenticated_creation_is_rejected(self, api_client, listing_payload):
        response = api_client.post('/api/listings/', listing_payload, format='json')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_unverified_user_is_rejected(self, api_client, listing_payload):
        user = create_test_user('new@test.com', is_verified=False)
        authenticate(api_client, user)

        response = api_client.post('/api/listings/', listing_payload, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_suspended_user_is_rejected(self, api_client, listing_payload):
        user = create_test_user('sus@test.com', status=User.STATUS_SUSPENDED)
        authenticate(api_client, user)

        response = api_client.post('/api/listings/', listing_payload, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_goods_require_condition(self, api_client, seller, listing_payload):
        authenticate(api_client, seller)
        listing_payload['condition'] = ''

        response = api_client.post('/api/listings/', listing_payload, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'condition' in response.data

    def test_rentals_require_period_in_order(self, api_client, seller, listing_payload):
        authenticate(api_client, seller)
        start = timezone.now() + timedelta(days=2)
        listing_payload.update(
            category='Rentals',
            rental_start=start.isoformat(),
            rental_end=(start - timedelta(days=1)).isoformat(),
        )

        response = api_client.post('/api/listings/', listing_payload, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'rental_end' in response.data

    def test_services_require_service_type(self, api_client, seller, listing_payload):
        authenticate(api_client, seller)
        listing_payload.update(category='Services', condition='')

        response = api_client.post('/api/listings/', listing_payload, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'service_type' in response.data

    @pytest.mark.parametrize('images', [[], ['not-a-url'], [f'https://example.com/{i}.jpg' for i in range(11)]])
    def test_invalid_images_are_rejected(self, api_client, seller, listing_payload, images):
        authenticate(api_client, seller)
        listing_payload['images'] = images

        response = api_client.post('/api/listings/', listing_payload, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'images' in response.data

    def test_negative_price_is_rejected(self, api_client, seller, listing_payload):
        authenticate(api_client, seller)
        listing_payload['price'] = '-1.00'

        response = api_client.post('/api/listings/', listing_payload, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'price' in response.data


# ============================================================================
# Editing and deletion
# ============================================================================

@pytest.mark.django_db
class TestListingChanges:
    """PATCH/DELETE /api/listings/<id>/"""

    def test_seller_can_edit_available_listing(self, api_client, seller, listing):
        authenticate(api_client, seller)

        response = api_client.patch(f'/api/listings/{listing.id}/', {'price': '20.00'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        listing.refresh_from_db()
        assert listing.price == Decimal('20.00')

    def test_other_user_cannot_edit(self, api_client, buyer, listing):
        authenticate(api_client, buyer)

        response = api_client.patch(f'/api/listings/{listing.id}/', {'price': '1.00'}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_reserved_listing_cannot_be_edited(self, api_client, seller, buyer, listing):
        coordinator.reserve(listing.pk, buyer.pk)
        authenticate(api_client, seller)

        response = api_client.patch(f'/api/listings/{listing.id}/', {'price': '1.00'}, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'conflict'
        listing.refresh_from_db()
        assert listing.price == Decimal('25.00')
        assert listing.status == ListingStatus.RESERVED

    def test_edit_does_not_touch_status(self, api_client, seller, listing):
        authenticate(api_client, seller)

        response = api_client.patch(
            f'/api/listings/{listing.id}/', {'status': 'Sold', 'title': 'Desk Lamp v2'}, format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        listing.refresh_from_db()
        assert listing.status == ListingStatus.AVAILABLE
        assert listing.title == 'Desk Lamp v2'

    def test_changing_category_enforces_its_rules(self, api_client, seller, listing):
        authenticate(api_client, seller)

        response = api_client.patch(f'/api/listings/{listing.id}/', {'category': 'Rentals'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_seller_can_delete_available_listing(self, api_client, seller, listing):
        authenticate(api_client, seller)

        response = api_client.delete(f'/api/listings/{listing.id}/')

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not Listing.objects.filter(pk=listing.id).exists()

    def test_sold_listing_cannot_be_deleted(self, api_client, seller, buyer, listing):
        txn = coordinator.reserve(listing.pk, buyer.pk)
        coordinator.complete_by_seller(txn.pk, seller.pk)
        authenticate(api_client, seller)

        response = api_client.delete(f'/api/listings/{listing.id}/')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert Listing.objects.filter(pk=listing.id).exists()

    def test_my_listings_include_every_status(self, api_client, seller, buyer, listing):
        other = create_listing(seller, title='Second Lamp')
        coordinator.reserve(other.pk, buyer.pk)
        authenticate(api_client, seller)

        response = api_client.get('/api/listings/my-listings/')

        assert response.status_code == status.HTTP_200_OK
        assert {item['id'] for item in response.data} == {listing.id, other.id}


# ============================================================================
# Reserve endpoint
# ============================================================================

@pytest.mark.django_db
class TestListingReserve:
    """POST /api/listings/<id>/reserve/"""

    def test_reserve_returns_transaction_and_listing(self, api_client, buyer, listing):
        authenticate(api_client, buyer)

        response = api_client.post(f'/api/listings/{listing.id}/reserve/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['message'] == 'Listing reserved successfully'
        assert response.data['transaction']['status'] == TransactionStatus.RESERVED
        assert response.data['transaction']['buyer']['id'] == buyer.id
        assert response.data['listing']['status'] == ListingStatus.RESERVED

    def test_reserve_taken_listing_conflicts(self, api_client, buyer, listing):
        other = create_test_user('other@test.com')
        coordinator.reserve(listing.pk, other.pk)
        authenticate(api_client, buyer)

        response = api_client.post(f'/api/listings/{listing.id}/reserve/')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'conflict'

    def test_reserve_own_listing_is_bad_request(self, api_client, seller, listing):
        authenticate(api_client, seller)

        response = api_client.post(f'/api/listings/{listing.id}/reserve/')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'invalid_operation'

    def test_reserve_missing_listing_is_not_found(self, api_client, buyer):
        authenticate(api_client, buyer)

        response = api_client.post('/api/listings/999999/reserve/')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['code'] == 'not_found'


# ============================================================================
# Moderation
# ============================================================================

@pytest.mark.django_db
class TestListingModeration:
    """PUT /api/admin/listings/<id>/status/"""

    def test_moderator_hides_listing(self, api_client, moderator, listing):
        authenticate(api_client, moderator)

        response = api_client.put(
            f'/api/admin/listings/{listing.id}/status/',
            {'status': 'Hidden', 'reason': 'Duplicate post'},
            format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        listing.refresh_from_db()
        assert listing.status == ListingStatus.HIDDEN
        assert api_client.get('/api/listings/').data['count'] == 0

    def test_regular_user_cannot_moderate(self, api_client, buyer, listing):
        authenticate(api_client, buyer)

        response = api_client.put(
            f'/api/admin/listings/{listing.id}/status/', {'status': 'Removed'}, format='json'
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        listing.refresh_from_db()
        assert listing.status == ListingStatus.AVAILABLE

    def test_reserved_listing_cannot_be_hidden(self, api_client, moderator, buyer, listing):
        coordinator.reserve(listing.pk, buyer.pk)
        authenticate(api_client, moderator)

        response = api_client.put(
            f'/api/admin/listings/{listing.id}/status/', {'status': 'Hidden'}, format='json'
        )

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_moderator_cannot_mark_sold(self, api_client, moderator, listing):
        authenticate(api_client, moderator)

        response = api_client.put(
            f'/api/admin/listings/{listing.id}/status/', {'status': 'Sold'}, format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
