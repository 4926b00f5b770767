"""
Test suite for reserving listings through the lifecycle coordinator.

Test Coverage:
- Successful reservation (listing Reserved, transaction Reserved, amount captured)
- Reserving unavailable, missing and own listings
- Losing a reservation race (stale read, constraint violation)
- Realtime notification to the seller after commit
- Concurrent reservations and complete/cancel races on separate connections
"""

import threading
from decimal import Decimal
from unittest import mock

from django.db import connection
from django.test import TestCase, TransactionTestCase, override_settings

from marketplace import realtime
from marketplace.coordinator import LifecycleCoordinator, coordinator
from marketplace.exceptions import Conflict, InvalidOperation, MarketplaceError, NotFound
from marketplace.lifecycle import ListingStatus, PaymentStatus, TransactionStatus
from marketplace.models import Listing, Transaction
from tests.helpers import create_listing, create_test_user

IN_MEMORY_BACKEND = 'marketplace.realtime.InMemoryPublisher'


class ReserveTests(TestCase):
    """Reserve on an Available listing."""

    def setUp(self):
        self.seller = create_test_user('seller@test.com')
        self.buyer = create_test_user('buyer@test.com')
        self.listing = create_listing(self.seller, price=Decimal('40.00'))

    def test_reserve_marks_listing_and_creates_transaction(self):
        txn = coordinator.reserve(self.listing.pk, self.buyer.pk)

        self.listing.refresh_from_db()
        self.assertEqual(self.listing.status, ListingStatus.RESERVED)
        self.assertEqual(txn.status, TransactionStatus.RESERVED)
        self.assertEqual(txn.payment_status, PaymentStatus.PENDING)
        self.assertEqual(txn.buyer_id, self.buyer.pk)
        self.assertEqual(txn.seller_id, self.seller.pk)
        self.assertEqual(txn.amount, Decimal('40.00'))
        self.assertIsNotNone(txn.reservation_date)

    def test_reserve_leaves_exactly_one_active_transaction(self):
        coordinator.reserve(self.listing.pk, self.buyer.pk)

        self.assertTrue(coordinator.has_active_transaction(self.listing.pk))
        self.assertEqual(
            Transaction.objects.filter(listing=self.listing, status=TransactionStatus.RESERVED).count(),
            1
        )

    def test_second_buyer_gets_conflict(self):
        other_buyer = create_test_user('other@test.com')
        coordinator.reserve(self.listing.pk, self.buyer.pk)

        with self.assertRaises(Conflict):
            coordinator.reserve(self.listing.pk, other_buyer.pk)

        self.assertEqual(Transaction.objects.filter(listing=self.listing).count(), 1)

    def test_reserving_own_listing_is_invalid(self):
        with self.assertRaises(InvalidOperation):
            coordinator.reserve(self.listing.pk, self.seller.pk)

        self.listing.refresh_from_db()
        self.assertEqual(self.listing.status, ListingStatus.AVAILABLE)
        self.assertFalse(Transaction.objects.exists())

    def test_reserving_missing_listing_is_not_found(self):
        with self.assertRaises(NotFound):
            coordinator.reserve(999999, self.buyer.pk)

    def test_unavailable_listing_is_checked_before_ownership(self):
        Listing.objects.filter(pk=self.listing.pk).update(status=ListingStatus.SOLD)

        with self.assertRaises(Conflict):
            coordinator.reserve(self.listing.pk, self.seller.pk)

    def test_hidden_listing_cannot_be_reserved(self):
        Listing.objects.filter(pk=self.listing.pk).update(status=ListingStatus.HIDDEN)

        with self.assertRaises(Conflict):
            coordinator.reserve(self.listing.pk, self.buyer.pk)


class ReserveRaceTests(TestCase):
    """Reservations that lose a race to a concurrent reservation."""

    def setUp(self):
        self.seller = create_test_user('seller@test.com')
        self.buyer_a = create_test_user('a@test.com')
        self.buyer_b = create_test_user('b@test.com')
        self.listing = create_listing(self.seller)

    def test_stale_available_read_loses_to_committed_reservation(self):
        stale = Listing.objects.get(pk=self.listing.pk)
        coordinator.reserve(self.listing.pk, self.buyer_a.pk)

        with mock.patch.object(LifecycleCoordinator, '_get_listing', return_value=stale):
            with self.assertRaises(Conflict):
                coordinator.reserve(self.listing.pk, self.buyer_b.pk)

        active = Transaction.objects.filter(listing=self.listing, status__in=['Initiated', 'Reserved'])
        self.assertEqual(active.count(), 1)
        self.assertEqual(active.get().buyer_id, self.buyer_a.pk)

    def test_active_transaction_constraint_rejects_second_reservation(self):
        coordinator.reserve(self.listing.pk, self.buyer_a.pk)
        # Listing status out of step with its transactions.
        Listing.objects.filter(pk=self.listing.pk).update(status=ListingStatus.AVAILABLE)

        with self.assertRaises(Conflict):
            coordinator.reserve(self.listing.pk, self.buyer_b.pk)

        self.listing.refresh_from_db()
        self.assertEqual(self.listing.status, ListingStatus.AVAILABLE)
        self.assertEqual(Transaction.objects.filter(listing=self.listing).count(), 1)


@override_settings(MARKETPLACE_REALTIME_BACKEND=IN_MEMORY_BACKEND)
class ReserveNotificationTests(TestCase):
    """Seller notification on reservation."""

    def setUp(self):
        realtime.outbox.clear()
        self.seller = create_test_user('seller@test.com')
        self.buyer = create_test_user('buyer@test.com')
        self.listing = create_listing(self.seller)

    def test_seller_is_notified_after_commit(self):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            txn = coordinator.reserve(self.listing.pk, self.buyer.pk)
            self.assertEqual(realtime.outbox, [])

        self.assertEqual(len(callbacks), 1)
        self.assertEqual(len(realtime.outbox), 1)
        event = realtime.outbox[0]
        self.assertEqual(event['user_id'], self.seller.pk)
        self.assertEqual(event['event_type'], 'listing_reserved')
        self.assertEqual(event['payload']['transaction_id'], txn.pk)
        self.assertEqual(event['payload']['buyer_id'], self.buyer.pk)

    def test_event_payload_carries_plain_status_strings(self):
        with self.captureOnCommitCallbacks(execute=True):
            coordinator.reserve(self.listing.pk, self.buyer.pk)

        payload = realtime.outbox[0]['payload']
        self.assertIs(type(payload['status']), str)
        self.assertIs(type(payload['payment_status']), str)
        self.assertEqual(payload['status'], 'Reserved')
        self.assertEqual(payload['payment_status'], 'Pending')

    def test_failed_reservation_publishes_nothing(self):
        with self.captureOnCommitCallbacks(execute=True):
            with self.assertRaises(InvalidOperation):
                coordinator.reserve(self.listing.pk, self.seller.pk)

        self.assertEqual(realtime.outbox, [])


class ConcurrentLifecycleTests(TransactionTestCase):
    """
    Lifecycle operations racing on separate database connections.

    Every thread starts behind a barrier; the status-guarded updates must
    let exactly one of them through and answer the rest with Conflict.
    """

    def run_concurrently(self, calls):
        results = []
        barrier = threading.Barrier(len(calls))
        lock = threading.Lock()

        def attempt(call):
            try:
                barrier.wait()
                call()
                outcome = 'ok'
            except MarketplaceError as exc:
                outcome = exc.code
            except Exception as exc:
                outcome = f'{type(exc).__name__}: {exc}'
            finally:
                connection.close()
            with lock:
                results.append(outcome)

        threads = [threading.Thread(target=attempt, args=(call,)) for call in calls]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return results

    def test_exactly_one_concurrent_reserve_succeeds(self):
        seller = create_test_user('seller@test.com')
        buyers = [create_test_user(f'buyer{i}@test.com') for i in range(8)]
        listing = create_listing(seller)

        results = self.run_concurrently([
            lambda buyer_id=buyer.pk: coordinator.reserve(listing.pk, buyer_id)
            for buyer in buyers
        ])

        self.assertEqual(sorted(results), ['conflict'] * (len(buyers) - 1) + ['ok'])
        listing.refresh_from_db()
        self.assertEqual(listing.status, ListingStatus.RESERVED)
        self.assertEqual(Transaction.objects.filter(listing=listing).count(), 1)

    def test_complete_and_cancel_race_has_one_winner(self):
        seller = create_test_user('seller@test.com')
        buyer = create_test_user('buyer@test.com')
        listing = create_listing(seller)
        txn = coordinator.reserve(listing.pk, buyer.pk)

        results = self.run_concurrently([
            lambda: coordinator.complete_by_seller(txn.pk, seller.pk),
            lambda: coordinator.cancel(txn.pk, buyer.pk),
        ])

        self.assertEqual(sorted(results), ['conflict', 'ok'])
        txn.refresh_from_db()
        listing.refresh_from_db()
        if txn.status == TransactionStatus.COMPLETED:
            self.assertEqual(txn.payment_status, PaymentStatus.COMPLETED)
            self.assertEqual(listing.status, ListingStatus.SOLD)
        else:
            self.assertEqual(txn.status, TransactionStatus.CANCELLED)
            self.assertEqual(txn.payment_status, PaymentStatus.CANCELLED)
            self.assertEqual(listing.status, ListingStatus.AVAILABLE)
