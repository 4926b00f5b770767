"""
Lifecycle coordinator for listings and transactions.

This is the single authority that changes ``Listing.status`` and
``Transaction.status``. Each operation applies the listing write and the
transaction write inside one database transaction, and every write is a
status-guarded conditional UPDATE (``filter(status=expected).update(...)``).
A guard that matches no row means another request got there first; the
operation raises ``Conflict`` and the whole transition is rolled back.

Realtime events are published only after the transaction commits.
"""

import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from . import lifecycle
from .exceptions import Conflict, Forbidden, InvalidOperation, NotFound
from .lifecycle import (
    ACTIVE_TRANSACTION_STATUSES,
    ListingStatus,
    Operation,
    TransactionStatus,
)
from .models import Listing, Transaction
from .realtime import publish_on_commit

logger = logging.getLogger(__name__)

DEFAULT_CANCELLATION_REASON = 'Cancelled by user'
RECONCILIATION_CANCELLATION_REASON = 'Superseded during reconciliation'


def _transaction_payload(txn):
    return {
        'transaction_id': txn.pk,
        'listing_id': txn.listing_id,
        'buyer_id': txn.buyer_id,
        'seller_id': txn.seller_id,
        'amount': str(txn.amount),
        'status': str(txn.status),
        'payment_status': str(txn.payment_status),
    }


class LifecycleCoordinator:
    """
    Applies lifecycle transitions to a listing and its transaction together.

    Public operations:
    - reserve(listing_id, buyer_id)
    - complete_by_seller(transaction_id, seller_id)
    - complete_by_buyer(transaction_id, buyer_id)
    - cancel(transaction_id, actor_id, reason=None)
    - has_active_transaction(listing_id)
    - moderate_listing(listing_id, status, reason=None)
    - reconcile_listing(listing_id)
    """

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _get_listing(self, listing_id):
        try:
            return Listing.objects.get(pk=listing_id)
        except Listing.DoesNotExist:
            raise NotFound('Listing not found.') from None

    def _get_transaction(self, transaction_id):
        try:
            return Transaction.objects.get(pk=transaction_id)
        except Transaction.DoesNotExist:
            raise NotFound('Transaction not found.') from None

    def has_active_transaction(self, listing_id):
        """
        Check whether a listing has an Initiated or Reserved transaction.

        Listing edit and delete paths call this before mutating a listing.
        """
        return Transaction.objects.filter(
            listing_id=listing_id,
            status__in=ACTIVE_TRANSACTION_STATUSES
        ).exists()

    # ------------------------------------------------------------------
    # Guarded writes
    # ------------------------------------------------------------------

    def _swap_listing_status(self, listing_id, operation, now):
        required, resulting = lifecycle.listing_effect(operation)
        updated = Listing.objects.filter(pk=listing_id, status=required).update(
            status=resulting,
            updated_at=now
        )
        if not updated:
            raise Conflict(f'Listing is no longer {required.lower()}.')

    def _swap_transaction_status(self, txn, operation, now, **fields):
        target = lifecycle.next_transaction_status(txn.status, operation)
        updated = Transaction.objects.filter(pk=txn.pk, status=txn.status).update(
            status=target,
            payment_status=lifecycle.PAYMENT_STATUS_FOR[target],
            updated_at=now,
            **fields
        )
        return bool(updated)

    # ------------------------------------------------------------------
    # Reserve
    # ------------------------------------------------------------------

    def reserve(self, listing_id, buyer_id):
        """
        Reserve an available listing for a buyer.

        Args:
            listing_id: Listing to reserve
            buyer_id: ID of the reserving user

        Returns:
            Transaction: The new Reserved transaction

        Raises:
            NotFound: Listing does not exist
            Conflict: Listing is not Available, or another buyer reserved it first
            InvalidOperation: Buyer is the seller
        """
        with transaction.atomic():
            listing = self._get_listing(listing_id)

            if listing.status != ListingStatus.AVAILABLE:
                logger.warning(
                    f"Reserve rejected: listing {listing_id} is {listing.status}. Buyer: {buyer_id}"
                )
                raise Conflict('Listing is not available.')

            if listing.seller_id == buyer_id:
                raise InvalidOperation('Cannot reserve your own listing.')

            now = timezone.now()
            self._swap_listing_status(listing.pk, Operation.RESERVE, now)

            status = lifecycle.next_transaction_status(None, Operation.RESERVE)
            try:
                with transaction.atomic():
                    txn = Transaction.objects.create(
                        buyer_id=buyer_id,
                        seller_id=listing.seller_id,
                        listing_id=listing.pk,
                        amount=listing.price,
                        status=status,
                        payment_status=lifecycle.PAYMENT_STATUS_FOR[status],
                        reservation_date=now,
                    )
            except IntegrityError:
                logger.warning(
                    f"Reserve rejected by active-transaction constraint. "
                    f"Listing: {listing_id}, Buyer: {buyer_id}"
                )
                raise Conflict('Listing is not available.') from None

            logger.info(
                f"Listing reserved. Listing: {listing.pk}, Transaction: {txn.pk}, "
                f"Buyer: {buyer_id}, Seller: {listing.seller_id}, Amount: {txn.amount}"
            )
            publish_on_commit(listing.seller_id, 'listing_reserved', _transaction_payload(txn))

        return txn

    # ------------------------------------------------------------------
    # Complete
    # ------------------------------------------------------------------

    def complete_by_seller(self, transaction_id, seller_id):
        """Complete a transaction on behalf of its seller."""
        return self._complete(transaction_id, seller_id, role='seller')

    def complete_by_buyer(self, transaction_id, buyer_id):
        """Complete a transaction on behalf of its buyer."""
        return self._complete(transaction_id, buyer_id, role='buyer')

    def _complete(self, transaction_id, actor_id, role):
        """
        Mark a transaction Completed and its listing Sold.

        Completing an already Completed transaction is an idempotent success:
        the transaction is returned unchanged and nothing is published.

        Raises:
            NotFound: Transaction does not exist
            Forbidden: Actor is not the party ``role`` names
            Conflict: Transaction was cancelled, or a concurrent change won
        """
        with transaction.atomic():
            txn = self._get_transaction(transaction_id)

            party_id = txn.seller_id if role == 'seller' else txn.buyer_id
            if actor_id != party_id:
                logger.warning(
                    f"Unauthorized completion attempt. Transaction: {transaction_id}, "
                    f"Actor: {actor_id}, Required role: {role}"
                )
                raise Forbidden(f'Only the {role} can complete this transaction this way.')

            if txn.status == TransactionStatus.COMPLETED:
                return txn
            if not lifecycle.can_transition(txn.status, Operation.COMPLETE):
                raise Conflict(f'Transaction is already {txn.status.lower()}.')

            now = timezone.now()
            swapped = self._swap_transaction_status(
                txn, Operation.COMPLETE, now, completion_date=now
            )
            if not swapped:
                current = Transaction.objects.select_for_update().get(pk=txn.pk)
                if current.status == TransactionStatus.COMPLETED:
                    return current
                raise Conflict(f'Transaction is already {current.status.lower()}.')

            self._swap_listing_status(txn.listing_id, Operation.COMPLETE, now)

            txn.refresh_from_db()
            logger.info(
                f"Transaction completed by {role}. Transaction: {txn.pk}, "
                f"Listing: {txn.listing_id}, Actor: {actor_id}"
            )
            payload = _transaction_payload(txn)
            publish_on_commit(txn.buyer_id, 'transaction_completed', payload)
            publish_on_commit(txn.seller_id, 'transaction_completed', payload)

        return txn

    # ------------------------------------------------------------------
    # Cancel
    # ------------------------------------------------------------------

    def cancel(self, transaction_id, actor_id, reason=None):
        """
        Cancel an active transaction and release the listing.

        Args:
            transaction_id: Transaction to cancel
            actor_id: Buyer or seller of the transaction
            reason: Optional free-text reason

        Returns:
            Transaction: The Cancelled transaction

        Raises:
            NotFound: Transaction does not exist
            Forbidden: Actor is not a party to the transaction
            Conflict: Transaction is already Completed or Cancelled
        """
        with transaction.atomic():
            txn = self._get_transaction(transaction_id)

            if not txn.is_party(actor_id):
                logger.warning(
                    f"Unauthorized cancellation attempt. Transaction: {transaction_id}, Actor: {actor_id}"
                )
                raise Forbidden('Only the buyer or the seller can cancel this transaction.')

            if lifecycle.is_terminal(txn.status):
                raise Conflict(f'Transaction is already {txn.status.lower()}.')

            now = timezone.now()
            swapped = self._swap_transaction_status(
                txn,
                Operation.CANCEL,
                now,
                cancellation_date=now,
                cancellation_reason=(reason or '').strip() or DEFAULT_CANCELLATION_REASON,
            )
            if not swapped:
                raise Conflict('Transaction was modified by another request.')

            self._swap_listing_status(txn.listing_id, Operation.CANCEL, now)

            txn.refresh_from_db()
            logger.info(
                f"Transaction cancelled. Transaction: {txn.pk}, Listing: {txn.listing_id}, "
                f"Actor: {actor_id}, Reason: {txn.cancellation_reason}"
            )
            publish_on_commit(
                txn.other_party_id(actor_id),
                'transaction_cancelled',
                {**_transaction_payload(txn), 'reason': txn.cancellation_reason}
            )

        return txn

    # ------------------------------------------------------------------
    # Moderation
    # ------------------------------------------------------------------

    def moderate_listing(self, listing_id, status, reason=None):
        """
        Hide, remove or restore a listing on behalf of a moderator.

        Only listings without a transaction (Available or Hidden) can be
        moderated; Reserved, Sold and Removed listings raise Conflict.

        Returns:
            Listing: The updated listing
        """
        with transaction.atomic():
            listing = self._get_listing(listing_id)
            lifecycle.validate_moderation(listing.status, status)

            updated = Listing.objects.filter(pk=listing.pk, status=listing.status).update(
                status=status,
                updated_at=timezone.now()
            )
            if not updated:
                raise Conflict('Listing was modified by another request.')

            previous = listing.status
            listing.refresh_from_db()
            logger.info(
                f"Listing moderated. Listing: {listing.pk}, {previous} -> {listing.status}, "
                f"Reason: {reason or '-'}"
            )
            publish_on_commit(listing.seller_id, 'listing_moderated', {
                'listing_id': listing.pk,
                'status': str(listing.status),
                'reason': reason or '',
            })

        return listing

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def reconcile_listing(self, listing_id, dry_run=False):
        """
        Repair disagreement between a listing's status and its transactions.

        Rules, in priority order:
        1. A Completed transaction means the listing is Sold.
        2. Only the oldest active transaction survives; others are cancelled.
        3. An active transaction means the listing is Reserved.
        4. A Reserved listing without an active transaction becomes Available.

        Args:
            listing_id: Listing to check
            dry_run: Report what would change without writing

        Returns:
            bool: True if the listing was (or would be) repaired
        """
        with transaction.atomic():
            try:
                listing = Listing.objects.select_for_update().get(pk=listing_id)
            except Listing.DoesNotExist:
                raise NotFound('Listing not found.') from None

            now = timezone.now()
            transactions = listing.transactions.select_for_update().order_by('reservation_date', 'pk')
            active = [t for t in transactions if lifecycle.is_active(t.status)]
            completed = any(t.status == TransactionStatus.COMPLETED for t in transactions)

            if completed:
                expected = ListingStatus.SOLD
                stale = active
            elif active:
                expected = ListingStatus.RESERVED
                stale = active[1:]
            else:
                expected = ListingStatus.AVAILABLE if listing.status == ListingStatus.RESERVED else listing.status
                stale = []

            repaired = bool(stale) or listing.status != expected
            if not repaired:
                return False

            logger.warning(
                f"Reconciling listing {listing.pk}: status {listing.status} -> {expected}, "
                f"superseded transactions: {[t.pk for t in stale]}"
                f"{' (dry run)' if dry_run else ''}"
            )
            if dry_run:
                return True

            for txn in stale:
                self._swap_transaction_status(
                    txn,
                    Operation.CANCEL,
                    now,
                    cancellation_date=now,
                    cancellation_reason=RECONCILIATION_CANCELLATION_REASON,
                )
            Listing.objects.filter(pk=listing.pk).update(status=expected, updated_at=now)

        return True


coordinator = LifecycleCoordinator()
