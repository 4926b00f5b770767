"""
Listing and transaction lifecycle rules.

Every status value used by the marketplace is declared here, together with the
tables that decide which transitions are legal. The tables are pure data: no
database access, no side effects. ``marketplace.coordinator`` is the only code
that applies them.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from .exceptions import Conflict


class ListingStatus(models.TextChoices):
    AVAILABLE = 'Available', _('Available')
    RESERVED = 'Reserved', _('Reserved')
    SOLD = 'Sold', _('Sold')
    HIDDEN = 'Hidden', _('Hidden')
    REMOVED = 'Removed', _('Removed')


class TransactionStatus(models.TextChoices):
    INITIATED = 'Initiated', _('Initiated')
    RESERVED = 'Reserved', _('Reserved')
    COMPLETED = 'Completed', _('Completed')
    CANCELLED = 'Cancelled', _('Cancelled')


class PaymentStatus(models.TextChoices):
    PENDING = 'Pending', _('Pending')
    COMPLETED = 'Completed', _('Completed')
    CANCELLED = 'Cancelled', _('Cancelled')


class ReviewType(models.TextChoices):
    BUYER_TO_SELLER = 'BuyerToSeller', _('Buyer to seller')
    SELLER_TO_BUYER = 'SellerToBuyer', _('Seller to buyer')


class Operation(models.TextChoices):
    RESERVE = 'reserve', _('Reserve')
    COMPLETE = 'complete', _('Complete')
    CANCEL = 'cancel', _('Cancel')


ACTIVE_TRANSACTION_STATUSES = (
    TransactionStatus.INITIATED,
    TransactionStatus.RESERVED,
)

TERMINAL_TRANSACTION_STATUSES = (
    TransactionStatus.COMPLETED,
    TransactionStatus.CANCELLED,
)

# (current transaction status, operation) -> next transaction status.
# ``None`` as current status means "no transaction exists yet".
TRANSACTION_TRANSITIONS = {
    (None, Operation.RESERVE): TransactionStatus.RESERVED,
    (TransactionStatus.INITIATED, Operation.COMPLETE): TransactionStatus.COMPLETED,
    (TransactionStatus.RESERVED, Operation.COMPLETE): TransactionStatus.COMPLETED,
    (TransactionStatus.INITIATED, Operation.CANCEL): TransactionStatus.CANCELLED,
    (TransactionStatus.RESERVED, Operation.CANCEL): TransactionStatus.CANCELLED,
}

# operation -> (listing status required before, listing status after)
LISTING_EFFECTS = {
    Operation.RESERVE: (ListingStatus.AVAILABLE, ListingStatus.RESERVED),
    Operation.COMPLETE: (ListingStatus.RESERVED, ListingStatus.SOLD),
    Operation.CANCEL: (ListingStatus.RESERVED, ListingStatus.AVAILABLE),
}

PAYMENT_STATUS_FOR = {
    TransactionStatus.INITIATED: PaymentStatus.PENDING,
    TransactionStatus.RESERVED: PaymentStatus.PENDING,
    TransactionStatus.COMPLETED: PaymentStatus.COMPLETED,
    TransactionStatus.CANCELLED: PaymentStatus.CANCELLED,
}

# Moderation moves between the states that carry no transaction.
LISTING_MODERATION_TRANSITIONS = {
    ListingStatus.AVAILABLE: {ListingStatus.HIDDEN, ListingStatus.REMOVED},
    ListingStatus.HIDDEN: {ListingStatus.AVAILABLE, ListingStatus.REMOVED},
}


def is_active(status):
    return status in ACTIVE_TRANSACTION_STATUSES


def is_terminal(status):
    return status in TERMINAL_TRANSACTION_STATUSES


def can_transition(current, operation):
    return (current, operation) in TRANSACTION_TRANSITIONS


def next_transaction_status(current, operation):
    """
    Look up the transaction status produced by ``operation``.

    Raises:
        Conflict: if the table has no entry for ``(current, operation)``
    """
    try:
        return TRANSACTION_TRANSITIONS[(current, operation)]
    except KeyError:
        raise Conflict(
            f'Cannot {Operation(operation).label.lower()} a transaction that is '
            f'{current or "missing"}.'
        ) from None


def listing_effect(operation):
    """Return ``(required, resulting)`` listing statuses for ``operation``."""
    return LISTING_EFFECTS[operation]


def validate_moderation(current, target):
    """
    Check a moderator-driven listing status change.

    Raises:
        Conflict: if the listing cannot move from ``current`` to ``target``
    """
    if target not in LISTING_MODERATION_TRANSITIONS.get(current, set()):
        raise Conflict(
            f'Cannot change listing status from {current} to {target}.'
        )
