"""
Review admission control.

Validates review requests against the transaction they refer to and the role
of the reviewer before anything reaches the Review table. Rating
recomputation is not done here: the Review signals hand every create, update
and delete to the rating aggregator.
"""

import logging
from datetime import timedelta

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from .exceptions import Conflict, Expired, Forbidden, InvalidOperation, NotFound
from .lifecycle import ReviewType, TransactionStatus
from .models import Review, Transaction, User
from .realtime import publish_on_commit

logger = logging.getLogger(__name__)

DEFAULT_EDIT_WINDOW_DAYS = 7


def edit_window():
    return timedelta(days=getattr(settings, 'REVIEW_EDIT_WINDOW_DAYS', DEFAULT_EDIT_WINDOW_DAYS))


def _validate_rating(rating):
    # bool is an int subclass; True must not pass as a 1-star rating.
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise InvalidOperation('Rating must be an integer between 1 and 5.')
    return rating


def _get_review(review_id):
    try:
        return Review.objects.get(pk=review_id)
    except Review.DoesNotExist:
        raise NotFound('Review not found.') from None


def submit_review(reviewer_id, transaction_id, review_type, rating, comment=None):
    """
    Create a review for a completed transaction.

    The reviewed user is derived from ``review_type``: a BuyerToSeller review
    is about the seller and must be written by the buyer, and vice versa.

    Args:
        reviewer_id: ID of the user writing the review
        transaction_id: Completed transaction being reviewed
        review_type: ReviewType value
        rating: Integer from 1 to 5
        comment: Optional text

    Returns:
        Review: The created review

    Raises:
        NotFound: Transaction does not exist
        InvalidOperation: Transaction not Completed, unknown type, bad rating,
            or type does not match the reviewer's role
        Forbidden: Reviewer is not a party to the transaction
        Conflict: Reviewer already reviewed this transaction
    """
    try:
        txn = Transaction.objects.get(pk=transaction_id)
    except Transaction.DoesNotExist:
        raise NotFound('Transaction not found.') from None

    if txn.status != TransactionStatus.COMPLETED:
        raise InvalidOperation('Can only review completed transactions.')

    if review_type not in ReviewType.values:
        raise InvalidOperation('Invalid review type.')

    _validate_rating(rating)

    if not txn.is_party(reviewer_id):
        logger.warning(
            f"Review rejected: user {reviewer_id} is not a party to transaction {transaction_id}"
        )
        raise Forbidden('You can only review transactions you took part in.')

    if review_type == ReviewType.BUYER_TO_SELLER:
        expected_reviewer_id, reviewed_user_id = txn.buyer_id, txn.seller_id
    else:
        expected_reviewer_id, reviewed_user_id = txn.seller_id, txn.buyer_id

    if reviewer_id != expected_reviewer_id:
        role = 'buyer' if review_type == ReviewType.BUYER_TO_SELLER else 'seller'
        raise InvalidOperation(f'Only the {role} can leave a {review_type} review.')

    if Review.objects.filter(reviewer_id=reviewer_id, transaction_id=txn.pk).exists():
        raise Conflict('You have already reviewed this transaction.')

    try:
        with transaction.atomic():
            review = Review.objects.create(
                reviewer_id=reviewer_id,
                reviewed_user_id=reviewed_user_id,
                transaction_id=txn.pk,
                listing_id=txn.listing_id,
                rating=rating,
                comment=(comment or '').strip(),
                type=review_type,
            )
            publish_on_commit(reviewed_user_id, 'review_received', {
                'review_id': review.pk,
                'transaction_id': txn.pk,
                'rating': review.rating,
                'type': review.type,
            })
    except IntegrityError:
        # Lost a race against a concurrent submission by the same reviewer.
        logger.warning(
            f"Duplicate review blocked by constraint. Reviewer: {reviewer_id}, Transaction: {transaction_id}"
        )
        raise Conflict('You have already reviewed this transaction.') from None

    logger.info(
        f"Review created. Review: {review.pk}, Reviewer: {reviewer_id}, "
        f"Reviewed user: {reviewed_user_id}, Transaction: {txn.pk}, Rating: {rating}"
    )
    return review


def update_review(review_id, actor_id, rating=None, comment=None):
    """
    Update rating and/or comment of a review within the edit window.

    Raises:
        NotFound: Review does not exist
        Forbidden: Actor is not the author
        Expired: Review is older than the edit window
        InvalidOperation: Rating out of range
    """
    review = _get_review(review_id)

    if review.reviewer_id != actor_id:
        raise Forbidden('You can only edit your own reviews.')

    if review.created_at < timezone.now() - edit_window():
        raise Expired(f'Reviews can only be edited within {edit_window().days} days.')

    update_fields = ['updated_at']
    if rating is not None:
        review.rating = _validate_rating(rating)
        update_fields.append('rating')
    if comment is not None:
        review.comment = comment.strip()
        update_fields.append('comment')

    with transaction.atomic():
        review.save(update_fields=update_fields)

    logger.info(f"Review updated. Review: {review.pk}, Fields: {update_fields}")
    return review


def delete_review(review_id, actor_id):
    """
    Delete a review as its author or as a moderator.

    Raises:
        NotFound: Review does not exist
        Forbidden: Actor is neither the author nor a moderator
    """
    review = _get_review(review_id)

    if review.reviewer_id != actor_id:
        actor = User.objects.filter(pk=actor_id).first()
        if actor is None or not actor.is_moderator():
            raise Forbidden('You can only delete your own reviews.')

    with transaction.atomic():
        review.delete()

    logger.info(f"Review deleted. Review: {review_id}, Actor: {actor_id}")
