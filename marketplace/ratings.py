"""
Rating aggregation.

A user's ``rating`` and ``total_reviews`` are a materialized view over the
reviews they received. ``RatingAggregator`` is the only code that writes them;
it is triggered by the Review signals in ``marketplace.signals`` and by the
``recalculate_ratings`` management command.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal

from django.db import transaction
from django.db.models import Count, Sum

from .models import Review, User

logger = logging.getLogger(__name__)

ZERO_RATING = Decimal('0.0')
RATING_PRECISION = Decimal('0.1')


def average_rating(total, count):
    """
    Average of ``count`` ratings summing to ``total``, rounded half-up to 0.1.

    Returns:
        Decimal: 0.0 when there are no ratings
    """
    if not count:
        return ZERO_RATING
    return (Decimal(total) / Decimal(count)).quantize(RATING_PRECISION, rounding=ROUND_HALF_UP)


class RatingAggregator:
    """Recomputes derived rating fields from the Review table."""

    def calculate(self, user_id):
        """
        Compute the rating of a user without saving it.

        Args:
            user_id: ID of the reviewed user

        Returns:
            tuple: (rating: Decimal, total_reviews: int)
        """
        stats = Review.objects.filter(reviewed_user_id=user_id).aggregate(
            total=Sum('rating'),
            count=Count('id')
        )
        count = stats['count'] or 0
        return average_rating(stats['total'] or 0, count), count

    def recompute_rating(self, user_id):
        """
        Recompute and store ``rating`` and ``total_reviews`` for a user.

        Runs in a savepoint. Failures are logged and never propagate to the
        triggering review write; a stale rating is repaired by the next review
        mutation or by ``recalculate_ratings``.

        Args:
            user_id: ID of the reviewed user
        """
        try:
            with transaction.atomic():
                rating, total_reviews = self.calculate(user_id)
                User.objects.filter(pk=user_id).update(
                    rating=rating,
                    total_reviews=total_reviews
                )
            logger.info(
                f"Recomputed rating for user {user_id}: "
                f"rating={rating}, total_reviews={total_reviews}"
            )
        except Exception:
            logger.exception(f"Error recomputing rating for user {user_id}")


rating_aggregator = RatingAggregator()


def recompute_rating(user_id):
    """Module-level shortcut for ``rating_aggregator.recompute_rating``."""
    rating_aggregator.recompute_rating(user_id)
