"""
Django signals for automatic rating recalculation.

Every create, update or delete of a Review recomputes the reviewed user's
rating through the rating aggregator. Receivers run synchronously in the same
request, so the response that follows a review write already carries the new
rating.
"""

import logging

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import Review
from .ratings import rating_aggregator

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Review)
def update_rating_on_review_save(sender, instance, created, **kwargs):
    """
    Recompute the reviewed user's rating after a review is created or updated.

    Aggregation errors are handled inside the aggregator and never propagate,
    so a failed recomputation cannot roll back the review itself.
    """
    action = "created" if created else "updated"
    logger.debug(f"Review {instance.pk} {action}; recomputing rating for user {instance.reviewed_user_id}")
    rating_aggregator.recompute_rating(instance.reviewed_user_id)


@receiver(post_delete, sender=Review)
def update_rating_on_review_delete(sender, instance, **kwargs):
    """
    Recompute the reviewed user's rating after a review is deleted.

    When the last review is gone the rating resets to 0.0 and total_reviews to 0.
    """
    logger.debug(f"Review {instance.pk} deleted; recomputing rating for user {instance.reviewed_user_id}")
    rating_aggregator.recompute_rating(instance.reviewed_user_id)
