"""
Tests for Django signals that automatically recalculate ratings.

Every review create, update and delete must leave the reviewed user's
``rating`` equal to the rounded mean of the reviews they received, and
``total_reviews`` equal to their count.
"""

from decimal import Decimal
from unittest import mock

from django.db import DatabaseError
from django.test import SimpleTestCase, TestCase

from marketplace.lifecycle import ReviewType
from marketplace.models import Review
from marketplace.ratings import RatingAggregator, average_rating, rating_aggregator
from marketplace.reviews import submit_review
from tests.helpers import create_completed_transaction, create_test_user


class AverageRatingTests(SimpleTestCase):
    """Rounding of the mean rating."""

    def test_no_reviews_is_zero(self):
        self.assertEqual(average_rating(0, 0), Decimal('0.0'))

    def test_exact_mean(self):
        self.assertEqual(average_rating(9, 2), Decimal('4.5'))

    def test_rounds_to_one_decimal(self):
        self.assertEqual(average_rating(13, 3), Decimal('4.3'))
        self.assertEqual(average_rating(14, 3), Decimal('4.7'))

    def test_half_rounds_up(self):
        self.assertEqual(average_rating(15, 4), Decimal('3.8'))
        self.assertEqual(average_rating(9, 4), Decimal('2.3'))


class ReviewSignalTests(TestCase):
    """Rating recomputation triggered by review writes."""

    def setUp(self):
        self.seller = create_test_user('seller@test.com')
        self.buyers = [create_test_user(f'buyer{i}@test.com') for i in range(3)]
        self.transactions = [
            create_completed_transaction(self.seller, buyer, title=f'Item {i}')
            for i, buyer in enumerate(self.buyers)
        ]

    def review(self, index, rating):
        return submit_review(
            self.buyers[index].pk,
            self.transactions[index].pk,
            ReviewType.BUYER_TO_SELLER,
            rating
        )

    def test_creating_review_updates_rating(self):
        self.assertEqual(self.seller.rating, Decimal('0.0'))

        self.review(0, 4)

        self.seller.refresh_from_db()
        self.assertEqual(self.seller.rating, Decimal('4.0'))
        self.assertEqual(self.seller.total_reviews, 1)

    def test_rating_is_rounded_mean_of_all_reviews(self):
        self.review(0, 5)
        self.review(1, 4)
        self.review(2, 4)

        self.seller.refresh_from_db()
        self.assertEqual(self.seller.rating, Decimal('4.3'))
        self.assertEqual(self.seller.total_reviews, 3)

    def test_updating_review_recomputes_rating(self):
        review = self.review(0, 5)
        self.review(1, 3)

        review.rating = 1
        review.save()

        self.seller.refresh_from_db()
        self.assertEqual(self.seller.rating, Decimal('2.0'))
        self.assertEqual(self.seller.total_reviews, 2)

    def test_deleting_review_recomputes_rating(self):
        first = self.review(0, 5)
        self.review(1, 2)

        first.delete()

        self.seller.refresh_from_db()
        self.assertEqual(self.seller.rating, Decimal('2.0'))
        self.assertEqual(self.seller.total_reviews, 1)

    def test_deleting_last_review_resets_rating(self):
        review = self.review(0, 5)

        review.delete()

        self.seller.refresh_from_db()
        self.assertEqual(self.seller.rating, Decimal('0.0'))
        self.assertEqual(self.seller.total_reviews, 0)

    def test_reviews_of_other_users_do_not_count(self):
        self.review(0, 5)
        submit_review(self.seller.pk, self.transactions[0].pk, ReviewType.SELLER_TO_BUYER, 1)

        self.seller.refresh_from_db()
        self.buyers[0].refresh_from_db()
        self.assertEqual(self.seller.rating, Decimal('5.0'))
        self.assertEqual(self.buyers[0].rating, Decimal('1.0'))

    def test_aggregation_failure_keeps_review(self):
        with mock.patch.object(RatingAggregator, 'calculate', side_effect=DatabaseError('boom')):
            with self.assertLogs('marketplace.ratings', level='ERROR'):
                review = self.review(0, 5)

        self.assertTrue(Review.objects.filter(pk=review.pk).exists())
        self.seller.refresh_from_db()
        self.assertEqual(self.seller.total_reviews, 0)

        # The next recomputation repairs the stale rating.
        rating_aggregator.recompute_rating(self.seller.pk)
        self.seller.refresh_from_db()
        self.assertEqual(self.seller.rating, Decimal('5.0'))
        self.assertEqual(self.seller.total_reviews, 1)
