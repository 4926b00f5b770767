from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase

from marketplace.lifecycle import ReviewType
from marketplace.models import User
from marketplace.reviews import submit_review
from tests.helpers import create_completed_transaction, create_test_user


class RecalculateRatingsCommandTests(TestCase):
    def setUp(self):
        self.seller = create_test_user('seller@test.com')
        self.buyer1 = create_test_user('b1@test.com')
        self.buyer2 = create_test_user('b2@test.com')
        self.idle = create_test_user('idle@test.com')

        txn1 = create_completed_transaction(self.seller, self.buyer1, title='Lamp')
        txn2 = create_completed_transaction(self.seller, self.buyer2, title='Chair')
        submit_review(self.buyer1.pk, txn1.pk, ReviewType.BUYER_TO_SELLER, 5)
        submit_review(self.buyer2.pk, txn2.pk, ReviewType.BUYER_TO_SELLER, 2)
        submit_review(self.seller.pk, txn1.pk, ReviewType.SELLER_TO_BUYER, 4)

        # Corrupt the stored values
        User.objects.filter(pk=self.seller.pk).update(rating=Decimal('1.0'), total_reviews=9)
        User.objects.filter(pk=self.idle.pk).update(rating=Decimal('4.0'), total_reviews=3)

    def test_recalculate_ratings(self):
        out = StringIO()
        call_command('recalculate_ratings', stdout=out)

        self.seller.refresh_from_db()
        self.assertEqual(self.seller.rating, Decimal('3.5'))
        self.assertEqual(self.seller.total_reviews, 2)

        self.idle.refresh_from_db()
        self.assertEqual(self.idle.rating, Decimal('0.0'))
        self.assertEqual(self.idle.total_reviews, 0)

        self.buyer1.refresh_from_db()
        self.assertEqual(self.buyer1.rating, Decimal('4.0'))
        self.assertIn('Recalculation completed successfully.', out.getvalue())

    def test_dry_run(self):
        out = StringIO()
        call_command('recalculate_ratings', '--dry-run', stdout=out)

        self.seller.refresh_from_db()
        self.assertEqual(self.seller.rating, Decimal('1.0'))
        self.assertEqual(self.seller.total_reviews, 9)
        self.assertIn('[DRY-RUN]', out.getvalue())
        self.assertIn('Dry run completed. No changes saved.', out.getvalue())

    def test_small_batch_size(self):
        call_command('recalculate_ratings', '--batch-size', '1', stdout=StringIO())

        self.seller.refresh_from_db()
        self.idle.refresh_from_db()
        self.assertEqual(self.seller.rating, Decimal('3.5'))
        self.assertEqual(self.idle.total_reviews, 0)
