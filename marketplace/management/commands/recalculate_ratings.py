# Recalculate Ratings Management Command
from django.core.management.base import BaseCommand

from marketplace.models import User
from marketplace.ratings import rating_aggregator


class Command(BaseCommand):
    help = 'Recalculates user ratings from their reviews to ensure data consistency.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Run the command without saving changes to the database.',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=1000,
            help='Batch size for bulk processing.',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        batch_size = options['batch_size']

        self.stdout.write('Recalculating user ratings...')
        users = User.objects.order_by('pk').iterator(chunk_size=batch_size)
        updates = []
        count = 0
        changed = 0

        for user in users:
            new_rating, new_total = rating_aggregator.calculate(user.pk)

            if user.rating != new_rating or user.total_reviews != new_total:
                if dry_run:
                    self.stdout.write(
                        f'  [DRY-RUN] User {user.id} ({user.email}): '
                        f'Rating {user.rating} -> {new_rating}, Count {user.total_reviews} -> {new_total}'
                    )
                user.rating = new_rating
                user.total_reviews = new_total
                updates.append(user)
                changed += 1

            if len(updates) >= batch_size:
                if not dry_run:
                    User.objects.bulk_update(updates, ['rating', 'total_reviews'])
                updates = []

            count += 1
            if count % 100 == 0:
                self.stdout.write(f'Processed {count} users...')

        if updates and not dry_run:
            User.objects.bulk_update(updates, ['rating', 'total_reviews'])

        self.stdout.write(f'Processed {count} users total, {changed} out of date.')

        if dry_run:
            self.stdout.write(self.style.SUCCESS('Dry run completed. No changes saved.'))
        else:
            self.stdout.write(self.style.SUCCESS('Recalculation completed successfully.'))
