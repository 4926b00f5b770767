# Reconcile Listings Management Command
from django.core.management.base import BaseCommand

from marketplace.coordinator import coordinator
from marketplace.models import Listing


class Command(BaseCommand):
    help = 'Repairs listings whose status disagrees with their transactions.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report inconsistent listings without changing them.',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=1000,
            help='Number of listing IDs fetched per query.',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        batch_size = options['batch_size']

        self.stdout.write('Reconciling listings...')
        listing_ids = Listing.objects.order_by('pk').values_list('pk', flat=True).iterator(chunk_size=batch_size)
        count = 0
        repaired = 0

        for listing_id in listing_ids:
            if coordinator.reconcile_listing(listing_id, dry_run=dry_run):
                repaired += 1
                prefix = '[DRY-RUN] ' if dry_run else ''
                self.stdout.write(f'  {prefix}Listing {listing_id} repaired')

            count += 1
            if count % 100 == 0:
                self.stdout.write(f'Processed {count} listings...')

        self.stdout.write(f'Processed {count} listings total, {repaired} inconsistent.')

        if dry_run:
            self.stdout.write(self.style.SUCCESS('Dry run completed. No changes saved.'))
        else:
            self.stdout.write(self.style.SUCCESS('Reconciliation completed successfully.'))
