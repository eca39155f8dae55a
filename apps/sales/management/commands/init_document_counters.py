"""
Management command to seed document counters for existing dealers.

Counters that already exist are left untouched, so the command is safe
to re-run after importing legacy documents.

Usage:
    python manage.py init_document_counters
    python manage.py init_document_counters --dealer northside-motors --start 1001
    python manage.py init_document_counters --dry-run
"""

from django.core.management.base import BaseCommand, CommandError

from apps.dealers.models import Dealer
from apps.sales.models import DocumentType
from apps.sales.services import get_counter, highest_existing_sequence, initialize_counter


class Command(BaseCommand):
    help = 'Create missing document counters, continuing after existing document numbers'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dealer',
            help='Only seed counters for the dealer with this slug',
        )
        parser.add_argument(
            '--start',
            type=int,
            help='Start number for new counters instead of the highest existing number + 1',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be created without making changes',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        start = options['start']

        if start is not None and start < 1:
            raise CommandError('--start must be at least 1')

        dealers = Dealer.objects.all()
        if options['dealer']:
            dealers = dealers.filter(slug=options['dealer'])
            if not dealers.exists():
                raise CommandError(f"Dealer '{options['dealer']}' not found")

        created = 0
        for dealer in dealers:
            for document_type in DocumentType.values:
                if get_counter(dealer.id, document_type) is not None:
                    continue

                next_number = start
                if next_number is None:
                    next_number = (highest_existing_sequence(dealer.id, document_type) or 0) + 1
                prefix = dealer.get_document_prefix(document_type)

                self.stdout.write(
                    f'  - {dealer.slug} | {document_type} | prefix "{prefix}" | next {next_number}'
                )

                if not dry_run and initialize_counter(dealer.id, document_type, next_number, prefix):
                    created += 1

        if dry_run:
            self.stdout.write(
                self.style.WARNING('\n--dry-run mode: No changes made.')
            )
            return

        self.stdout.write(
            self.style.SUCCESS(f'\nCreated {created} document counter(s).')
        )
