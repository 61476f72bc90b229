"""
Management command to release expired reservations.

Usage:
    python manage.py release_expired_reservations
    python manage.py release_expired_reservations --dry-run
"""

from django.core.management.base import BaseCommand

from palletman import inventory
from palletman.models import Reservation


class Command(BaseCommand):
    """Release expired reservations command."""

    help = 'Returns stock held by expired reservations to its pallets'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show how many would be released without releasing them'
        )

    def handle(self, *args, **options):
        if options['dry_run']:
            lapsed = Reservation.objects.lapsed().count()
            self.stdout.write(f'{lapsed} reservation(s) would be released')
        else:
            count = inventory.release_expired()
            self.stdout.write(
                self.style.SUCCESS(f'{count} reservation(s) released')
            )
