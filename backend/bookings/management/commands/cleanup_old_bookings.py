from django.core.management.base import BaseCommand
from django.utils import timezone
from datetime import timedelta
from bookings.models import Booking
import logging

logger = logging.getLogger(__name__)

FINISHED_STATUSES = [Booking.STATUS_COMPLETED, Booking.STATUS_CANCELLED]


class Command(BaseCommand):
    help = "Clean up completed and cancelled bookings."

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            type=int,
            default=30,
            help="Delete finished bookings older than this many days (default: 30).",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be deleted without actually deleting.",
        )

    def handle(self, *args, **options):
        days = options["days"]
        dry_run = options["dry_run"]
        cutoff = timezone.now() - timedelta(days=days)

        old_bookings = Booking.objects.filter(
            created_at__lt=cutoff,
            status__in=FINISHED_STATUSES,
        )
        count = old_bookings.count()

        if dry_run:
            self.stdout.write(
                self.style.WARNING(
                    f"DRY RUN: Would delete {count} finished bookings older than {days} days."
                )
            )
        else:
            old_bookings.delete()
            logger.info("Cleaned up %s finished bookings", count)
            self.stdout.write(
                self.style.SUCCESS(
                    f"Deleted {count} finished bookings older than {days} days."
                )
            )
