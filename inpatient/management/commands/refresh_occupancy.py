from django.core.management.base import BaseCommand
from django.utils import timezone

from inpatient.services.events import broadcast
from inpatient.services.occupancy import refresh_cached_snapshot


class Command(BaseCommand):
    help = "Recompute the cached occupancy snapshot and broadcast an occupancy.changed event."

    def add_arguments(self, parser):
        parser.add_argument('--no-broadcast', action='store_true', help='only warm the cache')

    def handle(self, *args, **options):
        now = timezone.now()
        snapshot = refresh_cached_snapshot()
        if not options['no_broadcast']:
            broadcast({
                "type": "occupancy.changed",
                "reason": "refresh",
                "wardIds": [w['wardId'] for w in snapshot['wards']],
                "bedIds": [],
                "ts": now.isoformat(),
            })
        self.stdout.write(self.style.SUCCESS(
            f"Occupancy {snapshot['occupiedBeds']}/{snapshot['totalBeds']} ({snapshot['occupancyRate']}%) at {now}"
        ))
