from django.core.management.base import BaseCommand

from shipping.services import WaybillPoolService


class Command(BaseCommand):
    help = "Return waybill reservations older than the TTL to the pool"

    def add_arguments(self, parser):
        parser.add_argument('--ttl-minutes', type=int, default=None,
                            help='Defaults to SHIPPING["WAYBILL_RESERVATION_TTL_MINUTES"]')

    def handle(self, *args, **options):
        released = WaybillPoolService().release_expired_reservations(options['ttl_minutes'])
        self.stdout.write(self.style.SUCCESS(f"Released {released} expired reservations"))
