from django.core.management.base import BaseCommand

from shipping.models import WaybillSource
from shipping.services import WaybillPoolService


class Command(BaseCommand):
    help = "Top up the waybill pool when GENERATED stock is below the minimum"

    def add_arguments(self, parser):
        parser.add_argument('--min-stock', type=int, default=None,
                            help='Threshold; defaults to SHIPPING["WAYBILL_MIN_STOCK"]')
        parser.add_argument('--source', choices=['carrier', 'demo'], default='carrier',
                            help='Generate from the carrier or force demo codes')

    def handle(self, *args, **options):
        pool = WaybillPoolService()
        source = WaybillSource.DEMO if options['source'] == 'demo' else None
        before = pool.available_count()
        batch = pool.ensure_minimum_stock(options['min_stock'], source=source)

        if batch is None:
            self.stdout.write(f"No waybills generated; {pool.available_count()} available (was {before})")
            return

        message = f"Generated {len(batch)} {batch.source} waybills; {pool.available_count()} available"
        if batch.is_demo:
            self.stdout.write(self.style.WARNING(message))
        else:
            self.stdout.write(self.style.SUCCESS(message))
