from django.core.management.base import BaseCommand, CommandError

from shipping.exceptions import BusinessException
from shipping.services import WarehouseService


class Command(BaseCommand):
    help = "Pull the carrier's registered warehouses into the local store"

    def handle(self, *args, **options):
        try:
            warehouses = WarehouseService().sync_from_carrier()
        except BusinessException as e:
            raise CommandError(f"{e.code}: {e.message}")
        for warehouse in warehouses:
            self.stdout.write(f"  {warehouse.name} ({warehouse.pin}) {warehouse.status}")
        self.stdout.write(self.style.SUCCESS(f"Synced {len(warehouses)} warehouses"))
