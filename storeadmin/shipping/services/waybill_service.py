"""
Waybill Pool service for the Shipping module.

Keeps a buffer of pre-fetched carrier waybills so shipment creation does
not depend on a live waybill call, and so freshly fetched numbers are not
used straight away.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from django.db import IntegrityError, transaction
from django.db.models import Count
from django.utils import timezone

from ..adapters.carrier_adapter import (
    CarrierGatewayInterface, WaybillBatch, generate_demo_waybills, get_carrier_gateway
)
from ..config import ShippingConfig
from ..exceptions import ValidationException
from ..models import Waybill, WaybillSource, WaybillStatus
from .workflow import WaybillWorkflow

logger = logging.getLogger(__name__)


class WaybillPoolService:
    """
    Service class for waybill pool operations.

    Every status change is a single conditional UPDATE filtered on the
    statuses the transition may start from, so concurrent callers never
    both win the same waybill.
    """

    def __init__(self, gateway: CarrierGatewayInterface = None, config: ShippingConfig = None):
        self._gateway = gateway
        self.config = config or ShippingConfig.from_settings()

    @property
    def gateway(self) -> CarrierGatewayInterface:
        return self._gateway or get_carrier_gateway()

    def get_available(self, count: int, source: str = None) -> List[Waybill]:
        """
        Return up to ``count`` GENERATED waybills, oldest first.

        Args:
            count: Maximum number of waybills
            source: Optional WaybillSource filter

        Returns:
            List of Waybill instances, possibly shorter than ``count``
        """
        if count <= 0:
            return []
        queryset = Waybill.objects.filter(status=WaybillStatus.GENERATED)
        if source:
            queryset = queryset.filter(source=source)
        return list(queryset.order_by('generated_at', 'code')[:count])

    def reserve(self, codes: List[str], reserved_by: str) -> int:
        """
        Flip GENERATED waybills among ``codes`` to RESERVED.

        Args:
            codes: Waybill codes to claim
            reserved_by: Reservation owner (actor id or request token)

        Returns:
            Number of waybills reserved; ``len(codes)`` minus this is the shortfall
        """
        if not codes:
            return 0
        reserved = Waybill.objects.filter(
            code__in=list(codes),
            status__in=WaybillWorkflow.sources_for(WaybillStatus.RESERVED),
        ).update(
            status=WaybillStatus.RESERVED,
            reserved_by=reserved_by,
            reserved_at=timezone.now(),
            updated_at=timezone.now(),
        )
        if reserved < len(set(codes)):
            logger.info(f"Reserved {reserved} of {len(set(codes))} waybills for {reserved_by}")
        return reserved

    def use(self, code: str, order_id, shipment_id) -> bool:
        """
        Mark a GENERATED or RESERVED waybill as USED by a shipment.

        Returns:
            False when the waybill was already USED or CANCELLED (no-op)
        """
        updated = Waybill.objects.filter(
            code=code,
            status__in=WaybillWorkflow.sources_for(WaybillStatus.USED),
        ).update(
            status=WaybillStatus.USED,
            order_id=str(order_id),
            shipment_id=str(shipment_id),
            used_at=timezone.now(),
            updated_at=timezone.now(),
        )
        if not updated:
            logger.debug(f"Waybill {code} not marked used: unknown or already terminal")
        return bool(updated)

    def cancel(self, code: str) -> bool:
        """Cancel a non-terminal waybill. Terminal waybills are left as they are."""
        updated = Waybill.objects.filter(
            code=code,
            status__in=WaybillWorkflow.sources_for(WaybillStatus.CANCELLED),
        ).update(
            status=WaybillStatus.CANCELLED,
            cancelled_at=timezone.now(),
            updated_at=timezone.now(),
        )
        if updated:
            logger.info(f"Waybill {code} cancelled")
        return bool(updated)

    def release(self, codes: List[str], reserved_by: str = None) -> int:
        """Return RESERVED waybills to GENERATED, optionally only those of one owner."""
        if not codes:
            return 0
        queryset = Waybill.objects.filter(
            code__in=list(codes),
            status__in=WaybillWorkflow.sources_for(WaybillStatus.GENERATED),
        )
        if reserved_by:
            queryset = queryset.filter(reserved_by=reserved_by)
        return queryset.update(
            status=WaybillStatus.GENERATED,
            reserved_by='',
            reserved_at=None,
            updated_at=timezone.now(),
        )

    def release_expired_reservations(self, ttl_minutes: int = None) -> int:
        """
        Expire reservations older than the TTL back to GENERATED.

        Returns:
            Number of waybills released
        """
        ttl = self.config.reservation_ttl_minutes if ttl_minutes is None else ttl_minutes
        cutoff = timezone.now() - timedelta(minutes=ttl)
        released = Waybill.objects.filter(
            status=WaybillStatus.RESERVED,
            reserved_at__lt=cutoff,
        ).update(
            status=WaybillStatus.GENERATED,
            reserved_by='',
            reserved_at=None,
            updated_at=timezone.now(),
        )
        if released:
            logger.warning(f"Released {released} waybill reservations older than {ttl} minutes")
        return released

    def store(self, codes: List[str], source: str, metadata: Dict[str, Any] = None) -> List[Waybill]:
        """
        Persist newly generated codes as GENERATED; duplicates are skipped.

        Returns:
            The Waybill rows created
        """
        existing = set(Waybill.objects.filter(code__in=codes).values_list('code', flat=True))
        created = []
        for code in codes:
            if code in existing:
                continue
            try:
                with transaction.atomic():
                    created.append(Waybill.objects.create(
                        code=code, source=source, metadata=dict(metadata or {})
                    ))
            except IntegrityError:
                logger.debug(f"Waybill {code} stored concurrently, skipping")
            existing.add(code)
        return created

    def generate_and_store(self, count: int, source: str = None) -> WaybillBatch:
        """
        Make one generation call for ``count`` waybills and store the result.

        Args:
            count: Number of waybills to generate
            source: ``WaybillSource.DEMO`` forces demo codes without calling the carrier

        Returns:
            The WaybillBatch that was stored
        """
        if count < 1 or count > self.config.max_waybills_per_request:
            raise ValidationException(
                f"Waybill count must be between 1 and {self.config.max_waybills_per_request}",
                {'count': count}
            )

        if source == WaybillSource.DEMO:
            batch = WaybillBatch(codes=generate_demo_waybills(count), source=WaybillSource.DEMO)
        else:
            batch = self.gateway.generate_waybills(count)

        timestamp = int(timezone.now().timestamp() * 1000)
        self.store(batch.codes, batch.source, {
            'batch_id': f'batch_{timestamp}',
            'generated_count': len(batch.codes),
            'fallback_reason': batch.fallback_reason,
        })
        logger.info(f"Stored {len(batch.codes)} {batch.source} waybills in the pool")
        return batch

    def available_count(self, source: str = None) -> int:
        queryset = Waybill.objects.filter(status=WaybillStatus.GENERATED)
        if source:
            queryset = queryset.filter(source=source)
        return queryset.count()

    def ensure_minimum_stock(self, min_stock: int = None, source: str = None) -> Optional[WaybillBatch]:
        """
        Top up the pool when GENERATED stock is below the threshold.

        Best effort: a racing caller may over- or under-fill, and failures
        are logged rather than raised.

        Returns:
            The generated batch, or None when no top-up was needed or it failed
        """
        threshold = self.config.min_stock if min_stock is None else min_stock
        available = self.available_count()
        if available >= threshold:
            return None

        shortfall = min(threshold - available, self.config.max_waybills_per_request)
        logger.info(f"Waybill pool at {available}, below minimum {threshold}; generating {shortfall}")
        try:
            return self.generate_and_store(shortfall, source=source)
        except Exception:
            logger.exception("Waybill pool replenishment failed")
            return None

    def get_stats(self) -> Dict[str, Any]:
        """Counts per status and per source."""
        by_status = dict(
            Waybill.objects.values_list('status').annotate(total=Count('id')).order_by()
        )
        by_source = dict(
            Waybill.objects.values_list('source').annotate(total=Count('id')).order_by()
        )
        return {
            'total': sum(by_status.values()),
            'generated': by_status.get(WaybillStatus.GENERATED, 0),
            'reserved': by_status.get(WaybillStatus.RESERVED, 0),
            'used': by_status.get(WaybillStatus.USED, 0),
            'cancelled': by_status.get(WaybillStatus.CANCELLED, 0),
            'by_source': by_source,
        }
