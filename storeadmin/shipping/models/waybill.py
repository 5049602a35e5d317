"""
Waybill pool model for the Shipping module.
"""

import uuid
from django.db import models
from django.utils import timezone


class WaybillStatus(models.TextChoices):
    """Waybill lifecycle: GENERATED -> RESERVED -> USED, or CANCELLED."""
    GENERATED = 'GENERATED', 'Generated'
    RESERVED = 'RESERVED', 'Reserved'
    USED = 'USED', 'Used'
    CANCELLED = 'CANCELLED', 'Cancelled'


class WaybillSource(models.TextChoices):
    """Where a waybill number came from."""
    DELHIVERY_BULK = 'DELHIVERY_BULK', 'Delhivery bulk fetch'
    DELHIVERY_SINGLE = 'DELHIVERY_SINGLE', 'Delhivery single fetch'
    DEMO = 'DEMO', 'Demo'


TERMINAL_WAYBILL_STATUSES = (WaybillStatus.USED, WaybillStatus.CANCELLED)


class Waybill(models.Model):
    """
    A carrier tracking number held in the local pool.

    Numbers are fetched ahead of time and consumed by shipment creation.
    Only USED waybills carry an order/shipment association.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code = models.CharField(
        max_length=64,
        unique=True,
        help_text="Carrier-issued waybill number"
    )
    status = models.CharField(
        max_length=20,
        choices=WaybillStatus.choices,
        default=WaybillStatus.GENERATED,
        help_text="Current pool status"
    )
    source = models.CharField(
        max_length=20,
        choices=WaybillSource.choices,
        default=WaybillSource.DELHIVERY_BULK,
        help_text="How the number was obtained"
    )

    # Reservation
    reserved_by = models.CharField(max_length=100, blank=True)
    reserved_at = models.DateTimeField(null=True, blank=True)

    # Usage
    order_id = models.CharField(max_length=64, blank=True)
    shipment_id = models.CharField(max_length=64, blank=True)
    used_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    generated_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)
    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Batch information for the generation request"
    )

    class Meta:
        ordering = ['generated_at']
        indexes = [
            models.Index(fields=['status', 'generated_at']),
            models.Index(fields=['source', 'status']),
            models.Index(fields=['order_id', 'shipment_id']),
            models.Index(fields=['status', 'reserved_at']),
        ]

    def __str__(self):
        return f"{self.code} ({self.status})"

    @property
    def is_demo(self):
        return self.source == WaybillSource.DEMO

    @property
    def is_terminal(self):
        return self.status in TERMINAL_WAYBILL_STATUSES
