"""
Shipment model for the Shipping module.
"""

import uuid
from django.db import models
from django.conf import settings
from django.utils import timezone


class ShipmentStatus(models.TextChoices):
    """Carrier consignment lifecycle."""
    PENDING = 'PENDING', 'Pending'
    CREATED = 'CREATED', 'Created'
    MANIFESTED = 'MANIFESTED', 'Manifested'
    IN_TRANSIT = 'IN_TRANSIT', 'In Transit'
    DELIVERED = 'DELIVERED', 'Delivered'
    CANCELLED = 'CANCELLED', 'Cancelled'
    RTO = 'RTO', 'Return To Origin'


class ShipmentType(models.TextChoices):
    """Direction and shape of a consignment."""
    FORWARD = 'FORWARD', 'Forward'
    REVERSE = 'REVERSE', 'Reverse'
    REPLACEMENT = 'REPLACEMENT', 'Replacement'
    MPS = 'MPS', 'Multi-piece shipment'


TERMINAL_SHIPMENT_STATUSES = (
    ShipmentStatus.DELIVERED, ShipmentStatus.CANCELLED, ShipmentStatus.RTO
)
EDITABLE_SHIPMENT_STATUSES = (
    ShipmentStatus.PENDING, ShipmentStatus.CREATED, ShipmentStatus.MANIFESTED,
)
CANCELLABLE_SHIPMENT_STATUSES = (
    ShipmentStatus.PENDING, ShipmentStatus.CREATED,
    ShipmentStatus.MANIFESTED, ShipmentStatus.IN_TRANSIT,
)


class Shipment(models.Model):
    """
    One carrier consignment tied to an order.

    Created once the carrier accepts the manifest. Cancellation is a status
    change; shipments are never deleted.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(
        'Order',
        on_delete=models.PROTECT,
        related_name='shipments',
        help_text="Order this shipment belongs to"
    )

    # Waybills
    waybill_numbers = models.JSONField(
        default=list,
        help_text="All waybill codes of the consignment, primary first"
    )
    primary_waybill = models.CharField(
        max_length=64,
        unique=True,
        help_text="Master waybill, member of waybill_numbers"
    )

    shipment_type = models.CharField(
        max_length=20,
        choices=ShipmentType.choices,
        default=ShipmentType.FORWARD
    )
    status = models.CharField(
        max_length=20,
        choices=ShipmentStatus.choices,
        default=ShipmentStatus.PENDING,
        help_text="Current shipment status"
    )

    # Pickup
    pickup_location = models.CharField(
        max_length=100,
        help_text="Registered warehouse name used for pickup"
    )
    warehouse = models.JSONField(
        default=dict,
        blank=True,
        help_text="Snapshot of the pickup warehouse at creation time"
    )

    customer_details = models.JSONField(default=dict, blank=True)
    package_details = models.JSONField(
        default=dict,
        blank=True,
        help_text="Weight, dimensions, payment mode, COD amount, product description"
    )

    # Carrier data
    carrier_response = models.JSONField(default=dict, blank=True)
    pickup_request = models.JSONField(default=dict, blank=True)

    # Tracking
    tracking_events = models.JSONField(
        default=list,
        blank=True,
        help_text="Append-only list of {timestamp, status, location, description}"
    )
    tracking_status = models.CharField(max_length=100, blank=True)
    tracking_location = models.CharField(max_length=255, blank=True)
    estimated_delivery = models.CharField(max_length=64, blank=True)
    last_tracked_at = models.DateTimeField(null=True, blank=True)

    # Documents
    label_generated = models.BooleanField(default=False)
    label_url = models.URLField(max_length=500, blank=True)

    is_demo = models.BooleanField(
        default=False,
        help_text="Created with demo waybills instead of carrier-issued numbers"
    )
    is_active = models.BooleanField(default=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_shipments'
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='updated_shipments'
    )
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['order', 'status']),
            models.Index(fields=['status', 'created_at']),
            models.Index(fields=['shipment_type', 'status']),
        ]

    def __str__(self):
        return f"Shipment {self.primary_waybill} ({self.status})"

    def save(self, *args, **kwargs):
        if self.primary_waybill and self.primary_waybill not in (self.waybill_numbers or []):
            self.waybill_numbers = [self.primary_waybill] + list(self.waybill_numbers or [])
        super().save(*args, **kwargs)

    def append_tracking_events(self, events):
        """Append events not already recorded. Returns the number added."""
        known = {
            (e.get('timestamp'), e.get('status'), e.get('location'))
            for e in self.tracking_events
        }
        added = 0
        for event in events:
            key = (event.get('timestamp'), event.get('status'), event.get('location'))
            if key in known:
                continue
            self.tracking_events.append(dict(event))
            known.add(key)
            added += 1
        return added

    @property
    def is_terminal(self):
        return self.status in TERMINAL_SHIPMENT_STATUSES

    @property
    def payment_mode(self):
        return self.package_details.get('payment_mode', '')
