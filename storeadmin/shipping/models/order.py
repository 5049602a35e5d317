"""
Order model as seen by the Shipping module.

Orders are owned by the storefront CRUD; only the fields the shipment
flow reads or writes are modelled here.
"""

import uuid
from decimal import Decimal
from django.db import models
from django.utils import timezone


class OrderStatus(models.TextChoices):
    """Canonical order status vocabulary."""
    PENDING = 'PENDING', 'Pending'
    CONFIRMED = 'CONFIRMED', 'Confirmed'
    PROCESSING = 'PROCESSING', 'Processing'
    PAID = 'PAID', 'Paid'
    DISPATCHED = 'DISPATCHED', 'Dispatched'
    DELIVERED = 'DELIVERED', 'Delivered'
    COMPLETED = 'COMPLETED', 'Completed'
    CANCELLED = 'CANCELLED', 'Cancelled'
    RETURN_INITIATED = 'RETURN_INITIATED', 'Return Initiated'
    REPLACEMENT_INITIATED = 'REPLACEMENT_INITIATED', 'Replacement Initiated'


class PaymentMethod(models.TextChoices):
    COD = 'cod', 'Cash on delivery'
    PREPAID = 'prepaid', 'Prepaid'


class Order(models.Model):
    """Customer order with its shipping address and shipment linkage."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.CharField(
        max_length=50,
        unique=True,
        help_text="Unique order identifier (auto-generated)"
    )
    status = models.CharField(
        max_length=30,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING
    )

    # Customer
    customer_name = models.CharField(max_length=200)
    customer_email = models.EmailField(blank=True)
    customer_phone = models.CharField(max_length=20)
    shipping_address = models.JSONField(
        default=dict,
        help_text="address, city, state, pincode, country"
    )

    items = models.JSONField(
        default=list,
        blank=True,
        help_text="Line items: name, category, quantity, price"
    )
    payment_method = models.CharField(
        max_length=10,
        choices=PaymentMethod.choices,
        default=PaymentMethod.PREPAID
    )
    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00')
    )

    # Shipment linkage
    shipment_created = models.BooleanField(default=False)
    waybill = models.CharField(max_length=64, blank=True)
    shipment_details = models.JSONField(default=dict, blank=True)
    reverse_shipment = models.JSONField(default=dict, blank=True)
    replacement_shipment = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', '-created_at']),
            models.Index(fields=['waybill']),
        ]

    def __str__(self):
        return f"Order {self.order_number} - {self.customer_name}"

    def save(self, *args, **kwargs):
        """Override save to auto-generate order number if not provided."""
        if not self.order_number:
            timestamp = timezone.now().strftime('%Y%m%d%H%M%S')
            self.order_number = f"ORD-{timestamp}-{str(self.id)[:8].upper()}"
        super().save(*args, **kwargs)

    @property
    def is_cod(self):
        return self.payment_method == PaymentMethod.COD

    @property
    def total_quantity(self):
        return sum(int(item.get('quantity', 1) or 1) for item in self.items) or 1

    @property
    def product_description(self):
        names = [item.get('name', '') for item in self.items if item.get('name')]
        return ', '.join(names)[:200] or 'General merchandise'
