"""
Pickup warehouse model for the Shipping module.
"""

from django.db import models
from django.utils import timezone


class WarehouseStatus(models.TextChoices):
    ACTIVE = 'active', 'Active'
    INACTIVE = 'inactive', 'Inactive'
    PENDING = 'pending', 'Pending registration'


class Warehouse(models.Model):
    """Local copy of a pickup/return location registered with the carrier."""

    name = models.CharField(
        max_length=100,
        unique=True,
        help_text="Pickup location name as registered with the carrier"
    )
    registered_name = models.CharField(max_length=200, blank=True)
    phone = models.CharField(max_length=20)
    email = models.EmailField(blank=True)

    address = models.TextField()
    city = models.CharField(max_length=100)
    state = models.CharField(max_length=100, blank=True)
    pin = models.CharField(max_length=6)
    country = models.CharField(max_length=50, default='India')

    return_address = models.TextField(blank=True)
    return_city = models.CharField(max_length=100, blank=True)
    return_state = models.CharField(max_length=100, blank=True)
    return_pin = models.CharField(max_length=6, blank=True)
    return_country = models.CharField(max_length=50, default='India')

    status = models.CharField(
        max_length=10,
        choices=WarehouseStatus.choices,
        default=WarehouseStatus.PENDING
    )
    is_default = models.BooleanField(default=False)
    carrier_response = models.JSONField(default=dict, blank=True)
    last_synced_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "shipping_warehouses"
        ordering = ['name']
        verbose_name = "Pickup Warehouse"
        verbose_name_plural = "Pickup Warehouses"

    def __str__(self):
        return f"{self.name} ({self.city} {self.pin})"

    @property
    def is_active(self):
        return self.status == WarehouseStatus.ACTIVE

    def as_return_address(self):
        """Return address block, falling back to the pickup address."""
        return {
            'name': self.name,
            'address': self.return_address or self.address,
            'city': self.return_city or self.city,
            'state': self.return_state or self.state,
            'pin': self.return_pin or self.pin,
            'country': self.return_country or self.country,
            'phone': self.phone,
        }

    def snapshot(self):
        return {
            'name': self.name,
            'registered_name': self.registered_name,
            'phone': self.phone,
            'address': self.address,
            'city': self.city,
            'state': self.state,
            'pin': self.pin,
            'country': self.country,
        }
