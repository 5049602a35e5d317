"""
Audit log model for the Shipping module.
"""

import uuid
from decimal import Decimal
from django.db import models
from django.conf import settings
from django.utils import timezone


def _json_safe(obj):
    if isinstance(obj, dict):
        return {k: _json_safe(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_json_safe(item) for item in obj]
    if isinstance(obj, Decimal):
        return str(obj)
    return obj


class AuditLog(models.Model):
    """
    Audit trail for shipment, order and waybill changes.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    entity_type = models.CharField(
        max_length=50,
        help_text="Type of entity (Shipment, Order, Warehouse)"
    )
    entity_id = models.CharField(max_length=64)
    action = models.CharField(
        max_length=50,
        help_text="Action performed (created, status_changed, cancelled, edited)"
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='shipping_audit_logs'
    )
    old_values = models.JSONField(default=dict, blank=True)
    new_values = models.JSONField(default=dict, blank=True)
    notes = models.TextField(blank=True)
    timestamp = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['entity_type', 'entity_id', '-timestamp']),
            models.Index(fields=['action', '-timestamp']),
        ]

    def __str__(self):
        return f"{self.entity_type} {self.entity_id} - {self.action} at {self.timestamp}"

    @classmethod
    def log_change(cls, entity, action: str, user=None, old_values=None, new_values=None, notes=""):
        """
        Create an audit log entry for an entity change.

        Args:
            entity: The model instance being audited
            action: The action performed
            user: User who performed the action
            old_values: Previous state
            new_values: New state
            notes: Additional notes
        """
        if user is not None and not getattr(user, 'is_authenticated', False):
            user = None
        return cls.objects.create(
            entity_type=entity.__class__.__name__,
            entity_id=str(entity.pk),
            action=action,
            user=user,
            old_values=_json_safe(old_values or {}),
            new_values=_json_safe(new_values or {}),
            notes=notes
        )

    @classmethod
    def log_status_change(cls, entity, old_status: str, new_status: str, user=None, notes=""):
        """Log a status change for an entity."""
        return cls.log_change(
            entity=entity,
            action='status_changed',
            user=user,
            old_values={'status': old_status},
            new_values={'status': new_status},
            notes=notes
        )
