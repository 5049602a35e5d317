"""
Warehouse Service for the Shipping module.

Registers pickup locations with the carrier and keeps the local
warehouse table in step with the carrier's list.
"""

import logging
from typing import Any, Dict, List

from django.db import transaction
from django.utils import timezone

from ..adapters.carrier_adapter import CarrierGatewayInterface, get_carrier_gateway
from ..adapters.validation import PINCODE_RE
from ..exceptions import ValidationException
from ..models import AuditLog, Warehouse, WarehouseStatus

logger = logging.getLogger(__name__)


class WarehouseService:
    """Service class for pickup warehouse operations."""

    REQUIRED_FIELDS = ['name', 'phone', 'email', 'address', 'city', 'pin', 'state']

    def __init__(self, gateway: CarrierGatewayInterface = None):
        self._gateway = gateway

    @property
    def gateway(self) -> CarrierGatewayInterface:
        return self._gateway or get_carrier_gateway()

    def register_warehouse(self, data: Dict[str, Any], user=None) -> Warehouse:
        """
        Register a warehouse with the carrier and store it locally as active.

        Args:
            data: name, phone, email, address, city, pin, state and optional
                registered_name, country and return_* fields
            user: User performing the registration

        Returns:
            The saved Warehouse

        Raises:
            ValidationException: Missing fields or bad pincode
            CarrierException: Every registration strategy failed
        """
        errors = {field: 'required' for field in self.REQUIRED_FIELDS if not str(data.get(field) or '').strip()}
        if data.get('pin') and not PINCODE_RE.match(str(data['pin'])):
            errors['pin'] = 'must be 6 digits'
        if errors:
            raise ValidationException("Warehouse details are incomplete", errors)

        payload = self._registration_payload(data)
        attempt = self.gateway.register_warehouse(payload)

        with transaction.atomic():
            warehouse, created = Warehouse.objects.update_or_create(
                name=payload['name'],
                defaults={
                    'registered_name': payload['registered_name'],
                    'phone': payload['phone'],
                    'email': payload['email'],
                    'address': payload['address'],
                    'city': payload['city'],
                    'state': payload['state'],
                    'pin': payload['pin'],
                    'country': payload['country'],
                    'return_address': payload['return_address'],
                    'return_city': payload['return_city'],
                    'return_state': payload['return_state'],
                    'return_pin': payload['return_pin'],
                    'return_country': payload['return_country'],
                    'status': WarehouseStatus.ACTIVE,
                    'carrier_response': attempt.data if isinstance(attempt.data, dict) else {'response': attempt.data},
                    'last_synced_at': timezone.now(),
                }
            )
            AuditLog.log_change(
                entity=warehouse,
                action='registered' if created else 'updated',
                user=user,
                new_values={'strategy': attempt.strategy, 'pin': warehouse.pin},
            )

        logger.info(f"Warehouse {warehouse.name} registered via {attempt.strategy}")
        return warehouse

    @staticmethod
    def _registration_payload(data: Dict[str, Any]) -> Dict[str, Any]:
        name = str(data['name']).strip()
        return {
            'name': name,
            'registered_name': data.get('registered_name') or name,
            'phone': str(data['phone']),
            'email': data['email'],
            'address': data['address'],
            'city': data['city'],
            'state': data['state'],
            'pin': str(data['pin']),
            'country': data.get('country') or 'India',
            'return_address': data.get('return_address') or data['address'],
            'return_city': data.get('return_city') or data['city'],
            'return_state': data.get('return_state') or data['state'],
            'return_pin': str(data.get('return_pin') or data['pin']),
            'return_country': data.get('return_country') or data.get('country') or 'India',
        }

    def sync_from_carrier(self) -> List[Warehouse]:
        """Upsert local warehouses from the carrier's warehouse list."""
        records = self.gateway.fetch_warehouses()
        synced = []
        now = timezone.now()
        for record in records:
            if not record.get('name'):
                continue
            warehouse, _ = Warehouse.objects.update_or_create(
                name=record['name'],
                defaults={
                    'registered_name': record.get('registered_name', ''),
                    'phone': record.get('phone', ''),
                    'email': record.get('email', ''),
                    'address': record.get('address', ''),
                    'city': record.get('city', ''),
                    'state': record.get('state', ''),
                    'pin': record.get('pin', '')[:6],
                    'country': record.get('country') or 'India',
                    'return_address': record.get('return_address', ''),
                    'return_city': record.get('return_city', ''),
                    'return_state': record.get('return_state', ''),
                    'return_pin': record.get('return_pin', '')[:6],
                    'return_country': record.get('return_country') or 'India',
                    'status': WarehouseStatus.ACTIVE if record.get('active', True) else WarehouseStatus.INACTIVE,
                    'last_synced_at': now,
                }
            )
            synced.append(warehouse)
        logger.info(f"Synced {len(synced)} warehouses from carrier")
        return synced

    def list_warehouses(self, active_only: bool = True) -> List[Warehouse]:
        queryset = Warehouse.objects.all()
        if active_only:
            queryset = queryset.filter(status=WarehouseStatus.ACTIVE)
        return list(queryset)
