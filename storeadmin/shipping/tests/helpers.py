"""
Shared fixtures for Shipping tests.
"""

import json
from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.utils import timezone

from ..models import (
    Order, OrderStatus, PaymentMethod, Shipment, ShipmentStatus, ShipmentType,
    Warehouse, WarehouseStatus, Waybill, WaybillSource
)


def create_order(status=OrderStatus.CONFIRMED, payment_method=PaymentMethod.PREPAID, **overrides):
    data = {
        'status': status,
        'customer_name': 'Asha Rao',
        'customer_email': 'asha@example.com',
        'customer_phone': '+91 98765 43210',
        'shipping_address': {
            'address': '12 MG Road',
            'city': 'Bengaluru',
            'state': 'Karnataka',
            'pincode': '560001',
            'country': 'India',
        },
        'items': [
            {'name': 'Cotton T-Shirt', 'category': 'clothing', 'quantity': 2, 'price': '499.00'},
        ],
        'payment_method': payment_method,
        'total_amount': Decimal('998.00'),
    }
    data.update(overrides)
    return Order.objects.create(**data)


def create_warehouse(name='Main Warehouse', status=WarehouseStatus.ACTIVE, **overrides):
    data = {
        'name': name,
        'phone': '9876543210',
        'email': 'warehouse@example.com',
        'address': 'Plot 4, Andheri East',
        'city': 'Mumbai',
        'state': 'Maharashtra',
        'pin': '400069',
        'status': status,
    }
    data.update(overrides)
    return Warehouse.objects.create(**data)


def create_shipment_record(order, waybill='1490000100', status=ShipmentStatus.MANIFESTED, **overrides):
    """Shipment row written directly, without going through the carrier."""
    data = {
        'order': order,
        'waybill_numbers': [waybill],
        'primary_waybill': waybill,
        'shipment_type': ShipmentType.FORWARD,
        'status': status,
        'pickup_location': 'Main Warehouse',
        'package_details': {'payment_mode': 'Prepaid', 'cod_amount': '0', 'weight': 500.0},
    }
    data.update(overrides)
    return Shipment.objects.create(**data)


def seed_waybills(count, source=WaybillSource.DELHIVERY_BULK, prefix='14900000'):
    """Create ``count`` GENERATED waybills, oldest first."""
    start = timezone.now() - timedelta(hours=1)
    return [
        Waybill.objects.create(
            code=f'{prefix}{index:04d}',
            source=source,
            generated_at=start + timedelta(seconds=index),
        )
        for index in range(count)
    ]


def make_response(payload=None, status_code=200, content_type='application/json', content=b''):
    """Stand-in for a ``requests.Response``."""
    response = mock.Mock()
    response.status_code = status_code
    response.headers = {'Content-Type': content_type}
    response.content = content
    if isinstance(payload, Exception):
        response.json.side_effect = payload
        response.text = 'not json'
    else:
        response.json.return_value = payload
        response.text = json.dumps(payload)
    return response
