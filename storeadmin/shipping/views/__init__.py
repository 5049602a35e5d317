"""
Shipping Views
"""

from .shipment_views import (
    ShipmentViewSet, create_shipment, get_shipment, track_shipment, manage_shipment,
    update_shipment_status, check_serviceability, shipping_label, schedule_pickup,
    update_ewaybill
)
from .waybill_views import waybills
from .warehouse_views import warehouses

__all__ = [
    'ShipmentViewSet',
    'create_shipment', 'get_shipment', 'track_shipment', 'manage_shipment',
    'update_shipment_status', 'check_serviceability', 'shipping_label',
    'schedule_pickup', 'update_ewaybill',
    'waybills', 'warehouses',
]
