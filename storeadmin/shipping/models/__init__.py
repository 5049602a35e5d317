"""
Shipping Models
"""

from .waybill import Waybill, WaybillStatus, WaybillSource, TERMINAL_WAYBILL_STATUSES
from .order import Order, OrderStatus, PaymentMethod
from .warehouse import Warehouse, WarehouseStatus
from .shipment import (
    Shipment, ShipmentStatus, ShipmentType, TERMINAL_SHIPMENT_STATUSES,
    EDITABLE_SHIPMENT_STATUSES, CANCELLABLE_SHIPMENT_STATUSES
)
from .audit import AuditLog

__all__ = [
    # Waybill pool
    'Waybill', 'WaybillStatus', 'WaybillSource', 'TERMINAL_WAYBILL_STATUSES',

    # Collaborators
    'Order', 'OrderStatus', 'PaymentMethod',
    'Warehouse', 'WarehouseStatus',

    # Shipments
    'Shipment', 'ShipmentStatus', 'ShipmentType', 'TERMINAL_SHIPMENT_STATUSES',
    'EDITABLE_SHIPMENT_STATUSES', 'CANCELLABLE_SHIPMENT_STATUSES',

    # Audit
    'AuditLog',
]
