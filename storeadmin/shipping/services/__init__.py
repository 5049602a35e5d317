"""
Shipping Services
"""

from .workflow import ShipmentWorkflow, WaybillWorkflow, validate_shipment_workflow
from .waybill_service import WaybillPoolService
from .manifest_builder import ManifestBuilder
from .shipment_service import ShipmentService, ShipmentResult
from .warehouse_service import WarehouseService

__all__ = [
    # Workflow validators
    'ShipmentWorkflow', 'WaybillWorkflow', 'validate_shipment_workflow',

    # Services
    'WaybillPoolService', 'ManifestBuilder', 'ShipmentService', 'ShipmentResult',
    'WarehouseService',
]
