"""
Shipping carrier adapters
"""

from .carrier_adapter import (
    CarrierGatewayInterface, WaybillBatch, ManifestResult, TrackingInfo,
    Serviceability, LabelDocument, AttemptResult,
    get_carrier_gateway, switch_to_mock_gateway, switch_to_real_gateway, reset_gateway
)

__all__ = [
    'CarrierGatewayInterface', 'WaybillBatch', 'ManifestResult', 'TrackingInfo',
    'Serviceability', 'LabelDocument', 'AttemptResult',
    'get_carrier_gateway', 'switch_to_mock_gateway', 'switch_to_real_gateway', 'reset_gateway',
]
