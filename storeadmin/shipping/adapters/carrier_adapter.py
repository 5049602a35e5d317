"""
Carrier Gateway for the Shipping module.

Defines the interface every carrier integration implements, the result
types it returns and the module-level gateway switch used by services
and tests.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional

from ..config import ShippingConfig
from ..exceptions import ShipmentStateException
from ..models import WaybillSource, EDITABLE_SHIPMENT_STATUSES, CANCELLABLE_SHIPMENT_STATUSES
from .validation import build_edit_payload, validate_edit_restrictions

logger = logging.getLogger(__name__)


@dataclass
class WaybillBatch:
    """Waybill codes returned by one generation call."""
    codes: List[str]
    source: str
    fallback_reason: str = ''

    @property
    def is_demo(self) -> bool:
        return self.source == WaybillSource.DEMO

    def __len__(self):
        return len(self.codes)


@dataclass
class ManifestResult:
    """Accepted manifest: carrier waybills plus the raw response."""
    waybills: List[str]
    raw: Dict[str, Any] = field(default_factory=dict)
    upload_wbn: str = ''


@dataclass
class TrackingInfo:
    """Normalized tracking record."""
    waybill: str
    found: bool
    status: str = ''
    current_location: str = ''
    estimated_delivery: str = ''
    scans: List[Dict[str, Any]] = field(default_factory=list)
    message: str = ''

    @classmethod
    def not_found(cls, waybill: str, message: str = '') -> 'TrackingInfo':
        return cls(
            waybill=waybill,
            found=False,
            status='No tracking data available',
            message=message or 'The carrier has no tracking data for this waybill yet',
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            'waybill': self.waybill,
            'status': self.status,
            'currentLocation': self.current_location,
            'estimatedDelivery': self.estimated_delivery,
            'scans': self.scans,
            'isAvailable': self.found,
            'message': self.message,
        }


@dataclass
class Serviceability:
    pincode: str
    serviceable: bool
    embargo: bool = False
    remark: str = ''
    payment_types: List[str] = field(default_factory=list)
    raw: Any = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            'pincode': self.pincode,
            'serviceable': self.serviceable,
            'embargo': self.embargo,
            'remark': self.remark,
            'paymentTypes': self.payment_types,
        }


@dataclass
class LabelDocument:
    """Label as a download URL, raw PDF bytes or carrier label data."""
    waybill: str
    url: str = ''
    content: Optional[bytes] = None
    data: Any = None


@dataclass
class AttemptResult:
    """Outcome of one strategy in an ordered fallback chain."""
    strategy: str
    ok: bool
    data: Any = None
    error: Optional[Exception] = None


def generate_demo_waybills(count: int) -> List[str]:
    """
    Build distinguishable placeholder waybills ``DEMO_<epoch-ms>_<NNN>``.

    The timestamp is strictly increasing within the process so codes from
    consecutive batches never collide.
    """
    global _last_demo_timestamp
    timestamp = int(time.time() * 1000)
    if timestamp <= _last_demo_timestamp:
        timestamp = _last_demo_timestamp + 1
    _last_demo_timestamp = timestamp
    return [f"DEMO_{timestamp}_{str(i + 1).zfill(3)}" for i in range(count)]


_last_demo_timestamp = 0


class CarrierGatewayInterface(ABC):
    """
    Interface for carrier integrations.

    Implementations never retry on their own. They raise
    ConfigurationException when unconfigured, CarrierTransportException for
    network or HTTP failures and CarrierBusinessException when the carrier
    rejects the content. Waybill generation is the only operation that
    degrades to demo data instead of raising.
    """

    def __init__(self, config: ShippingConfig = None):
        self.config = config or ShippingConfig.from_settings()

    @property
    def is_configured(self) -> bool:
        return self.config.is_configured

    @abstractmethod
    def generate_waybills(self, count: int) -> WaybillBatch:
        """
        Obtain ``count`` waybill numbers from the carrier.

        Falls back to demo codes (source DEMO) on any failure.
        """

    @abstractmethod
    def fetch_single_waybill(self) -> WaybillBatch:
        """Obtain exactly one waybill number, with the same fallback."""

    @abstractmethod
    def create_shipment(self, payload: Dict[str, Any]) -> ManifestResult:
        """
        Submit a manifest.

        Args:
            payload: ``{"shipments": [...], "pickup_location": {"name": ...}}``

        Returns:
            ManifestResult with the waybills the carrier accepted
        """

    @abstractmethod
    def track_shipment(self, waybill: str) -> TrackingInfo:
        """Poll tracking. Unknown waybills yield ``TrackingInfo.not_found``."""

    def cancel_shipment(self, waybill: str, current_status: str = None) -> Dict[str, Any]:
        """
        Cancel a manifested shipment.

        Args:
            waybill: Waybill to cancel
            current_status: Local shipment status, checked before any request

        Raises:
            ShipmentStateException: If the status does not allow cancellation
        """
        if current_status is not None and current_status not in CANCELLABLE_SHIPMENT_STATUSES:
            raise ShipmentStateException(waybill, current_status, 'cancelled', CANCELLABLE_SHIPMENT_STATUSES)
        return self._cancel(waybill)

    def edit_shipment(self, waybill: str, fields: Dict[str, Any], current_status: str = None,
                      current_payment_mode: str = None) -> Dict[str, Any]:
        """
        Edit a manifested shipment.

        Args:
            waybill: Waybill to edit
            fields: Fields to change (non-editable keys are dropped)
            current_status: Local shipment status, checked before any request
            current_payment_mode: Payment mode the shipment was created with

        Raises:
            ShipmentStateException: If the status does not allow edits
            ValidationException: If the edit breaks the carrier's edit policy
        """
        if current_status is not None and current_status not in EDITABLE_SHIPMENT_STATUSES:
            raise ShipmentStateException(waybill, current_status, 'edited', EDITABLE_SHIPMENT_STATUSES)
        payload = build_edit_payload(waybill, fields)
        validate_edit_restrictions(payload, current_status, current_payment_mode)
        return self._edit(payload)

    @abstractmethod
    def _cancel(self, waybill: str) -> Dict[str, Any]:
        pass

    @abstractmethod
    def _edit(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    def check_pincode_serviceability(self, pincode: str) -> Serviceability:
        pass

    @abstractmethod
    def check_heavy_pincode_serviceability(self, pincode: str) -> Serviceability:
        pass

    @abstractmethod
    def fetch_warehouses(self) -> List[Dict[str, Any]]:
        """Registered pickup locations in the canonical warehouse shape."""

    @abstractmethod
    def register_warehouse(self, data: Dict[str, Any]) -> AttemptResult:
        """Create or update a pickup location; returns the winning attempt."""

    @abstractmethod
    def create_pickup_request(self, pickup_location: str, pickup_date: str, pickup_time: str,
                              expected_package_count: int = 1) -> Dict[str, Any]:
        pass

    @abstractmethod
    def update_ewaybill(self, waybill: str, dcn: str, ewbn: str) -> Dict[str, Any]:
        pass

    @abstractmethod
    def generate_label(self, waybill: str, pdf: bool = True, size: str = 'A4') -> LabelDocument:
        pass


# Global gateway instance, built lazily from settings
carrier_gateway: Optional[CarrierGatewayInterface] = None


def build_default_gateway(config: ShippingConfig = None) -> CarrierGatewayInterface:
    """
    Pick the gateway implementation for the given configuration.

    An unconfigured carrier yields the demo gateway only when demo mode is
    enabled; otherwise the Delhivery gateway is returned and raises
    ConfigurationException on use.
    """
    from .delhivery_adapter import DelhiveryCarrierGateway
    from .demo_adapter import DemoCarrierGateway

    config = config or ShippingConfig.from_settings()
    if not config.is_configured and config.demo_mode_when_unconfigured:
        logger.warning("Delhivery token not configured, using demo carrier gateway")
        return DemoCarrierGateway(config)
    return DelhiveryCarrierGateway(config)


def get_carrier_gateway() -> CarrierGatewayInterface:
    """Factory function to get the current carrier gateway."""
    global carrier_gateway
    if carrier_gateway is None:
        carrier_gateway = build_default_gateway()
    return carrier_gateway


def switch_to_mock_gateway(config: ShippingConfig = None) -> CarrierGatewayInterface:
    """Switch to the deterministic demo gateway for testing."""
    from .demo_adapter import DemoCarrierGateway

    global carrier_gateway
    carrier_gateway = DemoCarrierGateway(config)
    return carrier_gateway


def switch_to_real_gateway(real_gateway: CarrierGatewayInterface):
    """
    Switch to a real carrier gateway implementation.

    Args:
        real_gateway: Implementation of CarrierGatewayInterface
    """
    global carrier_gateway
    carrier_gateway = real_gateway


def reset_gateway():
    """Drop the current gateway so the next call rebuilds it from settings."""
    global carrier_gateway
    carrier_gateway = None
