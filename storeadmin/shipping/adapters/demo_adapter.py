"""
Deterministic demo implementation of the Carrier Gateway.

Used by tests and by development setups without a Delhivery account.
Every waybill it issues is tagged with source DEMO.
"""

import logging
from typing import Any, Dict, List

from ..config import ShippingConfig
from ..exceptions import CarrierTransportException
from ..models import WaybillSource
from .carrier_adapter import (
    AttemptResult, CarrierGatewayInterface, LabelDocument, ManifestResult,
    Serviceability, TrackingInfo, WaybillBatch, generate_demo_waybills
)
from .normalizers import normalize_warehouse
from .validation import validate_manifest_payload, validate_pincode

logger = logging.getLogger(__name__)


class DemoCarrierGateway(CarrierGatewayInterface):
    """
    In-memory carrier used when no real carrier is wired in.

    Pincodes in ``NON_SERVICEABLE_PINCODES`` are rejected and pincodes in
    ``EMBARGO_PINCODES`` are reported under embargo; everything else is
    serviceable.
    """

    NON_SERVICEABLE_PINCODES = {'999999', '000000'}
    EMBARGO_PINCODES = {'700001'}

    def __init__(self, config: ShippingConfig = None):
        super().__init__(config)
        self.manifests: Dict[str, Dict[str, Any]] = {}
        self.warehouses: List[Dict[str, Any]] = [
            {
                'name': 'Main Warehouse', 'phone': '9876543210', 'address': 'Main Warehouse Address',
                'city': 'Mumbai', 'state': 'Maharashtra', 'pin': '400001', 'country': 'India',
                'status': 'active',
            },
            {
                'name': 'Delhi Hub', 'phone': '9876543211', 'address': 'Delhi Hub Address',
                'city': 'Delhi', 'state': 'Delhi', 'pin': '110001', 'country': 'India',
                'status': 'active',
            },
        ]
        self.pickup_requests: List[Dict[str, Any]] = []

    def generate_waybills(self, count: int) -> WaybillBatch:
        logger.warning(f"Demo carrier issuing {count} DEMO waybills")
        return WaybillBatch(codes=generate_demo_waybills(count), source=WaybillSource.DEMO)

    def fetch_single_waybill(self) -> WaybillBatch:
        return self.generate_waybills(1)

    def create_shipment(self, payload: Dict[str, Any]) -> ManifestResult:
        validate_manifest_payload(payload)
        packages = []
        for shipment in payload['shipments']:
            waybill = shipment.get('waybill') or generate_demo_waybills(1)[0]
            self.manifests[waybill] = {'status': 'Manifested', 'shipment': shipment}
            packages.append({'waybill': waybill, 'status': 'Success', 'refnum': shipment.get('order')})

        response = {
            'success': True,
            'packages': packages,
            'package_count': len(packages),
            'rmk': 'Demo shipment created',
        }
        return ManifestResult(waybills=[p['waybill'] for p in packages], raw=response)

    def track_shipment(self, waybill: str) -> TrackingInfo:
        manifest = self.manifests.get(waybill)
        if manifest is None:
            return TrackingInfo.not_found(waybill)
        return TrackingInfo(
            waybill=waybill,
            found=True,
            status=manifest['status'],
            current_location='Demo Origin Hub',
            scans=[{
                'timestamp': '',
                'status': manifest['status'],
                'location': 'Demo Origin Hub',
                'description': 'Demo tracking event',
            }],
        )

    def _cancel(self, waybill: str) -> Dict[str, Any]:
        if waybill not in self.manifests:
            raise CarrierTransportException(f"Waybill {waybill} not found", status_code=404)
        self.manifests[waybill]['status'] = 'Cancelled'
        return {'status': True, 'waybill': waybill, 'remark': 'Demo cancellation'}

    def _edit(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        waybill = payload['waybill']
        if waybill not in self.manifests:
            raise CarrierTransportException(f"Waybill {waybill} not found", status_code=404)
        self.manifests[waybill]['shipment'].update(payload)
        return {'status': True, 'waybill': waybill, 'remark': 'Demo edit'}

    def _serviceability(self, pincode: str) -> Serviceability:
        if pincode in self.NON_SERVICEABLE_PINCODES:
            return Serviceability(pincode=pincode, serviceable=False, remark='NSZ')
        if pincode in self.EMBARGO_PINCODES:
            return Serviceability(pincode=pincode, serviceable=False, embargo=True, remark='Embargo')
        return Serviceability(pincode=pincode, serviceable=True, payment_types=['Prepaid', 'COD', 'Pickup'])

    def check_pincode_serviceability(self, pincode: str) -> Serviceability:
        return self._serviceability(validate_pincode(pincode))

    def check_heavy_pincode_serviceability(self, pincode: str) -> Serviceability:
        return self._serviceability(validate_pincode(pincode))

    def fetch_warehouses(self) -> List[Dict[str, Any]]:
        return [normalize_warehouse(record) for record in self.warehouses]

    def register_warehouse(self, data: Dict[str, Any]) -> AttemptResult:
        existing = next((w for w in self.warehouses if w['name'] == data.get('name')), None)
        if existing:
            existing.update(data)
            return AttemptResult(strategy='edit', ok=True, data={'success': True, 'data': existing})
        record = dict(data, status='active')
        self.warehouses.append(record)
        return AttemptResult(strategy='create', ok=True, data={'success': True, 'data': record})

    def create_pickup_request(self, pickup_location: str, pickup_date: str, pickup_time: str,
                              expected_package_count: int = 1) -> Dict[str, Any]:
        request = {
            'pickup_id': len(self.pickup_requests) + 1,
            'pickup_location': pickup_location,
            'pickup_date': pickup_date,
            'pickup_time': pickup_time,
            'expected_package_count': expected_package_count,
        }
        self.pickup_requests.append(request)
        return request

    def update_ewaybill(self, waybill: str, dcn: str, ewbn: str) -> Dict[str, Any]:
        return {'status': True, 'waybill': waybill, 'dcn': dcn, 'ewbn': ewbn}

    def generate_label(self, waybill: str, pdf: bool = True, size: str = 'A4') -> LabelDocument:
        if pdf:
            return LabelDocument(waybill=waybill, content=b'%PDF-1.4\n% demo label ' + waybill.encode())
        return LabelDocument(waybill=waybill, data={'packages': [{'wbn': waybill, 'pdf_size': size}]})
