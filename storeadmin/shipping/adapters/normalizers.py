"""
Normalization of Delhivery responses.

The carrier answers with different shapes depending on endpoint and
environment. Everything is mapped here so services only ever see the
canonical records defined in ``carrier_adapter``.
"""

import logging
from typing import Any, Dict, List, Optional

from ..exceptions import CarrierBusinessException
from ..models import ShipmentStatus
from .carrier_adapter import ManifestResult, Serviceability, TrackingInfo

logger = logging.getLogger(__name__)


# Canonical warehouse shape: each key lists the carrier field names seen for it
WAREHOUSE_FIELD_MAP = {
    'name': ['name', 'warehouse_name', 'pickup_location_name', 'pickup_location'],
    'registered_name': ['registered_name', 'registered_warehouse_name'],
    'phone': ['phone', 'warehouse_phone', 'contact_number'],
    'email': ['email', 'warehouse_email'],
    'address': ['address', 'warehouse_address', 'add'],
    'city': ['city', 'warehouse_city'],
    'state': ['state', 'warehouse_state'],
    'pin': ['pin', 'pincode', 'warehouse_pin', 'pin_code'],
    'country': ['country', 'warehouse_country'],
    'return_address': ['return_address', 'return_add'],
    'return_city': ['return_city'],
    'return_state': ['return_state'],
    'return_pin': ['return_pin', 'return_pincode'],
    'return_country': ['return_country'],
}

WAREHOUSE_LIST_KEYS = ['data', 'warehouses', 'results', 'pickup_locations']

CARRIER_ERROR_MESSAGES = [
    ('insufficient balance',
     "Delhivery wallet balance is insufficient. Please recharge the Delhivery account and try again."),
    ('clientwarehouse matching query does not exist',
     "Pickup location is not registered with Delhivery. Register the warehouse before creating shipments."),
    ('internal error',
     "Delhivery is experiencing technical issues. Please try again later."),
]

# Lower-cased carrier status fragments, checked in order
CARRIER_STATUS_MAP = [
    ('rto', ShipmentStatus.RTO),
    ('return', ShipmentStatus.RTO),
    ('cancel', ShipmentStatus.CANCELLED),
    ('undelivered', ShipmentStatus.IN_TRANSIT),
    ('delivered', ShipmentStatus.DELIVERED),
    ('manifest', ShipmentStatus.MANIFESTED),
    ('not picked', ShipmentStatus.MANIFESTED),
    ('transit', ShipmentStatus.IN_TRANSIT),
    ('dispatched', ShipmentStatus.IN_TRANSIT),
    ('picked', ShipmentStatus.IN_TRANSIT),
    ('out for delivery', ShipmentStatus.IN_TRANSIT),
    ('pending', ShipmentStatus.IN_TRANSIT),
]


def _split_codes(value: str) -> List[str]:
    return [code.strip().strip('"') for code in value.split(',') if code.strip().strip('"')]


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def parse_waybill_response(payload: Any) -> List[str]:
    """
    Extract waybill codes from a bulk or single fetch response.

    Handles a JSON list, ``{"waybills": [...]}`` / ``{"data": [...]}``,
    a comma separated string, and either key holding such a string.
    Unknown shapes yield an empty list.
    """
    if isinstance(payload, list):
        return [str(code).strip() for code in payload if str(code).strip()]
    if isinstance(payload, (str, int)):
        return _split_codes(str(payload))
    if isinstance(payload, dict):
        for key in ('waybills', 'data', 'waybill'):
            value = payload.get(key)
            if value:
                return parse_waybill_response(value)
    return []


def normalize_warehouse(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map one carrier warehouse record onto the canonical shape.

    Missing fields become empty strings. ``active`` is derived from
    ``active``/``status``/``is_active``, defaulting to True.
    """
    record = {}
    for canonical, candidates in WAREHOUSE_FIELD_MAP.items():
        value = ''
        for candidate in candidates:
            if raw.get(candidate) not in (None, ''):
                value = raw[candidate]
                break
        record[canonical] = str(value) if value != '' else ''

    active = raw.get('active', raw.get('is_active'))
    if active is None and 'status' in raw:
        active = str(raw['status']).lower() in ('active', 'true', '1')
    record['active'] = True if active is None else bool(active)
    return record


def extract_warehouse_list(payload: Any) -> Optional[List[Dict[str, Any]]]:
    """Return the list of warehouse records or None if the shape is unknown."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in WAREHOUSE_LIST_KEYS:
            if isinstance(payload.get(key), list):
                return payload[key]
    return None


def _remarks_text(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return '; '.join(str(v) for v in value if v)
    return str(value or '')


def friendly_carrier_message(remark: str) -> str:
    lowered = remark.lower()
    for fragment, message in CARRIER_ERROR_MESSAGES:
        if fragment in lowered:
            return message
    return remark


def parse_manifest_response(response: Any) -> ManifestResult:
    """
    Interpret a create-manifest response.

    Raises:
        CarrierBusinessException: The carrier rejected the manifest or any of
            its packages. Duplicate orders carry the existing waybills in
            ``details["duplicate_waybills"]``.
    """
    if not isinstance(response, dict):
        raise CarrierBusinessException(
            "Unexpected response from Delhivery", carrier_message=str(response)[:500], response=response
        )

    packages = response.get('packages') or []
    if not isinstance(packages, list) or not all(isinstance(p, dict) for p in packages):
        raise CarrierBusinessException(
            "Unexpected response from Delhivery", carrier_message=str(packages)[:500], response=response
        )
    failed = [p for p in packages if str(p.get('status', '')).lower() != 'success']

    if response.get('success') is False or failed or not packages:
        details = {}
        remark = _remarks_text(response.get('rmk') or response.get('error'))
        if failed:
            package_remark = _remarks_text(failed[0].get('remarks'))
            remark = package_remark or remark
            duplicates = [
                p['waybill'] for p in failed
                if p.get('waybill') and 'duplicate order' in _remarks_text(p.get('remarks')).lower()
            ]
            if duplicates:
                details['duplicate_waybills'] = duplicates
            if any(p.get('serviceable') is False for p in failed):
                details['serviceable'] = False
                message = "Delivery pincode is not serviceable by Delhivery"
                raise CarrierBusinessException(message, carrier_message=remark, response=response, details=details)

        remark = remark or 'Shipment creation failed'
        raise CarrierBusinessException(
            friendly_carrier_message(remark), carrier_message=remark, response=response, details=details
        )

    waybills = [str(p['waybill']) for p in packages if p.get('waybill')]
    return ManifestResult(waybills=waybills, raw=response, upload_wbn=str(response.get('upload_wbn') or ''))


def map_carrier_status(raw_status: str) -> Optional[str]:
    """Map a carrier status string to a ShipmentStatus, or None if unknown."""
    lowered = (raw_status or '').lower()
    if not lowered:
        return None
    for fragment, status in CARRIER_STATUS_MAP:
        if fragment in lowered:
            return status
    return None


def parse_tracking_response(response: Any, waybill: str) -> TrackingInfo:
    """
    Build a TrackingInfo from ``/api/v1/packages/json/``.

    ``Success: false``, an ``Error`` key or an empty ``ShipmentData`` all
    mean the carrier has no data yet.
    """
    if not isinstance(response, dict):
        return TrackingInfo.not_found(waybill)
    if response.get('Success') is False or response.get('Error'):
        return TrackingInfo.not_found(waybill, str(response.get('Error') or ''))

    shipment_data = response.get('ShipmentData') or []
    if shipment_data and isinstance(shipment_data[0], dict):
        shipment = shipment_data[0].get('Shipment') or {}
    else:
        shipment = (response.get('ShipmentTrack') or [{}])[0] or {}
    if not isinstance(shipment, dict) or not shipment:
        return TrackingInfo.not_found(waybill)

    status_block = _as_dict(shipment.get('Status'))
    scan_entries = shipment.get('Scans') or _as_dict(shipment.get('Shipment')).get('Scans') or []
    scans = []
    for entry in scan_entries if isinstance(scan_entries, list) else []:
        if not isinstance(entry, dict):
            continue
        detail = _as_dict(entry.get('ScanDetail')) or entry
        scans.append({
            'timestamp': detail.get('ScanDateTime') or detail.get('StatusDateTime') or '',
            'status': detail.get('Scan') or detail.get('Status') or '',
            'location': detail.get('ScanLocation') or detail.get('StatusLocation') or '',
            'description': detail.get('Instructions') or '',
        })

    return TrackingInfo(
        waybill=str(shipment.get('AWB') or waybill),
        found=True,
        status=status_block.get('Status') or 'Unknown',
        current_location=status_block.get('StatusLocation') or '',
        estimated_delivery=str(
            shipment.get('ExpectedDeliveryDate') or status_block.get('StatusDateTime') or ''
        ),
        scans=scans,
    )


def parse_serviceability_response(response: Any, pincode: str) -> Serviceability:
    """Standard pincode check: an empty ``delivery_codes`` list means NSZ."""
    codes = response if isinstance(response, list) else _as_dict(response).get('delivery_codes') or []
    if not codes:
        return Serviceability(pincode=pincode, serviceable=False, remark='NSZ', raw=response)

    postal = _as_dict(codes[0].get('postal_code', codes[0])) if isinstance(codes[0], dict) else {}
    remark = str(postal.get('remarks') or postal.get('remark') or '')
    payment_types = [
        label for key, label in (('pre_paid', 'Prepaid'), ('cod', 'COD'), ('pickup', 'Pickup'), ('repl', 'REPL'))
        if str(postal.get(key, '')).upper() == 'Y'
    ]
    embargo = remark.lower() == 'embargo'
    return Serviceability(
        pincode=pincode,
        serviceable=not embargo,
        embargo=embargo,
        remark=remark,
        payment_types=payment_types,
        raw=response,
    )


def parse_heavy_serviceability_response(response: Any, pincode: str) -> Serviceability:
    """Heavy product check: ``NSZ`` in message or status means not serviceable."""
    record = response[0] if isinstance(response, list) and response else response
    if not isinstance(record, dict) or not record:
        return Serviceability(pincode=pincode, serviceable=False, remark='NSZ', raw=response)

    marker = str(record.get('message') or record.get('status') or '')
    if marker.upper() == 'NSZ':
        return Serviceability(pincode=pincode, serviceable=False, remark='NSZ', raw=response)

    payment_types = record.get('payment_type') or []
    if isinstance(payment_types, str):
        payment_types = [p.strip() for p in payment_types.split(',') if p.strip()]
    remark = str(record.get('remark') or record.get('remarks') or '')
    embargo = remark.lower() == 'embargo'
    return Serviceability(
        pincode=pincode,
        serviceable=not embargo,
        embargo=embargo,
        remark=remark,
        payment_types=list(payment_types),
        raw=response,
    )
