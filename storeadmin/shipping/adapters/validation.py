"""
Request validation applied before any call to the carrier.
"""

import re
from typing import Any, Dict, Optional

from ..exceptions import ValidationException
from ..models import ShipmentStatus


PINCODE_RE = re.compile(r'^\d{6}$')

REQUIRED_MANIFEST_FIELDS = [
    'name', 'add', 'pin', 'phone', 'order', 'payment_mode',
    'return_name', 'return_add', 'return_pin',
]

EDITABLE_FIELDS = [
    'name', 'add', 'pin', 'city', 'state', 'phone',
    'payment_mode', 'cod_amount', 'weight',
    'shipment_width', 'shipment_height', 'shipment_length',
    'products_desc', 'seller_name', 'seller_add',
    'return_name', 'return_add', 'return_pin', 'return_city',
    'return_state', 'return_phone',
]
NUMERIC_EDIT_FIELDS = [
    'cod_amount', 'weight', 'shipment_width', 'shipment_height', 'shipment_length',
]

PAYMENT_MODE_CONVERSIONS = {
    'COD': ['Prepaid'],
    'Prepaid': [],
    'Pickup': ['COD', 'Prepaid'],
    'REPL': [],
}


def validate_pincode(pincode) -> str:
    """Return the pincode as a string or raise ValidationException."""
    value = str(pincode or '').strip()
    if not PINCODE_RE.match(value):
        raise ValidationException(
            "Pincode must be exactly 6 digits",
            {'pincode': value}
        )
    return value


def validate_manifest_payload(payload: Dict[str, Any]) -> None:
    """
    Check a create-manifest payload for mandatory fields.

    Raises:
        ValidationException: Listing missing fields per shipment
    """
    shipments = payload.get('shipments') or []
    if not shipments:
        raise ValidationException("Manifest contains no shipments")

    if not (payload.get('pickup_location') or {}).get('name'):
        raise ValidationException("Pickup location name is required", {'pickup_location': 'required'})

    errors = {}
    for index, shipment in enumerate(shipments):
        missing = [f for f in REQUIRED_MANIFEST_FIELDS if not str(shipment.get(f, '')).strip()]
        if missing:
            errors[str(index)] = missing
        elif not PINCODE_RE.match(str(shipment['pin'])):
            errors[str(index)] = ['pin']

    if errors:
        raise ValidationException("Manifest is missing mandatory fields", errors)


def build_edit_payload(waybill: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only editable fields; numbers are sent as strings."""
    payload = {'waybill': waybill}
    not_numeric = {}
    for key, value in (fields or {}).items():
        if key not in EDITABLE_FIELDS or value is None:
            continue
        if key in NUMERIC_EDIT_FIELDS:
            try:
                float(value)
            except (TypeError, ValueError):
                not_numeric[key] = value
                continue
            value = str(value)
        payload[key] = value

    if not_numeric:
        raise ValidationException("Numeric fields must be numbers", not_numeric)

    if len(payload) == 1:
        raise ValidationException(
            "No editable fields supplied",
            {'allowed_fields': EDITABLE_FIELDS}
        )
    if 'pin' in payload:
        payload['pin'] = validate_pincode(payload['pin'])
    return payload


def validate_edit_restrictions(payload: Dict[str, Any], current_status: Optional[str] = None,
                               current_payment_mode: Optional[str] = None) -> None:
    """
    Apply the carrier's edit policy to an edit payload.

    Raises:
        ValidationException: Disallowed payment conversion, inconsistent
            COD amount or a weight change after manifesting
    """
    new_mode = payload.get('payment_mode')
    if new_mode and current_payment_mode and new_mode != current_payment_mode:
        allowed = PAYMENT_MODE_CONVERSIONS.get(current_payment_mode, [])
        if new_mode not in allowed:
            raise ValidationException(
                f"Payment mode conversion from {current_payment_mode} to {new_mode} is not allowed",
                {'allowed_conversions': allowed}
            )

    if 'cod_amount' in payload:
        mode = new_mode or current_payment_mode
        try:
            amount = float(payload['cod_amount'])
        except ValueError:
            raise ValidationException("COD amount must be a number", {'cod_amount': payload['cod_amount']})
        if mode == 'Prepaid' and amount > 0:
            raise ValidationException("COD amount must be 0 for Prepaid shipments")
        if mode == 'COD' and amount <= 0:
            raise ValidationException("COD amount must be greater than 0 for COD shipments")

    if 'weight' in payload and current_status == ShipmentStatus.MANIFESTED:
        raise ValidationException(f"Weight cannot be modified in status {current_status}")
