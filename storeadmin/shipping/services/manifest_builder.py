"""
Builds Delhivery manifest payloads from orders, warehouses and package data.
"""

import re
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.utils import timezone

from ..config import ShippingConfig
from ..models import Order, ShipmentType, Warehouse


DEFAULT_HSN_CODE = '9999'
FALLBACK_PHONE = '9999999999'

# Keyword -> HSN code, matched against product category then name
HSN_CODES = {
    'clothing': '6109',
    'tshirt': '6109',
    't-shirt': '6109',
    'shirt': '6205',
    'dress': '6204',
    'electronics': '8517',
    'mobile': '8517',
    'phone': '8517',
    'laptop': '8471',
    'computer': '8471',
    'book': '4901',
    'shoes': '6403',
    'bag': '4202',
    'watch': '9102',
    'jewelry': '7113',
    'jewellery': '7113',
    'cosmetics': '3304',
    'perfume': '3303',
    'toy': '9503',
    'furniture': '9403',
    'home': '9403',
    'kitchen': '7323',
    'food': '2106',
    'health': '3004',
    'medicine': '3004',
    'sports': '9506',
    'automotive': '8708',
    'general': DEFAULT_HSN_CODE,
}


def lookup_hsn_code(*texts: Optional[str]) -> str:
    """First HSN code whose keyword appears in any of ``texts``, else 9999."""
    for text in texts:
        lowered = (text or '').lower()
        if not lowered:
            continue
        if lowered in HSN_CODES:
            return HSN_CODES[lowered]
        for keyword, code in HSN_CODES.items():
            if keyword in lowered:
                return code
    return DEFAULT_HSN_CODE


def format_phone(phone: Optional[str]) -> str:
    """Normalise to a 10 digit Indian mobile number."""
    digits = re.sub(r'\D', '', str(phone or ''))
    if len(digits) == 10:
        return digits
    if len(digits) == 11 and digits.startswith('0'):
        return digits[1:]
    if len(digits) == 12 and digits.startswith('91'):
        return digits[2:]
    return FALLBACK_PHONE


def payment_mode_for(shipment_type: str, order: Order) -> str:
    if shipment_type == ShipmentType.REVERSE:
        return 'Pickup'
    if shipment_type == ShipmentType.REPLACEMENT:
        return 'REPL'
    return 'COD' if order.is_cod else 'Prepaid'


def next_business_day(today: date = None) -> date:
    """Next Monday to Friday after ``today``."""
    day = (today or timezone.localdate()) + timedelta(days=1)
    while day.weekday() >= 5:
        day += timedelta(days=1)
    return day


class ManifestBuilder:
    """
    Assembles the ``{"shipments": [...], "pickup_location": {...}}`` payload.

    Missing package data falls back to the configured defaults so a
    manifest is never blocked on optional shipping metadata.
    """

    def __init__(self, config: ShippingConfig = None):
        self.config = config or ShippingConfig.from_settings()

    def package_details(self, order: Order, shipment_type: str, package: Dict[str, Any] = None) -> Dict[str, Any]:
        package = package or {}
        dimensions = package.get('dimensions') or {}
        default_length, default_width, default_height = self.config.default_dimensions_cm
        payment_mode = payment_mode_for(shipment_type, order)
        cod_amount = order.total_amount if payment_mode == 'COD' else Decimal('0')

        first_item = order.items[0] if order.items else {}
        description = package.get('product_description') or order.product_description
        return {
            'weight': float(package.get('weight') or self.config.default_weight_grams),
            'dimensions': {
                'length': float(dimensions.get('length') or default_length),
                'width': float(dimensions.get('width') or default_width),
                'height': float(dimensions.get('height') or default_height),
            },
            'payment_mode': payment_mode,
            'cod_amount': str(cod_amount),
            'product_description': description,
            'hsn_code': package.get('hsn_code') or lookup_hsn_code(
                first_item.get('category'), first_item.get('name'), description
            ),
            'shipping_mode': package.get('shipping_mode') or self.config.default_shipping_mode,
            'package_count': max(int(package.get('package_count') or 1), 1),
            'fragile': bool(package.get('fragile', False)),
            'custom_fields': dict(package.get('custom_fields') or {}),
        }

    def build(self, order: Order, warehouse: Warehouse, shipment_type: str, waybills: List[str],
              details: Dict[str, Any], today: date = None) -> Dict[str, Any]:
        """
        Build the manifest payload.

        Args:
            order: Order being shipped
            warehouse: Pickup warehouse
            shipment_type: ShipmentType value
            waybills: Reserved waybills, master first
            details: Output of ``package_details``
            today: Submission date, defaults to today

        Returns:
            Payload for ``CarrierGatewayInterface.create_shipment``
        """
        today = today or timezone.localdate()
        end_date = today + timedelta(days=self.config.delivery_lead_days)
        address = order.shipping_address or {}
        return_address = warehouse.as_return_address()
        seller = self.config.seller
        dimensions = details['dimensions']
        is_mps = shipment_type == ShipmentType.MPS and len(waybills) > 1

        base = {
            'name': address.get('name') or order.customer_name or 'Customer',
            'add': address.get('address', ''),
            'pin': str(address.get('pincode') or address.get('pin') or ''),
            'city': address.get('city', ''),
            'state': address.get('state', ''),
            'country': address.get('country') or 'India',
            'phone': format_phone(address.get('phone') or order.customer_phone),
            'order': order.order_number,
            'payment_mode': details['payment_mode'],
            'address_type': address.get('address_type') or 'home',
            'return_name': return_address['name'],
            'return_add': return_address['address'],
            'return_city': return_address['city'],
            'return_state': return_address['state'],
            'return_pin': return_address['pin'],
            'return_country': return_address['country'],
            'return_phone': format_phone(return_address['phone']),
            'products_desc': details['product_description'],
            'hsn_code': details['hsn_code'],
            'cod_amount': details['cod_amount'],
            'order_date': order.created_at.date().isoformat() if isinstance(order.created_at, datetime) else '',
            'send_date': today.isoformat(),
            'end_date': end_date.isoformat(),
            'total_amount': str(order.total_amount),
            'quantity': str(order.total_quantity),
            'seller_name': seller.get('name') or warehouse.registered_name or warehouse.name,
            'seller_add': seller.get('address') or warehouse.address,
            'seller_inv': order.order_number,
            'seller_gst_tin': seller.get('gst', ''),
            'weight': str(details['weight']),
            'shipment_width': str(dimensions['width']),
            'shipment_height': str(dimensions['height']),
            'shipment_length': str(dimensions['length']),
            'shipping_mode': details['shipping_mode'],
            'fragile_shipment': 'true' if details['fragile'] else 'false',
            'dangerous_good': 'false',
            'plastic_packaging': 'false',
            'ewb': details['custom_fields'].get('ewb', ''),
        }

        shipments = []
        for index, waybill in enumerate(waybills):
            entry = dict(base, waybill=waybill)
            if is_mps:
                entry.update({
                    'shipment_type': 'MPS',
                    'mps_amount': details['cod_amount'],
                    'mps_children': str(len(waybills)),
                    'master_id': waybills[0],
                })
                if index > 0:
                    entry['cod_amount'] = '0'
            shipments.append(entry)

        return {
            'shipments': shipments,
            'pickup_location': {'name': warehouse.name},
        }
