"""
Tests for manifest payload construction.
"""

from datetime import date
from decimal import Decimal

from django.test import SimpleTestCase

from ..config import ShippingConfig
from ..models import Order, PaymentMethod, ShipmentType, Warehouse
from ..services.manifest_builder import (
    ManifestBuilder, format_phone, lookup_hsn_code, next_business_day, payment_mode_for
)


def make_order(**overrides):
    data = {
        'order_number': 'ORD-1001',
        'customer_name': 'Asha Rao',
        'customer_phone': '09876543210',
        'shipping_address': {'address': '12 MG Road', 'city': 'Bengaluru', 'state': 'Karnataka', 'pincode': '560001'},
        'items': [{'name': 'Running Shoes', 'quantity': 1}, {'name': 'Socks', 'quantity': 3}],
        'payment_method': PaymentMethod.COD,
        'total_amount': Decimal('1500.00'),
    }
    data.update(overrides)
    return Order(**data)


def make_warehouse(**overrides):
    data = {
        'name': 'Main Warehouse', 'phone': '+91-9876543210', 'address': 'Plot 4',
        'city': 'Mumbai', 'state': 'Maharashtra', 'pin': '400069',
    }
    data.update(overrides)
    return Warehouse(**data)


class HelpersTest(SimpleTestCase):

    def test_format_phone(self):
        self.assertEqual(format_phone('9876543210'), '9876543210')
        self.assertEqual(format_phone('09876543210'), '9876543210')
        self.assertEqual(format_phone('+91 98765-43210'), '9876543210')
        self.assertEqual(format_phone('12345'), '9999999999')
        self.assertEqual(format_phone(None), '9999999999')

    def test_hsn_lookup(self):
        self.assertEqual(lookup_hsn_code('electronics'), '8517')
        self.assertEqual(lookup_hsn_code(None, 'Leather Bag'), '4202')
        self.assertEqual(lookup_hsn_code('', 'Mystery box'), '9999')

    def test_payment_mode(self):
        prepaid = make_order(payment_method=PaymentMethod.PREPAID)
        self.assertEqual(payment_mode_for(ShipmentType.FORWARD, make_order()), 'COD')
        self.assertEqual(payment_mode_for(ShipmentType.MPS, prepaid), 'Prepaid')
        self.assertEqual(payment_mode_for(ShipmentType.REVERSE, prepaid), 'Pickup')
        self.assertEqual(payment_mode_for(ShipmentType.REPLACEMENT, prepaid), 'REPL')

    def test_next_business_day_skips_weekend(self):
        self.assertEqual(next_business_day(date(2026, 10, 21)), date(2026, 10, 22))
        self.assertEqual(next_business_day(date(2026, 10, 23)), date(2026, 10, 26))
        self.assertEqual(next_business_day(date(2026, 10, 24)), date(2026, 10, 26))


class ManifestBuilderTest(SimpleTestCase):

    def setUp(self):
        self.config = ShippingConfig(
            default_weight_grams=750, delivery_lead_days=5,
            seller={'name': 'Store Admin Retail', 'address': '', 'gst': '27ABCDE1234F1Z5'},
        )
        self.builder = ManifestBuilder(self.config)

    def test_package_details_defaults(self):
        details = self.builder.package_details(make_order(), ShipmentType.FORWARD)

        self.assertEqual(details['weight'], 750.0)
        self.assertEqual(details['dimensions'], {'length': 10.0, 'width': 10.0, 'height': 10.0})
        self.assertEqual(details['payment_mode'], 'COD')
        self.assertEqual(details['cod_amount'], '1500.00')
        self.assertEqual(details['product_description'], 'Running Shoes, Socks')
        self.assertEqual(details['hsn_code'], '6403')
        self.assertEqual(details['shipping_mode'], 'Surface')
        self.assertEqual(details['package_count'], 1)

    def test_prepaid_has_zero_cod_amount(self):
        details = self.builder.package_details(
            make_order(payment_method=PaymentMethod.PREPAID), ShipmentType.FORWARD,
            {'dimensions': {'length': 30, 'width': 20, 'height': 5}, 'package_count': 0}
        )

        self.assertEqual(details['cod_amount'], '0')
        self.assertEqual(details['dimensions']['length'], 30.0)
        self.assertEqual(details['package_count'], 1)

    def test_build_single_shipment(self):
        order = make_order()
        details = self.builder.package_details(order, ShipmentType.FORWARD)

        payload = self.builder.build(
            order, make_warehouse(), ShipmentType.FORWARD, ['1490001'], details, today=date(2026, 10, 19)
        )

        self.assertEqual(payload['pickup_location'], {'name': 'Main Warehouse'})
        entry = payload['shipments'][0]
        self.assertEqual(entry['waybill'], '1490001')
        self.assertEqual(entry['name'], 'Asha Rao')
        self.assertEqual(entry['pin'], '560001')
        self.assertEqual(entry['phone'], '9876543210')
        self.assertEqual(entry['order'], 'ORD-1001')
        self.assertEqual(entry['return_phone'], '9876543210')
        self.assertEqual(entry['send_date'], '2026-10-19')
        self.assertEqual(entry['end_date'], '2026-10-24')
        self.assertEqual(entry['quantity'], '4')
        self.assertEqual(entry['seller_name'], 'Store Admin Retail')
        self.assertEqual(entry['seller_add'], 'Plot 4')
        self.assertEqual(entry['seller_gst_tin'], '27ABCDE1234F1Z5')
        self.assertNotIn('master_id', entry)

    def test_build_mps(self):
        order = make_order()
        details = self.builder.package_details(order, ShipmentType.MPS, {'package_count': 3})

        payload = self.builder.build(order, make_warehouse(), ShipmentType.MPS, ['M1', 'C2', 'C3'], details)

        entries = payload['shipments']
        self.assertEqual([e['waybill'] for e in entries], ['M1', 'C2', 'C3'])
        self.assertTrue(all(e['shipment_type'] == 'MPS' and e['master_id'] == 'M1' for e in entries))
        self.assertEqual([e['cod_amount'] for e in entries], ['1500.00', '0', '0'])
        self.assertEqual(entries[0]['mps_amount'], '1500.00')
