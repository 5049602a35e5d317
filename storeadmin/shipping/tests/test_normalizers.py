"""
Tests for carrier response normalization.
"""

from django.test import SimpleTestCase

from ..adapters.normalizers import (
    extract_warehouse_list, friendly_carrier_message, map_carrier_status, normalize_warehouse,
    parse_heavy_serviceability_response, parse_manifest_response, parse_serviceability_response,
    parse_tracking_response, parse_waybill_response
)
from ..exceptions import CarrierBusinessException
from ..models import ShipmentStatus


class WaybillResponseTest(SimpleTestCase):

    def test_known_shapes(self):
        self.assertEqual(parse_waybill_response(['111', '222']), ['111', '222'])
        self.assertEqual(parse_waybill_response({'waybills': ['111']}), ['111'])
        self.assertEqual(parse_waybill_response({'data': ['111', '222']}), ['111', '222'])
        self.assertEqual(parse_waybill_response('111,222, 333'), ['111', '222', '333'])
        self.assertEqual(parse_waybill_response({'waybill': '111,222'}), ['111', '222'])
        self.assertEqual(parse_waybill_response('"1234567890"'), ['1234567890'])

    def test_unknown_shapes_yield_nothing(self):
        self.assertEqual(parse_waybill_response({'error': 'bad token'}), [])
        self.assertEqual(parse_waybill_response(None), [])
        self.assertEqual(parse_waybill_response(''), [])


class WarehouseNormalizationTest(SimpleTestCase):

    def test_carrier_field_names_map_to_canonical_shape(self):
        record = normalize_warehouse({
            'warehouse_name': 'Delhi Hub',
            'contact_number': 9876543210,
            'add': 'Okhla Phase 2',
            'pincode': 110020,
            'status': 'Active',
        })

        self.assertEqual(record['name'], 'Delhi Hub')
        self.assertEqual(record['phone'], '9876543210')
        self.assertEqual(record['address'], 'Okhla Phase 2')
        self.assertEqual(record['pin'], '110020')
        self.assertEqual(record['email'], '')
        self.assertTrue(record['active'])

    def test_inactive_and_defaults(self):
        self.assertFalse(normalize_warehouse({'name': 'A', 'active': False})['active'])
        self.assertFalse(normalize_warehouse({'name': 'A', 'status': 'inactive'})['active'])
        self.assertTrue(normalize_warehouse({'name': 'A'})['active'])

    def test_extract_warehouse_list(self):
        self.assertEqual(extract_warehouse_list([{'name': 'A'}]), [{'name': 'A'}])
        self.assertEqual(extract_warehouse_list({'data': [{'name': 'A'}]}), [{'name': 'A'}])
        self.assertIsNone(extract_warehouse_list({'detail': 'nope'}))


class ManifestResponseTest(SimpleTestCase):

    def test_success(self):
        result = parse_manifest_response({
            'success': True,
            'upload_wbn': 'UPL123',
            'packages': [{'waybill': '1490001', 'status': 'Success'}],
        })

        self.assertEqual(result.waybills, ['1490001'])
        self.assertEqual(result.upload_wbn, 'UPL123')

    def test_known_carrier_errors_get_friendly_messages(self):
        with self.assertRaises(CarrierBusinessException) as ctx:
            parse_manifest_response({
                'success': False,
                'rmk': 'ClientWarehouse matching query does not exist.',
                'packages': [],
            })
        self.assertIn('not registered', ctx.exception.message)
        self.assertIn('ClientWarehouse', ctx.exception.carrier_message)
        self.assertEqual(ctx.exception.code, 'CARRIER_REJECTED')

        self.assertIn('balance', friendly_carrier_message('Insufficient Balance in wallet'))
        self.assertEqual(friendly_carrier_message('Something odd'), 'Something odd')

    def test_duplicate_order_surfaces_waybill(self):
        with self.assertRaises(CarrierBusinessException) as ctx:
            parse_manifest_response({
                'success': False,
                'packages': [{
                    'waybill': '1490009', 'status': 'Fail',
                    'remarks': ['Duplicate order id'],
                }],
            })
        self.assertEqual(ctx.exception.details['duplicate_waybills'], ['1490009'])

    def test_non_serviceable_package(self):
        with self.assertRaises(CarrierBusinessException) as ctx:
            parse_manifest_response({
                'success': True,
                'packages': [{'waybill': '1', 'status': 'Fail', 'serviceable': False, 'remarks': 'NSZ'}],
            })
        self.assertIn('not serviceable', ctx.exception.message)
        self.assertFalse(ctx.exception.details['serviceable'])

    def test_malformed_packages_are_rejected(self):
        for packages in (['1490001'], [{'waybill': '1', 'status': 'Success'}, None], 'Success'):
            with self.assertRaises(CarrierBusinessException):
                parse_manifest_response({'success': True, 'packages': packages})


class TrackingResponseTest(SimpleTestCase):

    def test_no_data_yet_is_not_found(self):
        for response in ({'Success': False}, {'Error': 'No data'}, {'ShipmentData': []}, 'garbage'):
            info = parse_tracking_response(response, '1490001')
            self.assertFalse(info.found)
            self.assertFalse(info.as_dict()['isAvailable'])

    def test_shipment_data_shape(self):
        info = parse_tracking_response({
            'ShipmentData': [{
                'Shipment': {
                    'AWB': '1490001',
                    'Status': {'Status': 'In Transit', 'StatusLocation': 'Bhiwandi_DC'},
                    'ExpectedDeliveryDate': '2026-10-25T18:00:00',
                    'Scans': [
                        {'ScanDetail': {
                            'ScanDateTime': '2026-10-20T10:00:00', 'Scan': 'Manifested',
                            'ScanLocation': 'Mumbai_Hub', 'Instructions': 'Consignment manifested',
                        }},
                        {'ScanDetail': {
                            'ScanDateTime': '2026-10-21T08:30:00', 'Scan': 'In Transit',
                            'ScanLocation': 'Bhiwandi_DC', 'Instructions': 'Shipment picked up',
                        }},
                    ],
                },
            }],
        }, '1490001')

        self.assertTrue(info.found)
        self.assertEqual(info.status, 'In Transit')
        self.assertEqual(info.current_location, 'Bhiwandi_DC')
        self.assertEqual(info.estimated_delivery, '2026-10-25T18:00:00')
        self.assertEqual(len(info.scans), 2)
        self.assertEqual(info.scans[0]['location'], 'Mumbai_Hub')

    def test_map_carrier_status(self):
        self.assertEqual(map_carrier_status('Manifested'), ShipmentStatus.MANIFESTED)
        self.assertEqual(map_carrier_status('In Transit'), ShipmentStatus.IN_TRANSIT)
        self.assertEqual(map_carrier_status('Delivered'), ShipmentStatus.DELIVERED)
        self.assertEqual(map_carrier_status('Undelivered'), ShipmentStatus.IN_TRANSIT)
        self.assertEqual(map_carrier_status('RTO Delivered'), ShipmentStatus.RTO)
        self.assertEqual(map_carrier_status('Cancelled'), ShipmentStatus.CANCELLED)
        self.assertIsNone(map_carrier_status(''))
        self.assertIsNone(map_carrier_status('Lost in space'))

    def test_malformed_scans_are_skipped(self):
        info = parse_tracking_response({
            'ShipmentData': [{
                'Shipment': {
                    'Status': 'In Transit',
                    'Scans': ['Manifested', None, {'ScanDetail': {'Scan': 'Picked Up'}}],
                },
            }],
        }, '1490001')

        self.assertTrue(info.found)
        self.assertEqual(info.status, 'Unknown')
        self.assertEqual([s['status'] for s in info.scans], ['Picked Up'])
        self.assertFalse(parse_tracking_response({'ShipmentTrack': ['oops']}, '1490001').found)


class ServiceabilityResponseTest(SimpleTestCase):

    def test_empty_delivery_codes_is_nsz(self):
        result = parse_serviceability_response({'delivery_codes': []}, '999999')

        self.assertFalse(result.serviceable)
        self.assertEqual(result.remark, 'NSZ')

    def test_payment_types_and_embargo(self):
        serviceable = parse_serviceability_response({'delivery_codes': [{'postal_code': {
            'pre_paid': 'Y', 'cod': 'Y', 'pickup': 'N', 'repl': 'Y', 'remarks': '',
        }}]}, '560001')
        embargoed = parse_serviceability_response({'delivery_codes': [{'postal_code': {
            'pre_paid': 'Y', 'cod': 'N', 'remarks': 'Embargo',
        }}]}, '700001')

        self.assertTrue(serviceable.serviceable)
        self.assertEqual(serviceable.payment_types, ['Prepaid', 'COD', 'REPL'])
        self.assertFalse(embargoed.serviceable)
        self.assertTrue(embargoed.embargo)

    def test_heavy(self):
        self.assertFalse(parse_heavy_serviceability_response([{'message': 'NSZ'}], '110001').serviceable)
        result = parse_heavy_serviceability_response([{'payment_type': 'Prepaid, COD', 'remark': ''}], '110001')
        self.assertTrue(result.serviceable)
        self.assertEqual(result.payment_types, ['Prepaid', 'COD'])
