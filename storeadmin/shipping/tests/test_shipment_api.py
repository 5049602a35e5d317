"""
API tests for the Shipping endpoints.
"""

from django.contrib.auth.models import Group, User
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from ..adapters import reset_gateway, switch_to_mock_gateway
from ..models import OrderStatus, Shipment, ShipmentStatus, Waybill, WaybillSource, Warehouse
from .helpers import create_order, create_warehouse, seed_waybills


class ShippingAPITestCase(APITestCase):

    def setUp(self):
        self.gateway = switch_to_mock_gateway()
        self.addCleanup(reset_gateway)
        self.user = User.objects.create_user('dispatcher', password='secret', is_staff=True)
        self.client.force_authenticate(user=self.user)
        self.warehouse = create_warehouse()
        self.order = create_order()

    def create_shipment(self, order=None, **data):
        body = {
            'orderId': str((order or self.order).id),
            'shipmentType': 'forward',
            'pickupLocation': 'Main Warehouse',
        }
        body.update(data)
        return self.client.post(reverse('shipment-create'), body, format='json')


class PermissionTest(ShippingAPITestCase):

    def test_anonymous_rejected(self):
        self.client.force_authenticate(user=None)

        response = self.client.get(reverse('shipment-waybills'))

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_non_staff_rejected(self):
        clerk = User.objects.create_user('clerk', password='secret')
        self.client.force_authenticate(user=clerk)

        response = self.client.get(reverse('shipment-waybills'))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_shipping_staff_group_allowed(self):
        packer = User.objects.create_user('packer', password='secret')
        packer.groups.add(Group.objects.create(name='shipping_staff'))
        self.client.force_authenticate(user=packer)

        response = self.client.get(reverse('shipment-waybills'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)


class ShipmentEndpointsTest(ShippingAPITestCase):

    def test_create_shipment(self):
        waybill = seed_waybills(1)[0]

        response = self.create_shipment(weight=800, dimensions={'length': 20, 'width': 15, 'height': 10})

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['waybillNumbers'], [waybill.code])
        self.assertFalse(response.data['demo'])
        details = response.data['shipmentDetails']
        self.assertEqual(details['status'], ShipmentStatus.MANIFESTED)
        self.assertEqual(details['statusDisplay'], 'Manifested')
        self.assertEqual(details['package_details']['weight'], 800.0)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.DISPATCHED)

    def test_create_rejects_bad_requests(self):
        response = self.create_shipment(packageCount=3)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'VALIDATION_ERROR')

        response = self.create_shipment(shipmentType='express')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.create_shipment(pickupLocation='Unknown Depot')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error']['code'], 'NOT_FOUND')
        self.assertFalse(Shipment.objects.exists())

    def test_create_for_dispatched_order(self):
        seed_waybills(1)
        order = create_order(status=OrderStatus.DISPATCHED)

        response = self.create_shipment(order=order)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'INVALID_ORDER_STATUS')

    def test_get_shipment(self):
        seed_waybills(1)
        waybill = self.create_shipment().data['waybillNumbers'][0]

        by_waybill = self.client.get(reverse('shipment-get'), {'waybill': waybill})
        by_order = self.client.get(reverse('shipment-get'), {'orderId': str(self.order.id)})
        missing = self.client.get(reverse('shipment-get'), {'waybill': '0000000'})
        no_query = self.client.get(reverse('shipment-get'))

        self.assertEqual(by_waybill.data['shipment']['primary_waybill'], waybill)
        self.assertEqual(len(by_order.data['shipments']), 1)
        self.assertEqual(missing.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(no_query.status_code, status.HTTP_400_BAD_REQUEST)

    def test_tracking(self):
        seed_waybills(1)
        waybill = self.create_shipment().data['waybillNumbers'][0]

        response = self.client.get(reverse('shipment-tracking'), {'waybill': waybill})
        unknown = self.client.get(reverse('shipment-tracking'), {'waybill': '1490009999'})

        self.assertTrue(response.data['data']['isAvailable'])
        self.assertEqual(response.data['data']['waybill'], waybill)
        self.assertEqual(unknown.status_code, status.HTTP_200_OK)
        self.assertFalse(unknown.data['data']['isAvailable'])

    def test_edit_and_cancel(self):
        seed_waybills(1)
        waybill = self.create_shipment().data['waybillNumbers'][0]
        url = reverse('shipment-manage')

        edited = self.client.put(url, {'waybill': waybill, 'editData': {'phone': '9123456789'}}, format='json')
        cancelled = self.client.delete(f'{url}?waybill={waybill}')
        again = self.client.delete(f'{url}?waybill={waybill}')

        self.assertEqual(edited.status_code, status.HTTP_200_OK)
        self.assertEqual(edited.data['data']['customer_details']['phone'], '9123456789')
        self.assertEqual(cancelled.data['data']['status'], ShipmentStatus.CANCELLED)
        self.assertEqual(cancelled.data['message'], 'Shipment cancelled')
        self.assertEqual(again.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(again.data['error']['code'], 'INVALID_SHIPMENT_STATE')

    def test_status_update_accepts_legacy_spelling(self):
        seed_waybills(1)
        shipment_id = self.create_shipment().data['shipmentDetails']['id']
        url = reverse('shipment-status', kwargs={'shipment_id': shipment_id})

        response = self.client.post(url, {'status': 'in-transit', 'notes': 'Picked up'}, format='json')
        backwards = self.client.post(url, {'status': 'Manifested'}, format='json')
        unknown = self.client.post(url, {'status': 'lost'}, format='json')

        self.assertEqual(response.data['data']['status'], ShipmentStatus.IN_TRANSIT)
        self.assertEqual(backwards.data['error']['code'], 'INVALID_TRANSITION')
        self.assertEqual(unknown.status_code, status.HTTP_400_BAD_REQUEST)

    def test_label(self):
        seed_waybills(1)
        waybill = self.create_shipment().data['waybillNumbers'][0]

        pdf = self.client.get(reverse('shipment-label'), {'waybill': waybill})
        data = self.client.get(reverse('shipment-label'), {'waybill': waybill, 'pdf': 'false'})

        self.assertEqual(pdf['Content-Type'], 'application/pdf')
        self.assertIn(f'label-{waybill}.pdf', pdf['Content-Disposition'])
        self.assertTrue(pdf.content.startswith(b'%PDF-1.4'))
        self.assertIn('labelData', data.data['data'])

    def test_pickup_and_ewaybill(self):
        seed_waybills(1)
        waybill = self.create_shipment().data['waybillNumbers'][0]

        pickup = self.client.post(reverse('shipment-pickup'), {
            'waybill': waybill, 'pickupDate': '2026-10-26', 'pickupTime': '14:00',
        }, format='json')
        ewaybill = self.client.post(reverse('shipment-ewaybill'), {
            'waybill': waybill, 'dcn': 'INV-1', 'ewbn': '331000000001',
        }, format='json')

        self.assertTrue(pickup.data['success'])
        self.assertEqual(pickup.data['data']['pickup_time'], '14:00:00')
        self.assertEqual(pickup.data['data']['status'], 'requested')
        self.assertEqual(ewaybill.data['data']['package_details']['ewaybill']['ewbn'], '331000000001')

    def test_serviceability(self):
        bad = self.client.get(reverse('shipment-serviceability'), {'pincode': '12345'})
        embargo = self.client.get(reverse('shipment-serviceability'), {'pincode': '700001'})
        heavy = self.client.get(reverse('shipment-serviceability'), {'pincode': '560001', 'productType': 'heavy'})

        self.assertEqual(bad.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(embargo.data['data']['serviceable'])
        self.assertTrue(embargo.data['data']['embargo'])
        self.assertTrue(heavy.data['data']['serviceable'])

    def test_shipment_list_filters(self):
        seed_waybills(2)
        first = self.create_shipment().data['shipmentDetails']
        other = create_order()
        self.create_shipment(order=other)
        Shipment.objects.filter(id=first['id']).update(status=ShipmentStatus.IN_TRANSIT)

        in_transit = self.client.get(reverse('shipment-list'), {'status': 'in transit'})
        either = self.client.get(reverse('shipment-list'), {'status': 'in_transit,manifested'})
        by_waybill = self.client.get(reverse('shipment-list'), {'waybill': first['primary_waybill']})

        self.assertEqual(in_transit.data['count'], 1)
        self.assertEqual(in_transit.data['results'][0]['statusDisplay'], 'In Transit')
        self.assertEqual(either.data['count'], 2)
        self.assertEqual(by_waybill.data['count'], 1)


class WaybillEndpointsTest(ShippingAPITestCase):

    def test_stats(self):
        seed_waybills(2)

        response = self.client.get(reverse('shipment-waybills'))

        self.assertEqual(response.data['data']['generated'], 2)
        self.assertEqual(response.data['data']['total'], 2)

    def test_generate_and_store(self):
        response = self.client.post(reverse('shipment-waybills'), {'count': 3}, format='json')

        data = response.data['data']
        self.assertEqual(data['count'], 3)
        self.assertEqual(data['source'], WaybillSource.DEMO)
        self.assertTrue(data['demo'])
        self.assertEqual(Waybill.objects.filter(code__in=data['waybills']).count(), 3)

    def test_generate_without_storing(self):
        response = self.client.post(reverse('shipment-waybills'), {'count': 2, 'store': False}, format='json')

        self.assertEqual(len(response.data['data']['waybills']), 2)
        self.assertFalse(Waybill.objects.exists())

    def test_single_mode(self):
        single = self.client.post(reverse('shipment-waybills'), {'mode': 'single'}, format='json')
        invalid = self.client.post(reverse('shipment-waybills'), {'mode': 'single', 'count': 2}, format='json')

        self.assertEqual(single.data['data']['count'], 1)
        self.assertEqual(Waybill.objects.count(), 1)
        self.assertEqual(invalid.status_code, status.HTTP_400_BAD_REQUEST)


class WarehouseEndpointsTest(ShippingAPITestCase):

    def test_list_and_sync(self):
        listed = self.client.get(reverse('shipment-warehouses'))
        synced = self.client.get(reverse('shipment-warehouses'), {'sync': 'true'})

        self.assertEqual([w['name'] for w in listed.data['data']], ['Main Warehouse'])
        self.assertEqual([w['name'] for w in synced.data['data']], ['Delhi Hub', 'Main Warehouse'])
        self.assertEqual(Warehouse.objects.get(name='Main Warehouse').pin, '400001')

    def test_register(self):
        response = self.client.post(reverse('shipment-warehouses'), {
            'name': 'Pune DC', 'phone': '9876500000', 'email': 'pune@example.com',
            'address': 'Survey 12, Chakan', 'city': 'Pune', 'state': 'Maharashtra', 'pin': '410501',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['status'], 'active')
        self.assertTrue(any(w['name'] == 'Pune DC' for w in self.gateway.warehouses))

    def test_register_invalid(self):
        response = self.client.post(reverse('shipment-warehouses'), {'name': 'Pune DC'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
