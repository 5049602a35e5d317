"""
Tests for the waybill pool.
"""

import uuid
from datetime import timedelta
from unittest import mock

from django.test import TestCase
from django.utils import timezone

from ..adapters import WaybillBatch, switch_to_mock_gateway
from ..config import ShippingConfig
from ..exceptions import CarrierTransportException, ValidationException
from ..models import Waybill, WaybillSource, WaybillStatus
from ..services import WaybillPoolService
from .helpers import seed_waybills


class WaybillPoolTest(TestCase):
    """Test pool reads and compare-and-set transitions."""

    def setUp(self):
        self.gateway = switch_to_mock_gateway()
        self.pool = WaybillPoolService(gateway=self.gateway, config=ShippingConfig(min_stock=5))

    def test_get_available_returns_oldest_first(self):
        waybills = seed_waybills(4)
        Waybill.objects.filter(code=waybills[0].code).update(status=WaybillStatus.USED)

        available = self.pool.get_available(2)

        self.assertEqual([w.code for w in available], [waybills[1].code, waybills[2].code])

    def test_get_available_filters_by_source_and_may_return_fewer(self):
        seed_waybills(2)
        seed_waybills(1, source=WaybillSource.DEMO, prefix='DEMO_1_')

        available = self.pool.get_available(5, source=WaybillSource.DEMO)

        self.assertEqual(len(available), 1)
        self.assertTrue(available[0].is_demo)

    def test_reserve_reports_shortfall_and_skips_non_generated(self):
        waybills = seed_waybills(3)
        Waybill.objects.filter(code=waybills[2].code).update(status=WaybillStatus.CANCELLED)
        codes = [w.code for w in waybills] + ['UNKNOWN']

        reserved = self.pool.reserve(codes, 'order:1')

        self.assertEqual(reserved, 2)
        self.assertEqual(
            Waybill.objects.filter(status=WaybillStatus.RESERVED, reserved_by='order:1').count(), 2
        )
        self.assertEqual(Waybill.objects.get(code=waybills[2].code).status, WaybillStatus.CANCELLED)

    def test_competing_reservations_for_one_code(self):
        waybill = seed_waybills(1)[0]

        first = self.pool.reserve([waybill.code], 'request-a')
        second = self.pool.reserve([waybill.code], 'request-b')

        self.assertEqual(first, 1)
        self.assertEqual(second, 0)
        waybill.refresh_from_db()
        self.assertEqual(waybill.reserved_by, 'request-a')
        self.assertIsNotNone(waybill.reserved_at)

    def test_use_is_idempotent(self):
        waybill = seed_waybills(1)[0]
        self.pool.reserve([waybill.code], 'order:1')
        order_id, shipment_id = uuid.uuid4(), uuid.uuid4()

        self.assertTrue(self.pool.use(waybill.code, order_id, shipment_id))
        self.assertFalse(self.pool.use(waybill.code, uuid.uuid4(), uuid.uuid4()))

        waybill.refresh_from_db()
        self.assertEqual(waybill.status, WaybillStatus.USED)
        self.assertEqual(waybill.order_id, str(order_id))
        self.assertEqual(waybill.shipment_id, str(shipment_id))

    def test_use_directly_from_generated(self):
        waybill = seed_waybills(1)[0]

        self.assertTrue(self.pool.use(waybill.code, 'o', 's'))

    def test_terminal_waybills_never_transition(self):
        used, cancelled = seed_waybills(2)
        self.pool.use(used.code, 'o', 's')
        self.assertTrue(self.pool.cancel(cancelled.code))

        self.assertFalse(self.pool.cancel(used.code))
        self.assertFalse(self.pool.cancel(cancelled.code))
        self.assertFalse(self.pool.use(cancelled.code, 'o', 's'))
        self.assertEqual(self.pool.reserve([used.code, cancelled.code], 'x'), 0)
        self.assertEqual(self.pool.release([used.code, cancelled.code]), 0)

        self.assertEqual(Waybill.objects.get(code=used.code).status, WaybillStatus.USED)
        self.assertEqual(Waybill.objects.get(code=cancelled.code).status, WaybillStatus.CANCELLED)

    def test_release_only_touches_own_reservations(self):
        mine, theirs = seed_waybills(2)
        self.pool.reserve([mine.code], 'mine')
        self.pool.reserve([theirs.code], 'theirs')

        released = self.pool.release([mine.code, theirs.code], 'mine')

        self.assertEqual(released, 1)
        self.assertEqual(Waybill.objects.get(code=mine.code).status, WaybillStatus.GENERATED)
        self.assertEqual(Waybill.objects.get(code=mine.code).reserved_by, '')
        self.assertEqual(Waybill.objects.get(code=theirs.code).status, WaybillStatus.RESERVED)

    def test_release_expired_reservations(self):
        stale, fresh = seed_waybills(2)
        self.pool.reserve([stale.code, fresh.code], 'crashed-request')
        Waybill.objects.filter(code=stale.code).update(reserved_at=timezone.now() - timedelta(minutes=30))

        released = self.pool.release_expired_reservations(ttl_minutes=15)

        self.assertEqual(released, 1)
        self.assertEqual(Waybill.objects.get(code=stale.code).status, WaybillStatus.GENERATED)
        self.assertEqual(Waybill.objects.get(code=fresh.code).status, WaybillStatus.RESERVED)


class WaybillGenerationTest(TestCase):
    """Test storing and generating waybills."""

    def setUp(self):
        self.gateway = switch_to_mock_gateway()
        self.pool = WaybillPoolService(gateway=self.gateway, config=ShippingConfig(min_stock=5))

    def test_store_skips_duplicates(self):
        seed_waybills(1, prefix='555')

        created = self.pool.store(['5550000', '5550001'], WaybillSource.DELHIVERY_BULK)

        self.assertEqual([w.code for w in created], ['5550001'])
        self.assertEqual(Waybill.objects.count(), 2)

    def test_generate_and_store_records_batch_metadata(self):
        batch = self.pool.generate_and_store(3)

        self.assertEqual(len(batch), 3)
        stored = Waybill.objects.filter(code__in=batch.codes)
        self.assertEqual(stored.count(), 3)
        for waybill in stored:
            self.assertEqual(waybill.status, WaybillStatus.GENERATED)
            self.assertEqual(waybill.source, WaybillSource.DEMO)
            self.assertTrue(waybill.metadata['batch_id'].startswith('batch_'))
            self.assertEqual(waybill.metadata['generated_count'], 3)

    def test_generate_and_store_rejects_out_of_range_counts(self):
        with self.assertRaises(ValidationException):
            self.pool.generate_and_store(0)
        with self.assertRaises(ValidationException):
            self.pool.generate_and_store(10001)

    def test_demo_source_skips_the_carrier(self):
        gateway = mock.Mock()
        pool = WaybillPoolService(gateway=gateway, config=ShippingConfig())

        batch = pool.generate_and_store(2, source=WaybillSource.DEMO)

        gateway.generate_waybills.assert_not_called()
        self.assertTrue(batch.is_demo)
        self.assertTrue(all(code.startswith('DEMO_') for code in batch.codes))

    def test_ensure_minimum_stock_generates_the_difference(self):
        seed_waybills(2)
        gateway = mock.Mock()
        gateway.generate_waybills.return_value = WaybillBatch(
            codes=['9000001', '9000002', '9000003'], source=WaybillSource.DELHIVERY_BULK
        )
        pool = WaybillPoolService(gateway=gateway, config=ShippingConfig(min_stock=5))

        pool.ensure_minimum_stock()

        gateway.generate_waybills.assert_called_once_with(3)
        self.assertEqual(pool.available_count(), 5)

    def test_ensure_minimum_stock_noop_when_stocked(self):
        seed_waybills(5)
        gateway = mock.Mock()
        pool = WaybillPoolService(gateway=gateway, config=ShippingConfig(min_stock=5))

        self.assertIsNone(pool.ensure_minimum_stock())
        gateway.generate_waybills.assert_not_called()

    def test_ensure_minimum_stock_swallows_gateway_errors(self):
        gateway = mock.Mock()
        gateway.generate_waybills.side_effect = CarrierTransportException("down")
        pool = WaybillPoolService(gateway=gateway, config=ShippingConfig(min_stock=5))

        self.assertIsNone(pool.ensure_minimum_stock())
        self.assertEqual(pool.available_count(), 0)

    def test_get_stats(self):
        waybills = seed_waybills(4)
        self.pool.reserve([waybills[0].code], 'r')
        self.pool.use(waybills[1].code, 'o', 's')
        self.pool.cancel(waybills[2].code)

        stats = self.pool.get_stats()

        self.assertEqual(stats['total'], 4)
        self.assertEqual(stats['generated'], 1)
        self.assertEqual(stats['reserved'], 1)
        self.assertEqual(stats['used'], 1)
        self.assertEqual(stats['cancelled'], 1)
        self.assertEqual(stats['by_source'], {WaybillSource.DELHIVERY_BULK: 4})
