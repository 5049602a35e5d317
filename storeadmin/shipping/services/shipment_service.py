"""
Shipment Service for the Shipping module.

Turns orders into carrier shipments: waybill acquisition, manifest
submission, persistence, and the follow-up edit/cancel/track/label calls.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from ..adapters.carrier_adapter import (
    CarrierGatewayInterface, LabelDocument, TrackingInfo, get_carrier_gateway
)
from ..adapters.normalizers import map_carrier_status
from ..adapters.validation import PINCODE_RE, build_edit_payload
from ..config import ShippingConfig
from ..exceptions import (
    BusinessException, CarrierBusinessException, CarrierException, ConfigurationException,
    NotFoundException, ValidationException, WaybillExhaustedException
)
from ..models import (
    AuditLog, Order, OrderStatus, Shipment, ShipmentStatus, ShipmentType,
    Warehouse, Waybill, WaybillSource, WaybillStatus
)
from .manifest_builder import ManifestBuilder, next_business_day
from .waybill_service import WaybillPoolService
from .workflow import ShipmentWorkflow, validate_shipment_workflow

logger = logging.getLogger(__name__)


ALLOWED_ORDER_STATUSES = {
    ShipmentType.FORWARD: [OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.PAID],
    ShipmentType.MPS: [OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.PAID],
    ShipmentType.REVERSE: [OrderStatus.DELIVERED, OrderStatus.COMPLETED],
    ShipmentType.REPLACEMENT: [OrderStatus.DELIVERED, OrderStatus.COMPLETED],
}

DEFAULT_PICKUP_TIME = '11:00:00'


@dataclass
class ShipmentResult:
    shipment: Shipment
    waybills: List[str]
    demo: bool


def _actor(user):
    return user if getattr(user, 'is_authenticated', False) else None


class ShipmentService:
    """Service class for shipment operations."""

    MAX_RESERVATION_ATTEMPTS = 3

    def __init__(self, gateway: CarrierGatewayInterface = None, config: ShippingConfig = None,
                 pool: WaybillPoolService = None):
        self._gateway = gateway
        self.config = config or ShippingConfig.from_settings()
        self.pool = pool or WaybillPoolService(gateway=gateway, config=self.config)
        self.builder = ManifestBuilder(self.config)

    @property
    def gateway(self) -> CarrierGatewayInterface:
        return self._gateway or get_carrier_gateway()

    # -- creation ------------------------------------------------------------

    def create_shipment(self, order_id, shipment_type: str, pickup_location: str,
                        package: Dict[str, Any] = None, user=None) -> ShipmentResult:
        """
        Create a carrier shipment for an order.

        Args:
            order_id: Order UUID
            shipment_type: ShipmentType value
            pickup_location: Registered warehouse name
            package: Optional weight, dimensions, package_count, shipping_mode,
                product_description, custom_fields
            user: User creating the shipment

        Returns:
            ShipmentResult with the persisted shipment

        Raises:
            ValidationException: Bad order data or shipment type
            BusinessException: Order status does not allow this shipment type
            NotFoundException: Unknown order or warehouse
            WaybillExhaustedException: No waybill could be obtained
            CarrierException: The carrier call failed; reserved waybills are released
        """
        order = self._get_order(order_id)
        self._validate_order(order, shipment_type)
        warehouse = self._resolve_warehouse(pickup_location)

        details = self.builder.package_details(order, shipment_type, package)
        needed = details['package_count'] if shipment_type == ShipmentType.MPS else 1
        reservation = f"order:{order.id}:{uuid.uuid4().hex[:12]}"
        waybills = self._acquire_waybills(needed, reservation)
        codes = [w.code for w in waybills]

        try:
            payload = self.builder.build(order, warehouse, shipment_type, codes, details)
            result = self.gateway.create_shipment(payload)
        except (CarrierBusinessException, ValidationException):
            # Carrier never accepted these numbers, they can be reused
            self.pool.release(codes, reservation)
            logger.warning(f"Manifest for order {order.order_number} rejected; released {len(codes)} waybills")
            raise
        except Exception:
            for code in codes:
                self.pool.cancel(code)
            logger.error(f"Manifest for order {order.order_number} failed; cancelled waybills {', '.join(codes)}")
            raise

        consumed = result.waybills or codes
        shipment_id = uuid.uuid4()
        for code in codes:
            if code in consumed:
                self.pool.use(code, order.id, shipment_id)
        unconsumed = [code for code in codes if code not in consumed]
        if unconsumed:
            self.pool.release(unconsumed, reservation)

        demo = any(w.is_demo for w in waybills if w.code in consumed)
        try:
            shipment = self._persist(
                shipment_id, order, warehouse, shipment_type, consumed, details, result.raw, demo, user
            )
        except Exception:
            logger.exception(
                f"Shipment {shipment_id} for order {order.order_number} was not saved; "
                f"waybills {', '.join(consumed)} are USED at the carrier and need reconciling"
            )
            raise

        if demo:
            logger.warning(f"Shipment {shipment.primary_waybill} for order {order.order_number} uses DEMO waybills")
        logger.info(f"Shipment {shipment.primary_waybill} created for order {order.order_number}")
        return ShipmentResult(shipment=shipment, waybills=list(consumed), demo=demo)

    def _get_order(self, order_id) -> Order:
        try:
            return Order.objects.get(id=order_id)
        except (Order.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundException('Order', str(order_id))

    def _validate_order(self, order: Order, shipment_type: str) -> None:
        if shipment_type not in ShipmentType.values:
            raise ValidationException(
                f"Unknown shipment type {shipment_type}",
                {'shipment_type': ShipmentType.values}
            )

        allowed = ALLOWED_ORDER_STATUSES[shipment_type]
        if order.status not in allowed:
            raise BusinessException(
                f"Order {order.order_number} must be in one of {', '.join(allowed)} for a {shipment_type} shipment",
                "INVALID_ORDER_STATUS",
                {'current_status': order.status, 'allowed_statuses': list(allowed)}
            )

        if shipment_type in (ShipmentType.FORWARD, ShipmentType.MPS):
            if order.shipment_created:
                raise BusinessException(
                    f"Order {order.order_number} already has a shipment",
                    "SHIPMENT_EXISTS",
                    {'waybill': order.waybill}
                )
        elif order.shipments.filter(shipment_type=shipment_type).exclude(status=ShipmentStatus.CANCELLED).exists():
            raise BusinessException(
                f"Order {order.order_number} already has an active {shipment_type} shipment",
                "SHIPMENT_EXISTS"
            )

        address = order.shipping_address or {}
        errors = {}
        if not address.get('address'):
            errors['address'] = 'required'
        if not PINCODE_RE.match(str(address.get('pincode') or address.get('pin') or '')):
            errors['pincode'] = 'must be 6 digits'
        if not (address.get('phone') or order.customer_phone):
            errors['phone'] = 'required'
        if not (address.get('name') or order.customer_name):
            errors['name'] = 'required'
        if errors:
            raise ValidationException(f"Order {order.order_number} is missing shipping details", errors)

    def _resolve_warehouse(self, pickup_location: str) -> Warehouse:
        warehouse = Warehouse.objects.filter(name__iexact=(pickup_location or '').strip()).first()
        if warehouse is None:
            raise NotFoundException('Warehouse', pickup_location)
        if not warehouse.is_active:
            raise BusinessException(
                f"Warehouse {warehouse.name} is not active",
                "WAREHOUSE_INACTIVE",
                {'status': warehouse.status}
            )
        return warehouse

    def _acquire_waybills(self, needed: int, reservation: str) -> List[Waybill]:
        """
        Reserve ``needed`` waybills, generating only the pool shortfall.

        At most one carrier generation call is made; a short carrier batch
        is topped up with DEMO codes. Reservations lost to a concurrent
        caller are retried from the pool a bounded number of times.
        """
        generated = False
        acquired: List[Waybill] = []
        try:
            for _ in range(self.MAX_RESERVATION_ATTEMPTS):
                remaining = needed - len(acquired)
                candidates = [w.code for w in self.pool.get_available(remaining)]
                shortfall = remaining - len(candidates)
                if shortfall > 0 and not generated:
                    generated = True
                    candidates.extend(self._generate_codes(shortfall))
                    leftover = remaining - len(candidates)
                    if leftover > 0:
                        logger.warning(f"Carrier returned too few waybills; topping up {leftover} with DEMO codes")
                        candidates.extend(self._generate_codes(leftover, WaybillSource.DEMO))
                if not candidates:
                    break
                self.pool.reserve(candidates, reservation)
                acquired = list(
                    Waybill.objects.filter(status=WaybillStatus.RESERVED, reserved_by=reservation)
                    .order_by('generated_at', 'code')
                )
                if len(acquired) >= needed:
                    return acquired
        except BusinessException:
            self.pool.release([w.code for w in acquired], reservation)
            raise

        self.pool.release([w.code for w in acquired], reservation)
        raise WaybillExhaustedException(needed, len(acquired))

    def _generate_codes(self, count: int, source: str = None) -> List[str]:
        batch = self.pool.generate_and_store(count, source)
        return list(
            Waybill.objects.filter(
                code__in=batch.codes, status=WaybillStatus.GENERATED
            ).values_list('code', flat=True)[:count]
        )

    def _persist(self, shipment_id, order: Order, warehouse: Warehouse, shipment_type: str,
                 waybills: List[str], details: Dict[str, Any], carrier_response: Dict[str, Any],
                 demo: bool, user) -> Shipment:
        address = order.shipping_address or {}
        with transaction.atomic():
            order = Order.objects.select_for_update().get(id=order.id)
            shipment = Shipment.objects.create(
                id=shipment_id,
                order=order,
                waybill_numbers=list(waybills),
                primary_waybill=waybills[0],
                shipment_type=shipment_type,
                status=ShipmentStatus.MANIFESTED,
                pickup_location=warehouse.name,
                warehouse=warehouse.snapshot(),
                customer_details={
                    'name': address.get('name') or order.customer_name,
                    'phone': address.get('phone') or order.customer_phone,
                    'email': order.customer_email,
                    'address': address.get('address', ''),
                    'city': address.get('city', ''),
                    'state': address.get('state', ''),
                    'pincode': str(address.get('pincode') or address.get('pin') or ''),
                    'country': address.get('country') or 'India',
                },
                package_details=details,
                carrier_response=carrier_response or {},
                is_demo=demo,
                created_by=_actor(user),
                updated_by=_actor(user),
            )
            AuditLog.log_change(
                entity=shipment,
                action='created',
                user=_actor(user),
                new_values={'waybills': list(waybills), 'shipment_type': shipment_type, 'demo': demo},
                notes=f"Shipment created for order {order.order_number}"
            )
            self._link_order(order, shipment, user)
        return shipment

    def _link_order(self, order: Order, shipment: Shipment, user) -> None:
        old_status = order.status
        summary = {
            'shipment_id': str(shipment.id),
            'waybill': shipment.primary_waybill,
            'waybills': list(shipment.waybill_numbers),
            'shipment_type': shipment.shipment_type,
            'pickup_location': shipment.pickup_location,
            'demo': shipment.is_demo,
            'created_at': shipment.created_at.isoformat(),
        }

        if shipment.shipment_type in (ShipmentType.FORWARD, ShipmentType.MPS):
            order.shipment_created = True
            order.waybill = shipment.primary_waybill
            order.shipment_details = summary
            order.status = OrderStatus.DISPATCHED
        elif shipment.shipment_type == ShipmentType.REVERSE:
            order.reverse_shipment = summary
            order.status = OrderStatus.RETURN_INITIATED
        else:
            order.replacement_shipment = summary
            order.status = OrderStatus.REPLACEMENT_INITIATED
        order.save()

        AuditLog.log_status_change(
            entity=order,
            old_status=old_status,
            new_status=order.status,
            user=_actor(user),
            notes=f"{shipment.shipment_type} shipment {shipment.primary_waybill} created"
        )

    # -- queries -------------------------------------------------------------

    def get_shipment_details(self, order_id) -> List[Shipment]:
        """All shipments of an order, newest first."""
        order = self._get_order(order_id)
        return list(order.shipments.all())

    def get_shipment_by_id(self, shipment_id) -> Shipment:
        try:
            return Shipment.objects.select_related('order').get(id=shipment_id)
        except (Shipment.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundException('Shipment', str(shipment_id))

    def find_by_waybill(self, waybill: str) -> Optional[Shipment]:
        """Match the primary waybill or any waybill of a multi-piece shipment."""
        waybill = (waybill or '').strip()
        if not waybill:
            return None
        shipment = Shipment.objects.select_related('order').filter(primary_waybill=waybill).first()
        if shipment:
            return shipment
        candidates = Shipment.objects.select_related('order').filter(waybill_numbers__icontains=f'"{waybill}"')
        return next((s for s in candidates if waybill in s.waybill_numbers), None)

    def get_shipment_by_waybill(self, waybill: str) -> Shipment:
        shipment = self.find_by_waybill(waybill)
        if shipment is None:
            raise NotFoundException('Shipment', waybill)
        return shipment

    # -- mutations -----------------------------------------------------------

    def update_shipment(self, waybill: str, edit_data: Dict[str, Any], user=None) -> Shipment:
        """
        Edit a shipment at the carrier, then mirror the change locally.

        Raises:
            ShipmentStateException: Status does not allow edits; nothing is sent
            ValidationException: Malformed edit data; nothing is sent
        """
        shipment = self.get_shipment_by_waybill(waybill)
        ShipmentWorkflow.ensure_editable(waybill, shipment.status)
        build_edit_payload(shipment.primary_waybill, edit_data)

        self.gateway.edit_shipment(
            shipment.primary_waybill,
            edit_data,
            current_status=shipment.status,
            current_payment_mode=shipment.payment_mode,
        )

        with transaction.atomic():
            shipment = Shipment.objects.select_for_update().get(id=shipment.id)
            old_values = {
                'package_details': dict(shipment.package_details),
                'customer_details': dict(shipment.customer_details),
            }
            self._apply_edit(shipment, edit_data)
            shipment.updated_by = _actor(user)
            shipment.save()
            AuditLog.log_change(
                entity=shipment,
                action='edited',
                user=_actor(user),
                old_values=old_values,
                new_values={k: v for k, v in edit_data.items()},
            )

        logger.info(f"Shipment {shipment.primary_waybill} edited")
        return shipment

    @staticmethod
    def _apply_edit(shipment: Shipment, edit_data: Dict[str, Any]) -> None:
        package = dict(shipment.package_details)
        customer = dict(shipment.customer_details)
        dimensions = dict(package.get('dimensions') or {})

        package_fields = {
            'payment_mode': 'payment_mode',
            'cod_amount': 'cod_amount',
            'weight': 'weight',
            'products_desc': 'product_description',
        }
        customer_fields = {
            'name': 'name', 'add': 'address', 'pin': 'pincode',
            'city': 'city', 'state': 'state', 'phone': 'phone',
        }
        dimension_fields = {
            'shipment_length': 'length', 'shipment_width': 'width', 'shipment_height': 'height',
        }

        for key, value in edit_data.items():
            if value is None:
                continue
            if key in package_fields:
                package[package_fields[key]] = str(value) if key == 'cod_amount' else value
            elif key in customer_fields:
                customer[customer_fields[key]] = str(value)
            elif key in dimension_fields:
                dimensions[dimension_fields[key]] = float(value)

        package['dimensions'] = dimensions
        shipment.package_details = package
        shipment.customer_details = customer

    def cancel_shipment_by_waybill(self, waybill: str, user=None) -> Shipment:
        """
        Cancel a shipment at the carrier and locally.

        A carrier "not found" still cancels locally. Any other carrier error
        is raised and the local status is left unchanged.

        Raises:
            ShipmentStateException: Status does not allow cancellation; nothing is sent
        """
        shipment = self.get_shipment_by_waybill(waybill)
        ShipmentWorkflow.ensure_cancellable(waybill, shipment.status)

        note = 'Cancelled with carrier'
        try:
            self.gateway.cancel_shipment(shipment.primary_waybill, current_status=shipment.status)
        except CarrierException as exc:
            if not self._is_carrier_not_found(exc):
                logger.error(f"Carrier refused cancellation of {shipment.primary_waybill}: {exc.message}")
                raise
            logger.warning(f"Waybill {shipment.primary_waybill} unknown to carrier, cancelling locally")
            note = 'Cancelled locally; waybill not found at carrier'

        with transaction.atomic():
            shipment = Shipment.objects.select_for_update().get(id=shipment.id)
            validate_shipment_workflow(shipment, ShipmentStatus.CANCELLED)
            old_status = shipment.status
            shipment.status = ShipmentStatus.CANCELLED
            shipment.cancelled_at = timezone.now()
            shipment.updated_by = _actor(user)
            shipment.save()
            AuditLog.log_status_change(shipment, old_status, ShipmentStatus.CANCELLED, _actor(user), note)

        logger.info(f"Shipment {shipment.primary_waybill} cancelled")
        return shipment

    @staticmethod
    def _is_carrier_not_found(exc: CarrierException) -> bool:
        if getattr(exc, 'status_code', None) == 404:
            return True
        text = f"{exc.message} {getattr(exc, 'carrier_message', '')}".lower()
        return 'not found' in text or 'does not exist' in text

    def update_shipment_status(self, shipment_id, new_status: str, user=None, notes: str = "") -> Shipment:
        """
        Move a shipment to a new status.

        Raises:
            InvalidTransitionException: If the workflow forbids the move
        """
        if new_status not in ShipmentStatus.values:
            raise ValidationException(f"Unknown shipment status {new_status}", {'status': ShipmentStatus.values})

        with transaction.atomic():
            shipment = self.get_shipment_by_id(shipment_id)
            shipment = Shipment.objects.select_for_update().get(id=shipment.id)
            validate_shipment_workflow(shipment, new_status)
            if shipment.status == new_status:
                return shipment
            old_status = shipment.status
            shipment.status = new_status
            if new_status == ShipmentStatus.CANCELLED:
                shipment.cancelled_at = timezone.now()
            shipment.updated_by = _actor(user)
            shipment.save()
            AuditLog.log_status_change(shipment, old_status, new_status, _actor(user), notes)
            self._sync_order_delivery(shipment)

        logger.info(f"Shipment {shipment.primary_waybill} status: {old_status} -> {new_status}")
        return shipment

    @staticmethod
    def _sync_order_delivery(shipment: Shipment) -> None:
        if shipment.status != ShipmentStatus.DELIVERED:
            return
        if shipment.shipment_type not in (ShipmentType.FORWARD, ShipmentType.MPS):
            return
        order = shipment.order
        if order.status == OrderStatus.DISPATCHED:
            order.status = OrderStatus.DELIVERED
            order.save(update_fields=['status', 'updated_at'])
            AuditLog.log_status_change(order, OrderStatus.DISPATCHED, OrderStatus.DELIVERED,
                                       notes=f"Delivered per tracking of {shipment.primary_waybill}")

    # -- tracking ------------------------------------------------------------

    def track_shipment(self, waybill: str) -> TrackingInfo:
        """
        Poll the carrier and fold new scans into the local shipment.

        Returns:
            TrackingInfo; ``found`` is False when the carrier has no data yet
        """
        info = self.gateway.track_shipment(waybill)
        if not info.found:
            return info

        shipment = self.find_by_waybill(waybill)
        if shipment is not None:
            self._apply_tracking(shipment, info)
        return info

    def _apply_tracking(self, shipment: Shipment, info: TrackingInfo) -> None:
        with transaction.atomic():
            shipment = Shipment.objects.select_for_update().select_related('order').get(id=shipment.id)
            added = shipment.append_tracking_events(info.scans)
            shipment.tracking_status = info.status[:100]
            shipment.tracking_location = (info.current_location or '')[:255]
            shipment.estimated_delivery = (info.estimated_delivery or '')[:64]
            shipment.last_tracked_at = timezone.now()

            new_status = map_carrier_status(info.status)
            if new_status and new_status != shipment.status and ShipmentWorkflow.can_transition_to(shipment, new_status):
                old_status = shipment.status
                shipment.status = new_status
                if new_status == ShipmentStatus.CANCELLED:
                    shipment.cancelled_at = timezone.now()
                AuditLog.log_status_change(shipment, old_status, new_status, notes=f"Carrier status: {info.status}")
                logger.info(f"Shipment {shipment.primary_waybill} tracking moved {old_status} -> {new_status}")
            shipment.save()
            self._sync_order_delivery(shipment)

        if added:
            logger.debug(f"Appended {added} tracking events to {shipment.primary_waybill}")

    # -- documents and pickups -----------------------------------------------

    def generate_shipping_label(self, waybill: str, pdf: bool = True, size: str = 'A4') -> LabelDocument:
        """
        Fetch the shipping label for a waybill.

        Returns:
            LabelDocument holding a URL, PDF bytes or label data
        """
        document = self.gateway.generate_label(waybill, pdf=pdf, size=size)
        shipment = self.find_by_waybill(waybill)
        if shipment is not None:
            shipment.label_generated = True
            if document.url:
                shipment.label_url = document.url[:500]
            shipment.save(update_fields=['label_generated', 'label_url', 'updated_at'])
        return document

    def schedule_pickup(self, waybill: str, pickup_date: date = None, pickup_time: str = DEFAULT_PICKUP_TIME) -> Dict[str, Any]:
        """
        Request a carrier pickup for the shipment's warehouse.

        Defaults to the next business day at 11:00. A failed request is
        recorded on the shipment instead of being raised.
        """
        shipment = self.get_shipment_by_waybill(waybill)
        pickup_date = pickup_date or next_business_day()
        record = {
            'pickup_date': pickup_date.isoformat(),
            'pickup_time': pickup_time,
            'requested_at': timezone.now().isoformat(),
        }
        try:
            response = self.gateway.create_pickup_request(
                shipment.pickup_location, pickup_date.isoformat(), pickup_time, len(shipment.waybill_numbers)
            )
            record.update({'status': 'requested', 'response': response})
            logger.info(f"Pickup requested for {shipment.primary_waybill} on {pickup_date}")
        except (CarrierException, ConfigurationException) as exc:
            record.update({'status': 'failed', 'error': exc.message})
            logger.error(f"Pickup request for {shipment.primary_waybill} failed: {exc.message}")

        shipment.pickup_request = record
        shipment.save(update_fields=['pickup_request', 'updated_at'])
        return record

    def update_ewaybill(self, waybill: str, dcn: str, ewbn: str) -> Shipment:
        """Attach an e-waybill (invoice number + EWB number) to a shipment."""
        shipment = self.get_shipment_by_waybill(waybill)
        self.gateway.update_ewaybill(shipment.primary_waybill, dcn, ewbn)
        package = dict(shipment.package_details)
        package['ewaybill'] = {'dcn': dcn, 'ewbn': ewbn}
        shipment.package_details = package
        shipment.save(update_fields=['package_details', 'updated_at'])
        return shipment
