"""
Shipment views for the Shipping module.
"""

import logging

from django.http import HttpResponse
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, status, viewsets
from rest_framework.decorators import api_view, permission_classes

from ..exceptions import BusinessException
from ..filters import ShipmentFilter
from ..models import Shipment
from ..permissions import IsShippingStaff
from ..serializers.shipment_serializers import (
    EwaybillSerializer, LabelQuerySerializer, PickupRequestSerializer,
    ServiceabilityQuerySerializer, ShipmentCreateSerializer, ShipmentEditSerializer,
    ShipmentListSerializer, ShipmentSerializer, ShipmentStatusUpdateSerializer
)
from ..services import ShipmentService
from ..adapters import get_carrier_gateway
from .responses import error_response, invalid_request, success_response

logger = logging.getLogger(__name__)


class ShipmentViewSet(viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for shipment listing.

    Shipments are created, edited and cancelled through the carrier-backed
    endpoints below; this viewset only reads.
    """

    queryset = Shipment.objects.select_related('order').all()
    permission_classes = [IsShippingStaff]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = ShipmentFilter
    search_fields = ['primary_waybill', 'order__order_number', 'pickup_location']
    ordering_fields = ['created_at', 'status', 'updated_at']
    ordering = ['-created_at']

    def get_serializer_class(self):
        if self.action == 'list':
            return ShipmentListSerializer
        return ShipmentSerializer


@api_view(['POST'])
@permission_classes([IsShippingStaff])
def create_shipment(request):
    """Create a carrier shipment for an order."""
    serializer = ShipmentCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_request(serializer.errors)

    data = serializer.validated_data
    try:
        result = ShipmentService().create_shipment(
            data['orderId'], data['shipmentType'], data['pickupLocation'],
            package=serializer.package(), user=request.user
        )
    except BusinessException as e:
        return error_response(e)

    return success_response(
        status_code=status.HTTP_201_CREATED,
        waybillNumbers=result.waybills,
        shipmentDetails=ShipmentSerializer(result.shipment).data,
        demo=result.demo,
    )


@api_view(['GET'])
@permission_classes([IsShippingStaff])
def get_shipment(request):
    """Look a shipment up by waybill, shipment id or order id."""
    service = ShipmentService()
    params = request.query_params
    try:
        if params.get('waybill'):
            shipment = service.get_shipment_by_waybill(params['waybill'])
        elif params.get('shipmentId'):
            shipment = service.get_shipment_by_id(params['shipmentId'])
        elif params.get('orderId'):
            shipments = service.get_shipment_details(params['orderId'])
            return success_response(shipments=ShipmentSerializer(shipments, many=True).data)
        else:
            return invalid_request({'query': 'waybill, shipmentId or orderId is required'})
    except BusinessException as e:
        return error_response(e)

    return success_response(shipment=ShipmentSerializer(shipment).data)


@api_view(['GET'])
@permission_classes([IsShippingStaff])
def track_shipment(request):
    """Poll carrier tracking for a waybill."""
    waybill = request.query_params.get('waybill', '').strip()
    if not waybill:
        return invalid_request({'waybill': 'This field is required.'})

    try:
        info = ShipmentService().track_shipment(waybill)
    except BusinessException as e:
        return error_response(e)
    return success_response(info.as_dict())


@api_view(['PUT', 'DELETE'])
@permission_classes([IsShippingStaff])
def manage_shipment(request):
    """PUT edits a shipment at the carrier, DELETE cancels it."""
    service = ShipmentService()

    if request.method == 'PUT':
        serializer = ShipmentEditSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request(serializer.errors)
        try:
            shipment = service.update_shipment(
                serializer.validated_data['waybill'],
                serializer.validated_data['editData'],
                user=request.user
            )
        except BusinessException as e:
            return error_response(e)
        return success_response(ShipmentSerializer(shipment).data, message='Shipment updated')

    waybill = (request.query_params.get('waybill') or request.data.get('waybill') or '').strip()
    if not waybill:
        return invalid_request({'waybill': 'This field is required.'})
    try:
        shipment = service.cancel_shipment_by_waybill(waybill, user=request.user)
    except BusinessException as e:
        return error_response(e)
    return success_response(ShipmentSerializer(shipment).data, message='Shipment cancelled')


@api_view(['POST'])
@permission_classes([IsShippingStaff])
def update_shipment_status(request, shipment_id):
    """Manually move a shipment to a new status."""
    serializer = ShipmentStatusUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_request(serializer.errors)

    try:
        shipment = ShipmentService().update_shipment_status(
            shipment_id, serializer.validated_data['status'],
            user=request.user, notes=serializer.validated_data['notes']
        )
    except BusinessException as e:
        return error_response(e)
    return success_response(ShipmentSerializer(shipment).data)


@api_view(['GET'])
@permission_classes([IsShippingStaff])
def check_serviceability(request):
    """Pincode serviceability for standard or heavy shipments."""
    serializer = ServiceabilityQuerySerializer(data=request.query_params.dict())
    if not serializer.is_valid():
        return invalid_request(serializer.errors)

    gateway = get_carrier_gateway()
    pincode = serializer.validated_data['pincode']
    try:
        if serializer.validated_data['productType'] == 'heavy':
            result = gateway.check_heavy_pincode_serviceability(pincode)
        else:
            result = gateway.check_pincode_serviceability(pincode)
    except BusinessException as e:
        return error_response(e)
    return success_response(result.as_dict())


@api_view(['GET'])
@permission_classes([IsShippingStaff])
def shipping_label(request):
    """Shipping label as a PDF download or as label data."""
    serializer = LabelQuerySerializer(data=request.query_params.dict())
    if not serializer.is_valid():
        return invalid_request(serializer.errors)

    data = serializer.validated_data
    try:
        document = ShipmentService().generate_shipping_label(data['waybill'], pdf=data['pdf'], size=data['pdf_size'])
    except BusinessException as e:
        return error_response(e)

    if document.content:
        response = HttpResponse(document.content, content_type='application/pdf')
        response['Content-Disposition'] = f'attachment; filename="label-{document.waybill}.pdf"'
        return response
    if document.url:
        return success_response({'labelUrl': document.url})
    return success_response({'labelData': document.data})


@api_view(['POST'])
@permission_classes([IsShippingStaff])
def schedule_pickup(request):
    """Request a carrier pickup for a shipment."""
    serializer = PickupRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_request(serializer.errors)

    data = serializer.validated_data
    kwargs = {'pickup_date': data.get('pickupDate')}
    if data.get('pickupTime'):
        time_value = data['pickupTime']
        kwargs['pickup_time'] = time_value if time_value.count(':') == 2 else f'{time_value}:00'
    try:
        record = ShipmentService().schedule_pickup(data['waybill'], **kwargs)
    except BusinessException as e:
        return error_response(e)

    if record.get('status') == 'failed':
        return success_response(record, success=False)
    return success_response(record)


@api_view(['POST'])
@permission_classes([IsShippingStaff])
def update_ewaybill(request):
    """Attach an e-waybill to a shipment."""
    serializer = EwaybillSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_request(serializer.errors)

    data = serializer.validated_data
    try:
        shipment = ShipmentService().update_ewaybill(data['waybill'], data['dcn'], data['ewbn'])
    except BusinessException as e:
        return error_response(e)
    return success_response(ShipmentSerializer(shipment).data)
