"""
Warehouse views for the Shipping module.
"""

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes

from ..exceptions import BusinessException
from ..services import WarehouseService
from ..serializers.warehouse_serializers import WarehouseRegistrationSerializer, WarehouseSerializer
from ..permissions import IsShippingStaff
from .responses import error_response, invalid_request, success_response


@api_view(['GET', 'POST'])
@permission_classes([IsShippingStaff])
def warehouses(request):
    """List pickup warehouses (``?sync=true`` refreshes from the carrier) or register one."""
    service = WarehouseService()

    if request.method == 'GET':
        try:
            if request.query_params.get('sync', '').lower() in ('1', 'true', 'yes'):
                service.sync_from_carrier()
        except BusinessException as e:
            return error_response(e)
        active_only = request.query_params.get('all', '').lower() not in ('1', 'true', 'yes')
        return success_response(WarehouseSerializer(service.list_warehouses(active_only), many=True).data)

    serializer = WarehouseRegistrationSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_request(serializer.errors)
    try:
        warehouse = service.register_warehouse(serializer.validated_data, user=request.user)
    except BusinessException as e:
        return error_response(e)
    return success_response(WarehouseSerializer(warehouse).data, status_code=status.HTTP_201_CREATED)
