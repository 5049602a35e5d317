"""
Waybill pool views for the Shipping module.
"""

from rest_framework.decorators import api_view, permission_classes

from ..adapters import get_carrier_gateway
from ..exceptions import BusinessException
from ..services import WaybillPoolService
from ..serializers.waybill_serializers import WaybillGenerateSerializer
from ..permissions import IsShippingStaff
from .responses import error_response, invalid_request, success_response


@api_view(['GET', 'POST'])
@permission_classes([IsShippingStaff])
def waybills(request):
    """
    GET returns pool statistics.

    POST generates waybills, in single or bulk mode, and stores them in the
    pool unless ``store`` is false.
    """
    pool = WaybillPoolService()
    if request.method == 'GET':
        return success_response(pool.get_stats())

    serializer = WaybillGenerateSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_request(serializer.errors)

    data = serializer.validated_data
    try:
        if data['mode'] == 'single':
            batch = get_carrier_gateway().fetch_single_waybill()
            if data['store']:
                pool.store(batch.codes, batch.source)
        elif data['store']:
            batch = pool.generate_and_store(data['count'])
        else:
            batch = get_carrier_gateway().generate_waybills(data['count'])
    except BusinessException as e:
        return error_response(e)

    return success_response({
        'waybills': batch.codes,
        'source': batch.source,
        'count': len(batch),
        'demo': batch.is_demo,
        'fallbackReason': batch.fallback_reason,
    })
