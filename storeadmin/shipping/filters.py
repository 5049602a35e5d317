"""
Listing filters for the Shipping module.
"""

import django_filters

from .models import Shipment
from .serializers.shipment_serializers import normalize_shipment_status


class ShipmentFilter(django_filters.FilterSet):
    """Filter shipments by status, type, order and waybill."""

    status = django_filters.CharFilter(method='filter_status')
    shipment_type = django_filters.CharFilter(method='filter_shipment_type')
    order = django_filters.UUIDFilter(field_name='order__id')
    order_number = django_filters.CharFilter(field_name='order__order_number')
    waybill = django_filters.CharFilter(method='filter_waybill')
    is_demo = django_filters.BooleanFilter()
    created_after = django_filters.IsoDateTimeFilter(field_name='created_at', lookup_expr='gte')
    created_before = django_filters.IsoDateTimeFilter(field_name='created_at', lookup_expr='lte')

    class Meta:
        model = Shipment
        fields = ['status', 'shipment_type', 'order', 'order_number', 'waybill', 'is_demo']

    def filter_status(self, queryset, name, value):
        statuses = [normalize_shipment_status(v) for v in value.split(',')]
        return queryset.filter(status__in=[s for s in statuses if s])

    def filter_shipment_type(self, queryset, name, value):
        return queryset.filter(shipment_type=value.strip().upper())

    def filter_waybill(self, queryset, name, value):
        value = value.strip()
        return queryset.filter(primary_waybill=value) | queryset.filter(waybill_numbers__icontains=f'"{value}"')
