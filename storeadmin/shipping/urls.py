"""
URL configuration for the Shipping module.

Carrier-backed operations are function views under ``shipment/``; the
filtered shipment listing is a router-registered viewset.
"""

from django.urls import path
from rest_framework.routers import DefaultRouter

from . import views

router = DefaultRouter()
router.register(r'shipments', views.ShipmentViewSet, basename='shipment')

urlpatterns = [
    path('shipment/create', views.create_shipment, name='shipment-create'),
    path('shipment/get', views.get_shipment, name='shipment-get'),
    path('shipment/tracking', views.track_shipment, name='shipment-tracking'),
    path('shipment/manage', views.manage_shipment, name='shipment-manage'),
    path('shipment/<uuid:shipment_id>/status', views.update_shipment_status, name='shipment-status'),
    path('shipment/waybills', views.waybills, name='shipment-waybills'),
    path('shipment/serviceability', views.check_serviceability, name='shipment-serviceability'),
    path('shipment/label', views.shipping_label, name='shipment-label'),
    path('shipment/pickup', views.schedule_pickup, name='shipment-pickup'),
    path('shipment/ewaybill', views.update_ewaybill, name='shipment-ewaybill'),
    path('shipment/warehouses', views.warehouses, name='shipment-warehouses'),
]

urlpatterns += router.urls
