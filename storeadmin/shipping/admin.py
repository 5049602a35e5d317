"""
Django admin configuration for the Shipping module.
"""

from django.contrib import admin
from .models import Waybill, Shipment, Order, Warehouse, AuditLog


@admin.register(Waybill)
class WaybillAdmin(admin.ModelAdmin):
    list_display = ['code', 'status', 'source', 'reserved_by', 'order_id', 'generated_at', 'used_at']
    list_filter = ['status', 'source', 'generated_at']
    search_fields = ['code', 'order_id', 'shipment_id', 'reserved_by']
    readonly_fields = ['id', 'generated_at', 'updated_at']


@admin.register(Shipment)
class ShipmentAdmin(admin.ModelAdmin):
    list_display = ['primary_waybill', 'order', 'shipment_type', 'status', 'pickup_location', 'is_demo', 'created_at']
    list_filter = ['status', 'shipment_type', 'is_demo', 'created_at']
    search_fields = ['primary_waybill', 'order__order_number', 'pickup_location']
    readonly_fields = ['id', 'carrier_response', 'tracking_events', 'created_at', 'updated_at']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'customer_name', 'status', 'payment_method', 'total_amount', 'waybill', 'created_at']
    list_filter = ['status', 'payment_method', 'shipment_created', 'created_at']
    search_fields = ['order_number', 'customer_name', 'customer_phone', 'waybill']
    readonly_fields = ['id', 'order_number', 'created_at', 'updated_at']


@admin.register(Warehouse)
class WarehouseAdmin(admin.ModelAdmin):
    list_display = ['name', 'city', 'pin', 'status', 'is_default', 'last_synced_at']
    list_filter = ['status', 'is_default']
    search_fields = ['name', 'registered_name', 'city', 'pin']
    readonly_fields = ['carrier_response', 'last_synced_at', 'created_at', 'updated_at']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['entity_type', 'entity_id', 'action', 'user', 'timestamp']
    list_filter = ['entity_type', 'action', 'timestamp']
    search_fields = ['entity_id', 'notes']
    readonly_fields = ['entity_type', 'entity_id', 'action', 'user', 'old_values', 'new_values', 'notes', 'timestamp']
