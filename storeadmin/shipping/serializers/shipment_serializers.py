"""
Shipment serializers for the Shipping module.

Internal statuses are the uppercase enum values. Responses carry the
display label alongside, and inbound status filters accept the lowercase
and display forms still sent by older admin screens.
"""

from rest_framework import serializers

from ..models import Shipment, ShipmentStatus, ShipmentType


def normalize_shipment_status(value):
    """
    Map ``in_transit``, ``In Transit`` or ``in-transit`` to ``IN_TRANSIT``.

    Returns None for unknown values.
    """
    if value is None:
        return None
    key = str(value).strip().upper().replace(' ', '_').replace('-', '_')
    if key in ShipmentStatus.values:
        return key
    for choice, label in ShipmentStatus.choices:
        if str(label).strip().upper().replace(' ', '_') == key:
            return choice
    return None


class LegacyStatusField(serializers.ChoiceField):
    """ChoiceField that normalizes legacy status spellings first."""

    def __init__(self, **kwargs):
        super().__init__(choices=ShipmentStatus.choices, **kwargs)

    def to_internal_value(self, data):
        normalized = normalize_shipment_status(data)
        if normalized is None:
            self.fail('invalid_choice', input=data)
        return normalized


class ShipmentSerializer(serializers.ModelSerializer):
    """Serializer for shipment details."""

    order_id = serializers.UUIDField(source='order.id', read_only=True)
    order_number = serializers.CharField(source='order.order_number', read_only=True)
    statusDisplay = serializers.CharField(source='get_status_display', read_only=True)
    shipment_type_display = serializers.CharField(source='get_shipment_type_display', read_only=True)

    class Meta:
        model = Shipment
        fields = [
            'id', 'order_id', 'order_number', 'waybill_numbers', 'primary_waybill',
            'shipment_type', 'shipment_type_display', 'status', 'statusDisplay',
            'pickup_location', 'warehouse', 'customer_details', 'package_details',
            'tracking_events', 'tracking_status', 'tracking_location',
            'estimated_delivery', 'last_tracked_at', 'label_generated', 'label_url',
            'pickup_request', 'is_demo', 'is_active', 'cancelled_at',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields


class ShipmentListSerializer(serializers.ModelSerializer):
    """Serializer for shipment listing."""

    order_number = serializers.CharField(source='order.order_number', read_only=True)
    statusDisplay = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = Shipment
        fields = [
            'id', 'order_number', 'primary_waybill', 'waybill_numbers', 'shipment_type',
            'status', 'statusDisplay', 'pickup_location', 'tracking_status',
            'is_demo', 'created_at'
        ]


class DimensionsSerializer(serializers.Serializer):
    length = serializers.FloatField(min_value=0.1)
    width = serializers.FloatField(min_value=0.1)
    height = serializers.FloatField(min_value=0.1)


class ShipmentCreateSerializer(serializers.Serializer):
    """Serializer for creating shipments."""

    orderId = serializers.UUIDField()
    shipmentType = serializers.CharField(max_length=20, default=ShipmentType.FORWARD)
    pickupLocation = serializers.CharField(max_length=100)
    shippingMode = serializers.ChoiceField(choices=['Surface', 'Express'], required=False)
    weight = serializers.FloatField(min_value=1, required=False, help_text="Grams")
    dimensions = DimensionsSerializer(required=False)
    packageCount = serializers.IntegerField(min_value=1, max_value=50, required=False)
    productDescription = serializers.CharField(max_length=500, required=False)
    fragile = serializers.BooleanField(required=False, default=False)
    customFields = serializers.DictField(required=False)

    def validate_shipmentType(self, value):
        value = value.strip().upper()
        if value not in ShipmentType.values:
            raise serializers.ValidationError(f"shipmentType must be one of {', '.join(ShipmentType.values)}")
        return value

    def validate_pickupLocation(self, value):
        if not value.strip():
            raise serializers.ValidationError("Pickup location must be specified")
        return value.strip()

    def validate(self, data):
        if data.get('packageCount', 1) > 1 and data['shipmentType'] != ShipmentType.MPS:
            raise serializers.ValidationError("packageCount above 1 requires shipmentType MPS")
        return data

    def package(self):
        """Package overrides in the shape ManifestBuilder expects."""
        data = self.validated_data
        package = {
            'shipping_mode': data.get('shippingMode'),
            'weight': data.get('weight'),
            'dimensions': dict(data['dimensions']) if data.get('dimensions') else None,
            'package_count': data.get('packageCount'),
            'product_description': data.get('productDescription'),
            'fragile': data.get('fragile', False),
            'custom_fields': data.get('customFields'),
        }
        return {key: value for key, value in package.items() if value is not None}


class ShipmentEditSerializer(serializers.Serializer):
    """Serializer for editing a shipment at the carrier."""

    waybill = serializers.CharField(max_length=64)
    editData = serializers.DictField()

    def validate_editData(self, value):
        if not value:
            raise serializers.ValidationError("editData cannot be empty")
        return value


class ShipmentStatusUpdateSerializer(serializers.Serializer):
    """Serializer for updating shipment status."""

    status = LegacyStatusField()
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class PickupRequestSerializer(serializers.Serializer):
    waybill = serializers.CharField(max_length=64)
    pickupDate = serializers.DateField(required=False)
    pickupTime = serializers.RegexField(r'^\d{2}:\d{2}(:\d{2})?$', required=False)


class EwaybillSerializer(serializers.Serializer):
    waybill = serializers.CharField(max_length=64)
    dcn = serializers.CharField(max_length=64)
    ewbn = serializers.CharField(max_length=64)


class ServiceabilityQuerySerializer(serializers.Serializer):
    pincode = serializers.RegexField(r'^\d{6}$', error_messages={'invalid': 'Pincode must be exactly 6 digits'})
    productType = serializers.ChoiceField(choices=['standard', 'heavy'], default='standard')


class LabelQuerySerializer(serializers.Serializer):
    waybill = serializers.CharField(max_length=64)
    pdf = serializers.BooleanField(default=True)
    pdf_size = serializers.ChoiceField(choices=['A4', '4R'], default='A4')
