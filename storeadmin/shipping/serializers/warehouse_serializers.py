"""
Warehouse serializers for the Shipping module.
"""

from rest_framework import serializers

from ..models import Warehouse


class WarehouseSerializer(serializers.ModelSerializer):
    """Serializer for pickup warehouses."""

    class Meta:
        model = Warehouse
        fields = [
            'id', 'name', 'registered_name', 'phone', 'email', 'address', 'city',
            'state', 'pin', 'country', 'return_address', 'return_city',
            'return_state', 'return_pin', 'return_country', 'status', 'is_default',
            'last_synced_at', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'status', 'last_synced_at', 'created_at', 'updated_at']


class WarehouseRegistrationSerializer(serializers.Serializer):
    """Serializer for registering a pickup warehouse with the carrier."""

    name = serializers.CharField(max_length=100)
    registered_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=20)
    email = serializers.EmailField()
    address = serializers.CharField()
    city = serializers.CharField(max_length=100)
    state = serializers.CharField(max_length=100)
    pin = serializers.RegexField(r'^\d{6}$', error_messages={'invalid': 'Pincode must be exactly 6 digits'})
    country = serializers.CharField(max_length=50, required=False, default='India')
    return_address = serializers.CharField(required=False, allow_blank=True)
    return_city = serializers.CharField(max_length=100, required=False, allow_blank=True)
    return_state = serializers.CharField(max_length=100, required=False, allow_blank=True)
    return_pin = serializers.RegexField(r'^\d{6}$', required=False, allow_blank=True)
    return_country = serializers.CharField(max_length=50, required=False, allow_blank=True)

    def validate_name(self, value):
        if not value.strip():
            raise serializers.ValidationError("Warehouse name cannot be empty")
        return value.strip()
