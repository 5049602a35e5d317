"""
Waybill serializers for the Shipping module.
"""

from django.conf import settings
from rest_framework import serializers


class WaybillGenerateSerializer(serializers.Serializer):
    """Serializer for waybill generation requests."""

    count = serializers.IntegerField(min_value=1, default=1)
    mode = serializers.ChoiceField(choices=['single', 'bulk'], default='bulk')
    store = serializers.BooleanField(default=True)

    def validate_count(self, value):
        limit = getattr(settings, 'SHIPPING', {}).get('WAYBILL_MAX_PER_REQUEST', 10000)
        if value > limit:
            raise serializers.ValidationError(f"Count cannot exceed {limit}")
        return value

    def validate(self, data):
        if data['mode'] == 'single' and data['count'] != 1:
            raise serializers.ValidationError("Single mode generates exactly one waybill")
        return data
