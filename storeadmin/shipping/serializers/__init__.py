"""
Shipping Serializers
"""
