"""
Custom permissions for the Shipping module.
"""

from rest_framework.permissions import BasePermission


class IsShippingStaff(BasePermission):
    """
    Permission that allows access only to shipping staff users.

    Checks if user is staff or belongs to 'shipping_staff' group.
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        if user.is_staff:
            return True

        return user.groups.filter(name='shipping_staff').exists()
