"""
Workflow service for the Shipping module.

Manages allowed state transitions for shipments and pool waybills.
"""

from ..exceptions import InvalidTransitionException, ShipmentStateException
from ..models import (
    Shipment, ShipmentStatus, WaybillStatus,
    EDITABLE_SHIPMENT_STATUSES, CANCELLABLE_SHIPMENT_STATUSES
)


class ShipmentWorkflow:
    """Workflow rules for Shipment state transitions."""

    # Tracking can observe a later state directly, so forward skips are allowed
    ALLOWED_TRANSITIONS = {
        ShipmentStatus.PENDING: [
            ShipmentStatus.CREATED, ShipmentStatus.MANIFESTED, ShipmentStatus.IN_TRANSIT,
            ShipmentStatus.DELIVERED, ShipmentStatus.RTO, ShipmentStatus.CANCELLED,
        ],
        ShipmentStatus.CREATED: [
            ShipmentStatus.MANIFESTED, ShipmentStatus.IN_TRANSIT,
            ShipmentStatus.DELIVERED, ShipmentStatus.RTO, ShipmentStatus.CANCELLED,
        ],
        ShipmentStatus.MANIFESTED: [
            ShipmentStatus.IN_TRANSIT, ShipmentStatus.DELIVERED,
            ShipmentStatus.RTO, ShipmentStatus.CANCELLED,
        ],
        ShipmentStatus.IN_TRANSIT: [
            ShipmentStatus.DELIVERED, ShipmentStatus.RTO, ShipmentStatus.CANCELLED,
        ],
        ShipmentStatus.DELIVERED: [],  # Final state
        ShipmentStatus.CANCELLED: [],  # Final state
        ShipmentStatus.RTO: [],        # Final state
    }

    EDITABLE_STATUSES = list(EDITABLE_SHIPMENT_STATUSES)
    CANCELLABLE_STATUSES = list(CANCELLABLE_SHIPMENT_STATUSES)

    @classmethod
    def validate_transition(cls, shipment: Shipment, new_status: str) -> None:
        """
        Validate if a status transition is allowed.

        Args:
            shipment: Shipment instance
            new_status: New status to transition to

        Raises:
            InvalidTransitionException: If transition is not allowed
        """
        current_status = shipment.status

        if current_status == new_status:
            return  # Allow no-op transitions

        allowed_transitions = cls.ALLOWED_TRANSITIONS.get(current_status, [])

        if new_status not in allowed_transitions:
            raise InvalidTransitionException(
                current_status=current_status,
                attempted_status=new_status,
                entity_type="Shipment"
            )

    @classmethod
    def can_transition_to(cls, shipment: Shipment, new_status: str) -> bool:
        try:
            cls.validate_transition(shipment, new_status)
            return True
        except InvalidTransitionException:
            return False

    @classmethod
    def ensure_editable(cls, waybill: str, current_status: str) -> None:
        if current_status not in cls.EDITABLE_STATUSES:
            raise ShipmentStateException(waybill, current_status, 'edited', cls.EDITABLE_STATUSES)

    @classmethod
    def ensure_cancellable(cls, waybill: str, current_status: str) -> None:
        if current_status not in cls.CANCELLABLE_STATUSES:
            raise ShipmentStateException(waybill, current_status, 'cancelled', cls.CANCELLABLE_STATUSES)


class WaybillWorkflow:
    """Workflow rules for pool waybills. USED and CANCELLED are terminal."""

    ALLOWED_TRANSITIONS = {
        WaybillStatus.GENERATED: [WaybillStatus.RESERVED, WaybillStatus.USED, WaybillStatus.CANCELLED],
        WaybillStatus.RESERVED: [WaybillStatus.GENERATED, WaybillStatus.USED, WaybillStatus.CANCELLED],
        WaybillStatus.USED: [],       # Final state
        WaybillStatus.CANCELLED: [],  # Final state
    }

    @classmethod
    def sources_for(cls, target_status: str):
        """Statuses a waybill may be in to move to ``target_status``."""
        return [
            status for status, targets in cls.ALLOWED_TRANSITIONS.items()
            if target_status in targets
        ]


def validate_shipment_workflow(shipment: Shipment, new_status: str) -> None:
    """
    Validate shipment workflow transition.

    Args:
        shipment: Shipment instance
        new_status: New status to transition to

    Raises:
        InvalidTransitionException: If transition is not allowed
    """
    ShipmentWorkflow.validate_transition(shipment, new_status)
