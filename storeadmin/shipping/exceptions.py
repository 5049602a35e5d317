"""
Custom exceptions for the Shipping module.
"""

from typing import Dict, Any


class BusinessException(Exception):
    """Base exception for business logic errors."""

    def __init__(self, message: str, code: str = "BUSINESS_ERROR", details: Dict[str, Any] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationException(BusinessException):
    """Raised when the carrier integration is not configured."""

    def __init__(self, message: str = "Delhivery API token is not configured"):
        super().__init__(message, "CARRIER_NOT_CONFIGURED")


class ValidationException(BusinessException):
    """Raised when data validation fails."""

    def __init__(self, message: str, field_errors: Dict[str, Any] = None):
        super().__init__(message, "VALIDATION_ERROR", field_errors or {})


class NotFoundException(BusinessException):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity_type: str, identifier: str):
        super().__init__(f"{entity_type} {identifier} not found", "NOT_FOUND", {
            "entity_type": entity_type,
            "identifier": identifier
        })


class InvalidTransitionException(BusinessException):
    """Raised when attempting an invalid workflow transition."""

    def __init__(self, current_status: str, attempted_status: str, entity_type: str = "shipment"):
        message = f"Invalid transition for {entity_type}: cannot move from {current_status} to {attempted_status}"
        super().__init__(message, "INVALID_TRANSITION", {
            "current_status": current_status,
            "attempted_status": attempted_status,
            "entity_type": entity_type
        })


class ShipmentStateException(BusinessException):
    """Raised when a shipment cannot be edited or cancelled in its current state."""

    def __init__(self, waybill: str, current_status: str, operation: str, allowed_statuses=None):
        allowed = list(allowed_statuses or [])
        message = (
            f"Shipment {waybill} cannot be {operation} in status {current_status}"
            + (f"; allowed: {', '.join(allowed)}" if allowed else "")
        )
        super().__init__(message, "INVALID_SHIPMENT_STATE", {
            "waybill": waybill,
            "current_status": current_status,
            "operation": operation,
            "allowed_statuses": allowed
        })


class CarrierException(BusinessException):
    """Base class for failures reported while talking to the carrier."""

    retryable = False


class CarrierTransportException(CarrierException):
    """Network failure, timeout or non-2xx answer from the carrier API."""

    retryable = True

    def __init__(self, message: str, status_code: int = None, details: Dict[str, Any] = None):
        self.status_code = status_code
        details = dict(details or {})
        if status_code is not None:
            details.setdefault("status_code", status_code)
        super().__init__(message, "CARRIER_TRANSPORT_ERROR", details)


class CarrierBusinessException(CarrierException):
    """The carrier accepted the request but rejected its content."""

    def __init__(self, message: str, carrier_message: str = "", response: Any = None, details: Dict[str, Any] = None):
        self.carrier_message = carrier_message or message
        self.response = response
        details = dict(details or {})
        details.setdefault("carrier_message", self.carrier_message)
        if response is not None:
            details.setdefault("response", response)
        super().__init__(message, "CARRIER_REJECTED", details)


class WaybillExhaustedException(BusinessException):
    """Raised when no waybill can be obtained from the pool or the carrier."""

    def __init__(self, requested: int, obtained: int = 0):
        message = f"Unable to obtain waybills: requested {requested}, obtained {obtained}"
        super().__init__(message, "WAYBILL_EXHAUSTED", {
            "requested": requested,
            "obtained": obtained
        })
