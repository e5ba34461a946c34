"""
Custom exceptions for the Ticket Sales Platform.
"""

from typing import Any, Dict, Optional, List
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for the platform."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"

    # Booking flow errors
    SESSION_STATE_VIOLATION = "SESSION_STATE_VIOLATION"
    INVALID_ROW_ENCODING = "INVALID_ROW_ENCODING"

    # Inventory service errors
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    INVENTORY_UNAVAILABLE = "INVENTORY_UNAVAILABLE"
    INVENTORY_REJECTED = "INVENTORY_REJECTED"
    INVENTORY_PROTOCOL_ERROR = "INVENTORY_PROTOCOL_ERROR"
    CACHE_SERVICE_ERROR = "CACHE_SERVICE_ERROR"


class TicketSalesError(Exception):
    """Base exception class for the ticket sales platform."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
        retry_after: Optional[int] = None
    ):
        """Initialize the exception with comprehensive error information."""
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.suggestions = suggestions or []
        self.retry_after = retry_after
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        result = {
            "error_code": self.error_code.value,
            "message": self.message,
        }

        if self.details:
            result["details"] = self.details

        if self.suggestions:
            result["suggestions"] = self.suggestions

        if self.retry_after:
            result["retry_after"] = self.retry_after

        return result


class ValidationError(TicketSalesError):
    """Exception raised for validation errors."""

    def __init__(self, message: str, field_errors: Optional[Dict[str, List[str]]] = None, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.VALIDATION_ERROR)
        if field_errors and "details" not in kwargs:
            kwargs["details"] = {"field_errors": field_errors}
        super().__init__(message, **kwargs)
        self.field_errors = field_errors or {}


class InvalidRowEncodingError(ValidationError):
    """Raised when a seat row is neither a single A-Z letter nor an integer."""

    def __init__(self, row: Any, **kwargs):
        super().__init__(
            f"Row {row!r} is not a letter A-Z or a number",
            error_code=ErrorCode.INVALID_ROW_ENCODING,
            details={"row": row},
            suggestions=["Use a single letter A-Z or a numeric row"],
            **kwargs
        )
        self.row = row


class NotFoundError(TicketSalesError):
    """Base exception for resource not found errors."""

    def __init__(self, message: str, resource_type: Optional[str] = None, resource_id: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id} if resource_type else None,
            **kwargs
        )


class EventNotFoundError(NotFoundError):
    """Exception raised when an event is not found."""

    def __init__(self, event_id: Any, **kwargs):
        super().__init__(
            f"Event {event_id} not found",
            resource_type="event",
            resource_id=str(event_id),
            suggestions=["Check the event ID", "Browse available events"],
            **kwargs
        )


class AuthenticationError(TicketSalesError):
    """Exception raised for authentication failures."""

    def __init__(self, message: str = "Authentication failed", **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.UNAUTHORIZED,
            suggestions=["Check your credentials", "Login again"],
            **kwargs
        )


class SessionStateError(TicketSalesError):
    """Exception raised when a booking step is invoked out of order."""

    def __init__(self, operation: str, current_stage: str, reason: str, **kwargs):
        super().__init__(
            f"Cannot {operation} while session is {current_stage}: {reason}",
            error_code=ErrorCode.SESSION_STATE_VIOLATION,
            details={"operation": operation, "current_stage": current_stage},
            **kwargs
        )
        self.operation = operation
        self.current_stage = current_stage


class ExternalServiceError(TicketSalesError):
    """Exception raised for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        status_code: Optional[int] = None,
        error_code: ErrorCode = ErrorCode.EXTERNAL_SERVICE_ERROR,
        details: Optional[Dict[str, Any]] = None,
        **kwargs
    ):
        kwargs.setdefault("suggestions", ["Try again later", "Contact support if problem persists"])
        super().__init__(
            f"{service_name} service error: {message}",
            error_code=error_code,
            details={"service_name": service_name, "status_code": status_code, **(details or {})},
            **kwargs
        )
        self.service_name = service_name
        self.status_code = status_code


class InventoryServiceError(ExternalServiceError):
    """Base class for failures talking to the seat inventory service."""

    def __init__(self, message: str, **kwargs):
        super().__init__("inventory", message, **kwargs)


class TransportUnavailableError(InventoryServiceError):
    """The inventory service could not be reached (refused, timeout, no route)."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("retry_after", 5)
        super().__init__(message, error_code=ErrorCode.INVENTORY_UNAVAILABLE, **kwargs)


class InventoryRejectionError(InventoryServiceError):
    """The inventory service answered with a well-formed refusal."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, error_code=ErrorCode.INVENTORY_REJECTED, **kwargs)


class InventoryProtocolError(InventoryServiceError):
    """The inventory service answered with something that breaks the contract."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, error_code=ErrorCode.INVENTORY_PROTOCOL_ERROR, **kwargs)


class CacheServiceError(ExternalServiceError):
    """Exception raised for cache service failures."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            "cache",
            message,
            error_code=ErrorCode.CACHE_SERVICE_ERROR,
            **kwargs
        )
