"""Custom exceptions for the certification expiry alert engine.

Per-item failures (missing data, no recipients, transport rejection) derive
from NotificationError and are aggregated by the daily run. A store failure
during reminder generation is fatal to the whole run.
"""
from typing import Optional, Dict, Any


class CertAlertError(Exception):
    """Base class for engine errors with a machine-readable code."""

    def __init__(self, message: str, error_code: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize engine error.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            details: Optional additional error details
        """
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to dictionary format for API responses.

        Returns:
            Dictionary with error information
        """
        return {
            "success": False,
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


class NotificationError(CertAlertError):
    """A failure that aborts a single reminder but not the batch."""


class MissingDataError(NotificationError):
    """Error raised when a certification, worker or company record is incomplete."""

    def __init__(self, resource_type: str, resource_id: Optional[str], reason: str = "not found"):
        """
        Initialize missing data error.

        Args:
            resource_type: Type of record (e.g., "certification", "worker", "company")
            resource_id: ID of the record, if known
            reason: What is missing
        """
        message = f"Missing {resource_type} data ({resource_id}): {reason}"
        super().__init__(
            message=message,
            error_code="MISSING_DATA",
            details={
                "resource_type": resource_type,
                "resource_id": resource_id,
                "reason": reason
            }
        )


class NoRecipientsError(NotificationError):
    """Error raised when recipient resolution produces an empty list."""

    def __init__(self, tier: str, company_id: Optional[str]):
        """
        Initialize no recipients error.

        Args:
            tier: Reminder tier being resolved
            company_id: Company the lookup ran against
        """
        super().__init__(
            message=f"No valid recipients found for {tier} reminder",
            error_code="NO_RECIPIENTS",
            details={
                "tier": tier,
                "company_id": company_id
            }
        )


class TransportError(NotificationError):
    """Error raised when a delivery provider rejects a message or is unreachable."""

    def __init__(self, provider: str, reason: str, status_code: Optional[int] = None):
        """
        Initialize transport error.

        Args:
            provider: Name of the transport provider
            reason: Description of the failure
            status_code: HTTP status code, if the provider answered
        """
        self.provider = provider
        self.status_code = status_code
        super().__init__(
            message=f"{provider} error: {reason}",
            error_code="TRANSPORT_ERROR",
            details={
                "provider": provider,
                "reason": reason,
                "status_code": status_code
            }
        )


class StoreUnavailableError(CertAlertError):
    """Error raised when the certification or reminder store cannot be read."""

    def __init__(self, operation: str, cause: Optional[Exception] = None):
        """
        Initialize store unavailable error.

        Args:
            operation: Store operation that failed
            cause: Underlying exception
        """
        reason = str(cause) if cause is not None else "store unavailable"
        super().__init__(
            message=f"Store unavailable during {operation}: {reason}",
            error_code="STORE_UNAVAILABLE",
            details={
                "operation": operation,
                "reason": reason
            }
        )


class ResourceNotFoundError(CertAlertError):
    """Error raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: str):
        """
        Initialize resource not found error.

        Args:
            resource_type: Type of resource (e.g., "certification", "reminder")
            resource_id: ID of the resource
        """
        super().__init__(
            message=f"{resource_type.capitalize()} not found (ID: {resource_id})",
            error_code="RESOURCE_NOT_FOUND",
            details={
                "resource_type": resource_type,
                "resource_id": resource_id
            }
        )


class InvalidTierError(CertAlertError):
    """Error raised when a tier name is not one of the four reminder tiers."""

    def __init__(self, value: Any):
        super().__init__(
            message=f"Invalid reminder tier: {value!r}",
            error_code="INVALID_TIER",
            details={"value": str(value)}
        )


class InvalidStatusTransitionError(CertAlertError):
    """Error raised when attempting an invalid reminder status transition."""

    def __init__(self, current_status: str, attempted_action: str):
        """
        Initialize invalid status transition error.

        Args:
            current_status: Current status of the reminder
            attempted_action: Action that was attempted (e.g., "requeue")
        """
        super().__init__(
            message=(
                f"Cannot {attempted_action} a reminder in status '{current_status}'"
            ),
            error_code="INVALID_STATUS_TRANSITION",
            details={
                "current_status": current_status,
                "attempted_action": attempted_action
            }
        )


def format_error_for_api(error: CertAlertError) -> Dict[str, Any]:
    """
    Format engine error for API response.

    Args:
        error: Engine error to format

    Returns:
        Dictionary suitable for JSON API response
    """
    return error.to_dict()
