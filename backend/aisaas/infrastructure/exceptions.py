"""
Custom Exceptions for the AI SaaS backend

Hierarchical exception classes for proper error handling across layers.
"""

from datetime import datetime
from typing import Optional, Dict, Any


class AISaaSError(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


class ValidationError(AISaaSError):
    """Raised when input validation fails."""
    pass


class DatabaseError(AISaaSError):
    """Raised when database operations fail."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table
        super().__init__(message, details, original_error)


class NotFoundError(DatabaseError):
    """Raised when a requested resource is not found."""
    pass


class QuotaExceededError(AISaaSError):
    """Raised when a metered action is denied because the quota is used up."""

    def __init__(
        self,
        limit: int,
        used: int,
        reset_at: Optional[datetime] = None,
        message: str = "AI request quota exceeded",
    ):
        details = {
            "limit": limit,
            "used": used,
            "remaining": 0,
            "reset_at": reset_at.isoformat() if reset_at else None,
        }
        super().__init__(message, details)
        self.limit = limit
        self.used = used
        self.reset_at = reset_at


class WebhookVerificationError(AISaaSError):
    """Raised when a webhook signature is missing or does not match."""
    pass


class EmailDeliveryError(AISaaSError):
    """Raised when the email transport rejects a message."""

    def __init__(
        self,
        message: str,
        recipient: Optional[str] = None,
        status_code: Optional[int] = None,
        original_error: Optional[Exception] = None
    ):
        details: Dict[str, Any] = {}
        if recipient:
            details["recipient"] = recipient
        if status_code:
            details["status_code"] = status_code
        super().__init__(message, details, original_error)


class ConfigurationError(AISaaSError):
    """Raised when configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(message, details, original_error)
