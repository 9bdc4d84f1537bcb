"""
Custom exceptions for TrackSem.
"""

from typing import Optional, Any, Dict


class TrackSemException(Exception):
    """Base exception for all TrackSem errors."""
    
    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class ValidationError(TrackSemException):
    """Raised when data validation fails."""
    pass


class AuthorizationError(TrackSemException):
    """Raised when a request has no valid session."""
    pass


class ResourceNotFoundError(TrackSemException):
    """Raised when a requested resource is not found."""
    pass


class PersistenceError(TrackSemException):
    """Raised when persistence operations fail."""
    pass


class ConfigurationError(TrackSemException):
    """Raised when configuration is invalid."""
    pass


class NetworkError(TrackSemException):
    """Raised when calls to a remote service fail."""
    pass
