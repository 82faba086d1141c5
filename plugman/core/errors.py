# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Custom exceptions for plugman.

All exceptions inherit from PlugmanError for consistent error handling.
"""

from typing import List, Optional


class PlugmanError(Exception):
    """Base exception for all plugman errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[dict] = None
    ):
        """
        Initialize plugman error.

        Args:
            message: Human-readable error message
            status_code: HTTP status code
            details: Additional error details
        """
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert error to dictionary for API response."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details
        }


class NotFoundError(PlugmanError):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str, details: Optional[dict] = None):
        """
        Initialize not found error.

        Args:
            resource: Type of resource (e.g., "Plugin")
            identifier: Resource identifier
            details: Additional error details
        """
        message = f"{resource} not found: {identifier}"
        super().__init__(message, status_code=404, details=details)
        self.resource = resource
        self.identifier = identifier


class ValidationError(PlugmanError):
    """Validation failed."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, status_code=400, details=details)
        self.field = field


class ConfigurationError(PlugmanError):
    """Configuration error."""

    def __init__(self, message: str, config_file: Optional[str] = None, details: Optional[dict] = None):
        """
        Initialize configuration error.

        Args:
            message: Configuration error message
            config_file: Configuration file path
            details: Additional error details
        """
        super().__init__(message, status_code=500, details=details)
        self.config_file = config_file


class NetworkError(PlugmanError):
    """Source unreachable or timed out."""

    def __init__(self, message: str, url: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, status_code=503, details=details)
        self.url = url


class DecodeError(PlugmanError):
    """Source returned a malformed payload."""

    def __init__(self, message: str, url: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, status_code=502, details=details)
        self.url = url


class ResolutionError(PlugmanError):
    """No consistent version selection exists for a requirement."""

    def __init__(
        self,
        package_name: str,
        required_by: Optional[List[str]] = None,
        details: Optional[dict] = None
    ):
        """
        Initialize resolution error.

        Args:
            package_name: Name of the unsatisfiable requirement
            required_by: Chain of packages whose selection introduced the requirement
            details: Additional error details
        """
        self.package_name = package_name
        self.required_by = list(required_by or [])
        details = dict(details or {})
        details.setdefault("package", package_name)
        details.setdefault("required_by", self.required_by)
        super().__init__(
            f'unable to find a matching version for "{package_name}"',
            status_code=409,
            details=details
        )


class ArchiveError(PlugmanError):
    """Archive is malformed or contains unsafe entries."""

    def __init__(self, message: str, entry: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, status_code=400, details=details)
        self.entry = entry


class InstallError(PlugmanError):
    """Download, extraction or filesystem failure while installing."""

    def __init__(self, package_name: str, reason: str, details: Optional[dict] = None):
        super().__init__(
            f"Failed to install {package_name}: {reason}",
            status_code=500,
            details=details
        )
        self.package_name = package_name
        self.reason = reason


class UninstallError(PlugmanError):
    """Removal of a plugin directory failed."""

    def __init__(self, package_name: str, reason: str, details: Optional[dict] = None):
        super().__init__(
            f"Failed to uninstall {package_name}: {reason}",
            status_code=500,
            details=details
        )
        self.package_name = package_name
        self.reason = reason


# Error Message Utilities

def sanitize_error_for_user(error: Exception, include_type: bool = True) -> str:
    """
    Sanitize error messages for user display.
    Removes stack traces and overly long messages.

    Args:
        error: The exception to sanitize
        include_type: Whether to include exception type

    Returns:
        User-friendly error message without stack trace
    """
    error_msg = str(error).strip().splitlines()[0] if str(error).strip() else ""

    # Limit message length
    if len(error_msg) > 500:
        error_msg = error_msg[:500] + "..."

    if include_type:
        return f"{error.__class__.__name__}: {error_msg}"

    return error_msg
