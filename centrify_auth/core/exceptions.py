"""Login and configuration errors raised by the auth backend.

Transport failures keep their client-library type
(centrify_auth.core.centrify.TransportError) and propagate unchanged.
"""
from __future__ import annotations
from typing import Optional

from .centrify.exceptions import TransportError


class LoginError(Exception):
    """Base exception for backend operations."""
    pass


class InvalidRequest(LoginError):
    """Request fields are missing or malformed."""
    pass


class InvalidMode(InvalidRequest):
    """Unsupported login mode."""

    def __init__(self, mode: str):
        self.mode = mode
        super().__init__(f"Invalid mode or no mode provided: {mode}")


class ConfigurationError(LoginError):
    """Backend configuration is missing or invalid.

    Attributes:
        field: Offending configuration field, if any
    """

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class OAuthRejection(LoginError):
    """Token endpoint refused the grant.

    Attributes:
        error: OAuth2 error code (e.g., invalid_grant)
        description: Platform-supplied description
    """

    def __init__(self, error: str, description: str = ""):
        self.error = error
        self.description = description
        detail = f"{error}: {description}" if description else error
        super().__init__(f"OAuth2 token request failed: {detail}")


class IdentityLookupFailure(LoginError):
    """Authenticated principal's identity could not be resolved."""
    pass


class RoleLookupFailure(LoginError):
    """Role enumeration failed; login continues with no roles."""
    pass


__all__ = [
    "LoginError",
    "InvalidRequest",
    "InvalidMode",
    "ConfigurationError",
    "OAuthRejection",
    "IdentityLookupFailure",
    "RoleLookupFailure",
    "TransportError",
]
