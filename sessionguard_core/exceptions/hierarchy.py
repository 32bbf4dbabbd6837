# SessionGuard - Session Security Subsystem
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Exception Hierarchy

Structured exceptions for SessionGuard.
All exceptions include context via `details` dict.

Expected negative outcomes (unknown session, terminal status, expiry) are
returned as results by the session manager and never raised. Exceptions
are reserved for bad input and for failures of the backing store.
"""

from typing import Any


class SessionGuardError(Exception):
    """
    Base exception for all SessionGuard errors.

    Attributes:
        message: Human-readable error message
        details: Additional context as key-value pairs
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


# ============================================================
# CONFIGURATION ERRORS
# ============================================================


class ConfigurationError(SessionGuardError):
    """Configuration is invalid or missing."""

    pass


# ============================================================
# SESSION ERRORS
# ============================================================


class SessionError(SessionGuardError):
    """Base class for session errors."""

    pass


class InvalidIdentityError(SessionError):
    """The identity supplied for session creation is unusable."""

    def __init__(self, message: str, field: str | None = None, **kwargs):
        details = kwargs.get("details", {})
        if field:
            details["field"] = field
        super().__init__(message, details)


class SessionStoreError(SessionError):
    """The session store failed (connection loss, timeout, constraint)."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        original_error: Exception | None = None,
        **kwargs,
    ):
        details = kwargs.get("details", {})
        if operation:
            details["operation"] = operation
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__
        super().__init__(message, details)


class SessionCreationError(SessionStoreError):
    """A session could not be issued."""

    pass


class SessionConflictError(SessionStoreError):
    """Concurrent writers kept invalidating an update."""

    def __init__(self, session_ref: str, attempts: int, **kwargs):
        details = {"session": session_ref, "attempts": attempts, **kwargs.get("details", {})}
        super().__init__(
            f"Session {session_ref} was modified concurrently ({attempts} attempts)",
            operation=kwargs.get("operation"),
            details=details,
        )


# ============================================================
# EXPORTS
# ============================================================

__all__ = [
    # Base
    "SessionGuardError",
    # Configuration
    "ConfigurationError",
    # Session
    "SessionError",
    "InvalidIdentityError",
    "SessionStoreError",
    "SessionCreationError",
    "SessionConflictError",
]
