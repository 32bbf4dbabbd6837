# SessionGuard - Session Security Subsystem
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
SessionGuard Core - Shared Security Primitives

Pure helpers with no I/O, shared by the session service and its tooling.

Modules:
    security: Device fingerprinting, client address normalization
    exceptions: Structured exception hierarchy
"""

__version__ = "1.0.0"

from .exceptions.hierarchy import (
    ConfigurationError,
    InvalidIdentityError,
    SessionConflictError,
    SessionCreationError,
    SessionError,
    SessionGuardError,
    SessionStoreError,
)
from .security.fingerprint import generate_device_fingerprint
from .security.network import (
    LOOPBACK_IPV4,
    PRIVATE_NETWORKS,
    is_private_ip,
    normalize_ip,
)

__all__ = [
    # Version
    "__version__",
    # Fingerprint
    "generate_device_fingerprint",
    # Network
    "LOOPBACK_IPV4",
    "PRIVATE_NETWORKS",
    "normalize_ip",
    "is_private_ip",
    # Exceptions
    "SessionGuardError",
    "ConfigurationError",
    "SessionError",
    "InvalidIdentityError",
    "SessionStoreError",
    "SessionCreationError",
    "SessionConflictError",
]
