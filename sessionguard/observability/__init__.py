# SessionGuard - Session Security Subsystem
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Observability Module

Structured logging, request correlation and audit logging.
"""

from .logging import (
    AuditLogger,
    ContextLogger,
    HumanFormatter,
    JSONFormatter,
    audit_logger,
    configure_logging,
    get_logger,
    get_request_context,
    mask_sensitive_data,
    request_context,
    session_ref,
    set_request_context,
)


def init_observability(
    log_level: str = "INFO",
    log_format: str = "json",
    environment: str = "development",
):
    """
    Initialize logging for the process.

    Args:
        log_level: Logging level
        log_format: Log format ("json" or "human")
        environment: Environment (development, staging, production)
    """
    configure_logging(
        level=log_level,
        format=log_format,
        mask_sensitive=True,
        use_colors=(environment == "development"),
    )


__all__ = [
    # Main initializer
    "init_observability",
    # Logging
    "configure_logging",
    "get_logger",
    "ContextLogger",
    "JSONFormatter",
    "HumanFormatter",
    "AuditLogger",
    "audit_logger",
    "set_request_context",
    "request_context",
    "get_request_context",
    "mask_sensitive_data",
    "session_ref",
]
