# SessionGuard - Session Security Subsystem
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Observability - Structured Logging

JSON-structured logging for:
- Session lifecycle events
- Security signals (risk escalation, drift)
- Audit trails
- Cleanup runs

Features:
- Correlation IDs (request_id) and acting username
- Sensitive data masking (session ids never reach the log sink whole)
- Multiple output formats (JSON, human-readable)
"""

import json
import logging
import sys
import traceback
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

# ============================================================
# CONTEXT VARIABLES
# ============================================================

# Request context (set per-request)
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
username_var: ContextVar[str | None] = ContextVar("username", default=None)


def set_request_context(
    request_id: str | None = None,
    username: str | None = None,
) -> list[tuple[ContextVar, Token]]:
    """Set request context variables. Returns the tokens that undo it."""
    tokens = []
    if request_id:
        tokens.append((request_id_var, request_id_var.set(request_id)))
    if username:
        tokens.append((username_var, username_var.set(username)))
    return tokens


@contextmanager
def request_context(
    request_id: str | None = None,
    username: str | None = None,
) -> Iterator[None]:
    """Bind request context for log lines emitted inside the block."""
    tokens = set_request_context(request_id=request_id, username=username)
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


def get_request_context() -> dict[str, str | None]:
    """Get current request context."""
    return {
        "request_id": request_id_var.get(),
        "username": username_var.get(),
    }


# ============================================================
# SENSITIVE DATA MASKING
# ============================================================

# Fields that should be masked in logs
SENSITIVE_FIELDS = {
    "password",
    "secret",
    "token",
    "authorization",
    "cookie",
    "credential",
    "session_id",
    "sessionid",
}

SESSION_REF_LENGTH = 8


def session_ref(session_id: str | None) -> str:
    """Short, non-replayable reference to a session for log lines."""
    if not session_id:
        return "-"
    return session_id[:SESSION_REF_LENGTH]


def mask_sensitive_data(data: Any, depth: int = 0, max_depth: int = 10) -> Any:
    """
    Recursively mask sensitive data in dictionaries and lists.

    Args:
        data: Data to mask
        depth: Current recursion depth
        max_depth: Maximum recursion depth

    Returns:
        Data with sensitive fields masked
    """
    if depth > max_depth:
        return "[MAX_DEPTH_EXCEEDED]"

    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            key_lower = str(key).lower()
            if any(s in key_lower for s in SENSITIVE_FIELDS):
                masked[key] = "[REDACTED]"
            else:
                masked[key] = mask_sensitive_data(value, depth + 1, max_depth)
        return masked

    elif isinstance(data, list):
        return [mask_sensitive_data(item, depth + 1, max_depth) for item in data]

    elif isinstance(data, str):
        if len(data) > 20 and data.startswith(("Bearer ", "eyJ")):
            return f"{data[:8]}...[REDACTED]"
        return data

    return data


# ============================================================
# LOG RECORD STRUCTURE
# ============================================================


@dataclass
class StructuredLogRecord:
    """Structured log record for JSON output."""

    timestamp: str
    level: str
    logger: str
    message: str

    # Context
    request_id: str | None = None
    username: str | None = None

    # Location
    module: str | None = None
    function: str | None = None
    line: int | None = None

    # Error info
    error_type: str | None = None
    error_message: str | None = None
    stack_trace: str | None = None

    # Extra data
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        d = asdict(self)
        return {k: v for k, v in d.items() if v is not None and v != {}}

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), default=str)


# Attributes every LogRecord carries; anything else arrived through extra=
_RESERVED_RECORD_KEYS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "message",
        "taskName",
    }
)


# ============================================================
# JSON FORMATTER
# ============================================================


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Outputs logs as single-line JSON for easy parsing by log aggregators.
    """

    def __init__(self, mask_sensitive: bool = True):
        super().__init__()
        self.mask_sensitive = mask_sensitive

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        ctx = get_request_context()

        log_record = StructuredLogRecord(
            timestamp=datetime.fromtimestamp(record.created, UTC).isoformat(),
            level=record.levelname,
            logger=record.name,
            message=record.getMessage(),
            request_id=ctx.get("request_id"),
            username=ctx.get("username"),
            module=record.module,
            function=record.funcName,
            line=record.lineno,
        )

        if record.exc_info:
            exc_type, exc_value, exc_tb = record.exc_info
            if exc_type is not None:
                log_record.error_type = exc_type.__name__
                log_record.error_message = str(exc_value)
                log_record.stack_trace = "".join(
                    traceback.format_exception(exc_type, exc_value, exc_tb)
                )

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_RECORD_KEYS
        }

        if extra_fields:
            if self.mask_sensitive:
                extra_fields = mask_sensitive_data(extra_fields)
            log_record.extra = extra_fields

        return log_record.to_json()


# ============================================================
# HUMAN-READABLE FORMATTER
# ============================================================


class HumanFormatter(logging.Formatter):
    """
    Human-readable formatter with color support.

    Includes request context inline for easy debugging.
    """

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True, mask_sensitive: bool = True):
        super().__init__()
        self.use_colors = use_colors
        self.mask_sensitive = mask_sensitive

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for human reading."""
        ctx = get_request_context()

        ctx_parts = []
        if ctx.get("request_id"):
            ctx_parts.append(f"req={ctx['request_id'][:8]}")
        if ctx.get("username"):
            ctx_parts.append(f"user={ctx['username']}")
        ctx_str = f"[{' '.join(ctx_parts)}] " if ctx_parts else ""

        timestamp = datetime.fromtimestamp(record.created, UTC).strftime("%Y-%m-%d %H:%M:%S.%f")[
            :-3
        ]

        level = record.levelname
        if self.use_colors and level in self.COLORS:
            level = f"{self.COLORS[level]}{level}{self.RESET}"

        message = record.getMessage()
        line = f"{timestamp} {level:8} {record.name}:{record.lineno} {ctx_str}{message}"

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_RECORD_KEYS
        }
        if extra_fields:
            if self.mask_sensitive:
                extra_fields = mask_sensitive_data(extra_fields)
            pairs = " ".join(f"{k}={v}" for k, v in extra_fields.items())
            line = f"{line} {pairs}"

        if record.exc_info:
            exc_text = "".join(traceback.format_exception(*record.exc_info))
            line = f"{line}\n{exc_text}"

        return line


# ============================================================
# LOGGING CONFIGURATION
# ============================================================


def configure_logging(
    level: str = "INFO",
    format: str = "json",  # "json" or "human"
    mask_sensitive: bool = True,
    use_colors: bool = True,
):
    """
    Configure logging for SessionGuard.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Output format ("json" for production, "human" for development)
        mask_sensitive: Whether to mask sensitive data
        use_colors: Whether to use colors (only for human format)
    """
    if format == "json":
        formatter = JSONFormatter(mask_sensitive=mask_sensitive)
    else:
        formatter = HumanFormatter(use_colors=use_colors, mask_sensitive=mask_sensitive)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Set levels for noisy libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    return root_logger


# ============================================================
# LOGGER ADAPTER WITH CONTEXT
# ============================================================


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter that automatically includes context in log messages.

    Usage:
        logger = ContextLogger(logging.getLogger(__name__))
        logger.info("Sweep finished", extra={"expired": 3})
    """

    def __init__(self, logger: logging.Logger, extra: dict | None = None):
        super().__init__(logger, extra or {})

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple:
        """Process log message with context."""
        extra = {**self.extra, **kwargs.get("extra", {})}

        ctx = get_request_context()
        for key, value in ctx.items():
            if value is not None and key not in extra:
                extra[key] = value

        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(name: str) -> ContextLogger:
    """Get a context-aware logger."""
    return ContextLogger(logging.getLogger(name))


# ============================================================
# AUDIT LOGGING
# ============================================================


class AuditLogger:
    """
    Specialized logger for audit events.

    Audit events are always logged at INFO level with specific structure.
    """

    def __init__(self, name: str = "sessionguard.audit"):
        self._logger = logging.getLogger(name)

    def log(
        self,
        action: str,
        resource_type: str,
        resource_id: str | None = None,
        details: dict[str, Any] | None = None,
        success: bool = True,
    ):
        """
        Log an audit event.

        Args:
            action: Action performed (e.g., "create", "terminate", "purge")
            resource_type: Type of resource (e.g., "session")
            resource_id: Short reference of the resource
            details: Additional details
            success: Whether the action succeeded
        """
        ctx = get_request_context()

        self._logger.info(
            f"AUDIT: {action} {resource_type}",
            extra={
                "audit_event": True,
                "action": action,
                "resource_type": resource_type,
                "resource_id": resource_id,
                "success": success,
                "details": mask_sensitive_data(details) if details else None,
                "request_id": ctx.get("request_id"),
            },
        )

    def create(self, resource_type: str, resource_id: str, details: dict | None = None):
        """Log a create event."""
        self.log("create", resource_type, resource_id, details)

    def terminate(self, resource_type: str, resource_id: str, details: dict | None = None):
        """Log a termination event."""
        self.log("terminate", resource_type, resource_id, details)

    def purge(self, resource_type: str, details: dict | None = None):
        """Log a bulk purge event."""
        self.log("purge", resource_type, details=details)


# Global audit logger instance
audit_logger = AuditLogger()


# ============================================================
# EXPORTS
# ============================================================

__all__ = [
    # Context
    "set_request_context",
    "request_context",
    "get_request_context",
    # Logging
    "configure_logging",
    "get_logger",
    "ContextLogger",
    "JSONFormatter",
    "HumanFormatter",
    # Audit
    "AuditLogger",
    "audit_logger",
    # Helpers
    "mask_sensitive_data",
    "session_ref",
    # Context vars
    "request_id_var",
    "username_var",
]
