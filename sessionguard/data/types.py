# SessionGuard - Session Security Subsystem
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Lenient JSON column types.

Older writers stored the array/object columns as JSON-encoded strings, or
left them NULL. Reads go through ``coerce_list`` / ``coerce_dict`` so that
every consumer sees a real list or dict, never a string or None.
"""

import json
import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON
from sqlalchemy.types import TypeDecorator

logger = logging.getLogger(__name__)


def _parse_legacy(value: str) -> Any:
    try:
        return json.loads(value)
    except (TypeError, ValueError) as e:
        logger.debug("Failed to parse legacy JSON payload: %s", e)
        return None


def coerce_list(value: Any) -> list:
    """Return a fresh list for list, JSON-string, or empty input; [] otherwise."""
    if isinstance(value, list):
        return list(value)
    if isinstance(value, tuple):
        return list(value)
    if not value:
        return []
    if isinstance(value, str):
        parsed = _parse_legacy(value)
        return list(parsed) if isinstance(parsed, list) else []
    return []


def coerce_dict(value: Any) -> dict:
    """Return a fresh dict for dict, JSON-string, or empty input; {} otherwise."""
    if isinstance(value, dict):
        return dict(value)
    if not value:
        return {}
    if isinstance(value, str):
        parsed = _parse_legacy(value)
        return dict(parsed) if isinstance(parsed, dict) else {}
    return {}


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class JSONList(TypeDecorator):
    """JSON array column that always loads as a list."""

    impl = JSON
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return coerce_list(value)

    def process_result_value(self, value, dialect):
        return coerce_list(value)


class JSONDict(TypeDecorator):
    """JSON object column that loads as a dict; NULL stays NULL."""

    impl = JSON
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return coerce_dict(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return coerce_dict(value)


__all__ = [
    "coerce_list",
    "coerce_dict",
    "ensure_utc",
    "JSONList",
    "JSONDict",
]
