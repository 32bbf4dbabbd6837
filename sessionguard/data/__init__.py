# SessionGuard - Session Security Subsystem
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Data layer for SessionGuard.

Provides database engine management, the session ORM model, lenient JSON
column types and the repository used by the session services. Supports
both PostgreSQL (production) and SQLite (development/single-node) via
SQLAlchemy async.
"""

from .models import TERMINAL_STATUSES, Base, SessionStatus, UserSessionModel
from .postgres import (
    build_engine,
    build_session_factory,
    close_database,
    create_tables,
    get_session_factory,
    init_database,
)
from .repositories import SessionRepository, repository_transaction
from .types import JSONDict, JSONList, coerce_dict, coerce_list, ensure_utc

__all__ = [
    # Engine lifecycle
    "init_database",
    "close_database",
    "get_session_factory",
    "build_engine",
    "build_session_factory",
    "create_tables",
    # ORM models
    "Base",
    "UserSessionModel",
    "SessionStatus",
    "TERMINAL_STATUSES",
    # Column types
    "JSONList",
    "JSONDict",
    "coerce_list",
    "coerce_dict",
    "ensure_utc",
    # Repositories
    "SessionRepository",
    "repository_transaction",
]
