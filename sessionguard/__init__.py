# SessionGuard - Session Security Subsystem
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
SessionGuard - Session Security Subsystem

Server-side session lifecycle with per-session risk tracking for a web
application:

- Session issuance with device fingerprinting and a concurrency cap
- Validation with absolute expiry and identity drift detection
- Additive risk scoring with configurable thresholds
- Idle expiry and retention purge on a background schedule
- Aggregate analytics for operators
- PostgreSQL persistence (SQLite for development)

Quick Start:
    from sessionguard.data import init_database, get_session_factory
    from sessionguard.sessions import RequestContext, init_session_services

    await init_database()
    services = init_session_services(get_session_factory())

    created = await services.manager.create_session(
        {"username": "alice"}, RequestContext.from_request(request)
    )
    result = await services.manager.validate_session(
        created.session_id, RequestContext.from_request(request)
    )

Architecture:

    ┌──────────────────────────────────────────────┐
    │               Web application                │
    │        (RequestContext.from_request)         │
    └──────────────────────┬───────────────────────┘
                           │
    ┌──────────────────────▼───────────────────────┐
    │  SessionManager   Cleanup   Analytics        │
    │  ├─ SecurityCheckEngine                      │
    │  └─ RiskScorer                               │
    └──────────────────────┬───────────────────────┘
                           │
    ┌──────────────────────▼───────────────────────┐
    │   SessionRepository (SQLAlchemy async)       │
    │   PostgreSQL / SQLite                        │
    └──────────────────────────────────────────────┘
"""

__version__ = "1.0.0"
