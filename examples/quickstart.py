#!/usr/bin/env python3
# SessionGuard - Session Security Subsystem
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
SessionGuard - Quick Start Example

This example walks through the session lifecycle:
1. Creating a session
2. Validating it from the same and from a different network
3. Inspecting the session
4. Logging out and running the cleanup pass
5. Reading analytics

Run with:
    python examples/quickstart.py
"""

import asyncio


async def main():
    """Demonstrate SessionGuard capabilities."""

    print("=" * 60)
    print("SessionGuard - Quick Start Example")
    print("=" * 60)
    print()

    from sessionguard.data import close_database, get_session_factory, init_database
    from sessionguard.observability import init_observability
    from sessionguard.sessions import RequestContext, init_session_services

    init_observability(log_level="WARNING", log_format="human")
    await init_database("sqlite+aiosqlite:///./quickstart.db")
    services = init_session_services(get_session_factory())

    office = RequestContext(
        client_ip="10.0.0.5",
        user_agent="Mozilla/5.0 (X11; Linux x86_64)",
        accept_language="en-US",
        accept_encoding="gzip",
        path="/login",
    )

    # --------------------------------------------------------
    # 1. CREATE
    # --------------------------------------------------------
    print("1. Creating a session")
    print("-" * 40)

    created = await services.manager.create_session(
        {"username": "alice", "role": "user"}, office
    )
    print(f"   Session:      {created.session_id[:16]}...")
    print(f"   Expires at:   {created.expires_at.isoformat()}")
    print(f"   Risk score:   {created.session.risk_score}")
    print()

    # --------------------------------------------------------
    # 2. VALIDATE
    # --------------------------------------------------------
    print("2. Validating")
    print("-" * 40)

    result = await services.manager.validate_session(created.session_id, office)
    print(f"   Same network: valid={result.valid} risk={result.session.risk_score}")

    travelling = RequestContext(
        client_ip="203.0.113.9",
        user_agent=office.user_agent,
        path="/reports",
    )
    result = await services.manager.validate_session(created.session_id, travelling)
    print(f"   New address:  valid={result.valid} risk={result.session.risk_score}")
    for event in result.security_status.events:
        print(f"     - {event['type']} ({event['severity']}): {event['details']}")
    print()

    # --------------------------------------------------------
    # 3. INSPECT
    # --------------------------------------------------------
    print("3. Session details")
    print("-" * 40)

    details = await services.manager.get_session_details(created.session_id)
    print(f"   Status:       {details.status}")
    print(f"   Risk level:   {details.risk_level}")
    print(f"   Activity:     {len(details.activity_log)} entries")
    print()

    # --------------------------------------------------------
    # 4. LOGOUT + CLEANUP
    # --------------------------------------------------------
    print("4. Logout and cleanup")
    print("-" * 40)

    await services.manager.terminate_session(created.session_id)
    result = await services.manager.validate_session(created.session_id, office)
    print(f"   After logout: valid={result.valid} reason={result.reason!r}")

    purge = await services.cleanup.purge_expired_and_old_sessions()
    print(f"   Cleanup:      expired={purge.expired_updated} deleted={purge.deleted_old}")
    print()

    # --------------------------------------------------------
    # 5. ANALYTICS
    # --------------------------------------------------------
    print("5. Analytics (last 24h)")
    print("-" * 40)

    stats = await services.analytics.get_session_analytics(24)
    print(f"   Sessions:     {stats.total_sessions} ({stats.active_sessions} active)")
    print(f"   Events:       {stats.security_events}")
    print(f"   Top users:    {stats.top_users}")
    print()

    await close_database()
    print("Done.")


if __name__ == "__main__":
    asyncio.run(main())
