# SessionGuard - Session Security Subsystem
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Command Line Interface

Usage:
    sessionguard db init                      # Create tables (development)
    sessionguard db migrate                   # Run database migrations
    sessionguard sessions list                # Recent sessions and status summary
    sessionguard sessions show SESSION_ID     # Inspect a session
    sessionguard sessions terminate SESSION_ID
    sessionguard sessions purge               # Expire idle / delete old sessions
    sessionguard sessions analytics --hours 24
    sessionguard sessions backfill-expiry     # Stamp expires_at on legacy rows
    sessionguard sessions cleanup-worker      # Run the cleanup scheduler
"""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(name="sessionguard", help="SessionGuard - Session Security Subsystem")
console = Console()


async def _with_services(action):
    """Open the store, run ``action(services)``, always close the store."""
    from .data.postgres import close_database, get_session_factory, init_database
    from .sessions import init_session_services, reset_session_services

    await init_database()
    try:
        services = init_session_services(get_session_factory())
        return await action(services)
    finally:
        await reset_session_services()
        await close_database()


# ============================================================
# SESSION COMMANDS
# ============================================================

sessions_app = typer.Typer(help="Session inspection and maintenance commands")
app.add_typer(sessions_app, name="sessions")


@sessions_app.command("list")
def sessions_list(
    limit: int = typer.Option(50, min=1, help="Number of sessions to list"),
):
    """List the most recent sessions with a status summary."""
    from .data.models import SessionStatus
    from .data.types import ensure_utc

    async def _list(services):
        return await services.manager.list_recent_sessions(limit)

    sessions = asyncio.run(_with_services(_list))

    table = Table(title=f"Recent Sessions (last {limit})")
    table.add_column("Session ID", style="dim", overflow="fold")
    table.add_column("Username", style="cyan")
    table.add_column("Status")
    table.add_column("Last activity")
    table.add_column("Risk", justify="right")
    for session in sessions:
        last_activity = ensure_utc(session.last_activity)
        table.add_row(
            session.session_id,
            session.username,
            str(session.status),
            last_activity.strftime("%Y-%m-%d %H:%M:%S") if last_activity else "-",
            str(session.risk_score),
        )
    console.print(table)

    summary = Table(title="Summary")
    summary.add_column("Status", style="cyan")
    summary.add_column("Sessions", style="white")
    for status in SessionStatus:
        count = sum(1 for s in sessions if s.status == status)
        summary.add_row(status.value, str(count))
    console.print(summary)


@sessions_app.command("backfill-expiry")
def sessions_backfill_expiry():
    """Give legacy active sessions without an absolute expiry one."""

    async def _backfill(services):
        return await services.cleanup.backfill_expiry()

    updated = asyncio.run(_with_services(_backfill))
    console.print(f"[green]Absolute expiry set on {updated} session(s)[/]")


@sessions_app.command("show")
def sessions_show(
    session_id: str = typer.Argument(..., help="Session ID"),
    activity: int = typer.Option(10, help="Number of recent activity entries to list"),
):
    """Show the details of one session."""

    async def _show(services):
        return await services.manager.get_session_details(session_id)

    details = asyncio.run(_with_services(_show))

    if details is None:
        console.print(f"[red]Session not found:[/] {session_id}")
        raise typer.Exit(code=1)

    table = Table(title="Session Details")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Username", details.username)
    table.add_row("User ID", details.user_id)
    table.add_row("Role", details.role)
    table.add_row("Status", details.status)
    table.add_row("Login", details.login_time or "-")
    table.add_row("Last activity", details.last_activity or "-")
    table.add_row("Expires", details.expires_at or "-")
    table.add_row("Logout", details.logout_time or "-")
    table.add_row("Logout reason", details.logout_reason or "-")
    table.add_row("IP address", details.ip_address)
    table.add_row("User agent", details.user_agent or "-")
    table.add_row("Risk", f"{details.risk_score} ({details.risk_level})")
    table.add_row("Security events", str(len(details.security_events)))
    table.add_row("Duration", f"{details.duration_minutes} min")
    console.print(table)

    if activity > 0 and details.activity_log:
        log_table = Table(title="Recent Activity")
        log_table.add_column("Time", style="dim")
        log_table.add_column("Action", style="cyan")
        log_table.add_column("Details")
        for entry in details.activity_log[-activity:]:
            log_table.add_row(
                str(entry.get("timestamp", "")),
                str(entry.get("action", "")),
                str(entry.get("details") or entry.get("reason") or entry.get("endpoint") or ""),
            )
        console.print(log_table)


@sessions_app.command("terminate")
def sessions_terminate(
    session_id: str = typer.Argument(..., help="Session ID"),
    reason: str = typer.Option("manual_cleanup", help="Termination reason"),
):
    """Terminate a session."""

    async def _terminate(services):
        return await services.manager.terminate_session(session_id, reason)

    if not asyncio.run(_with_services(_terminate)):
        console.print(f"[red]Session not found:[/] {session_id}")
        raise typer.Exit(code=1)

    console.print(f"[green]Session terminated[/] (reason: {reason})")


@sessions_app.command("purge")
def sessions_purge():
    """Expire idle sessions and delete terminal sessions past retention."""
    from rich.markup import escape

    from sessionguard_core.exceptions.hierarchy import SessionStoreError

    async def _purge(services):
        return await services.cleanup.purge_expired_and_old_sessions()

    try:
        result = asyncio.run(_with_services(_purge))
    except SessionStoreError as e:
        console.print(f"[red]{e.message}:[/] {escape(str(e.details))}")
        raise typer.Exit(code=1)

    table = Table(title="Session Cleanup")
    table.add_column("Pass", style="cyan")
    table.add_column("Rows", style="white")
    table.add_row("Expired", str(result.expired_updated))
    table.add_row("Deleted", str(result.deleted_old))
    console.print(table)


@sessions_app.command("analytics")
def sessions_analytics(
    hours: int = typer.Option(24, min=1, help="Time window in hours"),
):
    """Show session statistics for the last N hours."""

    async def _analytics(services):
        return await services.analytics.get_session_analytics(hours)

    stats = asyncio.run(_with_services(_analytics))

    table = Table(title=f"Sessions (last {stats.timeframe_hours}h)")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Total", str(stats.total_sessions))
    table.add_row("Active", str(stats.active_sessions))
    table.add_row("Avg duration", f"{stats.average_session_duration_minutes} min")
    table.add_row("Security events", str(stats.security_events))
    table.add_row("Anomalies", str(stats.anomalies))
    table.add_row("Unique IPs", str(stats.unique_ips))
    table.add_row("Unique user agents", str(stats.unique_user_agents))
    risk = stats.risk_distribution
    table.add_row(
        "Risk",
        f"low {risk.low} / medium {risk.medium} / high {risk.high} / critical {risk.critical}",
    )
    console.print(table)

    if stats.top_users:
        users = Table(title="Top Users")
        users.add_column("Username", style="cyan")
        users.add_column("Sessions", style="white")
        for username, count in list(stats.top_users.items())[:10]:
            users.add_row(username, str(count))
        console.print(users)


@sessions_app.command("cleanup-worker")
def sessions_cleanup_worker(
    interval: float = typer.Option(None, help="Seconds between passes (default from settings)"),
):
    """Run the cleanup scheduler in the foreground."""
    from .core.settings import get_settings
    from .observability import init_observability

    settings = get_settings()
    init_observability(
        log_level=settings.observability.level,
        log_format=settings.observability.format,
        environment=settings.environment,
    )

    async def _worker(services):
        if interval:
            services.cleanup.interval = interval
        try:
            await services.cleanup.run()
        finally:
            await services.cleanup.stop()

    console.print("[bold]Starting session cleanup worker (Ctrl+C to stop)...[/]")
    try:
        asyncio.run(_with_services(_worker))
    except KeyboardInterrupt:
        console.print("[yellow]Cleanup worker stopped[/]")


# ============================================================
# DATABASE COMMANDS
# ============================================================

db_app = typer.Typer(help="Database management commands")
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init():
    """Create tables from the ORM metadata (development)."""

    async def _init():
        from .data.postgres import close_database, init_database

        await init_database(create_schema=True)
        await close_database()

    asyncio.run(_init())
    console.print("[green]Database tables created[/]")


@db_app.command("migrate")
def db_migrate(
    revision: str = typer.Option("head", help="Target revision (default: head)"),
):
    """Run database migrations using Alembic."""
    import subprocess
    import sys

    console.print("[bold]Running migrations...[/]")

    result = subprocess.run(
        [sys.executable, "-m", "alembic", "upgrade", revision],
        capture_output=True,
        text=True,
    )

    if result.returncode == 0:
        console.print("[green]Migrations completed successfully![/]")
        if result.stdout:
            console.print(result.stdout)
    else:
        console.print("[red]Migration failed![/]")
        if result.stderr:
            console.print(result.stderr)
        raise typer.Exit(1)


# ============================================================
# UTILITY COMMANDS
# ============================================================


@app.command()
def version():
    """Show version information."""
    from . import __version__

    console.print(f"SessionGuard v{__version__}")


@app.command()
def check():
    """Check configuration."""
    from .core.settings import get_settings

    console.print("[bold]Checking configuration...[/]\n")

    settings = get_settings()
    sessions = settings.sessions

    checks = []

    # Database
    if settings.database.url.startswith("postgresql"):
        checks.append(("Database", "✓", "PostgreSQL configured"))
    elif settings.database.url.startswith("sqlite"):
        if settings.is_production:
            checks.append(("Database", "⚠", "SQLite in production"))
        else:
            checks.append(("Database", "✓", "SQLite (development)"))
    else:
        checks.append(("Database", "✗", "Unsupported database URL"))

    # Session policy
    checks.append(("Retention", "✓", f"{sessions.retention_hours}h"))
    checks.append(("Concurrent sessions", "✓", f"max {sessions.max_concurrent_sessions} per user"))
    checks.append(("Cleanup interval", "✓", f"{sessions.cleanup_interval_seconds:g}s"))
    checks.append(
        (
            "Risk thresholds",
            "✓",
            f"{sessions.risk_low_threshold}/{sessions.risk_medium_threshold}/"
            f"{sessions.risk_high_threshold}",
        )
    )
    if sessions.terminated_reasons:
        checks.append(("Terminated reasons", "✓", ", ".join(sessions.terminated_reasons)))
    else:
        checks.append(("Terminated reasons", "○", "None (all logouts are logged_out)"))

    # Print results
    table = Table(title="Configuration Check")
    table.add_column("Component", style="cyan")
    table.add_column("Status")
    table.add_column("Details", style="dim")

    for name, status, details in checks:
        if status == "✓":
            status_style = "[green]✓[/]"
        elif status == "✗":
            status_style = "[red]✗[/]"
        elif status == "⚠":
            status_style = "[yellow]⚠[/]"
        else:
            status_style = "[dim]○[/]"

        table.add_row(name, status_style, details)

    console.print(table)


# ============================================================
# MAIN
# ============================================================


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
