"""Command line interface for PromptCollab."""

import asyncio
import sys
from datetime import timedelta
from typing import Optional
from uuid import UUID

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from promptcollab.config import settings

app = typer.Typer(
    name="promptcollab",
    help="PromptCollab - collaborative prompt editing with version history",
    add_completion=False,
)

console = Console()


@app.command("version")
def version():
    """Show version information."""
    version_info = f"""
PromptCollab v{settings.app_version}
Collaborative prompt editing with version history

Environment: {settings.environment}
Python: {sys.version}
"""
    console.print(
        Panel(
            version_info.strip(),
            title="Version Information",
            border_style="green",
        )
    )


@app.command("server")
def start_server(
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Server host"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Server port"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Number of workers"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug mode"),
):
    """Start the PromptCollab server."""
    from promptcollab.server import main as server_main

    # Override settings if provided
    if host:
        settings.host = host
    if port:
        settings.port = port
    if reload:
        settings.reload = reload
    if workers:
        settings.workers = workers
    if debug:
        settings.debug = debug

    server_main()


@app.command("init-db")
def init_db(
    database_url: Optional[str] = typer.Option(None, "--database-url", help="Database URL"),
):
    """Create all tables directly (development only; use Alembic in production)."""
    from promptcollab.database import db_manager

    async def _create() -> None:
        await db_manager.initialize(database_url)
        try:
            await db_manager.create_all()
        finally:
            await db_manager.close()

    asyncio.run(_create())
    console.print("[green]Database tables created[/green]")


@app.command("token")
def issue_token(
    user_id: str = typer.Argument(..., help="User ID to embed in the token"),
    hours: int = typer.Option(24, "--hours", help="Token lifetime in hours"),
):
    """Issue a development access token for a user."""
    from promptcollab.auth.security import token_manager

    try:
        actor_id = UUID(user_id)
    except ValueError:
        console.print(f"[red]Not a valid user ID: {user_id}[/red]")
        raise typer.Exit(code=1)

    token = token_manager.create_access_token(
        {"user_id": str(actor_id)}, expires_delta=timedelta(hours=hours)
    )
    typer.echo(token)


@app.command("config")
def show_config():
    """Show current configuration."""
    config_table = Table(title="PromptCollab Configuration")

    config_table.add_column("Setting", style="cyan")
    config_table.add_column("Value", style="green")

    config_items = [
        ("App Name", settings.app_name),
        ("Version", settings.app_version),
        ("Environment", settings.environment),
        ("Debug", str(settings.debug)),
        ("Host", settings.host),
        ("Port", str(settings.port)),
        ("Database URL", settings.database_url[:50] + "..." if len(settings.database_url) > 50 else settings.database_url),
        ("Participant Liveness (min)", str(settings.participant_liveness_minutes)),
        ("Lock TTL (min)", str(settings.lock_ttl_minutes)),
        ("Diff Strategy", settings.diff_strategy),
        ("Metrics Enabled", str(settings.metrics_enabled)),
    ]

    for setting, value in config_items:
        config_table.add_row(setting, value)

    console.print(config_table)


def main():
    """Main CLI entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(0)


if __name__ == "__main__":
    main()
