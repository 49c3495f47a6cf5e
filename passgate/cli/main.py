"""``passgate`` command line.

serve     run the HTTP API under uvicorn
init-db   create the users and credentials tables
users     show registered accounts and how many passkeys each holds
version   print the installed version
"""

# Must precede the imports below so their loggers start quiet
import passgate.logging_config  # noqa: F401

import asyncio
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.panel import Panel

from passgate import __version__

TAGLINE = "Passwordless authentication with WebAuthn passkeys"

app = typer.Typer(
    name="passgate",
    help=TAGLINE,
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


@app.command()
def serve(
    host: Annotated[
        Optional[str],  # noqa: UP007
        typer.Option("--host", "-h", help="Interface to listen on; API_HOST when omitted"),
    ] = None,
    port: Annotated[
        Optional[int],  # noqa: UP007
        typer.Option("--port", "-p", help="TCP port; API_PORT when omitted"),
    ] = None,
    reload: Annotated[
        bool,
        typer.Option("--reload", "-r", help="Restart on source changes (single worker)"),
    ] = False,
    workers: Annotated[
        Optional[int],  # noqa: UP007
        typer.Option("--workers", "-w", help="uvicorn worker processes; API_WORKERS when omitted"),
    ] = None,
) -> None:
    """Serve the HTTP API.

    The app is built by ``passgate.api.main:get_app`` in each worker.
    """
    import uvicorn

    from passgate.settings import get_settings

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port
    workers = workers or settings.api_workers

    console.print(
        Panel(
            f"[bold green]Listening on {host}:{port}[/bold green]\n"
            f"Workers: {workers}{' (reload)' if reload else ''}\n"
            f"RP ID: {settings.webauthn_rp_id}\n"
            f"Origin: {settings.webauthn_origin}",
            title="passgate serve",
            border_style="green",
        )
    )

    uvicorn.run(
        "passgate.api.main:get_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=1 if reload else workers,
        log_level="info",
    )


@app.command(name="init-db")
def init_db_cmd() -> None:
    """Create missing tables in DATABASE_URL.

    Meant for SQLite; PostgreSQL schemas come from ``alembic upgrade head``.
    """
    asyncio.run(_create_schema())


async def _create_schema() -> None:
    from passgate.settings import get_settings
    from passgate.storage import close_db, create_tables

    try:
        await create_tables()
    finally:
        await close_db()

    console.print(f"[green]Schema created in[/green] {get_settings().database_url}")


@app.command()
def users(
    limit: Annotated[
        int,
        typer.Option("--limit", "-l", help="Show at most this many accounts"),
    ] = 50,
) -> None:
    """Show registered accounts in username order."""
    asyncio.run(_show_users(limit))


async def _show_users(limit: int) -> None:
    from rich.table import Table

    from passgate.dal import UserRepository
    from passgate.storage import close_db, get_session

    try:
        async with get_session() as session:
            repo = UserRepository(session)
            rows = await repo.list_with_credential_counts(limit=limit)
            total = await repo.count()
    finally:
        await close_db()

    if not rows:
        console.print("[yellow]No users registered yet.[/yellow]")
        return

    table = Table(title=f"Users ({len(rows)}/{total})")
    table.add_column("ID", style="cyan")
    table.add_column("Username")
    table.add_column("Display name")
    table.add_column("Passkeys", justify="right")
    table.add_column("Registered", style="dim")

    for user, passkeys in rows:
        registered = user.created_at.strftime("%Y-%m-%d %H:%M") if user.created_at else "-"
        table.add_row(user.id, user.username, user.display_name, str(passkeys), registered)

    console.print(table)


@app.command()
def version() -> None:
    """Print the installed version."""
    console.print(
        Panel(
            f"[bold]passgate[/bold] {__version__}\n{TAGLINE}",
            border_style="blue",
        )
    )


if __name__ == "__main__":
    app()
