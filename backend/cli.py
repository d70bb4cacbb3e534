"""
Chat Relay CLI.

Command-line interface for running and inspecting the chat gateway.
"""

import asyncio
import sys

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="chat-relay",
    help="Chat Relay Gateway CLI",
    add_completion=False,
)
console = Console()


# =============================================================================
# Server Commands
# =============================================================================

@app.command()
def serve(
    host: str = typer.Option(None, help="Bind address (defaults to WS_GATEWAY_HOST)"),
    port: int = typer.Option(None, help="Port (defaults to WS_GATEWAY_PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Run the chat gateway with uvicorn."""
    import uvicorn

    from shared.config.settings import get_settings

    settings = get_settings()
    host = host or settings.ws_gateway_host
    port = port or settings.ws_gateway_port

    console.print(f"[blue]Starting chat gateway on {host}:{port} ({settings.environment})[/blue]")
    uvicorn.run("chat_gateway.main:app", host=host, port=port, reload=reload)


# =============================================================================
# Message Store Commands
# =============================================================================

@app.command()
def history(
    limit: int = typer.Option(20, "--limit", "-n", min=1, max=100, help="Messages to show"),
):
    """Show the most recent stored chat messages."""
    from chat_gateway.components.core.errors import MessageStoreError
    from chat_gateway.components.data.message_store import build_message_store
    from shared.config.settings import get_settings

    settings = get_settings()
    if settings.message_store == "memory":
        console.print("[yellow]MESSAGE_STORE=memory keeps no history between processes[/yellow]")
        raise typer.Exit(1)

    store = build_message_store(settings)

    async def _recent():
        return await store.recent(limit)

    try:
        messages = asyncio.run(_recent())
    except MessageStoreError as e:
        console.print(f"[red]✗ Could not read history: {e}[/red]")
        raise typer.Exit(1)
    finally:
        store.close()

    if not messages:
        console.print("[yellow]No messages stored[/yellow]")
        return

    table = Table(title=f"Last {len(messages)} messages")
    table.add_column("Time", style="cyan")
    table.add_column("Sender", style="green")
    table.add_column("Text")

    for message in messages:
        table.add_row(
            message.created_at.astimezone().strftime("%Y-%m-%d %H:%M:%S"),
            message.sender_name,
            message.text,
        )

    console.print(table)


# =============================================================================
# Session Commands
# =============================================================================

@app.command()
def issue_token(
    user_id: str = typer.Argument(..., help="Account id (token subject)"),
    username: str = typer.Argument(..., help="Display name shown in the room"),
    ttl: int = typer.Option(None, help="Lifetime in seconds (defaults to settings)"),
):
    """Mint a session token for the /ws/chat endpoint."""
    from shared.security.auth import issue_session_token

    token = issue_session_token(user_id, username, ttl_seconds=ttl)
    console.print(token, soft_wrap=True)


# =============================================================================
# Configuration Commands
# =============================================================================

@app.command()
def check_config():
    """Show effective settings and production validation errors."""
    from shared.config.settings import get_settings

    settings = get_settings()

    table = Table(title="Effective Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    secret_fields = {"session_secret"}
    for name, value in settings.model_dump().items():
        shown = "********" if name in secret_fields and value else str(value)
        table.add_row(name, shown)

    console.print(table)

    errors = settings.validate_production_secrets()
    if errors:
        for error in errors:
            console.print(f"[red]✗ {error}[/red]")
        raise typer.Exit(1)
    console.print("[green]✓ Configuration OK[/green]")


# =============================================================================
# Health Commands
# =============================================================================

@app.command()
def health(
    url: str = typer.Option("http://localhost:8080", help="Gateway base URL"),
):
    """Check gateway health over HTTP."""
    import time

    import httpx

    table = Table(title="Gateway Health")
    table.add_column("Check", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Response Time", style="yellow")

    with httpx.Client(timeout=5.0) as client:
        for name, path in (("Liveness", "/ws/health"), ("Dependencies", "/ws/health/detailed")):
            try:
                start = time.time()
                response = client.get(f"{url}{path}")
                elapsed = (time.time() - start) * 1000
                if response.status_code == 200:
                    table.add_row(name, "✓ Healthy", f"{elapsed:.0f}ms")
                else:
                    table.add_row(name, f"✗ Status {response.status_code}", f"{elapsed:.0f}ms")
            except httpx.HTTPError as e:
                table.add_row(name, f"✗ {type(e).__name__}", "-")

    console.print(table)


@app.command()
def version():
    """Show version information."""
    from shared.config.settings import get_settings

    table = Table(title="Chat Relay Version")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")

    table.add_row("Gateway", get_settings().app_version)
    table.add_row("Python", sys.version.split()[0])

    console.print(table)


if __name__ == "__main__":
    app()
