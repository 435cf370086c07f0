"""Command-line interface for the relay.

Example:
    # Relay port 30001 to a local POP3 server, dropping the first chunk
    $ proxy-stream relay --profile mail --skip-packet 1

    # Relay 8888 to 10.0.0.5:8080 with at most 50 concurrent sessions
    $ proxy-stream relay --target-host 10.0.0.5 --max-connections 50

Numeric options are read as text and fall back to their defaults when they
cannot be parsed, so a typo produces a warning rather than a crash.
"""

import typer
from loguru import logger
from rich.console import Console

from proxy_stream import __version__
from proxy_stream.core.config import Profile, build_config
from proxy_stream.core.exceptions import BindError
from proxy_stream.core.proxy import run_server
from proxy_stream.core.utils.log_config import configure_logging

BIND_ERROR_EXIT_CODE = 2

console = Console()
app = typer.Typer(help="Transparent TCP relay with packet skip and admission control")


@app.callback(invoke_without_command=True)
def version_callback():
    """Show version information."""
    console.print(f"[cyan]proxy-stream v{__version__}[/cyan]")


@app.command(name="relay")
def start_relay(
    profile: Profile = typer.Option(
        Profile.WEB, "--profile", help="Deployment profile: web (8888 -> 8080) or mail (30001 -> 110)"
    ),
    listen_port: str | None = typer.Option(
        None, "--listen-port", help="Port to listen on (default from profile)"
    ),
    target_host: str | None = typer.Option(
        None, "--target-host", help="Host to forward traffic to (default: 127.0.0.1)"
    ),
    target_port: str | None = typer.Option(
        None, "--target-port", help="Port to forward traffic to (default from profile)"
    ),
    skip_packet: str | None = typer.Option(
        None, "--skip-packet", help="Client chunks to drop before forwarding (default: 0)"
    ),
    idle_timeout: str | None = typer.Option(
        None, "--idle-timeout", help="Seconds without traffic before a session is closed, 0 disables (default: 30)"
    ),
    max_connections: str | None = typer.Option(
        None, "--max-connections", help="Maximum concurrent sessions (default: 1000)"
    ),
    connect_timeout: str | None = typer.Option(
        None, "--connect-timeout", help="Seconds to wait when dialing the target (default: 10)"
    ),
    dashboard: bool = typer.Option(
        default=False,
        help="Show a live statistics dashboard",
    ),
    debug: bool = typer.Option(
        default=False,
        help="Enable debug logging",
    ),
):
    """Start relaying connections to the target."""
    configure_logging(debug=debug)

    config = build_config(
        profile=profile,
        listen_port=listen_port,
        destination_host=target_host,
        destination_port=target_port,
        skip_count=skip_packet,
        idle_timeout=idle_timeout,
        max_connections=max_connections,
        connect_timeout=connect_timeout,
    )

    try:
        run_server(config, dashboard=dashboard)
    except BindError as e:
        logger.critical(str(e))
        console.print(f"[red]Error: {e}")
        raise typer.Exit(code=BIND_ERROR_EXIT_CODE) from e


def main() -> None:
    app()


if __name__ == "__main__":
    main()
