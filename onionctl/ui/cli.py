"""Main CLI entry point - one subcommand per control operation."""

import logging
from typing import List, Optional

import typer

from onionctl.control.client import ControlClient, split_status
from onionctl.control.exceptions import ConnectFailedException, ControlError
from onionctl.control.replies import Reply
from onionctl.core.configs import ControlConfig, get_control_config, load_raw_config

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="onionctl - talk to a running Tor daemon over its control port.",
)

# Connection options collected by the callback, shared by every command
_options = {}


@app.callback()
def main(
    address: Optional[str] = typer.Option(None, "--address", "-a", help="Control port address"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Control port number"),
    password: Optional[str] = typer.Option(None, "--password", help="Control port password"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log protocol traffic"),
) -> None:
    """Connection options apply to every command."""
    _options.clear()
    _options.update(address=address, port=port, password=password)

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s [%(levelname)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


# ============================================================================
# Shared Setup
# ============================================================================

def _load_config() -> ControlConfig:
    """Merge the config file with command line options. Exits on error."""
    try:
        config = get_control_config(load_raw_config())
    except ValueError as e:
        typer.echo(f"Error loading configuration: {e}", err=True)
        typer.echo("Run 'onionctl settings init' to set up configuration", err=True)
        raise typer.Exit(1)

    if _options.get("address"):
        config.address = _options["address"]
    if _options.get("port"):
        config.port = _options["port"]
    if _options.get("password") is not None:
        config.password = _options["password"]
    return config


def _connect() -> ControlClient:
    """Connect and authenticate. Exits on error."""
    config = _load_config()
    client = ControlClient(config.address, config.port, encoding=config.encoding)

    try:
        client.connect(config.password)
    except ConnectFailedException as e:
        if e.reply is not None:
            typer.echo(f"Unable to connect. {e.reply.arguments}", err=True)
        else:
            typer.echo(f"Unable to connect: {e}", err=True)
        raise typer.Exit(1)

    return client


def _check_status(replies) -> None:
    """Exit with an error if the final status line is not 250."""
    status, _ = split_status(replies)
    if status is None or not status.is_ok:
        typer.echo(f"Error: {status.raw if status else 'no reply'}", err=True)
        raise typer.Exit(1)


# ============================================================================
# Commands
# ============================================================================

@app.command()
def version() -> None:
    """
    Print the daemon's version.

    Example: onionctl version
    """
    with _connect() as client:
        try:
            reply = client.get_info("version")
        except (ControlError, OSError) as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1)

    if not reply.is_ok:
        typer.echo("Unable to get the version.", err=True)
        raise typer.Exit(1)
    typer.echo(f"Tor {reply.value}")


@app.command()
def getinfo(key: str = typer.Argument(..., help="GETINFO key, e.g. 'traffic/read'")) -> None:
    """Print the value of a GETINFO key."""
    with _connect() as client:
        try:
            reply = client.get_info(key)
        except (ControlError, OSError) as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1)

    if not reply.is_ok:
        status, _ = split_status(reply.replies)
        typer.echo(f"Error: {status.raw if status else 'no reply'}", err=True)
        raise typer.Exit(1)
    typer.echo(reply.value)


@app.command()
def getconf(key: str = typer.Argument(..., help="Configuration option name")) -> None:
    """Print configuration values as key=value lines."""
    with _connect() as client:
        try:
            values = client.get_conf(key)
        except (ControlError, OSError) as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1)

    if not values:
        typer.echo(f"{key} is not set or unknown", err=True)
        raise typer.Exit(1)

    for name, value in values.items():
        typer.echo(f"{name}={value}")


@app.command()
def signal(name: str = typer.Argument(..., help="Signal name, e.g. NEWNYM or RELOAD")) -> None:
    """Send a signal to the daemon."""
    with _connect() as client:
        try:
            replies = client.signal(name.upper())
        except (ControlError, OSError) as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1)

    _check_status(replies)
    typer.echo("OK")


@app.command()
def services() -> None:
    """List the configured hidden services."""
    from rich.console import Console
    from rich.table import Table

    with _connect() as client:
        try:
            found = client.hidden_services()
        except (ControlError, OSError) as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1)

    console = Console()
    if not found:
        console.print("[yellow]No hidden services configured[/yellow]")
        return

    table = Table(title="Hidden services")
    table.add_column("Directory", style="cyan")
    table.add_column("Hostname")
    table.add_column("Port")
    table.add_column("Target")

    for service in found:
        target = f"{service.address}:{service.port}" if service.port else "-"
        table.add_row(
            service.folder,
            service.host or "[dim]not readable[/dim]",
            str(service.virtual_port or "-"),
            target,
        )
    console.print(table)


@app.command()
def listen(
    events: List[str] = typer.Argument(..., help="Event names, e.g. CIRC STREAM BW"),
) -> None:
    """
    Subscribe to events and print notifications until interrupted.

    Example: onionctl listen CIRC BW
    """
    client = _connect()

    def on_notification(_client: ControlClient, reply: Reply) -> None:
        typer.echo(reply.arguments if reply.code else reply.raw)

    client.subscribe(on_notification)

    try:
        _check_status(client.set_events(*[e.upper() for e in events]))
        while True:
            client.read()
    except KeyboardInterrupt:
        pass
    except (ControlError, OSError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    finally:
        client.close()


@app.command()
def settings(
    action: str = typer.Argument(..., help="Action: init or show"),
) -> None:
    """
    Manage onionctl configuration.

    Actions:
        init - Interactive configuration wizard
        show - Display current configuration
    """
    from onionctl.ui.config_commands import handle_config
    handle_config(action)


def run() -> None:
    """Entry point for console script mapping."""
    app()


if __name__ == "__main__":
    run()
