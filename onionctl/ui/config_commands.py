"""
Configuration Management Commands

Interactive configuration wizard for onionctl.
This module is lazy-loaded only when settings commands are used.
"""

from typing import Optional, Tuple

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from onionctl.core.configs import CONFIG_PATH, ControlConfig, load_raw_config, save_raw_config

console = Console()


def handle_config(action: str) -> None:
    """
    Route to appropriate config action.

    Args:
        action: One of 'init' or 'show'
    """
    actions = {
        "init": init_config,
        "show": show_config,
    }

    if action not in actions:
        console.print(f"[red]Unknown action: {action}[/red]")
        console.print("Available actions: init, show")
        raise SystemExit(1)

    actions[action]()


def init_config() -> None:
    """
    Interactive configuration wizard.
    Works on both new and existing configurations.
    """
    console.print(Panel.fit("[bold blue]onionctl configuration[/bold blue]", title="Setup"))

    existing = load_raw_config(CONFIG_PATH, env_path=None) if CONFIG_PATH.exists() else {}

    address, port = configure_endpoint(
        existing.get("control_address"), existing.get("control_port")
    )
    password = configure_password(existing.get("control_password"))

    path = save_raw_config(
        {
            "control_address": address,
            "control_port": str(port),
            "encoding": existing.get("encoding", "ascii"),
            "control_password": password,
        }
    )

    console.print(
        Panel.fit(
            f"[green]Configuration saved![/green]\nLocation: {path}",
            title="Success",
        )
    )


def configure_endpoint(
    current_address: Optional[str], current_port: Optional[str]
) -> Tuple[str, int]:
    """
    Configure the control port endpoint.

    Returns:
        tuple: (address, port)
    """
    console.print("\n[bold cyan]Control port[/bold cyan]")
    defaults = ControlConfig()

    if current_address and current_port:
        console.print(f"Current: {current_address}:{current_port}")
        if not Confirm.ask("Change control port?", default=False):
            return current_address, int(current_port)

    address = Prompt.ask("Address", default=current_address or defaults.address)
    port = IntPrompt.ask("Port", default=int(current_port or defaults.port))
    return address, port


def configure_password(current_password: Optional[str]) -> str:
    """Configure the clear-text control password (empty for none)."""
    console.print("\n[bold cyan]Authentication[/bold cyan]")

    if current_password:
        console.print(f"Current password: {_mask(current_password)}")
        if not Confirm.ask("Update password?", default=False):
            return current_password

    return Prompt.ask("Control password (leave empty for none)", password=True, default="")


def _mask(secret: str) -> str:
    if len(secret) > 8:
        return f"{secret[:2]}...{secret[-2:]}"
    return "***"


def show_config() -> None:
    """Display current configuration in a formatted table."""
    if not CONFIG_PATH.exists():
        console.print("[yellow]No configuration found. Run 'onionctl settings init'[/yellow]")
        return

    config = load_raw_config(CONFIG_PATH, env_path=None)

    if not config:
        console.print("[yellow]Configuration file is empty[/yellow]")
        return

    table = Table(title="onionctl configuration", show_header=True)
    table.add_column("Setting", style="cyan", width=25)
    table.add_column("Value", style="green")

    for key in ("control_address", "control_port", "encoding"):
        table.add_row(key, str(config.get(key) or "[dim]not set[/dim]"))

    password = config.get("control_password")
    table.add_row("control_password", _mask(password) if password else "[dim]not set[/dim]")

    console.print(table)
    console.print(f"\n[dim]Config file: {CONFIG_PATH}[/dim]")
