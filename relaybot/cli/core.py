"""Shared CLI application context and setup helpers."""

from __future__ import annotations

import typer
from rich.console import Console

from relaybot import __logo__, __version__

app = typer.Typer(
    name="relaybot",
    help=f"{__logo__} relaybot - middleware and handler pipeline for chat agents",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"{__logo__} relaybot v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(None, "--version", "-v", callback=version_callback, is_eager=True),
) -> None:
    """relaybot - middleware and handler pipeline for chat agents."""


@app.command()
def onboard() -> None:
    """Write a default relaybot configuration file."""
    from relaybot.config.loader import get_config_path, save_config
    from relaybot.config.schema import Config

    config_path = get_config_path()

    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    save_config(Config())
    console.print(f"[green]✓[/green] Created config at {config_path}")

    console.print(f"\n{__logo__} relaybot is ready!")
    console.print("\nNext steps:")
    console.print("  1. Review settings in [cyan]~/.relaybot/config.json[/cyan]")
    console.print("  2. Try the local echo agent: [cyan]relaybot chat[/cyan]")
