#!/usr/bin/env python3
"""
prox - Proxmox VE manager

A CLI tool for managing virtual machines and containers on a Proxmox VE cluster.
"""
import typer
from rich.console import Console

from . import __version__
from .commands import ct, node, profile, status, vm

app = typer.Typer(
    help="Proxmox VE manager - A CLI tool for managing virtual machines and containers on a Proxmox VE cluster.",
    add_completion=True,
    no_args_is_help=True,
)
console = Console()

# Add subcommands
app.add_typer(vm.app, name="vm")
app.add_typer(ct.app, name="ct")
app.add_typer(node.app, name="node")
app.add_typer(profile.app, name="profile")
app.command("status")(status.status_command)


@app.command()
def version():
    """Show the application version and exit."""
    console.print(f"prox version: {__version__}")
    raise typer.Exit()


if __name__ == "__main__":
    app()
