"""Container commands for prox."""

from typing import Optional

import typer

from .common import (
    console,
    describe_guest,
    json_option,
    list_guests,
    profile_option,
    run_guest_action,
    verbose_option,
)

app = typer.Typer(help="Manage LXC containers. List, describe, start, stop and delete containers.")


@app.command("list")
def list_containers(
    node: Optional[str] = typer.Option(None, "--node", "-n", help="Only show containers on this node"),
    running: bool = typer.Option(False, "--running", "-r", help="Only show running containers"),
    addresses: bool = typer.Option(
        False, "--ip", "-i", help="Resolve IP addresses of running containers (slower)"
    ),
    output_json: bool = json_option(),
    profile: Optional[str] = profile_option(),
    verbose: bool = verbose_option(),
):
    """List containers in the cluster."""
    list_guests("lxc", node, running, addresses, output_json, profile, verbose)


@app.command("describe")
def describe_container(
    container: str = typer.Argument(..., help="Container name or ID"),
    output_json: bool = json_option(),
    profile: Optional[str] = profile_option(),
    verbose: bool = verbose_option(),
):
    """Show configuration, live status and address of a container."""
    describe_guest("lxc", container, output_json, profile, verbose)


@app.command("start")
def start_container(
    container: str = typer.Argument(..., help="Container name or ID"),
    profile: Optional[str] = profile_option(),
    verbose: bool = verbose_option(),
):
    """Start a container and wait until it is running."""
    run_guest_action("start", container, "lxc", profile, verbose)


@app.command("stop")
def stop_container(
    container: str = typer.Argument(..., help="Container name or ID"),
    profile: Optional[str] = profile_option(),
    verbose: bool = verbose_option(),
):
    """Shut down a container and wait for it to stop."""
    run_guest_action("shutdown", container, "lxc", profile, verbose)


@app.command("delete")
def delete_container(
    container: str = typer.Argument(..., help="Container name or ID"),
    force: bool = typer.Option(False, "--force", "-f", help="Delete without confirmation"),
    profile: Optional[str] = profile_option(),
    verbose: bool = verbose_option(),
):
    """Delete a stopped container."""
    if not force:
        confirm = typer.confirm(f"Are you sure you want to delete container '{container}'?")
        if not confirm:
            console.print("Operation cancelled.")
            return
    run_guest_action("delete", container, "lxc", profile, verbose)
