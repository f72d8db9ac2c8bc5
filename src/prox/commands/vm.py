"""Virtual machine commands for prox."""

from typing import Optional

import typer

from ..api_clients.errors import ProxError
from ..encryption import EncryptionError
from .common import (
    console,
    describe_guest,
    get_runtime,
    handle_error,
    json_option,
    list_guests,
    profile_option,
    run_guest_action,
    verbose_option,
)

app = typer.Typer(help="Manage QEMU virtual machines. List, describe, start, stop, clone, migrate and delete VMs.")


@app.command("list")
def list_vms(
    node: Optional[str] = typer.Option(None, "--node", "-n", help="Only show VMs on this node"),
    running: bool = typer.Option(False, "--running", "-r", help="Only show running VMs"),
    addresses: bool = typer.Option(
        False, "--ip", "-i", help="Resolve IP addresses of running VMs (slower)"
    ),
    output_json: bool = json_option(),
    profile: Optional[str] = profile_option(),
    verbose: bool = verbose_option(),
):
    """List virtual machines in the cluster."""
    list_guests("qemu", node, running, addresses, output_json, profile, verbose)


@app.command("describe")
def describe_vm(
    vm: str = typer.Argument(..., help="VM name or ID"),
    output_json: bool = json_option(),
    profile: Optional[str] = profile_option(),
    verbose: bool = verbose_option(),
):
    """Show configuration, live status and address of a VM."""
    describe_guest("qemu", vm, output_json, profile, verbose)


@app.command("start")
def start_vm(
    vm: str = typer.Argument(..., help="VM name or ID"),
    profile: Optional[str] = profile_option(),
    verbose: bool = verbose_option(),
):
    """Start a VM and wait until it is running."""
    run_guest_action("start", vm, "qemu", profile, verbose)


@app.command("stop")
def stop_vm(
    vm: str = typer.Argument(..., help="VM name or ID"),
    profile: Optional[str] = profile_option(),
    verbose: bool = verbose_option(),
):
    """Shut down a VM gracefully and wait for it to stop."""
    run_guest_action("shutdown", vm, "qemu", profile, verbose)


@app.command("delete")
def delete_vm(
    vm: str = typer.Argument(..., help="VM name or ID"),
    force: bool = typer.Option(False, "--force", "-f", help="Delete without confirmation"),
    profile: Optional[str] = profile_option(),
    verbose: bool = verbose_option(),
):
    """Delete a stopped VM."""
    if not force:
        confirm = typer.confirm(f"Are you sure you want to delete VM '{vm}'?")
        if not confirm:
            console.print("Operation cancelled.")
            return
    run_guest_action("delete", vm, "qemu", profile, verbose)


@app.command("clone")
def clone_vm(
    source: str = typer.Argument(..., help="Source VM name or ID"),
    name: str = typer.Argument(..., help="Name of the new VM"),
    new_id: Optional[int] = typer.Option(
        None, "--id", help="ID for the new VM (next free ID if not specified)"
    ),
    linked: bool = typer.Option(False, "--linked", help="Create a linked clone instead of a full clone"),
    profile: Optional[str] = profile_option(),
    verbose: bool = verbose_option(),
):
    """Clone a VM and wait for the clone to finish."""
    try:
        operations = get_runtime(profile, verbose).operations()
        operations.clone_vm(source, new_id=new_id, name=name, full=not linked)
    except KeyboardInterrupt:
        console.print("[yellow]Stopped waiting; the clone continues on the server.[/yellow]")
        raise typer.Exit(130)
    except (ProxError, EncryptionError) as e:
        handle_error(e, f"cloning VM '{source}'", verbose)

    console.print(f"[green]VM '{source}' cloned to '{name}'.[/green]")


@app.command("migrate")
def migrate_vm(
    vm: str = typer.Argument(..., help="VM name or ID"),
    target: str = typer.Argument(..., help="Target node"),
    online: bool = typer.Option(False, "--online", help="Live-migrate a running VM"),
    with_local_disks: bool = typer.Option(
        False, "--with-local-disks", help="Also migrate disks on local storage"
    ),
    profile: Optional[str] = profile_option(),
    verbose: bool = verbose_option(),
):
    """Migrate a VM to another node."""
    try:
        operations = get_runtime(profile, verbose).operations()
        operations.migrate_vm(vm, target, online=online, with_local_disks=with_local_disks)
    except KeyboardInterrupt:
        console.print("[yellow]Stopped waiting; the migration continues on the server.[/yellow]")
        raise typer.Exit(130)
    except (ProxError, EncryptionError) as e:
        handle_error(e, f"migrating VM '{vm}'", verbose)

    console.print(f"[green]VM '{vm}' migrated to {target}.[/green]")
