"""Cluster status command for prox."""

from typing import Optional

from rich.table import Table

from ..api_clients.errors import ProxError
from ..encryption import EncryptionError
from ..models import ResourceKind
from .common import console, get_runtime, handle_error, json_option, print_json, profile_option, verbose_option


def status_command(
    output_json: bool = json_option(),
    profile: Optional[str] = profile_option(),
    verbose: bool = verbose_option(),
):
    """Show the server version, nodes and a guest summary."""
    try:
        runtime = get_runtime(profile, verbose)
        client = runtime.client()
        with console.status("[blue]Querying cluster...[/blue]"):
            version = client.get_version()
            nodes = client.get_nodes()
            resources = client.get_cluster_resources()
    except (ProxError, EncryptionError) as e:
        handle_error(e, "fetching cluster status", verbose)

    summary = {}
    for kind in (ResourceKind.QEMU, ResourceKind.LXC):
        guests = [r for r in resources if r.kind == kind]
        summary[kind.value] = {
            "total": len(guests),
            "running": sum(1 for r in guests if r.is_running),
        }

    if output_json:
        print_json(
            {
                "profile": runtime.profile_name,
                "endpoint": client.endpoint,
                "version": version.version,
                "release": version.release,
                "nodes": [{"node": n.node, "status": n.status} for n in nodes],
                "guests": summary,
            }
        )
        return

    console.print(f"[bold blue]Proxmox VE {version.version}[/bold blue] at {client.endpoint}")
    console.print(f"Profile: [bold]{runtime.profile_name}[/bold]\n")

    table = Table(title="Nodes")
    table.add_column("Node", style="cyan")
    table.add_column("Status")
    for node in nodes:
        style = "green" if node.status == "online" else "red"
        table.add_row(node.node, f"[{style}]{node.status or 'unknown'}[/{style}]")
    console.print(table)

    vms, cts = summary["qemu"], summary["lxc"]
    console.print(f"VMs: {vms['running']}/{vms['total']} running")
    console.print(f"Containers: {cts['running']}/{cts['total']} running")
