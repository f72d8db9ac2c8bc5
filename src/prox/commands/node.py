"""Node commands for prox."""

from typing import Optional

import typer
from rich.table import Table

from ..api_clients.errors import ProxError
from ..encryption import EncryptionError
from .common import (
    console,
    format_bytes,
    format_uptime,
    get_runtime,
    handle_error,
    json_option,
    print_json,
    profile_option,
    verbose_option,
)

app = typer.Typer(help="Inspect the nodes of the cluster.")


@app.command("list")
def list_nodes(
    output_json: bool = json_option(),
    profile: Optional[str] = profile_option(),
    verbose: bool = verbose_option(),
):
    """List cluster nodes with their load and uptime."""
    try:
        runtime = get_runtime(profile, verbose)
        with console.status("[blue]Fetching nodes...[/blue]"):
            nodes = runtime.client().get_nodes()
    except (ProxError, EncryptionError) as e:
        handle_error(e, "listing nodes", verbose)

    if output_json:
        print_json([n.to_dict() for n in nodes])
        return

    if not nodes:
        console.print("[yellow]No nodes found.[/yellow]")
        return

    table = Table(title=f"Nodes ({runtime.profile_name})")
    table.add_column("Node", style="cyan")
    table.add_column("Status")
    table.add_column("CPU", justify="right")
    table.add_column("Memory", justify="right")
    table.add_column("Uptime", justify="right")

    for node in nodes:
        style = "green" if node.is_online else "red"
        cores = f" of {node.max_cpu}" if node.max_cpu else ""
        memory = f"{format_bytes(node.mem)} / {format_bytes(node.max_mem)}" if node.max_mem else "-"
        table.add_row(
            node.node,
            f"[{style}]{node.status or 'unknown'}[/{style}]",
            f"{node.cpu_percent}%{cores}" if node.is_online else "-",
            memory,
            format_uptime(node.uptime),
        )

    console.print(table)
