"""Common command infrastructure for prox CLI commands.

This module provides shared functionality for all CLI commands including:
- Standard --profile, --verbose and --json options
- Building the client runtime for the selected profile
- Rendering resources as tables or JSON
- Consistent error reporting
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from ..api_clients.client import ProxmoxClient
from ..api_clients.errors import ProxError
from ..api_clients.factory import ClientFactory
from ..api_clients.network import AddressResolver
from ..encryption import EncryptionError
from ..models import GuestDetails, Resource, ResourceKind
from ..operations import ResourceOperations
from ..utils.config import Config, ProfileStore
from ..utils.enrichment import AddressEnricher
from ..utils.logging_config import LoggingConfig, setup_logging
from ..utils.task_monitor import BackoffPolicy, TaskMonitor

# Shared instances
console = Console()
logger = logging.getLogger(__name__)


def profile_option() -> Any:
    """
    Create a standardized --profile option for commands.

    Returns:
        Typer option for profile selection
    """
    return typer.Option(
        None, "--profile", "-p", help="Profile to use (uses the current profile if not specified)"
    )


def verbose_option() -> Any:
    """Create a verbose option for CLI commands."""
    return typer.Option(False, "--verbose", "-v", help="Show detailed output and debug logs")


def json_option() -> Any:
    return typer.Option(False, "--json", help="Print JSON instead of a table")


@dataclass
class Runtime:
    """Everything a command needs to talk to the cluster of one profile."""

    config: Config
    profiles: ProfileStore
    factory: ClientFactory
    profile_name: str
    verbose: bool = False

    def client(self) -> ProxmoxClient:
        return self.factory.get_client(self.profile_name)

    def operations(self, show_progress: bool = True) -> ResourceOperations:
        client = self.client()
        monitor = TaskMonitor(
            client,
            policy=BackoffPolicy.from_config(self.config),
            show_progress=show_progress and bool(self.config.get("tasks.show_progress", True)),
        )
        resolver = AddressResolver(client)
        enricher = AddressEnricher.from_config(resolver, self.config)
        timeout = self.config.get("tasks.timeout")
        return ResourceOperations(
            client,
            monitor=monitor,
            enricher=enricher,
            task_timeout=float(timeout) if timeout else None,
            resolver=resolver,
        )


def get_runtime(profile: Optional[str] = None, verbose: bool = False) -> Runtime:
    """
    Load configuration, set up logging and build the client factory.

    Args:
        profile: Profile override from the command line
        verbose: Enable debug logging
    """
    config = Config()
    setup_logging(LoggingConfig.from_config(config, verbose=verbose))
    profiles = ProfileStore(config, profile_override=profile)
    factory = ClientFactory.from_config(config, profile_store=profiles)
    profile_name = profiles.get_current_profile()
    logger.debug(f"Using profile '{profile_name}'")
    return Runtime(config, profiles, factory, profile_name, verbose)


def handle_error(error: Exception, operation: str, verbose: bool = False) -> None:
    """
    Print an error for a failed command and exit with status 1.

    Raises:
        typer.Exit: Always
    """
    if isinstance(error, (ProxError, EncryptionError)):
        console.print(f"[red]Error {operation}: {error}[/red]")
    else:
        console.print(f"[red]Unexpected error {operation}: {error}[/red]")
    if verbose:
        console.print_exception()
    raise typer.Exit(1)


def format_bytes(value: int) -> str:
    """Human readable size with binary units."""
    size = float(value)
    for unit in ("B", "KiB", "MiB", "GiB", "TiB"):
        if size < 1024 or unit == "TiB":
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TiB"


def format_uptime(seconds: int) -> str:
    if seconds <= 0:
        return "-"
    days, remainder = divmod(seconds, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes = remainder // 60
    if days:
        return f"{days}d {hours}h"
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def print_json(data: Any) -> None:
    console.print_json(json.dumps(data, default=str))


def render_resources(resources: List[Resource], title: str, show_addresses: bool = False) -> None:
    """Print guests as a rich table."""
    table = Table(title=title)
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Name", style="green")
    table.add_column("Node", style="blue")
    table.add_column("Status")
    table.add_column("CPU", justify="right")
    table.add_column("Memory", justify="right")
    table.add_column("Uptime", justify="right")
    if show_addresses:
        table.add_column("Address", style="magenta")

    for resource in resources:
        status_style = "green" if resource.is_running else "yellow"
        row = [
            str(resource.vmid or ""),
            resource.name or "",
            resource.node,
            f"[{status_style}]{resource.status or 'unknown'}[/{status_style}]",
            f"{resource.cpu_percent}%",
            f"{format_bytes(resource.mem)} / {format_bytes(resource.max_mem)}",
            format_uptime(resource.uptime),
        ]
        if show_addresses:
            row.append(resource.address or "")
        table.add_row(*row)

    console.print(table)


def list_guests(
    kind: str,
    node: Optional[str],
    running: bool,
    addresses: bool,
    output_json: bool,
    profile: Optional[str],
    verbose: bool,
) -> List[Resource]:
    """Shared body of ``vm list`` and ``ct list``."""
    label = "VMs" if kind == "qemu" else "containers"
    try:
        runtime = get_runtime(profile, verbose)
        operations = runtime.operations(show_progress=False)

        if kind == "qemu":
            list_fn = operations.list_vms
        else:
            list_fn = operations.list_containers

        if output_json:
            resources = list_fn(node=node, running_only=running, show_addresses=addresses)
        else:
            with console.status(f"[blue]Fetching {label}...[/blue]"):
                resources = list_fn(node=node, running_only=running, show_addresses=addresses)
    except (ProxError, EncryptionError) as e:
        handle_error(e, f"listing {label}", verbose)

    if output_json:
        print_json([r.to_dict() for r in resources])
        return resources

    if not resources:
        console.print(f"[yellow]No {label} found.[/yellow]")
        return resources

    render_resources(resources, f"{label.capitalize()} ({runtime.profile_name})", addresses)
    return resources


def run_guest_action(
    action: str,
    name_or_id: str,
    kind: str,
    profile: Optional[str],
    verbose: bool,
) -> None:
    """Shared body of the start, stop and delete commands."""
    resource_kind = ResourceKind(kind)
    label = "VM" if resource_kind == ResourceKind.QEMU else "container"
    try:
        operations = get_runtime(profile, verbose).operations()
        method = getattr(operations, action)
        method(name_or_id, resource_kind)
    except KeyboardInterrupt:
        console.print("[yellow]Stopped waiting; the task continues on the server.[/yellow]")
        raise typer.Exit(130)
    except (ProxError, EncryptionError) as e:
        handle_error(e, f"running {action} on {label} '{name_or_id}'", verbose)

    past = {"start": "started", "shutdown": "stopped", "delete": "deleted"}[action]
    console.print(f"[green]{label} '{name_or_id}' {past}.[/green]")


# Config keys that describe attached devices rather than sizing
DEVICE_KEY_PREFIXES = ("net", "scsi", "virtio", "sata", "ide", "rootfs", "mp", "efidisk", "tpmstate")


def _device_keys(config: dict) -> List[str]:
    return sorted(key for key in config if key.rstrip("0123456789") in DEVICE_KEY_PREFIXES)


def render_details(details: GuestDetails) -> None:
    """Print one guest as a two column table."""
    resource, config, status = details.resource, details.config, details.status
    label = "Virtual Machine" if resource.kind == ResourceKind.QEMU else "Container"

    table = Table(title=f"{label} {resource.name or resource.vmid}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    state = status.get("status") or resource.status or "unknown"
    state_style = "green" if state == "running" else "yellow"
    table.add_row("ID", str(resource.vmid))
    table.add_row("Name", resource.name or "")
    table.add_row("Node", resource.node)
    table.add_row("Status", f"[{state_style}]{state}[/{state_style}]")
    if details.address is not None:
        table.add_row("Address", details.address)
    if resource.kind == ResourceKind.QEMU:
        agent = str(config.get("agent", "0")).split(",", 1)[0]
        table.add_row("QEMU Agent", "Enabled" if agent in ("1", "enabled=1") else "Disabled")

    if "memory" in config:
        table.add_row("Memory", f"{config['memory']} MiB")
    if "balloon" in config:
        table.add_row("Balloon Memory", f"{config['balloon']} MiB")
    if "swap" in config:
        table.add_row("Swap", f"{config['swap']} MiB")
    if "sockets" in config:
        table.add_row("CPU Sockets", str(config["sockets"]))
    if "cores" in config:
        table.add_row("CPU Cores", str(config["cores"]))
    if "ostype" in config:
        table.add_row("OS Type", str(config["ostype"]))

    if state == "running":
        cpu = status.get("cpu")
        if isinstance(cpu, (int, float)):
            table.add_row("CPU Usage", f"{cpu * 100:.1f}%")
        if status.get("maxmem"):
            table.add_row(
                "Memory Usage",
                f"{format_bytes(int(status.get('mem') or 0))} / {format_bytes(int(status['maxmem']))}",
            )
        table.add_row("Uptime", format_uptime(int(status.get("uptime") or 0)))

    for key in _device_keys(config):
        table.add_row(key, str(config[key]))

    console.print(table)


def describe_guest(
    kind: str,
    name_or_id: str,
    output_json: bool,
    profile: Optional[str],
    verbose: bool,
) -> GuestDetails:
    """Shared body of ``vm describe`` and ``ct describe``."""
    resource_kind = ResourceKind(kind)
    label = "VM" if resource_kind == ResourceKind.QEMU else "container"
    try:
        operations = get_runtime(profile, verbose).operations(show_progress=False)
        if output_json:
            details = operations.describe(name_or_id, resource_kind)
        else:
            with console.status(f"[blue]Getting {label} details for {name_or_id}...[/blue]"):
                details = operations.describe(name_or_id, resource_kind)
    except (ProxError, EncryptionError) as e:
        handle_error(e, f"describing {label} '{name_or_id}'", verbose)

    if output_json:
        print_json(details.to_dict())
    else:
        render_details(details)
    return details
