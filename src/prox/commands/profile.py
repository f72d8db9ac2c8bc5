"""Profile management commands for prox."""

from typing import Optional

import typer
from rich.table import Table

from ..api_clients.errors import ProxError
from ..encryption import EncryptionError
from ..utils.config import DEFAULT_PROFILE, Config, ProfileStore
from .common import console, handle_error, verbose_option

app = typer.Typer(help="Manage connection profiles. Credentials are stored encrypted.")


def get_profile_store() -> ProfileStore:
    return ProfileStore(Config())


@app.command("list")
def list_profiles():
    """List all configured profiles."""
    store = get_profile_store()
    names = store.list_profiles()

    if not names:
        console.print("No profiles configured. Use 'prox profile add' to add a profile.")
        return

    table = Table(title="Profiles")
    table.add_column("Name", style="cyan")
    table.add_column("URL", style="green")
    table.add_column("Username", style="blue")
    table.add_column("Current", style="yellow")

    current = store.get_current_profile()
    for name in names:
        try:
            credentials = store.read_profile(name)
            url, username = credentials.url, credentials.username
        except (ProxError, EncryptionError) as e:
            url, username = f"[red]{e}[/red]", ""
        table.add_row(name, url, username, "✓" if name == current else "")

    console.print(table)


@app.command("add")
def add_profile(
    name: str = typer.Argument(DEFAULT_PROFILE, help="Profile name"),
    url: str = typer.Option(..., "--url", "-u", help="Proxmox URL, e.g. https://pve.example.com:8006"),
    username: str = typer.Option(..., "--username", help="User including realm, e.g. root@pam"),
    password: str = typer.Option(
        ..., "--password", prompt=True, hide_input=True, help="Password (prompted if omitted)"
    ),
    use: bool = typer.Option(False, "--use", help="Make this the current profile"),
    verbose: bool = verbose_option(),
):
    """Add or replace a profile."""
    store = get_profile_store()
    existed = store.profile_exists(name)
    try:
        store.create_profile(name, username, password, url.rstrip("/"))
        if use:
            store.set_current_profile(name)
    except (ProxError, EncryptionError) as e:
        handle_error(e, f"saving profile '{name}'", verbose)

    verb = "updated" if existed else "added"
    suffix = " and set as current" if use else ""
    console.print(f"[green]Profile '{name}' {verb}{suffix}.[/green]")


@app.command("use")
def use_profile(name: str = typer.Argument(..., help="Profile name")):
    """Set the current profile."""
    store = get_profile_store()
    try:
        store.set_current_profile(name)
    except ProxError as e:
        handle_error(e, f"switching to profile '{name}'")
    console.print(f"[green]Now using profile '{name}'.[/green]")


@app.command("delete")
def delete_profile(
    name: str = typer.Argument(..., help="Profile name"),
    force: bool = typer.Option(False, "--force", "-f", help="Force removal without confirmation"),
):
    """Delete a profile. The default profile cannot be deleted."""
    store = get_profile_store()

    if not force:
        confirm = typer.confirm(f"Are you sure you want to delete profile '{name}'?")
        if not confirm:
            console.print("Operation cancelled.")
            return

    try:
        store.delete_profile(name)
    except ProxError as e:
        handle_error(e, f"deleting profile '{name}'")
    console.print(f"[green]Profile '{name}' deleted.[/green]")


@app.command("fingerprint")
def show_fingerprint(
    name: Optional[str] = typer.Argument(None, help="Compare against this profile"),
):
    """Show the fingerprint of the credential encryption key."""
    store = get_profile_store()
    try:
        current = store.cipher.fingerprint()
    except EncryptionError as e:
        handle_error(e, "computing key fingerprint")

    console.print(f"Key source: {store.cipher.key_manager.source}")
    console.print(f"Key fingerprint: [cyan]{current}[/cyan]")

    if name:
        try:
            stored = store.get_key_fingerprint(name)
        except ProxError as e:
            handle_error(e, f"reading profile '{name}'")
        if stored == current:
            console.print(f"[green]Profile '{name}' was written with this key.[/green]")
        else:
            console.print(
                f"[yellow]Profile '{name}' was written with key {stored or 'unknown'}; "
                "its credentials may not decrypt on this machine.[/yellow]"
            )


@app.command("migrate")
def migrate_profiles():
    """Encrypt any credentials still stored as plaintext."""
    store = get_profile_store()
    try:
        results = store.migrate_to_encrypted()
    except (ProxError, EncryptionError) as e:
        handle_error(e, "migrating profiles")

    changed = [name for name, was_changed in results if was_changed]
    if changed:
        console.print(f"[green]Encrypted credentials of: {', '.join(changed)}[/green]")
    else:
        console.print("All profiles are already encrypted.")
