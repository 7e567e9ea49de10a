"""
Cocoa Connect - CLI Entry Point.

Usage:
    cocoa-connect roles                      List participant roles
    cocoa-connect locations --level region   Browse the administrative hierarchy
    cocoa-connect onboard --account-id ...   Onboard an account in one shot
    cocoa-connect role --account-id ...      Show an account's role
    cocoa-connect health                     Check configuration and backend
    cocoa-connect --help                     Show help

Pass --seed FILE to run against a JSON seed instead of Supabase.
"""

import asyncio
from typing import Optional
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from onboarding.locations import Level

app = typer.Typer(
    name="cocoa-connect",
    help="Cocoa Connect - onboarding for the cocoa value chain.",
    add_completion=False,
)
console = Console()


def _open_store(seed: Optional[Path]):
    from cocoa_connect.db.store import MemoryRecordStore, SupabaseRecordStore

    if seed is not None:
        return MemoryRecordStore.from_json(seed)

    from cocoa_connect.db.client import get_client
    return SupabaseRecordStore(get_client())


@app.command()
def roles() -> None:
    """List participant roles and the fields each must fill in."""
    from onboarding.roles import get_role_options

    table = Table(title="Participant roles")
    table.add_column("Role", style="bold")
    table.add_column("Label")
    table.add_column("Fields")
    table.add_column("Location")

    for option in get_role_options():
        table.add_row(
            option["id"],
            option["label"],
            ", ".join(option["fields"]),
            "required" if option["requires_location"] else "-",
        )

    console.print(table)


@app.command()
def locations(
    level: Level = typer.Option(Level.REGION, "--level", help="Level to list"),
    parent: Optional[str] = typer.Option(None, "--parent", "-p", help="Parent unit id"),
    seed: Optional[Path] = typer.Option(None, "--seed", help="JSON seed file instead of Supabase"),
) -> None:
    """List administrative units under a parent."""
    from cocoa_connect.config import settings
    from cocoa_connect.errors import CocoaConnectError
    from onboarding.locations import LocationDirectory

    directory = LocationDirectory(_open_store(seed), collection=settings.units_table)
    try:
        units = asyncio.run(directory.list_children(parent, level))
    except CocoaConnectError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"{level.value} units")
    table.add_column("Id")
    table.add_column("Name", style="bold")
    for unit in units:
        table.add_row(unit.id, unit.name)
    console.print(table)


@app.command()
def onboard(
    account_id: str = typer.Option(..., "--account-id", help="Supabase account id (UUID)"),
    email: str = typer.Option(..., "--email", help="Account email"),
    role: str = typer.Option(..., "--role", "-r", help="Role id or label"),
    full_name: Optional[str] = typer.Option(None, "--full-name"),
    region: Optional[str] = typer.Option(None, "--region"),
    sub_region: Optional[str] = typer.Option(None, "--sub-region"),
    lga: Optional[str] = typer.Option(None, "--lga"),
    ward: Optional[str] = typer.Option(None, "--ward"),
    organization_name: Optional[str] = typer.Option(None, "--org-name"),
    registration_number: Optional[str] = typer.Option(None, "--registration-number"),
    seed: Optional[Path] = typer.Option(None, "--seed", help="JSON seed file instead of Supabase"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Run a complete onboarding for one account and commit the profile."""
    from cocoa_connect.auth import AccountIdentity
    from cocoa_connect.config import settings
    from cocoa_connect.errors import CocoaConnectError
    from cocoa_connect.logging_setup import setup_logging
    from cocoa_connect.storage import FileSecureStorage
    from onboarding.committer import ProfileCommitter
    from onboarding.locations import LocationDirectory
    from onboarding.roles import ProfileField, parse_role
    from onboarding.session import OnboardingSession

    setup_logging(settings.log_level, verbose=verbose)

    parsed_role = parse_role(role)
    if parsed_role is None:
        console.print(f"[red]Unknown role: {role}[/red]")
        raise typer.Exit(2)

    store = _open_store(seed)
    directory = LocationDirectory(store, collection=settings.units_table)
    committer = ProfileCommitter(
        directory,
        store,
        FileSecureStorage(settings.secure_store_path),
        profiles_collection=settings.profiles_table,
        role_hint_key=settings.role_hint_key,
    )
    session = OnboardingSession(AccountIdentity(account_id=account_id, email=email), directory, committer)

    selections = {
        Level.REGION: region,
        Level.SUB_REGION: sub_region,
        Level.LGA: lga,
        Level.WARD: ward,
    }
    details = {
        ProfileField.FULL_NAME: full_name,
        ProfileField.ORGANIZATION_NAME: organization_name,
        ProfileField.REGISTRATION_NUMBER: registration_number,
    }

    async def run():
        session.choose_role(parsed_role)
        for level, name in selections.items():
            if not name:
                break
            await session.select_location(level, name)
        for profile_field, value in details.items():
            if value is not None:
                session.set_detail(profile_field, value)
        return await session.submit()

    try:
        result = asyncio.run(run())
    except CocoaConnectError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)

    if not result.committed:
        failure = result.failure
        console.print(f"[red]❌ {failure.message if failure else 'Submission rejected'}[/red]")
        if failure and failure.fields:
            console.print(f"[dim]Check: {', '.join(failure.fields)}[/dim]")
        raise typer.Exit(1)

    table = Table(title="Profile saved")
    table.add_column("Field")
    table.add_column("Value")
    for key, value in result.record.to_row().items():
        table.add_row(key, "" if value is None else str(value))
    console.print(table)


@app.command()
def role(
    account_id: str = typer.Option(..., "--account-id", help="Supabase account id (UUID)"),
    seed: Optional[Path] = typer.Option(None, "--seed", help="JSON seed file instead of Supabase"),
) -> None:
    """Show the role an account onboarded with."""
    from cocoa_connect.config import settings
    from cocoa_connect.errors import CocoaConnectError
    from cocoa_connect.storage import FileSecureStorage
    from onboarding.committer import load_role_hint

    try:
        found = asyncio.run(load_role_hint(
            FileSecureStorage(settings.secure_store_path),
            _open_store(seed),
            account_id,
            key=settings.role_hint_key,
            profiles_collection=settings.profiles_table,
        ))
    except CocoaConnectError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)

    if found is None:
        console.print(f"[yellow]No role known for {account_id}[/yellow]")
        raise typer.Exit(1)
    console.print(found.value)


@app.command()
def health() -> None:
    """Check configuration and backend collections."""
    from cocoa_connect.config import get_settings

    console.print("\n[bold]Cocoa Connect Health Check[/bold]\n")

    try:
        settings = get_settings()
    except Exception as e:
        console.print(f"\n[red]❌ Configuration error: {e}[/red]")
        console.print("[dim]Make sure you have a .env file with required variables.[/dim]")
        raise typer.Exit(1)

    console.print("✅ Configuration loaded")
    console.print(f"   Environment: {settings.app_env}")
    console.print(f"   Log level: {settings.log_level}")

    if not settings.has_supabase:
        console.print("❌ Supabase URL or anon key missing")
        raise typer.Exit(1)

    from cocoa_connect.db.client import get_client

    try:
        client = get_client()
    except Exception as e:
        console.print(f"\n[red]❌ Database connection failed: {e}[/red]")
        raise typer.Exit(1)

    console.print("✅ Connected to Supabase")
    failed = False
    for table in (settings.units_table, settings.profiles_table):
        try:
            result = client.table(table).select("*", count="exact").limit(0).execute()
            console.print(f"  ✅ {table}: {result.count} rows")
        except Exception as e:
            failed = True
            console.print(f"  ❌ {table}: {e}")

    if failed:
        raise typer.Exit(1)
    console.print("\n[green]All checks passed![/green]")


@app.command()
def serve(
    port: int = typer.Option(8000, "--port", "-p", help="Port to run on"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload for development"),
) -> None:
    """Start the onboarding API server."""
    import os

    import uvicorn

    actual_port = int(os.environ.get("PORT", port))

    console.print("\n[bold green]Cocoa Connect API[/bold green]")
    console.print(f"Starting server on http://localhost:{actual_port}")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    uvicorn.run(
        "cocoa_connect.web.app:app",
        host="0.0.0.0",
        port=actual_port,
        reload=reload,
    )


@app.command()
def version() -> None:
    """Show version information."""
    from cocoa_connect import __version__

    console.print(f"Cocoa Connect version {__version__}")


if __name__ == "__main__":
    app()
