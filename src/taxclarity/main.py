"""
TaxClarity - CLI Entry Point.

Usage:
    taxclarity show                  Show profile, checklist and onboarding status
    taxclarity profile --state Lagos Update profile fields
    taxclarity toggle 1              Toggle a checklist item
    taxclarity reset                 Reset profile and checklist
    taxclarity complete              Finish onboarding
    taxclarity options               List valid profile options
    taxclarity sync-checklist        Replace the checklist with the server's
    taxclarity health                Check configuration and storage
    taxclarity --help                Show help
"""

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from taxclarity import reference
from taxclarity.onboarding.forms import (
    ProfileForm,
    checklist_progress,
    finish_onboarding,
    normalize_state,
    submit_profile,
)
from taxclarity.onboarding.state import OnboardingSnapshot
from taxclarity.onboarding.store import OnboardingStore

app = typer.Typer(
    name="taxclarity",
    help="TaxClarity - understand which Nigerian taxes apply to you.",
    add_completion=False,
)
console = Console()
logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", "-d", help="Directory holding the local state file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Manage local TaxClarity onboarding state."""
    from taxclarity.config import get_settings

    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level)
    ctx.obj = {
        "settings": settings,
        "data_dir": data_dir or settings.taxclarity_data_dir,
    }


# =============================================================================
# Helpers
# =============================================================================

def _build_store(ctx: typer.Context) -> OnboardingStore:
    from taxclarity.storage.backends import JsonFileStorage

    settings = ctx.obj["settings"]
    storage = JsonFileStorage(ctx.obj["data_dir"])
    return OnboardingStore(storage, key=settings.taxclarity_storage_key)


def _run(ctx: typer.Context, action: Callable[[OnboardingStore], object] | None = None):
    """Hydrate, apply an action, flush. Returns (snapshot, action result)."""

    async def session():
        store = _build_store(ctx)
        await store.hydrate()
        result = action(store) if action else None
        snapshot = store.snapshot
        if not await store.flush():
            console.print("[yellow]Warning: changes could not be saved.[/yellow]")
        await store.aclose()
        return snapshot, result

    try:
        return asyncio.run(session())
    except (TypeError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)


def _render(snapshot: OnboardingSnapshot) -> None:
    profile = snapshot.profile
    unset = "[dim]not set[/dim]"
    console.print(
        Panel.fit(
            f"[bold]User type:[/bold] {reference.label_for_user_type(profile.user_type) or profile.user_type or unset}\n"
            f"[bold]Income:[/bold] {reference.label_for_income_range(profile.income_range) or profile.income_range or unset}\n"
            f"[bold]State:[/bold] {profile.state or unset}",
            title="Profile",
            border_style="green" if profile.is_complete else "yellow",
        )
    )

    table = Table(title=f"Next steps ({snapshot.completed_count}/{len(snapshot.checklist)})")
    table.add_column("ID", style="dim")
    table.add_column("Task")
    table.add_column("Done", justify="center")
    for item in snapshot.checklist:
        table.add_row(escape(item.id), escape(item.title), "✅" if item.completed else "⬜")
    console.print(table)

    status = "[green]complete[/green]" if snapshot.has_completed_onboarding else "[yellow]in progress[/yellow]"
    console.print(f"Onboarding: {status}")


# =============================================================================
# Commands
# =============================================================================

@app.command()
def show(ctx: typer.Context) -> None:
    """Show the current onboarding state."""
    snapshot, _ = _run(ctx)
    _render(snapshot)


@app.command()
def profile(
    ctx: typer.Context,
    user_type: Optional[str] = typer.Option(None, "--user-type", "-t", help="salary_earner, freelancer or small_business_owner"),
    income_range: Optional[str] = typer.Option(None, "--income-range", "-i", help="Income bucket key, e.g. 800k_3m"),
    state: Optional[str] = typer.Option(None, "--state", "-s", help="State of residence, e.g. Lagos"),
) -> None:
    """Set one or more profile fields."""
    if user_type is None and income_range is None and state is None:
        console.print("[red]Error: pass at least one of --user-type, --income-range, --state[/red]")
        raise typer.Exit(code=1)

    if None not in (user_type, income_range, state):
        try:
            form = ProfileForm(user_type=user_type, income_range=income_range, state=state)
        except ValueError as e:
            console.print(f"[red]Invalid profile:[/red]\n{escape(str(e))}")
            raise typer.Exit(code=1)
        snapshot, _ = _run(ctx, lambda store: submit_profile(store, form))
        _render(snapshot)
        return

    # Partial update: same normalization as the full form, then check
    # each field against the reference tables
    if income_range is not None:
        income_range = income_range.strip()
    if state is not None:
        try:
            state = normalize_state(state)
        except ValueError:
            console.print(f"[red]Error: unknown state {escape(repr(state))}. See `taxclarity options`.[/red]")
            raise typer.Exit(code=1)

    checks = [
        (user_type, reference.is_known_user_type, "user type"),
        (income_range, reference.is_known_income_range, "income range"),
    ]
    for value, is_known, name in checks:
        if value is not None and not is_known(value):
            console.print(f"[red]Error: unknown {name} {value!r}. See `taxclarity options`.[/red]")
            raise typer.Exit(code=1)

    def apply(store: OnboardingStore) -> None:
        if user_type is not None:
            store.set_user_type(user_type)
        if income_range is not None:
            store.set_income_range(income_range)
        if state is not None:
            store.set_state(state)

    snapshot, _ = _run(ctx, apply)
    _render(snapshot)


@app.command()
def toggle(
    ctx: typer.Context,
    item_id: str = typer.Argument(..., help="Checklist item ID"),
) -> None:
    """Toggle a checklist item's completion."""

    def apply(store: OnboardingStore) -> bool:
        known = store.snapshot.find_item(item_id) is not None
        store.toggle_checklist_item(item_id)
        return known

    snapshot, known = _run(ctx, apply)
    if not known:
        console.print(f"[dim]No checklist item with ID {item_id!r}; nothing changed.[/dim]")
    _render(snapshot)


@app.command()
def reset(
    ctx: typer.Context,
    profile_only: bool = typer.Option(False, "--profile", help="Reset only the profile"),
    checklist_only: bool = typer.Option(False, "--checklist", help="Reset only the checklist"),
) -> None:
    """Reset the profile and/or checklist to defaults."""
    both = not profile_only and not checklist_only

    def apply(store: OnboardingStore) -> None:
        if profile_only or both:
            store.reset_profile()
        if checklist_only or both:
            store.reset_checklist()

    snapshot, _ = _run(ctx, apply)
    _render(snapshot)


@app.command()
def complete(ctx: typer.Context) -> None:
    """Finish onboarding."""

    def apply(store: OnboardingStore) -> tuple[bool, tuple[int, int]]:
        return finish_onboarding(store), checklist_progress(store)

    _, (all_done, (done, total)) = _run(ctx, apply)
    if all_done:
        console.print("\n[bold green]🎉 All set! Your tax checklist is complete.[/bold green]")
    else:
        console.print(
            f"\n[bold]Reminder set.[/bold] We'll remind you to finish your checklist "
            f"({done}/{total} done)."
        )


@app.command()
def options() -> None:
    """List valid profile options."""
    forms = reference.get_form_options()

    table = Table(title="User types")
    table.add_column("Value", style="cyan")
    table.add_column("Label")
    table.add_column("Description", style="dim")
    for option in forms["user_types"]:
        table.add_row(option["value"], option["label"], option["description"])
    console.print(table)

    table = Table(title="Income ranges")
    table.add_column("Value", style="cyan")
    table.add_column("Label")
    for option in forms["income_ranges"]:
        table.add_row(option["value"], option["label"])
    console.print(table)

    console.print(f"\n[bold]States ({len(reference.NIGERIAN_STATES)}):[/bold]")
    console.print(", ".join(reference.NIGERIAN_STATES))


@app.command("sync-checklist")
def sync_checklist(
    ctx: typer.Context,
    user_id: Optional[str] = typer.Option(None, "--user-id", "-u", help="Backend user ID"),
) -> None:
    """Replace the local checklist with the server's (backend preview)."""
    from taxclarity.sync.client import SyncError, TaxClarityApiClient

    settings = ctx.obj["settings"]
    # Fetch before the store session; the client blocks
    try:
        with TaxClarityApiClient.from_settings(settings) as api:
            remote_items = api.get_checklist(user_id=user_id)
    except SyncError as e:
        console.print(f"[red]Sync failed: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    items = [item.to_checklist_item() for item in remote_items]
    snapshot, _ = _run(ctx, lambda store: store.set_checklist(items))

    console.print(f"[green]Applied {len(items)} item(s) from {settings.taxclarity_api_base_url}[/green]")
    _render(snapshot)


@app.command()
def health(ctx: typer.Context) -> None:
    """Check configuration and local storage."""
    settings = ctx.obj["settings"]
    data_dir: Path = ctx.obj["data_dir"]

    console.print("\n[bold]TaxClarity Health Check[/bold]\n")
    console.print("✅ Configuration loaded")
    console.print(f"   Environment: {settings.taxclarity_env}")
    console.print(f"   Log level: {settings.log_level}")
    console.print(f"   API base URL: {settings.taxclarity_api_base_url}")

    state_file = data_dir / f"{settings.taxclarity_storage_key}.json"
    if state_file.exists():
        console.print(f"✅ State file: {state_file}")
    else:
        console.print(f"⚠️  No state file yet ({state_file}); defaults will be used")

    snapshot, _ = _run(ctx)
    done, total = snapshot.completed_count, len(snapshot.checklist)
    console.print(f"✅ Store hydrated (profile complete: {snapshot.profile.is_complete}, checklist {done}/{total})")


if __name__ == "__main__":
    app()
