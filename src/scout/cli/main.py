"""
CLI for thesis scout.

Commands:
    scout run THESIS - Discover and score startups for an investment thesis
    scout theses - List past runs
    scout show ID - Show one run with ranked companies and findings
    scout delete ID - Delete a run
    scout config - Show current configuration
    scout version - Print version
"""

from __future__ import annotations

import asyncio
from typing import Annotated

import orjson
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from scout import __version__
from scout.config import Settings, clear_settings_cache, get_settings
from scout.coordinator.events import CompanyEvent, CompleteEvent, ErrorEvent, ProgressEvent
from scout.coordinator.pipeline import build_pipeline
from scout.exceptions import ConfigurationError, ValidationError
from scout.logging import setup_logging
from scout.store.thesis_store import ThesisDetail, ThesisStore
from scout.types import Candidate

app = typer.Typer(
    name="scout",
    help="Thesis Scout - find and score early-stage startups for an investment thesis",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)


def _get_settings_safe() -> Settings | None:
    """Get settings, returning None if configuration is invalid."""
    try:
        clear_settings_cache()
        return get_settings()
    except Exception:
        return None


def _require_settings() -> Settings:
    settings = _get_settings_safe()
    if settings is None:
        error_console.print(
            "[red]Error:[/red] Configuration is invalid. "
            "Run 'scout config' to see what's missing."
        )
        raise typer.Exit(1)
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
    return settings


def _companies_table(companies: list[Candidate], title: str) -> Table:
    table = Table(title=title, show_header=True)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Company", style="cyan")
    table.add_column("Score", justify="right", style="green")
    table.add_column("Fit", justify="right")
    table.add_column("Source")
    table.add_column("Website")

    for rank, company in enumerate(companies, start=1):
        table.add_row(
            str(rank),
            company.name,
            str(company.total_score) if company.total_score is not None else "-",
            str(company.fit_score) if company.fit_score is not None else "-",
            company.source.value + (" (verified)" if company.verified else ""),
            company.website or "",
        )
    return table


async def _run_thesis(settings: Settings, thesis: str, save: bool, as_json: bool) -> bool:
    settings.require_llm()

    store: ThesisStore | None = None
    if save:
        store = ThesisStore(settings.db_connection)
        await store.init()

    pipeline = build_pipeline(settings, store=store)
    ok = True
    try:
        async for event in pipeline.run(thesis):
            if as_json:
                console.print_json(orjson.dumps(event.to_dict()).decode("utf-8"))
                ok = not isinstance(event, ErrorEvent)
                continue

            if isinstance(event, ProgressEvent):
                console.print(f"[dim]>[/dim] {event.message}")
            elif isinstance(event, CompanyEvent):
                c = event.company
                console.print(f"  [cyan]{c.name}[/cyan] scored [green]{c.total_score}[/green]")
            elif isinstance(event, CompleteEvent):
                console.print()
                if event.companies:
                    console.print(_companies_table(event.companies, "Ranked Companies"))
                console.print(Panel(event.summary or "-", title="[bold]Summary[/bold]", border_style="green"))
                if event.public_comps:
                    console.print(f"[bold]Public comps:[/bold] {', '.join(event.public_comps)}")
                for source in event.thesis_sources:
                    console.print(f"  [dim]\\[{source.type.value}][/dim] {source.title} {source.url}")
                if event.thesis_id is not None:
                    console.print(f"\n[dim]Saved as thesis #{event.thesis_id}[/dim]")
            elif isinstance(event, ErrorEvent):
                error_console.print(f"\n[red]Error:[/red] {event.message}")
                ok = False
    finally:
        await pipeline.close()
        if store is not None:
            await store.close()
    return ok


@app.command()
def run(
    thesis: Annotated[str, typer.Argument(help="Investment thesis, e.g. 'autonomous trucking'")],
    save: Annotated[
        bool,
        typer.Option("--save/--no-save", help="Persist the run to the database"),
    ] = True,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print raw events as JSON"),
    ] = False,
) -> None:
    """Discover and score early-stage startups for a thesis."""
    settings = _require_settings()

    if not as_json:
        console.print()
        console.print(
            Panel(
                f"[bold]Thesis:[/bold] {thesis}\n"
                f"[bold]Providers:[/bold] {', '.join(settings.available_providers) or 'none'}",
                title="[bold cyan]Thesis Scout[/bold cyan]",
                border_style="cyan",
            )
        )

    try:
        ok = asyncio.run(_run_thesis(settings, thesis, save, as_json))
    except (ConfigurationError, ValidationError) as e:
        error_console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)

    if not ok:
        raise typer.Exit(1)


async def _list_theses(settings: Settings, page: int, limit: int) -> None:
    store = ThesisStore(settings.db_connection)
    await store.init()
    try:
        result = await store.list_theses(page=page, limit=limit)
    finally:
        await store.close()

    table = Table(title=f"Theses (page {result.page} of {max(result.pages, 1)}, {result.total} total)")
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Thesis", style="cyan")
    table.add_column("Status")
    table.add_column("Companies", justify="right")
    table.add_column("Created")

    for t in result.theses:
        table.add_row(
            str(t.id),
            t.text[:60],
            t.status.value,
            str(t.company_count),
            t.created_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@app.command()
def theses(
    page: Annotated[int, typer.Option("--page", "-p", min=1, help="Page number")] = 1,
    limit: Annotated[int, typer.Option("--limit", "-l", min=1, max=100, help="Runs per page")] = 10,
) -> None:
    """List past thesis runs."""
    settings = _require_settings()
    asyncio.run(_list_theses(settings, page, limit))


async def _get_thesis(settings: Settings, thesis_id: int) -> ThesisDetail | None:
    store = ThesisStore(settings.db_connection)
    await store.init()
    try:
        return await store.get_thesis(thesis_id)
    finally:
        await store.close()


@app.command()
def show(
    thesis_id: Annotated[int, typer.Argument(help="Thesis ID")],
) -> None:
    """Show one run with its ranked companies and findings."""
    settings = _require_settings()
    detail = asyncio.run(_get_thesis(settings, thesis_id))
    if detail is None:
        error_console.print(f"[red]Error:[/red] Thesis {thesis_id} not found")
        raise typer.Exit(1)

    t = detail.thesis
    console.print()
    console.print(
        Panel(
            f"[bold]Thesis:[/bold] {t.text}\n"
            f"[bold]Status:[/bold] {t.status.value}\n"
            f"[bold]Public comps:[/bold] {', '.join(t.public_comps) or '-'}\n\n"
            f"{t.summary or ''}",
            title=f"[bold cyan]Thesis #{t.id}[/bold cyan]",
            border_style="cyan",
        )
    )

    table = Table(title="Companies", show_header=True)
    table.add_column("Company", style="cyan")
    table.add_column("Total", justify="right", style="green")
    table.add_column("Relevance", justify="right")
    table.add_column("Recency", justify="right")
    table.add_column("Team", justify="right")
    table.add_column("Website")
    for c in detail.companies:
        table.add_row(
            c.name,
            str(c.total_score) if c.total_score is not None else "-",
            str(c.thesis_relevance or "-"),
            str(c.recency or "-"),
            str(c.founding_team or "-"),
            c.website or "",
        )
    console.print(table)

    if detail.findings:
        console.print("\n[bold]Findings[/bold]")
        for f in detail.findings:
            console.print(f"  - {f.content} [dim]{f.source or ''}[/dim]")


async def _delete_thesis(settings: Settings, thesis_id: int) -> bool:
    store = ThesisStore(settings.db_connection)
    await store.init()
    try:
        return await store.delete_thesis(thesis_id)
    finally:
        await store.close()


@app.command()
def delete(
    thesis_id: Annotated[int, typer.Argument(help="Thesis ID")],
) -> None:
    """Delete a run and its companies and findings."""
    settings = _require_settings()
    if not asyncio.run(_delete_thesis(settings, thesis_id)):
        error_console.print(f"[red]Error:[/red] Thesis {thesis_id} not found")
        raise typer.Exit(1)
    console.print(f"Deleted thesis #{thesis_id}")


@app.command()
def config() -> None:
    """Show current configuration.

    Displays all configuration values with API keys redacted.
    Also shows which providers are available.
    """
    console.print()
    console.print("[bold]Thesis Scout Configuration[/bold]")
    console.print()

    settings = _get_settings_safe()

    if settings is None:
        error_console.print("[red]Configuration is invalid or incomplete.[/red]")
        error_console.print()
        error_console.print("Environment variables:")
        error_console.print("  - ANTHROPIC_API_KEY (required to run a thesis)")
        error_console.print("  - CRUNCHBASE_API_KEY, BRAVE_API_KEY (discovery sources)")
        error_console.print()
        error_console.print("Create a .env file or set environment variables.")
        raise typer.Exit(1)

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for key, value in settings.redacted_display().items():
        display_value = str(value) if value is not None else "[dim]not set[/dim]"
        table.add_row(key, display_value)

    console.print(table)

    console.print()
    providers = settings.available_providers
    if providers:
        console.print(f"[bold]Available Providers:[/bold] {', '.join(providers)}")
    else:
        console.print("[yellow]No providers configured.[/yellow]")
    if "anthropic" not in providers:
        console.print("[yellow]ANTHROPIC_API_KEY is not set; 'scout run' will refuse to start.[/yellow]")

    console.print()


@app.command()
def version() -> None:
    """Print the version number."""
    console.print(f"thesis-scout version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
