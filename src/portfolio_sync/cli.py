"""Portfolio Sync CLI - Main entry point."""

from __future__ import annotations

import asyncio
import json
from datetime import date
from pathlib import Path
from typing import Any

import httpx
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import PORTFOLIO_MODES, settings
from .log import configure_logging

app = typer.Typer(
    name="portfolio",
    help="Airtable portfolio sync, share manifests and the meta-rewriting site server",
    no_args_is_help=True,
)
console = Console()


def _output_result(result: dict[str, Any]) -> None:
    console.print_json(json.dumps(result, default=str))


def _resolve_mode(mode: str | None) -> str:
    resolved = (mode or settings.normalized_mode).strip().lower()
    if resolved not in PORTFOLIO_MODES:
        console.print(f"[red]Unknown mode '{mode}'. Choose one of: {', '.join(PORTFOLIO_MODES)}[/red]")
        raise typer.Exit(1)
    return resolved


def _oembed_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.oembed_timeout_seconds)


def _load_data(output_dir: Path, mode: str):
    from .sync.engine import artifact_path, load_existing_data
    from .sync.models import PortfolioData

    path = artifact_path(output_dir, mode)
    raw = load_existing_data(path)
    if raw is None:
        console.print(f"[red]Portfolio data not found: {path}[/red]")
        console.print(f"[dim]Run 'portfolio sync --mode {mode}' first.[/dim]")
        raise typer.Exit(1)
    return PortfolioData.model_validate(raw)


# ============================================================================
# Sync Commands
# ============================================================================


@app.command()
def sync(
    mode: str = typer.Option(None, "--mode", "-m", help="Portfolio mode (directing or postproduction)"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip change detection and fetch everything"),
    all_modes: bool = typer.Option(False, "--all", help="Fetch once and write every portfolio mode"),
    output_dir: Path = typer.Option(None, "--output-dir", "-o", help="Directory for portfolio-data-<mode>.json"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
):
    """Sync Airtable into the portfolio JSON artifact."""
    from .airtable.client import AirtableClient, AirtableConfigError
    from .sync.engine import PortfolioSync, SyncError, sync_all_modes

    configure_logging(settings.log_level)
    resolved = _resolve_mode(mode)
    out = output_dir or settings.output_path

    async def _run():
        async with AirtableClient() as client, _oembed_client() as http:
            if all_modes:
                return await sync_all_modes(client, out, force, http=http)
            syncer = PortfolioSync(client, mode=resolved, output_dir=out, http=http)
            return {resolved: await syncer.run(force_full=force)}

    try:
        results = asyncio.run(_run())
    except AirtableConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except SyncError as e:
        hint = " (rate limited - retry later)" if e.is_rate_limit else ""
        console.print(f"[red]Sync failed after {e.stage}{hint}: {e}[/red]")
        raise typer.Exit(1)

    if json_output:
        _output_result(
            {
                name: {
                    "projects": len(r.projects),
                    "posts": len(r.posts),
                    "timestamp": r.timestamp,
                    "outputFile": r.output_file,
                    "syncStats": r.stats.to_json_dict(),
                }
                for name, r in results.items()
            }
        )
        return

    table = Table(title="Sync Results")
    table.add_column("Mode", style="cyan")
    table.add_column("Sync", style="magenta")
    table.add_column("Projects", style="green", justify="right")
    table.add_column("Posts", style="green", justify="right")
    table.add_column("API Calls", style="yellow", justify="right")
    table.add_column("Output", style="dim")
    for name, r in results.items():
        table.add_row(
            name,
            r.stats.mode,
            str(len(r.projects)),
            str(len(r.posts)),
            str(r.stats.api_calls),
            r.output_file or "(unchanged)",
        )
    console.print(table)


@app.command()
def changes(
    mode: str = typer.Option(None, "--mode", "-m", help="Portfolio mode (directing or postproduction)"),
    output_dir: Path = typer.Option(None, "--output-dir", "-o", help="Directory holding the previous artifact"),
):
    """Show what an incremental sync would refetch, without writing anything."""
    from .airtable.client import AirtableClient, AirtableConfigError, AirtableError
    from .airtable.records import ALL_TABLES
    from .sync.changes import check_for_changes
    from .sync.engine import artifact_path, can_sync_incrementally, load_existing_data

    configure_logging(settings.log_level)
    resolved = _resolve_mode(mode)
    existing = load_existing_data(artifact_path(output_dir or settings.output_path, resolved))
    if not can_sync_incrementally(existing):
        console.print("[yellow]No previous sync metadata; the next sync will be a full sync.[/yellow]")
        raise typer.Exit(0)

    async def _check():
        async with AirtableClient() as client:
            fetched = await asyncio.gather(*(client.fetch_timestamps(t) for t in ALL_TABLES))
        return check_for_changes(existing["syncMetadata"]["timestamps"], dict(zip(ALL_TABLES, fetched)))

    try:
        result = asyncio.run(_check())
    except (AirtableConfigError, AirtableError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Pending Changes ({resolved})")
    table.add_column("Table", style="cyan")
    table.add_column("New", style="green", justify="right")
    table.add_column("Changed", style="yellow", justify="right")
    table.add_column("Deleted", style="red", justify="right")
    for name, c in result.items():
        table.add_row(name, str(len(c.new)), str(len(c.changed)), str(len(c.deleted)))
    console.print(table)

    if not any(c.total for c in result.values()):
        console.print("[green]No changes detected.[/green]")


# ============================================================================
# Artifact Commands
# ============================================================================


@app.command("share-meta")
def share_meta(
    mode: str = typer.Option(None, "--mode", "-m", help="Portfolio mode (directing or postproduction)"),
    output_dir: Path = typer.Option(None, "--output-dir", "-o", help="Directory holding portfolio data"),
):
    """Write share-meta-<mode>.json and its hash from the synced data."""
    from .sync.share_meta import write_share_manifest

    resolved = _resolve_mode(mode)
    out = output_dir or settings.output_path
    data = _load_data(out, resolved)
    path, digest = write_share_manifest(data, out, resolved)

    console.print(
        Panel(
            f"Projects: {len(data.projects)}\nPosts: {len(data.posts)}\nHash: {digest}",
            title=f"Share manifest written to {path}",
        )
    )


@app.command()
def sitemap(
    mode: str = typer.Option(None, "--mode", "-m", help="Portfolio mode (directing or postproduction)"),
    output_dir: Path = typer.Option(None, "--output-dir", "-o", help="Directory holding portfolio data"),
    base_url: str = typer.Option(None, "--base-url", help="Site URL; defaults to the configured domain"),
):
    """Write sitemap-<mode>.xml and robots-<mode>.txt from the synced data."""
    from .sync.sitemap import build_robots, build_sitemap

    resolved = _resolve_mode(mode)
    out = output_dir or settings.output_path
    data = _load_data(out, resolved)

    domain = data.config.domain
    url = base_url or (f"https://{domain}" if domain else settings.site_url)
    sitemap_path = out / f"sitemap-{resolved}.xml"
    sitemap_path.write_text(build_sitemap(data, url, date.today()), encoding="utf-8")
    robots_path = out / f"robots-{resolved}.txt"
    robots_path.write_text(build_robots(domain or url.split("://", 1)[-1].rstrip("/")), encoding="utf-8")

    console.print(f"[green]Wrote {sitemap_path} and {robots_path}[/green]")


# ============================================================================
# Server Commands
# ============================================================================


@app.command()
def serve(
    port: int = typer.Option(8030, "--port", "-p", help="Port to run on"),
    host: str = typer.Option("127.0.0.1", "--host", help="Host to bind to"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Serve the site with meta rewriting, plus the sync and sitemap endpoints."""
    import uvicorn

    console.print(f"[bold cyan]Starting portfolio server ({settings.normalized_mode}) at http://{host}:{port}[/bold cyan]")
    uvicorn.run("portfolio_sync.app:app", host=host, port=port, reload=reload)


@app.command()
def version():
    """Show version information."""
    from . import __version__

    console.print(f"Portfolio Sync v{__version__}")


if __name__ == "__main__":
    app()
