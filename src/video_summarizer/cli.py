"""CLI interface for video summarizer."""

from typing import Optional

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .analyzer.formatting import convert_transcript_to_paragraphs, truncate_text
from .config import settings
from .ingestion.exceptions import NoTranscriptAvailable, TranscriptProviderUnavailable
from .logs import configure_logging
from .service import SummarizationService, SummarizeFailure
from .storage.accounts import UserTierStore
from .storage.database import init_db
from .storage.result import fail_open

app = typer.Typer(help="YouTube Video Summarizer - Powered by Gemini/Groq AI")
console = Console()

LOCAL_USER = "local"


def _create_service() -> SummarizationService:
    """Create a SummarizationService with default dependencies."""
    return SummarizationService()


def _tier_store() -> UserTierStore:
    return UserTierStore()


def _mask(key: str) -> str:
    return "***" + key[-4:] if key else "Not set"


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs")):
    configure_logging("DEBUG" if verbose else None)


@app.command()
def summarize(
    url: str = typer.Argument(..., help="YouTube video URL or ID"),
    summary_type: str = typer.Option("short", "--type", "-t", help="short or comprehensive"),
    user: str = typer.Option(LOCAL_USER, "--user", "-u", help="User ID to bill"),
    tier: Optional[str] = typer.Option(None, "--tier", help="Override the stored tier"),
):
    """Summarize a YouTube video."""
    init_db()
    service = _create_service()
    tier = tier or _tier_store().tier_for(user)

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task("Summarizing video...", total=None)
            outcome = service.summarize(user, tier, url, summary_type)
    finally:
        service.close()

    if isinstance(outcome, SummarizeFailure):
        console.print(f"[red]Error ({outcome.error.value}): {outcome.message}[/red]")
        if outcome.reason:
            console.print(f"[dim]Reason: {outcome.reason}[/dim]")
        raise typer.Exit(1)

    console.print(f"\n[bold]{outcome.metadata.title}[/bold]")
    if outcome.metadata.channel_title:
        console.print(f"Channel: {outcome.metadata.channel_title}")
    console.print(Panel(Markdown(outcome.summary), title=f"{outcome.summary_type} summary"))

    source = f"{outcome.provider_name} ({outcome.provider})"
    if outcome.cached:
        source += ", cached"
    console.print(f"[dim]Provider: {source}[/dim]")
    if outcome.degraded:
        console.print("[yellow]AI summarization was unavailable; showing a basic summary.[/yellow]")
    console.print(f"Remaining today: {outcome.limits.daily}, this minute: {outcome.limits.minute}")


@app.command()
def transcript(
    url: str = typer.Argument(..., help="YouTube video URL or ID"),
    max_chars: Optional[int] = typer.Option(None, "--max-chars", help="Truncate at a sentence boundary"),
):
    """Print a video's transcript as paragraphs."""
    init_db()
    service = _create_service()
    try:
        fetched = service.get_transcript(url)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except (NoTranscriptAvailable, TranscriptProviderUnavailable) as e:
        console.print(f"[red]Transcript unavailable: {e}[/red]")
        raise typer.Exit(1)
    finally:
        service.close()

    text = "\n\n".join(convert_transcript_to_paragraphs(fetched.segments))
    if max_chars:
        text = truncate_text(text, max_chars)
    console.print(f"[dim]{fetched.video_id} via {fetched.source}, {len(fetched.segments)} segments[/dim]\n")
    console.print(text)


@app.command("check-cache")
def check_cache(
    url: str = typer.Argument(..., help="YouTube video URL or ID"),
    summary_type: str = typer.Option("short", "--type", "-t", help="short or comprehensive"),
    user: str = typer.Option(LOCAL_USER, "--user", "-u", help="User ID"),
):
    """Show a cached summary without using quota."""
    init_db()
    service = _create_service()
    try:
        hit = service.check_cache(user, url, summary_type)
    finally:
        service.close()

    if hit is None:
        console.print("[yellow]No cached summary.[/yellow]")
        raise typer.Exit(0)

    console.print(f"\n[bold]{hit.metadata.title}[/bold] [dim](id {hit.id}, cached {hit.created_at:%Y-%m-%d %H:%M})[/dim]")
    console.print(Panel(Markdown(hit.summary.text), title=f"{hit.summary.summary_type} summary"))


@app.command()
def quota(
    user: str = typer.Option(LOCAL_USER, "--user", "-u", help="User ID"),
):
    """Show quota usage for a user."""
    init_db()
    service = _create_service()
    tier = _tier_store().tier_for(user)
    try:
        limits = service.quota.limits_for(tier)
        decision = service.quota_status(user, tier)
    finally:
        service.close()

    used = limits.daily - decision.remaining.daily
    usage_pct = used / limits.daily * 100 if limits.daily else 100.0

    console.print(f"\n[bold]Quota Usage[/bold]")
    console.print(f"User: {user} ({tier})")
    console.print(f"Today: {used} / {limits.daily}")
    console.print(f"Remaining today: {decision.remaining.daily}")
    console.print(f"Remaining this minute: {decision.remaining.minute} / {limits.minute}")
    if decision.fail_open:
        console.print("[yellow]Usage ledger unavailable; counts are not enforced.[/yellow]")

    if usage_pct >= 80:
        console.print(f"[red]Usage: {usage_pct:.1f}% - Running low![/red]")
    elif usage_pct >= 50:
        console.print(f"[yellow]Usage: {usage_pct:.1f}%[/yellow]")
    else:
        console.print(f"[green]Usage: {usage_pct:.1f}%[/green]")


@app.command()
def usage(
    user: str = typer.Option(LOCAL_USER, "--user", "-u", help="User ID"),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of events"),
):
    """List recent usage events for a user."""
    init_db()
    service = _create_service()
    try:
        events = fail_open(service.usage_history(user, limit), [], user_id=user)
    finally:
        service.close()

    if not events:
        console.print("[yellow]No usage recorded.[/yellow]")
        raise typer.Exit(0)

    table = Table(title=f"Usage: {user}")
    table.add_column("Time", style="cyan")
    table.add_column("Video", style="green")
    table.add_column("Action", style="magenta")
    table.add_column("Counted", style="yellow")
    for e in events:
        table.add_row(f"{e.timestamp:%Y-%m-%d %H:%M:%S}", e.video_id, e.action, "yes" if e.counted else "no")
    console.print(table)


@app.command("reset-usage")
def reset_usage(
    user: str = typer.Argument(..., help="User ID"),
):
    """Stop counting a user's usage toward quota (history is kept)."""
    init_db()
    service = _create_service()
    try:
        result = service.reset_usage(user)
    finally:
        service.close()

    if not result.ok:
        console.print(f"[red]Reset failed: {result.error.message}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Reset {result.value} usage events for {user}.[/green]")


@app.command("set-tier")
def set_tier(
    user: str = typer.Argument(..., help="User ID"),
    tier: str = typer.Argument(..., help="free, pro or max"),
):
    """Set a user's subscription tier."""
    init_db()
    try:
        result = _tier_store().set_tier(user, tier)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if not result.ok:
        console.print(f"[red]Update failed: {result.error.message}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]{user} is now on the {tier} tier.[/green]")


@app.command("delete-summary")
def delete_summary(
    summary_id: int = typer.Argument(..., help="Cached summary ID"),
    user: str = typer.Option(LOCAL_USER, "--user", "-u", help="Owner of the summary"),
):
    """Delete a cached summary."""
    init_db()
    service = _create_service()
    try:
        result = service.delete_summary(user, summary_id)
    finally:
        service.close()

    if not result.ok:
        console.print(f"[red]Delete failed: {result.error.message}[/red]")
        raise typer.Exit(1)
    if not result.value:
        console.print(f"[red]Summary not found: {summary_id}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Deleted summary {summary_id}.[/green]")


@app.command()
def cleanup():
    """Purge expired cache entries and old usage events."""
    init_db()
    service = _create_service()
    try:
        counts = service.cleanup()
    finally:
        service.close()

    table = Table(title="Cleanup")
    table.add_column("Store", style="cyan")
    table.add_column("Rows removed", style="green")
    for name, count in counts.items():
        table.add_row(name, str(count))
    console.print(table)


@app.command()
def config():
    """Show current configuration."""
    console.print(f"\n[bold]Current Configuration[/bold]")
    console.print(f"Primary Provider: {settings.primary_provider}")
    console.print(f"Secondary Provider: {settings.secondary_provider or 'None'}")
    if settings.preferred_provider_by_tier:
        overrides = ", ".join(f"{t}={p}" for t, p in settings.preferred_provider_by_tier.items())
        console.print(f"Tier Overrides: {overrides}")
    console.print(f"Gemini API Key: {_mask(settings.gemini_api_key)}")
    console.print(f"Groq API Key: {_mask(settings.groq_api_key)}")
    console.print(f"YouTube API Key: {_mask(settings.youtube_api_key)}")
    console.print(f"Database: {settings.database_path}")

    console.print(f"\n[bold]Tiers[/bold]")
    for name, limits in settings.tier_limits.items():
        console.print(f"{name}: {limits.daily}/day, {limits.minute}/minute")

    console.print(f"\n[bold]Caching[/bold]")
    console.print(f"Transcripts: {settings.transcript_cache_ttl_days} days")
    console.print(f"Summaries: {settings.summary_cache_ttl_days} days")
    console.print(f"Metadata: {settings.metadata_cache_ttl_days} days")
    console.print(f"Usage retention: {settings.usage_retention_days} days")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", "-h", help="Host to bind"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind"),
):
    """Start the API server."""
    import uvicorn

    init_db()
    console.print(f"Starting server at http://{host}:{port}")
    uvicorn.run("video_summarizer.api.routes:app", host=host, port=port, reload=True)


if __name__ == "__main__":
    app()
