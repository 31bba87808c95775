"""Command-line interface using Typer."""

from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from podcast_engine import __version__
from podcast_engine.logging import setup_logging

# Setup logging
setup_logging()

app = typer.Typer(
    name="podcast-engine",
    help="AI Podcast Engine - researched, voiced podcast episodes",
    add_completion=False,
)

# Subcommand groups
podcasts_app = typer.Typer(help="Podcast management commands")
logs_app = typer.Typer(help="Generation log commands")
sources_app = typer.Typer(help="Source curation commands")
app.add_typer(podcasts_app, name="podcasts")
app.add_typer(logs_app, name="logs")
app.add_typer(sources_app, name="sources")

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"AI Podcast Engine v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """AI Podcast Engine - Generate researched podcast episodes."""
    pass


@app.command()
def generate(
    podcast_id: str = typer.Argument(..., help="Podcast ID"),
    minutes: Optional[float] = typer.Option(None, "--minutes", "-m", help="Target length in minutes"),
    words: Optional[int] = typer.Option(None, "--words", "-w", help="Target length in words"),
    topic: Optional[str] = typer.Option(None, "--topic", "-t", help="Cover this topic"),
    sync: bool = typer.Option(False, "--sync", help="Run in this process instead of the worker"),
) -> None:
    """Generate an episode for a podcast."""
    from podcast_engine.utils import run_async

    if not sync:
        from podcast_engine.jobs.generation import GenerationQueue

        try:
            log_id = run_async(
                GenerationQueue().submit(
                    podcast_id, target_minutes=minutes, target_words=words, selected_topic=topic
                )
            )
        except Exception as e:
            console.print(f"[bold red]Error: {e}[/bold red]")
            raise typer.Exit(code=1)

        console.print(f"[green]Generation queued. Log ID: {log_id}[/green]")
        console.print(f"[dim]Follow progress with: podcast-engine logs show {log_id}[/dim]")
        return

    from podcast_engine.services.catalog import PodcastCatalog
    from podcast_engine.services.orchestrator import EpisodeOrchestrator
    from podcast_engine.services.providers import get_document_store

    store = get_document_store()
    try:
        podcast = run_async(PodcastCatalog(store).get_podcast(podcast_id))
    except Exception as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1)

    console.print(f"[bold blue]Generating episode for {podcast.title}...[/bold blue]")
    outcome = run_async(
        EpisodeOrchestrator(store).generate(
            podcast, target_minutes=minutes, target_words=words, selected_topic=topic
        )
    )

    if outcome.log:
        _print_log(outcome.log.to_document())

    if not outcome.success:
        console.print(f"[bold red]✗ Generation failed: {outcome.error}[/bold red]")
        raise typer.Exit(code=1)

    episode = outcome.episode
    console.print("[bold green]✓ Episode generated![/bold green]")
    if episode:
        console.print(f"[cyan]Title:[/cyan] {episode.title}")
        console.print(f"[cyan]Words:[/cyan] {episode.word_count}")
        console.print(f"[cyan]Audio:[/cyan] {episode.audio_url or 'N/A'}")


@app.command("generate-due")
def generate_due() -> None:
    """Queue episodes for every auto-generated podcast that is due one."""
    from podcast_engine.jobs.generation import GenerationQueue, submit_due_generations
    from podcast_engine.utils import run_async

    queued = run_async(submit_due_generations(GenerationQueue()))
    if not queued:
        console.print("[yellow]No podcasts due a new episode[/yellow]")
        return

    table = Table(title="Queued Generations")
    table.add_column("Podcast", style="cyan")
    table.add_column("Log ID", style="dim")
    for podcast_id, log_id in queued.items():
        table.add_row(podcast_id, log_id)
    console.print(table)


@app.command()
def health() -> None:
    """Check the health of all services."""
    import httpx

    from podcast_engine.config import settings

    url = f"http://{settings.api_host}:{settings.api_port}/health/ready"

    try:
        response = httpx.get(url, timeout=10)
        data = response.json()

        table = Table(title="Service Health")
        table.add_column("Component", style="cyan")
        table.add_column("Status")

        table.add_row("Document store", "✓" if data.get("docstore") else "✗")
        table.add_row("Redis", "✓" if data.get("redis") else "✗")

        console.print(table)

        if data.get("ready"):
            console.print("[bold green]All services healthy![/bold green]")
        else:
            console.print("[bold yellow]Some services unhealthy[/bold yellow]")
            raise typer.Exit(code=1)

    except httpx.RequestError as e:
        console.print(f"[bold red]Cannot connect to API: {e}[/bold red]")
        console.print("[dim]Is the API server running?[/dim]")
        raise typer.Exit(code=1)


@app.command()
def worker() -> None:
    """Start a Celery worker (for development)."""
    console.print("[bold blue]Starting Celery worker...[/bold blue]")

    import subprocess
    import sys

    subprocess.run(
        [
            sys.executable, "-m", "celery", "-A", "podcast_engine.worker",
            "worker", "-Q", "high,celery", "--loglevel=info",
        ],
        check=True,
    )


# =============================================================================
# PODCASTS COMMANDS
# =============================================================================


@podcasts_app.command("create")
def podcasts_create(
    title: str = typer.Option(..., "--title", "-t", help="Podcast title"),
    description: str = typer.Option("", "--description", "-d", help="Podcast description"),
    prompt: Optional[str] = typer.Option(None, "--prompt", "-p", help="What episodes should cover"),
    podcast_type: str = typer.Option("news", "--type", help="news or narrative"),
    auto_generate: bool = typer.Option(
        False, "--auto-generate", help="Generate new episodes on the schedule"
    ),
) -> None:
    """Create a new podcast."""
    from podcast_engine.domain.enums import PodcastType
    from podcast_engine.domain.models import Podcast, new_id
    from podcast_engine.services.catalog import PodcastCatalog
    from podcast_engine.services.providers import get_document_store
    from podcast_engine.utils import run_async

    try:
        kind = PodcastType(podcast_type.lower())
    except ValueError:
        console.print(f"[bold red]Unknown podcast type: {podcast_type}[/bold red]")
        raise typer.Exit(code=1)

    podcast = Podcast(
        id=new_id(),
        title=title,
        description=description,
        prompt=prompt,
        podcast_type=kind,
        auto_generate=auto_generate,
    )
    run_async(PodcastCatalog(get_document_store()).create_podcast(podcast))

    console.print("[bold green]Podcast created successfully![/bold green]")
    console.print(f"[cyan]ID:[/cyan] {podcast.id}")
    console.print(f"[cyan]Title:[/cyan] {podcast.title}")
    console.print("\n[dim]Generate an episode with:[/dim]")
    console.print(f"[dim]  podcast-engine generate {podcast.id} --minutes 5[/dim]")


@podcasts_app.command("list")
def podcasts_list(
    owner: Optional[str] = typer.Option(None, "--owner", "-o", help="Only this owner's podcasts"),
) -> None:
    """List podcasts, newest first."""
    from podcast_engine.services.catalog import PodcastCatalog
    from podcast_engine.services.providers import get_document_store
    from podcast_engine.utils import run_async

    podcasts = run_async(PodcastCatalog(get_document_store()).list_podcasts(owner_id=owner))
    if not podcasts:
        console.print("[yellow]No podcasts found[/yellow]")
        return

    table = Table(title="Podcasts")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Type")
    table.add_column("Auto", style="green")
    for podcast in podcasts:
        table.add_row(
            podcast.id,
            podcast.title[:60],
            podcast.podcast_type.value,
            "Yes" if podcast.auto_generate else "No",
        )
    console.print(table)


@podcasts_app.command("show")
def podcasts_show(
    podcast_id: str = typer.Argument(..., help="Podcast ID"),
) -> None:
    """Show a podcast and its recent episodes."""
    from podcast_engine.services.catalog import PodcastCatalog
    from podcast_engine.services.providers import get_document_store
    from podcast_engine.utils import run_async

    catalog = PodcastCatalog(get_document_store())
    try:
        podcast = run_async(catalog.get_podcast(podcast_id))
    except Exception as e:
        console.print(f"[bold red]{e}[/bold red]")
        raise typer.Exit(code=1)
    episodes = run_async(catalog.list_recent_episodes(podcast.id, limit=10))

    console.print(Panel.fit(
        f"[bold]{podcast.title}[/bold]\n\n"
        f"[cyan]ID:[/cyan] {podcast.id}\n"
        f"[cyan]Type:[/cyan] {podcast.podcast_type.value}\n"
        f"[cyan]Theme:[/cyan] {podcast.theme[:200]}\n"
        f"[cyan]Sources:[/cyan] {len(podcast.sources)}",
        title="Podcast Details",
        border_style="blue",
    ))

    if episodes:
        table = Table(title="Recent Episodes")
        table.add_column("ID", style="dim")
        table.add_column("Title", style="cyan")
        table.add_column("Words")
        table.add_column("Audio", style="green")
        table.add_column("Created")
        for episode in episodes:
            table.add_row(
                episode.id,
                episode.title[:60],
                str(episode.word_count),
                "Yes" if episode.audio_url else "No",
                episode.created_at[:16],
            )
        console.print(table)


# =============================================================================
# LOGS COMMANDS
# =============================================================================


def _print_log(doc: dict) -> None:
    """Render a generation log document as a rich table."""
    duration = doc.get("duration", {})
    breakdown = duration.get("stage_breakdown", {})
    stages = doc.get("stages") or {}

    table = Table(title=f"Generation {doc['id']} ({doc['status']})")
    table.add_column("Stage", style="cyan")
    table.add_column("ms", justify="right")
    table.add_column("Details")
    for stage, ms in breakdown.items():
        data = stages.get(stage) or {}
        details = data.get("error") or ", ".join(sorted(data.keys()))
        table.add_row(stage, str(ms), details[:70])
    console.print(table)
    console.print(f"[dim]Total: {duration.get('total_ms', 0)} ms[/dim]")

    if doc.get("decisions"):
        decisions = Table(title="Decisions")
        decisions.add_column("Stage", style="cyan")
        decisions.add_column("Decision")
        decisions.add_column("Reasoning", style="dim")
        for d in doc["decisions"]:
            decisions.add_row(d["stage"], d["decision"], (d.get("reasoning") or "")[:80])
        console.print(decisions)

    if doc.get("error"):
        console.print(f"[bold red]Error: {doc['error']}[/bold red]")


@logs_app.command("show")
def logs_show(
    log_id: str = typer.Argument(..., help="Generation log ID"),
) -> None:
    """Show a generation log."""
    from podcast_engine.services.generation_log import GenerationLogRecorder
    from podcast_engine.services.providers import get_document_store
    from podcast_engine.utils import run_async

    log = run_async(GenerationLogRecorder(get_document_store()).get(log_id))
    if log is None:
        console.print(f"[bold red]Generation log not found: {log_id}[/bold red]")
        raise typer.Exit(code=1)
    _print_log(log.to_document())


@logs_app.command("list")
def logs_list(
    podcast_id: str = typer.Argument(..., help="Podcast ID"),
    limit: int = typer.Option(20, "--limit", "-l", help="Maximum logs to show"),
) -> None:
    """List generation runs of a podcast."""
    from podcast_engine.services.generation_log import GenerationLogRecorder
    from podcast_engine.services.providers import get_document_store
    from podcast_engine.utils import run_async

    logs = run_async(
        GenerationLogRecorder(get_document_store()).list_for_podcast(podcast_id, limit=limit)
    )
    if not logs:
        console.print("[dim]No generation runs found.[/dim]")
        return

    table = Table(title="Generation Runs")
    table.add_column("Log ID", style="dim")
    table.add_column("Status")
    table.add_column("Episode")
    table.add_column("Total ms", justify="right")
    table.add_column("Started")
    for log in logs:
        table.add_row(
            log.id,
            log.status.value,
            log.episode_id or "-",
            str(log.total_ms),
            log.timestamp[:16],
        )
    console.print(table)


# =============================================================================
# SOURCES COMMANDS
# =============================================================================


@sources_app.command("discover")
def sources_discover(
    theme: str = typer.Argument(..., help="Podcast theme to find sources for"),
) -> None:
    """Suggest authoritative sources for a theme."""
    from podcast_engine.services.providers import get_llm_provider, get_search_providers
    from podcast_engine.services.source_manager import SourceManager
    from podcast_engine.utils import run_async

    manager = SourceManager(get_llm_provider("fast"), get_search_providers()[0])
    sources = run_async(manager.discover_sources(theme))
    if not sources:
        console.print("[bold yellow]No sources suggested.[/bold yellow]")
        raise typer.Exit(code=1)

    table = Table(title="Suggested Sources")
    table.add_column("Name", style="cyan")
    table.add_column("URL")
    table.add_column("Category")
    table.add_column("Quality", justify="right")
    table.add_column("Perspective", style="dim")
    for source in sources:
        table.add_row(
            source.name,
            source.url,
            source.category,
            str(source.quality_score),
            source.perspective or "-",
        )
    console.print(table)


if __name__ == "__main__":
    app()
