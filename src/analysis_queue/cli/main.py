"""Main CLI entry point for analysis-queue."""

import asyncio
import json
import time
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.live import Live
from rich.table import Table

from analysis_queue import __version__
from analysis_queue.config import AnalysisQueueConfig, load_config
from analysis_queue.config.defaults import PROFILES
from analysis_queue.models.enums import ResultSource
from analysis_queue.models.submission import AnalysisRequest
from analysis_queue.scoring.simulated import SimulatedScoringGateway
from analysis_queue.service import AnalysisService
from analysis_queue.utils.logging import setup_logging

app = typer.Typer(
    name="analysis-queue",
    help="""Rate-limited admission queue for LLM essay scoring.

[bold]Examples:[/bold]

  [dim]# Show the built-in throughput profiles[/dim]
  analysis-queue profiles

  [dim]# Simulate 30 students submitting at once, 10x faster than real time[/dim]
  analysis-queue simulate --users 30 --time-scale 0.1

  [dim]# Score one submission with Claude[/dim]
  analysis-queue score --summary summary.txt --impact impact.txt

[bold]Configuration:[/bold]

  Create [cyan]analysis-queue.config.json[/cyan] in your project root, or use CLI flags.
  Set [cyan]ANTHROPIC_API_KEY[/cyan] for Claude and [cyan]ANALYSIS_QUEUE_PROFILE[/cyan] to pick a profile.
""",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

SAMPLE_SUMMARY = (
    "The regulatory document introduces new requirements for financial institutions. "
    "Compliance deadlines apply to all regulated entities."
)
SAMPLE_IMPACT = (
    "The impact on financial institutions will be significant, requiring updates to "
    "compliance procedures and reporting systems. Stakeholders must plan implementation early."
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"analysis-queue version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Schedule LLM scoring calls under concurrency and rate limits."""
    pass


ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help="Path to configuration file.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
]

ProfileOption = Annotated[
    Optional[str],
    typer.Option(
        "--profile",
        "-p",
        help=f"Throughput profile ({', '.join(PROFILES)}).",
    ),
]

VerboseOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        help="Verbosity level (0=quiet, 1=normal, 2=verbose, 3=debug).",
        min=0,
        max=3,
        count=True,
    ),
]

LogFileOption = Annotated[
    Optional[Path],
    typer.Option(
        "--log-file",
        help="Write DEBUG queue logs to this file (default: $ANALYSIS_QUEUE_LOG_FILE).",
        dir_okay=False,
    ),
]


def scale_timings(config: AnalysisQueueConfig, factor: float) -> AnalysisQueueConfig:
    """Return a copy of ``config`` with every duration multiplied by ``factor``."""
    data = config.model_dump()
    data["limiter"]["min_spacing_seconds"] *= factor
    data["limiter"]["refill_interval_seconds"] *= factor
    if data["limiter"]["max_wait_seconds"] is not None:
        data["limiter"]["max_wait_seconds"] *= factor
    data["queue"]["interval_seconds"] *= factor
    data["queue"]["job_timeout_seconds"] *= factor
    data["retry"]["backoff_step_seconds"] *= factor
    return AnalysisQueueConfig.model_validate(data)


def _status_table(service: AnalysisService, title: str = "Queue Status") -> Table:
    """Render the current queue status as a table."""
    status = service.get_queue_status()
    wait = service.get_estimated_wait_time()

    table = Table(title=title)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Queue Size", str(status.queue_size))
    table.add_row("Pending", str(status.pending))
    table.add_row("Paused", "yes" if status.is_paused else "no")
    table.add_row("Processed", str(status.total_processed))
    table.add_row("Errors", str(status.total_errors))
    table.add_row("Retries", str(status.total_retries))
    table.add_row("Reservoir", f"{status.reservoir.current}/{status.reservoir.capacity}")
    table.add_row("Limiter Queued/Running", f"{status.reservoir.queued}/{status.reservoir.running}")
    table.add_row("Estimated Wait", wait.human_readable)
    if status.last_error:
        table.add_row("Last Error", status.last_error[:60])
    return table


@app.command()
def profiles() -> None:
    """List the built-in throughput profiles."""
    table = Table(title="Throughput Profiles")
    table.add_column("Profile", style="cyan", no_wrap=True)
    table.add_column("Concurrency", justify="right")
    table.add_column("Spacing", justify="right")
    table.add_column("Reservoir", justify="right")
    table.add_column("Refill", justify="right")
    table.add_column("Job Timeout", justify="right")

    for name, profile in PROFILES.items():
        limiter = profile["limiter"]
        queue = profile["queue"]
        table.add_row(
            name,
            str(limiter["max_concurrent"]),
            f"{limiter['min_spacing_seconds']:g}s",
            str(limiter["reservoir_capacity"]),
            f"+{limiter['refill_amount']} / {limiter['refill_interval_seconds']:g}s",
            f"{queue['job_timeout_seconds']:g}s",
        )

    console.print(table)


async def _run_simulation(
    service: AnalysisService,
    users: int,
    stagger: float,
) -> list[tuple[int, float, str]]:
    """Submit ``users`` jobs and collect (user, duration, source) tuples."""

    async def simulate_user(user_id: int) -> tuple[int, float, str]:
        await asyncio.sleep(user_id * stagger)
        start = time.monotonic()
        result = await service.submit_job(
            AnalysisRequest(
                session_code=f"sim-{user_id:03d}",
                executive_summary=SAMPLE_SUMMARY,
                impact_analysis=SAMPLE_IMPACT,
            )
        )
        return user_id, time.monotonic() - start, result.source.value

    tasks = [asyncio.create_task(simulate_user(i)) for i in range(users)]
    with Live(_status_table(service), console=console, refresh_per_second=4) as live:
        while not all(task.done() for task in tasks):
            live.update(_status_table(service))
            await asyncio.sleep(0.25)
        live.update(_status_table(service, title="Final Queue Status"))
    return [task.result() for task in tasks]


@app.command()
def simulate(
    users: Annotated[
        int,
        typer.Option("--users", "-u", help="Number of concurrent submissions.", min=1),
    ] = 10,
    latency: Annotated[
        float,
        typer.Option("--latency", help="Mean simulated scoring latency in seconds."),
    ] = 2.0,
    rate_limit_probability: Annotated[
        float,
        typer.Option("--rate-limit-rate", help="Probability that a call is throttled (429).", min=0.0, max=1.0),
    ] = 0.0,
    error_probability: Annotated[
        float,
        typer.Option("--error-rate", help="Probability that a call fails outright.", min=0.0, max=1.0),
    ] = 0.0,
    time_scale: Annotated[
        float,
        typer.Option("--time-scale", help="Multiply every configured duration by this factor.", min=0.001),
    ] = 1.0,
    stagger: Annotated[
        float,
        typer.Option("--stagger", help="Delay between user submissions in seconds."),
    ] = 0.1,
    seed: Annotated[
        Optional[int],
        typer.Option("--seed", help="Random seed for reproducible runs."),
    ] = None,
    config: ConfigOption = None,
    profile: ProfileOption = None,
    verbose: VerboseOption = 0,
    log_file: LogFileOption = None,
) -> None:
    """Run a load simulation against an in-process simulated scoring API.

    [bold]Examples:[/bold]

      [dim]# 30 users on the conservative profile, compressed 100x[/dim]
      analysis-queue simulate --users 30 --time-scale 0.01

      [dim]# Exercise retries and fallbacks[/dim]
      analysis-queue simulate --rate-limit-rate 0.3 --error-rate 0.05 --time-scale 0.01
    """
    setup_logging(verbosity=verbose, log_file=log_file)

    try:
        cfg = load_config(config_path=config, profile=profile, verbose=verbose)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if time_scale != 1.0:
        cfg = scale_timings(cfg, time_scale)

    gateway = SimulatedScoringGateway(
        latency=latency * time_scale,
        rate_limit_probability=rate_limit_probability,
        error_probability=error_probability,
        seed=seed,
    )
    service = AnalysisService(gateway=gateway, config=cfg)

    console.print(
        f"[bold]Simulating {users} submissions[/bold] "
        f"(profile [cyan]{cfg.profile}[/cyan], time scale {time_scale:g})"
    )
    started = time.monotonic()
    results = asyncio.run(_run_simulation(service, users, stagger * time_scale))
    elapsed = time.monotonic() - started

    durations = [duration for _, duration, _ in results]
    fallbacks = sum(1 for _, _, source in results if source == ResultSource.FALLBACK.value)

    summary = Table(title="Simulation Summary")
    summary.add_column("Metric", style="cyan")
    summary.add_column("Value", style="green")
    summary.add_row("Submissions", str(users))
    summary.add_row("Scored", str(users - fallbacks))
    summary.add_row("Fallbacks", str(fallbacks))
    summary.add_row("Gateway Calls", str(gateway.calls))
    summary.add_row("Average Wait", f"{sum(durations) / len(durations):.2f}s")
    summary.add_row("Longest Wait", f"{max(durations):.2f}s")
    summary.add_row("Total Time", f"{elapsed:.2f}s")
    console.print(summary)


@app.command()
def score(
    summary: Annotated[
        Path,
        typer.Option("--summary", "-s", help="File containing the executive summary.", exists=True, dir_okay=False),
    ],
    impact: Annotated[
        Path,
        typer.Option("--impact", "-i", help="File containing the impact analysis.", exists=True, dir_okay=False),
    ],
    document: Annotated[
        Optional[Path],
        typer.Option("--document", "-d", help="Text of the regulatory document.", exists=True, dir_okay=False),
    ] = None,
    session: Annotated[
        str,
        typer.Option("--session", help="Session code recorded on the result."),
    ] = "cli-session",
    language: Annotated[
        str,
        typer.Option("--language", "-l", help="Language of the submission."),
    ] = "english",
    model: Annotated[
        Optional[str],
        typer.Option("--model", "-m", help="LLM model to use for scoring."),
    ] = None,
    config: ConfigOption = None,
    profile: ProfileOption = None,
    verbose: VerboseOption = 1,
    log_file: LogFileOption = None,
) -> None:
    """Score one submission through the queue and print the result as JSON."""
    setup_logging(verbosity=verbose, log_file=log_file)

    try:
        cfg = load_config(config_path=config, profile=profile, model=model, verbose=verbose)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    request = AnalysisRequest(
        session_code=session,
        executive_summary=summary.read_text(encoding="utf-8"),
        impact_analysis=impact.read_text(encoding="utf-8"),
        language=language,
        document_text=document.read_text(encoding="utf-8") if document else "",
    )

    service = AnalysisService.from_config(cfg)
    result = asyncio.run(service.submit_job(request))

    if result.source == ResultSource.FALLBACK:
        console.print(f"[yellow]Warning:[/yellow] served a fallback result ({result.reason.value})")
    console.print_json(json.dumps(result.model_dump(mode="json")))


if __name__ == "__main__":
    app()
