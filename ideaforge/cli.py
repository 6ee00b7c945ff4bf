# ideaforge/cli.py
"""
CLI interface for ideaforge.

Thin presentation layer over the tools/ service layer.
All commands delegate to the same functions that MCP wraps.
"""

import asyncio
import json
import time
from collections import deque

import typer

app = typer.Typer(
    name="ideaforge",
    help="Turn a product idea into a project plan using a local LLM.",
    no_args_is_help=True,
)


def _fmt_duration(seconds: float) -> str:
    """Format seconds as human-readable duration (e.g. '5m17s', '42s')."""
    s = int(seconds)
    if s < 60:
        return f"{s}s"
    m, s = divmod(s, 60)
    return f"{m}m{s:02d}s"


def _run(coro):
    """Run async function from sync CLI context."""
    return asyncio.run(coro)


async def _get_store():
    """Open SQLiteProgressStore directly (no lifecycle, no restart recovery)."""
    from ideaforge.config.loader import get_db_path, load_config
    from ideaforge.models.sqlite_store import SQLiteProgressStore

    store = SQLiteProgressStore(str(get_db_path(load_config())))
    await store.initialize(recover=False)
    return store


async def _get_artifact_store():
    """Open SQLiteArtifactStore directly."""
    from ideaforge.config.loader import get_db_path, load_config
    from ideaforge.models.sqlite_store import SQLiteArtifactStore

    artifacts = SQLiteArtifactStore(str(get_db_path(load_config())))
    await artifacts.initialize()
    return artifacts


def _create_lifecycle(config):
    """Build a lifecycle for running a job inside this process."""
    from ideaforge.background.lifecycle import ServiceLifecycle
    from ideaforge.config.loader import get_db_path

    return ServiceLifecycle(str(get_db_path(config)), config=config)


def _status_color(status: str) -> str:
    """Return ANSI color for job status."""
    colors = {
        "completed": typer.colors.GREEN,
        "running": typer.colors.YELLOW,
        "pending": typer.colors.CYAN,
        "failed": typer.colors.RED,
    }
    return colors.get(status, typer.colors.WHITE)


def _step_states(steps, job, failed: set[str]) -> list[str]:
    """
    Derive a display state per step from a snapshot.

    A step is done once the cumulative weight through it is covered by
    progress_percent; the progress message tells the active step. Weight is
    added for failed steps too, so failures seen in this or any earlier
    snapshot (message or last_error prefix) are accumulated in `failed`.
    """
    for step in steps:
        if job.progress_message == step.finished_message(False) or (
            job.last_error or ""
        ).startswith(f"{step.name}: "):
            failed.add(step.name)

    states = []
    covered = 0
    for step in steps:
        covered += step.weight
        if step.name in failed:
            states.append("failed")
        elif job.progress_message == step.starting_message():
            states.append("active")
        elif job.progress_percent >= covered and job.status.value != "pending":
            states.append("done")
        else:
            states.append("waiting")
    return states


def _make_live_display(
    idea: str, steps, job, elapsed: float, log_lines: list[str], failed: set[str]
):
    """Build a rich renderable for the live progress display."""
    from rich.console import Group
    from rich.panel import Panel
    from rich.table import Table
    from rich.text import Text

    icons = {
        "done": Text("✓", style="green"),
        "failed": Text("✗", style="red"),
        "active": Text("⟳", style="yellow"),
        "waiting": Text("○", style="dim"),
    }

    table = Table.grid(padding=(0, 2))
    table.add_column(width=3)
    table.add_column()
    table.add_column(justify="right", style="dim", width=7)

    for step, state in zip(steps, _step_states(steps, job, failed)):
        label = step.label[:1].upper() + step.label[1:]
        if not step.required:
            label += " (optional)"
        row_style = "bold" if state == "active" else "dim"
        table.add_row(icons[state], Text(label, style=row_style), Text(f"{step.weight}%", style="dim"))

    bar_width = 36
    filled = int(job.progress_percent / 100 * bar_width)
    bar = "█" * filled + "░" * (bar_width - filled)

    title = Text(f" {idea[:60]}{'…' if len(idea) > 60 else ''} ", style="bold")
    parts: list = [
        table,
        Text(f"\n  {bar}  {job.progress_percent}%  {_fmt_duration(elapsed)}", style="cyan"),
        Text(f"\n  {job.progress_message}", style="dim italic"),
    ]
    if log_lines:
        parts.append(Text(""))
        for line in log_lines:
            parts.append(Text(f"  {line}", style="dim"))
    parts.append(Text(""))

    return Panel(Group(*parts), title=title, border_style="bright_black")


async def _generate_inline(idea: str, quiet: bool) -> dict:
    """Start a job in this process, follow it until terminal, return its status dict."""
    from rich.console import Console
    from rich.live import Live

    from ideaforge.config.loader import load_config
    from ideaforge.pipeline.steps import create_steps
    from ideaforge.tools.check_status import check_status
    from ideaforge.tools.start_generation import start_generation

    config = load_config()
    lifecycle = _create_lifecycle(config)
    # Recovery only fails jobs whose owning process is gone
    await lifecycle.startup(install_signal_handlers=False)

    console = Console(stderr=True)
    steps = create_steps(config)
    start = time.monotonic()
    log_lines: deque[str] = deque(maxlen=5)
    failed_steps: set[str] = set()

    try:
        result = await start_generation(
            idea, service=lifecycle.service, artifacts=lifecycle.artifacts, config=config
        )
        job_id = result["job_id"]

        if quiet:
            typer.echo(f"Started job {job_id} (project {result['project_id']})", err=True)
            await lifecycle.service.join(job_id)
        else:
            snapshot = await lifecycle.service.get_snapshot(job_id)
            with Live(
                _make_live_display(idea, steps, snapshot, 0.0, [], failed_steps),
                console=console,
                refresh_per_second=4,
            ) as live:

                def _on_update(job) -> None:
                    if job.progress_message:
                        log_lines.append(f"{time.strftime('%H:%M:%S')} {job.progress_message}")
                    live.update(
                        _make_live_display(
                            idea,
                            steps,
                            job,
                            time.monotonic() - start,
                            list(log_lines),
                            failed_steps,
                        )
                    )

                subscription = await lifecycle.service.subscribe(job_id, _on_update)
                await subscription.wait()

        status = await check_status(job_id, store=lifecycle.store)
    finally:
        await lifecycle.shutdown()

    status["elapsed"] = time.monotonic() - start
    return status


@app.command()
def generate(
    idea: str = typer.Argument(..., help="Product idea to turn into a project plan"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="No live display, print ids and result only"),
):
    """Generate a project plan for an idea with live progress."""
    from ideaforge.logging_config import configure_cli_logging

    configure_cli_logging()

    try:
        result = _run(_generate_inline(idea, quiet))
    except KeyboardInterrupt:
        typer.echo("\nCancelled.", err=True)
        raise typer.Exit(130)
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    elapsed = _fmt_duration(result["elapsed"])
    if result["status"] == "completed":
        typer.echo(typer.style(f"✓ Done in {elapsed}", fg=typer.colors.GREEN), err=True)
        if result.get("last_error"):
            typer.echo(typer.style(f"  Warning: {result['last_error']}", fg=typer.colors.YELLOW), err=True)
        typer.echo(f"Project: {result['project_id']}")
        typer.echo(f"Run 'ideaforge artifacts {result['project_id']}' to view the results.")
    else:
        typer.echo(
            typer.style(f"✗ Failed: {result.get('last_error') or 'unknown error'}", fg=typer.colors.RED),
            err=True,
        )
        raise typer.Exit(1)


@app.command("list")
def list_jobs():
    """List all generation jobs."""
    from ideaforge.tools.list_jobs import list_jobs as _list_jobs

    async def _list():
        store = await _get_store()
        try:
            return await _list_jobs(store=store)
        finally:
            await store.close()

    result = _run(_list())
    jobs = result["jobs"]

    if not jobs:
        typer.echo("No jobs found.")
        return

    typer.echo(f"{'JOB ID':<14} {'STATUS':<11} {'PROGRESS':<9} {'PROJECT':<14} CREATED")
    typer.echo("-" * 80)

    for j in jobs:
        status = j["status"]
        typer.echo(
            typer.style(f"{j['job_id']:<14} {status:<11} ", fg=_status_color(status))
            + f"{j['progress_percent']:>3}%      {j['project_id']:<14} {j['created_at'][:19]}"
        )


@app.command()
def status(job_id: str = typer.Argument(..., help="Job ID to check")):
    """Check the status of a generation job."""
    from ideaforge.tools.check_status import check_status

    async def _status():
        store = await _get_store()
        try:
            return await check_status(job_id, store=store)
        finally:
            await store.close()

    try:
        result = _run(_status())
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    job_status = result["status"]
    typer.echo(f"Job:      {result['job_id']}")
    typer.echo(f"Project:  {result['project_id']}")
    typer.echo(typer.style(f"Status:   {job_status}", fg=_status_color(job_status)))
    typer.echo(f"Progress: {result['progress_percent']}%")
    if result.get("progress_message"):
        typer.echo(f"Step:     {result['progress_message']}")
    if result.get("last_error"):
        typer.echo(typer.style(f"Error:    {result['last_error']}", fg=typer.colors.RED))


@app.command()
def artifacts(
    project_id: str = typer.Argument(..., help="Project ID to read artifacts for"),
    step: str = typer.Option(None, "--step", "-s", help="Only print this step's artifact"),
):
    """Print the generated artifacts of a project as JSON."""
    from ideaforge.tools.get_artifacts import get_artifacts

    async def _get():
        store = await _get_artifact_store()
        try:
            return await get_artifacts(project_id, artifacts=store)
        finally:
            await store.close()

    try:
        result = _run(_get())
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    items = result["artifacts"]
    if step:
        items = [a for a in items if a["step_name"] == step]
        if not items:
            typer.echo(f"Error: no '{step}' artifact for project {project_id}", err=True)
            raise typer.Exit(1)

    # Raw JSON to stdout (pipeable)
    typer.echo(json.dumps({a["step_name"]: a["payload"] for a in items}, indent=2))


@app.command()
def serve():
    """Start the MCP server (stdio transport)."""
    from ideaforge.__main__ import main

    asyncio.run(main())


if __name__ == "__main__":
    app()
