"""
Cron Mirror CLI - command line interface for the cron-job.org mirror.

Usage:
    cronmirror --help             Show all commands
    cronmirror sync               Mirror jobs and history from cron-job.org
    cronmirror jobs               List mirrored jobs
    cronmirror history JOB_ID     Show a job's execution history
    cronmirror run JOB_ID         Trigger a job now
    cronmirror stats              Show job/execution statistics
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import typer

from app.models.cron_job import JobCategory, JobStatus
from app.schemas.cron import JobFilters

app = typer.Typer(
    name="cronmirror",
    help="Cron Mirror CLI - cron-job.org mirror for the blog automation dashboard",
    no_args_is_help=True,
)


def _print_success(message: str) -> None:
    """Print a success message."""
    typer.echo(f"  ✅ {message}")


def _print_warning(message: str) -> None:
    """Print a warning message."""
    typer.echo(f"  ⚠️ {message}")


def _print_error(message: str) -> None:
    """Print an error message to stderr."""
    typer.echo(f"❌ {message}", err=True)


def _run_with_service(fn: Callable[[Any], Awaitable[int]]) -> None:
    """Build the database and CronService, run fn, and exit with its code."""
    from app.config import get_config
    from app.core.database import create_database
    from app.core.logging import setup_logging
    from app.services.cron_org import ConfigurationError, create_cron_service

    setup_logging()
    config = get_config()

    async def _main() -> int:
        database = create_database(config.settings)
        await database.init_models()
        try:
            service = create_cron_service(config, database.session_factory)
        except ConfigurationError as e:
            _print_error(str(e))
            await database.dispose()
            return 2

        try:
            return await fn(service)
        finally:
            await service.aclose()
            await database.dispose()

    raise typer.Exit(code=asyncio.run(_main()))


@app.command()
def sync() -> None:
    """Mirror jobs and execution history from cron-job.org."""

    async def _sync(service) -> int:
        result = await service.sync_jobs()
        if not result.success:
            _print_error(f"Sync failed: {result.error.message}")
            return 1

        summary = result.data
        _print_success(
            f"{summary.jobs_synced} jobs synced, {summary.executions_synced} new executions"
        )
        for external_id in summary.failed_history_jobs:
            _print_warning(f"History not synced for job {external_id}")
        return 0

    _run_with_service(_sync)


@app.command()
def jobs(
    category: JobCategory | None = typer.Option(None, "--category", "-c", help="Filter by category"),
    status: JobStatus | None = typer.Option(None, "--status", "-s", help="Filter by status"),
) -> None:
    """List mirrored jobs."""
    filters = JobFilters(category=category, status=status)

    async def _jobs(service) -> int:
        result = await service.get_jobs(filters)
        if not result.success:
            _print_error(result.error.message)
            return 1

        for job in result.data:
            typer.echo(
                f"{job.id}  #{job.external_id}  [{job.status.value:<8}] "
                f"{job.category.value:<11} {job.priority.value:<6} {job.title}"
            )
        if not result.data:
            typer.echo("No jobs mirrored yet. Run `cronmirror sync` first.")
        return 0

    _run_with_service(_jobs)


@app.command()
def history(
    job_id: str = typer.Argument(..., help="Local job ID"),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of executions"),
) -> None:
    """Show a job's execution history, newest first."""

    async def _history(service) -> int:
        result = await service.get_job_history(job_id, limit)
        if not result.success:
            _print_error(result.error.message)
            return 1

        for execution in result.data:
            typer.echo(
                f"{execution.start_time:%Y-%m-%d %H:%M:%S}  {execution.status.value:<8} "
                f"http={execution.http_status}  {execution.duration}ms"
                + (f"  {execution.error_message}" if execution.error_message else "")
            )
        return 0

    _run_with_service(_history)


@app.command()
def run(job_id: str = typer.Argument(..., help="Local job ID")) -> None:
    """Trigger a job on cron-job.org now."""

    async def _run(service) -> int:
        result = await service.execute_job(job_id, "manual")
        if not result.success:
            _print_error(f"Run failed: {result.error.message}")
            return 1
        _print_success(f"Execution {result.data.id} started")
        return 0

    _run_with_service(_run)


@app.command()
def stats() -> None:
    """Show job and execution statistics."""

    async def _stats(service) -> int:
        result = await service.get_job_statistics()
        if not result.success:
            _print_error(result.error.message)
            return 1

        s = result.data
        typer.echo(
            f"Jobs: {s.total_jobs} total, {s.active_jobs} active, "
            f"{s.paused_jobs} paused, {s.failed_jobs} in error"
        )
        typer.echo(
            f"Executions: {s.total_executions} total, {s.successful_executions} successful, "
            f"{s.failed_executions} failed ({s.success_rate:.1%} success)"
        )
        for category, count in sorted(s.category_counts.items()):
            typer.echo(f"  {category}: {count}")
        return 0

    _run_with_service(_stats)


if __name__ == "__main__":
    app()
