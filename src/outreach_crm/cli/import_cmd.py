"""Import CLI commands for influencer roster spreadsheets."""

import asyncio
from pathlib import Path

import typer

import_app = typer.Typer()


@import_app.command("run")
def import_run(
    file: Path = typer.Argument(..., help="Path to the roster spreadsheet (.xlsx/.xls)", exists=True),  # noqa: B008
    watch: bool = typer.Option(True, "--watch/--no-watch", help="Follow progress until the job finishes"),
    timeout: float | None = typer.Option(None, "--timeout", help="Stop watching after this many seconds"),
) -> None:
    """Upload a spreadsheet and start an import job."""
    asyncio.run(_import_run(file, watch, timeout))


async def _import_run(file_path: Path, watch: bool, timeout: float | None) -> None:
    """Async implementation of import run."""
    from tqdm import tqdm

    from outreach_crm.cli.session import job_session, render_import
    from outreach_crm.core.config import get_settings
    from outreach_crm.services.job_service import JobFailed

    settings = get_settings()

    async with job_session(settings, with_channel=watch) as service:
        result = await service.submit_import(file_path)
        if isinstance(result, JobFailed):
            typer.echo(f"Import failed: {result.error}", err=True)
            raise typer.Exit(code=1)

        typer.echo(f"Import job created: {result.job_id}")
        if not watch:
            return

        with tqdm(desc="Importing", unit="rows") as pbar:
            snapshot = await service.wait_for_import(
                result.job_id,
                on_update=lambda s: render_import(pbar, s),
                timeout=timeout,
            )

    if snapshot is None or not snapshot.is_terminal:
        typer.echo(f"Import job {result.job_id} is still running.", err=True)
        raise typer.Exit(code=1)
    if snapshot.error is not None:
        typer.echo(f"Import failed: {snapshot.error}", err=True)
        raise typer.Exit(code=1)

    typer.echo("\nImport completed:")
    typer.echo(f"  Processed:   {snapshot.processed or 0}")
    typer.echo(f"  Succeeded:   {snapshot.success or 0}")
    typer.echo(f"  Failed:      {snapshot.failed or 0}")
    typer.echo(f"  Duplicates:  {snapshot.duplicates_count or 0}")


@import_app.command("status")
def import_status(
    job_id: str = typer.Argument(..., help="Import job id"),
) -> None:
    """Show the backend's current row for an import job."""
    asyncio.run(_import_status(job_id))


async def _import_status(job_id: str) -> None:
    """Async implementation of import status."""
    from outreach_crm.cli.session import job_session
    from outreach_crm.core.config import get_settings
    from outreach_crm.services.job_service import JobFailed

    settings = get_settings()

    async with job_session(settings, with_channel=False) as service:
        row = await service.get_import_job(job_id)

    if isinstance(row, JobFailed):
        typer.echo(f"Could not fetch import job: {row.error}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Import job {row.id}:")
    typer.echo(f"  File:        {row.filename or 'N/A'}")
    typer.echo(f"  Status:      {row.status}")
    typer.echo(f"  Total rows:  {row.total_rows or 0}")
    typer.echo(f"  Succeeded:   {row.success_count or 0}")
    typer.echo(f"  Failed:      {row.failed_count or 0}")


@import_app.command("cancel")
def import_cancel(
    job_id: str = typer.Argument(..., help="Import job id"),
) -> None:
    """Request cancellation of a running import job."""
    asyncio.run(_import_cancel(job_id))


async def _import_cancel(job_id: str) -> None:
    """Async implementation of import cancel."""
    from outreach_crm.cli.session import job_session
    from outreach_crm.core.config import get_settings

    settings = get_settings()

    async with job_session(settings, with_channel=False) as service:
        outcome = await service.cancel_import(job_id)

    if outcome.requested:
        typer.echo(f"Cancel requested for import job {job_id}")
    else:
        typer.echo(f"Failed to cancel import job: {outcome.error}", err=True)
    if outcome.job is not None:
        typer.echo(f"  Status:      {outcome.job.status}")
    if not outcome.requested:
        raise typer.Exit(code=1)
