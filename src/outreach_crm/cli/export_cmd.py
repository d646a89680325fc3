"""Export CLI commands for influencer roster exports."""

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING

import typer

if TYPE_CHECKING:
    from outreach_crm.schemas.jobs import ExportFilters

export_app = typer.Typer()


@export_app.command("run")
def export_run(
    status: str | None = typer.Option(None, "--status", help="Influencer status filter (e.g. PING_1, ALL)"),
    search: str | None = typer.Option(None, "--search", help="Free-text search filter"),
    email_filter: str | None = typer.Option(None, "--email-filter", help="ALL, HAS_EMAIL or NO_EMAIL"),
    download: bool = typer.Option(True, "--download/--no-download", help="Download the file when ready"),
    output: Path | None = typer.Option(None, "--output", help="Download directory"),  # noqa: B008
    timeout: float | None = typer.Option(None, "--timeout", help="Stop watching after this many seconds"),
) -> None:
    """Start an export job, follow its progress and download the result."""
    from pydantic import ValidationError

    from outreach_crm.schemas.jobs import ExportFilters

    try:
        filters = ExportFilters.build(status=status, search=search, email_filter=email_filter)
    except ValidationError as exc:
        raise typer.BadParameter(str(exc)) from exc
    asyncio.run(_export_run(filters, download, output, timeout))


async def _export_run(
    filters: "ExportFilters",
    download: bool,
    output_dir: Path | None,
    timeout: float | None,
) -> None:
    """Async implementation of export run."""
    from tqdm import tqdm

    from outreach_crm.cli.session import job_session, render_export
    from outreach_crm.core.config import get_settings
    from outreach_crm.services.download_service import DownloadFailed
    from outreach_crm.services.job_service import JobFailed

    settings = get_settings()

    async with job_session(settings, download_dir=output_dir) as service:
        result = await service.submit_export(filters)
        if isinstance(result, JobFailed):
            typer.echo(f"Export failed: {result.error}", err=True)
            raise typer.Exit(code=1)

        typer.echo(f"Export job created: {result.job_id}")

        with tqdm(desc="Exporting", unit="rows") as pbar:
            snapshot = await service.wait_for_export(
                result.job_id,
                on_update=lambda s: render_export(pbar, s),
                timeout=timeout,
            )

        if snapshot is None or not snapshot.is_terminal:
            typer.echo(f"Export job {result.job_id} is still running.", err=True)
            raise typer.Exit(code=1)
        if snapshot.error is not None:
            typer.echo(f"Export failed: {snapshot.error}", err=True)
            raise typer.Exit(code=1)

        typer.echo(f"Export completed: {snapshot.processed or 0} rows")
        if not download:
            return

        outcome = await service.download_export(result.job_id, show_progress=True)

    if isinstance(outcome, DownloadFailed):
        typer.echo(f"Download failed: {outcome.error}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Saved to {outcome.path}")


@export_app.command("status")
def export_status(
    job_id: str = typer.Argument(..., help="Export job id"),
) -> None:
    """Show the backend's current row for an export job."""
    asyncio.run(_export_status(job_id))


async def _export_status(job_id: str) -> None:
    """Async implementation of export status."""
    from outreach_crm.cli.session import job_session
    from outreach_crm.core.config import get_settings
    from outreach_crm.services.job_service import JobFailed

    settings = get_settings()

    async with job_session(settings, with_channel=False) as service:
        row = await service.get_export_job(job_id)

    if isinstance(row, JobFailed):
        typer.echo(f"Could not fetch export job: {row.error}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Export job {row.id}:")
    typer.echo(f"  Status:      {row.status}")
    typer.echo(f"  Total rows:  {row.total_rows or 0}")
    typer.echo(f"  Filters:     {row.filters or 'none'}")
    typer.echo(f"  File path:   {row.file_path or 'N/A'}")


@export_app.command("download")
def export_download(
    job_id: str = typer.Argument(..., help="Export job id"),
    output: Path | None = typer.Option(None, "--output", help="Download directory"),  # noqa: B008
) -> None:
    """Download the file produced by a finished export job."""
    asyncio.run(_export_download(job_id, output))


async def _export_download(job_id: str, output_dir: Path | None) -> None:
    """Async implementation of export download."""
    from outreach_crm.cli.session import job_session
    from outreach_crm.core.config import get_settings
    from outreach_crm.services.download_service import DownloadFailed

    settings = get_settings()

    async with job_session(settings, with_channel=False, download_dir=output_dir) as service:
        outcome = await service.download_export(job_id, show_progress=True)

    if isinstance(outcome, DownloadFailed):
        typer.echo(f"Download failed: {outcome.error}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Saved to {outcome.path}")
