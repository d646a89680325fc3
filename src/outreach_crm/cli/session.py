"""Shared CLI plumbing: service lifecycle and progress rendering."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import typer
from tqdm import tqdm

from outreach_crm.core.channel import init_channel, shutdown_channel
from outreach_crm.core.config import Settings
from outreach_crm.lib.api_client import CrmApiClient
from outreach_crm.lib.channel import ProgressChannel
from outreach_crm.lib.progress import ExportProgress, ImportProgress
from outreach_crm.services.job_service import ImportExportService


@asynccontextmanager
async def job_session(
    settings: Settings,
    *,
    with_channel: bool = True,
    download_dir: Path | None = None,
) -> AsyncIterator[ImportExportService]:
    """Open an API client (and optionally the progress channel) for one command.

    Args:
        settings: Client settings.
        with_channel: Connect the progress channel before yielding.
        download_dir: Override for ``settings.download_dir``.

    Yields:
        A ready ImportExportService.
    """
    api = CrmApiClient(settings.api_base_url, settings.api_token, timeout=settings.request_timeout)
    service = ImportExportService(
        api,
        (lambda: init_channel(settings)) if with_channel else None,
        download_dir=download_dir or Path(settings.download_dir),
    )
    try:
        if isinstance(service.channel, ProgressChannel):
            connected = await service.channel.wait_connected(settings.socket_connect_timeout)
            if not connected:
                typer.echo("Progress channel not connected yet; updates may be delayed.", err=True)
        elif with_channel:
            await asyncio.sleep(0)
            if service.error:
                typer.echo(f"Progress channel unavailable: {service.error}", err=True)
        yield service
    finally:
        service.detach()
        if with_channel:
            await shutdown_channel()
        await api.aclose()


def render_import(pbar: tqdm, snapshot: ImportProgress) -> None:
    """Reflect an import snapshot on a progress bar."""
    pbar.n = snapshot.processed or 0
    pbar.set_postfix(
        success=snapshot.success or 0,
        failed=snapshot.failed or 0,
        duplicates=snapshot.duplicates_count or 0,
        refresh=False,
    )
    pbar.refresh()


def render_export(pbar: tqdm, snapshot: ExportProgress) -> None:
    """Reflect an export snapshot on a progress bar."""
    if snapshot.total is not None and pbar.total != snapshot.total:
        pbar.total = snapshot.total
    pbar.n = snapshot.processed or 0
    pbar.refresh()
