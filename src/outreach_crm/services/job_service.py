"""Import/export job service — submission, progress watching, cancellation.

``ImportExportService`` ties the REST client to the shared progress channel
and keeps one ``JobRegistry`` per job kind up to date.  Every public
coroutine returns a result object instead of raising for expected failures.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger

from outreach_crm.lib.api_client import ApiError, CrmApiClient, describe_error
from outreach_crm.lib.channel import ChannelHandle
from outreach_crm.lib.progress import (
    SNAPSHOT_TYPES,
    ExportProgress,
    ImportProgress,
    JobKind,
    JobRegistry,
    ProgressSnapshot,
    extract_job_id,
)
from outreach_crm.schemas.jobs import ExportFilters, ExportJobRow, ImportJobRow
from outreach_crm.services.download_service import DownloadResult, download_export

MISSING_JOB_ID = "Server did not return jobId"


@dataclass(frozen=True)
class JobSubmitted:
    """A job was created; ``job_id`` is its only handle."""

    job_id: str


@dataclass(frozen=True)
class JobFailed:
    """A request failed; ``error`` is ready for display."""

    error: str


SubmitResult = JobSubmitted | JobFailed


@dataclass(frozen=True)
class CancelOutcome:
    """Result of a cancel request plus the job row fetched afterwards.

    Attributes:
        requested: Whether the backend accepted the cancel request.
        job: Job row as fetched after the request, when available.
        error: Display message if the cancel request failed.
    """

    requested: bool
    job: ImportJobRow | None = None
    error: str | None = None


def _noop() -> None:
    return None


class ImportExportService:
    """Client-side coordinator for bulk import/export jobs.

    Args:
        api: CRM API client.
        channel_factory: Zero-argument callable returning the shared progress
            channel.  Errors raised by it are recorded in ``error`` instead of
            propagating.  None disables progress observation.
        download_dir: Directory where export artifacts are saved.
        track_all: Record progress for every job on the channel, not only
            watched ones.
    """

    def __init__(
        self,
        api: CrmApiClient,
        channel_factory: Callable[[], ChannelHandle] | None = None,
        *,
        download_dir: Path = Path("downloads"),
        track_all: bool = True,
    ) -> None:
        self.api = api
        self.download_dir = download_dir
        self.imports: JobRegistry[ImportProgress] = JobRegistry(JobKind.IMPORT)
        self.exports: JobRegistry[ExportProgress] = JobRegistry(JobKind.EXPORT)
        self.channel: ChannelHandle | None = None
        self._error: str | None = None
        self._detachers: list[Callable[[], None]] = []

        if channel_factory is None:
            return
        try:
            self.channel = channel_factory()
        except Exception as exc:
            logger.warning("Progress channel init failed: {}", exc)
            self._defer_error(describe_error(exc))
            return

        self._detachers.append(self.channel.add_error_listener(self._defer_error))
        if track_all:
            for registry in (self.imports, self.exports):
                self._attach(registry.kind.progress_event, registry.on_event)

    @property
    def error(self) -> str | None:
        """Latest channel error message, or None."""
        return self._error

    def registry(self, kind: JobKind) -> JobRegistry[Any]:
        """Return the registry for a job kind."""
        return self.imports if kind is JobKind.IMPORT else self.exports

    def _attach(self, event: str, handler: Callable[[Any], Any]) -> None:
        channel = self.channel
        if channel is None:
            return
        channel.on(event, handler)
        self._detachers.append(lambda: channel.off(event, handler))

    def _set_error(self, message: str) -> None:
        self._error = message

    def _defer_error(self, message: str) -> None:
        # State changes triggered during setup or event delivery land on the next loop iteration.
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._set_error(message)
            return
        loop.call_soon(self._set_error, message)

    def detach(self) -> None:
        """Remove this service's channel listeners without closing the channel."""
        while self._detachers:
            self._detachers.pop()()

    # Submission

    async def submit_import(self, file_path: Path) -> SubmitResult:
        """Upload a spreadsheet and start an import job.

        Args:
            file_path: Local spreadsheet file.

        Returns:
            JobSubmitted with the new job id, or JobFailed.
        """
        try:
            created = await self.api.upload_import_file(file_path)
        except ApiError as exc:
            message = describe_error(exc)
            logger.error("Import upload of {} failed: {}", file_path.name, message)
            return JobFailed(message)
        if not created.job_id:
            return JobFailed(MISSING_JOB_ID)
        logger.info("Import job {} queued for {}", created.job_id, file_path.name)
        return JobSubmitted(created.job_id)

    async def submit_export(self, filters: ExportFilters | Mapping[str, Any] | None = None) -> SubmitResult:
        """Start an export job.

        Args:
            filters: ``ExportFilters``, a raw filter mapping forwarded as-is,
                or None to export everything in the caller's scope.

        Returns:
            JobSubmitted with the new job id, or JobFailed.
        """
        if isinstance(filters, ExportFilters):
            payload = filters.to_payload()
        elif filters is not None:
            payload = dict(filters)
        else:
            payload = None

        try:
            created = await self.api.create_export_job(payload)
        except ApiError as exc:
            message = describe_error(exc)
            logger.error("Export creation failed: {}", message)
            return JobFailed(message)
        if not created.job_id:
            return JobFailed(MISSING_JOB_ID)
        logger.info("Export job {} queued (filters={})", created.job_id, payload)
        return JobSubmitted(created.job_id)

    # Job rows

    async def get_import_job(self, job_id: str) -> ImportJobRow | JobFailed:
        """Fetch the backend's row for an import job."""
        try:
            return await self.api.get_import_job(job_id)
        except ApiError as exc:
            return JobFailed(describe_error(exc))

    async def get_export_job(self, job_id: str) -> ExportJobRow | JobFailed:
        """Fetch the backend's row for an export job."""
        try:
            return await self.api.get_export_job(job_id)
        except ApiError as exc:
            return JobFailed(describe_error(exc))

    async def cancel_import(self, job_id: str) -> CancelOutcome:
        """Request cooperative cancellation of an import job.

        The progress watch is left open; the job's terminal event still
        arrives through the channel.  The job row is re-fetched afterwards
        regardless of whether the cancel request succeeded.

        Args:
            job_id: Import job id.

        Returns:
            CancelOutcome describing the request and the current job row.
        """
        requested = True
        error = None
        try:
            await self.api.cancel_import_job(job_id)
            logger.info("Cancel requested for import job {}", job_id)
        except ApiError as exc:
            requested = False
            error = describe_error(exc)
            logger.warning("Cancel request for import job {} failed: {}", job_id, error)

        job = None
        try:
            job = await self.api.get_import_job(job_id)
        except ApiError as exc:
            logger.debug("Could not refresh import job {} after cancel: {}", job_id, describe_error(exc))
        return CancelOutcome(requested=requested, job=job, error=error)

    # Watching

    def watch_import(
        self,
        job_id: str,
        on_update: Callable[[ImportProgress], None] | None = None,
    ) -> Callable[[], None]:
        """Observe one import job; returns an idempotent unsubscribe."""
        return self._watch(JobKind.IMPORT, job_id, on_update)

    def watch_export(
        self,
        job_id: str,
        on_update: Callable[[ExportProgress], None] | None = None,
    ) -> Callable[[], None]:
        """Observe one export job; returns an idempotent unsubscribe."""
        return self._watch(JobKind.EXPORT, job_id, on_update)

    def _watch(
        self,
        kind: JobKind,
        job_id: str,
        on_update: Callable[[Any], None] | None,
    ) -> Callable[[], None]:
        channel = self.channel
        if channel is None:
            return _noop

        registry = self.registry(kind)
        snapshot_type = SNAPSHOT_TYPES[kind]
        event = kind.progress_event

        def handler(payload: Mapping[str, Any]) -> None:
            if extract_job_id(payload) != job_id:
                return
            snapshot = snapshot_type.from_payload(payload)
            if snapshot is None:
                return
            if registry.get(job_id) != snapshot and registry.put(snapshot) is None:
                return
            if on_update is not None:
                on_update(snapshot)

        channel.on(event, handler)
        active = True

        def unsubscribe() -> None:
            nonlocal active
            if not active:
                return
            active = False
            channel.off(event, handler)

        return unsubscribe

    async def wait_for_import(
        self,
        job_id: str,
        *,
        on_update: Callable[[ImportProgress], None] | None = None,
        timeout: float | None = None,
    ) -> ImportProgress | None:
        """Wait for an import job to reach a terminal snapshot.

        Returns:
            The terminal snapshot, or the latest snapshot (possibly None) if
            the timeout expired or no channel is available.
        """
        return await self._wait_for(JobKind.IMPORT, job_id, on_update, timeout)

    async def wait_for_export(
        self,
        job_id: str,
        *,
        on_update: Callable[[ExportProgress], None] | None = None,
        timeout: float | None = None,
    ) -> ExportProgress | None:
        """Wait for an export job to reach a terminal snapshot.

        Returns:
            The terminal snapshot, or the latest snapshot (possibly None) if
            the timeout expired or no channel is available.
        """
        return await self._wait_for(JobKind.EXPORT, job_id, on_update, timeout)

    async def _wait_for(
        self,
        kind: JobKind,
        job_id: str,
        on_update: Callable[[Any], None] | None,
        timeout: float | None,
    ) -> ProgressSnapshot | None:
        registry = self.registry(kind)
        current = registry.get(job_id)
        if self.channel is None or (current is not None and current.is_terminal):
            return current

        finished: asyncio.Future[ProgressSnapshot] = asyncio.get_running_loop().create_future()

        def handle(snapshot: ProgressSnapshot) -> None:
            if on_update is not None:
                on_update(snapshot)
            if snapshot.is_terminal and not finished.done():
                finished.set_result(snapshot)

        unsubscribe = self._watch(kind, job_id, handle)
        try:
            return await asyncio.wait_for(finished, timeout)
        except TimeoutError:
            logger.warning("Timed out waiting for {} job {}", kind, job_id)
            return registry.get(job_id)
        finally:
            unsubscribe()

    # Download

    async def download_export(self, job_id: str, *, show_progress: bool = False) -> DownloadResult:
        """Download a finished export's artifact into ``download_dir``."""
        return await download_export(self.api, job_id, self.download_dir, show_progress=show_progress)
