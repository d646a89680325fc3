"""Progress snapshot types for import and export jobs.

Snapshots mirror the backend's ``import:progress`` / ``export:progress``
payloads.  Every payload describes the full current state of a job, so a
field missing from the payload is ``None`` on the snapshot rather than a
zeroed default.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class JobKind(StrEnum):
    """Kind of asynchronous roster job."""

    IMPORT = "import"
    EXPORT = "export"

    @property
    def progress_event(self) -> str:
        """Channel event name carrying this kind's progress payloads."""
        return f"{self.value}:progress"


def extract_job_id(payload: object) -> str | None:
    """Return the ``jobId`` of a progress payload, or None when malformed.

    Args:
        payload: Raw event payload as received from the channel.

    Returns:
        The non-empty job id string, or None.
    """
    if not isinstance(payload, Mapping):
        return None
    job_id = payload.get("jobId")
    if not isinstance(job_id, str) or not job_id:
        return None
    return job_id


def _opt_int(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _opt_float(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return float(value)


def _opt_bool(value: Any) -> bool | None:
    return value if isinstance(value, bool) else None


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


@dataclass(frozen=True)
class ImportProgress:
    """Latest known state of an import job.

    Attributes:
        job_id: Backend-assigned job identifier.
        processed: Rows handled so far.
        success: Rows imported successfully.
        failed: Rows rejected.
        duplicates_count: Rows skipped as duplicates.
        done: Terminal completion flag.
        error: Terminal failure message.
        seq: Optional monotonic sequence number supplied by the backend.
    """

    job_id: str
    processed: int | None = None
    success: int | None = None
    failed: int | None = None
    duplicates_count: int | None = None
    done: bool | None = None
    error: str | None = None
    seq: int | None = None

    kind = JobKind.IMPORT

    @classmethod
    def from_payload(cls, payload: object) -> ImportProgress | None:
        """Build a snapshot from a raw payload; None if it lacks a jobId."""
        job_id = extract_job_id(payload)
        if job_id is None or not isinstance(payload, Mapping):
            return None
        return cls(
            job_id=job_id,
            processed=_opt_int(payload.get("processed")),
            success=_opt_int(payload.get("success")),
            failed=_opt_int(payload.get("failed")),
            duplicates_count=_opt_int(payload.get("duplicatesCount")),
            done=_opt_bool(payload.get("done")),
            error=_opt_str(payload.get("error")),
            seq=_opt_int(payload.get("seq")),
        )

    @property
    def is_terminal(self) -> bool:
        """Whether no further progress is expected for this job."""
        return bool(self.done) or self.error is not None


@dataclass(frozen=True)
class ExportProgress:
    """Latest known state of an export job.

    Attributes:
        job_id: Backend-assigned job identifier.
        processed: Rows written so far.
        total: Total rows to write, once the backend knows it.
        percent: Backend-supplied completion percentage.
        done: Terminal completion flag.
        download_ready: Whether the artifact can be fetched.
        error: Terminal failure message.
        seq: Optional monotonic sequence number supplied by the backend.
    """

    job_id: str
    processed: int | None = None
    total: int | None = None
    percent: float | None = None
    done: bool | None = None
    download_ready: bool | None = None
    error: str | None = None
    seq: int | None = None

    kind = JobKind.EXPORT

    @classmethod
    def from_payload(cls, payload: object) -> ExportProgress | None:
        """Build a snapshot from a raw payload; None if it lacks a jobId."""
        job_id = extract_job_id(payload)
        if job_id is None or not isinstance(payload, Mapping):
            return None
        return cls(
            job_id=job_id,
            processed=_opt_int(payload.get("processed")),
            total=_opt_int(payload.get("total")),
            percent=_opt_float(payload.get("percent")),
            done=_opt_bool(payload.get("done")),
            download_ready=_opt_bool(payload.get("downloadReady")),
            error=_opt_str(payload.get("error")),
            seq=_opt_int(payload.get("seq")),
        )

    @property
    def is_terminal(self) -> bool:
        """Whether no further progress is expected for this job."""
        return bool(self.done) or self.error is not None

    @property
    def percent_complete(self) -> float | None:
        """Completion percentage, derived from processed/total when not supplied."""
        if self.percent is not None:
            return self.percent
        if self.processed is None or not self.total:
            return None
        return round(self.processed * 100 / self.total, 1)


ProgressSnapshot = ImportProgress | ExportProgress

SNAPSHOT_TYPES: dict[JobKind, type[ImportProgress] | type[ExportProgress]] = {
    JobKind.IMPORT: ImportProgress,
    JobKind.EXPORT: ExportProgress,
}
