"""Progress library — job progress snapshots and their reactive registry.

Public API:
    - JobKind: Import or export
    - ImportProgress / ExportProgress: Immutable progress snapshots
    - JobRegistry: Observable last-write-wins snapshot store
    - extract_job_id: Payload validation helper
"""

from outreach_crm.lib.progress.registry import JobRegistry, RegistryListener
from outreach_crm.lib.progress.types import (
    SNAPSHOT_TYPES,
    ExportProgress,
    ImportProgress,
    JobKind,
    ProgressSnapshot,
    extract_job_id,
)

__all__ = [
    "SNAPSHOT_TYPES",
    "ExportProgress",
    "ImportProgress",
    "JobKind",
    "JobRegistry",
    "ProgressSnapshot",
    "RegistryListener",
    "extract_job_id",
]
