"""Import/export job Pydantic v2 request/response schemas."""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class InfluencerStatus(StrEnum):
    """Outreach pipeline status of an influencer."""

    NOT_SENT = "NOT_SENT"
    PING_1 = "PING_1"
    PING_2 = "PING_2"
    PING_3 = "PING_3"
    CONTRACT = "CONTRACT"
    REJECTED = "REJECTED"
    COMPLETED = "COMPLETED"


class EmailFilter(StrEnum):
    """Email-presence filter for exports."""

    ALL = "ALL"
    HAS_EMAIL = "HAS_EMAIL"
    NO_EMAIL = "NO_EMAIL"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class JobCreatedResponse(_CamelModel):
    """Response to an import upload or export creation."""

    job_id: str | None = None
    message: str | None = None


class ImportJobRow(_CamelModel):
    """Import job status and counters as stored by the backend."""

    id: str
    manager_id: str | None = None
    filename: str | None = None
    file_path: str | None = None
    status: str
    total_rows: int | None = None
    success_count: int | None = None
    failed_count: int | None = None
    duplicates: Any = None
    errors: Any = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ExportJobRow(_CamelModel):
    """Export job status and artifact location as stored by the backend."""

    id: str
    manager_id: str | None = None
    filters: dict[str, Any] | None = None
    file_path: str | None = None
    status: str
    total_rows: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ExportFilters(BaseModel):
    """Filter criteria for export requests.

    A status of ``ALL`` means no status filter.
    """

    status: InfluencerStatus | None = Field(default=None, description="Pipeline status, or None/ALL for any")
    search: str | None = Field(default=None, description="Free-text search")
    email_filter: EmailFilter | None = Field(default=None, description="Email-presence filter")

    @classmethod
    def build(
        cls,
        status: str | None = None,
        search: str | None = None,
        email_filter: str | None = None,
    ) -> "ExportFilters":
        """Build filters from loose string inputs, treating ``ALL`` status as unset."""
        if status is not None and status.upper() == "ALL":
            status = None
        return cls(
            status=status.upper() if status else None,
            search=search or None,
            email_filter=email_filter.upper() if email_filter else None,
        )

    def to_payload(self) -> dict[str, str] | None:
        """Return the request body, or None to export everything in scope."""
        payload: dict[str, str] = {}
        if self.status is not None:
            payload["status"] = self.status.value
        if self.search:
            payload["search"] = self.search
        if self.email_filter is not None:
            payload["emailFilter"] = self.email_filter.value
        return payload or None
