"""Async HTTP client for the CRM import/export endpoints.

Uses httpx for async requests.  Every failure is raised as one of the
``ApiError`` variants so callers never see raw httpx exceptions.
"""

from __future__ import annotations

import mimetypes
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import aiofiles
import httpx
from loguru import logger
from pydantic import ValidationError

from outreach_crm.lib.api_client.errors import NetworkError, TransportError, UnknownError
from outreach_crm.schemas.jobs import ExportJobRow, ImportJobRow, JobCreatedResponse

if TYPE_CHECKING:
    from pathlib import Path

_SPREADSHEET_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _decode_body(response: httpx.Response) -> Any:
    """Return the JSON body when possible, else the text body, else None."""
    try:
        return response.json()
    except ValueError:
        return response.text or None


class CrmApiClient:
    """Thin async wrapper over the CRM REST API.

    Args:
        base_url: REST base URL, e.g. ``https://crm.example.com/api``.
        token: Optional bearer token.
        timeout: Request timeout in seconds.
    """

    def __init__(self, base_url: str, token: str | None = None, timeout: float = 30.0) -> None:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        else:
            logger.warning("No API token configured; requests to {} are anonymous", base_url)
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(base_url=self.base_url, headers=headers, timeout=timeout)

    async def __aenter__(self) -> CrmApiClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    def _check(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        if response.status_code == 401:
            logger.warning("Authentication failed for {} {}", response.request.method, response.request.url)
        raise TransportError(response.status_code, _decode_body(response))

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            msg = f"Timeout calling {method} {path}"
            raise NetworkError(msg) from exc
        except httpx.HTTPError as exc:
            raise NetworkError(str(exc) or f"Network error calling {method} {path}") from exc
        self._check(response)
        return response

    async def _request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self._request(method, path, **kwargs)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            msg = f"Invalid JSON response from {method} {path}"
            raise UnknownError(msg) from exc

    @staticmethod
    def _parse(model: type[Any], data: Any) -> Any:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise UnknownError(exc) from exc

    async def upload_import_file(self, file_path: Path) -> JobCreatedResponse:
        """Upload a spreadsheet to start an import job (``POST /import/upload``).

        Args:
            file_path: Local spreadsheet file.

        Returns:
            The creation response carrying the new job id.
        """
        content_type = mimetypes.guess_type(file_path.name)[0] or _SPREADSHEET_TYPE
        try:
            async with aiofiles.open(file_path, "rb") as f:
                content = await f.read()
        except OSError as exc:
            msg = f"Cannot read {file_path}: {exc.strerror or exc}"
            raise UnknownError(msg) from exc
        logger.debug("Uploading {} ({} bytes)", file_path.name, len(content))
        data = await self._request_json(
            "POST",
            "/import/upload",
            files={"file": (file_path.name, content, content_type)},
        )
        return self._parse(JobCreatedResponse, data or {})

    async def get_import_job(self, job_id: str) -> ImportJobRow:
        """Fetch an import job row (``GET /import/{job_id}``)."""
        return self._parse(ImportJobRow, await self._request_json("GET", f"/import/{job_id}"))

    async def cancel_import_job(self, job_id: str) -> Any:
        """Request cooperative cancellation (``POST /import/{job_id}/cancel``)."""
        return await self._request_json("POST", f"/import/{job_id}/cancel")

    async def create_export_job(self, filters: dict[str, Any] | None) -> JobCreatedResponse:
        """Start an export job (``POST /export``).

        Args:
            filters: Filter bag forwarded as-is; None exports everything in scope.
        """
        if filters is None:
            data = await self._request_json(
                "POST",
                "/export",
                content=b"null",
                headers={"Content-Type": "application/json"},
            )
        else:
            data = await self._request_json("POST", "/export", json=filters)
        return self._parse(JobCreatedResponse, data or {})

    async def get_export_job(self, job_id: str) -> ExportJobRow:
        """Fetch an export job row (``GET /export/{job_id}``)."""
        return self._parse(ExportJobRow, await self._request_json("GET", f"/export/{job_id}"))

    @asynccontextmanager
    async def stream_export_download(self, job_id: str) -> AsyncIterator[httpx.Response]:
        """Open a streamed ``GET /export/{job_id}/download``.

        On a non-success status the body is read as text and raised as the
        ``TransportError`` body.

        Yields:
            The open streaming response.
        """
        path = f"/export/{job_id}/download"
        try:
            async with self._client.stream("GET", path, headers={"Accept": "*/*"}) as response:
                if not response.is_success:
                    await response.aread()
                    if response.status_code == 401:
                        logger.warning("Authentication failed for GET {}", path)
                    raise TransportError(response.status_code, response.text or None)
                yield response
        except httpx.TimeoutException as exc:
            msg = f"Timeout calling GET {path}"
            raise NetworkError(msg) from exc
        except httpx.HTTPError as exc:
            raise NetworkError(str(exc) or f"Network error calling GET {path}") from exc
