"""Download finalizer — saves a finished export artifact locally.

Streams ``GET /export/{job_id}/download`` into a ``.part`` file that is
renamed on success, so no partial files remain on failure.  Failures are
returned, never raised, and never touch the job registries.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote

from loguru import logger
from tqdm import tqdm

from outreach_crm.lib.api_client import ApiError, CrmApiClient, TransportError, describe_error

_FILENAME_STAR_RE = re.compile(r"filename\*\s*=\s*(?:[\w-]+)?'[^']*'([^;]+)", re.IGNORECASE)
_FILENAME_RE = re.compile(r'filename\s*=\s*"?([^";]+)"?', re.IGNORECASE)


@dataclass(frozen=True)
class DownloadSucceeded:
    """The artifact was saved to ``path``."""

    path: Path

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class DownloadFailed:
    """The artifact could not be fetched or saved."""

    error: str

    @property
    def ok(self) -> bool:
        return False


DownloadResult = DownloadSucceeded | DownloadFailed


def default_export_filename(job_id: str) -> str:
    """Filename used when the server does not name the artifact."""
    return f"influencers-export-{job_id}.xlsx"


def filename_from_disposition(disposition: str | None, job_id: str) -> str:
    """Derive a safe local filename from a Content-Disposition header.

    Args:
        disposition: Raw header value, or None.
        job_id: Export job id used for the fallback name.

    Returns:
        A bare filename without directory components.
    """
    name = None
    if disposition:
        star = _FILENAME_STAR_RE.search(disposition)
        if star:
            name = unquote(star.group(1).strip().strip('"'))
        else:
            plain = _FILENAME_RE.search(disposition)
            if plain:
                name = plain.group(1).strip()
    if name:
        # Strip any directory components the server may have sent.
        name = Path(name.replace("\\", "/")).name
    if not name or name in {".", ".."}:
        return default_export_filename(job_id)
    return name


async def download_export(
    api: CrmApiClient,
    job_id: str,
    download_dir: Path,
    *,
    show_progress: bool = False,
) -> DownloadResult:
    """Fetch an export artifact and save it under ``download_dir``.

    Calling this again re-fetches the artifact; nothing is cached.

    Args:
        api: CRM API client.
        job_id: Finished export job id.
        download_dir: Directory to save the file into.
        show_progress: Render a tqdm progress bar while streaming.

    Returns:
        DownloadSucceeded with the saved path, or DownloadFailed.
    """
    part_path: Path | None = None
    try:
        download_dir.mkdir(parents=True, exist_ok=True)
        async with api.stream_export_download(job_id) as response:
            filename = filename_from_disposition(response.headers.get("content-disposition"), job_id)
            dest = download_dir / filename
            part_path = dest.with_suffix(dest.suffix + ".part")
            total = int(response.headers.get("content-length") or 0) or None

            with (
                part_path.open("wb") as f,
                tqdm(total=total, unit="B", unit_scale=True, desc=filename, disable=not show_progress) as pbar,
            ):
                async for chunk in response.aiter_bytes(chunk_size=8192):
                    f.write(chunk)
                    pbar.update(len(chunk))

        part_path.replace(dest)
        part_path = None
        logger.info("Downloaded export {} to {}", job_id, dest)
        return DownloadSucceeded(dest)

    except TransportError as exc:
        body = exc.body if isinstance(exc.body, str) else None
        error = body or f"Failed to download: {exc.status_code}"
        logger.error("Download of export {} failed: {}", job_id, error)
        return DownloadFailed(error)

    except ApiError as exc:
        error = describe_error(exc)
        logger.error("Download of export {} failed: {}", job_id, error)
        return DownloadFailed(error)

    except OSError as exc:
        error = f"File write error for export {job_id}: {exc}"
        logger.error(error)
        return DownloadFailed(error)

    finally:
        if part_path is not None:
            part_path.unlink(missing_ok=True)
